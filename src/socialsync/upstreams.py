"""
Factories for the non-tabular upstreams.

Each factory checks that the provider is configured before any network
access and returns a ``RestProxy`` carrying the provider's auth headers.
"""

from typing import Optional

from socialsync.config import ProxyConfig
from socialsync.errors import ConfigurationError
from socialsync.gateway import RestProxy


def gemini_proxy(config: ProxyConfig) -> RestProxy:
    if not config.gemini.api_key:
        raise ConfigurationError("Gemini API key not configured on server")
    return RestProxy(
        "Gemini",
        config.gemini.api_url,
        default_headers={"x-goog-api-key": config.gemini.api_key},
        timeout=config.request_timeout_seconds,
    )


def openrouter_proxy(config: ProxyConfig, referer: Optional[str] = None) -> RestProxy:
    if not config.openrouter.api_key:
        raise ConfigurationError("OpenRouter API key not configured on server")
    return RestProxy(
        "OpenRouter",
        config.openrouter.api_url,
        default_headers={
            "Authorization": f"Bearer {config.openrouter.api_key}",
            "HTTP-Referer": referer or config.openrouter.default_referer,
            "X-Title": config.openrouter.site_title,
        },
        timeout=config.request_timeout_seconds,
    )


def cloudinary_proxy(config: ProxyConfig) -> RestProxy:
    if not config.cloudinary.cloud_name or not config.cloudinary.upload_preset:
        raise ConfigurationError("Cloudinary cloud name or upload preset not configured on server")
    return RestProxy(
        "Cloudinary",
        f"{config.cloudinary.api_url.rstrip('/')}/{config.cloudinary.cloud_name}",
        timeout=config.request_timeout_seconds,
    )


def facebook_proxy(config: ProxyConfig) -> RestProxy:
    # Page access tokens travel per request, so no default auth header here.
    return RestProxy(
        "Facebook",
        f"{config.facebook.graph_url.rstrip('/')}/{config.facebook.api_version}",
        timeout=config.request_timeout_seconds,
    )
