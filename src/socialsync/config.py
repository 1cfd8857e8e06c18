import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class Credentials(BaseModel):
    token: str
    resource_id: str


class AirtableConfig(BaseModel):
    api_url: str = "https://api.airtable.com/v0"
    token: Optional[str] = None
    base_id: Optional[str] = None
    batch_size: int = Field(default=10, ge=1, description="Maximum records per write call")
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    def credentials(self) -> Optional[Credentials]:
        """Return the bearer token and base id, or None when either is missing."""
        if not self.token or not self.base_id:
            return None
        return Credentials(token=self.token, resource_id=self.base_id)


class GeminiConfig(BaseModel):
    api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    api_key: Optional[str] = None
    embedding_model: str = "embedding-001"


class OpenRouterConfig(BaseModel):
    api_url: str = "https://openrouter.ai/api/v1"
    api_key: Optional[str] = None
    site_title: str = "SocialSync Pro"
    default_referer: str = "https://socialsync.pro"


class CloudinaryConfig(BaseModel):
    api_url: str = "https://api.cloudinary.com/v1_1"
    cloud_name: Optional[str] = None
    upload_preset: Optional[str] = None


class FacebookConfig(BaseModel):
    graph_url: str = "https://graph.facebook.com"
    api_version: str = "v23.0"
    app_id: Optional[str] = None


class ProxyConfig(BaseModel):
    airtable: AirtableConfig = Field(default_factory=AirtableConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    openrouter: OpenRouterConfig = Field(default_factory=OpenRouterConfig)
    cloudinary: CloudinaryConfig = Field(default_factory=CloudinaryConfig)
    facebook: FacebookConfig = Field(default_factory=FacebookConfig)

    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    correlation_header: str = Field(
        default="x-test-run-id", description="Request header carrying the caller's correlation id"
    )
    request_timeout_seconds: float = Field(
        default=30.0, gt=0, description="HTTP timeout for non-Airtable upstream calls"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


# Environment variable -> (section, field, type). A None section is top-level.
ENV_MAPPINGS = {
    "AIRTABLE_PAT": ("airtable", "token", str),
    "AIRTABLE_BASE_ID": ("airtable", "base_id", str),
    "AIRTABLE_API_URL": ("airtable", "api_url", str),
    "AIRTABLE_BATCH_SIZE": ("airtable", "batch_size", int),
    "AIRTABLE_REQUEST_TIMEOUT_SECONDS": ("airtable", "request_timeout_seconds", float),
    "GEMINI_API_KEY": ("gemini", "api_key", str),
    "OPENROUTER_API_KEY": ("openrouter", "api_key", str),
    "CLOUDINARY_CLOUD_NAME": ("cloudinary", "cloud_name", str),
    "CLOUDINARY_UPLOAD_PRESET": ("cloudinary", "upload_preset", str),
    "FACEBOOK_APP_ID": ("facebook", "app_id", str),
    "LOG_LEVEL": (None, "log_level", str),
    "REQUEST_TIMEOUT_SECONDS": (None, "request_timeout_seconds", float),
}


def load_config(config_path: str = "socialsync_config.yml") -> ProxyConfig:
    """Load configuration from YAML file with environment variable overrides."""
    config_data: Dict[str, Any] = {}

    try:
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        # File doesn't exist, use defaults
        pass
    except Exception as e:
        print(f"Warning: Failed to load config from {config_path}: {e}")

    _apply_environment_overrides(config_data)

    return ProxyConfig(**config_data)


def _apply_environment_overrides(config_data: Dict[str, Any]) -> None:
    """Overlay environment variables onto the parsed YAML data."""
    for env_key, (section, field, field_type) in ENV_MAPPINGS.items():
        env_value = os.getenv(env_key)
        if not env_value:
            continue

        try:
            if field_type is int:
                value = int(env_value)
            elif field_type is float:
                value = float(env_value)
            else:
                value = env_value
        except (ValueError, TypeError) as e:
            print(f"Warning: Invalid {field_type.__name__} value for {env_key}: {env_value} ({e})")
            continue

        if section is None:
            config_data[field] = value
        else:
            target = config_data.get(section)
            if not isinstance(target, dict):
                target = {}
                config_data[section] = target
            target[field] = value
