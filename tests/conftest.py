import pytest

from socialsync.config import ENV_MAPPINGS, AirtableConfig, ProxyConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's real credentials out of every test."""
    for env_key in ENV_MAPPINGS:
        monkeypatch.delenv(env_key, raising=False)


@pytest.fixture
def airtable_config():
    return AirtableConfig(
        api_url="https://airtable.test/v0", token="pat_test", base_id="appXYZ", batch_size=10
    )


@pytest.fixture
def proxy_config(airtable_config):
    return ProxyConfig(
        airtable=airtable_config,
        gemini={"api_url": "https://gemini.test/v1beta", "api_key": "gemini-key"},
        openrouter={"api_url": "https://openrouter.test/api/v1", "api_key": "or-key"},
        cloudinary={
            "api_url": "https://cloudinary.test/v1_1",
            "cloud_name": "demo",
            "upload_preset": "unsigned",
        },
        facebook={"graph_url": "https://graph.test", "app_id": "fb-app"},
    )
