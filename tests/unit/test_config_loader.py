import pytest
from pydantic import ValidationError

from socialsync.config import AirtableConfig, ProxyConfig, load_config


def test_load_config_from_yaml_file(tmp_path):
    config_file = tmp_path / "socialsync_config.yml"
    config_file.write_text("""
airtable:
  token: "pat_yaml"
  base_id: "appYAML"
  batch_size: 5
gemini:
  api_key: "gemini-yaml"
log_level: debug
""")

    config = load_config(str(config_file))

    assert config.airtable.token == "pat_yaml"
    assert config.airtable.base_id == "appYAML"
    assert config.airtable.batch_size == 5
    assert config.gemini.api_key == "gemini-yaml"
    assert config.log_level == "DEBUG"


def test_env_overrides_yaml_config(tmp_path, monkeypatch):
    config_file = tmp_path / "socialsync_config.yml"
    config_file.write_text("""
airtable:
  token: "pat_yaml"
  base_id: "appYAML"
""")

    monkeypatch.setenv("AIRTABLE_PAT", "pat_env")
    monkeypatch.setenv("AIRTABLE_BATCH_SIZE", "7")

    config = load_config(str(config_file))

    assert config.airtable.token == "pat_env"
    assert config.airtable.base_id == "appYAML"
    assert config.airtable.batch_size == 7


def test_missing_config_file_uses_defaults():
    config = load_config("/non/existent/config.yml")

    assert config.airtable.api_url == "https://api.airtable.com/v0"
    assert config.airtable.batch_size == 10
    assert config.airtable.credentials() is None
    assert config.facebook.api_version == "v23.0"
    assert config.correlation_header == "x-test-run-id"


def test_env_vars_only_no_yaml(monkeypatch):
    monkeypatch.setenv("AIRTABLE_PAT", "pat_env")
    monkeypatch.setenv("AIRTABLE_BASE_ID", "appENV")
    monkeypatch.setenv("OPENROUTER_API_KEY", "or-env")
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "cloud")

    config = load_config("/non/existent/config.yml")

    credentials = config.airtable.credentials()
    assert credentials is not None
    assert credentials.token == "pat_env"
    assert credentials.resource_id == "appENV"
    assert config.openrouter.api_key == "or-env"
    assert config.cloudinary.cloud_name == "cloud"


def test_invalid_env_value_is_ignored(monkeypatch):
    monkeypatch.setenv("AIRTABLE_BATCH_SIZE", "lots")

    config = load_config("/non/existent/config.yml")

    assert config.airtable.batch_size == 10


def test_empty_env_value_counts_as_absent(monkeypatch):
    monkeypatch.setenv("AIRTABLE_PAT", "")
    monkeypatch.setenv("AIRTABLE_BASE_ID", "appENV")

    config = load_config("/non/existent/config.yml")

    assert config.airtable.credentials() is None


@pytest.mark.parametrize(
    "token, base_id",
    [(None, "appXYZ"), ("pat", None), ("", "appXYZ"), ("pat", ""), (None, None)],
)
def test_credentials_absent_when_either_value_missing(token, base_id):
    assert AirtableConfig(token=token, base_id=base_id).credentials() is None


def test_config_validation_errors():
    with pytest.raises(ValidationError):
        ProxyConfig(airtable={"batch_size": 0})

    with pytest.raises(ValidationError):
        ProxyConfig(log_level="LOUD")
