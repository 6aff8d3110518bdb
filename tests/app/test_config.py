import pytest

from app.config import Settings
from app.core.exceptions import ConfigurationError


def make_settings(**overrides):
    values = {
        "gitlab_oauth_client_id": "client-id",
        "gitlab_oauth_client_secret": "client-secret",
        "encryption_key": "key",
        "gitlab_base_url": "https://gitlab.example.com",
    }
    values.update(overrides)
    return Settings(**values)


def test_validate_plugin_accepts_complete_configuration():
    make_settings().validate_plugin()


@pytest.mark.parametrize(
    "field,message",
    [
        ("gitlab_oauth_client_id", "Must have a gitlab oauth client id"),
        ("gitlab_oauth_client_secret", "Must have a gitlab oauth client secret"),
        ("encryption_key", "Must have an encryption key"),
        ("gitlab_base_url", "Must have a gitlab base url"),
    ],
)
def test_validate_plugin_requires_setting(field, message):
    with pytest.raises(ConfigurationError) as exc_info:
        make_settings(**{field: ""}).validate_plugin()
    assert str(exc_info.value) == message


def test_test_environment_uses_in_memory_database(monkeypatch):
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    settings = Settings()
    assert settings.is_test
    assert settings.database_url == "sqlite://"
