import pytest

from services.matrix.api.errors import MatrixCredentialsError
from shared.config.matrix import (
    DEFAULT_HOMESERVER_URL,
    MatrixCredentials,
    load_env_credentials,
    load_http_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("MATRIX_HOMESERVER_URL", "MATRIX_ACCESS_TOKEN", "MATRIX_HTTP_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)


def test_no_token_means_no_credentials():
    assert load_env_credentials(use_dotenv=False) is None


def test_credentials_from_environment(monkeypatch):
    monkeypatch.setenv("MATRIX_ACCESS_TOKEN", "secret")
    monkeypatch.setenv("MATRIX_HOMESERVER_URL", "https://hs.example.org/")

    creds = load_env_credentials(use_dotenv=False)

    assert creds.access_token == "secret"
    assert creds.homeserver_url == "https://hs.example.org"


def test_homeserver_defaults_to_matrix_org(monkeypatch):
    monkeypatch.setenv("MATRIX_ACCESS_TOKEN", "secret")

    assert load_env_credentials(use_dotenv=False).homeserver_url == DEFAULT_HOMESERVER_URL


def test_validate_lists_missing_values():
    with pytest.raises(MatrixCredentialsError, match="MATRIX_ACCESS_TOKEN"):
        MatrixCredentials(access_token="").validate()


def test_http_timeout_setting(monkeypatch):
    assert load_http_settings().timeout == 15.0

    monkeypatch.setenv("MATRIX_HTTP_TIMEOUT", "3.5")
    assert load_http_settings().timeout == 3.5

    monkeypatch.setenv("MATRIX_HTTP_TIMEOUT", "soon")
    assert load_http_settings().timeout == 15.0

    monkeypatch.setenv("MATRIX_HTTP_TIMEOUT", "-1")
    assert load_http_settings().timeout == 15.0
