"""Tests for publisher configuration loading from config.ini and environment."""

import pytest

from geo_publish.config_loader import PublisherConfig, load_publisher_config
from geo_publish.exceptions import ConfigurationError
from geo_publish.semantics import DeliveryMode

ENV_VARS = [
    "GEO_PUBLISH_BASE_URL",
    "GEO_PUBLISH_CLIENT_ID",
    "GEO_PUBLISH_TOKEN",
    "GEO_PUBLISH_TOKEN_COOKIE",
    "GEO_PUBLISH_DELIVERY_SEMANTIC",
    "GEO_PUBLISH_DELIVERY_TIMEOUT",
    "GEO_PUBLISH_RETRY_LIMIT",
    "GEO_PUBLISH_MAX_ATTEMPTS",
    "GEO_PUBLISH_RETRY_DELAY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


def test_defaults():
    config = load_publisher_config()

    assert config.base_url == "http://localhost:8080"
    assert config.mode is DeliveryMode.AT_LEAST_ONCE
    assert config.request_timeout == 3.0
    assert config.retry_limit == 5
    assert config.max_attempts is None
    assert config.retry_delay == 0.0
    assert config.publish_path == "/publish"
    assert config.release_path == "/removeRequest"
    assert config.token_cookie == "access_token"


def test_environment(monkeypatch):
    monkeypatch.setenv("GEO_PUBLISH_BASE_URL", "https://broker.example.com")
    monkeypatch.setenv("GEO_PUBLISH_CLIENT_ID", "carol@example.com")
    monkeypatch.setenv("GEO_PUBLISH_DELIVERY_SEMANTIC", "at-most-once")
    monkeypatch.setenv("GEO_PUBLISH_DELIVERY_TIMEOUT", "1500")
    monkeypatch.setenv("GEO_PUBLISH_RETRY_LIMIT", "2")
    monkeypatch.setenv("GEO_PUBLISH_MAX_ATTEMPTS", "10")

    config = load_publisher_config()

    assert config.base_url == "https://broker.example.com"
    assert config.client_id == "carol@example.com"
    assert config.mode is DeliveryMode.AT_MOST_ONCE
    assert config.request_timeout == 1.5
    assert config.retry_limit == 2
    assert config.max_attempts == 10


def test_invalid_environment_value_falls_back(monkeypatch):
    monkeypatch.setenv("GEO_PUBLISH_RETRY_LIMIT", "many")
    monkeypatch.setenv("GEO_PUBLISH_DELIVERY_TIMEOUT", "soon")

    config = load_publisher_config()

    assert config.retry_limit == 5
    assert config.request_timeout == 3.0


def test_config_file_overrides_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("GEO_PUBLISH_DELIVERY_SEMANTIC", "at-least-once")
    monkeypatch.setenv("GEO_PUBLISH_RETRY_LIMIT", "9")
    config_file = tmp_path / "config.ini"
    config_file.write_text("""
[publisher]
base_url = http://broker.internal:9000
client_id = dave@example.com
token = secret
delivery_semantic = exactly-once
delivery_timeout = 500
retry_limit = 3
max_attempts = unbounded
retry_delay = 0.5
release_path = /release
""")

    config = load_publisher_config(str(config_file))

    assert config.base_url == "http://broker.internal:9000"
    assert config.client_id == "dave@example.com"
    assert config.token == "secret"
    assert config.mode is DeliveryMode.EXACTLY_ONCE
    assert config.request_timeout == 0.5
    assert config.retry_limit == 3
    assert config.max_attempts is None
    assert config.retry_delay == 0.5
    assert config.publish_path == "/publish"
    assert config.release_path == "/release"


def test_config_file_without_section(tmp_path, monkeypatch):
    monkeypatch.setenv("GEO_PUBLISH_RETRY_LIMIT", "4")
    config_file = tmp_path / "config.ini"
    config_file.write_text("[other]\nkey = value\n")

    config = load_publisher_config(str(config_file))

    assert config.retry_limit == 4


def test_missing_config_file_uses_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("GEO_PUBLISH_RETRY_LIMIT", "7")

    config = load_publisher_config(str(tmp_path / "missing.ini"))

    assert config.retry_limit == 7


def test_bad_integer_in_file_keeps_previous(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[publisher]\nretry_limit = lots\n")

    config = load_publisher_config(str(config_file))

    assert config.retry_limit == 5


def test_unknown_semantic_raises(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[publisher]\ndelivery_semantic = twice\n")

    with pytest.raises(ConfigurationError):
        load_publisher_config(str(config_file))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"request_timeout": 0},
        {"retry_limit": -1},
        {"max_attempts": 0},
        {"retry_delay": -0.1},
    ],
)
def test_out_of_range_values_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        PublisherConfig(**kwargs)


def test_to_dict_masks_token():
    config = PublisherConfig(token="secret", mode="exactly-once")

    data = config.to_dict()

    assert data["token"] == "***"
    assert data["mode"] == "exactly-once"


def test_token_cookie_from_environment_and_file(tmp_path, monkeypatch):
    monkeypatch.setenv("GEO_PUBLISH_TOKEN_COOKIE", "jwt")
    assert load_publisher_config().token_cookie == "jwt"

    config_file = tmp_path / "config.ini"
    config_file.write_text("[publisher]\ntoken_cookie =\n")

    assert load_publisher_config(str(config_file)).token_cookie is None
