"""
Tests for startup configuration validation.
"""

import logging

import pytest

from authsvc import main as main_module
from authsvc.config.settings import Environment, load_settings
from authsvc.utils.errors import ConfigurationError
from authsvc.utils.logger import log, setup_logging

REQUIRED = {
    "jwt_secret": "s3cret",
    "database_url": "sqlite+aiosqlite:///./test.db",
    "email_from": "noreply@authsvc.io",
    "smtp_host": "smtp.authsvc.io",
    "smtp_username": "mailer",
    "smtp_password": "pw",
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in list(REQUIRED) + ["jwt_refresh_secret", "allowed_origins", "environment", "port", "host"]:
        monkeypatch.delenv(name.upper(), raising=False)


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings(_env_file=None, **REQUIRED)
        assert settings.jwt_access_expire_minutes == 15
        assert settings.jwt_refresh_expire_days == 7
        assert settings.otp_expire_minutes == 10
        assert settings.port == 5050
        assert settings.environment == Environment.DEVELOPMENT
        assert settings.cors_origins == ["*"]

    @pytest.mark.parametrize("missing", sorted(REQUIRED))
    def test_missing_required_value(self, missing):
        values = {k: v for k, v in REQUIRED.items() if k != missing}
        with pytest.raises(ConfigurationError, match=missing.upper()):
            load_settings(_env_file=None, **values)

    def test_empty_secret_rejected(self):
        with pytest.raises(ConfigurationError):
            load_settings(_env_file=None, **{**REQUIRED, "jwt_secret": ""})

    def test_reads_environment(self, monkeypatch):
        for name, value in REQUIRED.items():
            monkeypatch.setenv(name.upper(), value)
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example")

        settings = load_settings(_env_file=None)
        assert settings.jwt_secret == "s3cret"
        assert settings.is_production
        assert settings.cors_origins == ["https://a.example", "https://b.example"]

    def test_refresh_secret_fallback(self):
        settings = load_settings(_env_file=None, **REQUIRED)
        assert settings.refresh_secret == "s3cret"

        settings = load_settings(_env_file=None, jwt_refresh_secret="other", **REQUIRED)
        assert settings.refresh_secret == "other"


def test_main_exits_on_missing_configuration(monkeypatch):
    def _fail():
        raise ConfigurationError("配置缺失或非法：JWT_SECRET")

    monkeypatch.setattr(main_module, "load_settings", _fail)
    with pytest.raises(SystemExit) as exc:
        main_module.main()
    assert exc.value.code == 1


def test_log_level_comes_from_settings_only(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    settings = load_settings(_env_file=None, log_level="DEBUG", **REQUIRED)

    setup_logging(settings.log_level)
    assert log.level == logging.DEBUG

    setup_logging()
    assert log.level == logging.INFO
