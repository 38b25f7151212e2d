"""Test class ServerSettings and the shared logger."""
import logging

from pydantic import ValidationError
import pytest

from calculator_site.common.config import ServerSettings
from calculator_site.common.logger import configure_logging, logger


def test_defaults() -> None:
    settings = ServerSettings.from_env(environ={})
    assert str(settings.host) == "127.0.0.1"
    assert settings.port == 8000
    assert settings.log_level == "INFO"


def test_reads_environment() -> None:
    environ = {"CALCULATOR_HOST": "0.0.0.0", "CALCULATOR_PORT": "80", "CALCULATOR_LOG_LEVEL": "debug"}
    settings = ServerSettings.from_env(environ=environ)
    assert str(settings.host) == "0.0.0.0"
    assert settings.port == 80
    assert settings.log_level == "DEBUG"


def test_overrides_take_precedence_over_environment() -> None:
    settings = ServerSettings.from_env(environ={"CALCULATOR_PORT": "80"}, port="9000", host=None)
    assert settings.port == 9000
    assert str(settings.host) == "127.0.0.1"


@pytest.mark.parametrize("environ", [
    {"CALCULATOR_PORT": "70000"},
    {"CALCULATOR_PORT": "http"},
    {"CALCULATOR_HOST": "999.999.999.999"},
    {"CALCULATOR_LOG_LEVEL": "verbose"},
])
def test_invalid_environment_raises(environ) -> None:
    with pytest.raises(ValidationError):
        ServerSettings.from_env(environ=environ)


def test_configure_logging_adds_single_handler() -> None:
    configure_logging("warning")
    configure_logging("debug")
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
