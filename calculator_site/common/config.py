"""Runtime settings for the calculator HTTP service."""
import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, field_validator

VERSION = "1.0.0"

# Environment variables read by ServerSettings.from_env, keyed by field name
ENV_VARS = {
    "host": "CALCULATOR_HOST",
    "port": "CALCULATOR_PORT",
    "log_level": "CALCULATOR_LOG_LEVEL",
}

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ServerSettings(BaseModel):
    """
    Listen address and logging level of the HTTP service.

    Values come from the environment and may be overridden on the command line.
    """

    # Settings are read once at startup and never change afterwards
    model_config = ConfigDict(frozen=True)

    host: IPvAnyAddress = Field(default="127.0.0.1", description="Address the server binds to")
    port: int = Field(default=8000, ge=1, le=65535, description="Server TCP port")
    log_level: LogLevel = Field(default="INFO", description="Logging level name")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, v: object) -> object:
        """Accept lower-case level names."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: object) -> "ServerSettings":
        """
        Build settings from environment variables, then apply explicit overrides.

        Overrides set to None are ignored, so unset CLI flags fall back to the environment.

        :param Mapping environ: Environment to read (defaults to os.environ)
        :param overrides: Field values taking precedence over the environment

        :return: Validated settings
        :rtype: ServerSettings
        :raises pydantic.ValidationError: If a value is out of range or malformed
        """
        environ = os.environ if environ is None else environ
        values = {field: environ[var] for field, var in ENV_VARS.items() if environ.get(var)}
        values.update({field: value for field, value in overrides.items() if value is not None})
        return cls(**values)
