"""
Configuration loader for the contact relay
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from contactrelay.errors import ConfigurationError

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}

DEFAULT_SMTP_TIMEOUT = 10.0
DEFAULT_FROM_NAME = "Contact Form"

# (section, key) -> environment variable
ENV_OVERRIDES: Dict[tuple, str] = {
    ("service", "service_name"): "SERVICE_NAME",
    ("service", "site_name"): "SITE_NAME",
    ("service", "allowed_origin"): "ALLOWED_ORIGIN",
    ("service", "static_dir"): "STATIC_DIR",
    ("service", "admin_key"): "ADMIN_KEY",
    ("rate_limit", "max_requests"): "RATE_LIMIT_MAX_REQUESTS",
    ("rate_limit", "window_seconds"): "RATE_LIMIT_WINDOW_SECONDS",
    ("rate_limit", "block_seconds"): "RATE_LIMIT_BLOCK_SECONDS",
    ("rate_limit", "sweep_interval_seconds"): "RATE_LIMIT_SWEEP_SECONDS",
    ("notifications", "slack_webhook_url"): "SLACK_WEBHOOK_URL",
    ("notifications", "slack_channel"): "SLACK_CHANNEL",
    ("notifications", "slack_timeout"): "SLACK_TIMEOUT",
    ("notifications", "auto_response_enabled"): "AUTO_RESPONSE_ENABLED",
    ("logging", "level"): "LOG_LEVEL",
}

REQUIRED_SMTP_VARS = {
    "host": "SMTP_HOST",
    "port": "SMTP_PORT",
    "user": "SMTP_USER",
    "password": "SMTP_PASS",
}


def parse_bool(value: str) -> bool:
    """Interpret an environment flag"""
    return value.strip().lower() in TRUE_VALUES


class ServiceConfig(BaseModel):
    """Service identity and HTTP surface"""
    service_name: str = "landing-contact-api"
    site_name: str = "Landing Page"
    allowed_origin: str = "*"
    static_dir: Optional[str] = None
    admin_key: Optional[str] = None


class RateLimitConfig(BaseModel):
    """Contact form rate limit policy"""
    max_requests: int = Field(default=3, ge=1)
    window_seconds: float = Field(default=300, gt=0)
    block_seconds: float = Field(default=900, ge=0)
    sweep_interval_seconds: float = Field(default=600, gt=0)

    @property
    def retention_seconds(self) -> float:
        """How long an idle client entry is kept before the sweep drops it"""
        return max(self.window_seconds * 2, self.block_seconds)


class NotificationConfig(BaseModel):
    """Slack and auto-response configuration"""
    slack_webhook_url: Optional[str] = None
    slack_channel: str = "#contact"
    slack_username: str = "Contact Form Bot"
    slack_icon_emoji: str = ":email:"
    slack_timeout: float = Field(default=5.0, gt=0)
    auto_response_enabled: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"


class SmtpConfig(BaseModel):
    """SMTP account used for delivery, read fresh for every request"""
    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    user: str
    password: str = Field(repr=False)
    to_email: str
    use_tls: bool = False
    timeout: float = DEFAULT_SMTP_TIMEOUT
    from_name: str = DEFAULT_FROM_NAME


class AppConfig(BaseModel):
    """Process-wide configuration"""
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class ConfigLoader:
    """Load configuration from the packaged defaults and the environment"""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        defaults_file: Optional[Path] = None,
    ):
        self.environ = os.environ if environ is None else environ
        self.defaults_file = defaults_file or Path(__file__).parent / "defaults.yaml"

    def _env(self, name: str) -> Optional[str]:
        """Environment value, with empty strings treated as unset"""
        value = self.environ.get(name)
        if value is None or not value.strip():
            return None
        return value.strip()

    def _load_defaults(self) -> Dict[str, Any]:
        if not self.defaults_file.exists():
            return {}

        with open(self.defaults_file) as f:
            return yaml.safe_load(f) or {}

    def load(self) -> AppConfig:
        """Load the process configuration

        Returns:
            AppConfig built from defaults.yaml with environment overrides

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        data = self._load_defaults()

        for (section, key), env_name in ENV_OVERRIDES.items():
            value = self._env(env_name)
            if value is None:
                continue
            if key == "auto_response_enabled":
                value = parse_bool(value)
            data.setdefault(section, {})[key] = value

        try:
            return AppConfig(**data)
        except PydanticValidationError as e:
            logger.error("Invalid configuration: %s", e)
            raise ConfigurationError() from e

    def load_smtp_config(self) -> SmtpConfig:
        """Load the SMTP account from the environment

        Returns:
            SmtpConfig for this request

        Raises:
            ConfigurationError: If a required variable is missing or malformed.
                The variable names are only logged, never shown to clients.
        """
        values = {field: self._env(var) for field, var in REQUIRED_SMTP_VARS.items()}
        missing = [var for field, var in REQUIRED_SMTP_VARS.items() if not values[field]]
        if missing:
            logger.error("SMTP configuration incomplete, missing: %s", ", ".join(missing))
            raise ConfigurationError(missing)

        try:
            port = int(values["port"])
            timeout = float(self._env("SMTP_TIMEOUT") or DEFAULT_SMTP_TIMEOUT)
        except ValueError as e:
            logger.error("SMTP configuration malformed: %s", e)
            raise ConfigurationError(["SMTP_PORT", "SMTP_TIMEOUT"]) from e

        to_email = self._env("TO_EMAIL")
        if not to_email:
            to_email = values["user"]
            logger.warning("TO_EMAIL not set, delivering to SMTP_USER (%s)", to_email)

        use_tls_raw = self._env("SMTP_USE_TLS")
        use_tls = parse_bool(use_tls_raw) if use_tls_raw else port == 465

        return SmtpConfig(
            host=values["host"],
            port=port,
            user=values["user"],
            password=values["password"],
            to_email=to_email,
            use_tls=use_tls,
            timeout=timeout,
            from_name=self._env("MAIL_FROM_NAME") or DEFAULT_FROM_NAME,
        )
