"""
Configuration management for the contact relay
"""
from .config_loader import (
    AppConfig,
    ConfigLoader,
    LoggingConfig,
    NotificationConfig,
    RateLimitConfig,
    ServiceConfig,
    SmtpConfig,
)

__all__ = [
    "AppConfig",
    "ConfigLoader",
    "LoggingConfig",
    "NotificationConfig",
    "RateLimitConfig",
    "ServiceConfig",
    "SmtpConfig",
]
