"""Configuration module for the Creditline backend.

Usage:
    from creditline.core.config import settings, Environment

    if settings.ENVIRONMENT == Environment.PRD:
        ...
"""

from creditline.core.config.enums import Environment
from creditline.core.config.settings import Settings

__all__ = [
    "Settings",
    "Environment",
    "settings",
]

# Singleton settings instance
settings = Settings()
