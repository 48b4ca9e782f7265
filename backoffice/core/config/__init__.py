# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the back office.

Settings are Pydantic models loaded from environment variables, one
subsettings class per concern, each with its own env prefix.

Example:
    >>> from backoffice.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from backoffice.core.config.settings import (
    DatabaseSettings,
    EnrollmentSettings,
    IdentitySettings,
    NotificationSettings,
    Settings,
    SMTPSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "SMTPSettings",
    "NotificationSettings",
    "IdentitySettings",
    "EnrollmentSettings",
]
