# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for the back office.

This package contains cross-cutting building blocks:
- config: Application configuration and settings
- context: Request-scoped caller identity (actor, IP, user agent)
"""
