# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Database backends for plscan."""

from plscan.database.sqlite import SQLiteStore

__all__ = ["SQLiteStore"]
