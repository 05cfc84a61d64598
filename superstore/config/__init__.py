"""
Superstore Sales Analytics
Configuration Module
"""
from .settings import (
    LoadPolicy,
    OutputFormat,
    Settings,
    TieBreak,
    ZeroGapScope,
    get_settings,
)

__all__ = [
    "LoadPolicy",
    "OutputFormat",
    "Settings",
    "TieBreak",
    "ZeroGapScope",
    "get_settings",
]
