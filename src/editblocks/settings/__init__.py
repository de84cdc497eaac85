from .models import (
    ENABLE_AST_MATCHING_ENV,
    FUZZY_THRESHOLD_DEFAULT,
    LoggingSettings,
    LogLevel,
    MatchSettings,
    Settings,
)
from .loader import SettingsError, load_settings

__all__ = [
    "ENABLE_AST_MATCHING_ENV",
    "FUZZY_THRESHOLD_DEFAULT",
    "LoggingSettings",
    "LogLevel",
    "MatchSettings",
    "Settings",
    "SettingsError",
    "load_settings",
]
