from typing import Dict, Final
from enum import Enum

from pydantic import BaseModel, Field


# Minimum similarity for a fuzzy window to be accepted.
FUZZY_THRESHOLD_DEFAULT: Final[float] = 0.85

# Environment switch for the syntax-tree matching tier.
ENABLE_AST_MATCHING_ENV: Final[str] = "ENABLE_AST_MATCHING"


class LogLevel(str, Enum):
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"
    critical = "critical"


class MatchSettings(BaseModel):
    # Run the syntax-tree tier when a tree is available.
    enable_structural: bool = False
    # Report structural matches under the "normalized" tag, as older
    # consumers of the outcome expect.
    structural_reports_normalized: bool = False
    fuzzy_threshold: float = Field(default=FUZZY_THRESHOLD_DEFAULT, gt=0.0, le=1.0)


class LoggingSettings(BaseModel):
    # Default level for the editblocks logger if not overridden.
    default_level: LogLevel = LogLevel.warning
    # Mapping of logger name -> level override (e.g., {"asyncio": "debug"})
    enabled_loggers: Dict[str, LogLevel] = Field(default_factory=dict)


class Settings(BaseModel):
    matching: MatchSettings = Field(default_factory=MatchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    # Refuse to touch any file when the patch text has parse diagnostics.
    strict: bool = False
