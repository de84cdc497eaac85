from __future__ import annotations

from .models import (
    ApplyOutcome,
    EditRequest,
    FileApplyStatus,
    MatchStrategy,
    ParseOutcome,
    PatchError,
)
from .parser import get_system_instruction, parse
from .matching import TIERS, apply
from .scheduler import group_by_file, order_for_application
from .files import (
    FileOpsError,
    FileSystemPatchFileOps,
    InMemoryPatchFileOps,
    PatchFileOps,
)
from .runner import PatchResult, apply_patch
from .settings import MatchSettings, Settings, load_settings
from .syntax import LanguageCache, SyntaxContext, TreeSitterProvider

__all__ = [
    "ApplyOutcome",
    "EditRequest",
    "FileApplyStatus",
    "MatchStrategy",
    "ParseOutcome",
    "PatchError",
    "get_system_instruction",
    "parse",
    "TIERS",
    "apply",
    "group_by_file",
    "order_for_application",
    "FileOpsError",
    "FileSystemPatchFileOps",
    "InMemoryPatchFileOps",
    "PatchFileOps",
    "PatchResult",
    "apply_patch",
    "MatchSettings",
    "Settings",
    "load_settings",
    "LanguageCache",
    "SyntaxContext",
    "TreeSitterProvider",
]
