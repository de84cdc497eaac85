from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class MatchStrategy(str, Enum):
    Exact = "exact"
    Normalized = "normalized"
    Structural = "structural"
    Fuzzy = "fuzzy"
    Failed = "failed"


class FileApplyStatus(str, Enum):
    Create = "create"
    Update = "update"
    PartialUpdate = "partial_update"


@dataclass(frozen=True)
class EditRequest:
    """
    One SEARCH/REPLACE instruction targeting one file.

    file_path is always normalized to an absolute-style path ("/src/app.ts").
    An empty search_content means "replace the whole file".
    """

    file_path: str
    search_content: str
    replace_content: str
    # 1-based line of the path line in the raw patch text; diagnostics only
    source_line: Optional[int] = None


@dataclass
class ParseOutcome:
    requests: List[EditRequest] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ApplyOutcome:
    succeeded: bool
    result_text: str
    strategy: MatchStrategy
    diagnostic: Optional[str] = None


@dataclass
class PatchError:
    msg: str
    line: Optional[int] = None
    hint: Optional[str] = None
    filename: Optional[str] = None
