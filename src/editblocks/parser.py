from __future__ import annotations

import posixpath
import re
from typing import List, Optional

from .models import EditRequest, ParseOutcome


SYSTEM_INSTRUCTION = r"""# Patch format: SEARCH/REPLACE blocks

**OUTPUT:** Only patch blocks. No prose before/between/after.

## Format
Emit one SEARCH/REPLACE block per change:

path/to/file.ext
<<<<<<< SEARCH
<contiguous lines that match current content>
=======
<replacement lines>
>>>>>>> REPLACE

Edits: use the format above.
Adds (new file) or full rewrites: leave SEARCH empty; put full file contents in REPLACE.
Removals: put the lines to remove in SEARCH; leave REPLACE empty.

## Rules
1. The path line must be a bare relative path ending in a file extension (e.g. src/App.tsx).
2. SEARCH should match the file character-for-character (whitespace, quotes, comments).
3. Include enough lines in SEARCH to uniquely identify the lines being replaced.
   Ambiguous SEARCH content is rejected, not guessed.
4. SEARCH/REPLACE only changes the first occurrence.
5. No diff headers, line numbers, or other markers.
6. Multiple blocks per file are allowed; blocks must not overlap.
7. Keep blocks small. Prefer several blocks over emitting a complete file.
"""

SEARCH_MARK = "<<<<<<< SEARCH"
SPLIT_MARK = "======="
REPLACE_MARK = ">>>>>>> REPLACE"

PATH_RE = re.compile(r"^[./\w-]+\.[A-Za-z0-9]+$")


def get_system_instruction() -> str:
    return SYSTEM_INSTRUCTION


def looks_like_path(line: str) -> bool:
    return bool(PATH_RE.match(line.strip()))


def normalize_path(path: str) -> str:
    """Return path as an absolute-style POSIX path: "src/./a.ts" -> "/src/a.ts"."""
    p = path.strip().replace("\\", "/")
    return posixpath.normpath("/" + p.lstrip("/"))


def _is_header(lines: List[str], i: int) -> bool:
    return (
        looks_like_path(lines[i])
        and i + 1 < len(lines)
        and lines[i + 1].strip() == SEARCH_MARK
    )


def parse(raw: str) -> ParseOutcome:
    """
    Parse SEARCH/REPLACE blocks:

    path/to/file.tsx
    <<<<<<< SEARCH
    existing code
    =======
    replacement code
    >>>>>>> REPLACE

    Never raises. A malformed block is reported in diagnostics and skipped;
    well-formed blocks around it are still returned.
    """
    outcome = ParseOutcome()
    lines = raw.replace("\r\n", "\n").split("\n")
    n = len(lines)
    i = 0

    def find_marker(
        start: int, mark: str, stop_at_paths: bool = False
    ) -> tuple[Optional[int], int]:
        # Returns (marker index or None, index where the scan stopped)
        j = start
        while j < n:
            stripped = lines[j].strip()
            if stripped == mark:
                return j, j
            # Start of a new block: a search marker or another block header
            if stripped == SEARCH_MARK or _is_header(lines, j):
                return None, j
            # Replacement bodies also end at any path-like line
            if stop_at_paths and looks_like_path(lines[j]):
                return None, j
            j += 1
        return None, n

    while i < n:
        line = lines[i]
        if not line.strip():
            i += 1
            continue

        if not _is_header(lines, i):
            i += 1
            continue

        path_line_no = i + 1
        file_path = normalize_path(line)
        search_start = i + 2

        divider, stopped = find_marker(search_start, SPLIT_MARK)
        if divider is None:
            outcome.diagnostics.append(
                f"Missing {SPLIT_MARK} divider for block at line {path_line_no}"
            )
            i = max(stopped, i + 1)
            continue

        end, _ = find_marker(divider + 1, REPLACE_MARK, stop_at_paths=True)
        if end is None:
            outcome.diagnostics.append(
                f"Missing {REPLACE_MARK} end marker for block at line {path_line_no}"
            )
            i = divider + 1
            continue

        outcome.requests.append(
            EditRequest(
                file_path=file_path,
                search_content="\n".join(lines[search_start:divider]),
                replace_content="\n".join(lines[divider + 1 : end]),
                source_line=path_line_no,
            )
        )
        i = end + 1

    return outcome
