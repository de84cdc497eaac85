"""
Match engine: applies one EditRequest to the current text of a file.

Matching runs through an ordered list of tiers. Each tier is a pure function
``(file_text, edit, ctx) -> Optional[ApplyOutcome]``; the first tier that
returns an outcome wins. When none does, the edit fails and the text is
returned unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .logger import logger
from .models import ApplyOutcome, EditRequest, MatchStrategy
from .settings import MatchSettings
from .syntax import SyntaxNode, SyntaxTree

FAILED_DIAGNOSTIC = "could not find matching content"

_INDENT_RE = re.compile(r"^(\s*)")
_WS_RUN_RE = re.compile(r"\s+")


@dataclass
class MatchContext:
    tree: Optional[SyntaxTree] = None
    settings: MatchSettings = field(default_factory=MatchSettings)
    # Reasons collected while trying tiers; surfaced in the failure diagnostic
    notes: List[str] = field(default_factory=list)


Tier = Callable[[str, EditRequest, MatchContext], Optional[ApplyOutcome]]


def _split_lines(text: str) -> List[str]:
    return text.split("\n")


def _indent_of(line: str) -> str:
    m = _INDENT_RE.match(line)
    return m.group(1) if m else ""


def _find_window(hay: Sequence[str], needle: Sequence[str]) -> Optional[int]:
    """First index where needle matches hay line-by-line after right-trimming."""
    m = len(needle)
    if m == 0 or m > len(hay):
        return None
    stripped = [s.rstrip() for s in needle]
    for start in range(0, len(hay) - m + 1):
        if all(hay[start + j].rstrip() == stripped[j] for j in range(m)):
            return start
    return None


def reindent(
    replace_content: str, original_indent: str, search_first_line: str
) -> List[str]:
    """
    Re-apply the matched region's indentation to the replacement.

    Each line keeps its indentation relative to the search text's first line,
    anchored at original_indent. Blank lines stay blank.
    """
    search_indent = len(_indent_of(search_first_line))
    out: List[str] = []
    for line in _split_lines(replace_content):
        body = line.lstrip()
        if not body:
            out.append("")
            continue
        relative = max(0, len(_indent_of(line)) - search_indent)
        out.append(original_indent + " " * relative + body)
    return out


def similarity(a: str, b: str) -> float:
    """
    Share of index-aligned equal characters after normalizing case and
    whitespace, relative to the longer string.
    """
    na = _WS_RUN_RE.sub(" ", a.lower()).strip()
    nb = _WS_RUN_RE.sub(" ", b.lower()).strip()
    if na == nb:
        return 1.0
    if not na or not nb:
        return 0.0
    longer, shorter = (na, nb) if len(na) >= len(nb) else (nb, na)
    matches = sum(1 for i, ch in enumerate(shorter) if ch == longer[i])
    return matches / len(longer)


# Tiers


def trivial_replace(
    file_text: str, edit: EditRequest, ctx: MatchContext
) -> Optional[ApplyOutcome]:
    if edit.search_content.strip() != "":
        return None
    return ApplyOutcome(True, edit.replace_content, MatchStrategy.Exact)


def exact_replace(
    file_text: str, edit: EditRequest, ctx: MatchContext
) -> Optional[ApplyOutcome]:
    if edit.search_content not in file_text:
        return None
    new_text = file_text.replace(edit.search_content, edit.replace_content, 1)
    return ApplyOutcome(True, new_text, MatchStrategy.Exact)


def normalized_replace(
    file_text: str, edit: EditRequest, ctx: MatchContext
) -> Optional[ApplyOutcome]:
    file_lines = _split_lines(file_text)
    search_lines = _split_lines(edit.search_content)
    start = _find_window(file_lines, search_lines)
    if start is None:
        return None
    replacement = reindent(
        edit.replace_content, _indent_of(file_lines[start]), search_lines[0]
    )
    end = start + len(search_lines)
    new_lines = file_lines[:start] + replacement + file_lines[end:]
    return ApplyOutcome(True, "\n".join(new_lines), MatchStrategy.Normalized)


def _iter_post_order(root: SyntaxNode):
    # Children left to right, then the node itself
    stack: List[Tuple[SyntaxNode, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            yield node
            continue
        stack.append((node, True))
        for child in reversed(list(node.named_children)):
            stack.append((child, False))


def _find_span(snippet: str, search_lines: List[str]) -> Optional[Tuple[int, int, int]]:
    """
    Character span (start, end) of the first normalized window in snippet, and
    the window's first line index. The span ends at the end of the last matched
    line, excluding its newline.
    """
    snippet_lines = _split_lines(snippet)
    start = _find_window(snippet_lines, search_lines)
    if start is None:
        return None
    offsets: List[int] = []
    running = 0
    for line in snippet_lines:
        offsets.append(running)
        running += len(line) + 1
    last = start + len(search_lines) - 1
    return offsets[start], offsets[last] + len(snippet_lines[last]), start


def structural_replace(
    file_text: str, edit: EditRequest, ctx: MatchContext
) -> Optional[ApplyOutcome]:
    if ctx.tree is None or not ctx.settings.enable_structural:
        return None

    source = file_text.encode("utf-8")
    search_lines = _split_lines(edit.search_content)
    strategy = (
        MatchStrategy.Normalized
        if ctx.settings.structural_reports_normalized
        else MatchStrategy.Structural
    )

    for node in _iter_post_order(ctx.tree.root_node):
        if node.end_byte <= node.start_byte or node.end_byte > len(source):
            continue
        raw = source[node.start_byte : node.end_byte]
        snippet = raw.decode("utf-8", errors="replace")
        span = _find_span(snippet, search_lines)
        if span is None:
            continue
        local_start, local_end, first_line = span
        matched_first = _split_lines(snippet)[first_line]
        replacement = "\n".join(
            reindent(edit.replace_content, _indent_of(matched_first), search_lines[0])
        )
        node_start = len(source[: node.start_byte].decode("utf-8", errors="replace"))
        abs_start = node_start + local_start
        abs_end = node_start + local_end
        new_text = file_text[:abs_start] + replacement + file_text[abs_end:]
        return ApplyOutcome(True, new_text, strategy)
    return None


def fuzzy_replace(
    file_text: str, edit: EditRequest, ctx: MatchContext
) -> Optional[ApplyOutcome]:
    threshold = ctx.settings.fuzzy_threshold
    file_lines = _split_lines(file_text)
    search_lines = _split_lines(edit.search_content)
    size = len(search_lines)
    if size == 0 or size > len(file_lines):
        return None

    scores = [
        similarity("\n".join(file_lines[i : i + size]), edit.search_content)
        for i in range(0, len(file_lines) - size + 1)
    ]

    best_index = -1
    best_score = 0.0
    for i, score in enumerate(scores):
        if score > best_score:
            best_index, best_score = i, score

    if best_index == -1 or best_score < threshold:
        return None

    candidates = sum(1 for score in scores if score >= threshold)
    if candidates > 1:
        ctx.notes.append(
            f"ambiguous match: {candidates} regions reach similarity {threshold:.2f}"
        )
        logger.warning(
            "Rejected ambiguous fuzzy match",
            path=edit.file_path,
            candidates=candidates,
            threshold=threshold,
        )
        return None

    replacement = _split_lines(edit.replace_content)
    new_lines = file_lines[:best_index] + replacement + file_lines[best_index + size :]
    return ApplyOutcome(True, "\n".join(new_lines), MatchStrategy.Fuzzy)


TIERS: Tuple[Tier, ...] = (
    trivial_replace,
    exact_replace,
    normalized_replace,
    structural_replace,
    fuzzy_replace,
)


def apply(
    file_text: str,
    edit: EditRequest,
    tree: Optional[SyntaxTree] = None,
    settings: Optional[MatchSettings] = None,
    *,
    tiers: Sequence[Tier] = TIERS,
) -> ApplyOutcome:
    ctx = MatchContext(tree=tree, settings=settings or MatchSettings())
    for tier in tiers:
        outcome = tier(file_text, edit, ctx)
        if outcome is not None:
            logger.debug(
                "Applied edit",
                path=edit.file_path,
                strategy=outcome.strategy.value,
                line=edit.source_line,
            )
            return outcome

    diagnostic = FAILED_DIAGNOSTIC
    if ctx.notes:
        diagnostic = f"{diagnostic} ({'; '.join(ctx.notes)})"
    return ApplyOutcome(False, file_text, MatchStrategy.Failed, diagnostic)
