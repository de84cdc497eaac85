from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .files import PatchFileOps
from .logger import logger
from .matching import apply
from .models import ApplyOutcome, EditRequest, FileApplyStatus, PatchError
from .parser import parse
from .scheduler import group_by_file, order_for_application
from .settings import Settings
from .syntax import SyntaxContext, SyntaxTree


@dataclass
class PatchResult:
    summary: str
    outcome: str  # "success" | "fail"
    # relative path -> 'created' | 'updated', for files actually written
    changes: Dict[str, str] = field(default_factory=dict)
    statuses: Dict[str, FileApplyStatus] = field(default_factory=dict)
    # relative path -> outcomes in application order
    outcomes: Dict[str, List[ApplyOutcome]] = field(default_factory=dict)
    errors: List[PatchError] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome == "success"


def _excerpt(text: str, max_lines: int = 8) -> str:
    lines = text.split("\n")
    if len(lines) > max_lines:
        lines = [*lines[: max_lines // 2], "...", *lines[-(max_lines // 2) :]]
    return "\n".join(lines)


def _apply_file(
    path: str,
    requests: List[EditRequest],
    ops: PatchFileOps,
    settings: Settings,
    syntax: Optional[SyntaxContext],
    result: PatchResult,
) -> None:
    rel = path.lstrip("/")
    errors = result.errors

    try:
        original: Optional[str] = ops.open(rel)
    except FileNotFoundError:
        original = None
    except Exception as e:
        errors.append(
            PatchError(
                msg=f"Failed to read file: {rel}",
                hint=f"{type(e).__name__}: {e}",
                filename=rel,
                line=requests[0].source_line,
            )
        )
        result.statuses[rel] = FileApplyStatus.PartialUpdate
        return

    existed = original is not None
    current = original if original is not None else ""
    use_tree = syntax is not None and settings.matching.enable_structural
    tree: Optional[SyntaxTree] = None
    tree_text: Optional[str] = None
    applied_any = False
    any_failed = False
    outcomes: List[ApplyOutcome] = []

    for req in order_for_application(requests, current):
        if not existed and not applied_any and req.search_content.strip():
            errors.append(
                PatchError(
                    msg=f"No loaded content for file: {rel}",
                    hint="Ensure the file exists, or leave SEARCH empty to create it.",
                    filename=rel,
                    line=req.source_line,
                )
            )
            any_failed = True
            continue

        # Trees go stale as soon as an edit lands; re-parse the evolving text
        if use_tree and tree_text != current:
            tree = syntax.get_tree(path, current)  # type: ignore[union-attr]
            tree_text = current

        outcome = apply(current, req, tree, settings.matching)
        outcomes.append(outcome)
        if outcome.succeeded:
            current = outcome.result_text
            applied_any = True
            continue

        any_failed = True
        errors.append(
            PatchError(
                msg=f"Failed to locate SEARCH block in {rel}: {outcome.diagnostic}",
                hint=(
                    "SEARCH content must match the current file. Block not found:\n"
                    f"---\n{_excerpt(req.search_content)}\n---"
                ),
                filename=rel,
                line=req.source_line,
            )
        )

    result.outcomes[rel] = outcomes
    if not existed:
        status = FileApplyStatus.PartialUpdate if any_failed else FileApplyStatus.Create
    else:
        status = FileApplyStatus.PartialUpdate if any_failed else FileApplyStatus.Update
    result.statuses[rel] = status

    if applied_any and (not existed or current != original):
        try:
            ops.write(rel, current)
            result.changes[rel] = "updated" if existed else "created"
        except Exception as e:
            errors.append(
                PatchError(
                    msg=f"Failed to apply change to file: {rel}",
                    hint=f"{type(e).__name__}: {e}",
                    filename=rel,
                )
            )

    logger.info(
        "Processed file",
        path=rel,
        status=status.value,
        applied=sum(1 for o in outcomes if o.succeeded),
        failed=sum(1 for o in outcomes if not o.succeeded),
    )


def _summarize(result: PatchResult) -> str:
    statuses = result.statuses
    applied = set(result.changes.keys())
    def files_with(status: FileApplyStatus) -> List[str]:
        return sorted(f for f, s in statuses.items() if s == status and f in applied)

    created = files_with(FileApplyStatus.Create)
    updated_full = files_with(FileApplyStatus.Update)
    updated_partial = files_with(FileApplyStatus.PartialUpdate)

    lines: List[str] = []
    if not result.errors and not result.diagnostics:
        lines.append("Applied patch successfully.")
        if created:
            lines.append("Added files:")
            lines.extend(f"* {f}" for f in created)
        if updated_full:
            lines.append("Fully updated files:")
            lines.extend(f"* {f}" for f in updated_full)
        unchanged = sorted(f for f in statuses if f not in applied)
        if unchanged:
            lines.append("Files already up to date:")
            lines.extend(f"* {f}" for f in unchanged)
        return "\n".join(lines)

    if not applied:
        lines.append("Patch application failed. No changes were applied.")
    else:
        lines.append("Patch application completed with errors. Summary:")
        if created:
            lines.append("Added files (fully applied):")
            lines.extend(f"* {f}" for f in created)
        if updated_full:
            lines.append("Fully updated files:")
            lines.extend(f"* {f}" for f in updated_full)
        if updated_partial:
            lines.append("Partially updated files (some blocks failed):")
            lines.extend(f"* {f}" for f in updated_partial)

    failed_files = {e.filename for e in result.errors if e.filename}
    targets_for_fix = sorted(failed_files)
    if targets_for_fix:
        lines.append(
            "Please regenerate SEARCH/REPLACE blocks for the failed parts in these files:"
        )
        lines.extend(f"* {f}" for f in targets_for_fix)
        lines.append("You might want to re-read the source files first.")

    if result.diagnostics:
        lines.append("Malformed blocks (skipped):")
        lines.extend(f"* {d}" for d in result.diagnostics)

    if result.errors:
        lines.append("Errors:")
        for e in result.errors:
            loc = ""
            if e.filename and e.line is not None:
                loc = f"{e.filename}:{e.line}: "
            elif e.filename:
                loc = f"{e.filename}: "
            lines.append(f"* {loc}{e.msg}")
            if e.hint:
                lines.append(f"  Hint: {e.hint}")
    return "\n".join(lines)


def apply_patch(
    text: str,
    ops: PatchFileOps,
    *,
    settings: Optional[Settings] = None,
    syntax: Optional[SyntaxContext] = None,
) -> PatchResult:
    """
    Parse SEARCH/REPLACE blocks from text and apply them through ops.

    Edits for one file are applied bottom-of-file first against the evolving
    text. A file is written only when at least one of its edits applied.
    With settings.strict, any malformed block aborts the whole patch before
    files are touched.
    """
    settings = settings or Settings()
    parsed = parse(text)
    result = PatchResult(
        summary="", outcome="success", diagnostics=list(parsed.diagnostics)
    )

    for diagnostic in parsed.diagnostics:
        logger.warning("Malformed patch block", diagnostic=diagnostic)

    if settings.strict and parsed.diagnostics:
        result.outcome = "fail"
        result.summary = "\n".join(
            [
                "Patch rejected: malformed blocks found. No changes were applied.",
                *(f"* {d}" for d in parsed.diagnostics),
            ]
        )
        return result

    if not parsed.requests:
        result.outcome = "fail"
        result.summary = "\n".join(
            ["No SEARCH/REPLACE blocks found.", *(f"* {d}" for d in parsed.diagnostics)]
        )
        return result

    for path, requests in group_by_file(parsed.requests).items():
        _apply_file(path, requests, ops, settings, syntax, result)

    if result.errors or result.diagnostics:
        result.outcome = "fail"
    result.summary = _summarize(result)
    return result
