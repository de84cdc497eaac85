from __future__ import annotations

from typing import Dict, Iterable, List

from .models import EditRequest


def group_by_file(requests: Iterable[EditRequest]) -> Dict[str, List[EditRequest]]:
    """Group requests by file path, keeping encounter order within each file."""
    groups: Dict[str, List[EditRequest]] = {}
    for req in requests:
        groups.setdefault(req.file_path, []).append(req)
    return groups


def order_for_application(
    requests: Iterable[EditRequest], file_text: str
) -> List[EditRequest]:
    """
    Order one file's requests bottom-of-file first.

    Requests are sorted by the first offset of their search content in
    file_text, descending, so that applying them in sequence never shifts a
    pending edit. Requests whose search content is absent go last, in their
    original order.
    """

    def sort_key(req: EditRequest) -> tuple[int, int]:
        offset = file_text.find(req.search_content)
        if offset == -1:
            return 1, 0
        return 0, -offset

    return sorted(requests, key=sort_key)
