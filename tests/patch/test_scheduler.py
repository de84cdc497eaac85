from editblocks.matching import apply
from editblocks.models import EditRequest
from editblocks.scheduler import group_by_file, order_for_application


def _edit(path: str, search: str, replace: str) -> EditRequest:
    return EditRequest(file_path=path, search_content=search, replace_content=replace)


def test_order_for_application_bottom_first():
    text = "line 1\nline 2\nline 3\nline 4\nline 5"
    edits = [
        _edit("/test.ts", "line 2", "LINE 2"),
        _edit("/test.ts", "line 4", "LINE 4"),
        _edit("/test.ts", "line 1", "LINE 1"),
    ]

    ordered = order_for_application(edits, text)

    assert [e.search_content for e in ordered] == ["line 4", "line 2", "line 1"]


def test_order_puts_missing_search_last_in_original_order():
    text = "alpha\nbeta\ngamma"
    edits = [
        _edit("/f.py", "missing one", "x"),
        _edit("/f.py", "alpha", "A"),
        _edit("/f.py", "missing two", "y"),
        _edit("/f.py", "gamma", "G"),
    ]

    ordered = order_for_application(edits, text)

    assert [e.search_content for e in ordered] == [
        "gamma",
        "alpha",
        "missing one",
        "missing two",
    ]


def test_order_is_stable_for_equal_offsets():
    text = "same\nother"
    first = _edit("/f.py", "same", "1")
    second = _edit("/f.py", "same", "2")

    assert order_for_application([first, second], text) == [first, second]


def test_sequential_application_in_order_keeps_edits_independent():
    text = "a = 1\nb = 2\nc = 3"
    edits = [
        _edit("/f.py", "a = 1", "a = 1\na2 = 11"),
        _edit("/f.py", "c = 3", "c = 33"),
    ]

    current = text
    for edit in order_for_application(edits, text):
        outcome = apply(current, edit)
        assert outcome.succeeded
        current = outcome.result_text

    assert current == "a = 1\na2 = 11\nb = 2\nc = 33"


def test_group_by_file_preserves_order():
    edits = [
        _edit("/a.ts", "a1", "A1"),
        _edit("/b.ts", "b1", "B1"),
        _edit("/a.ts", "a2", "A2"),
    ]

    grouped = group_by_file(edits)

    assert list(grouped.keys()) == ["/a.ts", "/b.ts"]
    assert [e.search_content for e in grouped["/a.ts"]] == ["a1", "a2"]
    assert [e.search_content for e in grouped["/b.ts"]] == ["b1"]


def test_group_by_file_empty():
    assert group_by_file([]) == {}
