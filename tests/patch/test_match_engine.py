import pytest

from editblocks.matching import (
    FAILED_DIAGNOSTIC,
    MatchContext,
    apply,
    exact_replace,
    fuzzy_replace,
    normalized_replace,
    reindent,
    similarity,
)
from editblocks.models import EditRequest, MatchStrategy
from editblocks.settings import MatchSettings


def _edit(search: str, replace: str) -> EditRequest:
    return EditRequest(file_path="/test.ts", search_content=search, replace_content=replace)


def test_empty_search_replaces_whole_file():
    outcome = apply("anything", _edit("", "X"))

    assert outcome.succeeded
    assert outcome.result_text == "X"
    assert outcome.strategy == MatchStrategy.Exact


def test_whitespace_only_search_replaces_whole_file():
    outcome = apply("old", _edit("  \n\t", "new"))

    assert outcome.result_text == "new"
    assert outcome.strategy == MatchStrategy.Exact


def test_exact_match_replaces_first_occurrence_only():
    text = "const a = 1;\nconst b = 2;\nconst b = 2;"

    outcome = apply(text, _edit("const b = 2;", "const b = 42;"))

    assert outcome.succeeded
    assert outcome.strategy == MatchStrategy.Exact
    assert outcome.result_text == "const a = 1;\nconst b = 42;\nconst b = 2;"


def test_exact_multiline_match():
    text = 'function hello() {\n  console.log("Hello");\n  return true;\n}'

    outcome = apply(
        text,
        _edit(
            'function hello() {\n  console.log("Hello");',
            'function hello(name) {\n  console.log("Hello", name);',
        ),
    )

    assert outcome.strategy == MatchStrategy.Exact
    assert outcome.result_text.startswith("function hello(name) {")
    assert outcome.result_text.endswith("  return true;\n}")


def test_exact_match_wins_over_better_fuzzy_candidate():
    text = "const value = compute(a,  b);\nconst value = compute(a, b);"

    outcome = apply(text, _edit("const value = compute(a, b);", "X"))

    assert outcome.strategy == MatchStrategy.Exact
    assert outcome.result_text == "const value = compute(a,  b);\nX"


def test_indentation_preserved_for_unindented_search():
    text = "  function f() {\n    return 1;\n  }"

    outcome = apply(text, _edit("return 1;", "return 2;"))

    assert outcome.succeeded
    assert "    return 2;" in outcome.result_text


def test_indentation_preserved_when_only_normalized_match_applies():
    text = "  function f() {  \n    return 1;\n  }"
    search = "  function f() {\n    return 1;"
    replace = "  function f() {\n      const x = 2;\n    return x;"

    outcome = apply(text, _edit(search, replace))

    assert outcome.strategy == MatchStrategy.Normalized
    assert outcome.result_text == "\n".join(
        ["  function f() {", "      const x = 2;", "    return x;", "  }"]
    )


def test_normalized_match_ignores_trailing_whitespace():
    text = "const a = 1;   \nconst b = 2;"

    outcome = apply(text, _edit("const a = 1;\nconst b = 2;", "const a = 42;\nconst b = 2;"))

    assert outcome.succeeded
    assert outcome.strategy == MatchStrategy.Normalized
    assert outcome.result_text == "const a = 42;\nconst b = 2;"


def test_normalized_match_keeps_relative_indentation():
    text = "class A {\n    run() {   \n        go();\n    }\n}"
    search = "    run() {\n        go();\n    }"
    replace = "    run() {\n        if (ok) {\n            go();\n        }\n\n    }"

    outcome = apply(text, _edit(search, replace))

    assert outcome.strategy == MatchStrategy.Normalized
    assert outcome.result_text == "\n".join(
        [
            "class A {",
            "    run() {",
            "        if (ok) {",
            "            go();",
            "        }",
            "",
            "    }",
            "}",
        ]
    )


def test_empty_replacement_keeps_line_count_across_tiers():
    exact = apply("a\nb\nc", _edit("b", ""))
    normalized = apply("a\nb\nc", _edit("b   ", ""))
    fuzzy = apply("a\nconst  x = 1;\nc", _edit("const x = 1;", ""))

    assert [o.strategy for o in (exact, normalized, fuzzy)] == [
        MatchStrategy.Exact,
        MatchStrategy.Normalized,
        MatchStrategy.Fuzzy,
    ]
    assert exact.result_text == "a\n\nc"
    assert normalized.result_text == exact.result_text
    assert fuzzy.result_text == exact.result_text


def test_reindent_of_empty_replacement_is_one_blank_line():
    assert reindent("", "    ", "  x") == [""]


def test_reindent_clamps_negative_relative_indent():
    lines = reindent("x\n  y\nz", "    ", "  start")

    assert lines == ["    x", "    y", "    z"]


def test_similarity():
    assert similarity("Const  A = 1;", "const a = 1;") == 1.0
    assert similarity("", "x") == 0.0
    assert similarity("abcd", "abxd") == pytest.approx(0.75)
    assert similarity("ab", "abcd") == pytest.approx(0.5)


def test_fuzzy_match_for_minor_differences():
    text = "// Some comment\nconst  a = 1;\nconst b = 2;"

    outcome = apply(text, _edit("const a = 1;", "const a = 42;"))

    assert outcome.succeeded
    assert outcome.strategy == MatchStrategy.Fuzzy
    assert outcome.result_text == "// Some comment\nconst a = 42;\nconst b = 2;"


def test_fuzzy_match_rejects_ambiguous_windows():
    text = "const  a = 1;\nother();\nconst  a  = 1;"

    outcome = apply(text, _edit("const a = 1;", "const a = 2;"))

    assert not outcome.succeeded
    assert outcome.strategy == MatchStrategy.Failed
    assert outcome.result_text == text
    assert "ambiguous" in (outcome.diagnostic or "")


def test_fuzzy_threshold_comes_from_settings():
    text = "const b = 2;"
    edit = _edit("const a = 1;", "X")

    assert fuzzy_replace(text, edit, MatchContext()) is None
    loose = MatchContext(settings=MatchSettings(fuzzy_threshold=0.8))
    outcome = fuzzy_replace(text, edit, loose)
    assert outcome is not None
    assert outcome.result_text == "X"


def test_search_longer_than_file_fails():
    outcome = apply("one line", _edit("a\nb\nc", "x"))

    assert outcome.strategy == MatchStrategy.Failed


def test_no_match_leaves_text_unchanged():
    text = "const a = 1;\nconst b = 2;"

    outcome = apply(text, _edit("const c = 3;", "const c = 33;"))

    assert not outcome.succeeded
    assert outcome.strategy == MatchStrategy.Failed
    assert outcome.result_text == text
    assert outcome.diagnostic == FAILED_DIAGNOSTIC


def test_completely_different_content_fails():
    text = 'function hello() { return "hello"; }'

    outcome = apply(
        text,
        _edit(
            'function goodbye() { return "bye"; }',
            'function goodbye() { return "farewell"; }',
        ),
    )

    assert outcome.strategy == MatchStrategy.Failed


def test_apply_is_deterministic():
    text = "x = 1\ny = 2\n"
    edit = _edit("y  = 2", "y = 3")

    first = apply(text, edit)
    second = apply(text, edit)

    assert first == second


def test_custom_tier_order():
    text = "a = 1   "
    edit = _edit("a = 1", "a = 2")

    outcome = apply(text, edit, tiers=(normalized_replace, exact_replace))

    assert outcome.strategy == MatchStrategy.Normalized
    assert outcome.result_text == "a = 2"
