from pathlib import Path

import pytest

from analyzer import BindingKind
from eliminator import (
    EliminationError,
    EliminationOptions,
    eliminate_dead_code,
    find_referenced_bindings,
)
from parser import parse_js

_IGNORED_KEYS = {"loc", "range", "comments", "errors"}


def _normalize(node):
    if isinstance(node, list):
        return [_normalize(item) for item in node]
    if isinstance(node, dict):
        return {
            key: _normalize(value)
            for key, value in node.items()
            if key not in _IGNORED_KEYS and value is not None
        }
    return node


def _parse(source: str):
    return parse_js(source, tolerant=False).program


def _assert_eliminates(source: str, expected: str, **kwargs):
    program = _parse(source)
    result = eliminate_dead_code(program, **kwargs)
    assert _normalize(program) == _normalize(_parse(expected))
    return result


ELIMINATION_CASES = [
    (
        "function a() { return b(); }\nfunction b() { return a(); }",
        "",
    ),
    (
        "function a() { return b(); }\nfunction b() { return a(); }\nref(a);",
        "function a() { return b(); }\nfunction b() { return a(); }\nref(a);",
    ),
    ("function a() { a(); }", ""),
    ("var a = function () { return a(); };", ""),
    ('import a, { b, c } from "m";\nref(b);', 'import { b } from "m";\nref(b);'),
    ('import * as ns from "m";', ""),
    ('import "side-effect";', 'import "side-effect";'),
    ("let [a, b] = c;\nref(a);", "let [a, ,] = c;\nref(a);"),
    ("let [a, b] = c;\nref(b);", "let [, b] = c;\nref(b);"),
    ("let [a, [b, c]] = d;\nref(a);", "let [a, ,] = d;\nref(a);"),
    ("let [a, ...others] = d;\nref(a);", "let [a, ,] = d;\nref(a);"),
    ("let { a, b: { c, d } } = x;\nref(a);", "let { a } = x;\nref(a);"),
    ("let { a, b: { c, d } } = x;\nref(c);", "let { b: { c } } = x;\nref(c);"),
    ("let { a = 1, b } = x;\nref(b);", "let { b } = x;\nref(b);"),
    ("let { a: [b, { c }] } = x;", ""),
    ("let { a, ...rest } = x;", ""),
    (
        "let { a, ...rest } = x;\nref(rest);",
        "let { a, ...rest } = x;\nref(rest);",
    ),
    (
        "let { a = 1, b: { c }, ...rest } = x;\nref(rest);",
        "let { a = 1, b: {}, ...rest } = x;\nref(rest);",
    ),
    ("var a = 1, b = 2;\nref(b);", "var b = 2;\nref(b);"),
    ("if (x) var a = 1;", "if (x) ;"),
    ("for (var i = 0; ;) {}", "for (;;) {}"),
    ("for (const k in o) {}", "for (const k in o) {}"),
    ("class A {}", ""),
    ("class A { m() { return new A(); } }", ""),
    (
        "class A {}\nclass B extends A {}\nref(B);",
        "class A {}\nclass B extends A {}\nref(B);",
    ),
    ("export function f() {}", "export function f() {}"),
    ("function g() {}\nexport { g };", "function g() {}\nexport { g };"),
    ("var a;\na = function () {};", ""),
    ("function f() {}\nf = function () {};", ""),
    ("class C {}\nC = () => null;", ""),
    ("let a = 1;\na = () => 2;\nref();", "ref();"),
    (
        "ref(function named() { return named(); });",
        "ref(function named() { return named(); });",
    ),
    (
        "function outer() { var unused = 1; return 2; }\nref(outer);",
        "function outer() { return 2; }\nref(outer);",
    ),
    (
        "function f(a, { b, c }) { return a; }\nref(f);",
        "function f(a, { b, c }) { return a; }\nref(f);",
    ),
    ("try { ref(); } catch (e) {}", "try { ref(); } catch (e) {}"),
    ("let n = 0;\nn += 1;", "let n = 0;\nn += 1;"),
]


@pytest.mark.parametrize("source, expected", ELIMINATION_CASES)
def test_eliminate_dead_code(source: str, expected: str):
    _assert_eliminates(source, expected)


FIXTURE_CASES = [
    ("tests/cases/mutual_recursion.js", 2),
    ("tests/cases/destructuring.js", 2),
    ("tests/cases/module_import.js", 2),
    ("tests/cases/chain.js", 4),
]


@pytest.mark.parametrize("relative_path, passes", FIXTURE_CASES)
def test_eliminate_dead_code_fixtures(relative_path: str, passes: int):
    source_path = Path(relative_path)
    expected_path = source_path.with_suffix(".expected.js")
    result = _assert_eliminates(
        source_path.read_text(encoding="utf-8"),
        expected_path.read_text(encoding="utf-8"),
        source_name=str(source_path),
    )
    assert result.passes == passes


def test_removal_cascades_across_passes():
    result = _assert_eliminates(
        "var c = 1;\nvar b = c;\nvar a = b;", ""
    )
    assert result.passes == 4
    assert [(entry.name, entry.pass_number) for entry in result.removed] == [
        ("a", 1),
        ("b", 2),
        ("c", 3),
    ]


def test_forward_reference_is_removed_on_next_pass():
    result = _assert_eliminates("var a = b;\nvar b = 1;", "")
    assert result.removed_names == ["a", "b"]
    assert result.passes == 3


def test_removed_binding_records():
    result = _assert_eliminates('\nimport a from "m";\nclass K {}', "")
    assert [(entry.name, entry.kind) for entry in result.removed] == [
        ("a", BindingKind.IMPORT),
        ("K", BindingKind.CLASS),
    ]
    assert result.removed[0].loc.line == 2
    assert result.changed


@pytest.mark.parametrize(
    "source",
    [
        "function a() { return b(); }\nfunction b() { return a(); }\nref(a);",
        "let { a, ...rest } = x;\nref(rest);",
        "const [, b] = c;\nref(b);",
        Path("tests/cases/mutual_recursion.js").read_text(encoding="utf-8"),
        Path("tests/cases/destructuring.js").read_text(encoding="utf-8"),
    ],
)
def test_elimination_is_idempotent(source: str):
    program = _parse(source)
    eliminate_dead_code(program)
    snapshot = _normalize(program)

    second = eliminate_dead_code(program)
    assert second.passes == 1
    assert second.removed == []
    assert not second.changed
    assert _normalize(program) == snapshot


def test_only_eliminates_newly_unreferenced_identifiers():
    program = _parse(
        "let alwaysReferenced = 1, newlyUnreferenced = 2, alwaysUnreferenced = 3;\n"
        "ref(alwaysReferenced, newlyUnreferenced);"
    )
    candidates = find_referenced_bindings(program)
    assert candidates.names() == ["alwaysReferenced", "newlyUnreferenced"]

    # Some other transformation drops the second argument.
    program["body"][1]["expression"]["arguments"].pop()

    result = eliminate_dead_code(program, candidates)
    assert result.removed_names == ["newlyUnreferenced"]
    assert _normalize(program) == _normalize(
        _parse(
            "let alwaysReferenced = 1, alwaysUnreferenced = 3;\n"
            "ref(alwaysReferenced);"
        )
    )


def test_rest_siblings_can_be_pruned_when_not_preserved():
    options = EliminationOptions(preserve_rest_siblings=False)
    _assert_eliminates(
        "let { a, ...rest } = x;\nref(rest);",
        "let { ...rest } = x;\nref(rest);",
        options=options,
    )
    _assert_eliminates(
        "let { a = 1, b: { c }, ...rest } = x;\nref(rest);",
        "let { ...rest } = x;\nref(rest);",
        options=options,
    )


def test_classes_kept_when_disabled():
    _assert_eliminates(
        "class A {}\nvar unused = 1;",
        "class A {}",
        options=EliminationOptions(remove_classes=False),
    )


def test_function_assignments_kept_when_disabled():
    _assert_eliminates(
        "var a;\na = function () {};",
        "a = function () {};",
        options=EliminationOptions(remove_function_assignments=False),
    )


def test_plain_reassignment_is_left_in_place():
    # Only function values are removed with their binding. The leftover `a = 2`
    # writes an undeclared name and throws a ReferenceError in strict code.
    _assert_eliminates("let a = 1;\na = 2;", "a = 2;")


def test_non_program_root_is_rejected():
    with pytest.raises(EliminationError, match="expected a Program node"):
        eliminate_dead_code({"type": "Identifier", "name": "x"})
