from pathlib import Path
from typing import Set

import pytest

from analyzer import BindingKind, ScopeType, analyze_bindings
from frontend import run_frontend
from parser import parse_js


def _analyze(source: str, *, source_type: str = "module"):
    program = parse_js(source, tolerant=False, source_type=source_type).program
    return analyze_bindings(program)


def _binding_names(scope, kind: BindingKind) -> Set[str]:
    return {name for name, binding in scope.bindings.items() if binding.kind == kind}


def _find_function_scope(root_scope, function_name: str):
    for child in root_scope.children:
        node = child.node
        ident = node.get("id")
        if (
            node.get("type") == "FunctionDeclaration"
            and isinstance(ident, dict)
            and ident.get("name") == function_name
        ):
            return child
    raise AssertionError(f"Function scope for {function_name} not found")


def _binding(analysis, name: str):
    for binding in analysis.bindings:
        if binding.name == name:
            return binding
    raise AssertionError(f"Binding {name} not found")


def test_analyzer_handles_function_call_fixture():
    source_path = Path("tests/cases/function_call.js")
    result = run_frontend(
        source_path.read_text(encoding="utf-8"),
        source_name=str(source_path),
        eliminate=False,
    )

    assert result.analysis is not None
    assert not result.analysis.issues
    root = result.analysis.root_scope
    assert _binding_names(root, BindingKind.FUNCTION) == {"add"}
    assert _binding_names(root, BindingKind.VAR) == {"result"}

    add_scope = _find_function_scope(root, "add")
    assert _binding_names(add_scope, BindingKind.PARAMETER) == {"a", "b"}
    assert len(add_scope.bindings["a"].references) == 1

    assert "console" in result.analysis.globals
    assert len(root.bindings["add"].references) == 1


def test_analyzer_handles_let_const_block_scope():
    source_path = Path("tests/cases/let_const.js")
    result = run_frontend(
        source_path.read_text(encoding="utf-8"),
        source_name=str(source_path),
        eliminate=False,
    )

    fn_scope = _find_function_scope(result.analysis.root_scope, "counter")
    assert {"total"} <= _binding_names(fn_scope, BindingKind.LET)
    assert {"step"} <= _binding_names(fn_scope, BindingKind.CONST)
    # `var` inside the for-init hoists to the function.
    assert {"i"} <= _binding_names(fn_scope, BindingKind.VAR)

    block_scopes = [
        scope
        for scope in result.analysis.flatten_scopes()
        if scope.scope_type == ScopeType.BLOCK
    ]
    assert any("inside" in _binding_names(block, BindingKind.LET) for block in block_scopes)

    total = fn_scope.bindings["total"]
    assert len(total.constant_violations) == 1
    # Compound assignment reads the target as well.
    assert len(total.references) == 4


def test_reference_sites_inside_other_declarations():
    analysis = _analyze(
        "function a() { return b(); }\n"
        "function b() { return a(); }\n"
    )
    a, b = _binding(analysis, "a"), _binding(analysis, "b")

    assert a.path["type"] == "FunctionDeclaration"
    assert [site.is_within(b.path) for site in a.references] == [True]
    assert [site.is_within(a.path) for site in b.references] == [True]
    assert a.path_ancestors == (analysis.root_scope.node,)


def test_destructuring_bindings_share_declarator():
    analysis = _analyze("const { a, b: [c, , d = 1], ...rest } = obj;")
    names = [binding.name for binding in analysis.bindings]
    assert names == ["a", "c", "d", "rest"]

    declarator = analysis.bindings[0].path
    assert declarator["type"] == "VariableDeclarator"
    assert all(binding.path is declarator for binding in analysis.bindings)
    assert all(binding.kind == BindingKind.CONST for binding in analysis.bindings)

    for binding in analysis.bindings:
        assert analysis.binding_for(binding.node) is binding
    assert analysis.binding_for(declarator) is None
    assert "obj" in analysis.globals


def test_exports_count_as_references():
    analysis = _analyze(
        "export function f() {}\n"
        "function g() {}\n"
        "export { g };\n"
        "class C {}\n"
        "export default C;\n"
    )
    f, g, c = (_binding(analysis, name) for name in ("f", "g", "C"))

    assert f.referenced
    assert f.references[0].node["type"] == "ExportNamedDeclaration"
    assert not f.references[0].is_within(f.path)
    assert g.referenced
    assert c.referenced and c.kind == BindingKind.CLASS


def test_import_specifiers_are_root_bindings():
    analysis = _analyze('import a, { b as local } from "m";\nimport * as ns from "n";')
    root = analysis.root_scope
    assert _binding_names(root, BindingKind.IMPORT) == {"a", "local", "ns"}
    assert [binding.path["type"] for binding in analysis.bindings] == [
        "ImportDefaultSpecifier",
        "ImportSpecifier",
        "ImportNamespaceSpecifier",
    ]


def test_self_names_and_catch_params_use_identifier_as_declaration_site():
    analysis = _analyze(
        "ref(function named() { return named(); });\n"
        "try { ref(); } catch (err) { ref(err); }\n"
    )
    named, err = _binding(analysis, "named"), _binding(analysis, "err")

    assert named.path is named.node
    assert named.scope.scope_type == ScopeType.FUNCTION
    assert named.references and not named.references[0].is_within(named.path)

    assert err.kind == BindingKind.CATCH_PARAMETER
    assert err.path is err.node
    assert err.scope.scope_type == ScopeType.CATCH


@pytest.mark.parametrize(
    "source, expected",
    [
        ("for (const k in o) {}", True),
        ("for (let v of o) {}", True),
        ("for (var i = 0; i < 1; i++) {}", False),
        ("let x = 1;", False),
    ],
)
def test_loop_iterator_detection(source: str, expected: bool):
    analysis = _analyze(source)
    assert analysis.bindings[0].is_loop_iterator is expected


def test_constant_violations():
    analysis = _analyze(
        "var x = 1;\n"
        "var x = 2;\n"
        "let n = 0;\n"
        "n++;\n"
        "let m;\n"
        "[m] = [1];\n"
    )
    x, n, m = (_binding(analysis, name) for name in ("x", "n", "m"))

    assert len(analysis.root_scope.bindings) == 3
    assert len(x.constant_violations) == 1 and not x.references
    assert len(n.constant_violations) == 1 and len(n.references) == 1
    assert len(m.constant_violations) == 1 and not m.references


def test_shadowed_names_get_distinct_bindings():
    analysis = _analyze(
        "let value = 1;\n"
        "function f() { let value = 2; return value; }\n"
        "ref(value, f);\n"
    )
    outer, inner = [binding for binding in analysis.bindings if binding.name == "value"]
    assert outer.binding_id != inner.binding_id
    assert len(outer.references) == 1
    assert len(inner.references) == 1
    assert inner.references[0].is_within(_binding(analysis, "f").path)


@pytest.mark.parametrize(
    "source, code",
    [
        ("eval('1');", "EVAL_CALL"),
        ("with (obj) { x; }", "WITH_STATEMENT"),
    ],
)
def test_dynamic_scope_issues(source: str, code: str):
    analysis = _analyze(source, source_type="script")
    assert [issue.code for issue in analysis.issues] == [code]
    assert analysis.issues[0].loc.line == 1
