"""
Scope analysis for ESTree JavaScript ASTs.

The analyzer walks an esprima-compatible AST, builds a tree of lexical scopes
and records every binding introduced by `var`/`let`/`const` (including
destructuring patterns), function and class declarations, parameters, catch
clauses and import specifiers. Each binding carries the ordered list of sites
that read it and the sites that re-assign it, together with the chain of
enclosing nodes at each site, so later phases can tell whether a reference
lies inside another declaration.

Resolution is deferred until the whole tree has been crawled, which gives
`var` and function hoisting for free. The result is a snapshot: any mutation
of the tree invalidates it, and callers re-run `analyze_bindings` instead of
patching it.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

Node = Dict[str, Any]

FUNCTION_TYPES = frozenset(
    {"FunctionDeclaration", "FunctionExpression", "ArrowFunctionExpression"}
)
_SKIPPED_KEYS = frozenset({"type", "loc", "range", "comments", "errors"})


class ScopeType(str, Enum):
    GLOBAL = "global"
    FUNCTION = "function"
    BLOCK = "block"
    CATCH = "catch"
    CLASS = "class"


class BindingKind(str, Enum):
    VAR = "var"
    LET = "let"
    CONST = "const"
    FUNCTION = "function"
    CLASS = "class"
    PARAMETER = "parameter"
    CATCH_PARAMETER = "catch_parameter"
    IMPORT = "import"


_DECLARATION_KINDS = {
    "var": BindingKind.VAR,
    "let": BindingKind.LET,
    "const": BindingKind.CONST,
}


@dataclass(frozen=True)
class SourcePosition:
    line: Optional[int]
    column: Optional[int]

    @classmethod
    def of(cls, node: Optional[Node]) -> "SourcePosition":
        loc = (node or {}).get("loc") or {}
        start = loc.get("start") or {}
        return cls(line=start.get("line"), column=start.get("column"))


@dataclass(frozen=True, eq=False)
class Reference:
    """A site in the tree that resolves to a binding.

    `ancestors` holds every node enclosing `node`, outermost first.
    """

    node: Node
    ancestors: Tuple[Node, ...]

    def is_within(self, container: Node) -> bool:
        return any(ancestor is container for ancestor in self.ancestors)


@dataclass(eq=False)
class Binding:
    """A single named declaration and the sites that use it."""

    binding_id: str
    name: str
    kind: BindingKind
    loc: SourcePosition
    node: Node
    path: Node
    ancestors: Tuple[Node, ...]
    scope: "Scope" = field(repr=False)
    references: List[Reference] = field(default_factory=list, repr=False)
    constant_violations: List[Reference] = field(default_factory=list, repr=False)

    @property
    def referenced(self) -> bool:
        return bool(self.references)

    @property
    def path_ancestors(self) -> Tuple[Node, ...]:
        """Ancestors of the declaration site, outermost first."""
        for index, ancestor in enumerate(self.ancestors):
            if ancestor is self.path:
                return self.ancestors[:index]
        return self.ancestors

    @property
    def is_loop_iterator(self) -> bool:
        """True for declarators heading a for-in/for-of loop."""
        if self.path.get("type") != "VariableDeclarator":
            return False
        chain = self.path_ancestors
        if len(chain) < 2:
            return False
        declaration, loop = chain[-1], chain[-2]
        return (
            loop.get("type") in {"ForInStatement", "ForOfStatement"}
            and loop.get("left") is declaration
        )


@dataclass(eq=False)
class Scope:
    """A lexical scope containing zero or more bindings and child scopes."""

    scope_id: str
    scope_type: ScopeType
    node: Node
    parent: Optional["Scope"] = None
    bindings: Dict[str, Binding] = field(default_factory=dict)
    children: List["Scope"] = field(default_factory=list)

    def add_binding(self, binding: Binding) -> None:
        self.bindings[binding.name] = binding

    def add_child(self, child: "Scope") -> None:
        self.children.append(child)

    def lookup(self, name: str) -> Optional[Binding]:
        scope: Optional[Scope] = self
        while scope is not None:
            binding = scope.bindings.get(name)
            if binding is not None:
                return binding
            scope = scope.parent
        return None

    def function_scope(self) -> "Scope":
        """Nearest scope that `var` declarations hoist to."""
        scope = self
        while scope.scope_type not in {ScopeType.FUNCTION, ScopeType.GLOBAL}:
            assert scope.parent is not None
            scope = scope.parent
        return scope


@dataclass(frozen=True)
class AnalysisIssue:
    code: str
    message: str
    loc: SourcePosition


@dataclass(frozen=True)
class AnalysisResult:
    source_name: str
    root_scope: Scope
    issues: List[AnalysisIssue]
    bindings: List[Binding]
    globals: Dict[str, List[Reference]]
    declared: Dict[int, Binding] = field(repr=False)

    def flatten_scopes(self) -> Iterable[Scope]:
        """Yield scopes in depth-first order."""
        stack = [self.root_scope]
        while stack:
            scope = stack.pop()
            yield scope
            stack.extend(reversed(scope.children))

    def binding_for(self, identifier: Node) -> Optional[Binding]:
        """Binding declared by `identifier`, if it is a declaring identifier."""
        return self.declared.get(id(identifier))


class _BindingAnalyzer:
    def __init__(self, source_name: str) -> None:
        self._source_name = source_name
        self._scope_counter = 0
        self._issues: List[AnalysisIssue] = []
        self._ancestors: List[Node] = []
        self._bindings: List[Binding] = []
        self._declared: Dict[int, Binding] = {}
        self._pending: List[Tuple[Scope, str, Reference, bool]] = []
        self._globals: Dict[str, List[Reference]] = {}
        self._root: Optional[Scope] = None

    def analyze(self, ast: Node) -> AnalysisResult:
        root_scope = self._new_scope(ScopeType.GLOBAL, ast, parent=None)
        self._root = root_scope
        self._visit(ast, root_scope)
        self._resolve_pending()
        return AnalysisResult(
            source_name=self._source_name,
            root_scope=root_scope,
            issues=self._issues,
            bindings=self._bindings,
            globals=self._globals,
            declared=self._declared,
        )

    # ------------------------------------------------------------------ helpers

    def _new_scope(
        self, scope_type: ScopeType, node: Node, parent: Optional[Scope]
    ) -> Scope:
        scope_id = f"S{self._scope_counter}"
        self._scope_counter += 1
        scope = Scope(scope_id=scope_id, scope_type=scope_type, node=node, parent=parent)
        if parent:
            parent.add_child(scope)
        return scope

    def _add_issue(self, code: str, message: str, node: Optional[Node]) -> None:
        self._issues.append(
            AnalysisIssue(code=code, message=message, loc=SourcePosition.of(node))
        )

    @contextmanager
    def _enter(self, node: Node) -> Iterator[None]:
        self._ancestors.append(node)
        try:
            yield
        finally:
            self._ancestors.pop()

    def _site(self, node: Node) -> Reference:
        return Reference(node=node, ancestors=tuple(self._ancestors))

    def _add_binding(
        self, identifier: Node, kind: BindingKind, scope: Scope, path: Node
    ) -> None:
        name = identifier.get("name")
        existing = scope.bindings.get(name)
        if existing is not None:
            # Redeclaring a name in the same scope re-assigns the first binding.
            existing.constant_violations.append(self._site(identifier))
            self._declared[id(identifier)] = existing
            return
        binding = Binding(
            binding_id=f"{scope.scope_id}:{name}",
            name=name,
            kind=kind,
            loc=SourcePosition.of(identifier),
            node=identifier,
            path=path,
            ancestors=tuple(self._ancestors),
            scope=scope,
        )
        scope.add_binding(binding)
        self._bindings.append(binding)
        self._declared[id(identifier)] = binding

    def _add_reference(self, identifier: Node, scope: Scope) -> None:
        self._pending.append((scope, identifier.get("name"), self._site(identifier), False))

    def _add_violation(self, identifier: Node, scope: Scope) -> None:
        self._pending.append((scope, identifier.get("name"), self._site(identifier), True))

    def _resolve_pending(self) -> None:
        for scope, name, site, is_violation in self._pending:
            binding = scope.lookup(name)
            if binding is None:
                self._globals.setdefault(name, []).append(site)
            elif is_violation:
                binding.constant_violations.append(site)
            else:
                binding.references.append(site)

    def _visit(self, node: Any, scope: Scope) -> None:
        if node is None:
            return
        if isinstance(node, list):
            for element in node:
                self._visit(element, scope)
            return
        if not isinstance(node, dict):
            return

        if node.get("type") == "Identifier":
            self._add_reference(node, scope)
            return

        handler = getattr(self, f"_visit_{node.get('type')}", None)
        with self._enter(node):
            if handler:
                handler(node, scope)
            else:
                self._generic_visit(node, scope)

    def _generic_visit(self, node: Node, scope: Scope) -> None:
        for key, value in node.items():
            if key in _SKIPPED_KEYS:
                continue
            self._visit(value, scope)

    def _visit_statements(self, block: Optional[Node], scope: Scope) -> None:
        """Visit a block's statements without opening a new scope for it."""
        if block is None:
            return
        with self._enter(block):
            self._visit(block.get("body", []), scope)

    # ---------------------------------------------------------------- patterns

    def _declare_pattern(
        self,
        node: Optional[Node],
        kind: BindingKind,
        binding_scope: Scope,
        path: Node,
        scope: Scope,
    ) -> None:
        if node is None:
            return
        node_type = node.get("type")
        if node_type == "Identifier":
            self._add_binding(node, kind, binding_scope, path)
            return
        with self._enter(node):
            if node_type == "ObjectPattern":
                for prop in node.get("properties", []):
                    self._declare_pattern(prop, kind, binding_scope, path, scope)
            elif node_type == "Property":
                if node.get("computed"):
                    self._visit(node.get("key"), scope)
                self._declare_pattern(node.get("value"), kind, binding_scope, path, scope)
            elif node_type == "ArrayPattern":
                for element in node.get("elements", []):
                    self._declare_pattern(element, kind, binding_scope, path, scope)
            elif node_type == "AssignmentPattern":
                self._declare_pattern(node.get("left"), kind, binding_scope, path, scope)
                self._visit(node.get("right"), scope)
            elif node_type == "RestElement":
                self._declare_pattern(node.get("argument"), kind, binding_scope, path, scope)
            else:
                self._add_issue(
                    code="UNSUPPORTED_PATTERN",
                    message=f"Unsupported binding pattern: {node_type}",
                    node=node,
                )
                self._generic_visit(node, scope)

    def _assign_target(self, node: Optional[Node], scope: Scope) -> None:
        if node is None:
            return
        node_type = node.get("type")
        if node_type == "Identifier":
            self._add_violation(node, scope)
            return
        if node_type not in {
            "ObjectPattern",
            "Property",
            "ArrayPattern",
            "AssignmentPattern",
            "RestElement",
        }:
            self._visit(node, scope)
            return
        with self._enter(node):
            if node_type == "ObjectPattern":
                for prop in node.get("properties", []):
                    self._assign_target(prop, scope)
            elif node_type == "Property":
                if node.get("computed"):
                    self._visit(node.get("key"), scope)
                self._assign_target(node.get("value"), scope)
            elif node_type == "ArrayPattern":
                for element in node.get("elements", []):
                    self._assign_target(element, scope)
            elif node_type == "AssignmentPattern":
                self._assign_target(node.get("left"), scope)
                self._visit(node.get("right"), scope)
            else:
                self._assign_target(node.get("argument"), scope)

    # ----------------------------------------------------------------- visitors

    def _visit_Program(self, node: Node, scope: Scope) -> None:
        self._visit(node.get("body", []), scope)

    def _visit_BlockStatement(self, node: Node, scope: Scope) -> None:
        block_scope = self._new_scope(ScopeType.BLOCK, node, scope)
        self._visit(node.get("body", []), block_scope)

    def _visit_VariableDeclaration(self, node: Node, scope: Scope) -> None:
        kind = _DECLARATION_KINDS.get(node.get("kind"), BindingKind.VAR)
        binding_scope = scope.function_scope() if kind is BindingKind.VAR else scope
        for declarator in node.get("declarations", []):
            with self._enter(declarator):
                self._declare_pattern(
                    declarator.get("id"), kind, binding_scope, declarator, scope
                )
                self._visit(declarator.get("init"), scope)

    def _visit_FunctionDeclaration(self, node: Node, scope: Scope) -> None:
        identifier = node.get("id")
        if isinstance(identifier, dict) and identifier.get("type") == "Identifier":
            self._add_binding(identifier, BindingKind.FUNCTION, scope, node)
        function_scope = self._new_scope(ScopeType.FUNCTION, node, scope)
        self._visit_function_parts(node, function_scope)

    def _visit_FunctionExpression(self, node: Node, scope: Scope) -> None:
        function_scope = self._new_scope(ScopeType.FUNCTION, node, scope)
        identifier = node.get("id")
        if isinstance(identifier, dict) and identifier.get("type") == "Identifier":
            # The self-name is only visible inside; its declaration site is the
            # identifier so the function body never counts as "inside" it.
            self._add_binding(identifier, BindingKind.FUNCTION, function_scope, identifier)
        self._visit_function_parts(node, function_scope)

    def _visit_ArrowFunctionExpression(self, node: Node, scope: Scope) -> None:
        function_scope = self._new_scope(ScopeType.FUNCTION, node, scope)
        self._visit_function_parts(node, function_scope)

    def _visit_function_parts(self, node: Node, function_scope: Scope) -> None:
        for param in node.get("params", []):
            self._declare_pattern(
                param, BindingKind.PARAMETER, function_scope, param, function_scope
            )
        body = node.get("body")
        if isinstance(body, dict) and body.get("type") == "BlockStatement":
            self._visit_statements(body, function_scope)
        else:
            self._visit(body, function_scope)

    def _visit_ClassDeclaration(self, node: Node, scope: Scope) -> None:
        identifier = node.get("id")
        if isinstance(identifier, dict) and identifier.get("type") == "Identifier":
            self._add_binding(identifier, BindingKind.CLASS, scope, node)
        self._visit(node.get("superClass"), scope)
        class_scope = self._new_scope(ScopeType.CLASS, node, scope)
        self._visit(node.get("body"), class_scope)

    def _visit_ClassExpression(self, node: Node, scope: Scope) -> None:
        self._visit(node.get("superClass"), scope)
        class_scope = self._new_scope(ScopeType.CLASS, node, scope)
        identifier = node.get("id")
        if isinstance(identifier, dict) and identifier.get("type") == "Identifier":
            self._add_binding(identifier, BindingKind.CLASS, class_scope, identifier)
        self._visit(node.get("body"), class_scope)

    def _visit_MethodDefinition(self, node: Node, scope: Scope) -> None:
        if node.get("computed"):
            self._visit(node.get("key"), scope)
        self._visit(node.get("value"), scope)

    def _visit_Property(self, node: Node, scope: Scope) -> None:
        if node.get("computed"):
            self._visit(node.get("key"), scope)
        self._visit(node.get("value"), scope)

    def _visit_MemberExpression(self, node: Node, scope: Scope) -> None:
        self._visit(node.get("object"), scope)
        if node.get("computed"):
            self._visit(node.get("property"), scope)

    def _visit_LabeledStatement(self, node: Node, scope: Scope) -> None:
        self._visit(node.get("body"), scope)

    def _visit_BreakStatement(self, node: Node, scope: Scope) -> None:
        return

    _visit_ContinueStatement = _visit_BreakStatement
    _visit_MetaProperty = _visit_BreakStatement
    _visit_ExportAllDeclaration = _visit_BreakStatement

    def _visit_ImportDeclaration(self, node: Node, scope: Scope) -> None:
        assert self._root is not None
        for specifier in node.get("specifiers", []):
            local = specifier.get("local")
            if not isinstance(local, dict):
                continue
            with self._enter(specifier):
                self._add_binding(local, BindingKind.IMPORT, self._root, specifier)

    def _visit_ExportNamedDeclaration(self, node: Node, scope: Scope) -> None:
        declaration = node.get("declaration")
        if declaration is not None:
            self._visit(declaration, scope)
            self._reference_exported(node, declaration, scope)
        if node.get("source") is not None:
            return
        for specifier in node.get("specifiers", []):
            with self._enter(specifier):
                local = specifier.get("local")
                if isinstance(local, dict):
                    self._add_reference(local, scope)

    def _visit_ExportDefaultDeclaration(self, node: Node, scope: Scope) -> None:
        declaration = node.get("declaration")
        self._visit(declaration, scope)
        if isinstance(declaration, dict) and declaration.get("type") in {
            "FunctionDeclaration",
            "ClassDeclaration",
        }:
            self._reference_exported(node, declaration, scope)

    def _reference_exported(self, export: Node, declaration: Node, scope: Scope) -> None:
        """Exported declarations are referenced by the export statement itself."""
        site = Reference(node=export, ancestors=tuple(self._ancestors[:-1]))
        for identifier in declared_identifiers(declaration):
            self._pending.append((scope, identifier.get("name"), site, False))

    def _visit_AssignmentExpression(self, node: Node, scope: Scope) -> None:
        left = node.get("left")
        if node.get("operator") != "=" and isinstance(left, dict) and left.get("type") == "Identifier":
            # Compound assignments read their target before writing it.
            self._add_reference(left, scope)
        self._assign_target(left, scope)
        self._visit(node.get("right"), scope)

    def _visit_UpdateExpression(self, node: Node, scope: Scope) -> None:
        argument = node.get("argument")
        if isinstance(argument, dict) and argument.get("type") == "Identifier":
            self._add_reference(argument, scope)
            self._add_violation(argument, scope)
        else:
            self._visit(argument, scope)

    def _visit_ForStatement(self, node: Node, scope: Scope) -> None:
        loop_scope = self._new_scope(ScopeType.BLOCK, node, scope)
        for key in ("init", "test", "update", "body"):
            self._visit(node.get(key), loop_scope)

    def _visit_ForInStatement(self, node: Node, scope: Scope) -> None:
        loop_scope = self._new_scope(ScopeType.BLOCK, node, scope)
        left = node.get("left")
        if isinstance(left, dict) and left.get("type") == "VariableDeclaration":
            self._visit(left, loop_scope)
        else:
            self._assign_target(left, loop_scope)
        self._visit(node.get("right"), loop_scope)
        self._visit(node.get("body"), loop_scope)

    _visit_ForOfStatement = _visit_ForInStatement

    def _visit_SwitchStatement(self, node: Node, scope: Scope) -> None:
        self._visit(node.get("discriminant"), scope)
        switch_scope = self._new_scope(ScopeType.BLOCK, node, scope)
        self._visit(node.get("cases", []), switch_scope)

    def _visit_TryStatement(self, node: Node, scope: Scope) -> None:
        self._visit(node.get("block"), scope)
        self._visit(node.get("handler"), scope)
        self._visit(node.get("finalizer"), scope)

    def _visit_CatchClause(self, node: Node, scope: Scope) -> None:
        catch_scope = self._new_scope(ScopeType.CATCH, node, scope)
        param = node.get("param")
        if isinstance(param, dict):
            self._declare_pattern(
                param, BindingKind.CATCH_PARAMETER, catch_scope, param, catch_scope
            )
        self._visit_statements(node.get("body"), catch_scope)

    def _visit_CallExpression(self, node: Node, scope: Scope) -> None:
        callee = node.get("callee")
        if (
            isinstance(callee, dict)
            and callee.get("type") == "Identifier"
            and callee.get("name") == "eval"
        ):
            self._add_issue(
                code="EVAL_CALL",
                message="Use of eval makes static analysis unreliable.",
                node=callee,
            )
        self._visit(callee, scope)
        self._visit(node.get("arguments", []), scope)

    def _visit_WithStatement(self, node: Node, scope: Scope) -> None:
        self._add_issue(
            code="WITH_STATEMENT",
            message="`with` statement changes scope resolution dynamically.",
            node=node,
        )
        self._visit(node.get("object"), scope)
        self._visit(node.get("body"), scope)


def pattern_identifiers(pattern: Optional[Node]) -> List[Node]:
    """Identifiers bound by a declaration pattern, in source order."""
    found: List[Node] = []
    stack = [pattern]
    while stack:
        node = stack.pop()
        if not isinstance(node, dict):
            continue
        node_type = node.get("type")
        if node_type == "Identifier":
            found.append(node)
        elif node_type == "ObjectPattern":
            stack.extend(reversed(node.get("properties", [])))
        elif node_type == "Property":
            stack.append(node.get("value"))
        elif node_type == "ArrayPattern":
            stack.extend(reversed(node.get("elements", [])))
        elif node_type == "AssignmentPattern":
            stack.append(node.get("left"))
        elif node_type == "RestElement":
            stack.append(node.get("argument"))
    return found


def declared_identifiers(declaration: Node) -> List[Node]:
    """Identifiers a (possibly exported) declaration introduces."""
    node_type = declaration.get("type")
    if node_type in {"FunctionDeclaration", "ClassDeclaration"}:
        identifier = declaration.get("id")
        return [identifier] if isinstance(identifier, dict) else []
    if node_type == "VariableDeclaration":
        found: List[Node] = []
        for declarator in declaration.get("declarations", []):
            found.extend(pattern_identifiers(declarator.get("id")))
        return found
    return []


def analyze_bindings(ast: Node, *, source_name: str = "<input>") -> AnalysisResult:
    """
    Run scope and binding analysis on an ESTree AST.

    Every call crawls the tree from scratch; results from an earlier call are
    stale as soon as the tree is mutated.

    Args:
        ast: esprima-compatible AST (the `ast` of a `ParseResult`).
        source_name: Label for diagnostics and reporting.

    Returns:
        AnalysisResult with the scope tree, bindings and analysis issues.
    """
    analyzer = _BindingAnalyzer(source_name=source_name)
    return analyzer.analyze(ast)


__all__ = [
    "AnalysisIssue",
    "AnalysisResult",
    "Binding",
    "BindingKind",
    "FUNCTION_TYPES",
    "Reference",
    "Scope",
    "ScopeType",
    "SourcePosition",
    "analyze_bindings",
    "declared_identifiers",
    "pattern_identifiers",
]
