"""
Liveness of bindings: whether a binding must stay in the program.

A binding is live when something outside a removable cycle still reads it.
Function and class declarations that only mention themselves are not live.
Named properties of an object pattern whose rest element is live are pinned,
because removing them would change which keys the rest object receives.
"""

from __future__ import annotations

from typing import Collection, Dict, Iterable, Iterator, List, Optional

from analyzer import AnalysisResult, Binding, analyze_bindings

from .nodes import Node, node_type
from .options import EliminationOptions
from .removable import find_all_removable_bindings

SWEPT_DECLARATIONS = frozenset(
    {
        "ImportSpecifier",
        "ImportDefaultSpecifier",
        "ImportNamespaceSpecifier",
        "VariableDeclarator",
        "FunctionDeclaration",
        "ClassDeclaration",
    }
)
_SELF_CONTAINED = frozenset({"FunctionDeclaration", "ClassDeclaration"})


class IdentifierSet:
    """
    A set of declaring Identifier nodes, compared by identity.

    Two identifiers with the same name in different scopes are different
    members; an Identifier from a re-parsed copy of the source is never a
    member of a set built from the original tree.
    """

    def __init__(self, identifiers: Iterable[Node] = ()) -> None:
        self._nodes: Dict[int, Node] = {}
        for identifier in identifiers:
            self.add(identifier)

    def add(self, identifier: Node) -> None:
        self._nodes[id(identifier)] = identifier

    def __contains__(self, identifier: object) -> bool:
        return self._nodes.get(id(identifier)) is identifier

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    def __len__(self) -> int:
        return len(self._nodes)

    def names(self) -> List[str]:
        return [identifier.get("name") for identifier in self]

    def __repr__(self) -> str:
        return f"IdentifierSet({self.names()!r})"


def is_referenced(binding: Binding, removable: Collection[Binding] = ()) -> bool:
    if binding in removable:
        return False
    if not binding.referenced:
        return False
    if node_type(binding.path) in _SELF_CONTAINED:
        sites = binding.references + binding.constant_violations
        return not all(site.is_within(binding.path) for site in sites)
    return True


class LivenessClassifier:
    """Decides which swept declarations stay, for one analysis snapshot."""

    def __init__(
        self,
        analysis: AnalysisResult,
        removable: Collection[Binding],
        candidates: Optional[IdentifierSet] = None,
        options: Optional[EliminationOptions] = None,
    ) -> None:
        self._analysis = analysis
        self._removable = removable
        self._candidates = candidates
        self._options = options or EliminationOptions()

    def is_live(self, binding: Binding) -> bool:
        if self._candidates is not None and binding.node not in self._candidates:
            return True
        if is_referenced(binding, self._removable):
            return True
        return self._options.preserve_rest_siblings and self._pinned_by_rest(binding)

    def pins(self, pattern: Node, entry: Node) -> bool:
        """True if removing `entry` from object pattern `pattern` is not allowed."""
        return (
            self._options.preserve_rest_siblings
            and node_type(entry) != "RestElement"
            and self.has_live_rest(pattern)
        )

    def has_live_rest(self, pattern: Node) -> bool:
        properties = pattern.get("properties") or []
        if not properties or node_type(properties[-1]) != "RestElement":
            return False
        rest_binding = self._analysis.binding_for(properties[-1].get("argument"))
        if rest_binding is None:
            return True
        return self.is_live(rest_binding)

    def _pinned_by_rest(self, binding: Binding) -> bool:
        chain = binding.ancestors
        depth = len(chain) - 1
        while depth >= 0 and node_type(chain[depth]) == "AssignmentPattern":
            depth -= 1
        if depth < 1 or node_type(chain[depth]) != "Property":
            return False
        pattern = chain[depth - 1]
        return node_type(pattern) == "ObjectPattern" and self.has_live_rest(pattern)


def find_referenced_bindings(
    program: Node,
    *,
    options: Optional[EliminationOptions] = None,
    source_name: str = "<input>",
) -> IdentifierSet:
    """
    Declaring identifiers of every live import, variable, function and class.

    The result is meant to be fed back to `eliminate_dead_code` as its
    candidate set after further transformations, so that only declarations
    that have become unreferenced since this call get removed.
    """
    analysis = analyze_bindings(program, source_name=source_name)
    classifier = LivenessClassifier(
        analysis, find_all_removable_bindings(analysis), options=options
    )
    return IdentifierSet(
        binding.node
        for binding in analysis.bindings
        if node_type(binding.path) in SWEPT_DECLARATIONS and classifier.is_live(binding)
    )


__all__ = [
    "IdentifierSet",
    "LivenessClassifier",
    "SWEPT_DECLARATIONS",
    "find_referenced_bindings",
    "is_referenced",
]
