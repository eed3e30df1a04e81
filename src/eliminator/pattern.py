"""
Structural removal of one bound identifier from a declaration pattern.

Removing `b` from `const {a, b: [c, b]} = x` must leave a pattern that still
binds `a` and `c` from the same positions: array slots are elided rather than
deleted, emptied nested patterns are dropped from their parent, and a
declarator whose whole pattern empties is removed outright.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from analyzer import FUNCTION_TYPES

from .errors import InvariantViolation, UnexpectedNodeError
from .nodes import Node, locate, node_type, remove_declarator

# Wrapper type -> key under which the bound part sits.
_WRAPPER_SLOTS = {
    "Property": "value",
    "AssignmentPattern": "left",
    "RestElement": "argument",
}

Pin = Callable[[Node, Node], bool]


def _elide(pattern: Node, element: Node) -> None:
    slot = locate(pattern, element)
    if slot is None or slot[0] != "elements":
        raise InvariantViolation("array pattern element is no longer attached", element)
    pattern["elements"][slot[1]] = None


def _delete_entry(pattern: Node, entry: Node) -> None:
    slot = locate(pattern, entry)
    if slot is None or slot[0] != "properties":
        raise InvariantViolation("object pattern entry is no longer attached", entry)
    del pattern["properties"][slot[1]]


def remove_pattern_target(
    ancestors: Sequence[Node], target: Node, *, pinned: Optional[Pin] = None
) -> None:
    """
    Remove `target` from the pattern it is declared in.

    Args:
        ancestors: Chain of nodes enclosing `target`, outermost first. It must
            reach at least the enclosing VariableDeclaration.
        target: The declaring Identifier (or an already emptied sub-pattern).
        pinned: Called with `(object_pattern, entry)` before deleting an entry
            from an object pattern; returning True leaves the pattern as is.

    Raises:
        UnexpectedNodeError: If the chain passes through a node that cannot
            appear inside a declaration pattern.
        InvariantViolation: If `target` is not inside a declaration.
    """
    node = target
    for depth in range(len(ancestors) - 1, -1, -1):
        parent = ancestors[depth]
        parent_type = node_type(parent)

        if parent_type in _WRAPPER_SLOTS:
            if parent.get(_WRAPPER_SLOTS[parent_type]) is not node:
                raise UnexpectedNodeError(parent, f"around {node_type(node)} in a pattern")
            node = parent
            continue

        if parent_type == "ArrayPattern":
            _elide(parent, node)
            if any(element is not None for element in parent.get("elements", [])):
                return
        elif parent_type == "ObjectPattern":
            if pinned is not None and pinned(parent, node):
                return
            _delete_entry(parent, node)
            if parent.get("properties"):
                return
        elif parent_type == "VariableDeclarator":
            remove_declarator(ancestors[:depth], parent)
            return
        elif parent_type in FUNCTION_TYPES or parent_type == "CatchClause":
            # Parameters keep their (possibly empty) pattern in place.
            return
        else:
            raise UnexpectedNodeError(parent, f"while removing {node_type(node)} from a pattern")
        node = parent

    raise InvariantViolation("pattern target is not inside a declaration", target)


__all__ = ["remove_pattern_target"]
