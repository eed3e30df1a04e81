"""
In-place editing helpers for ESTree dicts.

Nodes are located in their parents by identity, never by a cached index, so
several removals inside one container during a single pass stay correct.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple

from .errors import InvariantViolation, UnexpectedNodeError

Node = Dict[str, Any]

EXPORT_TYPES = frozenset({"ExportNamedDeclaration", "ExportDefaultDeclaration"})
_STATEMENT_SLOTS = frozenset({"body", "consequent", "alternate"})


def locate(parent: Node, child: Node) -> Optional[Tuple[str, Optional[int]]]:
    """Return `(key, index)` of `child` inside `parent`, or None if detached."""
    for key, value in parent.items():
        if value is child:
            return key, None
        if isinstance(value, list):
            for index, item in enumerate(value):
                if item is child:
                    return key, index
    return None


def is_attached(ancestors: Sequence[Node], node: Node) -> bool:
    """True while every link of the recorded chain down to `node` still holds."""
    chain = list(ancestors) + [node]
    return all(
        locate(parent, child) is not None for parent, child in zip(chain, chain[1:])
    )


def node_type(node: Optional[Node]) -> str:
    return node.get("type", "null") if isinstance(node, dict) else "null"


def remove_statement(ancestors: Sequence[Node], statement: Node) -> None:
    """Detach a statement; `ancestors` ends with its parent."""
    if not ancestors:
        raise InvariantViolation("cannot remove the program root", statement)
    parent = ancestors[-1]
    parent_type = node_type(parent)
    if parent_type in EXPORT_TYPES:
        remove_statement(ancestors[:-1], parent)
        return

    slot = locate(parent, statement)
    if slot is None:
        raise InvariantViolation(
            f"{node_type(statement)} is no longer attached to {parent_type}", statement
        )
    key, index = slot
    if index is not None:
        del parent[key][index]
        return
    if parent_type == "ForStatement" and key == "init":
        parent[key] = None
        return
    if key in _STATEMENT_SLOTS:
        # Single-statement positions (if branches, loop bodies) must stay filled.
        parent[key] = {"type": "EmptyStatement"}
        return
    raise UnexpectedNodeError(parent, f"while removing {node_type(statement)}")


def remove_declarator(ancestors: Sequence[Node], declarator: Node) -> None:
    """Drop a declarator, and its declaration once no declarator is left."""
    if not ancestors or node_type(ancestors[-1]) != "VariableDeclaration":
        raise UnexpectedNodeError(
            ancestors[-1] if ancestors else None, "as the parent of a VariableDeclarator"
        )
    declaration = ancestors[-1]
    slot = locate(declaration, declarator)
    if slot is None or slot[1] is None:
        raise InvariantViolation("declarator is no longer attached", declarator)
    del declaration[slot[0]][slot[1]]
    if not declaration.get("declarations"):
        remove_statement(ancestors[:-1], declaration)


def remove_specifier(ancestors: Sequence[Node], specifier: Node) -> None:
    """Drop an import specifier, and the import once it has none left."""
    declaration = ancestors[-1] if ancestors else None
    if node_type(declaration) != "ImportDeclaration":
        raise UnexpectedNodeError(declaration, f"as the parent of {node_type(specifier)}")
    specifiers = declaration.get("specifiers", [])
    slot = locate(declaration, specifier)
    if slot is None or slot[1] is None:
        raise InvariantViolation("import specifier is no longer attached", specifier)
    del specifiers[slot[1]]
    if not specifiers:
        remove_statement(ancestors[:-1], declaration)


__all__ = [
    "EXPORT_TYPES",
    "Node",
    "is_attached",
    "locate",
    "node_type",
    "remove_declarator",
    "remove_specifier",
    "remove_statement",
]
