"""
Exceptions raised by the dead-code eliminator.

Every error carries the offending node and appends its source location to the
message. None of them is recoverable: they signal either a malformed input
tree or a node shape the removal rules do not cover, and a pass that raises
may already have applied earlier removals.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


def format_location(node: Optional[Dict[str, Any]]) -> str:
    if not node or not isinstance(node, dict):
        return ""
    loc_meta = node.get("loc") or {}
    start = loc_meta.get("start") or {}
    line = start.get("line")
    column = start.get("column")
    if line is None or column is None:
        return ""
    return f" (line {line}, column {column})"


class EliminationError(RuntimeError):
    """Base class for failures while eliminating dead code."""

    def __init__(self, message: str, node: Optional[Dict[str, Any]] = None):
        super().__init__(f"{message}{format_location(node)}")
        self.node = node


class UnexpectedNodeError(EliminationError):
    """A removal rule met a node shape it has no rule for."""

    def __init__(self, node: Optional[Dict[str, Any]], context: str = ""):
        node_type = node.get("type") if isinstance(node, dict) else "null"
        suffix = f" {context}" if context else ""
        super().__init__(f"unexpected node type: {node_type}{suffix}", node)
        self.node_type = node_type


class InvariantViolation(EliminationError):
    """The caller broke a contract, e.g. mutated the tree without re-crawling."""


__all__ = [
    "EliminationError",
    "InvariantViolation",
    "UnexpectedNodeError",
    "format_location",
]
