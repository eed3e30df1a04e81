"""
JavaScript parsing built on top of the Python `esprima` port.

`parse_js` returns the JSON-compatible ESTree AST (plain dicts and lists) that
the scope analyzer and the dead-code eliminator mutate in place. Modules are
the default source type since import/export declarations are the roots the
eliminator reasons about; scripts remain available for plain files.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import esprima

SOURCE_TYPES = ("module", "script")


@dataclass(frozen=True)
class ParseDiagnostic:
    """A recoverable parsing issue reported by esprima in tolerant mode."""

    description: str
    line: Optional[int]
    column: Optional[int]


@dataclass(frozen=True)
class ParseResult:
    """The parsed program plus metadata about the parse run."""

    ast: Optional[Dict[str, Any]]
    errors: List[ParseDiagnostic]
    source_name: str
    source_type: str

    @property
    def program(self) -> Dict[str, Any]:
        if self.ast is None:
            raise ValueError(f"{self.source_name}: parsing produced no AST")
        return self.ast

    def to_json(self) -> str:
        payload = {
            "ast": self.ast,
            "errors": [asdict(error) for error in self.errors],
            "source_name": self.source_name,
            "source_type": self.source_type,
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)


def parse_js(
    source: str,
    *,
    source_name: str = "<input>",
    tolerant: bool = True,
    source_type: str = "module",
) -> ParseResult:
    """
    Parse JavaScript source text into an ESTree dict.

    Args:
        source: Raw JavaScript source code.
        source_name: Label used for diagnostics (defaults to `<input>`).
        tolerant: When True, esprima performs error recovery instead of raising.
        source_type: `"module"` (default) or `"script"`.

    Returns:
        ParseResult containing the AST, recoverable errors, and metadata.

    Raises:
        ValueError: If `source_type` is not one of `SOURCE_TYPES`.
        esprima.Error: If parsing fails and `tolerant` is False.
    """
    if source_type not in SOURCE_TYPES:
        raise ValueError(f"Unknown source type {source_type!r}; expected one of {SOURCE_TYPES}")

    options = dict(loc=True, range=True, tolerant=tolerant)
    parse = esprima.parseModule if source_type == "module" else esprima.parseScript
    try:
        tree = parse(source, **options)
    except esprima.Error as exc:
        if not tolerant:
            raise
        # Tolerant mode still gives up on some inputs; report instead of raising.
        errors = [
            ParseDiagnostic(
                description=str(exc) or "Failed to parse source.",
                line=getattr(exc, "lineNumber", None),
                column=getattr(exc, "column", None),
            )
        ]
        return ParseResult(
            ast=None,
            errors=errors,
            source_name=source_name,
            source_type=source_type,
        )

    raw_ast = tree.toDict() if hasattr(tree, "toDict") else tree

    errors: List[ParseDiagnostic] = []
    if tolerant and isinstance(raw_ast, dict):
        for error in raw_ast.pop("errors", None) or []:
            errors.append(
                ParseDiagnostic(
                    description=error.get("description"),
                    line=error.get("lineNumber"),
                    column=error.get("column"),
                )
            )

    return ParseResult(
        ast=raw_ast,
        errors=errors,
        source_name=source_name,
        source_type=source_type,
    )


__all__ = ["ParseDiagnostic", "ParseResult", "SOURCE_TYPES", "parse_js"]
