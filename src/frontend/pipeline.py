"""
Front-end integration utilities stitching together parsing, dead-code
elimination and scope analysis.

The `run_frontend` function accepts raw JavaScript source, invokes the parser to
obtain an AST, optionally strips unreferenced declarations from it, and then
analyses the resulting tree. Callers get the mutated AST, the final scope
snapshot and the elimination report in one result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

from analyzer import AnalysisIssue, AnalysisResult, analyze_bindings
from eliminator import (
    EliminationOptions,
    EliminationResult,
    IdentifierSet,
    eliminate_dead_code,
)
from parser import ParseDiagnostic, ParseResult, parse_js


@dataclass(frozen=True)
class FrontEndResult:
    """Combined output from the parsing, elimination and analysis pipeline."""

    parse: ParseResult
    analysis: Optional[AnalysisResult]
    elimination: Optional[EliminationResult] = None

    @property
    def has_ast(self) -> bool:
        return self.parse.ast is not None

    @property
    def diagnostics(self) -> List[Union[ParseDiagnostic, AnalysisIssue]]:
        """Aggregate diagnostics from parse recovery and semantic issues."""
        diagnostics: List[Union[ParseDiagnostic, AnalysisIssue]] = list(self.parse.errors)
        if self.analysis:
            diagnostics.extend(self.analysis.issues)
        return diagnostics


def run_frontend(
    source: str,
    *,
    source_name: str = "<input>",
    tolerant: bool = True,
    source_type: str = "module",
    eliminate: bool = True,
    candidates: Optional[IdentifierSet] = None,
    options: Optional[EliminationOptions] = None,
) -> FrontEndResult:
    """
    Parse JavaScript input, remove dead declarations and analyse the result.

    Args:
        source: Raw JavaScript source text.
        source_name: Identifier used in diagnostics, e.g. file path.
        tolerant: Forwarded to parser; when True esprima attempts recovery.
        source_type: `"module"` or `"script"` to control parsing of import/export.
        eliminate: Toggle to skip dead-code elimination and only analyse.
        candidates: Forwarded to `eliminate_dead_code`.
        options: Forwarded to `eliminate_dead_code`.

    Returns:
        FrontEndResult whose `parse.ast` reflects any removals performed.
    """
    parse_result = parse_js(
        source,
        source_name=source_name,
        tolerant=tolerant,
        source_type=source_type,
    )
    if parse_result.ast is None:
        return FrontEndResult(parse=parse_result, analysis=None)

    elimination: Optional[EliminationResult] = None
    if eliminate:
        elimination = eliminate_dead_code(
            parse_result.ast,
            candidates,
            options=options,
            source_name=source_name,
        )

    analysis_result = analyze_bindings(parse_result.ast, source_name=source_name)
    return FrontEndResult(
        parse=parse_result, analysis=analysis_result, elimination=elimination
    )


__all__ = ["FrontEndResult", "run_frontend"]
