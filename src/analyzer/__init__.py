"""Scope and binding analysis for ESTree JavaScript programs."""

from .scope_tracker import (
    AnalysisIssue,
    AnalysisResult,
    Binding,
    BindingKind,
    FUNCTION_TYPES,
    Reference,
    Scope,
    ScopeType,
    SourcePosition,
    analyze_bindings,
    declared_identifiers,
    pattern_identifiers,
)

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
