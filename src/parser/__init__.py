"""Interfaces for parsing JavaScript source code into ESTree dicts."""

from .esprima_parser import ParseDiagnostic, ParseResult, SOURCE_TYPES, parse_js

__all__ = ["ParseDiagnostic", "ParseResult", "SOURCE_TYPES", "parse_js"]
