"""
Fixed-point sweep: remove dead declarations until nothing more changes.

Every pass re-analyses the whole tree, because removing one declaration can
leave the declarations it referenced without any remaining reader. Results of
an earlier pass are never reused.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from analyzer import (
    FUNCTION_TYPES,
    AnalysisResult,
    Binding,
    BindingKind,
    SourcePosition,
    analyze_bindings,
)

from .errors import EliminationError
from .liveness import IdentifierSet, LivenessClassifier
from .nodes import Node, is_attached, node_type, remove_specifier, remove_statement
from .options import EliminationOptions
from .pattern import remove_pattern_target
from .removable import find_all_removable_bindings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemovedBinding:
    name: str
    kind: BindingKind
    loc: SourcePosition
    pass_number: int


@dataclass(frozen=True)
class EliminationResult:
    passes: int
    removed: List[RemovedBinding] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed)

    @property
    def removed_names(self) -> List[str]:
        return [entry.name for entry in self.removed]


class _Sweeper:
    """One pass over the bindings of a single analysis snapshot."""

    def __init__(
        self,
        classifier: LivenessClassifier,
        options: EliminationOptions,
        pass_number: int,
    ) -> None:
        self._classifier = classifier
        self._options = options
        self._pass_number = pass_number
        self.removed: List[RemovedBinding] = []
        self.edits = 0

    def sweep(self, analysis: AnalysisResult) -> int:
        for binding in analysis.bindings:
            handler = getattr(self, f"_sweep_{node_type(binding.path)}", None)
            if handler is None:
                continue
            # An earlier removal in this pass may have taken the binding with it.
            if not is_attached(binding.ancestors, binding.node):
                continue
            if self._classifier.is_live(binding):
                continue
            if handler(binding):
                self._record(binding)
        return self.edits

    def _record(self, binding: Binding) -> None:
        self.edits += 1
        self.removed.append(
            RemovedBinding(
                name=binding.name,
                kind=binding.kind,
                loc=binding.loc,
                pass_number=self._pass_number,
            )
        )
        logger.debug(
            "pass %d: removed %s %s (line %s)",
            self._pass_number,
            binding.kind.value,
            binding.name,
            binding.loc.line,
        )

    def _sweep_ImportSpecifier(self, binding: Binding) -> bool:
        remove_specifier(binding.path_ancestors, binding.path)
        return True

    _sweep_ImportDefaultSpecifier = _sweep_ImportSpecifier
    _sweep_ImportNamespaceSpecifier = _sweep_ImportSpecifier

    def _sweep_VariableDeclarator(self, binding: Binding) -> bool:
        if binding.is_loop_iterator:
            return False
        remove_pattern_target(binding.ancestors, binding.node, pinned=self._classifier.pins)
        self._remove_function_assignments(binding)
        return True

    def _sweep_FunctionDeclaration(self, binding: Binding) -> bool:
        remove_statement(binding.path_ancestors, binding.path)
        self._remove_function_assignments(binding)
        return True

    def _sweep_ClassDeclaration(self, binding: Binding) -> bool:
        if not self._options.remove_classes:
            return False
        remove_statement(binding.path_ancestors, binding.path)
        self._remove_function_assignments(binding)
        return True

    def _remove_function_assignments(self, binding: Binding) -> None:
        """Drop `name = function () {}` statements left behind by a dead binding."""
        if not self._options.remove_function_assignments:
            return
        for site in binding.constant_violations:
            if len(site.ancestors) < 3:
                continue
            statement, assignment = site.ancestors[-2], site.ancestors[-1]
            if (
                node_type(assignment) != "AssignmentExpression"
                or assignment.get("operator") != "="
                or assignment.get("left") is not site.node
                or node_type(assignment.get("right")) not in FUNCTION_TYPES
            ):
                continue
            if node_type(statement) != "ExpressionStatement":
                continue
            if not is_attached(site.ancestors, site.node):
                continue
            remove_statement(site.ancestors[:-2], statement)
            self.edits += 1


def eliminate_dead_code(
    program: Node,
    candidates: Optional[IdentifierSet] = None,
    *,
    options: Optional[EliminationOptions] = None,
    source_name: str = "<input>",
) -> EliminationResult:
    """
    Remove unreferenced declarations from `program` in place.

    Imports, variables (including single entries of destructuring patterns),
    function and class declarations are removed when nothing outside a closed
    reference cycle reads them. Passes repeat until one removes nothing.

    Args:
        program: The `Program` dict of an esprima AST; mutated in place.
        candidates: If given, only declarations whose declaring identifier is
            in this set may be removed. Usually built with
            `find_referenced_bindings` before some other transformation.
        options: Sweep switches, see `EliminationOptions`.
        source_name: Label passed through to the analyzer.

    Returns:
        EliminationResult with the number of passes and the removed bindings.

    Raises:
        EliminationError: If `program` is not a Program node, or a removal
            met a tree shape it cannot handle.
    """
    if node_type(program) != "Program":
        raise EliminationError(
            f"expected a Program node, got {node_type(program)}", program
        )
    options = options or EliminationOptions()

    removed: List[RemovedBinding] = []
    passes = 0
    while True:
        passes += 1
        analysis = analyze_bindings(program, source_name=source_name)
        removable = find_all_removable_bindings(analysis)
        classifier = LivenessClassifier(analysis, removable, candidates, options)
        sweeper = _Sweeper(classifier, options, passes)
        edits = sweeper.sweep(analysis)
        removed.extend(sweeper.removed)
        logger.debug(
            "%s: pass %d removed %d declaration(s), %d edit(s)",
            source_name,
            passes,
            len(sweeper.removed),
            edits,
        )
        if not edits:
            break

    return EliminationResult(passes=passes, removed=removed)


__all__ = ["EliminationResult", "RemovedBinding", "eliminate_dead_code"]
