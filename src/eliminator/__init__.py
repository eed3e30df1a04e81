"""Dead-code elimination over esprima ASTs."""

from .errors import EliminationError, InvariantViolation, UnexpectedNodeError
from .liveness import IdentifierSet, LivenessClassifier, find_referenced_bindings
from .options import EliminationOptions
from .removable import find_all_removable_bindings, find_removable_bindings
from .sweep import EliminationResult, RemovedBinding, eliminate_dead_code

__all__ = [
    "EliminationError",
    "EliminationOptions",
    "EliminationResult",
    "IdentifierSet",
    "InvariantViolation",
    "LivenessClassifier",
    "RemovedBinding",
    "UnexpectedNodeError",
    "eliminate_dead_code",
    "find_all_removable_bindings",
    "find_referenced_bindings",
    "find_removable_bindings",
]
