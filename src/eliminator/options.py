"""Tunable behaviour of the dead-code eliminator."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EliminationOptions:
    """
    Switches for the sweep.

    Attributes:
        preserve_rest_siblings: Keep named properties of an object pattern whose
            rest element is live, since dropping them changes what the rest
            element collects. Disable to prune them like any other binding.
        remove_classes: Sweep unreferenced class declarations.
        remove_function_assignments: Also drop `name = function () {}`
            statements that assign to a dead binding.
    """

    preserve_rest_siblings: bool = True
    remove_classes: bool = True
    remove_function_assignments: bool = True


__all__ = ["EliminationOptions"]
