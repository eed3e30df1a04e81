"""
Reference graph over the bindings of a single scope.

Bindings are addressed by their position in `ReferenceGraph.bindings`; an edge
`owner -> target` in `edges[owner]` means a reference to `target` occurs inside
`owner`'s declaration site. A reference found outside every declaration site
of the scope is not an edge: it flags the target in `external` instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from analyzer import Binding, Reference, Scope


@dataclass
class ReferenceGraph:
    bindings: List[Binding]
    edges: List[List[int]]
    external: List[bool]

    def __len__(self) -> int:
        return len(self.bindings)


def _owners(site: Reference, containers: Dict[int, List[int]]) -> Optional[List[int]]:
    """Bindings whose declaration site is the innermost one enclosing `site`."""
    for ancestor in reversed(site.ancestors):
        owners = containers.get(id(ancestor))
        if owners is not None:
            return owners
    return None


def build_reference_graph(scope: Scope) -> ReferenceGraph:
    bindings = list(scope.bindings.values())
    # A destructuring declarator is the declaration site of several bindings;
    # a reference inside it is kept alive by any of them.
    containers: Dict[int, List[int]] = {}
    for index, binding in enumerate(bindings):
        containers.setdefault(id(binding.path), []).append(index)

    edges: List[List[int]] = [[] for _ in bindings]
    external = [False] * len(bindings)
    seen: Set[Tuple[int, int]] = set()
    for target, binding in enumerate(bindings):
        for site in binding.references:
            owners = _owners(site, containers)
            if owners is None:
                external[target] = True
                continue
            for owner in owners:
                if (owner, target) not in seen:
                    seen.add((owner, target))
                    edges[owner].append(target)

    return ReferenceGraph(bindings=bindings, edges=edges, external=external)


__all__ = ["ReferenceGraph", "build_reference_graph"]
