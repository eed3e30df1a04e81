"""
Closed reference cycles: bindings that only keep each other alive.

`find_removable_bindings` reports the bindings of a scope that may be deleted
because every reference to them comes from inside a cycle nothing else reaches:
a function calling itself, two functions calling each other, and so on.

The computation runs in three steps:

1. Exclusion. A binding that is re-assigned, heads a for-in/for-of loop, or is
   referenced from outside every declaration of the scope is kept, and so is
   everything it references, transitively.
2. Up to three remaining candidates are resolved with a reachability closure.
3. Larger candidate sets go through Tarjan's strongly connected components.

Both paths apply the same rule: a singleton component is removable iff it
references itself, a larger component iff no other candidate references it.
A binding nobody references is not part of any cycle and is left to the
ordinary unreferenced-binding rule of the sweep.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Sequence, Set

from analyzer import AnalysisResult, Binding, Scope

from .graph import ReferenceGraph, build_reference_graph

logger = logging.getLogger(__name__)

SMALL_CANDIDATE_LIMIT = 3


def find_removable_bindings(scope: Scope) -> Set[Binding]:
    """Bindings of `scope` that form closed cycles with no external references."""
    graph = build_reference_graph(scope)
    if not len(graph):
        return set()

    excluded = _exclude(graph)
    candidates = [index for index in range(len(graph)) if not excluded[index]]
    if not candidates:
        return set()

    if len(candidates) <= SMALL_CANDIDATE_LIMIT:
        removable = _closed_components_small(candidates, graph.edges)
    else:
        removable = _closed_components_tarjan(candidates, graph.edges)

    logger.debug(
        "scope %s: %d binding(s), %d candidate(s), %d removable",
        scope.scope_id,
        len(graph),
        len(candidates),
        len(removable),
    )
    return {graph.bindings[index] for index in removable}


def find_all_removable_bindings(analysis: AnalysisResult) -> Set[Binding]:
    """Union of `find_removable_bindings` over every scope of an analysis."""
    removable: Set[Binding] = set()
    for scope in analysis.flatten_scopes():
        removable |= find_removable_bindings(scope)
    return removable


def _exclude(graph: ReferenceGraph) -> List[bool]:
    excluded = [False] * len(graph)
    queue: List[int] = []
    for index, binding in enumerate(graph.bindings):
        if binding.constant_violations or binding.is_loop_iterator or graph.external[index]:
            excluded[index] = True
            queue.append(index)

    # Whatever a kept binding references is kept too.
    while queue:
        index = queue.pop()
        for target in graph.edges[index]:
            if not excluded[target]:
                excluded[target] = True
                queue.append(target)
    return excluded


def _closed_components_small(
    candidates: Sequence[int], edges: Sequence[Sequence[int]]
) -> List[int]:
    members = set(candidates)
    direct = {
        (source, target)
        for source in candidates
        for target in edges[source]
        if target in members
    }

    reach = set(direct)
    for middle in candidates:
        for source in candidates:
            if (source, middle) not in reach:
                continue
            for target in candidates:
                if (middle, target) in reach:
                    reach.add((source, target))

    removable: List[int] = []
    assigned: Set[int] = set()
    for node in candidates:
        if node in assigned:
            continue
        component = {
            other
            for other in candidates
            if other == node or ((node, other) in reach and (other, node) in reach)
        }
        assigned |= component
        if len(component) == 1:
            if (node, node) in direct:
                removable.append(node)
        elif not any(
            source not in component and target in component for source, target in direct
        ):
            removable.extend(sorted(component))
    return removable


def _closed_components_tarjan(
    candidates: Sequence[int], edges: Sequence[Sequence[int]]
) -> List[int]:
    size = len(edges)
    is_candidate = [False] * size
    for node in candidates:
        is_candidate[node] = True

    def successors(node: int) -> List[int]:
        return [target for target in edges[node] if is_candidate[target]]

    components = strongly_connected_components(candidates, successors, size)
    component_of = [-1] * size
    for component_id, component in enumerate(components):
        for node in component:
            component_of[node] = component_id

    has_incoming = [False] * len(components)
    for source in candidates:
        for target in successors(source):
            if component_of[source] != component_of[target]:
                has_incoming[component_of[target]] = True

    removable: List[int] = []
    for component_id, component in enumerate(components):
        if len(component) == 1:
            node = component[0]
            if node in edges[node]:
                removable.append(node)
        elif not has_incoming[component_id]:
            removable.extend(component)
    return removable


def strongly_connected_components(
    nodes: Iterable[int], successors: Callable[[int], List[int]], size: int
) -> List[List[int]]:
    """
    Tarjan's algorithm over integer nodes `0 <= node < size`.

    Iterative, so long reference chains do not hit the recursion limit.
    Components are returned in reverse topological order.
    """
    index = [-1] * size
    lowlink = [0] * size
    on_stack = [False] * size
    stack: List[int] = []
    components: List[List[int]] = []
    counter = 0

    for root in nodes:
        if index[root] != -1:
            continue
        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack[root] = True
        work = [(root, iter(successors(root)))]

        while work:
            node, pending = work[-1]
            for successor in pending:
                if index[successor] == -1:
                    index[successor] = lowlink[successor] = counter
                    counter += 1
                    stack.append(successor)
                    on_stack[successor] = True
                    work.append((successor, iter(successors(successor))))
                    break
                if on_stack[successor]:
                    lowlink[node] = min(lowlink[node], index[successor])
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index[node]:
                    component: List[int] = []
                    while True:
                        member = stack.pop()
                        on_stack[member] = False
                        component.append(member)
                        if member == node:
                            break
                    components.append(component)

    return components


__all__ = [
    "SMALL_CANDIDATE_LIMIT",
    "find_all_removable_bindings",
    "find_removable_bindings",
    "strongly_connected_components",
]
