# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Build order planning.

Sorts the dependency graph topologically so every module is compiled
after the modules it depends on, and attaches the visibility tables that
build-script generators need for include paths.

Algorithm Overview:
1. Run cycle detection; a header-level cycle means no valid order exists
2. Collapse strongly connected components (implementation-only cycles)
   and order them with Kahn's algorithm, using a min-heap keyed on each
   component's smallest module name so independent modules are ordered
   lexicographically regardless of discovery order
3. Inside a cyclic component, every outside dependency is already placed;
   run Kahn over the internal edges and, when it stalls, release the
   smallest member whose header-level dependencies are all placed
4. Compute the visibility closure and include visibility of every module

Example: E1M1 <- Module1 <- Central yields [E1M1, Module1, Central].
"""

import heapq
import logging
from typing import Dict, List, Set, Tuple

from modresolve.cycles import find_cycles, strongly_connected_components
from modresolve.errors import CircularDependencyError
from modresolve.models import BuildPlan, CyclePolicy, DependencyGraph
from modresolve.visibility import compute_include_table, compute_visibility_table

logger = logging.getLogger(__name__)


class BuildOrderPlanner:
    """Produces a deterministic BuildPlan from a DependencyGraph.

    Usage:
        planner = BuildOrderPlanner(policy=CyclePolicy.HEADER_INCLUDES)
        plan = planner.plan(graph)
    """

    def __init__(self, policy: str = CyclePolicy.DEFAULT) -> None:
        if policy not in CyclePolicy.CHOICES:
            raise ValueError(
                f"Unknown cycle policy '{policy}', expected one of {CyclePolicy.CHOICES}"
            )
        self.policy = policy

    def plan(self, graph: DependencyGraph) -> BuildPlan:
        """Compute the build plan.

        Args:
            graph: Dependency graph to order.

        Returns:
            BuildPlan with order, visibility and include visibility.

        Raises:
            CircularDependencyError: If a header-level cycle exists. The
                first cycle (in sorted order) is raised.
        """
        report = find_cycles(graph, self.policy)
        if report.errors:
            raise report.errors[0]

        order = self._topological_order(graph)
        closures = compute_visibility_table(graph)
        includes = compute_include_table(graph, closures)

        logger.info(f"Planned build order for {len(order)} modules")
        return BuildPlan(order=tuple(order), visibility=closures, include_visibility=includes)

    def _topological_order(self, graph: DependencyGraph) -> List[str]:
        components = strongly_connected_components(graph.nodes(), graph.successors)
        component_of: Dict[str, int] = {}
        for index, component in enumerate(components):
            for name in component:
                component_of[name] = index

        waiting_on: Dict[int, Set[int]] = {index: set() for index in range(len(components))}
        unblocks: Dict[int, Set[int]] = {index: set() for index in range(len(components))}
        for edge in graph.edges():
            source = component_of[edge.depender]
            target = component_of[edge.dependee]
            if source != target:
                waiting_on[source].add(target)
                unblocks[target].add(source)

        # Components are sorted, so component[0] is the smallest member
        heap: List[Tuple[str, int]] = [
            (components[index][0], index)
            for index in range(len(components))
            if not waiting_on[index]
        ]
        heapq.heapify(heap)
        order: List[str] = []

        while heap:
            _, index = heapq.heappop(heap)
            order.extend(self._order_component(graph, components[index]))
            for dependent in unblocks[index]:
                waiting_on[dependent].discard(index)
                if not waiting_on[dependent]:
                    heapq.heappush(heap, (components[dependent][0], dependent))

        return order

    def _order_component(self, graph: DependencyGraph, members: List[str]) -> List[str]:
        """Order the members of one strongly connected component.

        Every dependency outside the component is already placed. Inside a
        cyclic component, Kahn's algorithm runs over the internal edges and,
        when it stalls, releases the smallest member whose header-level
        dependencies are all placed.
        """
        if len(members) == 1:
            return list(members)

        member_set = set(members)
        # Self-loops reaching this point are implementation-only and never block
        pending: Dict[str, Set[str]] = {
            name: {dep for dep in graph.successors(name) if dep in member_set and dep != name}
            for name in members
        }
        header_deps: Dict[str, Set[str]] = {
            name: {
                dep
                for dep in graph.successors(name, self.policy)
                if dep in member_set and dep != name
            }
            for name in members
        }

        heap: List[str] = [name for name in members if not pending[name]]
        heapq.heapify(heap)
        queued: Set[str] = set(heap)
        placed: Set[str] = set()
        order: List[str] = []

        while len(order) < len(members):
            if not heap:
                candidates = [
                    name
                    for name in members
                    if name not in placed and not header_deps[name] - placed
                ]
                if not candidates:
                    # find_cycles() should have caught this; fail rather than loop
                    raise CircularDependencyError(
                        tuple(name for name in members if name not in placed)
                    )
                released = candidates[0]
                logger.debug(
                    f"Breaking implementation-only cycle at '{released}' "
                    f"(waiting on {sorted(pending[released] - placed)})"
                )
                heapq.heappush(heap, released)
                queued.add(released)

            current = heapq.heappop(heap)
            if current in placed:
                continue
            placed.add(current)
            order.append(current)

            for dependent in graph.get_dependents(current):
                if dependent not in member_set or dependent in placed:
                    continue
                pending[dependent].discard(current)
                if not pending[dependent] and dependent not in queued:
                    heapq.heappush(heap, dependent)
                    queued.add(dependent)

        return order


def plan(graph: DependencyGraph, policy: str = CyclePolicy.DEFAULT) -> BuildPlan:
    """Compute a build plan with the given cycle policy."""
    return BuildOrderPlanner(policy).plan(graph)
