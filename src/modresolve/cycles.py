# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Cycle and conflict detection.

Cycle detection runs Tarjan's strongly-connected-component algorithm
twice:
1. Over header-level edges only. Every cyclic component there is a
   CircularDependencyError: the headers cannot be compiled in any order.
2. Over all edges. Cyclic components that contain no header-level cycle
   are closed only by implementation files and are reported as
   ImplementationOnlyCycle warnings.

Which edges are header-level is decided by CyclePolicy (see models.py).

Each reported cycle is the shortest cycle through the lexicographically
smallest module of its component, so reports are stable across runs.

Conflict detection finds module names that are distinct strings but
collide once normalized, or that map to the same namespace identifier.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from modresolve.errors import CircularDependencyError, DuplicateModuleError, ImplementationOnlyCycle
from modresolve.models import CyclePolicy, DependencyGraph, normalize_module_name
from modresolve.registry import ModuleRegistry

logger = logging.getLogger(__name__)

SuccessorFn = Callable[[str], List[str]]


@dataclass
class CycleReport:
    """Result of cycle detection.

    Attributes:
        errors: Header-level cycles (fatal).
        warnings: Implementation-only cycles (non-fatal).
    """

    errors: List[CircularDependencyError] = field(default_factory=list)
    warnings: List[ImplementationOnlyCycle] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


def strongly_connected_components(
    nodes: Iterable[str], successors: SuccessorFn
) -> List[List[str]]:
    """Tarjan's algorithm, iterative so deep graphs don't hit the recursion limit.

    Args:
        nodes: Nodes to visit, in the order roots are tried.
        successors: Function returning the successors of a node.

    Returns:
        Components in reverse topological order, each sorted by name.
    """
    index: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    on_stack: Set[str] = set()
    stack: List[str] = []
    components: List[List[str]] = []
    counter = 0

    for root in nodes:
        if root in index:
            continue

        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        work = [(root, iter(successors(root)))]

        while work:
            node, children = work[-1]
            descended = False
            for child in children:
                if child not in index:
                    index[child] = lowlink[child] = counter
                    counter += 1
                    stack.append(child)
                    on_stack.add(child)
                    work.append((child, iter(successors(child))))
                    descended = True
                    break
                if child in on_stack:
                    lowlink[node] = min(lowlink[node], index[child])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])

            if lowlink[node] == index[node]:
                component: List[str] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                components.append(sorted(component))

    return components


def is_cyclic(component: List[str], successors: SuccessorFn) -> bool:
    """Whether a component forms a cycle (size > 1 or a self-loop)."""
    if len(component) > 1:
        return True
    node = component[0]
    return node in successors(node)


def minimal_cycle(component: List[str], successors: SuccessorFn) -> Tuple[str, ...]:
    """Shortest cycle through the smallest member of a cyclic component.

    Breadth-first search from the start node, restricted to the component,
    visiting successors in name order.

    Returns:
        Cycle as an ordered tuple starting at the smallest member; the edge
        from the last element back to the first closes the cycle.
    """
    members = set(component)
    start = min(component)
    parents: Dict[str, Optional[str]] = {start: None}
    queue: List[str] = [start]

    while queue:
        current = queue.pop(0)
        for succ in sorted(successors(current)):
            if succ not in members:
                continue
            if succ == start:
                path = [current]
                while parents[path[-1]] is not None:
                    path.append(parents[path[-1]])  # type: ignore[arg-type]
                return tuple(reversed(path))
            if succ not in parents:
                parents[succ] = current
                queue.append(succ)

    # Unreachable for a strongly connected component
    return tuple(component)


def find_cycles(graph: DependencyGraph, policy: str = CyclePolicy.DEFAULT) -> CycleReport:
    """Find header-level cycles (errors) and implementation-only cycles (warnings).

    Args:
        graph: Dependency graph.
        policy: CyclePolicy value deciding which edges are header-level.

    Returns:
        CycleReport with errors and warnings sorted by cycle.
    """
    if policy not in CyclePolicy.CHOICES:
        raise ValueError(f"Unknown cycle policy '{policy}', expected one of {CyclePolicy.CHOICES}")

    report = CycleReport()
    nodes = graph.nodes()

    def header_successors(name: str) -> List[str]:
        return graph.successors(name, policy)

    def all_successors(name: str) -> List[str]:
        return graph.successors(name)

    header_cyclic: Set[str] = set()
    for component in strongly_connected_components(nodes, header_successors):
        if is_cyclic(component, header_successors):
            header_cyclic.update(component)
            report.errors.append(
                CircularDependencyError(minimal_cycle(component, header_successors))
            )

    for component in strongly_connected_components(nodes, all_successors):
        if not is_cyclic(component, all_successors):
            continue
        if header_cyclic.intersection(component):
            continue
        report.warnings.append(ImplementationOnlyCycle(minimal_cycle(component, all_successors)))

    report.errors.sort(key=lambda e: e.cycle)
    report.warnings.sort(key=lambda w: w.cycle)

    if report.errors or report.warnings:
        logger.info(
            f"Cycle detection ({policy}): {len(report.errors)} header-level cycles, "
            f"{len(report.warnings)} implementation-only cycles"
        )
    return report


def find_duplicate_names(registry: ModuleRegistry) -> List[DuplicateModuleError]:
    """Find distinct module names that still collide.

    Two names collide when they normalize to the same identifier
    ("Module-1" vs "module_1") or when their descriptors declare the same
    namespace identifier. Exact-name duplicates are rejected earlier by
    ModuleRegistry.register().

    Returns:
        One DuplicateModuleError per colliding module (the first name of each
        group, in sorted order, is treated as the original).
    """
    errors: List[DuplicateModuleError] = []
    reported: Set[Tuple[str, str]] = set()

    by_normalized: Dict[str, List[str]] = {}
    by_namespace: Dict[str, List[str]] = {}
    for name in registry.names():
        by_normalized.setdefault(normalize_module_name(name), []).append(name)
        by_namespace.setdefault(registry.lookup(name).namespace, []).append(name)

    def report_group(group: List[str], reason_fn: Callable[[str, str], str]) -> None:
        first = group[0]
        original = registry.lookup(first)
        for other in group[1:]:
            if (first, other) in reported:
                continue
            reported.add((first, other))
            errors.append(
                DuplicateModuleError(
                    other,
                    existing_location=original.source_location or "<unknown>",
                    duplicate_location=registry.lookup(other).source_location or "<unknown>",
                    reason=reason_fn(first, other),
                )
            )

    for normalized, group in sorted(by_normalized.items()):
        if len(group) > 1:
            report_group(
                group,
                lambda first, other, n=normalized: (
                    f"module '{other}' collides with '{first}' (both normalize to '{n}')"
                ),
            )

    for namespace, group in sorted(by_namespace.items()):
        if len(group) > 1:
            report_group(
                group,
                lambda first, other, ns=namespace: (
                    f"module '{other}' declares namespace '{ns}' already used by '{first}'"
                ),
            )

    return errors
