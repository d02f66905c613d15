# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Export visibility checking.

A module's public header may reference another module's types only if
that module is in its visibility closure: the modules it exports, plus
whatever those modules export in turn. Non-exported edges stop the
closure. Implementation files see more: every direct dependency plus each
dependency's closure.

Forward-declaring a type in the public header and including the owning
module's header only in the implementation file is the escape hatch for
depending on a non-exported module. It stops working once the header
uses members of the type inline.
"""

import logging
from typing import Dict, FrozenSet, List, Optional, Set

from modresolve.errors import LeakedPrivateDependencyError
from modresolve.models import DependencyGraph, ModuleDescriptor

logger = logging.getLogger(__name__)


def visibility_closure(graph: DependencyGraph, name: str) -> FrozenSet[str]:
    """Modules whose types `name` may legally reference in its public interface.

    Performs a breadth-first traversal following only exported edges.

    Args:
        graph: Dependency graph.
        name: Module to compute the closure for.

    Returns:
        Reachable module names, not including `name` itself unless it is
        re-exported back through a cycle.
    """
    visited: Set[str] = set()
    queue: List[str] = [edge.dependee for edge in graph.get_dependencies(name) if edge.exported]

    while queue:
        current = queue.pop(0)
        if current in visited:
            continue
        visited.add(current)
        for edge in graph.get_dependencies(current):
            if edge.exported and edge.dependee not in visited:
                queue.append(edge.dependee)

    visited.discard(name)
    return frozenset(visited)


def include_visibility(
    graph: DependencyGraph,
    name: str,
    closures: Optional[Dict[str, FrozenSet[str]]] = None,
) -> FrozenSet[str]:
    """Modules whose headers `name`'s implementation files may include.

    Every direct dependency (exported or not) is visible, plus the
    visibility closure of each one.

    Args:
        graph: Dependency graph.
        name: Module to compute include visibility for.
        closures: Optional precomputed visibility closures by module name.
    """
    visible: Set[str] = set()
    for edge in graph.get_dependencies(name):
        visible.add(edge.dependee)
        if closures is not None and edge.dependee in closures:
            visible.update(closures[edge.dependee])
        else:
            visible.update(visibility_closure(graph, edge.dependee))
    visible.discard(name)
    return frozenset(visible)


def check_public_interface(
    descriptor: ModuleDescriptor, graph: DependencyGraph
) -> List[LeakedPrivateDependencyError]:
    """Check every header reference of a module against its visibility closure.

    Args:
        descriptor: Module whose public header is checked.
        graph: Dependency graph containing the module.

    Returns:
        One LeakedPrivateDependencyError per offending reference. Empty if
        the public interface is clean.
    """
    closure = visibility_closure(graph, descriptor.name)
    leaks: List[LeakedPrivateDependencyError] = []

    for ref in descriptor.header_references:
        if not ref.requires_full_visibility:
            continue
        if ref.module == descriptor.name or ref.module in closure:
            continue
        logger.debug(
            f"Leaked dependency: {descriptor.name} header references {ref.module} ({ref.kind})"
        )
        leaks.append(
            LeakedPrivateDependencyError(
                module=descriptor.name, referenced=ref.module, symbol=ref.symbol
            )
        )

    return leaks


def compute_visibility_table(graph: DependencyGraph) -> Dict[str, FrozenSet[str]]:
    """Visibility closure of every module in the graph."""
    return {name: visibility_closure(graph, name) for name in graph.nodes()}


def compute_include_table(
    graph: DependencyGraph, closures: Optional[Dict[str, FrozenSet[str]]] = None
) -> Dict[str, FrozenSet[str]]:
    """Include visibility of every module in the graph."""
    if closures is None:
        closures = compute_visibility_table(graph)
    return {name: include_visibility(graph, name, closures) for name in graph.nodes()}
