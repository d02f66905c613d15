# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Dependency graph builder.

Converts the descriptors of a ModuleRegistry into a DependencyGraph. Every
declared dependency becomes one edge tagged with:
- exported: the dependee is re-exported by the depender
- header_include: the depender's public header needs the dependee's header

Flow: ModuleRegistry -> DependencyGraphBuilder -> DependencyGraph

The builder is pure given a registry snapshot: it never mutates the
registry and building twice yields equal graphs.
"""

import logging
from typing import List

from modresolve.errors import UnresolvedDependencyError
from modresolve.models import DependencyEdge, DependencyGraph, ModuleDescriptor
from modresolve.registry import ModuleRegistry

logger = logging.getLogger(__name__)


class DependencyGraphBuilder:
    """Builds a DependencyGraph from a ModuleRegistry.

    Usage:
        builder = DependencyGraphBuilder()
        problems = builder.find_unresolved(registry)
        graph = builder.build(registry, skip_unresolved=bool(problems))
    """

    def find_unresolved(self, registry: ModuleRegistry) -> List[UnresolvedDependencyError]:
        """Find every declared dependency that is not registered.

        Args:
            registry: Registry to check.

        Returns:
            One UnresolvedDependencyError per (depender, dependee) pair,
            sorted by depender then dependee.
        """
        errors: List[UnresolvedDependencyError] = []
        for name in registry.names():
            descriptor = registry.lookup(name)
            for dep in descriptor.dependencies:
                if dep not in registry:
                    errors.append(UnresolvedDependencyError(depender=name, dependee=dep))
        return errors

    def build(self, registry: ModuleRegistry, skip_unresolved: bool = False) -> DependencyGraph:
        """Build the dependency graph.

        Args:
            registry: Registry snapshot to build from.
            skip_unresolved: Leave out edges to unregistered modules instead
                of failing. Used when the caller already reported them.

        Returns:
            DependencyGraph with one node per registered module.

        Raises:
            UnresolvedDependencyError: If a dependency is not registered and
                skip_unresolved is False.
        """
        graph = DependencyGraph()

        for name in registry.names():
            graph.add_node(name)

        for name in registry.names():
            descriptor = registry.lookup(name)
            for dep in descriptor.dependencies:
                if dep not in registry:
                    if skip_unresolved:
                        logger.debug(f"Skipping unresolved dependency {name} -> {dep}")
                        continue
                    raise UnresolvedDependencyError(depender=name, dependee=dep)
                graph.add_edge(self._make_edge(descriptor, dep))

        logger.debug(f"Built dependency graph: {len(graph)} modules, {len(graph.edges())} edges")
        return graph

    def _make_edge(self, descriptor: ModuleDescriptor, dependee: str) -> DependencyEdge:
        return DependencyEdge(
            depender=descriptor.name,
            dependee=dependee,
            exported=descriptor.exports(dependee),
            header_include=descriptor.header_includes(dependee),
        )
