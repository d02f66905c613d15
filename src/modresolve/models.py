# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for module resolution.

This module defines the foundational data structures used throughout the resolver:
- ReferenceKind: How a public header refers to another module's type
- CyclePolicy: Which edges count as header-level for cycle detection
- HeaderReference: One reference from a module's public header to another module
- ModuleDescriptor: Parsed representation of one module
- DependencyEdge: A tagged depends-on edge
- DependencyGraph: Directed graph of module dependencies
- BuildPlan: Deterministic build order plus visibility tables

All models use JSON-compatible primitives for serialization.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from modresolve.errors import InvalidDescriptorError

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE_PREFIX = "CPM"

_NON_ALNUM = re.compile(r"[^0-9A-Za-z]+")
_FORBIDDEN_NAME_CHARS = re.compile(r"[\s/\\]")


class ReferenceKind:
    """Ways a public header can refer to a type from another module.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    FULL_INCLUDE = "full_include"  # #include "other/module.hpp"
    FORWARD_DECLARE = "forward_declare"  # namespace OTHER_NS { class Foo; }

    ALL = (FULL_INCLUDE, FORWARD_DECLARE)


class CyclePolicy:
    """Which dependency edges are header-level for cycle detection.

    EXPORTED: only exported edges.
    HEADER_INCLUDES: exported edges and edges backed by a full header include.
    ALL: every edge; any cycle is fatal.
    """

    EXPORTED = "exported"
    HEADER_INCLUDES = "header_includes"
    ALL = "all"

    CHOICES = (EXPORTED, HEADER_INCLUDES, ALL)
    DEFAULT = HEADER_INCLUDES


def normalize_module_name(name: str) -> str:
    """Fold a module name to the form used for collision checks.

    "Module-1", "module_1" and "MODULE.1" all normalize to "module_1".
    """
    return _NON_ALNUM.sub("_", name).strip("_").lower()


def derive_namespace(name: str, prefix: str = DEFAULT_NAMESPACE_PREFIX) -> str:
    """Build the namespace identifier for a module name.

    Example: derive_namespace("central_exp") -> "CPM_CENTRAL_EXP_NS"
    """
    core = normalize_module_name(name).upper()
    if prefix:
        return f"{prefix}_{core}_NS"
    return f"{core}_NS"


@dataclass(frozen=True)
class HeaderReference:
    """A reference from a module's public header to another module's type.

    A forward declaration lets a header name a type without including the
    owning module's header. Once the header also uses members of that type
    in an inline body (`inline_use`), the full definition is needed again.
    """

    module: str
    kind: str = ReferenceKind.FULL_INCLUDE
    symbol: Optional[str] = None
    inline_use: bool = False

    def __post_init__(self) -> None:
        if self.kind not in ReferenceKind.ALL:
            raise InvalidDescriptorError(
                f"invalid header reference kind '{self.kind}' for module '{self.module}'"
            )

    @property
    def requires_full_visibility(self) -> bool:
        """Whether this reference needs the referenced module's header."""
        return self.kind == ReferenceKind.FULL_INCLUDE or self.inline_use

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {"module": self.module, "kind": self.kind}
        if self.symbol is not None:
            result["symbol"] = self.symbol
        if self.inline_use:
            result["inline_use"] = self.inline_use
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HeaderReference":
        """Deserialize from JSON-compatible dict."""
        return cls(
            module=data["module"],
            kind=data.get("kind", ReferenceKind.FULL_INCLUDE),
            symbol=data.get("symbol"),
            inline_use=data.get("inline_use", False),
        )


@dataclass(frozen=True)
class ModuleDescriptor:
    """Parsed representation of one module.

    Dependencies are the modules the implementation uses; exported
    dependencies are the subset whose types appear in the public interface.
    Collections are normalized to sorted tuples so two descriptors built from
    the same input compare equal regardless of declaration order.

    Raises:
        InvalidDescriptorError: If the name is malformed or an exported
            dependency is not also a dependency.
    """

    name: str
    source_location: str = ""
    dependencies: Tuple[str, ...] = ()
    exported_dependencies: Tuple[str, ...] = ()
    header_references: Tuple[HeaderReference, ...] = ()
    namespace: str = ""

    def __post_init__(self) -> None:
        validate_module_name(self.name)

        deps = tuple(sorted(set(self.dependencies)))
        exported = tuple(sorted(set(self.exported_dependencies)))
        for dep in deps:
            validate_module_name(dep)

        missing = [dep for dep in exported if dep not in deps]
        if missing:
            raise InvalidDescriptorError(
                f"module '{self.name}' exports {missing} without depending on them",
                module=self.name,
            )

        refs = tuple(
            sorted(
                set(self.header_references),
                key=lambda r: (r.module, r.kind, r.symbol or "", r.inline_use),
            )
        )

        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "dependencies", deps)
        object.__setattr__(self, "exported_dependencies", exported)
        object.__setattr__(self, "header_references", refs)
        if not self.namespace:
            object.__setattr__(self, "namespace", derive_namespace(self.name))

    def exports(self, name: str) -> bool:
        """Whether `name` is re-exported through this module's public interface."""
        return name in self.exported_dependencies

    def header_includes(self, name: str) -> bool:
        """Whether the public header needs the full header of module `name`."""
        return any(
            ref.module == name and ref.requires_full_visibility for ref in self.header_references
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {
            "name": self.name,
            "namespace": self.namespace,
            "dependencies": list(self.dependencies),
            "exported_dependencies": list(self.exported_dependencies),
        }
        if self.source_location:
            result["source_location"] = self.source_location
        if self.header_references:
            result["header_references"] = [ref.to_dict() for ref in self.header_references]
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleDescriptor":
        """Deserialize from JSON-compatible dict."""
        return cls(
            name=data["name"],
            source_location=data.get("source_location", ""),
            dependencies=tuple(data.get("dependencies", ())),
            exported_dependencies=tuple(data.get("exported_dependencies", ())),
            header_references=tuple(
                HeaderReference.from_dict(ref) for ref in data.get("header_references", ())
            ),
            namespace=data.get("namespace", ""),
        )


def validate_module_name(name: str) -> None:
    """Validate a module name.

    Names must be non-empty and must not contain whitespace, path
    separators, or control characters.

    Raises:
        InvalidDescriptorError: If the name is malformed.
    """
    if not isinstance(name, str) or not name:
        raise InvalidDescriptorError(f"module name must be a non-empty string, got {name!r}")
    if any(ord(c) < 32 for c in name):
        raise InvalidDescriptorError(f"module name contains control characters: {name!r}")
    if _FORBIDDEN_NAME_CHARS.search(name):
        raise InvalidDescriptorError(
            f"module name must not contain whitespace or path separators: {name!r}"
        )
    if not _NON_ALNUM.sub("", name):
        raise InvalidDescriptorError(f"module name has no alphanumeric characters: {name!r}")


@dataclass(frozen=True)
class DependencyEdge:
    """A depends-on edge from `depender` to `dependee`.

    exported: dependee is re-exported through depender's public interface.
    header_include: depender's public header needs dependee's full header.
    """

    depender: str
    dependee: str
    exported: bool = False
    header_include: bool = False

    def is_header_level(self, policy: str = CyclePolicy.DEFAULT) -> bool:
        """Whether this edge is a header-to-header dependency under `policy`."""
        if policy == CyclePolicy.ALL:
            return True
        if policy == CyclePolicy.EXPORTED:
            return self.exported
        return self.exported or self.header_include

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "depender": self.depender,
            "dependee": self.dependee,
            "exported": self.exported,
            "header_include": self.header_include,
        }


class DependencyGraph:
    """Directed graph of depends-on edges between registered modules.

    Edges are keyed by (depender, dependee); adjacency is kept in both
    directions for dependency and dependent queries. All query results are
    sorted by module name so traversals are deterministic.

    Thread Safety:
    - NOT thread-safe: built once by DependencyGraphBuilder, then read-only.
    """

    def __init__(self) -> None:
        """Initialize empty graph."""
        self._nodes: Set[str] = set()
        # depender -> dependee -> edge
        self._dependencies: Dict[str, Dict[str, DependencyEdge]] = {}
        # dependee -> set of dependers
        self._dependents: Dict[str, Set[str]] = {}

    def add_node(self, name: str) -> None:
        """Add a module node."""
        self._nodes.add(name)
        self._dependencies.setdefault(name, {})
        self._dependents.setdefault(name, set())

    def add_edge(self, edge: DependencyEdge) -> None:
        """Add an edge, adding both endpoints as nodes.

        A repeated (depender, dependee) pair merges its tags.
        """
        self.add_node(edge.depender)
        self.add_node(edge.dependee)

        existing = self._dependencies[edge.depender].get(edge.dependee)
        if existing is not None:
            edge = DependencyEdge(
                depender=edge.depender,
                dependee=edge.dependee,
                exported=existing.exported or edge.exported,
                header_include=existing.header_include or edge.header_include,
            )
        self._dependencies[edge.depender][edge.dependee] = edge
        self._dependents[edge.dependee].add(edge.depender)

    def nodes(self) -> List[str]:
        """All module names, sorted."""
        return sorted(self._nodes)

    def edges(self) -> List[DependencyEdge]:
        """All edges, sorted by (depender, dependee)."""
        return [
            self._dependencies[depender][dependee]
            for depender in sorted(self._dependencies)
            for dependee in sorted(self._dependencies[depender])
        ]

    def get_edge(self, depender: str, dependee: str) -> Optional[DependencyEdge]:
        return self._dependencies.get(depender, {}).get(dependee)

    def get_dependencies(self, name: str) -> List[DependencyEdge]:
        """Outgoing edges of `name`, sorted by dependee."""
        deps = self._dependencies.get(name, {})
        return [deps[dependee] for dependee in sorted(deps)]

    def get_dependents(self, name: str) -> List[str]:
        """Modules that directly depend on `name`, sorted."""
        return sorted(self._dependents.get(name, set()))

    def successors(self, name: str, policy: Optional[str] = None) -> List[str]:
        """Dependees of `name`, optionally restricted to header-level edges."""
        return [
            edge.dependee
            for edge in self.get_dependencies(name)
            if policy is None or edge.is_header_level(policy)
        ]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def validate_graph(self) -> Tuple[bool, List[str]]:
        """Check adjacency consistency.

        Returns:
            Tuple of (is_valid, list of error messages).
        """
        errors: List[str] = []
        for depender, deps in self._dependencies.items():
            if depender not in self._nodes:
                errors.append(f"Edge source '{depender}' is not a node")
            for dependee, edge in deps.items():
                if dependee not in self._nodes:
                    errors.append(f"Edge {depender} -> {dependee} targets unknown node")
                if depender not in self._dependents.get(dependee, set()):
                    errors.append(f"Reverse index missing {depender} -> {dependee}")
                if edge.depender != depender or edge.dependee != dependee:
                    errors.append(f"Edge stored under wrong key: {depender} -> {dependee}")
        if errors:
            logger.warning(f"Dependency graph validation found {len(errors)} problems")
        return (not errors, errors)

    def export_to_dict(self) -> Dict[str, Any]:
        """Export graph to JSON-compatible dict."""
        return {
            "nodes": self.nodes(),
            "edges": [edge.to_dict() for edge in self.edges()],
        }

    @classmethod
    def from_edges(
        cls, edges: Iterable[DependencyEdge], nodes: Iterable[str] = ()
    ) -> "DependencyGraph":
        """Build a graph directly from edges (mostly for tests and tooling)."""
        graph = cls()
        for name in nodes:
            graph.add_node(name)
        for edge in edges:
            graph.add_edge(edge)
        return graph


@dataclass(frozen=True)
class BuildPlan:
    """Deterministic compilation order plus per-module visibility tables.

    order: every module appears after the modules it depends on.
    visibility: modules whose types each module may expose publicly.
    include_visibility: modules whose headers each module's implementation
        may include (direct dependencies plus their visibility closures).
    """

    order: Tuple[str, ...]
    visibility: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    include_visibility: Dict[str, FrozenSet[str]] = field(default_factory=dict)

    @property
    def link_order(self) -> Tuple[str, ...]:
        """Order for static linking: dependents before their dependencies."""
        return tuple(reversed(self.order))

    def position(self, name: str) -> int:
        return self.order.index(name)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "order": list(self.order),
            "link_order": list(self.link_order),
            "visibility": {name: sorted(mods) for name, mods in sorted(self.visibility.items())},
            "include_visibility": {
                name: sorted(mods) for name, mods in sorted(self.include_visibility.items())
            },
        }
