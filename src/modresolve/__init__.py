# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Module Resolver: dependency graphs, export visibility and build order for C++ modules."""

from .config import Config, ConfigurationError
from .cycles import CycleReport, find_cycles, find_duplicate_names
from .diagnostic_logger import DiagnosticLogger, DiagnosticStatistics, read_diagnostics_from_log
from .diagnostics import Diagnostic, DiagnosticFormatter
from .errors import (
    CircularDependencyError,
    DuplicateModuleError,
    ImplementationOnlyCycle,
    InvalidDescriptorError,
    LeakedPrivateDependencyError,
    ResolutionError,
    UnknownModuleError,
    UnresolvedDependencyError,
)
from .graph_builder import DependencyGraphBuilder
from .manifest import ManifestError, load_manifest, load_manifests
from .models import (
    BuildPlan,
    CyclePolicy,
    DependencyEdge,
    DependencyGraph,
    HeaderReference,
    ModuleDescriptor,
    ReferenceKind,
)
from .planner import BuildOrderPlanner, plan
from .registry import ModuleRegistry
from .resolver import ModuleResolver, ResolutionReport
from .visibility import check_public_interface, include_visibility, visibility_closure

__version__ = "0.1.0"

__all__ = [
    "BuildOrderPlanner",
    "BuildPlan",
    "CircularDependencyError",
    "Config",
    "ConfigurationError",
    "CyclePolicy",
    "CycleReport",
    "DependencyEdge",
    "DependencyGraph",
    "DependencyGraphBuilder",
    "Diagnostic",
    "DiagnosticFormatter",
    "DiagnosticLogger",
    "DiagnosticStatistics",
    "DuplicateModuleError",
    "HeaderReference",
    "ImplementationOnlyCycle",
    "InvalidDescriptorError",
    "LeakedPrivateDependencyError",
    "ManifestError",
    "ModuleDescriptor",
    "ModuleRegistry",
    "ModuleResolver",
    "ReferenceKind",
    "ResolutionError",
    "ResolutionReport",
    "UnknownModuleError",
    "UnresolvedDependencyError",
    "check_public_interface",
    "find_cycles",
    "find_duplicate_names",
    "include_visibility",
    "load_manifest",
    "load_manifests",
    "plan",
    "visibility_closure",
]
