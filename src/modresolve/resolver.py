# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""ModuleResolver - runs a complete resolution pass.

Pipeline:
1. Register descriptors (duplicate detection)
2. Build the dependency graph (unresolved dependency detection)
3. Check duplicate names and public interfaces, detect cycles
4. Plan the build order if nothing fatal was found

A run never stops at the first problem: every detectable error and
warning is collected into one ResolutionReport so a user sees all of
them in a single pass. Any error prevents the build plan; warnings don't.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from modresolve.config import Config
from modresolve.cycles import find_cycles, find_duplicate_names
from modresolve.diagnostic_logger import DiagnosticLogger
from modresolve.diagnostics import Diagnostic, DiagnosticFormatter
from modresolve.errors import (
    CircularDependencyError,
    DuplicateModuleError,
    ImplementationOnlyCycle,
    ResolutionError,
)
from modresolve.graph_builder import DependencyGraphBuilder
from modresolve.manifest import load_manifests
from modresolve.models import BuildPlan, DependencyGraph, ModuleDescriptor
from modresolve.planner import BuildOrderPlanner
from modresolve.registry import ModuleRegistry
from modresolve.visibility import check_public_interface

logger = logging.getLogger(__name__)


@dataclass
class ResolutionReport:
    """Outcome of one resolution run.

    Attributes:
        plan: Build plan, or None if any error was found.
        errors: Every fatal problem found.
        warnings: Non-fatal problems.
        graph: Dependency graph (without unresolved edges).
        sources: Source location of every registered module.
    """

    plan: Optional[BuildPlan]
    errors: List[ResolutionError] = field(default_factory=list)
    warnings: List[ImplementationOnlyCycle] = field(default_factory=list)
    graph: Optional[DependencyGraph] = None
    sources: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors and self.plan is not None

    def errors_of(self, error_type: type) -> List[ResolutionError]:
        """Errors that are instances of `error_type`."""
        return [e for e in self.errors if isinstance(e, error_type)]

    def diagnostics(self, timestamp: Optional[str] = None) -> List[Diagnostic]:
        """Errors then warnings as structured Diagnostics."""
        problems: List[Union[ResolutionError, ImplementationOnlyCycle]] = [
            *self.errors,
            *self.warnings,
        ]
        return [
            DiagnosticFormatter.format_problem(
                problem,
                source=self.sources.get(problem.module or ""),
                timestamp=timestamp,
            )
            for problem in problems
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "ok": self.ok,
            "modules": len(self.sources),
            "plan": self.plan.to_dict() if self.plan is not None else None,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class ModuleResolver:
    """Coordinates registry, graph builder, checkers and planner.

    Usage:
        resolver = ModuleResolver(Config())
        report = resolver.resolve(descriptors)
        if report.ok:
            for name in report.plan.order:
                ...
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        diagnostic_logger: Optional[DiagnosticLogger] = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            config: Resolver configuration. Defaults to Config.from_dict({}).
            diagnostic_logger: Optional JSONL sink for every diagnostic of a run.
        """
        self.config = config if config is not None else Config.from_dict({})
        self._diagnostic_logger = diagnostic_logger
        self._builder = DependencyGraphBuilder()

    def resolve(self, descriptors: Iterable[ModuleDescriptor]) -> ResolutionReport:
        """Run a full resolution pass.

        Input order does not matter: descriptors are registered sorted by
        name, then source location, so the same input set always keeps the
        same copy when duplicates conflict.

        Args:
            descriptors: Module descriptors to resolve.

        Returns:
            ResolutionReport with the plan (if no errors), errors, and warnings.
        """
        errors: List[ResolutionError] = []
        warnings: List[ImplementationOnlyCycle] = []

        registry = self._register_all(descriptors, errors)

        unresolved = self._builder.find_unresolved(registry)
        errors.extend(unresolved)
        missing = {(error.depender, error.dependee) for error in unresolved}
        graph = self._builder.build(registry, skip_unresolved=True)

        if self.config.check_duplicate_names:
            errors.extend(find_duplicate_names(registry))

        if self.config.check_public_interfaces:
            for name in registry.names():
                # Missing modules were already reported as unresolved
                errors.extend(
                    leak
                    for leak in check_public_interface(registry.lookup(name), graph)
                    if (leak.module, leak.referenced) not in missing
                )

        cycle_report = find_cycles(graph, self.config.cycle_policy)
        errors.extend(cycle_report.errors)

        for warning in cycle_report.warnings:
            if self._is_suppressed(warning):
                logger.debug(f"Suppressed warning: {warning.message}")
                continue
            if self.config.fail_on_implementation_cycles:
                errors.append(CircularDependencyError(warning.cycle))
            else:
                warnings.append(warning)

        plan: Optional[BuildPlan] = None
        if not errors:
            plan = BuildOrderPlanner(self.config.cycle_policy).plan(graph)

        report = ResolutionReport(
            plan=plan,
            errors=errors,
            warnings=warnings,
            graph=graph,
            sources={d.name: d.source_location for d in registry.all()},
        )
        self._log_report(report)
        return report

    def resolve_manifests(self, paths: Sequence[Path]) -> ResolutionReport:
        """Load YAML manifests and resolve the modules they declare.

        Raises:
            ManifestError: If a manifest cannot be read or is malformed.
        """
        descriptors = load_manifests(
            paths,
            max_workers=self.config.manifest_workers,
            namespace_prefix=self.config.namespace_prefix,
        )
        return self.resolve(descriptors)

    def _register_all(
        self, descriptors: Iterable[ModuleDescriptor], errors: List[ResolutionError]
    ) -> ModuleRegistry:
        registry = ModuleRegistry()
        ordered = sorted(
            descriptors,
            key=lambda d: (d.name, d.source_location, json.dumps(d.to_dict(), sort_keys=True)),
        )
        for descriptor in ordered:
            try:
                registry.register(descriptor)
            except DuplicateModuleError as e:
                errors.append(e)
        return registry

    def _is_suppressed(self, warning: ImplementationOnlyCycle) -> bool:
        suppressed = set(self.config.suppress_warnings)
        return bool(suppressed.intersection(warning.cycle))

    def _log_report(self, report: ResolutionReport) -> None:
        for error in report.errors:
            logger.error(error.message)
        for warning in report.warnings:
            logger.warning(warning.message)

        if report.ok:
            logger.info(
                f"Resolved {len(report.sources)} modules with {len(report.warnings)} warnings"
            )
        else:
            logger.info(f"Resolution failed with {len(report.errors)} errors")

        if self._diagnostic_logger is not None:
            self._diagnostic_logger.log_diagnostics(report.diagnostics())
