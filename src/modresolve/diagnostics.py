# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structured diagnostics for resolution errors and warnings.

Diagnostic Format:
- type: Error kind identifier (duplicate_module, circular_dependency, ...)
- severity: "error" or "warning"
- module: Module the diagnostic is about
- message: Human-readable summary
- timestamp: ISO 8601 timestamp
- modules: Other modules involved (cycle path, referenced module, ...)
- source: Source location of the module (optional)
- explanation: Actionable guidance (optional)
- metadata: Additional kind-specific fields
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from modresolve.errors import (
    DuplicateModuleError,
    ErrorKind,
    ImplementationOnlyCycle,
    LeakedPrivateDependencyError,
    ResolutionError,
)

logger = logging.getLogger(__name__)

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

Problem = Union[ResolutionError, ImplementationOnlyCycle]

# Actionable guidance per diagnostic type
KIND_GUIDANCE: Dict[str, str] = {
    ErrorKind.DUPLICATE_MODULE: (
        "Each module must be added exactly once. Remove one of the copies or rename it "
        "so the module names and namespaces are unique."
    ),
    ErrorKind.UNKNOWN_MODULE: "Check the module name for typos.",
    ErrorKind.UNRESOLVED_DEPENDENCY: (
        "Add the missing module to the project or remove the dependency."
    ),
    ErrorKind.LEAKED_PRIVATE_DEPENDENCY: (
        "Export the dependency so dependents can see it, or forward-declare the type in "
        "the public header and include the module only from the implementation file."
    ),
    ErrorKind.CIRCULAR_DEPENDENCY: (
        "Public headers include each other in a loop. Break the loop with a forward "
        "declaration or by moving the include into an implementation file."
    ),
    ErrorKind.IMPLEMENTATION_ONLY_CYCLE: (
        "Implementation files depend on each other in a loop. This builds, but the "
        "modules can no longer be used independently."
    ),
    ErrorKind.INVALID_DESCRIPTOR: "Fix the module declaration.",
}

# Human-readable type names
KIND_DISPLAY_NAMES: Dict[str, str] = {
    ErrorKind.DUPLICATE_MODULE: "Duplicate module",
    ErrorKind.UNKNOWN_MODULE: "Unknown module",
    ErrorKind.UNRESOLVED_DEPENDENCY: "Unresolved dependency",
    ErrorKind.LEAKED_PRIVATE_DEPENDENCY: "Leaked private dependency",
    ErrorKind.CIRCULAR_DEPENDENCY: "Circular dependency",
    ErrorKind.IMPLEMENTATION_ONLY_CYCLE: "Implementation-only cycle",
    ErrorKind.INVALID_DESCRIPTOR: "Invalid module",
}


@dataclass
class Diagnostic:
    """A structured, serializable diagnostic.

    Attributes:
        type: Diagnostic type (ErrorKind value)
        severity: "error" or "warning"
        module: Module the diagnostic is about ("" if none)
        message: Human-readable summary
        timestamp: ISO 8601 timestamp
        modules: Other modules involved
        source: Source location of the module (optional)
        explanation: Actionable guidance (optional)
        metadata: Additional kind-specific fields
    """

    type: str
    severity: str
    module: str
    message: str
    timestamp: str
    modules: List[str] = field(default_factory=list)
    source: Optional[str] = None
    explanation: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity == SEVERITY_ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary, omitting empty optional fields."""
        result: Dict[str, Any] = {
            "type": self.type,
            "severity": self.severity,
            "module": self.module,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.modules:
            result["modules"] = self.modules
        if self.source is not None:
            result["source"] = self.source
        if self.explanation is not None:
            result["explanation"] = self.explanation
        if self.metadata:
            result["metadata"] = self.metadata
        return result

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Diagnostic":
        """Create Diagnostic from dictionary.

        Raises:
            KeyError: If required fields are missing.
        """
        return cls(
            type=data["type"],
            severity=data["severity"],
            module=data["module"],
            message=data["message"],
            timestamp=data["timestamp"],
            modules=list(data.get("modules", [])),
            source=data.get("source"),
            explanation=data.get("explanation"),
            metadata=data.get("metadata", {}),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "Diagnostic":
        return cls.from_dict(json.loads(json_str))


class DiagnosticFormatter:
    """Converts resolution errors and warnings into Diagnostics and text."""

    @staticmethod
    def format_problem(
        problem: Problem,
        source: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Diagnostic:
        """Convert a ResolutionError or ImplementationOnlyCycle to a Diagnostic.

        Args:
            problem: The error or warning to convert.
            source: Optional source location of the module involved.
            timestamp: Optional ISO 8601 timestamp. If not provided, uses current time.
        """
        if timestamp is None:
            timestamp = datetime.now(timezone.utc).isoformat()

        severity = (
            SEVERITY_WARNING if isinstance(problem, ImplementationOnlyCycle) else SEVERITY_ERROR
        )

        metadata: Dict[str, str] = {}
        if isinstance(problem, DuplicateModuleError):
            metadata["existing_location"] = problem.existing_location
            metadata["duplicate_location"] = problem.duplicate_location
        elif isinstance(problem, LeakedPrivateDependencyError) and problem.symbol:
            metadata["symbol"] = problem.symbol

        return Diagnostic(
            type=problem.kind,
            severity=severity,
            module=problem.module or "",
            message=problem.message,
            timestamp=timestamp,
            modules=problem.related_modules(),
            source=source,
            explanation=KIND_GUIDANCE.get(problem.kind),
            metadata=metadata,
        )

    @staticmethod
    def format_human_readable(diagnostic: Diagnostic) -> str:
        """Format a diagnostic for terminal display.

        Format:
        error: module1 - Leaked private dependency
          public interface of 'module1' references module 'e1m1', ...
          -> Export the dependency so dependents can see it, or ...
        """
        display_name = KIND_DISPLAY_NAMES.get(diagnostic.type, diagnostic.type)
        location = diagnostic.module or "<project>"
        if diagnostic.source:
            location += f" ({diagnostic.source})"

        lines = [
            f"{diagnostic.severity}: {location} - {display_name}",
            f"  {diagnostic.message}",
        ]

        if diagnostic.explanation:
            # First sentence only
            explanation = diagnostic.explanation.split(". ")[0].rstrip(".")
            lines.append(f"  -> {explanation}")

        return "\n".join(lines)

    @staticmethod
    def format_summary(diagnostics: List[Diagnostic]) -> str:
        """One-line summary like "2 errors, 1 warning"."""
        errors = sum(1 for d in diagnostics if d.is_error)
        warnings = len(diagnostics) - errors
        error_word = "error" if errors == 1 else "errors"
        warning_word = "warning" if warnings == 1 else "warnings"
        return f"{errors} {error_word}, {warnings} {warning_word}"
