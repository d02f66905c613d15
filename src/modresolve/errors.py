# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Typed resolution errors and warnings.

Every fatal problem a resolution run can detect is a subclass of
ResolutionError. Operations that cannot produce a value (registering,
looking up, building, planning) raise them. Checking operations return
them in lists so a single run can report every problem at once.

ImplementationOnlyCycle is a warning record, not an exception: it never
blocks a build plan.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class ErrorKind:
    """Diagnostic type identifiers.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    DUPLICATE_MODULE = "duplicate_module"
    UNKNOWN_MODULE = "unknown_module"
    UNRESOLVED_DEPENDENCY = "unresolved_dependency"
    LEAKED_PRIVATE_DEPENDENCY = "leaked_private_dependency"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    IMPLEMENTATION_ONLY_CYCLE = "implementation_only_cycle"
    INVALID_DESCRIPTOR = "invalid_descriptor"


class ResolutionError(Exception):
    """Base class for all fatal resolution errors."""

    kind = "resolution_error"

    def __init__(self, message: str, module: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.module = module

    def related_modules(self) -> List[str]:
        """Modules involved in this error besides `module`."""
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {"type": self.kind, "message": self.message}
        if self.module is not None:
            result["module"] = self.module
        related = self.related_modules()
        if related:
            result["modules"] = related
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolutionError):
            return NotImplemented
        return type(self) is type(other) and self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.message, self.module))


class InvalidDescriptorError(ResolutionError, ValueError):
    """Raised when a module descriptor violates its own invariants."""

    kind = ErrorKind.INVALID_DESCRIPTOR


class DuplicateModuleError(ResolutionError):
    """Two distinct descriptors claim the same module identity."""

    kind = ErrorKind.DUPLICATE_MODULE

    def __init__(
        self,
        name: str,
        existing_location: str,
        duplicate_location: str,
        reason: Optional[str] = None,
    ) -> None:
        detail = reason or f"module '{name}' is already registered"
        message = (
            f"{detail} (registered from {existing_location}, "
            f"also found at {duplicate_location})"
        )
        super().__init__(message, module=name)
        self.existing_location = existing_location
        self.duplicate_location = duplicate_location


class UnknownModuleError(ResolutionError, KeyError):
    """Lookup of a module name that is not registered."""

    kind = ErrorKind.UNKNOWN_MODULE

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown module '{name}'", module=name)

    def __str__(self) -> str:
        # KeyError.__str__ would quote the message
        return self.message


class UnresolvedDependencyError(ResolutionError):
    """A declared dependency does not resolve to a registered module."""

    kind = ErrorKind.UNRESOLVED_DEPENDENCY

    def __init__(self, depender: str, dependee: str) -> None:
        super().__init__(
            f"module '{depender}' depends on '{dependee}', which is not registered",
            module=depender,
        )
        self.depender = depender
        self.dependee = dependee

    def related_modules(self) -> List[str]:
        return [self.dependee]


class LeakedPrivateDependencyError(ResolutionError):
    """A public interface references a module it does not export."""

    kind = ErrorKind.LEAKED_PRIVATE_DEPENDENCY

    def __init__(self, module: str, referenced: str, symbol: Optional[str] = None) -> None:
        what = f"type '{symbol}' from module '{referenced}'" if symbol else f"module '{referenced}'"
        super().__init__(
            f"public interface of '{module}' references {what}, "
            f"which is not in its visibility closure; export '{referenced}' "
            f"or forward-declare the type",
            module=module,
        )
        self.referenced = referenced
        self.symbol = symbol

    def related_modules(self) -> List[str]:
        return [self.referenced]


class CircularDependencyError(ResolutionError):
    """A cycle exists among header-level dependency edges."""

    kind = ErrorKind.CIRCULAR_DEPENDENCY

    def __init__(self, cycle: Tuple[str, ...]) -> None:
        self.cycle = tuple(cycle)
        path = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(f"circular dependency: {path}", module=self.cycle[0])

    def related_modules(self) -> List[str]:
        return list(self.cycle)


@dataclass(frozen=True)
class ImplementationOnlyCycle:
    """Warning: a cycle closed only by implementation-file dependencies.

    Header-level acyclicity is what gates compilability, so this does not
    block the build plan.
    """

    cycle: Tuple[str, ...]
    kind: str = field(default=ErrorKind.IMPLEMENTATION_ONLY_CYCLE, init=False)

    @property
    def module(self) -> str:
        return self.cycle[0]

    @property
    def message(self) -> str:
        path = " -> ".join(self.cycle + self.cycle[:1])
        return f"implementation-only cycle: {path}"

    def related_modules(self) -> List[str]:
        return list(self.cycle)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "type": self.kind,
            "message": self.message,
            "module": self.module,
            "modules": list(self.cycle),
        }
