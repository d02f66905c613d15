# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Registry of module descriptors keyed by module name.

The registry is the single point where module identity is decided:
registering a second, different descriptor under an existing name is a
conflict and never a silent overwrite. Re-registering an identical
descriptor (the same module reached through two dependency paths) is a
no-op.
"""

import logging
import threading
from typing import Dict, Iterator, List, Optional

from modresolve.errors import DuplicateModuleError, UnknownModuleError
from modresolve.models import ModuleDescriptor

logger = logging.getLogger(__name__)


class _RegistrationView:
    """Lazy, restartable iteration over descriptors in registration order."""

    def __init__(self, modules: Dict[str, ModuleDescriptor]) -> None:
        self._modules = modules

    def __iter__(self) -> Iterator[ModuleDescriptor]:
        # Snapshot keys so a concurrent register() can't break iteration
        for name in list(self._modules):
            yield self._modules[name]

    def __len__(self) -> int:
        return len(self._modules)


class ModuleRegistry:
    """Mapping from module name to ModuleDescriptor.

    Thread Safety:
    - register() is serialized with a lock so descriptors parsed on worker
      threads can be registered safely. Reads are lock-free.

    Usage:
        registry = ModuleRegistry()
        registry.register(descriptor)
        registry.lookup("module1")
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        # Insertion order is registration order (used for diagnostics only)
        self._modules: Dict[str, ModuleDescriptor] = {}
        self._lock = threading.Lock()

    def register(self, descriptor: ModuleDescriptor) -> None:
        """Register a module descriptor.

        Args:
            descriptor: Descriptor to register.

        Raises:
            TypeError: If descriptor is not a ModuleDescriptor.
            DuplicateModuleError: If a different descriptor is already
                registered under the same name.
        """
        if not isinstance(descriptor, ModuleDescriptor):
            raise TypeError(f"Expected a ModuleDescriptor instance, got {type(descriptor)}")

        with self._lock:
            existing = self._modules.get(descriptor.name)
            if existing is not None:
                if existing == descriptor:
                    logger.debug(f"Module '{descriptor.name}' re-registered identically, ignoring")
                    return
                raise DuplicateModuleError(
                    descriptor.name,
                    existing_location=existing.source_location or "<unknown>",
                    duplicate_location=descriptor.source_location or "<unknown>",
                )
            self._modules[descriptor.name] = descriptor

        logger.debug(f"Registered module '{descriptor.name}' from {descriptor.source_location}")

    def lookup(self, name: str) -> ModuleDescriptor:
        """Get the descriptor registered under `name`.

        Raises:
            UnknownModuleError: If no module is registered under `name`.
        """
        descriptor = self._modules.get(name)
        if descriptor is None:
            raise UnknownModuleError(name)
        return descriptor

    def get(self, name: str) -> Optional[ModuleDescriptor]:
        return self._modules.get(name)

    def all(self) -> _RegistrationView:
        """All descriptors in registration order.

        The returned view is lazy and can be iterated more than once. Graph
        algorithms should use names() instead, which is sorted.
        """
        return _RegistrationView(self._modules)

    def names(self) -> List[str]:
        """Registered module names, sorted."""
        return sorted(self._modules)

    def __contains__(self, name: object) -> bool:
        return name in self._modules

    def __len__(self) -> int:
        return len(self._modules)
