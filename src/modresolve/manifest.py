# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""YAML module manifests.

A manifest lists module declarations, either under a top-level `modules`
key or as a bare list:

    modules:
      - name: module1
        source: repoModule1/module1
        dependencies: [e1m1]
        exports: [e1m1]
        header:
          - module: e1m1
            kind: full_include
            symbol: E1M1ExportedStruct
      - name: central
        dependencies: [module2]
        header:
          - {module: module2, kind: forward_declare, symbol: Module2Class}

A header entry given as a plain string is a full include of that module.
`namespace` is optional and derived from the name when absent.

Parsing is side-effect free, so several manifests can be parsed on a
thread pool. Descriptors are returned in manifest order; registering them
stays the caller's job.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from modresolve.errors import InvalidDescriptorError
from modresolve.models import (
    DEFAULT_NAMESPACE_PREFIX,
    HeaderReference,
    ModuleDescriptor,
    ReferenceKind,
    derive_namespace,
)

logger = logging.getLogger(__name__)

# Accepted spellings for header reference kinds
_KIND_ALIASES: Dict[str, str] = {
    "full_include": ReferenceKind.FULL_INCLUDE,
    "include": ReferenceKind.FULL_INCLUDE,
    "forward_declare": ReferenceKind.FORWARD_DECLARE,
    "forward": ReferenceKind.FORWARD_DECLARE,
    "fwd": ReferenceKind.FORWARD_DECLARE,
}

_MODULE_KEYS = {"name", "namespace", "source", "dependencies", "exports", "header"}


class ManifestError(Exception):
    """Raised when a manifest file cannot be read or is malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def _string_list(value: Any, what: str, path: Path) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ManifestError(path, f"{what} must be a list of strings, got {value!r}")
    return value


def _parse_header_reference(entry: Any, where: str, path: Path) -> HeaderReference:
    if isinstance(entry, str):
        return HeaderReference(module=entry)
    if not isinstance(entry, dict) or not isinstance(entry.get("module"), str):
        raise ManifestError(path, f"{where}: header entry needs a 'module' name, got {entry!r}")

    kind_name = str(entry.get("kind", ReferenceKind.FULL_INCLUDE)).lower()
    kind = _KIND_ALIASES.get(kind_name)
    if kind is None:
        raise ManifestError(path, f"{where}: unknown header reference kind '{kind_name}'")

    inline = entry.get("inline", entry.get("inline_use", False))
    if not isinstance(inline, bool):
        raise ManifestError(path, f"{where}: 'inline' must be true or false")

    symbol = entry.get("symbol")
    return HeaderReference(
        module=entry["module"],
        kind=kind,
        symbol=str(symbol) if symbol is not None else None,
        inline_use=inline,
    )


def parse_module(
    entry: Any, index: int, path: Path, namespace_prefix: str = DEFAULT_NAMESPACE_PREFIX
) -> ModuleDescriptor:
    """Parse one module mapping from a manifest.

    Raises:
        ManifestError: If the entry is malformed.
    """
    where = f"module #{index}"
    if not isinstance(entry, dict):
        raise ManifestError(path, f"{where} must be a mapping, got {type(entry).__name__}")

    name = entry.get("name")
    if not isinstance(name, str):
        raise ManifestError(path, f"{where} has no 'name'")
    where = f"module #{index} ('{name}')"

    unknown = sorted(set(entry) - _MODULE_KEYS)
    if unknown:
        logger.warning(f"{path}: {where} has unknown keys {unknown}, ignoring")

    header = entry.get("header") or []
    if not isinstance(header, list):
        raise ManifestError(path, f"{where}: 'header' must be a list")

    namespace = entry.get("namespace")
    if namespace is not None and not isinstance(namespace, str):
        raise ManifestError(path, f"{where}: 'namespace' must be a string")

    try:
        return ModuleDescriptor(
            name=name,
            source_location=str(entry.get("source") or path),
            dependencies=tuple(_string_list(entry.get("dependencies"), "dependencies", path)),
            exported_dependencies=tuple(_string_list(entry.get("exports"), "exports", path)),
            header_references=tuple(
                _parse_header_reference(ref, where, path) for ref in header
            ),
            namespace=namespace or derive_namespace(name, namespace_prefix),
        )
    except InvalidDescriptorError as e:
        raise ManifestError(path, f"{where}: {e.message}") from e


def load_manifest(
    path: Path, namespace_prefix: str = DEFAULT_NAMESPACE_PREFIX
) -> List[ModuleDescriptor]:
    """Load all module descriptors from one manifest file.

    Raises:
        ManifestError: If the file cannot be read or is malformed.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ManifestError(path, f"cannot read manifest: {e}") from e
    except yaml.YAMLError as e:
        raise ManifestError(path, f"invalid YAML: {e}") from e

    if data is None:
        logger.warning(f"Manifest {path} is empty")
        return []

    if isinstance(data, dict):
        if "modules" not in data:
            raise ManifestError(path, "manifest mapping needs a 'modules' list")
        entries = data["modules"] or []
    else:
        entries = data

    if not isinstance(entries, list):
        raise ManifestError(path, f"'modules' must be a list, got {type(entries).__name__}")

    descriptors = [
        parse_module(entry, index, path, namespace_prefix) for index, entry in enumerate(entries)
    ]
    logger.debug(f"Loaded {len(descriptors)} modules from {path}")
    return descriptors


def load_manifests(
    paths: Sequence[Path],
    max_workers: int = 4,
    namespace_prefix: str = DEFAULT_NAMESPACE_PREFIX,
) -> List[ModuleDescriptor]:
    """Load several manifests, parsing them concurrently.

    Descriptors are returned grouped in the order of `paths`, whatever
    order the workers finish in.

    Raises:
        ManifestError: For the first manifest (in `paths` order) that fails.
    """
    if not paths:
        return []

    workers = max(1, min(max_workers, len(paths)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="manifest") as pool:
        futures = [pool.submit(load_manifest, Path(p), namespace_prefix) for p in paths]
        results = [future.result() for future in futures]

    descriptors = [descriptor for batch in results for descriptor in batch]
    logger.info(f"Loaded {len(descriptors)} modules from {len(paths)} manifests")
    return descriptors
