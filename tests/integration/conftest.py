# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests.

Each scenario is a small multi-repository project written out as YAML
manifests, one per repository, the way a project would declare its
modules across source trees.
"""

from pathlib import Path
from typing import Callable, Dict, List

import pytest
import yaml

ManifestWriter = Callable[[str, List[Dict]], Path]


@pytest.fixture
def write_manifest(tmp_path: Path) -> ManifestWriter:
    """Return a helper that writes a manifest under tmp_path.

    Usage:
        path = write_manifest("repoModule1", [{"name": "module1"}])
    """

    def _write(repo: str, modules: List[Dict]) -> Path:
        repo_dir = tmp_path / repo
        repo_dir.mkdir(parents=True, exist_ok=True)
        path = repo_dir / "modules.yml"
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"modules": modules}, f, sort_keys=False)
        return path

    return _write


@pytest.fixture
def export_no_target_project(write_manifest: ManifestWriter) -> List[Path]:
    """Main program using two modules, each exporting one of its dependencies.

    main -> module1 -(exports)-> e1m1
    main -> central -(exports)-> central_exp
    """
    return [
        write_manifest(
            "repoModule1",
            [
                {
                    "name": "e1m1",
                    "source": "repoModule1/repoExportedModule/e1m1",
                    "namespace": "CPM_E1M1_GOOFY_NS",
                },
                {
                    "name": "module1",
                    "source": "repoModule1/module1",
                    "dependencies": ["e1m1"],
                    "exports": ["e1m1"],
                    "header": [{"module": "e1m1", "symbol": "E1M1ExportedStruct"}],
                },
            ],
        ),
        write_manifest(
            "centralModule",
            [
                {"name": "central_exp", "source": "centralModule/expModule/central_exp"},
                {
                    "name": "central",
                    "source": "centralModule/central",
                    "dependencies": ["central_exp"],
                    "exports": ["central_exp"],
                    "header": ["central_exp"],
                },
            ],
        ),
        write_manifest(
            "main",
            [{"name": "main", "source": "main", "dependencies": ["module1", "central"]}],
        ),
    ]


@pytest.fixture
def multiadd_project(write_manifest: ManifestWriter) -> List[Path]:
    """Two repositories that both pull in the same central module tree."""
    central_tree = [
        {"name": "sub", "source": "centralModule/subModule/sub"},
        {"name": "central_exp", "source": "centralModule/expModule/central_exp"},
        {
            "name": "central",
            "source": "centralModule/central",
            "dependencies": ["central_exp", "sub"],
            "exports": ["central_exp"],
            "header": ["central_exp"],
        },
    ]
    return [
        write_manifest("centralModule", central_tree),
        write_manifest(
            "repoModule1",
            [{"name": "module1", "source": "repoModule1/module1", "dependencies": ["central"]}],
        ),
        # repoModule3 vendors the same central tree again
        write_manifest(
            "repoModule3",
            central_tree
            + [
                {
                    "name": "module3",
                    "source": "repoModule3/module3",
                    "dependencies": ["central"],
                    "exports": ["central"],
                    "header": ["central_exp"],
                }
            ],
        ),
    ]
