# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for ModuleResolver and ResolutionReport."""

import json

from modresolve.config import Config
from modresolve.diagnostic_logger import DiagnosticLogger, read_diagnostics_from_log
from modresolve.errors import (
    CircularDependencyError,
    DuplicateModuleError,
    LeakedPrivateDependencyError,
    UnresolvedDependencyError,
)
from modresolve.models import HeaderReference, ModuleDescriptor
from modresolve.resolver import ModuleResolver


def _export_no_target():
    return [
        ModuleDescriptor(name="Central", dependencies=("Module1",)),
        ModuleDescriptor(name="Module1", dependencies=("E1M1",), exported_dependencies=("E1M1",)),
        ModuleDescriptor(name="E1M1"),
    ]


def _impl_ring():
    return [
        ModuleDescriptor(name="A", dependencies=("B",)),
        ModuleDescriptor(name="B", dependencies=("C",)),
        ModuleDescriptor(name="C", dependencies=("A",)),
    ]


def _leaking_module():
    return [
        ModuleDescriptor(name="spire"),
        ModuleDescriptor(
            name="batch_testing",
            dependencies=("spire",),
            header_references=(HeaderReference(module="spire", symbol="Interface"),),
        ),
    ]


class TestSuccessfulResolution:
    """Runs that produce a build plan."""

    def test_clean_project(self):
        report = ModuleResolver().resolve(_export_no_target())

        assert report.ok
        assert report.errors == []
        assert report.warnings == []
        assert report.plan is not None
        assert report.plan.order == ("E1M1", "Module1", "Central")
        assert report.plan.visibility["Module1"] == frozenset({"E1M1"})

    def test_input_order_does_not_matter(self):
        forward = ModuleResolver().resolve(_export_no_target())
        backward = ModuleResolver().resolve(list(reversed(_export_no_target())))
        assert forward.to_dict() == backward.to_dict()

    def test_identical_module_added_twice(self):
        descriptors = _export_no_target() + [ModuleDescriptor(name="E1M1")]
        report = ModuleResolver().resolve(descriptors)

        assert report.ok
        assert len(report.plan.order) == 3

    def test_implementation_cycle_is_warning_only(self):
        report = ModuleResolver().resolve(_impl_ring())

        assert report.ok
        assert [w.cycle for w in report.warnings] == [("A", "B", "C")]
        assert report.plan.order == ("A", "C", "B")

    def test_module_depending_on_cycle_built_after_it(self):
        descriptors = [
            ModuleDescriptor(name="app", dependencies=("lib",)),
            ModuleDescriptor(name="lib", dependencies=("util",)),
            ModuleDescriptor(name="util", dependencies=("lib",)),
        ]
        report = ModuleResolver().resolve(descriptors)

        assert report.ok
        assert [w.cycle for w in report.warnings] == [("lib", "util")]
        assert report.plan.order == ("lib", "util", "app")

    def test_sources_recorded(self):
        descriptors = [ModuleDescriptor(name="sub", source_location="repoSub/sub")]
        report = ModuleResolver().resolve(descriptors)
        assert report.sources == {"sub": "repoSub/sub"}


class TestFailedResolution:
    """Runs that collect errors and withhold the plan."""

    def test_all_errors_reported_together(self):
        descriptors = [
            ModuleDescriptor(name="module2", source_location="/a"),
            ModuleDescriptor(name="module2", source_location="/b"),
            ModuleDescriptor(name="central", dependencies=("missing",)),
            ModuleDescriptor(name="x", dependencies=("y",), exported_dependencies=("y",)),
            ModuleDescriptor(name="y", dependencies=("x",), exported_dependencies=("x",)),
            *_leaking_module(),
        ]
        report = ModuleResolver().resolve(descriptors)

        assert not report.ok
        assert report.plan is None
        assert len(report.errors_of(DuplicateModuleError)) == 1
        assert len(report.errors_of(UnresolvedDependencyError)) == 1
        assert len(report.errors_of(LeakedPrivateDependencyError)) == 1
        assert len(report.errors_of(CircularDependencyError)) == 1
        assert len(report.errors) == 4

    def test_duplicate_keeps_first_by_source_location(self):
        descriptors = [
            ModuleDescriptor(name="module2", source_location="/b"),
            ModuleDescriptor(name="module2", source_location="/a"),
        ]
        report = ModuleResolver().resolve(descriptors)

        [error] = report.errors
        assert isinstance(error, DuplicateModuleError)
        assert error.existing_location == "/a"
        assert error.duplicate_location == "/b"
        assert report.sources == {"module2": "/a"}

    def test_unresolved_dependency(self):
        report = ModuleResolver().resolve([ModuleDescriptor(name="central", dependencies=("sub",))])

        [error] = report.errors
        assert isinstance(error, UnresolvedDependencyError)
        assert error.dependee == "sub"
        assert report.plan is None

    def test_unresolved_header_reference_reported_once(self):
        descriptor = ModuleDescriptor(
            name="central",
            dependencies=("sub",),
            header_references=(HeaderReference(module="sub", symbol="Widget"),),
        )
        report = ModuleResolver().resolve([descriptor])

        [error] = report.errors
        assert isinstance(error, UnresolvedDependencyError)
        assert (error.depender, error.dependee) == ("central", "sub")
        assert report.errors_of(LeakedPrivateDependencyError) == []

    def test_leaked_private_dependency(self):
        report = ModuleResolver().resolve(_leaking_module())

        [error] = report.errors
        assert isinstance(error, LeakedPrivateDependencyError)
        assert error.module == "batch_testing"
        assert error.referenced == "spire"

    def test_normalized_name_collision(self):
        descriptors = [ModuleDescriptor(name="module-1"), ModuleDescriptor(name="module_1")]
        report = ModuleResolver().resolve(descriptors)
        assert len(report.errors_of(DuplicateModuleError)) == 1


class TestConfiguration:
    """Configuration switches change what a run reports."""

    def test_fail_on_implementation_cycles(self):
        config = Config.from_dict({"fail_on_implementation_cycles": True})
        report = ModuleResolver(config).resolve(_impl_ring())

        assert not report.ok
        assert report.warnings == []
        assert [e.cycle for e in report.errors_of(CircularDependencyError)] == [("A", "B", "C")]

    def test_suppressed_warning_dropped(self):
        config = Config.from_dict({"suppress_warnings": ["B"]})
        report = ModuleResolver(config).resolve(_impl_ring())

        assert report.ok
        assert report.warnings == []

    def test_public_interface_check_disabled(self):
        config = Config.from_dict({"check_public_interfaces": False})
        report = ModuleResolver(config).resolve(_leaking_module())
        assert report.ok

    def test_duplicate_name_check_disabled(self):
        config = Config.from_dict({"check_duplicate_names": False})
        descriptors = [ModuleDescriptor(name="module-1"), ModuleDescriptor(name="module_1")]
        assert ModuleResolver(config).resolve(descriptors).ok

    def test_exported_policy_ignores_header_include_cycle(self):
        descriptors = [
            ModuleDescriptor(
                name="A", dependencies=("B",), header_references=(HeaderReference(module="B"),)
            ),
            ModuleDescriptor(
                name="B", dependencies=("A",), header_references=(HeaderReference(module="A"),)
            ),
        ]
        strict = ModuleResolver().resolve(descriptors)
        relaxed = ModuleResolver(Config.from_dict({"cycle_policy": "exported"})).resolve(
            descriptors
        )

        assert not strict.ok
        assert strict.errors_of(CircularDependencyError)[0].cycle == ("A", "B")
        # Both headers still leak; only the cycle classification changes
        assert len(relaxed.errors_of(LeakedPrivateDependencyError)) == 2
        assert relaxed.errors_of(CircularDependencyError) == []
        assert [w.cycle for w in relaxed.warnings] == [("A", "B")]


class TestReportOutput:
    """Tests for report serialization and diagnostics."""

    def test_to_json(self):
        report = ModuleResolver().resolve(_export_no_target())
        data = json.loads(report.to_json())

        assert data["ok"] is True
        assert data["modules"] == 3
        assert data["plan"]["order"] == ["E1M1", "Module1", "Central"]
        assert data["errors"] == []

    def test_failed_report_json_has_null_plan(self):
        report = ModuleResolver().resolve(_leaking_module())
        data = json.loads(report.to_json())

        assert data["ok"] is False
        assert data["plan"] is None
        assert data["errors"][0]["type"] == "leaked_private_dependency"
        assert data["errors"][0]["modules"] == ["spire"]

    def test_diagnostics_carry_source(self):
        descriptors = [
            ModuleDescriptor(name="central", source_location="repo/central", dependencies=("x",))
        ]
        [diagnostic] = ModuleResolver().resolve(descriptors).diagnostics(timestamp="T")

        assert diagnostic.source == "repo/central"
        assert diagnostic.severity == "error"
        assert diagnostic.timestamp == "T"

    def test_diagnostics_written_to_log(self, tmp_path):
        with DiagnosticLogger(session_id="resolver-test", data_root=tmp_path) as diag_log:
            ModuleResolver(diagnostic_logger=diag_log).resolve(_impl_ring())
            log_path = diag_log.get_log_path()

        diagnostics = read_diagnostics_from_log(log_path)
        assert len(diagnostics) == 1
        assert diagnostics[0].type == "implementation_only_cycle"
        assert diagnostics[0].severity == "warning"
        assert diagnostics[0].modules == ["A", "B", "C"]


class TestResolveManifests:
    """Tests for resolve_manifests()."""

    def test_resolves_modules_across_manifests(self, tmp_path):
        first = tmp_path / "first.yml"
        first.write_text(
            "modules:\n"
            "  - name: module1\n"
            "    dependencies: [e1m1]\n"
            "    exports: [e1m1]\n"
            "    header: [e1m1]\n"
        )
        second = tmp_path / "second.yml"
        second.write_text("- name: e1m1\n- name: central\n  dependencies: [module1]\n")

        report = ModuleResolver().resolve_manifests([first, second])

        assert report.ok
        assert report.plan.order == ("e1m1", "module1", "central")
        assert report.sources["e1m1"] == str(second)
