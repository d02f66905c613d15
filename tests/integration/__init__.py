# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for the module resolver.

This package resolves small multi-repository projects end to end, from
YAML manifests on disk to a build plan or a set of diagnostics.
"""
