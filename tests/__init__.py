"""Test suite for extforge.

Test Structure:
- unit/: Unit tests per area (patchset, patching, shims, manifest, pipeline,
  toolchain, io, config, coordinator, logging, cli)
- integration/: End-to-end extension builds and multi-project bundles
- conftest.py: Fake build outputs, projects, configs and tool factories
"""
