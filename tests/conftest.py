"""
Shared pytest fixtures and configuration for cnstack tests.

This module provides:
- Cache reset fixtures for test isolation (store, settings)
- A small in-memory store mirroring the documented end-to-end scenario
- Recipe and plugin registry fixtures
"""

import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure cnstack package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cnstack.bundler import BundlerConfig, PluginRegistry, Result
from cnstack.core.settings import reset_settings
from cnstack.recipe import Query, RecipeBuilder, Store, reset_store_cache


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Cache Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_caches_fixture() -> Generator[None, None, None]:
    """Reset the process-wide store and settings caches around each test."""
    reset_store_cache()
    reset_settings()
    yield
    reset_store_cache()
    reset_settings()


# =============================================================================
# Store / Recipe Fixtures
# =============================================================================


SCENARIO_YAML = """
base:
  - type: K8s
    subtypes:
      - subtype: control-plane
        data:
          version: "1.28.3"
overlays:
  - key:
      service: eks
    types:
      - type: K8s
        subtypes:
          - subtype: control-plane
            data:
              version: "1.29.0"
          - subtype: worker
            data:
              version: "1.29.0"
      - type: GPU
        subtypes:
          - subtype: drivers
            data:
              version: "550"
"""


@pytest.fixture
def scenario_yaml() -> str:
    return SCENARIO_YAML


@pytest.fixture
def scenario_store() -> Store:
    """Base K8s control-plane 1.28.3 plus a single eks overlay."""
    return Store.from_yaml(SCENARIO_YAML)


@pytest.fixture
def eks_recipe(scenario_store: Store):
    return RecipeBuilder(store=scenario_store, version="test").build(Query(service="eks"))


# =============================================================================
# Plugin Fixtures
# =============================================================================


class FileBundler:
    """Minimal plugin writing one file under <output>/<name>/."""

    def __init__(self, name: str, content: str = "ok\n"):
        self.name = name
        self.content = content
        self.calls = 0

    def make(self, ctx, recipe, output_dir):
        ctx.check(self.name)
        self.calls += 1
        result = Result(bundler_type=self.name)
        target = Path(output_dir) / self.name
        target.mkdir(parents=True, exist_ok=True)
        path = target / "values.yaml"
        path.write_text(self.content)
        result.add_file(path, len(self.content.encode()))
        result.mark_success()
        return result


class FailingBundler:
    """Plugin whose make always raises."""

    def __init__(self, message: str = "boom"):
        self.message = message

    def make(self, ctx, recipe, output_dir):
        raise RuntimeError(self.message)


@pytest.fixture
def registry() -> PluginRegistry:
    return PluginRegistry(BundlerConfig(version="test"))


@pytest.fixture
def file_bundler():
    """Factory: ``file_bundler("name")`` builds a succeeding plugin."""
    return FileBundler


@pytest.fixture
def failing_bundler():
    """Factory: ``failing_bundler("message")`` builds a plugin that raises."""
    return FailingBundler
