"""
Bundler plugin contract.

A plugin must implement ``make``. ``configure`` and ``validate`` are
optional capabilities; the orchestrator detects them with ``isinstance``
against the narrow protocols below.

Example::

    class ReadmeBundler:
        def make(self, ctx, recipe, output_dir):
            ctx.check("readme")
            result = Result(bundler_type="readme")
            ...
            result.mark_success()
            return result
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cnstack.bundler.config import BundlerConfig
    from cnstack.bundler.result import Result
    from cnstack.core.context import RunContext
    from cnstack.recipe.recipe import Recipe


@runtime_checkable
class BundlePlugin(Protocol):
    """Turns a recipe into deployment artifacts under ``output_dir``."""

    def make(self, ctx: RunContext, recipe: Recipe, output_dir: Path) -> Result:
        """Generate artifacts. Raise on failure."""
        ...


@runtime_checkable
class Configurable(Protocol):
    def configure(self, config: BundlerConfig) -> None:
        ...


@runtime_checkable
class Validatable(Protocol):
    def validate(self, ctx: RunContext, recipe: Recipe) -> None:
        ...


__all__ = ["BundlePlugin", "Configurable", "Validatable"]
