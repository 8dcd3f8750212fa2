"""
Bundler orchestration: run selected plugins against a recipe.

Manifesto:
    Plugins are written by different teams and fail in different ways. One
    broken plugin must not take the others down unless the caller asks for
    all-or-nothing behaviour.

    - **Plugin-scoped failures:** Every failure is recorded against the
      plugin and lifecycle stage that produced it
    - **Best effort by default:** All plugins run; callers inspect
      ``Output.errors``
    - **Fail-fast on request:** The first failure cancels the shared run
      context and is raised once every task has been accounted for

Architecture:
    ::

        make(recipe, output_dir, options, ctx)
          │
          ├── validate recipe / output dir
          ├── select plugins (options.types or all)
          │
          ├── SEQUENTIAL: for each plugin → _execute_plugin
          │                 (fail_fast: stop after first failure)
          │
          ├── PARALLEL:   ThreadPoolExecutor(one worker per plugin)
          │                 as_completed → collect every outcome
          │                 (fail_fast: cancel shared child context)
          │
          └── aggregate → Output  (totals over successful results)

        _execute_plugin:  configure? → validate? → make
                          any exception → PluginError(type, stage)

Examples:
    >>> orchestrator = BundlerOrchestrator(registry)
    >>> output = orchestrator.make(recipe, tmp_path)
    >>> output.summary()
    'Generated 4 files (2.1 KB) in 0.012s. Success: 2/2 bundlers.'

Tags:
    orchestration, plugins, concurrency, fail-fast, cnstack

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from cnstack.bundler.config import BundlerConfig
from cnstack.bundler.registry import PluginRegistry
from cnstack.bundler.result import BundleError, Output, Result
from cnstack.bundler.types import BundlePlugin, Configurable, Validatable
from cnstack.core.context import RunContext
from cnstack.core.errors import (
    BundleExecutionError,
    InternalError,
    InvalidRequestError,
    PluginError,
    PluginStage,
)
from cnstack.core.logging import get_logger
from cnstack.recipe.recipe import Recipe

if TYPE_CHECKING:
    from cnstack.core.settings import CnsSettings

logger = get_logger(__name__)


class ExecutionMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


@dataclass(frozen=True)
class MakeOptions:
    """Per-call orchestration options."""

    types: tuple[str, ...] = field(default_factory=tuple)
    fail_fast: bool = False
    mode: ExecutionMode = ExecutionMode.PARALLEL

    def __post_init__(self) -> None:
        object.__setattr__(self, "types", tuple(self.types))
        object.__setattr__(self, "mode", ExecutionMode(self.mode))

    @classmethod
    def from_settings(cls, settings: CnsSettings) -> MakeOptions:
        return cls(
            types=tuple(settings.bundle_type_list),
            fail_fast=settings.bundle_fail_fast,
            mode=ExecutionMode(settings.bundle_mode),
        )


@dataclass
class _Outcome:
    result: Result
    error: PluginError | None = None


class BundlerOrchestrator:
    """
    Runs registered bundler plugins over a recipe.

    The shared ``config`` is handed to every plugin that implements
    ``configure``. It is frozen; plugins that keep state derived from it
    must synchronize that state themselves.
    """

    def __init__(self, registry: PluginRegistry, config: BundlerConfig | None = None):
        self.registry = registry
        self.config = config or registry.config

    def make(
        self,
        recipe: Recipe | None,
        output_dir: Path | str = "",
        options: MakeOptions | None = None,
        *,
        ctx: RunContext | None = None,
    ) -> Output:
        """
        Generate bundles for ``recipe`` under ``output_dir``.

        Returns:
            Output with one Result per executed plugin and one BundleError
            per failed plugin.

        Raises:
            InvalidRequestError: recipe missing or malformed, or no plugin selected
            InternalError: the output directory could not be created
            BundleExecutionError: fail-fast mode and a plugin failed; the
                partial Output is attached as ``error.output``
        """
        options = options or MakeOptions()
        ctx = ctx or RunContext.background()
        start = time.monotonic()

        if recipe is None:
            raise InvalidRequestError("recipe is required").with_context(field="recipe")
        if not isinstance(recipe, Recipe):
            raise InvalidRequestError(
                f"expected Recipe, got {type(recipe).__name__}"
            ).with_context(field="recipe")
        recipe.validate_structure()

        out_dir = self._prepare_output_dir(output_dir)

        plugins = self._select(options.types)
        if not plugins:
            raise InvalidRequestError(
                "no bundlers selected",
            ).with_context(requested=list(options.types), available=self.registry.list_types())

        logger.info(
            "bundle.start",
            bundlers=list(plugins),
            mode=options.mode.value,
            fail_fast=options.fail_fast,
            output_dir=str(out_dir),
        )

        if options.mode is ExecutionMode.SEQUENTIAL:
            outcomes = self._run_sequential(ctx, plugins, recipe, out_dir, options.fail_fast)
        else:
            outcomes = self._run_parallel(ctx, plugins, recipe, out_dir, options.fail_fast)

        output = self._aggregate(outcomes, out_dir)
        output.total_duration = time.monotonic() - start

        first_error = next((o.error for o in outcomes if o.error is not None), None)
        if options.fail_fast and first_error is not None:
            logger.error(
                "bundle.fail_fast",
                bundler_type=first_error.bundler_type,
                stage=first_error.stage.value,
                error=str(first_error.cause),
            )
            raise BundleExecutionError(
                "bundler execution failed", cause=first_error, output=output
            )

        logger.info(
            "bundle.complete",
            succeeded=output.success_count(),
            failed=output.failure_count(),
            total_files=output.total_files,
            total_size=output.total_size,
            duration_seconds=round(output.total_duration, 3),
        )
        return output

    # ── Selection / setup ────────────────────────────────────────

    def _select(self, types: tuple[str, ...]) -> dict[str, BundlePlugin]:
        available = self.registry.get_all()
        if not types:
            return available
        selected: dict[str, BundlePlugin] = {}
        for bundle_type in types:
            plugin = available.get(bundle_type)
            if plugin is None:
                logger.debug("bundle.unknown_type_skipped", bundler_type=bundle_type)
                continue
            selected[bundle_type] = plugin
        return selected

    @staticmethod
    def _prepare_output_dir(output_dir: Path | str) -> Path:
        out_dir = Path(output_dir) if str(output_dir) else Path(".")
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InternalError(
                f"failed to create output directory {out_dir}", cause=e
            ).with_context(path=str(out_dir)) from e
        return out_dir

    # ── Execution strategies ─────────────────────────────────────

    def _run_sequential(
        self,
        ctx: RunContext,
        plugins: dict[str, BundlePlugin],
        recipe: Recipe,
        out_dir: Path,
        fail_fast: bool,
    ) -> list[_Outcome]:
        outcomes: list[_Outcome] = []
        for bundle_type, plugin in plugins.items():
            outcome = self._execute_plugin(ctx, bundle_type, plugin, recipe, out_dir)
            outcomes.append(outcome)
            if fail_fast and outcome.error is not None:
                logger.warning("bundle.sequential.stopping_on_failure", bundler_type=bundle_type)
                break
        return outcomes

    def _run_parallel(
        self,
        ctx: RunContext,
        plugins: dict[str, BundlePlugin],
        recipe: Recipe,
        out_dir: Path,
        fail_fast: bool,
    ) -> list[_Outcome]:
        group_ctx = ctx.with_cancel()
        outcomes: list[_Outcome] = []

        with ThreadPoolExecutor(max_workers=len(plugins), thread_name_prefix="bundler") as executor:
            futures: dict[Future[_Outcome], str] = {
                executor.submit(
                    self._execute_plugin, group_ctx, bundle_type, plugin, recipe, out_dir
                ): bundle_type
                for bundle_type, plugin in plugins.items()
            }

            # Drain every future before deciding the aggregate outcome.
            for future in as_completed(futures):
                bundle_type = futures[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    error = PluginError(bundle_type, PluginStage.EXECUTION, e)
                    outcome = _Outcome(Result(bundler_type=bundle_type), error)

                outcomes.append(outcome)
                if fail_fast and outcome.error is not None and not group_ctx.done():
                    logger.warning("bundle.parallel.cancelling_siblings", bundler_type=bundle_type)
                    group_ctx.cancel(outcome.error)

        group_ctx.cancel()
        return outcomes

    # ── Single plugin lifecycle ──────────────────────────────────

    def _execute_plugin(
        self,
        ctx: RunContext,
        bundle_type: str,
        plugin: BundlePlugin,
        recipe: Recipe,
        out_dir: Path,
    ) -> _Outcome:
        start = time.monotonic()
        stage = PluginStage.CONFIGURATION
        logger.debug("bundler.start", bundler_type=bundle_type)

        try:
            if isinstance(plugin, Configurable):
                plugin.configure(self.config)

            stage = PluginStage.VALIDATION
            if isinstance(plugin, Validatable):
                plugin.validate(ctx, recipe)

            stage = PluginStage.EXECUTION
            result = plugin.make(ctx, recipe, out_dir)
            if not isinstance(result, Result):
                raise InternalError(
                    f"bundler {bundle_type} returned {type(result).__name__} instead of Result"
                )
            if not result.success:
                detail = "; ".join(result.errors) or "bundler reported failure"
                raise InternalError(detail)
        except Exception as e:
            error = PluginError(bundle_type, stage, e)
            failed = Result(bundler_type=bundle_type, duration=time.monotonic() - start)
            failed.add_error(str(e))
            logger.warning(
                "bundler.failed",
                bundler_type=bundle_type,
                stage=stage.value,
                code=error.code.value,
                error=str(e),
            )
            return _Outcome(failed, error)

        result.bundler_type = result.bundler_type or bundle_type
        result.duration = time.monotonic() - start
        logger.info(
            "bundler.completed",
            bundler_type=bundle_type,
            files=len(result.files),
            size=result.size,
            duration_seconds=round(result.duration, 3),
        )
        return _Outcome(result)

    # ── Aggregation ──────────────────────────────────────────────

    @staticmethod
    def _aggregate(outcomes: list[_Outcome], out_dir: Path) -> Output:
        output = Output(output_dir=out_dir)
        for outcome in outcomes:
            output.results.append(outcome.result)
            if outcome.error is not None:
                output.errors.append(
                    BundleError(
                        bundler_type=outcome.error.bundler_type,
                        message=str(outcome.error.cause),
                        stage=outcome.error.stage.value,
                        code=outcome.error.code.value,
                    )
                )
                continue
            output.total_size += outcome.result.size
            output.total_files += len(outcome.result.files)
        return output


def make_bundles(
    recipe: Recipe,
    registry: PluginRegistry,
    output_dir: Path | str = "",
    options: MakeOptions | None = None,
    *,
    ctx: RunContext | None = None,
) -> Output:
    """One-shot orchestration with the registry's configuration."""
    return BundlerOrchestrator(registry).make(recipe, output_dir, options, ctx=ctx)


__all__ = ["BundlerOrchestrator", "ExecutionMode", "MakeOptions", "make_bundles"]
