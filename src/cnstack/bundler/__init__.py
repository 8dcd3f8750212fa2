"""Bundler plugins: contract, registry, orchestration and authoring helpers."""

from cnstack.bundler.base import BaseBundler, BundleWriter
from cnstack.bundler.config import BundlerConfig, parse_value_overrides
from cnstack.bundler.orchestrator import BundlerOrchestrator, ExecutionMode, MakeOptions, make_bundles
from cnstack.bundler.registry import PluginRegistry
from cnstack.bundler.result import BundleError, Output, Result, format_bytes
from cnstack.bundler.types import BundlePlugin, Configurable, Validatable

__all__ = [
    "BaseBundler",
    "BundleWriter",
    "BundlerConfig",
    "parse_value_overrides",
    "BundlerOrchestrator",
    "ExecutionMode",
    "MakeOptions",
    "make_bundles",
    "PluginRegistry",
    "BundleError",
    "Output",
    "Result",
    "format_bytes",
    "BundlePlugin",
    "Configurable",
    "Validatable",
]
