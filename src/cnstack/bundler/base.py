"""
Helpers for writing bundler plugins.

``BaseBundler`` implements the plugin contract and leaves only
``generate`` to subclasses. Files go through a per-run ``BundleWriter``
which tracks every written path and size in the ``Result``, so checksums
and totals stay accurate.

Bundle layout::

    <output_dir>/<bundle_type>/
        scripts/
        manifests/
        README.md          (include_readme)
        checksums.txt      (include_checksums, "sha256  relative/path")

Example::

    class GpuOperatorBundler(BaseBundler):
        bundle_type = "gpu-operator"
        required_types = (MeasurementType.K8S, MeasurementType.GPU)

        def generate(self, ctx, recipe, writer):
            image = recipe.get_subtype("K8s", "image")
            writer.write_text(writer.root / "values.yaml", render_values(image))
"""

from __future__ import annotations

import hashlib
import os
import stat
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from cnstack.bundler.config import BundlerConfig
from cnstack.bundler.result import Result
from cnstack.core.context import RunContext
from cnstack.core.errors import InternalError
from cnstack.core.logging import get_logger
from cnstack.measurement.types import MeasurementType
from cnstack.recipe.recipe import Recipe

logger = get_logger(__name__)

CHECKSUM_FILE = "checksums.txt"
README_FILE = "README.md"


@dataclass(frozen=True)
class BundleDirectories:
    root: Path
    scripts: Path
    manifests: Path


def compute_checksums(bundle_dir: Path, files: list[Path]) -> str:
    """``sha256  relpath`` lines for each file, relative to ``bundle_dir``."""
    lines = []
    for path in files:
        digest = hashlib.sha256(Path(path).read_bytes()).hexdigest()
        try:
            rel = Path(path).relative_to(bundle_dir).as_posix()
        except ValueError:
            rel = str(path)
        lines.append(f"{digest}  {rel}")
    return "\n".join(lines) + "\n"


class BundleWriter:
    """Writes one bundle's files and records them in a Result."""

    def __init__(self, bundle_type: str, output_dir: Path):
        self.result = Result(bundler_type=bundle_type)
        self.dirs = BundleDirectories(
            root=Path(output_dir) / bundle_type,
            scripts=Path(output_dir) / bundle_type / "scripts",
            manifests=Path(output_dir) / bundle_type / "manifests",
        )
        self._start = time.monotonic()

    @property
    def root(self) -> Path:
        return self.dirs.root

    def create_dirs(self) -> BundleDirectories:
        for directory in (self.dirs.root, self.dirs.scripts, self.dirs.manifests):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise InternalError(
                    f"failed to create directory {directory}", cause=e
                ).with_context(path=str(directory)) from e
        logger.debug("bundle.dirs_created", bundler_type=self.result.bundler_type, root=str(self.root))
        return self.dirs

    def write_bytes(self, path: Path | str, content: bytes, mode: int = 0o644) -> Path:
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            os.chmod(path, mode)
        except OSError as e:
            raise InternalError(f"failed to write {path}", cause=e).with_context(path=str(path)) from e
        self.result.add_file(path, len(content))
        logger.debug("bundle.file_written", path=str(path), size_bytes=len(content))
        return path

    def write_text(self, path: Path | str, content: str, mode: int = 0o644) -> Path:
        return self.write_bytes(path, content.encode("utf-8"), mode)

    def make_executable(self, path: Path | str) -> None:
        path = Path(path)
        try:
            current = path.stat().st_mode
            path.chmod(current | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as e:
            self.add_error(f"failed to make {path.name} executable: {e}")
            raise InternalError(f"failed to make {path} executable", cause=e) from e

    def generate_checksums(self, ctx: RunContext) -> Path:
        """Write ``checksums.txt`` covering every file written so far."""
        ctx.check("checksums")
        content = compute_checksums(self.root, list(self.result.files))
        path = self.write_text(self.root / CHECKSUM_FILE, content)
        logger.debug("bundle.checksums_generated", file_count=len(self.result.files) - 1)
        return path

    def add_error(self, message: str) -> None:
        """Record a non-fatal problem on the result."""
        self.result.add_error(message)
        logger.warning("bundle.non_fatal_error", bundler_type=self.result.bundler_type, error=message)

    def finalize(self) -> Result:
        self.result.duration = time.monotonic() - self._start
        self.result.mark_success()
        return self.result


class BaseBundler(ABC):
    """
    Plugin base class: configure, validate required measurements, make.

    Subclasses set ``bundle_type``, optionally ``required_types``, and
    implement ``generate``.
    """

    bundle_type: ClassVar[str] = ""
    required_types: ClassVar[tuple[MeasurementType, ...]] = ()

    def __init__(self, config: BundlerConfig | None = None):
        self.config = config or BundlerConfig()

    def configure(self, config: BundlerConfig) -> None:
        self.config = config

    def validate(self, ctx: RunContext, recipe: Recipe) -> None:
        for measurement_type in self.required_types:
            recipe.validate_measurement_exists(measurement_type)

    def make(self, ctx: RunContext, recipe: Recipe, output_dir: Path) -> Result:
        ctx.check(f"{self.bundle_type}.make")
        writer = BundleWriter(self.bundle_type, output_dir)
        writer.create_dirs()

        self.generate(ctx, recipe, writer)

        if self.config.include_readme:
            writer.write_text(writer.root / README_FILE, self.readme(recipe))
        if self.config.include_checksums:
            writer.generate_checksums(ctx)
        return writer.finalize()

    @abstractmethod
    def generate(self, ctx: RunContext, recipe: Recipe, writer: BundleWriter) -> None:
        """Write the plugin's files through ``writer``. Must be implemented by subclasses."""
        ...

    def readme(self, recipe: Recipe) -> str:
        lines = [
            f"# {self.bundle_type} bundle",
            "",
            f"Generated by cnstack {self.config.version} from recipe payload {recipe.payload_version}.",
        ]
        if recipe.request is not None:
            lines += ["", f"Request: {recipe.request}"]
        if recipe.matched_rules:
            lines += ["", "Matched rules:", ""]
            lines += [f"- {rule}" for rule in recipe.matched_rules]
        return "\n".join(lines) + "\n"

    def base_values(self) -> dict[str, str]:
        """Common values every bundle can embed (version, namespace, labels)."""
        values = {
            "bundler_version": self.config.version,
            "namespace": self.config.namespace,
            "helm_repository": self.config.helm_repository,
            "helm_chart_version": self.config.helm_chart_version,
        }
        for key, value in self.config.custom_labels.items():
            values[f"label_{key}"] = value
        for key, value in self.config.custom_annotations.items():
            values[f"annotation_{key}"] = value
        values.update(self.config.value_overrides_for(self.bundle_type))
        return values


__all__ = [
    "BaseBundler",
    "BundleWriter",
    "BundleDirectories",
    "compute_checksums",
    "CHECKSUM_FILE",
    "README_FILE",
]
