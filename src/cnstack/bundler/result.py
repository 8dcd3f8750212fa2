"""Per-plugin results and the aggregated orchestration output."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def format_bytes(size: int) -> str:
    """Human readable size in binary units (``1536`` → ``"1.5 KB"``)."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"


@dataclass
class Result:
    """What one bundler plugin produced."""

    bundler_type: str
    files: list[Path] = field(default_factory=list)
    size: int = 0
    duration: float = 0.0
    success: bool = False
    errors: list[str] = field(default_factory=list)

    def add_file(self, path: Path | str, size: int) -> None:
        self.files.append(Path(path))
        self.size += size

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def mark_success(self) -> None:
        self.success = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "bundler_type": self.bundler_type,
            "files": [str(f) for f in self.files],
            "size": self.size,
            "duration_seconds": self.duration,
            "success": self.success,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class BundleError:
    """A failure attributed to one plugin and lifecycle stage."""

    bundler_type: str
    message: str
    stage: str = "execution"
    code: str = "INTERNAL"

    def to_dict(self) -> dict[str, Any]:
        return {
            "bundler_type": self.bundler_type,
            "message": self.message,
            "stage": self.stage,
            "code": self.code,
        }


@dataclass
class Output:
    """
    Aggregated outcome of one orchestration run.

    ``total_size`` and ``total_files`` cover successful results only;
    ``total_duration`` is wall-clock seconds for the whole run. Result order
    follows completion order and is not stable in parallel mode.
    """

    results: list[Result] = field(default_factory=list)
    errors: list[BundleError] = field(default_factory=list)
    total_size: int = 0
    total_files: int = 0
    total_duration: float = 0.0
    output_dir: Path = field(default_factory=lambda: Path("."))

    def has_errors(self) -> bool:
        return bool(self.errors)

    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    def failure_count(self) -> int:
        return len(self.results) - self.success_count()

    def by_type(self) -> dict[str, Result]:
        return {r.bundler_type: r for r in self.results}

    def failed_bundlers(self) -> list[str]:
        return [e.bundler_type for e in self.errors]

    def successful_bundlers(self) -> list[str]:
        return [r.bundler_type for r in self.results if r.success]

    def summary(self) -> str:
        return (
            f"Generated {self.total_files} files ({format_bytes(self.total_size)}) "
            f"in {self.total_duration:.3f}s. "
            f"Success: {self.success_count()}/{len(self.results)} bundlers."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "output_dir": str(self.output_dir),
            "total_files": self.total_files,
            "total_size": self.total_size,
            "total_duration_seconds": self.total_duration,
            "results": [r.to_dict() for r in self.results],
            "errors": [e.to_dict() for e in self.errors],
        }


__all__ = ["Result", "BundleError", "Output", "format_bytes"]
