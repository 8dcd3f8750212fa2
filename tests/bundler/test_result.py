"""Tests for Result, BundleError and Output aggregation helpers."""

from pathlib import Path

import pytest

from cnstack.bundler.result import BundleError, Output, Result, format_bytes


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 B"),
        (1023, "1023 B"),
        (1024, "1.0 KB"),
        (1536, "1.5 KB"),
        (1048576, "1.0 MB"),
        (5 * 1024**3, "5.0 GB"),
    ],
)
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


class TestResult:
    def test_defaults(self):
        result = Result(bundler_type="x")
        assert not result.success
        assert result.files == []
        assert result.size == 0

    def test_add_file_tracks_size(self):
        result = Result(bundler_type="x")
        result.add_file("a.yaml", 10)
        result.add_file(Path("b.yaml"), 5)
        assert result.files == [Path("a.yaml"), Path("b.yaml")]
        assert result.size == 15

    def test_to_dict(self):
        result = Result(bundler_type="x")
        result.add_error("warn")
        result.mark_success()
        assert result.to_dict() == {
            "bundler_type": "x",
            "files": [],
            "size": 0,
            "duration_seconds": 0.0,
            "success": True,
            "errors": ["warn"],
        }


class TestOutput:
    @pytest.fixture
    def output(self):
        ok = Result(bundler_type="ok", size=2048, success=True)
        ok.files = [Path("ok/a"), Path("ok/b")]
        bad = Result(bundler_type="bad")
        return Output(
            results=[ok, bad],
            errors=[BundleError("bad", "boom")],
            total_size=2048,
            total_files=2,
            total_duration=0.25,
        )

    def test_counts(self, output):
        assert output.has_errors()
        assert output.success_count() == 1
        assert output.failure_count() == 1
        assert output.successful_bundlers() == ["ok"]
        assert output.failed_bundlers() == ["bad"]
        assert set(output.by_type()) == {"ok", "bad"}

    def test_summary(self, output):
        assert output.summary() == "Generated 2 files (2.0 KB) in 0.250s. Success: 1/2 bundlers."

    def test_to_dict(self, output):
        data = output.to_dict()
        assert data["errors"] == [
            {"bundler_type": "bad", "message": "boom", "stage": "execution", "code": "INTERNAL"}
        ]
        assert len(data["results"]) == 2

    def test_empty(self):
        output = Output()
        assert not output.has_errors()
        assert output.summary() == "Generated 0 files (0 B) in 0.000s. Success: 0/0 bundlers."
