"""Tests for reading filters and measurement diffs."""

import pytest

from cnstack.core.errors import InvalidRequestError
from cnstack.measurement import (
    Measurement,
    MeasurementType,
    Reading,
    Subtype,
    compare,
    filter_in,
    filter_out,
    matches_pattern,
)

READINGS = {
    "driver-version": Reading("550"),
    "driver-branch": Reading("r550"),
    "cuda-version": Reading("12.4"),
    "mig": Reading(False),
}


class TestMatchesPattern:
    @pytest.mark.parametrize(
        ("key", "pattern", "expected"),
        [
            ("driver-version", "driver-version", True),
            ("driver-version", "driver", False),
            ("driver-version", "driver*", True),
            ("cuda-version", "*version", True),
            ("cuda-version", "*da-ve*", True),
            ("aXbYc", "a*b*c", True),
            ("aXbY", "a*b*c", False),
            ("anything", "*", True),
            ("a.b", "a?b", False),
        ],
    )
    def test_patterns(self, key, pattern, expected):
        assert matches_pattern(key, pattern) is expected


class TestFilters:
    def test_filter_out(self):
        assert set(filter_out(READINGS, ["driver*"])) == {"cuda-version", "mig"}

    def test_filter_in(self):
        assert set(filter_in(READINGS, ["*version", "mig"])) == {"driver-version", "cuda-version", "mig"}

    def test_filters_are_complements(self):
        patterns = ["*branch"]
        kept = filter_in(READINGS, patterns)
        dropped = filter_out(READINGS, patterns)
        assert {**kept, **dropped} == READINGS
        assert not set(kept) & set(dropped)

    def test_input_untouched(self):
        before = dict(READINGS)
        filter_out(READINGS, ["*"])
        assert READINGS == before


class TestCompare:
    def _gpu(self, **subtypes) -> Measurement:
        return Measurement(
            type=MeasurementType.GPU,
            subtypes=[Subtype.from_values(name, data) for name, data in subtypes.items()],
        )

    def test_changed_and_new_keys(self):
        old = self._gpu(drivers={"version": "550", "cuda": "12.4"})
        new = self._gpu(drivers={"version": "570", "cuda": "12.4", "open": True})
        diffs = compare(old, new)
        assert len(diffs) == 1
        assert diffs[0].values() == {"version": "570", "open": True}

    def test_new_subtype_included_whole(self):
        old = self._gpu(drivers={"version": "550"})
        new = self._gpu(drivers={"version": "550"}, smi={"persistence": True})
        diffs = compare(old, new)
        assert [d.name for d in diffs] == ["smi"]

    def test_type_change_counts_as_difference(self):
        diffs = compare(self._gpu(d={"v": 1}), self._gpu(d={"v": "1"}))
        assert diffs[0].values() == {"v": "1"}

    def test_identical(self):
        assert compare(self._gpu(d={"v": 1}), self._gpu(d={"v": 1})) == []

    def test_different_types_rejected(self):
        k8s = Measurement(type=MeasurementType.K8S, subtypes=[])
        with pytest.raises(InvalidRequestError):
            compare(self._gpu(d={"v": 1}), k8s)
