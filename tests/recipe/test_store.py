"""Tests for overlay store parsing and the load-once accessor."""

import threading

import pytest

from cnstack.core.errors import StoreLoadError
from cnstack.core.settings import reset_settings
from cnstack.measurement.types import MeasurementType
from cnstack.recipe import store as store_module
from cnstack.recipe.query import Query
from cnstack.recipe.store import Store, load_store, reset_store_cache


class TestStoreParsing:
    def test_scenario_document(self, scenario_store):
        assert [m.type for m in scenario_store.base] == [MeasurementType.K8S]
        assert len(scenario_store.overlays) == 1
        overlay = scenario_store.overlays[0]
        assert overlay.key == Query(service="eks")
        assert [m.type for m in overlay.types] == [MeasurementType.K8S, MeasurementType.GPU]

    def test_overlay_rule_string(self, scenario_store):
        assert scenario_store.overlays[0].rule == (
            "OS: any any, Kernel: any, Service: eks, K8s: any, GPU: any, Intent: any"
        )

    def test_quoted_version_key(self):
        store = Store.from_yaml(
            """
overlays:
  - key: {service: eks, k8s: "1.30"}
    types: []
"""
        )
        assert str(store.overlays[0].key.k8s) == "1.30"

    def test_type_names_case_insensitive(self):
        store = Store.from_yaml(
            "base:\n  - type: gpu\n    subtypes:\n      - subtype: drivers\n        data: {version: '550'}\n"
        )
        assert store.base[0].type is MeasurementType.GPU

    def test_readings_keep_scalar_kinds(self):
        store = Store.from_yaml(
            "base:\n  - type: SystemD\n    subtypes:\n      - subtype: svc\n"
            "        data: {enabled: true, limit: 10, ratio: 0.5, name: x}\n"
        )
        subtype = store.base[0].subtypes[0]
        assert subtype.get_bool("enabled") is True
        assert subtype.get_int("limit") == 10
        assert subtype.get_float("ratio") == 0.5
        assert subtype.get_string("name") == "x"

    def test_empty_document(self):
        store = Store.from_yaml("{}")
        assert store.base == ()
        assert store.overlays == ()


class TestStoreErrors:
    def test_invalid_yaml(self):
        with pytest.raises(StoreLoadError, match="invalid YAML"):
            Store.from_yaml("base: [unterminated", source="broken.yaml")

    def test_root_not_mapping(self):
        with pytest.raises(StoreLoadError, match="mapping"):
            Store.from_yaml("- just\n- a list\n")

    def test_unknown_field_rejected(self):
        with pytest.raises(StoreLoadError, match="validation"):
            Store.from_dict({"base": [], "extras": {}})

    def test_unknown_measurement_type(self):
        with pytest.raises(StoreLoadError):
            Store.from_dict({"base": [{"type": "Network", "subtypes": [{"subtype": "x"}]}]})

    def test_duplicate_base_type(self):
        entry = {"type": "K8s", "subtypes": [{"subtype": "a", "data": {"k": "v"}}]}
        with pytest.raises(StoreLoadError):
            Store.from_dict({"base": [entry, entry]})

    @pytest.mark.parametrize("value", ["1.30", "1", "24.04"])
    def test_unquoted_version_key_rejected(self, value):
        text = f"overlays:\n  - key: {{service: eks, k8s: {value}}}\n    types: []\n"
        with pytest.raises(StoreLoadError, match="validation") as exc_info:
            Store.from_yaml(text)
        assert "must be quoted" in str(exc_info.value.cause)

    def test_invalid_overlay_key(self):
        with pytest.raises(StoreLoadError, match="overlay #0"):
            Store.from_dict({"overlays": [{"key": {"gpu": "a100"}, "types": []}]})

    def test_missing_file(self, tmp_path):
        with pytest.raises(StoreLoadError, match="cannot read"):
            Store.from_file(tmp_path / "missing.yaml")

    def test_error_code(self):
        with pytest.raises(StoreLoadError) as exc_info:
            Store.from_yaml("base: [unterminated")
        assert exc_info.value.code.value == "INTERNAL"


class TestPackagedStore:
    def test_packaged_data_loads(self):
        store = Store.packaged()
        assert {m.type for m in store.base} == set(MeasurementType)
        assert len(store.overlays) >= 5

    def test_packaged_overlays_have_keys(self):
        for overlay in Store.packaged().overlays:
            assert not overlay.key.is_empty()


class TestLoadStore:
    def test_loads_once(self):
        first = load_store()
        assert load_store() is first

    def test_reset(self):
        first = load_store()
        reset_store_cache()
        assert load_store() is not first

    def test_file_override(self, tmp_path, monkeypatch, scenario_yaml):
        path = tmp_path / "recipe.yaml"
        path.write_text(scenario_yaml)
        monkeypatch.setenv("CNS_RECIPE_DATA_FILE", str(path))
        reset_settings()

        store = load_store()
        assert len(store.overlays) == 1

    def test_error_is_cached(self, tmp_path, monkeypatch):
        path = tmp_path / "broken.yaml"
        path.write_text("base: [unterminated")
        monkeypatch.setenv("CNS_RECIPE_DATA_FILE", str(path))
        reset_settings()

        with pytest.raises(StoreLoadError) as first:
            load_store()

        # Fixing the file does not help until the cache is reset.
        path.write_text("{}")
        with pytest.raises(StoreLoadError) as second:
            load_store()
        assert second.value is not first.value
        assert second.value.message == first.value.message
        assert second.value.cause is first.value.cause
        assert second.value.context.path == str(path)

        reset_store_cache()
        assert load_store().overlays == ()

    def test_repeated_failures_keep_traceback_size(self, tmp_path, monkeypatch):
        path = tmp_path / "broken.yaml"
        path.write_text("base: [unterminated")
        monkeypatch.setenv("CNS_RECIPE_DATA_FILE", str(path))
        reset_settings()

        def traceback_depth(error):
            depth, tb = 0, error.__traceback__
            while tb is not None:
                depth, tb = depth + 1, tb.tb_next
            return depth

        depths = []
        for _ in range(50):
            with pytest.raises(StoreLoadError) as exc_info:
                load_store()
            depths.append(traceback_depth(exc_info.value))
            if len(depths) == 1:
                cached_depth = traceback_depth(store_module._error)

        assert len(set(depths)) == 1
        assert traceback_depth(store_module._error) == cached_depth

    def test_concurrent_first_callers_share_one_parse(self, monkeypatch):
        calls = []
        real = store_module._read_configured_store

        def counting():
            calls.append(1)
            return real()

        monkeypatch.setattr(store_module, "_read_configured_store", counting)

        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(load_store())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert all(r is results[0] for r in results)
