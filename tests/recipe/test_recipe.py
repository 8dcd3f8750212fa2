"""Tests for Recipe lookup, validation and serialization."""

import json

import pytest
import yaml

from cnstack.core.errors import InvalidRequestError
from cnstack.measurement.types import Measurement, MeasurementType, Subtype
from cnstack.recipe.recipe import Recipe, validate_required_keys


class TestLookup:
    def test_get_measurement_by_name(self, eks_recipe):
        assert eks_recipe.get_measurement("gpu").type is MeasurementType.GPU
        assert eks_recipe.get_measurement(MeasurementType.OS) is None

    def test_get_subtype(self, eks_recipe):
        assert eks_recipe.get_subtype("K8s", "worker").name == "worker"
        assert eks_recipe.get_subtype("K8s", "missing") is None
        assert eks_recipe.get_subtype("OS", "release") is None


class TestValidation:
    def test_empty_recipe(self):
        with pytest.raises(InvalidRequestError, match="no measurements"):
            Recipe().validate()

    def test_structure_ok(self, eks_recipe):
        eks_recipe.validate_structure()

    def test_measurement_without_subtypes(self):
        recipe = Recipe(measurements=[Measurement(MeasurementType.K8S)])
        with pytest.raises(InvalidRequestError, match="no subtypes"):
            recipe.validate_structure()

    def test_unnamed_subtype(self):
        recipe = Recipe(measurements=[Measurement(MeasurementType.K8S, [Subtype(name="")])])
        with pytest.raises(InvalidRequestError, match="empty name"):
            recipe.validate_structure()

    def test_measurement_exists(self, eks_recipe):
        eks_recipe.validate_measurement_exists("GPU")
        with pytest.raises(InvalidRequestError, match="SystemD not found"):
            eks_recipe.validate_measurement_exists(MeasurementType.SYSTEMD)

    def test_subtype_exists(self, eks_recipe):
        eks_recipe.validate_subtype_exists("K8s", "worker")
        with pytest.raises(InvalidRequestError, match="subtype image not found"):
            eks_recipe.validate_subtype_exists("K8s", "image")

    def test_required_keys(self, eks_recipe):
        drivers = eks_recipe.get_subtype("GPU", "drivers")
        validate_required_keys(drivers, ["version"])
        with pytest.raises(InvalidRequestError, match="required key cuda"):
            validate_required_keys(drivers, ["version", "cuda"])
        with pytest.raises(InvalidRequestError):
            validate_required_keys(None, ["version"])


class TestSerialization:
    def test_to_dict_shape(self, eks_recipe):
        data = eks_recipe.to_dict()
        assert list(data) == ["payloadVersion", "generatedAt", "request", "matchedRules", "measurements"]
        assert data["request"] == {"service": "eks"}
        assert data["measurements"][1] == {
            "type": "GPU",
            "subtypes": [{"subtype": "drivers", "data": {"version": "550"}}],
        }

    def test_json(self, eks_recipe):
        data = json.loads(eks_recipe.to_json())
        assert data["payloadVersion"] == "test"
        assert len(data["measurements"]) == 2

    def test_yaml_round_trip(self, eks_recipe):
        text = eks_recipe.to_yaml()
        assert yaml.safe_load(text)["matchedRules"] == eks_recipe.matched_rules

        restored = Recipe.from_yaml(text)
        assert restored.measurements == eks_recipe.measurements
        assert restored.request == eks_recipe.request
        assert restored.generated_at == eks_recipe.generated_at

    def test_from_yaml_rejects_non_mapping(self):
        with pytest.raises(InvalidRequestError):
            Recipe.from_yaml("- a\n- b\n")
