"""Tests for asymmetric overlay rule matching."""

import pytest

from cnstack.recipe.matcher import matches
from cnstack.recipe.query import Query


class TestStringFields:
    def test_wildcard_rule_matches_anything(self):
        rule = Query()
        assert matches(rule, Query(service="eks"))
        assert matches(Query(service="any"), Query(service="gke", gpu="h100"))

    def test_equal_values_match(self):
        assert matches(Query(service="eks"), Query(service="eks", gpu="h100"))

    def test_different_values_fail(self):
        assert not matches(Query(service="eks"), Query(service="gke"))

    def test_case_and_whitespace_insensitive(self):
        assert matches(Query(service="EKS"), Query(service=" eks "))

    @pytest.mark.parametrize("candidate_value", ["", "any"])
    def test_unconstrained_candidate_fails_concrete_rule(self, candidate_value):
        assert not matches(Query(service="eks"), Query(service=candidate_value, gpu="h100"))

    def test_not_commutative(self):
        rule, candidate = Query(gpu="h100"), Query(service="eks", gpu="h100")
        assert matches(rule, candidate)
        assert not matches(candidate, rule)

    def test_all_fields_must_hold(self):
        rule = Query(service="eks", gpu="h100", intent="training")
        assert matches(rule, Query(service="eks", gpu="h100", intent="training"))
        assert not matches(rule, Query(service="eks", gpu="h100", intent="inference"))
        assert not matches(rule, Query(service="eks", gpu="h100"))


class TestVersionFields:
    def test_rule_without_version_matches(self):
        assert matches(Query(service="eks"), Query(service="eks", k8s="1.30.2"))

    def test_exact_version_matches(self):
        assert matches(Query(k8s="1.29"), Query(k8s="v1.29"))
        assert matches(Query(k8s="1.29.0-eks.3"), Query(k8s="1.29.0-eks.3"))

    def test_rule_is_not_a_prefix(self):
        assert not matches(Query(k8s="1.29"), Query(k8s="1.29.4"))
        assert not matches(Query(k8s="1.29.0"), Query(k8s="1.29.0-eks.1"))
        assert not matches(Query(k8s="1.29"), Query(k8s="1.30"))

    def test_precision_must_agree(self):
        assert not matches(Query(k8s="1.29.3"), Query(k8s="1.29"))
        assert not matches(Query(k8s="1.29"), Query(k8s="1.29.0"))

    def test_missing_candidate_version_fails(self):
        assert not matches(Query(k8s="1.29"), Query(service="eks"))

    def test_os_version_and_kernel(self):
        rule = Query(os="ubuntu", os_version="24.04", kernel="6.8.0-1015-aws")
        assert matches(rule, Query(os="ubuntu", os_version="24.04", kernel="6.8.0-1015-aws"))
        assert not matches(rule, Query(os="ubuntu", os_version="22.04", kernel="6.8.0-1015-aws"))
        assert not matches(rule, Query(os="ubuntu", os_version="24.04", kernel="6.8.0"))


class TestDegenerateInputs:
    def test_none(self):
        assert not matches(None, Query(service="eks"))
        assert not matches(Query(service="eks"), None)

    def test_empty_candidate_never_matches(self):
        assert not matches(Query(service="eks"), Query())
        assert not matches(Query(), Query())

    def test_is_match_delegates(self):
        assert Query(service="eks").is_match(Query(service="eks"))
