import itertools

import pytest

from inferencedict import SUPPORTED_GROUPS, DuplicateGroupError, reorder_group_names
from inferencedict.groups import is_supported_group, rekey


def test_known_groups_come_first_by_rank():
    names = ["sample_stats", "custom_b", "posterior", "custom_a", "observed_data"]
    assert reorder_group_names(names) == (
        "posterior",
        "sample_stats",
        "observed_data",
        "custom_b",
        "custom_a",
    )


def test_ordering_ignores_input_permutation():
    expected = ("posterior", "log_likelihood", "prior")
    for perm in itertools.permutations(["prior", "posterior", "log_likelihood"]):
        assert reorder_group_names(perm) == expected


def test_ordering_is_idempotent():
    once = reorder_group_names(["zeta", "prior", "alpha", "posterior_predictive"])
    assert reorder_group_names(once) == once


def test_full_vocabulary_order():
    assert reorder_group_names(reversed(SUPPORTED_GROUPS)) == SUPPORTED_GROUPS
    assert SUPPORTED_GROUPS[0] == "posterior"
    assert is_supported_group("warmup_sample_stats")
    assert not is_supported_group("my_group")


def test_custom_group_order():
    assert reorder_group_names(["b", "x", "a"], group_order=["a", "b"]) == ("a", "b", "x")


def test_duplicate_names_raise():
    with pytest.raises(DuplicateGroupError, match="posterior"):
        reorder_group_names(["posterior", "prior", "posterior"])


def test_rekey():
    assert rekey({"a": 1, "b": 2}, {"a": "c"}) == {"c": 1, "b": 2}
    assert rekey({"a": 1, "b": 2}, {"a": "b", "b": "a"}) == {"b": 1, "a": 2}
    with pytest.raises(DuplicateGroupError):
        rekey({"a": 1, "b": 2}, {"a": "b"})
