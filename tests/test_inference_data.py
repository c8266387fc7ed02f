import dataclasses

import jax
import numpy as np
import pytest

from inferencedict import (
    Dataset,
    DimensionMismatchError,
    DuplicateGroupError,
    InferenceData,
    UnknownGroupError,
    concat,
    convert_to_dataset,
    from_dict,
)


def _make_dataset(shape=(4, 100, 3), name: str = "theta", seed: int = 0, **kwargs) -> Dataset:
    rng = jax.random.PRNGKey(seed)
    return Dataset({name: jax.random.normal(rng, shape)}, **kwargs)


def _make_idata() -> InferenceData:
    return InferenceData(
        sample_stats=_make_dataset((4, 100), name="lp", seed=1),
        observed_data=Dataset({"y": np.arange(10.0)}, dims={"y": ["obs"]}, sample_dims=()),
        posterior=_make_dataset(dims={"theta": ["param"]}),
    )


def test_construction_sorts_groups_canonically():
    idata = _make_idata()
    assert idata.group_names == ("posterior", "sample_stats", "observed_data")
    assert list(idata) == ["posterior", "sample_stats", "observed_data"]
    assert list(idata.keys()) == list(idata.group_names)
    assert len(idata) == 3


def test_construction_from_pairs_and_mapping():
    post = _make_dataset()
    prior = _make_dataset(seed=3)
    from_pairs = InferenceData([("prior", prior), ("posterior", post)])
    from_mapping = InferenceData({"prior": prior}, posterior=post)

    assert from_pairs.group_names == ("posterior", "prior")
    assert from_mapping.group_names == ("posterior", "prior")
    assert from_mapping.posterior is post
    assert InferenceData(from_mapping).group_names == from_mapping.group_names


def test_unknown_names_follow_known_names_in_insertion_order():
    ds = _make_dataset()
    idata = InferenceData([("zeta", ds), ("posterior", ds), ("alpha", ds)])
    assert idata.group_names == ("posterior", "zeta", "alpha")


def test_duplicate_groups_raise():
    ds = _make_dataset()
    with pytest.raises(DuplicateGroupError, match="posterior"):
        InferenceData([("posterior", ds), ("posterior", ds)])
    with pytest.raises(DuplicateGroupError):
        InferenceData({"posterior": ds}, posterior=ds)


def test_non_dataset_group_raises():
    with pytest.raises(TypeError, match="posterior"):
        InferenceData(posterior={"theta": np.zeros((2, 2))})


def test_empty_container():
    idata = InferenceData()
    assert idata.is_empty
    assert len(idata) == 0
    assert not idata
    assert idata.group_names == ()
    assert not _make_idata().is_empty


def test_group_access():
    idata = _make_idata()
    post = idata.group("posterior")

    assert idata["posterior"] is post
    assert idata.posterior is post
    assert idata[0] is post
    assert idata[-1] is idata.observed_data
    assert idata[np.int64(0)] is post
    assert idata.has_group("sample_stats")
    assert "sample_stats" in idata
    assert not idata.has_group("prior")
    assert dict(idata.items())["posterior"] is post
    assert "posterior" in dir(idata)


def test_unknown_group_access_raises():
    idata = _make_idata()
    with pytest.raises(UnknownGroupError, match="prior"):
        idata.group("prior")
    with pytest.raises(KeyError):
        idata["prior"]
    with pytest.raises(UnknownGroupError):
        idata[5]
    with pytest.raises(AttributeError):
        idata.prior
    with pytest.raises(TypeError):
        idata[1.5]


def test_subset():
    idata = _make_idata()
    subset = idata[["observed_data", "posterior"]]
    assert isinstance(subset, InferenceData)
    assert subset.group_names == ("posterior", "observed_data")
    assert subset.posterior is idata.posterior
    assert idata.subset([1]).group_names == ("sample_stats",)


def test_with_group_shares_and_does_not_mutate():
    idata = _make_idata()
    before = {name: idata[name] for name in idata}
    prior = _make_dataset(seed=9)

    updated = idata.with_group("prior", prior)

    assert idata.group_names == ("posterior", "sample_stats", "observed_data")
    assert all(idata[name] is ds for name, ds in before.items())
    assert updated.group_names == ("posterior", "sample_stats", "prior", "observed_data")
    assert all(updated[name] is ds for name, ds in before.items())
    assert updated.prior is prior

    replaced = updated.with_group("posterior", prior)
    assert replaced.posterior is prior
    assert updated.posterior is idata.posterior


def test_repeated_with_group_keeps_sharing():
    idata = InferenceData(posterior=_make_dataset())
    for i in range(5):
        idata = idata.with_group(f"extra_{i}", _make_dataset(seed=i))
    assert idata.group_names == ("posterior",) + tuple(f"extra_{i}" for i in range(5))


def test_drop_group():
    idata = _make_idata()
    dropped = idata.drop_group("sample_stats")
    assert dropped.group_names == ("posterior", "observed_data")
    assert "sample_stats" in idata
    with pytest.raises(UnknownGroupError):
        idata.drop_group("prior")


def test_rename():
    idata = _make_idata()
    renamed = idata.rename({"posterior": "prior", "observed_data": "custom"})
    assert renamed.group_names == ("sample_stats", "prior", "custom")
    assert renamed.prior is idata.posterior

    with pytest.raises(DuplicateGroupError):
        idata.rename({"posterior": "sample_stats"})
    with pytest.raises(DuplicateGroupError):
        idata.rename({"posterior": "x", "sample_stats": "x"})


def test_merge_concatenates_shared_groups():
    first = InferenceData(posterior=_make_dataset((2, 100, 3), seed=1))
    second = InferenceData(posterior=_make_dataset((2, 100, 3), seed=2))

    merged = first.merge(second)
    assert merged.posterior.sizes["chain"] == 4
    assert merged.posterior.sizes["draw"] == 100
    assert first.posterior.sizes["chain"] == 2

    assert (first + second).posterior.sizes["chain"] == 4


def test_merge_with_mismatched_dims_raises():
    first = InferenceData(posterior=_make_dataset((2, 100, 3)))
    second = InferenceData(posterior=_make_dataset((2, 50, 3)))
    with pytest.raises(DimensionMismatchError, match="posterior"):
        first.merge(second)


def test_merge_passes_through_unshared_groups():
    post = _make_dataset()
    stats = _make_dataset((4, 100), name="lp")
    prior = _make_dataset(seed=5)
    left = InferenceData(posterior=post, prior=prior)
    right = InferenceData(sample_stats=stats)

    merged = left.merge(right)
    assert merged.group_names == ("posterior", "sample_stats", "prior")
    assert merged.posterior is post
    assert merged.sample_stats is stats


def test_merge_is_commutative_and_associative_on_disjoint_groups():
    a = InferenceData(posterior=_make_dataset())
    b = InferenceData(prior=_make_dataset(seed=1))
    c = InferenceData(observed_data=Dataset({"y": np.zeros(3)}, sample_dims=()))

    ab = a.merge(b)
    ba = b.merge(a)
    assert ab.group_names == ba.group_names
    assert all(ab[name] is ba[name] for name in ab)

    known_then_unknown = a.merge(InferenceData(custom=_make_dataset(seed=2)))
    assert known_then_unknown.group_names == ("posterior", "custom")

    left = a.merge(b).merge(c)
    right = a.merge(b.merge(c))
    assert left.group_names == right.group_names
    assert all(left[name] is right[name] for name in left)


def test_merge_orders_unknown_names_by_receiver():
    alpha = InferenceData(alpha=_make_dataset())
    zeta = InferenceData(zeta=_make_dataset(seed=1), posterior=_make_dataset(seed=2))

    assert alpha.merge(zeta).group_names == ("posterior", "alpha", "zeta")
    assert zeta.merge(alpha).group_names == ("posterior", "zeta", "alpha")


def test_concat_function():
    parts = [InferenceData(posterior=_make_dataset((1, 20, 3), seed=i)) for i in range(3)]
    combined = concat(*parts)
    assert combined.posterior.sizes["chain"] == 3
    np.testing.assert_array_equal(combined.posterior.coords["chain"], np.arange(3))

    along_draw = concat(*parts[:2], dim="draw")
    assert along_draw.posterior.sizes == {"chain": 1, "draw": 40, "theta_dim_0": 3}

    assert concat().is_empty


def test_from_dict():
    idata = from_dict(
        posterior={"theta": np.zeros((4, 10, 3))},
        observed_data={"y": np.zeros(7)},
        prior=None,
        sample_stats={},
        dims={"theta": ["school"], "y": ["obs"]},
        coords={"school": ["a", "b", "c"]},
    )
    assert idata.group_names == ("posterior", "observed_data")
    assert idata.posterior.var_dims("theta") == ("chain", "draw", "school")
    assert idata.observed_data.var_dims("y") == ("obs",)
    assert list(idata.posterior.coords["school"]) == ["a", "b", "c"]


def test_from_dict_accepts_records():
    draws = [[{"x": float(d), "y": np.ones(2)} for d in range(10)] for _ in range(2)]
    idata = from_dict(draws)
    assert idata.posterior.sizes == {"chain": 2, "draw": 10, "y_dim_0": 2}


def test_convert_to_dataset():
    idata = _make_idata()
    assert convert_to_dataset(idata) is idata.posterior
    assert convert_to_dataset(idata, group="sample_stats") is idata.sample_stats
    assert convert_to_dataset(idata.posterior) is idata.posterior
    built = convert_to_dataset({"x": np.zeros((2, 5))})
    assert built.sizes == {"chain": 2, "draw": 5}
    with pytest.raises(TypeError):
        convert_to_dataset(np.zeros(3))


def test_extract():
    idata = _make_idata()
    extracted = idata.extract()
    assert extracted.var_dims("theta") == ("param", "sample")
    assert extracted.sizes["sample"] == 400
    assert idata.extract(combined=False) is idata.posterior


def test_repr_lists_groups():
    text = repr(_make_idata())
    assert text.splitlines() == [
        "InferenceData with groups:",
        "  > posterior",
        "  > sample_stats",
        "  > observed_data",
    ]


def test_container_is_frozen():
    idata = _make_idata()
    with pytest.raises(dataclasses.FrozenInstanceError):
        idata.posterior = _make_dataset()
