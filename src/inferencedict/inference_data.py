"""InferenceData: an immutable, canonically ordered mapping of groups to Datasets."""

from __future__ import annotations

import functools
import logging
import operator
import warnings
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from inferencedict.assembly import records_to_arrays
from inferencedict.dataset import DEFAULT_SAMPLE_DIMS, Dataset, Interval, _is_array, combine_indexers
from inferencedict.errors import (
    DimensionMismatchError,
    MissingDimensionWarning,
    OutOfRangeSelectionError,
    UnknownGroupError,
)
from inferencedict.groups import SAMPLE_FREE_GROUPS, rekey, reorder_group_names
from inferencedict.ops import DEFAULT_CONCAT_DIM, concat_datasets

log = logging.getLogger(__name__)

STACKED_SAMPLE_DIM = "sample"

GroupKey = Union[str, int]
GroupsSource = Union[Mapping[str, Dataset], Iterable[Tuple[str, Dataset]], "InferenceData"]


def _index_to_indices(indexer: Any) -> Any:
    """Promote a single label to a one-element list so its dimension is kept."""
    if isinstance(indexer, (slice, Interval, list, tuple)):
        return indexer
    if _is_array(indexer):
        return [indexer.item()] if indexer.ndim == 0 else indexer
    return [indexer]


def _ordered_groups(pairs: Iterable[Tuple[str, Dataset]]) -> Dict[str, Dataset]:
    collected: Dict[str, Dataset] = {}
    names: List[str] = []
    for name, dataset in pairs:
        if not isinstance(name, str):
            raise TypeError(f"Group names must be strings, got {type(name).__name__}.")
        if not isinstance(dataset, Dataset):
            raise TypeError(f"Group {name!r} must be a Dataset, got {type(dataset).__name__}.")
        names.append(name)
        collected[name] = dataset
    # raises DuplicateGroupError before anything is stored
    return {name: collected[name] for name in reorder_group_names(names)}


@dataclass(frozen=True, eq=False)
class InferenceData:
    """Container bundling related Datasets ("groups") into one value.

    Groups are always held in canonical order (see
    :func:`inferencedict.groups.reorder_group_names`), whatever order they
    were supplied in. Instances are immutable: every update returns a new
    container that shares the untouched Datasets with the old one.

    Examples:
        >>> idata = InferenceData(posterior=post, observed_data=obs)
        >>> idata.posterior is post
        True
        >>> idata.sel(chain=0).posterior.sizes["chain"]
        1
    """

    _groups: Dict[str, Dataset]

    def __init__(self, groups: Optional[GroupsSource] = None, **kwargs: Dataset) -> None:
        """
        Initialize InferenceData.

        Args:
            groups: Mapping of group name to Dataset, an iterable of
                ``(name, Dataset)`` pairs, or another InferenceData.
            **kwargs: More groups given by name.

        Raises:
            DuplicateGroupError: if a group name is given more than once.
            TypeError: if a group is not a Dataset.
        """
        pairs: List[Tuple[str, Dataset]] = []
        if groups is not None:
            if isinstance(groups, (Mapping, InferenceData)):
                pairs.extend(groups.items())
            else:
                pairs.extend(groups)
        pairs.extend(kwargs.items())
        object.__setattr__(self, "_groups", _ordered_groups(pairs))
        log.debug("Built InferenceData with groups %s", list(self._groups))

    def groups(self) -> Dict[str, Dataset]:
        return dict(self._groups)

    @property
    def group_names(self) -> Tuple[str, ...]:
        return tuple(self._groups)

    @property
    def is_empty(self) -> bool:
        return not self._groups

    def has_group(self, name: str) -> bool:
        return name in self._groups

    def group(self, key: GroupKey) -> Dataset:
        """Return a group by name, or by position in canonical order."""
        if isinstance(key, str):
            if key not in self._groups:
                raise UnknownGroupError(key, self.group_names)
            return self._groups[key]
        try:
            position = operator.index(key)
        except TypeError:
            raise TypeError(f"Group key must be a name or a position, got {type(key).__name__}.") from None
        names = self.group_names
        if not -len(names) <= position < len(names):
            raise UnknownGroupError(key, names)
        return self._groups[names[position]]

    def keys(self) -> Iterator[str]:
        return iter(self._groups.keys())

    def values(self) -> Iterator[Dataset]:
        return iter(self._groups.values())

    def items(self) -> Iterator[Tuple[str, Dataset]]:
        return iter(self._groups.items())

    def __contains__(self, name: object) -> bool:
        return name in self._groups

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def __getattr__(self, name: str) -> Dataset:
        groups = self.__dict__.get("_groups")
        if groups is not None and name in groups:
            return groups[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute or group {name!r}")

    def __dir__(self) -> List[str]:
        return sorted(set(super().__dir__()) | set(self._groups))

    def __getitem__(self, key: Union[GroupKey, Sequence[GroupKey]]) -> Union[Dataset, "InferenceData"]:
        """Get a group by name or position, or a new container of several groups."""
        if isinstance(key, (list, tuple)):
            return self.subset(key)
        return self.group(key)

    def subset(self, keys: Sequence[GroupKey]) -> "InferenceData":
        """Return a new container holding only the requested groups."""
        pairs = []
        for key in keys:
            dataset = self.group(key)
            name = key if isinstance(key, str) else self.group_names[operator.index(key)]
            pairs.append((name, dataset))
        return InferenceData(pairs)

    def with_group(self, name: str, dataset: Dataset) -> "InferenceData":
        """Return a new container with ``name`` set to ``dataset``.

        All other groups are shared with this container, not copied.
        """
        groups = dict(self._groups)
        groups[name] = dataset
        return InferenceData(groups)

    def drop_group(self, name: str) -> "InferenceData":
        if name not in self._groups:
            raise UnknownGroupError(name, self.group_names)
        return InferenceData((k, v) for k, v in self._groups.items() if k != name)

    def rename(self, mapping: Mapping[str, str]) -> "InferenceData":
        """Return a new container with groups renamed through ``mapping``.

        Groups not named in ``mapping`` keep their name. Two groups ending up
        with the same name raise :class:`DuplicateGroupError`.
        """
        return InferenceData(rekey(self._groups, mapping))

    def merge(self, other: "InferenceData", dim: str = DEFAULT_CONCAT_DIM) -> "InferenceData":
        """Combine with another container.

        Groups present in both are concatenated along ``dim``; groups present
        in only one pass through unchanged. Known group names end up in
        canonical order, but unknown names keep insertion order with this
        container's first, so ``a.merge(b)`` and ``b.merge(a)`` may order
        them differently.

        Raises:
            DimensionMismatchError: if a shared group cannot be concatenated.
        """
        groups = dict(self._groups)
        for name, dataset in other.items():
            if name not in groups:
                groups[name] = dataset
                continue
            try:
                groups[name] = concat_datasets([groups[name], dataset], dim=dim)
            except DimensionMismatchError as err:
                raise DimensionMismatchError(f"Group {name!r}: {err}") from err
        log.debug("Merged groups %s into %s along %r", list(other.keys()), list(self._groups), dim)
        return InferenceData(groups)

    def __add__(self, other: "InferenceData") -> "InferenceData":
        if not isinstance(other, InferenceData):
            return NotImplemented
        return self.merge(other)

    def sel(
        self,
        groups: Optional[Union[GroupKey, Sequence[GroupKey]]] = None,
        indexers: Optional[Mapping[str, Any]] = None,
        **indexers_kwargs: Any,
    ) -> Union[Dataset, "InferenceData"]:
        """Select by coordinate label across groups.

        With ``groups`` naming a single group (or a position), the selection is
        applied to that Dataset alone and the Dataset is returned.

        Otherwise every group (or every group listed in ``groups``) is
        selected. A single label is treated as a one-element list, so the
        dimension stays with length 1. Groups lacking one of the requested
        dimensions are kept unchanged and a :class:`MissingDimensionWarning`
        is emitted.

        Raises:
            OutOfRangeSelectionError: if a label is missing from a group that
                has the dimension. Nothing is returned in that case.
        """
        indexers = combine_indexers(indexers, indexers_kwargs)
        if isinstance(groups, (str, int, np.integer)):
            return self.group(groups).sel(indexers)
        data = self if groups is None else self.subset(groups)
        if not indexers:
            return data

        promoted = {dim: _index_to_indices(indexer) for dim, indexer in indexers.items()}
        selected: Dict[str, Dataset] = {}
        for name, dataset in data.items():
            missing = [dim for dim in promoted if not dataset.has_dim(dim)]
            if missing:
                warnings.warn(
                    f"Group {name!r} has no dimension(s) {missing}; it is left unchanged.",
                    MissingDimensionWarning,
                    stacklevel=2,
                )
                log.debug("Skipped group %r in selection, missing dims %s", name, missing)
                selected[name] = dataset
                continue
            try:
                selected[name] = dataset.sel(promoted)
            except OutOfRangeSelectionError as err:
                raise OutOfRangeSelectionError(err.dim, err.value, group=name) from err
        return InferenceData(selected)

    def extract(
        self,
        group: str = "posterior",
        combined: bool = True,
        sample_dims: Sequence[str] = DEFAULT_SAMPLE_DIMS,
    ) -> Dataset:
        """Return one group, by default with ``sample_dims`` merged into ``"sample"``."""
        dataset = self.group(group)
        if not combined:
            return dataset
        return dataset.stack_dims(STACKED_SAMPLE_DIM, sample_dims)

    def __repr__(self) -> str:
        lines = ["InferenceData with groups:"]
        lines.extend(f"  > {name}" for name in self._groups)
        return "\n".join(lines)


def concat(*data: InferenceData, dim: str = DEFAULT_CONCAT_DIM) -> InferenceData:
    """Merge several containers left to right, see :meth:`InferenceData.merge`."""
    if not data:
        return InferenceData()
    return functools.reduce(lambda left, right: left.merge(right, dim=dim), data)


def from_dict(
    posterior: Optional[Any] = None,
    *,
    coords: Optional[Mapping[str, Any]] = None,
    dims: Optional[Mapping[str, Sequence[str]]] = None,
    attrs: Optional[Mapping[str, Any]] = None,
    sample_dims: Sequence[str] = DEFAULT_SAMPLE_DIMS,
    **groups: Any,
) -> InferenceData:
    """
    Build an InferenceData from plain arrays.

    Args:
        posterior: Posterior draws as a mapping of variable to array, or a
            (chain x draw) container of records.
        coords: Coordinates shared by all groups.
        dims: Dimension names per variable, shared by all groups.
        attrs: Attributes given to every group.
        sample_dims: Leading dims of sampled groups. Groups holding data
            (``observed_data``, ``constant_data``, ...) get none.
        **groups: Any other group, in the same forms as ``posterior``.

    Groups given as ``None`` or empty are skipped.
    """
    sources = {"posterior": posterior}
    sources.update(groups)
    datasets: Dict[str, Dataset] = {}
    for name, source in sources.items():
        if source is None:
            continue
        if isinstance(source, Dataset):
            datasets[name] = source
            continue
        arrays = source if isinstance(source, Mapping) else records_to_arrays(source)
        if not arrays:
            continue
        group_sample_dims = () if name in SAMPLE_FREE_GROUPS else sample_dims
        datasets[name] = Dataset(
            arrays, dims=dims, coords=coords, attrs=attrs, sample_dims=group_sample_dims
        )
    return InferenceData(datasets)


def convert_to_dataset(obj: Any, group: str = "posterior", **kwargs: Any) -> Dataset:
    """Return ``obj`` as a Dataset.

    A Dataset is returned as is, an InferenceData gives its ``group`` and a
    mapping of arrays is passed to :class:`Dataset` with ``kwargs``.
    """
    if isinstance(obj, Dataset):
        return obj
    if isinstance(obj, InferenceData):
        return obj.group(group)
    if isinstance(obj, Mapping):
        return Dataset(obj, **kwargs)
    raise TypeError(f"Cannot convert {type(obj).__name__} to a Dataset.")
