"""Immutable labelled dataset: named arrays sharing named dimensions."""

from __future__ import annotations

import itertools
import logging
import operator
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import einops
import jax.numpy as jnp
import numpy as np

from inferencedict.errors import (
    DimensionMismatchError,
    MissingDimensionError,
    OutOfRangeSelectionError,
    ShapeMismatchError,
)

log = logging.getLogger(__name__)

DEFAULT_SAMPLE_DIMS: Tuple[str, ...] = ("chain", "draw")

ArrayLike = Union[jnp.ndarray, np.ndarray]
DimsType = Tuple[str, ...]

_CLOSED_OPTIONS = ("both", "left", "right", "neither")


@dataclass(frozen=True)
class Interval:
    """A range over coordinate values, used as a ``sel`` indexer.

    Selects every coordinate ``lo <= c <= hi`` (bounds adjusted by ``closed``)
    in stored order.
    """

    lo: Any
    hi: Any
    closed: str = "both"

    def __post_init__(self) -> None:
        if self.closed not in _CLOSED_OPTIONS:
            raise ValueError(f"closed must be one of {_CLOSED_OPTIONS}, got {self.closed!r}.")

    def mask(self, values: np.ndarray) -> np.ndarray:
        if self.closed in ("both", "left"):
            above = values >= self.lo
        else:
            above = values > self.lo
        if self.closed in ("both", "right"):
            below = values <= self.hi
        else:
            below = values < self.hi
        return np.asarray(above & below, dtype=bool)


def _is_array(value: Any) -> bool:
    return isinstance(value, (jnp.ndarray, np.ndarray))


def _as_array(value: Any) -> ArrayLike:
    if _is_array(value):
        return value
    return np.asarray(value)


def _is_dims_names(value: Any) -> bool:
    if isinstance(value, str):
        return True
    return isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)


def _apply_take(value: Any, indices: Any, axis: int) -> Any:
    if isinstance(value, jnp.ndarray):
        return jnp.take(value, indices, axis=axis)
    return np.take(value, indices, axis=axis)


def _apply_index(value: Any, axis: int, index: Any) -> Any:
    if isinstance(index, slice):
        return value[(slice(None),) * axis + (index,)]
    return _apply_take(value, index, axis)


def _drops_dim(index: Any) -> bool:
    # resolved scalar positions are plain ints, everything else keeps the axis
    return isinstance(index, int)


def combine_indexers(
    indexers: Optional[Mapping[str, Any]], indexers_kwargs: Mapping[str, Any]
) -> Dict[str, Any]:
    combined = dict(indexers or {})
    for dim, indexer in indexers_kwargs.items():
        if dim in combined:
            raise ValueError(f"Indexer for dimension {dim!r} given twice.")
        combined[dim] = indexer
    return combined


def _label_positions(coord: np.ndarray) -> Dict[Any, int]:
    positions: Dict[Any, int] = {}
    for i, label in enumerate(coord.tolist()):
        positions.setdefault(label, i)
    return positions


def _lookup(dim: str, positions: Dict[Any, int], label: Any) -> int:
    if isinstance(label, np.generic):
        label = label.item()
    try:
        return positions[label]
    except (KeyError, TypeError):
        raise OutOfRangeSelectionError(dim, label) from None


def _labels_of(indexer: Any) -> List[Any]:
    if isinstance(indexer, (list, tuple)):
        return list(indexer)
    return np.asarray(indexer).tolist()


def _resolve_label_index(dim: str, coord: np.ndarray, indexer: Any) -> Any:
    """Translate a label indexer into a positional one."""
    if isinstance(indexer, Interval):
        return np.flatnonzero(indexer.mask(coord))
    positions = _label_positions(coord)
    if isinstance(indexer, slice):
        start = None if indexer.start is None else _lookup(dim, positions, indexer.start)
        stop = None
        if indexer.stop is not None:
            # inclusive end, moving in the direction of the step
            stop = _lookup(dim, positions, indexer.stop)
            if indexer.step is not None and indexer.step < 0:
                stop = None if stop == 0 else stop - 1
            else:
                stop += 1
        return slice(start, stop, indexer.step)
    if _is_array(indexer) and np.ndim(indexer) == 0:
        return _lookup(dim, positions, np.asarray(indexer).item())
    if _is_array(indexer) or isinstance(indexer, (list, tuple)):
        found = [_lookup(dim, positions, label) for label in _labels_of(indexer)]
        return np.asarray(found, dtype=int)
    return _lookup(dim, positions, indexer)


def _resolve_position_index(dim: str, size: int, indexer: Any) -> Any:
    """Validate a positional indexer against an axis of length ``size``."""
    if isinstance(indexer, slice):
        return indexer
    if _is_array(indexer) and np.ndim(indexer) == 0:
        indexer = np.asarray(indexer).item()
    elif _is_array(indexer) or isinstance(indexer, (list, tuple)):
        positions = np.asarray(indexer)
        if positions.dtype == bool:
            if positions.shape != (size,):
                raise ShapeMismatchError(
                    f"Boolean mask of shape {positions.shape} does not match dimension {dim!r} of length {size}."
                )
            return np.flatnonzero(positions)
        if positions.size == 0:
            return positions.astype(int)
        if not np.issubdtype(positions.dtype, np.integer):
            raise TypeError(f"Positional indexer for {dim!r} must hold integers, got {positions.dtype}.")
        bad = (positions < -size) | (positions >= size)
        if bad.any():
            raise OutOfRangeSelectionError(dim, int(positions[bad][0]))
        return positions % size
    try:
        position = operator.index(indexer)
    except TypeError:
        raise TypeError(f"Unsupported positional indexer for {dim!r}: {type(indexer)}") from None
    if not -size <= position < size:
        raise OutOfRangeSelectionError(dim, position)
    return position % size


def _resolve_var_dims(
    name: str,
    ndim: int,
    explicit: Optional[Sequence[str]],
    named: Optional[Sequence[str]],
    sample_dims: Sequence[str],
) -> DimsType:
    if explicit is not None:
        if len(explicit) != ndim:
            raise ShapeMismatchError(
                f"Variable {name!r} has {ndim} axes but was given dims {tuple(explicit)}."
            )
        resolved = tuple(explicit)
    else:
        named = tuple(named or ())
        n_free = ndim - len(sample_dims)
        if n_free < 0 or len(named) > n_free:
            raise ShapeMismatchError(
                f"Variable {name!r} has {ndim} axes, too few for dims {tuple(sample_dims) + named}."
            )
        generated = tuple(f"{name}_dim_{i}" for i in range(len(named), n_free))
        resolved = tuple(sample_dims) + named + generated
    if len(set(resolved)) != len(resolved):
        raise ShapeMismatchError(f"Variable {name!r} repeats a dimension: {resolved}.")
    return resolved


def _infer_sizes(data: Mapping[str, ArrayLike], var_dims: Mapping[str, DimsType]) -> Dict[str, int]:
    sizes: Dict[str, int] = {}
    for name, value in data.items():
        for dim, size in zip(var_dims[name], value.shape):
            expected = sizes.setdefault(dim, size)
            if expected != size:
                raise DimensionMismatchError(
                    f"Dimension {dim!r} has length {size} in variable {name!r}, expected {expected}."
                )
    return sizes


def _resolve_coords(sizes: Mapping[str, int], coords: Mapping[str, Any]) -> Dict[str, np.ndarray]:
    resolved: Dict[str, np.ndarray] = {}
    for dim, size in sizes.items():
        if dim in coords:
            values = np.array(coords[dim])
            if values.shape != (size,):
                raise DimensionMismatchError(
                    f"Coordinates for {dim!r} have shape {values.shape}, expected ({size},)."
                )
        else:
            values = np.arange(size)
        resolved[dim] = values
    return resolved


def _readonly(coord: np.ndarray) -> np.ndarray:
    # stored coordinates are shared between datasets
    if not coord.flags.writeable:
        return coord
    view = coord.view()
    view.flags.writeable = False
    return view


def _product_coord(coords: Sequence[np.ndarray]) -> np.ndarray:
    labels = list(itertools.product(*(coord.tolist() for coord in coords)))
    result = np.empty(len(labels), dtype=object)
    for i, label in enumerate(labels):
        result[i] = label
    return result


@dataclass(frozen=True, eq=False)
class Dataset:
    """A mapping of named arrays whose axes are labelled by dimension names.

    Every dimension has one length and one coordinate array shared by all
    variables using it. Instances are immutable; selection and update methods
    return new datasets that reuse untouched arrays.
    """

    _data: Dict[str, ArrayLike]
    _var_dims: Dict[str, DimsType]
    _coords: Dict[str, np.ndarray]
    attrs: Dict[str, Any]

    def __init__(
        self,
        data_vars: Mapping[str, Any],
        dims: Optional[Mapping[str, Sequence[str]]] = None,
        coords: Optional[Mapping[str, Any]] = None,
        attrs: Optional[Mapping[str, Any]] = None,
        sample_dims: Sequence[str] = DEFAULT_SAMPLE_DIMS,
    ) -> None:
        """
        Initialize Dataset.

        Args:
            data_vars: Mapping of variable name to an array, a nested sequence,
                or a ``(dims, array)`` tuple naming every axis.
            dims: Names of the non-sample axes per variable. Axes left unnamed
                get ``"{var}_dim_{i}"``.
            coords: Coordinate values per dimension. Defaults to ``arange``.
            attrs: Free-form metadata.
            sample_dims: Names of the leading axes of every variable that is
                not given explicit dims.
        """
        data: Dict[str, ArrayLike] = {}
        var_dims: Dict[str, DimsType] = {}
        for name, value in data_vars.items():
            explicit = None
            if isinstance(value, tuple) and len(value) == 2 and _is_dims_names(value[0]):
                explicit, value = value
                if isinstance(explicit, str):
                    explicit = (explicit,)
            array = _as_array(value)
            named = dims.get(name) if dims else None
            if isinstance(named, str):
                named = (named,)
            var_dims[name] = _resolve_var_dims(name, array.ndim, explicit, named, sample_dims)
            data[name] = array
        sizes = _infer_sizes(data, var_dims)
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_var_dims", var_dims)
        object.__setattr__(
            self,
            "_coords",
            {dim: _readonly(coord) for dim, coord in _resolve_coords(sizes, coords or {}).items()},
        )
        object.__setattr__(self, "attrs", dict(attrs or {}))

    @staticmethod
    def _from_parts(
        data: Dict[str, ArrayLike],
        var_dims: Dict[str, DimsType],
        coords: Dict[str, np.ndarray],
        attrs: Dict[str, Any],
    ) -> "Dataset":
        """Create Dataset from already validated parts (internal use)."""
        ds = Dataset.__new__(Dataset)
        object.__setattr__(ds, "_data", data)
        object.__setattr__(ds, "_var_dims", var_dims)
        object.__setattr__(ds, "_coords", {dim: _readonly(coord) for dim, coord in coords.items()})
        object.__setattr__(ds, "attrs", dict(attrs))
        return ds

    @property
    def dims(self) -> DimsType:
        return tuple(self._coords)

    @property
    def sizes(self) -> Dict[str, int]:
        return {dim: len(coord) for dim, coord in self._coords.items()}

    @property
    def coords(self) -> Dict[str, np.ndarray]:
        return dict(self._coords)

    def has_dim(self, dim: str) -> bool:
        return dim in self._coords

    def var_dims(self, name: str) -> DimsType:
        return self._var_dims[name]

    def keys(self) -> Iterator[str]:
        return iter(self._data.keys())

    def values(self) -> Iterator[ArrayLike]:
        return iter(self._data.values())

    def items(self) -> Iterator[Tuple[str, ArrayLike]]:
        return iter(self._data.items())

    def __getitem__(self, name: str) -> ArrayLike:
        if name not in self._data:
            raise KeyError(name)
        return self._data[name]

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def isel(self, indexers: Optional[Mapping[str, Any]] = None, **indexers_kwargs: Any) -> "Dataset":
        """Select by position along one or more dimensions.

        An integer removes the dimension; a slice, a sequence of integers or
        a boolean mask keeps it.
        """
        indexers = combine_indexers(indexers, indexers_kwargs)
        if not indexers:
            return self
        resolved = {}
        for dim, indexer in indexers.items():
            if dim not in self._coords:
                raise MissingDimensionError(dim, self.dims)
            resolved[dim] = _resolve_position_index(dim, len(self._coords[dim]), indexer)
        return self._apply_positions(resolved)

    def sel(self, indexers: Optional[Mapping[str, Any]] = None, **indexers_kwargs: Any) -> "Dataset":
        """Select by coordinate label along one or more dimensions.

        Indexers may be a single label (removes the dimension), a sequence of
        labels, a label ``slice`` (inclusive of both ends) or an
        :class:`Interval`.

        Raises:
            MissingDimensionError: if a dimension is not part of the dataset.
            OutOfRangeSelectionError: if a requested label does not exist.
        """
        indexers = combine_indexers(indexers, indexers_kwargs)
        if not indexers:
            return self
        resolved = {}
        for dim, indexer in indexers.items():
            if dim not in self._coords:
                raise MissingDimensionError(dim, self.dims)
            resolved[dim] = _resolve_label_index(dim, self._coords[dim], indexer)
        return self._apply_positions(resolved)

    def _apply_positions(self, resolved: Mapping[str, Any]) -> "Dataset":
        new_data: Dict[str, ArrayLike] = {}
        new_var_dims: Dict[str, DimsType] = {}
        for name, value in self._data.items():
            kept = list(self._var_dims[name])
            for dim, index in resolved.items():
                if dim not in kept:
                    continue
                value = _apply_index(value, kept.index(dim), index)
                if _drops_dim(index):
                    kept.remove(dim)
            new_data[name] = value
            new_var_dims[name] = tuple(kept)
        new_coords: Dict[str, np.ndarray] = {}
        for dim, coord in self._coords.items():
            if dim not in resolved:
                new_coords[dim] = coord
            elif not _drops_dim(resolved[dim]):
                new_coords[dim] = coord[resolved[dim]]
        return Dataset._from_parts(new_data, new_var_dims, new_coords, self.attrs)

    def stack_dims(self, new_dim: str, dims: Sequence[str]) -> "Dataset":
        """Merge ``dims`` into one trailing dimension ``new_dim``.

        The new coordinate holds tuples of the merged coordinates in C order.
        Variables that use none of ``dims`` are left as they are.
        """
        dims = tuple(dims)
        for dim in dims:
            if dim not in self._coords:
                raise MissingDimensionError(dim, self.dims)
        if new_dim in self._coords and new_dim not in dims:
            raise DimensionMismatchError(f"Dimension {new_dim!r} already exists.")
        new_data: Dict[str, ArrayLike] = {}
        new_var_dims: Dict[str, DimsType] = {}
        for name, value in self._data.items():
            var_dims = self._var_dims[name]
            missing = [dim for dim in dims if dim not in var_dims]
            if len(missing) == len(dims):
                new_data[name] = value
                new_var_dims[name] = var_dims
                continue
            if missing:
                raise MissingDimensionError(missing[0], var_dims)
            axes = {dim: f"a{i}" for i, dim in enumerate(var_dims)}
            kept = tuple(dim for dim in var_dims if dim not in dims)
            lhs = " ".join(axes[dim] for dim in var_dims)
            rhs = " ".join([axes[dim] for dim in kept] + ["(" + " ".join(axes[dim] for dim in dims) + ")"])
            new_data[name] = einops.rearrange(value, f"{lhs} -> {rhs}")
            new_var_dims[name] = kept + (new_dim,)
        new_coords = {dim: coord for dim, coord in self._coords.items() if dim not in dims}
        new_coords[new_dim] = _product_coord([self._coords[dim] for dim in dims])
        log.debug("Stacked dims %s into %r", dims, new_dim)
        return Dataset._from_parts(new_data, new_var_dims, new_coords, self.attrs)

    def with_vars(
        self,
        data_vars: Mapping[str, Any],
        dims: Optional[Mapping[str, Sequence[str]]] = None,
        sample_dims: Sequence[str] = DEFAULT_SAMPLE_DIMS,
    ) -> "Dataset":
        """Return a new Dataset with ``data_vars`` added or replaced.

        Existing arrays are shared, not copied.
        """
        merged: Dict[str, Any] = {name: (self._var_dims[name], value) for name, value in self._data.items()}
        merged.update(data_vars)
        return Dataset(merged, dims=dims, coords=self._coords, attrs=self.attrs, sample_dims=sample_dims)

    def __repr__(self) -> str:
        lines = [f"{self.__class__.__name__}("]
        lines.append(f"    dims={self.sizes},")
        if self._data:
            lines.append("    data_vars={")
            for name, value in self._data.items():
                dtype = getattr(value, "dtype", "unknown")
                lines.append(
                    f"        {name!r}: Array(dims={self._var_dims[name]}, shape={value.shape}, dtype={dtype}),"
                )
            lines.append("    }")
        lines.append(")")
        return "\n".join(lines)
