"""Operations combining several Dataset instances."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import jax.numpy as jnp
import numpy as np

from inferencedict.dataset import Dataset, DimsType
from inferencedict.errors import DimensionMismatchError

log = logging.getLogger(__name__)

DEFAULT_CONCAT_DIM = "chain"


def _apply_stack(values: List[Any], axis: int) -> Any:
    if isinstance(values[0], jnp.ndarray):
        return jnp.stack(values, axis=axis)
    return np.stack(values, axis=axis)


def _apply_concat(values: List[Any], axis: int) -> Any:
    if isinstance(values[0], jnp.ndarray):
        return jnp.concatenate(values, axis=axis)
    return np.concatenate(values, axis=axis)


def _check_compatible(first: Dataset, other: Dataset, dim: Optional[str]) -> None:
    """Require equal variables, dims and coordinates everywhere except ``dim``."""
    if set(first.keys()) != set(other.keys()):
        raise DimensionMismatchError(
            f"Datasets hold different variables: {sorted(first.keys())} vs {sorted(other.keys())}."
        )
    if set(first.dims) != set(other.dims):
        raise DimensionMismatchError(f"Datasets have different dims: {first.dims} vs {other.dims}.")
    for name in first.keys():
        if first.var_dims(name) != other.var_dims(name):
            raise DimensionMismatchError(
                f"Variable {name!r} has dims {first.var_dims(name)} vs {other.var_dims(name)}."
            )
    first_coords = first.coords
    other_coords = other.coords
    for name in first.dims:
        if name == dim:
            continue
        if len(first_coords[name]) != len(other_coords[name]):
            raise DimensionMismatchError(
                f"Dimension {name!r} has length {len(first_coords[name])} vs {len(other_coords[name])}."
            )
        if not np.array_equal(first_coords[name], other_coords[name]):
            raise DimensionMismatchError(f"Coordinates of dimension {name!r} differ.")


def concat_datasets(datasets: Sequence[Dataset], dim: str = DEFAULT_CONCAT_DIM) -> Dataset:
    """
    Concatenate Dataset instances along an existing dimension.

    Args:
        datasets: Datasets agreeing on everything except the length of ``dim``.
        dim: Dimension to extend (default ``"chain"``).

    Returns:
        Concatenated Dataset. Coordinates of ``dim`` are joined; if that would
        repeat a label they are renumbered ``0..n-1``.

    Raises:
        DimensionMismatchError: if ``dim`` is missing, if any other dimension,
            coordinate or variable disagrees, or if a variable without ``dim``
            holds different values.
    """
    if not datasets:
        raise ValueError("concat requires at least one Dataset.")
    for ds in datasets:
        if not ds.has_dim(dim):
            raise DimensionMismatchError(
                f"Cannot concatenate along {dim!r}: dimension not in {ds.dims}."
            )
    first = datasets[0]
    if len(datasets) == 1:
        return first
    for other in datasets[1:]:
        _check_compatible(first, other, dim)

    new_data: Dict[str, Any] = {}
    for key in first.keys():
        var_dims = first.var_dims(key)
        values = [ds[key] for ds in datasets]
        if dim in var_dims:
            new_data[key] = _apply_concat(values, var_dims.index(dim))
        else:
            for value in values[1:]:
                if not np.array_equal(np.asarray(values[0]), np.asarray(value)):
                    raise DimensionMismatchError(
                        f"Variable {key!r} lacks dimension {dim!r} and its values differ between datasets."
                    )
            new_data[key] = values[0]

    coord = np.concatenate([ds.coords[dim] for ds in datasets])
    if len(set(coord.tolist())) != len(coord):
        coord = np.arange(len(coord))
    new_coords = first.coords
    new_coords[dim] = coord
    new_var_dims = {key: first.var_dims(key) for key in first.keys()}
    log.debug("Concatenated %d datasets along %r to length %d", len(datasets), dim, len(coord))
    return Dataset._from_parts(new_data, new_var_dims, new_coords, dict(first.attrs))


def stack_datasets(
    datasets: Sequence[Dataset], dim: str, coord: Optional[Sequence[Any]] = None
) -> Dataset:
    """
    Stack Dataset instances along a new leading dimension.

    Args:
        datasets: Datasets with identical variables, dims and coordinates.
        dim: Name of the new dimension.
        coord: Coordinate values for ``dim``. Defaults to ``arange``.

    Returns:
        Stacked Dataset where every variable gains ``dim`` as its first axis.
    """
    if not datasets:
        raise ValueError("stack requires at least one Dataset.")
    first = datasets[0]
    if first.has_dim(dim):
        raise DimensionMismatchError(f"Dimension {dim!r} already exists.")
    for other in datasets[1:]:
        _check_compatible(first, other, None)
    coord = np.arange(len(datasets)) if coord is None else np.array(coord)
    if coord.shape != (len(datasets),):
        raise DimensionMismatchError(
            f"Coordinates for {dim!r} have shape {coord.shape}, expected ({len(datasets)},)."
        )

    new_data: Dict[str, Any] = {}
    new_var_dims: Dict[str, DimsType] = {}
    for key in first.keys():
        new_data[key] = _apply_stack([ds[key] for ds in datasets], 0)
        new_var_dims[key] = (dim,) + first.var_dims(key)
    new_coords = {dim: coord}
    new_coords.update(first.coords)
    return Dataset._from_parts(new_data, new_var_dims, new_coords, dict(first.attrs))
