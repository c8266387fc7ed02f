"""Assemble nested containers of draws into dense arrays."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import jax.numpy as jnp
import numpy as np

from inferencedict.dataset import DEFAULT_SAMPLE_DIMS, Dataset
from inferencedict.errors import ShapeMismatchError


def _is_container(value: Any) -> bool:
    if isinstance(value, np.ndarray):
        return value.dtype == object
    return isinstance(value, (list, tuple))


def _container_items(value: Any) -> Tuple[Tuple[int, ...], List[Any]]:
    if isinstance(value, np.ndarray):
        return value.shape, list(value.flat)
    return (len(value),), list(value)


def _object_array(items: Sequence[Any], shape: Tuple[int, ...]) -> np.ndarray:
    cells = np.empty(len(items), dtype=object)
    for i, item in enumerate(items):
        cells[i] = item
    return cells.reshape(shape)


def _apply_stack(values: List[Any]) -> Any:
    if any(isinstance(v, jnp.ndarray) for v in values):
        return jnp.stack(values)
    return np.stack(values)


def flatten(x: Any) -> Any:
    """Flatten a container of arrays into a single array.

    The result has the container's axes first and the element axes last, so a
    list of ``n`` arrays of shape ``(k,)`` becomes an array of shape ``(n, k)``.
    Containers may nest to any depth. A numeric array is returned unchanged.

    Raises:
        ShapeMismatchError: if the elements do not all share one shape.
    """
    if not _is_container(x):
        return x
    shape, items = _container_items(x)
    if not items:
        return np.empty(shape)
    leaves = [flatten(item) for item in items]
    inner_shapes = {np.shape(leaf) for leaf in leaves}
    if len(inner_shapes) > 1:
        raise ShapeMismatchError(f"Cannot flatten elements of differing shapes {sorted(inner_shapes)}.")
    inner_shape = inner_shapes.pop()
    return _apply_stack(leaves).reshape(shape + inner_shape)


def records_to_arrays(x: Any) -> Dict[str, Any]:
    """Turn a container of records into one record of arrays.

    A record is a mapping from field name to a scalar or array. For a
    container of records every field is flattened with the container's axes
    in front, e.g. a ``4 x 100`` nested list of ``{"x": float, "y": (2,)}``
    gives ``{"x": (4, 100), "y": (4, 100, 2)}``.

    Raises:
        ShapeMismatchError: if the records disagree on their fields or on the
            shape of a field.
    """
    if isinstance(x, Mapping):
        return {name: flatten(value) for name, value in x.items()}
    if not _is_container(x):
        raise TypeError(f"Expected a record or a container of records, got {type(x)}.")
    shape, items = _container_items(x)
    if not items:
        return {}
    converted = [records_to_arrays(item) for item in items]
    fields = list(converted[0])
    for record in converted[1:]:
        if set(record) != set(fields):
            raise ShapeMismatchError(
                f"Records have differing fields: {sorted(fields)} vs {sorted(record)}."
            )
    result: Dict[str, Any] = {}
    for field in fields:
        try:
            result[field] = flatten(_object_array([record[field] for record in converted], shape))
        except ShapeMismatchError as err:
            raise ShapeMismatchError(f"Field {field!r}: {err}") from err
    return result


def dataset_from_records(
    records: Any,
    *,
    dims: Optional[Mapping[str, Sequence[str]]] = None,
    coords: Optional[Mapping[str, Any]] = None,
    attrs: Optional[Mapping[str, Any]] = None,
    sample_dims: Sequence[str] = DEFAULT_SAMPLE_DIMS,
) -> Dataset:
    """Build a Dataset from a (chain x draw) container of records."""
    return Dataset(records_to_arrays(records), dims=dims, coords=coords, attrs=attrs, sample_dims=sample_dims)
