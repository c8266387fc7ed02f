"""Canonical ordering of group names."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple

from inferencedict.errors import DuplicateGroupError

SUPPORTED_GROUPS: Tuple[str, ...] = (
    "posterior",
    "posterior_predictive",
    "predictions",
    "log_likelihood",
    "sample_stats",
    "prior",
    "prior_predictive",
    "sample_stats_prior",
    "observed_data",
    "constant_data",
    "predictions_constant_data",
    "warmup_posterior",
    "warmup_posterior_predictive",
    "warmup_predictions",
    "warmup_log_likelihood",
    "warmup_sample_stats",
)

SUPPORTED_GROUPS_RANK: Dict[str, int] = {name: i for i, name in enumerate(SUPPORTED_GROUPS)}

# Groups holding data that was not sampled, so no chain/draw dimensions.
SAMPLE_FREE_GROUPS: Tuple[str, ...] = (
    "observed_data",
    "constant_data",
    "predictions_constant_data",
)


def is_supported_group(name: str) -> bool:
    return name in SUPPORTED_GROUPS_RANK


def reorder_group_names(
    names: Iterable[str], group_order: Sequence[str] = SUPPORTED_GROUPS
) -> Tuple[str, ...]:
    """Sort group names into canonical order.

    Names found in ``group_order`` come first, ranked by their position there.
    Any other names follow in the order they were given.

    Raises:
        DuplicateGroupError: if a name is given more than once.
    """
    rank = SUPPORTED_GROUPS_RANK if group_order is SUPPORTED_GROUPS else {
        name: i for i, name in enumerate(group_order)
    }
    seen = set()
    ordered = []
    for name in names:
        if name in seen:
            raise DuplicateGroupError(name)
        seen.add(name)
        ordered.append(name)
    # sorted() is stable, so unknown names keep their relative order
    unknown = len(rank)
    return tuple(sorted(ordered, key=lambda name: rank.get(name, unknown)))


def rekey(mapping: Mapping[str, Any], keymap: Mapping[str, str]) -> Dict[str, Any]:
    """Return a copy of ``mapping`` with keys renamed through ``keymap``.

    Keys absent from ``keymap`` are kept. Two keys landing on the same new key
    raise :class:`DuplicateGroupError`.
    """
    result: Dict[str, Any] = {}
    for key, value in mapping.items():
        new_key = keymap.get(key, key)
        if new_key in result:
            raise DuplicateGroupError(new_key)
        result[new_key] = value
    return result
