"""inferencedict: a canonically ordered container of labelled datasets."""

from inferencedict.assembly import dataset_from_records, flatten, records_to_arrays
from inferencedict.dataset import DEFAULT_SAMPLE_DIMS, Dataset, Interval
from inferencedict.errors import (
    DimensionMismatchError,
    DuplicateGroupError,
    InferenceDictError,
    MissingDimensionError,
    MissingDimensionWarning,
    OutOfRangeSelectionError,
    SchemaError,
    ShapeMismatchError,
    UnknownGroupError,
)
from inferencedict.groups import SUPPORTED_GROUPS, reorder_group_names
from inferencedict.inference_data import InferenceData, concat, convert_to_dataset, from_dict
from inferencedict.ops import concat_datasets, stack_datasets

__all__ = [
    "DEFAULT_SAMPLE_DIMS",
    "Dataset",
    "DimensionMismatchError",
    "DuplicateGroupError",
    "InferenceData",
    "InferenceDictError",
    "Interval",
    "MissingDimensionError",
    "MissingDimensionWarning",
    "OutOfRangeSelectionError",
    "SUPPORTED_GROUPS",
    "SchemaError",
    "ShapeMismatchError",
    "UnknownGroupError",
    "concat",
    "concat_datasets",
    "convert_to_dataset",
    "dataset_from_records",
    "flatten",
    "from_dict",
    "records_to_arrays",
    "reorder_group_names",
    "stack_datasets",
]
