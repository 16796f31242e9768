from __future__ import annotations

__all__ = []

import logging
from collections.abc import Iterable
from typing import Any, TypeVar

import numpy as np
from numpy.typing import ArrayLike, NDArray

from rdnad._log import LogMessage
from rdnad.exceptions import ValidationError
from rdnad.types import SequenceLike

_logger = logging.getLogger(__name__)

_np_dtype = TypeVar("_np_dtype", bound=np.generic)


def as_numpy(
    array: ArrayLike | SequenceLike[Any] | None,
    *,
    dtype: type[_np_dtype] | None = None,
    required_ndim: int | Iterable[int] | None = None,
    required_shape: tuple[int, ...] | None = None,
) -> NDArray[_np_dtype]:
    """Converts an ArrayLike to Numpy array without copying (if possible)"""
    return to_numpy(array, dtype=dtype, required_ndim=required_ndim, required_shape=required_shape, copy=False)


def to_numpy(
    array: ArrayLike | SequenceLike[Any] | None,
    *,
    dtype: type[_np_dtype] | None = None,
    required_ndim: int | Iterable[int] | None = None,
    required_shape: tuple[int, ...] | None = None,
    copy: bool = True,
) -> NDArray[_np_dtype]:
    """Converts an ArrayLike to new Numpy array"""
    if array is None:
        _array = np.array([], dtype=dtype)
    elif isinstance(array, np.ndarray):
        _array = array.astype(dtype) if copy else np.asarray(array, dtype=dtype)
    elif hasattr(array, "to_numpy"):
        # pandas and polars frames/series
        _logger.log(logging.INFO, f"Converting {array.__class__.__name__} to NumPy array.")
        _array = np.array(array.to_numpy(), dtype=dtype) if copy else np.asarray(array.to_numpy(), dtype=dtype)
    else:
        _array = np.array(array, dtype=dtype) if copy else np.asarray(array, dtype=dtype)

    required_ndims = (required_ndim,) if isinstance(required_ndim, int) else required_ndim
    if required_ndims is not None and _array.ndim not in required_ndims:
        raise ValidationError(f"Array has {_array.ndim} dimensions, expected {required_ndim}.")

    if required_shape is not None and _array.shape != required_shape:
        raise ValidationError(f"Array has shape {_array.shape}, expected {required_shape}.")

    return _array


def ensure_features(features: ArrayLike, name: str, allow_empty: bool = False) -> NDArray[np.float64]:
    """
    Converts a feature matrix to a 2D float64 array, rejecting empty or non-finite input.

    Parameters
    ----------
    features : ArrayLike
        Feature matrix with instances as rows and features as columns.
    name : str
        Name of the matrix used in error messages.
    allow_empty : bool, default False
        Accept a matrix with no instances. A matrix with no features is always rejected.

    Raises
    ------
    ValidationError
        If the matrix is not 2D, has no features, has no rows when `allow_empty` is False, or
        holds missing or non-finite values.
    """
    try:
        array = as_numpy(features, dtype=np.float64, required_ndim=2)
    except ValidationError as e:
        raise ValidationError(f"{name}: {e}") from e
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be a numeric 2D feature matrix: {e}") from e
    if array.shape[1] == 0 or (array.shape[0] == 0 and not allow_empty):
        raise ValidationError(f"{name} must have at least one instance and one feature, got shape {array.shape}.")
    if not np.isfinite(array).all():
        rows = np.unique(np.nonzero(~np.isfinite(array))[0])
        _logger.log(logging.DEBUG, LogMessage(lambda: f"Non-finite rows in {name}: {rows.tolist()}"))
        raise ValidationError(
            f"Cannot handle missing or non-finite values in {name} ({len(rows)} instances affected); "
            "remove the instances or impute the values."
        )
    return array


def ensure_vector(values: ArrayLike, name: str, length: int) -> NDArray[np.float64]:
    """Converts per-instance values to a finite 1D float64 array of the expected length."""
    try:
        array = as_numpy(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be numeric: {e}") from e
    # single column frames are accepted as vectors
    if array.ndim == 2 and array.shape[1] == 1:
        array = array[:, 0]
    if array.ndim != 1:
        raise ValidationError(f"{name} must be one dimensional, got shape {array.shape}.")
    if len(array) != length:
        raise ValidationError(f"{name} has {len(array)} values, expected one per instance ({length}).")
    if not np.isfinite(array).all():
        raise ValidationError(f"Cannot handle missing or non-finite values in {name}.")
    return array
