"""Array checks for use with :func:`~pypicket.core.decorators.validate`. Each raises ``ValueError``."""

from __future__ import annotations

import numpy as np


def one_dimensional(array: np.ndarray) -> None:
    ndim = np.ndim(array)
    if ndim > 1:
        raise ValueError(f"Expected a 1D array of samples; got {ndim} dimensions")


def two_dimensional(array: np.ndarray) -> None:
    ndim = np.ndim(array)
    if ndim != 2:
        raise ValueError(f"Expected a 2D pixel array; got {ndim} dimensions")


def finite(array: np.ndarray) -> None:
    if not np.all(np.isfinite(np.asarray(array, dtype=float))):
        raise ValueError("Array holds NaN or infinite values")
