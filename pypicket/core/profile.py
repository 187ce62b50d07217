"""Intensity profiles along an axis of an image: accumulation, binning, filtering, and peak detection.

Samples are accumulated in an unsorted :class:`ProjectionSamples` buffer. Sorting it produces a
:class:`Profile`, whose positions are guaranteed to be non-decreasing; only a Profile can be
binned, filtered, or searched for peaks.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

import argue
import numpy as np
from scipy import ndimage, stats

from ..settings import (
    HIGH_PASS_SIGMA,
    MIN_PEAKS,
    PEAK_MERGE_DISTANCE,
    SPENCER_15_NORMALIZATION,
    SPENCER_15_WEIGHTS,
    get_logger_name,
)
from . import validators
from .decorators import validate
from .exceptions import PeakDetectionError

logger = logging.getLogger(get_logger_name())


@dataclass(frozen=True)
class Peak:
    """A peak of a profile.

    Attributes
    ----------
    position : float
        The position of the peak along the profile axis.
    value : float
        The (interpolated) profile value at the peak.
    count : int
        The number of raw maxima merged into this peak.
    """

    position: float
    value: float
    count: int = 1


class ProjectionSamples:
    """An unsorted buffer of (position, value, weight) samples."""

    def __init__(self):
        self._positions: list[np.ndarray] = []
        self._values: list[np.ndarray] = []
        self._weights: list[np.ndarray] = []

    def append(self, position: float, value: float, weight: float = 1.0) -> None:
        """Add a single sample."""
        self.extend([position], [value], [weight])

    def extend(
        self,
        positions: Iterable[float],
        values: Iterable[float],
        weights: Iterable[float] | None = None,
    ) -> None:
        """Add many samples at once. Weights default to 1."""
        positions = np.asarray(positions, dtype=float).ravel()
        values = np.asarray(values, dtype=float).ravel()
        if weights is None:
            weights = np.ones_like(positions)
        else:
            weights = np.asarray(weights, dtype=float).ravel()
        if not positions.size == values.size == weights.size:
            raise ValueError(
                "Positions, values, and weights must have the same number of samples"
            )
        self._positions.append(positions)
        self._values.append(values)
        self._weights.append(weights)

    def sorted(self) -> Profile:
        """Stable-sort the samples by position and return them as a Profile."""
        if not self._positions:
            return Profile(np.empty(0), np.empty(0))
        positions = np.concatenate(self._positions)
        values = np.concatenate(self._values)
        weights = np.concatenate(self._weights)
        order = np.argsort(positions, kind="stable")
        return Profile(positions[order], values[order], weights[order])

    def __len__(self) -> int:
        return int(sum(p.size for p in self._positions))


class Profile:
    """A 1D profile of (position, value, weight) samples with non-decreasing positions.

    The sample arrays are read-only; every operation returns a new Profile.
    """

    positions: np.ndarray
    values: np.ndarray
    weights: np.ndarray

    def __init__(
        self,
        positions: Iterable[float],
        values: Iterable[float],
        weights: Iterable[float] | None = None,
    ):
        """
        Parameters
        ----------
        positions
            The sample positions. Must be non-decreasing.
        values
            The sample values.
        weights
            The sample weights. Defaults to 1 for every sample.

        Raises
        ------
        ValueError
            If the positions are not sorted or the arrays have different lengths.
        """
        positions = np.array(positions, dtype=float)
        values = np.array(values, dtype=float)
        weights = (
            np.ones_like(positions)
            if weights is None
            else np.array(weights, dtype=float)
        )
        if not positions.shape == values.shape == weights.shape:
            raise ValueError(
                "Positions, values, and weights must have the same number of samples"
            )
        if positions.ndim != 1:
            raise ValueError("Profiles are one-dimensional")
        if np.any(np.diff(positions) < 0):
            raise ValueError("Profile positions must be non-decreasing")
        for array in (positions, values, weights):
            array.setflags(write=False)
        self.positions = positions
        self.values = values
        self.weights = weights

    def __len__(self) -> int:
        return self.positions.size

    def __repr__(self) -> str:
        if not len(self):
            return "Profile(empty)"
        return f"Profile({len(self)} samples, {self.positions[0]:.2f} to {self.positions[-1]:.2f})"

    @property
    def mean_spacing(self) -> float:
        """The mean distance between neighboring sample positions."""
        if len(self) < 2:
            return 0.0
        return float(np.mean(np.diff(self.positions)))

    def binned(self, n_bins: int) -> Profile:
        """Aggregate the samples into equal-width bins spanning the position range.

        Each bin's position is the weighted mean of its samples' positions and its value the
        weighted mean of their values; its weight is the total weight. Empty bins are dropped.

        Parameters
        ----------
        n_bins
            The number of bins.
        """
        if n_bins < 1:
            raise ValueError("The number of bins must be at least 1")
        if not len(self):
            return Profile([], [])
        low, high = self.positions[0], self.positions[-1]
        width = (high - low) / n_bins
        if width > 0:
            indices = np.floor((self.positions - low) / width).astype(int)
            indices = np.clip(indices, 0, n_bins - 1)
        else:
            indices = np.zeros(len(self), dtype=int)
        total_weight = np.bincount(indices, weights=self.weights, minlength=n_bins)
        weighted_positions = np.bincount(
            indices, weights=self.weights * self.positions, minlength=n_bins
        )
        weighted_values = np.bincount(
            indices, weights=self.weights * self.values, minlength=n_bins
        )
        occupied = total_weight > 0
        return Profile(
            weighted_positions[occupied] / total_weight[occupied],
            weighted_values[occupied] / total_weight[occupied],
            total_weight[occupied],
        )

    @argue.bounds(gaussian_sigma=argue.POSITIVE)
    def filtered(self, gaussian_sigma: float = HIGH_PASS_SIGMA) -> Profile:
        """Smooth the profile with Spencer's 15-point moving average and remove the slowly-varying
        background by subtracting a gaussian moving average of the smoothed profile.

        Parameters
        ----------
        gaussian_sigma
            The sigma of the background gaussian in position units. It is converted to samples
            using the mean sample spacing.

        Returns
        -------
        Profile
            A profile with the same positions and weights.
        """
        if len(self) < 2:
            raise ValueError("At least 2 samples are needed to filter a profile")
        return Profile(
            self.positions, high_pass(self.values, gaussian_sigma / self.mean_spacing), self.weights
        )

    def find_peaks(
        self,
        merge_distance: float = PEAK_MERGE_DISTANCE,
        min_peaks: int = MIN_PEAKS,
        sharpness_angle: float | None = None,
        sharpness_window: int = 5,
    ) -> list[Peak]:
        """Find the local maxima of the profile.

        A maximum is where the derivative changes from positive to non-positive. Its position and
        value are interpolated at the derivative's zero crossing. Maxima closer together than
        ``merge_distance`` are merged, closest pair first, until all are at least that far apart.

        Parameters
        ----------
        merge_distance
            The minimum distance between reported peaks.
        min_peaks
            The minimum number of peaks that must remain.
        sharpness_angle
            If given, peaks whose sides are less than this many degrees away from flat are dropped.
            The sides are lines fitted to ``sharpness_window`` samples on either side of the peak.
            The angle depends on the relative scale of positions and values.
        sharpness_window
            The number of samples fitted on each side of a peak for the sharpness check.

        Raises
        ------
        PeakDetectionError
            If fewer than ``min_peaks`` peaks remain.
        """
        argue.verify_bounds(merge_distance, argue.POSITIVE)
        peaks = merge_peaks(self._raw_maxima(), merge_distance)
        if sharpness_angle is not None:
            sharp = [
                p
                for p in peaks
                if self.sharpness(p, sharpness_window) >= sharpness_angle
            ]
            logger.info(
                f"Dropped {len(peaks) - len(sharp)} peaks less sharp than {sharpness_angle} degrees"
            )
            peaks = sharp
        if len(peaks) < min_peaks:
            raise PeakDetectionError(
                f"Insufficient peaks detected in the profile: found {len(peaks)}, need at least {min_peaks}"
            )
        return peaks

    def sharpness(self, peak: Peak, window: int = 5) -> float:
        """The angle (degrees) between the two sides of a peak, measured from flat (0 degrees).

        Lines are fitted to ``window`` samples on either side of the peak. If either side has
        fewer than 2 samples the peak cannot be judged and 180 is returned.
        """
        center = int(np.argmin(np.abs(self.positions - peak.position)))
        left = slice(max(center - window, 0), center + 1)
        right = slice(center, min(center + window + 1, len(self)))
        if (left.stop - left.start) < 2 or (right.stop - right.start) < 2:
            return 180.0
        left_fit = stats.linregress(self.positions[left], self.values[left])
        right_fit = stats.linregress(self.positions[right], self.values[right])
        return math.degrees(math.atan(left_fit.slope) - math.atan(right_fit.slope))

    def _raw_maxima(self) -> list[Peak]:
        if len(self) < 3:
            return []
        with np.errstate(divide="ignore", invalid="ignore"):
            derivative = np.gradient(self.values, self.positions)
        maxima = []
        for idx in np.flatnonzero((derivative[:-1] > 0) & (derivative[1:] <= 0)):
            d0, d1 = derivative[idx], derivative[idx + 1]
            fraction = d0 / (d0 - d1)
            position = self.positions[idx] + fraction * (
                self.positions[idx + 1] - self.positions[idx]
            )
            value = self.values[idx] + fraction * (
                self.values[idx + 1] - self.values[idx]
            )
            maxima.append(Peak(float(position), float(value)))
        return maxima


SPENCER_15 = np.asarray(SPENCER_15_WEIGHTS, dtype=float) / SPENCER_15_NORMALIZATION


@validate(values=validators.one_dimensional)
def spencer_smooth(values: np.ndarray) -> np.ndarray:
    """Spencer's 15-point moving average. Edges are extended with the nearest value."""
    return ndimage.convolve1d(np.asarray(values, dtype=float), SPENCER_15, mode="nearest")


@validate(values=(validators.one_dimensional, validators.finite))
def high_pass(values: np.ndarray, sigma: float) -> np.ndarray:
    """Spencer-smooth the values and subtract a gaussian moving average (sigma in samples)."""
    smoothed = spencer_smooth(values)
    background = ndimage.gaussian_filter1d(smoothed, sigma=sigma, mode="nearest")
    return smoothed - background


def merge_peaks(peaks: list[Peak], merge_distance: float) -> list[Peak]:
    """Repeatedly merge the closest neighboring pair of peaks until all neighbors are at least
    ``merge_distance`` apart. Merged positions and values are averaged, weighted by peak count.

    The peaks must be ordered by position; the result is too.
    """
    peaks = list(peaks)
    while len(peaks) > 1:
        gaps = np.diff([p.position for p in peaks])
        closest = int(np.argmin(gaps))
        if gaps[closest] >= merge_distance:
            break
        first, second = peaks[closest], peaks[closest + 1]
        count = first.count + second.count
        peaks[closest : closest + 2] = [
            Peak(
                position=(first.position * first.count + second.position * second.count)
                / count,
                value=(first.value * first.count + second.value * second.count) / count,
                count=count,
            )
        ]
    return peaks
