from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np
from skimage import filters


def clip_add(
    image1: np.ndarray, image2: np.ndarray, dtype: type[np.dtype] = np.uint16
) -> np.ndarray:
    """Clip the image to the dtype extrema. Otherwise, the bits will flip."""
    # convert to float first so we don't flip bits initially
    combined_img = image1.astype(float) + image2.astype(float)
    return np.clip(combined_img, np.iinfo(dtype).min, np.iinfo(dtype).max).astype(dtype)


def rotated_coordinates(
    shape: tuple[int, int], pixel_size: float, rotation: float
) -> tuple[np.ndarray, np.ndarray]:
    """The (short, long) axis coordinates in mm of every pixel, relative to the image center.

    Coordinates are in the RT image plane: x to the right along the columns, y up, i.e. against the rows.
    With no rotation the long axis is +y and the short axis +x.
    A positive rotation (degrees) turns the long axis toward +x.
    """
    rows, cols = shape
    y, x = np.meshgrid(
        ((rows - 1) / 2 - np.arange(rows)) * pixel_size,
        (np.arange(cols) - (cols - 1) / 2) * pixel_size,
        indexing="ij",
    )
    theta = math.radians(rotation)
    long = x * math.sin(theta) + y * math.cos(theta)
    short = x * math.cos(theta) - y * math.sin(theta)
    return short, long


class Layer(ABC):
    """Abstract base for layers"""

    @abstractmethod
    def apply(
        self, image: np.ndarray, pixel_size: float, mag_factor: float
    ) -> np.ndarray:
        """Apply the layer. Takes a 2D array and pixel size value in and returns a modified array."""
        pass


class LeafGapLayer(Layer):
    """Narrow bright lines across the junctions, one per leaf-pair boundary. Simulates interleaf transmission."""

    def __init__(
        self,
        positions_mm: Sequence[float],
        sigma_mm: float = 2,
        alpha: float = 0.3,
        rotation: float = 0,
    ):
        """
        Parameters
        ----------
        positions_mm
            The positions of the lines along the long axis at the iso plane.
        sigma_mm
            The sigma of the gaussian cross-section of each line at the iso plane.
        alpha
            The peak intensity of the lines. 1 is full saturation/radiation. 0 is none.
        rotation
            The rotation of the pattern in degrees. This acts like a collimator rotation.
        """
        self.positions_mm = list(positions_mm)
        self.sigma_mm = sigma_mm
        self.alpha = alpha
        self.rotation = rotation

    def apply(
        self, image: np.ndarray, pixel_size: float, mag_factor: float
    ) -> np.ndarray:
        _, long = rotated_coordinates(image.shape, pixel_size, self.rotation)
        sigma = self.sigma_mm * mag_factor
        lines = np.zeros(image.shape)
        for position in self.positions_mm:
            lines += np.exp(-((long - position * mag_factor) ** 2) / (2 * sigma**2))
        return clip_add(image, lines * np.iinfo(image.dtype).max * self.alpha)


class JunctionLayer(Layer):
    """Bright strips along the long axis where neighboring picket exposures overlap."""

    def __init__(
        self,
        positions_mm: Sequence[float],
        width_mm: float = 2,
        alpha: float = 0.2,
        rotation: float = 0,
    ):
        """
        Parameters
        ----------
        positions_mm
            The positions of the strips along the short axis at the iso plane.
        width_mm
            The width of each strip at the iso plane.
        alpha
            The intensity of the strips. 1 is full saturation/radiation. 0 is none.
        rotation
            The rotation of the pattern in degrees. This acts like a collimator rotation.
        """
        self.positions_mm = list(positions_mm)
        self.width_mm = width_mm
        self.alpha = alpha
        self.rotation = rotation

    def apply(
        self, image: np.ndarray, pixel_size: float, mag_factor: float
    ) -> np.ndarray:
        short, _ = rotated_coordinates(image.shape, pixel_size, self.rotation)
        strips = np.zeros(image.shape)
        for position in self.positions_mm:
            inside = np.abs(short - position * mag_factor) <= self.width_mm * mag_factor / 2
            strips[inside] = 1
        return clip_add(image, strips * np.iinfo(image.dtype).max * self.alpha)


class GaussianFilterLayer(Layer):
    """A Gaussian filter. Simulates the effects of scatter on the field"""

    def __init__(self, sigma_mm: float = 2):
        self.sigma_mm = sigma_mm

    def apply(self, image: np.array, pixel_size: float, mag_factor: float) -> np.array:
        sigma_pix = self.sigma_mm / pixel_size
        return filters.gaussian(image, sigma_pix, preserve_range=True).astype(
            image.dtype
        )


class ConstantLayer(Layer):
    """A constant layer. Can be used to simulate scatter or background."""

    def __init__(self, constant: float):
        self.constant = constant

    def apply(self, image: np.array, pixel_size: float, mag_factor: float) -> np.array:
        constant_img = np.full(image.shape, fill_value=self.constant)
        return clip_add(image, constant_img, dtype=image.dtype)
