from __future__ import annotations

from abc import ABC

import numpy as np
from pydicom.dataset import Dataset

from .layers import Layer
from .utils import array_to_dicom


class Simulator(ABC):
    """Abstract class for an image simulator"""

    pixel_size: float
    shape: tuple[int, int]
    image: np.ndarray

    def __init__(
        self,
        sid: float = 1000,
        shape: tuple[int, int] | None = None,
        pixel_size: float | None = None,
    ):
        """

        Parameters
        ----------
        sid
            Source to image distance in mm.
        shape
            Overrides the panel shape (rows, columns).
        pixel_size
            Overrides the panel pixel size in mm.
        """
        if shape is not None:
            self.shape = tuple(shape)
        if pixel_size is not None:
            self.pixel_size = pixel_size
        self.image = np.zeros(self.shape, np.uint16)
        self.sid = sid
        self.mag_factor = sid / 1000

    def add_layer(self, layer: Layer) -> None:
        """Add a layer to the image"""
        self.image = layer.apply(self.image, self.pixel_size, self.mag_factor)

    def as_dicom(
        self,
        gantry_angle: float = 0.0,
        coll_angle: float = 0.0,
        station_name: str | None = None,
        tags: dict | None = None,
    ) -> Dataset:
        """Create and return a pydicom Dataset. I.e. create a pseudo-DICOM RT image centered on the CAX."""
        extra_tags = dict(tags or {})
        if station_name is not None:
            extra_tags["StationName"] = station_name
        return array_to_dicom(
            array=self.image,
            sid=self.sid,
            gantry=gantry_angle,
            coll=coll_angle,
            pixel_size=self.pixel_size,
            **extra_tags,
        )


class AS500Image(Simulator):
    """Simulates an AS500 EPID image."""

    pixel_size: float = 0.78125
    shape: tuple[int, int] = (384, 512)


class AS1000Image(Simulator):
    """Simulates an AS1000 EPID image."""

    pixel_size: float = 0.390625
    shape: tuple[int, int] = (768, 1024)


class AS1200Image(Simulator):
    """Simulates an AS1200 EPID image."""

    pixel_size: float = 0.336
    shape: tuple[int, int] = (1280, 1280)
