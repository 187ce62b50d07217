"""This module holds the planar image class: a 2D grid of intensities, the mapping of each pixel to
physical space, and the metadata the picket fence analysis consumes."""

from __future__ import annotations

import enum
import math
from collections.abc import Iterable, Mapping, Sequence

import numpy as np
from pydicom.dataset import Dataset

from ..settings import OVERLAY_LINE_THICKNESS_FRACTION
from . import validators
from .contour import ROI_NAME, ContourSet
from .exceptions import EmptyImageSetError, LineInjectionError
from .geometry import Line, Point, Vector

STATION_NAME = "StationName"
BEAM_LIMITING_DEVICE_ANGLE = "BeamLimitingDeviceAngle"
RT_IMAGE_SID = "RTImageSID"
GANTRY_ANGLE = "GantryAngle"

# tags copied from a DICOM dataset into the image metadata, as strings
METADATA_TAGS = (STATION_NAME, BEAM_LIMITING_DEVICE_ANGLE, RT_IMAGE_SID, GANTRY_ANGLE)


class ImageSelection(enum.Enum):
    """Which of the available images to analyze."""

    NONE = "none"  #:
    FIRST = "first"  #:
    LAST = "last"  #:
    ALL = "all"  #:

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return None


def select_images(
    images: Sequence[PlanarImage], selection: ImageSelection
) -> list[PlanarImage]:
    """Return the images within the selected scope, in order.

    Raises
    ------
    EmptyImageSetError
        If an image is requested but none are available.
    """
    if selection == ImageSelection.NONE:
        return []
    if not images:
        raise EmptyImageSetError("Unable to find an image to analyze.")
    if selection == ImageSelection.FIRST:
        return [images[0]]
    if selection == ImageSelection.LAST:
        return [images[-1]]
    return list(images)


class PlanarImage:
    """A 2D image positioned in physical space.

    Pixel (row, col) sits at ``origin + column_direction * col * column_spacing + row_direction * row * row_spacing``.

    Attributes
    ----------
    array : numpy.ndarray
        The pixel intensities; shape (rows, columns).
    metadata : dict
        String metadata such as StationName, BeamLimitingDeviceAngle, and RTImageSID.
    """

    array: np.ndarray
    origin: Point
    row_direction: Vector
    column_direction: Vector
    pixel_spacing: tuple[float, float]
    metadata: dict[str, str]

    def __init__(
        self,
        array: np.ndarray,
        origin: Point | Iterable[float] = (0, 0, 0),
        pixel_spacing: tuple[float, float] = (1.0, 1.0),
        row_direction: Vector | Iterable[float] = (0, 1, 0),
        column_direction: Vector | Iterable[float] = (1, 0, 0),
        metadata: Mapping[str, str] | None = None,
    ):
        """
        Parameters
        ----------
        array
            2D array of pixel values.
        origin
            The physical position of pixel (0, 0).
        pixel_spacing
            The physical distance between (rows, columns); same order as DICOM PixelSpacing.
        row_direction
            Direction of increasing row index.
        column_direction
            Direction of increasing column index.
        metadata
            Image metadata; values are kept as given.
        """
        array = np.asarray(array, dtype=float)
        validators.two_dimensional(array)
        self.array = array
        self.origin = Point(origin)
        self.row_direction = _as_unit(row_direction)
        self.column_direction = _as_unit(column_direction)
        if abs(self.row_direction.dot(self.column_direction)) > 1e-6:
            raise ValueError("Row and column directions must be orthogonal")
        row_spacing, col_spacing = (float(s) for s in pixel_spacing)
        if row_spacing <= 0 or col_spacing <= 0:
            raise ValueError("Pixel spacing must be positive")
        self.pixel_spacing = (row_spacing, col_spacing)
        self.metadata = dict(metadata or {})

    @classmethod
    def from_dataset(cls, dataset: Dataset) -> PlanarImage:
        """Create an image from a pydicom Dataset, e.g. an RT Image.

        The position mapping uses ImagePositionPatient/ImageOrientationPatient when present. RT Images
        carry RTImagePosition instead: the position of the first pixel in the RT image plane, where y
        points up, so rows run toward -y. Without either, the image is centered on (0, 0), i.e. the CAX
        is assumed to be at the image center.
        """
        array = dataset.pixel_array.astype(float)
        slope = float(getattr(dataset, "RescaleSlope", 1) or 1)
        intercept = float(getattr(dataset, "RescaleIntercept", 0) or 0)
        array = array * slope + intercept
        rows, cols = array.shape

        spacing = getattr(dataset, "ImagePlanePixelSpacing", None) or getattr(
            dataset, "PixelSpacing", None
        )
        pixel_spacing = (
            (float(spacing[0]), float(spacing[1])) if spacing else (1.0, 1.0)
        )

        orientation = getattr(dataset, "ImageOrientationPatient", None)
        if orientation:
            column_direction = [float(v) for v in orientation[:3]]
            row_direction = [float(v) for v in orientation[3:]]
        else:
            # RT image plane: x to the right, y up; rows run downward
            column_direction = (1, 0, 0)
            row_direction = (0, -1, 0)

        if getattr(dataset, "ImagePositionPatient", None):
            origin = [float(v) for v in dataset.ImagePositionPatient]
        elif getattr(dataset, "RTImagePosition", None):
            origin = [float(v) for v in dataset.RTImagePosition] + [0.0]
        else:
            origin = (
                -(cols - 1) / 2 * pixel_spacing[1],
                (rows - 1) / 2 * pixel_spacing[0],
                0.0,
            )

        metadata = {
            tag: str(getattr(dataset, tag))
            for tag in METADATA_TAGS
            if getattr(dataset, tag, None) not in (None, "")
        }
        return cls(
            array,
            origin=origin,
            pixel_spacing=pixel_spacing,
            row_direction=row_direction,
            column_direction=column_direction,
            metadata=metadata,
        )

    @property
    def rows(self) -> int:
        return self.array.shape[0]

    @property
    def columns(self) -> int:
        return self.array.shape[1]

    @property
    def shape(self) -> tuple[int, int]:
        return self.array.shape

    @property
    def size(self) -> int:
        return self.array.size

    @property
    def normal(self) -> Vector:
        """The unit normal of the image plane."""
        return self.column_direction.cross(self.row_direction).unit()

    def get_metadata(self, key: str, default: str | None = None) -> str | None:
        """A metadata value, or the default if the key is absent."""
        return self.metadata.get(key, default)

    def value(self, row: int, col: int) -> float:
        return float(self.array[row, col])

    def position(self, row: float, col: float) -> Point:
        """The physical position of the given (possibly fractional) pixel."""
        row_spacing, col_spacing = self.pixel_spacing
        return (
            self.origin
            + self.column_direction * (col * col_spacing)
            + self.row_direction * (row * row_spacing)
        )

    def positions(self) -> np.ndarray:
        """The physical position of every pixel as a (rows, columns, 3) array."""
        row_spacing, col_spacing = self.pixel_spacing
        rr, cc = np.meshgrid(
            np.arange(self.rows) * row_spacing,
            np.arange(self.columns) * col_spacing,
            indexing="ij",
        )
        return (
            self.origin.as_array()[np.newaxis, np.newaxis, :]
            + rr[..., np.newaxis] * self.row_direction.as_array()
            + cc[..., np.newaxis] * self.column_direction.as_array()
        )

    def inject_thin_line_contour(
        self,
        line: Line,
        group: list[ContourSet],
        metadata: Mapping[str, str] | None = None,
        thickness: float | None = None,
        name: str = "overlay",
    ) -> ContourSet:
        """Clip a line to the image extent and append a thin closed contour along it to the group.

        Parameters
        ----------
        line
            The (infinite) line to draw.
        group
            The contour group to append the new contour to.
        metadata
            Metadata given to the contour, e.g. the image metadata. The ROIName is set to ``name``.
        thickness
            The physical thickness of the contour. Defaults to a fraction of the smallest pixel spacing.
        name
            The ROIName of the contour.

        Raises
        ------
        LineInjectionError
            If the line does not cross the image.
        """
        if thickness is None:
            thickness = OVERLAY_LINE_THICKNESS_FRACTION * min(self.pixel_spacing)
        u = self.column_direction
        v = self.row_direction
        start = line.point1 - self.origin
        direction = line.point2 - line.point1
        s0, t0 = u.dot(start), v.dot(start)
        ds, dt = u.dot(direction), v.dot(direction)
        in_plane = math.hypot(ds, dt)
        if in_plane < 1e-12:
            raise LineInjectionError("Line is orthogonal to the image plane")
        ds, dt = ds / in_plane, dt / in_plane

        row_spacing, col_spacing = self.pixel_spacing
        bounds = (
            (-0.5 * col_spacing, (self.columns - 0.5) * col_spacing),
            (-0.5 * row_spacing, (self.rows - 0.5) * row_spacing),
        )
        lower, upper = _clip_line(
            (s0, t0), (ds, dt), (bounds[0][0], bounds[1][0]), (bounds[0][1], bounds[1][1])
        )

        half = thickness / 2
        ns, nt = -dt * half, ds * half
        corners_2d = (
            (s0 + ds * lower + ns, t0 + dt * lower + nt),
            (s0 + ds * upper + ns, t0 + dt * upper + nt),
            (s0 + ds * upper - ns, t0 + dt * upper - nt),
            (s0 + ds * lower - ns, t0 + dt * lower - nt),
        )
        points = [self.origin + u * s + v * t for s, t in corners_2d]
        contour_metadata = dict(metadata or {})
        contour_metadata[ROI_NAME] = name
        contour = ContourSet(points, metadata=contour_metadata)
        group.append(contour)
        return contour

    def __repr__(self) -> str:
        return f"PlanarImage(shape={self.shape}, spacing={self.pixel_spacing}, origin={self.origin})"


def _as_unit(direction: Vector | Iterable[float]) -> Vector:
    if not isinstance(direction, Vector):
        direction = Vector.from_array(direction)
    return direction.unit()


def _clip_line(
    start: tuple[float, float],
    direction: tuple[float, float],
    minimum: tuple[float, float],
    maximum: tuple[float, float],
) -> tuple[float, float]:
    """Clip an infinite 2D line to an axis-aligned rectangle (Liang-Barsky).
    Returns the (lower, upper) line parameters of the visible segment."""
    lower, upper = -math.inf, math.inf
    for p0, d, lo, hi in zip(start, direction, minimum, maximum):
        if abs(d) < 1e-12:
            if p0 < lo or p0 > hi:
                raise LineInjectionError("Line does not intersect the image")
            continue
        t1, t2 = (lo - p0) / d, (hi - p0) / d
        lower = max(lower, min(t1, t2))
        upper = min(upper, max(t1, t2))
    if lower >= upper:
        raise LineInjectionError("Line does not intersect the image")
    return lower, upper
