"""The picket fence junction analysis: find the leaf-pair boundaries of an MLC picket fence image.

Given an image and the contours of the junctions between adjacent picket exposures, the analysis

* estimates the orientation of the junctions with a principal component analysis,
* projects the image onto the junction (long) axis to build an intensity profile,
* high-pass filters the profile and finds the leaf-gap peaks in it,
* removes duplicate junctions (junctions contoured in several pieces),
* places the expected leaf-pair lines of the MLC model and draws them as overlay contours,
* and reports the junction and peak separations.

Features:

* **Automatic MLC detection** - The MLC model is guessed from the station name if not given.
* **Magnification correction** - MLC offsets are scaled from isocenter to the imager plane using the SID.
* **Any orientation** - The junctions can be at any angle; the orientation is computed, not assumed.
"""

from __future__ import annotations

import logging
import statistics
import warnings
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

import argue
import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .core.contour import ContourCollection, ContourSet
from .core.exceptions import (
    EmptyImageSetError,
    InsufficientDataError,
    LineInjectionError,
)
from .core.geometry import Line, Point, Vector, VectorSerialized, project
from .core.image import (
    BEAM_LIMITING_DEVICE_ANGLE,
    STATION_NAME,
    ImageSelection,
    PlanarImage,
    select_images,
)
from .core.profile import Peak, Profile, ProjectionSamples
from .core.utilities import (
    ResultBase,
    ResultsDataMixin,
    adjacent_differences,
    convert_to_enum,
)
from .core.warnings import capture_warnings
from .mlc import MLCModel, detect_mlc_model, parse_sid, resolve_mlc_model
from .settings import (
    DEFAULT_MIN_JUNCTION_SEPARATION,
    HIGH_PASS_SIGMA,
    MIN_PEAKS,
    PEAK_MERGE_DISTANCE,
    get_logger_name,
)

logger = logging.getLogger(get_logger_name())

JUNCTION_LINE_NAME = "junction_line"
LEAF_PAIR_LINE_NAME = "leaf_pair_line"
OVERLAY_NAMES = (JUNCTION_LINE_NAME, LEAF_PAIR_LINE_NAME)
# eigenvalues this small relative to the largest are treated as zero
DEGENERATE_EIGENVALUE_RATIO = 1e-9


@dataclass(frozen=True)
class OrientationFrame:
    """The dominant directions of the junctions. Both axes are unit length and orthogonal.

    Attributes
    ----------
    long_axis : Vector
        The direction along the junctions.
    short_axis : Vector
        The in-plane direction across the junctions, i.e. the direction of leaf travel.
    """

    long_axis: Vector
    short_axis: Vector


def _normalize_sign(vector: np.ndarray) -> np.ndarray:
    """Flip the vector so its largest-magnitude component is positive."""
    if vector[np.argmax(np.abs(vector))] < 0:
        return -vector
    return vector


def _principal_axes(points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """The eigenvalues (ascending) and eigenvectors of the covariance of the points."""
    centered = points - points.mean(axis=0)
    return np.linalg.eigh(centered.T @ centered / len(centered))


def _is_degenerate(small: float, large: float) -> bool:
    return small <= DEGENERATE_EIGENVALUE_RATIO * large


def contour_plane_normal(contours: Iterable[ContourSet]) -> Vector:
    """The normal of the plane the contours lie in: the direction of least spread of all their points.

    Raises
    ------
    InsufficientDataError
        If all the points lie on one line, so the plane is undefined.
    """
    eigenvalues, eigenvectors = _principal_axes(
        np.vstack([contour.as_array() for contour in contours])
    )
    if _is_degenerate(eigenvalues[1], eigenvalues[2]):
        raise InsufficientDataError(
            "All junction contour points are collinear; the image plane is undefined"
        )
    return Vector.from_array(eigenvectors[:, 0])


def estimate_orientation(
    contours: Iterable[ContourSet], plane_normal: Vector | None = None
) -> OrientationFrame:
    """Estimate the junction orientation from the shape of the junction contours.

    Each contour is moved to its own centroid so that only the shape of the contours matters,
    not where they are in the image. The eigenvector of the largest eigenvalue of the covariance
    of the pooled points is the long axis; the second largest is the short axis.

    Straight junctions (contours without width) leave the second eigenvalue at zero. The short axis
    is then the direction in the plane orthogonal to the long axis: ``normal x long``.

    Parameters
    ----------
    contours
        The junction contours. At least two are needed.
    plane_normal
        The normal of the image plane. Only used for straight junctions. If None, it is the normal of
        the plane through all the contour points.

    Raises
    ------
    InsufficientDataError
        If fewer than two contours are given, or their shape defines no direction.
    """
    contours = list(contours)
    if len(contours) < 2:
        raise InsufficientDataError(
            f"At least 2 junction contours are needed to estimate the orientation; got {len(contours)}"
        )
    eigenvalues, eigenvectors = _principal_axes(
        np.vstack([contour.as_array() - contour.centroid().as_array() for contour in contours])
    )
    if eigenvalues[-1] <= 0:
        raise InsufficientDataError("The junction contours have no extent")
    long_axis = _normalize_sign(eigenvectors[:, -1] / np.linalg.norm(eigenvectors[:, -1]))
    if not _is_degenerate(eigenvalues[-2], eigenvalues[-1]):
        short_axis = eigenvectors[:, -2]
    else:
        if plane_normal is None:
            plane_normal = contour_plane_normal(contours)
        short_axis = np.cross(plane_normal.as_array(), long_axis)
        if np.linalg.norm(short_axis) < 1e-9:
            raise InsufficientDataError("The junctions run orthogonal to the image plane")
    short_axis = _normalize_sign(short_axis / np.linalg.norm(short_axis))
    frame = OrientationFrame(
        long_axis=Vector.from_array(long_axis), short_axis=Vector.from_array(short_axis)
    )
    logger.info(f"Long axis direction: {frame.long_axis}")
    logger.info(f"Short axis direction: {frame.short_axis}")
    return frame


def build_profile(
    image: PlanarImage, frame: OrientationFrame, n_bins: int | None = None
) -> Profile:
    """Project every pixel of the image onto the long axis and bin the result.

    Positions are measured from the position of the first pixel (the image corner).

    Parameters
    ----------
    image
        The image to profile.
    frame
        The junction orientation.
    n_bins
        The number of bins. Defaults to the larger image dimension.
    """
    if image.size == 0:
        raise EmptyImageSetError("The image has no pixels to profile")
    corner = image.position(0, 0).as_array()
    projections = (image.positions() - corner) @ frame.long_axis.as_array()
    samples = ProjectionSamples()
    samples.extend(projections.ravel(), image.array.ravel())
    return samples.sorted().binned(n_bins or max(image.shape))


def deduplicate_junctions(
    centroids: Iterable[Point],
    short_axis: Vector,
    min_separation: float = DEFAULT_MIN_JUNCTION_SEPARATION,
) -> list[Point]:
    """Collapse junction centroids that belong to the same physical junction.

    The centroids are sorted along the short axis; a centroid closer than half of ``min_separation``
    (along the short axis) to the last kept centroid is dropped.

    Parameters
    ----------
    centroids
        The centroids of the junction contours.
    short_axis
        The direction across the junctions.
    min_separation
        The minimum separation of distinct junctions. Must be positive.

    Returns
    -------
    list
        The kept centroids, sorted by their position along the short axis.
    """
    if min_separation <= 0:
        raise ValueError(
            f"The minimum junction separation must be positive; got {min_separation}"
        )
    ordered = sorted(centroids, key=lambda c: project(c, short_axis))
    kept: list[Point] = []
    for centroid in ordered:
        if kept and (
            abs(project(centroid, short_axis) - project(kept[-1], short_axis))
            < 0.5 * min_separation
        ):
            continue
        kept.append(centroid)
    return kept


def peak_leaf_lines(
    peaks: Sequence[Peak],
    frame: OrientationFrame,
    junction_centroid: Point,
    corner: Point,
) -> list[Line]:
    """Leaf-pair lines at the detected peaks.

    The peak positions are measured along the long axis from the image corner. Each line passes
    through the point of the junction at that position and runs along the short axis.
    """
    centroid_position = project(junction_centroid, frame.long_axis, origin=corner)
    lines = []
    for peak in peaks:
        anchor = junction_centroid + frame.long_axis * (peak.position - centroid_position)
        lines.append(Line.from_direction(anchor, frame.short_axis))
    return lines


def model_leaf_lines(
    offsets: Iterable[float],
    frame: OrientationFrame,
    origin: Point | None = None,
) -> list[Line]:
    """Leaf-pair lines at the MLC model offsets, measured along the long axis from the origin."""
    origin = Point(origin) if origin is not None else Point(0, 0, 0)
    return [
        Line.from_direction(origin + frame.long_axis * offset, frame.short_axis)
        for offset in offsets
    ]


def junction_lines(centroids: Iterable[Point], frame: OrientationFrame) -> list[Line]:
    """Inspection lines through each junction centroid, along the long axis."""
    return [Line.from_direction(c, frame.long_axis) for c in centroids]


def junction_cax_separations(
    centroids: Iterable[Point], short_axis: Vector, origin: Point | None = None
) -> list[float]:
    """The sorted short-axis positions of the junctions relative to the CAX (the origin)."""
    origin = Point(origin) if origin is not None else Point(0, 0, 0)
    return sorted(project(c, short_axis, origin=origin) for c in centroids)


def inject_lines(
    image: PlanarImage,
    lines: Iterable[Line],
    group: list[ContourSet],
    name: str,
) -> int:
    """Draw the lines on the image as thin contours appended to the group.

    Lines that miss the image are logged and skipped.

    Returns
    -------
    int
        The number of skipped lines.
    """
    skipped = 0
    for line in lines:
        try:
            image.inject_thin_line_contour(line, group, metadata=image.metadata, name=name)
        except LineInjectionError as e:
            logger.warning(f"Unable to draw {name} {line}: {e}")
            skipped += 1
    return skipped


def is_junction_contour(contour: ContourSet) -> bool:
    """True unless the contour is an overlay line drawn by this analysis."""
    return contour.roi_name not in OVERLAY_NAMES


@dataclass
class JunctionAnalysis:
    """The products of analyzing one picket fence image."""

    image: PlanarImage
    frame: OrientationFrame
    profile: Profile
    filtered_profile: Profile
    peaks: list[Peak]
    junction_centroids: list[Point]
    mlc_model: MLCModel
    sid: float
    offsets: list[float]
    peak_lines: list[Line]
    leaf_lines: list[Line]
    inspection_lines: list[Line]
    junction_cax_separations: list[float]
    junction_separations: list[float]
    peak_separations: list[float]
    skipped_overlays: int
    overlays: ContourCollection = field(repr=False)

    @property
    def min_junction_separation(self) -> float | None:
        """The smallest separation of neighboring junctions; None with fewer than 2 junctions."""
        return min(self.junction_separations) if self.junction_separations else None

    @property
    def mean_peak_separation(self) -> float:
        if not self.peak_separations:
            return float("nan")
        return float(np.mean(self.peak_separations))

    @property
    def median_peak_separation(self) -> float:
        if not self.peak_separations:
            return float("nan")
        return float(statistics.median(self.peak_separations))

    @property
    def collimator_angle(self) -> float | None:
        """The collimator angle from the image metadata, if present."""
        angle = self.image.get_metadata(BEAM_LIMITING_DEVICE_ANGLE)
        if angle in (None, ""):
            return None
        try:
            return float(angle)
        except ValueError:
            warnings.warn(f"The collimator angle {angle!r} is not a number; it is not reported")
            return None


@argue.bounds(merge_distance=argue.POSITIVE, gaussian_sigma=argue.POSITIVE)
def analyze_picket_fence(
    image: PlanarImage,
    contours: Iterable[ContourSet],
    overlays: ContourCollection | None = None,
    mlc: MLCModel | str | None = None,
    min_junction_separation: float = DEFAULT_MIN_JUNCTION_SEPARATION,
    merge_distance: float = PEAK_MERGE_DISTANCE,
    min_peaks: int = MIN_PEAKS,
    gaussian_sigma: float = HIGH_PASS_SIGMA,
    sharpness_angle: float | None = None,
    sharpness_window: int = 5,
) -> JunctionAnalysis:
    """Analyze a single picket fence image.

    Parameters
    ----------
    image
        The picket fence image.
    contours
        The junction contours. At least two are needed.
    overlays
        The collection that the overlay contours are appended to. Two groups are added: the
        junction inspection lines and the leaf-pair lines. If None, a new collection is used.
    mlc
        The MLC model or its name. If None, it is detected from the station name.
    min_junction_separation
        The minimum separation of distinct junctions.
    merge_distance
        Profile peaks closer than this are merged.
    min_peaks
        The minimum number of peaks that must be found.
    gaussian_sigma
        The sigma of the background subtracted from the profile, in position units.
    sharpness_angle
        If given, peaks less sharp than this (degrees) are dropped.
    sharpness_window
        The number of samples on each side of a peak used to judge its sharpness.
    """
    if mlc is not None:
        mlc = resolve_mlc_model(mlc)
    if image.size == 0:
        raise EmptyImageSetError("The image has no pixels to analyze")
    contours = list(contours)
    frame = estimate_orientation(contours, plane_normal=image.normal)

    profile = build_profile(image, frame)
    filtered = profile.filtered(gaussian_sigma=gaussian_sigma)
    peaks = filtered.find_peaks(
        merge_distance=merge_distance,
        min_peaks=min_peaks,
        sharpness_angle=sharpness_angle,
        sharpness_window=sharpness_window,
    )
    peak_separations = adjacent_differences(p.position for p in peaks)
    logger.info(f"Number of peaks: {len(peaks)}")
    if peak_separations:
        logger.info(f"Mean peak separation: {np.mean(peak_separations):.3f}")
        logger.info(f"Median peak separation: {statistics.median(peak_separations):.3f}")

    centroids = deduplicate_junctions(
        (c.centroid() for c in contours), frame.short_axis, min_junction_separation
    )
    cax_separations = junction_cax_separations(centroids, frame.short_axis)
    junction_separations = adjacent_differences(cax_separations)
    logger.info(
        f"Junction-CAX separations: {' '.join(f'{s:.2f}' for s in cax_separations)}"
    )
    if junction_separations:
        logger.info(f"Minimum junction separation: {min(junction_separations):.3f}")

    if overlays is None:
        overlays = ContourCollection()
    inspection_lines = junction_lines(centroids, frame)
    skipped = inject_lines(
        image, inspection_lines, overlays.add_group(), JUNCTION_LINE_NAME
    )

    if mlc is None:
        station_name = image.get_metadata(STATION_NAME)
        if not station_name:
            warnings.warn("The image has no StationName; assuming a Millennium 80 MLC")
        mlc_model = detect_mlc_model(station_name)
    else:
        mlc_model = mlc
    sid = parse_sid(image.metadata)
    offsets = mlc_model.offsets(sid)
    logger.info(f"MLC model: {mlc_model.value} at SID {sid:.1f}mm")

    leaf_lines = model_leaf_lines(offsets, frame)
    skipped += inject_lines(image, leaf_lines, overlays.add_group(), LEAF_PAIR_LINE_NAME)
    if skipped:
        logger.warning(f"{skipped} overlay lines were outside the image and skipped")

    return JunctionAnalysis(
        image=image,
        frame=frame,
        profile=profile,
        filtered_profile=filtered,
        peaks=peaks,
        junction_centroids=centroids,
        mlc_model=mlc_model,
        sid=sid,
        offsets=offsets,
        peak_lines=peak_leaf_lines(peaks, frame, centroids[0], image.position(0, 0)),
        leaf_lines=leaf_lines,
        inspection_lines=inspection_lines,
        junction_cax_separations=cax_separations,
        junction_separations=junction_separations,
        peak_separations=peak_separations,
        skipped_overlays=skipped,
        overlays=overlays,
    )


class JunctionImageResult(BaseModel):
    """The results of one analyzed image. Part of :class:`PicketFenceJunctionResult`."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    mlc_model: str = Field(description="The MLC model used for the leaf-pair lines.")
    sid_mm: float = Field(description="The source-to-imager distance.")
    station_name: str | None = Field(description="The linac station name.")
    collimator_angle: float | None = Field(
        description="The collimator angle in degrees, if known."
    )
    long_axis: VectorSerialized = Field(description="The junction direction.")
    short_axis: VectorSerialized = Field(description="The direction across the junctions.")
    number_of_peaks: int  #:
    peak_positions_mm: list[float]  #:
    mean_peak_separation_mm: float  #:
    median_peak_separation_mm: float  #:
    number_of_junctions: int  #:
    junction_cax_separations_mm: list[float]  #:
    min_junction_separation_mm: float | None  #:
    leaf_pair_offsets_mm: list[float]  #:
    skipped_overlay_lines: int  #:


class PicketFenceJunctionResult(ResultBase):
    """This class should not be called directly. It is returned by the ``results_data()`` method.

    Use the following attributes as normal class attributes."""

    image_results: list[JunctionImageResult] = Field(
        description="The results of each analyzed image, in analysis order."
    )


@capture_warnings
class PicketFenceJunctions(ResultsDataMixin[PicketFenceJunctionResult]):
    """Find the MLC leaf-pair boundaries of picket fence images from the junction contours.

    The overlay contours of each analyzed image are appended to the contour collection.

    Attributes
    ----------
    analyses : list
        The :class:`JunctionAnalysis` of each analyzed image.
    """

    images: list[PlanarImage]
    contours: ContourCollection
    selection: ImageSelection
    analyses: list[JunctionAnalysis]

    def __init__(
        self,
        images: PlanarImage | Sequence[PlanarImage],
        contours: ContourCollection | Iterable[ContourSet],
        selection: ImageSelection | str = ImageSelection.LAST,
    ):
        """
        Parameters
        ----------
        images
            The image(s) available for analysis.
        contours
            The junction contours. A plain iterable of contours is wrapped in a new collection.
        selection
            Which of the images to analyze: ``none``, ``first``, ``last``, or ``all``.
        """
        super().__init__()
        if isinstance(images, PlanarImage):
            images = [images]
        self.images = list(images)
        if not isinstance(contours, ContourCollection):
            contours = ContourCollection.from_contours(contours)
        self.contours = contours
        self.selection = convert_to_enum(selection, ImageSelection)
        self.analyses = []
        self._analyzed = False

    @argue.bounds(min_junction_separation=argue.POSITIVE)
    def analyze(
        self,
        mlc: MLCModel | str | None = None,
        min_junction_separation: float = DEFAULT_MIN_JUNCTION_SEPARATION,
        merge_distance: float = PEAK_MERGE_DISTANCE,
        min_peaks: int = MIN_PEAKS,
        gaussian_sigma: float = HIGH_PASS_SIGMA,
        sharpness_angle: float | None = None,
        roi_filter: Callable[[ContourSet], bool] | None = None,
    ) -> None:
        """Analyze the selected images.

        Parameters
        ----------
        mlc
            The MLC model or its name, e.g. ``"VarianMillenniumMLC120"`` or ``"HD120"``.
            If None (default), the model is detected from each image's station name.
        min_junction_separation
            The minimum separation (mm) of distinct junctions. Contours closer than half of this
            are considered pieces of the same junction.
        merge_distance
            Profile peaks closer than this (mm) are merged.
        min_peaks
            The minimum number of peaks that must be found in each image.
        gaussian_sigma
            The sigma (mm) of the background subtracted from the profile.
        sharpness_angle
            If given, peaks less sharp than this (degrees) are dropped.
        roi_filter
            A predicate selecting the junction contours. By default every contour that is not an
            overlay line is used.
        """
        if mlc is not None:
            # fail before any work is done
            mlc = resolve_mlc_model(mlc)
        self.analyses = []
        self._analyzed = False
        self.clear_captured_warnings()
        # snapshot the junctions before any overlay is appended
        junctions = self.contours.select(is_junction_contour)
        if roi_filter is not None:
            junctions = junctions.where(roi_filter)
        for image in select_images(self.images, self.selection):
            self.analyses.append(
                analyze_picket_fence(
                    image,
                    junctions,
                    overlays=self.contours,
                    mlc=mlc,
                    min_junction_separation=min_junction_separation,
                    merge_distance=merge_distance,
                    min_peaks=min_peaks,
                    gaussian_sigma=gaussian_sigma,
                    sharpness_angle=sharpness_angle,
                )
            )
        self._analyzed = True

    def _check_analyzed(self) -> None:
        if not self._analyzed:
            raise ValueError("The images have not been analyzed yet. Use analyze() first.")

    def results(self, as_list: bool = False) -> str | list[str]:
        """Return results of analysis. Use with print()."""
        self._check_analyzed()
        results = ["Picket Fence Junction Results:"]
        if not self.analyses:
            results.append("No images were selected for analysis.")
        for idx, analysis in enumerate(self.analyses, start=1):
            offsets = " ".join(f"{s:.1f}" for s in analysis.junction_cax_separations)
            results += [
                f"Image {idx}:",
                f"MLC model: {analysis.mlc_model.value}",
                f"SID (mm): {analysis.sid:.1f}",
                f"Number of peaks: {len(analysis.peaks)}",
                f"Mean peak separation (mm): {analysis.mean_peak_separation:2.3f}",
                f"Median peak separation (mm): {analysis.median_peak_separation:2.3f}",
                f"Junction offsets from CAX (mm): {offsets}",
            ]
            if analysis.min_junction_separation is not None:
                results.append(
                    f"Minimum junction separation (mm): {analysis.min_junction_separation:2.3f}"
                )
            results.append(f"Leaf-pair lines: {len(analysis.leaf_lines)}")
            if analysis.skipped_overlays:
                results.append(
                    f"Overlay lines outside the image: {analysis.skipped_overlays}"
                )
        if not as_list:
            results = "\n".join(results)
        return results

    def _generate_results_data(self) -> PicketFenceJunctionResult:
        self._check_analyzed()
        image_results = [
            JunctionImageResult(
                mlc_model=analysis.mlc_model.value,
                sid_mm=analysis.sid,
                station_name=analysis.image.get_metadata(STATION_NAME),
                collimator_angle=analysis.collimator_angle,
                long_axis=analysis.frame.long_axis,
                short_axis=analysis.frame.short_axis,
                number_of_peaks=len(analysis.peaks),
                peak_positions_mm=[p.position for p in analysis.peaks],
                mean_peak_separation_mm=analysis.mean_peak_separation,
                median_peak_separation_mm=analysis.median_peak_separation,
                number_of_junctions=len(analysis.junction_centroids),
                junction_cax_separations_mm=analysis.junction_cax_separations,
                min_junction_separation_mm=analysis.min_junction_separation,
                leaf_pair_offsets_mm=analysis.offsets,
                skipped_overlay_lines=analysis.skipped_overlays,
            )
            for analysis in self.analyses
        ]
        return PicketFenceJunctionResult(
            image_results=image_results, warnings=self.get_captured_warnings()
        )
