from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np
from pydicom.dataset import Dataset, FileMetaDataset
from pydicom.uid import UID, ImplicitVRLittleEndian, generate_uid

from ..contour import ROI_NAME, ContourSet
from .layers import ConstantLayer, JunctionLayer, Layer, LeafGapLayer

RT_IMAGE_STORAGE = UID("1.2.840.10008.5.1.4.1.1.481.1")


def array_to_dicom(
    array: np.ndarray,
    sid: float,
    gantry: float,
    coll: float,
    pixel_size: float,
    **kwargs,
) -> Dataset:
    """Converts a numpy array into a **simplistic** RT Image dataset. Not meant to be a full-featured converter.
    The image is positioned so that the CAX is at the center of the array.

    .. note::

        This will convert the image into an uint16 datatype to match the native EPID datatype.

    Parameters
    ----------
    array
        The numpy array to be converted. Must be 2 dimensions.
    sid
        The Source-to-Image distance in mm.
    gantry
        The gantry value that the image was taken at.
    coll
        The collimator value that the image was taken at.
    pixel_size
        The size of a pixel in mm at the imager.
    kwargs
        Extra tags to set on the dataset, e.g. ``StationName``.
    """
    if array.ndim != 2:
        raise ValueError(f"Array was not 2D. Must pass 2D array; found {array.ndim}")
    uint_array = np.clip(array, 0, np.iinfo(np.uint16).max).astype(np.uint16)
    rows, cols = uint_array.shape
    file_meta = FileMetaDataset()
    file_meta.TransferSyntaxUID = ImplicitVRLittleEndian
    file_meta.MediaStorageSOPClassUID = RT_IMAGE_STORAGE
    # Main data elements
    ds = Dataset()
    ds.file_meta = file_meta
    ds.SOPClassUID = RT_IMAGE_STORAGE
    ds.SOPInstanceUID = generate_uid()
    file_meta.MediaStorageSOPInstanceUID = ds.SOPInstanceUID
    ds.SeriesInstanceUID = generate_uid()
    ds.Modality = "RTIMAGE"
    ds.ConversionType = "WSD"
    ds.PatientName = "Pypicket numpy array"
    ds.PatientID = "123456789"
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = "MONOCHROME2"
    ds.Rows = rows
    ds.Columns = cols
    ds.BitsAllocated = 16
    ds.BitsStored = 16
    ds.HighBit = 15
    ds.PixelRepresentation = 0
    ds.ImagePlanePixelSpacing = [pixel_size, pixel_size]
    ds.RTImagePosition = [-(cols - 1) / 2 * pixel_size, (rows - 1) / 2 * pixel_size]
    ds.RadiationMachineSAD = "1000.0"
    ds.RTImageSID = sid
    ds.GantryAngle = str(gantry)
    ds.BeamLimitingDeviceAngle = str(coll)
    ds.PixelData = uint_array.tobytes()
    for key, value in kwargs.items():
        setattr(ds, key, value)
    return ds


def generate_picketfence_junctions(
    simulator,
    leaf_gap_positions_mm: Sequence[float] = tuple(range(-100, 101, 10)),
    junction_positions_mm: Sequence[float] = (-50, 50),
    junction_width_mm: float = 2,
    gap_sigma_mm: float = 2,
    gap_alpha: float = 0.3,
    junction_alpha: float = 0.2,
    background: float = 5000,
    rotation: float = 0,
    final_layers: list[Layer] | None = None,
    station_name: str | None = None,
    coll_angle: float = 0.0,
) -> Dataset:
    """Create a mock picket fence junction image.

    The junctions run along the long axis. Interleaf transmission shows up as narrow lines across
    the junctions at the leaf-pair boundaries.

    Parameters
    ----------
    simulator
        The image simulator
    leaf_gap_positions_mm
        The positions of the leaf-pair boundaries along the long axis at the iso plane.
    junction_positions_mm
        The positions of the junctions along the short axis at the iso plane.
    junction_width_mm
        The width of the junction strips.
    gap_sigma_mm
        The sigma of the interleaf transmission lines.
    gap_alpha
        The intensity of the interleaf transmission lines.
    junction_alpha
        The intensity of the junction strips.
    background
        The constant background signal.
    rotation
        The rotation of the pattern in degrees.
    final_layers
        Optional layers to apply at the end of the procedure. Useful for blurring.
    station_name
        The StationName tag of the image.
    coll_angle
        Collimator angle; sets the DICOM tag.
    """
    simulator.add_layer(ConstantLayer(background))
    simulator.add_layer(
        JunctionLayer(
            junction_positions_mm,
            width_mm=junction_width_mm,
            alpha=junction_alpha,
            rotation=rotation,
        )
    )
    simulator.add_layer(
        LeafGapLayer(
            leaf_gap_positions_mm,
            sigma_mm=gap_sigma_mm,
            alpha=gap_alpha,
            rotation=rotation,
        )
    )
    for layer in final_layers or []:
        simulator.add_layer(layer)
    return simulator.as_dicom(coll_angle=coll_angle, station_name=station_name)


def junction_contours(
    positions_mm: Sequence[float],
    length_mm: float = 200,
    width_mm: float = 2,
    rotation: float = 0,
    mag_factor: float = 1.0,
    pieces: int = 1,
) -> list[ContourSet]:
    """Rectangular contours of junctions in the imager plane, as drawn by a planner.

    Parameters
    ----------
    positions_mm
        The positions of the junctions along the short axis at the iso plane.
    length_mm
        The length of each junction along the long axis.
    width_mm
        The width of each junction along the short axis.
    rotation
        The rotation of the junctions in degrees; same convention as the junction image layers.
    mag_factor
        The magnification of the iso plane at the imager.
    pieces
        The number of contours each junction is split into along its length.
    """
    theta = math.radians(rotation)
    long = np.array([math.sin(theta), math.cos(theta), 0.0])
    short = np.array([math.cos(theta), -math.sin(theta), 0.0])
    contours = []
    edges = np.linspace(-length_mm / 2, length_mm / 2, pieces + 1) * mag_factor
    half_width = width_mm * mag_factor / 2
    for number, position in enumerate(positions_mm, start=1):
        center = short * position * mag_factor
        for piece, (start, stop) in enumerate(zip(edges[:-1], edges[1:]), start=1):
            corners = [
                center + long * start - short * half_width,
                center + long * stop - short * half_width,
                center + long * stop + short * half_width,
                center + long * start + short * half_width,
            ]
            name = f"Junction {number}" if pieces == 1 else f"Junction {number}.{piece}"
            contours.append(ContourSet(corners, metadata={ROI_NAME: name}))
    return contours
