"""Pypicket settings"""

# name of the logger used throughout the package
LOGGER_NAME = "pypicket"

# source-to-imager distance (mm) assumed when an image does not carry RTImageSID
DEFAULT_SID = 1000.0
# distance (mm) from the source to isocenter; MLC offsets are defined at this plane
ISOCENTER_DISTANCE = 1000.0

# minimum distance (DICOM units) between junctions; used to de-duplicate piecewise contours
DEFAULT_MIN_JUNCTION_SEPARATION = 10.0
# peaks closer than this are considered the same leaf gap. Leaves are >2mm wide.
PEAK_MERGE_DISTANCE = 2.0
# a properly imaged picket fence exposes at least this many leaf-gap crossings
MIN_PEAKS = 5
# sigma (profile position units) of the gaussian moving average subtracted from the profile
HIGH_PASS_SIGMA = 15.0

# Spencer's 15-point moving average
SPENCER_15_WEIGHTS = (-3, -6, -5, 3, 21, 46, 67, 74, 67, 46, 21, 3, -5, -6, -3)
SPENCER_15_NORMALIZATION = 320

# station names of linacs known to carry a Millennium 120 MLC
MLC120_STATION_NAMES = ("FVAREA2TB", "FVAREA4TB", "FVAREA6TB")

# thickness of the injected overlay contours as a fraction of the pixel spacing
OVERLAY_LINE_THICKNESS_FRACTION = 0.25


def get_logger_name() -> str:
    """Return the name of the package logger. Passed to ``logging.getLogger``."""
    return LOGGER_NAME


def get_mlc120_station_names() -> tuple[str, ...]:
    """Return the station names that auto-select the Millennium 120 MLC."""
    return tuple(MLC120_STATION_NAMES)
