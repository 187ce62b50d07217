import sys

from pypicket.version import __version__

# check python version
if sys.version_info[0] < 3 or sys.version_info[1] < 10:
    raise ValueError(
        "Pypicket is only supported on Python 3.10+. Please update your environment."
    )

# import shortcuts
# core first
from .core import contour, exceptions, geometry, image, profile, utilities
from .core.contour import ContourCollection, ContourSet
from .core.image import ImageSelection, PlanarImage
from .mlc import MLCModel
from .picketfence import (
    PicketFenceJunctions,
    analyze_picket_fence,
)
