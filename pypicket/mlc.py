"""The MLC geometry model: leaf arrangements of the supported Varian MLCs and the expected
leaf-pair offsets from the CAX at a given source-to-imager distance."""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping

import numpy as np

from .core.exceptions import UnknownMLCModelError
from .core.image import RT_IMAGE_SID
from .settings import (
    DEFAULT_SID,
    ISOCENTER_DISTANCE,
    get_logger_name,
    get_mlc120_station_names,
)

logger = logging.getLogger(get_logger_name())


class MLCArrangement:
    """Construct an MLC array"""

    def __init__(self, leaf_arrangement: list[tuple[int, float]], offset: float = 0):
        """

        Parameters
        ----------
        leaf_arrangement
            Description of the leaf arrangement. List of tuples containing the number of leaves and leaf width
            at isocenter. E.g. (10, 5) is 10 leaves with 5mm widths.
        offset
            The offset in mm of the leaves. Used for asymmetric arrangements. E.g. -2.5mm will shift the arrangement 2.5mm to the left.
        """
        self.leaf_arrangement = [(int(n), float(w)) for n, w in leaf_arrangement]
        self.centers = []
        self.widths = []
        rolling_edge = 0
        for leaf_num, width in self.leaf_arrangement:
            self.centers += (rolling_edge + width * (np.arange(leaf_num) + 0.5)).tolist()
            rolling_edge += leaf_num * width
            self.widths += [width] * leaf_num
        self.centers = [c - np.mean(self.centers) + offset for c in self.centers]

    @property
    def num_leaves(self) -> int:
        return len(self.centers)

    def offsets(self, sid: float = DEFAULT_SID) -> list[float]:
        """The sorted leaf-pair centers, magnified from isocenter to the imager plane.

        Parameters
        ----------
        sid
            The source-to-imager distance in mm.
        """
        scale = magnification(sid)
        return [c * scale for c in sorted(self.centers)]


class MLCModel(enum.Enum):
    """The supported MLC models. The value is the canonical model name."""

    MILLENNIUM_80 = "VarianMillenniumMLC80"  #:
    MILLENNIUM_120 = "VarianMillenniumMLC120"  #:
    HD_120 = "VarianHD120"  #:

    @property
    def arrangement(self) -> MLCArrangement:
        return ARRANGEMENTS[self]

    def offsets(self, sid: float = DEFAULT_SID) -> list[float]:
        """The expected leaf-pair offsets from the CAX (mm) at the given SID."""
        return self.arrangement.offsets(sid)


ARRANGEMENTS: dict[MLCModel, MLCArrangement] = {
    MLCModel.MILLENNIUM_80: MLCArrangement([(40, 10)]),
    MLCModel.MILLENNIUM_120: MLCArrangement([(10, 10), (40, 5), (10, 10)]),
    MLCModel.HD_120: MLCArrangement([(14, 5), (32, 2.5), (14, 5)]),
}

# lower-cased alias -> model
MLC_ALIASES: dict[str, MLCModel] = {
    "varianmillenniummlc80": MLCModel.MILLENNIUM_80,
    "millennium80": MLCModel.MILLENNIUM_80,
    "mlc80": MLCModel.MILLENNIUM_80,
    "varianmillenniummlc120": MLCModel.MILLENNIUM_120,
    "millennium120": MLCModel.MILLENNIUM_120,
    "mlc120": MLCModel.MILLENNIUM_120,
    "varianhd120": MLCModel.HD_120,
    "hd120": MLCModel.HD_120,
    "hdmillennium": MLCModel.HD_120,
}


def magnification(sid: float) -> float:
    """The magnification of the isocenter plane at the imager."""
    return sid / ISOCENTER_DISTANCE


def parse_sid(metadata: Mapping[str, str]) -> float:
    """Read the source-to-imager distance from image metadata.

    Raises
    ------
    ValueError
        If RTImageSID is present but not numeric.
    """
    sid = metadata.get(RT_IMAGE_SID) or str(DEFAULT_SID)
    try:
        return float(sid)
    except ValueError as e:
        raise ValueError(f"Unable to interpret RTImageSID '{sid}' as a distance") from e


def resolve_mlc_model(selector: MLCModel | str) -> MLCModel:
    """Convert a model or model name into an :class:`MLCModel`.

    Names are matched case-insensitively against the canonical names and the common aliases
    (e.g. ``Millennium120``, ``MLC80``, ``HD120``).

    Raises
    ------
    UnknownMLCModelError
        If the name matches no known model.
    """
    if isinstance(selector, MLCModel):
        return selector
    key = str(selector).strip().lower()
    if key not in MLC_ALIASES:
        raise UnknownMLCModelError(
            f"MLC model '{selector}' not understood. Use one of: {', '.join(m.value for m in MLCModel)}"
        )
    return MLC_ALIASES[key]


def detect_mlc_model(station_name: str | None) -> MLCModel:
    """Guess the MLC model from the linac station name.

    Stations known to carry a Millennium 120 are recognized; everything else, including
    a missing station name, is assumed to be a Millennium 80.
    """
    station = (station_name or "").upper()
    if any(name.upper() in station for name in get_mlc120_station_names()):
        model = MLCModel.MILLENNIUM_120
    else:
        model = MLCModel.MILLENNIUM_80
    logger.info(f"Station '{station_name}' selects the {model.value} MLC")
    return model
