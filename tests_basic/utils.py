from __future__ import annotations

from collections.abc import Sequence

from pypicket.core.contour import ContourSet
from pypicket.core.image import PlanarImage
from pypicket.core.image_generator import (
    GaussianFilterLayer,
    Simulator,
    generate_picketfence_junctions,
    junction_contours,
)

# leaf-pair boundaries of the synthetic junction images: 21 lines, 10mm apart
LEAF_GAPS_MM = tuple(range(-100, 101, 10))
JUNCTIONS_MM = (-50, 50)


def point_equality_validation(point1, point2):
    if point1.x != point2.x:
        raise ValueError(f"{point1.x} does not equal {point2.x}")
    if point1.y != point2.y:
        raise ValueError(f"{point1.y} does not equal {point2.y}")


def create_junction_image(
    leaf_gaps_mm: Sequence[float] = LEAF_GAPS_MM,
    junctions_mm: Sequence[float] = JUNCTIONS_MM,
    shape: tuple[int, int] = (221, 221),
    pixel_size: float = 1.0,
    sid: float = 1000,
    rotation: float = 0,
    station_name: str | None = None,
    coll_angle: float = 0.0,
    blur: bool = True,
) -> PlanarImage:
    """A synthetic picket fence junction image, centered on the CAX."""
    simulator = Simulator(sid=sid, shape=shape, pixel_size=pixel_size)
    ds = generate_picketfence_junctions(
        simulator,
        leaf_gap_positions_mm=leaf_gaps_mm,
        junction_positions_mm=junctions_mm,
        rotation=rotation,
        final_layers=[GaussianFilterLayer(sigma_mm=0.5)] if blur else None,
        station_name=station_name,
        coll_angle=coll_angle,
    )
    return PlanarImage.from_dataset(ds)


def create_junction_contours(
    junctions_mm: Sequence[float] = JUNCTIONS_MM,
    rotation: float = 0,
    sid: float = 1000,
    pieces: int = 1,
) -> list[ContourSet]:
    """Junction contours matching :func:`create_junction_image`."""
    return junction_contours(
        junctions_mm, rotation=rotation, mag_factor=sid / 1000, pieces=pieces
    )
