from .layers import (
    ConstantLayer,
    GaussianFilterLayer,
    JunctionLayer,
    LeafGapLayer,
)
from .simulators import AS500Image, AS1000Image, AS1200Image, Simulator
from .utils import generate_picketfence_junctions, junction_contours
