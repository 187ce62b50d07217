"""Exceptions raised by the picket fence junction analysis.

Every error also subclasses ``ValueError`` so that callers catching the
broad analysis failure keep working.
"""


class PicketFenceError(Exception):
    """Root exception for all pypicket errors."""


class InsufficientDataError(PicketFenceError, ValueError):
    """Raised when too few junction contours are available to estimate the orientation."""


class PeakDetectionError(PicketFenceError, ValueError):
    """Raised when the leaf-gap peaks of the profile could not be found."""


class UnknownMLCModelError(PicketFenceError, ValueError):
    """Raised when an MLC model name matches none of the known models."""


class EmptyImageSetError(PicketFenceError, ValueError):
    """Raised when there is no image to analyze in the selected scope."""


class LineInjectionError(PicketFenceError, ValueError):
    """Raised when an overlay line cannot be drawn on the image grid."""
