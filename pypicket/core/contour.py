"""Contours (closed polygons in physical space) and the containers that hold them.

Contours are supplied by the caller and never modified by the analysis. A :class:`ContourCollection`
is the caller-owned store that overlay contours are appended to; a :class:`ContourSelection`
is a read-only, ordered view of some of the contours of a collection.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from types import MappingProxyType

import numpy as np

from .geometry import Point, centroid

ROI_NAME = "ROIName"
NORMALIZED_ROI_NAME = "NormalizedROIName"


class ContourSet:
    """An ordered sequence of points forming a closed polygon, tagged with metadata.

    Several contours may describe pieces of the same physical junction (piecewise contouring).
    """

    points: tuple[Point, ...]
    metadata: Mapping[str, str]

    def __init__(
        self,
        points: Iterable[Point | Iterable[float]],
        metadata: Mapping[str, str] | None = None,
    ):
        """
        Parameters
        ----------
        points
            The vertices of the polygon. Points or (x, y, z) iterables.
        metadata
            Contour metadata, e.g. ``{"ROIName": "Junction 1"}``. Copied on construction.
        """
        self.points = tuple(Point(p) for p in points)
        if not self.points:
            raise ValueError("A contour must have at least one point")
        self.metadata = MappingProxyType(dict(metadata or {}))

    @classmethod
    def from_array(
        cls, array: np.ndarray, metadata: Mapping[str, str] | None = None
    ) -> ContourSet:
        """Create a contour from an (N, 3) or (N, 2) array of vertices."""
        array = np.asarray(array, dtype=float)
        if array.ndim != 2 or array.shape[1] not in (2, 3):
            raise ValueError(
                f"Contour vertices must be an (N, 2) or (N, 3) array; got {array.shape}"
            )
        return cls((Point(row) for row in array), metadata=metadata)

    @property
    def roi_name(self) -> str:
        return self.metadata.get(ROI_NAME, "")

    @property
    def normalized_roi_name(self) -> str:
        return self.metadata.get(NORMALIZED_ROI_NAME, "")

    def as_array(self) -> np.ndarray:
        """The vertices as an (N, 3) array."""
        return np.asarray([p.as_array() for p in self.points], dtype=float)

    def centroid(self) -> Point:
        """The mean position of the vertices."""
        return centroid(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    def __repr__(self) -> str:
        return f"ContourSet(name={self.roi_name!r}, points={len(self.points)})"


class ContourCollection:
    """A caller-owned, append-only collection of contour groups.

    A group is a list of contours that belong together, e.g. all the overlay lines of one pass.
    """

    def __init__(self, groups: Iterable[Iterable[ContourSet]] | None = None):
        self.groups: list[list[ContourSet]] = [list(g) for g in groups or []]

    @classmethod
    def from_contours(cls, contours: Iterable[ContourSet]) -> ContourCollection:
        """Create a collection holding a single group of the given contours."""
        return cls([list(contours)])

    def add_group(self) -> list[ContourSet]:
        """Append a new, empty group and return it."""
        group: list[ContourSet] = []
        self.groups.append(group)
        return group

    def contours(self) -> list[ContourSet]:
        """All contours of all groups, in order."""
        return [contour for group in self.groups for contour in group]

    def select(
        self, predicate: Callable[[ContourSet], bool] | None = None
    ) -> ContourSelection:
        """A read-only selection of the contours currently in the collection.

        Parameters
        ----------
        predicate
            If given, only contours for which the predicate is True are selected.
        """
        selection = ContourSelection(self.contours())
        if predicate is not None:
            selection = selection.where(predicate)
        return selection

    def __len__(self) -> int:
        return sum(len(g) for g in self.groups)


class ContourSelection:
    """An ordered sequence of indices into an immutable snapshot of contours.

    The selection never copies or modifies the contours themselves; filtering returns a new,
    narrower selection over the same store.
    """

    def __init__(
        self,
        store: Iterable[ContourSet],
        indices: Iterable[int] | None = None,
    ):
        self._store: tuple[ContourSet, ...] = tuple(store)
        if indices is None:
            indices = range(len(self._store))
        self._indices: tuple[int, ...] = tuple(indices)
        if any(not 0 <= i < len(self._store) for i in self._indices):
            raise IndexError("Selection index is out of range of the contour store")

    @property
    def indices(self) -> tuple[int, ...]:
        return self._indices

    def where(self, predicate: Callable[[ContourSet], bool]) -> ContourSelection:
        """Narrow the selection to the contours matching the predicate."""
        return ContourSelection(
            self._store, (i for i in self._indices if predicate(self._store[i]))
        )

    def centroids(self) -> list[Point]:
        """The centroid of each selected contour, in selection order."""
        return [contour.centroid() for contour in self]

    def points(self) -> np.ndarray:
        """All vertices of all selected contours as an (N, 3) array."""
        arrays = [contour.as_array() for contour in self]
        if not arrays:
            return np.empty((0, 3))
        return np.vstack(arrays)

    def __getitem__(self, item: int) -> ContourSet:
        return self._store[self._indices[item]]

    def __iter__(self) -> Iterator[ContourSet]:
        return (self._store[i] for i in self._indices)

    def __len__(self) -> int:
        return len(self._indices)

    def __repr__(self) -> str:
        return f"ContourSelection({len(self)} of {len(self._store)} contours)"
