"""Module for classes that represent common geometric objects: points, vectors, and lines in physical space."""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Annotated

import numpy as np
from pydantic import PlainSerializer


class Point:
    """A geometric point with x, y, and z coordinates/attributes.

    Points are positions in physical (DICOM) space and are immutable once created;
    translating a point by a vector returns a new point.
    """

    z: float
    y: float
    x: float
    _attr_list: list[str] = ["x", "y", "z", "idx", "value"]
    _coord_list: list[str] = ["x", "y", "z"]

    def __init__(
        self,
        x: float | tuple | Point = 0,
        y: float = 0,
        z: float = 0,
        idx: int | None = None,
        value: float | None = None,
    ):
        """
        Parameters
        ----------
        x : number-like, Point, iterable
            x-coordinate or iterable type containing all coordinates. If iterable, values are assumed to be in order: (x,y,z).
        y : number-like, optional
            y-coordinate
        z : number-like, optional
            z-coordinate
        idx : int, optional
            Index of point. Useful for sequential coordinates; e.g. the vertex number of a contour.
        value : number-like, optional
            value at point location (e.g. pixel value of an image)
        """
        if isinstance(x, (Point, Vector)):
            values = [getattr(x, attr, None) for attr in self._attr_list]
        elif isinstance(x, Iterable):
            values = list(x)[: len(self._attr_list)]
            values += [None] * (len(self._attr_list) - len(values))
            values[:3] = [0 if v is None else v for v in values[:3]]
        else:
            values = [x, y, z, idx, value]
        for attr, item in zip(self._attr_list, values):
            object.__setattr__(self, attr, item)

    def __setattr__(self, name, value):
        raise AttributeError(f"Point is immutable; cannot set '{name}'")

    def __delattr__(self, name):
        raise AttributeError(f"Point is immutable; cannot delete '{name}'")

    def distance_to(self, thing: Point | Vector | Iterable) -> float:
        """Calculate the distance to the given point.

        Parameters
        ----------
        thing : Point, Vector, 3 element iterable
            The other thing to calculate distance to.
        """
        p = Point(thing)
        return math.sqrt(
            (self.x - p.x) ** 2 + (self.y - p.y) ** 2 + (self.z - p.z) ** 2
        )

    def as_array(self, coords: tuple[str, ...] = ("x", "y", "z")) -> np.ndarray:
        """Return the point as a numpy array.

        Parameters
        ----------
        coords : tuple
            The coordinate attributes to return in the array.
        """
        return np.array([getattr(self, coord) for coord in coords], dtype=float)

    def as_vector(self) -> Vector:
        return Vector(x=self.x, y=self.y, z=self.z)

    def dict(self) -> dict:
        """Convert to dict."""
        return {
            attr: float(getattr(self, attr))
            for attr in self._attr_list
            if getattr(self, attr) is not None
        }

    def __repr__(self) -> str:
        return f"Point(x={self.x:3.2f}, y={self.y:3.2f}, z={self.z:3.2f})"

    def __eq__(self, other: Point | Vector) -> bool:
        # points are equal if their coordinates are
        return all(
            getattr(self, attr) == getattr(other, attr, None)
            for attr in self._coord_list
        )

    def __hash__(self) -> int:
        return hash((self.x, self.y, self.z))

    def __add__(self, other: Vector | Point) -> Point:
        return Point(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Point | Vector) -> Vector:
        return Vector(self.x - other.x, self.y - other.y, self.z - other.z)


def to_json(data: Point | Vector):
    """Simple serialization call"""
    return data.dict()


class Vector:
    """A vector with x, y, and z coordinates."""

    x: float
    y: float
    z: float

    def __init__(self, x: float = 0, y: float = 0, z: float = 0):
        self.x = x
        self.y = y
        self.z = z

    @classmethod
    def from_array(cls, array: Iterable[float]) -> Vector:
        """Create a vector from a 3-element array, e.g. an eigenvector."""
        x, y, z = (float(v) for v in array)
        return cls(x, y, z)

    def __repr__(self):
        return f"Vector(x={self.x:.2f}, y={self.y:.2f}, z={self.z:.2f})"

    def as_scalar(self) -> float:
        """Return the scalar equivalent (magnitude) of the vector."""
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)

    def as_point(self) -> Point:
        return Point(self.x, self.y, self.z)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def dict(self) -> dict:
        """Convert to a dict."""
        return {attr: float(getattr(self, attr)) for attr in ("x", "y", "z")}

    def dot(self, other: Vector | Point) -> float:
        """The scalar (dot) product with another vector."""
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vector) -> Vector:
        """The vector (cross) product with another vector."""
        return Vector(
            x=self.y * other.z - self.z * other.y,
            y=self.z * other.x - self.x * other.z,
            z=self.x * other.y - self.y * other.x,
        )

    def unit(self) -> Vector:
        """Return a unit-length vector in the same direction."""
        magnitude = self.as_scalar()
        if magnitude == 0:
            raise ValueError("Cannot normalize a zero-length vector")
        return self / magnitude

    def distance_to(self, thing: Vector | Point) -> float:
        """Calculate the distance to the given point.

        Parameters
        ----------
        thing : Vector, Point, 3 element iterable
            The other point to calculate distance to.
        """
        p = Point(thing)
        return math.sqrt(
            (self.x - p.x) ** 2 + (self.y - p.y) ** 2 + (self.z - p.z) ** 2
        )

    def __eq__(self, other: Vector) -> bool:
        return all(
            getattr(self, attr) == getattr(other, attr, None) for attr in ("x", "y", "z")
        )

    def __hash__(self) -> int:
        return hash((self.x, self.y, self.z))

    def __sub__(self, other: Vector) -> Vector:
        return Vector(x=self.x - other.x, y=self.y - other.y, z=self.z - other.z)

    def __add__(self, other: Vector) -> Vector:
        return Vector(x=self.x + other.x, y=self.y + other.y, z=self.z + other.z)

    def __neg__(self) -> Vector:
        return Vector(-self.x, -self.y, -self.z)

    def __mul__(self, other: float) -> Vector:
        return Vector(self.x * other, self.y * other, self.z * other)

    __rmul__ = __mul__

    def __truediv__(self, other: float) -> Vector:
        return Vector(self.x / other, self.y / other, self.z / other)


def vector_is_close(vector1: Vector, vector2: Vector, delta: float = 0.1) -> bool:
    """Determine if two vectors are with delta of each other; this is a simple coordinate comparison check."""
    for attr in ("x", "y", "z"):
        if np.isnan(getattr(vector1, attr)) and np.isnan(getattr(vector2, attr)):
            continue
        if (
            not getattr(vector2, attr) + delta
            >= getattr(vector1, attr)
            >= getattr(vector2, attr) - delta
        ):
            return False
    return True


VectorSerialized = Annotated[Vector, PlainSerializer(to_json)]


def centroid(points: Iterable[Point]) -> Point:
    """The arithmetic mean of a set of points."""
    array = np.asarray([p.as_array() for p in points], dtype=float)
    if array.size == 0:
        raise ValueError("Cannot compute the centroid of an empty set of points")
    return Point(array.mean(axis=0))


def project(point: Point | Vector, axis: Vector, origin: Point | None = None) -> float:
    """Project a point onto an axis, optionally relative to an origin. Returns the signed distance along the axis."""
    if origin is not None:
        point = point - origin
    return axis.dot(point)


class Line:
    """A line that is represented by two points. The line is considered infinite for distance calculations;
    ``point1`` is the anchor and ``point2 - point1`` the direction."""

    point1: Point
    point2: Point

    def __init__(
        self,
        point1: Point | tuple[float, float, float],
        point2: Point | tuple[float, float, float],
    ):
        """
        Parameters
        ----------
        point1 : Point
            One point of the line
        point2 : Point
            Second point along the line.
        """
        self.point1 = Point(point1)
        self.point2 = Point(point2)

    @classmethod
    def from_direction(cls, origin: Point, direction: Vector) -> Line:
        """Create a line from an anchor point and a direction."""
        return cls(origin, origin + direction)

    def __repr__(self) -> str:
        return (
            f"Line: p1:(x={self.point1.x:.1f}, y={self.point1.y:.1f}, z={self.point1.z:.1f}), "
            f"p2:(x={self.point2.x:.1f}, y={self.point2.y:.1f}, z={self.point2.z:.1f})"
        )

    def __eq__(self, other: Line) -> bool:
        return self.point1 == other.point1 and self.point2 == other.point2

    @property
    def direction(self) -> Vector:
        """The unit direction from point1 to point2."""
        return (self.point2 - self.point1).unit()

    @property
    def center(self) -> Point:
        """Return the center of the line segment as a Point."""
        return self.point1 + (self.point2 - self.point1) / 2

    @property
    def length(self) -> float:
        """Return length of the line segment."""
        return self.point1.distance_to(self.point2)

    def point_at(self, t: float) -> Point:
        """The point a physical distance ``t`` along the line from point1."""
        return self.point1 + self.direction * t

    def distance_to(self, point: Point) -> float:
        """Calculate the minimum distance from the (infinite) line to a point.

        Equations are from here: http://mathworld.wolfram.com/Point-LineDistance3-Dimensional.html

        Parameters
        ----------
        point : Point, iterable
            The point to calculate distance to.
        """
        point = Point(point).as_array()
        lp1 = self.point1.as_array()
        lp2 = self.point2.as_array()
        numerator = np.sqrt(np.sum(np.power(np.cross((lp2 - lp1), (lp1 - point)), 2)))
        denominator = np.sqrt(np.sum(np.power(lp2 - lp1, 2)))
        return float(numerator / denominator)

    def dict(self) -> dict:
        """Convert to dict."""
        return {
            "point1": self.point1.dict(),
            "point2": self.point2.dict(),
            "direction": self.direction.dict(),
        }
