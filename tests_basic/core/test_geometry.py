"""Test the various geometric objects in the pypicket.core.geometry module."""

import math
import unittest

import numpy as np

from pypicket.core.geometry import (
    Line,
    Point,
    Vector,
    centroid,
    project,
    vector_is_close,
)
from tests_basic.utils import point_equality_validation


class TestPoint(unittest.TestCase):
    x = 5
    y = -14
    z = 0
    idx = 14
    value = 13.28
    coord_iter = (x, y, z)
    all_vals_iter = (x, y, z, idx, value)

    def test_inputs(self):
        # create an empty point
        p = Point()  # shouldn't raise

        # assert properties are set
        p = Point(x=self.x, y=self.y, idx=self.idx, value=self.value)
        self.assertEqual(p.x, self.x)
        self.assertEqual(p.y, self.y)
        self.assertEqual(p.idx, self.idx)
        self.assertEqual(p.value, self.value)

    def test_point_input(self):
        inp = Point(self.all_vals_iter)
        p = Point(inp)
        self.assertEqual(p.x, self.x)
        self.assertEqual(p.y, self.y)
        self.assertEqual(p.idx, self.idx)
        self.assertEqual(p.value, self.value)

    def test_iterable_input(self):
        """Test when an interable (list, tuple, etc) is passed in it is parsed out."""
        p = Point(self.coord_iter)
        self.assertEqual(p.x, self.x)
        self.assertEqual(p.y, self.y)

        p = Point(self.all_vals_iter)
        self.assertEqual(p.idx, self.idx)
        self.assertEqual(p.value, self.value)

    def test_short_iterable_fills_zero(self):
        p = Point((3, 4))
        self.assertEqual(p.z, 0)

    def test_point_is_immutable(self):
        p = Point(1, 2, 3)
        with self.assertRaises(AttributeError):
            p.x = 10
        with self.assertRaises(AttributeError):
            del p.y
        self.assertEqual(p, Point(1, 2, 3))

    def test_translation_returns_new_point(self):
        p = Point(1, 2, 3)
        moved = p + Vector(1, 0, 0)
        self.assertEqual(moved, Point(2, 2, 3))
        self.assertEqual(p, Point(1, 2, 3))

    def test_dist_to(self):
        p = Point(1, 1)
        correct_dist = math.sqrt(8)
        meas_dist = p.distance_to(Point(3, 3))
        self.assertAlmostEqual(correct_dist, meas_dist)

    def test_point_minus_point_is_vector(self):
        v = Point(3, 4, 5) - Point(1, 1, 1)
        self.assertIsInstance(v, Vector)
        self.assertEqual(v, Vector(2, 3, 4))

    def test_point_plus_vector_is_new_point(self):
        p = Point(1, 2, 3)
        moved = p + Vector(1, 1, 1)
        self.assertIsInstance(moved, Point)
        point_equality_validation(moved, Point(2, 3, 4))
        # the original is untouched
        point_equality_validation(p, Point(1, 2, 3))

    def test_as_array(self):
        np.testing.assert_array_equal(Point(1, 2, 3).as_array(), [1, 2, 3])


class TestVector(unittest.TestCase):
    def test_dot_and_cross(self):
        a = Vector(1, 0, 0)
        b = Vector(0, 1, 0)
        self.assertEqual(a.dot(b), 0)
        self.assertEqual(a.cross(b), Vector(0, 0, 1))

    def test_unit(self):
        v = Vector(3, 4, 0).unit()
        self.assertAlmostEqual(v.as_scalar(), 1)
        self.assertAlmostEqual(v.x, 0.6)
        self.assertAlmostEqual(v.y, 0.8)

    def test_unit_of_zero_vector_fails(self):
        with self.assertRaises(ValueError):
            Vector().unit()

    def test_arithmetic_does_not_mutate(self):
        v = Vector(1, 2, 3)
        _ = v * 2
        _ = -v
        _ = v / 2
        self.assertEqual(v, Vector(1, 2, 3))
        self.assertEqual(2 * v, Vector(2, 4, 6))

    def test_from_array(self):
        self.assertEqual(Vector.from_array(np.array([1.0, 2.0, 3.0])), Vector(1, 2, 3))

    def test_vector_is_close(self):
        self.assertTrue(vector_is_close(Vector(1, 1, 1), Vector(1.05, 1, 1)))
        self.assertFalse(vector_is_close(Vector(1, 1, 1), Vector(1.5, 1, 1)))


class TestHelpers(unittest.TestCase):
    def test_centroid(self):
        c = centroid([Point(0, 0), Point(2, 0), Point(2, 2), Point(0, 2)])
        point_equality_validation(c, Point(1, 1))

    def test_centroid_of_nothing_fails(self):
        with self.assertRaises(ValueError):
            centroid([])

    def test_project(self):
        axis = Vector(0, 1, 0)
        self.assertEqual(project(Point(5, 3, 0), axis), 3)
        self.assertEqual(project(Point(5, 3, 0), axis, origin=Point(0, 1, 0)), 2)


class TestLine(unittest.TestCase):
    def test_distance_to_point(self):
        line = Line(Point(0, 0), Point(0, 10))
        self.assertAlmostEqual(line.distance_to(Point(3, 50)), 3)

    def test_direction_is_unit(self):
        line = Line(Point(1, 1), Point(4, 5))
        self.assertAlmostEqual(line.direction.as_scalar(), 1)
        self.assertAlmostEqual(line.length, 5)

    def test_from_direction(self):
        line = Line.from_direction(Point(1, 1, 0), Vector(0, 2, 0))
        point_equality_validation(line.point2, Point(1, 3))
        point_equality_validation(line.point_at(1), Point(1, 2))

    def test_center(self):
        line = Line(Point(0, 0), Point(2, 4))
        point_equality_validation(line.center, Point(1, 2))

    def test_equality(self):
        self.assertEqual(Line((0, 0, 0), (1, 1, 1)), Line((0, 0, 0), (1, 1, 1)))
        self.assertNotEqual(Line((0, 0, 0), (1, 1, 1)), Line((0, 0, 0), (1, 1, 2)))
