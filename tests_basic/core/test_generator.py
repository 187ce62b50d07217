from unittest import TestCase

import numpy as np
from parameterized import parameterized

from pypicket.core.contour import ROI_NAME
from pypicket.core.geometry import Point
from pypicket.core.image import PlanarImage
from pypicket.core.image_generator import (
    AS500Image,
    AS1000Image,
    AS1200Image,
    ConstantLayer,
    GaussianFilterLayer,
    JunctionLayer,
    LeafGapLayer,
    Simulator,
    generate_picketfence_junctions,
    junction_contours,
)
from pypicket.core.image_generator.layers import clip_add, rotated_coordinates
from pypicket.core.image_generator.utils import array_to_dicom

MAX = np.iinfo(np.uint16).max


class TestClipAdd(TestCase):
    def test_clip_add_normal(self):
        image1 = np.zeros((10, 10), dtype=np.uint16)
        image2 = np.ones((10, 10), dtype=np.uint16)
        output = clip_add(image1, image2)
        self.assertEqual(output.dtype, np.uint16)
        np.testing.assert_array_equal(output, image2)

    def test_clip_doesnt_flip_bit(self):
        image1 = np.full((10, 10), MAX, dtype=np.uint16)
        image2 = np.ones((10, 10), dtype=np.uint16)
        output = clip_add(image1, image2)
        self.assertEqual(output.max(), MAX)


class TestRotatedCoordinates(TestCase):
    def test_no_rotation(self):
        short, long = rotated_coordinates((3, 5), pixel_size=2, rotation=0)
        # the long axis runs up the image (against the rows), the short axis along the columns
        np.testing.assert_allclose(long[:, 0], [2, 0, -2])
        np.testing.assert_allclose(short[0], [-4, -2, 0, 2, 4])
        self.assertEqual(long[1, 2], 0)
        self.assertEqual(short[1, 2], 0)

    def test_quarter_turn(self):
        short, long = rotated_coordinates((3, 3), pixel_size=1, rotation=90)
        np.testing.assert_allclose(long[0], [-1, 0, 1], atol=1e-12)
        np.testing.assert_allclose(short[:, 0], [-1, 0, 1], atol=1e-12)


class TestLayers(TestCase):
    def test_leaf_gap_layer(self):
        image = np.zeros((11, 11), dtype=np.uint16)
        output = LeafGapLayer([0], sigma_mm=1, alpha=0.5).apply(image, 1, 1)
        profile = output[:, 5]
        self.assertEqual(np.argmax(profile), 5)
        self.assertAlmostEqual(profile[5], MAX * 0.5, delta=1)
        # the lines run across the junctions: constant along each row
        self.assertTrue(np.all(output[5] == output[5, 0]))

    def test_leaf_gap_magnification(self):
        image = np.zeros((41, 11), dtype=np.uint16)
        output = LeafGapLayer([10], sigma_mm=1).apply(image, 1, 1.5)
        self.assertEqual(np.argmax(output[:, 5]), 20 - 15)

    def test_junction_layer(self):
        image = np.zeros((11, 11), dtype=np.uint16)
        output = JunctionLayer([0], width_mm=3, alpha=0.2).apply(image, 1, 1)
        self.assertTrue(np.all(output[:, 4:7] == int(MAX * 0.2)))
        self.assertTrue(np.all(output[:, :4] == 0))
        self.assertTrue(np.all(output[:, 7:] == 0))

    def test_rotated_junction_layer(self):
        image = np.zeros((11, 11), dtype=np.uint16)
        output = JunctionLayer([0], width_mm=1, rotation=90).apply(image, 1, 1)
        self.assertTrue(np.all(output[5] > 0))
        self.assertTrue(np.all(output[0] == 0))

    def test_constant_layer(self):
        image = np.zeros((5, 5), dtype=np.uint16)
        output = ConstantLayer(35).apply(image, 1, 1)
        self.assertTrue(np.all(output == 35))

    def test_gaussian_filter_layer(self):
        image = np.zeros((11, 11), dtype=np.uint16)
        image[5, 5] = 10000
        output = GaussianFilterLayer(sigma_mm=1).apply(image, 1, 1)
        self.assertEqual(output.dtype, np.uint16)
        self.assertLess(output[5, 5], 10000)
        self.assertGreater(output[5, 6], 0)


class TestSimulators(TestCase):
    @parameterized.expand(
        [
            (AS500Image, (384, 512), 0.78125),
            (AS1000Image, (768, 1024), 0.390625),
            (AS1200Image, (1280, 1280), 0.336),
        ]
    )
    def test_panels(self, simulator_class, shape, pixel_size):
        simulator = simulator_class()
        self.assertEqual(simulator.image.shape, shape)
        self.assertEqual(simulator.pixel_size, pixel_size)

    def test_overrides(self):
        simulator = AS500Image(sid=1500, shape=(20, 30), pixel_size=2)
        self.assertEqual(simulator.image.shape, (20, 30))
        self.assertEqual(simulator.pixel_size, 2)
        self.assertEqual(simulator.mag_factor, 1.5)

    def test_as_dicom(self):
        simulator = Simulator(sid=1200, shape=(10, 12), pixel_size=0.5)
        simulator.add_layer(ConstantLayer(100))
        ds = simulator.as_dicom(
            gantry_angle=180, coll_angle=90, station_name="Linac", tags={"PatientID": "x"}
        )
        self.assertEqual(ds.pixel_array.shape, (10, 12))
        self.assertEqual(ds.pixel_array[0, 0], 100)
        self.assertEqual(float(ds.RTImageSID), 1200)
        self.assertEqual(float(ds.GantryAngle), 180)
        self.assertEqual(float(ds.BeamLimitingDeviceAngle), 90)
        self.assertEqual(ds.StationName, "Linac")
        self.assertEqual(ds.PatientID, "x")

    def test_no_station_name(self):
        ds = Simulator(shape=(4, 4), pixel_size=1).as_dicom()
        self.assertNotIn("StationName", ds)


class TestArrayToDicom(TestCase):
    def test_values_are_clipped(self):
        array = np.array([[-5.0, 1.0], [2.0, 1e6]])
        ds = array_to_dicom(array, sid=1000, gantry=0, coll=0, pixel_size=1)
        np.testing.assert_array_equal(ds.pixel_array, [[0, 1], [2, MAX]])

    def test_not_2d_fails(self):
        with self.assertRaises(ValueError):
            array_to_dicom(np.zeros(4), sid=1000, gantry=0, coll=0, pixel_size=1)

    def test_centered_position(self):
        ds = array_to_dicom(np.zeros((5, 3)), sid=1000, gantry=0, coll=0, pixel_size=2)
        self.assertEqual([float(v) for v in ds.RTImagePosition], [-2, 4])


class TestPicketFenceJunctionImage(TestCase):
    def test_leaf_gaps_are_bright(self):
        simulator = Simulator(shape=(101, 101), pixel_size=1)
        ds = generate_picketfence_junctions(
            simulator, leaf_gap_positions_mm=[-20, 0, 20], junction_positions_mm=[-30, 30]
        )
        image = PlanarImage.from_dataset(ds)
        # a column away from the junctions
        column = image.array[:, 10]
        for gap in (-20, 0, 20):
            row = 50 - gap
            self.assertGreater(column[row], column[row + 5])
        # the junction strips are brighter than the open field
        self.assertGreater(image.array[40, 20], image.array[40, 50])

    def test_leaf_gap_lands_at_its_physical_position(self):
        simulator = Simulator(shape=(101, 101), pixel_size=1)
        ds = generate_picketfence_junctions(
            simulator, leaf_gap_positions_mm=[30], junction_positions_mm=[-30, 30]
        )
        image = PlanarImage.from_dataset(ds)
        row = int(np.argmax(image.array[:, 10]))
        self.assertAlmostEqual(image.position(row, 10).y, 30)

    def test_station_name_and_collimator(self):
        simulator = Simulator(shape=(21, 21), pixel_size=1)
        ds = generate_picketfence_junctions(simulator, station_name="FVAREA4TB", coll_angle=270)
        self.assertEqual(ds.StationName, "FVAREA4TB")
        self.assertEqual(float(ds.BeamLimitingDeviceAngle), 270)


class TestJunctionContours(TestCase):
    def test_single_piece(self):
        contours = junction_contours([-50, 50], length_mm=100, width_mm=2)
        self.assertEqual([c.metadata[ROI_NAME] for c in contours], ["Junction 1", "Junction 2"])
        self.assertEqual(contours[0].centroid(), Point(-50, 0, 0))
        ys = [p.y for p in contours[0]]
        self.assertEqual((min(ys), max(ys)), (-50, 50))

    def test_pieces(self):
        contours = junction_contours([0], length_mm=90, pieces=3)
        self.assertEqual(len(contours), 3)
        self.assertEqual(contours[2].roi_name, "Junction 1.3")
        self.assertAlmostEqual(contours[0].centroid().y, -30)

    def test_magnification(self):
        contours = junction_contours([20], mag_factor=1.5)
        self.assertAlmostEqual(contours[0].centroid().x, 30)

    def test_rotation(self):
        contours = junction_contours([0], length_mm=100, rotation=90)
        xs = [p.x for p in contours[0]]
        self.assertAlmostEqual(min(xs), -50)
        self.assertAlmostEqual(max(xs), 50)
