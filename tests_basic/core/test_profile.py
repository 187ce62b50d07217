import unittest

import numpy as np

from pypicket.core.exceptions import PeakDetectionError
from pypicket.core.profile import (
    SPENCER_15,
    Peak,
    Profile,
    ProjectionSamples,
    high_pass,
    merge_peaks,
    spencer_smooth,
)


def gaussian_profile(
    centers, sigma: float = 0.3, length: float = 100, spacing: float = 0.1, sigmas=None
) -> Profile:
    """A profile of unit-height gaussian bumps."""
    positions = np.arange(0, length, spacing)
    values = np.zeros_like(positions)
    sigmas = sigmas or [sigma] * len(centers)
    for center, s in zip(centers, sigmas):
        values += np.exp(-((positions - center) ** 2) / (2 * s**2))
    return Profile(positions, values)


class TestProjectionSamples(unittest.TestCase):
    def test_sorted_is_stable(self):
        samples = ProjectionSamples()
        samples.extend([2, 1, 2, 0], [10, 20, 30, 40])
        profile = samples.sorted()
        np.testing.assert_array_equal(profile.positions, [0, 1, 2, 2])
        # equal positions keep their insertion order
        np.testing.assert_array_equal(profile.values, [40, 20, 10, 30])

    def test_append_and_len(self):
        samples = ProjectionSamples()
        samples.append(1, 1)
        samples.extend(np.arange(5), np.ones(5))
        self.assertEqual(len(samples), 6)
        self.assertEqual(len(samples.sorted()), 6)

    def test_mismatched_lengths(self):
        with self.assertRaises(ValueError):
            ProjectionSamples().extend([1, 2], [1])

    def test_empty(self):
        self.assertEqual(len(ProjectionSamples().sorted()), 0)


class TestProfile(unittest.TestCase):
    def test_unsorted_positions_fail(self):
        with self.assertRaises(ValueError):
            Profile([0, 2, 1], [1, 1, 1])

    def test_arrays_are_read_only(self):
        profile = Profile([0, 1], [1, 1])
        with self.assertRaises(ValueError):
            profile.values[0] = 5

    def test_mean_spacing(self):
        self.assertAlmostEqual(Profile([0, 1, 3], [0, 0, 0]).mean_spacing, 1.5)
        self.assertEqual(Profile([0], [0]).mean_spacing, 0)

    def test_default_weights(self):
        np.testing.assert_array_equal(Profile([0, 1], [5, 6]).weights, [1, 1])


class TestBinning(unittest.TestCase):
    def test_weighted_means(self):
        profile = Profile([0, 1, 2, 3, 4], [1, 2, 3, 4, 5]).binned(2)
        np.testing.assert_allclose(profile.positions, [0.5, 3])
        np.testing.assert_allclose(profile.values, [1.5, 4])
        np.testing.assert_allclose(profile.weights, [2, 3])

    def test_weights_are_used(self):
        profile = Profile([0, 1], [0, 10], weights=[3, 1]).binned(1)
        np.testing.assert_allclose(profile.positions, [0.25])
        np.testing.assert_allclose(profile.values, [2.5])

    def test_empty_bins_are_dropped(self):
        profile = Profile([0, 0.1, 10], [1, 1, 1]).binned(5)
        self.assertEqual(len(profile), 2)

    def test_single_position(self):
        profile = Profile([3, 3, 3], [1, 2, 3]).binned(10)
        self.assertEqual(len(profile), 1)
        self.assertAlmostEqual(profile.values[0], 2)

    def test_bad_bin_count(self):
        with self.assertRaises(ValueError):
            Profile([0, 1], [0, 1]).binned(0)

    def test_binned_positions_are_sorted(self):
        rng = np.random.default_rng(1234)
        samples = ProjectionSamples()
        samples.extend(rng.uniform(-50, 50, 5000), rng.normal(size=5000))
        profile = samples.sorted().binned(100)
        self.assertTrue(np.all(np.diff(profile.positions) >= 0))


class TestFilter(unittest.TestCase):
    def test_spencer_weights(self):
        self.assertAlmostEqual(SPENCER_15.sum(), 1)
        self.assertEqual(len(SPENCER_15), 15)

    def test_spencer_impulse_response(self):
        values = np.zeros(31)
        values[15] = 1
        np.testing.assert_allclose(spencer_smooth(values)[8:23], SPENCER_15)

    def test_constant_profile_filters_to_zero(self):
        profile = Profile(np.arange(100), np.full(100, 7.0))
        filtered = profile.filtered()
        np.testing.assert_allclose(filtered.values, 0, atol=1e-9)
        np.testing.assert_array_equal(filtered.positions, profile.positions)

    def test_background_is_removed(self):
        positions = np.arange(0, 300, 1.0)
        values = 0.01 * positions + np.cos(2 * np.pi * positions / 10)
        filtered = Profile(positions, values).filtered()
        # away from the edges the slow ramp is gone
        self.assertAlmostEqual(np.mean(filtered.values[50:250]), 0, delta=0.05)

    def test_high_pass_not_1d_fails(self):
        with self.assertRaises(ValueError):
            high_pass(np.zeros((3, 3)), sigma=1)

    def test_too_short_fails(self):
        with self.assertRaises(ValueError):
            Profile([0], [1]).filtered()


class TestPeakDetection(unittest.TestCase):
    def test_peaks_found(self):
        centers = [10, 25, 40, 55, 70, 85]
        peaks = gaussian_profile(centers).find_peaks()
        self.assertEqual(len(peaks), len(centers))
        for peak, center in zip(peaks, centers):
            self.assertAlmostEqual(peak.position, center, delta=0.05)
            self.assertAlmostEqual(peak.value, 1, delta=0.05)
            self.assertEqual(peak.count, 1)

    def test_close_peaks_are_merged(self):
        peaks = gaussian_profile([10, 11.2, 30, 50, 70, 90]).find_peaks()
        self.assertEqual(len(peaks), 5)
        self.assertEqual(peaks[0].count, 2)
        self.assertAlmostEqual(peaks[0].position, 10.6, delta=0.2)

    def test_merged_peaks_are_separated(self):
        rng = np.random.default_rng(42)
        centers = np.sort(rng.uniform(5, 95, 30))
        peaks = gaussian_profile(centers).find_peaks(min_peaks=1)
        separations = np.diff([p.position for p in peaks])
        self.assertTrue(np.all(separations >= 2.0))

    def test_too_few_peaks(self):
        # 4 maxima, two of which merge
        profile = gaussian_profile([10, 11.2, 50, 90])
        with self.assertRaises(PeakDetectionError):
            profile.find_peaks()

    def test_min_peaks_is_configurable(self):
        profile = gaussian_profile([10, 11.2, 50, 90])
        self.assertEqual(len(profile.find_peaks(min_peaks=3)), 3)

    def test_sharpness_filter(self):
        profile = gaussian_profile(
            [20, 50, 80, 110, 140, 175],
            length=200,
            sigmas=[0.3, 0.3, 0.3, 0.3, 0.3, 5],
        )
        self.assertEqual(len(profile.find_peaks()), 6)
        sharp = profile.find_peaks(sharpness_angle=45)
        self.assertEqual(len(sharp), 5)
        self.assertTrue(all(p.position < 150 for p in sharp))
        with self.assertRaises(PeakDetectionError):
            profile.find_peaks(min_peaks=6, sharpness_angle=45)

    def test_sharpness_of_edge_peak(self):
        profile = gaussian_profile([20])
        self.assertEqual(profile.sharpness(Peak(0, 1), window=5), 180)


class TestMergePeaks(unittest.TestCase):
    def test_weighted_by_count(self):
        merged = merge_peaks([Peak(0, 1, count=3), Peak(1, 5, count=1)], 2)
        self.assertEqual(len(merged), 1)
        self.assertAlmostEqual(merged[0].position, 0.25)
        self.assertAlmostEqual(merged[0].value, 2)
        self.assertEqual(merged[0].count, 4)

    def test_closest_pair_first(self):
        merged = merge_peaks([Peak(0, 1), Peak(1.5, 1), Peak(2, 1)], 2)
        # 1.5 and 2 merge first (to 1.75), then 0 and 1.75 are still too close
        self.assertEqual(len(merged), 1)
        self.assertAlmostEqual(merged[0].position, (0 + 1.5 + 2) / 3)

    def test_far_peaks_untouched(self):
        peaks = [Peak(0, 1), Peak(5, 1), Peak(10, 1)]
        self.assertEqual(merge_peaks(peaks, 2), peaks)


class TestFilterInput(unittest.TestCase):
    def test_non_finite_values_fail(self):
        profile = Profile(np.arange(20), np.r_[np.ones(19), np.nan])
        with self.assertRaises(ValueError):
            profile.filtered()
