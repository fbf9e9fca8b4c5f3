import math
import unittest
from unittest import mock

import numpy as np

from nitrite_growth.core.errors import InsufficientSignalError
from nitrite_growth.core.settings import SigmoidalFitSettings
from nitrite_growth.core.sigmoid import (
    FitCategory,
    fit_and_categorize,
    model_curve,
    model_curve_reverse,
)


def _logistic_series(imax=800.0, slope=0.15, midpoint=50.0, t_end=100.0, step=5.0):
    t = np.arange(0.0, t_end + step, step)
    return t, model_curve(t, imax, slope, midpoint)


class ModelCurveTests(unittest.TestCase):
    def test_midpoint_is_half_maximum(self):
        self.assertAlmostEqual(model_curve(42.0, 640.0, 0.2, 42.0), 320.0, places=12)

    def test_monotonic_in_sign_of_slope(self):
        t = np.linspace(-20.0, 20.0, 41)
        rising = model_curve(t, 100.0, 0.3, 0.0)
        falling = model_curve(t, 100.0, -0.3, 0.0)
        flat = model_curve(t, 100.0, 0.0, 0.0)
        self.assertTrue(np.all(np.diff(rising) > 0))
        self.assertTrue(np.all(np.diff(falling) < 0))
        self.assertTrue(np.allclose(flat, 50.0))

    def test_reverse_round_trip(self):
        imax, slope, midpoint = 780.0, 0.12, 55.0
        for n in np.linspace(1.0, 779.0, 25):
            t = model_curve_reverse(n, imax, slope, midpoint)
            self.assertAlmostEqual(model_curve(t, imax, slope, midpoint), n, delta=1e-8 * imax)

    def test_reverse_outside_open_interval_raises(self):
        for n in (0.0, -5.0, 100.0, 150.0):
            with self.assertRaises(ValueError):
                model_curve_reverse(n, 100.0, 0.1, 10.0)
        with self.assertRaises(ValueError):
            model_curve_reverse(50.0, 100.0, 0.0, 10.0)

    def test_scalar_in_scalar_out(self):
        self.assertIsInstance(model_curve(1.0, 10.0, 1.0, 0.0), float)
        self.assertIsInstance(model_curve_reverse(5.0, 10.0, 1.0, 0.0), float)


class FitAndCategorizeTests(unittest.TestCase):
    def test_recovers_noise_free_logistic(self):
        t, y = _logistic_series()
        fit = fit_and_categorize(t, y)
        self.assertIs(fit.category, FitCategory.SIGMOIDAL)
        self.assertAlmostEqual(fit.imax, 800.0, delta=1.0)
        self.assertAlmostEqual(fit.slope, 0.15, delta=1e-3)
        self.assertAlmostEqual(fit.midpoint, 50.0, delta=0.1)
        self.assertGreater(fit.r_squared, 0.9999)
        self.assertEqual(len(t), fit.n_obs)

    def test_derived_tangent_points(self):
        t, y = _logistic_series()
        fit = fit_and_categorize(t, y)
        self.assertAlmostEqual(fit.start_point, fit.midpoint - 2.0 / fit.slope)
        self.assertAlmostEqual(fit.reach_maximum, fit.midpoint + 2.0 / fit.slope)
        self.assertAlmostEqual(fit.max_rate, fit.imax * fit.slope / 4.0)
        self.assertAlmostEqual(fit.model_curve(fit.midpoint), fit.imax / 2.0)

    def test_fit_round_trip(self):
        t, y = _logistic_series()
        fit = fit_and_categorize(t, y)
        for n in (10.0, 200.0, 400.0, 700.0):
            self.assertAlmostEqual(fit.model_curve(fit.model_curve_reverse(n)), n, delta=1e-6)

    def test_deterministic_for_fixed_seed(self):
        t, y = _logistic_series()
        y = y + np.where(np.arange(len(y)) % 2 == 0, 3.0, -3.0)
        settings = SigmoidalFitSettings(n_starts=5, seed=7)
        a = fit_and_categorize(t, y, settings)
        b = fit_and_categorize(t, y, settings)
        self.assertEqual((a.imax, a.slope, a.midpoint), (b.imax, b.slope, b.midpoint))

    def test_rise_before_first_sample_is_ambiguous(self):
        # midpoint at t=0: curve already at Imax/2 when sampling starts
        t, y = _logistic_series(midpoint=0.0, slope=0.1)
        fit = fit_and_categorize(t, y)
        self.assertIs(fit.category, FitCategory.AMBIGUOUS)
        self.assertIn("t0", fit.reason)

    def test_plateau_not_reached_is_ambiguous(self):
        # midpoint near the end: sampling stops before the curve levels off
        t, y = _logistic_series(slope=0.1, midpoint=95.0)
        fit = fit_and_categorize(t, y)
        self.assertIs(fit.category, FitCategory.AMBIGUOUS)
        self.assertIn("last time", fit.reason)

    def test_falling_curve_is_ambiguous(self):
        t, y = _logistic_series(slope=-0.1, midpoint=50.0)
        fit = fit_and_categorize(t, y)
        self.assertIs(fit.category, FitCategory.AMBIGUOUS)
        self.assertIn("non-increasing", fit.reason)
        self.assertLess(fit.slope, 0.0)

    def test_no_converged_start_is_ambiguous(self):
        t, y = _logistic_series()
        with mock.patch("nitrite_growth.core.sigmoid.curve_fit", side_effect=RuntimeError("no fit")) as cf:
            fit = fit_and_categorize(t, y, SigmoidalFitSettings(n_starts=3))
        self.assertEqual(4, cf.call_count)
        self.assertIs(fit.category, FitCategory.AMBIGUOUS)
        self.assertEqual("no start converged", fit.reason)
        self.assertTrue(math.isnan(fit.imax))

    def test_low_maximum_is_no_signal(self):
        t = np.arange(0.0, 101.0, 10.0)
        fit = fit_and_categorize(t, np.full_like(t, 0.1))
        self.assertIs(fit.category, FitCategory.NO_SIGNAL)
        self.assertTrue(math.isnan(fit.imax))

    def test_flat_high_signal_is_no_signal(self):
        t = np.arange(0.0, 101.0, 10.0)
        fit = fit_and_categorize(t, np.full_like(t, 500.0))
        self.assertIs(fit.category, FitCategory.NO_SIGNAL)
        self.assertIn("range", fit.reason)

    def test_too_few_points_is_no_signal(self):
        fit = fit_and_categorize([0.0, 10.0], [5.0, 500.0])
        self.assertIs(fit.category, FitCategory.NO_SIGNAL)

    def test_non_finite_pairs_are_ignored(self):
        t, y = _logistic_series()
        y = y.copy()
        y[3] = np.nan
        fit = fit_and_categorize(t, y)
        self.assertEqual(len(t) - 1, fit.n_obs)

    def test_using_non_sigmoidal_fit_raises(self):
        t = np.arange(0.0, 101.0, 10.0)
        fit = fit_and_categorize(t, np.full_like(t, 0.1))
        with self.assertRaises(InsufficientSignalError):
            fit.require_sigmoidal()
        with self.assertRaises(InsufficientSignalError):
            fit.model_curve(10.0)

    def test_length_mismatch_raises(self):
        with self.assertRaises(ValueError):
            fit_and_categorize([0.0, 1.0, 2.0], [1.0, 2.0])


if __name__ == "__main__":
    unittest.main()
