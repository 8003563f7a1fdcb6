import math
import unittest

import numpy as np
from scipy.stats import norm

from boreholegp.borehole import BOREHOLE_DOMAIN, generate_dataset
from boreholegp.core.designers import compute_loo_gp
from boreholegp.core.emulators import MogpEmulator
from boreholegp.core.exceptions import FitError
from boreholegp.core.modelling import (
    GaussianProcessPrediction,
    Input,
    SimulatorDomain,
    TrainingDatum,
)
from boreholegp.core.validation import LeaveOneOutValidator, LooComparison, LooRecord
from tests.unit.fakes import FailingGP, MeanGP, WhiteNoiseGP
from tests.utilities.utilities import BoreholeTestCase


def make_record(index, observed, estimate, variance):
    return LooRecord(
        index, Input(index), observed, GaussianProcessPrediction(estimate, variance)
    )


class TestLooRecord(unittest.TestCase):
    def test_error_and_standardised_error(self):
        record = make_record(0, observed=5, estimate=3, variance=4)
        self.assertEqual(3, record.estimate)
        self.assertEqual(4, record.variance)
        self.assertEqual(2, record.error)
        self.assertEqual(1, record.standardised_error)

    def test_standardised_error_zero_variance(self):
        self.assertTrue(math.isnan(make_record(0, 1, 1, 0).standardised_error))
        self.assertEqual(math.inf, make_record(0, 2, 1, 0).standardised_error)
        self.assertEqual(-math.inf, make_record(0, 0, 1, 0).standardised_error)


class TestLooComparison(BoreholeTestCase):
    def setUp(self) -> None:
        self.comparison = LooComparison(
            (
                make_record(0, observed=1, estimate=1.5, variance=1),
                make_record(1, observed=2, estimate=2, variance=0.25),
                make_record(2, observed=3, estimate=6, variance=1),
                make_record(3, observed=4, estimate=3, variance=4),
            )
        )

    def test_sequence_behaviour(self):
        self.assertEqual(4, len(self.comparison))
        self.assertEqual([0, 1, 2, 3], [record.index for record in self.comparison])
        self.assertEqual(2, self.comparison[2].index)

    def test_arrays(self):
        np.testing.assert_array_equal([1, 2, 3, 4], self.comparison.observed)
        np.testing.assert_array_equal([1.5, 2, 6, 3], self.comparison.estimates)
        np.testing.assert_array_equal([1, 0.25, 1, 4], self.comparison.variances)

    def test_error_statistics(self):
        self.assertEqualWithinTolerance(
            math.sqrt((0.25 + 0 + 9 + 1) / 4), self.comparison.rmse()
        )
        self.assertEqual(3, self.comparison.max_abs_error())

    def test_coverage(self):
        # Half-widths of 95% intervals are 1.96 * sd
        self.assertEqual(0.75, self.comparison.coverage())

        # A 30% interval only contains the exact prediction
        self.assertAlmostEqual(0.385, norm.ppf(0.65), places=3)
        self.assertEqual(0.25, self.comparison.coverage(0.3))

    def test_coverage_level_error(self):
        for level in (0, 1, 1.5):
            with self.subTest(level=level), self.assertRaises(ValueError):
                self.comparison.coverage(level)

    def test_mean_nes_error(self):
        expected = np.mean(
            [record.prediction.nes_error(record.observed) for record in self.comparison]
        )
        self.assertEqualWithinTolerance(expected, self.comparison.mean_nes_error())

    def test_summary(self):
        summary = self.comparison.summary()
        self.assertEqual(
            ["samples", "rmse", "max_abs_error", "coverage_95", "mean_nes_error"],
            list(summary),
        )
        self.assertEqual(4, summary["samples"])
        self.assertIn("coverage_90", self.comparison.summary(level=0.9))


class TestLeaveOneOutValidator(BoreholeTestCase):
    def setUp(self) -> None:
        self.dataset = generate_dataset(50, np.random.default_rng(11))

    def test_init_type_errors(self):
        with self.assertRaises(TypeError):
            LeaveOneOutValidator("gp")

        with self.assertRaises(TypeError):
            LeaveOneOutValidator(WhiteNoiseGP(), domain=[(0, 1)])

    def test_fit_does_not_modify_emulator(self):
        emulator = MeanGP()
        surrogate = LeaveOneOutValidator(emulator).fit(self.dataset)
        self.assertIsNot(emulator, surrogate)
        self.assertEqual(tuple(), emulator.training_data)
        self.assertEqual(self.dataset, surrogate.training_data)

    def test_fit_rescales_inputs_into_unit_cube(self):
        surrogate = LeaveOneOutValidator(MeanGP(), domain=BOREHOLE_DOMAIN).fit(
            self.dataset
        )
        unit_cube = SimulatorDomain([(0, 1)] * 8)
        for datum, original in zip(surrogate.training_data, self.dataset):
            self.assertIn(datum.input, unit_cube)
            self.assertEqual(original.output, datum.output)

    def test_fit_input_outside_domain_error(self):
        validator = LeaveOneOutValidator(MeanGP(), domain=SimulatorDomain([(0, 1)]))
        data = [TrainingDatum(Input(0.5), 1), TrainingDatum(Input(2), 1)]
        with self.assertRaises(ValueError):
            validator.fit(data)

    def test_fit_too_few_data_error(self):
        with self.assertRaises(ValueError):
            LeaveOneOutValidator(MeanGP()).fit(self.dataset[:1])

    def test_fit_passes_hyperparameter_bounds(self):
        bounds = [(None, None)] * 8 + [(0.5, 0.6)]
        surrogate = LeaveOneOutValidator(
            WhiteNoiseGP(noise_level=1), hyperparameter_bounds=bounds
        ).fit(self.dataset)
        self.assertEqual(tuple(bounds), surrogate.hyperparameter_bounds)
        self.assertEqual(0.6, surrogate.fit_hyperparameters.process_var)

    def test_fit_failure_raises_fit_error(self):
        with self.assertRaises(FitError):
            LeaveOneOutValidator(FailingGP()).fit(self.dataset)

        with self.assertRaises(FitError):
            LeaveOneOutValidator(FailingGP()).compare(self.dataset)

    def test_leave_one_out_predict_one_prediction_per_datum_in_order(self):
        """A 50 sample dataset gives 50 predictions, the i-th excluding datum i."""

        surrogate = LeaveOneOutValidator(MeanGP(noise_level=2)).fit(self.dataset)
        predictions = LeaveOneOutValidator.leave_one_out_predict(surrogate)

        self.assertEqual(50, len(predictions))
        total = sum(datum.output for datum in self.dataset)
        for datum, prediction in zip(self.dataset, predictions):
            self.assertEqualWithinTolerance(
                (total - datum.output) / 49, prediction.estimate
            )
            self.assertEqualWithinTolerance(2, prediction.variance)

    def test_compare_records_in_dataset_order(self):
        comparison = LeaveOneOutValidator(MeanGP(), domain=BOREHOLE_DOMAIN).compare(
            self.dataset
        )

        self.assertEqual(50, len(comparison))
        total = sum(datum.output for datum in self.dataset)
        for i, (datum, record) in enumerate(zip(self.dataset, comparison)):
            self.assertEqual(i, record.index)

            # Records hold the original, unscaled inputs
            self.assertEqual(datum.input, record.input)
            self.assertEqual(datum.output, record.observed)
            self.assertEqualWithinTolerance((total - datum.output) / 49, record.estimate)

    def test_compare_logs_rmse(self):
        with self.assertLogs("boreholegp.core.validation", level="INFO") as logs:
            LeaveOneOutValidator(MeanGP()).compare(self.dataset)

        self.assertTrue(any("Leave-one-out RMSE" in m for m in logs.output))


class TestLeaveOneOutValidatorWithMogpEmulator(BoreholeTestCase):
    def setUp(self) -> None:
        self.dataset = generate_dataset(15, np.random.default_rng(1))
        self.emulator = MogpEmulator(seed=1)

    def test_compare_borehole_dataset(self):
        comparison = LeaveOneOutValidator(self.emulator, domain=BOREHOLE_DOMAIN).compare(
            self.dataset
        )

        self.assertEqual(15, len(comparison))
        for i, (datum, record) in enumerate(zip(self.dataset, comparison)):
            self.assertEqual(i, record.index)
            self.assertEqual(datum.input, record.input)
            self.assertEqual(datum.output, record.observed)
            self.assertTrue(math.isfinite(record.estimate))
            self.assertTrue(math.isfinite(record.variance))
            self.assertGreaterEqual(record.variance, 0)

        # The emulator used as a template is left unfitted
        self.assertEqual(tuple(), self.emulator.training_data)
        self.assertIsNone(self.emulator.fit_hyperparameters)

    def test_loo_surrogates_reuse_full_fit_hyperparameters(self):
        validator = LeaveOneOutValidator(self.emulator, domain=BOREHOLE_DOMAIN)
        surrogate = validator.fit(self.dataset)
        unit_cube = SimulatorDomain([(0, 1)] * 8)
        for datum in surrogate.training_data:
            self.assertIn(datum.input, unit_cube)

        loo_gp = compute_loo_gp(surrogate, 3)
        self.assertEqual(14, len(loo_gp.training_data))
        self.assertEqual(surrogate.fit_hyperparameters, loo_gp.fit_hyperparameters)


if __name__ == "__main__":
    unittest.main()
