import unittest
import unittest.mock
import warnings

import numpy as np
from mogp_emulator.GPParams import GPParams

from boreholegp.core.emulators import MogpEmulator, MogpHyperparameters
from boreholegp.core.exceptions import FitError
from boreholegp.core.modelling import (
    GaussianProcessHyperparameters,
    GaussianProcessPrediction,
    Input,
    TrainingDatum,
)
from tests.utilities.utilities import BoreholeTestCase, exact


class TestMogpEmulator(BoreholeTestCase):
    def setUp(self) -> None:
        # Default training data for fitting an emulator
        self.training_data = [
            TrainingDatum(Input(0, 0), 1),
            TrainingDatum(Input(0.2, 0.1), 2),
            TrainingDatum(Input(0.3, 0.5), 3),
            TrainingDatum(Input(0.7, 0.4), 4),
            TrainingDatum(Input(0.9, 0.8), 5),
        ]
        self.params = MogpHyperparameters(
            corr_length_scales=[1, 2], process_var=1, nugget=1e-6
        )

    def test_initialiser_error(self):
        """A RuntimeError is raised if a mogp GaussianProcess couldn't be initialised."""

        with self.assertRaisesRegex(
            RuntimeError,
            exact(
                "Could not construct mogp-emulator GaussianProcess during "
                "initialisation of MogpEmulator"
            ),
        ):
            MogpEmulator(men=None)

    def test_initialiser_invalid_kernel_error(self):
        kernel = "UniformSqExp"
        with self.assertRaisesRegex(
            ValueError,
            exact(
                f"Could not initialise MogpEmulator with kernel = {kernel}: not a "
                "supported kernel function."
            ),
        ):
            MogpEmulator(kernel=kernel)

    def test_default_kernel_is_matern52(self):
        self.assertEqual("Matern 5/2 Kernel", str(MogpEmulator().gp.kernel))

    def test_underlying_gp_kwargs(self):
        emulator = MogpEmulator(kernel="SquaredExponential", nugget="pivot")
        self.assertEqual("Squared Exponential Kernel", str(emulator.gp.kernel))
        self.assertEqual("pivot", emulator.gp.nugget_type)

    def test_initialiser_inputs_targets_ignored(self):
        emulator = MogpEmulator(
            inputs=np.array([[0, 0], [0.2, 0.1]]), targets=np.array([1, 2])
        )
        self.assertEqual(0, emulator.gp.inputs.size)
        self.assertEqual(tuple(), emulator.training_data)
        self.assertIsNone(emulator.fit_hyperparameters)

    def test_fit_estimates_hyperparameters(self):
        emulator = MogpEmulator(seed=1)
        emulator.fit(self.training_data)

        self.assertEqual(tuple(self.training_data), emulator.training_data)
        self.assertIsInstance(emulator.fit_hyperparameters, MogpHyperparameters)
        self.assertEqualWithinTolerance(
            emulator.gp.theta.corr, emulator.fit_hyperparameters.corr_length_scales
        )
        self.assertEqualWithinTolerance(
            emulator.gp.theta.cov, emulator.fit_hyperparameters.process_var
        )

    def test_fit_logs_estimated_hyperparameters(self):
        with self.assertLogs("boreholegp.core.emulators", level="INFO") as logs:
            MogpEmulator(seed=1).fit(self.training_data)

        self.assertTrue(
            any("Estimated hyperparameters from 5 training points" in m for m in logs.output)
        )

    def test_fit_is_reproducible_with_seed(self):
        emulator1 = MogpEmulator(seed=3)
        emulator2 = MogpEmulator(seed=3)
        emulator1.fit(self.training_data)
        emulator2.fit(self.training_data)
        self.assertEqual(emulator1.fit_hyperparameters, emulator2.fit_hyperparameters)

    def test_fit_with_bounds(self):
        """Estimated correlation length scales and process variance respect the bounds
        supplied."""

        bounds = [(0.5, 1.0), (0.2, 0.4), (None, 3.0)]
        emulator = MogpEmulator(seed=2)
        emulator.fit(self.training_data, hyperparameter_bounds=bounds)

        corrs = emulator.fit_hyperparameters.corr_length_scales
        for corr, (lower, upper) in zip(corrs, bounds[:-1]):
            self.assertTrue(lower * (1 - 1e-6) <= corr <= upper * (1 + 1e-6))

        self.assertLessEqual(emulator.fit_hyperparameters.process_var, 3.0 * (1 + 1e-6))

    def test_fit_with_bounds_error(self):
        emulator = MogpEmulator()
        with self.assertRaisesRegex(
            ValueError,
            exact(
                "Invalid bound (1, 0.5) at index 0 of 'hyperparameter_bounds': Lower bound "
                "must be less than or equal to upper bound, but received lower bound = 1 "
                "and upper bound = 0.5."
            ),
        ):
            emulator.fit(self.training_data, hyperparameter_bounds=[(1, 0.5), (None, None)])

        with self.assertRaisesRegex(ValueError, "Upper bounds must be positive numbers"):
            emulator.fit(
                self.training_data, hyperparameter_bounds=[(None, 0), (None, None)]
            )

        with self.assertRaises(TypeError):
            emulator.fit(self.training_data, hyperparameter_bounds=[("a", 1)])

    def test_fit_duplicate_inputs_error(self):
        data = self.training_data + [TrainingDatum(Input(0, 0), 7)]
        with self.assertRaisesRegex(ValueError, "are not unique within tolerance"):
            MogpEmulator().fit(data)

    def test_fit_training_data_type_error(self):
        with self.assertRaises(TypeError):
            MogpEmulator().fit([(Input(0), 1)])

        with self.assertRaises(TypeError):
            MogpEmulator().fit(iter(self.training_data))

    def test_fit_hyperparameters_type_error(self):
        hyperparameters = GaussianProcessHyperparameters([1, 1], 1, 0)
        with self.assertRaises(TypeError):
            MogpEmulator().fit(self.training_data, hyperparameters=hyperparameters)

    def test_fit_empty_training_data_does_nothing(self):
        emulator = MogpEmulator()
        emulator.fit([])
        self.assertEqual(tuple(), emulator.training_data)
        self.assertIsNone(emulator.fit_hyperparameters)

    def test_fit_with_given_hyperparameters(self):
        emulator = MogpEmulator()
        emulator.fit(self.training_data, hyperparameters=self.params)
        self.assertEqual(self.params, emulator.fit_hyperparameters)

    def test_fit_with_given_hyperparameters_without_nugget(self):
        """If the hyperparameters have no nugget, the nugget is computed with the
        method given at construction."""

        params = MogpHyperparameters([1, 2], 1)
        emulator = MogpEmulator(nugget="adaptive")
        emulator.fit(self.training_data, hyperparameters=params)
        self.assertEqualWithinTolerance(
            params.corr_length_scales, emulator.fit_hyperparameters.corr_length_scales
        )
        self.assertEqualWithinTolerance(
            params.process_var, emulator.fit_hyperparameters.process_var
        )
        self.assertEqual(
            MogpHyperparameters.from_mogp_gp_params(emulator.gp.theta),
            emulator.fit_hyperparameters,
        )

        with self.assertRaises(ValueError):
            MogpEmulator(nugget="fit").fit(self.training_data, hyperparameters=params)

    def test_fit_with_given_hyperparameters_does_not_change_settings(self):
        """Fitting with a fixed nugget doesn't change the nugget method used for later
        estimation."""

        emulator = MogpEmulator(nugget="adaptive", seed=1)
        emulator.fit(self.training_data, hyperparameters=self.params)
        emulator.fit(self.training_data)
        self.assertEqual("adaptive", emulator.gp.nugget_type)

    def test_fit_failure_raises_fit_error(self):
        emulator = MogpEmulator()
        with unittest.mock.patch(
            "boreholegp.core.emulators.fit_GP_MAP",
            side_effect=FitError("failed to converge"),
        ):
            with self.assertRaises(FitError):
                emulator.fit(self.training_data)

        self.assertEqual(tuple(), emulator.training_data)
        self.assertIsNone(emulator.fit_hyperparameters)

    def test_fit_few_points_warning(self):
        with self.assertWarns(UserWarning):
            MogpEmulator(seed=1).fit(self.training_data[:2])

    def test_predict_training_data_points(self):
        emulator = MogpEmulator(nugget=1e-10)
        emulator.fit(self.training_data, hyperparameters=MogpHyperparameters([1, 2], 1))
        for datum in self.training_data:
            with self.subTest(datum=datum):
                prediction = emulator.predict(datum.input)
                self.assertIsInstance(prediction, GaussianProcessPrediction)
                self.assertAlmostEqual(datum.output, prediction.estimate, delta=1e-4)
                self.assertAlmostEqual(0, prediction.variance, delta=1e-4)

    def test_predict_away_from_training_data_has_positive_variance(self):
        emulator = MogpEmulator()
        emulator.fit(self.training_data, hyperparameters=self.params)
        self.assertGreater(emulator.predict(Input(0.5, 0.9)).variance, 0)

    def test_predict_errors(self):
        emulator = MogpEmulator()
        with self.assertRaisesRegex(
            RuntimeError,
            exact(
                "Cannot make prediction because emulator has not been trained on any data."
            ),
        ):
            emulator.predict(Input(0.1, 0.1))

        emulator.fit(self.training_data, hyperparameters=self.params)
        with self.assertRaises(TypeError):
            emulator.predict((0.1, 0.1))

        with self.assertRaisesRegex(
            ValueError,
            exact("Expected 'x' to be an Input with 2 coordinates, but it has 1 instead."),
        ):
            emulator.predict(Input(0.1))

    def test_supported_kernels_fit_and_predict(self):
        for kernel in ("Matern52", "SquaredExponential", "ProductMat52"):
            with self.subTest(kernel=kernel):
                emulator = MogpEmulator(kernel=kernel)
                emulator.fit(self.training_data, hyperparameters=self.params)
                self.assertEqual(kernel, emulator.gp.kernel.__class__.__name__)
                prediction = emulator.predict(Input(0.5, 0.5))
                self.assertIsInstance(prediction, GaussianProcessPrediction)
                self.assertGreaterEqual(prediction.variance, 0)

    def test_fit_with_hyperparameters_silences_mean_parameter_warning(self):
        """Refitting with given hyperparameters, as done for every leave-one-out
        prediction, does not warn about mean function parameters."""

        emulator = MogpEmulator()
        emulator.fit(self.training_data)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            for _ in range(3):
                emulator.fit(
                    self.training_data[1:],
                    hyperparameters=emulator.fit_hyperparameters,
                )

        self.assertFalse(
            [w for w in caught if "Setting mean parameters" in str(w.message)]
        )


class TestMogpHyperparameters(BoreholeTestCase):
    def test_inherits_from_gaussian_process_hyperparameters(self):
        self.assertIsInstance(
            MogpHyperparameters([1], 1), GaussianProcessHyperparameters
        )

    def test_equals_checks_for_same_type(self):
        self.assertNotEqual(
            MogpHyperparameters([1], 1, 0.1), GaussianProcessHyperparameters([1], 1, 0.1)
        )
        self.assertEqual(MogpHyperparameters([1], 1, 0.1), MogpHyperparameters([1], 1, 0.1))

    def test_str(self):
        self.assertEqual(
            "corr_length_scales=(0.1235, 2), process_var=3, nugget=None",
            str(MogpHyperparameters([0.123456, 2], 3)),
        )

    def test_to_mogp_gp_params_nugget_type_errors(self):
        hyperparameters = MogpHyperparameters([1, 2], 1, nugget=None)
        with self.assertRaises(TypeError):
            hyperparameters.to_mogp_gp_params(nugget_type=1)

        with self.assertRaisesRegex(
            ValueError,
            exact(
                "'nugget_type' must be one of {'fixed', 'fit', 'adaptive', 'pivot'}, "
                "but got 'foo'."
            ),
        ):
            hyperparameters.to_mogp_gp_params(nugget_type="foo")

        for nugget_type in ["fixed", "fit"]:
            with self.subTest(nugget_type=nugget_type), self.assertRaisesRegex(
                ValueError,
                exact(
                    f"Cannot set nugget fitting method to 'nugget_type = {nugget_type}' "
                    "when this object's nugget is None."
                ),
            ):
                hyperparameters.to_mogp_gp_params(nugget_type=nugget_type)

    def test_to_mogp_gp_params_copies_values(self):
        hyperparameters = MogpHyperparameters([0.5, 2], 3, nugget=0.01)
        for nugget_type in ["fixed", "fit"]:
            with self.subTest(nugget_type=nugget_type):
                params = hyperparameters.to_mogp_gp_params(nugget_type=nugget_type)
                self.assertEqualWithinTolerance([0.5, 2], params.corr)
                self.assertEqualWithinTolerance(3, params.cov)
                self.assertEqualWithinTolerance(0.01, params.nugget)
                self.assertEqual(nugget_type, params.nugget_type)

        for nugget_type in ["adaptive", "pivot"]:
            with self.subTest(nugget_type=nugget_type):
                params = hyperparameters.to_mogp_gp_params(nugget_type=nugget_type)
                self.assertEqual(nugget_type, params.nugget_type)
                self.assertIsNone(params.nugget)

    def test_from_mogp_gp_params_inverse_of_to_mogp_gp_params(self):
        hyperparameters = MogpHyperparameters([0.5, 2], 3, nugget=0.01)
        self.assertEqual(
            hyperparameters,
            MogpHyperparameters.from_mogp_gp_params(
                hyperparameters.to_mogp_gp_params(nugget_type="fit")
            ),
        )

    def test_from_mogp_gp_params_errors(self):
        with self.assertRaises(TypeError):
            MogpHyperparameters.from_mogp_gp_params("foo")

        with self.assertRaisesRegex(
            ValueError,
            exact(
                "Cannot create hyperparameters with correlation length scales and process "
                "variance equal to None in 'params'."
            ),
        ):
            MogpHyperparameters.from_mogp_gp_params(GPParams(n_corr=2))


if __name__ == "__main__":
    unittest.main()
