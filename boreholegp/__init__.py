"""
Gaussian process emulation of the borehole function
====================================================

The `boreholegp` package fits Gaussian process (GP) emulators to the borehole function,
a cheap closed-form model of water flow through a borehole that is widely used to test
emulation methods, and validates the emulators by leave-one-out (LOO) cross-validation.
The GP machinery is provided by `mogp_emulator`.

Subpackages and modules
---------------------------------------------------------------------------------------
- [`core`][boreholegp.core]:
Designs, emulators, LOO computations and the underlying modelling abstractions.

- [`borehole`][boreholegp.borehole]:
The borehole parameters, their ranges and the flow rate function.

- [`app`][boreholegp.app]:
Tables, plots and the command line application (``python -m boreholegp``).

- [`utilities`][boreholegp.utilities]:
Argument validation, logging helpers and bounded hyperparameter fitting.
"""
