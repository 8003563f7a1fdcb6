"""
boreholegp.core
===============

Everything required to sample designs over a simulator domain, train Gaussian process
(GP) emulators and validate them by leave-one-out (LOO) cross-validation. The GP
emulation is built upon `mogp_emulator`, with the ability to bound hyperparameters.

Modules
=======

[`designers`][boreholegp.core.designers]:
    Uniform and Latin hypercube designs, and LOO Gaussian processes and predictions.

[`emulators`][boreholegp.core.emulators]:
    GP emulators wrapping `mogp_emulator` and their hyperparameters.

[`exceptions`][boreholegp.core.exceptions]:
    Errors raised by the package.

[`modelling`][boreholegp.core.modelling]:
    Simulator inputs, training data, predictions, domains and the abstract emulator
    and simulator interfaces.

[`numerics`][boreholegp.core.numerics]:
    Numerical tolerance checks.

[`validation`][boreholegp.core.validation]:
    LOO validation of emulators against simulator outputs.
"""
