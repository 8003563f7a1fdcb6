"""Exceptions raised by the borehole emulation toolkit.

Each exception derives from the built-in exception that would otherwise be raised in
its place, so callers catching ``ValueError`` or ``RuntimeError`` continue to work.
"""


class InvalidArgumentError(ValueError):
    """Raised when an argument has the right type but an unusable value, such as a
    non-positive number of samples to generate."""


class DomainError(ValueError):
    """Raised when a simulator input lies outside the region where the simulator is
    physically defined, e.g. a borehole whose radius of influence does not exceed
    its own radius."""


class FitError(RuntimeError):
    """Raised when an emulator could not be fitted to data, typically because the
    hyperparameter optimisation failed to converge."""
