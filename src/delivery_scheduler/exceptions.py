"""
Error taxonomy for delivery route planning.

Input problems and infeasible assignments are always raised to the caller.
Mapping provider problems are raised only internally and are absorbed by the
provider adapter, which substitutes the local estimator.
"""


class DeliverySchedulerError(Exception):
    """Base class for all errors raised by this package."""


class InvalidInputError(DeliverySchedulerError, ValueError):
    """Malformed coordinates, empty required lists or out-of-range values."""


class NoViableVehicleError(DeliverySchedulerError):
    """No candidate vehicle can carry the delivery's weight and volume."""

    def __init__(self, message: str = "No vehicles available with sufficient capacity for this delivery"):
        super().__init__(message)


class ProviderUnavailableError(DeliverySchedulerError):
    """The mapping provider failed, timed out or returned an unusable payload."""
