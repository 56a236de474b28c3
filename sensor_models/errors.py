"""
Exception hierarchy for the sensor models.

Every failure is recoverable and is raised to the immediate caller:

    SensorModelError
    ├── DistortionError
    │   ├── SingularJacobianError
    │   └── NonConvergentError
    ├── ProjectionError
    │   ├── InvalidRpcError
    │   └── NoConvergenceError
    └── CoordinateError
        └── InvalidLatitudeError

A point behind the camera is not an error; camera models return None
for it.
"""


class SensorModelError(Exception):
    """Base class for all sensor model errors."""


class DistortionError(SensorModelError):
    """Lens distortion could not be inverted."""


class SingularJacobianError(DistortionError):
    """The finite-difference Jacobian is numerically singular."""

    def __init__(self, message: str = "Singular Jacobian during distortion inversion"):
        super().__init__(message)


class NonConvergentError(DistortionError):
    """Distortion inversion exhausted its iteration budget."""

    def __init__(self, message: str = "Distortion inversion did not converge"):
        super().__init__(message)


class ProjectionError(SensorModelError):
    """A sensor projection failed."""


class InvalidRpcError(ProjectionError):
    """An RPC rational function has a vanishing denominator."""

    def __init__(self, message: str = "Invalid RPC coefficients"):
        super().__init__(message)


class NoConvergenceError(ProjectionError):
    """RPC inverse projection failed to converge.

    Attributes:
        iterations: Iteration at which the solver gave up
    """

    def __init__(self, iterations: int):
        self.iterations = iterations
        super().__init__(f"Projection did not converge after {iterations} iterations")


class CoordinateError(SensorModelError):
    """A coordinate conversion failed."""


class InvalidLatitudeError(CoordinateError, ValueError):
    """Latitude outside [-90, 90] degrees.

    Attributes:
        value: The offending latitude in degrees
    """

    def __init__(self, value: float):
        self.value = value
        super().__init__(f"Invalid latitude: {value} (must be -90 to 90)")
