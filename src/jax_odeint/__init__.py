"""
JAX ODE integrators

Numerical integration of initial value problems dy/dt = f(y, t), y(t0) = y0,
with fixed-step, adaptive and symplectic time-stepping schemes written in JAX.

Main components:
- timespec: Integration horizons (FixedStep, ExplicitGrid)
- timesteppers: Time-stepping schemes and the stepper registry
- solve: The odeint driver and the jit-compatible integrate loop
"""

# Solver interfaces
from .solve import odeint, integrate, IntegrationInfo

# Integration horizons
from .timespec import FixedStep, ExplicitGrid, as_timespec

# Time-stepping schemes
from .timesteppers import (
    AbstractStepper,
    FixedStepper,
    StepResult,
    StepperProtocol,
    ForwardEuler,
    RK4,
    DormandPrince,
    RK45,
    Leapfrog,
    register_stepper,
    get_stepper,
    available_steppers,
)

# Errors
from .errors import (
    IntegrationError,
    InvalidTimeSpec,
    IncompatibleStateLayout,
    StepSizeUnderflow,
    RHSEvaluationError,
)

__all__ = [
    # Solver interfaces
    "odeint",
    "integrate",
    "IntegrationInfo",

    # Integration horizons
    "FixedStep",
    "ExplicitGrid",
    "as_timespec",

    # Time-stepping methods
    "AbstractStepper",
    "FixedStepper",
    "StepResult",
    "StepperProtocol",
    "ForwardEuler",
    "RK4",
    "DormandPrince",
    "RK45",
    "Leapfrog",

    # Registry
    "register_stepper",
    "get_stepper",
    "available_steppers",

    # Errors
    "IntegrationError",
    "InvalidTimeSpec",
    "IncompatibleStateLayout",
    "StepSizeUnderflow",
    "RHSEvaluationError",
]
