"""Type aliases to improve type hint readability."""

from typing import Callable, Dict, Tuple, TypeAlias, Union

from jax import Array

RHSFunction: TypeAlias = Callable[..., Array]
SplitRHS: TypeAlias = Dict[str, RHSFunction]
Trajectory: TypeAlias = Tuple[Array, Array]
StepPair: TypeAlias = Tuple[float, float]
ODEFunction: TypeAlias = Union[RHSFunction, SplitRHS]
