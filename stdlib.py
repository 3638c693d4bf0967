"""
Calla Standard Library
Built-in entities injected into the root scope, and their implementations
"""

from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping
import math

from core import Function, Variable
from error_handling import CallaError


class CallaRuntimeError(CallaError):
  """Error raised while executing a Calla program"""

  def __init__(self, message: str):
    self.message = message
    super().__init__(message)


# ============================================================================
# INTRINSIC IMPLEMENTATIONS
# ============================================================================

def math_intrinsic(func: Callable[..., float], name: str) -> Callable[..., float]:
  """
  Factory for numeric intrinsics

  Args:
    func: Python math function to wrap
    name: Calla name used in error messages

  Returns:
    Function that checks its arguments are numbers and reports math
    domain and range errors as CallaRuntimeError

  Examples:
    calla_sqrt = math_intrinsic(math.sqrt, "sqrt")
    calla_sqrt(16.0) -> 4.0
  """
  def intrinsic(*args: Any) -> float:
    for arg in args:
      if isinstance(arg, bool) or not isinstance(arg, (int, float)):
        raise CallaRuntimeError(f"{name} requires numbers, got {arg!r}")
    try:
      return float(func(*args))
    except (ValueError, OverflowError) as e:
      raise CallaRuntimeError(f"{name}{tuple(args)}: {e}") from e

  intrinsic.__name__ = f"calla_{name}"
  return intrinsic


calla_sqrt = math_intrinsic(math.sqrt, "sqrt")
calla_sin = math_intrinsic(math.sin, "sin")
calla_cos = math_intrinsic(math.cos, "cos")
calla_exp = math_intrinsic(math.exp, "exp")
calla_ln = math_intrinsic(math.log, "ln")
calla_hypot = math_intrinsic(math.hypot, "hypot")


# ============================================================================
# BUILT-IN REGISTRY
# ============================================================================

# Shared by every analysis run; entities are immutable and the table is read-only
STANDARD_LIBRARY: Mapping[str, Any] = MappingProxyType({
    "π": Variable("π", read_only=True),
    "sqrt": Function("sqrt", 1),
    "sin": Function("sin", 1),
    "cos": Function("cos", 1),
    "exp": Function("exp", 1),
    "ln": Function("ln", 1),
    "hypot": Function("hypot", 2),
})

CONSTANTS: Mapping[Variable, float] = MappingProxyType({
    STANDARD_LIBRARY["π"]: math.pi,
})

INTRINSICS: Mapping[Function, Callable[..., float]] = MappingProxyType({
    STANDARD_LIBRARY["sqrt"]: calla_sqrt,
    STANDARD_LIBRARY["sin"]: calla_sin,
    STANDARD_LIBRARY["cos"]: calla_cos,
    STANDARD_LIBRARY["exp"]: calla_exp,
    STANDARD_LIBRARY["ln"]: calla_ln,
    STANDARD_LIBRARY["hypot"]: calla_hypot,
})


def get_intrinsic(fun: Function) -> Callable[..., float]:
  """Get the implementation of a built-in function"""
  if fun in INTRINSICS:
    return INTRINSICS[fun]
  raise CallaRuntimeError(f"Unknown built-in function: {fun.name}")


def list_builtins() -> List[str]:
  """List all names in the standard library"""
  return list(STANDARD_LIBRARY.keys())


def describe_builtins() -> Dict[str, str]:
  """Map each built-in name to a short signature for help output"""
  descriptions = {}
  for name, entity in STANDARD_LIBRARY.items():
    if isinstance(entity, Function):
      params = ", ".join(f"x{i + 1}" for i in range(entity.param_count))
      descriptions[name] = f"function {name}({params})"
    else:
      descriptions[name] = f"constant {name}"
  return descriptions
