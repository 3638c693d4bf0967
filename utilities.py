"""
Utilities module for the Calla compiler/interpreter
Operator semantics shared by the optimizer (folding) and the interpreter
"""

from typing import Any, Callable, Dict
import math
import operator

from core import is_number
from stdlib import CallaRuntimeError


# ==================== VALUE UTILITIES ====================

def type_name(value: Any) -> str:
  """Name of the runtime kind of a value, for error messages"""
  if isinstance(value, bool):
    return "Bool"
  if is_number(value):
    return "Num"
  return type(value).__name__


def is_truthy(value: Any) -> bool:
  """
  Truthiness of a runtime value

  false, 0 and NaN are false; everything else is true.
  """
  if is_number(value) and math.isnan(value):
    return False
  return bool(value)


# ==================== ERROR MESSAGE BUILDERS ====================

def operation_error(op_name: str, left: Any, right: Any) -> CallaRuntimeError:
  """
  Generate operation error

  Args:
    op_name: Operation name
    left: Left operand value
    right: Right operand value

  Returns:
    CallaRuntimeError with formatted message
  """
  return CallaRuntimeError(
    f"Cannot {op_name} {type_name(left)} and {type_name(right)}"
  )


def unary_operation_error(op_name: str, operand: Any) -> CallaRuntimeError:
  return CallaRuntimeError(f"Cannot {op_name} {type_name(operand)}")


# ==================== OPERATOR IMPLEMENTATIONS ====================

def divide(x: float, y: float) -> float:
  if y == 0:
    raise CallaRuntimeError("Division by zero")
  return x / y


def modulo(x: float, y: float) -> float:
  """Remainder taking the sign of the dividend"""
  if y == 0:
    raise CallaRuntimeError("Modulo by zero")
  return math.fmod(x, y)


def power(x: float, y: float) -> float:
  if x == 0 and y < 0:
    raise CallaRuntimeError("Zero cannot be raised to a negative power")
  result = x ** y
  if isinstance(result, complex):
    raise CallaRuntimeError(f"{x} ** {y} is not a real number")
  return result


def values_equal(x: Any, y: Any) -> bool:
  """Booleans and numbers are never equal to each other"""
  return type_name(x) == type_name(y) and x == y


def values_not_equal(x: Any, y: Any) -> bool:
  return not values_equal(x, y)


def logical_and(x: Any, y: Any) -> Any:
  return y if is_truthy(x) else x


def logical_or(x: Any, y: Any) -> Any:
  return x if is_truthy(x) else y


# ==================== BINARY OPERATION FACTORIES ====================

def binary_arithmetic_op(
  op: Callable[[Any, Any], Any],
  op_name: str
) -> Callable[[Any, Any], float]:
  """
  Factory for binary arithmetic operations

  Args:
    op: Python function computing the result (e.g., operator.add)
    op_name: Name for error messages

  Returns:
    Function that checks both operands are numbers and returns a float

  Examples:
    calla_add = binary_arithmetic_op(operator.add, "add")
    calla_add(1.0, 2.0) -> 3.0
  """
  def arithmetic(x: Any, y: Any) -> float:
    if not (is_number(x) and is_number(y)):
      raise operation_error(op_name, x, y)
    try:
      return float(op(x, y))
    except OverflowError as e:
      raise CallaRuntimeError(f"Cannot {op_name} {x} and {y}: {e}") from e

  return arithmetic


def binary_comparison_op(
  op: Callable[[Any, Any], bool],
  op_name: str,
  numbers_only: bool = True
) -> Callable[[Any, Any], bool]:
  """
  Factory for binary comparison operations

  Args:
    op: Python operator function (e.g., operator.lt)
    op_name: Name for error messages
    numbers_only: Reject non-numeric operands (ordering comparisons)

  Returns:
    Function that performs the comparison
  """
  def comparison(x: Any, y: Any) -> bool:
    if numbers_only and not (is_number(x) and is_number(y)):
      raise operation_error(op_name, x, y)
    return bool(op(x, y))

  return comparison


BINARY_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "+": binary_arithmetic_op(operator.add, "add"),
    "-": binary_arithmetic_op(operator.sub, "subtract"),
    "*": binary_arithmetic_op(operator.mul, "multiply"),
    "/": binary_arithmetic_op(divide, "divide"),
    "%": binary_arithmetic_op(modulo, "take the remainder of"),
    "**": binary_arithmetic_op(power, "exponentiate"),
    "<": binary_comparison_op(operator.lt, "compare"),
    "<=": binary_comparison_op(operator.le, "compare"),
    ">": binary_comparison_op(operator.gt, "compare"),
    ">=": binary_comparison_op(operator.ge, "compare"),
    "==": binary_comparison_op(values_equal, "compare", numbers_only=False),
    "!=": binary_comparison_op(values_not_equal, "compare", numbers_only=False),
    "&&": logical_and,
    "||": logical_or,
}


def negate(x: Any) -> float:
  if not is_number(x):
    raise unary_operation_error("negate", x)
  return -x


def logical_not(x: Any) -> bool:
  return not is_truthy(x)


UNARY_OPERATORS: Dict[str, Callable[[Any], Any]] = {
    "-": negate,
    "!": logical_not,
}


def apply_binary_operator(op: str, left: Any, right: Any) -> Any:
  """Evaluate a binary operator on two values"""
  if op not in BINARY_OPERATORS:
    raise ValueError(f"Unknown binary operator: {op}")
  return BINARY_OPERATORS[op](left, right)


def apply_unary_operator(op: str, operand: Any) -> Any:
  """Evaluate a unary operator on a value"""
  if op not in UNARY_OPERATORS:
    raise ValueError(f"Unknown unary operator: {op}")
  return UNARY_OPERATORS[op](operand)
