"""
Calla Optimizer
Rewrites a decorated tree bottom-up into an equivalent, simpler tree:
constant folding, algebraic identities, dead-branch and no-op removal.
The analyzer has already validated the tree, so nothing is re-checked here.
"""

from typing import Any, Callable, Dict, List

from core import (
  Assignment,
  BinaryExpression,
  Call,
  Conditional,
  Function,
  FunctionDeclaration,
  PrintStatement,
  Program,
  UnaryExpression,
  Variable,
  VariableDeclaration,
  WhileStatement,
  format_literal,
  is_literal,
  is_number,
)
from stdlib import INTRINSICS, CallaRuntimeError
from utilities import apply_binary_operator, apply_unary_operator, is_truthy


_UNFOLDED = object()
ARITHMETIC_OPERATORS = ("+", "-", "*", "/", "%", "**")


def _trace(debug: bool, message: str) -> None:
  if debug:
    print(f"Optimizer: {message}")


# ============================================================================
# HELPERS
# ============================================================================

def is_zero(value: Any) -> bool:
  return is_number(value) and value == 0


def is_one(value: Any) -> bool:
  return is_number(value) and value == 1


def is_numeric_expression(expression: Any) -> bool:
  """True when expression evaluates to a number or fails, never to a boolean"""
  if is_literal(expression):
    return is_number(expression)
  if isinstance(expression, BinaryExpression):
    return expression.op in ARITHMETIC_OPERATORS
  if isinstance(expression, UnaryExpression):
    return expression.op == "-"
  if isinstance(expression, Call):
    return expression.callee in INTRINSICS
  if isinstance(expression, Conditional):
    return (is_numeric_expression(expression.consequent)
            and is_numeric_expression(expression.alternate))
  return False


def fold_binary(op: str, left: Any, right: Any) -> Any:
  """Evaluate op on two literals, or return _UNFOLDED to keep it for run time"""
  if op in ("/", "%") and is_zero(right):
    return _UNFOLDED
  try:
    return apply_binary_operator(op, left, right)
  except CallaRuntimeError:
    # Overflow, complex results and type errors must still happen at run time
    return _UNFOLDED


# ============================================================================
# STATEMENTS
# ============================================================================

def optimize_statements(statements: List[Any], debug: bool = False) -> List[Any]:
  """Optimize a statement sequence, dropping statements with no effect"""
  result = []
  for statement in statements:
    result.extend(optimize_statement(statement, debug))
  return result


def optimize_statement(statement: Any, debug: bool = False) -> List[Any]:
  """Optimize one statement into zero or more statements"""
  handlers: Dict[type, Callable[[Any, bool], List[Any]]] = {
      VariableDeclaration: optimize_variable_declaration,
      FunctionDeclaration: optimize_function_declaration,
      Assignment: optimize_assignment,
      PrintStatement: optimize_print,
      WhileStatement: optimize_while,
  }

  handler = handlers.get(type(statement))
  if handler is None:
    raise TypeError(f"Cannot optimize statement of type {type(statement).__name__}")
  return handler(statement, debug)


def optimize_variable_declaration(declaration: VariableDeclaration, debug: bool = False) -> List[Any]:
  # Declarations are kept even when never read
  declaration.initializer = optimize_expression(declaration.initializer, debug)
  return [declaration]


def optimize_function_declaration(declaration: FunctionDeclaration, debug: bool = False) -> List[Any]:
  declaration.body = optimize_expression(declaration.body, debug)
  return [declaration]


def optimize_assignment(assignment: Assignment, debug: bool = False) -> List[Any]:
  assignment.source = optimize_expression(assignment.source, debug)
  if assignment.source is assignment.target:
    _trace(debug, f"removed self-assignment of {assignment.target.name}")
    return []
  return [assignment]


def optimize_print(statement: PrintStatement, debug: bool = False) -> List[Any]:
  statement.argument = optimize_expression(statement.argument, debug)
  return [statement]


def optimize_while(statement: WhileStatement, debug: bool = False) -> List[Any]:
  statement.test = optimize_expression(statement.test, debug)
  if is_literal(statement.test) and not is_truthy(statement.test):
    _trace(debug, "removed while loop with false test")
    return []
  statement.body = optimize_statements(statement.body, debug)
  return [statement]


# ============================================================================
# EXPRESSIONS
# ============================================================================

def optimize_expression(expression: Any, debug: bool = False) -> Any:
  """Optimize an expression, returning it or its replacement"""
  if is_literal(expression) or isinstance(expression, (Variable, Function)):
    return expression

  handlers: Dict[type, Callable[[Any, bool], Any]] = {
      Conditional: optimize_conditional,
      BinaryExpression: optimize_binary,
      UnaryExpression: optimize_unary,
      Call: optimize_call,
  }

  handler = handlers.get(type(expression))
  if handler is None:
    raise TypeError(f"Cannot optimize expression of type {type(expression).__name__}")
  return handler(expression, debug)


def optimize_conditional(conditional: Conditional, debug: bool = False) -> Any:
  conditional.test = optimize_expression(conditional.test, debug)
  conditional.consequent = optimize_expression(conditional.consequent, debug)
  conditional.alternate = optimize_expression(conditional.alternate, debug)
  if is_literal(conditional.test):
    taken = "consequent" if is_truthy(conditional.test) else "alternate"
    _trace(debug, f"conditional on {format_literal(conditional.test)} reduced to its {taken}")
    return conditional.consequent if is_truthy(conditional.test) else conditional.alternate
  return conditional


def optimize_binary(expression: BinaryExpression, debug: bool = False) -> Any:
  expression.left = optimize_expression(expression.left, debug)
  expression.right = optimize_expression(expression.right, debug)
  op, left, right = expression.op, expression.left, expression.right

  if is_literal(left) and is_literal(right):
    folded = fold_binary(op, left, right)
    if folded is not _UNFOLDED:
      _trace(debug, f"folded {format_literal(left)} {op} {format_literal(right)}")
      return folded
    return expression

  # x * 0 and x ** 0 stay: x may be infinite, NaN or a boolean
  if op == "+":
    if is_zero(right) and is_numeric_expression(left):
      return left
    if is_zero(left) and is_numeric_expression(right):
      return right
  elif op == "-":
    if is_zero(right) and is_numeric_expression(left):
      return left
    if is_zero(left) and is_numeric_expression(right):
      return UnaryExpression("-", right)
  elif op == "*":
    if is_one(right) and is_numeric_expression(left):
      return left
    if is_one(left) and is_numeric_expression(right):
      return right
  elif op in ("/", "**"):
    if is_one(right) and is_numeric_expression(left):
      return left
  elif op == "&&":
    if is_literal(left):
      return right if is_truthy(left) else left
  elif op == "||":
    if is_literal(left):
      return left if is_truthy(left) else right

  return expression


def optimize_unary(expression: UnaryExpression, debug: bool = False) -> Any:
  expression.operand = optimize_expression(expression.operand, debug)
  if is_literal(expression.operand):
    try:
      return apply_unary_operator(expression.op, expression.operand)
    except CallaRuntimeError:
      # e.g. negating a boolean, which must still fail at run time
      return expression
  return expression


def optimize_call(call: Call, debug: bool = False) -> Any:
  call.args = [optimize_expression(arg, debug) for arg in call.args]
  if call.callee in INTRINSICS and all(is_number(arg) for arg in call.args):
    try:
      value = INTRINSICS[call.callee](*call.args)
    except CallaRuntimeError:
      return call
    _trace(debug, f"folded call to {call.callee.name}")
    return value
  return call


# ============================================================================
# ENTRY POINTS
# ============================================================================

def optimize(program: Program, debug: bool = False) -> Program:
  """Optimize a decorated Program in place and return it"""
  if not isinstance(program, Program):
    raise TypeError(f"Expected a Program, got {type(program).__name__}")
  program.statements = optimize_statements(program.statements, debug)
  return program


def create_optimizer(debug: bool = False) -> Callable[[Program], Program]:
  """Factory function returning an optimizer function"""
  def optimizer(program: Program) -> Program:
    return optimize(program, debug)

  return optimizer
