"""
Calla Interpreter
Executes decorated (optionally optimized) program trees.
Runtime frames are dictionaries keyed by entity, so no name lookup
happens at run time.
"""

from typing import Any, Callable, Dict, List, Optional

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
)
from stdlib import CONSTANTS, CallaRuntimeError, get_intrinsic
from utilities import apply_binary_operator, apply_unary_operator, is_truthy


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_runtime_env(parent: Optional[Dict] = None, bindings: Optional[Dict] = None) -> Dict:
  """Create a runtime frame; frames are mutated by declarations and assignments"""
  return {
      'parent': parent,
      'bindings': dict(bindings or {})
  }


def make_function(params: List[Variable], body: Any, closure_env: Dict) -> Dict:
  """Create a function value with closure"""
  return {
      'type': 'function',
      'params': params,
      'body': body,
      'closure_env': closure_env
  }


def make_execution_context(emit: Optional[Callable[[Any], None]] = None, debug: bool = False) -> Dict:
  """Collects printed values and forwards them to emit"""
  return {
      'output': [],
      'emit': emit,
      'debug': debug
  }


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

def env_define(env: Dict, entity: Any, value: Any) -> None:
  env['bindings'][entity] = value


def env_lookup_value(env: Optional[Dict], entity: Any) -> Any:
  """Look up an entity in the frame chain, then among the built-in constants"""
  frame = env
  while frame is not None:
    if entity in frame['bindings']:
      return frame['bindings'][entity]
    frame = frame['parent']
  if entity in CONSTANTS:
    return CONSTANTS[entity]
  raise CallaRuntimeError(f"{entity.name} is used before it has a value")


def env_assign(env: Optional[Dict], entity: Variable, value: Any) -> None:
  """Update the innermost frame that holds entity"""
  frame = env
  while frame is not None:
    if entity in frame['bindings']:
      frame['bindings'][entity] = value
      return
    frame = frame['parent']
  raise CallaRuntimeError(f"{entity.name} is assigned before it is declared")


# ============================================================================
# STATEMENT EXECUTION
# ============================================================================

def execute_statements(statements: List[Any], env: Dict, context: Dict) -> None:
  for statement in statements:
    execute_statement(statement, env, context)


def execute_statement(statement: Any, env: Dict, context: Dict) -> None:
  if context['debug']:
    print(f"Executing: {type(statement).__name__}")

  if isinstance(statement, VariableDeclaration):
    env_define(env, statement.variable, eval_expression(statement.initializer, env, context))
  elif isinstance(statement, FunctionDeclaration):
    env_define(env, statement.fun, make_function(statement.params, statement.body, env))
  elif isinstance(statement, Assignment):
    env_assign(env, statement.target, eval_expression(statement.source, env, context))
  elif isinstance(statement, PrintStatement):
    value = eval_expression(statement.argument, env, context)
    context['output'].append(value)
    if context['emit'] is not None:
      context['emit'](value)
  elif isinstance(statement, WhileStatement):
    while is_truthy(eval_expression(statement.test, env, context)):
      execute_statements(statement.body, env, context)
  else:
    raise TypeError(f"Cannot execute statement of type {type(statement).__name__}")


# ============================================================================
# EXPRESSION EVALUATION
# ============================================================================

def eval_expression(expression: Any, env: Dict, context: Dict) -> Any:
  if is_literal(expression):
    return expression
  if isinstance(expression, Variable):
    return env_lookup_value(env, expression)
  if isinstance(expression, Conditional):
    test = eval_expression(expression.test, env, context)
    branch = expression.consequent if is_truthy(test) else expression.alternate
    return eval_expression(branch, env, context)
  if isinstance(expression, BinaryExpression):
    left = eval_expression(expression.left, env, context)
    # && and || only evaluate their right operand when it decides the result
    if expression.op == "&&" and not is_truthy(left):
      return left
    if expression.op == "||" and is_truthy(left):
      return left
    right = eval_expression(expression.right, env, context)
    return apply_binary_operator(expression.op, left, right)
  if isinstance(expression, UnaryExpression):
    return apply_unary_operator(expression.op, eval_expression(expression.operand, env, context))
  if isinstance(expression, Call):
    return eval_call(expression, env, context)
  raise TypeError(f"Cannot evaluate expression of type {type(expression).__name__}")


def eval_call(call: Call, env: Dict, context: Dict) -> Any:
  args = [eval_expression(arg, env, context) for arg in call.args]
  callee: Function = call.callee

  if not callee.user_defined:
    return get_intrinsic(callee)(*args)

  func = env_lookup_value(env, callee)
  if len(args) != len(func['params']):
    raise CallaRuntimeError(
        f"{callee.name} requires {len(func['params'])} arguments, got {len(args)}")
  if context['debug']:
    print(f"Calling {callee.name} with {[format_literal(a) for a in args]}")
  call_env = make_runtime_env(func['closure_env'], dict(zip(func['params'], args)))
  return eval_expression(func['body'], call_env, context)


# ============================================================================
# ENTRY POINTS
# ============================================================================

def interpret_program(program: Program, debug: bool = False,
                      emit: Optional[Callable[[Any], None]] = None) -> List[Any]:
  """Run a program and return the values it printed, in order"""
  context = make_execution_context(emit, debug)
  execute_statements(program.statements, make_runtime_env(), context)
  return context['output']


def create_interpreter(debug: bool = False) -> Callable[[Program], List[Any]]:
  """Factory function returning an interpreter function"""
  def interpreter(program: Program) -> List[Any]:
    return interpret_program(program, debug)

  return interpreter


def create_debug_interpreter() -> Callable[[Program], List[Any]]:
  return create_interpreter(debug=True)
