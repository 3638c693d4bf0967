"""
Calla Semantics Analysis - Functional Style
Resolves every identifier against a chain of scopes, checks declarations,
assignments and calls, and returns the decorated program tree
"""

from typing import Any, Callable, Dict, List, Optional, Tuple, Type

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
)
from error_handling import CallaError
from parsing import CSTNode, SourceSpan
from stdlib import STANDARD_LIBRARY


# ============================================================================
# ERRORS
# ============================================================================

DUPLICATE_DECLARATION = "DuplicateDeclaration"
UNDECLARED_NAME = "UndeclaredName"
WRONG_ENTITY_KIND = "WrongEntityKind"
READ_ONLY_ASSIGNMENT = "ReadOnlyAssignment"
ARITY_MISMATCH = "ArityMismatch"


class CallaSemanticsError(CallaError):
  """Calla semantics analysis error"""

  def __init__(self, message: str, kind: Optional[str] = None, span: Optional[SourceSpan] = None):
    self.message = message
    self.kind = kind
    self.span = span
    super().__init__(self._format_error())

  def _format_error(self) -> str:
    if self.span:
      return f"Semantics error at {self.span}: {self.message}"
    return f"Semantics error: {self.message}"


def check(condition: Any, message: str, kind: str, span: Optional[SourceSpan]) -> None:
  """Abort the analysis with the first failed check"""
  if not condition:
    raise CallaSemanticsError(message, kind, span)


# ============================================================================
# SCOPES (Immutable Dictionaries)
# ============================================================================

def make_scope(parent: Optional[Dict] = None, local_entities: Optional[Dict] = None) -> Dict:
  """Create a scope whose lookups fall back to parent"""
  return {
      'parent': parent,
      'locals': dict(local_entities or {})
  }


def scope_add(scope: Dict, name: str, entity: Any, span: Optional[SourceSpan] = None) -> Dict:
  """Return new scope with name bound; a name may be declared once per scope"""
  check(name not in scope['locals'], f"{name} has already been declared",
        DUPLICATE_DECLARATION, span)
  return {
      **scope,
      'locals': {**scope['locals'], name: entity}
  }


def scope_lookup(scope: Optional[Dict], name: str) -> Optional[Any]:
  """Look up a name in the scope chain, innermost first"""
  while scope is not None:
    if name in scope['locals']:
      return scope['locals'][name]
    scope = scope['parent']
  return None


def scope_resolve(scope: Dict, name: str, expected: Type, span: Optional[SourceSpan]) -> Any:
  """Look up a name that must exist and be of the expected entity kind"""
  entity = scope_lookup(scope, name)
  check(entity is not None, f"{name} has not been declared", UNDECLARED_NAME, span)
  check(isinstance(entity, expected), f"{name} was expected to be a {expected.__name__}",
        WRONG_ENTITY_KIND, span)
  return entity


def make_root_scope() -> Dict:
  """Create the root scope of one analysis run, seeded with the standard library"""
  scope = make_scope()
  for name, entity in STANDARD_LIBRARY.items():
    scope = scope_add(scope, name, entity)
  return scope


# ============================================================================
# STATEMENT ANALYSIS
# ============================================================================

def analyze_statements(cst_nodes: List[CSTNode], scope: Dict, debug: bool = False) -> Tuple[List[Any], Dict]:
  """Analyze statements in source order, threading the scope through them"""
  statements = []
  for cst_node in cst_nodes:
    statement, scope = analyze_statement(cst_node, scope, debug)
    statements.append(statement)
  return statements, scope


def analyze_statement(cst_node: CSTNode, scope: Dict, debug: bool = False) -> Tuple[Any, Dict]:
  """Analyze one statement; returns the decorated node and the scope after it"""
  if debug:
    print(f"Analyzing CST node: {cst_node.type} at {cst_node.span}")

  handlers: Dict[str, Callable[[CSTNode, Dict, bool], Tuple[Any, Dict]]] = {
      "VARDEC": analyze_variable_declaration,
      "FUNDEC": analyze_function_declaration,
      "ASSIGN": analyze_assignment,
      "PRINT": analyze_print,
      "WHILE": analyze_while,
  }

  if cst_node.type not in handlers:
    raise ValueError(f"Unable to analyze statement: {cst_node}")
  return handlers[cst_node.type](cst_node, scope, debug)


def analyze_variable_declaration(cst_node: CSTNode, scope: Dict, debug: bool = False) -> Tuple[Any, Dict]:
  id_node, exp_node = cst_node.children
  # The variable comes into scope only after its initializer, so "let x = x;"
  # refers to an outer x or fails
  initializer = analyze_expression(exp_node, scope, debug)
  variable = Variable(id_node.value, read_only=False)
  scope = scope_add(scope, id_node.value, variable, id_node.span)
  return VariableDeclaration(variable, initializer), scope


def analyze_function_declaration(cst_node: CSTNode, scope: Dict, debug: bool = False) -> Tuple[Any, Dict]:
  id_node, params_node, body_node = cst_node.children
  fun = Function(id_node.value, len(params_node.children), user_defined=True)
  # Registered before the body is analyzed so the function can call itself
  scope = scope_add(scope, id_node.value, fun, id_node.span)

  body_scope = make_scope(scope)
  params = []
  for param_node in params_node.children:
    param = Variable(param_node.value, read_only=True)
    body_scope = scope_add(body_scope, param_node.value, param, param_node.span)
    params.append(param)

  body = analyze_expression(body_node, body_scope, debug)
  return FunctionDeclaration(fun, params, body), scope


def analyze_assignment(cst_node: CSTNode, scope: Dict, debug: bool = False) -> Tuple[Any, Dict]:
  id_node, exp_node = cst_node.children
  target = analyze_identifier(id_node, scope, debug)
  check(not target.read_only, f"{target.name} is read only", READ_ONLY_ASSIGNMENT, id_node.span)
  source = analyze_expression(exp_node, scope, debug)
  return Assignment(target, source), scope


def analyze_print(cst_node: CSTNode, scope: Dict, debug: bool = False) -> Tuple[Any, Dict]:
  return PrintStatement(analyze_expression(cst_node.children[0], scope, debug)), scope


def analyze_while(cst_node: CSTNode, scope: Dict, debug: bool = False) -> Tuple[Any, Dict]:
  test_node, block_node = cst_node.children
  test = analyze_expression(test_node, scope, debug)
  # Blocks do not open a scope: declarations inside stay visible afterwards
  body, scope = analyze_statements(block_node.children, scope, debug)
  return WhileStatement(test, body), scope


# ============================================================================
# EXPRESSION ANALYSIS
# ============================================================================

def analyze_expression(cst_node: CSTNode, scope: Dict, debug: bool = False) -> Any:
  """Analyze any expression and return its decorated form"""
  if debug:
    print(f"Analyzing CST node: {cst_node.type} with value: {cst_node.value}")

  handlers: Dict[str, Callable[[], Any]] = {
      "NUMBER": lambda: float(cst_node.value),
      "TRUE": lambda: True,
      "FALSE": lambda: False,
      "IDENTIFIER": lambda: analyze_identifier(cst_node, scope, debug),
      "PARENTHESIZED": lambda: analyze_expression(cst_node.children[0], scope, debug),
      "CALL": lambda: analyze_call(cst_node, scope, debug),
      "UNARY": lambda: UnaryExpression(
          cst_node.value, analyze_expression(cst_node.children[0], scope, debug)),
      "BINARY": lambda: BinaryExpression(
          cst_node.value,
          analyze_expression(cst_node.children[0], scope, debug),
          analyze_expression(cst_node.children[1], scope, debug)),
      "TERNARY": lambda: Conditional(
          *[analyze_expression(child, scope, debug) for child in cst_node.children]),
  }

  if cst_node.type not in handlers:
    raise ValueError(f"Unable to analyze expression: {cst_node}")
  return handlers[cst_node.type]()


def analyze_identifier(cst_node: CSTNode, scope: Dict, debug: bool = False) -> Variable:
  """Identifiers outside callee position must name variables"""
  return scope_resolve(scope, cst_node.value, Variable, cst_node.span)


def analyze_call(cst_node: CSTNode, scope: Dict, debug: bool = False) -> Call:
  id_node, args_node = cst_node.children
  callee = scope_resolve(scope, id_node.value, Function, id_node.span)
  arg_count = len(args_node.children)
  paren_span = cst_node.tokens[0].span if cst_node.tokens else id_node.span
  check(arg_count == callee.param_count,
        f"Expected {callee.param_count} arg(s), found {arg_count}",
        ARITY_MISMATCH, paren_span)
  args = [analyze_expression(arg, scope, debug) for arg in args_node.children]
  return Call(callee, args)


# ============================================================================
# MAIN ANALYSIS FUNCTION
# ============================================================================

def analyze_program(cst: CSTNode, debug: bool = False) -> Program:
  """
  Analyze a PROGRAM node and return the decorated Program.
  Each call builds its own root scope, so runs share nothing mutable.
  """
  if cst.type != "PROGRAM":
    raise ValueError(f"Expected a PROGRAM node, got {cst.type}")
  statements, _ = analyze_statements(cst.children, make_root_scope(), debug)
  return Program(statements)


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_analyzer(debug: bool = False) -> Callable[[CSTNode], Program]:
  """Factory function returning an analyzer function"""
  def analyzer(cst: CSTNode) -> Program:
    return analyze_program(cst, debug)

  return analyzer


def create_debug_analyzer() -> Callable[[CSTNode], Program]:
  """Factory function returning a debug analyzer"""
  return create_analyzer(debug=True)
