"""
Calla Core - Entities and the decorated program tree
The analyzer builds these nodes; the optimizer rewrites them in place
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field


# ============================================================================
# ENTITIES
# ============================================================================

@dataclass(frozen=True, eq=False)
class Variable:
    """A declared variable; equality is identity"""
    name: str
    read_only: bool = False

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class Function:
    """A declared or built-in function; equality is identity"""
    name: str
    param_count: int
    user_defined: bool = False

    def __str__(self) -> str:
        return self.name


# ============================================================================
# DECORATED TREE
# ============================================================================

@dataclass
class Program:
    statements: List[Any] = field(default_factory=list)


@dataclass
class VariableDeclaration:
    variable: Variable
    initializer: Any


@dataclass
class FunctionDeclaration:
    fun: Function
    params: List[Variable]
    body: Any


@dataclass
class Assignment:
    target: Variable
    source: Any


@dataclass
class PrintStatement:
    argument: Any


@dataclass
class WhileStatement:
    test: Any
    body: List[Any] = field(default_factory=list)


@dataclass
class Conditional:
    test: Any
    consequent: Any
    alternate: Any


@dataclass
class BinaryExpression:
    op: str
    left: Any
    right: Any


@dataclass
class UnaryExpression:
    op: str
    operand: Any


@dataclass
class Call:
    callee: Function
    args: List[Any] = field(default_factory=list)


def is_literal(value: Any) -> bool:
    """Literals are native booleans and numbers"""
    return isinstance(value, (bool, int, float))


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_literal(value: Any) -> str:
    """Render a literal the way it is written in source"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


# ============================================================================
# PRETTY PRINTING
# ============================================================================

def pretty_print_ast(node: Any, indent: int = 0,
                     entity_ids: Optional[Dict[int, int]] = None) -> str:
    """Pretty print a decorated tree.

    Entities are numbered in the order they are first seen, so a variable
    that is declared once and read many times shows the same number
    everywhere. Two trees print identically iff they have the same shape
    and the same sharing of entities.
    """
    if entity_ids is None:
        entity_ids = {}
    pad = "  " * indent

    def entity_label(entity) -> str:
        number = entity_ids.setdefault(id(entity), len(entity_ids) + 1)
        if isinstance(entity, Variable):
            flag = " readonly" if entity.read_only else ""
            return f"Variable {entity.name}{flag} #{number}"
        kind = "user" if entity.user_defined else "intrinsic"
        return f"Function {entity.name}/{entity.param_count} {kind} #{number}"

    def child(value: Any) -> str:
        return pretty_print_ast(value, indent + 1, entity_ids)

    if isinstance(node, (Variable, Function)):
        return f"{pad}{entity_label(node)}\n"
    if is_literal(node):
        return f"{pad}{format_literal(node)}\n"
    if isinstance(node, list):
        return "".join(child(item) for item in node) if node else f"{pad}  (empty)\n"

    if isinstance(node, Program):
        return f"{pad}Program\n" + "".join(child(s) for s in node.statements)
    if isinstance(node, VariableDeclaration):
        return f"{pad}VariableDeclaration\n" + child(node.variable) + child(node.initializer)
    if isinstance(node, FunctionDeclaration):
        result = f"{pad}FunctionDeclaration\n" + child(node.fun)
        result += "".join(child(p) for p in node.params)
        return result + child(node.body)
    if isinstance(node, Assignment):
        return f"{pad}Assignment\n" + child(node.target) + child(node.source)
    if isinstance(node, PrintStatement):
        return f"{pad}PrintStatement\n" + child(node.argument)
    if isinstance(node, WhileStatement):
        return f"{pad}WhileStatement\n" + child(node.test) + f"{pad}  body\n" + \
            pretty_print_ast(node.body, indent + 1, entity_ids)
    if isinstance(node, Conditional):
        return (f"{pad}Conditional\n" + child(node.test) +
                child(node.consequent) + child(node.alternate))
    if isinstance(node, BinaryExpression):
        return f"{pad}BinaryExpression {node.op}\n" + child(node.left) + child(node.right)
    if isinstance(node, UnaryExpression):
        return f"{pad}UnaryExpression {node.op}\n" + child(node.operand)
    if isinstance(node, Call):
        return f"{pad}Call\n" + child(node.callee) + "".join(child(a) for a in node.args)

    raise TypeError(f"Cannot print node of type {type(node).__name__}")
