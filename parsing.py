"""
Calla Programming Language Parser
pyparsing grammar producing a concrete syntax tree with source spans
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
import re

from pyparsing import (
    Forward, Literal, Optional as PyParsingOptional,
    ParseBaseException, ParserElement, Regex, StringEnd, Suppress, ZeroOrMore,
    DelimitedList, col, lineno, one_of
)

from error_handling import CallaParseError, create_parse_error

# Enable packrat parsing for performance
ParserElement.enable_packrat()


KEYWORDS = ("let", "function", "print", "while", "true", "false")

# Whitespace and comments that pyparsing skips before a token
LEADING_IGNORABLES = re.compile(r"(?:\s|//[^\n]*)*")


def keyword(word: str) -> Regex:
    """A reserved word not followed by an identifier character of any script"""
    return Regex(rf"{word}(?!\w)").set_name(repr(word))


@dataclass(frozen=True)
class SourceSpan:
    """Source location information for preserving CST"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        return f"{self.filename}:{self.start_line}:{self.start_col}"


@dataclass(frozen=True)
class Token:
    """Calla token with source information"""
    type: str
    value: Any
    span: SourceSpan

    def __str__(self) -> str:
        return f"{self.type}({self.value})"


@dataclass(frozen=True)
class CSTNode:
    """Concrete Syntax Tree node preserving all source information"""
    type: str
    value: Any
    children: List['CSTNode'] = field(default_factory=list)
    span: Optional[SourceSpan] = None
    tokens: List[Token] = field(default_factory=list)

    def __str__(self) -> str:
        if self.children:
            children_str = ", ".join(str(child) for child in self.children)
            return f"{self.type}({self.value}, [{children_str}])"
        return f"{self.type}({self.value})"


class CallaGrammar:
    """Calla grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.filename = "<input>"
        self._setup_grammar()

    # ------------------------------------------------------------------
    # Span helpers used by parse actions
    # ------------------------------------------------------------------

    def _start(self, s: str, loc: int) -> int:
        """Parse actions on compound elements see loc before skipped whitespace"""
        return LEADING_IGNORABLES.match(s, loc).end()

    def _span(self, s: str, loc: int, text: str) -> SourceSpan:
        loc = self._start(s, loc)
        end = loc + len(text)
        return SourceSpan(self.filename, lineno(loc, s), col(loc, s),
                          lineno(end, s), col(end, s), text)

    def _span_over(self, s: str, loc: int, last: Any) -> SourceSpan:
        """Span from loc up to the end of the last child node or token"""
        loc = self._start(s, loc)
        start_line, start_col = lineno(loc, s), col(loc, s)
        if last is not None and last.span is not None:
            return SourceSpan(self.filename, start_line, start_col,
                              last.span.end_line, last.span.end_col)
        return SourceSpan(self.filename, start_line, start_col, start_line, start_col)

    def _leaf(self, node_type: str):
        def action(s, loc, t):
            return CSTNode(node_type, t[0], [], self._span(s, loc, t[0]))
        return action

    def _token(self, token_type: str):
        def action(s, loc, t):
            return Token(token_type, t[0], self._span(s, loc, t[0]))
        return action

    def _node(self, node_type: str):
        def action(s, loc, t):
            children = list(t)
            last = children[-1] if children else None
            return CSTNode(node_type, None, children, self._span_over(s, loc, last))
        return action

    def _setup_grammar(self):
        """Setup the Calla grammar"""

        expression = Forward()
        statement = Forward()

        # Keywords
        let_kw = keyword("let")
        function_kw = keyword("function")
        print_kw = keyword("print")
        while_kw = keyword("while")
        reserved = Regex(r"(?:" + "|".join(KEYWORDS) + r")(?!\w)")

        # Literals
        number = Regex(r'\d+(?:\.\d+)?(?:[eE][+-]?\d+)?').set_parse_action(self._leaf("NUMBER"))
        true_lit = keyword("true").set_parse_action(self._leaf("TRUE"))
        false_lit = keyword("false").set_parse_action(self._leaf("FALSE"))

        # Identifiers: a letter (any script) then letters, digits or underscores
        identifier = ~reserved + Regex(r"[^\W\d_]\w*").set_parse_action(self._leaf("IDENTIFIER"))

        # Punctuation kept as tokens where diagnostics point at it
        open_paren = Literal("(").set_parse_action(self._token("DELIMITER"))

        # Calls: f(a, b)
        def make_call(s, loc, t):
            callee, paren, *args = list(t)
            arguments = CSTNode("ARGUMENTS", None, args, paren.span)
            return CSTNode("CALL", None, [callee, arguments],
                           self._span_over(s, loc, args[-1] if args else paren), [paren])

        call = (
            identifier + open_paren + PyParsingOptional(DelimitedList(expression, ",")) + Suppress(")")
        ).set_parse_action(make_call)

        parenthesized = (
            Suppress("(") + expression + Suppress(")")
        ).set_parse_action(self._node("PARENTHESIZED"))

        # Order matters: calls before bare identifiers
        primary = number | true_lit | false_lit | call | identifier | parenthesized

        # Binary operator tokens (longest first where prefixes overlap)
        def op(pattern):
            return pattern.copy().set_parse_action(self._token("OPERATOR"))

        or_op = op(Literal("||"))
        and_op = op(Literal("&&"))
        rel_op = op(one_of("<= < == != >= >"))
        add_op = op(one_of("+ -"))
        mul_op = op(Regex(r'\*(?!\*)|/|%'))
        pow_op = op(Literal("**"))
        unary_op = op(Regex(r'-|!(?!=)'))

        def make_left_binary(s, loc, t):
            """Fold operand (op operand)* into left-associated BINARY nodes"""
            items = list(t)
            result = items[0]
            for i in range(1, len(items), 2):
                operator_token, right = items[i], items[i + 1]
                result = CSTNode("BINARY", operator_token.value, [result, right],
                                 self._span_over(s, loc, right), [operator_token])
            return result

        # Exponentiation is right associative
        exp6 = Forward()
        exp6 <<= (primary + PyParsingOptional(pow_op + exp6)).set_parse_action(make_left_binary)

        def make_unary(s, loc, t):
            operator_token, operand = t[0], t[1]
            return CSTNode("UNARY", operator_token.value, [operand],
                           self._span_over(s, loc, operand), [operator_token])

        unary = Forward()
        unary <<= (unary_op + unary).set_parse_action(make_unary) | exp6

        exp5 = (unary + ZeroOrMore(mul_op + unary)).set_parse_action(make_left_binary)
        exp4 = (exp5 + ZeroOrMore(add_op + exp5)).set_parse_action(make_left_binary)
        exp3 = (exp4 + PyParsingOptional(rel_op + exp4)).set_parse_action(make_left_binary)
        exp2 = (exp3 + ZeroOrMore(and_op + exp3)).set_parse_action(make_left_binary)
        exp1 = (exp2 + ZeroOrMore(or_op + exp2)).set_parse_action(make_left_binary)

        ternary = (
            exp1 + Suppress("?") + exp1 + Suppress(":") + expression
        ).set_parse_action(self._node("TERNARY"))

        expression <<= ternary | exp1

        # Statements
        def make_block_node(s, loc, t):
            # An empty block still needs a node with a span
            return CSTNode("BLOCK", None, list(t), self._span(s, loc, "{"))

        block = (Suppress("{") + ZeroOrMore(statement) + Suppress("}")).set_parse_action(make_block_node)

        variable_declaration = (
            Suppress(let_kw) - identifier + Suppress("=") + expression + Suppress(";")
        ).set_parse_action(self._node("VARDEC"))

        def make_params(s, loc, t):
            return CSTNode("PARAMS", None, list(t), self._span(s, loc, "("))

        params = (
            Suppress("(") + PyParsingOptional(DelimitedList(identifier, ",")) + Suppress(")")
        ).set_parse_action(make_params)

        function_declaration = (
            Suppress(function_kw) - identifier + params + Suppress("=") + expression + Suppress(";")
        ).set_parse_action(self._node("FUNDEC"))

        print_statement = (
            Suppress(print_kw) - expression + Suppress(";")
        ).set_parse_action(self._node("PRINT"))

        while_statement = (
            Suppress(while_kw) - expression + block
        ).set_parse_action(self._node("WHILE"))

        assignment = (
            identifier + Suppress("=") + expression + Suppress(";")
        ).set_parse_action(self._node("ASSIGN"))

        statement <<= (
            variable_declaration |
            function_declaration |
            print_statement |
            while_statement |
            assignment
        )

        program = (ZeroOrMore(statement) + StringEnd()).set_parse_action(self._node("PROGRAM"))

        comment = Regex(r'//[^\n]*')
        program.ignore(comment)

        # Store the main parsers
        self.program = program
        self.statement = statement
        self.block = block
        self.expression = expression
        self.identifier = identifier
        self.number = number

    def parse_program(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a complete Calla program into its PROGRAM node"""
        self.filename = filename
        if self.debug:
            print(f"Parsing {filename} ({len(text)} characters)")
        try:
            result = self.program.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            raise create_parse_error(e, text, filename) from None
        cst = result[0]
        if self.debug:
            print(f"Parsed {len(cst.children)} top-level statements")
        return cst

    def parse_expression(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a single Calla expression"""
        self.filename = filename
        try:
            result = self.expression.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            raise create_parse_error(e, text, filename) from None
        return result[0]


class CallaParser:
    """Main Calla parser wrapping the grammar"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = CallaGrammar(debug)

    def parse_file(self, filepath: str) -> CSTNode:
        """Parse a Calla source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise CallaParseError(f"File not found: {filepath}", filename=filepath)
        except UnicodeDecodeError as e:
            raise CallaParseError(f"Cannot decode file {filepath}: {e}", filename=filepath)
        return self.grammar.parse_program(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse Calla source code from string"""
        return self.grammar.parse_program(text, filename)

    def parse_expression(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a single Calla expression"""
        return self.grammar.parse_expression(text, filename)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> CallaParser:
    """Create a Calla parser"""
    return CallaParser(debug=debug)


def create_debug_parser() -> CallaParser:
    """Create a Calla parser with debug enabled"""
    return CallaParser(debug=True)


# Utility functions for working with CST
def find_nodes_by_type(cst: CSTNode, node_type: str) -> List[CSTNode]:
    """Find all nodes of a specific type in CST"""
    result = []

    def search(node: CSTNode):
        if node.type == node_type:
            result.append(node)
        for child in node.children:
            search(child)

    search(cst)
    return result


def pretty_print_cst(cst: CSTNode, indent: int = 0) -> str:
    """Pretty print a CST node for debugging"""
    result = "  " * indent + f"{cst.type}"
    if cst.value is not None:
        result += f"({repr(cst.value)})"
    if cst.span is not None:
        result += f" @{cst.span.start_line}:{cst.span.start_col}"
    result += "\n"

    for child in cst.children:
        result += pretty_print_cst(child, indent + 1)

    return result


def cst_to_dict(cst: CSTNode) -> Dict[str, Any]:
    """Convert CST to dictionary representation"""
    return {
        "type": cst.type,
        "value": cst.value,
        "span": {
            "filename": cst.span.filename,
            "start_line": cst.span.start_line,
            "start_col": cst.span.start_col,
            "end_line": cst.span.end_line,
            "end_col": cst.span.end_col,
        } if cst.span else None,
        "tokens": [{"type": t.type, "value": t.value} for t in cst.tokens],
        "children": [cst_to_dict(child) for child in cst.children]
    }
