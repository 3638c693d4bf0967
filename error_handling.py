"""
Error reporting for Calla
Turns pyparsing failures into located errors with a source excerpt and
hints about common mistakes. Classes only for the exceptions themselves.
"""

from typing import Callable, Dict, List, Optional, Tuple
from pyparsing import ParseBaseException
import re


# ============================================================================
# EXCEPTIONS
# ============================================================================

class CallaError(Exception):
    """Base class for every error the Calla toolchain reports to users"""
    pass


class CallaParseError(CallaError):
    """Syntax error with location, what was expected and fix hints"""

    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None,
                 filename: str = "<input>"):
        super().__init__(message)
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = list(expected or [])
        self.got = got
        self.context = context
        self.suggestions = list(suggestions or [])
        self.filename = filename

    def report(self) -> Dict:
        return make_error_report(self.message, self.filename, self.line, self.column,
                                 self.expected, self.got, self.context, self.suggestions)

    def __str__(self) -> str:
        return render_error_report(self.report())


# ============================================================================
# REPORTS
# ============================================================================

def make_error_report(message: str, filename: str, line: int, column: int,
                      expected: Optional[List[str]] = None, got: Optional[str] = None,
                      context: Optional[str] = None,
                      suggestions: Optional[List[str]] = None) -> Dict:
    return {
        'message': message,
        'where': f"{filename}:{line}:{column}",
        'line': line,
        'column': column,
        'expected': tuple(expected or ()),
        'got': got,
        'context': context,
        'suggestions': tuple(suggestions or ()),
    }


def render_error_report(report: Dict) -> str:
    """Render a report as the multi-line text shown to users"""
    parts = [f"Parse error at line {report['line']}, column {report['column']} ({report['where']})",
             f"  {report['message']}"]
    if report['expected']:
        parts.append("  Expected: " + " or ".join(report['expected']))
    if report['got']:
        parts.append(f"  Got: {report['got']}")
    if report['context']:
        parts.append(report['context'])
    parts.extend(f"  Hint: {hint}" for hint in report['suggestions'])
    return "\n".join(parts) + "\n"


# ============================================================================
# SOURCE EXCERPTS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Numbered source lines around line_num with a caret under col_num"""
    lines = source_text.splitlines()
    # An error at end of input can sit on a line past the last newline
    lines += [""] * (line_num - len(lines))
    first = max(1, line_num - context_lines)
    last = min(len(lines), line_num + context_lines)

    excerpt = []
    for number in range(first, last + 1):
        excerpt.append(f"{number:>5} | {lines[number - 1]}")
        if number == line_num:
            excerpt.append(f"{'':>5} | {' ' * max(col_num - 1, 0)}^")
    return "\n".join(excerpt)


def extract_expected(exc: ParseBaseException) -> List[str]:
    """What the grammar wanted at the failure point, from the pyparsing message"""
    match = re.match(r"Expected\s+(.+)", exc.msg or "")
    if not match:
        return ["valid syntax"]
    return [match.group(1).strip()]


def extract_got(source_text: str, loc: int) -> str:
    """The text found at the failure point"""
    rest = source_text[loc:].lstrip(" \t")
    if not rest:
        return "end of input"
    if rest.startswith(("\n", "\r")):
        return "end of line"
    return repr(rest.split()[0][:10])


# ============================================================================
# HINTS
# ============================================================================

HintRule = Tuple[Callable[[str, str, str], bool], str]

# Each rule sees (expected text, got text, source line)
HINT_RULES: List[HintRule] = [
    (lambda expected, got, line: "';'" in expected,
     "Statements other than while loops end with ';'"),
    (lambda expected, got, line: "'{'" in expected,
     "A while loop needs a block: while test { ... }"),
    (lambda expected, got, line: "':'" in expected,
     "A conditional needs both branches: test ? a : b"),
    (lambda expected, got, line: got.startswith("'}") and "'}'" not in expected,
     "Check for an unmatched closing brace"),
    (lambda expected, got, line: re.match(r"\s*(var|const|def|fn|fun)\b", line) is not None,
     "Declare variables with 'let' and functions with 'function'"),
    (lambda expected, got, line: line.count("(") != line.count(")"),
     "Parentheses on this line are unbalanced"),
]


def generate_suggestions(source_text: str, line_num: int, got: str, expected: List[str]) -> List[str]:
    lines = source_text.splitlines()
    line = lines[line_num - 1] if 0 < line_num <= len(lines) else ""
    expected_text = " ".join(expected)
    return [hint for applies, hint in HINT_RULES if applies(expected_text, got, line)]


def enhance_parse_exception_dict(exc: ParseBaseException, source_text: str,
                                 filename: str = "<input>") -> Dict:
    """Build an error report from a pyparsing exception"""
    expected = extract_expected(exc)
    got = extract_got(source_text, exc.loc)
    return make_error_report(
        exc.msg, filename, exc.lineno, exc.column,
        expected=expected,
        got=got,
        context=get_context_lines(source_text, exc.lineno, exc.column),
        suggestions=generate_suggestions(source_text, exc.lineno, got, expected),
    )


def create_parse_error(exc: ParseBaseException, source_text: str, filename: str = "<input>") -> CallaParseError:
    """Build a CallaParseError from a pyparsing exception"""
    report = enhance_parse_exception_dict(exc, source_text, filename)
    return CallaParseError(
        report['message'], exc.loc, report['line'], report['column'],
        expected=list(report['expected']),
        got=report['got'],
        context=report['context'],
        suggestions=list(report['suggestions']),
        filename=filename,
    )
