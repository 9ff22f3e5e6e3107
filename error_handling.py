"""
Tern error model: run results carrying one of six error kinds, the
fatal internal error, and reader errors that point at the source
Results are plain dictionaries; only failures that abort get a class
"""

from typing import List, Optional, Dict
from pyparsing import ParseBaseException
import re


# ============================================================================
# ERROR KINDS
# ============================================================================

EMPTY_CALL = "EmptyCall"
INVALID_HEAD = "InvalidHead"
UNKNOWN_FUNCTION = "UnknownFunction"
ARITY_ERROR = "ArityError"
TYPE_ERROR = "TypeError"
DEPTH_ERROR = "DepthError"

ERROR_KINDS = (
    EMPTY_CALL,
    INVALID_HEAD,
    UNKNOWN_FUNCTION,
    ARITY_ERROR,
    TYPE_ERROR,
    DEPTH_ERROR,
)


# ============================================================================
# RUN RESULTS (Immutable Dictionaries)
# ============================================================================

def make_result(node: Optional[Dict] = None) -> Dict:
    """Create a successful result; node None means an absent value"""
    return {
        'node': node,
        'err': None,
        'kind': None
    }


def make_error_result(kind: str, message: str) -> Dict:
    """Create a failed result carrying a descriptive message"""
    if kind not in ERROR_KINDS:
        raise TernInternalError(f"unknown error kind: {kind}")
    return {
        'node': None,
        'err': message,
        'kind': kind
    }


def is_error(result: Dict) -> bool:
    return result['err'] is not None


def format_run_error(result: Dict) -> str:
    """Format a failed result as a single line for the host"""
    return f"{result['kind']}: {result['err']}"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class TernInternalError(Exception):
    """Broken evaluator invariant: malformed input from a trusted producer.

    Never caught inside the interpreter.
    """
    def __init__(self, message: str):
        super().__init__(f"internal error: {message}")


class TernRuntimeError(Exception):
    """Script-level error surfaced to a host that prefers exceptions"""
    def __init__(self, message: str, kind: Optional[str] = None):
        self.message = message
        self.kind = kind
        super().__init__(message)

    @classmethod
    def from_result(cls, result: Dict) -> "TernRuntimeError":
        return cls(result['err'], result['kind'])

    def __str__(self) -> str:
        if self.kind:
            return f"{self.kind}: {self.message}"
        return self.message


# ============================================================================
# PARSE ERRORS
# ============================================================================

# Characters that end a symbol or number in source text
TOKEN_DELIMITERS = " \t\r\n()'\";"


def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    found: Optional[str] = None,
    excerpt: Optional[str] = None,
    hints: Optional[List[str]] = None
) -> Dict:
    """Reader failure details, kept as a plain dictionary"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'found': found,
        'excerpt': excerpt,
        'hints': hints or []
    }


def format_parse_error(error: Dict, filename: str = "<input>") -> str:
    """
    Render a reader failure as

        prog.tern:3:7: Expected ')'
          found end of input
           3 | (print x
             |         ^
          hint: 1 unclosed '(' - add the missing ')'
    """
    if not error['line']:
        return f"{filename}: {error['message']}"

    lines = [f"{filename}:{error['line']}:{error['column']}: {error['message']}"]
    if error['found']:
        lines.append(f"  found {error['found']}")
    if error['excerpt']:
        lines.append(error['excerpt'])
    lines.extend(f"  hint: {hint}" for hint in error['hints'])
    return '\n'.join(lines)


def source_excerpt(source_text: str, line_num: int, col_num: int) -> str:
    """The offending source line with a caret under the failing column"""
    source_lines = source_text.split('\n')
    if not 1 <= line_num <= len(source_lines):
        return ""

    gutter = f"{line_num:4d} | "
    marker = ' ' * (len(gutter) - 2) + "| " + ' ' * (col_num - 1) + "^"
    return f"{gutter}{source_lines[line_num - 1]}\n{marker}"


def token_at(source_text: str, location: int) -> str:
    """Describe the token the reader stopped at"""
    if location >= len(source_text):
        return "end of input"

    end = location
    while end < len(source_text) and source_text[end] not in TOKEN_DELIMITERS:
        end += 1
    # A delimiter is a token of its own
    return repr(source_text[location:max(end, location + 1)])


def parse_hints(source_text: str, location: int) -> List[str]:
    """Likely causes of a reader failure, judged from the whole source"""
    hints = []

    opened = source_text.count('(')
    closed = source_text.count(')')
    if opened > closed:
        hints.append(f"{opened - closed} unclosed '(' - add the missing ')'")
    elif closed > opened:
        hints.append(f"{closed - opened} unmatched ')' - remove it or add a '('")

    if len(re.findall(r'(?<!\\)"', source_text)) % 2 == 1:
        hints.append("unterminated string literal - close it with '\"'")

    if source_text[:location].rstrip().endswith("'"):
        hints.append("a quote must be followed by a value, e.g. 'x or '(1 2)")

    return hints


def parse_error_from_exception(exc: ParseBaseException, source_text: str) -> Dict:
    """Convert a pyparsing failure into reader error details"""
    return make_parse_error(
        message=exc.msg,
        location=exc.loc,
        line=exc.lineno,
        column=exc.column,
        found=token_at(source_text, exc.loc),
        excerpt=source_excerpt(source_text, exc.lineno, exc.column),
        hints=parse_hints(source_text, exc.loc)
    )


class TernParseError(Exception):
    """Reader error pointing at the failing source position"""
    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 found: Optional[str] = None, excerpt: Optional[str] = None,
                 hints: Optional[List[str]] = None, filename: str = "<input>"):
        self.error = make_parse_error(message, location, line, column, found, excerpt, hints)
        self.filename = filename
        super().__init__(message)

    @classmethod
    def from_parse_exception(cls, exc: ParseBaseException, source_text: str,
                             filename: str = "<input>") -> "TernParseError":
        return cls(filename=filename, **parse_error_from_exception(exc, source_text))

    @property
    def line(self) -> int:
        return self.error['line']

    @property
    def column(self) -> int:
        return self.error['column']

    @property
    def excerpt(self) -> Optional[str]:
        return self.error['excerpt']

    @property
    def hints(self) -> List[str]:
        return self.error['hints']

    def __str__(self) -> str:
        return format_parse_error(self.error, self.filename)
