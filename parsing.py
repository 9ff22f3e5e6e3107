"""
Tern Reader
pyparsing grammar that turns Tern source text into evaluator nodes
"""

from typing import List, Dict, Optional
import sys

from pyparsing import (
    Forward, Regex, QuotedString, Suppress, ZeroOrMore, StringEnd,
    ParseBaseException, ParserElement,
)

from error_handling import TernParseError
from utilities import (
    make_number,
    make_string,
    make_variable,
    make_quoted,
    make_expression,
    make_comment,
)

# Enable packrat parsing for performance
ParserElement.enable_packrat()


def nesting_error(filename: str) -> TernParseError:
    """Reader error for input nested past the Python recursion limit"""
    return TernParseError(
        f"expression nested too deeply to read "
        f"(recursion limit {sys.getrecursionlimit()})",
        filename=filename
    )


class TernGrammar:
    """Tern s-expression grammar using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        """Setup the complete Tern grammar"""

        # Comments run from ';' to the end of the line
        comment = Regex(r";[^\n]*").set_name("comment")

        number = Regex(
            r"[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?(?=[\s()'\";]|$)"
        ).set_name("number").set_parse_action(lambda t: make_number(float(t[0])))

        string_literal = QuotedString(
            '"', esc_char="\\", multiline=True
        ).set_name("string").set_parse_action(lambda t: make_string(t[0]))

        # Anything else that is not whitespace or a delimiter names a variable,
        # operators like + and <= included
        symbol = Regex(r"[^\s()'\";]+").set_name("symbol").set_parse_action(
            lambda t: make_variable(t[0]))

        expression = Forward().set_name("expression")

        quoted = (
            Suppress("'") - expression
        ).set_name("quoted").set_parse_action(lambda t: make_quoted(t[0]))

        # Comments inside a list are dropped rather than becoming arguments.
        # After '(' or a quote, failures are reported where they occur
        # instead of at the start of the top-level form
        list_expr = (
            Suppress("(") - (ZeroOrMore(Suppress(comment) | expression) + Suppress(")"))
        ).set_name("list").set_parse_action(lambda t: make_expression(list(t)))

        expression <<= list_expr | quoted | string_literal | number | symbol

        top_level_comment = comment.copy().set_parse_action(lambda t: make_comment())

        self.comment = comment
        self.number = number
        self.string_literal = string_literal
        self.symbol = symbol
        self.expression = expression
        self.program = ZeroOrMore(top_level_comment | expression) + StringEnd()
        self.single_expression = expression + ZeroOrMore(Suppress(comment)) + StringEnd()

    def parse_program(self, text: str, filename: str = "<input>") -> List[Dict]:
        """Parse a whole program into a list of top-level nodes"""
        try:
            result = self.program.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            raise TernParseError.from_parse_exception(e, text, filename) from e
        except RecursionError as e:
            raise nesting_error(filename) from e

        nodes = list(result)
        if self.debug:
            print(f"Parsed {len(nodes)} top-level forms from {filename}", file=sys.stderr)
        return nodes

    def parse_expression(self, text: str, filename: str = "<input>") -> Dict:
        """Parse exactly one expression"""
        try:
            result = self.single_expression.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            raise TernParseError.from_parse_exception(e, text, filename) from e
        except RecursionError as e:
            raise nesting_error(filename) from e
        return result[0]


class TernParser:
    """Main Tern parser"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = TernGrammar(debug)

    def parse_file(self, filepath: str) -> List[Dict]:
        """Parse a Tern source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise TernParseError(f"File not found: {filepath}", filename=filepath)
        except UnicodeDecodeError as e:
            raise TernParseError(f"Cannot decode file {filepath}: {e}", filename=filepath)
        return self.grammar.parse_program(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> List[Dict]:
        """Parse Tern source code from string"""
        return self.grammar.parse_program(text, filename)

    def parse_expression(self, text: str, filename: str = "<input>") -> Dict:
        """Parse a single Tern expression"""
        return self.grammar.parse_expression(text, filename)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> TernParser:
    """Create a Tern parser"""
    return TernParser(debug=debug)


def create_debug_parser() -> TernParser:
    """Create a Tern parser with debug enabled"""
    return TernParser(debug=True)


def pretty_print_node(node: Optional[Dict], indent: int = 0) -> str:
    """Pretty print a node tree for debugging"""
    prefix = "  " * indent
    if node is None:
        return prefix + "NIL\n"

    node_type = node['type']
    if node_type == "EXPRESSION":
        result = prefix + "EXPRESSION\n"
        for child in node['value']:
            result += pretty_print_node(child, indent + 1)
        return result
    if node_type == "QUOTED":
        return prefix + "QUOTED\n" + pretty_print_node(node['value'], indent + 1)
    if node_type == "COMMENT":
        return prefix + "COMMENT\n"
    if node_type == "FUNCTION":
        return prefix + "FUNCTION\n"
    return prefix + f"{node_type}({node['value']!r})\n"
