"""
Reader tests
"""

import pytest

from error_handling import TernParseError
from interpreter import DEFAULT_MAX_DEPTH, ensure_recursion_limit
from parsing import create_parser, pretty_print_node
from utilities import (
  make_comment,
  make_expression,
  make_number,
  make_quoted,
  make_string,
  make_variable,
)


class TestAtoms:
  """Numbers, strings and symbols"""

  @pytest.mark.parametrize("text,expected", [
      ("42", 42.0),
      ("-1", -1.0),
      ("+7", 7.0),
      ("2.5", 2.5),
      (".5", 0.5),
      ("1e3", 1000.0),
      ("6.02E-1", 0.602),
  ])
  def test_numbers(self, parser, text, expected):
    assert parser.parse_expression(text) == make_number(expected)

  @pytest.mark.parametrize("text", ["x", "+", "-", "<=", "-x", "1abc", "set!"])
  def test_symbols(self, parser, text):
    assert parser.parse_expression(text) == make_variable(text)

  def test_string(self, parser):
    assert parser.parse_expression('"hello world"') == make_string("hello world")

  def test_string_with_escaped_quote(self, parser):
    assert parser.parse_expression(r'"say \"hi\""') == make_string('say "hi"')

  def test_empty_string(self, parser):
    assert parser.parse_expression('""') == make_string("")

  def test_string_keeps_delimiters(self, parser):
    assert parser.parse_expression('"(a ; b)"') == make_string("(a ; b)")


class TestStructure:
  """Lists, quotes and comments"""

  def test_call(self, parser):
    assert parser.parse_expression("(+ 1 2)") == make_expression([
        make_variable("+"), make_number(1), make_number(2)
    ])

  def test_empty_list(self, parser):
    assert parser.parse_expression("()") == make_expression([])

  def test_nested(self, parser):
    node = parser.parse_expression("(do (print x) (if 1 2))")
    assert node['type'] == "EXPRESSION"
    assert [child['type'] for child in node['value']] == [
        "VARIABLE", "EXPRESSION", "EXPRESSION"
    ]

  def test_adjacent_tokens(self, parser):
    node = parser.parse_expression('(f(g)"s"1)')
    assert node == make_expression([
        make_variable("f"),
        make_expression([make_variable("g")]),
        make_string("s"),
        make_number(1),
    ])

  def test_quote_symbol(self, parser):
    assert parser.parse_expression("'x") == make_quoted(make_variable("x"))

  def test_quote_list(self, parser):
    assert parser.parse_expression("'(1 2)") == make_quoted(
        make_expression([make_number(1), make_number(2)]))

  def test_nested_quote(self, parser):
    assert parser.parse_expression("''x") == make_quoted(make_quoted(make_variable("x")))

  def test_top_level_comment(self, parser):
    nodes = parser.parse_string("; heading\n(+ 1 2)\n")
    assert nodes[0] == make_comment()
    assert nodes[1]['type'] == "EXPRESSION"

  def test_comment_inside_list_is_dropped(self, parser):
    node = parser.parse_expression("(+ 1 ; first\n 2)")
    assert node == make_expression([
        make_variable("+"), make_number(1), make_number(2)
    ])

  def test_program(self, parser):
    nodes = parser.parse_string("(set x 1)\n(print x)\n'done")
    assert [node['type'] for node in nodes] == ["EXPRESSION", "EXPRESSION", "QUOTED"]

  def test_empty_program(self, parser):
    assert parser.parse_string("") == []
    assert parser.parse_string("   \n  ") == []

  def test_nesting_up_to_default_depth(self, parser):
    ensure_recursion_limit(DEFAULT_MAX_DEPTH)
    depth = DEFAULT_MAX_DEPTH
    node = parser.parse_expression("(do " * depth + "1" + ")" * depth)
    for _ in range(depth):
      assert node['type'] == "EXPRESSION"
      node = node['value'][1]
    assert node == make_number(1)

  def test_multiline_string(self, parser):
    nodes = parser.parse_string('(print "a\nb")')
    assert nodes[0]['value'][1] == make_string("a\nb")


class TestParseErrors:
  """Failures become TernParseError pointing at the failing position"""

  def test_unclosed_list(self, parser):
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_string("(+ 1 2")
    error = excinfo.value
    assert (error.line, error.column) == (1, 7)
    assert error.error['found'] == "end of input"
    assert any("unclosed" in hint for hint in error.hints)

  def test_unclosed_list_reported_at_end(self, parser):
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_string("(do\n  (print 1)\n  (print 2)\n")
    assert excinfo.value.line == 4

  def test_unmatched_close(self, parser):
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_string("(+ 1 2))")
    error = excinfo.value
    assert error.column == 8
    assert error.error['found'] == "')'"
    assert any("unmatched" in hint for hint in error.hints)

  def test_unterminated_string(self, parser):
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_string('(print "oops)')
    assert any("unterminated" in hint for hint in excinfo.value.hints)

  def test_escaped_quote_is_not_a_terminator(self, parser):
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_string(r'(print "a \" b)')
    assert any("unterminated" in hint for hint in excinfo.value.hints)

  def test_dangling_quote(self, parser):
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_string("(list ')")
    error = excinfo.value
    assert error.column == 8
    assert any("quote" in hint for hint in error.hints)

  def test_excerpt_and_location_header(self, parser):
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_string("(set x 1)\n(print x))\n")
    error = excinfo.value
    assert error.line == 2
    assert "   2 | (print x))" in error.excerpt
    assert error.excerpt.endswith("^")
    assert str(error).startswith("<input>:2:10: ")

  def test_two_expressions_where_one_expected(self, parser):
    with pytest.raises(TernParseError):
      parser.parse_expression("1 2")

  def test_filename_in_message(self, parser):
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_string("(", filename="broken.tern")
    assert str(excinfo.value).startswith("broken.tern:1:2: ")

  def test_nesting_too_deep_for_reader(self, parser):
    text = "(do " * 5000 + "1" + ")" * 5000
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_string(text, filename="deep.tern")
    assert "nested too deeply" in str(excinfo.value)
    with pytest.raises(TernParseError):
      parser.parse_expression(text)

  def test_missing_file(self, parser, tmp_path):
    with pytest.raises(TernParseError) as excinfo:
      parser.parse_file(str(tmp_path / "nope.tern"))
    assert "File not found" in str(excinfo.value)


class TestParseFile:
  def test_reads_file(self, parser, tmp_path):
    script = tmp_path / "prog.tern"
    script.write_text("; demo\n(print 1)\n", encoding="utf-8")
    nodes = parser.parse_file(str(script))
    assert len(nodes) == 2


def test_pretty_print_node():
  node = create_parser().parse_expression("(f 'x \"s\")")
  assert pretty_print_node(node) == (
      "EXPRESSION\n"
      "  VARIABLE('f')\n"
      "  QUOTED\n"
      "    VARIABLE('x')\n"
      "  STRING('s')\n"
  )
