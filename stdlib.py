"""
Tern Standard Library
Value-level operations used by the builtins: arithmetic, comparison,
string equality, stringification and printing
Operands are already-evaluated nodes; argument evaluation lives in
interpreter.py
"""

from typing import Dict, List, Optional, IO
import math
import operator
import sys

from error_handling import make_result
from utilities import (
  binary_arithmetic_op,
  binary_comparison_op,
  expect_node_type,
  make_number,
)


# ============================================================================
# STRINGIFICATION
# ============================================================================

def show_number(value: float) -> str:
  """Integral numbers print without a fraction, everything else via repr"""
  if math.isfinite(value) and value == int(value):
    return str(int(value))
  return repr(value)


def tern_show(node: Optional[Dict]) -> str:
  """Convert a node to its display form"""
  if node is None:
    return "nil"

  node_type = node['type']
  if node_type == "NUMBER":
    return show_number(node['value'])
  elif node_type == "STRING":
    return node['value']
  elif node_type == "VARIABLE":
    return node['value']
  elif node_type == "QUOTED":
    return "'" + tern_show(node['value'])
  elif node_type == "EXPRESSION":
    return "(" + " ".join(tern_show(child) for child in node['value']) + ")"
  elif node_type == "COMMENT":
    return ""
  elif node_type == "FUNCTION":
    fn = node['value']
    if fn['builtin']:
      return f"<builtin {fn['name']}>"
    params = " ".join(p['value'] for p in fn['params'])
    return f"<function ({params})>"
  return f"<{node_type}>"


# ============================================================================
# PRINT
# ============================================================================

def tern_print(values: List[Optional[Dict]], stream: Optional[IO[str]] = None) -> Dict:
  """Write values separated by one space and terminated by a newline"""
  if stream is None:
    stream = sys.stdout
  stream.write(" ".join(tern_show(value) for value in values) + "\n")
  return make_result()


# ============================================================================
# ARITHMETIC FUNCTIONS
# ============================================================================

def ieee_div(x: float, y: float) -> float:
  """Division following IEEE 754: dividing by zero gives inf or nan"""
  if y == 0:
    if x == 0 or math.isnan(x):
      return math.nan
    return math.copysign(math.inf, x) * math.copysign(1.0, y)
  return x / y


tern_add = binary_arithmetic_op(operator.add, "+")
tern_sub = binary_arithmetic_op(operator.sub, "-")
tern_mul = binary_arithmetic_op(operator.mul, "*")
tern_div = binary_arithmetic_op(ieee_div, "/")

ARITHMETIC_OPERATIONS = {
    "+": tern_add,
    "-": tern_sub,
    "*": tern_mul,
    "/": tern_div,
}


# ============================================================================
# COMPARISON FUNCTIONS
# ============================================================================

tern_eq = binary_comparison_op(operator.eq, "eq")
tern_neq = binary_comparison_op(operator.ne, "neq")
tern_lt = binary_comparison_op(operator.lt, "lt")
tern_gt = binary_comparison_op(operator.gt, "gt")

COMPARISON_OPERATIONS = {
    "eq": tern_eq,
    "neq": tern_neq,
    "lt": tern_lt,
    "gt": tern_gt,
}


def tern_streq(x: Optional[Dict], y: Optional[Dict]) -> Dict:
  """String equality by content; NUMBER 1 when equal, 0 otherwise"""
  err = expect_node_type("streq", 0, x, "STRING") or expect_node_type("streq", 1, y, "STRING")
  if err is not None:
    return err
  return make_result(make_number(1 if x['value'] == y['value'] else 0))
