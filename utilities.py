"""
Utilities module for the Tern interpreter
Node constructors, copying, type checks and argument validation shared by
the evaluator and the builtins
"""

from typing import Any, Dict, List, Optional, Callable

from error_handling import (
  make_error_result,
  make_result,
  ARITY_ERROR,
  TYPE_ERROR,
)


# ==================== NODE CONSTRUCTORS ====================

def make_node(node_type: str, value: Any) -> Dict:
  """Create a tagged AST node"""
  return {
      'type': node_type,
      'value': value
  }


def make_number(value: float) -> Dict:
  return make_node("NUMBER", float(value))


def make_string(value: str) -> Dict:
  return make_node("STRING", value)


def make_variable(name: str) -> Dict:
  return make_node("VARIABLE", name)


def make_quoted(inner: Dict) -> Dict:
  """Wrap a node so that evaluating it yields the node itself"""
  return make_node("QUOTED", inner)


def make_expression(children: List[Dict]) -> Dict:
  return make_node("EXPRESSION", list(children))


def make_comment() -> Dict:
  return make_node("COMMENT", None)


def make_builtin_function(name: str, func: Callable) -> Dict:
  """Create a function node backed by a native callable"""
  return make_node("FUNCTION", {
      'builtin': True,
      'name': name,
      'func': func
  })


def make_user_function(params: List[Dict], body: Dict) -> Dict:
  """Create a user-defined function node

  Args:
    params: Parameter names as VARIABLE nodes, in call order
    body: The single node evaluated on each call
  """
  return make_node("FUNCTION", {
      'builtin': False,
      'params': list(params),
      'body': body
  })


# ==================== COPYING ====================

def node_copy(node: Optional[Dict]) -> Optional[Dict]:
  """
  Deep copy a node so the receiver owns it independently

  Native callables inside builtin function nodes are shared, everything
  else is duplicated. An absent node stays absent. The walk keeps its own
  stack, so quoted data of any depth is copied without recursion.
  """
  if node is None:
    return None

  root = {}
  pending = [(node, root)]
  while pending:
    source, target = pending.pop()
    target.update(source)
    node_type = source.get('type')
    value = source.get('value')

    if node_type == "QUOTED":
      target['value'] = {}
      pending.append((value, target['value']))
    elif node_type == "EXPRESSION":
      target['value'] = [{} for _ in value]
      pending.extend(zip(value, target['value']))
    elif node_type == "FUNCTION" and not value['builtin']:
      params = [{} for _ in value['params']]
      body = {}
      target['value'] = {'builtin': False, 'params': params, 'body': body}
      pending.extend(zip(value['params'], params))
      pending.append((value['body'], body))
    elif node_type == "FUNCTION":
      target['value'] = dict(value)
  return root


# ==================== TYPE CHECKING UTILITIES ====================

def is_node_type(node: Optional[Dict], expected_type: str) -> bool:
  """Check that node is present and carries the expected tag"""
  return node is not None and node.get('type') == expected_type


def node_type_name(node: Optional[Dict]) -> str:
  """Tag of a node for error messages, 'NIL' for an absent value"""
  if node is None:
    return "NIL"
  return node.get('type', 'UNKNOWN')


# ==================== ERROR RESULT BUILDERS ====================

def type_mismatch_error(
  func_name: str,
  param_name: str,
  expected: str,
  actual: Optional[Dict]
) -> Dict:
  """
  Generate type mismatch error result

  Args:
    func_name: Function name
    param_name: Parameter name
    expected: Expected node tag
    actual: Actual evaluated node (may be absent)

  Returns:
    Error result of kind TypeError
  """
  return make_error_result(
    TYPE_ERROR,
    f"{func_name}: expected {param_name} to be of type {expected}, got {node_type_name(actual)}"
  )


def arity_error(nargs: int, constraint: str, func_name: Optional[str] = None) -> Dict:
  """
  Generate arity mismatch error result

  Args:
    nargs: Number of arguments actually supplied
    constraint: Human readable constraint, e.g. '== 2' or '>= 1'
    func_name: Message prefix, used for user-defined functions

  Returns:
    Error result of kind ArityError
  """
  message = f"expected nargs ({nargs}) to be {constraint}"
  if func_name:
    message = f"{func_name}: {message}"
  return make_error_result(ARITY_ERROR, message)


# ==================== VALIDATION UTILITIES ====================

def expect_nargs(
  args: List[Dict],
  minimum: int,
  maximum: Optional[int] = None
) -> Optional[Dict]:
  """
  Validate the number of raw argument nodes handed to a builtin

  Args:
    args: Unevaluated argument nodes
    minimum: Smallest accepted count
    maximum: Largest accepted count, None for unbounded

  Returns:
    None if the count is acceptable, otherwise an ArityError result
  """
  nargs = len(args)
  if maximum is not None and minimum == maximum:
    if nargs != minimum:
      return arity_error(nargs, f"== {minimum}")
    return None
  if nargs < minimum:
    return arity_error(nargs, f">= {minimum}")
  if maximum is not None and nargs > maximum:
    return arity_error(nargs, f"<= {maximum}")
  return None


def expect_node_type(
  func_name: str,
  index: int,
  node: Optional[Dict],
  expected_type: str
) -> Optional[Dict]:
  """
  Validate the tag of an argument (raw or evaluated)

  Returns:
    None if node has the expected tag, otherwise a TypeError result
  """
  if is_node_type(node, expected_type):
    return None
  return type_mismatch_error(func_name, f"argument {index}", expected_type, node)


# ==================== BINARY OPERATION FACTORIES ====================

def binary_arithmetic_op(
  op: Callable[[float, float], float],
  op_name: str
) -> Callable[[Optional[Dict], Optional[Dict]], Dict]:
  """
  Factory for binary arithmetic operations on evaluated NUMBER nodes

  Args:
    op: Python operator function (e.g., operator.add)
    op_name: Name for error messages

  Returns:
    Function taking two evaluated nodes and returning a result

  Examples:
    tern_sub = binary_arithmetic_op(operator.sub, "-")
    tern_sub(make_number(3), make_number(1)) -> result holding NUMBER 2.0
  """
  def arithmetic(x: Optional[Dict], y: Optional[Dict]) -> Dict:
    err = expect_node_type(op_name, 0, x, "NUMBER") or expect_node_type(op_name, 1, y, "NUMBER")
    if err is not None:
      return err
    return make_result(make_number(op(x['value'], y['value'])))

  return arithmetic


def binary_comparison_op(
  op: Callable[[float, float], bool],
  op_name: str
) -> Callable[[Optional[Dict], Optional[Dict]], Dict]:
  """
  Factory for binary comparison operations on evaluated NUMBER nodes

  The comparison yields NUMBER 1 for true and NUMBER 0 for false.
  """
  def comparison(x: Optional[Dict], y: Optional[Dict]) -> Dict:
    err = expect_node_type(op_name, 0, x, "NUMBER") or expect_node_type(op_name, 1, y, "NUMBER")
    if err is not None:
      return err
    return make_result(make_number(1 if op(x['value'], y['value']) else 0))

  return comparison
