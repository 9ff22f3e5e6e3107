"""
Tern Interpreter - tree-walking evaluator
One shared, mutable environment per program run (dynamic scoping)
Builtins receive their argument nodes unevaluated and decide themselves
what to evaluate, so if/do/set/let are ordinary registry entries
"""

from typing import Dict, List, Optional, Callable, Tuple
import sys

from error_handling import (
  make_result,
  make_error_result,
  is_error,
  TernInternalError,
  TernRuntimeError,
  EMPTY_CALL,
  INVALID_HEAD,
  UNKNOWN_FUNCTION,
  DEPTH_ERROR,
)
from utilities import (
  arity_error,
  expect_nargs,
  expect_node_type,
  is_node_type,
  make_builtin_function,
  make_user_function,
  node_copy,
  node_type_name,
  type_mismatch_error,
)
from parsing import create_parser
from stdlib import (
  tern_print,
  tern_streq,
  ARITHMETIC_OPERATIONS,
  COMPARISON_OPERATIONS,
)


DEFAULT_MAX_DEPTH = 150

# Python frames one nesting level can take, in the reader or in run
FRAMES_PER_LEVEL = 25


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_execution_context(debug: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> Dict:
  """Create the per-run configuration and bookkeeping"""
  if max_depth < 1:
    raise ValueError(f"max_depth must be positive, got {max_depth}")
  return {
      'debug': debug,
      'max_depth': max_depth,
      'depth': 0
  }


def ensure_recursion_limit(max_depth: int) -> None:
  """Raise the Python recursion limit so max_depth levels can be read and run"""
  frames_needed = max_depth * FRAMES_PER_LEVEL + 200
  if frames_needed > sys.getrecursionlimit():
    sys.setrecursionlimit(frames_needed)


def make_builtin(name: str, func: Callable, enabled: bool = True) -> Dict:
  """Create a builtin registry entry"""
  return {
      'name': name,
      'enabled': enabled,
      'func': func
  }


# ============================================================================
# ENVIRONMENT
# ============================================================================

def create_environment(debug: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> Dict:
  """Create the single environment shared by every frame of a run"""
  context = make_execution_context(debug, max_depth)
  ensure_recursion_limit(max_depth)
  return {
      'variables': {},
      'builtins': {name: entry['enabled'] for name, entry in BUILTINS.items()},
      'context': context
  }


def destroy_environment(env: Dict) -> None:
  """Release every binding; the environment is unusable afterwards"""
  env['variables'].clear()
  env['builtins'].clear()


def env_lookup(env: Dict, name: str) -> Optional[Dict]:
  """Stored node for name, None when unbound"""
  return env['variables'].get(name)


def env_bind(env: Dict, name: str, node: Optional[Dict]) -> None:
  """Bind an owned node; binding an absent value deletes the name"""
  if node is None:
    env_remove(env, name)
  else:
    env['variables'][name] = node


def env_remove(env: Dict, name: str) -> None:
  env['variables'].pop(name, None)


# ============================================================================
# EVALUATOR
# ============================================================================

def run(env: Dict, node: Dict) -> Dict:
  """
  Evaluate one node and return its result.

  Every call returns exactly one result: a value (possibly absent) or an
  error. Errors from nested evaluation come back unchanged.
  """
  if env is None:
    raise TernInternalError("run called without an environment")
  if node is None:
    raise TernInternalError("run called without a node")

  context = env['context']
  if context['debug']:
    print(f"Evaluating: {node.get('type')}", file=sys.stderr)

  if context['depth'] >= context['max_depth']:
    return make_error_result(
        DEPTH_ERROR, f"maximum evaluation depth ({context['max_depth']}) exceeded")

  context['depth'] += 1
  try:
    return eval_node(env, node)
  finally:
    context['depth'] -= 1


def eval_node(env: Dict, node: Dict) -> Dict:
  """Dispatch on the node tag"""
  node_type = node.get('type')

  if node_type in ("NUMBER", "STRING", "QUOTED"):
    return make_result(node_copy(node))
  elif node_type == "VARIABLE":
    return eval_variable(env, node)
  elif node_type == "EXPRESSION":
    return eval_expression(env, node)
  elif node_type == "COMMENT":
    return make_result()
  # FUNCTION nodes are values, the reader never places one in a tree
  raise TernInternalError(f"cannot evaluate node of type {node_type}")


def eval_variable(env: Dict, node: Dict) -> Dict:
  """Unbound names evaluate to an absent value, not an error"""
  return make_result(node_copy(env_lookup(env, node['value'])))


def eval_expression(env: Dict, node: Dict) -> Dict:
  """Evaluate a call; arguments are handed over unevaluated"""
  children = node['value']
  if not children:
    return make_error_result(EMPTY_CALL, "Non-quoted expression can't be empty")

  head = children[0]
  if not is_node_type(head, "VARIABLE"):
    return make_error_result(
        INVALID_HEAD, f"Cannot call non-variable (type {node_type_name(head)})")

  return func_call(env, head['value'], children[1:])


def eval_args(env: Dict, args: List[Dict]) -> Tuple[List[Optional[Dict]], Optional[Dict]]:
  """
  Evaluate argument nodes left to right, stopping at the first error.

  Returns:
    (values, None) on success, (partial values, error result) otherwise
  """
  values = []
  for arg in args:
    result = run(env, arg)
    if is_error(result):
      return values, result
    values.append(result['node'])
  return values, None


# ============================================================================
# FUNCTION CALLS
# ============================================================================

def func_call(env: Dict, name: str, args: List[Dict]) -> Dict:
  """Resolve name against the builtins, then the environment, and call it"""
  builtin = get_builtin(env, name)
  if builtin is not None:
    return builtin['func'](env, name, args)

  value = env_lookup(env, name)
  if value is None:
    return make_error_result(UNKNOWN_FUNCTION, f"no function '{name}' found")
  if value['type'] != "FUNCTION":
    return make_error_result(
        UNKNOWN_FUNCTION, f"'{name}' is not a function (type {value['type']})")

  return run_function(env, value['value'], name, args)


def run_function(env: Dict, fn: Dict, name: str, args: List[Dict]) -> Dict:
  """
  Call a function value.

  Parameters are bound in the shared environment one by one, each
  argument evaluated after the previous parameter is bound. All of them
  are removed again on the way out, error or not; a previous binding of
  the same name is lost.
  """
  if fn['builtin']:
    return fn['func'](env, fn['name'], args)

  params = [param['value'] for param in fn['params']]
  if len(args) < len(params):
    return arity_error(len(args), f">= {len(params)}", name)

  try:
    for param, arg in zip(params, args):
      result = run(env, arg)
      if is_error(result):
        return result
      env_bind(env, param, result['node'])

    return run(env, fn['body'])
  finally:
    for param in params:
      env_remove(env, param)


# ============================================================================
# BUILTINS
# ============================================================================

def builtin_print(env: Dict, name: str, args: List[Dict]) -> Dict:
  """(print a b ...) writes the values on one line"""
  err = expect_nargs(args, 1)
  if err is not None:
    return err

  values, err = eval_args(env, args)
  if err is not None:
    return err
  return tern_print(values)


def builtin_arith(env: Dict, name: str, args: List[Dict]) -> Dict:
  """(+ a b), (- a b), (* a b), (/ a b) on numbers"""
  err = expect_nargs(args, 2, 2)
  if err is not None:
    return err

  values, err = eval_args(env, args)
  if err is not None:
    return err
  return ARITHMETIC_OPERATIONS[name](values[0], values[1])


def builtin_comp(env: Dict, name: str, args: List[Dict]) -> Dict:
  """(eq a b), (neq a b), (lt a b), (gt a b) yield 1 or 0"""
  err = expect_nargs(args, 2, 2)
  if err is not None:
    return err

  values, err = eval_args(env, args)
  if err is not None:
    return err
  return COMPARISON_OPERATIONS[name](values[0], values[1])


def builtin_do(env: Dict, name: str, args: List[Dict]) -> Dict:
  """(do a b ...) evaluates in order and returns the last result"""
  err = expect_nargs(args, 1)
  if err is not None:
    return err

  result = make_result()
  for arg in args:
    result = run(env, arg)
    if is_error(result):
      return result
  return result


def builtin_if(env: Dict, name: str, args: List[Dict]) -> Dict:
  """(if cond then [else]) evaluates the condition and one branch"""
  err = expect_nargs(args, 2, 3)
  if err is not None:
    return err

  cond = run(env, args[0])
  if is_error(cond):
    return cond
  if not is_node_type(cond['node'], "NUMBER"):
    return type_mismatch_error("if", "condition", "NUMBER", cond['node'])

  if cond['node']['value']:
    return run(env, args[1])
  elif len(args) == 3:
    return run(env, args[2])
  return make_result()


def builtin_set(env: Dict, name: str, args: List[Dict]) -> Dict:
  """(set name value) binds name; an absent value deletes it"""
  err = expect_nargs(args, 2, 2) or expect_node_type("set", 0, args[0], "VARIABLE")
  if err is not None:
    return err

  result = run(env, args[1])
  if is_error(result):
    return result

  env_bind(env, args[0]['value'], result['node'])
  return make_result()


def builtin_let(env: Dict, name: str, args: List[Dict]) -> Dict:
  """(let name value body ...) binds name for the body, then removes it"""
  err = expect_nargs(args, 3)
  if err is not None:
    return err

  bound = builtin_set(env, "set", args[:2])
  if is_error(bound):
    return bound

  try:
    result = make_result()
    for arg in args[2:]:
      result = run(env, arg)
      if is_error(result):
        return result
    return result
  finally:
    env_remove(env, args[0]['value'])


def builtin_streq(env: Dict, name: str, args: List[Dict]) -> Dict:
  """(streq a b) compares two strings by content"""
  err = expect_nargs(args, 2, 2)
  if err is not None:
    return err

  values, err = eval_args(env, args)
  if err is not None:
    return err
  return tern_streq(values[0], values[1])


def builtin_fn(env: Dict, name: str, args: List[Dict]) -> Dict:
  """(fn (params ...) body) builds a user-defined function value"""
  err = expect_nargs(args, 2, 2) or expect_node_type("fn", 0, args[0], "EXPRESSION")
  if err is not None:
    return err

  params = args[0]['value']
  for i, param in enumerate(params):
    if not is_node_type(param, "VARIABLE"):
      return type_mismatch_error("fn", f"parameter {i}", "VARIABLE", param)

  return make_result(make_user_function(
      [node_copy(param) for param in params], node_copy(args[1])))


# ============================================================================
# BUILT-IN REGISTRY
# ============================================================================

BUILTINS: Dict[str, Dict] = {
    "print": make_builtin("print", builtin_print),

    # Arithmetic
    "+": make_builtin("+", builtin_arith),
    "-": make_builtin("-", builtin_arith),
    "/": make_builtin("/", builtin_arith),
    "*": make_builtin("*", builtin_arith),

    # Comparison
    "eq": make_builtin("eq", builtin_comp),
    "neq": make_builtin("neq", builtin_comp),
    "lt": make_builtin("lt", builtin_comp),
    "gt": make_builtin("gt", builtin_comp),

    # Control flow and bindings
    "do": make_builtin("do", builtin_do),
    "if": make_builtin("if", builtin_if),
    "set": make_builtin("set", builtin_set),
    "let": make_builtin("let", builtin_let),
    "fn": make_builtin("fn", builtin_fn),

    "streq": make_builtin("streq", builtin_streq),
}


def get_builtin(env: Dict, name: str) -> Optional[Dict]:
  """Registry entry for name, None if unknown or disabled in env"""
  builtin = BUILTINS.get(name)
  if builtin is None or not env['builtins'].get(name, False):
    return None
  return builtin


def enable_builtin(env: Dict, name: Optional[str], enabled: bool) -> None:
  """Enable or disable a builtin for one environment; None means all"""
  if name is None:
    for builtin_name in BUILTINS:
      env['builtins'][builtin_name] = enabled
    return

  if name not in BUILTINS:
    raise KeyError(f"no builtin named '{name}'")
  env['builtins'][name] = enabled


def list_builtin_functions() -> List[str]:
  """List all available built-in functions"""
  return list(BUILTINS.keys())


# ============================================================================
# EMBEDDING API
# ============================================================================

def define_native_function(env: Dict, name: str, func: Callable) -> None:
  """Bind a host callable as a function value; it is called like a builtin"""
  env_bind(env, name, make_builtin_function(name, func))


def evaluate(env: Dict, node: Dict) -> Dict:
  """Evaluate one top-level node in env"""
  return run(env, node)


def eval_program(env: Dict, nodes: List[Dict]) -> Dict:
  """Evaluate top-level nodes in order, stopping at the first error"""
  result = make_result()
  for node in nodes:
    result = run(env, node)
    if is_error(result):
      return result
  return result


class TernInterpreter:
  """Host-side wrapper owning a parser and one environment"""

  def __init__(self, debug: bool = False, max_depth: int = DEFAULT_MAX_DEPTH):
    self.debug = debug
    self.parser = create_parser(debug)
    self.environment = create_environment(debug, max_depth)

  def evaluate(self, node: Dict) -> Dict:
    return evaluate(self.environment, node)

  def eval_program(self, nodes: List[Dict]) -> Dict:
    return eval_program(self.environment, nodes)

  def run_source(self, text: str, filename: str = "<input>") -> Optional[Dict]:
    """Parse and evaluate source text; raises TernRuntimeError on failure"""
    nodes = self.parser.parse_string(text, filename)
    result = eval_program(self.environment, nodes)
    if is_error(result):
      raise TernRuntimeError.from_result(result)
    return result['node']

  def lookup(self, name: str) -> Optional[Dict]:
    return node_copy(env_lookup(self.environment, name))

  def user_bindings(self) -> Dict[str, Dict]:
    return dict(self.environment['variables'])

  def close(self) -> None:
    destroy_environment(self.environment)


def create_interpreter(debug: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> TernInterpreter:
  """Factory function returning an interpreter"""
  return TernInterpreter(debug=debug, max_depth=max_depth)


def create_debug_interpreter(max_depth: int = DEFAULT_MAX_DEPTH) -> TernInterpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True, max_depth=max_depth)
