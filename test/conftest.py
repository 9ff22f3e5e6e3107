"""
Test configuration for Tern tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from interpreter import create_environment, destroy_environment, eval_program
from parsing import create_parser


@pytest.fixture
def env():
  """Provide a fresh environment for each test"""
  environment = create_environment()
  yield environment
  destroy_environment(environment)


@pytest.fixture
def parser():
  return create_parser()


@pytest.fixture
def run_source(env, parser):
  """Parse source text and evaluate it in the test's environment"""
  def run_text(text):
    return eval_program(env, parser.parse_string(text))
  return run_text
