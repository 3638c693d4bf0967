"""
Test configuration for the Calla test suite
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from semantics import analyze_program


@pytest.fixture
def parser():
  """Provide a fresh parser for each test"""
  return create_parser()


@pytest.fixture
def analyze(parser):
  """Parse and analyze a source string in one step"""
  def run(source):
    return analyze_program(parser.parse_string(source))
  return run
