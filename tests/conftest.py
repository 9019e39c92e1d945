"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- A compiler fixture that never writes files and releases its modules.
- Console capture for CLI and logging tests.
"""

import io
import sys
from pathlib import Path

import pytest
from rich.console import Console

# Add src to path so we can import 'scriptclass' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from scriptclass.compiler.pipeline import ScriptCompiler  # noqa: E402
from scriptclass.config import TARGET_DIRECTORY_ENV, CompilerConfig  # noqa: E402
from scriptclass.utils.console import reset_console, set_console  # noqa: E402


@pytest.fixture(autouse=True)
def no_target_directory_env(monkeypatch):
  """Keeps a developer's SCRIPTCLASS_TARGET_DIRECTORY from leaking into tests."""
  monkeypatch.delenv(TARGET_DIRECTORY_ENV, raising=False)


@pytest.fixture
def config():
  """Settings that keep generated sources in memory."""
  return CompilerConfig(target_directory=None)


@pytest.fixture
def compiler(config):
  """A compiler whose generated modules are unregistered after the test."""
  with ScriptCompiler(config) as instance:
    yield instance


@pytest.fixture
def captured_console():
  """
  Swaps the global console for an in-memory one.

  Yields the backing buffer; read it with ``getvalue()``.
  """
  buffer = io.StringIO()
  set_console(Console(file=buffer, width=200, force_terminal=False, color_system=None))
  yield buffer
  reset_console()
