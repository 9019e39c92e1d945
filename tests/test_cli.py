"""
Tests for the command line interface.

Runs ``main`` in-process with the console captured.
"""

import json
import os
from abc import ABC, abstractmethod
from fractions import Fraction

import pytest

from scriptclass.cli import commands
from scriptclass.cli.__main__ import main
from scriptclass.core.errors import InvalidArgumentError

INTERFACE = f"{__name__}:BinaryOperator"


class BinaryOperator(ABC):
  @abstractmethod
  def apply(self, a, b):
    ...


def test_render_script_class(captured_console):
  assert main(["render", "print('hi')"]) == 0

  output = captured_console.getvalue()
  assert "(Script):" in output
  assert "return print('hi')" in output


def test_render_interface_implementation(captured_console):
  assert main(["render", "x + y", "--pojo", "--sam", INTERFACE, "--names", "x,y"]) == 0

  assert "def apply(self, x, y):\n        return x + y" in captured_console.getvalue()


def test_render_fields_and_to_string(captured_console):
  assert main(["render", "def total():\n    return a\n", "--pojo", "--fields", "a=int", "--to-string"]) == 0

  output = captured_console.getvalue()
  assert "a: Final[int]" in output
  assert "def __str__(self) -> str:" in output


def test_render_script_file(captured_console, tmp_path):
  script = tmp_path / "double.py"
  script.write_text("def double(v):\n    return 2 * v\n", encoding="utf-8")

  assert main(["render", str(script), "--pojo"]) == 0

  assert "def double(self, v):" in captured_console.getvalue()


def test_render_reports_type_check_failures(captured_console):
  assert main(["render", "x + y"]) == 1

  output = captured_console.getvalue()
  assert "Compilation failed" in output
  assert "Unresolved name 'x'" in output


def test_render_reports_syntax_errors(captured_console):
  assert main(["render", "def (:"]) == 1

  assert "Compilation failed" in captured_console.getvalue()


def test_json_trace(captured_console, tmp_path):
  trace = tmp_path / "trace.json"

  assert main(["render", "1", "--json-trace", str(trace)]) == 0

  events = json.loads(trace.read_text(encoding="utf-8"))
  assert events[0]["description"] == "PARSING"
  assert "Trace written to" in captured_console.getvalue()


def test_json_trace_is_written_on_failure(captured_console, tmp_path):
  trace = tmp_path / "trace.json"

  assert main(["render", "missing", "--json-trace", str(trace)]) == 1

  assert trace.exists()


def test_run_calls_the_implementation(captured_console):
  assert main(["run", "x + y", "--sam", INTERFACE, "--names", "x,y", "3", "4"]) == 0

  output = captured_console.getvalue()
  assert "apply returned" in output
  assert output.rstrip().endswith("7")


def test_run_with_builtin_interface(captured_console):
  assert main(["run", "42", "--sam", "collections.abc:Sized"]) == 0

  assert captured_console.getvalue().rstrip().endswith("42")


def test_run_reports_call_errors(captured_console):
  assert main(["run", "x + y", "--sam", INTERFACE, "--names", "x,y", "3"]) == 1

  assert "TypeError" in captured_console.getvalue()


def test_run_arguments_around_options(captured_console):
  assert main(["run", "x - y", "10", "--sam", INTERFACE, "--names", "x,y", "4"]) == 0

  assert captured_console.getvalue().rstrip().endswith("6")


def test_run_rejects_unknown_options(capsys):
  with pytest.raises(SystemExit):
    main(["run", "x + y", "--sam", INTERFACE, "--bogus", "1"])

  assert "unrecognized arguments: --bogus" in capsys.readouterr().err


def test_run_reports_exceptions_of_the_implementation(captured_console):
  assert main(["run", "x / y", "--sam", INTERFACE, "--names", "x,y", "1", "0"]) == 1

  assert "ZeroDivisionError" in captured_console.getvalue()


def test_run_reports_compilation_failures(captured_console):
  assert main(["run", "x + z", "--sam", INTERFACE, "--names", "x,y", "1", "2"]) == 1

  output = captured_console.getvalue()
  assert "Compilation failed" in output
  assert "Unresolved name 'z'" in output


def test_unresolvable_interface(captured_console):
  assert main(["render", "1", "--sam", "nomodule"]) == 1
  assert "Expected: module:Name" in captured_console.getvalue()

  assert main(["run", "1", "--sam", "no_such_module_here:Thing"]) == 1
  assert "Expected: importable object" in captured_console.getvalue()


def test_version(capsys):
  with pytest.raises(SystemExit) as excinfo:
    main(["--version"])

  assert excinfo.value.code == 0
  assert "0.1.0" in capsys.readouterr().out


def test_command_is_required():
  with pytest.raises(SystemExit):
    main([])


def test_field_definitions():
  assert commands.parse_field_definitions(["a=int", " b = fractions:Fraction"]) == {"a": int, "b": Fraction}
  with pytest.raises(InvalidArgumentError, match="name=module:Type"):
    commands.parse_field_definitions(["a"])


def test_arguments_are_literals():
  assert commands.parse_arguments(["3", "'x'", "[1, 2]", "text"]) == [3, "x", [1, 2], "text"]


def test_resolve_dotted_object():
  assert commands.resolve_object("os:path.join") is os.path.join
