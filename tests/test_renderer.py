"""
Tests for the Source Renderer.

Covers the two canonicalizations applied when the class model is turned back
into Python source: implicit returns and implicit member access.
"""

import libcst as cst

from scriptclass.compiler.frontend import ScriptFrontend
from scriptclass.compiler.renderer import SourceRenderer, returns_value, with_implicit_return
from scriptclass.compiler.source import SourceUnit
from scriptclass.core.nodes import MethodDefinition
from scriptclass.core.types import NONE, type_ref
from scriptclass.enums import Modifier


def _render(text, name="Unit"):
  return SourceRenderer(ScriptFrontend().parse(SourceUnit.from_text(name, text))).code()


def _code(statements):
  return cst.Module(body=statements).code


def test_script_class_layout():
  code = _render("print('hello')")

  assert "from scriptclass.runtime import Script" in code
  assert "class Unit(Script):" in code
  assert "def __init__(self, binding: Union[dict[str, object], None] = None):" in code
  assert "super().__init__(binding)" in code
  assert "def run(self):\n        return print('hello')" in code


def test_trailing_expression_becomes_return():
  body = [cst.parse_statement("x = 1"), cst.parse_statement("x + 1")]

  assert _code(with_implicit_return(body)) == "x = 1\nreturn x + 1\n"
  assert _code(body) == "x = 1\nx + 1\n"


def test_branches_get_returns():
  body = [cst.parse_statement("if flag:\n    1\nelif other:\n    2\nelse:\n    3\n")]

  assert _code(with_implicit_return(body)) == "if flag:\n    return 1\nelif other:\n    return 2\nelse:\n    return 3\n"


def test_yield_and_statements_are_left_alone():
  assert _code(with_implicit_return([cst.parse_statement("yield 1")])) == "yield 1\n"
  assert _code(with_implicit_return([cst.parse_statement("for i in x:\n    i\n")])) == "for i in x:\n    i\n"
  assert with_implicit_return([]) == []


def test_void_methods_do_not_return():
  assert not returns_value(MethodDefinition(name="run", return_type=NONE))
  assert returns_value(MethodDefinition(name="run"))
  assert returns_value(MethodDefinition(name="size", return_type=type_ref(int)))
  assert not returns_value(MethodDefinition(name="__init__"))

  code = _render("def log(v) -> None:\n    print(v)\n")
  assert "return print(v)" not in code


def test_members_are_qualified_with_the_receiver():
  code = _render(
    "class Counter:\n"
    "    count = 0\n"
    "    def bump(this, step):\n"
    "        return count + step + scale(step)\n"
    "    def scale(self, v):\n"
    "        return v * 2\n"
  )

  assert "return this.count + step + this.scale(step)" in code


def test_static_methods_use_the_class_name():
  code = _render(
    "class Util:\n"
    "    @staticmethod\n"
    "    def twice(v):\n"
    "        return v * 2\n"
    "    @staticmethod\n"
    "    def four(v):\n"
    "        return twice(twice(v))\n"
  )

  assert "return Util.twice(Util.twice(v))" in code
  assert code.count("@staticmethod") == 2


def test_local_and_builtin_names_win():
  code = _render(
    "class Sized:\n"
    "    def len(self):\n"
    "        return 1\n"
    "    def size(self, items):\n"
    "        len = 3\n"
    "        return len\n"
    "    def measure(self, items):\n"
    "        return len(items)\n"
  )

  assert "return self.len" not in code
  assert "return len(items)" in code


def test_nested_functions_use_the_outer_receiver():
  code = _render(
    "class Box:\n"
    "    value = 1\n"
    "    def getter(self):\n"
    "        def inner():\n"
    "            return value\n"
    "        return inner\n"
  )

  assert "return self.value" in code


def test_module_methods_become_members_of_the_main_class():
  code = _render("def double(v):\n    return v * 2\n\ndouble(3)\n")

  assert "def double(self, v):" in code
  assert "return self.double(3)" in code


def test_field_declarations():
  module = ScriptFrontend().parse(SourceUnit.from_text("Unit", ""))
  main = module.main_class
  main.add_field("a", Modifier.PRIVATE | Modifier.FINAL, type_ref(int))
  main.add_field("b", Modifier.PRIVATE, type_ref(list, str))
  main.add_field("count", Modifier.STATIC, type_ref(int), cst.Integer("0"))

  code = SourceRenderer(module).code()

  assert "    a: Final[int]\n" in code
  assert "    b: list[str]\n" in code
  assert "    count: ClassVar[int] = 0\n" in code
  assert "from typing import " in code


def test_abstract_methods_and_declared_exceptions():
  module = ScriptFrontend().parse(SourceUnit.from_text("Unit", "def check(v):\n    return v\n"))
  check = module.main_class.get_method("check")
  check.modifiers |= Modifier.ABSTRACT
  check.exceptions = [type_ref(ValueError)]

  code = SourceRenderer(module).code()

  assert "from abc import abstractmethod" in code
  assert "from scriptclass.runtime import" in code
  assert "    @abstractmethod\n    @raises(ValueError)\n    def check(self, v):" in code


def test_shared_bodies_render_independently():
  module = ScriptFrontend().parse(SourceUnit.from_text("Unit", "1 + 2"))
  main = module.main_class
  main.add_method(MethodDefinition(name="apply", body=main.get_method("run").body))

  code = SourceRenderer(module).code()

  assert code.count("return 1 + 2") == 2
