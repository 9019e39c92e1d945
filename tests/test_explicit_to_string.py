"""
Tests for the Explicit String Conversion Pass.

Verifies the layout ``class Header@<hex id> {field=value, ...}`` followed by
the escaped script text, and the ``<unknown>`` fallback when the script text
cannot be re-read.
"""

import io
from abc import ABC, abstractmethod
from numbers import Number
from typing import Generic, TypeVar

import libcst as cst

from scriptclass import explicit_to_string, fields_from_map, pojo_class, sam_implementation
from scriptclass.compiler.source import SourceUnit
from scriptclass.core.nodes import ClassDefinition, ModuleDefinition
from scriptclass.core.tracer import TraceEventType, TraceLogger
from scriptclass.core.types import TOP, TypeRef, type_ref
from scriptclass.enums import Modifier
from scriptclass.passes import ExplicitToString, PassContext
from scriptclass.passes.explicit_to_string import class_header, escape_source
from scriptclass.runtime import Script

T = TypeVar("T")


class BinaryOperator(ABC, Generic[T]):
  @abstractmethod
  def apply(self, a: T, b: T) -> T:
    ...


def test_fields_and_source_are_described(compiler):
  script = "def total():\n    return a\n"
  compilation = compiler.compile(script).then_apply(
    pojo_class(), fields_from_map({"a": int, "b": str}), explicit_to_string()
  )
  instance = compilation.to_class()({"a": 1, "b": "x"})

  expected = (
    f"class {compilation.unit_name}@{id(instance):x} {{a=1, b=x}}"
    ', compiled from script: "def total():\\n    return a\\n"'
  )
  assert str(instance) == expected


def test_interfaces_appear_in_the_header(compiler):
  compilation = compiler.compile("a + b").then_apply(
    pojo_class(), sam_implementation(BinaryOperator[Number]), explicit_to_string()
  )
  instance = compilation.to_class()()

  assert str(instance) == (
    f"class {compilation.unit_name}(BinaryOperator[Number])@{id(instance):x} {{}}"
    ', compiled from script: "a + b"'
  )


def test_quotes_are_escaped(compiler):
  compilation = compiler.compile('def label():\n    return "hi"\n').then_apply(pojo_class(), explicit_to_string())

  assert str(compilation.to_class()()).endswith('compiled from script: "def label():\\n    return \\"hi\\"\\n"')


def test_stream_source_cannot_be_reread(compiler):
  compilation = compiler.compile_stream(io.StringIO("def one():\n    return 1\n"))
  compilation.then_apply(pojo_class(), explicit_to_string())
  instance = compilation.to_class()()

  assert str(instance).endswith(", compiled from script: <unknown>")
  assert instance.one() == 1
  warnings = [e for e in compilation.trace_events() if e["type"] == TraceEventType.WARNING]
  assert len(warnings) == 1


def test_deleted_file_degrades_to_placeholder(compiler, tmp_path):
  path = tmp_path / "script.py"
  path.write_text("def one():\n    return 1\n", encoding="utf-8")
  compilation = compiler.compile_file(path).then_apply(pojo_class(), explicit_to_string())
  path.unlink()

  assert str(compilation.to_class()()).endswith(", compiled from script: <unknown>")


def test_empty_script_degrades_to_placeholder(compiler):
  compilation = compiler.compile("").then_apply(explicit_to_string())
  instance = compilation.to_class()()

  assert str(instance).endswith(" {}, compiled from script: <unknown>")
  assert not [e for e in compilation.trace_events() if e["type"] == TraceEventType.WARNING]


def test_static_and_synthetic_fields_are_skipped():
  class_def = ClassDefinition(name="Plain")
  class_def.add_field("count", Modifier.STATIC, type_ref(int), cst.Integer("0"))
  class_def.add_field("cache", Modifier.PRIVATE | Modifier.SYNTHETIC, type_ref(dict))
  class_def.add_field("a", Modifier.PRIVATE, type_ref(int))
  module = ModuleDefinition(main_class_name="Plain", classes=[class_def])

  ExplicitToString().call(PassContext(SourceUnit.from_text("Plain", ""), module, True, TraceLogger()), class_def)

  method = class_def.get_method("__str__")
  assert method.return_type == TypeRef(str)
  assert method.parameters == []
  code = cst.Module(body=method.body).code
  assert "str(self.a)" in code
  assert "count" not in code and "cache" not in code
  assert "compiled from script" not in code


def test_helpers():
  assert escape_source('a\n"b"\té') == 'a\\n\\"b\\"\\t\\xe9'
  assert class_header(ClassDefinition(name="A")) == "class A"
  assert class_header(ClassDefinition(name="A", superclass=TypeRef(Script))) == "class A"
  assert class_header(ClassDefinition(name="A", superclass=TOP, interfaces=[type_ref(list, int)])) == "class A(list[int])"
