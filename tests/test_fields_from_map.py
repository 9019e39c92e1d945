"""
Tests for the Final Fields From Map Pass.
"""

import pytest

from scriptclass import fields_from_map, pojo_class
from scriptclass.compiler.frontend import ScriptFrontend
from scriptclass.compiler.source import SourceUnit
from scriptclass.core.errors import NarrowingError, TypeCheckError
from scriptclass.core.tracer import TraceLogger
from scriptclass.core.types import TypeRef
from scriptclass.enums import Modifier
from scriptclass.passes import FinalFieldsFromMapParam, PassContext

SCRIPT = "def total():\n    return a + len(b)\n"


def test_fields_and_constructor_are_generated(compiler):
  source = compiler.compile(SCRIPT).then_apply(pojo_class(), fields_from_map({"a": int, "b": str})).to_source()

  assert "a: Final[int]" in source
  assert "b: Final[str]" in source
  assert "def __init__(self, params: Mapping[str, object]):" in source
  assert source.index("self.a = narrow(params.get('a'), int)") < source.index("self.b = narrow(params.get('b'), str)")


def test_constructor_reads_the_map(compiler):
  cls = compiler.compile(SCRIPT).then_apply(pojo_class(), fields_from_map({"a": int, "b": str})).to_class()

  instance = cls({"a": 1, "b": "xy"})
  assert (instance.a, instance.b) == (1, "xy")
  # Free names in methods resolve to the fields
  assert instance.total() == 3


def test_missing_key_fails_at_construction(compiler):
  cls = compiler.compile(SCRIPT).then_apply(pojo_class(), fields_from_map({"a": int, "b": str})).to_class()

  with pytest.raises(NarrowingError, match="Cannot cast None to str"):
    cls({"a": 1})


def test_field_modifiers():
  fields_pass = FinalFieldsFromMapParam({"a": int, "b": str})
  assert fields_pass.field_definitions == {"a": TypeRef(int), "b": TypeRef(str)}
  assert fields_pass.main_class_only


def test_declared_fields_are_private_and_final():
  source = SourceUnit.from_text("Unit", SCRIPT)
  module = ScriptFrontend().parse(source)
  class_def = module.main_class

  FinalFieldsFromMapParam({"a": int, "b": str}).call(PassContext(source, module, True, TraceLogger()), class_def)

  assert [(f.name, f.modifiers, f.type) for f in class_def.fields] == [
    ("a", Modifier.PRIVATE | Modifier.FINAL, TypeRef(int)),
    ("b", Modifier.PRIVATE | Modifier.FINAL, TypeRef(str)),
  ]
  constructor = class_def.constructors[-1]
  assert [p.name for p in constructor.parameters] == ["params", "binding"]
  assert str(constructor.parameters[0]) == "params: Mapping[str, object]"
  assert len(constructor.body) == 3


def test_second_constructor_is_not_deduplicated(compiler):
  compilation = compiler.compile(SCRIPT).then_apply(
    pojo_class(), fields_from_map({"a": int}), fields_from_map({"b": str})
  )

  with pytest.raises(TypeCheckError, match="declares 2 constructors"):
    compilation.to_source()


def test_script_constructor_is_taken_over(compiler):
  compilation = compiler.compile("a + self.binding.get('b', 0)").then_apply(fields_from_map({"a": int}))
  source = compilation.to_source()
  cls = compilation.to_class()

  assert source.count("def __init__(") == 1
  assert "def __init__(self, params: Mapping[str, object], binding" in source
  assert cls({"a": 2}).run() == 2
  assert cls({"a": 2}, {"b": 3}).run() == 5
  assert cls({"a": 2}).binding == {}


def test_second_application_on_script_conflicts(compiler):
  compilation = compiler.compile("print('hi')").then_apply(fields_from_map({"a": int}), fields_from_map({"b": str}))

  with pytest.raises(TypeCheckError) as excinfo:
    compilation.to_source()
  assert excinfo.value.problems == [f"{compilation.unit_name} declares 2 constructors"]
