"""
Tests for the Plain Class Pass.
"""

from scriptclass import pojo_class
from scriptclass.compiler.frontend import RUN_METHOD, ScriptFrontend
from scriptclass.compiler.source import SourceUnit
from scriptclass.core.tracer import TraceEventType, TraceLogger
from scriptclass.core.types import TOP
from scriptclass.passes import PassContext, PojoClass
from scriptclass.runtime import Script

SCRIPT = """
def double(v):
    return v * 2

def triple(v):
    return v * 3

print("top-level code")
"""


def test_scaffolding_is_removed():
  source = SourceUnit.from_text("Unit", SCRIPT)
  module = ScriptFrontend().parse(source)
  class_def = module.main_class
  assert class_def.get_method(RUN_METHOD) is not None
  assert len(class_def.constructors) == 1

  PojoClass().call(PassContext(source, module, True, TraceLogger()), class_def)

  assert class_def.superclass == TOP
  assert class_def.constructors == []
  assert [m.name for m in class_def.methods] == ["double", "triple"]
  assert all(m.declaring_class is class_def for m in class_def.methods)


def test_plain_class_is_loadable(compiler):
  cls = compiler.compile(SCRIPT).then_apply(pojo_class()).to_class()

  assert not issubclass(cls, Script)
  assert not hasattr(cls, RUN_METHOD)
  assert cls().double(4) == 8
  assert cls().triple(2) == 6


def test_auxiliary_classes_are_untouched(compiler):
  script = SCRIPT + "\nclass Helper:\n    def ping(self):\n        return 'pong'\n"
  compilation = compiler.compile(script).then_apply(pojo_class())
  compilation.to_class()

  helper = compiler.loader.load_class(f"{compilation.unit_name}.Helper")
  assert helper().ping() == "pong"

  skipped = [e for e in compilation.trace_events() if e["type"] == TraceEventType.PASS_SKIPPED]
  assert [e["description"] for e in skipped] == ["PojoClass on Helper"]
