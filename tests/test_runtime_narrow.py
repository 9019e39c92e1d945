"""
Tests for the runtime helpers imported by generated code.
"""

from numbers import Number

import pytest

from scriptclass.core.errors import NarrowingError
from scriptclass.runtime import NoneType, Script, declared_exceptions, narrow, raises


@pytest.mark.parametrize(
  "value, target",
  [
    (1, int),
    (1, float),
    (1.5, complex),
    (2, Number),
    ("a", (int, str)),
    (None, object),
    (None, (int, NoneType)),
    ({"k": 1}, dict),
  ],
)
def test_accepted_values_pass_through(value, target):
  assert narrow(value, target) is value


@pytest.mark.parametrize(
  "value, target",
  [
    ("1", int),
    (True, float),
    (1.5, int),
    ([], dict),
  ],
)
def test_rejected_values_raise(value, target):
  with pytest.raises(NarrowingError, match="Cannot cast"):
    narrow(value, target)


def test_none_only_passes_when_admitted():
  with pytest.raises(NarrowingError) as excinfo:
    narrow(None, str)
  assert str(excinfo.value) == "Cannot cast None to str"

  with pytest.raises(NarrowingError, match=r"Union\[int, float\]"):
    narrow(None, (int, float))


def test_narrowing_error_is_a_type_error():
  assert issubclass(NarrowingError, TypeError)


def test_raises_records_exception_types():
  @raises(ValueError, KeyError)
  def parse(text):
    return int(text)

  assert declared_exceptions(parse) == (ValueError, KeyError)
  assert declared_exceptions(lambda: None) == ()
  assert parse("3") == 3


def test_script_base_class():
  binding = {"x": 1}
  script = Script(binding)
  binding["x"] = 2

  assert script.binding == {"x": 1}
  assert Script().binding == {}
  with pytest.raises(NotImplementedError, match="does not define a script body"):
    script.run()
