"""
Tests for the Imports Pass.
"""

import math
from fractions import Fraction

import pytest

from scriptclass import imports, pojo_class, static_imports
from scriptclass.core.errors import InvalidArgumentError, TypeCheckError
from scriptclass.passes import ImportsPass


def test_module_import(compiler):
  compilation = compiler.compile("def root(v):\n    return math.sqrt(v)\n").then_apply(pojo_class(), imports(math))

  assert compilation.to_source().startswith("import math\n")
  assert compilation.to_class()().root(9) == 3.0


def test_class_import(compiler):
  compilation = compiler.compile("def half():\n    return Fraction(1, 2)\n").then_apply(pojo_class(), imports(Fraction))

  assert "from fractions import Fraction" in compilation.to_source()
  assert compilation.to_class()().half() == Fraction(1, 2)


def test_static_member_import(compiler):
  compilation = compiler.compile("def area(r):\n    return pi * r * r\n").then_apply(
    pojo_class(), static_imports(math, "pi")
  )

  assert "from math import pi" in compilation.to_source()
  assert compilation.to_class()().area(1) == math.pi


def test_star_import_names_are_known(compiler):
  compilation = compiler.compile("def root(v):\n    return sqrt(v)\n").then_apply(pojo_class(), static_imports(math))

  assert "from math import *" in compilation.to_source()
  assert compilation.to_class()().root(16) == 4.0


def test_missing_import_fails_type_check(compiler):
  compilation = compiler.compile("def root(v):\n    return sqrt(v)\n").then_apply(pojo_class())

  with pytest.raises(TypeCheckError, match="Unresolved name 'sqrt'"):
    compilation.to_source()


def test_script_imports_are_kept(compiler):
  cls = compiler.compile("import math\n\ndef root(v):\n    return math.sqrt(v)\n").then_apply(pojo_class()).to_class()

  assert cls().root(4) == 2.0


def test_unimportable_objects_rejected():
  with pytest.raises(InvalidArgumentError, match="module level"):
    imports(lambda: None)


def test_static_import_validation():
  with pytest.raises(InvalidArgumentError, match="Expected: module"):
    static_imports("math")
  with pytest.raises(InvalidArgumentError, match="nope"):
    static_imports(math, "pi", "nope")


def test_statements_accumulate():
  imports_pass = ImportsPass().add_imports(math).add_static_imports(math, "pi", "tau")

  assert imports_pass.main_class_only
  assert imports_pass._statements == ["import math", "from math import pi, tau"]
