"""
Tests for the Script Class Loader and the Class Backend.
"""

import inspect
import linecache
import logging
import sys

import pytest

from scriptclass.compiler.backend import ClassBackend
from scriptclass.compiler.frontend import ScriptFrontend
from scriptclass.compiler.loader import ScriptClassLoader
from scriptclass.compiler.pipeline import ScriptCompiler
from scriptclass.compiler.source import SourceUnit
from scriptclass.config import CompilerConfig
from scriptclass.core.errors import ClassNotFoundError, CompilationError

SOURCE = "class Greeter:\n    def hello(self):\n        return 'hi'\n\nclass Other:\n    pass\n"


@pytest.fixture
def loader():
  loader = ScriptClassLoader()
  yield loader
  loader.close()


def test_define_module_registers_classes(loader):
  module = loader.define_module("loader_unit_a", SOURCE)

  assert sys.modules["loader_unit_a"] is module
  assert loader.module_names == ["loader_unit_a"]
  assert loader.load_class("loader_unit_a.Greeter")().hello() == "hi"
  assert loader.load_class("loader_unit_a.Other").__module__ == "loader_unit_a"


def test_source_is_available_for_tracebacks(loader):
  module = loader.define_module("loader_unit_b", SOURCE)

  assert linecache.getline("<loader_unit_b>", 2) == "    def hello(self):\n"
  assert "return 'hi'" in inspect.getsource(module.Greeter)


def test_namespace_is_bound_before_execution(loader):
  module = loader.define_module("loader_unit_c", "answer = injected * 2\n", namespace={"injected": 21})

  assert module.answer == 42


def test_missing_class(loader):
  with pytest.raises(ClassNotFoundError, match="Class not found: nowhere.Missing"):
    loader.load_class("nowhere.Missing")


def test_imported_classes_are_not_registered(loader):
  loader.define_module("loader_unit_d", "from fractions import Fraction\n")

  with pytest.raises(ClassNotFoundError):
    loader.load_class("loader_unit_d.Fraction")


def test_failed_execution_unregisters(loader):
  with pytest.raises(ZeroDivisionError):
    loader.define_module("loader_unit_e", "x = 1 / 0\n")

  assert "loader_unit_e" not in sys.modules
  assert "<loader_unit_e>" not in linecache.cache
  assert loader.module_names == []


def test_close_releases_registrations(loader):
  module = loader.define_module("loader_unit_f", SOURCE)
  greeter = module.Greeter

  loader.close()

  assert "loader_unit_f" not in sys.modules
  assert "<loader_unit_f>" not in linecache.cache
  with pytest.raises(ClassNotFoundError):
    loader.load_class("loader_unit_f.Greeter")
  assert greeter().hello() == "hi"


def test_generated_source_is_persisted(tmp_path):
  with ScriptCompiler(CompilerConfig(target_directory=tmp_path / "out")) as compiler:
    compilation = compiler.compile("6 * 7")
    cls = compilation.to_class()

    path = tmp_path / "out" / f"{compilation.unit_name}.py"
    assert path.read_text(encoding="utf-8") == compilation.to_source()
    assert cls().run() == 42
    assert inspect.getsourcefile(cls) == str(path)


def test_nothing_is_persisted_without_target_directory(compiler, tmp_path):
  compiler.compile("1").to_class()

  assert list(tmp_path.iterdir()) == []


def test_load_requires_the_main_class(config):
  module = ScriptFrontend().parse(SourceUnit.from_text("backend_unit_a", "1"))
  backend = ClassBackend(ScriptClassLoader(), config)

  with pytest.raises(CompilationError, match="backend_unit_a does not define its main class"):
    backend.load(module, "value = 1\n")
  backend.loader.close()


def test_emit_renders_and_loads(config):
  module = ScriptFrontend().parse(SourceUnit.from_text("backend_unit_b", "'emitted'"))
  backend = ClassBackend(ScriptClassLoader(), config)

  cls = backend.emit(module)

  assert cls.__name__ == "backend_unit_b"
  assert cls().run() == "emitted"
  backend.loader.close()


def test_generated_source_is_logged(caplog):
  backend = ClassBackend(ScriptClassLoader(), CompilerConfig(target_directory=None, log_generated_source=True))
  module = ScriptFrontend().parse(SourceUnit.from_text("backend_unit_c", "1"))

  with caplog.at_level(logging.DEBUG, logger="scriptclass.compiler.backend"):
    source = backend.render(module)

  assert f"Generated source of backend_unit_c:\n{source}" in caplog.text
