"""
Error taxonomy of the compilation pipeline.

Configuration problems surface as ``InvalidArgumentError``, structural
mismatches between passes as ``IllegalStateError`` and static type-check
failures as ``TypeCheckError``. All of them derive from ``CompilationError``,
which is also used to wrap unexpected failures such as a generated class that
cannot be found after emission.
"""

from typing import Iterable, List


class CompilationError(RuntimeError):
  """Base class of every error raised by the pipeline itself."""


class InvalidArgumentError(CompilationError, ValueError):
  """A pass or type descriptor was configured with unsupported input."""


class IllegalStateError(CompilationError):
  """A pass found the class definition in a shape it cannot work with."""


class ClassNotFoundError(CompilationError, LookupError):
  """The loader holds no class under the requested qualified name."""


class TypeCheckError(CompilationError):
  """
  Raised by the terminal static type check.

  Attributes:
      problems (List[str]): Every problem found, in discovery order.
  """

  def __init__(self, class_name: str, problems: Iterable[str]) -> None:
    self.class_name = class_name
    self.problems: List[str] = list(problems)
    lines = "\n".join(f"  - {p}" for p in self.problems)
    super().__init__(f"Static type check failed for {class_name}:\n{lines}")


class NarrowingError(TypeError):
  """Raised by generated code when a checked cast does not hold at run time."""
