"""
Runtime support for generated classes.

Generated code imports its helpers from here: ``narrow`` performs checked
casts of map values, ``raises`` records declared exception types and
``Script`` is the base class of script classes before the POJO pass strips
the scaffolding.
"""

import numbers
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar, Union

from scriptclass.core.errors import NarrowingError

F = TypeVar("F", bound=Callable[..., Any])

NoneType = type(None)


def _accepts_none(targets: Tuple[type, ...]) -> bool:
  return any(t is object or t is NoneType for t in targets)


def narrow(value: Any, target: Union[type, Tuple[type, ...]]) -> Any:
  """
  Checked cast used by generated code.

  Ints are accepted where floats are expected and reals where complex
  numbers are expected. ``None`` only passes when the target admits it.

  Args:
      value: The value read from a map.
      target: Runtime class, or tuple of classes, with generics erased.

  Returns:
      Any: ``value`` unchanged.

  Raises:
      NarrowingError: If the value is not an instance of the target.
  """
  targets = target if isinstance(target, tuple) else (target,)
  if value is None:
    if _accepts_none(targets):
      return value
    raise NarrowingError(f"Cannot cast None to {_display(targets)}")

  if isinstance(value, targets):
    return value
  if float in targets and isinstance(value, numbers.Integral) and not isinstance(value, bool):
    return value
  if complex in targets and isinstance(value, numbers.Real) and not isinstance(value, bool):
    return value

  raise NarrowingError(f"Cannot cast {type(value).__name__} value {value!r} to {_display(targets)}")


def _display(targets: Tuple[type, ...]) -> str:
  names = ["None" if t is NoneType else getattr(t, "__qualname__", repr(t)) for t in targets]
  return names[0] if len(names) == 1 else f"Union[{', '.join(names)}]"


def raises(*exception_types: Type[BaseException]) -> Callable[[F], F]:
  """
  Declares the exceptions a method may raise.

  The types are stored on the function as ``__raises__``.

  Args:
      *exception_types: Exception classes.

  Returns:
      Callable: The decorator.
  """

  def decorate(func: F) -> F:
    func.__raises__ = tuple(exception_types)  # type: ignore[attr-defined]
    return func

  return decorate


def declared_exceptions(func: Callable[..., Any]) -> Tuple[type, ...]:
  """Returns the exception types recorded by ``raises``, if any."""
  return tuple(getattr(func, "__raises__", ()))


class Script:
  """
  Base class of classes generated from scripts.

  The script's top-level code becomes the ``run`` method. Variables passed in
  through the binding are available as ``self.binding``.
  """

  def __init__(self, binding: Optional[Dict[str, Any]] = None) -> None:
    self.binding: Dict[str, Any] = dict(binding or {})

  def run(self) -> Any:
    raise NotImplementedError(f"{type(self).__name__} does not define a script body")


__all__ = ["narrow", "raises", "declared_exceptions", "Script", "NarrowingError"]
