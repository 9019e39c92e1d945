"""
Deferred Node Reference.

A pass that generates a method publishes it through a ``DeferredMethodRef``.
Passes registered after it capture the reference at configuration time and
resolve it when they run, so pass ordering mistakes fail immediately instead
of surfacing as a missing node deep inside a later pass.
"""

from typing import Callable, Optional

from scriptclass.core.errors import IllegalStateError
from scriptclass.core.nodes import MethodDefinition

MethodSupplier = Callable[[], MethodDefinition]


class DeferredMethodRef:
  """
  A cell that is either unresolved or holds the published method.

  Instances are callable, so they can be handed to any pass expecting a
  zero-argument method supplier.
  """

  def __init__(self, producer: str) -> None:
    """
    Args:
        producer: Name of the producing pass, used in error messages.
    """
    self._producer = producer
    self._method: Optional[MethodDefinition] = None

  @property
  def is_resolved(self) -> bool:
    return self._method is not None

  def publish(self, method: MethodDefinition) -> None:
    """Stores the produced method. Called by the producing pass only."""
    self._method = method

  def resolve(self) -> MethodDefinition:
    """
    Returns the published method.

    Raises:
        IllegalStateError: If the producing pass has not run yet.
    """
    if self._method is None:
      raise IllegalStateError(f"{self._producer} must be applied before accessing the method it generates")
    return self._method

  def __call__(self) -> MethodDefinition:
    return self.resolve()

  def __repr__(self) -> str:
    state = str(self._method) if self._method is not None else "unresolved"
    return f"DeferredMethodRef({self._producer}: {state})"
