"""
Script Source Units.

A ``SourceUnit`` pairs the generated unit name with the script text and knows
whether the text can be read again later, which the descriptive string
conversion pass uses to embed the original script.
"""

import logging
from pathlib import Path
from typing import IO, Optional

logger = logging.getLogger(__name__)


class SourceUnit:
  """
  The text of one compilation and where it came from.
  """

  def __init__(
    self,
    name: str,
    text: str,
    path: Optional[Path] = None,
    encoding: str = "utf-8",
    reopenable: bool = True,
  ) -> None:
    """
    Args:
        name: Generated unit name (also the main class name).
        text: Script text as read at compilation start.
        path: File the text was read from, if any.
        encoding: Encoding used to re-read ``path``.
        reopenable: False for one-shot streams.
    """
    self.name = name
    self.text = text
    self.path = path
    self.encoding = encoding
    self._reopenable = reopenable

  @classmethod
  def from_text(cls, name: str, text: str) -> "SourceUnit":
    return cls(name, text)

  @classmethod
  def from_file(cls, name: str, path: Path, encoding: str = "utf-8") -> "SourceUnit":
    """Reads a script file. Errors opening it propagate."""
    return cls(name, Path(path).read_text(encoding=encoding), path=Path(path), encoding=encoding)

  @classmethod
  def from_stream(cls, name: str, stream: IO[str]) -> "SourceUnit":
    """Consumes a text stream; the text cannot be re-read afterwards."""
    return cls(name, stream.read(), reopenable=False)

  @property
  def can_reopen(self) -> bool:
    return self._reopenable

  def read_source(self) -> Optional[str]:
    """
    Re-reads the original script text, best effort.

    Returns:
        Optional[str]: The text, or None if it cannot be recovered.
    """
    if not self._reopenable:
      return None
    if self.path is None:
      return self.text
    try:
      return self.path.read_text(encoding=self.encoding)
    except (OSError, UnicodeDecodeError) as e:
      logger.warning("Could not re-read source of %s from %s: %s", self.name, self.path, e)
      return None

  def __repr__(self) -> str:
    origin = str(self.path) if self.path else "<string>"
    return f"SourceUnit({self.name}, {origin})"
