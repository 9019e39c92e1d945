"""
Central Logging and Console Utilities.

Routes the standard `logging` library through `rich` for the command line
tools. Library modules log through ``logging.getLogger(__name__)`` and never
configure handlers themselves; the CLI calls ``configure_logging`` once.

The console is a Proxy so the output destination (stdout or an in-memory
buffer) can be swapped at runtime via `set_console`, which tests use to
capture output.

Attributes:
    console (_ConsoleProxy): A global, stable reference to the active Rich Console.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Custom logging level for Success (higher than INFO, lower than WARNING)
SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

_THEME = Theme(
  {
    "logging.level.success": "green",
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "path": "bold blue",
    "code": "bold magenta",
  }
)


class _ConsoleProxy:
  """
  A Proxy wrapper around `rich.console.Console`.

  All printing operations are forwarded to the 'backend' Console. When the
  backend changes and logging was configured, the `logging` handler is
  re-attached to the new destination.

  Attributes:
      _backend (Console): The active Rich Console instance.
  """

  def __init__(self) -> None:
    self._backend: Console = Console(theme=_THEME)
    self._logging_configured = False

  def set_backend(self, new_console: Console) -> None:
    """
    Injects a new Console backend and updates logging handlers.

    Args:
        new_console (Console): The new Rich Console instance to use.
    """
    self._backend = new_console
    if self._logging_configured:
      self.configure_logging()

  def reset(self) -> None:
    """Resets the proxy to use a fresh standard output console."""
    self.set_backend(Console(theme=_THEME))

  @property
  def backend(self) -> Console:
    return self._backend

  def configure_logging(self, level: int = logging.INFO) -> None:
    """
    Directs the root logger to the current backend console.

    Args:
        level: Minimum level to emit.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
      if isinstance(handler, RichHandler):
        root_logger.removeHandler(handler)

    rich_handler = RichHandler(
      console=self._backend,
      show_time=False,
      omit_repeated_times=False,
      show_path=False,
      markup=True,
      rich_tracebacks=True,
    )
    root_logger.setLevel(level)
    root_logger.addHandler(rich_handler)
    self._logging_configured = True

  def print(self, *args: Any, **kwargs: Any) -> None:
    """Forwards `print` calls to the active backend."""
    self._backend.print(*args, **kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


# Modules import this 'console' object. The underlying implementation
# can be changed via 'set_console'.
console = _ConsoleProxy()


def set_console(new_console: Console) -> None:
  """
  Global helper to inject a specific console instance.

  Args:
      new_console (Console): The configured Rich console to use globally.
  """
  console.set_backend(new_console)


def reset_console() -> None:
  """Global helper to reset logging and console to standard output."""
  console.reset()


def get_console() -> Console:
  """Retrieves the currently active console backend."""
  return console.backend


def configure_logging(verbose: bool = False) -> None:
  """
  Configures rich-backed logging for command line use.

  Args:
      verbose: Emit DEBUG records (e.g. every pass application).
  """
  console.configure_logging(logging.DEBUG if verbose else logging.INFO)


def log_info(msg: str) -> None:
  """Logs an informational message via standard logging."""
  logging.info(f"ℹ️  {msg}", extra={"markup": True})


def log_success(msg: str) -> None:
  """Logs a success message via standard logging."""
  logging.log(SUCCESS_LEVEL_NUM, f"✅ {msg}", extra={"markup": True})


def log_warning(msg: str) -> None:
  """Logs a warning message via standard logging."""
  logging.warning(f"⚠️  {msg}", extra={"markup": True})


def log_error(msg: str) -> None:
  """Logs an error message via standard logging."""
  logging.error(f"❌ {msg}", extra={"markup": True})
