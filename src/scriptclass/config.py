"""
Compiler Configuration Store.

Settings are resolved from, in increasing precedence, the ``[tool.scriptclass]``
table of the nearest ``pyproject.toml``, the ``SCRIPTCLASS_TARGET_DIRECTORY``
environment variable and explicit overrides.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

TARGET_DIRECTORY_ENV = "SCRIPTCLASS_TARGET_DIRECTORY"


class CompilerConfig(BaseModel):
  """
  Configuration shared by every compilation of a ``ScriptCompiler``.
  """

  target_directory: Optional[Path] = Field(
    None, description="If set, generated sources are also written here. No files are written otherwise."
  )
  class_name_prefix: str = Field("ScriptClass", description="Prefix of generated unit and main class names.")
  source_encoding: str = Field("utf-8", description="Encoding used to read script files.")
  log_generated_source: bool = Field(False, description="If True, rendered source is logged at DEBUG level.")

  @field_validator("class_name_prefix")
  @classmethod
  def validate_prefix(cls, v: str) -> str:
    """
    Ensures generated class names are valid identifiers.

    Args:
        v (str): The configured prefix.

    Returns:
        str: The prefix, stripped.

    Raises:
        ValueError: If the prefix is not an identifier.
    """
    v_clean = v.strip()
    if not v_clean.isidentifier():
      raise ValueError(f"class_name_prefix must be a valid identifier, got '{v}'")
    return v_clean

  @classmethod
  def load(
    cls,
    target_directory: Optional[Path] = None,
    class_name_prefix: Optional[str] = None,
    source_encoding: Optional[str] = None,
    log_generated_source: Optional[bool] = None,
    search_path: Optional[Path] = None,
  ) -> "CompilerConfig":
    """
    Loads configuration from pyproject.toml and the environment, then applies overrides.

    Args:
        target_directory (Optional[Path]): Override for the output directory.
        class_name_prefix (Optional[str]): Override for the unit name prefix.
        source_encoding (Optional[str]): Override for the script file encoding.
        log_generated_source (Optional[bool]): Override for source logging.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        CompilerConfig: The fully resolved configuration object.
    """
    toml_config, toml_dir = _load_toml_settings(search_path or Path.cwd())

    final_target: Optional[Path] = None
    if "target_directory" in toml_config:
      final_target = Path(toml_config["target_directory"])
      if toml_dir and not final_target.is_absolute():
        final_target = (toml_dir / final_target).resolve()
    env_target = os.environ.get(TARGET_DIRECTORY_ENV)
    if env_target:
      final_target = Path(env_target)
    if target_directory is not None:
      final_target = target_directory

    values: Dict[str, Any] = {"target_directory": final_target}
    for key, override in (
      ("class_name_prefix", class_name_prefix),
      ("source_encoding", source_encoding),
      ("log_generated_source", log_generated_source),
    ):
      if override is not None:
        values[key] = override
      elif key in toml_config:
        values[key] = toml_config[key]

    return cls(**values)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Recursively searches parents for 'pyproject.toml' and extracts config.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory definition was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}, None

      return data.get("tool", {}).get("scriptclass", {}), parent

  return {}, None
