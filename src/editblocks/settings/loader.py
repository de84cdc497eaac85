from typing import Any, Optional, Union
from os import PathLike
from pathlib import Path
import os
import re

from pydantic import ValidationError
import yaml
import json5  # type: ignore

from .models import ENABLE_AST_MATCHING_ENV, Settings


# Environment placeholder: ${env:NAME}.
# '$${env:NAME}' escapes a literal '${env:NAME}'.
ENV_VAR_PATTERN = re.compile(r"(?<!\$)\$\{env:([A-Za-z_][A-Za-z0-9_]*)\}")


class SettingsError(ValueError):
    """Raised when a settings file cannot be read or validated."""


def _expand_env(obj: Any) -> Any:
    """
    Replace ${env:NAME} placeholders in string values. Unset variables are
    left as written so validation reports them.
    """
    if isinstance(obj, str):

        def repl(m: re.Match) -> str:
            val = os.getenv(m.group(1))
            return m.group(0) if val is None else val

        return ENV_VAR_PATTERN.sub(repl, obj).replace("$${", "${")
    if isinstance(obj, dict):
        return {k: _expand_env(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env(v) for v in obj]
    return obj




def _load_raw_file(path: Path) -> Any:
    ext = path.suffix.lower()
    if ext not in {".yaml", ".yml", ".json5", ".jsonc", ".json"}:
        raise SettingsError(f"Unsupported config file extension: {ext}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SettingsError(f"Failed to read settings file {path}: {e}") from e
    data: Any = None
    try:
        if ext in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        elif ext in {".json5", ".jsonc", ".json"}:
            data = json5.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        raise SettingsError(f"Failed to parse settings file {path}: {e}") from e
    if data is None:
        return {}
    return data


def _apply_env_overrides(settings: Settings) -> Settings:
    flag = os.getenv(ENABLE_AST_MATCHING_ENV)
    if flag is not None:
        settings.matching.enable_structural = flag.strip().lower() == "true"
    return settings


def load_settings(path: Optional[Union[str, PathLike]] = None) -> Settings:
    """
    Load settings from a YAML or JSON5 file. Without a path the defaults are
    used. Environment overrides are applied last in both cases.
    """
    if path is None:
        return _apply_env_overrides(Settings())

    data = _load_raw_file(Path(path))
    if not isinstance(data, dict):
        raise SettingsError("Root configuration must be a mapping/object")

    try:
        settings = Settings.model_validate(_expand_env(data))
    except ValidationError as e:
        raise SettingsError(f"Invalid settings in {path}: {e}") from e
    return _apply_env_overrides(settings)
