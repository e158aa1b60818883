"""
Configuration file loader for source-pack.

Supports loading defaults from:
- source-pack.toml / .source-pack.toml
- source-pack.yml / .source-pack.yml / source-pack.yaml / .source-pack.yaml

Values may sit at the top level or under a `source-pack` table. CLI flags override
config file values.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .config import DEFAULT_IGNORE_EXTS, OutputFormat, OutputMode, PackConfig, parse_list
from .errors import ConfigError

# Config file search order (first found wins)
CONFIG_FILE_NAMES = [
    "source-pack.toml",
    ".source-pack.toml",
    "source-pack.yml",
    ".source-pack.yml",
    "source-pack.yaml",
    ".source-pack.yaml",
]

SECTION_NAME = "source-pack"

# Alternative spellings accepted in config files
_ALIASES = {
    "ignore_files": "user_ignore_files",
    "ignore_exts": "user_ignore_exts",
    "ignore_extensions": "user_ignore_exts",
}

_BOOL_KEYS = ("compress", "ignore_git", "ignore_build", "ignore_gradle")
_INT_KEYS = ("max_file_bytes", "clone_timeout")


@dataclass
class ProjectConfig:
    """
    Defaults loaded from a config file.

    All fields are optional - CLI flags will override any values set here.
    """

    compress: bool | None = None
    ignore_git: bool | None = None
    ignore_build: bool | None = None
    ignore_gradle: bool | None = None
    format: OutputFormat | None = None
    mode: OutputMode | None = None
    user_ignore_files: frozenset[str] | None = None
    user_ignore_exts: frozenset[str] | None = None
    max_file_bytes: int | None = None
    clone_timeout: int | None = None

    # Source file path (for debugging)
    _config_file: Path | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert the set values to a dictionary with sorted keys."""
        result: dict[str, Any] = {}
        for f in fields(self):
            if f.name.startswith("_"):
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, frozenset):
                value = sorted(value)
            elif isinstance(value, (OutputFormat, OutputMode)):
                value = value.value
            result[f.name] = value

        if self._config_file is not None:
            result["_loaded_from"] = str(self._config_file)

        return dict(sorted(result.items()))


def find_config_file(search_dir: Path) -> Path | None:
    """
    Find a configuration file in a directory.

    Args:
        search_dir: Directory to search (typically the working directory)

    Returns:
        Path to the config file, or None if not found
    """
    for name in CONFIG_FILE_NAMES:
        config_path = search_dir / name
        if config_path.is_file():
            return config_path
    return None


def _unwrap_section(data: Any, path: Path) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    section = data.get(SECTION_NAME)
    if isinstance(section, dict):
        return dict(section)
    return dict(data)


def _parse_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return _unwrap_section(tomllib.load(f), path)


def _parse_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return _unwrap_section(yaml.safe_load(f), path)


def _as_names(value: Any, key: str) -> frozenset[str]:
    """Accept either a comma-separated string or a list of strings."""
    if isinstance(value, str):
        return parse_list(value)
    if isinstance(value, (list, tuple, set)):
        if not all(isinstance(item, str) for item in value):
            raise ConfigError(f"'{key}' must be a list of strings")
        return frozenset(item.strip() for item in value if item.strip())
    raise ConfigError(f"'{key}' must be a string or a list of strings")


def load_config(search_dir: Path, config_path: Path | None = None) -> ProjectConfig:
    """
    Load defaults from a config file.

    Args:
        search_dir: Directory searched when no explicit path is given
        config_path: Explicit path to a config file (optional)

    Returns:
        ProjectConfig with loaded values (unset values remain None).

    Raises:
        ConfigError: If an explicit file is missing, or any file is unparsable or holds
            values of the wrong type.
    """
    if config_path is None:
        config_path = find_config_file(search_dir)
        if config_path is None:
            return ProjectConfig()
    elif not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    try:
        if suffix == ".toml":
            data = _parse_toml(config_path)
        elif suffix in (".yml", ".yaml"):
            data = _parse_yaml(config_path)
        else:
            raise ConfigError(f"Unsupported config file type: {config_path}")
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    config = ProjectConfig(_config_file=config_path)
    for raw_key, value in data.items():
        key = _ALIASES.get(raw_key, raw_key)
        if key in _BOOL_KEYS:
            if not isinstance(value, bool):
                raise ConfigError(f"'{raw_key}' must be true or false")
            setattr(config, key, value)
        elif key in _INT_KEYS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"'{raw_key}' must be an integer")
            setattr(config, key, value)
        elif key == "format":
            try:
                config.format = OutputFormat(str(value).lower())
            except ValueError as e:
                raise ConfigError(f"Unknown format: {value!r}") from e
        elif key == "mode":
            try:
                config.mode = OutputMode(str(value).lower())
            except ValueError as e:
                raise ConfigError(f"Unknown mode: {value!r}") from e
        elif key in ("user_ignore_files", "user_ignore_exts"):
            setattr(config, key, _as_names(value, raw_key))
        # Unknown keys are ignored for forwards compatibility

    return config


def merge_cli_with_config(
    config: ProjectConfig,
    *,
    # CLI arguments (None means not specified on CLI)
    compress: bool | None = None,
    ignore_git: bool | None = None,
    ignore_build: bool | None = None,
    ignore_gradle: bool | None = None,
    output_format: OutputFormat | None = None,
    mode: OutputMode | None = None,
    ignore_files: str | None = None,
    ignore_exts: str | None = None,
    max_file_bytes: int | None = None,
    clone_timeout: int | None = None,
) -> PackConfig:
    """Merge CLI arguments with config file values (CLI wins).

    Args:
        config: Config loaded from file (may have unset values).
        compress: CLI compression toggle (optional).
        ignore_git: CLI `.git` toggle (optional).
        ignore_build: CLI `build` toggle (optional).
        ignore_gradle: CLI Gradle toggle (optional).
        output_format: CLI output format (optional).
        mode: CLI output mode (optional).
        ignore_files: Comma-separated basenames from CLI (optional).
        ignore_exts: Comma-separated extensions from CLI (optional).
        max_file_bytes: CLI size limit for embedded text files (optional).
        clone_timeout: CLI stall timeout for remote fetches (optional).

    Returns:
        The PackConfig for the run.

    Raises:
        ConfigError: If the merged values are invalid.
    """
    # The CLI skips *.log and *.tmp unless told otherwise
    defaults = PackConfig(user_ignore_exts=DEFAULT_IGNORE_EXTS)

    def pick(cli_value: Any, file_value: Any, default: Any) -> Any:
        if cli_value is not None:
            return cli_value
        if file_value is not None:
            return file_value
        return default

    return PackConfig(
        compress=pick(compress, config.compress, defaults.compress),
        ignore_git=pick(ignore_git, config.ignore_git, defaults.ignore_git),
        ignore_build=pick(ignore_build, config.ignore_build, defaults.ignore_build),
        ignore_gradle=pick(ignore_gradle, config.ignore_gradle, defaults.ignore_gradle),
        format=pick(output_format, config.format, defaults.format),
        mode=pick(mode, config.mode, defaults.mode),
        user_ignore_files=pick(
            parse_list(ignore_files) if ignore_files is not None else None,
            config.user_ignore_files,
            defaults.user_ignore_files,
        ),
        user_ignore_exts=pick(
            parse_list(ignore_exts) if ignore_exts is not None else None,
            config.user_ignore_exts,
            defaults.user_ignore_exts,
        ),
        max_file_bytes=pick(max_file_bytes, config.max_file_bytes, defaults.max_file_bytes),
        clone_timeout=pick(clone_timeout, config.clone_timeout, defaults.clone_timeout),
    )
