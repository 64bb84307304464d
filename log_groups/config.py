"""Configuration loading and management."""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
import tomllib

from .models import Mark

logger = logging.getLogger(__name__)

UNTERMINATED_POLICIES = ("flush", "raise")


@dataclass
class ParserConfig:
    """Configuration for parsing log group marks out of a stream.

    Attributes:
        start_open_marker: Literal that opens a group's start mark.
        start_close_marker: Literal that closes a group's start mark.
        end_open_marker: Literal that opens a group's end mark.
        end_close_marker: Literal that closes a group's end mark.
        encoding: Codec used to encode text input and decode captured properties.
        on_unterminated: What closing a stream with open groups does: ``"flush"``
            writes their raw text to the sink, ``"raise"`` does the same and then
            raises `UnterminatedGroupError`. ``"error"`` is accepted as an alias
            for ``"raise"``.
        chunk_size: Number of bytes read per chunk by the command line.

    Examples:
        ParserConfig(on_unterminated="raise", chunk_size=4096)
    """

    # Group marks
    start_open_marker: str = "@{open#StartLogGroup}"
    start_close_marker: str = "@{close#StartLogGroup}"
    end_open_marker: str = "@{open#EndLogGroup}"
    end_close_marker: str = "@{close#EndLogGroup}"

    # Decoding
    encoding: str = "utf-8"

    # Behaviour
    on_unterminated: str = "flush"
    chunk_size: int = 64 * 1024

    def markers(self) -> dict[Mark, str]:
        """Return marker literals keyed by role, in declaration order."""
        return {
            Mark.START_OPEN: self.start_open_marker,
            Mark.START_CLOSE: self.start_close_marker,
            Mark.END_OPEN: self.end_open_marker,
            Mark.END_CLOSE: self.end_close_marker,
        }


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`chunk_size` must be a positive integer")
    """


# Config files checked in each directory, nearest directory first. Within a
# directory pyproject.toml takes precedence.
CONFIG_SOURCES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("pyproject.toml", ("tool", "log-groups")),
    (".log-groups.toml", ("log-groups",)),
)

# Scalar settings accepted in a config table, with the type each must have
_SETTING_TYPES: dict[str, tuple[type, str]] = {
    "encoding": (str, "a string"),
    "on_unterminated": (str, "a string"),
    "chunk_size": (int, "an integer"),
}


def load_config(search_path: Path) -> ParserConfig:
    """Load settings from the nearest directory that configures log-groups.

    Settings live in a ``[tool.log-groups]`` table of `pyproject.toml` or a
    ``[log-groups]`` table of `.log-groups.toml`; marker literals go in a
    nested ``markers`` table keyed by role::

        [tool.log-groups]
        on_unterminated = "raise"

        [tool.log-groups.markers]
        start_open = "<<"
        end_close = ">>"

    The first table found while walking up from `search_path` wins, even if it
    is empty. Files that cannot be read or are not valid TOML are skipped with
    a warning.

    Args:
        search_path: Directory where the lookup starts.

    Returns:
        ParserConfig: Settings from the table found, or the defaults.

    Raises:
        ConfigError: If the table holds an unknown key or a value of the
            wrong type.
    """
    start = search_path.resolve()
    for directory in (start, *start.parents):
        for filename, table_path in CONFIG_SOURCES:
            config_file = directory / filename
            table = _read_table(config_file, table_path)
            if table is not None:
                logger.debug("Using log-groups settings from %s", config_file)
                return normalize_config(_config_from_table(table, config_file))
    return ParserConfig()


def _read_table(config_file: Path, table_path: tuple[str, ...]) -> object | None:
    try:
        with open(config_file, "rb") as stream:
            data: object = tomllib.load(stream)
    except FileNotFoundError:
        return None
    except (OSError, tomllib.TOMLDecodeError) as error:
        logger.warning("Skipping unreadable config file %s: %s", config_file, error)
        return None

    for key in table_path:
        if not isinstance(data, dict) or key not in data:
            return None
        data = data[key]
    return data


def _config_from_table(table: object, config_file: Path) -> ParserConfig:
    if not isinstance(table, dict):
        raise ConfigError(f"{config_file}: log-groups settings must be a table")

    settings = dict(table)
    markers = settings.pop("markers", {})
    if not isinstance(markers, dict):
        raise ConfigError(f"{config_file}: `markers` must be a table")

    values: dict[str, object] = {}
    for key, value in settings.items():
        if key not in _SETTING_TYPES:
            raise ConfigError(f"{config_file}: unknown setting `{key}`")
        expected, description = _SETTING_TYPES[key]
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigError(f"{config_file}: `{key}` must be {description}")
        values[key] = value

    roles = {mark.name.lower(): mark for mark in Mark}
    for role, literal in markers.items():
        if role not in roles:
            raise ConfigError(
                f"{config_file}: unknown marker `{role}`, expected one of {', '.join(roles)}"
            )
        if not isinstance(literal, str):
            raise ConfigError(f"{config_file}: marker `{role}` must be a string")
        values[roles[role].field_name] = literal

    return ParserConfig(**values)


def normalize_config(config: ParserConfig) -> ParserConfig:
    """Resolve the ``"error"`` policy alias and canonicalize the encoding name."""
    on_unterminated = config.on_unterminated
    if on_unterminated == "error":
        on_unterminated = "raise"

    encoding = config.encoding
    if isinstance(encoding, str):
        try:
            encoding = codecs.lookup(encoding).name
        except LookupError:
            pass

    return replace(config, on_unterminated=on_unterminated, encoding=encoding)


def validate_config(config: ParserConfig) -> None:
    """Check that a `ParserConfig` can drive a parser.

    Raises:
        ConfigError: If a marker is empty or duplicated, the encoding is
            unknown, the unterminated-group policy is unsupported, or the chunk
            size is not a positive integer.
    """
    config = normalize_config(config)

    literals = []
    for mark, literal in config.markers().items():
        if not isinstance(literal, str) or not literal:
            raise ConfigError(f"`{mark.field_name}` must be a non-empty string")
        literals.append(literal)
    if len(set(literals)) != len(literals):
        raise ConfigError("group markers must be distinct")

    if not isinstance(config.encoding, str):
        raise ConfigError("`encoding` must be a string")
    try:
        codecs.lookup(config.encoding)
    except LookupError as error:
        raise ConfigError(f"unknown encoding: {config.encoding}") from error

    if config.on_unterminated not in UNTERMINATED_POLICIES:
        raise ConfigError("`on_unterminated` must be one of: flush, raise, error")

    chunk_size = config.chunk_size
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise ConfigError("`chunk_size` must be an integer")
    if chunk_size <= 0:
        raise ConfigError("`chunk_size` must be a positive integer")


def apply_overrides(config: ParserConfig, **overrides: object) -> ParserConfig:
    """Return `config` with every override that is not None applied.

    Raises:
        ConfigError: If an override does not name a `ParserConfig` field.
    """
    known = {field.name for field in fields(ParserConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigError(f"unknown setting(s): {', '.join(unknown)}")

    changes = {key: value for key, value in overrides.items() if value is not None}
    return replace(config, **changes) if changes else config


def build_config(search_path: Path, **overrides: object) -> ParserConfig:
    """Settings for a run: config file, then overrides, then validation.

    Examples:
        config = build_config(Path.cwd(), on_unterminated="raise")
    """
    config = apply_overrides(load_config(search_path), **overrides)
    config = normalize_config(config)
    validate_config(config)
    return config
