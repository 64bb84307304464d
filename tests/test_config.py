from __future__ import annotations

import logging
from pathlib import Path

import pytest

from log_groups.config import (
    ConfigError,
    ParserConfig,
    apply_overrides,
    build_config,
    load_config,
    normalize_config,
    validate_config,
)
from log_groups.models import Mark

CUSTOM_MARKERS = """
[tool.log-groups.markers]
start_open = "<<"
start_close = "|>"
end_open = "<|"
end_close = ">>"
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text.lstrip(), encoding="utf-8")
    return path


def test_defaults_without_any_config_file(tmp_path: Path):
    assert load_config(tmp_path) == ParserConfig()


def test_markers_table_sets_literals_by_role(tmp_path: Path):
    _write(tmp_path / "pyproject.toml", CUSTOM_MARKERS)

    config = load_config(tmp_path)

    assert config.markers() == {
        Mark.START_OPEN: "<<",
        Mark.START_CLOSE: "|>",
        Mark.END_OPEN: "<|",
        Mark.END_CLOSE: ">>",
    }


def test_partial_markers_table_keeps_other_defaults(tmp_path: Path):
    _write(
        tmp_path / "pyproject.toml",
        """
[tool.log-groups]
chunk_size = 512

[tool.log-groups.markers]
end_close = "@{done}"
""",
    )

    config = load_config(tmp_path)

    assert config.end_close_marker == "@{done}"
    assert config.start_open_marker == ParserConfig().start_open_marker
    assert config.chunk_size == 512


def test_dotfile_found_from_a_subdirectory(tmp_path: Path):
    _write(tmp_path / ".log-groups.toml", '[log-groups]\non_unterminated = "error"\n')
    logs = tmp_path / "build" / "logs"
    logs.mkdir(parents=True)

    config = load_config(logs)

    assert config.on_unterminated == "raise"


def test_pyproject_wins_over_dotfile_in_the_same_directory(tmp_path: Path):
    _write(tmp_path / "pyproject.toml", "[tool.log-groups]\nchunk_size = 10\n")
    _write(tmp_path / ".log-groups.toml", "[log-groups]\nchunk_size = 20\n")

    assert load_config(tmp_path).chunk_size == 10


def test_nearer_directory_wins_even_with_an_empty_table(tmp_path: Path):
    _write(tmp_path / "pyproject.toml", "[tool.log-groups]\nchunk_size = 10\n")
    _write(tmp_path / "service" / ".log-groups.toml", "[log-groups]\n")

    assert load_config(tmp_path / "service") == ParserConfig()


def test_pyproject_without_our_table_is_ignored(tmp_path: Path):
    _write(tmp_path / "pyproject.toml", "[tool.log-groups]\nchunk_size = 10\n")
    _write(tmp_path / "pkg" / "pyproject.toml", '[project]\nname = "pkg"\n')

    assert load_config(tmp_path / "pkg").chunk_size == 10


def test_dotfile_does_not_read_the_tool_table(tmp_path: Path):
    _write(tmp_path / ".log-groups.toml", "[tool.log-groups]\nchunk_size = 10\n")

    assert load_config(tmp_path) == ParserConfig()


def test_broken_toml_is_skipped_with_a_warning(tmp_path: Path, caplog):
    _write(tmp_path / "pyproject.toml", "[tool.log-groups]\nencoding = 'latin-1'\n")
    _write(tmp_path / "broken" / "pyproject.toml", "[tool.log-groups\n")

    with caplog.at_level(logging.WARNING, logger="log_groups.config"):
        config = load_config(tmp_path / "broken")

    assert config.encoding == "iso8859-1"
    assert "Skipping unreadable config file" in caplog.text


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("[tool.log-groups]\nchunk_size = '64'\n", "`chunk_size` must be an integer"),
        ("[tool.log-groups]\nchunk_size = true\n", "`chunk_size` must be an integer"),
        ("[tool.log-groups]\nencoding = 8\n", "`encoding` must be a string"),
        ("[tool.log-groups]\ncolor = true\n", "unknown setting `color`"),
        ("[tool.log-groups]\nmarkers = 'x'\n", "`markers` must be a table"),
        ("[tool.log-groups.markers]\nbody = '|'\n", "unknown marker `body`"),
        ("[tool.log-groups.markers]\nstart_open = 1\n", "marker `start_open` must be a string"),
        ("[tool]\nlog-groups = 3\n", "must be a table"),
    ],
)
def test_bad_tables_are_rejected_with_the_file_name(tmp_path: Path, body: str, message: str):
    config_file = _write(tmp_path / "pyproject.toml", body)

    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path)

    assert message in str(excinfo.value)
    assert str(config_file.resolve()) in str(excinfo.value)


def test_normalize_resolves_policy_alias_and_codec_name():
    config = normalize_config(ParserConfig(on_unterminated="error", encoding="UTF8"))

    assert config.on_unterminated == "raise"
    assert config.encoding == "utf-8"


@pytest.mark.parametrize(
    "config",
    [
        ParserConfig(start_close_marker=""),
        ParserConfig(end_open_marker=None),  # type: ignore[arg-type]
        ParserConfig(end_open_marker="@{open#StartLogGroup}"),
        ParserConfig(encoding="klingon"),
        ParserConfig(on_unterminated="ignore"),
        ParserConfig(chunk_size=0),
        ParserConfig(chunk_size=2.5),  # type: ignore[arg-type]
        ParserConfig(chunk_size=False),  # type: ignore[arg-type]
    ],
)
def test_validate_rejects_configs_a_parser_cannot_use(config: ParserConfig):
    with pytest.raises(ConfigError):
        validate_config(config)


def test_validate_accepts_the_defaults():
    validate_config(ParserConfig())


def test_overrides_skip_unset_values():
    config = ParserConfig(chunk_size=10)

    assert apply_overrides(config, chunk_size=None, encoding=None) is config
    assert apply_overrides(config, start_open_marker="<<").start_open_marker == "<<"


def test_overrides_reject_unknown_names():
    with pytest.raises(ConfigError, match="colour"):
        apply_overrides(ParserConfig(), colour="red")


def test_build_config_layers_overrides_on_the_file(tmp_path: Path):
    _write(
        tmp_path / "pyproject.toml",
        '[tool.log-groups]\non_unterminated = "raise"\nencoding = "utf-8"\n',
    )

    config = build_config(tmp_path, encoding="latin-1", on_unterminated=None)

    assert config.on_unterminated == "raise"
    assert config.encoding == "iso8859-1"


def test_build_config_reports_invalid_overrides(tmp_path: Path):
    with pytest.raises(ConfigError, match="chunk_size"):
        build_config(tmp_path, chunk_size=-1)
