"""
Parses log group marks out of a captured stream.
Text outside groups is written to stdout; the group tree can be written as JSON.
"""

from __future__ import annotations

import json
import logging
from functools import partial
from pathlib import Path
from typing import BinaryIO, TextIO

import click
from .config import UNTERMINATED_POLICIES, ConfigError, build_config
from .exceptions import ParseError
from .mapper import GroupTreeBuilder
from .parser import Parser

__all__ = ["cli"]


@click.command()
@click.version_option()
@click.option("--start-open-marker", help="Marker that opens a start mark")
@click.option("--start-close-marker", help="Marker that closes a start mark")
@click.option("--end-open-marker", help="Marker that opens an end mark")
@click.option("--end-close-marker", help="Marker that closes an end mark")
@click.option("--encoding", help="Encoding of the stream")
@click.option(
    "--on-unterminated",
    type=click.Choice(UNTERMINATED_POLICIES),
    help="What to do with groups still open at the end of the stream",
)
@click.option("--chunk-size", type=int, help="Bytes read per chunk")
@click.option(
    "--tree",
    "tree_file",
    type=click.File("w", encoding="utf-8"),
    help="Write the group tree as JSON to this file ('-' for stdout)",
)
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indentation")
@click.option("-v", "--verbose", is_flag=True, help="Log parser activity to stderr")
@click.argument("source", type=click.File("rb"), default="-")
def cli(
    source: BinaryIO,
    start_open_marker: str | None = None,
    start_close_marker: str | None = None,
    end_open_marker: str | None = None,
    end_close_marker: str | None = None,
    encoding: str | None = None,
    on_unterminated: str | None = None,
    chunk_size: int | None = None,
    tree_file: TextIO | None = None,
    indent: int = 2,
    verbose: bool = False,
):
    """
    Entry point for parsing a marked-up stream.

    Args:
        source: Stream to parse; ``-`` reads stdin.
        start_open_marker: Override for the start-open marker.
        start_close_marker: Override for the start-close marker.
        end_open_marker: Override for the end-open marker.
        end_close_marker: Override for the end-close marker.
        encoding: Encoding of the stream.
        on_unterminated: ``flush`` or ``raise`` for groups left open.
        chunk_size: Number of bytes read at a time.
        tree_file: Destination for the JSON group tree, if any.
        indent: JSON indentation for the tree.
        verbose: Enable debug logging on stderr.

    Raises:
        click.BadParameter: If the configuration is invalid.
        click.ClickException: If the stream breaks the group grammar, holds
            invalid JSON marks, or ends inside a group under ``--on-unterminated raise``.

    Examples:
        pytest -s | log-groups --tree report.json
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = build_config(
            Path.cwd(),
            start_open_marker=start_open_marker,
            start_close_marker=start_close_marker,
            end_open_marker=end_open_marker,
            end_close_marker=end_close_marker,
            encoding=encoding,
            on_unterminated=on_unterminated,
            chunk_size=chunk_size,
        )
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error

    stdout = click.get_binary_stream("stdout")
    parser = Parser(sink=stdout.write, config=config)
    builder = GroupTreeBuilder(parser)

    try:
        for chunk in iter(partial(source.read, config.chunk_size), b""):
            parser.feed(chunk)
        parser.close()
    except ParseError as error:
        raise click.ClickException(str(error)) from error
    finally:
        stdout.flush()

    if tree_file is not None:
        json.dump(builder.tree().to_dict(), tree_file, indent=indent)
        tree_file.write("\n")
        tree_file.flush()


if __name__ == "__main__":
    cli()
