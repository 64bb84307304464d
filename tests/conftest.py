import pytest
from click.testing import CliRunner


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Provides a reusable Click CLI runner."""
    return CliRunner()


@pytest.fixture()
def sink() -> bytearray:
    """Collects the bytes a parser writes outside of groups."""
    return bytearray()
