import atexit
import sys

import pytest

from log_groups.binding import StreamBinding, bind_to_stdout, bind_to_stream
from log_groups.config import ParserConfig
from log_groups.constants import GROUP_END_CLOSE
from log_groups.exceptions import UnexpectedTokenError, UnterminatedGroupError
from log_groups.mapper import GroupTreeBuilder
from log_groups.marks import end_group, make_end_group_mark, make_start_group_mark, start_group


class RecordingStream:
    """Minimal text stream that records what reaches its original write."""

    def __init__(self):
        self.written: list[str] = []

    def write(self, text: str) -> int:
        self.written.append(text)
        return len(text)

    @property
    def value(self) -> str:
        return "".join(self.written)


def test_binding_routes_writes_through_parser():
    stream = RecordingStream()
    binding = bind_to_stream(stream)
    builder = GroupTreeBuilder(binding.parser)

    stream.write("visible ")
    start_group({"suite": "io"}, stream=stream)
    stream.write("captured")
    end_group({"success": True}, stream=stream)
    stream.write("visible again")
    binding.close()

    assert stream.value == "visible visible again"
    (snapshot,) = builder.tree().children
    assert snapshot.output == "captured"
    assert snapshot.end_mark == {"mark": "end", "success": True}


def test_close_restores_original_write():
    stream = RecordingStream()
    original = stream.write

    binding = bind_to_stream(stream)
    assert stream.write != original
    binding.close()

    assert stream.write == original
    assert "write" not in vars(stream)
    stream.write(make_start_group_mark())
    assert stream.value == make_start_group_mark()


def test_close_restores_instance_level_write():
    stream = RecordingStream()
    seen = []
    stream.write = seen.append

    binding = bind_to_stream(stream)
    stream.write("text")
    binding.close()

    assert stream.write == seen.append
    assert seen == ["text"]


def test_restores_even_when_close_raises():
    stream = RecordingStream()
    binding = bind_to_stream(stream, ParserConfig(on_unterminated="raise"))
    start_group(stream=stream)

    with pytest.raises(UnterminatedGroupError):
        binding.close()

    assert "write" not in vars(stream)
    assert binding.installed is False
    assert stream.value == make_start_group_mark()


def test_context_manager_closes_binding():
    stream = RecordingStream()

    with bind_to_stream(stream) as binding:
        stream.write("held @{open#Sta")

    assert binding.parser.closed
    assert stream.value == "held @{open#Sta"
    assert "write" not in vars(stream)


def test_grammar_error_propagates_to_writer():
    stream = RecordingStream()
    binding = bind_to_stream(stream)

    with pytest.raises(UnexpectedTokenError):
        stream.write(make_end_group_mark())

    stream.write(make_start_group_mark())
    binding.close()

    assert stream.value == make_end_group_mark() + make_start_group_mark()


def test_multibyte_text_survives_the_byte_sink():
    stream = RecordingStream()

    with StreamBinding(stream) as binding:
        stream.write("naïve ☕ ")
        stream.write(make_start_group_mark() + "é" + make_end_group_mark())
        stream.write("fin")

    assert binding.parser.closed
    assert stream.value == "naïve ☕ fin"


def test_install_twice_is_rejected():
    binding = bind_to_stream(RecordingStream())

    with pytest.raises(RuntimeError):
        binding.install()

    binding.close()


def test_bind_to_stdout_registers_exit_hook(monkeypatch):
    stream = RecordingStream()
    registered = []
    monkeypatch.setattr(sys, "stdout", stream)
    monkeypatch.setattr(atexit, "register", registered.append)

    binding = bind_to_stdout()
    print("hello")

    assert registered == [binding.close]
    binding.close()
    assert stream.value == "hello\n"


def test_fault_inside_a_group_keeps_the_program_output():
    stream = RecordingStream()
    binding = bind_to_stream(stream)
    stream.write("before ")
    stream.write(make_start_group_mark({"step": 1}) + "work in progress\n")

    with pytest.raises(UnexpectedTokenError):
        stream.write(GROUP_END_CLOSE)
    binding.close()

    assert stream.value == (
        "before " + make_start_group_mark({"step": 1}) + "work in progress\n" + GROUP_END_CLOSE
    )
