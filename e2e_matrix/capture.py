"""Per-execution capture of text written to stdout and stderr.

Output is routed through a context variable, so each asyncio task writes to
the buffer it bound itself and concurrently running tests never see each
other's output.
"""

import io
import sys
from collections.abc import Buffer, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TextIO

_current_buffer: ContextVar[io.StringIO | None] = ContextVar(
    "e2e_matrix_capture_buffer", default=None
)


class RoutingBinaryStream(io.BufferedIOBase):
    """Binary view of a RoutingStream, exposed as its `buffer`.

    Bytes written while a buffer is bound are decoded into it, otherwise they
    go to the binary stream under the fallback.
    """

    def __init__(self, text: "RoutingStream") -> None:
        super().__init__()
        self.text = text

    def writable(self) -> bool:
        return True

    def write(self, b: Buffer) -> int:
        data = bytes(b)
        buffer = _current_buffer.get()
        if buffer is not None:
            buffer.write(data.decode(self.text.encoding, errors="replace"))
            return len(data)

        fallback = self.text.fallback
        binary = getattr(fallback, "buffer", None)
        if binary is None:
            fallback.write(data.decode(self.text.encoding, errors="replace"))
            return len(data)
        # Pending text must reach the binary stream first
        fallback.flush()
        return binary.write(data)

    def flush(self) -> None:
        self.text.flush()


class RoutingStream(io.TextIOBase):
    """Text stream writing to the buffer bound for the current context.

    Falls back to the wrapped stream when nothing is bound.
    """

    def __init__(self, fallback: TextIO) -> None:
        super().__init__()
        self.fallback = fallback
        self._binary = RoutingBinaryStream(self)

    def writable(self) -> bool:
        return True

    def write(self, s: str) -> int:
        buffer = _current_buffer.get()
        if buffer is None:
            return self.fallback.write(s)
        return buffer.write(s)

    def flush(self) -> None:
        if _current_buffer.get() is None and not self.fallback.closed:
            self.fallback.flush()

    def fileno(self) -> int:
        return self.fallback.fileno()

    @property
    def buffer(self) -> RoutingBinaryStream:
        return self._binary

    @property
    def encoding(self) -> str:  # type: ignore[override]
        return getattr(self.fallback, "encoding", None) or "utf-8"


@contextmanager
def routed_output() -> Iterator[None]:
    """Install routing streams as sys.stdout and sys.stderr for the block."""
    original_stdout, original_stderr = sys.stdout, sys.stderr
    sys.stdout = RoutingStream(original_stdout)
    sys.stderr = RoutingStream(original_stderr)
    try:
        yield
    finally:
        sys.stdout, sys.stderr = original_stdout, original_stderr


@contextmanager
def capture_output(buffer: io.StringIO) -> Iterator[io.StringIO]:
    """Bind buffer as the destination of routed output in this context."""
    token = _current_buffer.set(buffer)
    try:
        yield buffer
    finally:
        _current_buffer.reset(token)
