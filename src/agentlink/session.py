"""Interactive request/response session with a worker."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import IO

import typer
from loguru import logger

from agentlink.errors import DecodeError, HandshakeError, TransportError
from agentlink.protocol import InputMessage, Output, Ready, WorkerError, decode, encode

QUIT_TOKENS = frozenset({"quit", "exit"})
PROMPT = "> "
READY_BANNER = "Agent ready. Type 'quit' or 'exit' to stop.\n"

EXIT_OK = 0
EXIT_TRANSPORT_FAILURE = 1
EXIT_INTERRUPTED = 130


class SessionState(str, Enum):
    STARTING = "starting"
    READY = "ready"
    AWAITING_RESPONSE = "awaiting_response"
    CLOSING = "closing"


class SessionDriver:
    """Drive the handshake and the half-duplex request loop.

    The driver owns the worker's stdout (``reader``) and stdin (``writer``)
    for the whole session and never has more than one request outstanding.
    ``close`` is invoked exactly once when the session ends, whatever the
    reason, including a failed handshake.
    """

    def __init__(
        self,
        reader: IO[str],
        writer: IO[str],
        *,
        user_input: IO[str],
        output: IO[str],
        diagnostics: IO[str],
        close: Callable[[], None] | None = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._user_input = user_input
        self._output = output
        self._diagnostics = diagnostics
        self._close_callback = close
        self._closed = False
        self.state = SessionState.STARTING

    def run(self) -> int:
        """Run the session to completion and return the exit status.

        Raises:
            HandshakeError: If the worker does not start with a ready message.
        """
        try:
            self._handshake()
            return self._loop()
        except KeyboardInterrupt:
            self._diag("")
            return EXIT_INTERRUPTED
        finally:
            self.close()

    def close(self) -> None:
        self.state = SessionState.CLOSING
        if self._closed:
            return
        self._closed = True
        logger.debug("session.close")
        if self._close_callback is not None:
            self._close_callback()

    def _handshake(self) -> None:
        try:
            line = self._read_line()
        except TransportError as exc:
            raise HandshakeError(str(exc)) from exc
        if line is None:
            raise HandshakeError("agent exited before sending ready signal")
        try:
            message = decode(line)
        except DecodeError as exc:
            raise HandshakeError(f"invalid ready message: {exc}") from exc
        if not isinstance(message, Ready):
            raise HandshakeError(f"expected ready, got: {message.kind}")

        logger.info("session.ready")
        self.state = SessionState.READY
        self._diag(READY_BANNER)

    def _loop(self) -> int:
        while True:
            text = self._prompt()
            if text is None or text in QUIT_TOKENS:
                return EXIT_OK
            if not text:
                continue

            try:
                self._send(InputMessage(text=text))
                self.state = SessionState.AWAITING_RESPONSE
                line = self._read_line()
            except TransportError as exc:
                self._error(str(exc))
                return EXIT_TRANSPORT_FAILURE
            if line is None:
                self._error("agent exited unexpectedly")
                return EXIT_TRANSPORT_FAILURE

            self._handle_response(line)
            self.state = SessionState.READY

    def _prompt(self) -> str | None:
        self._diag(PROMPT, nl=False)
        try:
            raw = self._user_input.readline()
        except (OSError, ValueError) as exc:
            self._error(f"reading input: {exc}")
            return None
        if not raw:
            return None
        return raw.strip()

    def _send(self, message: InputMessage) -> None:
        frame = encode(message)
        try:
            self._writer.write(frame + "\n")
        except (OSError, ValueError) as exc:
            raise TransportError("agent stdin closed") from exc
        try:
            self._writer.flush()
        except (OSError, ValueError) as exc:
            raise TransportError("flush to agent failed") from exc
        logger.debug("session.send chars={}", len(frame))

    def _read_line(self) -> str | None:
        try:
            line = self._reader.readline()
        except (OSError, ValueError) as exc:
            raise TransportError(f"reading from agent: {exc}") from exc
        if not line:
            return None
        return line

    def _handle_response(self, line: str) -> None:
        try:
            message = decode(line)
        except DecodeError as exc:
            self._error(f"invalid response from agent: {exc}")
            return

        logger.debug("session.receive kind={}", message.kind)
        if isinstance(message, Output):
            if message.text is not None:
                typer.echo(message.text, file=self._output, color=True)
        elif isinstance(message, WorkerError):
            self._error(message.message if message.message is not None else "unknown error")
        else:
            self._diag(f"warning: unexpected message type: {message.kind}")

    def _error(self, detail: str) -> None:
        self._diag(f"error: {detail}")

    def _diag(self, text: str, *, nl: bool = True) -> None:
        typer.echo(text, file=self._diagnostics, nl=nl)
