from __future__ import annotations

import io
import json
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeAlias

import pytest

from agentlink.session import SessionDriver
from agentlink.supervisor import WorkerProcess

Frame: TypeAlias = dict[str, Any] | str
Reply: TypeAlias = Callable[[dict[str, Any]], Iterable[Frame]]

READY: dict[str, Any] = {"type": "ready"}


def _frame(item: Frame) -> str:
    if isinstance(item, str):
        return item if item.endswith("\n") else item + "\n"
    return json.dumps(item) + "\n"


class _WorkerStdin(io.StringIO):
    def __init__(self, worker: FakeWorker) -> None:
        super().__init__()
        self._worker = worker
        self._pending = ""

    def write(self, s: str) -> int:
        if self._worker.broken_pipe:
            raise BrokenPipeError(32, "Broken pipe")
        self._pending += s
        while "\n" in self._pending:
            line, self._pending = self._pending.split("\n", 1)
            self._worker.handle(line)
        return len(s)

    def flush(self) -> None:
        if self._worker.broken_flush:
            raise BrokenPipeError(32, "Broken pipe")
        super().flush()


class _WorkerStdout:
    def __init__(self, worker: FakeWorker) -> None:
        self._worker = worker
        self.closed = False

    def readline(self) -> str:
        if self._worker.outbox:
            return self._worker.outbox.popleft()
        if self._worker.read_error is not None:
            raise self._worker.read_error
        return ""

    def close(self) -> None:
        self.closed = True


class FakeWorker:
    """In-memory stand-in for the worker process, shaped like ``subprocess.Popen``.

    Each complete line written to ``stdin`` is decoded and recorded in
    ``received``; ``reply`` turns it into zero or more response frames. Once the
    outbox is empty ``stdout`` reports end-of-stream, or raises ``read_error``
    when one is set.
    """

    pid = 4242

    def __init__(
        self,
        *,
        greeting: Iterable[Frame] = (READY,),
        reply: Reply | None = None,
        broken_pipe: bool = False,
        broken_flush: bool = False,
        read_error: Exception | None = None,
    ) -> None:
        self.outbox: deque[str] = deque(_frame(item) for item in greeting)
        self.reply = reply
        self.broken_pipe = broken_pipe
        self.broken_flush = broken_flush
        self.read_error = read_error
        self.received: list[dict[str, Any]] = []
        self.wait_calls = 0
        self.returncode: int | None = None
        self.stdin = _WorkerStdin(self)
        self.stdout = _WorkerStdout(self)

    def handle(self, line: str) -> None:
        message = json.loads(line)
        self.received.append(message)
        if self.reply is not None:
            self.outbox.extend(_frame(item) for item in self.reply(message))

    def wait(self, timeout: float | None = None) -> int:
        _ = timeout
        self.wait_calls += 1
        self.returncode = 0
        return 0


def echo(message: dict[str, Any]) -> list[Frame]:
    return [{"type": "output", "text": message["text"]}]


@dataclass
class SessionRun:
    code: int
    output: str
    diagnostics: str
    handle: WorkerProcess
    driver: SessionDriver


@pytest.fixture
def make_worker() -> type[FakeWorker]:
    return FakeWorker


@pytest.fixture
def echo_reply() -> Reply:
    return echo


@pytest.fixture
def run_session() -> Callable[[FakeWorker, str], SessionRun]:
    def _run(worker: FakeWorker, user_text: str) -> SessionRun:
        handle = WorkerProcess(worker)  # type: ignore[arg-type]
        output = io.StringIO()
        diagnostics = io.StringIO()
        driver = SessionDriver(
            handle.reader,
            handle.writer,
            user_input=io.StringIO(user_text),
            output=output,
            diagnostics=diagnostics,
            close=handle.terminate,
        )
        code = driver.run()
        return SessionRun(code, output.getvalue(), diagnostics.getvalue(), handle, driver)

    return _run


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "ANTHROPIC_API_KEY",
        "AGENTLINK_MODEL",
        "AGENTLINK_MAX_TOKENS",
        "AGENTLINK_CONTEXT_WINDOW",
        "AGENTLINK_DATA_DIR",
        "AGENTLINK_HOME_DIR",
        "AGENTLINK_IMAGE",
        "AGENTLINK_RUNTIME",
        "AGENTLINK_PROJECT_DIR",
        "AGENTLINK_BUILD_SERVICE",
        "AGENTLINK_SKIP_BUILD",
        "AGENTLINK_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
