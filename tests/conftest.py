"""
pytest configuration and fixtures.
"""

import logging
import socket
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from greetserver import GreetingServer, ServerConfig
from greetserver.core import Listener


GREETING = b"Hello from the server!\n"


def fetch(port: int, host: str = "127.0.0.1", timeout: float = 5.0) -> bytes:
    """Connect, read until the server closes, return everything received."""
    chunks = []
    with socket.create_connection((host, port), timeout=timeout) as s:
        while True:
            chunk = s.recv(1024)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture(autouse=True)
def restore_root_logging() -> Generator[None, None, None]:
    """Undo GreetingServer._setup_logging() so its stdout handler does not outlive the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    yield

    for handler in list(root.handlers):
        # basicConfig() installs a plain StreamHandler; pytest's own
        # capture handlers are subclasses and are left alone
        if handler not in handlers and type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)
    logging.getLogger("greetserver").setLevel(logging.NOTSET)


@pytest.fixture
def config() -> ServerConfig:
    """Default test configuration: loopback, OS-chosen port, short idle timeout."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        accept_timeout=0.2,
        write_timeout=2.0,
        log_level="DEBUG",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class ListenerThread:
    """Runs a Listener in a background thread."""

    def __init__(self, listener: Listener, handler):
        self.listener = listener
        self.handler = handler
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.listener.port

    def _run(self):
        try:
            self.listener.start(self.handler)
        except BaseException as e:
            self.error = e

    def start(self) -> "ListenerThread":
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        if not self.listener.wait_until_listening(timeout=5.0):
            raise RuntimeError(f"Listener failed to start: {self.error!r}")
        return self

    def stop(self):
        self.listener.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


@pytest.fixture
def listener_thread(config: ServerConfig) -> Generator:
    """Factory: start a Listener with the given handler in the background."""
    started = []

    def make(handler, cfg: Optional[ServerConfig] = None) -> ListenerThread:
        runner = ListenerThread(Listener(cfg or config), handler).start()
        started.append(runner)
        return runner

    yield make

    for runner in started:
        runner.stop()


class ServerThread:
    """Runs a GreetingServer in a background thread."""

    def __init__(self, server: GreetingServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self) -> "ServerThread":
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.listener.wait_until_listening(timeout=5.0):
            raise RuntimeError("Server failed to start")
        return self

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


@pytest.fixture
def server_thread(config: ServerConfig) -> Generator:
    """Factory: start a GreetingServer in the background."""
    started = []

    def make(cfg: Optional[ServerConfig] = None) -> ServerThread:
        runner = ServerThread(GreetingServer(cfg or config)).start()
        started.append(runner)
        return runner

    yield make

    for runner in started:
        runner.stop()
