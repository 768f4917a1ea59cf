"""TCP server responsible for inbound peer connections."""
from __future__ import annotations

import logging
import socket
import threading
from enum import Enum
from typing import Callable, Optional

from .config import NodeSettings
from .errors import BindFailureError, DuplicateConnectionError
from .history import HistoryLog
from .peer_connection import PeerConnection
from .registry import ConnectionRegistry
from .state import Direction
from .tasks import TaskSet


logger = logging.getLogger(__name__)


class ListenerState(str, Enum):
    IDLE = "IDLE"
    BOUND = "BOUND"
    ACCEPTING = "ACCEPTING"
    STOPPED = "STOPPED"


class Listener:
    """Escuta conexões inbound e registra cada socket aceito."""

    def __init__(
        self,
        settings: NodeSettings,
        registry: ConnectionRegistry,
        history: HistoryLog,
        tasks: TaskSet,
        stop_event: threading.Event,
        notify: Callable[[str], None],
        on_connected: Callable[[PeerConnection], None],
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.history = history
        self.tasks = tasks
        self.notify = notify
        self.on_connected = on_connected
        self.state = ListenerState.IDLE
        self._stop_event = stop_event
        self._thread: Optional[threading.Thread] = None
        self._server_socket: Optional[socket.socket] = None
        self._port: Optional[int] = None

    @property
    def port(self) -> Optional[int]:
        """Porta efetivamente aberta (relevante quando configurada como 0)."""

        return self._port

    def start(self) -> None:
        if self.state is not ListenerState.IDLE:
            return

        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server.bind((self.settings.listen_host, self.settings.listen_port))
            server.listen()
        except OSError as exc:
            server.close()
            self.state = ListenerState.STOPPED
            raise BindFailureError(
                f"Error listening on port {self.settings.listen_port}: {exc}"
            ) from exc

        server.settimeout(self.settings.accept_poll_interval)
        self._server_socket = server
        self._port = server.getsockname()[1]
        self.state = ListenerState.BOUND
        logger.info("Listener escutando em %s:%s", self.settings.listen_host, self._port)
        self._thread = self.tasks.spawn(self._accept_loop, name="listener")

    def _accept_loop(self) -> None:
        server = self._server_socket
        if server is None:
            return
        self.state = ListenerState.ACCEPTING
        while not self._stop_event.is_set():
            try:
                conn, addr = server.accept()
            except socket.timeout:
                continue
            except OSError:
                # socket fechado por stop()
                break
            if self._stop_event.is_set():
                conn.close()
                break
            self._handle_connection(conn, addr)
        self.state = ListenerState.STOPPED
        logger.debug("Loop de accept encerrado")

    def _handle_connection(self, conn: socket.socket, addr: tuple) -> None:
        connection = PeerConnection.from_inbound(conn, addr)
        try:
            self.registry.register(connection.address, connection)
        except DuplicateConnectionError:
            logger.info("Conexão inbound de %s rejeitada: já existe conexão ativa", connection.address)
            connection.close()
            return

        connection.mark_online()
        self.history.record(Direction.RECEIVED, f"New connection from {connection.address}")
        logger.info("Conexão inbound aceita de %s", connection.address)
        self.notify(f"New connection from: {connection.address}")
        self.on_connected(connection)

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._server_socket:
            try:
                self._server_socket.close()
            except OSError:
                pass
            self._server_socket = None
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None
        self.state = ListenerState.STOPPED
