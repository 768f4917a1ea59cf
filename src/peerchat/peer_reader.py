"""Per-connection read loop."""
from __future__ import annotations

import logging
import threading
from typing import Callable

from .history import HistoryLog
from .peer_connection import PeerConnection
from .registry import ConnectionRegistry
from .state import Direction

logger = logging.getLogger(__name__)


class PeerReader:
    """Lê linhas de um peer até EOF, erro de socket ou shutdown do nó.

    Qualquer que seja a causa do fim do loop, a limpeza roda uma única vez:
    remove o peer do registro, fecha o socket e avisa o display.
    """

    def __init__(
        self,
        connection: PeerConnection,
        registry: ConnectionRegistry,
        history: HistoryLog,
        notify: Callable[[str], None],
        stop_event: threading.Event,
    ) -> None:
        self.connection = connection
        self.registry = registry
        self.history = history
        self.notify = notify
        self._stop_event = stop_event
        self._cleaned_up = False
        self._cleanup_lock = threading.Lock()

    @property
    def thread_name(self) -> str:
        return f"peer-reader-{self.connection.address}"

    def run(self) -> None:
        address = self.connection.address
        try:
            while not self._stop_event.is_set():
                try:
                    line = self.connection.read_line()
                except (OSError, ValueError) as exc:
                    if not self._stop_event.is_set() and not self.connection.closed:
                        logger.debug("[%s] Erro de leitura: %s", address, exc)
                    break
                if line is None:
                    logger.debug("[%s] EOF recebido", address)
                    break
                self.history.record(Direction.RECEIVED, line)
                self.notify(line)
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        with self._cleanup_lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True

        self.registry.unregister(self.connection.address, self.connection)
        self.connection.close()
        logger.info("Peer desconectado: %s", self.connection.address)
        self.notify(f"Peer disconnected: {self.connection.address}")
