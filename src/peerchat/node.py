"""High-level orchestrator for a peerchat node."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from .broadcaster import Broadcaster
from .config import NodeSettings
from .dialer import Dialer
from .export import save_history
from .history import HistoryLog
from .listener import Listener, ListenerState
from .peer_connection import PeerConnection
from .peer_reader import PeerReader
from .registry import ConnectionRegistry
from .state import HistoryEntry, PeerAddress
from .tasks import TaskSet


logger = logging.getLogger(__name__)


class ChatNode:
    """Coordena listener, dialer, broadcaster e o histórico local."""

    def __init__(self, settings: NodeSettings, display: Optional[Callable[[str], None]] = None) -> None:
        self.settings = settings
        self.history = HistoryLog(settings.history_capacity)
        self.registry = ConnectionRegistry()
        self.tasks = TaskSet()
        self._stop_event = threading.Event()
        self._display = display or print
        self._display_lock = threading.Lock()
        self._running = False

        self.listener = Listener(
            settings,
            self.registry,
            self.history,
            self.tasks,
            self._stop_event,
            notify=self.notify,
            on_connected=self._start_reader,
        )
        self.dialer = Dialer(
            settings,
            self.registry,
            self.history,
            self._stop_event,
            notify=self.notify,
            on_connected=self._start_reader,
        )
        self.broadcaster = Broadcaster(settings.username, self.registry, self.history, notify=self.notify)

    @property
    def username(self) -> str:
        return self.settings.username

    @property
    def running(self) -> bool:
        return self._running and not self._stop_event.is_set()

    @property
    def listen_port(self) -> Optional[int]:
        return self.listener.port

    def set_display(self, display: Callable[[str], None]) -> None:
        with self._display_lock:
            self._display = display

    def notify(self, message: str) -> None:
        with self._display_lock:
            try:
                self._display(message)
            except Exception:
                logger.exception("Falha ao exibir mensagem")

    def start(self) -> None:
        """Abre a porta local. Levanta ``BindFailureError`` se não conseguir."""

        if self._running:
            logger.debug("Nó já iniciado; ignorando chamada extra.")
            return
        logger.info("Inicializando nó %s", self.username)
        self.listener.start()
        self._running = True

    def connect(self, host: str, port: int) -> PeerConnection:
        return self.dialer.connect(host, port)

    def send(self, text: str) -> Dict[PeerAddress, bool]:
        return self.broadcaster.send(text)

    def peers(self) -> List[PeerConnection]:
        return self.registry.snapshot()

    def history_tail(self, count: Optional[int] = None) -> Tuple[HistoryEntry, ...]:
        return self.history.tail(count if count is not None else self.settings.history_page_size)

    def clear_history(self) -> None:
        self.history.clear()

    def save_history(self, path: Union[str, Path]) -> int:
        """Grava o histórico em ``path``; devolve a quantidade de linhas."""

        return save_history(Path(path), self.username, self.history.export_lines())

    def _start_reader(self, connection: PeerConnection) -> None:
        reader = PeerReader(connection, self.registry, self.history, self.notify, self._stop_event)
        self.tasks.spawn(reader.run, name=reader.thread_name)

    def shutdown(self) -> None:
        """Fecha listener e conexões e espera todas as threads terminarem."""

        if self._stop_event.is_set():
            return
        logger.info("Encerrando nó %s...", self.username)
        self._stop_event.set()

        if self.listener.state is not ListenerState.IDLE:
            self.listener.stop(timeout=self.settings.shutdown_timeout)

        for connection in self.registry.snapshot():
            connection.close()

        leftover = self.tasks.join(self.settings.shutdown_timeout)
        if leftover:
            logger.warning(
                "%d thread(s) ainda ativas após shutdown: %s",
                len(leftover),
                ", ".join(t.name for t in leftover),
            )
        self._running = False
