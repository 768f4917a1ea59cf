"""Tracking of the threads spawned by a node."""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Set

logger = logging.getLogger(__name__)


class TaskSet:
    """Conjunto de threads vivas do nó, aguardadas no shutdown.

    Cada thread sai do conjunto sozinha ao terminar, então ``join`` só espera
    pelo que ainda está rodando.
    """

    def __init__(self) -> None:
        self._threads: Set[threading.Thread] = set()
        self._lock = threading.Lock()

    def spawn(self, target: Callable[[], None], name: str) -> threading.Thread:
        def _run() -> None:
            try:
                target()
            except Exception:
                logger.exception("Thread %s terminou com erro", name)
            finally:
                with self._lock:
                    self._threads.discard(thread)

        thread = threading.Thread(target=_run, name=name, daemon=True)
        with self._lock:
            self._threads.add(thread)
        thread.start()
        return thread

    def join(self, timeout: float) -> List[threading.Thread]:
        """Espera todas as threads até ``timeout`` segundos.

        Returns:
            Threads que continuavam vivas ao fim do prazo.
        """
        deadline = time.monotonic() + timeout
        current = threading.current_thread()
        while True:
            pending = [t for t in self.active() if t is not current]
            remaining = deadline - time.monotonic()
            if not pending or remaining <= 0:
                return pending
            pending[0].join(timeout=remaining)

    def active(self) -> List[threading.Thread]:
        with self._lock:
            return list(self._threads)

    def __len__(self) -> int:
        return len(self.active())
