"""Thread-safe bounded log of sent and received chat lines."""
from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, List, Tuple

from .config import DEFAULT_HISTORY_CAPACITY
from .state import Direction, HistoryEntry


class HistoryLog:
    """Histórico em memória com descarte FIFO.

    Leitores de peers e o broadcaster escrevem em paralelo; a ordem das
    entradas é a ordem de chegada no lock.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity deve ser positiva")
        self._capacity = capacity
        self._entries: Deque[HistoryEntry] = deque()
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._entries.append(entry)
            while len(self._entries) > self._capacity:
                self._entries.popleft()

    def record(self, direction: Direction, text: str) -> HistoryEntry:
        """Cria e adiciona uma entrada com o horário atual."""

        entry = HistoryEntry(direction=direction, text=text)
        self.append(entry)
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def tail(self, count: int) -> Tuple[HistoryEntry, ...]:
        """Retorna as ``count`` entradas mais recentes em ordem cronológica."""

        if count <= 0:
            return ()
        with self._lock:
            start = max(0, len(self._entries) - count)
            return tuple(self._entries[i] for i in range(start, len(self._entries)))

    def entries(self) -> Tuple[HistoryEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def export_lines(self) -> List[str]:
        """Linhas formatadas de todo o histórico, para gravação em arquivo."""

        return [entry.format() for entry in self.entries()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
