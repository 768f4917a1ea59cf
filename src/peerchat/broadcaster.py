"""Broadcast of typed text to every connected peer."""
from __future__ import annotations

import logging
from typing import Callable, Dict

from .history import HistoryLog
from .registry import ConnectionRegistry
from .state import Direction, PeerAddress

logger = logging.getLogger(__name__)

NO_PEERS_MESSAGE = "No peers connected to broadcast"


def format_chat_line(username: str, text: str) -> str:
    return f"[{username}]: {text}"


def to_wire_text(text: str) -> str:
    return text.encode("utf-8", errors="replace").decode("utf-8")


class Broadcaster:
    """Entrega mensagens para todos os peers conectados.

    Uma falha de escrita em um peer não interrompe as demais entregas: o
    socket com falha é fechado e o ``PeerReader`` dele faz a remoção do
    registro ao observar o fechamento.
    """

    def __init__(
        self,
        username: str,
        registry: ConnectionRegistry,
        history: HistoryLog,
        notify: Callable[[str], None],
    ) -> None:
        self.username = username
        self.registry = registry
        self.history = history
        self.notify = notify

    def send(self, text: str) -> Dict[PeerAddress, bool]:
        """Envia ``text`` a todos os peers.

        Returns:
            Mapa endereço -> entregue; vazio se nada foi enviado.
        """
        results: Dict[PeerAddress, bool] = {}
        if not text or not text.strip():
            return results

        targets = self.registry.snapshot()
        if not targets:
            self.notify(NO_PEERS_MESSAGE)
            return results

        # surrogates soltos viram "?" no histórico e no fio
        line = to_wire_text(format_chat_line(self.username, text))
        self.history.record(Direction.SENT, line)
        self.notify(line)

        for connection in targets:
            try:
                connection.send_line(line)
                results[connection.address] = True
            except OSError as exc:
                logger.warning("[Broadcast] Falha ao enviar para %s: %s", connection.address, exc)
                connection.close()
                results[connection.address] = False

        logger.debug("[Broadcast] %d/%d peers: %s", sum(results.values()), len(results), line[:40])
        return results
