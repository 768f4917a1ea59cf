"""Outbound connections to other peers."""
from __future__ import annotations

import logging
import socket
import threading
from typing import Callable

from .config import NodeSettings
from .errors import AlreadyConnectedError, ConnectFailureError, DuplicateConnectionError
from .history import HistoryLog
from .peer_connection import PeerConnection
from .registry import ConnectionRegistry
from .state import Direction, PeerAddress


logger = logging.getLogger(__name__)


class Dialer:
    """Abre conexões outbound a pedido do usuário (``/connect``).

    A operação é tudo-ou-nada: ou o peer termina registrado, com hello
    enviado e leitor rodando, ou nada muda no registro.
    """

    def __init__(
        self,
        settings: NodeSettings,
        registry: ConnectionRegistry,
        history: HistoryLog,
        stop_event: threading.Event,
        notify: Callable[[str], None],
        on_connected: Callable[[PeerConnection], None],
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.history = history
        self.notify = notify
        self.on_connected = on_connected
        self._stop_event = stop_event

    @staticmethod
    def resolve(host: str, port: int) -> PeerAddress:
        """Normaliza o host para o IPv4 numérico, a mesma forma das chaves inbound.

        Raises:
            ConnectFailureError: se o nome não puder ser resolvido.
        """
        try:
            infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_STREAM)
        except (OSError, UnicodeError) as exc:
            raise ConnectFailureError(PeerAddress(host, port), str(exc)) from exc
        return PeerAddress(infos[0][4][0], port)

    def connect(self, host: str, port: int) -> PeerConnection:
        """Conecta em ``host:port``.

        Raises:
            AlreadyConnectedError: o endereço já está no registro (sem I/O).
            ConnectFailureError: falha de rede ou nó já encerrado.
        """
        address = self.resolve(host, port)

        if self.registry.get(address) is not None:
            raise AlreadyConnectedError(address)
        if self._stop_event.is_set():
            raise ConnectFailureError(address, "node is shutting down")

        logger.info("Conectando em %s...", address)
        try:
            connection = PeerConnection.connect_outbound(address, timeout=self.settings.connect_timeout)
        except OSError as exc:
            logger.warning("Falha ao conectar com %s: %s", address, exc)
            raise ConnectFailureError(address, str(exc)) from exc

        try:
            self.registry.register(address, connection)
        except DuplicateConnectionError:
            # Verificação extra de race condition: outra thread registrou antes
            connection.close()
            raise AlreadyConnectedError(address) from None

        try:
            connection.send_line(self.settings.hello_line)
        except OSError as exc:
            self.registry.unregister(address, connection)
            connection.close()
            logger.warning("Falha ao enviar hello para %s: %s", address, exc)
            raise ConnectFailureError(address, str(exc)) from exc

        connection.mark_online()
        self.history.record(Direction.SENT, f"Connected to {address}")
        logger.info("Conectado outbound com %s", address)
        self.notify(f"Connected to: {address}")
        self.on_connected(connection)
        return connection
