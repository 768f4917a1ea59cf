"""Thread-safe in-memory registry of live peer connections."""
from __future__ import annotations

from threading import RLock
from typing import TYPE_CHECKING, Dict, List, Optional

from .errors import DuplicateConnectionError
from .state import PeerAddress

if TYPE_CHECKING:
    from .peer_connection import PeerConnection


class ConnectionRegistry:
    """Mapa ``PeerAddress -> PeerConnection``, no máximo uma entrada por endereço.

    Nenhum chamador acessa o dicionário diretamente; ``snapshot`` devolve uma
    cópia que pode ser percorrida enquanto outras threads registram ou removem
    conexões (comandos ``/list`` e broadcast).
    """

    def __init__(self) -> None:
        self._connections: Dict[PeerAddress, "PeerConnection"] = {}
        self._lock = RLock()

    def register(self, address: PeerAddress, connection: "PeerConnection") -> None:
        """Adiciona a conexão.

        Raises:
            DuplicateConnectionError: se o endereço já estiver registrado; o
                registro não é alterado.
        """
        with self._lock:
            if address in self._connections:
                raise DuplicateConnectionError(address)
            self._connections[address] = connection

    def unregister(self, address: PeerAddress, connection: Optional["PeerConnection"] = None) -> Optional["PeerConnection"]:
        """Remove o endereço; endereço ausente é no-op.

        Se ``connection`` for informada, só remove quando a entrada atual for
        essa mesma conexão.
        """
        with self._lock:
            current = self._connections.get(address)
            if current is None:
                return None
            if connection is not None and current is not connection:
                return None
            return self._connections.pop(address)

    def get(self, address: PeerAddress) -> Optional["PeerConnection"]:
        with self._lock:
            return self._connections.get(address)

    def snapshot(self) -> List["PeerConnection"]:
        with self._lock:
            return list(self._connections.values())

    def __contains__(self, address: object) -> bool:
        with self._lock:
            return address in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
