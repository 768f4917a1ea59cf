"""Abstrações para conexões TCP com outros peers."""
from __future__ import annotations

import logging
import socket
import threading
from datetime import datetime
from typing import Optional

from .state import ConnectionStatus, PeerAddress


logger = logging.getLogger(__name__)
MAX_LINE_BYTES = 32 * 1024


class PeerConnection:
    """Representa uma conexão (inbound ou outbound) com outro peer.

    Escritas passam pelo ``_write_lock`` para que a linha de hello e os
    broadcasts nunca se intercalem no fio. Leituras são feitas apenas pela
    thread do ``PeerReader``.
    """

    def __init__(self, address: PeerAddress, sock: socket.socket, is_outbound: bool) -> None:
        self.address = address
        self.socket = sock
        self.is_outbound = is_outbound
        self.connected_at = datetime.now()
        self.status = ConnectionStatus.CONNECTING
        self._write_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._buffer = b""

        # Sem timeout de inatividade: recv bloqueia até dados, EOF ou close().
        self.socket.settimeout(None)

    @classmethod
    def from_inbound(cls, sock: socket.socket, addr: tuple) -> "PeerConnection":
        return cls(PeerAddress(addr[0], addr[1]), sock, is_outbound=False)

    @classmethod
    def connect_outbound(cls, address: PeerAddress, timeout: float) -> "PeerConnection":
        """Abre a conexão TCP. Levanta ``OSError`` em caso de falha."""

        sock = socket.create_connection((address.host, address.port), timeout=timeout)
        return cls(address, sock, is_outbound=True)

    @property
    def closed(self) -> bool:
        return self.status in (ConnectionStatus.CLOSING, ConnectionStatus.CLOSED)

    def mark_online(self) -> None:
        with self._state_lock:
            if self.status is ConnectionStatus.CONNECTING:
                self.status = ConnectionStatus.ONLINE

    def send_line(self, text: str) -> None:
        """Envia uma linha terminada em ``\\n``. Levanta ``OSError`` em falha."""

        encoded = text.encode("utf-8", errors="replace") + b"\n"
        with self._write_lock:
            if self.closed:
                raise ConnectionResetError(f"conexão com {self.address} já encerrada")
            self.socket.sendall(encoded)

    def read_line(self) -> Optional[str]:
        """Lê a próxima linha; ``None`` quando o peer fecha a conexão.

        Levanta ``OSError`` em erro de socket e ``ValueError`` se a linha
        exceder ``MAX_LINE_BYTES``.
        """
        while b"\n" not in self._buffer:
            chunk = self.socket.recv(4096)
            if not chunk:
                if not self._buffer:
                    return None
                # EOF sem newline: devolve o que sobrou
                line, self._buffer = self._buffer, b""
                return self._decode(line)
            self._buffer += chunk
            if len(self._buffer) > MAX_LINE_BYTES and b"\n" not in self._buffer:
                raise ValueError("Mensagem maior que o limite permitido")
        line, self._buffer = self._buffer.split(b"\n", 1)
        return self._decode(line)

    @staticmethod
    def _decode(raw: bytes) -> str:
        return raw.decode("utf-8", errors="replace").rstrip("\r")

    def close(self) -> None:
        """Fecha o socket; chamadas repetidas são ignoradas.

        O ``shutdown`` desbloqueia um ``recv`` pendente na thread leitora.
        """
        with self._state_lock:
            if self.closed:
                return
            self.status = ConnectionStatus.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        finally:
            self.socket.close()

        with self._state_lock:
            self.status = ConnectionStatus.CLOSED
        logger.debug("[%s] socket fechado", self.address)

    def __repr__(self) -> str:
        direction = "out" if self.is_outbound else "in"
        return f"PeerConnection({self.address}, {direction}, {self.status.value})"
