"""Exception hierarchy shared by the peerchat node."""
from __future__ import annotations


class PeerChatError(RuntimeError):
    """Erro genérico do nó de chat."""


class DuplicateConnectionError(PeerChatError):
    """Já existe uma conexão registrada para o endereço."""

    def __init__(self, address) -> None:
        super().__init__(f"Already connected to: {address}")
        self.address = address


class AlreadyConnectedError(DuplicateConnectionError):
    """Dial recusado porque o peer já está no registro."""


class ConnectFailureError(PeerChatError):
    """Conexão outbound não pôde ser estabelecida."""

    def __init__(self, address, reason: str = "") -> None:
        message = f"Failed to connect to {address}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.address = address


class BindFailureError(PeerChatError):
    """Não foi possível abrir a porta local. Único erro fatal do nó."""


class MalformedCommandError(ValueError):
    """Comando digitado com sintaxe inválida."""
