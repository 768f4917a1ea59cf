"""Configuration helpers for the peerchat node.

Responsabilidades:
- Carregar ``config.json`` e aplicar defaults seguros.
- Permitir overrides vindos da linha de comando (username, host, porta).
- Validar limites (tamanho do username, porta, capacidade do histórico).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional


MAX_USERNAME_LENGTH = 64
MIN_PORT = 1
MAX_PORT = 65535
DEFAULT_HISTORY_CAPACITY = 1000


class ConfigValidationError(ValueError):
    """Erro de validação de configuração."""
    pass


def validate_username(username: str) -> str:
    """Valida o username (1 a 64 caracteres, sem quebra de linha)."""
    if not isinstance(username, str):
        raise ConfigValidationError(f"username deve ser string, recebido: {type(username).__name__}")
    if len(username.strip()) == 0:
        raise ConfigValidationError("username não pode ser vazio")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ConfigValidationError(f"username excede {MAX_USERNAME_LENGTH} caracteres: {len(username)}")
    if "\n" in username or "\r" in username:
        raise ConfigValidationError("username não pode conter quebra de linha")
    return username


def validate_port(port: int) -> int:
    """Valida o campo port (1-65535)."""
    if not isinstance(port, int) or isinstance(port, bool):
        raise ConfigValidationError(f"port deve ser inteiro, recebido: {type(port).__name__}")
    if port < MIN_PORT or port > MAX_PORT:
        raise ConfigValidationError(f"port deve estar entre {MIN_PORT} e {MAX_PORT}, recebido: {port}")
    return port


def validate_positive(name: str, value: float) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ConfigValidationError(f"{name} deve ser numérico, recebido: {type(value).__name__}")
    if value <= 0:
        raise ConfigValidationError(f"{name} deve ser positivo, recebido: {value}")
    return value


@dataclass(slots=True)
class NodeSettings:
    """Conjunto de parâmetros do nó de chat.

    Os defaults servem para desenvolvimento local; arquivo JSON e flags da
    linha de comando sobrescrevem qualquer campo.
    """

    username: str = ""
    listen_host: str = "0.0.0.0"
    listen_port: int = 5000
    connect_timeout: float = 10.0  # segundos
    accept_poll_interval: float = 0.5  # segundos
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    history_page_size: int = 20
    shutdown_timeout: float = 5.0  # segundos
    log_level: str = "INFO"
    config_file: Optional[Path] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def hello_line(self) -> str:
        """Linha enviada ao peer logo após uma conexão outbound."""

        return f"*** {self.username} has connected ***"

    def validate(self) -> None:
        """Valida todos os campos.

        Raises:
            ConfigValidationError: Se algum campo estiver fora dos limites.
        """
        validate_username(self.username)
        validate_port(self.listen_port)
        validate_positive("connect_timeout", self.connect_timeout)
        validate_positive("accept_poll_interval", self.accept_poll_interval)
        validate_positive("shutdown_timeout", self.shutdown_timeout)
        if not isinstance(self.history_capacity, int) or self.history_capacity < 1:
            raise ConfigValidationError(f"history_capacity deve ser inteiro positivo, recebido: {self.history_capacity}")
        if not isinstance(self.history_page_size, int) or self.history_page_size < 1:
            raise ConfigValidationError(f"history_page_size deve ser inteiro positivo, recebido: {self.history_page_size}")

    @classmethod
    def from_file(cls, path: Optional[Path]) -> "NodeSettings":
        """Carrega configurações de um arquivo JSON, se existir.

        Não valida: o username pode ainda vir da linha de comando.
        """

        if path is None or not path.exists():
            return cls(config_file=path)

        with path.open("r", encoding="utf-8") as fp:
            raw_data = json.load(fp)

        if not isinstance(raw_data, dict):
            raise ConfigValidationError(f"{path} deve conter um objeto JSON")

        known_fields = {f.name for f in fields(cls)} - {"config_file", "extra"}
        init_kwargs: Dict[str, Any] = {
            key: value for key, value in raw_data.items() if key in known_fields
        }
        extra = {key: value for key, value in raw_data.items() if key not in known_fields}
        settings = cls(**init_kwargs, config_file=path)
        settings.extra.update(extra)
        return settings

    def to_dict(self) -> Dict[str, Any]:
        """Exporta a configuração atual (útil para logs e debug)."""

        return {
            "username": self.username,
            "listen_host": self.listen_host,
            "listen_port": self.listen_port,
            "connect_timeout": self.connect_timeout,
            "accept_poll_interval": self.accept_poll_interval,
            "history_capacity": self.history_capacity,
            "history_page_size": self.history_page_size,
            "shutdown_timeout": self.shutdown_timeout,
            "log_level": self.log_level,
            "config_file": str(self.config_file) if self.config_file else None,
            "extra": self.extra,
        }
