"""Plain text export of the chat history."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from .state import TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)

HEADER_LINES = 2


def save_history(path: Path, username: str, lines: Iterable[str], saved_at: Optional[datetime] = None) -> int:
    """Grava cabeçalho de duas linhas seguido das linhas do histórico.

    Returns:
        Número de linhas de histórico gravadas.
    """
    saved_at = saved_at or datetime.now()
    count = 0
    with path.open("w", encoding="utf-8") as fp:
        fp.write(f"Chat History for: {username}\n")
        fp.write(f"Saved on: {saved_at.strftime(TIMESTAMP_FORMAT)}\n")
        for line in lines:
            fp.write(f"{line}\n")
            count += 1
    logger.info("Histórico salvo em %s (%d mensagens)", path, count)
    return count


def load_history(path: Path) -> List[str]:
    """Lê um arquivo gerado por ``save_history`` sem o cabeçalho."""

    with path.open("r", encoding="utf-8") as fp:
        lines = fp.read().splitlines()
    return lines[HEADER_LINES:]
