"""Command-line interface for the peerchat node."""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .errors import ConnectFailureError, DuplicateConnectionError, MalformedCommandError
from .node import ChatNode
from .state import PeerAddress

logger = logging.getLogger(__name__)


def parse_connect_target(args: List[str]) -> Tuple[str, int]:
    """Interpreta os argumentos de ``/connect <ip>:<port>``."""

    if len(args) != 1:
        raise MalformedCommandError("Invalid format. Use: /connect IP:PORT")
    try:
        address = PeerAddress.parse(args[0])
    except ValueError as exc:
        raise MalformedCommandError("Invalid format. Use: /connect IP:PORT") from exc
    return address.host, address.port


def format_duration(since: datetime, now: Optional[datetime] = None) -> str:
    elapsed = int(((now or datetime.now()) - since).total_seconds())
    minutes, seconds = divmod(max(elapsed, 0), 60)
    return f"{minutes:02d}:{seconds:02d}"


class CommandLineInterface:
    """Responsável pelos comandos `/connect`, `/list`, `/history`, etc.

    Qualquer entrada que não seja um comando conhecido vai para broadcast.
    """

    def __init__(self, node: ChatNode, prompt: Optional[str] = None) -> None:
        self.node = node
        self.prompt = prompt if prompt is not None else f"{node.username}> "
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._output_callback: Optional[Callable[[str], None]] = None

    def attach_output(self, callback: Callable[[str], None]) -> None:
        """Permite redirecionar mensagens da CLI para testes/UI."""

        self._output_callback = callback

    @property
    def finished(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Inicia o loop interativo em uma thread dedicada."""
        if self._thread and self._thread.is_alive():
            return

        def _loop() -> None:
            try:
                while not self._stop_event.is_set():
                    try:
                        user_input = input(self.prompt)
                    except (EOFError, KeyboardInterrupt):
                        break
                    self.handle_input(user_input)
            finally:
                self._stop_event.set()

        self._stop_event.clear()
        self._thread = threading.Thread(target=_loop, name="cli", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)
        self._thread = None

    def display(self, message: str) -> None:
        """Callback de display do nó: imprime e redesenha o prompt."""

        if self._output_callback:
            self._output_callback(message)
            return
        print(f"\n{message}")
        print(self.prompt, end="", flush=True)

    def handle_input(self, raw_input: str) -> None:
        text = raw_input.strip()
        if not text:
            return

        parts = text.split()
        command = parts[0].lower()

        try:
            if command == "/connect":
                self._cmd_connect(parts[1:])
            elif command == "/list":
                self._cmd_list()
            elif command == "/history":
                self._cmd_history()
            elif command == "/clearhistory":
                self._cmd_clear_history()
            elif command == "/savehistory":
                self._cmd_save_history(parts[1:])
            elif command == "/log":
                self._cmd_log(parts[1:])
            elif command == "/help":
                self._cmd_help()
            elif command == "/quit":
                self._cmd_quit()
            else:
                self.node.send(raw_input)
        except MalformedCommandError as exc:
            self._emit(str(exc))
        except Exception as exc:
            logger.exception("Erro executando %s", command)
            self._emit(f"Error running {command}: {exc}")

    def _cmd_connect(self, args: List[str]) -> None:
        host, port = parse_connect_target(args)
        self._emit(f"Connecting to {host}:{port}...")
        try:
            self.node.connect(host, port)
        except DuplicateConnectionError as exc:
            self._emit(str(exc))
        except ConnectFailureError as exc:
            self._emit(str(exc))

    def _cmd_list(self) -> None:
        peers = self.node.peers()
        self._emit("=" * 50)
        self._emit("CONNECTED PEERS LIST")
        self._emit("=" * 50)
        if not peers:
            self._emit("No peers connected.")
            return

        now = datetime.now()
        for index, connection in enumerate(peers, start=1):
            duration = format_duration(connection.connected_at, now)
            status = connection.status.value
            self._emit(f"{index:2d}. {str(connection.address):<25} {'Connected for ' + duration:<20} {status:<10}")
        self._emit("-" * 50)
        self._emit(f"Total peers: {len(peers)}")

    def _cmd_history(self) -> None:
        total = len(self.node.history)
        entries = self.node.history_tail()
        self._emit("=" * 70)
        self._emit(f"MESSAGE HISTORY (Last {total} messages)")
        self._emit("=" * 70)
        if not entries:
            self._emit("No messages yet. Start chatting!")
            return
        for entry in entries:
            self._emit(entry.format())
        self._emit("-" * 70)
        self._emit(f"Showing {len(entries)} of {total} total messages")

    def _cmd_clear_history(self) -> None:
        self.node.clear_history()
        self._emit("Message history cleared.")

    def _cmd_save_history(self, args: List[str]) -> None:
        if len(args) != 1:
            raise MalformedCommandError("Usage: /savehistory <filename>")
        path = Path(args[0])
        try:
            count = self.node.save_history(path)
        except OSError as exc:
            logger.warning("Falha ao salvar histórico em %s: %s", path, exc)
            self._emit(f"Error saving history: {exc}")
            return
        self._emit(f"History saved to: {path} ({count} messages)")

    def _cmd_log(self, args: List[str]) -> None:
        if not args:
            current_level = logging.getLevelName(logging.getLogger().getEffectiveLevel())
            self._emit(f"Current log level: {current_level}")
            self._emit("Usage: /log <DEBUG|INFO|WARNING|ERROR>")
            return

        level_name = args[0].upper()
        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
        }
        if level_name not in level_map:
            raise MalformedCommandError(f"Invalid level: {level_name}. Use: {', '.join(level_map)}")

        logging.getLogger().setLevel(level_map[level_name])
        self._emit(f"Log level set to: {level_name}")

    def _cmd_quit(self) -> None:
        self._emit("Goodbye! Shutting down...")
        self.stop()
        self.node.shutdown()

    def _cmd_help(self) -> None:
        help_text = """
Available Commands:
  /connect <IP>:<PORT>    - Connect to a peer
  /list                   - Show all connected peers
  /history                - Show message history
  /clearhistory           - Clear message history
  /savehistory <file>     - Save history to file
  /log <level>            - Change log level
  /help                   - Show this help
  /quit                   - Exit the chat

  Type any message to broadcast to all peers
"""
        self._emit(help_text)

    def _emit(self, message: str) -> None:
        if self._output_callback:
            self._output_callback(message)
        else:
            print(message)
