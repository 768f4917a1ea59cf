"""Entry-point helper for running a peerchat node."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from .cli import CommandLineInterface
from .config import ConfigValidationError, NodeSettings
from .errors import BindFailureError
from .node import ChatNode


def find_default_config() -> Path | None:
    """Procura config.json no diretório atual."""
    config_in_cwd = Path.cwd() / "config.json"
    if config_in_cwd.exists():
        return config_in_cwd
    return None


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="peerchat node")
    parser.add_argument("--config", type=Path, help="Caminho para arquivo de configuração", default=None)
    parser.add_argument("--username", help="Nome exibido nas mensagens", default=None)
    parser.add_argument("--host", help="Endereço local para escutar", default=None)
    parser.add_argument("--port", type=int, help="Porta local para escutar", default=None)
    parser.add_argument("--log-level", help="Override de nível de log", default=None)
    return parser


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def load_settings(args: argparse.Namespace) -> NodeSettings:
    config_path = args.config if args.config else find_default_config()
    settings = NodeSettings.from_file(config_path)

    if args.username:
        settings.username = args.username
    if args.host:
        settings.listen_host = args.host
    if args.port is not None:
        settings.listen_port = args.port
    if args.log_level:
        settings.log_level = args.log_level.upper()

    # Pergunta interativamente o que não veio por arquivo/flag
    if not settings.username:
        settings.username = input("Enter your username: ").strip()
    if args.port is None and settings.config_file is None:
        answer = input(f"Enter your port number (>1024) [{settings.listen_port}]: ").strip()
        if answer:
            settings.listen_port = int(answer)

    settings.validate()
    return settings


def main() -> None:
    parser = build_arg_parser()
    args = parser.parse_args()

    try:
        settings = load_settings(args)
    except (ConfigValidationError, ValueError) as exc:
        print(f"Configuração inválida: {exc}")
        sys.exit(2)
    except (EOFError, KeyboardInterrupt):
        sys.exit(1)

    configure_logging(settings.log_level)
    node = ChatNode(settings)
    cli = CommandLineInterface(node)
    node.set_display(cli.display)

    shutdown_event = threading.Event()

    def signal_handler(sig, frame):
        print("\nRecebido sinal de interrupção. Encerrando...")
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        node.start()
    except BindFailureError as exc:
        logging.getLogger(__name__).error("%s", exc)
        sys.exit(1)

    try:
        print("\n" + "=" * 60)
        print(f"P2P CHAT SYSTEM - {settings.username} on port {node.listen_port}")
        print("=" * 60)
        print("Type /help to see the available commands.\n")
        cli.start()

        # Wait until shutdown is signaled or CLI thread ends
        while not shutdown_event.is_set() and node.running and not cli.finished:
            shutdown_event.wait(timeout=0.5)
    except KeyboardInterrupt:
        pass
    finally:
        cli.stop()
        node.shutdown()


if __name__ == "__main__":
    main()
