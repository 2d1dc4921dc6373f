#!/usr/bin/env python3
"""
DuoServer entry point.

Starts the listener loop and the operator console, then waits until either
the console's ``stop`` command or a signal shuts the server down.
"""

import argparse
import signal
import sys
from pathlib import Path

from loguru import logger

from duoserver import __version__
from duoserver.console import Colors, CommandConsole, print_colored, set_terminal_title
from duoserver.core.config import ServerConfig, settings
from duoserver.server import StaticFileServer, get_host_ip


def configure_logging(level: str = "INFO", log_file: str | None = None):
    """Console logging always; file logging only when a path is given."""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level}</level> | <cyan>{function}</cyan> | {message}",
    )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="10 MB",
            retention="7 days",
            level=level.upper(),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="duoserver",
        description="Serve a directory over HTTP with an interactive operator console",
    )
    parser.add_argument("root", nargs="?", default=None,
                        help=f"Directory to serve (default: {settings.ROOT_DIRECTORY})")
    parser.add_argument("-p", "--port", type=int, default=None,
                        help="Port to listen on; 0 or omitted picks a free port")
    parser.add_argument("--host", default=None, help=f"Bind address (default: {settings.HOST})")
    parser.add_argument("--sequential", action="store_true",
                        help="Serve one request at a time instead of one thread per connection")
    parser.add_argument("--no-console", action="store_true", help="Do not read commands from stdin")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Log level (default: %(default)s)")
    parser.add_argument("--log-file", default=settings.LOG_FILE, help="Also write logs to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig.from_settings(
        settings,
        root_directory=args.root,
        port=args.port,
        host=args.host,
        concurrent=False if args.sequential else None,
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    print_colored(f"Loading DuoServer {__version__}", Colors.BOLD)

    try:
        config = config_from_args(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    if not config.root_directory.is_dir():
        logger.warning(f"Root directory {config.root_directory} does not exist; every request will 404")

    server = StaticFileServer(config)
    logger.info(f"Server starting with parameters: port={server.port} root={config.root_directory}")

    try:
        server.start()
    except OSError as e:
        logger.error(f"Could not bind {config.host}:{server.port}: {e}")
        return 1

    def signal_handler(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}")
        server.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    set_terminal_title(server.address)
    print_colored(f"Server started on: {get_host_ip()} : {server.port}", Colors.GREEN)
    print()

    if not args.no_console and settings.CONSOLE:
        CommandConsole(server).start()

    # Short waits keep the main thread responsive to signals
    while not server.wait(timeout=0.5):
        pass

    return 0


if __name__ == "__main__":
    sys.exit(main())
