import signal
import socket
from pathlib import Path

from duoserver.main import build_parser, config_from_args, configure_logging, main
from duoserver.server import StaticFileServer


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.root is None
    assert args.port is None
    assert not args.sequential
    assert not args.no_console


def test_config_from_args():
    args = build_parser().parse_args(["site", "-p", "8088", "--host", "127.0.0.1", "--sequential"])
    config = config_from_args(args)
    assert config.root_directory == Path("site")
    assert config.port == 8088
    assert config.host == "127.0.0.1"
    assert config.concurrent is False


def test_configure_logging_with_file(tmp_path):
    log_file = tmp_path / "logs" / "duoserver.log"
    configure_logging("DEBUG", str(log_file))
    from loguru import logger

    logger.info("hello from test")
    logger.complete()
    configure_logging("INFO")  # releases the file sink
    assert "hello from test" in log_file.read_text()


def test_main_exits_1_when_port_taken(tmp_path):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]
        code = main([str(tmp_path), "--host", "127.0.0.1", "--port", str(port), "--no-console"])
    assert code == 1


def test_main_rejects_bad_port(tmp_path):
    assert main([str(tmp_path), "--port", "70000", "--no-console"]) == 2


def test_main_exits_0_after_sigterm(tmp_path, monkeypatch):
    handlers = {}
    monkeypatch.setattr(signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))

    original_wait = StaticFileServer.wait
    servers = []

    def wait_after_sigterm(self, timeout=None):
        servers.append(self)
        handlers[signal.SIGTERM](signal.SIGTERM, None)
        return original_wait(self, timeout)

    monkeypatch.setattr(StaticFileServer, "wait", wait_after_sigterm)

    assert main([str(tmp_path), "--host", "127.0.0.1", "--no-console"]) == 0
    assert servers and servers[0].stopped
    assert not servers[0].listening
