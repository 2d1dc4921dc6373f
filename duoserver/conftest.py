import pytest

from duoserver.core.config import ServerConfig
from duoserver.server import StaticFileServer


@pytest.fixture
def site_root(tmp_path):
    root = tmp_path / "www"
    root.mkdir()
    return root


@pytest.fixture
def make_server(site_root):
    """Factory for started servers on 127.0.0.1; all are stopped at teardown."""
    servers = []

    def factory(root=None, **overrides):
        overrides.setdefault("host", "127.0.0.1")
        config = ServerConfig(root_directory=root or site_root, **overrides)
        server = StaticFileServer(config)
        server.start()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.stop()


@pytest.fixture
def server(make_server):
    return make_server()


@pytest.fixture
def base_url(server):
    return f"http://127.0.0.1:{server.port}"
