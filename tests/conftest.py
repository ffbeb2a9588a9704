"""
pytest configuration and fixtures.
"""

import asyncio
import ssl
import sys
from pathlib import Path

import pytest

# Make the package importable without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))

from polaris.config import Config, TLSConfig
from polaris.request import Connection, Context
from polaris.server import Server
from polaris.tls import update_certificate


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """A content root holding a.gmi, a hidden file and a subdirectory."""
    root = tmp_path / "root"
    root.mkdir()
    (root / "a.gmi").write_text("# A\n")
    (root / ".hidden").write_text("secret\n")
    (root / "sub").mkdir()
    (root / "sub" / "b.txt").write_text("b\n")
    return root


@pytest.fixture
def make_context():
    """Build a request Context for a decoded path and optional query."""
    def build(path, query=None, host="localhost"):
        return Context(host, path, path, query, Connection(None, ("127.0.0.1", 0)))
    return build


@pytest.fixture
def tls_config(tmp_path: Path) -> TLSConfig:
    """A TLS configuration backed by a freshly generated P-256 certificate."""
    cert_path = str(tmp_path / "cert.pem")
    key_path = str(tmp_path / "key.pem")
    update_certificate(cert_path, key_path, ["localhost"], key_type="ec")
    return TLSConfig(cert_path, key_path)


@pytest.fixture
def client_ssl_context() -> ssl.SSLContext:
    """Client side context that accepts the self-signed test certificate."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


async def gemini_request(port, payload: bytes, ssl_context=None) -> bytes:
    """Send ``payload`` and return everything the server writes back."""
    reader, writer = await asyncio.open_connection(
        "127.0.0.1", port,
        ssl=ssl_context,
        server_hostname="localhost" if ssl_context else None,
    )
    try:
        if payload:
            writer.write(payload)
            await writer.drain()
        else:
            writer.write_eof()
        return await reader.read()
    finally:
        writer.close()


@pytest.fixture
def send():
    """The raw request coroutine, for tests that drive several connections."""
    return gemini_request


@pytest.fixture
def serve():
    """Run ``client(port)`` against a live server built from ``config``."""
    def run(config: Config, client):
        async def main():
            server = Server(config)
            listener = await server.start()
            try:
                return await client(server.port)
            finally:
                listener.close()
                await listener.wait_closed()

        return asyncio.run(main())

    return run


@pytest.fixture
def request_once(serve):
    """Send a single payload to a fresh server and return the raw reply."""
    def run(config: Config, payload: bytes, ssl_context=None) -> bytes:
        return serve(config, lambda port: gemini_request(port, payload, ssl_context))

    return run


def make_config(**cfg) -> Config:
    cfg.setdefault("host", "127.0.0.1")
    cfg.setdefault("port", 0)
    return Config.from_config(cfg)


@pytest.fixture
def config_for():
    """Build a Config listening on an ephemeral localhost port."""
    return make_config
