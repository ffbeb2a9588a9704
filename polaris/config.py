import datetime
import ssl

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .handler import GenericHandler, Handler
from .resource import Resource
from .resource_registry import registry

DEFAULT_PORT = 1965


def parse_address(addr: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``[v6]:port``) into its parts."""
    host, port = addr, DEFAULT_PORT

    if addr.startswith("["):
        end = addr.find("]")
        if end == -1:
            raise ValueError(f"Invalid listen address {addr!r}")

        host, rest = addr[1:end], addr[end + 1:]
        if rest:
            if not rest.startswith(":"):
                raise ValueError(f"Invalid listen address {addr!r}")
            port = rest[1:]

    elif addr.count(":") == 1:
        host, port = addr.split(":")

    elif ":" in addr:
        raise ValueError(f"IPv6 listen address {addr!r} must be bracketed")

    try:
        port = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in listen address {addr!r}") from None

    if not 0 <= port <= 65535:
        raise ValueError(f"Port {port} out of range in listen address {addr!r}")

    return host, port


@dataclass
class TLSConfig():
    cert_path: str
    key_path: str
    auto: bool = False
    hostnames: List[str] = field(default_factory=list)

    _context_cache: Optional[Tuple[Optional[datetime.datetime], ssl.SSLContext]] = None

    @classmethod
    def from_config(cls, cfg, hostnames=None):
        return cls(
            cert_path=cfg["cert_path"],
            key_path=cfg["key_path"],
            auto=cfg.get("auto", False),
            hostnames=[name.lower() for name in hostnames or cfg.get("hostnames", [])],
        )

    def clear_context_cache(self):
        self._context_cache = None

    def get_ssl_context(self):
        from . import tls
        if self._context_cache is not None:
            expires, context = self._context_cache

            if expires is None or expires > datetime.datetime.now(datetime.timezone.utc):
                return context

        if self.auto:
            expires = tls.update_certificate(
                self.cert_path, self.key_path, self.hostnames or ["localhost"]
            )
        else:
            # We want to keep using a manually-specified certificate forever
            # or at least until the server is restarted / HUPed.
            expires = None

        context = tls.make_context(self.cert_path, self.key_path)

        self._context_cache = expires, context
        return context


@dataclass
class Config():
    host: str = ""
    port: int = DEFAULT_PORT
    tls: Optional[TLSConfig] = None
    root: str = "."
    mode: str = "static"
    content_mode: str = "raw"
    hostnames: List[str] = field(default_factory=list)
    read_timeout: Optional[float] = None
    max_connections: Optional[int] = None

    handler: Optional[Handler] = None

    def _construct_resource(self) -> Resource:
        if self.mode not in registry:
            raise ValueError(
                f"Unknown mode {self.mode!r}; expected one of {sorted(registry)}"
            )

        if self.mode == "static":
            return registry["static"](self.root, content_mode=self.content_mode)

        return registry[self.mode]()

    def load(self, cfg: Dict[str, Any]):
        if "listen" in cfg:
            self.host, self.port = parse_address(cfg["listen"])
        else:
            self.host = cfg.get("host", self.host)
            self.port = int(cfg.get("port", self.port))

        self.root = cfg.get("root", self.root)
        self.mode = cfg.get("mode", self.mode)
        self.content_mode = cfg.get("content_mode", self.content_mode)
        self.hostnames = list(cfg.get("hostnames", self.hostnames))
        self.read_timeout = cfg.get("read_timeout", self.read_timeout)
        self.max_connections = cfg.get("max_connections", self.max_connections)

        if self.max_connections is not None and self.max_connections < 1:
            raise ValueError("max_connections must be at least 1")

        if cfg.get("tls") is not None:
            self.tls = TLSConfig.from_config(cfg["tls"], self.hostnames)

        self.handler = GenericHandler(self._construct_resource(), self.hostnames)

    @classmethod
    def from_config(cls, cfg):
        o = cls()
        o.load(cfg)
        return o
