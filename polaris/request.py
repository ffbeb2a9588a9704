from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:
    from .server import Server


@dataclass
class Connection:
    server: Optional["Server"]
    peer_addr: Optional[Tuple[Any, ...]]
    peer_cert: Optional[dict] = None


@dataclass
class Context:
    host: str
    orig_path: str
    path: str
    query: Optional[str]
    conn: Connection

    data: Dict[str, Any] = field(default_factory=dict)
