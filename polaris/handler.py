from .resource import Resource
from .response import Response
from .request import Connection, Context
from urllib.parse import unquote, urlsplit
from typing import Awaitable, Callable, Iterable, Optional

import logging

Handler = Callable[[str, Connection], Awaitable[Response]]


class GenericHandler():
    """Turn a request line into a Context and hand it to one resource."""

    def __init__(self, resource: Resource, hostnames: Optional[Iterable[str]] = None):
        self.resource = resource
        self.hostnames = {name.lower() for name in hostnames or ()}
        self.log = logging.getLogger("polaris.handler.GenericHandler")

    async def __call__(self, url: str, conn: Connection) -> Response:
        url = url.rstrip("\r\n")

        try:
            result = urlsplit(url)
            port = result.port
        except ValueError as e:
            return Response.bad_request(f"url is not valid : {e}")

        if not result.scheme:
            return Response.bad_request("Requested URL must have a scheme.")

        if result.scheme != "gemini":
            # This is exclusively a Gemini server.
            return Response.proxy_request_refused(
                "This server does not proxy non-Gemini URLs."
            )

        host = result.hostname or ""

        if self.hostnames and host not in self.hostnames:
            self.log.warning(f"Received request for host {host} not served here")
            return Response.proxy_request_refused(f"{host} is not served here.")

        server = conn.server
        if port is not None and server is not None and port != server.port:
            return Response.proxy_request_refused(
                f"{result.netloc} is not served here."
            )

        return await self.resource(Context(
            result.netloc,
            result.path,
            unquote(result.path, errors="replace"),
            result.query or None,
            conn,
        ))
