#!/usr/bin/env python3

import asyncio
import logging
import traceback
from typing import TYPE_CHECKING, Optional, Tuple

from .request import Connection
from .response import Response
from .tls import make_reloading_context

if TYPE_CHECKING:
    from .config import Config

# One read of up to READ_BUFFER_SIZE bytes; anything past MAX_REQUEST_BYTES
# in that read is rejected.
READ_BUFFER_SIZE = 2048
MAX_REQUEST_BYTES = 1024


class Server:
    def __init__(
        self,
        config: "Config",
    ):
        self.log = logging.getLogger("polaris.server")
        self.access_log = logging.getLogger("polaris.access")

        self.server: Optional[asyncio.AbstractServer] = None
        self.config = config
        self.port = config.port

        self.ssl_context = None
        if config.tls is not None:
            self.ssl_context = make_reloading_context(config.tls)

        self._slots = None
        if config.max_connections is not None:
            self._slots = asyncio.Semaphore(config.max_connections)

    async def start(self) -> asyncio.AbstractServer:
        self.server = await asyncio.start_server(
            self.handle_connection,
            host=self.config.host or None,
            port=self.config.port,
            ssl=self.ssl_context,
        )

        sockname = self.server.sockets[0].getsockname()
        self.port = sockname[1]

        self.log.info(
            f"Listening on {sockname[0]}:{self.port}"
            f" ({'TLS' if self.ssl_context else 'plain TCP'})"
        )
        return self.server

    async def serve_forever(self):
        server = await self.start()
        async with server:
            await server.serve_forever()

    async def _with_timeout(self, aw):
        if self.config.read_timeout is None:
            return await aw
        return await asyncio.wait_for(aw, self.config.read_timeout)

    async def read_request(self, reader: asyncio.StreamReader) -> bytes:
        data = await self._with_timeout(reader.read(READ_BUFFER_SIZE))
        if not data:
            raise ConnectionError("connection closed before a request was sent")
        return data

    async def get_response(
        self, reader: asyncio.StreamReader, conn: Connection
    ) -> Tuple[str, Response]:
        try:
            data = await self.read_request(reader)
        except asyncio.TimeoutError:
            return "-", Response.bad_request("Failed to get url : timed out")
        except Exception as e:
            return "-", Response.bad_request(f"Failed to get url : {e}")

        if len(data) > MAX_REQUEST_BYTES:
            return "-", Response.bad_request(
                f"request exceeds {MAX_REQUEST_BYTES} bytes"
            )

        try:
            url = data.decode("utf-8")
        except UnicodeDecodeError as e:
            return "-", Response.bad_request(f"url is not valid UTF-8 : {e}")

        try:
            return url, await self.config.handler(url, conn)

        except Exception:
            self.log.error(f"While generating response; {traceback.format_exc()}")

            return url, Response.temporary_failure(
                "Exception thrown during request processing; see server logs for details."
            )

    async def handle_connection(self, reader, writer):
        if self._slots is None:
            await self._handle_connection(reader, writer)
            return

        async with self._slots:
            await self._handle_connection(reader, writer)

    async def _handle_connection(self, reader, writer):
        peer_addr = writer.get_extra_info("peername")
        peer_cert = writer.get_extra_info("peercert")

        self.log.debug(f"Received connection from {peer_addr}")

        url, response = await self.get_response(
            reader, Connection(self, peer_addr, peer_cert)
        )

        self.access_log.info(
            f"[{peer_addr}] {url.strip()} {response.status_code.value}"
            f"[{response.status_code.name}] {response.meta}"
        )

        try:
            writer.write(response.serialize())
            await self._with_timeout(writer.drain())

        except Exception:
            self.log.error(f"While writing response; {traceback.format_exc()}")

        finally:
            writer.close()

        try:
            await writer.wait_closed()
        except Exception as e:
            self.log.debug(f"While closing connection from {peer_addr}; {e!r}")
