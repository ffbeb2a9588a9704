import enum
import logging
import mimetypes
import os
import os.path
import stat

from typing import Awaitable, Callable, List, Optional
from urllib.parse import unquote

from .request import Context
from .response import DEFAULT_MIME_TYPE, Response
from .util import encode_link_path, get_path_components

Resource = Callable[[Context], Awaitable[Response]]

HEADER_FILE = ".header.gmi"
FOOTER_FILE = ".footer.gmi"
ROBOTS_FILE = ".robots.txt"


class ContentMode(enum.Enum):
    RAW = "raw"
    TEXT = "text"


class FilesystemResource:
    """Serve files and directory listings from a single content root.

    In ``raw`` mode files are sent byte for byte with a MIME type guessed
    from the extension. In ``text`` mode files are read as UTF-8, get the
    footer appended and always go out as text/gemini.
    """

    def __init__(
        self,
        root,
        content_mode="raw",
        default_mime_type=DEFAULT_MIME_TYPE,
    ):
        self.log = logging.getLogger("polaris.resource.FilesystemResource")

        self.root = os.path.realpath(root)
        if not os.path.isdir(self.root):
            raise ValueError(f"Content root {root} is not a directory")

        self.content_mode = ContentMode(content_mode)
        self.default_mime_type = default_mime_type

        self.mime_types = mimetypes.MimeTypes()
        self.mime_types.add_type("text/gemini", ".gmi", strict=False)
        self.mime_types.add_type("text/gemini", ".gemini", strict=False)

    def guess_mime_type(self, filename: str) -> str:
        candidate, _encoding = self.mime_types.guess_type(filename, strict=False)
        self.log.debug(f"mimetypes says {filename=} has {candidate=}")
        return candidate or self.default_mime_type

    def _read_template(self, name: str) -> str:
        try:
            with open(os.path.join(self.root, name), encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError):
            return ""

    def _inside_root(self, full_path: str) -> bool:
        real = os.path.realpath(full_path)
        return os.path.commonpath([self.root, real]) == self.root

    def send_robots(self) -> Response:
        try:
            with open(os.path.join(self.root, ROBOTS_FILE), "rb") as f:
                return Response.success("text/plain", f.read())
        except OSError:
            return Response.success("text/plain", b"")

    def list_directory(
        self, display_path: str, components: List[str], full_path: str
    ) -> Response:
        try:
            names = os.listdir(full_path)
        except OSError as e:
            self.log.warning(f"Listing {full_path} failed: {e}")
            return Response.cgi_error(f"Failed to generate directory list : {e}")

        links = []
        for name in names:
            if name.startswith("."):
                continue

            try:
                name.encode("utf-8")
            except UnicodeEncodeError:
                # undecodable filename, can't be linked to
                continue

            target = "/" + "/".join(components + [name])
            links.append(f"=> {encode_link_path(target)} {name}\n")

        links.sort()
        links.reverse()

        header = self._read_template(HEADER_FILE)
        footer = self._read_template(FOOTER_FILE)
        body = f"{header}\n### Path: [ {display_path} ]\n{''.join(links)}\n{footer}"

        self.log.debug(f"Listed {len(links)} entries in {full_path}")
        return Response.success("text/gemini", body.encode())

    def send_file(self, full_path: str) -> Response:
        if self.content_mode is ContentMode.TEXT:
            try:
                with open(full_path, encoding="utf-8", newline="") as f:
                    text = f.read()
            except (OSError, UnicodeDecodeError) as e:
                return Response.cgi_error(f"Failed to read file : {e}")

            text += self._read_template(FOOTER_FILE)
            return Response.success("text/gemini", text.encode())

        try:
            with open(full_path, "rb") as f:
                contents = f.read()
        except OSError as e:
            return Response.cgi_error(f"Failed to read file : {e}")

        mime_type = self.guess_mime_type(full_path)
        self.log.debug(
            f"Sending file {full_path} ({len(contents)} bytes) as {mime_type}"
        )
        return Response.success(mime_type, contents)

    def resolve(self, decoded_path: str) -> Response:
        path = decoded_path
        if path in ("", "/"):
            path = "."
        elif path.startswith("/"):
            path = path[1:]

        if path == "robots.txt":
            return self.send_robots()

        try:
            components = get_path_components(path)
        except ValueError:
            self.log.warning(f"Refusing path above the content root: {decoded_path!r}")
            return Response.not_found("Not found")

        full_path = os.path.join(self.root, *components)

        try:
            if not self._inside_root(full_path):
                self.log.warning(f"{full_path} resolves outside the content root")
                return Response.not_found("Not found")

            st = os.stat(full_path)
        except (OSError, ValueError):
            return Response.not_found("Not found")

        if stat.S_ISDIR(st.st_mode):
            return self.list_directory(path, components, full_path)

        if stat.S_ISREG(st.st_mode):
            return self.send_file(full_path)

        return Response.not_found("Not found")

    async def __call__(self, ctx: Context) -> Response:
        return self.resolve(ctx.path)


ECHO_HELP = """# Echo

This server repeats back whatever text you send it.

=> /echo Send some text
"""


class EchoResource:
    """Reply with the decoded query string of ``/echo`` requests."""

    def __init__(self, help_text: Optional[str] = None):
        self.help_text = ECHO_HELP if help_text is None else help_text

    async def __call__(self, ctx: Context) -> Response:
        first_segment = ctx.path.lstrip("/").split("/", 1)[0]

        if first_segment != "echo":
            return Response.success("text/gemini", self.help_text.encode())

        if not ctx.query:
            return Response.input("Please enter some text")

        text = unquote(ctx.query)
        return Response.success("text/plain", f"{text}\r\n".encode())
