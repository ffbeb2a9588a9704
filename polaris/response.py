from dataclasses import dataclass
from typing import Optional

from .status import Status

DEFAULT_MIME_TYPE = "text/gemini"


def _variant(status: Status):
    def build(cls, meta: str) -> "Response":
        return cls(status, meta)

    build.__name__ = status.name.lower()
    build.__doc__ = f"Build a {status.value} {status.name} response."
    return classmethod(build)


@dataclass(frozen=True)
class Response:
    """A single Gemini response: one status line and, for success, a body.

    ``status_code`` is the variant tag. Only success responses carry
    ``content``; every other status carries just ``meta``.
    """

    status_code: Status
    meta: str
    content: Optional[bytes] = None

    def __post_init__(self):
        if self.status_code is Status.INVALID:
            raise ValueError("INVALID is not a status that can be sent")

        if self.status_code.is_success():
            if self.content is None:
                object.__setattr__(self, "content", b"")
        elif self.content is not None:
            raise ValueError(f"{self.status_code.name} responses have no body")

    @classmethod
    def success(cls, mime_type: str = DEFAULT_MIME_TYPE, content: bytes = b"") -> "Response":
        return cls(Status.SUCCESS, mime_type or DEFAULT_MIME_TYPE, bytes(content))

    input = _variant(Status.INPUT)
    sensitive_input = _variant(Status.SENSITIVE_INPUT)
    redirect_temporary = _variant(Status.REDIRECT_TEMPORARY)
    redirect_permanent = _variant(Status.REDIRECT_PERMANENT)
    temporary_failure = _variant(Status.TEMPORARY_FAILURE)
    server_unavailable = _variant(Status.SERVER_UNAVAILABLE)
    cgi_error = _variant(Status.CGI_ERROR)
    proxy_error = _variant(Status.PROXY_ERROR)
    slow_down = _variant(Status.SLOW_DOWN)
    permanent_failure = _variant(Status.PERMANENT_FAILURE)
    not_found = _variant(Status.NOT_FOUND)
    gone = _variant(Status.GONE)
    proxy_request_refused = _variant(Status.PROXY_REQUEST_REFUSED)
    bad_request = _variant(Status.BAD_REQUEST)
    client_certificate_required = _variant(Status.CLIENT_CERTIFICATE_REQUIRED)
    certificate_not_authorized = _variant(Status.CERTIFICATE_NOT_AUTHORIZED)
    certificate_not_valid = _variant(Status.CERTIFICATE_NOT_VALID)

    @property
    def status_line(self) -> str:
        return f"{self.status_code.value:02d} {self.meta}\r\n"

    def serialize(self) -> bytes:
        # meta goes out as-is; callers keep CR and LF out of it
        data = self.status_line.encode()
        if self.content is not None:
            data += self.content
        return data

    def __bytes__(self):
        return self.serialize()


def serialize(response: Response) -> bytes:
    return response.serialize()
