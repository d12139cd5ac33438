"""HTTP response formatting and frontend file loading."""

from __future__ import annotations

import logging
import os
from typing import Protocol

log = logging.getLogger(__name__)

HTTP_VERSION = "HTTP/1.1"
FRONTEND_DIR = "frontend"


class _Sendable(Protocol):
    def sendall(self, data: bytes) -> object: ...


def format_response(status: int, message: str | None = None, contents: str | None = None) -> bytes:
    """Build a minimal HTTP response with a Content-Length header."""
    body = (contents or "").encode("utf-8")
    head = f"{HTTP_VERSION} {status} {message or ''}\r\nContent-Length: {len(body)}\r\n\r\n"
    return head.encode("utf-8") + body


def write_response(
    stream: _Sendable,
    status: int,
    message: str | None = None,
    contents: str | None = None,
) -> None:
    """Write a minimal HTTP response to a socket."""
    stream.sendall(format_response(status, message, contents))


def get_frontend(file: str, root: str | os.PathLike[str] = FRONTEND_DIR) -> str:
    """Read a frontend file; ``file`` is a request path such as ``/index.html``."""
    path = f"{os.fspath(root)}{file}"
    log.debug("Getting frontend file: %s", path)
    with open(path, encoding="utf-8") as handle:
        return handle.read()