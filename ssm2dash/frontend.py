"""Web frontend: a small static HTTP server and a WebSocket broadcaster."""

from __future__ import annotations

import itertools
import logging
import os
import queue
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Protocol

from ssm2dash.utils import FRONTEND_DIR, format_response, get_frontend

log = logging.getLogger(__name__)

ADDRESS = "0.0.0.0"
WEB_PORT = 8888
SOCKET_PORT = 8889
MAX_THREADS = 4


class _Connection(Protocol):
    def send(self, message: str) -> object: ...

    def close(self) -> object: ...


class ClientRegistry:
    """Thread-safe set of connected WebSocket clients keyed by id."""

    def __init__(self) -> None:
        self._clients: dict[int, _Connection] = {}
        self._lock = threading.Lock()

    def add(self, client_id: int, connection: _Connection) -> None:
        """Register a connected client."""
        with self._lock:
            self._clients[client_id] = connection
        log.debug("#%s connected", client_id)

    def remove(self, client_id: int) -> None:
        """Close and forget a client; raises KeyError for an unknown id."""
        with self._lock:
            connection = self._clients.pop(client_id)
        log.debug("#%s disconnected", client_id)
        connection.close()

    def broadcast(self, message: str) -> int:
        """Send ``message`` to every client and return how many accepted it."""
        delivered = 0
        with self._lock:
            for client_id, connection in self._clients.items():
                try:
                    connection.send(message)
                except Exception as exc:  # a dropped client must not stop the others
                    log.debug("Send to #%s failed: %s", client_id, exc)
                    continue
                delivered += 1
                log.debug("Sent to client: %s", message)
        return delivered

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)


def handle_request(
    request_lines: Iterable[str], root: str | os.PathLike[str] = FRONTEND_DIR
) -> bytes:
    """Answer a request given as its header lines and return the raw response."""
    lines = list(request_lines)
    if not lines:
        raise ValueError("empty HTTP request")
    parts = lines[0].split(" ")
    if len(parts) != 3:
        raise ValueError(f"malformed request line: {lines[0]!r}")
    method, end_point, _version = parts

    if method != "GET":
        log.debug("Unsupported method: %s", method)
        return format_response(400)

    log.debug("Request: %s %s", method, end_point)

    if end_point == "/socket_port":
        return format_response(200, None, str(SOCKET_PORT))

    if end_point == "/":
        end_point = "/index.html"
    try:
        contents = get_frontend(end_point, root)
    except (OSError, UnicodeDecodeError) as exc:
        log.debug("%s %s failed", method, end_point)
        log.debug("%s", exc)
        return format_response(404)
    return format_response(200, None, contents)


def _read_request_lines(stream: socket.socket) -> list[str]:
    lines = []
    with stream.makefile("rb") as reader:
        for raw in reader:
            line = raw.decode("utf-8").rstrip("\r\n")
            if not line:
                break
            lines.append(line)
    return lines


def handle_http_connection(
    stream: socket.socket, root: str | os.PathLike[str] = FRONTEND_DIR
) -> None:
    """Serve one request on ``stream`` and close it."""
    with stream:
        response = handle_request(_read_request_lines(stream), root)
        stream.sendall(response)


def _serve_connection(stream: socket.socket, root: str | os.PathLike[str]) -> None:
    try:
        handle_http_connection(stream, root)
    except (OSError, ValueError) as exc:
        log.warning("HTTP connection failed: %s", exc)


def http_listen(
    address: str = ADDRESS,
    port: int = WEB_PORT,
    root: str | os.PathLike[str] = FRONTEND_DIR,
) -> None:
    """Serve the frontend forever."""
    listener = socket.create_server((address, port))
    print(f"Server running at {address}:{port}")

    with listener, ThreadPoolExecutor(max_workers=MAX_THREADS) as pool:
        while True:
            stream, _ = listener.accept()
            pool.submit(_serve_connection, stream, root)


def handle_data_responder(receiver: queue.Queue, clients: ClientRegistry) -> None:
    """Broadcast every message from ``receiver`` until it yields ``None``."""
    while True:
        data = receiver.get()
        if data is None:
            break
        clients.broadcast(data)


def websocket_listen(receiver: queue.Queue, port: int = SOCKET_PORT) -> None:
    """Accept WebSocket clients and push them every message from ``receiver``."""
    from websockets.sync.server import serve

    clients = ClientRegistry()
    ids = itertools.count()

    def handler(connection) -> None:
        client_id = next(ids)
        clients.add(client_id, connection)
        try:
            for _ in connection:
                pass
        except Exception as exc:
            log.debug("#%s connection error: %s", client_id, exc)
        finally:
            clients.remove(client_id)

    try:
        server = serve(handler, ADDRESS, port)
    except OSError as exc:
        raise RuntimeError(f"Failed to listen on port {port}") from exc

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        handle_data_responder(receiver, clients)
    finally:
        server.shutdown()