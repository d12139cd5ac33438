import queue
import socket
import threading

import pytest

from ssm2dash.frontend import (
    SOCKET_PORT,
    ClientRegistry,
    handle_data_responder,
    handle_http_connection,
    handle_request,
)
from ssm2dash.utils import format_response


class FakeConnection:
    def __init__(self, fail=False):
        self.sent = []
        self.closed = False
        self.fail = fail

    def send(self, message):
        if self.fail:
            raise ConnectionError("gone")
        self.sent.append(message)

    def close(self):
        self.closed = True


@pytest.fixture
def root(tmp_path):
    (tmp_path / "index.html").write_text("<h1>dash</h1>", encoding="utf-8")
    (tmp_path / "app.js").write_text("let x = 1;", encoding="utf-8")
    return tmp_path


def test_socket_port_endpoint(root):
    response = handle_request(["GET /socket_port HTTP/1.1"], root)
    assert response == b"HTTP/1.1 200 \r\nContent-Length: 4\r\n\r\n8889"
    assert str(SOCKET_PORT) == "8889"


def test_root_serves_index(root):
    response = handle_request(["GET / HTTP/1.1", "Host: localhost"], root)
    assert response == format_response(200, None, "<h1>dash</h1>")


def test_named_file(root):
    response = handle_request(["GET /app.js HTTP/1.1"], root)
    assert response.endswith(b"let x = 1;")
    assert response.startswith(b"HTTP/1.1 200 ")


def test_missing_file_is_404(root):
    response = handle_request(["GET /nope.css HTTP/1.1"], root)
    assert response == format_response(404)


def test_non_get_is_400(root):
    response = handle_request(["POST / HTTP/1.1"], root)
    assert response == format_response(400)


@pytest.mark.parametrize("lines", [[], ["GET /"], ["GET / HTTP/1.1 extra"]])
def test_malformed_request(lines, root):
    with pytest.raises(ValueError):
        handle_request(lines, root)


def test_handle_http_connection_over_socket(root):
    client, server = socket.socketpair()
    with client:
        client.sendall(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
        handle_http_connection(server, root)
        received = b""
        while chunk := client.recv(4096):
            received += chunk
    assert received == format_response(200, None, "<h1>dash</h1>")
    assert server.fileno() == -1


def test_registry_broadcast_and_len():
    registry = ClientRegistry()
    first, second = FakeConnection(), FakeConnection()
    registry.add(1, first)
    registry.add(2, second)
    assert len(registry) == 2
    assert registry.broadcast("hello") == 2
    assert first.sent == ["hello"]
    assert second.sent == ["hello"]


def test_registry_skips_failing_client():
    registry = ClientRegistry()
    good, bad = FakeConnection(), FakeConnection(fail=True)
    registry.add(1, bad)
    registry.add(2, good)
    assert registry.broadcast("m") == 1
    assert good.sent == ["m"]


def test_registry_remove_closes():
    registry = ClientRegistry()
    connection = FakeConnection()
    registry.add(7, connection)
    registry.remove(7)
    assert connection.closed is True
    assert len(registry) == 0


def test_registry_remove_unknown():
    registry = ClientRegistry()
    with pytest.raises(KeyError):
        registry.remove(3)


def test_data_responder_forwards_until_closed():
    registry = ClientRegistry()
    connection = FakeConnection()
    registry.add(0, connection)
    messages = queue.Queue()
    for item in ("a", "b", None, "c"):
        messages.put(item)
    worker = threading.Thread(target=handle_data_responder, args=(messages, registry))
    worker.start()
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert connection.sent == ["a", "b"]
    assert messages.get_nowait() == "c"