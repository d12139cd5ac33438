import socket

import pytest

from ssm2dash.utils import format_response, get_frontend, write_response


def _split(response: bytes):
    head, _, body = response.partition(b"\r\n\r\n")
    status_line, *headers = head.decode("utf-8").split("\r\n")
    return status_line, headers, body


def test_format_response_ok_with_body():
    assert format_response(200, None, "abc") == b"HTTP/1.1 200 \r\nContent-Length: 3\r\n\r\nabc"


def test_format_response_empty():
    assert format_response(404) == b"HTTP/1.1 404 \r\nContent-Length: 0\r\n\r\n"


def test_format_response_message_in_status_line():
    status_line, _, _ = _split(format_response(400, "Bad Request"))
    assert status_line.split(" ", 2) == ["HTTP/1.1", "400", "Bad Request"]


@pytest.mark.parametrize("contents", ["8889", "héllo wörld", "<html></html>\n"])
def test_content_length_matches_body(contents):
    _, headers, body = _split(format_response(200, None, contents))
    assert body.decode("utf-8") == contents
    assert headers == [f"Content-Length: {len(body)}"]


def test_write_response_sends_formatted_bytes():
    left, right = socket.socketpair()
    with left, right:
        write_response(left, 200, None, "data")
        left.shutdown(socket.SHUT_WR)
        received = b""
        while chunk := right.recv(1024):
            received += chunk
    assert received == format_response(200, None, "data")


def test_get_frontend_reads_file(tmp_path):
    (tmp_path / "index.html").write_text("<p>dash</p>", encoding="utf-8")
    assert get_frontend("/index.html", tmp_path) == "<p>dash</p>"


def test_get_frontend_nested(tmp_path):
    (tmp_path / "js").mkdir()
    (tmp_path / "js" / "app.js").write_text("let x = 1;", encoding="utf-8")
    assert get_frontend("/js/app.js", str(tmp_path)) == "let x = 1;"


def test_get_frontend_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_frontend("/missing.html", tmp_path)