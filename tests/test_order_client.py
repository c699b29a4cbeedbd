import io
import os
import socket
import threading

import pytest

import order_client
from framing_config import Config
from framing_results import FailureKind, FramingError
from order_client import DECODE_FAILED_PLACEHOLDER, handle_orders, split_orders
from order_framing import read_order, send_order
from secure_stream import SocketStream
from stream_framing import encode_prefix


def _frame(payload):
    return encode_prefix(len(payload)) + payload


class DuplexStream:
    def __init__(self, incoming):
        self.incoming = io.BytesIO(incoming)
        self.outgoing = io.BytesIO()

    def readinto(self, view):
        return self.incoming.readinto(view)

    def write(self, data):
        return self.outgoing.write(data)

    def flush(self):
        pass


def _clear_rri_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("RRI_"):
            monkeypatch.delenv(key)


def _start_peer(sock, answers):
    """Answer each received order with the next entry of answers, then hang up."""

    def _serve():
        stream = SocketStream(sock)
        for answer in answers:
            if not read_order(stream).ok:
                break
            if answer is None or not send_order(stream, answer).ok:
                break
        sock.close()

    t = threading.Thread(target=_serve, daemon=True)
    t.start()
    return t


def test_split_orders_skips_blank_pieces():
    text = "version: 5.0\naction: info\n=-=\nversion: 5.0\naction: check\n=-=\n"
    assert split_orders(text, "=-=\n") == [
        "version: 5.0\naction: info\n",
        "version: 5.0\naction: check\n",
    ]


def test_handle_orders_writes_answers_with_separator_line():
    stream = DuplexStream(_frame(b"RESULT: success") + _frame("Ähm".encode("utf-8")))
    out = io.StringIO()
    answered = handle_orders(stream, ["order-1", "order-2"], out, Config())
    assert answered == 2
    assert out.getvalue() == "RESULT: success\n=-=\nÄhm\n=-=\n"
    assert stream.outgoing.getvalue() == _frame(b"order-1") + _frame(b"order-2")


def test_handle_orders_records_undecodable_answer_and_continues():
    stream = DuplexStream(_frame(b"\xff\xfe") + _frame(b"second"))
    out = io.StringIO()
    answered = handle_orders(stream, ["a", "b"], out, Config())
    assert answered == 2
    assert out.getvalue() == DECODE_FAILED_PLACEHOLDER + "\n=-=\nsecond\n=-=\n"


def test_handle_orders_aborts_on_truncated_answer():
    stream = DuplexStream(_frame(b"first") + encode_prefix(20) + b"cut")
    out = io.StringIO()
    with pytest.raises(FramingError) as excinfo:
        handle_orders(stream, ["a", "b", "c"], out, Config())
    assert excinfo.value.kind == FailureKind.READ_SHORT
    assert out.getvalue() == "first\n=-=\n"


def test_main_exchanges_orders_from_file(tmp_path, monkeypatch):
    _clear_rri_env(monkeypatch)
    left, right = socket.socketpair()
    peer = _start_peer(right, [b"answer:one", b"answer:two"])
    seen = []

    def fake_connect(cfg):
        seen.append(cfg)
        return left

    monkeypatch.setattr(order_client, "connect", fake_connect)
    orders = tmp_path / "orders.txt"
    orders.write_text("one\n=-=\ntwo\n", encoding="utf-8")
    output = tmp_path / "answers.txt"

    order_client.main(["--orders", str(orders), "--output", str(output),
                       "--host", "rri.example.org", "--port", "700"])
    peer.join(timeout=5)

    assert seen[0].host == "rri.example.org"
    assert seen[0].port == 700
    assert output.read_text(encoding="utf-8") == "answer:one\n=-=\nanswer:two\n=-=\n"
    assert left.fileno() == -1


def test_main_exits_when_peer_hangs_up(tmp_path, monkeypatch):
    _clear_rri_env(monkeypatch)
    left, right = socket.socketpair()
    peer = _start_peer(right, [None])
    monkeypatch.setattr(order_client, "connect", lambda cfg: left)
    orders = tmp_path / "orders.txt"
    orders.write_text("one\n=-=\ntwo\n", encoding="utf-8")
    output = tmp_path / "answers.txt"

    with pytest.raises(SystemExit) as excinfo:
        order_client.main(["--orders", str(orders), "--output", str(output)])
    peer.join(timeout=5)

    assert excinfo.value.code == 1
    assert output.read_text(encoding="utf-8") == ""
    assert left.fileno() == -1


def test_main_exits_when_connect_fails(tmp_path, monkeypatch):
    _clear_rri_env(monkeypatch)

    def refused(cfg):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(order_client, "connect", refused)
    orders = tmp_path / "orders.txt"
    orders.write_text("one\n", encoding="utf-8")
    output = tmp_path / "answers.txt"

    with pytest.raises(SystemExit) as excinfo:
        order_client.main(["--orders", str(orders), "--output", str(output)])
    assert excinfo.value.code == 1
    assert not output.exists()
