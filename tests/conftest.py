"""
Test Yardımcıları

Session testleri için yerel WebSocket sunucusu (test peer).
"""

import base64
import hashlib
import socket
import threading

import pytest
from websockets.exceptions import ConnectionClosed
from websockets.sync.server import serve


class PeerServer:
    """Arka plan thread'inde çalışan yerel WebSocket sunucusu."""

    def __init__(self, handler):
        self._server = serve(handler, "127.0.0.1", 0, compression=None)
        self.port = self._server.socket.getsockname()[1]
        self.url = f"ws://127.0.0.1:{self.port}"
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def close(self):
        self._server.shutdown()
        self._thread.join(5)


class RawPeer:
    """
    El sıkışmayı elle yapan ve ham byte gönderen sunucu.

    websockets kütüphanesinin izin vermediği bozuk veya yarım frame'leri
    göndermek için kullanılır.
    """

    GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"

    def __init__(self, payload: bytes):
        self._payload = payload
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(1)
        self.port = self._listener.getsockname()[1]
        self.url = f"ws://127.0.0.1:{self.port}"
        self._release = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        try:
            conn, _ = self._listener.accept()
        except OSError:
            return
        with conn:
            request = b""
            while b"\r\n\r\n" not in request:
                chunk = conn.recv(4096)
                if not chunk:
                    return
                request += chunk

            key = ""
            for line in request.decode("latin-1").split("\r\n"):
                name, _, value = line.partition(":")
                if name.strip().lower() == "sec-websocket-key":
                    key = value.strip()
            accept = base64.b64encode(
                hashlib.sha1((key + self.GUID).encode()).digest()
            ).decode()

            conn.sendall(
                b"HTTP/1.1 101 Switching Protocols\r\n"
                b"Upgrade: websocket\r\n"
                b"Connection: Upgrade\r\n"
                + f"Sec-WebSocket-Accept: {accept}\r\n\r\n".encode()
            )
            conn.sendall(self._payload)
            # Kalan payload hiç gönderilmez
            self._release.wait(10)

    def close(self):
        self._release.set()
        self._listener.close()
        self._thread.join(5)


def hold_open(ws):
    """İstemci kapatana kadar bağlantıyı açık tut."""
    try:
        for _ in ws:
            pass
    except ConnectionClosed:
        pass


@pytest.fixture
def ws_peer():
    """Handler alan ve çalışan bir PeerServer döndüren factory."""
    servers = []

    def factory(handler):
        server = PeerServer(handler)
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.close()


@pytest.fixture
def closed_port():
    """Dinlenmeyen bir port numarası."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def raw_peer():
    """Ham byte gönderen RawPeer döndüren factory."""
    peers = []

    def factory(payload):
        peer = RawPeer(payload)
        peers.append(peer)
        return peer

    yield factory

    for peer in peers:
        peer.close()
