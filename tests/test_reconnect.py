"""
Yeniden Bağlanma Testleri

ReconnectingStream'in deneme sayısı, bekleme süreleri ve durdurma
davranışı için testler. Oturumlar sahte (done, stop) çiftleriyle
simüle edilir.
"""

import threading
from concurrent.futures import Future
from unittest.mock import MagicMock

import pytest

from binance_connector.api.errors import (
    StreamClosedError,
    WebsocketConnectError,
    WebsocketHandshakeError,
)
from binance_connector.api.reconnect import ReconnectingStream

GRACE = 5


def finished_session():
    """Hemen bitmiş bir oturum."""
    done = Future()
    done.set_result(None)
    return done, MagicMock()


def pending_session():
    """stop çağrılınca biten oturum."""
    done = Future()
    stop = MagicMock(side_effect=lambda: done.done() or done.set_result(None))
    return done, stop


class TestReconnectingStream:
    """ReconnectingStream sınıfı testleri."""

    def test_gives_up_after_attempts(self):
        """Bağlantı kurulamazsa deneme sayısı kadar tekrar edilir."""
        open_fn = MagicMock(side_effect=WebsocketConnectError("ws://localhost", OSError()))
        err_handler = MagicMock()

        stream = ReconnectingStream(
            open_fn, MagicMock(), err_handler,
            reconnect_attempts=2,
            reconnect_delay=0
        ).start()

        assert stream.wait(GRACE)
        assert open_fn.call_count == 3
        assert err_handler.call_count == 3
        assert stream.done.done()
        assert stream.sessions == 0

    def test_reopens_after_unexpected_end(self):
        """Beklenmedik şekilde biten oturumun yerine yenisi açılır."""
        second = pending_session()
        opened = threading.Event()

        def open_fn(handler, err_handler):
            if open_fn.calls == 0:
                open_fn.calls += 1
                err_handler(StreamClosedError(1006, ""))
                return finished_session()
            open_fn.calls += 1
            opened.set()
            return second
        open_fn.calls = 0

        err_handler = MagicMock()
        stream = ReconnectingStream(
            open_fn, MagicMock(), err_handler,
            reconnect_attempts=3,
            reconnect_delay=0
        ).start()

        assert opened.wait(GRACE)
        stream.stop()

        assert stream.wait(GRACE)
        assert stream.sessions == 2
        assert second[1].called
        assert err_handler.call_count == 1

    def test_stop_ends_loop(self):
        """stop aktif oturumu kapatır ve yeniden bağlanmaz."""
        session = pending_session()
        opened = threading.Event()

        def open_fn(handler, err_handler):
            opened.set()
            return session

        stream = ReconnectingStream(open_fn, MagicMock(), MagicMock()).start()

        assert opened.wait(GRACE)
        stream.stop()

        assert stream.wait(GRACE)
        assert stream.sessions == 1
        session[1].assert_called_once()

    def test_stop_during_backoff(self):
        """Bekleme sırasında stop döngüyü hemen bitirir."""
        attempted = threading.Event()
        calls = []

        def open_fn(handler, err_handler):
            calls.append(1)
            attempted.set()
            raise WebsocketConnectError("ws://localhost")

        stream = ReconnectingStream(
            open_fn, MagicMock(), MagicMock(),
            reconnect_attempts=5,
            reconnect_delay=30
        ).start()

        assert attempted.wait(GRACE)
        stream.stop()

        assert stream.wait(GRACE)
        assert len(calls) == 1

    def test_backoff(self):
        """Handshake hatalarında bekleme katlanarak artar."""
        stream = ReconnectingStream(MagicMock(), MagicMock(), MagicMock(), reconnect_delay=2)

        assert stream._backoff(1, handshake=False) == 2
        assert stream._backoff(3, handshake=False) == 2
        assert stream._backoff(1, handshake=True) == 2
        assert stream._backoff(3, handshake=True) == 8

    def test_handshake_error_reported(self):
        """Handshake hataları da hata handler'ına iletilir."""
        error = WebsocketHandshakeError("ws://localhost", 429)
        err_handler = MagicMock()
        stream = ReconnectingStream(
            MagicMock(side_effect=error), MagicMock(), err_handler,
            reconnect_attempts=0,
            reconnect_delay=0
        ).start()

        assert stream.wait(GRACE)
        err_handler.assert_called_once_with(error)

    def test_from_settings(self):
        """Yeniden bağlanma ayarları settings sözlüğünden okunur."""
        stream = ReconnectingStream.from_settings(
            MagicMock(), MagicMock(), MagicMock(),
            {'auto_reconnect': True, 'reconnect_attempts': 7, 'reconnect_delay': 1.5}
        )

        assert stream.reconnect_attempts == 7
        assert stream.reconnect_delay == 1.5

    def test_from_settings_defaults(self):
        """Eksik anahtarlar için varsayılanlar kullanılır."""
        stream = ReconnectingStream.from_settings(MagicMock(), MagicMock(), MagicMock(), {})

        assert stream.reconnect_attempts == 5
        assert stream.reconnect_delay == 5.0

    def test_auto_reconnect_disabled(self):
        """auto_reconnect kapalıysa biten oturum yeniden açılmaz."""
        open_fn = MagicMock(side_effect=lambda handler, err_handler: finished_session())

        stream = ReconnectingStream.from_settings(
            open_fn, MagicMock(), MagicMock(),
            {'auto_reconnect': False, 'reconnect_attempts': 5, 'reconnect_delay': 0}
        ).start()

        assert stream.wait(GRACE)
        assert stream.reconnect_attempts == 0
        assert open_fn.call_count == 1
        assert stream.sessions == 1

    def test_start_twice(self):
        """İkinci start hata verir."""
        stream = ReconnectingStream(
            MagicMock(side_effect=WebsocketConnectError("ws://localhost")),
            MagicMock(), MagicMock(),
            reconnect_attempts=0
        )
        stream.start()

        with pytest.raises(RuntimeError):
            stream.start()
        assert stream.wait(GRACE)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
