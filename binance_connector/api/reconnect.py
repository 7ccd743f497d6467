"""
Yeniden Bağlanma Modülü

Stream oturumları kendi içinde yeniden bağlanmaz. Bu modül, beklenmedik
şekilde biten bir oturumun yerine yenisini açan çağıran taraf katmanını
sağlar.
"""

import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional, Tuple

from binance_connector.api.errors import WebsocketConnectError, WebsocketHandshakeError
from binance_connector.api.stream_session import ErrHandler, WsHandler
from binance_connector.utils.logger import get_logger

logger = get_logger(__name__)

OpenFn = Callable[[WsHandler, ErrHandler], Tuple["Future[None]", Callable[[], None]]]


class ReconnectingStream:
    """
    Oturum bittiğinde otomatik olarak yeniden açılan stream.

    Genel hatalarda ``reconnect_delay`` kadar, handshake hatalarında
    (rate limit, ban vb.) ise her denemede iki katına çıkan süre kadar
    beklenir. Başarılı bir bağlantıdan sonra deneme sayacı sıfırlanır.
    """

    def __init__(
        self,
        open_fn: OpenFn,
        handler: WsHandler,
        err_handler: ErrHandler,
        reconnect_attempts: int = 5,
        reconnect_delay: float = 5
    ):
        """
        ReconnectingStream'i oluştur.

        Args:
            open_fn: ``(handler, err_handler) -> (done, stop)`` döndüren fonksiyon
            handler: Ham mesaj callback'i
            err_handler: Her bağlantı ve akış hatası için çağrılır
            reconnect_attempts: Arka arkaya maksimum deneme sayısı
            reconnect_delay: Denemeler arası temel bekleme süresi (saniye)
        """
        self._open = open_fn
        self._handler = handler
        self._err_handler = err_handler
        self.reconnect_attempts = reconnect_attempts
        self.reconnect_delay = reconnect_delay

        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._current_stop: Optional[Callable[[], None]] = None
        self._thread: Optional[threading.Thread] = None
        self.sessions = 0
        self.done: "Future[None]" = Future()
        self.done.set_running_or_notify_cancel()

    @classmethod
    def from_settings(
        cls,
        open_fn: OpenFn,
        handler: WsHandler,
        err_handler: ErrHandler,
        ws_settings: Dict[str, Any]
    ) -> "ReconnectingStream":
        """
        Settings'in ``websocket`` bölümünden oluştur.

        ``auto_reconnect`` kapalıysa yalnızca tek bir oturum açılır.

        Args:
            open_fn: ``(handler, err_handler) -> (done, stop)`` döndüren fonksiyon
            handler: Ham mesaj callback'i
            err_handler: Hata callback'i
            ws_settings: ``Settings.websocket`` sözlüğü

        Returns:
            ReconnectingStream
        """
        attempts = int(ws_settings.get('reconnect_attempts', 5))
        if not ws_settings.get('auto_reconnect', True):
            attempts = 0

        return cls(
            open_fn,
            handler,
            err_handler,
            reconnect_attempts=attempts,
            reconnect_delay=float(ws_settings.get('reconnect_delay', 5))
        )

    def start(self) -> "ReconnectingStream":
        """Arka planda bağlantı döngüsünü başlat."""
        if self._thread is not None:
            raise RuntimeError("ReconnectingStream zaten başlatıldı")

        self._thread = threading.Thread(
            target=self._run,
            name="ws-reconnect",
            daemon=True
        )
        self._thread.start()
        return self

    def stop(self) -> None:
        """Aktif oturumu kapat ve yeniden bağlanmayı sonlandır."""
        self._stopped.set()
        with self._lock:
            stop = self._current_stop
        if stop is not None:
            stop()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Döngünün bitmesini bekle."""
        if self._thread is None:
            return self.done.done()
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _report(self, error: Exception) -> None:
        try:
            self._err_handler(error)
        except Exception:
            logger.exception("Hata handler'ı hatası")

    def _backoff(self, attempt: int, handshake: bool) -> float:
        if handshake:
            return self.reconnect_delay * (2 ** (attempt - 1))
        return self.reconnect_delay

    def _run(self) -> None:
        attempt = 0

        try:
            while not self._stopped.is_set():
                handshake = False
                try:
                    done, stop = self._open(self._handler, self._report)
                except WebsocketHandshakeError as e:
                    handshake = True
                    self._report(e)
                except WebsocketConnectError as e:
                    self._report(e)
                else:
                    attempt = 0
                    self.sessions += 1
                    with self._lock:
                        self._current_stop = stop
                    # stop() atama öncesinde çağrıldıysa
                    if self._stopped.is_set():
                        stop()
                    done.result()
                    with self._lock:
                        self._current_stop = None

                if self._stopped.is_set():
                    break

                attempt += 1
                if self.reconnect_attempts == 0:
                    logger.info("Yeniden bağlanma kapalı, stream sonlandı")
                    break
                if attempt > self.reconnect_attempts:
                    logger.error("Yeniden bağlanma başarısız")
                    break

                delay = self._backoff(attempt, handshake)
                logger.info(
                    f"Yeniden bağlanma denemesi {attempt}/{self.reconnect_attempts} "
                    f"- {delay}s sonra"
                )
                if self._stopped.wait(delay):
                    break
        finally:
            self.done.set_result(None)
