"""
Keepalive Modülü

Açık bir WebSocket bağlantısına periyodik ping gönderir ve son pong
zamanını takip eder. Karşı taraf ``timeout`` süresince cevap vermezse
soketi düşürür; hatanın raporlanması okuma döngüsüne bırakılır.
"""

import select
import threading
import time
from typing import Optional

import websocket

from binance_connector.utils.logger import get_logger

logger = get_logger(__name__)

# Tek bir ping gönderimi için üst sınır (saniye)
PING_SEND_DEADLINE = 10.0


class KeepaliveMonitor:
    """
    Ping/pong tabanlı bağlantı canlılık takipçisi.

    ``ack`` metodu pong frame'lerini işleyen okuma döngüsü tarafından,
    ``last_ack`` ise monitörün kendi thread'i tarafından okunur. İki
    thread arasında paylaşıldığı için lock ile korunur.
    """

    def __init__(self, ws: websocket.WebSocket, timeout: float):
        """
        KeepaliveMonitor'ı oluştur.

        Args:
            ws: Oturuma ait açık WebSocket bağlantısı
            timeout: Pong bekleme toleransı ve ping periyodu (saniye)
        """
        if timeout <= 0:
            raise ValueError("Keepalive timeout pozitif olmalı")

        self._ws = ws
        self.timeout = timeout
        self.send_deadline = min(PING_SEND_DEADLINE, timeout)

        self._lock = threading.Lock()
        self._last_ack = time.monotonic()
        self._halt = threading.Event()
        self._expired = False
        self._thread: Optional[threading.Thread] = None

    @property
    def last_ack(self) -> float:
        """Son pong'un monotonic zamanı."""
        with self._lock:
            return self._last_ack

    @property
    def expired(self) -> bool:
        """Monitör karşı tarafı cevapsız bulduysa True."""
        return self._expired

    def ack(self, payload: bytes = b"") -> None:
        """Pong alındı, zamanı güncelle."""
        with self._lock:
            self._last_ack = time.monotonic()

    def start(self) -> None:
        """Ping döngüsünü ayrı bir thread'de başlat."""
        if self._thread is not None:
            raise RuntimeError("KeepaliveMonitor zaten başlatıldı")

        self._thread = threading.Thread(
            target=self._run,
            name="ws-keepalive",
            daemon=True
        )
        self._thread.start()
        logger.debug(f"Keepalive başlatıldı - Timeout: {self.timeout}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Döngüyü durdur ve thread'in bitmesini bekle.

        Args:
            timeout: Join için maksimum bekleme süresi
        """
        self._halt.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        """Döngü thread'i çalışıyor mu."""
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._halt.is_set():
            sent_at = time.monotonic()
            if not self._send_ping():
                return

            # Bir sonraki tick'i bekle
            if self._halt.wait(self.timeout):
                return

            last_ack = self.last_ack
            idle = time.monotonic() - last_ack
            # Son ping'e cevap geldiyse zamanlama sapması bağlantıyı düşürmez
            if idle > self.timeout and last_ack < sent_at:
                logger.warning(
                    f"Pong alınamadı - Son cevap {idle:.1f}s önce, "
                    f"bağlantı düşürülüyor"
                )
                self._expired = True
                self._drop_connection()
                return

    def _send_ping(self) -> bool:
        """
        Süre sınırı ile ping gönder.

        Returns:
            Gönderim başarılıysa True
        """
        raw_sock = self._ws.sock
        if raw_sock is None:
            return False

        try:
            _, writable, _ = select.select([], [raw_sock], [], self.send_deadline)
            if not writable:
                logger.debug("Ping gönderim süresi aşıldı")
                return False
            self._ws.ping()
        except (websocket.WebSocketException, OSError, ValueError) as e:
            logger.debug(f"Ping gönderilemedi: {e}")
            return False

        return True

    def _drop_connection(self) -> None:
        """Bekleyen okumayı açmak için soketi kapat."""
        try:
            self._ws.abort()
        except OSError as e:
            logger.debug(f"Soket kapatılamadı: {e}")
