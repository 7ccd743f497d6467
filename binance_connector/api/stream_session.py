"""
Stream Session Modülü

Tek bir WebSocket stream bağlantısının yaşam döngüsünü yönetir:
bağlantıyı kurar, gelen her mesajı sırayla handler'a iletir ve
çağırana ``done`` (oturum bitti) ile ``stop`` (kapatma isteği)
sinyallerini sunar.

Her oturumda en fazla üç thread çalışır: okuma döngüsü, koordinatör ve
(etkinse) keepalive. ``done`` yalnızca okuma döngüsü döndükten sonra ve
tam olarak bir kez tamamlanır.
"""

import concurrent.futures
import struct
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

import websocket

from binance_connector.api.errors import (
    FrameTooLargeError,
    KeepaliveTimeoutError,
    StreamClosedError,
    WebsocketConnectError,
    WebsocketHandshakeError,
)
from binance_connector.api.keepalive import KeepaliveMonitor
from binance_connector.utils.logger import get_logger

logger = get_logger(__name__)

NAME = "binance-connector-python"
VERSION = "0.5.0"

# Tek bir mesaj için varsayılan boyut limiti (byte)
DEFAULT_READ_LIMIT = 655350
DEFAULT_HANDSHAKE_TIMEOUT = 10.0
DEFAULT_KEEPALIVE_TIMEOUT = 60.0

WsHandler = Callable[[bytes], Any]
ErrHandler = Callable[[Exception], Any]


class TerminationReason(Enum):
    """Oturumun sonlanma nedeni."""
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class WsConfig:
    """WebSocket oturum ayarları."""
    endpoint: str
    keepalive: bool = False
    timeout: float = DEFAULT_KEEPALIVE_TIMEOUT
    read_limit: int = DEFAULT_READ_LIMIT
    handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT

    @classmethod
    def from_settings(cls, endpoint: str, ws_settings: Dict[str, Any]) -> "WsConfig":
        """
        Settings'in ``websocket`` bölümünden config oluştur.

        Args:
            endpoint: Bağlanılacak tam adres
            ws_settings: ``Settings.websocket`` sözlüğü

        Returns:
            WsConfig nesnesi
        """
        return cls(
            endpoint=endpoint,
            keepalive=ws_settings.get('keepalive', False),
            timeout=float(ws_settings.get('timeout', DEFAULT_KEEPALIVE_TIMEOUT)),
            read_limit=int(ws_settings.get('read_limit', DEFAULT_READ_LIMIT)),
            handshake_timeout=float(
                ws_settings.get('handshake_timeout', DEFAULT_HANDSHAKE_TIMEOUT)
            )
        )


class StreamSession:
    """
    Tek bir WebSocket stream oturumu.

    ``handler`` her mesaj için okuma döngüsünden senkron çağrılır; yavaş bir
    handler sonraki okumayı geciktirir. ``err_handler`` oturum başına en
    fazla bir kez ve yalnızca çağıran ``stop`` demeden biten oturumlarda
    çağrılır. Bir oturum bittikten sonra tekrar açılamaz; yeniden bağlanmak
    için yeni bir oturum açılmalıdır.
    """

    def __init__(
        self,
        config: WsConfig,
        handler: WsHandler,
        err_handler: ErrHandler
    ):
        """
        StreamSession'ı oluştur. Bağlantı ``open`` ile kurulur.

        Args:
            config: Oturum ayarları
            handler: Ham mesaj callback'i
            err_handler: Hata callback'i
        """
        scheme = config.endpoint.partition("://")[0].lower() if config.endpoint else ""
        if scheme not in ("ws", "wss") or "://" not in config.endpoint:
            raise ValueError(f"Geçersiz endpoint: {config.endpoint!r}")
        if not callable(handler) or not callable(err_handler):
            raise TypeError("handler ve err_handler çağrılabilir olmalı")

        self.config = config
        self.endpoint = config.endpoint
        self._handler = handler
        self._err_handler = err_handler

        self._ws: Optional[websocket.WebSocket] = None
        self._keepalive: Optional[KeepaliveMonitor] = None
        self._reader: Optional[threading.Thread] = None
        self._coordinator: Optional[threading.Thread] = None

        self._lock = threading.Lock()
        self._reason = TerminationReason.RUNNING
        self._wake = threading.Event()
        self.done: "Future[None]" = Future()
        # Çağıran tarafından iptal edilemesin
        self.done.set_running_or_notify_cancel()

    @classmethod
    def open(
        cls,
        config: WsConfig,
        handler: WsHandler,
        err_handler: ErrHandler
    ) -> "StreamSession":
        """
        Bağlantıyı kur ve oturumu başlat.

        Args:
            config: Oturum ayarları
            handler: Ham mesaj callback'i
            err_handler: Hata callback'i

        Returns:
            Çalışan StreamSession

        Raises:
            WebsocketHandshakeError: Sunucu upgrade isteğini reddetti
            WebsocketConnectError: Diğer bağlantı hataları
        """
        session = cls(config, handler, err_handler)
        session._connect()
        session._start()
        return session

    @property
    def reason(self) -> TerminationReason:
        """Oturumun güncel sonlanma durumu."""
        with self._lock:
            return self._reason

    def stop(self) -> None:
        """
        Oturumun kapanmasını iste.

        Hiçbir zaman bloklamaz; oturum zaten bittiyse etkisizdir.
        """
        with self._lock:
            if self._reason is not TerminationReason.RUNNING:
                return
            self._reason = TerminationReason.STOPPED

        logger.debug(f"Stream durdurma istendi: {self.endpoint}")
        self._wake.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Oturumun bitmesini bekle.

        Args:
            timeout: Maksimum bekleme süresi (saniye)

        Returns:
            Oturum bittiyse True
        """
        try:
            self.done.result(timeout)
        except concurrent.futures.TimeoutError:
            return False
        return True

    def _connect(self) -> None:
        header = [f"User-Agent: {NAME}/{VERSION}"]
        try:
            ws = websocket.create_connection(
                self.endpoint,
                timeout=self.config.handshake_timeout,
                header=header,
                enable_multithread=True
            )
        except websocket.WebSocketBadStatusException as e:
            logger.error(f"Handshake başarısız: {self.endpoint} - HTTP {e.status_code}")
            raise WebsocketHandshakeError(self.endpoint, e.status_code, e) from e
        except (websocket.WebSocketException, OSError) as e:
            logger.error(f"Bağlantı kurulamadı: {self.endpoint} - {e}")
            raise WebsocketConnectError(self.endpoint, e) from e

        # Okumalar süresiz bloklar, canlılık keepalive ile takip edilir
        ws.settimeout(None)
        self._ws = ws
        logger.info(f"WebSocket bağlantısı açıldı: {self.endpoint}")

    def _start(self) -> None:
        if self.config.keepalive:
            self._keepalive = KeepaliveMonitor(self._ws, self.config.timeout)
            self._keepalive.start()

        self._reader = threading.Thread(
            target=self._read_loop,
            name="ws-reader",
            daemon=True
        )
        self._coordinator = threading.Thread(
            target=self._coordinate,
            name="ws-coordinator",
            daemon=True
        )
        self._reader.start()
        self._coordinator.start()

    def _read_loop(self) -> None:
        try:
            while True:
                message = self._receive_message()
                try:
                    self._handler(message)
                except Exception:
                    logger.exception("Mesaj handler hatası")
        except Exception as e:
            self._fail(e)
        finally:
            self._wake.set()

    def _receive_message(self) -> bytes:
        """
        Bir sonraki veri mesajını oku.

        Kontrol frame'leri burada işlenir: ping'e pong ile cevap verilir,
        pong keepalive'a bildirilir, close frame hata olarak yükseltilir.
        Parçalı mesajlar birleştirilir ve toplam boyut limite karşı
        kontrol edilir.

        Returns:
            Mesajın ham içeriği
        """
        limit = self.config.read_limit
        chunks = []
        size = 0

        while True:
            self._check_declared_length(size, limit)
            frame = self._ws.recv_frame()
            opcode = frame.opcode

            if opcode in (websocket.ABNF.OPCODE_TEXT, websocket.ABNF.OPCODE_BINARY):
                if chunks:
                    raise websocket.WebSocketProtocolException(
                        "Parçalı mesaj tamamlanmadan yeni mesaj geldi"
                    )
            elif opcode == websocket.ABNF.OPCODE_CONT:
                if not chunks:
                    raise websocket.WebSocketProtocolException(
                        "Beklenmeyen continuation frame"
                    )
            elif opcode == websocket.ABNF.OPCODE_PING:
                self._ws.pong(frame.data)
                continue
            elif opcode == websocket.ABNF.OPCODE_PONG:
                if self._keepalive is not None:
                    self._keepalive.ack(frame.data)
                continue
            elif opcode == websocket.ABNF.OPCODE_CLOSE:
                raise self._close_error(frame.data)
            else:
                raise websocket.WebSocketProtocolException(f"Bilinmeyen opcode: {opcode}")

            data = frame.data
            if isinstance(data, str):
                data = data.encode("utf-8")
            size += len(data)
            if size > limit:
                raise FrameTooLargeError(size, limit)
            chunks.append(data)

            if frame.fin:
                return b"".join(chunks)

    def _check_declared_length(self, size: int, limit: int) -> None:
        """
        Payload okunmadan önce frame başlığındaki uzunluğu kontrol et.

        Başlık ve uzunluk frame buffer'da kalır; ardından gelen
        ``recv_frame`` bunları tekrar okumaz.

        Args:
            size: Mesajın şu ana kadar okunan boyutu
            limit: Mesaj boyutu limiti

        Raises:
            FrameTooLargeError: Bildirilen uzunluk limiti aşıyorsa
        """
        buffer = self._ws.frame_buffer
        if buffer.needs_header():
            buffer.recv_header()
        if buffer.needs_length():
            buffer.recv_length()

        opcode = buffer.header[4]
        if opcode not in (
            websocket.ABNF.OPCODE_TEXT,
            websocket.ABNF.OPCODE_BINARY,
            websocket.ABNF.OPCODE_CONT
        ):
            return

        declared = size + buffer.length
        if declared > limit:
            raise FrameTooLargeError(declared, limit)

    def _close_error(self, payload: bytes) -> StreamClosedError:
        code = None
        reason = ""
        if len(payload) >= 2:
            code = struct.unpack("!H", payload[:2])[0]
            reason = payload[2:].decode("utf-8", errors="replace")

        try:
            self._ws.send_close()
        except (websocket.WebSocketException, OSError) as e:
            logger.debug(f"Close frame cevabı gönderilemedi: {e}")

        return StreamClosedError(code, reason)

    def _fail(self, error: Exception) -> None:
        """Okuma hatasını sonlanma nedenine çevir, gerekiyorsa raporla."""
        with self._lock:
            if self._reason is not TerminationReason.RUNNING:
                logger.debug(f"Stream sessizce kapandı: {self.endpoint}")
                return
            self._reason = TerminationReason.FAILED

        if self._keepalive is not None and self._keepalive.expired:
            error = KeepaliveTimeoutError(self._keepalive.timeout)

        logger.error(f"WebSocket hatası: {error}")
        try:
            self._err_handler(error)
        except Exception:
            logger.exception("Hata handler'ı hatası")

    def _coordinate(self) -> None:
        self._wake.wait()

        try:
            if self.reason is TerminationReason.STOPPED:
                self._interrupt()

            self._reader.join()
            if self._keepalive is not None:
                self._keepalive.stop()
            self._release()

            logger.info(
                f"WebSocket bağlantısı kapandı: {self.endpoint} "
                f"({self.reason.value})"
            )
        finally:
            self.done.set_result(None)

    def _interrupt(self) -> None:
        """Bloklanmış okumayı açmak için bağlantıyı sonlandır."""
        try:
            self._ws.send_close()
        except (websocket.WebSocketException, OSError) as e:
            logger.debug(f"Close frame gönderilemedi: {e}")
        try:
            self._ws.abort()
        except OSError as e:
            logger.debug(f"Soket kapatılamadı: {e}")

    def _release(self) -> None:
        try:
            self._ws.shutdown()
        except OSError as e:
            logger.debug(f"Soket serbest bırakılamadı: {e}")


def ws_serve(
    config: WsConfig,
    handler: WsHandler,
    err_handler: ErrHandler
) -> Tuple["Future[None]", Callable[[], None]]:
    """
    Stream'e bağlan ve ``(done, stop)`` çiftini döndür.

    Args:
        config: Oturum ayarları
        handler: Ham mesaj callback'i
        err_handler: Hata callback'i

    Returns:
        Oturum bitince tamamlanan Future ve kapatma fonksiyonu
    """
    session = StreamSession.open(config, handler, err_handler)
    return session.done, session.stop
