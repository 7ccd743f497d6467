"""
WebSocket Hata Modülü

Stream bağlantılarında oluşabilecek hata tipleri. Bağlantı kurulurken
oluşan hatalar ``open`` çağrısından doğrudan fırlatılır, akış sırasında
oluşanlar ise hata callback'ine iletilir.
"""

from typing import Optional


class WebsocketError(Exception):
    """Tüm WebSocket hatalarının temel sınıfı."""


class WebsocketConnectError(WebsocketError):
    """
    Bağlantı kurulamadı (ağ, DNS, TLS vb.).

    Args:
        endpoint: Bağlanılmaya çalışılan adres
        cause: Altta yatan hata
    """

    def __init__(self, endpoint: str, cause: Optional[BaseException] = None):
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"Bağlantı kurulamadı: {endpoint} ({cause})")


class WebsocketHandshakeError(WebsocketConnectError):
    """
    HTTP Upgrade el sıkışması başarısız oldu.

    Sunucu isteği reddettiğinde (403, 429, 451 vb.) fırlatılır. Çağıran
    taraf genel bağlantı hatalarından farklı bir bekleme stratejisi
    uygulayabilir.
    """

    def __init__(
        self,
        endpoint: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None
    ):
        self.status_code = status_code
        super().__init__(endpoint, cause)
        self.args = (f"Handshake başarısız: {endpoint} (HTTP {status_code})",)


class StreamClosedError(WebsocketError):
    """Karşı taraf close frame gönderdi."""

    def __init__(self, code: Optional[int] = None, reason: str = ""):
        self.code = code
        self.reason = reason
        super().__init__(f"Bağlantı karşı taraftan kapatıldı - Kod: {code}, Mesaj: {reason}")


class FrameTooLargeError(WebsocketError):
    """Gelen mesaj okuma limitini aştı."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Mesaj boyutu limiti aştı: {size} > {limit} byte")


class KeepaliveTimeoutError(WebsocketError):
    """Karşı taraf ping'lere zamanında pong ile cevap vermedi."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"{timeout} saniye içinde pong alınamadı")
