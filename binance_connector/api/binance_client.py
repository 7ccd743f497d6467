"""
Binance REST Client Modülü

User data stream için gerekli listen key yaşam döngüsünü (oluşturma,
uzatma, kapatma) python-binance istemcisi üzerinden yönetir.
"""

from typing import Any, Dict

from binance.client import Client
from binance.exceptions import BinanceAPIException

from binance_connector.utils.logger import get_logger

logger = get_logger(__name__)


class BinanceClient:
    """
    Binance Spot REST istemcisi.

    Listen key'ler 60 dakika geçerlidir; stream açık kaldığı sürece
    ``keepalive_listen_key`` ile periyodik olarak uzatılmalıdır.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str = '',
        testnet: bool = False
    ):
        """
        BinanceClient'ı başlat.

        Args:
            api_key: Binance API anahtarı
            api_secret: Binance API secret
            testnet: Testnet modunu kullan
        """
        self.api_key = api_key
        self.api_secret = api_secret
        self.testnet = testnet

        self.client = Client(api_key, api_secret, testnet=testnet)

        logger.info(f"BinanceClient başlatıldı - Testnet: {testnet}")

    def ping(self) -> Dict[str, Any]:
        """
        REST API erişilebilirliğini kontrol et.

        Returns:
            Boş dictionary (başarılı ise)
        """
        try:
            return self.client.ping()
        except BinanceAPIException as e:
            logger.error(f"Ping başarısız: {e}")
            raise

    def new_listen_key(self) -> str:
        """
        Yeni bir user data stream listen key'i oluştur.

        Returns:
            Listen key
        """
        try:
            listen_key = self.client.stream_get_listen_key()
            logger.debug("Listen key oluşturuldu")
            return listen_key
        except BinanceAPIException as e:
            logger.error(f"Listen key oluşturulamadı: {e}")
            raise

    def keepalive_listen_key(self, listen_key: str) -> Dict[str, Any]:
        """
        Listen key'in geçerlilik süresini uzat.

        Args:
            listen_key: Listen key

        Returns:
            API yanıtı
        """
        try:
            return self.client.stream_keepalive(listen_key)
        except BinanceAPIException as e:
            logger.error(f"Listen key uzatılamadı: {e}")
            raise

    def close_listen_key(self, listen_key: str) -> Dict[str, Any]:
        """
        User data stream'i kapat.

        Args:
            listen_key: Listen key

        Returns:
            API yanıtı
        """
        try:
            result = self.client.stream_close(listen_key)
            logger.info("User data stream kapatıldı")
            return result
        except BinanceAPIException as e:
            logger.error(f"Listen key kapatılamadı: {e}")
            raise

    def close(self) -> None:
        """
        Client bağlantısını kapat.
        """
        if self.client:
            self.client.close_connection()
            logger.info("Binance client bağlantısı kapatıldı")
