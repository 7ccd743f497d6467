"""
WebSocket Stream Client Modülü

Binance market ve user data stream'leri için adres oluşturur ve her
stream tipi için bir abonelik metodu sunar. Her metod ``(done, stop)``
çifti döndürür; mesajlar handler'a ham byte olarak iletilir.
"""

from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from binance_connector.api.stream_session import (
    ErrHandler,
    WsConfig,
    WsHandler,
    ws_serve,
)
from binance_connector.utils.logger import get_logger

logger = get_logger(__name__)

Symbols = Union[str, Sequence[str]]
ServeResult = Tuple["Future[None]", Callable[[], None]]


class WebsocketStreamClient:
    """
    Binance WebSocket market stream istemcisi.

    Tekil modda her abonelik ``<base>/ws/<stream>`` adresine, birleşik
    modda ise ``<base>/stream?streams=<a>/<b>`` adresine bağlanır.
    """

    MAINNET_WS_URL = "wss://stream.binance.com:9443"
    TESTNET_WS_URL = "wss://testnet.binance.vision"

    DEPTH_LEVELS = (5, 10, 20)
    UPDATE_SPEEDS = ("100ms", "1000ms")

    def __init__(
        self,
        is_combined: bool = False,
        base_url: Optional[str] = None,
        testnet: bool = False,
        ws_settings: Optional[Dict[str, Any]] = None
    ):
        """
        WebsocketStreamClient'ı başlat.

        Args:
            is_combined: Birleşik stream modu
            base_url: Özel base URL (verilirse testnet yok sayılır)
            testnet: Testnet adresini kullan
            ws_settings: ``Settings.websocket`` sözlüğü (keepalive, timeout vb.)
        """
        if base_url is None:
            base_url = self.TESTNET_WS_URL if testnet else self.MAINNET_WS_URL

        self.base_url = base_url.rstrip("/")
        self.is_combined = is_combined
        self.ws_settings = ws_settings or {}

        if is_combined:
            self.endpoint = f"{self.base_url}/stream?streams="
        else:
            self.endpoint = f"{self.base_url}/ws"

        logger.debug(
            f"WebsocketStreamClient başlatıldı - Endpoint: {self.endpoint}"
        )

    @classmethod
    def from_settings(cls, settings: Any, is_combined: bool = False) -> "WebsocketStreamClient":
        """
        Settings nesnesinden istemci oluştur.

        Args:
            settings: ``Settings`` nesnesi
            is_combined: Birleşik stream modu

        Returns:
            WebsocketStreamClient
        """
        return cls(
            is_combined=is_combined,
            base_url=settings.get('binance.stream_url'),
            testnet=settings.is_testnet(),
            ws_settings=settings.websocket
        )

    def _get_stream_url(self, streams: List[str]) -> str:
        """Stream isimlerinden bağlantı adresini oluştur."""
        if not streams:
            raise ValueError("En az bir stream gerekli")

        if self.is_combined:
            return self.endpoint + "/".join(streams)

        if len(streams) > 1:
            raise ValueError("Birden fazla stream için is_combined=True kullanın")
        return f"{self.endpoint}/{streams[0]}"

    def _symbols(self, symbol: Symbols) -> List[str]:
        if isinstance(symbol, str):
            return [symbol.lower()]
        return [s.lower() for s in symbol]

    def subscribe(
        self,
        streams: Union[str, Sequence[str]],
        handler: WsHandler,
        err_handler: ErrHandler
    ) -> ServeResult:
        """
        İsmi verilen stream(ler)e abone ol.

        Args:
            streams: Stream ismi veya listesi (örn: 'btcusdt@trade')
            handler: Ham mesaj callback'i
            err_handler: Hata callback'i

        Returns:
            (done, stop) çifti
        """
        if isinstance(streams, str):
            streams = [streams]
        url = self._get_stream_url(list(streams))
        config = WsConfig.from_settings(url, self.ws_settings)

        logger.info(f"Stream'e abone olunuyor: {url}")
        return ws_serve(config, handler, err_handler)

    def agg_trade(self, symbol: Symbols, handler: WsHandler, err_handler: ErrHandler) -> ServeResult:
        """Aggregated trade stream'i."""
        streams = [f"{s}@aggTrade" for s in self._symbols(symbol)]
        return self.subscribe(streams, handler, err_handler)

    def trade(self, symbol: Symbols, handler: WsHandler, err_handler: ErrHandler) -> ServeResult:
        """Ham trade stream'i."""
        streams = [f"{s}@trade" for s in self._symbols(symbol)]
        return self.subscribe(streams, handler, err_handler)

    def kline(
        self,
        symbol: Symbols,
        interval: str,
        handler: WsHandler,
        err_handler: ErrHandler
    ) -> ServeResult:
        """
        Kline (mum) stream'ine abone ol.

        Args:
            symbol: Sembol veya sembol listesi
            interval: Zaman aralığı (1m, 5m, 1h, vb.)
            handler: Ham mesaj callback'i
            err_handler: Hata callback'i

        Returns:
            (done, stop) çifti
        """
        streams = [f"{s}@kline_{interval}" for s in self._symbols(symbol)]
        return self.subscribe(streams, handler, err_handler)

    def mini_ticker(self, symbol: Symbols, handler: WsHandler, err_handler: ErrHandler) -> ServeResult:
        """Sembol bazlı mini ticker stream'i."""
        streams = [f"{s}@miniTicker" for s in self._symbols(symbol)]
        return self.subscribe(streams, handler, err_handler)

    def all_mini_tickers(self, handler: WsHandler, err_handler: ErrHandler) -> ServeResult:
        """Tüm sembollerin mini ticker stream'i."""
        return self.subscribe("!miniTicker@arr", handler, err_handler)

    def ticker(self, symbol: Symbols, handler: WsHandler, err_handler: ErrHandler) -> ServeResult:
        """24hr ticker stream'i."""
        streams = [f"{s}@ticker" for s in self._symbols(symbol)]
        return self.subscribe(streams, handler, err_handler)

    def all_tickers(self, handler: WsHandler, err_handler: ErrHandler) -> ServeResult:
        """Tüm sembollerin 24hr ticker stream'i."""
        return self.subscribe("!ticker@arr", handler, err_handler)

    def book_ticker(self, symbol: Symbols, handler: WsHandler, err_handler: ErrHandler) -> ServeResult:
        """En iyi alış/satış fiyatı stream'i."""
        streams = [f"{s}@bookTicker" for s in self._symbols(symbol)]
        return self.subscribe(streams, handler, err_handler)

    def partial_depth(
        self,
        symbol: Symbols,
        levels: int,
        handler: WsHandler,
        err_handler: ErrHandler,
        update_speed: str = "1000ms"
    ) -> ServeResult:
        """
        Sınırlı seviyeli order book stream'ine abone ol.

        Args:
            symbol: Sembol veya sembol listesi
            levels: Seviye sayısı (5, 10 veya 20)
            handler: Ham mesaj callback'i
            err_handler: Hata callback'i
            update_speed: Güncelleme hızı ('100ms' veya '1000ms')

        Returns:
            (done, stop) çifti
        """
        if levels not in self.DEPTH_LEVELS:
            raise ValueError(f"Geçersiz depth seviyesi: {levels}")
        suffix = self._speed_suffix(update_speed)
        streams = [f"{s}@depth{levels}{suffix}" for s in self._symbols(symbol)]
        return self.subscribe(streams, handler, err_handler)

    def diff_depth(
        self,
        symbol: Symbols,
        handler: WsHandler,
        err_handler: ErrHandler,
        update_speed: str = "1000ms"
    ) -> ServeResult:
        """Order book fark (diff) stream'i."""
        suffix = self._speed_suffix(update_speed)
        streams = [f"{s}@depth{suffix}" for s in self._symbols(symbol)]
        return self.subscribe(streams, handler, err_handler)

    def user_data(self, listen_key: str, handler: WsHandler, err_handler: ErrHandler) -> ServeResult:
        """
        User data stream'ine abone ol.

        Args:
            listen_key: REST API'den alınan listen key
            handler: Ham mesaj callback'i
            err_handler: Hata callback'i

        Returns:
            (done, stop) çifti
        """
        if not listen_key:
            raise ValueError("Listen key gerekli")
        return self.subscribe(listen_key, handler, err_handler)

    def _speed_suffix(self, update_speed: str) -> str:
        if update_speed not in self.UPDATE_SPEEDS:
            raise ValueError(f"Geçersiz güncelleme hızı: {update_speed}")
        # 1000ms varsayılan hız, isme eklenmez
        return "@100ms" if update_speed == "100ms" else ""
