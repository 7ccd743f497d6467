"""
API Modülü

WebSocket stream oturumları, stream istemcisi ve listen key REST istemcisi.
"""

from binance_connector.api.binance_client import BinanceClient
from binance_connector.api.errors import (
    FrameTooLargeError,
    KeepaliveTimeoutError,
    StreamClosedError,
    WebsocketConnectError,
    WebsocketError,
    WebsocketHandshakeError,
)
from binance_connector.api.keepalive import KeepaliveMonitor
from binance_connector.api.reconnect import ReconnectingStream
from binance_connector.api.stream_client import WebsocketStreamClient
from binance_connector.api.stream_session import (
    StreamSession,
    TerminationReason,
    WsConfig,
    ws_serve,
)

__all__ = [
    'BinanceClient',
    'FrameTooLargeError',
    'KeepaliveMonitor',
    'KeepaliveTimeoutError',
    'ReconnectingStream',
    'StreamClosedError',
    'StreamSession',
    'TerminationReason',
    'WebsocketConnectError',
    'WebsocketError',
    'WebsocketHandshakeError',
    'WebsocketStreamClient',
    'WsConfig',
    'ws_serve'
]
