"""
Binance Connector

Binance WebSocket stream'leri için bağlantı yönetimi: stream oturumları,
keepalive, stream adresleri ve listen key yönetimi.
"""

from binance_connector.api.stream_session import NAME, VERSION

__version__ = VERSION

__all__ = ['NAME', 'VERSION', '__version__']
