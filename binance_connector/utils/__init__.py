"""
Yardımcı Araçlar Modülü

Loglama yardımcıları.
"""

from binance_connector.utils.logger import setup_logger, get_logger

__all__ = [
    'setup_logger',
    'get_logger'
]
