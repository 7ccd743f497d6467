"""
Konfigürasyon Modülü
"""

from binance_connector.config.settings import Settings, get_settings

__all__ = ['Settings', 'get_settings']
