"""
Ayarlar Modülü

Bu modül, YAML konfigürasyon dosyasını ve environment variable'ları
yükleyerek kütüphane genelinde kullanılacak ayarları sağlar.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv


class Settings:
    """
    Ayarları yöneten sınıf.

    YAML konfigürasyon dosyası ve environment variable'ları birleştirerek
    tek bir ayar nesnesi oluşturur.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Settings sınıfını başlat.

        Args:
            config_path: Konfigürasyon dosyasının yolu. None ise varsayılan yol kullanılır.
        """
        load_dotenv()

        if config_path is None:
            config_path = Path.cwd() / "config" / "config.yaml"

        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = self._get_default_config()

        self._load_config()
        self._load_env_overrides()

    def _load_config(self) -> None:
        """YAML konfigürasyon dosyasını yükle ve varsayılanların üzerine yaz."""
        path = self.config_path
        if not path.exists():
            # Örnek konfigürasyon dosyasını dene
            path = self.config_path.with_suffix('.example.yaml')
            if not path.exists():
                return

        with open(path, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f) or {}

        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(self._config.get(section), dict):
                self._config[section].update(values)
            else:
                self._config[section] = values

    def _load_env_overrides(self) -> None:
        """Environment variable'lardan ayarları yükle ve override et."""
        api_key = os.getenv('BINANCE_API_KEY')
        api_secret = os.getenv('BINANCE_API_SECRET')
        testnet = os.getenv('BINANCE_TESTNET')

        if api_key:
            self.set('binance.api_key', api_key)
        if api_secret:
            self.set('binance.api_secret', api_secret)
        if testnet is not None:
            self.set('binance.testnet', testnet.lower() == 'true')

        keepalive = os.getenv('WS_KEEPALIVE')
        if keepalive is not None:
            self.set('websocket.keepalive', keepalive.lower() == 'true')

        timeout = os.getenv('WS_TIMEOUT')
        if timeout:
            self.set('websocket.timeout', float(timeout))

        log_level = os.getenv('LOG_LEVEL')
        if log_level:
            self.set('logging.level', log_level)

    def _get_default_config(self) -> Dict[str, Any]:
        """Varsayılan konfigürasyonu döndür."""
        return {
            'binance': {
                'api_key': '',
                'api_secret': '',
                'testnet': False,
                'stream_url': None
            },
            'websocket': {
                'keepalive': False,
                'timeout': 60,
                'read_limit': 655350,
                'handshake_timeout': 10,
                'auto_reconnect': True,
                'reconnect_attempts': 5,
                'reconnect_delay': 5
            },
            'logging': {
                'level': 'INFO',
                'file_path': None,
                'max_size': 10,
                'backup_count': 5,
                'console_output': True
            }
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Belirtilen anahtara göre ayar değerini döndür.

        Args:
            key: Nokta ile ayrılmış anahtar (örn: 'websocket.timeout')
            default: Anahtar bulunamazsa döndürülecek varsayılan değer

        Returns:
            Ayar değeri veya varsayılan değer
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Belirtilen anahtara değer ata.

        Args:
            key: Nokta ile ayrılmış anahtar (örn: 'binance.api_key')
            value: Atanacak değer
        """
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    @property
    def binance(self) -> Dict[str, Any]:
        """Binance ayarlarını döndür."""
        return self._config.get('binance', {})

    @property
    def websocket(self) -> Dict[str, Any]:
        """WebSocket ayarlarını döndür."""
        return self._config.get('websocket', {})

    @property
    def logging_config(self) -> Dict[str, Any]:
        """Loglama ayarlarını döndür."""
        return self._config.get('logging', {})

    def to_dict(self) -> Dict[str, Any]:
        """Tüm ayarları dictionary olarak döndür."""
        return self._config.copy()

    def is_testnet(self) -> bool:
        """Testnet modunda mı kontrol et."""
        return self.get('binance.testnet', False)

    def validate(self, require_credentials: bool = False) -> bool:
        """
        Konfigürasyonun geçerliliğini kontrol et.

        Args:
            require_credentials: API anahtarları zorunlu mu (user data stream için)

        Returns:
            bool: Konfigürasyon geçerli ise True

        Raises:
            ValueError: Konfigürasyon geçersiz ise
        """
        if require_credentials:
            api_key = self.get('binance.api_key', '')
            if not api_key or api_key == 'YOUR_API_KEY':
                raise ValueError("Geçerli bir Binance API anahtarı gerekli")

        timeout = self.get('websocket.timeout', 60)
        if timeout <= 0:
            raise ValueError("Keepalive timeout pozitif olmalı")

        read_limit = self.get('websocket.read_limit', 655350)
        if read_limit <= 0:
            raise ValueError("Okuma limiti pozitif olmalı")

        if self.get('websocket.reconnect_attempts', 5) < 0:
            raise ValueError("Yeniden bağlanma deneme sayısı negatif olamaz")

        if self.get('websocket.reconnect_delay', 5) < 0:
            raise ValueError("Yeniden bağlanma süresi negatif olamaz")

        return True


# Global settings instance
_settings: Optional[Settings] = None


def get_settings(config_path: Optional[str] = None) -> Settings:
    """
    Global settings instance'ını döndür.

    Args:
        config_path: Konfigürasyon dosyasının yolu

    Returns:
        Settings: Ayarlar nesnesi
    """
    global _settings
    if _settings is None or config_path is not None:
        _settings = Settings(config_path)
    return _settings
