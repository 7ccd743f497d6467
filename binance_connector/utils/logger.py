"""
Loglama Modülü

Bu modül, kütüphane genelinde kullanılacak loglama sistemini sağlar.
Loguru kütüphanesi kullanılarak renkli konsol çıktısı ve dosya rotasyonu desteklenir.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logger(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size: int = 10,
    backup_count: int = 5,
    console_output: bool = True
) -> None:
    """
    Logger'ı yapılandır.

    Args:
        level: Log seviyesi (DEBUG, INFO, WARNING, ERROR)
        log_file: Log dosyasının yolu
        max_size: Maksimum log dosyası boyutu (MB)
        backup_count: Saklanacak yedek dosya sayısı
        console_output: Konsola log yazılsın mı
    """
    logger.remove()
    logger.enable("binance_connector")

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    if console_output:
        logger.add(
            sys.stderr,
            format=log_format,
            level=level,
            colorize=True
        )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            format=log_format.replace("<green>", "").replace("</green>", "")
                            .replace("<level>", "").replace("</level>", "")
                            .replace("<cyan>", "").replace("</cyan>", ""),
            level=level,
            rotation=f"{max_size} MB",
            retention=backup_count,
            compression="zip"
        )


def get_logger(name: str = "binance_connector"):
    """
    Belirtilen isimle bir logger instance'ı döndür.

    Args:
        name: Logger ismi

    Returns:
        Logger instance
    """
    return logger.bind(name=name)


# Kütüphane olarak kullanıldığında uygulama açıkça etkinleştirene kadar sessiz kal
logger.configure(extra={"name": "binance_connector"})
logger.disable("binance_connector")
