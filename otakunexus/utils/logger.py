import sys
import os

from loguru import logger
from otakunexus.config.settings import settings


def setup_logger():
    """Configure le logger Loguru avec niveaux personnalisés et couleurs."""
    log_level = os.getenv("LOG_LEVEL") or getattr(settings, 'LOG_LEVEL', 'DEBUG') or "DEBUG"

    # Niveaux personnalisés avec icônes
    logger.level("NEXUS", no=50, icon="🚀", color="<fg #7871d6>")
    logger.level("ANIMESAMA", no=48, icon="🐍", color="<fg #4CAF50>")
    logger.level("API", no=45, icon="📡", color="<fg #2196F3>")
    logger.level("STREAM", no=42, icon="🎬", color="<fg #FF9800>")
    logger.level("DATABASE", no=40, icon="🔒", color="<fg #9C27B0>")
    logger.level("PERFORMANCE", no=35, icon="⚡", color="<fg #FFEB3B>")

    logger.level("INFO", icon="💡", color="<fg #00BCD4>")
    logger.level("DEBUG", icon="🔍", color="<fg #795548>")
    logger.level("WARNING", icon="⚠️", color="<fg #FF5722>")
    logger.level("ERROR", icon="❌", color="<fg #F44336>")
    logger.level("SUCCESS", icon="✅", color="<fg #4CAF50>")

    if log_level == "PRODUCTION":
        log_format = "<white>{time:YYYY-MM-DD HH:mm:ss}</white> | <level>{level}</level> | <level>{message}</level>"
        actual_level = "WARNING"
    else:
        log_format = (
            "<white>{time:YYYY-MM-DD}</white> <magenta>{time:HH:mm:ss}</magenta> | "
            "<level>{level.icon}</level> <level>{level}</level> | "
            "<cyan>{module}</cyan>.<cyan>{function}</cyan> - <level>{message}</level>"
        )
        actual_level = "DEBUG"

    logger.remove()
    logger.add(
        sys.stderr,
        level=actual_level,
        format=log_format,
        backtrace=False,
        diagnose=False,
    )

    if log_level == "PRODUCTION":
        logger.log("NEXUS", "MODE PRODUCTION - Logs essentiels uniquement")
    else:
        logger.log("NEXUS", "MODE DEBUG - Logs détaillés activés")


setup_logger()
