from typing import Dict, Any, Optional
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from otakunexus.utils.logger import logger


class ErrorCode(Enum):
    """Codes d'erreur standardisés."""
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    NETWORK_FAILURE = "NETWORK_FAILURE"
    HTTP_ERROR = "HTTP_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    NO_DATA_AVAILABLE = "NO_DATA_AVAILABLE"

    ANIME_NOT_FOUND = "ANIME_NOT_FOUND"
    NO_SOURCES_AVAILABLE = "NO_SOURCES_AVAILABLE"


class NexusException(Exception):
    """Exception de base pour Otaku Nexus."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
                 details: Optional[Dict[str, Any]] = None, http_status: int = 500):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.http_status = http_status


class NetworkFailure(NexusException):
    """La requête n'a pas abouti (connexion refusée, timeout...)."""

    def __init__(self, url: str, reason: str = ""):
        super().__init__(
            f"Échec réseau pour {url}: {reason}" if reason else f"Échec réseau pour {url}",
            ErrorCode.NETWORK_FAILURE,
            {"url": url},
            502
        )


class HttpError(NexusException):
    """Réponse HTTP hors 2xx."""

    def __init__(self, url: str, status_code: int):
        super().__init__(
            f"HTTP {status_code} pour {url}",
            ErrorCode.HTTP_ERROR,
            {"url": url, "status_code": status_code},
            502
        )
        self.status_code = status_code


class MalformedResponse(NexusException):
    """JSON invalide ou sans la forme attendue (success/data)."""

    def __init__(self, url: str, reason: str = "format de réponse invalide"):
        super().__init__(
            f"Réponse invalide pour {url}: {reason}",
            ErrorCode.MALFORMED_RESPONSE,
            {"url": url},
            502
        )


class NoDataAvailable(NexusException):
    """L'API a répondu mais sans saisons, épisodes ou sources exploitables."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.NO_DATA_AVAILABLE, details, 404)


class InvalidRequest(NexusException):
    """Paramètre de requête invalide."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.INVALID_REQUEST, details, 400)


class AnimeNotFoundException(NexusException):
    """Anime non trouvé."""

    def __init__(self, anime_id: str):
        super().__init__(
            f"Anime non trouvé: {anime_id}",
            ErrorCode.ANIME_NOT_FOUND,
            {"anime_id": anime_id},
            404
        )


class NoSourcesAvailableException(NexusException):
    """Aucune source vidéo disponible."""

    def __init__(self, episode_id: str):
        super().__init__(
            "Aucune source vidéo disponible pour cet épisode",
            ErrorCode.NO_SOURCES_AVAILABLE,
            {"episode_id": episode_id},
            404
        )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler global pour toutes les exceptions."""
    if isinstance(exc, NexusException):
        logger.warning(f"Exception Nexus: {exc.error_code.value} - {exc.message}")
        return JSONResponse(
            status_code=exc.http_status,
            content={
                "success": False,
                "error": exc.error_code.value,
                "message": exc.message,
                "details": exc.details
            }
        )

    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": "HTTP_ERROR",
                "message": str(exc.detail)
            }
        )

    logger.error(f"Exception non gérée: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "INTERNAL_ERROR",
            "message": "Une erreur interne s'est produite"
        }
    )
