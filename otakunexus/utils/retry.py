import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from otakunexus.config.settings import settings
from otakunexus.utils.errors.handler import HttpError, MalformedResponse, NetworkFailure
from otakunexus.utils.logger import logger

T = TypeVar('T')


def linear_backoff(base_delay: float) -> Callable[[int], float]:
    """Délai linéaire: tentative × base_delay secondes."""
    def backoff(attempt: int) -> float:
        return attempt * base_delay
    return backoff


def is_retryable_error(error: Exception) -> bool:
    """Échecs réseau, réponses 5xx/429 et JSON invalide méritent une nouvelle tentative."""
    if isinstance(error, (NetworkFailure, MalformedResponse)):
        return True
    if isinstance(error, HttpError):
        return error.status_code >= 500 or error.status_code == 429
    return False


@dataclass
class RetryPolicy:
    """Politique de tentatives: nombre maximum, délai entre tentatives, erreurs éligibles."""
    max_attempts: int = 2
    backoff: Callable[[int], float] = field(default_factory=lambda: linear_backoff(1.0))
    retry_on: Callable[[Exception], bool] = is_retryable_error

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts doit valoir au moins 1 (reçu {self.max_attempts})")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, settings.RETRY_MAX_ATTEMPTS or 1),
            backoff=linear_backoff(settings.RETRY_BASE_DELAY or 0.0),
        )

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "opération") -> T:
        """Exécute l'opération en respectant la politique; relève la dernière erreur."""
        last_exception: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except Exception as e:
                last_exception = e
                logger.log("WARNING", f"Tentative {attempt}/{self.max_attempts} échouée pour {label}: {e}")

                if not self.retry_on(e) or attempt >= self.max_attempts:
                    break

                delay = self.backoff(attempt)
                if delay > 0:
                    await asyncio.sleep(delay)

        logger.log("ERROR", f"{label} a échoué après {attempt} tentative(s)")
        raise last_exception
