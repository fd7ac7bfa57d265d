from typing import List, Optional, Protocol

from otakunexus.utils.errors.handler import NoSourcesAvailableException
from otakunexus.utils.logger import logger
from otakunexus.utils.validation.models import Episode, EpisodeDetails, VideoSource


class EmbedSource(Protocol):
    """Extraction locale (EmbedExtractor) ou distante (EmbedClient)."""

    async def extract(self, url: str, episode_number: Optional[int] = None) -> List[VideoSource]:
        ...


def build_episode_details(episode: Episode, anime_title: str, sources: List[VideoSource]) -> EpisodeDetails:
    return EpisodeDetails(
        id=episode.id,
        title=episode.title,
        animeTitle=anime_title,
        episodeNumber=episode.episodeNumber,
        sources=sources,
        availableServers=[source.server for source in sources],
        url=episode.url,
    )


class SourceResolver:
    """Sources vidéo d'un épisode: extraction embed, puis streamingSources connues."""

    def __init__(self, embed: EmbedSource):
        self.embed = embed

    async def resolve(self, episode: Episode, anime_title: str) -> EpisodeDetails:
        """Lève NoSourcesAvailableException quand ni l'extraction ni le cache ne donnent de source."""
        try:
            extracted = await self.embed.extract(episode.url, episode.episodeNumber)
        except Exception as e:
            logger.log("WARNING", f"Extraction embed en échec pour {episode.id}: {e}")
            extracted = []

        if extracted:
            logger.log("STREAM", f"{episode.id}: {len(extracted)} source(s) directe(s)")
            return build_episode_details(episode, anime_title, extracted)

        if episode.streamingSources:
            logger.log("STREAM", f"{episode.id}: repli sur {len(episode.streamingSources)} source(s) connue(s)")
            return build_episode_details(episode, anime_title, episode.streamingSources)

        logger.log("WARNING", f"{episode.id}: aucune source vidéo")
        raise NoSourcesAvailableException(episode.id)
