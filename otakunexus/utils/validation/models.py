from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, model_validator


LANGUAGES = ("VF", "VOSTFR")


def normalize_language(value: Optional[str]) -> str:
    """`vf`, `VF`, `vf1`... → VF, tout le reste → VOSTFR."""
    return "VF" if value and value.strip().lower().startswith("vf") else "VOSTFR"


def language_code(language: str) -> str:
    """Code URL d'une langue: VF → vf, VOSTFR → vostfr."""
    return "vf" if normalize_language(language) == "VF" else "vostfr"


class UpstreamModel(BaseModel):
    """Modèle alimenté par l'API externe: un champ `null` reprend sa valeur par défaut."""

    @model_validator(mode="before")
    @classmethod
    def ignore_null_fields(cls, data):
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class VideoSource(UpstreamModel):
    """Source vidéo jouable pour un épisode."""
    url: str = Field(..., min_length=1)
    server: str = Field(default="Anime-Sama")
    quality: str = Field(default="HD")
    language: str = Field(default="VOSTFR")
    type: str = Field(default="streaming")
    serverIndex: int = Field(default=0, ge=0)


class AnimeSummary(UpstreamModel):
    """Carte de résultat de recherche ou de tendance."""
    id: str = Field(..., min_length=1)
    title: str = Field(default="")
    image: str = Field(default="")
    status: str = Field(default="Disponible")
    type: str = Field(default="Anime")
    url: str = Field(default="")
    lastEpisode: Optional[int] = None


class Season(UpstreamModel):
    """Saison telle que décrite par l'API externe."""
    number: int = Field(default=0)
    name: str = Field(default="")
    value: str = Field(default="")
    languages: List[str] = Field(default_factory=lambda: ["VOSTFR"])
    episodeCount: int = Field(default=0, ge=0)
    url: str = Field(default="")
    available: bool = Field(default=True)

    @field_validator("languages", mode="before")
    def validate_languages(cls, v):
        """Normalise les langues en liste de VF/VOSTFR."""
        if isinstance(v, str):
            v = [part for part in v.replace(",", " ").split() if part]
        if not v:
            return ["VOSTFR"]
        normalized = []
        for lang in v:
            lang = normalize_language(str(lang))
            if lang not in normalized:
                normalized.append(lang)
        return normalized


class AnimeData(UpstreamModel):
    """Métadonnées complètes d'un anime."""
    id: str = Field(..., min_length=1)
    title: str = Field(default="")
    description: str = Field(default="")
    image: str = Field(default="")
    genres: List[str] = Field(default_factory=list)
    status: str = Field(default="")
    year: str = Field(default="")
    seasons: List[Season] = Field(default_factory=list)
    url: str = Field(default="")

    @field_validator("genres", mode="before")
    def validate_genres(cls, v):
        if not isinstance(v, list):
            return []
        return [str(genre) for genre in v if genre]

    @field_validator("year", mode="before")
    def validate_year(cls, v):
        return "" if v is None else str(v)


class Episode(BaseModel):
    """Épisode résolu pour un triplet (anime, saison, langue)."""
    id: str
    title: str
    episodeNumber: int = Field(..., ge=0)
    url: str
    language: str
    available: bool = True
    streamingSources: List[VideoSource] = Field(default_factory=list)


class EpisodeDetails(BaseModel):
    """Détails transitoires de lecture, reconstruits à chaque changement."""
    id: str
    title: str
    animeTitle: str
    episodeNumber: int
    sources: List[VideoSource] = Field(default_factory=list)
    availableServers: List[str] = Field(default_factory=list)
    url: str


class WatchEntry(BaseModel):
    """Dernier épisode regardé pour un anime."""
    animeId: str = Field(..., min_length=1)
    episodeNumber: int = Field(..., ge=0)
