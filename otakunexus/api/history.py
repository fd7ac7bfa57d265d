from fastapi import APIRouter, Body, Depends

from otakunexus.utils.database import WatchHistoryRepository
from otakunexus.utils.dependencies import get_watch_history, require_session_id
from otakunexus.utils.validation.models import WatchEntry

history_router = APIRouter()


@history_router.get("/api/history")
async def get_history(
    session_id: str = Depends(require_session_id),
    history: WatchHistoryRepository = Depends(get_watch_history),
):
    """Dernier épisode regardé par anime pour la session."""
    return {"success": True, "history": await history.get_all(session_id)}


@history_router.put("/api/history/{anime_id}")
async def put_history(
    anime_id: str,
    episode_number: int = Body(..., embed=True, alias="episodeNumber", ge=0),
    session_id: str = Depends(require_session_id),
    history: WatchHistoryRepository = Depends(get_watch_history),
):
    entry = WatchEntry(animeId=anime_id, episodeNumber=episode_number)
    await history.record(session_id, entry.animeId, entry.episodeNumber)
    return {"success": True, "entry": entry.model_dump()}
