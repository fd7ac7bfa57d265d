import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from otakunexus.scrapers.base import BaseScraper
from otakunexus.utils.http_client import HttpClient
from otakunexus.utils.logger import logger
from otakunexus.utils.retry import RetryPolicy
from otakunexus.utils.validation.models import VideoSource, normalize_language


VIDEO_URL_PATTERNS = [
    re.compile(r'''['"](https?://[^'"\s]+\.m3u8(?:\?[^'"\s]*)?)['"]'''),
    re.compile(r'''['"](https?://[^'"\s]+\.mp4(?:\?[^'"\s]*)?)['"]''')
]

EPISODES_JS_PATTERN = re.compile(r'episodes\.js\?filever=\d+')
EPS_ARRAY_PATTERN = re.compile(r'var\s+(eps\w*)\s*=\s*\[([^\]]*)\]')
QUOTED_PATTERN = re.compile(r"['\"]([^'\"]+)['\"]")

EXCLUDED_EXTENSIONS = ('.js', '.css', '.png', '.jpg', '.svg', '.woff', '.ico', '.gif', '.jpeg')
EXCLUDED_PATTERNS = ('/assets/', '/templates/', '/static/', 'anime-sama.fr/catalogue/', '#')


def is_video_player_url(url: str) -> bool:
    """Vérifie si une URL est un player vidéo valide."""
    if not url or not url.strip() or not url.startswith('http'):
        return False
    url_lower = url.lower()
    if any(ext in url_lower for ext in EXCLUDED_EXTENSIONS):
        return False
    return not any(pattern in url for pattern in EXCLUDED_PATTERNS)


def server_name_from_url(url: str) -> str:
    """Nom lisible du serveur: sous-domaine www et extension retirés (video.sibnet.ru → Sibnet)."""
    host = urlparse(url).netloc.lower().split(':')[0]
    parts = [part for part in host.split('.') if part and part != 'www']
    if len(parts) >= 2:
        return parts[-2].capitalize()
    return parts[0].capitalize() if parts else "Inconnu"


def source_type_from_url(url: str) -> str:
    path = urlparse(url).path.lower()
    if path.endswith('.m3u8'):
        return "hls"
    if path.endswith('.mp4'):
        return "mp4"
    return "embed"


def language_from_url(url: str) -> str:
    """Déduit la langue depuis le chemin anime-sama (/vf/, /vf1/ → VF)."""
    segments = [segment for segment in urlparse(url).path.lower().split('/') if segment]
    for segment in reversed(segments):
        if segment.startswith('vf') or segment == 'vostfr':
            return normalize_language(segment)
    return "VOSTFR"


class EmbedExtractor(BaseScraper):
    """Extraction serveur des sources vidéo directes d'une page de lecteur."""

    def __init__(self, client: HttpClient, retry_policy: Optional[RetryPolicy] = None):
        super().__init__(client, "", retry_policy)

    async def extract(self, url: str, episode_number: Optional[int] = None) -> List[VideoSource]:
        """Récupère la page puis collecte iframes, balises vidéo, URLs directes et lecteurs episodes.js."""
        logger.log("STREAM", f"Extraction embed {url}")
        html = await self._get_text(url)
        language = language_from_url(url)

        candidates = self._extract_from_html(html, url)
        if EPISODES_JS_PATTERN.search(html):
            candidates.extend(await self._extract_from_episodes_js(url, html, episode_number or 1))

        sources = self._build_sources(candidates, language)
        logger.log("STREAM", f"{len(sources)} source(s) extraite(s) depuis {url}")
        return sources

    def _extract_from_html(self, html: str, page_url: str) -> List[str]:
        soup = BeautifulSoup(html, 'html.parser')
        urls = []

        for tag in soup.find_all(['iframe', 'video', 'source']):
            src = tag.get('src') or tag.get('data-src')
            if not src:
                continue
            src = urljoin(page_url, src.strip())
            if tag.name == 'iframe' and not is_video_player_url(src):
                continue
            urls.append(src)

        for pattern in VIDEO_URL_PATTERNS:
            urls.extend(pattern.findall(html))

        return urls

    async def _extract_from_episodes_js(self, page_url: str, html: str, episode_number: int) -> List[str]:
        """Un tableau `eps*` par lecteur: l'entrée episode_number - 1 de chacun."""
        script_name = EPISODES_JS_PATTERN.search(html).group(0)
        script_url = page_url.rstrip('/') + '/' + script_name

        try:
            js_content = await self._get_text(script_url)
        except Exception as e:
            logger.log("WARNING", f"episodes.js indisponible ({script_url}): {e}")
            return []

        player_urls = []
        for _name, body in EPS_ARRAY_PATTERN.findall(js_content):
            entries = QUOTED_PATTERN.findall(body)
            if len(entries) >= episode_number:
                candidate = entries[episode_number - 1].strip()
                if is_video_player_url(candidate):
                    player_urls.append(candidate)

        if not player_urls:
            logger.log("WARNING", f"Aucun lecteur pour l'épisode {episode_number} dans {script_url}")
        return player_urls

    def _build_sources(self, urls: List[str], language: str) -> List[VideoSource]:
        sources = []
        seen = set()
        for url in urls:
            if url in seen:
                continue
            seen.add(url)
            sources.append(VideoSource(
                url=url,
                server=server_name_from_url(url),
                quality="HD",
                language=language,
                type=source_type_from_url(url),
                serverIndex=len(sources),
            ))
        return sources
