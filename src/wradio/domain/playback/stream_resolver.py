"""Stream URL resolution for page permalinks using yt-dlp.

Catalog tracks normally point straight at audio files. Tracks that point at
a SoundCloud or YouTube page are resolved to a playable stream URL, with
short-lived caching since stream URLs expire.
"""

import asyncio
from time import time
from typing import Optional
from urllib.parse import urlparse

import yt_dlp
from loguru import logger

# Hosts whose URLs are pages rather than audio files
PAGE_HOSTS = (
    "soundcloud.com",
    "youtube.com",
    "youtu.be",
    "music.youtube.com",
)

# Cache stream URLs for 10 minutes (SoundCloud URLs typically expire after ~15 min)
_stream_cache: dict[str, tuple[str, float]] = {}  # page_url -> (stream_url, expires_at)
CACHE_TTL_SECONDS = 600


def is_page_url(url: str) -> bool:
    """True if ``url`` points at a provider page that needs resolving."""
    host = urlparse(url).netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    return any(host == page_host or host.endswith("." + page_host) for page_host in PAGE_HOSTS)


def resolve_stream_url(page_url: str) -> Optional[str]:
    """Resolve a page permalink to a playable stream URL using yt-dlp.

    Args:
        page_url: Track permalink (SoundCloud, YouTube, etc.)

    Returns:
        Direct stream URL or None if resolution fails
    """
    if page_url in _stream_cache:
        stream_url, expires_at = _stream_cache[page_url]
        if time() < expires_at:
            logger.debug(f"Stream URL cache hit for {page_url}")
            return stream_url
        del _stream_cache[page_url]

    ydl_opts = {
        "quiet": True,
        "no_warnings": True,
        "format": "bestaudio/best",
        "skip_download": True,
    }

    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(page_url, download=False)
    except yt_dlp.utils.DownloadError as e:
        logger.warning(f"yt-dlp download error for {page_url}: {e}")
        return None
    except Exception:
        logger.exception(f"Unexpected error resolving stream URL for {page_url}")
        return None

    if not info:
        logger.warning(f"yt-dlp returned no info for {page_url}")
        return None

    stream_url = info.get("url")
    if not stream_url:
        # Some extractors put URL in 'formats' list
        formats = info.get("formats") or []
        audio_formats = [f for f in formats if f.get("acodec") != "none"]
        candidates = audio_formats or formats
        if candidates:
            stream_url = candidates[-1].get("url")

    if not stream_url:
        logger.warning(f"No stream URL found in yt-dlp response for {page_url}")
        return None

    _stream_cache[page_url] = (stream_url, time() + CACHE_TTL_SECONDS)
    logger.debug(f"Resolved stream URL for {page_url}")
    return stream_url


async def resolve_playable_url(url: str) -> str:
    """Return the URL to hand to a playback element.

    Page permalinks are resolved off the event loop; anything else, and any
    page that fails to resolve, is returned unchanged.
    """
    if not is_page_url(url):
        return url
    loop = asyncio.get_running_loop()
    stream_url = await loop.run_in_executor(None, resolve_stream_url, url)
    return stream_url or url


def clear_stream_cache() -> None:
    """Clear the stream URL cache."""
    _stream_cache.clear()
    logger.debug("Stream URL cache cleared")
