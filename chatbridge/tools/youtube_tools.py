"""YouTube tools: find channels and pull video metadata plus transcripts."""

import asyncio
import logging
import re

import httpx
from pydantic import Field
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from chatbridge.config import settings
from chatbridge.tools.base import ToolParams, ToolResult
from chatbridge.tools.registry import registry

logger = logging.getLogger(__name__)

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3"
MAX_TRANSCRIPT_CHARS = 15000
MAX_DESCRIPTION_CHARS = 2000
LATEST_VIDEO_COUNT = 5
TRANSCRIPT_LANGUAGES = ["en", "en-US", "en-GB"]

_VIDEO_ID_RE = re.compile(
    r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/|"
    r"youtube\.com/v/|youtube\.com/shorts/)([A-Za-z0-9_-]{11})"
)


class ChannelSearchParams(ToolParams):
    channel_name: str = Field(description="Name of the YouTube channel or creator to look up")


class VideoSummaryParams(ToolParams):
    video_url: str = Field(description="Full YouTube video URL (youtube.com/watch?v=... or youtu.be/...)")


def extract_video_id(url: str) -> str | None:
    """Pull the 11-character video id out of a YouTube URL."""
    match = _VIDEO_ID_RE.search(url)
    return match.group(1) if match else None


async def _youtube_get(client: httpx.AsyncClient, endpoint: str, params: dict) -> dict:
    """GET a YouTube Data API endpoint. Raises httpx.HTTPStatusError on failure."""
    resp = await client.get(
        f"{YOUTUBE_API_URL}/{endpoint}",
        params={**params, "key": settings.youtube_api_key},
    )
    resp.raise_for_status()
    return resp.json()


def _fetch_transcript(video_id: str) -> str:
    """Blocking transcript fetch; run in a worker thread."""
    fetched = YouTubeTranscriptApi().fetch(video_id, languages=TRANSCRIPT_LANGUAGES)
    return " ".join(snippet.text for snippet in fetched)


@registry.tool(
    name="search_youtube_channel",
    description=(
        "Look up a YouTube channel or creator by name. Returns the channel's "
        "title, description, subscriber and video counts, and its most recent uploads."
    ),
    params_model=ChannelSearchParams,
)
async def search_youtube_channel(channel_name: str) -> ToolResult:
    if not settings.youtube_api_key:
        return ToolResult(error="YOUTUBE_API_KEY is not configured.")

    try:
        async with httpx.AsyncClient(timeout=20) as client:
            found = await _youtube_get(
                client,
                "search",
                {"part": "snippet", "type": "channel", "q": channel_name, "maxResults": 1},
            )
            items = found.get("items", [])
            if not items:
                return ToolResult(error=f"No YouTube channel found for '{channel_name}'.")

            channel_id = items[0]["snippet"]["channelId"]
            details = await _youtube_get(
                client, "channels", {"part": "snippet,statistics", "id": channel_id}
            )
            latest = await _youtube_get(
                client,
                "search",
                {
                    "part": "snippet",
                    "channelId": channel_id,
                    "type": "video",
                    "order": "date",
                    "maxResults": LATEST_VIDEO_COUNT,
                },
            )
    except httpx.HTTPError as exc:
        logger.exception("YouTube channel lookup failed")
        return ToolResult(error=f"YouTube request failed: {exc}")

    channel = (details.get("items") or [{}])[0]
    snippet = channel.get("snippet", items[0]["snippet"])
    stats = channel.get("statistics", {})
    videos = [
        {
            "title": v["snippet"].get("title", ""),
            "published_at": v["snippet"].get("publishedAt", ""),
            "url": f"https://www.youtube.com/watch?v={v['id']['videoId']}",
        }
        for v in latest.get("items", [])
        if v.get("id", {}).get("videoId")
    ]

    return ToolResult(
        data={
            "channel_id": channel_id,
            "title": snippet.get("title", ""),
            "description": snippet.get("description", "")[:MAX_DESCRIPTION_CHARS],
            "url": f"https://www.youtube.com/channel/{channel_id}",
            "subscriber_count": stats.get("subscriberCount"),
            "video_count": stats.get("videoCount"),
            "latest_videos": videos,
        }
    )


@registry.tool(
    name="summarize_youtube_video",
    description=(
        "Fetch a YouTube video's title, channel, statistics, description and "
        "transcript so you can summarize it. Use whenever the user shares a "
        "YouTube link or asks what a video is about."
    ),
    params_model=VideoSummaryParams,
)
async def summarize_youtube_video(video_url: str) -> ToolResult:
    if not settings.youtube_api_key:
        return ToolResult(error="YOUTUBE_API_KEY is not configured.")

    video_id = extract_video_id(video_url)
    if video_id is None:
        return ToolResult(error=f"Not a recognizable YouTube video URL: {video_url}")

    try:
        async with httpx.AsyncClient(timeout=20) as client:
            data = await _youtube_get(
                client,
                "videos",
                {"part": "snippet,contentDetails,statistics", "id": video_id},
            )
    except httpx.HTTPError as exc:
        logger.exception("YouTube video lookup failed")
        return ToolResult(error=f"YouTube request failed: {exc}")

    items = data.get("items", [])
    if not items:
        return ToolResult(error=f"Video {video_id} not found.")

    video = items[0]
    snippet = video.get("snippet", {})
    stats = video.get("statistics", {})

    try:
        transcript = await asyncio.to_thread(_fetch_transcript, video_id)
    except CouldNotRetrieveTranscript as exc:
        logger.info("No transcript for %s: %s", video_id, type(exc).__name__)
        transcript = ""

    truncated = len(transcript) > MAX_TRANSCRIPT_CHARS
    if truncated:
        transcript = transcript[:MAX_TRANSCRIPT_CHARS] + " [Transcript truncated]"

    return ToolResult(
        data={
            "video_id": video_id,
            "title": snippet.get("title", ""),
            "channel": snippet.get("channelTitle", ""),
            "published_at": snippet.get("publishedAt", ""),
            "duration": video.get("contentDetails", {}).get("duration", ""),
            "view_count": stats.get("viewCount"),
            "like_count": stats.get("likeCount"),
            "tags": snippet.get("tags", [])[:10],
            "description": snippet.get("description", "")[:MAX_DESCRIPTION_CHARS],
            "transcript_available": bool(transcript),
            "transcript": transcript,
        }
    )
