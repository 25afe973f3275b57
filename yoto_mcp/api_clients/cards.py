"""
Builds MYO card documents from transcoded audio.

Pure functions: no network access. Each call adds exactly one chapter
holding exactly one track. Existing chapters are passed through as the
server sent them.
"""

import math
from typing import List, Dict, Any, Union

from pydantic import BaseModel, ConfigDict, Field

from yoto_mcp.api_clients.yoto_client import Card, TranscodedAsset
from yoto_mcp.config import DEFAULT_ICON


class Display(BaseModel):
    icon16x16: str


class Track(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    title: str
    track_url: str = Field(..., alias="trackUrl")
    duration: float
    file_size: int = Field(..., alias="fileSize")
    channels: Union[int, str]
    format: str
    type: str = "audio"
    overlay_label: str = Field(..., alias="overlayLabel")
    display: Display


class Chapter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    title: str
    overlay_label: str = Field(..., alias="overlayLabel")
    tracks: List[Track]
    display: Display


def _readable_megabytes(file_size: int) -> float:
    """Megabytes to one decimal, halves rounded up."""
    return math.floor(file_size / 1024 / 1024 * 10 + 0.5) / 10


def chapter_key(position: int) -> str:
    """Two-digit, 1-based key: 1 -> "01", 10 -> "10"."""
    return f"{position:02d}"


def build_chapter(
    position: int, title: str, asset: TranscodedAsset, icon: str = DEFAULT_ICON
) -> Dict[str, Any]:
    key = chapter_key(position)
    label = str(position)
    display = Display(icon16x16=icon)

    track = Track(
        key=key,
        title=title,
        track_url=asset.track_url,
        duration=asset.duration,
        file_size=asset.file_size,
        channels=asset.channels,
        format=asset.format,
        overlay_label=label,
        display=display,
    )
    chapter = Chapter(
        key=key,
        title=title,
        overlay_label=label,
        tracks=[track],
        display=display,
    )
    return chapter.model_dump(by_alias=True)


def build_new_card(
    title: str, asset: TranscodedAsset, icon: str = DEFAULT_ICON
) -> Dict[str, Any]:
    """Document for a new single-chapter, single-track card."""
    return {
        "title": title,
        "content": {"chapters": [build_chapter(1, title, asset, icon)]},
        "metadata": {
            "media": {
                "duration": asset.duration,
                "fileSize": asset.file_size,
                "readableFileSize": _readable_megabytes(asset.file_size),
            }
        },
    }


def append_track(
    card: Card, title: str, asset: TranscodedAsset, icon: str = DEFAULT_ICON
) -> Dict[str, Any]:
    """
    Full updated document for `card` with one chapter appended.

    The new chapter's position is len(existing chapters) + 1.
    """
    existing = list(card.chapters)
    chapters = existing + [build_chapter(len(existing) + 1, title, asset, icon)]

    document: Dict[str, Any] = {
        "title": card.title,
        "content": {**card.content, "chapters": chapters},
    }
    metadata = (card.model_extra or {}).get("metadata")
    if metadata is not None:
        document["metadata"] = metadata
    return document
