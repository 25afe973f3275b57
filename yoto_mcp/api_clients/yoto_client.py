"""
Yoto content API client for MCP server.

Provides the media upload and MYO card operations using httpx.
Every payload is validated with pydantic before the rest of the
server sees it.
"""

import logging
from typing import List, Optional, Dict, Any, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from yoto_mcp.config import Config
from yoto_mcp.errors import (
    MalformedResponseError,
    RemoteRejectedError,
    UploadFailedError,
)
from yoto_mcp.utils import http_session

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic models for Yoto data
# ============================================================================


class UploadSlot(BaseModel):
    """Signed URL that accepts one audio file."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    upload_id: str = Field(..., alias="uploadId")
    upload_url: Optional[str] = Field(None, alias="uploadUrl")


class UploadUrlResponse(BaseModel):
    upload: UploadSlot


class TranscodedAsset(BaseModel):
    """
    A finished transcode, addressed by the sha256 of its content.

    The same asset can back any number of tracks on any number of cards.
    """

    model_config = ConfigDict(frozen=True)

    content_hash: str
    duration: float
    file_size: int
    channels: Union[int, str]
    format: str

    @property
    def track_url(self) -> str:
        return f"yoto:#{self.content_hash}"


class TranscodeInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    duration: float
    file_size: int = Field(..., alias="fileSize")
    channels: Union[int, str]
    format: str


class TranscodeStatus(BaseModel):
    """Progress of one upload through the transcoder."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    transcoded_sha256: Optional[str] = Field(None, alias="transcodedSha256")
    transcoded_info: Optional[Dict[str, Any]] = Field(None, alias="transcodedInfo")

    @property
    def is_complete(self) -> bool:
        return bool(self.transcoded_sha256)

    def to_asset(self) -> TranscodedAsset:
        """Raises MalformedResponseError if the media info is unusable."""
        try:
            info = TranscodeInfo.model_validate(self.transcoded_info or {})
        except ValidationError as e:
            raise MalformedResponseError(
                f"Transcode finished without usable media info: {e}"
            ) from e

        return TranscodedAsset(
            content_hash=self.transcoded_sha256,
            duration=info.duration,
            file_size=info.file_size,
            channels=info.channels,
            format=info.format,
        )


class TranscodeResponse(BaseModel):
    transcode: TranscodeStatus


class Card(BaseModel):
    """
    A MYO card as returned by the content API.

    `content` is kept as the raw dict so chapters written by other
    clients go back to the server untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    card_id: str = Field(..., alias="cardId")
    title: Optional[str] = ""
    created_at: Optional[str] = Field(None, alias="createdAt")
    content: Optional[Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("title", mode="before")
    @classmethod
    def _title_or_empty(cls, value):
        return "" if value is None else value

    @field_validator("content", mode="before")
    @classmethod
    def _content_or_empty(cls, value):
        return {} if value is None else value

    @property
    def chapters(self) -> List[Dict[str, Any]]:
        return self.content.get("chapters") or []

    @property
    def track_count(self) -> int:
        return sum(len(chapter.get("tracks") or []) for chapter in self.chapters)


# ============================================================================
# Yoto Client
# ============================================================================


class YotoClient:
    """
    Yoto content API client using httpx.

    Bound to one access token for the lifetime of a tool call.
    """

    def __init__(
        self,
        access_token: str,
        config: Config,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize Yoto API client.

        Args:
            access_token: Bearer token from TokenProvider
            config: Server configuration
            http_client: Optional client to reuse instead of opening one
        """
        self.config = config
        self.http_client = http_client
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make an authenticated request to the content API."""
        url = f"{self.config.api_url}{path}"

        with http_session(self.http_client, self.config.http_timeout) as client:
            return client.request(
                method, url, headers=self._headers, params=params, json=json
            )

    @staticmethod
    def _card_from(response: httpx.Response) -> Card:
        try:
            return Card.model_validate(response.json()["card"])
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise MalformedResponseError(f"Unexpected card response: {e}") from e

    # ========================================================================
    # Media Operations
    # ========================================================================

    def get_upload_slot(self) -> UploadSlot:
        """
        Request a signed upload URL for a new audio file.

        Raises:
            UploadFailedError if the API refuses or returns no URL
        """
        response = self._request("GET", "/media/transcode/audio/uploadUrl")
        if not response.is_success:
            raise UploadFailedError(
                f"Failed to get upload URL ({response.status_code}): {response.text}"
            )

        try:
            slot = UploadUrlResponse.model_validate(response.json()).upload
        except (ValueError, ValidationError) as e:
            raise MalformedResponseError(f"Unexpected upload URL response: {e}") from e

        if not slot.upload_url:
            raise UploadFailedError("Upload URL missing from upload slot response")

        logger.debug(f"Got upload slot {slot.upload_id}")
        return slot

    def upload_audio(
        self, slot: UploadSlot, audio_bytes: bytes, mime_type: str = "audio/mpeg"
    ):
        """
        PUT the whole file to the signed URL in one request.

        The signed URL carries its own authorization, so no bearer token.
        """
        with http_session(self.http_client, self.config.http_timeout) as client:
            response = client.put(
                slot.upload_url,
                content=audio_bytes,
                headers={"Content-Type": mime_type},
            )

        if not response.is_success:
            raise UploadFailedError(
                f"Audio upload rejected ({response.status_code}): {response.text}"
            )
        logger.debug(f"Uploaded {len(audio_bytes)} bytes for {slot.upload_id}")

    def get_transcode_status(self, upload_id: str) -> Optional[TranscodeStatus]:
        """
        Fetch transcode progress.

        Returns None when the API has nothing usable yet (any non-success
        status or a body without a transcode record).
        """
        response = self._request(
            "GET",
            f"/media/upload/{upload_id}/transcoded",
            params={"loudnorm": "false"},
        )
        if not response.is_success:
            return None

        try:
            return TranscodeResponse.model_validate(response.json()).transcode
        except (ValueError, ValidationError) as e:
            logger.debug(f"Ignoring unreadable transcode status: {e}")
            return None

    # ========================================================================
    # Card Operations
    # ========================================================================

    def create_card(self, document: Dict[str, Any]) -> Card:
        """Create a MYO card; returns it with its assigned card id."""
        response = self._request("POST", "/content", json=document)
        if not response.is_success:
            raise RemoteRejectedError(
                "create card", response.status_code, response.text
            )
        return self._card_from(response)

    def get_card(self, card_id: str) -> Card:
        response = self._request("GET", f"/content/{card_id}")
        if not response.is_success:
            raise RemoteRejectedError("get card", response.status_code, response.text)
        return self._card_from(response)

    def list_cards(self) -> List[Card]:
        """List the user's MYO cards."""
        response = self._request("GET", "/content", params={"type": "myo"})
        if not response.is_success:
            raise RemoteRejectedError(
                "list cards", response.status_code, response.text
            )

        try:
            data = response.json()
            return [Card.model_validate(card) for card in data.get("cards") or []]
        except (ValueError, AttributeError, ValidationError) as e:
            raise MalformedResponseError(f"Unexpected card list response: {e}") from e

    def update_card(self, card_id: str, document: Dict[str, Any]) -> Card:
        """Replace a card with the full updated document."""
        response = self._request("POST", f"/content/{card_id}", json=document)
        if not response.is_success:
            raise RemoteRejectedError(
                "update card", response.status_code, response.text
            )
        return self._card_from(response)
