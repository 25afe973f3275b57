"""
Card Tools - Audio upload and MYO card operations.

These tools require authentication with Yoto.
Connect using the yoto-auth tool first.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Optional, Tuple

import httpx
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from yoto_mcp.api_clients import TranscodeWaiter, YotoClient
from yoto_mcp.api_clients.cards import append_track, build_new_card
from yoto_mcp.auth import CredentialStore, TokenProvider
from yoto_mcp.config import Config
from yoto_mcp.errors import YotoError

logger = logging.getLogger(__name__)


def _read_audio(audio_file_path: str) -> Tuple[bytes, str]:
    """Read a local audio file and guess its MIME type."""
    path = Path(audio_file_path).expanduser()
    if not path.is_file():
        raise ToolError(f"Audio file not found: {audio_file_path}")

    mime_type, _ = mimetypes.guess_type(path.name)
    return path.read_bytes(), mime_type or "audio/mpeg"


def create_card_tools(
    mcp: FastMCP, config: Config, http_client: Optional[httpx.Client] = None
) -> None:
    """Add card tools to the MCP server."""

    def _get_client() -> YotoClient:
        """Get a client bound to a valid token, raising error if not authenticated."""
        store = CredentialStore(config.credentials_file)
        provider = TokenProvider(store, config, http_client=http_client)

        try:
            access_token = provider.get_valid_access_token()
        except YotoError as e:
            raise ToolError(str(e))

        return YotoClient(access_token, config, http_client=http_client)

    @mcp.tool(name="yoto-upload-audio", tags={"yoto", "upload"})
    def upload_audio(
        audio_file_path: str = Field(
            ...,
            description="Absolute path to the audio file (MP3)",
        ),
        title: str = Field(
            ...,
            description="Title for the MYO card",
        ),
    ) -> dict:
        """
        Upload an audio file to Yoto and create a new MYO card.

        The file is transcoded by Yoto before the card is created,
        which usually takes a few seconds.
        """
        try:
            audio_bytes, mime_type = _read_audio(audio_file_path)
            client = _get_client()

            asset = TranscodeWaiter(client, config).upload(audio_bytes, mime_type)
            card = client.create_card(
                build_new_card(title, asset, config.default_icon)
            )

            return {
                "status": "success",
                "message": "Successfully uploaded audio to Yoto!",
                "card_id": card.card_id,
                "title": card.title,
                "hint": "You can now link this card to a physical MYO card using your Yoto app or player.",
            }
        except ToolError:
            raise
        except YotoError as e:
            raise ToolError(str(e))
        except Exception as e:
            logger.error(f"Failed to upload audio: {e}")
            raise ToolError(f"Failed to upload audio: {str(e)}")

    @mcp.tool(name="yoto-add-track", tags={"yoto", "upload"})
    def add_track(
        card_id: str = Field(
            ...,
            description="The card ID to add the track to",
        ),
        audio_file_path: str = Field(
            ...,
            description="Absolute path to the audio file (MP3)",
        ),
        track_title: str = Field(
            ...,
            description="Title for the track",
        ),
    ) -> dict:
        """
        Add a track to an existing Yoto MYO card.

        The track is appended as a new chapter after the existing ones.
        """
        try:
            audio_bytes, mime_type = _read_audio(audio_file_path)
            client = _get_client()

            card = client.get_card(card_id)
            asset = TranscodeWaiter(client, config).upload(audio_bytes, mime_type)
            document = append_track(card, track_title, asset, config.default_icon)
            updated = client.update_card(card_id, document)

            return {
                "status": "success",
                "message": "Successfully added track to card!",
                "card_id": updated.card_id,
                "title": updated.title,
                "track": track_title,
                "chapter_key": document["content"]["chapters"][-1]["key"],
            }
        except ToolError:
            raise
        except YotoError as e:
            raise ToolError(str(e))
        except Exception as e:
            logger.error(f"Failed to add track: {e}")
            raise ToolError(f"Failed to add track: {str(e)}")

    @mcp.tool(name="yoto-list-cards", tags={"yoto", "cards"})
    def list_cards() -> dict:
        """
        List all MYO cards in your Yoto library.

        Returns card titles and IDs.
        """
        try:
            cards = _get_client().list_cards()
        except ToolError:
            raise
        except YotoError as e:
            raise ToolError(str(e))
        except Exception as e:
            logger.error(f"Failed to list cards: {e}")
            raise ToolError(f"Failed to list cards: {str(e)}")

        if not cards:
            return {
                "count": 0,
                "cards": [],
                "message": "No MYO cards found in your library.",
            }

        return {
            "count": len(cards),
            "cards": [{"card_id": c.card_id, "title": c.title} for c in cards],
        }

    @mcp.tool(name="yoto-get-card", tags={"yoto", "cards"})
    def get_card(
        card_id: str = Field(
            ...,
            description="The card ID to retrieve",
        ),
    ) -> dict:
        """
        Get details of a specific Yoto MYO card.

        Returns title, chapter and track counts, and creation time.
        """
        try:
            card = _get_client().get_card(card_id)
        except ToolError:
            raise
        except YotoError as e:
            raise ToolError(str(e))
        except Exception as e:
            logger.error(f"Failed to get card {card_id}: {e}")
            raise ToolError(f"Failed to get card {card_id}: {str(e)}")

        return {
            "card_id": card.card_id,
            "title": card.title,
            "chapters": len(card.chapters),
            "tracks": card.track_count,
            "created_at": card.created_at,
        }
