"""
Audio upload and transcode wait.

The transcoder gives no callback, so completion is detected by polling
the status endpoint at a fixed interval until a content hash appears.
"""

import time
import logging
from typing import Callable

import httpx

from yoto_mcp.api_clients.yoto_client import TranscodedAsset, YotoClient
from yoto_mcp.config import Config
from yoto_mcp.errors import TranscodeTimeoutError

logger = logging.getLogger(__name__)


class TranscodeWaiter:
    """
    Uploads one audio file and waits for its transcode.

    Usage:
        waiter = TranscodeWaiter(client, config)
        asset = waiter.upload(audio_bytes, "audio/mpeg")
        asset.track_url  # "yoto:#<sha256>"
    """

    def __init__(
        self,
        client: YotoClient,
        config: Config,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.config = config
        self.sleep = sleep

    def upload(
        self, audio_bytes: bytes, mime_type: str = "audio/mpeg"
    ) -> TranscodedAsset:
        """
        Upload the audio and block until it is transcoded.

        Raises:
            UploadFailedError if the slot request or PUT is rejected
            TranscodeTimeoutError if no content hash appears in time
        """
        slot = self.client.get_upload_slot()
        self.client.upload_audio(slot, audio_bytes, mime_type)
        return self.wait_for_transcode(slot.upload_id)

    def wait_for_transcode(self, upload_id: str) -> TranscodedAsset:
        interval = self.config.transcode_poll_interval
        max_attempts = self.config.transcode_poll_max_attempts

        for attempt in range(1, max_attempts + 1):
            self.sleep(interval)

            try:
                status = self.client.get_transcode_status(upload_id)
            except httpx.HTTPError as e:
                logger.debug(f"Transcode poll {attempt}/{max_attempts} failed: {e}")
                continue

            if status is not None and status.is_complete:
                logger.info(f"Transcode of {upload_id} finished after {attempt} poll(s)")
                return status.to_asset()

            logger.debug(f"Transcode poll {attempt}/{max_attempts}: not ready")

        raise TranscodeTimeoutError("Transcoding timed out")
