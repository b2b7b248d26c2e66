"""
Archive object store backed by a GridFS bucket.
"""

import asyncio
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from gridfs import GridFSBucket
from gridfs.errors import NoFile

import env


class ArchiveStore:
    """
    Stores raw uploaded archives keyed by their original file name.

    Blocking GridFS calls run in a worker thread and are bounded by a timeout;
    cancelling the awaiting task abandons the wait.
    """

    def __init__(self, bucket: GridFSBucket, timeout: Optional[float] = None):
        self.bucket = bucket
        self.timeout = timeout or env.ARCHIVE_STORE_TIMEOUT_SECONDS

    async def put(self, key: str, data: bytes) -> str:
        """
        Upload an archive.

        Args:
            key: Object key (original file name)
            data: Raw archive bytes

        Returns:
            Receipt (GridFS file id as a hex string)
        """
        file_id = await asyncio.wait_for(
            asyncio.to_thread(self.bucket.upload_from_stream, key, data),
            timeout=self.timeout,
        )
        print(f"[archive_store] Stored {key} ({len(data)} bytes) as {file_id}")
        return str(file_id)

    async def get(self, receipt: str) -> Optional[bytes]:
        """
        Read an archive back.

        Args:
            receipt: Value returned by put()

        Returns:
            Archive bytes, None if no such file
        """
        try:
            file_id = ObjectId(receipt)
        except (InvalidId, TypeError):
            return None

        def _read() -> Optional[bytes]:
            try:
                with self.bucket.open_download_stream(file_id) as stream:
                    return stream.read()
            except NoFile:
                return None

        return await asyncio.wait_for(asyncio.to_thread(_read), timeout=self.timeout)

    async def delete(self, receipt: str) -> bool:
        """
        Remove an archive (used when the update flow replaces content).

        Returns:
            True if deleted, False if not found
        """
        try:
            file_id = ObjectId(receipt)
        except (InvalidId, TypeError):
            return False

        def _delete() -> bool:
            try:
                self.bucket.delete(file_id)
                return True
            except NoFile:
                return False

        return await asyncio.wait_for(asyncio.to_thread(_delete), timeout=self.timeout)
