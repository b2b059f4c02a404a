"""Upload client: request an upload target, then PUT the bytes straight to storage."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

import httpx
from starlette.concurrency import run_in_threadpool

from store_survey.core.enums import FileSlot
from store_survey.core.structured_logging import build_log_context
from store_survey.core.survey_definitions import FILE_SLOTS
from store_survey.services.storage_service import (
    InvalidUploadError,
    StorageService,
    UploadTarget,
    UploadTargetError,
    build_storage_key,
    parse_slot,
)

logger = logging.getLogger(__name__)


class UploadError(Exception):
    """One or more transfers to object storage failed."""

    def __init__(self, message: str, failed_slots: Sequence[FileSlot] = ()) -> None:
        super().__init__(message)
        self.failed_slots = list(failed_slots)


@dataclass(frozen=True)
class SlotFile:
    """File bytes destined for one logical slot."""

    slot: FileSlot
    data: bytes
    content_type: str
    filename: str | None = None


def validate_slot_file(file: SlotFile) -> None:
    """
    Check a file against its slot before any transfer starts.

    Raises:
        InvalidUploadError: empty file or file larger than the slot allows
    """
    slot = parse_slot(file.slot)
    if not file.data:
        raise InvalidUploadError(f"File for slot '{slot.value}' is empty")
    max_size = FILE_SLOTS[slot].max_size_bytes
    if len(file.data) > max_size:
        max_mb = max_size / (1024 * 1024)
        raise InvalidUploadError(
            f"File for slot '{slot.value}' exceeds {max_mb:.0f} MB limit"
        )


class UploadClient:
    """Two-phase uploader: target issuance, then a direct PUT to the store."""

    def __init__(self, storage: StorageService, http_client: httpx.AsyncClient) -> None:
        self.storage = storage
        self.http = http_client

    async def request_upload_target(
        self,
        slot: FileSlot | str,
        owner_name: str,
        content_type: str,
    ) -> UploadTarget:
        # Presigning is CPU-only but boto3 may load credentials from disk.
        return await run_in_threadpool(
            self.storage.issue_upload_target, slot, owner_name, content_type
        )

    async def put_object(self, target: UploadTarget, data: bytes) -> None:
        """PUT raw bytes to the issued URL; any error response raises UploadError."""
        try:
            response = await self.http.put(
                target.upload_url,
                content=data,
                headers={"Content-Type": target.content_type},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "Upload to object storage failed",
                extra=build_log_context(slot=target.slot.value),
                exc_info=exc,
            )
            raise UploadError(
                f"Upload failed for slot '{target.slot.value}'",
                failed_slots=[target.slot],
            ) from exc

    async def upload_file(self, owner_name: str, file: SlotFile) -> str:
        """Upload one file and return its storage key."""
        validate_slot_file(file)
        try:
            target = await self.request_upload_target(file.slot, owner_name, file.content_type)
        except UploadTargetError as exc:
            raise UploadError(str(exc), failed_slots=[file.slot]) from exc
        await self.put_object(target, file.data)
        return target.key

    async def upload_files(
        self,
        owner_name: str,
        files: Sequence[SlotFile],
    ) -> dict[FileSlot, str]:
        """
        Upload several slots concurrently; all must succeed.

        Every file is validated first so a bad file aborts before anything
        is sent. Transfers are then dispatched together and all of them are
        awaited, even after one fails. Keys are returned only when every
        transfer succeeded; otherwise UploadError lists the failed slots.

        Raises:
            InvalidUploadError: a file fails slot validation
            UploadError: at least one transfer failed
        """
        if not files:
            return {}

        seen: set[FileSlot] = set()
        for file in files:
            validate_slot_file(file)
            if file.slot in seen:
                raise InvalidUploadError(f"Duplicate file for slot '{file.slot.value}'")
            seen.add(file.slot)
            # Fail fast on owner/content type before dispatching anything.
            build_storage_key(file.slot, owner_name, file.content_type)

        results = await asyncio.gather(
            *(self.upload_file(owner_name, file) for file in files),
            return_exceptions=True,
        )

        keys: dict[FileSlot, str] = {}
        failed: list[FileSlot] = []
        for file, result in zip(files, results):
            if isinstance(result, BaseException):
                if not isinstance(result, (UploadError, InvalidUploadError)):
                    logger.error(
                        "Unexpected upload failure",
                        extra=build_log_context(slot=file.slot.value),
                        exc_info=result,
                    )
                failed.append(file.slot)
            else:
                keys[file.slot] = result

        if failed:
            raise UploadError(
                f"Upload failed for: {', '.join(slot.value for slot in failed)}",
                failed_slots=failed,
            )
        return keys
