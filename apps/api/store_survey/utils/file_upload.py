"""Helpers for reading slot uploads out of multipart forms."""

from __future__ import annotations

from os import SEEK_END
from typing import Iterable

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile as StarletteUploadFile

from store_survey.core.enums import FileSlot
from store_survey.core.survey_definitions import FILE_SLOTS
from store_survey.services.storage_service import InvalidUploadError
from store_survey.services.upload_service import SlotFile


async def get_upload_file_size(file: UploadFile) -> int:
    """Read size from the underlying file object without loading into memory."""

    def _get_size() -> int:
        stream = file.file
        original_pos = stream.tell()
        try:
            stream.seek(0, SEEK_END)
            return stream.tell()
        finally:
            stream.seek(original_pos)

    return await run_in_threadpool(_get_size)


async def read_slot_files(
    form: FormData,
    slots: Iterable[FileSlot],
    *,
    non_file_fields: Iterable[str] = (),
) -> list[SlotFile]:
    """
    Collect uploaded files for ``slots`` from a multipart form.

    Field names must be slot ids. Any other file field is rejected, and a
    file over its slot's limit is rejected before it is read into memory.

    Raises:
        InvalidUploadError: unknown field, or a file exceeding its slot limit
    """
    allowed = {slot.value: slot for slot in slots}
    known_fields = set(non_file_fields)
    files: list[SlotFile] = []

    for name, value in form.multi_items():
        if name in known_fields:
            continue
        slot = allowed.get(name)
        if slot is None:
            raise InvalidUploadError(f"Unexpected upload field '{name}'")
        if not isinstance(value, StarletteUploadFile):
            raise InvalidUploadError(f"Field '{name}' must be a file")

        max_size = FILE_SLOTS[slot].max_size_bytes
        if await get_upload_file_size(value) > max_size:
            max_mb = max_size / (1024 * 1024)
            raise InvalidUploadError(f"File for slot '{slot.value}' exceeds {max_mb:.0f} MB limit")

        files.append(
            SlotFile(
                slot=slot,
                data=await value.read(),
                content_type=value.content_type or "application/octet-stream",
                filename=value.filename,
            )
        )
    return files
