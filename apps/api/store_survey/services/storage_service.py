"""Upload target issuance: storage keys and presigned PUT URLs."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from store_survey.core.enums import FileSlot
from store_survey.core.structured_logging import build_log_context
from store_survey.core.survey_definitions import (
    CONTENT_TYPE_EXTENSIONS,
    allowed_content_types,
    slot_label,
)
from store_survey.utils.normalization import sanitize_key_prefix

logger = logging.getLogger(__name__)


class StorageServiceError(Exception):
    """Base exception for storage errors."""

    pass


class InvalidUploadError(StorageServiceError):
    """Slot, owner name, content type or size is not acceptable."""

    pass


class UploadTargetError(StorageServiceError):
    """The storage backend could not issue an upload URL."""

    pass


@dataclass(frozen=True)
class UploadTarget:
    """A temporary write URL plus the key the object will be stored under."""

    slot: FileSlot
    upload_url: str
    key: str
    content_type: str


def parse_slot(slot: FileSlot | str) -> FileSlot:
    """Coerce a raw slot identifier, rejecting anything outside the enum."""
    try:
        return FileSlot(slot)
    except ValueError as exc:
        raise InvalidUploadError(f"Unknown file slot '{slot}'") from exc


def normalize_content_type(slot: FileSlot, content_type: str) -> str:
    """Lowercase, drop parameters, and check against the slot's allow-list."""
    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    if normalized == "image/jpg":
        normalized = "image/jpeg"
    if normalized not in allowed_content_types(slot):
        raise InvalidUploadError(
            f"Content type '{content_type}' not allowed for slot '{slot.value}'"
        )
    return normalized


def build_storage_key(slot: FileSlot | str, owner_name: str, content_type: str) -> str:
    """
    Build the object key for a slot: ``<owner>/<slot label><extension>``.

    Raises:
        InvalidUploadError: unknown slot, unsafe/empty owner, or disallowed type
    """
    parsed_slot = parse_slot(slot)
    normalized_type = normalize_content_type(parsed_slot, content_type)
    try:
        prefix = sanitize_key_prefix(owner_name)
    except ValueError as exc:
        raise InvalidUploadError(str(exc)) from exc
    return f"{prefix}/{slot_label(parsed_slot)}{CONTENT_TYPE_EXTENSIONS[normalized_type]}"


class StorageService:
    """Issues presigned upload targets for one bucket."""

    def __init__(self, s3_client: BaseClient, bucket: str, *, expires_in: int = 3600) -> None:
        self.s3 = s3_client
        self.bucket = bucket
        self.expires_in = expires_in

    def issue_upload_target(
        self,
        slot: FileSlot | str,
        owner_name: str,
        content_type: str,
    ) -> UploadTarget:
        """Return a presigned PUT URL and the key the upload will produce."""
        parsed_slot = parse_slot(slot)
        normalized_type = normalize_content_type(parsed_slot, content_type)
        key = build_storage_key(parsed_slot, owner_name, normalized_type)
        try:
            url = self.s3.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": key,
                    "ContentType": normalized_type,
                },
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception(
                "Failed to presign upload URL",
                extra=build_log_context(slot=parsed_slot.value),
            )
            raise UploadTargetError("Could not issue an upload URL") from exc
        return UploadTarget(
            slot=parsed_slot,
            upload_url=url,
            key=key,
            content_type=normalized_type,
        )

    def object_exists(self, key: str) -> bool:
        """HEAD the object; False when it does not exist."""
        try:
            self.s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise
        return True
