"""Submission service: append one completed survey as a spreadsheet row."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from store_survey.core.enums import FileSlot
from store_survey.core.survey_definitions import (
    AUTO_LIGHT_OFF_LABELS,
    CONSTRUCTION_POSSIBILITY_LABELS,
    EMPTY_CELL,
    NIGHT_RESTRICTION_LABELS,
    PARKING_OPTION_LABELS,
    PHOTO_SLOTS,
    REQUIRED_DOCUMENT_LABELS,
    SHEET_COLUMNS,
    SUBMISSION_METHOD_LABELS,
    YES_NO_LABELS,
    SheetColumn,
    photo_column_key,
    slot_label,
)
from store_survey.schemas.survey import SubmissionResult, SurveySubmission
from store_survey.services.sheets_client import WorksheetInfo
from store_survey.services.storage_url_service import build_public_url

logger = logging.getLogger(__name__)

MIN_ROW_COUNT = 1000
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _cell(value: str | None) -> str:
    """Absent or blank optional values render as "-"."""
    if value is None:
        return EMPTY_CELL
    text = str(value).strip()
    return text or EMPTY_CELL


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid submission"


class SubmissionService:
    """
    Persists completed surveys to the first worksheet of a spreadsheet.

    The header row is initialized (and the sheet widened) on demand, so a
    brand-new empty spreadsheet works without manual setup.
    """

    def __init__(
        self,
        sheets: Any,
        *,
        bucket: str,
        timezone: ZoneInfo,
        columns: tuple[SheetColumn, ...] = SHEET_COLUMNS,
        clock: Callable[[ZoneInfo], datetime] | None = None,
    ) -> None:
        self.sheets = sheets
        self.bucket = bucket
        self.timezone = timezone
        self.columns = columns
        self._clock = clock or (lambda tz: datetime.now(tz))

    @property
    def headers(self) -> list[str]:
        return [column.header for column in self.columns]

    async def ensure_header_row(self) -> WorksheetInfo:
        """Widen the worksheet and write the header row when it is missing or short."""
        worksheet = await self.sheets.get_first_worksheet()
        required_columns = len(self.columns)

        if worksheet.column_count < required_columns:
            logger.info(
                "Resizing sheet from %s to %s columns",
                worksheet.column_count,
                required_columns,
            )
            await self.sheets.resize(
                worksheet,
                row_count=max(worksheet.row_count, MIN_ROW_COUNT),
                column_count=required_columns,
            )
            worksheet = await self.sheets.get_first_worksheet()

        headers = await self.sheets.get_header_row(worksheet)
        if len(headers) < required_columns:
            logger.info("Writing header row (%s existing headers)", len(headers))
            await self.sheets.set_header_row(worksheet, self.headers)
        return worksheet

    def _url(self, key: str | None) -> str:
        if not key:
            return EMPTY_CELL
        return build_public_url(self.bucket, key)

    def _row_values(self, submission: SurveySubmission, submitted_at: datetime) -> dict[str, str]:
        s = submission
        values: dict[str, str] = {
            "store_name": _cell(s.store_name),
            "phone_number": _cell(s.phone_number),
            "needs_direct_communication": YES_NO_LABELS[s.needs_direct_communication],
            "manager_name": _cell(s.manager_name),
            "manager_phone": _cell(s.manager_phone),
            "unavailable_dates": _cell(s.unavailable_dates),
            "construction_possibility": CONSTRUCTION_POSSIBILITY_LABELS[s.construction_possibility],
            "construction_possibility_other": _cell(s.construction_possibility_other),
            "required_documents": _cell(
                ", ".join(REQUIRED_DOCUMENT_LABELS[doc] for doc in s.required_documents)
            ),
            "submission_method": SUBMISSION_METHOD_LABELS[s.submission_method],
            "fax_number": _cell(s.fax_number),
            "email_address": _cell(s.email_address),
            "other_submission_details": _cell(s.other_submission_details),
            "required_items": _cell(s.required_items),
            "application_deadline": _cell(s.application_deadline),
            "construction_document_keys": _cell(
                "\n".join(
                    f"{slot_label(slot)}: {self._url(key)}"
                    for slot, key in sorted(
                        s.construction_document_keys.items(),
                        key=lambda item: list(FileSlot).index(item[0]),
                    )
                )
            ),
            "entry_procedures": _cell(s.entry_procedures),
            "loading_procedures": _cell(s.loading_procedures),
            "entry_guide_key": self._url(s.entry_guide_key),
            "parking_option": PARKING_OPTION_LABELS[s.parking_option],
            "parking_option_other": _cell(s.parking_option_other),
            "night_time_restriction": NIGHT_RESTRICTION_LABELS[s.night_time_restriction],
            "restriction_details": _cell(s.restriction_details),
            "auto_light_off": AUTO_LIGHT_OFF_LABELS[s.auto_light_off],
            "light_off_details": _cell(s.light_off_details),
            "backyard_key_management": _cell(s.backyard_key_management),
            "server_rack_key_management": _cell(s.server_rack_key_management),
            "other_considerations": _cell(s.other_considerations),
            "submitted_at": submitted_at.astimezone(self.timezone).strftime(TIMESTAMP_FORMAT),
        }
        for slot in PHOTO_SLOTS:
            values[photo_column_key(slot)] = self._url(s.photo_keys.get(slot))
        return values

    def build_row(self, submission: SurveySubmission, submitted_at: datetime) -> list[str]:
        """One display value per configured column, in column order."""
        values = self._row_values(submission, submitted_at)
        return [values[column.key] for column in self.columns]

    async def submit(
        self,
        record: SurveySubmission | Mapping[str, Any],
    ) -> SubmissionResult:
        """
        Validate the aggregate record and append it as one row.

        Never raises: failures come back as ``success=False`` with a message
        so the caller can keep the user on the confirmation step.
        """
        try:
            if isinstance(record, SurveySubmission):
                submission = record
            else:
                submission = SurveySubmission.model_validate(dict(record))
        except ValidationError as exc:
            message = format_validation_error(exc)
            logger.warning("Survey submission failed validation: %s", message)
            return SubmissionResult(success=False, error=message)

        try:
            worksheet = await self.ensure_header_row()
            row = self.build_row(submission, self._clock(self.timezone))
            await self.sheets.append_row(worksheet, row)
        except Exception as exc:
            logger.exception("Error appending survey to sheet")
            return SubmissionResult(success=False, error=f"Failed to save data: {exc}")

        logger.info("Survey row appended")
        return SubmissionResult(success=True)
