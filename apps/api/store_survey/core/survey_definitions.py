"""Survey step ordering, upload slot configuration and sheet column layout."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from store_survey.core.enums import (
    ConstructionPossibility,
    FileSlot,
    FileSlotGroup,
    ParkingOption,
    RequiredDocument,
    SubmissionMethod,
    SurveyStep,
    YesNo,
)

MB = 1024 * 1024


# =============================================================================
# Upload slots
# =============================================================================

@dataclass(frozen=True)
class FileSlotConfig:
    slot: FileSlot
    label: str
    group: FileSlotGroup
    max_size_bytes: int


FILE_SLOTS: dict[FileSlot, FileSlotConfig] = {
    cfg.slot: cfg
    for cfg in (
        FileSlotConfig(FileSlot.FRONT, "店舗外観_正面", FileSlotGroup.PHOTO, 50 * MB),
        FileSlotConfig(FileSlot.LEFT, "店舗外観_左", FileSlotGroup.PHOTO, 50 * MB),
        FileSlotConfig(FileSlot.RIGHT, "店舗外観_右", FileSlotGroup.PHOTO, 50 * MB),
        FileSlotConfig(FileSlot.CEILING, "店舗内観_天井", FileSlotGroup.PHOTO, 50 * MB),
        FileSlotConfig(FileSlot.BACKYARD, "バックヤード全体", FileSlotGroup.PHOTO, 50 * MB),
        FileSlotConfig(FileSlot.SERVER, "サーバーラック内", FileSlotGroup.PHOTO, 50 * MB),
        FileSlotConfig(
            FileSlot.CONSTRUCTION_DOCUMENT,
            "工事作業申請書",
            FileSlotGroup.CONSTRUCTION_DOCUMENT,
            10 * MB,
        ),
        FileSlotConfig(
            FileSlot.FIRE_DOCUMENT,
            "消防作業申請書",
            FileSlotGroup.CONSTRUCTION_DOCUMENT,
            10 * MB,
        ),
        FileSlotConfig(
            FileSlot.FACILITY_DOCUMENT,
            "設備管理申請書",
            FileSlotGroup.CONSTRUCTION_DOCUMENT,
            10 * MB,
        ),
        FileSlotConfig(
            FileSlot.OTHER_DOCUMENT,
            "その他書類",
            FileSlotGroup.CONSTRUCTION_DOCUMENT,
            10 * MB,
        ),
        FileSlotConfig(FileSlot.ENTRY_GUIDE, "入館説明用資料", FileSlotGroup.ENTRY_GUIDE, 10 * MB),
    )
}

PHOTO_SLOTS: tuple[FileSlot, ...] = tuple(
    slot for slot, cfg in FILE_SLOTS.items() if cfg.group == FileSlotGroup.PHOTO
)

# Each selectable required document has its own upload slot.
DOCUMENT_SLOTS: dict[RequiredDocument, FileSlot] = {
    RequiredDocument.CONSTRUCTION: FileSlot.CONSTRUCTION_DOCUMENT,
    RequiredDocument.FIRE: FileSlot.FIRE_DOCUMENT,
    RequiredDocument.FACILITY: FileSlot.FACILITY_DOCUMENT,
    RequiredDocument.OTHER: FileSlot.OTHER_DOCUMENT,
}

# Content type → stored file extension
CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/heic": ".heic",
    "image/heif": ".heif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
}

PHOTO_CONTENT_TYPES = frozenset(ct for ct in CONTENT_TYPE_EXTENSIONS if ct.startswith("image/"))


def slot_label(slot: FileSlot) -> str:
    return FILE_SLOTS[slot].label


def allowed_content_types(slot: FileSlot) -> frozenset[str]:
    """Photos accept images only; documents accept any configured type."""
    if FILE_SLOTS[slot].group == FileSlotGroup.PHOTO:
        return PHOTO_CONTENT_TYPES
    return frozenset(CONTENT_TYPE_EXTENSIONS)


# =============================================================================
# Steps
# =============================================================================

NextStepRule = Callable[[dict[str, Any]], SurveyStep | None]


@dataclass(frozen=True)
class StepDefinition:
    step: SurveyStep
    fields: tuple[str, ...]
    next_step: NextStepRule


def _fixed(step: SurveyStep | None) -> NextStepRule:
    return lambda _record: step


def _after_store_info(record: dict[str, Any]) -> SurveyStep:
    if record.get("needs_direct_communication") == YesNo.YES.value:
        return SurveyStep.FACILITY_MANAGER
    return SurveyStep.PHOTOS


STEP_DEFINITIONS: dict[SurveyStep, StepDefinition] = {
    d.step: d
    for d in (
        StepDefinition(
            SurveyStep.STORE_INFO,
            ("store_name", "phone_number", "needs_direct_communication"),
            _after_store_info,
        ),
        StepDefinition(
            SurveyStep.FACILITY_MANAGER,
            ("manager_name", "manager_phone"),
            _fixed(SurveyStep.PHOTOS),
        ),
        StepDefinition(
            SurveyStep.PHOTOS,
            ("photo_keys",),
            _fixed(SurveyStep.CONSTRUCTION),
        ),
        StepDefinition(
            SurveyStep.CONSTRUCTION,
            (
                "unavailable_dates",
                "construction_possibility",
                "construction_possibility_other",
                "required_documents",
                "submission_method",
                "fax_number",
                "email_address",
                "other_submission_details",
                "required_items",
                "application_deadline",
                "construction_document_keys",
            ),
            _fixed(SurveyStep.FACILITY_ACCESS),
        ),
        StepDefinition(
            SurveyStep.FACILITY_ACCESS,
            ("entry_procedures", "loading_procedures", "entry_guide_key"),
            _fixed(SurveyStep.WORK_DETAILS),
        ),
        StepDefinition(
            SurveyStep.WORK_DETAILS,
            (
                "parking_option",
                "parking_option_other",
                "night_time_restriction",
                "restriction_details",
                "auto_light_off",
                "light_off_details",
                "backyard_key_management",
                "server_rack_key_management",
                "other_considerations",
            ),
            _fixed(SurveyStep.CONFIRMATION),
        ),
        StepDefinition(SurveyStep.CONFIRMATION, (), _fixed(None)),
    )
}

FIRST_STEP = SurveyStep.STORE_INFO


def active_path(record: dict[str, Any]) -> list[SurveyStep]:
    """Steps visited for the answers collected so far, first to confirmation."""
    path: list[SurveyStep] = []
    step: SurveyStep | None = FIRST_STEP
    while step is not None:
        path.append(step)
        step = STEP_DEFINITIONS[step].next_step(record)
    return path


def next_step(step: SurveyStep, record: dict[str, Any]) -> SurveyStep | None:
    return STEP_DEFINITIONS[step].next_step(record)


def previous_step(step: SurveyStep, record: dict[str, Any]) -> SurveyStep | None:
    path = active_path(record)
    index = path.index(step)
    return path[index - 1] if index > 0 else None


# =============================================================================
# Display labels
# =============================================================================

YES_NO_LABELS = {
    YesNo.YES: "はい",
    YesNo.NO: "いいえ",
}

CONSTRUCTION_POSSIBILITY_LABELS = {
    ConstructionPossibility.POSSIBLE: "作業可能",
    ConstructionPossibility.IMPOSSIBLE: "作業不可",
    ConstructionPossibility.PARTIALLY: "条件つきで可能",
    ConstructionPossibility.OTHER: "その他",
}

SUBMISSION_METHOD_LABELS = {
    SubmissionMethod.FAX: "FAX",
    SubmissionMethod.EMAIL: "メール",
    SubmissionMethod.OTHER: "その他",
}

PARKING_OPTION_LABELS = {
    ParkingOption.DEDICATED: "作業用駐車場あり",
    ParkingOption.CUSTOMER_FREE: "お客様用駐車場に駐車可能",
    ParkingOption.CUSTOMER_PAID: "お客様用駐車場に駐車可能（有料）",
    ParkingOption.NEARBY: "駐車なし、近隣の駐車場に停める必要があり",
    ParkingOption.STREET: "路面上に駐車可能",
    ParkingOption.OTHER: "その他",
}

REQUIRED_DOCUMENT_LABELS = {
    doc: slot_label(slot) for doc, slot in DOCUMENT_SLOTS.items()
}

NIGHT_RESTRICTION_LABELS = {
    YesNo.YES: "ある",
    YesNo.NO: "ない",
}

AUTO_LIGHT_OFF_LABELS = {
    YesNo.YES: "自動消灯",
    YesNo.NO: "自動消灯なし",
}


# =============================================================================
# Spreadsheet columns (header row order)
# =============================================================================

@dataclass(frozen=True)
class SheetColumn:
    key: str
    header: str


def photo_column_key(slot: FileSlot) -> str:
    return f"photo:{slot.value}"


SHEET_COLUMNS: tuple[SheetColumn, ...] = (
    SheetColumn("store_name", "店舗名"),
    SheetColumn("phone_number", "店舗電話番号"),
    SheetColumn(
        "needs_direct_communication",
        "工事作業申請の対応に防災や施設管理と直接やり取りする必要があるか？",
    ),
    SheetColumn("manager_name", "施設のご担当者様のお名前"),
    SheetColumn("manager_phone", "施設のご担当者様の電話番号"),
    *(SheetColumn(photo_column_key(slot), slot_label(slot)) for slot in PHOTO_SLOTS),
    # Construction application
    SheetColumn("unavailable_dates", "作業不可日の有無"),
    SheetColumn("construction_possibility", "営業時間中の工事作業の可否"),
    SheetColumn("construction_possibility_other", "営業時間中の工事作業の可否（その他詳細）"),
    SheetColumn("required_documents", "工事するまでの必要な書類"),
    SheetColumn("submission_method", "申請の提出方法"),
    SheetColumn("fax_number", "FAX番号"),
    SheetColumn("email_address", "メールアドレス"),
    SheetColumn("other_submission_details", "その他提出方法詳細"),
    SheetColumn("required_items", "施設所定のイントラなどの場合の必要項目"),
    SheetColumn("application_deadline", "作業申請の締め切り"),
    SheetColumn("construction_document_keys", "工事書類"),
    # Facility access
    SheetColumn("entry_procedures", "入館時の遵守事項"),
    SheetColumn("loading_procedures", "荷捌き上の遵守事項"),
    SheetColumn("entry_guide_key", slot_label(FileSlot.ENTRY_GUIDE)),
    # Work details
    SheetColumn("parking_option", "作業員の車両駐車について"),
    SheetColumn("parking_option_other", "作業員の車両駐車について（その他詳細）"),
    SheetColumn("night_time_restriction", "夜間の作業時間に制限があるか"),
    SheetColumn("restriction_details", "制限の詳細"),
    SheetColumn("auto_light_off", "営業時間外（夜間作業）時に自動消灯されるか"),
    SheetColumn("light_off_details", "自動消灯の場合の解除方法"),
    SheetColumn("backyard_key_management", "バックヤードの鍵の管理について"),
    SheetColumn("server_rack_key_management", "サーバーラックの鍵の管理について"),
    SheetColumn("other_considerations", "その他留意事項"),
    SheetColumn("submitted_at", "回答日時"),
)

SHEET_HEADERS: tuple[str, ...] = tuple(column.header for column in SHEET_COLUMNS)

EMPTY_CELL = "-"
