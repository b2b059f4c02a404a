"""Pydantic schemas for survey steps, the final submission and wizard sessions."""

from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from store_survey.core.enums import (
    ConstructionPossibility,
    FileSlot,
    ParkingOption,
    RequiredDocument,
    SubmissionMethod,
    SurveyStep,
    WizardPhase,
    YesNo,
)
from store_survey.core.survey_definitions import DOCUMENT_SLOTS, PHOTO_SLOTS
from store_survey.utils.normalization import normalize_name, normalize_phone, normalize_text


def _required_text(value: object) -> object:
    if isinstance(value, str):
        return value.strip()
    return value


def _optional_text(value: object) -> object:
    if isinstance(value, str):
        return normalize_text(value)
    return value


# =============================================================================
# Step forms
# =============================================================================

class StoreInfoStep(BaseModel):
    """Step 1: store identity and whether facility staff must be contacted directly."""

    store_name: str = Field(..., min_length=1, max_length=200)
    phone_number: str = Field(..., min_length=1, max_length=20)
    needs_direct_communication: YesNo

    @field_validator("store_name", mode="before")
    @classmethod
    def clean_store_name(cls, v: object) -> object:
        if isinstance(v, str):
            return normalize_name(v) or ""
        return v

    @field_validator("phone_number", mode="before")
    @classmethod
    def clean_phone(cls, v: object) -> object:
        if isinstance(v, str):
            return normalize_phone(v) or ""
        return v


class FacilityManagerStep(BaseModel):
    """Step 2 (conditional): the facility contact handling construction paperwork."""

    manager_name: str = Field(..., min_length=1, max_length=200)
    manager_phone: str = Field(..., min_length=1, max_length=20)

    @field_validator("manager_name", mode="before")
    @classmethod
    def clean_name(cls, v: object) -> object:
        if isinstance(v, str):
            return normalize_name(v) or ""
        return v

    @field_validator("manager_phone", mode="before")
    @classmethod
    def clean_phone(cls, v: object) -> object:
        if isinstance(v, str):
            return normalize_phone(v) or ""
        return v


class PhotosStep(BaseModel):
    """Step 3: storage keys for every required photo slot."""

    photo_keys: dict[FileSlot, str]

    @field_validator("photo_keys")
    @classmethod
    def require_all_photos(cls, v: dict[FileSlot, str]) -> dict[FileSlot, str]:
        missing = [slot.value for slot in PHOTO_SLOTS if not v.get(slot)]
        if missing:
            raise ValueError(f"Missing photos: {', '.join(missing)}")
        extra = [slot.value for slot in v if slot not in PHOTO_SLOTS]
        if extra:
            raise ValueError(f"Not a photo slot: {', '.join(extra)}")
        return v


class ConstructionForm(BaseModel):
    """Step 4 answers, before document uploads are attached."""

    unavailable_dates: str = Field(..., min_length=1, max_length=2000)
    construction_possibility: ConstructionPossibility
    construction_possibility_other: str | None = Field(None, max_length=2000)
    required_documents: list[RequiredDocument] = Field(..., min_length=1)
    submission_method: SubmissionMethod
    fax_number: str | None = Field(None, max_length=20)
    email_address: EmailStr | None = None
    other_submission_details: str | None = Field(None, max_length=2000)
    required_items: str | None = Field(None, max_length=2000)
    application_deadline: str = Field(..., min_length=1, max_length=500)

    @field_validator("unavailable_dates", "application_deadline", mode="before")
    @classmethod
    def strip_construction_required(cls, v: object) -> object:
        return _required_text(v)

    @field_validator(
        "construction_possibility_other",
        "other_submission_details",
        "required_items",
        "email_address",
        mode="before",
    )
    @classmethod
    def strip_construction_optional(cls, v: object) -> object:
        return _optional_text(v)

    @field_validator("fax_number", mode="before")
    @classmethod
    def clean_fax(cls, v: object) -> object:
        if isinstance(v, str):
            return normalize_phone(v)
        return v

    @field_validator("required_documents")
    @classmethod
    def dedupe_documents(cls, v: list[RequiredDocument]) -> list[RequiredDocument]:
        return list(dict.fromkeys(v))


class ConstructionStep(ConstructionForm):
    """Step 4 result: answers plus keys of the uploaded application documents."""

    construction_document_keys: dict[FileSlot, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def documents_match_selection(self) -> "ConstructionStep":
        allowed = {DOCUMENT_SLOTS[doc] for doc in self.required_documents}
        unexpected = [slot.value for slot in self.construction_document_keys if slot not in allowed]
        if unexpected:
            raise ValueError(
                f"Documents uploaded for unselected types: {', '.join(unexpected)}"
            )
        return self


class FacilityAccessForm(BaseModel):
    """Step 5 answers: rules for entering the building and loading."""

    entry_procedures: str = Field(..., min_length=1, max_length=5000)
    loading_procedures: str = Field(..., min_length=1, max_length=5000)

    @field_validator("entry_procedures", "loading_procedures", mode="before")
    @classmethod
    def strip_access_required(cls, v: object) -> object:
        return _required_text(v)


class FacilityAccessStep(FacilityAccessForm):
    entry_guide_key: str | None = None


class WorkDetailsStep(BaseModel):
    """Step 6: parking, night work and key management."""

    parking_option: ParkingOption
    parking_option_other: str | None = Field(None, max_length=2000)
    night_time_restriction: YesNo
    restriction_details: str | None = Field(None, max_length=2000)
    auto_light_off: YesNo
    light_off_details: str | None = Field(None, max_length=2000)
    backyard_key_management: str = Field(..., min_length=1, max_length=2000)
    server_rack_key_management: str = Field(..., min_length=1, max_length=2000)
    other_considerations: str | None = Field(None, max_length=5000)

    @field_validator("backyard_key_management", "server_rack_key_management", mode="before")
    @classmethod
    def strip_work_required(cls, v: object) -> object:
        return _required_text(v)

    @field_validator(
        "parking_option_other",
        "restriction_details",
        "light_off_details",
        "other_considerations",
        mode="before",
    )
    @classmethod
    def strip_work_optional(cls, v: object) -> object:
        return _optional_text(v)


StepResult = (
    StoreInfoStep
    | FacilityManagerStep
    | PhotosStep
    | ConstructionStep
    | FacilityAccessStep
    | WorkDetailsStep
)

STEP_MODELS: dict[SurveyStep, type[BaseModel]] = {
    SurveyStep.STORE_INFO: StoreInfoStep,
    SurveyStep.FACILITY_MANAGER: FacilityManagerStep,
    SurveyStep.PHOTOS: PhotosStep,
    SurveyStep.CONSTRUCTION: ConstructionStep,
    SurveyStep.FACILITY_ACCESS: FacilityAccessStep,
    SurveyStep.WORK_DETAILS: WorkDetailsStep,
}


# =============================================================================
# Final submission
# =============================================================================

class SurveySubmission(
    StoreInfoStep,
    PhotosStep,
    ConstructionStep,
    FacilityAccessStep,
    WorkDetailsStep,
):
    """
    The complete aggregate record, with file fields resolved to storage keys.

    Facility manager fields are present iff direct communication was needed.
    """

    manager_name: str | None = Field(None, max_length=200)
    manager_phone: str | None = Field(None, max_length=20)

    @field_validator("manager_name", mode="before")
    @classmethod
    def clean_manager_name(cls, v: object) -> object:
        if isinstance(v, str):
            return normalize_name(v)
        return v

    @field_validator("manager_phone", mode="before")
    @classmethod
    def clean_manager_phone(cls, v: object) -> object:
        if isinstance(v, str):
            return normalize_phone(v)
        return v

    @model_validator(mode="after")
    def manager_matches_branch(self) -> "SurveySubmission":
        has_manager = bool(self.manager_name) or bool(self.manager_phone)
        if self.needs_direct_communication == YesNo.YES:
            if not (self.manager_name and self.manager_phone):
                raise ValueError("Facility manager name and phone are required")
        elif has_manager:
            raise ValueError("Facility manager details given without direct communication")
        return self

    def storage_keys(self) -> list[str]:
        """Every storage key referenced by this submission."""
        keys = list(self.photo_keys.values()) + list(self.construction_document_keys.values())
        if self.entry_guide_key:
            keys.append(self.entry_guide_key)
        return keys


class SubmissionResult(BaseModel):
    success: bool
    error: str | None = None


# =============================================================================
# Upload targets
# =============================================================================

class UploadTargetRequest(BaseModel):
    slot: FileSlot
    owner_name: str = Field(..., min_length=1, max_length=200)
    content_type: str = Field(..., min_length=1, max_length=255)


class UploadTargetResponse(BaseModel):
    upload_url: str
    key: str


# =============================================================================
# Wizard sessions
# =============================================================================

class WizardSnapshot(BaseModel):
    """Current position and answers of one wizard session."""

    session_id: str
    step: SurveyStep
    phase: WizardPhase
    path: list[SurveyStep]
    record: dict[str, Any]
    can_go_back: bool
    last_error: str | None = None
