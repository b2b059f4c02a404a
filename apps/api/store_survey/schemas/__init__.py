"""Pydantic schemas for API request/response models."""

from store_survey.schemas.survey import (
    ConstructionStep,
    FacilityAccessStep,
    FacilityManagerStep,
    PhotosStep,
    StoreInfoStep,
    SubmissionResult,
    SurveySubmission,
    UploadTargetRequest,
    UploadTargetResponse,
    WizardSnapshot,
    WorkDetailsStep,
)

__all__ = [
    "ConstructionStep",
    "FacilityAccessStep",
    "FacilityManagerStep",
    "PhotosStep",
    "StoreInfoStep",
    "SubmissionResult",
    "SurveySubmission",
    "UploadTargetRequest",
    "UploadTargetResponse",
    "WizardSnapshot",
    "WorkDetailsStep",
]
