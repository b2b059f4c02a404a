"""Survey wizard endpoints: sessions, steps, back/submit/reset, direct submission."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool

from store_survey.core.config import settings
from store_survey.core.deps import (
    get_session_store,
    get_storage_service,
    get_submission_service,
    get_upload_client,
    get_wizard,
)
from store_survey.core.enums import FileSlot, SurveyStep
from store_survey.core.rate_limit import limiter, per_minute
from store_survey.core.structured_logging import build_log_context
from store_survey.core.survey_definitions import DOCUMENT_SLOTS, PHOTO_SLOTS
from store_survey.schemas.survey import (
    STEP_MODELS,
    ConstructionForm,
    ConstructionStep,
    FacilityAccessForm,
    FacilityAccessStep,
    PhotosStep,
    SubmissionResult,
    SurveySubmission,
    WizardSnapshot,
)
from store_survey.services.session_store import WizardSessionStore
from store_survey.services.storage_service import InvalidUploadError, StorageService
from store_survey.services.submission_service import SubmissionService
from store_survey.services.upload_service import SlotFile, UploadClient, UploadError
from store_survey.services.wizard_service import WizardController, WizardStateError
from store_survey.utils.file_upload import read_slot_files

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/survey", tags=["survey"])

PAYLOAD_FIELD = "payload"


class WizardSubmitResponse(SubmissionResult):
    session: WizardSnapshot


def _snapshot(wizard: WizardController) -> WizardSnapshot:
    return WizardSnapshot.model_validate(wizard.snapshot())


def _expect_step(wizard: WizardController, step: SurveyStep) -> None:
    try:
        wizard.expect_step(step)
    except WizardStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


def _advance(wizard: WizardController, result: BaseModel) -> WizardSnapshot:
    try:
        wizard.advance(result)
    except WizardStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _snapshot(wizard)


def _validate(model: type[BaseModel], data: Any) -> Any:
    """Validate into ``model``, reporting failures as a normal 422."""
    try:
        if isinstance(data, (str, bytes)):
            return model.model_validate_json(data)
        return model.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


def _owner_name(wizard: WizardController) -> str:
    owner = wizard.record.get("store_name")
    if not owner:
        raise HTTPException(status_code=409, detail="Store information must be entered first")
    return owner


async def _upload(
    uploader: UploadClient,
    wizard: WizardController,
    files: list[SlotFile],
) -> dict[FileSlot, str]:
    try:
        return await uploader.upload_files(_owner_name(wizard), files)
    except InvalidUploadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UploadError as e:
        logger.warning(
            "Step uploads failed",
            extra=build_log_context(session_id=wizard.session_id, step=wizard.step.value),
        )
        raise HTTPException(status_code=502, detail=str(e))


async def _read_multipart(
    request: Request,
    slots: list[FileSlot],
) -> tuple[str | None, list[SlotFile]]:
    form = await request.form()
    payload = form.get(PAYLOAD_FIELD)
    if payload is not None and not isinstance(payload, str):
        raise HTTPException(status_code=400, detail=f"'{PAYLOAD_FIELD}' must be a JSON string")
    try:
        files = await read_slot_files(form, slots, non_file_fields=[PAYLOAD_FIELD])
    except InvalidUploadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return payload, files


# =============================================================================
# Sessions
# =============================================================================

@router.post("/sessions", response_model=WizardSnapshot, status_code=status.HTTP_201_CREATED)
async def create_session(store: WizardSessionStore = Depends(get_session_store)):
    """Start a new survey at the first step."""
    wizard = store.create()
    logger.info("Survey session started", extra=build_log_context(session_id=wizard.session_id))
    return _snapshot(wizard)


@router.get("/sessions/{session_id}", response_model=WizardSnapshot)
async def get_session(wizard: WizardController = Depends(get_wizard)):
    return _snapshot(wizard)


# =============================================================================
# Upload steps (multipart)
# =============================================================================

@router.post("/sessions/{session_id}/steps/photos", response_model=WizardSnapshot)
@limiter.limit(per_minute(settings.RATE_LIMIT_UPLOADS))
async def submit_photos(
    request: Request,
    wizard: WizardController = Depends(get_wizard),
    uploader: UploadClient = Depends(get_upload_client),
):
    """
    Upload every required photo, then advance.

    One multipart file per photo slot, named by slot id. All transfers run
    concurrently; if any fails, nothing is recorded and the step stays put.
    """
    _expect_step(wizard, SurveyStep.PHOTOS)
    _, files = await _read_multipart(request, list(PHOTO_SLOTS))

    provided = {f.slot for f in files}
    missing = [slot.value for slot in PHOTO_SLOTS if slot not in provided]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing photos: {', '.join(missing)}")

    keys = await _upload(uploader, wizard, files)
    return _advance(wizard, PhotosStep(photo_keys=keys))


@router.post("/sessions/{session_id}/steps/construction", response_model=WizardSnapshot)
@limiter.limit(per_minute(settings.RATE_LIMIT_UPLOADS))
async def submit_construction(
    request: Request,
    wizard: WizardController = Depends(get_wizard),
    uploader: UploadClient = Depends(get_upload_client),
):
    """
    Construction application answers plus optional documents.

    ``payload`` is the JSON answers; files are named by document slot and
    accepted only for document types selected in ``required_documents``.
    """
    _expect_step(wizard, SurveyStep.CONSTRUCTION)
    payload, files = await _read_multipart(request, list(DOCUMENT_SLOTS.values()))
    form = _validate(ConstructionForm, payload or "{}")

    selected = {DOCUMENT_SLOTS[doc] for doc in form.required_documents}
    unselected = [f.slot.value for f in files if f.slot not in selected]
    if unselected:
        raise HTTPException(
            status_code=400,
            detail=f"Documents uploaded for unselected types: {', '.join(unselected)}",
        )

    keys = await _upload(uploader, wizard, files)
    result = ConstructionStep(**form.model_dump(), construction_document_keys=keys)
    return _advance(wizard, result)


@router.post("/sessions/{session_id}/steps/facility_access", response_model=WizardSnapshot)
@limiter.limit(per_minute(settings.RATE_LIMIT_UPLOADS))
async def submit_facility_access(
    request: Request,
    wizard: WizardController = Depends(get_wizard),
    uploader: UploadClient = Depends(get_upload_client),
):
    """Entry and loading rules, plus an optional entry guide document."""
    _expect_step(wizard, SurveyStep.FACILITY_ACCESS)
    payload, files = await _read_multipart(request, [FileSlot.ENTRY_GUIDE])
    form = _validate(FacilityAccessForm, payload or "{}")

    keys = await _upload(uploader, wizard, files)
    result = FacilityAccessStep(
        **form.model_dump(),
        entry_guide_key=keys.get(FileSlot.ENTRY_GUIDE),
    )
    return _advance(wizard, result)


# =============================================================================
# Answer-only steps (JSON)
# =============================================================================

@router.post("/sessions/{session_id}/steps/{step}", response_model=WizardSnapshot)
async def submit_step(
    step: SurveyStep,
    body: dict[str, Any] = Body(...),
    wizard: WizardController = Depends(get_wizard),
):
    """
    Validate answers for a step without uploads and advance.

    Upload steps are served by the multipart routes above, which are
    matched first.
    """
    model = STEP_MODELS.get(step)
    if model is None:
        raise HTTPException(status_code=400, detail=f"Step '{step.value}' takes no answers")
    _expect_step(wizard, step)
    return _advance(wizard, _validate(model, body))


# =============================================================================
# Navigation
# =============================================================================

@router.post("/sessions/{session_id}/back", response_model=WizardSnapshot)
async def go_back(wizard: WizardController = Depends(get_wizard)):
    try:
        wizard.back()
    except WizardStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _snapshot(wizard)


@router.post("/sessions/{session_id}/submit", response_model=WizardSubmitResponse)
@limiter.limit(per_minute(settings.RATE_LIMIT_SUBMISSIONS))
async def submit_survey(
    request: Request,
    wizard: WizardController = Depends(get_wizard),
    submission_service: SubmissionService = Depends(get_submission_service),
):
    """
    Append the collected answers to the spreadsheet.

    A failed append returns ``success: false`` and leaves the session on
    the confirmation step so the user can resubmit.
    """
    try:
        result = await wizard.submit(submission_service)
    except WizardStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return WizardSubmitResponse(success=result.success, error=result.error, session=_snapshot(wizard))


@router.post("/sessions/{session_id}/reset", response_model=WizardSnapshot)
async def reset_session(wizard: WizardController = Depends(get_wizard)):
    try:
        wizard.reset()
    except WizardStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _snapshot(wizard)


# =============================================================================
# Direct submission (file fields already resolved to storage keys)
# =============================================================================

@router.post("/submissions", response_model=SubmissionResult)
@limiter.limit(per_minute(settings.RATE_LIMIT_SUBMISSIONS))
async def create_submission(
    request: Request,
    submission: SurveySubmission,
    storage: StorageService = Depends(get_storage_service),
    submission_service: SubmissionService = Depends(get_submission_service),
):
    """
    Append a complete survey assembled by the client.

    Every referenced storage key must already exist in the bucket.
    """
    for key in submission.storage_keys():
        try:
            exists = await run_in_threadpool(storage.object_exists, key)
        except Exception:
            logger.exception("Failed to verify uploaded file")
            return SubmissionResult(success=False, error="Could not verify uploaded files")
        if not exists:
            return SubmissionResult(success=False, error=f"Uploaded file not found: {key}")

    return await submission_service.submit(submission)
