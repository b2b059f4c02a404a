"""FastAPI dependencies for storage, uploads, sheets and wizard sessions."""

from datetime import timedelta
from typing import AsyncGenerator

import httpx
from fastapi import Depends, HTTPException, Request

from store_survey.core.config import settings
from store_survey.services.session_store import SessionNotFoundError, WizardSessionStore
from store_survey.services.sheets_client import GoogleSheetsClient
from store_survey.services.storage_client import get_s3_client
from store_survey.services.storage_service import StorageService
from store_survey.services.submission_service import SubmissionService
from store_survey.services.upload_service import UploadClient
from store_survey.services.wizard_service import WizardController


def build_session_store() -> WizardSessionStore:
    return WizardSessionStore(ttl=timedelta(minutes=settings.SURVEY_SESSION_TTL_MINUTES))


def get_session_store(request: Request) -> WizardSessionStore:
    return request.app.state.session_store


def get_wizard(
    session_id: str,
    store: WizardSessionStore = Depends(get_session_store),
) -> WizardController:
    """Resolve the wizard for ``session_id`` or 404."""
    try:
        return store.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Survey session not found")


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Outbound HTTP client scoped to one request."""
    async with httpx.AsyncClient() as client:
        yield client


def get_storage_service() -> StorageService:
    return StorageService(
        get_s3_client(),
        settings.S3_BUCKET,
        expires_in=settings.UPLOAD_URL_EXPIRY_SECONDS,
    )


def get_upload_client(
    storage: StorageService = Depends(get_storage_service),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> UploadClient:
    return UploadClient(storage, http_client)


def get_submission_service(
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> SubmissionService:
    return SubmissionService(
        GoogleSheetsClient.from_settings(http_client),
        bucket=settings.S3_BUCKET,
        timezone=settings.business_tz,
    )
