"""
Test configuration and fixtures.

Provides:
- In-memory fakes for S3 and the Sheets client
- An httpx MockTransport standing in for presigned PUT targets
- HTTPX AsyncClient wired to the app with storage/sheets overridden
- Valid answer payloads for every survey step
"""
import os
from typing import AsyncGenerator
from urllib.parse import quote
from zoneinfo import ZoneInfo

import httpx
import pytest
from botocore.exceptions import ClientError
from httpx import AsyncClient, ASGITransport

# Rate limiting is disabled under TESTING; must be set before the app is imported.
os.environ["TESTING"] = "1"

from store_survey.main import app
from store_survey.core.deps import (
    build_session_store,
    get_storage_service,
    get_submission_service,
    get_upload_client,
)
from store_survey.core.enums import FileSlot
from store_survey.core.survey_definitions import PHOTO_SLOTS, slot_label
from store_survey.services.sheets_client import WorksheetInfo
from store_survey.services.storage_service import StorageService
from store_survey.services.submission_service import SubmissionService
from store_survey.services.upload_service import UploadClient

TEST_BUCKET = "survey-bucket"
UPLOAD_HOST = "uploads.test"


# =============================================================================
# Fakes
# =============================================================================

class FakeS3:
    """Just enough of a boto3 S3 client for presigning and HEAD."""

    def __init__(self) -> None:
        self.objects: set[str] = set()
        self.presigned: list[dict] = []
        self.presign_error: Exception | None = None

    def generate_presigned_url(self, operation, Params, ExpiresIn):  # noqa: N803
        if self.presign_error:
            raise self.presign_error
        self.presigned.append({"operation": operation, "params": Params, "expires_in": ExpiresIn})
        return f"https://{UPLOAD_HOST}/{quote(Params['Key'])}?signature=test"

    def head_object(self, Bucket, Key):  # noqa: N803
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {"ContentLength": 1}


class FakeSheets:
    """In-memory stand-in for GoogleSheetsClient."""

    def __init__(self, *, column_count: int = 26, row_count: int = 1000) -> None:
        self.worksheet = WorksheetInfo(
            sheet_id=0, title="Sheet1", row_count=row_count, column_count=column_count
        )
        self.header: list[str] = []
        self.rows: list[list[str]] = []
        self.resizes: list[tuple[int, int]] = []
        self.append_error: Exception | None = None

    async def get_first_worksheet(self) -> WorksheetInfo:
        return self.worksheet

    async def resize(self, worksheet, *, row_count, column_count) -> None:
        self.resizes.append((row_count, column_count))
        self.worksheet = WorksheetInfo(
            sheet_id=worksheet.sheet_id,
            title=worksheet.title,
            row_count=row_count,
            column_count=column_count,
        )

    async def get_header_row(self, worksheet) -> list[str]:
        return list(self.header)

    async def set_header_row(self, worksheet, headers) -> None:
        self.header = list(headers)

    async def append_row(self, worksheet, values) -> None:
        if self.append_error:
            raise self.append_error
        self.rows.append(list(values))


class FakeUploadTarget:
    """Receives PUTs to presigned URLs and records them in FakeS3."""

    def __init__(self, s3: FakeS3) -> None:
        self.s3 = s3
        self.puts: list[tuple[str, str, bytes]] = []
        self.fail_labels: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        key = request.url.path.lstrip("/")
        if any(label in key for label in self.fail_labels):
            return httpx.Response(503, text="Slow Down")
        self.puts.append((key, request.headers.get("content-type", ""), request.content))
        self.s3.objects.add(key)
        return httpx.Response(200)


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def fake_sheets() -> FakeSheets:
    return FakeSheets()


@pytest.fixture
def upload_target(fake_s3: FakeS3) -> FakeUploadTarget:
    return FakeUploadTarget(fake_s3)


@pytest.fixture
def storage_service(fake_s3: FakeS3) -> StorageService:
    return StorageService(fake_s3, TEST_BUCKET, expires_in=600)


@pytest.fixture
async def upload_http(upload_target: FakeUploadTarget) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(upload_target.handler)) as c:
        yield c


@pytest.fixture
def upload_client(storage_service: StorageService, upload_http: httpx.AsyncClient) -> UploadClient:
    return UploadClient(storage_service, upload_http)


@pytest.fixture
def submission_service(fake_sheets: FakeSheets) -> SubmissionService:
    return SubmissionService(fake_sheets, bucket=TEST_BUCKET, timezone=ZoneInfo("Asia/Tokyo"))


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(
    storage_service: StorageService,
    upload_client: UploadClient,
    submission_service: SubmissionService,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the app with external services replaced by fakes."""
    app.state.session_store = build_session_store()
    app.dependency_overrides[get_storage_service] = lambda: storage_service
    app.dependency_overrides[get_upload_client] = lambda: upload_client
    app.dependency_overrides[get_submission_service] = lambda: submission_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# Answer Fixtures
# =============================================================================

@pytest.fixture
def store_info_answers() -> dict:
    return {
        "store_name": "渋谷店",
        "phone_number": "03-1234-5678",
        "needs_direct_communication": "no",
    }


@pytest.fixture
def manager_answers() -> dict:
    return {"manager_name": "山田 太郎", "manager_phone": "090-1111-2222"}


@pytest.fixture
def construction_answers() -> dict:
    return {
        "unavailable_dates": "年末年始",
        "construction_possibility": "possible",
        "required_documents": ["construction"],
        "submission_method": "email",
        "email_address": "facility@example.com",
        "application_deadline": "作業の2週間前",
    }


@pytest.fixture
def facility_access_answers() -> dict:
    return {"entry_procedures": "警備室で受付", "loading_procedures": "搬入口を利用"}


@pytest.fixture
def work_details_answers() -> dict:
    return {
        "parking_option": "dedicated",
        "night_time_restriction": "no",
        "auto_light_off": "no",
        "backyard_key_management": "店長が管理",
        "server_rack_key_management": "本部が管理",
    }


@pytest.fixture
def photo_keys() -> dict[str, str]:
    return {slot.value: f"渋谷店/{slot_label(slot)}.jpg" for slot in PHOTO_SLOTS}


@pytest.fixture
def complete_record(
    store_info_answers,
    construction_answers,
    facility_access_answers,
    work_details_answers,
    photo_keys,
) -> dict:
    """A valid aggregate record for the no-direct-communication branch."""
    return {
        **store_info_answers,
        "photo_keys": photo_keys,
        **construction_answers,
        "construction_document_keys": {
            FileSlot.CONSTRUCTION_DOCUMENT.value: f"渋谷店/{slot_label(FileSlot.CONSTRUCTION_DOCUMENT)}.pdf",
        },
        **facility_access_answers,
        "entry_guide_key": None,
        **work_details_answers,
    }
