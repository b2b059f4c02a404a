"""End-to-end tests for the survey wizard API (storage and sheets faked)."""

import json

import pytest
from httpx import AsyncClient
from slowapi.middleware import SlowAPIMiddleware

from store_survey.core.enums import WizardPhase
from store_survey.core.rate_limit import per_minute
from store_survey.core.survey_definitions import PHOTO_SLOTS
from store_survey.main import app


def _photo_files() -> dict:
    return {slot.value: (f"{slot.value}.jpg", b"\xff\xd8jpeg", "image/jpeg") for slot in PHOTO_SLOTS}


async def _start(client: AsyncClient) -> str:
    response = await client.post("/survey/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


async def _complete_steps(
    client: AsyncClient,
    session_id: str,
    store_info_answers,
    construction_answers,
    facility_access_answers,
    work_details_answers,
) -> dict:
    base = f"/survey/sessions/{session_id}"
    r = await client.post(f"{base}/steps/store_info", json=store_info_answers)
    assert r.status_code == 200, r.text
    r = await client.post(f"{base}/steps/photos", files=_photo_files())
    assert r.status_code == 200, r.text
    r = await client.post(
        f"{base}/steps/construction",
        data={"payload": json.dumps(construction_answers)},
        files={"construction-document": ("app.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert r.status_code == 200, r.text
    r = await client.post(
        f"{base}/steps/facility_access",
        data={"payload": json.dumps(facility_access_answers)},
    )
    assert r.status_code == 200, r.text
    r = await client.post(f"{base}/steps/work_details", json=work_details_answers)
    assert r.status_code == 200, r.text
    return r.json()


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "env" in data
    assert "version" in data


def test_default_rate_limit_middleware_is_installed():
    assert any(m.cls is SlowAPIMiddleware for m in app.user_middleware)
    assert per_minute(60) == "60/minute"


@pytest.mark.asyncio
async def test_new_session_starts_at_store_info(client: AsyncClient):
    response = await client.post("/survey/sessions")

    data = response.json()
    assert data["step"] == "store_info"
    assert data["phase"] == "collecting"
    assert data["record"] == {}
    assert data["can_go_back"] is False


@pytest.mark.asyncio
async def test_unknown_session_is_404(client: AsyncClient):
    response = await client.get("/survey/sessions/does-not-exist")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_full_flow_appends_one_row(
    client: AsyncClient,
    fake_sheets,
    upload_target,
    store_info_answers,
    construction_answers,
    facility_access_answers,
    work_details_answers,
):
    session_id = await _start(client)

    snapshot = await _complete_steps(
        client,
        session_id,
        store_info_answers,
        construction_answers,
        facility_access_answers,
        work_details_answers,
    )
    assert snapshot["step"] == "confirmation"
    assert snapshot["record"]["photo_keys"]["front"] == "渋谷店/店舗外観_正面.jpg"
    assert snapshot["record"]["construction_document_keys"] == {
        "construction-document": "渋谷店/工事作業申請書.pdf"
    }
    assert len(upload_target.puts) == len(PHOTO_SLOTS) + 1

    response = await client.post(f"/survey/sessions/{session_id}/submit")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["session"]["phase"] == "success"
    assert len(fake_sheets.rows) == 1
    assert fake_sheets.rows[0][0] == "渋谷店"


@pytest.mark.asyncio
async def test_failed_sheet_append_keeps_confirmation(
    client: AsyncClient,
    fake_sheets,
    store_info_answers,
    construction_answers,
    facility_access_answers,
    work_details_answers,
):
    session_id = await _start(client)
    await _complete_steps(
        client,
        session_id,
        store_info_answers,
        construction_answers,
        facility_access_answers,
        work_details_answers,
    )
    fake_sheets.append_error = RuntimeError("quota exceeded")

    response = await client.post(f"/survey/sessions/{session_id}/submit")

    data = response.json()
    assert response.status_code == 200
    assert data["success"] is False
    assert data["error"] == "Failed to save data: quota exceeded"
    assert data["session"]["step"] == "confirmation"
    assert data["session"]["last_error"] == "Failed to save data: quota exceeded"

    fake_sheets.append_error = None
    retry = await client.post(f"/survey/sessions/{session_id}/submit")
    assert retry.json()["success"] is True


@pytest.mark.asyncio
async def test_direct_communication_branch(client: AsyncClient, store_info_answers, manager_answers):
    session_id = await _start(client)
    base = f"/survey/sessions/{session_id}"

    r = await client.post(
        f"{base}/steps/store_info",
        json={**store_info_answers, "needs_direct_communication": "yes"},
    )
    assert r.json()["step"] == "facility_manager"

    r = await client.post(f"{base}/steps/facility_manager", json=manager_answers)
    assert r.json()["step"] == "photos"

    r = await client.post(f"{base}/back")
    assert r.json()["step"] == "facility_manager"
    assert r.json()["record"]["manager_phone"] == "090-1111-2222"


@pytest.mark.asyncio
async def test_answers_for_wrong_step_are_409(client: AsyncClient, manager_answers):
    session_id = await _start(client)

    response = await client.post(
        f"/survey/sessions/{session_id}/steps/facility_manager", json=manager_answers
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_invalid_answers_are_422_and_do_not_advance(client: AsyncClient, store_info_answers):
    session_id = await _start(client)

    response = await client.post(
        f"/survey/sessions/{session_id}/steps/store_info",
        json={**store_info_answers, "phone_number": "call me"},
    )

    assert response.status_code == 422
    snapshot = (await client.get(f"/survey/sessions/{session_id}")).json()
    assert snapshot["step"] == "store_info"


@pytest.mark.asyncio
async def test_skipping_ahead_is_409(client: AsyncClient, store_info_answers, work_details_answers):
    session_id = await _start(client)
    await client.post(f"/survey/sessions/{session_id}/steps/store_info", json=store_info_answers)

    response = await client.post(
        f"/survey/sessions/{session_id}/steps/work_details", json=work_details_answers
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_confirmation_takes_no_answers(client: AsyncClient):
    session_id = await _start(client)

    response = await client.post(f"/survey/sessions/{session_id}/steps/confirmation", json={})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_missing_photo_is_400(client: AsyncClient, upload_target, store_info_answers):
    session_id = await _start(client)
    await client.post(f"/survey/sessions/{session_id}/steps/store_info", json=store_info_answers)
    files = _photo_files()
    del files["ceiling"]

    response = await client.post(f"/survey/sessions/{session_id}/steps/photos", files=files)

    assert response.status_code == 400
    assert "ceiling" in response.json()["detail"]
    assert upload_target.puts == []


@pytest.mark.asyncio
async def test_failed_photo_upload_is_502_and_step_stays(
    client: AsyncClient, upload_target, store_info_answers
):
    session_id = await _start(client)
    await client.post(f"/survey/sessions/{session_id}/steps/store_info", json=store_info_answers)
    upload_target.fail_labels.add("サーバーラック内")

    response = await client.post(f"/survey/sessions/{session_id}/steps/photos", files=_photo_files())

    assert response.status_code == 502
    snapshot = (await client.get(f"/survey/sessions/{session_id}")).json()
    assert snapshot["step"] == "photos"
    assert "photo_keys" not in snapshot["record"]


@pytest.mark.asyncio
async def test_document_for_unselected_type_is_400(
    client: AsyncClient, store_info_answers, construction_answers
):
    session_id = await _start(client)
    base = f"/survey/sessions/{session_id}"
    await client.post(f"{base}/steps/store_info", json=store_info_answers)
    await client.post(f"{base}/steps/photos", files=_photo_files())

    response = await client.post(
        f"{base}/steps/construction",
        data={"payload": json.dumps(construction_answers)},
        files={"fire-document": ("fire.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert response.status_code == 400
    assert "fire-document" in response.json()["detail"]


@pytest.mark.asyncio
async def test_submit_before_confirmation_is_409(client: AsyncClient):
    session_id = await _start(client)

    response = await client.post(f"/survey/sessions/{session_id}/submit")

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_reset_returns_to_first_step(client: AsyncClient, store_info_answers):
    session_id = await _start(client)
    await client.post(f"/survey/sessions/{session_id}/steps/store_info", json=store_info_answers)

    response = await client.post(f"/survey/sessions/{session_id}/reset")

    assert response.json()["step"] == "store_info"
    assert response.json()["record"] == {}


@pytest.mark.asyncio
async def test_reset_while_submitting_is_409(client: AsyncClient, store_info_answers):
    session_id = await _start(client)
    await client.post(f"/survey/sessions/{session_id}/steps/store_info", json=store_info_answers)
    app.state.session_store.get(session_id).phase = WizardPhase.SUBMITTING

    response = await client.post(f"/survey/sessions/{session_id}/reset")

    assert response.status_code == 409
    session = app.state.session_store.get(session_id)
    assert session.record["store_name"] == "渋谷店"


# =============================================================================
# Upload targets and direct submission
# =============================================================================

@pytest.mark.asyncio
async def test_upload_target_for_slot(client: AsyncClient):
    response = await client.post(
        "/uploads/targets",
        json={"slot": "front", "owner_name": "ACME", "content_type": "image/png"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["key"] == "ACME/店舗外観_正面.png"
    assert data["upload_url"].startswith("https://uploads.test/")


@pytest.mark.asyncio
async def test_upload_target_rejects_unknown_slot(client: AsyncClient):
    response = await client.post(
        "/uploads/targets",
        json={"slot": "../escape", "owner_name": "ACME", "content_type": "image/png"},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_upload_target_rejects_bad_content_type(client: AsyncClient):
    response = await client.post(
        "/uploads/targets",
        json={"slot": "front", "owner_name": "ACME", "content_type": "application/pdf"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_direct_submission_requires_uploaded_files(
    client: AsyncClient, fake_s3, fake_sheets, complete_record
):
    response = await client.post("/survey/submissions", json=complete_record)

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert "not found" in response.json()["error"]
    assert fake_sheets.rows == []

    fake_s3.objects.update(
        list(complete_record["photo_keys"].values())
        + list(complete_record["construction_document_keys"].values())
    )
    response = await client.post("/survey/submissions", json=complete_record)

    assert response.json() == {"success": True, "error": None}
    assert len(fake_sheets.rows) == 1
