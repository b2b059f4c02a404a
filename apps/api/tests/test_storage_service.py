"""Tests for storage key building and presigned upload targets."""

import pytest
from botocore.exceptions import ClientError

from store_survey.core.enums import FileSlot
from store_survey.services.storage_service import (
    InvalidUploadError,
    UploadTargetError,
    build_storage_key,
)


def test_storage_key_is_owner_slash_label_with_extension():
    assert build_storage_key("front", "ACME", "image/png") == "ACME/店舗外観_正面.png"
    assert build_storage_key(FileSlot.SERVER, "渋谷店", "image/jpeg") == "渋谷店/サーバーラック内.jpg"
    assert (
        build_storage_key(FileSlot.ENTRY_GUIDE, "渋谷店", "application/pdf")
        == "渋谷店/入館説明用資料.pdf"
    )


def test_storage_key_normalizes_content_type_parameters():
    assert build_storage_key("front", "ACME", "Image/JPG; charset=binary") == "ACME/店舗外観_正面.jpg"


@pytest.mark.parametrize(
    "owner, expected_prefix",
    [
        ("../../etc", "etc"),
        ("a/b\\c", "abc"),
        ("  渋谷   店  ", "渋谷 店"),
        ("line\nbreak", "linebreak"),
    ],
)
def test_storage_key_sanitizes_owner_name(owner, expected_prefix):
    key = build_storage_key("front", owner, "image/png")

    assert key == f"{expected_prefix}/店舗外観_正面.png"
    assert key.count("/") == 1


def test_storage_key_rejects_owner_with_nothing_left():
    with pytest.raises(InvalidUploadError):
        build_storage_key("front", "../", "image/png")


def test_storage_key_rejects_unknown_slot():
    with pytest.raises(InvalidUploadError, match="Unknown file slot"):
        build_storage_key("../secret", "ACME", "image/png")


def test_storage_key_rejects_pdf_for_photo_slot():
    with pytest.raises(InvalidUploadError, match="not allowed"):
        build_storage_key("front", "ACME", "application/pdf")


def test_issue_upload_target_presigns_put(storage_service, fake_s3):
    target = storage_service.issue_upload_target("front", "ACME", "image/png")

    assert target.key == "ACME/店舗外観_正面.png"
    assert target.content_type == "image/png"
    assert target.upload_url.startswith("https://uploads.test/")
    presigned = fake_s3.presigned[0]
    assert presigned["operation"] == "put_object"
    assert presigned["params"] == {
        "Bucket": "survey-bucket",
        "Key": "ACME/店舗外観_正面.png",
        "ContentType": "image/png",
    }
    assert presigned["expires_in"] == 600


def test_issue_upload_target_wraps_backend_errors(storage_service, fake_s3):
    fake_s3.presign_error = ClientError({"Error": {"Code": "AccessDenied"}}, "PutObject")

    with pytest.raises(UploadTargetError):
        storage_service.issue_upload_target("front", "ACME", "image/png")


def test_object_exists(storage_service, fake_s3):
    fake_s3.objects.add("ACME/店舗外観_正面.png")

    assert storage_service.object_exists("ACME/店舗外観_正面.png") is True
    assert storage_service.object_exists("ACME/missing.png") is False
