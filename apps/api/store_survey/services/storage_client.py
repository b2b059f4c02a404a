"""boto3 client construction for the upload bucket."""

from __future__ import annotations

from urllib.parse import urlparse

import boto3
from botocore.client import BaseClient
from botocore.config import Config

from store_survey.core.config import settings

GCS_HOST = "storage.googleapis.com"


def signing_region(region: str | None, endpoint_url: str | None) -> str | None:
    """
    Region presigned URLs are signed for.

    The GCS XML API only accepts "auto"; AWS and other S3-compatible stores
    use the configured region.
    """
    host = (urlparse(endpoint_url).hostname or "").lower() if endpoint_url else ""
    on_gcs = host == GCS_HOST or host.endswith(f".{GCS_HOST}")
    if on_gcs and region in (None, "", "us-east-1"):
        return "auto"
    return region or None


def presign_config(url_style: str | None) -> Config:
    """SigV4 always; addressing style only when explicitly configured."""
    style = (url_style or "").strip().lower()
    s3_options = {"addressing_style": style} if style in ("path", "virtual") else None
    return Config(signature_version="s3v4", s3=s3_options)


def get_s3_client(
    *,
    region: str | None = None,
    endpoint_url: str | None = None,
) -> BaseClient:
    """S3 client for presigning uploads (S3-compatible endpoints supported)."""
    endpoint = (endpoint_url or settings.S3_ENDPOINT_URL or "").rstrip("/") or None
    return boto3.client(
        "s3",
        region_name=signing_region(region or settings.AWS_REGION, endpoint),
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=endpoint,
        config=presign_config(settings.S3_URL_STYLE),
    )
