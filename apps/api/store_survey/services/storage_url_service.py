"""Helpers for building public storage URLs."""

from __future__ import annotations

from urllib.parse import quote, urlparse

from store_survey.core.config import settings


def _public_origin() -> tuple[str, str] | None:
    """(scheme, host) of S3_PUBLIC_BASE_URL, or None to use the AWS regional host."""
    base = (settings.S3_PUBLIC_BASE_URL or "").strip().rstrip("/")
    if not base:
        return None
    parsed = urlparse(base if "://" in base else f"https://{base}")
    return parsed.scheme or "https", parsed.netloc


def _aws_host() -> str:
    region = settings.AWS_REGION
    return f"s3.{region}.amazonaws.com" if region else "s3.amazonaws.com"


def build_public_url(bucket: str, key: str) -> str:
    """Build a public URL for the given bucket/key."""
    origin = _public_origin()
    style = (settings.S3_URL_STYLE or "virtual").lower()
    path = quote(key, safe="/")

    if origin:
        scheme, base_host = origin
        if style == "virtual":
            return f"{scheme}://{bucket}.{base_host}/{path}"
        return f"{scheme}://{base_host}/{bucket}/{path}"

    if style == "path":
        return f"https://{_aws_host()}/{bucket}/{path}"
    return f"https://{bucket}.{_aws_host()}/{path}"
