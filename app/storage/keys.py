"""Deterministic storage keys for job status records and merged artifacts."""

import re

from app.config.settings import Settings

_UNSAFE_FILENAME_CHARS = re.compile(r"[\\/\x00-\x1f]+")


def key_join(*parts: str) -> str:
    """Join key segments with single slashes, dropping empty segments."""
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


class StorageKeys:
    """Key layout under ``<temp prefix>/onboardings/application-form-pdf``."""

    def __init__(self, settings: Settings) -> None:
        self._prefix = key_join(
            settings.storage_temp_prefix, "onboardings", "application-form-pdf"
        )
        self._bucket = settings.storage_bucket
        self._endpoint = settings.storage_endpoint
        self._secure = settings.storage_secure
        self._public_base_url = settings.storage_public_base_url.rstrip("/")

    @property
    def prefix(self) -> str:
        return self._prefix

    def status_key(self, job_id: str) -> str:
        return key_join(self._prefix, f"{job_id}.json")

    def output_key(self, job_id: str, filename: str | None) -> str:
        return key_join(self._prefix, job_id, output_filename(job_id, filename))

    def public_url(self, key: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{key.strip('/')}"
        scheme = "https" if self._secure else "http"
        return f"{scheme}://{self._endpoint}/{self._bucket}/{key.strip('/')}"


def output_filename(job_id: str, filename: str | None) -> str:
    """Requested filename with a ``.pdf`` suffix, or ``<job_id>.pdf``."""
    name = _UNSAFE_FILENAME_CHARS.sub("-", (filename or "").strip()).strip("-. ")
    if not name:
        name = job_id
    if not name.lower().endswith(".pdf"):
        name = f"{name}.pdf"
    return name
