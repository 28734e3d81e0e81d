"""
Student service: the one client every student screen goes through.

Wraps the REST API (list/get/create/update/delete and the bulk import),
validates form payloads before sending, and publishes a change on the entity
bus after every successful mutation so cached student lists refresh.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional, Sequence

import requests

from madrassa.config import (
    STUDENT_IMPORT_ENDPOINT,
    STUDENTS_ENDPOINT,
    ApiSettings,
    load_settings,
)
from madrassa.students.events import STUDENT, EntityEventBus, QueryCache
from madrassa.students.models import ImportResult, StudentDraft
from madrassa.students.validation import StudentValidationError, validate_student_form

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """The API could not be reached or answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"{response.status_code} {response.reason or 'error'} from {response.url}"


def _serialize(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, date) else v for k, v in data.items()}


class StudentRepository:
    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        session: Optional[requests.Session] = None,
        bus: Optional[EntityEventBus] = None,
    ):
        self.settings = settings or load_settings()
        self.session = session or requests.Session()
        if self.settings.token:
            self.session.headers["Authorization"] = f"Bearer {self.settings.token}"
        self.bus = bus or EntityEventBus()
        self.cache = QueryCache(self.bus)

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        url = f"{self.settings.base_url}{path}"
        try:
            response = self.session.request(
                method, url, json=payload, timeout=self.settings.timeout,
            )
        except requests.RequestException as e:
            raise ApiError(f"Could not reach {url}: {e}")

        if not response.ok:
            raise ApiError(_error_message(response), response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise ApiError(f"Invalid JSON in response from {url}", response.status_code)

    # -- reads -------------------------------------------------------------

    def list(self) -> list[dict[str, Any]]:
        return self.cache.get_or_fetch(
            (STUDENT, "list"),
            lambda: self._request("GET", STUDENTS_ENDPOINT) or [],
        )

    def get(self, student_id: int) -> dict[str, Any]:
        return self.cache.get_or_fetch(
            (STUDENT, "detail", student_id),
            lambda: self._request("GET", f"{STUDENTS_ENDPOINT}/{student_id}"),
        )

    # -- mutations ---------------------------------------------------------

    def create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        errors = validate_student_form(data)
        if errors:
            raise StudentValidationError(errors)
        created = self._request("POST", STUDENTS_ENDPOINT, _serialize(data))
        logger.info("[students] created %s", (created or {}).get("studentId", ""))
        self.bus.publish(STUDENT, "created", (created or {}).get("id"))
        return created

    def update(self, student_id: int, data: Mapping[str, Any]) -> dict[str, Any]:
        errors = validate_student_form(data, partial=True)
        if errors:
            raise StudentValidationError(errors)
        updated = self._request("PUT", f"{STUDENTS_ENDPOINT}/{student_id}", _serialize(data))
        self.bus.publish(STUDENT, "updated", student_id)
        return updated

    def delete(self, student_id: int) -> None:
        self._request("DELETE", f"{STUDENTS_ENDPOINT}/{student_id}")
        logger.info("[students] deleted %s", student_id)
        self.bus.publish(STUDENT, "deleted", student_id)

    def import_students(self, drafts: Sequence[StudentDraft]) -> ImportResult:
        """Send the whole batch in one request; the server assigns IDs and merges duplicates."""
        body = self._request(
            "POST", STUDENT_IMPORT_ENDPOINT, [d.as_payload() for d in drafts],
        )
        result = ImportResult.from_payload(body or {})
        logger.info("[students] import of %d drafts: %s", len(drafts), result.summary())
        self.bus.publish(STUDENT, "imported")
        return result
