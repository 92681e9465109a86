"""Paperless-NGX REST adapter.

Implements :class:`IDocumentBackend` against three endpoints:

    GET  /api/tags/?name__iexact=<name>      tag lookup (0 results -> None)
    POST /api/tags/                          tag creation, JSON {"name": ...}
    POST /api/documents/post_document/       multipart document upload

Authentication uses ``Authorization: Token <token>`` when a token is
configured and HTTP basic auth otherwise.  The ``httpx.AsyncClient`` is
injected so that all workers share one connection pool and one client-level
timeout, and so tests can substitute an ``httpx.MockTransport``.
"""

from __future__ import annotations

from typing import Any

import httpx

from enex2paperless.config.settings import Settings
from enex2paperless.interfaces.document_backend import DocumentUpload, IDocumentBackend
from enex2paperless.utils.errors import (
    BackendRequestError,
    BackendUnavailableError,
    DocumentUploadError,
    TagCreationConflict,
)
from enex2paperless.utils.logging import get_logger

_PROVIDER_NAME = "paperless"
_TAGS_PATH = "/api/tags/"
_POST_DOCUMENT_PATH = "/api/documents/post_document/"
# Upper bound on response bodies copied into logs / exceptions.
_MAX_BODY_CHARS = 500


class PaperlessProvider(IDocumentBackend):
    """Talks to a Paperless-NGX instance over its REST API.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``; its timeout bounds every call.
    settings:
        Provides ``paperless_api`` and the credentials.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings) -> None:
        self._http = http_client
        self._base_url = settings.paperless_api.rstrip("/")
        self._token = settings.token
        self._token_auth = settings.uses_token_auth
        self._username = settings.username
        self._password = settings.password
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    # ------------------------------------------------------------------
    # IDocumentBackend implementation
    # ------------------------------------------------------------------

    async def find_tag(self, name: str) -> int | None:
        """Return the id of the tag named *name* (case-insensitive), or ``None``."""
        response = await self._request(
            "GET",
            _TAGS_PATH,
            params={"name__iexact": name},
        )

        if response.status_code != 200:
            self._logger.error(
                "tag_lookup_failed",
                tag=name,
                status_code=response.status_code,
                body=_truncate(response.text),
            )
            raise BackendRequestError(
                message=f"tag lookup for {name!r} returned {response.status_code}",
                provider_name=_PROVIDER_NAME,
                status_code=response.status_code,
            )

        payload = _json_or_raise(response, f"tag lookup for {name!r}")
        results = payload.get("results") or []
        if payload.get("count", len(results)) == 0 or not results:
            self._logger.debug("tag_not_found", tag=name)
            return None

        first = results[0] if isinstance(results, list) else None
        tag_id = _tag_id(first, response, f"tag lookup for {name!r}")
        self._logger.debug("tag_found", tag=name, tag_id=tag_id)
        return tag_id

    async def create_tag(self, name: str) -> int:
        """Create *name* and return its new id.

        Any non-success answer is reported as :class:`TagCreationConflict`
        so the caller can check whether a concurrent caller won the race.
        """
        response = await self._request("POST", _TAGS_PATH, json={"name": name})

        if not response.is_success:
            self._logger.debug(
                "tag_create_refused",
                tag=name,
                status_code=response.status_code,
                body=_truncate(response.text),
            )
            raise TagCreationConflict(
                message=f"creating tag {name!r} returned {response.status_code}",
                provider_name=_PROVIDER_NAME,
                status_code=response.status_code,
            )

        payload = _json_or_raise(response, f"tag creation for {name!r}")
        tag_id = _tag_id(payload, response, f"tag creation for {name!r}")
        self._logger.info("tag_created", tag=name, tag_id=tag_id)
        return tag_id

    async def upload_document(self, upload: DocumentUpload) -> None:
        """POST one document as multipart form data."""
        form: dict[str, Any] = {
            "title": upload.title,
            "created": upload.created,
        }
        if upload.tag_ids:
            # httpx emits one "tags" form field per list element.
            form["tags"] = [str(tag_id) for tag_id in upload.tag_ids]

        files = {"document": (upload.file_name, upload.data, upload.mime_type)}

        self._logger.debug(
            "document_upload_start",
            file=upload.file_name,
            title=upload.title,
            tags=upload.tag_ids,
            size=len(upload.data),
        )
        response = await self._request(
            "POST",
            _POST_DOCUMENT_PATH,
            data=form,
            files=files,
        )

        if not response.is_success:
            body = _truncate(response.text)
            self._logger.error(
                "document_upload_rejected",
                file=upload.file_name,
                status_code=response.status_code,
                body=body,
            )
            raise DocumentUploadError(
                message=f"non 2xx status code received ({response.status_code}): {body}",
                provider_name=_PROVIDER_NAME,
                status_code=response.status_code,
                body=body,
            )

        self._logger.debug("document_upload_complete", file=upload.file_name)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request, mapping transport errors."""
        headers: dict[str, str] = {"Accept": "application/json"}
        auth: httpx.Auth | None = None
        if self._token_auth:
            headers["Authorization"] = f"Token {self._token}"
        else:
            auth = httpx.BasicAuth(self._username, self._password)

        url = f"{self._base_url}{path}"
        try:
            return await self._http.request(
                method,
                url,
                headers=headers,
                auth=auth,
                **kwargs,
            )
        except httpx.HTTPError as exc:
            self._logger.warning(
                "paperless_request_failed",
                method=method,
                url=url,
                error=str(exc),
            )
            raise BackendUnavailableError(
                message=f"{method} {url} failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc


def _json_or_raise(response: httpx.Response, context: str) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise BackendRequestError(
            message=f"{context}: response is not JSON",
            provider_name=_PROVIDER_NAME,
            status_code=response.status_code,
        ) from exc
    if not isinstance(payload, dict):
        raise BackendRequestError(
            message=f"{context}: unexpected response shape",
            provider_name=_PROVIDER_NAME,
            status_code=response.status_code,
        )
    return payload


def _tag_id(record: Any, response: httpx.Response, context: str) -> int:
    """Pull an integer ``id`` out of a tag record from a 2xx reply."""
    try:
        return int(record["id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise BackendRequestError(
            message=f"{context}: response carries no usable tag id",
            provider_name=_PROVIDER_NAME,
            status_code=response.status_code,
        ) from exc


def _truncate(text: str) -> str:
    if len(text) <= _MAX_BODY_CHARS:
        return text
    return text[:_MAX_BODY_CHARS] + "..."
