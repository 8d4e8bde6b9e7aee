"""Firestore REST client for per-user journal documents.

Documents live at ``users/{user_id}/entries/{date}``. Values travel in
Firestore's typed-value JSON encoding, handled by the codec below.
"""

import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

_SIMPLE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z_0-9]*$")


class CloudError(Exception):
    """A cloud document operation failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CloudPermissionError(CloudError):
    """The backend rejected the caller (auth or security rules)."""


class CloudUnavailableError(CloudError):
    """The backend could not be reached or failed server-side."""


# ==================== Value Codec ====================


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore typed value.

    Raises:
        TypeError: For values with no Firestore representation.
    """
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        if not value:
            return {"arrayValue": {}}
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} for Firestore")


def decode_value(value: dict[str, Any]) -> Any:
    """Decode a Firestore typed value into a Python value.

    Raises:
        ValueError: For an unrecognised value type.
    """
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    # Passed through as their string forms
    for key in ("timestampValue", "referenceValue", "bytesValue"):
        if key in value:
            return value[key]
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    raise ValueError(f"Unknown Firestore value type: {list(value)}")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {str(k): encode_value(v) for k, v in data.items()}


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: decode_value(v) for k, v in fields.items()}


def _field_path(name: str) -> str:
    """Quote a top-level field name for an update mask."""
    if _SIMPLE_FIELD.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def entry_path(user_id: str, entry_id: str) -> str:
    """Document path of one day's entry for a user."""
    return f"users/{quote(user_id, safe='')}/entries/{quote(entry_id, safe='')}"


# ==================== Client ====================


class FirestoreClient:
    """Async client for Firestore documents over the REST API.

    Authentication tokens are supplied from outside; this client never
    signs anyone in.
    """

    def __init__(
        self,
        project_id: str,
        api_key: str | None = None,
        id_token: str | None = None,
        base_url: str = "https://firestore.googleapis.com/v1",
        database: str = "(default)",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Firestore client.

        Args:
            project_id: Firestore project id.
            api_key: Optional Web API key sent as the ``key`` parameter.
            id_token: Optional user ID token sent as a bearer token.
            base_url: REST endpoint root (an emulator URL works too).
            database: Database id within the project.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, mainly for tests.
        """
        self.project_id = project_id
        self.api_key = api_key
        self.id_token = id_token
        self.base_url = base_url.rstrip("/")
        self.database = database
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id)

    @property
    def documents_root(self) -> str:
        return f"/projects/{self.project_id}/databases/{self.database}/documents"

    def set_id_token(self, id_token: str | None) -> None:
        """Replace the bearer token used for subsequent requests."""
        self.id_token = id_token
        if self._client is not None:
            self._client.headers.pop("Authorization", None)
            if id_token:
                self._client.headers["Authorization"] = f"Bearer {id_token}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {}
            if self.id_token:
                headers["Authorization"] = f"Bearer {self.id_token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _params(self, extra: list[tuple[str, str]] | None = None) -> list[tuple[str, str]]:
        params = list(extra or [])
        if self.api_key:
            params.append(("key", self.api_key))
        return params

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error", {})
            status = error.get("status", "")
            message = error.get("message", "")
            if status or message:
                return f"HTTP {response.status_code} {status}: {message}".strip()
        except ValueError:
            pass
        return f"HTTP {response.status_code}: {response.text[:200]}"

    async def _request(
        self,
        method: str,
        path: str,
        params: list[tuple[str, str]] | None = None,
        json_data: Any = None,
    ) -> httpx.Response:
        """Send one request and classify failures.

        Returns the response for 2xx and 404; raises otherwise.
        """
        if not self.is_configured:
            raise CloudError("Cloud document store is not configured")

        client = await self._get_client()
        url = f"{self.documents_root}/{path}"

        try:
            response = await client.request(
                method, url, params=self._params(params), json=json_data
            )
        except httpx.TimeoutException as e:
            raise CloudUnavailableError(f"Request timeout: {e}") from e
        except httpx.TransportError as e:
            raise CloudUnavailableError(f"Connection failed: {e}") from e

        if response.is_success or response.status_code == 404:
            return response

        message = self._error_message(response)
        if response.status_code in (401, 403):
            raise CloudPermissionError(message, response.status_code)
        if response.status_code >= 500:
            raise CloudUnavailableError(message, response.status_code)
        raise CloudError(message, response.status_code)

    async def get_document(self, path: str) -> dict[str, Any] | None:
        """Fetch and decode a document.

        Args:
            path: Document path relative to the database root.

        Returns:
            Decoded document fields, or None if it does not exist.
        """
        response = await self._request("GET", path)
        if response.status_code == 404:
            logger.debug(f"Document {path} not found")
            return None
        return decode_fields(response.json().get("fields", {}))

    async def set_document(
        self,
        path: str,
        data: dict[str, Any],
        merge: bool = True,
    ) -> dict[str, Any]:
        """Write a document.

        Args:
            path: Document path relative to the database root.
            data: Fields to write.
            merge: Only touch the given top-level fields, keeping any
                others already stored remotely.

        Returns:
            Decoded fields of the stored document.
        """
        params = []
        if merge:
            params = [("updateMask.fieldPaths", _field_path(k)) for k in data]

        response = await self._request(
            "PATCH", path, params=params, json_data={"fields": encode_fields(data)}
        )
        if response.status_code == 404:
            raise CloudError(f"Document parent for {path} not found", 404)

        logger.debug(f"Wrote document {path} ({len(data)} fields, merge={merge})")
        return decode_fields(response.json().get("fields", {}))

    async def delete_document(self, path: str) -> bool:
        response = await self._request("DELETE", path)
        return response.status_code != 404

    async def health_check(self) -> bool:
        """Check that the backend answers at all.

        Returns:
            True if reachable (a missing document still counts), False otherwise.
        """
        if not self.is_configured:
            return False
        try:
            await self._request("GET", "__chronos__/health")
            return True
        except CloudPermissionError:
            return True
        except CloudError as e:
            logger.debug(f"Health check failed: {e}")
            return False
