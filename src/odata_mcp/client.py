"""OData client for FileMaker Server style endpoints.

Every call is a single request/response cycle against
``{server}/fmi/odata/v4/{database}`` with Basic authentication. Nothing is
retried here; transport failures are normalised into the ``odata_mcp.errors``
taxonomy.
"""

from __future__ import annotations

import base64
import logging
from typing import Any
from urllib.parse import quote, urlencode

import requests

from odata_mcp.errors import RemoteError, TransportError, ValidationError
from odata_mcp.models import BatchOperation, BatchResult, Connection, QueryOptions, RecordSet

logger = logging.getLogger(__name__)

API_SEGMENT = "fmi/odata/v4"
DEFAULT_TIMEOUT = 30.0

BATCH_METHODS = ("GET", "POST", "PATCH", "DELETE")

# (option attribute, query parameter) in the order they are appended.
_QUERY_PARAMS = (
    ("filter", "$filter"),
    ("select", "$select"),
    ("orderby", "$orderby"),
    ("top", "$top"),
    ("skip", "$skip"),
    ("expand", "$expand"),
    ("count", "$count"),
)


def _basic_auth_header(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def build_query_string(options: QueryOptions | None) -> str:
    """Render query options as an OData query string (without the ``?``).

    Options that are ``None`` or empty are omitted; ``$count`` is only sent
    when truthy.
    """
    if options is None:
        return ""

    params: list[tuple[str, str]] = []
    for attr, param in _QUERY_PARAMS:
        value = getattr(options, attr)
        if value is None or value == "":
            continue
        if attr == "count":
            if value:
                params.append((param, "true"))
            continue
        if attr in ("top", "skip"):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(f"{attr} must be a non-negative integer, got {value!r}")
            value = str(value)
        params.append((param, value))

    return urlencode(params, quote_via=quote, safe="$,'()/")


class ODataClient:
    """Typed query, CRUD and metadata operations against one database."""

    def __init__(
        self,
        server: str,
        database: str,
        user: str,
        password: str,
        verify_ssl: bool = True,
        timeout: float | None = None,
    ) -> None:
        self.server = server.rstrip("/")
        self.database = database
        self.user = user
        self.verify_ssl = verify_ssl
        self.timeout = timeout if timeout is not None else DEFAULT_TIMEOUT
        self.base_url = f"{self.server}/{API_SEGMENT}/{database}"

        self._session = requests.Session()
        self._session.verify = verify_ssl
        self._session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": _basic_auth_header(user, password),
            }
        )

    @classmethod
    def from_connection(
        cls,
        connection: Connection,
        verify_ssl: bool = True,
        timeout: float | None = None,
    ) -> ODataClient:
        return cls(
            server=connection.server,
            database=connection.database,
            user=connection.user,
            password=connection.password.get_secret_value(),
            verify_ssl=verify_ssl,
            timeout=timeout,
        )

    def __repr__(self) -> str:
        return f"ODataClient(base_url={self.base_url!r}, user={self.user!r})"

    # -- URLs ---------------------------------------------------------------

    def build_url(
        self,
        table: str,
        options: QueryOptions | None = None,
        record_id: str | None = None,
    ) -> str:
        """Build ``base/{table}[('{id}')][?query]``.

        The record id is single-quoted and embedded as-is; ids containing a
        quote are not escaped.
        """
        url = f"{self.base_url}/{table}"
        if record_id is not None:
            url += f"('{record_id}')"
        query = build_query_string(options)
        if query:
            url += f"?{query}"
        return url

    def _resolve(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self.base_url}/{url.lstrip('/')}"

    # -- Transport ----------------------------------------------------------

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Issue one request and normalise failures.

        Raises:
            RemoteError: non-2xx response.
            TransportError: the request was sent but no response arrived.
        """
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self._session.request(method, url, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.error(f"{method} {url} failed without a response: {exc}")
            raise TransportError("No response from server - connection failed") from exc

        if not response.ok:
            error = _error_from_response(response)
            logger.error(f"{method} {url} -> {error}")
            raise error
        return response

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # -- Metadata -----------------------------------------------------------

    def get_service_document(self) -> dict[str, Any]:
        """GET the service document listing the entity sets."""
        logger.debug(f"Getting service document from {self.base_url}")
        body = self._json(self._send("GET", self.base_url))
        return body if isinstance(body, dict) else {"value": body}

    def get_metadata(self) -> str:
        """GET the ``$metadata`` schema document as raw XML text."""
        url = f"{self.base_url}/$metadata"
        logger.debug(f"Getting metadata from {url}")
        response = self._send("GET", url, headers={"Accept": "application/xml"})
        return response.text

    # -- Queries ------------------------------------------------------------

    def query_records(self, table: str, options: QueryOptions | None = None) -> RecordSet:
        url = self.build_url(table, options)
        logger.debug(f"Querying records: {url}")
        return RecordSet.from_payload(self._json(self._send("GET", url)))

    def get_record(
        self,
        table: str,
        record_id: str,
        select: str | None = None,
        expand: str | None = None,
    ) -> dict[str, Any]:
        url = self.build_url(table, QueryOptions(select=select, expand=expand), record_id)
        logger.debug(f"Getting record: {url}")
        body = self._json(self._send("GET", url))
        return body if isinstance(body, dict) else {}

    def count_records(self, table: str, filter: str | None = None) -> int:
        url = f"{self.base_url}/{table}/$count"
        query = build_query_string(QueryOptions(filter=filter))
        if query:
            url += f"?{query}"
        logger.debug(f"Counting records in {table}")
        response = self._send("GET", url, headers={"Accept": "text/plain"})
        text = response.text.strip()
        try:
            return int(text)
        except ValueError:
            raise RemoteError(
                response.status_code,
                f"Unexpected $count response: {text[:100]!r}",
            ) from None

    # -- CRUD ---------------------------------------------------------------

    def create_record(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/{table}"
        logger.debug(f"Creating record in {table}")
        body = self._json(self._send("POST", url, json=data))
        return body if isinstance(body, dict) else {}

    def update_record(self, table: str, record_id: str, data: dict[str, Any]) -> None:
        url = self.build_url(table, record_id=record_id)
        logger.debug(f"Updating record: {url}")
        self._send("PATCH", url, json=data)

    def delete_record(self, table: str, record_id: str) -> None:
        url = self.build_url(table, record_id=record_id)
        logger.debug(f"Deleting record: {url}")
        self._send("DELETE", url)

    # -- Batch --------------------------------------------------------------

    def batch(self, operations: list[BatchOperation]) -> list[BatchResult]:
        """Run each operation in order, independently of the others.

        This is not an OData ``$batch`` request: there is no atomicity and a
        failed operation never stops the ones after it.
        """
        logger.debug(f"Executing batch with {len(operations)} operations")
        results: list[BatchResult] = []

        for op in operations:
            method = op.method.upper()
            try:
                if method not in BATCH_METHODS:
                    raise ValidationError(f"Unsupported method: {op.method}")
                kwargs: dict[str, Any] = {}
                if op.data is not None and method in ("POST", "PATCH"):
                    kwargs["json"] = op.data
                response = self._send(method, self._resolve(op.url), **kwargs)
                results.append(
                    BatchResult(
                        success=True,
                        status=response.status_code,
                        data=self._json(response),
                    )
                )
            except (RemoteError, TransportError, ValidationError, requests.RequestException) as exc:
                status = exc.status if isinstance(exc, RemoteError) and exc.status else 500
                results.append(BatchResult(success=False, status=status, error=str(exc)))

        return results

    # -- Health -------------------------------------------------------------

    def test_connection(self) -> bool:
        """Fetch the service document; never raises."""
        try:
            self.get_service_document()
            return True
        except Exception as exc:
            logger.error(f"Connection test failed for {self.base_url}: {exc}")
            return False

    def close(self) -> None:
        self._session.close()


def _error_from_response(response: requests.Response) -> RemoteError:
    """Map a non-2xx response to a RemoteError.

    A JSON body of the form ``{"error": {"code": ..., "message": ...}}`` is a
    structured OData error; anything else falls back to status and reason.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error = body["error"]
        if "code" in error or "message" in error:
            return RemoteError(
                str(error.get("code", "")),
                str(error.get("message", "")),
                status=response.status_code,
                structured=True,
            )

    return RemoteError(response.status_code, response.reason or "", status=response.status_code)


__all__ = ["API_SEGMENT", "DEFAULT_TIMEOUT", "ODataClient", "build_query_string"]
