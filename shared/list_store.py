"""
List store client for the SharePoint REST list API.

This module provides the ListStore protocol consumed by the services and
SharePointListClient, its httpx implementation. The store is a remote
key-filtered CRUD API: items with typed columns, server-assigned integer
ids and zero or more named attachments per item.

There is no ambient client instance: open_list_store() builds a handle
from settings and every service receives it explicitly.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from shared.config import Settings
from shared.errors import (
    ErrorCategory,
    RemoteStoreError,
    StoreConfigurationError,
    get_error_logger,
)
from shared.filters import Predicate, escape_odata_string
from shared.logging_config import mask_token

logger = logging.getLogger(__name__)
error_logger = get_error_logger()

# Status codes worth another attempt
TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass(frozen=True)
class ItemQuery:
    """Read query against a list: $select, $filter, $orderby, $top, $expand."""

    select: list[str] = field(default_factory=list)
    filter: Predicate | None = None
    order_by: str | None = None
    descending: bool = False
    top: int | None = None
    expand: list[str] = field(default_factory=list)

    def to_params(self) -> dict[str, str]:
        """Serialize to OData query parameters."""
        params: dict[str, str] = {}
        if self.select:
            params["$select"] = ",".join(self.select)
        if self.filter is not None:
            params["$filter"] = self.filter.to_odata()
        if self.order_by:
            params["$orderby"] = f"{self.order_by} desc" if self.descending else self.order_by
        if self.top is not None:
            params["$top"] = str(self.top)
        if self.expand:
            params["$expand"] = ",".join(self.expand)
        return params


class ListStore(Protocol):
    """Operations the services need from the remote list store."""

    async def get_items(self, list_title: str, query: ItemQuery) -> list[dict[str, Any]]: ...

    async def add_item(self, list_title: str, fields: dict[str, Any]) -> dict[str, Any]: ...

    async def update_item(self, list_title: str, item_id: int, fields: dict[str, Any]) -> None: ...

    async def delete_item(self, list_title: str, item_id: int) -> None: ...

    async def get_attachments(self, list_title: str, item_id: int) -> list[dict[str, Any]]: ...

    async def delete_attachment(self, list_title: str, item_id: int, filename: str) -> None: ...

    async def add_attachment(
        self, list_title: str, item_id: int, filename: str, content: bytes
    ) -> None: ...


def _is_transient(exc: BaseException) -> bool:
    """Retry transport failures and throttling/server errors, never 4xx."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in TRANSIENT_STATUS_CODES
    return isinstance(exc, httpx.TransportError)


def _server_message(response: httpx.Response) -> str | None:
    """Extract the structured error message from a SharePoint error body.

    nometadata responses use ``odata.error``, verbose ones ``error``.
    """
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("odata.error") or body.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    if isinstance(message, dict):
        return message.get("value")
    if isinstance(message, str):
        return message
    return None


class SharePointListClient:
    """
    Client for SharePoint list items and their attachments.

    Every call is retried on transient failures and any remaining failure
    is raised as RemoteStoreError.
    """

    def __init__(
        self,
        site_url: str,
        access_token: str,
        *,
        timeout: float = 10.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
        wait: Any = None,
    ):
        """Initialize the client.

        Args:
            site_url: Site root URL (the part before /_api)
            access_token: Bearer token
            timeout: Per-request timeout in seconds
            max_retries: Attempts per call on transient failures
            transport: Optional httpx transport (tests use httpx.MockTransport)
            wait: Optional tenacity wait strategy
        """
        self.site_url = site_url.rstrip("/")
        self.max_retries = max_retries
        self.wait = wait or wait_exponential(multiplier=1, min=1, max=8)

        self._client = httpx.AsyncClient(
            base_url=f"{self.site_url}/_api/web",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json;odata=nometadata",
            },
            timeout=timeout,
            transport=transport,
        )

        logger.info(
            f"SharePointListClient initialized: {self.site_url}, token={mask_token(access_token)}"
        )

    async def __aenter__(self) -> "SharePointListClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _items_path(list_title: str) -> str:
        return f"/lists/getbytitle('{quote(escape_odata_string(list_title))}')/items"

    def _item_path(self, list_title: str, item_id: int) -> str:
        return f"{self._items_path(list_title)}({int(item_id)})"

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request with retries; raise RemoteStoreError on failure."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=self.wait,
                retry=retry_if_exception(_is_transient),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.request(method, path, **kwargs)
                    response.raise_for_status()
                    return response

        except httpx.HTTPStatusError as e:
            server_message = _server_message(e.response)
            error = RemoteStoreError(
                f"{method} {path} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
                server_message=server_message,
            )
            error_logger.log_error(
                error=error,
                category=ErrorCategory.REMOTE_STORE_ERROR,
                operation=f"{method} {path}",
                context={"server_message": server_message},
                exc_info=False,
            )
            raise error from e

        except httpx.HTTPError as e:
            error = RemoteStoreError(f"{method} {path} failed: {e}")
            error_logger.log_error(
                error=error,
                category=ErrorCategory.REMOTE_STORE_ERROR,
                operation=f"{method} {path}",
                exc_info=False,
            )
            raise error from e

        # unreachable: AsyncRetrying either returns or reraises
        raise RemoteStoreError(f"{method} {path} failed")

    async def get_items(self, list_title: str, query: ItemQuery) -> list[dict[str, Any]]:
        """
        Read items matching a query.

        Args:
            list_title: Display title of the list
            query: Select/filter/order/top/expand options

        Returns:
            List of item dicts keyed by internal column name
        """
        params = query.to_params()
        logger.debug(
            f"Querying list '{list_title}': {params}",
            extra={"list_title": list_title},
        )
        response = await self._request("GET", self._items_path(list_title), params=params)
        return list(response.json().get("value", []))

    async def add_item(self, list_title: str, fields: dict[str, Any]) -> dict[str, Any]:
        """
        Create an item.

        Returns:
            The created item, including its server-assigned "Id"
        """
        response = await self._request(
            "POST",
            self._items_path(list_title),
            json=fields,
            headers={"Content-Type": "application/json;odata=nometadata"},
        )
        item = response.json()
        logger.info(
            f"Created item {item.get('Id')} in '{list_title}'",
            extra={"list_title": list_title, "item_id": item.get("Id")},
        )
        return item

    async def update_item(self, list_title: str, item_id: int, fields: dict[str, Any]) -> None:
        """Merge the given columns into an existing item."""
        await self._request(
            "POST",
            self._item_path(list_title, item_id),
            json=fields,
            headers={
                "Content-Type": "application/json;odata=nometadata",
                "X-HTTP-Method": "MERGE",
                "IF-MATCH": "*",
            },
        )
        logger.info(
            f"Updated item {item_id} in '{list_title}'",
            extra={"list_title": list_title, "item_id": item_id},
        )

    async def delete_item(self, list_title: str, item_id: int) -> None:
        """Delete an item (and, server side, its attachments)."""
        await self._request(
            "POST",
            self._item_path(list_title, item_id),
            headers={"X-HTTP-Method": "DELETE", "IF-MATCH": "*"},
        )
        logger.info(
            f"Deleted item {item_id} from '{list_title}'",
            extra={"list_title": list_title, "item_id": item_id},
        )

    async def get_attachments(self, list_title: str, item_id: int) -> list[dict[str, Any]]:
        """List the attachments of an item as dicts with a "FileName" key."""
        response = await self._request(
            "GET", f"{self._item_path(list_title, item_id)}/AttachmentFiles"
        )
        return list(response.json().get("value", []))

    async def delete_attachment(self, list_title: str, item_id: int, filename: str) -> None:
        """Delete one attachment by file name."""
        name = quote(escape_odata_string(filename))
        await self._request(
            "POST",
            f"{self._item_path(list_title, item_id)}/AttachmentFiles/getByFileName('{name}')",
            headers={"X-HTTP-Method": "DELETE", "IF-MATCH": "*"},
        )
        logger.debug(
            f"Deleted attachment '{filename}' from item {item_id}",
            extra={"list_title": list_title, "item_id": item_id},
        )

    async def add_attachment(
        self, list_title: str, item_id: int, filename: str, content: bytes
    ) -> None:
        """Upload one attachment to an item."""
        name = quote(escape_odata_string(filename))
        await self._request(
            "POST",
            f"{self._item_path(list_title, item_id)}/AttachmentFiles/add(FileName='{name}')",
            content=content,
            headers={"Content-Type": "application/octet-stream"},
        )
        logger.debug(
            f"Added attachment '{filename}' to item {item_id}",
            extra={"list_title": list_title, "item_id": item_id},
        )


def open_list_store(settings: Settings) -> SharePointListClient | StoreConfigurationError:
    """
    Build the list store handle from settings.

    Missing configuration is returned as a StoreConfigurationError value
    instead of raised, so callers decide how to surface it.

    Args:
        settings: Application settings

    Returns:
        A ready client, or the configuration error describing what is missing
    """
    missing = [
        name
        for name in ("LIST_STORE_SITE_URL", "LIST_STORE_ACCESS_TOKEN")
        if not getattr(settings, name)
    ]
    if missing:
        error = StoreConfigurationError(
            f"List store not configured, missing: {', '.join(missing)}"
        )
        logger.warning(str(error))
        return error

    return SharePointListClient(
        settings.LIST_STORE_SITE_URL,
        settings.LIST_STORE_ACCESS_TOKEN,
        timeout=settings.LIST_STORE_TIMEOUT_SECONDS,
        max_retries=settings.LIST_STORE_MAX_RETRIES,
    )
