"""
Service for Microsoft Graph drive operations.

All SharePoint-specific quirks live here: site addressing by host and path,
``@odata.nextLink`` pagination, path-based item addressing and the mapping
of HTTP failures onto the deduplicator's error kinds. Transient failures are
retried by the transport adapter before they surface.
"""

import logging
from typing import List, Optional
from urllib.parse import quote, urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from sharepoint_dedup.config import GraphConfig
from sharepoint_dedup.core.cancellation import CancellationToken, check_cancelled
from sharepoint_dedup.core.errors import (
    InvalidInputError,
    NotFoundError,
    RemoteApiError,
    TransportError,
    UnauthorizedError,
)
from sharepoint_dedup.schemas import ChildrenPage, DriveItem, DriveRef

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)
ITEM_FIELDS = "id,name,size,folder,file,webUrl,lastModifiedDateTime,parentReference"


def build_session(config: GraphConfig) -> requests.Session:
    """Create a session whose adapter retries throttling and 5xx responses."""
    retry = Retry(
        total=config.max_retries,
        backoff_factor=config.backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset({"GET", "PUT", "DELETE"}),
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class GraphClient:
    """Typed wrapper over the subset of Graph used for scanning and replacing."""

    def __init__(self, credential, config: GraphConfig, session: Optional[requests.Session] = None):
        """Initialize the client.

        Args:
            credential: Object exposing ``get_token()`` and ``invalidate()``.
            config: Graph base URL, timeout, retry and page-size settings.
            session: Optional pre-built session (tests inject one).
        """
        self.credential = credential
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._session = session or build_session(config)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        url: str,
        cancel: Optional[CancellationToken] = None,
        **kwargs,
    ) -> requests.Response:
        check_cancelled(cancel)
        if not url.startswith(("http://", "https://")):
            url = f"{self.base_url}{url}"

        extra_headers = kwargs.pop("headers", None) or {}
        response = None
        for attempt in range(2):
            headers = {**extra_headers, "Authorization": f"Bearer {self.credential.get_token()}"}
            try:
                response = self._session.request(
                    method, url, headers=headers, timeout=self.config.timeout_seconds, **kwargs
                )
            except requests.RequestException as e:
                raise TransportError(f"{method} {url} failed: {e}") from e

            # An expired or revoked token gets one fresh attempt
            if response.status_code == 401 and attempt == 0:
                logger.info("Graph returned 401, refreshing access token")
                self.credential.invalidate()
                continue
            break

        if response.status_code < 400:
            return response
        raise self._error_for(response)

    @staticmethod
    def _error_for(response: requests.Response) -> Exception:
        code = None
        message = None
        try:
            error = response.json().get("error") or {}
            if isinstance(error, dict):
                code = error.get("code")
                message = error.get("message")
        except ValueError:
            pass

        status = response.status_code
        if status in (401, 403):
            return UnauthorizedError(message or f"Access denied ({status})")
        if status == 404:
            return NotFoundError(message or "Item not found")
        if status in RETRY_STATUSES:
            return TransportError(message or f"Graph request failed with status {status}")
        if message:
            return RemoteApiError(message, code=code, status_code=status)
        return RemoteApiError(f"Graph request failed with status {status}", status_code=status)

    @staticmethod
    def _drive_path(path_from_root: str) -> str:
        return quote(path_from_root.strip("/"), safe="/")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def resolve_site(self, site_url: str, cancel: Optional[CancellationToken] = None) -> str:
        """Return the Graph site id for a SharePoint site URL."""
        parsed = urlparse(site_url)
        if not parsed.hostname:
            raise InvalidInputError(f"Invalid site URL: {site_url}")

        site_path = parsed.path.rstrip("/")
        if site_path:
            endpoint = f"/sites/{parsed.hostname}:{quote(site_path, safe='/')}"
        else:
            endpoint = f"/sites/{parsed.hostname}"

        try:
            payload = self._request("GET", endpoint, cancel).json()
        except NotFoundError as e:
            raise NotFoundError(f"Site not found: {site_url}") from e

        site_id = payload.get("id")
        if not site_id:
            raise NotFoundError(f"Unable to retrieve site information for {site_url}")
        return site_id

    def list_drives(self, site_id: str, cancel: Optional[CancellationToken] = None) -> List[DriveRef]:
        """List the document libraries of a site, skipping entries without an id."""
        drives: List[DriveRef] = []
        url = f"/sites/{site_id}/drives"
        while url:
            payload = self._request("GET", url, cancel).json()
            drives.extend(DriveRef.model_validate(d) for d in payload.get("value") or [])
            url = payload.get("@odata.nextLink")
        return [d for d in drives if d.id]

    def list_children(
        self,
        drive_id: str,
        item_id: str,
        page_token: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ChildrenPage:
        """Fetch one page of an item's children.

        Args:
            drive_id: The drive to list.
            item_id: Parent item id; ``"root"`` is the drive root.
            page_token: ``@odata.nextLink`` from the previous page, if any.
            cancel: Optional cancellation token.

        Returns:
            The page's items and the token for the next page (None when done).
        """
        if page_token:
            url = page_token
            params = None
        else:
            url = f"/drives/{drive_id}/items/{quote(item_id, safe='')}/children"
            params = {"$top": self.config.page_size, "$select": ITEM_FIELDS}

        payload = self._request("GET", url, cancel, params=params).json()
        return ChildrenPage(
            items=[DriveItem.model_validate(v) for v in payload.get("value") or []],
            next_link=payload.get("@odata.nextLink") or None,
        )

    def upload_content(
        self,
        drive_id: str,
        path_from_root: str,
        content: bytes,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Create or overwrite the file at path_from_root with content."""
        self._request(
            "PUT",
            f"/drives/{drive_id}/root:/{self._drive_path(path_from_root)}:/content",
            cancel,
            data=content,
            headers={"Content-Type": "text/plain"},
        )
        logger.debug(f"Uploaded {len(content)} bytes to {drive_id}:{path_from_root}")

    def delete_item(self, drive_id: str, item_id: str, cancel: Optional[CancellationToken] = None) -> None:
        self._request("DELETE", f"/drives/{drive_id}/items/{quote(item_id, safe='')}", cancel)

    def get_item_by_path(
        self,
        drive_id: str,
        path_from_root: str,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[DriveItem]:
        """Return the item at path_from_root, or None if it does not exist."""
        try:
            response = self._request(
                "GET", f"/drives/{drive_id}/root:/{self._drive_path(path_from_root)}", cancel
            )
        except NotFoundError:
            return None
        return DriveItem.model_validate(response.json())
