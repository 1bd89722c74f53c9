"""Microsoft Graph folder directory.

Objective:
    Provide the Microsoft Graph implementation of
    :class:`outlook_locale_merge.directory.FolderDirectory` for one mailbox,
    plus access to the mailbox's regional configuration.

Responsibilities:
    - Issue authenticated HTTP requests to Graph (via :class:`requests`).
    - Bind well-known folders, look up and enumerate child folders.
    - Page through folder items and move them in JSON batches.
    - Move and delete folders.
    - Read and write ``mailboxSettings`` (locale, date and time formats).

High-level call tree:
    - Public API (:class:`GraphFolderDirectory`):
        - :meth:`bind` / :meth:`get_root` / :meth:`get_folder`
        - :meth:`find_child_by_name` / :meth:`list_children`
        - :meth:`list_item_ids_page` / :meth:`move_items`
        - :meth:`move_folder` / :meth:`soft_delete`
        - :meth:`resolve_path`
        - :meth:`get_regional_configuration` / :meth:`set_regional_configuration`
    - Internal helpers:
        - :meth:`_make_request` (auth + error logging)
        - :meth:`_call` (translates HTTP failures into mailbox errors)

Graph endpoints used (``{base}`` is ``/users/{mailbox}`` or ``/me``):
    - ``GET {base}/mailFolders/{wellKnownName|id}``
    - ``GET {base}/mailFolders/{id}/childFolders``
    - ``GET {base}/mailFolders/{id}/messages``
    - ``POST {base}/mailFolders/{id}/move``
    - ``DELETE {base}/mailFolders/{id}``
    - ``POST /$batch`` wrapping ``POST {base}/messages/{id}/move``
    - ``GET|PATCH {base}/mailboxSettings``

Error handling:
    - HTTP errors are logged and raised from :meth:`_make_request`.
    - :meth:`_call` converts them into :class:`MailboxOperationError`, or
      :class:`FolderNotFoundError` for binds that return 404.
"""

import logging
from typing import Any, AbstractSet, Optional, Sequence
from urllib.parse import quote

import requests

from .auth import GraphAuthenticator
from .config import ROOT_FOLDER_NAME, Settings
from .directory import FolderNotFoundError, MailboxOperationError
from .models import Folder, ItemPage, RegionalConfiguration, WellKnownRole

logger = logging.getLogger(__name__)

FOLDER_SELECT = "id,displayName,parentFolderId,childFolderCount,totalItemCount"

# Graph JSON batching accepts at most 20 sub-requests per call
GRAPH_BATCH_LIMIT = 20

FOLDER_PAGE_SIZE = 250

PATH_SEPARATOR = "\\"


def _status_of(error: requests.RequestException) -> Optional[int]:
    return getattr(getattr(error, "response", None), "status_code", None)


class GraphFolderDirectory:
    """
    Folder directory for one mailbox backed by Microsoft Graph.

    One instance is created per mailbox and passed explicitly to the merge
    components; nothing here is shared between mailboxes.

    Attributes:
        settings: Application settings.
        auth: Graph API authenticator.
        mailbox: Mailbox address (None addresses the signed-in user).
    """

    GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

    def __init__(
        self,
        settings: Settings,
        auth: GraphAuthenticator,
        mailbox: Optional[str] = None,
    ) -> None:
        """
        Initialize the directory.

        Args:
            settings: Application settings.
            auth: Graph API authenticator.
            mailbox: Mailbox address to operate on.
        """
        self.settings = settings
        self.auth = auth
        self.mailbox = mailbox
        self._root: Optional[Folder] = None

    @property
    def base_path(self) -> str:
        """Graph path prefix addressing the mailbox."""
        if self.mailbox:
            return f"/users/{quote(self.mailbox, safe='@')}"
        return "/me"

    def _folder_path(self, folder_id: str) -> str:
        return f"{self.base_path}/mailFolders/{quote(folder_id, safe='')}"

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
        suppress_statuses: Optional[AbstractSet[int]] = None,
    ) -> dict:
        """Make an authenticated request to Microsoft Graph.

        This helper:
        - Adds auth headers (Bearer token).
        - Applies a default timeout.
        - Raises for non-2xx responses.
        - Returns decoded JSON or ``{}`` for 204 responses.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE).
            endpoint: API endpoint path, or an absolute ``@odata.nextLink``.
            params: Query parameters.
            json_data: JSON body data.
            suppress_statuses: Statuses logged at DEBUG instead of ERROR.

        Returns:
            dict: Response JSON data.

        Raises:
            requests.HTTPError: If request fails.
        """
        if endpoint.startswith("https://"):
            url = endpoint
        else:
            url = f"{self.GRAPH_BASE_URL}{endpoint}"
        headers = self.auth.get_auth_headers()

        response = requests.request(
            method=method,
            url=url,
            headers=headers,
            params=params,
            json=json_data,
            timeout=60,
        )

        if not response.ok:
            suppress = suppress_statuses and response.status_code in suppress_statuses
            if suppress:
                logger.debug(
                    "Graph API expected non-2xx: %s - %s",
                    response.status_code,
                    response.text,
                )
            else:
                logger.error(
                    f"Graph API error: {response.status_code} - {response.text}"
                )
            response.raise_for_status()

        if response.status_code == 204 or not response.content:
            return {}

        return response.json()

    def _call(self, description: str, method: str, endpoint: str, **kwargs: Any) -> dict:
        """Run :meth:`_make_request`, translating failures.

        Args:
            description: Human-readable operation for error messages.
            method: HTTP method.
            endpoint: API endpoint path.
            **kwargs: Forwarded to :meth:`_make_request`.

        Returns:
            dict: Response JSON data.

        Raises:
            MailboxOperationError: If the request fails.
        """
        try:
            return self._make_request(method, endpoint, **kwargs)
        except requests.RequestException as e:
            raise MailboxOperationError(f"{description} failed: {e}", _status_of(e)) from e

    def _bind_path(self, key: str, description: str) -> Folder:
        try:
            response = self._make_request(
                "GET",
                self._folder_path(key),
                params={"$select": FOLDER_SELECT},
                suppress_statuses={404},
            )
        except requests.RequestException as e:
            if _status_of(e) == 404:
                raise FolderNotFoundError(f"{description} not found in mailbox {self.mailbox or 'me'}") from e
            raise MailboxOperationError(f"Binding {description} failed: {e}", _status_of(e)) from e
        return Folder.model_validate(response)

    def bind(self, role: WellKnownRole) -> Folder:
        """Resolve a well-known role to its canonical folder.

        Args:
            role: Well-known folder role.

        Returns:
            Folder: The folder Exchange maps the role to.

        Raises:
            FolderNotFoundError: If the role cannot be bound, including roles
                without a Graph mail folder well-known name (no request is
                made for those).
        """
        if role.well_known_name is None:
            raise FolderNotFoundError(f"Graph has no mail folder well-known name for {role.value}")
        return self._bind_path(role.well_known_name, f"Well-known folder {role.value}")

    def get_root(self) -> Folder:
        """Return the mailbox root (top of information store)."""
        if self._root is None:
            self._root = self._bind_path(ROOT_FOLDER_NAME, "Mailbox root")
        return self._root

    def get_folder(self, folder_id: str) -> Folder:
        """Bind a folder by id."""
        return self._bind_path(folder_id, f"Folder {folder_id}")

    def find_child_by_name(self, parent: Folder, name: str) -> Optional[Folder]:
        """Exact-match lookup of an immediate child by display name.

        When Graph reports several children with the same name, the last one
        enumerated is returned and the ambiguity is logged.

        Args:
            parent: Parent folder.
            name: Display name to match.

        Returns:
            Optional[Folder]: Matching child, or None when absent.
        """
        escaped = name.replace("'", "''")
        params = {
            "$filter": f"displayName eq '{escaped}'",
            "$select": FOLDER_SELECT,
            "includeHiddenFolders": "true",
        }
        response = self._call(
            f"Looking up '{name}' under '{parent.display_name}'",
            "GET",
            f"{self._folder_path(parent.id)}/childFolders",
            params=params,
        )
        matches = [Folder.model_validate(item) for item in response.get("value", [])]
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                "Found %d folders named '%s' under '%s'; using the last one (id=%s)",
                len(matches),
                name,
                parent.display_name,
                matches[-1].id,
            )
        return matches[-1]

    def list_children(self, parent: Folder, max_results: int) -> list[Folder]:
        """Enumerate immediate children of a folder.

        Follows ``@odata.nextLink`` until ``max_results`` folders are
        collected or Graph reports no more pages.

        Args:
            parent: Parent folder.
            max_results: Upper bound on returned folders.

        Returns:
            list[Folder]: Child folders in listing order.
        """
        endpoint: Optional[str] = f"{self._folder_path(parent.id)}/childFolders"
        params: Optional[dict] = {
            "$top": min(max_results, FOLDER_PAGE_SIZE),
            "$select": FOLDER_SELECT,
            "includeHiddenFolders": "true",
        }

        children: list[Folder] = []
        while endpoint and len(children) < max_results:
            response = self._call(
                f"Listing child folders of '{parent.display_name}'",
                "GET",
                endpoint,
                params=params,
            )
            for item in response.get("value", []):
                children.append(Folder.model_validate(item))
            endpoint = response.get("@odata.nextLink")
            # nextLink already carries the query string
            params = None

        return children[:max_results]

    def list_item_ids_page(self, folder: Folder, offset: int, page_size: int) -> ItemPage:
        """List one page of item ids.

        Args:
            folder: Folder to list.
            offset: Number of items to skip.
            page_size: Maximum ids returned.

        Returns:
            ItemPage: Ids plus whether Graph reported a further page.
        """
        params = {
            "$select": "id",
            "$top": page_size,
            "$skip": offset,
        }
        response = self._call(
            f"Listing items of '{folder.display_name}'",
            "GET",
            f"{self._folder_path(folder.id)}/messages",
            params=params,
        )
        ids = [item["id"] for item in response.get("value", []) if item.get("id")]
        return ItemPage(ids=ids, has_more="@odata.nextLink" in response)

    def move_items(self, item_ids: Sequence[str], new_parent: Folder) -> None:
        """Move a batch of items into a folder.

        Items are submitted through Graph JSON batching, at most
        :data:`GRAPH_BATCH_LIMIT` moves per HTTP call. Every chunk is
        submitted even if an earlier one had failures.

        Args:
            item_ids: Items to move.
            new_parent: Destination folder.

        Raises:
            MailboxOperationError: If any item failed to move.
        """
        failed: list[tuple[str, int]] = []
        for start in range(0, len(item_ids), GRAPH_BATCH_LIMIT):
            chunk = list(item_ids[start:start + GRAPH_BATCH_LIMIT])
            requests_body = [
                {
                    "id": str(index),
                    "method": "POST",
                    "url": f"{self.base_path}/messages/{quote(item_id, safe='')}/move",
                    "headers": {"Content-Type": "application/json"},
                    "body": {"destinationId": new_parent.id},
                }
                for index, item_id in enumerate(chunk)
            ]
            try:
                response = self._call(
                    f"Moving {len(chunk)} items to '{new_parent.display_name}'",
                    "POST",
                    "/$batch",
                    json_data={"requests": requests_body},
                )
            except MailboxOperationError as e:
                logger.warning(str(e))
                failed.extend((item_id, e.status_code or 0) for item_id in chunk)
                continue

            for sub in response.get("responses", []):
                status = int(sub.get("status", 0))
                if status >= 300:
                    failed.append((chunk[int(sub["id"])], status))

        if failed:
            raise MailboxOperationError(
                f"{len(failed)} of {len(item_ids)} items failed to move to '{new_parent.display_name}'",
                failed[0][1] or None,
                failed_ids=[item_id for item_id, _status in failed],
            )
        logger.debug(f"Moved {len(item_ids)} items to folder {new_parent.id}")

    def move_folder(self, folder: Folder, new_parent: Folder) -> Folder:
        """Move a folder (with its subtree) under a new parent.

        Args:
            folder: Folder to move.
            new_parent: Destination parent.

        Returns:
            Folder: The moved folder as reported by Graph.
        """
        response = self._call(
            f"Moving folder '{folder.display_name}' to '{new_parent.display_name}'",
            "POST",
            f"{self._folder_path(folder.id)}/move",
            json_data={"destinationId": new_parent.id},
        )
        logger.debug(f"Moved folder {folder.id} to {new_parent.id}")
        return Folder.model_validate(response)

    def soft_delete(self, folder: Folder) -> None:
        """Delete a folder; Graph moves it to Deleted Items."""
        self._call(
            f"Deleting folder '{folder.display_name}'",
            "DELETE",
            self._folder_path(folder.id),
        )
        logger.debug(f"Deleted folder {folder.id}")

    def resolve_path(self, folder: Folder) -> str:
        """Build a diagnostic ``\\``-joined path from the mailbox root.

        The walk stops at the mailbox root, at a folder whose parent id equals
        its own id, or at a parent that cannot be bound.

        Args:
            folder: Folder to describe.

        Returns:
            str: Path such as ``\\Inbox\\Work``.
        """
        try:
            root_id = self.get_root().id
        except (FolderNotFoundError, MailboxOperationError):
            root_id = None

        parts: list[str] = []
        seen: set[str] = set()
        current: Optional[Folder] = folder
        while current is not None and current.id != root_id and current.id not in seen:
            parts.append(current.display_name)
            seen.add(current.id)
            parent_id = current.parent_folder_id
            if not parent_id or parent_id == current.id:
                break
            try:
                current = self.get_folder(parent_id)
            except (FolderNotFoundError, MailboxOperationError):
                break

        return PATH_SEPARATOR + PATH_SEPARATOR.join(reversed(parts))

    def get_regional_configuration(self) -> RegionalConfiguration:
        """Read the mailbox's locale and date/time formats."""
        response = self._call("Reading mailbox settings", "GET", f"{self.base_path}/mailboxSettings")
        return RegionalConfiguration.from_graph(response)

    def set_regional_configuration(self, config: RegionalConfiguration) -> None:
        """Write the mailbox's locale and date/time formats.

        Args:
            config: Settings to apply; unset fields are left unchanged.
        """
        self._call(
            "Updating mailbox settings",
            "PATCH",
            f"{self.base_path}/mailboxSettings",
            json_data=config.to_graph(),
        )
        logger.debug(f"Updated regional configuration for {self.mailbox or 'me'}: {config.locale}")
