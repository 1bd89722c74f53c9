"""Folder directory contract and error taxonomy.

Objective:
    Define the remote-store operations the merge core is written against,
    so the engine, item mover, and resolution sweep never depend on
    Microsoft Graph directly.

Responsibilities:
    - :class:`FolderDirectory`: structural interface implemented by
      :class:`outlook_locale_merge.mail_client.GraphFolderDirectory` (and by
      the in-memory fake used in tests).
    - Exceptions shared by the client, the core, and the orchestrator.

Error handling:
    - :class:`ResolutionError` is fatal for the current mailbox.
    - :class:`MailboxOperationError` is recoverable at the scope of the
      affected subtree; the merge engine catches it and disables deletion.
    - :class:`FolderNotFoundError` is raised by binds; lookups by name return
      ``None`` instead because absence is the common case.
"""

from typing import Optional, Protocol, Sequence

from .models import Folder, ItemPage, RegionalConfiguration, WellKnownRole


class MailboxError(RuntimeError):
    """Base class for mailbox access failures."""


class ResolutionError(MailboxError):
    """Raised when a mailbox cannot be prepared for merging."""


class LocaleNotFoundError(ResolutionError):
    """Raised when a locale is missing from (or incomplete in) the table."""

    def __init__(self, locale: Optional[str], reason: str = "") -> None:
        message = f"Cannot determine language settings for locale {locale!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.locale = locale


class FolderNotFoundError(MailboxError):
    """Raised when a folder cannot be bound by role or id."""


class MailboxOperationError(MailboxError):
    """Raised when a remote list/move/delete call fails.

    Args:
        message: Description of the failed operation.
        status_code: HTTP status code of the failing response, if any.
        failed_ids: For batch item moves, the items that stayed behind.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        failed_ids: Optional[Sequence[str]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.failed_ids = list(failed_ids) if failed_ids is not None else None


class FolderDirectory(Protocol):
    """Operations the merge core needs from a mailbox store."""

    def bind(self, role: WellKnownRole) -> Folder:
        """Resolve a well-known role to its canonical folder."""
        ...

    def get_root(self) -> Folder:
        """Return the top of the mailbox's folder hierarchy."""
        ...

    def get_folder(self, folder_id: str) -> Folder:
        """Bind a folder by id."""
        ...

    def find_child_by_name(self, parent: Folder, name: str) -> Optional[Folder]:
        """Exact-match lookup of an immediate child by display name."""
        ...

    def list_children(self, parent: Folder, max_results: int) -> list[Folder]:
        """Enumerate immediate children, capped at ``max_results``."""
        ...

    def list_item_ids_page(self, folder: Folder, offset: int, page_size: int) -> ItemPage:
        """List one page of item ids starting at ``offset``."""
        ...

    def move_folder(self, folder: Folder, new_parent: Folder) -> Folder:
        """Relocate a folder and its subtree under ``new_parent``."""
        ...

    def move_items(self, item_ids: Sequence[str], new_parent: Folder) -> None:
        """Relocate a batch of items in one call."""
        ...

    def soft_delete(self, folder: Folder) -> None:
        """Delete a folder recoverably."""
        ...

    def resolve_path(self, folder: Folder) -> str:
        """Backslash-joined display names from the root down to ``folder``."""
        ...


class RegionalConfigurationStore(Protocol):
    """Read/write access to a mailbox's locale and date/time formats."""

    def get_regional_configuration(self) -> RegionalConfiguration:
        ...

    def set_regional_configuration(self, config: RegionalConfiguration) -> None:
        ...
