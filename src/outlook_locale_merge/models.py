"""Pydantic data models used across the application.

Objective:
    Centralize all strongly-typed data structures representing:
    - Mail folders returned by Microsoft Graph (the folder handle the merge
      works on)
    - Well-known folder roles and their per-locale display names
    - Per-candidate and per-mailbox merge outcomes

Design notes:
    - These models use Pydantic aliases to match Microsoft Graph field names
      (e.g. ``displayName`` -> :attr:`Folder.display_name`).
    - ``model_config = ConfigDict(populate_by_name=True)`` is used to allow
      constructing models with either alias names or pythonic field names.

High-level structure:
    - Graph primitives:
        - :class:`Folder`
        - :class:`ItemPage`
        - :class:`RegionalConfiguration`
    - Locale primitives:
        - :class:`WellKnownRole`
        - :class:`LocaleFolderNames`
    - Outcome primitives:
        - :class:`MergeStats`
        - :class:`CandidateStatus`
        - :class:`CandidateOutcome`
        - :class:`MailboxResult`
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class WellKnownRole(str, Enum):
    """Logical folder purpose the mailbox store resolves independent of name.

    Enum order is the fixed order in which roles are processed. The values
    double as keys in the locale table.
    """

    INBOX = "Inbox"
    SENT_ITEMS = "SentItems"
    DELETED_ITEMS = "DeletedItems"
    DRAFTS = "Drafts"
    OUTBOX = "Outbox"
    CONTACTS = "Contacts"
    CALENDAR = "Calendar"
    TASKS = "Tasks"
    JUNK_EMAIL = "JunkEmail"
    NOTES = "Notes"
    JOURNAL = "Journal"

    @property
    def well_known_name(self) -> Optional[str]:
        """Graph mail folder well-known name (e.g. ``sentitems``).

        None for roles Graph does not expose under ``mailFolders/{name}``
        (contacts, calendar, tasks, notes, journal); those folders are found
        by display name under the mailbox root instead.
        """
        if self in _GRAPH_MAIL_ROLES:
            return self.value.lower()
        return None


_GRAPH_MAIL_ROLES = frozenset(
    {
        WellKnownRole.INBOX,
        WellKnownRole.SENT_ITEMS,
        WellKnownRole.DELETED_ITEMS,
        WellKnownRole.DRAFTS,
        WellKnownRole.OUTBOX,
        WellKnownRole.JUNK_EMAIL,
    }
)


class Folder(BaseModel):
    """
    Mailbox folder handle.

    Identifiers are only meaningful for the duration of a run; nothing caches
    them across runs.

    Attributes:
        id: Unique folder ID.
        display_name: Folder display name.
        parent_folder_id: Parent folder ID (None for the store root).
        child_folder_count: Number of child folders.
        total_item_count: Number of items in the folder.
    """

    id: str
    display_name: str = Field(alias="displayName")
    parent_folder_id: Optional[str] = Field(default=None, alias="parentFolderId")
    child_folder_count: int = Field(default=0, alias="childFolderCount")
    total_item_count: int = Field(default=0, alias="totalItemCount")

    model_config = ConfigDict(populate_by_name=True)


class ItemPage(BaseModel):
    """One page of item identifiers listed from a folder."""

    ids: list[str] = Field(default_factory=list)
    has_more: bool = False


class RegionalConfiguration(BaseModel):
    """
    Mailbox regional settings.

    Graph nests the locale under ``language``; use :meth:`from_graph` to
    build one from a ``mailboxSettings`` payload.

    Attributes:
        locale: Locale tag, e.g. ``nl-NL``.
        date_format: Date format string.
        time_format: Time format string.
        time_zone: Mailbox time zone, if reported.
    """

    locale: Optional[str] = None
    date_format: Optional[str] = Field(default=None, alias="dateFormat")
    time_format: Optional[str] = Field(default=None, alias="timeFormat")
    time_zone: Optional[str] = Field(default=None, alias="timeZone")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_graph(cls, payload: dict[str, Any]) -> "RegionalConfiguration":
        """Build from a Graph ``mailboxSettings`` response.

        Args:
            payload: Decoded JSON body.

        Returns:
            RegionalConfiguration: Parsed settings.
        """
        language = payload.get("language") or {}
        return cls(
            locale=language.get("locale") or None,
            date_format=payload.get("dateFormat") or None,
            time_format=payload.get("timeFormat") or None,
            time_zone=payload.get("timeZone") or None,
        )

    def to_graph(self) -> dict[str, Any]:
        """Render the PATCH body for ``mailboxSettings``.

        Returns:
            dict[str, Any]: Graph payload containing only the set fields.
        """
        body: dict[str, Any] = {}
        if self.locale:
            body["language"] = {"locale": self.locale}
        if self.date_format:
            body["dateFormat"] = self.date_format
        if self.time_format:
            body["timeFormat"] = self.time_format
        return body


class LocaleFolderNames(BaseModel):
    """
    Well-known folder display names for one locale.

    Attributes:
        locale: Locale tag, e.g. ``en-US``.
        folders: Display name per role.
        date_format: Mailbox date format for the locale.
        time_format: Mailbox time format for the locale.
    """

    locale: str
    folders: dict[WellKnownRole, str]
    date_format: str = Field(alias="DateFormat")
    time_format: str = Field(alias="TimeFormat")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def __getitem__(self, role: WellKnownRole) -> str:
        return self.folders[role]

    def regional_configuration(self) -> RegionalConfiguration:
        """Regional settings that select this locale on a mailbox."""
        return RegionalConfiguration(
            locale=self.locale,
            date_format=self.date_format,
            time_format=self.time_format,
        )


class MergeStats(BaseModel):
    """Counters updated by the merge engine while it walks one candidate."""

    folders_merged: int = 0
    folders_moved: int = 0
    folders_deleted: int = 0
    items_moved: int = 0


class CandidateStatus(str, Enum):
    """Outcome of looking up and merging one candidate folder name."""

    MERGED = "merged"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class CandidateOutcome(BaseModel):
    """
    Result of processing one candidate source folder name.

    Attributes:
        role: Well-known role the candidate belongs to.
        candidate: Source folder name looked up under the mailbox root.
        status: Merged, not found, or failed.
        folder_path: Diagnostic path of the source folder, when found.
        stats: Merge counters, when the folder was found.
        error: Error message if failed.
    """

    role: WellKnownRole
    candidate: str
    status: CandidateStatus
    folder_path: Optional[str] = None
    stats: MergeStats = Field(default_factory=MergeStats)
    error: Optional[str] = None


class MailboxResult(BaseModel):
    """
    Result of processing one mailbox.

    ``error`` is set only for resolution-class failures that stopped the
    mailbox's run.
    """

    mailbox: Optional[str] = None
    source_locale: Optional[str] = None
    target_locale: Optional[str] = None
    outcomes: list[CandidateOutcome] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def resolution_failed(self) -> bool:
        return self.error is not None

    @property
    def failed_candidates(self) -> list[CandidateOutcome]:
        return [o for o in self.outcomes if o.status == CandidateStatus.FAILED]

    @property
    def merged_candidates(self) -> list[CandidateOutcome]:
        return [o for o in self.outcomes if o.status == CandidateStatus.MERGED]

    @property
    def success(self) -> bool:
        return not self.resolution_failed and not self.failed_candidates
