"""
Shared fixtures: an in-memory mailbox implementing the folder directory.
"""

from typing import Optional, Sequence

import pytest

from outlook_locale_merge.directory import FolderNotFoundError, MailboxOperationError
from outlook_locale_merge.locales import LocaleTable
from outlook_locale_merge.models import Folder, ItemPage, RegionalConfiguration, WellKnownRole

ROOT_ID = "root"


class InMemoryMailbox:
    """Folder directory over plain dicts, with call recording and fault injection.

    The root's parent id equals its own id, the way Exchange reports the top
    of the hierarchy. ``soft_delete`` refuses folders that still hold items or
    children, so any premature deletion fails the test that caused it.
    """

    def __init__(self) -> None:
        self.names: dict[str, str] = {ROOT_ID: "Top of Information Store"}
        self.parents: dict[str, str] = {ROOT_ID: ROOT_ID}
        self.items: dict[str, list[str]] = {ROOT_ID: []}
        self.well_known: dict[WellKnownRole, str] = {}
        self.regional = RegionalConfiguration(locale="nl-NL", date_format="d-M-yyyy", time_format="HH:mm")
        self.calls: list[tuple] = []
        self.fail_bind: set[WellKnownRole] = set()
        self.fail_list_children: set[str] = set()
        self.fail_move_folder: set[str] = set()
        self.fail_delete: set[str] = set()
        self.fail_items: set[str] = set()
        self._counter = 0

    # -- setup helpers -------------------------------------------------

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def add_folder(
        self,
        name: str,
        parent: Optional[str] = ROOT_ID,
        items: int = 0,
        role: Optional[WellKnownRole] = None,
    ) -> str:
        folder_id = self._next_id("folder")
        self.names[folder_id] = name
        self.parents[folder_id] = parent
        self.items[folder_id] = []
        self.add_items(folder_id, items)
        if role is not None:
            self.well_known[role] = folder_id
        return folder_id

    def add_items(self, folder_id: str, count: int) -> list[str]:
        ids = [self._next_id("item") for _ in range(count)]
        self.items[folder_id].extend(ids)
        return ids

    def add_well_known_folders(self, locale_names) -> dict[WellKnownRole, str]:
        """Create one folder per role; like Graph, only mail roles bind by role."""
        return {
            role: self.add_folder(locale_names[role], role=role if role.well_known_name else None)
            for role in WellKnownRole
        }

    # -- inspection helpers --------------------------------------------

    def folder(self, folder_id: str) -> Folder:
        return Folder(
            id=folder_id,
            display_name=self.names[folder_id],
            parent_folder_id=self.parents[folder_id],
            child_folder_count=len(self.children_of(folder_id)),
            total_item_count=len(self.items[folder_id]),
        )

    def children_of(self, folder_id: str) -> list[str]:
        return [
            fid for fid, parent in self.parents.items()
            if parent == folder_id and fid != folder_id
        ]

    def child_named(self, folder_id: str, name: str) -> Optional[str]:
        matches = [fid for fid in self.children_of(folder_id) if self.names[fid] == name]
        return matches[-1] if matches else None

    def exists(self, folder_id: str) -> bool:
        return folder_id in self.names

    def subtree_item_count(self, folder_id: str) -> int:
        return len(self.items[folder_id]) + sum(
            self.subtree_item_count(child) for child in self.children_of(folder_id)
        )

    def calls_to(self, operation: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == operation]

    def mutations(self) -> list[tuple]:
        return [
            call for call in self.calls
            if call[0] in {"move_folder", "move_items", "soft_delete", "set_regional_configuration"}
        ]

    # -- FolderDirectory -----------------------------------------------

    def bind(self, role: WellKnownRole) -> Folder:
        self.calls.append(("bind", role))
        if role in self.fail_bind:
            raise MailboxOperationError(f"Binding {role.value} failed", 503)
        if role not in self.well_known:
            raise FolderNotFoundError(f"Well-known folder {role.value} not found")
        return self.folder(self.well_known[role])

    def get_root(self) -> Folder:
        return self.folder(ROOT_ID)

    def get_folder(self, folder_id: str) -> Folder:
        if folder_id not in self.names:
            raise FolderNotFoundError(f"Folder {folder_id} not found")
        return self.folder(folder_id)

    def find_child_by_name(self, parent: Folder, name: str) -> Optional[Folder]:
        self.calls.append(("find_child_by_name", parent.id, name))
        child = self.child_named(parent.id, name)
        return self.folder(child) if child else None

    def list_children(self, parent: Folder, max_results: int) -> list[Folder]:
        self.calls.append(("list_children", parent.id))
        if parent.id in self.fail_list_children:
            raise MailboxOperationError(f"Listing children of {parent.id} failed", 500)
        return [self.folder(fid) for fid in self.children_of(parent.id)][:max_results]

    def list_item_ids_page(self, folder: Folder, offset: int, page_size: int) -> ItemPage:
        self.calls.append(("list_item_ids_page", folder.id, offset, page_size))
        items = self.items[folder.id]
        ids = items[offset:offset + page_size]
        return ItemPage(ids=list(ids), has_more=offset + len(ids) < len(items))

    def move_items(self, item_ids: Sequence[str], new_parent: Folder) -> None:
        self.calls.append(("move_items", list(item_ids), new_parent.id))
        failed = [item_id for item_id in item_ids if item_id in self.fail_items]
        for item_id in item_ids:
            if item_id in failed:
                continue
            for folder_items in self.items.values():
                if item_id in folder_items:
                    folder_items.remove(item_id)
                    break
            self.items[new_parent.id].append(item_id)
        if failed:
            raise MailboxOperationError(
                f"{len(failed)} items failed to move", 500, failed_ids=failed
            )

    def move_folder(self, folder: Folder, new_parent: Folder) -> Folder:
        self.calls.append(("move_folder", folder.id, new_parent.id))
        if folder.id in self.fail_move_folder:
            raise MailboxOperationError(f"Moving {folder.id} failed", 500)
        self.parents[folder.id] = new_parent.id
        return self.folder(folder.id)

    def soft_delete(self, folder: Folder) -> None:
        self.calls.append(("soft_delete", folder.id))
        if folder.id in self.fail_delete:
            raise MailboxOperationError(f"Deleting {folder.id} failed", 500)
        assert not self.items[folder.id], f"deleted {folder.id} while it still held items"
        assert not self.children_of(folder.id), f"deleted {folder.id} while it still had children"
        del self.names[folder.id]
        del self.parents[folder.id]
        del self.items[folder.id]

    def resolve_path(self, folder: Folder) -> str:
        parts = []
        current = folder.id
        while current in self.names and self.parents[current] != current:
            parts.append(self.names[current])
            current = self.parents[current]
        return "\\" + "\\".join(reversed(parts))

    # -- RegionalConfigurationStore ------------------------------------

    def get_regional_configuration(self) -> RegionalConfiguration:
        return self.regional

    def set_regional_configuration(self, config: RegionalConfiguration) -> None:
        self.calls.append(("set_regional_configuration", config))
        self.regional = config


@pytest.fixture
def mailbox():
    """Create an empty in-memory mailbox."""
    return InMemoryMailbox()


@pytest.fixture
def locale_table():
    """Load the bundled locale table."""
    return LocaleTable.load()


@pytest.fixture
def en_us(locale_table):
    return locale_table.get("en-US")


@pytest.fixture
def nl_nl(locale_table):
    return locale_table.get("nl-NL")


@pytest.fixture
def new_mailbox():
    """Factory for additional in-memory mailboxes."""
    return InMemoryMailbox
