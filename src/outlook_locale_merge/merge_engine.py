"""Recursive folder merge.

Objective:
    Merge the subtree rooted at a source folder into the subtree rooted at a
    target folder with the same role, then remove the emptied source.

Algorithm (per ``(source, target)`` pair):
    1. Identical ids mean the source already is the target: return success
       without touching anything. This is checked before any recursion.
    2. For each child of the source:
        - the target has a child with the same display name: recurse;
        - otherwise: move the child (and its whole subtree) under the target.
    3. Move the source's own items into the target (:class:`ItemBatchMover`).
    4. Soft-delete the source only if nothing in steps 2-3 failed.

Delete gate:
    Any failure below a folder (failed recursion, failed folder move, failed
    listing, failed item move) keeps that folder, and therefore every ancestor
    on the path back to the top of the merge, from being deleted. The gate is
    never reset once tripped within a call.

High-level call tree:
    - :meth:`FolderMergeEngine.merge_folder`
        - :meth:`FolderDirectory.list_children`
        - :meth:`FolderDirectory.find_child_by_name`
        - :meth:`FolderMergeEngine.merge_folder` (recursion)
        - :meth:`FolderDirectory.move_folder`
        - :meth:`ItemBatchMover.move_all_items`
        - :meth:`FolderDirectory.soft_delete`
"""

import logging
from typing import Optional

from .config import Settings
from .directory import FolderDirectory, MailboxError, MailboxOperationError
from .item_mover import DEFAULT_BATCH_SIZE, ItemBatchMover
from .models import Folder, MergeStats

logger = logging.getLogger(__name__)

DEFAULT_MAX_FOLDER_RESULTS = 99999


class FolderMergeEngine:
    """
    Merges one folder tree into another.

    Attributes:
        directory: Folder directory for the mailbox.
        item_mover: Moves the leaf items of every visited folder.
        max_folder_results: Cap on children enumerated per folder.
        dry_run: Log folder moves and deletes instead of performing them.
    """

    def __init__(
        self,
        directory: FolderDirectory,
        item_mover: Optional[ItemBatchMover] = None,
        max_folder_results: int = DEFAULT_MAX_FOLDER_RESULTS,
        dry_run: bool = False,
    ) -> None:
        self.directory = directory
        self.item_mover = item_mover or ItemBatchMover(
            directory, batch_size=DEFAULT_BATCH_SIZE, dry_run=dry_run
        )
        self.max_folder_results = max_folder_results
        self.dry_run = dry_run

    @classmethod
    def from_settings(cls, directory: FolderDirectory, settings: Settings) -> "FolderMergeEngine":
        """Build an engine using the batch and listing limits from settings.

        Args:
            directory: Folder directory for the mailbox.
            settings: Application settings.

        Returns:
            FolderMergeEngine: Configured engine.
        """
        mover = ItemBatchMover(
            directory,
            batch_size=settings.item_batch_size,
            dry_run=settings.dry_run,
        )
        return cls(
            directory,
            item_mover=mover,
            max_folder_results=settings.max_folder_results,
            dry_run=settings.dry_run,
        )

    def describe(self, folder: Folder) -> str:
        """Diagnostic path of a folder, falling back to its display name."""
        try:
            return self.directory.resolve_path(folder)
        except MailboxError:
            return folder.display_name

    def merge_folder(
        self,
        source: Folder,
        target: Folder,
        depth: int = 1,
        stats: Optional[MergeStats] = None,
    ) -> bool:
        """Merge ``source`` and everything below it into ``target``.

        Args:
            source: Folder whose contents are merged away.
            target: Existing folder receiving the contents.
            depth: Recursion depth (1 for a top-level candidate).
            stats: Counters to update as folders and items move.

        Returns:
            bool: True if the whole subtree was merged and the source removed
            (or the source was the target already).
        """
        if source.id == target.id:
            logger.debug(
                "%sFolder '%s' already is the target; nothing to merge",
                "  " * depth,
                source.display_name,
            )
            return True

        if stats is None:
            stats = MergeStats()
        stats.folders_merged += 1

        indent = "  " * depth
        deletable = True

        logger.debug(
            "%sMerging '%s' (%s) into '%s' (%s)",
            indent,
            source.display_name,
            source.id,
            target.display_name,
            target.id,
        )

        try:
            children = self.directory.list_children(source, self.max_folder_results)
        except MailboxOperationError as e:
            logger.warning(f"Could not list subfolders of {self.describe(source)}: {e}")
            children = []
            deletable = False

        for child in children:
            if not self._merge_child(child, target, depth, stats):
                deletable = False

        if not self.item_mover.move_all_items(source, target, stats):
            logger.warning(f"Not all items could be moved out of {self.describe(source)}")
            deletable = False

        if not deletable:
            logger.warning(
                f"Keeping {self.describe(source)}: some of its content could not be merged"
            )
            return False

        if self.dry_run:
            logger.info("[DRY RUN] Would delete folder '%s'", source.display_name)
            stats.folders_deleted += 1
            return True

        try:
            self.directory.soft_delete(source)
        except MailboxOperationError as e:
            logger.warning(f"Failed to delete merged folder {self.describe(source)}: {e}")
            return False

        stats.folders_deleted += 1
        logger.debug("%sDeleted merged folder '%s'", indent, source.display_name)
        return True

    def _merge_child(
        self,
        child: Folder,
        target: Folder,
        depth: int,
        stats: MergeStats,
    ) -> bool:
        """Recurse into a matching target child, or move the child over.

        Returns:
            bool: False if the child (or part of it) is still under the source.
        """
        try:
            matching_target = self.directory.find_child_by_name(target, child.display_name)
        except MailboxOperationError as e:
            logger.warning(
                f"Could not look up '{child.display_name}' under {self.describe(target)}: {e}"
            )
            return False

        if matching_target is not None:
            return self.merge_folder(child, matching_target, depth + 1, stats)

        if self.dry_run:
            logger.info(
                "[DRY RUN] Would move folder '%s' under '%s'",
                child.display_name,
                target.display_name,
            )
            stats.folders_moved += 1
            return True

        try:
            self.directory.move_folder(child, target)
        except MailboxOperationError as e:
            logger.warning(
                f"Failed to move folder {self.describe(child)} under {self.describe(target)}: {e}"
            )
            return False

        stats.folders_moved += 1
        logger.debug(
            "%sMoved folder '%s' under '%s'",
            "  " * (depth + 1),
            child.display_name,
            target.display_name,
        )
        return True
