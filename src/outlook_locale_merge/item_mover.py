"""Batched item relocation.

Objective:
    Drain every item out of a folder into a destination folder using a
    bounded number of ids per remote call.

Paging model:
    Pages are requested from an offset into the *current* contents of the
    source folder. Items that were moved successfully leave the folder, so the
    offset only advances past items that stayed behind (failed moves, or every
    listed item in dry-run mode). A failed batch never stops the drain; the
    remaining pages are still processed and the overall result reports the
    failure.
"""

import logging
from typing import Optional

from .directory import FolderDirectory, MailboxOperationError
from .models import Folder, MergeStats

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


class ItemBatchMover:
    """
    Moves all items of a folder, one page per remote call.

    Attributes:
        directory: Folder directory for the mailbox.
        batch_size: Ids listed and moved per call.
        dry_run: Log instead of moving.
    """

    def __init__(
        self,
        directory: FolderDirectory,
        batch_size: int = DEFAULT_BATCH_SIZE,
        dry_run: bool = False,
    ) -> None:
        self.directory = directory
        self.batch_size = batch_size
        self.dry_run = dry_run

    def move_all_items(
        self,
        source: Folder,
        target: Folder,
        stats: Optional[MergeStats] = None,
    ) -> bool:
        """Move every item of ``source`` into ``target``.

        Args:
            source: Folder to drain.
            target: Destination folder.
            stats: Counters to update with moved items.

        Returns:
            bool: True if every page was moved.
        """
        success = True
        offset = 0
        previous_ids: Optional[list[str]] = None

        while True:
            try:
                page = self.directory.list_item_ids_page(source, offset, self.batch_size)
            except MailboxOperationError as e:
                logger.warning(f"Could not list items of '{source.display_name}': {e}")
                return False

            if page.ids:
                if page.ids == previous_ids:
                    # Reported as moved but still listed; skip past them
                    logger.warning(
                        "%d items in '%s' did not leave the folder after being moved",
                        len(page.ids),
                        source.display_name,
                    )
                    success = False
                    offset += len(page.ids)
                elif self.dry_run:
                    logger.info(
                        "[DRY RUN] Would move %d items from '%s' to '%s'",
                        len(page.ids),
                        source.display_name,
                        target.display_name,
                    )
                    offset += len(page.ids)
                    if stats is not None:
                        stats.items_moved += len(page.ids)
                else:
                    moved, stayed = self._move_page(page.ids, source, target, stats)
                    if not moved:
                        success = False
                    offset += stayed
                previous_ids = page.ids
            elif page.has_more:
                logger.warning(
                    "Empty item page for '%s' at offset %d despite more pages; stopping",
                    source.display_name,
                    offset,
                )
                return False

            if not page.has_more:
                break

        return success

    def _move_page(
        self,
        item_ids: list[str],
        source: Folder,
        target: Folder,
        stats: Optional[MergeStats],
    ) -> tuple[bool, int]:
        """Move one page.

        Returns:
            tuple[bool, int]: Whether the whole page moved, and how many of
            its items stayed in ``source``.
        """
        try:
            self.directory.move_items(item_ids, target)
        except MailboxOperationError as e:
            remaining = len(e.failed_ids) if e.failed_ids else len(item_ids)
            logger.warning(
                f"Failed to move {remaining} of {len(item_ids)} items from "
                f"'{source.display_name}' to '{target.display_name}': {e}"
            )
            if stats is not None:
                stats.items_moved += len(item_ids) - remaining
            return False, remaining

        if stats is not None:
            stats.items_moved += len(item_ids)
        logger.debug(f"Moved {len(item_ids)} items from {source.id} to {target.id}")
        return True, 0
