"""Per-role discovery of folders left behind by a locale change.

Objective:
    For one well-known role, find every folder under the mailbox root that
    still carries the role's name in the old locale (optionally with the
    numeric suffix Outlook appends on create-if-exists collisions, e.g.
    ``Inbox1``) and merge each one into the role's canonical folder.

High-level call tree:
    - :meth:`FolderResolutionSweep.resolve_and_merge`
        - :func:`candidate_names`
        - :meth:`FolderDirectory.find_child_by_name`
        - :meth:`FolderMergeEngine.merge_folder`

Operational notes:
    - Absent candidates are expected and reported as ``not_found`` without a
      warning; most candidate names do not exist.
"""

import logging
from typing import Optional

from .directory import FolderDirectory, MailboxError
from .merge_engine import FolderMergeEngine
from .models import (
    CandidateOutcome,
    CandidateStatus,
    Folder,
    LocaleFolderNames,
    MergeStats,
    WellKnownRole,
)

logger = logging.getLogger(__name__)


def candidate_names(base_name: str, scan_numericals: bool = False, numerical_max: int = 1) -> list[str]:
    """Build the source folder names to look up.

    Args:
        base_name: Role display name in the source locale.
        scan_numericals: Whether to add suffixed variants.
        numerical_max: Highest suffix added.

    Returns:
        list[str]: ``[base_name]`` followed by ``base_name1`` .. ``base_nameN``
        when scanning.
    """
    names = [base_name]
    if scan_numericals:
        names.extend(f"{base_name}{suffix}" for suffix in range(1, numerical_max + 1))
    return names


class FolderResolutionSweep:
    """
    Finds source folders for a role and merges them into the target folder.

    Attributes:
        directory: Folder directory for the mailbox.
        engine: Merge engine used for every found candidate.
        numerical_max: Highest numeric suffix looked up when scanning.
    """

    def __init__(
        self,
        directory: FolderDirectory,
        engine: FolderMergeEngine,
        numerical_max: int = 1,
    ) -> None:
        self.directory = directory
        self.engine = engine
        self.numerical_max = numerical_max

    def resolve_and_merge(
        self,
        role: WellKnownRole,
        from_names: LocaleFolderNames,
        target: Optional[Folder],
        root: Folder,
        scan_numericals: bool = False,
    ) -> list[CandidateOutcome]:
        """Merge every source-locale folder of ``role`` into ``target``.

        Args:
            role: Well-known role being reconciled.
            from_names: Folder names of the source locale.
            target: Canonical folder the mailbox maps the role to, or None
                when it could not be bound; found candidates are then kept
                and reported as failed.
            root: Mailbox root the candidates are looked up under.
            scan_numericals: Also look up numerically suffixed names.

        Returns:
            list[CandidateOutcome]: One outcome per candidate name, in lookup order.
        """
        outcomes = []
        for name in candidate_names(from_names[role], scan_numericals, self.numerical_max):
            outcomes.append(self._process_candidate(role, name, target, root))
        return outcomes

    def _process_candidate(
        self,
        role: WellKnownRole,
        name: str,
        target: Optional[Folder],
        root: Folder,
    ) -> CandidateOutcome:
        try:
            source = self.directory.find_child_by_name(root, name)
        except MailboxError as e:
            logger.warning(f"Could not look up folder '{name}' for {role.value}: {e}")
            return CandidateOutcome(
                role=role, candidate=name, status=CandidateStatus.FAILED, error=str(e)
            )

        if source is None:
            logger.debug(f"No folder named '{name}' for {role.value}")
            return CandidateOutcome(role=role, candidate=name, status=CandidateStatus.NOT_FOUND)

        path = self.engine.describe(source)
        if target is None:
            logger.warning(f"Keeping {path}: no canonical {role.value} folder to merge it into")
            return CandidateOutcome(
                role=role,
                candidate=name,
                status=CandidateStatus.FAILED,
                folder_path=path,
                error=f"canonical {role.value} folder could not be bound; source folder kept",
            )

        stats = MergeStats()
        error: Optional[str] = None
        try:
            merged = self.engine.merge_folder(source, target, 1, stats)
        except MailboxError as e:
            merged = False
            error = str(e)

        if merged:
            logger.info(
                "Merged %s into '%s' (%d folders moved, %d items moved, %d folders removed)",
                path,
                target.display_name,
                stats.folders_moved,
                stats.items_moved,
                stats.folders_deleted,
            )
            return CandidateOutcome(
                role=role,
                candidate=name,
                status=CandidateStatus.MERGED,
                folder_path=path,
                stats=stats,
            )

        logger.warning(f"Problem merging {path} into '{target.display_name}'" + (f": {error}" if error else ""))
        return CandidateOutcome(
            role=role,
            candidate=name,
            status=CandidateStatus.FAILED,
            folder_path=path,
            stats=stats,
            error=error or "merge incomplete; source folder kept",
        )
