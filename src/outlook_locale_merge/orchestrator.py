"""Workflow orchestrator.

Objective:
    Coordinate the per-mailbox workflow:
    1) Authenticate to Microsoft Graph
    2) Resolve the source and target locale folder names
    3) Bind the mailbox root and the canonical folder of every role
    4) Optionally switch the mailbox's regional configuration to the target
    5) Run the resolution sweep for each role, in fixed order
    6) Return per-candidate results suitable for the CLI

Responsibilities:
    - Compose the core components (auth, Graph directory, merge engine,
      resolution sweep) with one directory instance per mailbox.
    - Turn resolution-class errors into a failed :class:`MailboxResult` so a
      batch run continues with the next mailbox.

High-level call tree:
    - :class:`LocaleMergeOrchestrator`
        - :meth:`LocaleMergeOrchestrator.run`
            - :meth:`LocaleMergeOrchestrator.process_mailbox`
                - :meth:`LocaleMergeOrchestrator.resolve_locales`
                - :meth:`LocaleMergeOrchestrator.bind_targets`
                - :meth:`FolderResolutionSweep.resolve_and_merge`

Operational notes:
    - Every role is bound before anything is written (regional configuration
      included), so a resolution failure leaves the mailbox untouched.
    - Contacts, calendar, tasks, notes and journal have no Graph mail folder
      well-known name; they are bound by target-locale name under the root.
    - The orchestrator does not persist state between runs; re-running is a
      no-op for mailboxes that were already merged.
"""

import logging
from typing import Callable, Iterable, Optional

from .auth import GraphAuthenticator
from .config import Settings, get_settings
from .directory import (
    FolderDirectory,
    FolderNotFoundError,
    LocaleNotFoundError,
    MailboxError,
    RegionalConfigurationStore,
    ResolutionError,
)
from .locales import LocaleTable
from .mail_client import GraphFolderDirectory
from .merge_engine import FolderMergeEngine
from .models import Folder, LocaleFolderNames, MailboxResult, WellKnownRole
from .resolution import FolderResolutionSweep

logger = logging.getLogger(__name__)

DirectoryFactory = Callable[[Optional[str]], FolderDirectory]


class LocaleMergeOrchestrator:
    """
    Orchestrates the locale folder merge for one or more mailboxes.

    This class is intentionally "glue" code: it connects the Graph directory,
    the locale table, and the merge components without embedding merge rules.

    Attributes:
        settings: Application settings.
        locale_table: Folder names per locale.
        auth: Graph API authenticator.
        directory_factory: Builds the folder directory for a mailbox.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        locale_table: Optional[LocaleTable] = None,
        directory_factory: Optional[DirectoryFactory] = None,
    ) -> None:
        """
        Initialize orchestrator with all components.

        Args:
            settings: Application settings (loads from env if None).
            locale_table: Locale table (bundled table if None).
            directory_factory: Directory builder (Graph-backed if None).
        """
        self.settings = settings or get_settings()
        self.locale_table = locale_table or LocaleTable.load(self.settings.locale_table_path)
        self.auth = GraphAuthenticator(self.settings)
        self.directory_factory = directory_factory or self._graph_directory

    def _graph_directory(self, mailbox: Optional[str]) -> GraphFolderDirectory:
        return GraphFolderDirectory(self.settings, self.auth, mailbox)

    def resolve_locales(self, directory: RegionalConfigurationStore) -> tuple[LocaleFolderNames, LocaleFolderNames]:
        """Resolve source and target folder names for a mailbox.

        The source locale defaults to the mailbox's configured locale.

        Args:
            directory: Mailbox directory (must also expose regional settings
                when no source locale is configured).

        Returns:
            tuple[LocaleFolderNames, LocaleFolderNames]: ``(from, to)`` names.

        Raises:
            ResolutionError: If a locale cannot be determined or is unknown.
        """
        to_names = self.locale_table.get(self.settings.target_locale)

        source_locale = self.settings.source_locale
        if not source_locale:
            try:
                source_locale = directory.get_regional_configuration().locale
            except MailboxError as e:
                raise ResolutionError(f"Cannot read regional configuration: {e}") from e
            if not source_locale:
                raise LocaleNotFoundError(None, "mailbox has no configured locale")

        return self.locale_table.get(source_locale), to_names

    def apply_regional_configuration(self, directory: RegionalConfigurationStore, to_names: LocaleFolderNames) -> None:
        """Switch the mailbox's locale and date/time formats to the target.

        Raises:
            ResolutionError: If the mailbox settings cannot be written.
        """
        config = to_names.regional_configuration()
        if self.settings.dry_run:
            logger.info(
                "[DRY RUN] Would set regional configuration to %s (%s %s)",
                config.locale,
                config.date_format,
                config.time_format,
            )
            return
        try:
            directory.set_regional_configuration(config)
        except MailboxError as e:
            raise ResolutionError(f"Cannot update regional configuration: {e}") from e
        logger.info(f"Regional configuration set to {config.locale}")

    def bind_targets(
        self,
        directory: FolderDirectory,
        to_names: LocaleFolderNames,
    ) -> tuple[Folder, dict[WellKnownRole, Optional[Folder]]]:
        """Bind the mailbox root and the canonical folder of every role.

        A role the store cannot bind by role (Graph only knows the mail
        folders) is looked up by its target-locale name under the root. A
        role found neither way maps to None; the sweep then reports its
        source folders as failed instead of merging them.

        Returns:
            tuple[Folder, dict[WellKnownRole, Optional[Folder]]]: Root and targets.

        Raises:
            ResolutionError: If the root cannot be accessed or a bind fails
                for any reason other than the folder being absent.
        """
        try:
            root = directory.get_root()
        except MailboxError as e:
            raise ResolutionError(f"Cannot access mailbox root: {e}") from e

        targets: dict[WellKnownRole, Optional[Folder]] = {}
        for role in WellKnownRole:
            try:
                targets[role] = directory.bind(role)
                continue
            except FolderNotFoundError as e:
                logger.debug(f"{e}; looking up '{to_names[role]}' under the mailbox root")
            except MailboxError as e:
                raise ResolutionError(f"Cannot bind well-known folder {role.value}: {e}") from e

            try:
                targets[role] = directory.find_child_by_name(root, to_names[role])
            except MailboxError as e:
                raise ResolutionError(f"Cannot look up folder '{to_names[role]}' for {role.value}: {e}") from e
            if targets[role] is None:
                logger.warning(f"No canonical folder for {role.value}; its source folders will be kept")
        return root, targets

    def process_mailbox(self, mailbox: Optional[str] = None) -> MailboxResult:
        """Merge all drifted folders of one mailbox.

        Args:
            mailbox: Mailbox address (None for the signed-in user).

        Returns:
            MailboxResult: Per-candidate outcomes.

        Raises:
            ResolutionError: If the mailbox cannot be prepared.
        """
        logger.info(f"Processing mailbox {mailbox or '(signed-in user)'}")
        if mailbox is None and not self.auth.supports_signed_in_user:
            raise ResolutionError("App-only authentication needs an explicit mailbox address")
        directory = self.directory_factory(mailbox)

        from_names, to_names = self.resolve_locales(directory)
        result = MailboxResult(
            mailbox=mailbox,
            source_locale=from_names.locale,
            target_locale=to_names.locale,
        )
        logger.info(f"Merging {from_names.locale} folders into {to_names.locale} folders")

        root, targets = self.bind_targets(directory, to_names)

        if self.settings.update_regional_configuration:
            self.apply_regional_configuration(directory, to_names)

        engine = FolderMergeEngine.from_settings(directory, self.settings)
        sweep = FolderResolutionSweep(directory, engine, numerical_max=self.settings.numerical_max)

        for role in WellKnownRole:
            result.outcomes.extend(
                sweep.resolve_and_merge(
                    role,
                    from_names,
                    targets[role],
                    root,
                    scan_numericals=self.settings.scan_numericals,
                )
            )

        merged = len(result.merged_candidates)
        failed = len(result.failed_candidates)
        logger.info(f"Completed {mailbox or '(signed-in user)'}: {merged} merged, {failed} failed")
        return result

    def run(self, mailboxes: Optional[Iterable[Optional[str]]] = None) -> list[MailboxResult]:
        """Process mailboxes in order.

        A resolution error stops only the affected mailbox.

        Args:
            mailboxes: Mailbox addresses (signed-in user if None or empty).

        Returns:
            list[MailboxResult]: One result per mailbox.
        """
        targets = list(mailboxes or []) or [None]
        results = []
        for mailbox in targets:
            try:
                results.append(self.process_mailbox(mailbox))
            except ResolutionError as e:
                logger.error(f"Skipping mailbox {mailbox or '(signed-in user)'}: {e}")
                results.append(MailboxResult(mailbox=mailbox, error=str(e)))
        return results
