"""Outlook Locale Merge package.

Objective:
    Reconcile mailbox folder naming drift after a mailbox's language changes
    (for example after importing a PST created under another locale):
    - Find well-known folders still named in the old locale, including
      numerically suffixed copies such as ``Postvak IN1``.
    - Merge each one, recursively, into the folder Exchange maps the role to.
    - Remove the emptied source folders without losing any item.

Key modules:
    - :mod:`outlook_locale_merge.auth`:
        Microsoft Graph authentication (client credentials, device code).
    - :mod:`outlook_locale_merge.mail_client`:
        Graph implementation of the folder directory and mailbox settings.
    - :mod:`outlook_locale_merge.locales`:
        Well-known folder names per locale.
    - :mod:`outlook_locale_merge.item_mover`:
        Batched item relocation.
    - :mod:`outlook_locale_merge.merge_engine`:
        Recursive folder merge with a delete gate.
    - :mod:`outlook_locale_merge.resolution`:
        Per-role candidate discovery.
    - :mod:`outlook_locale_merge.orchestrator` / :mod:`outlook_locale_merge.cli`:
        Per-mailbox workflow and command-line entrypoint.
"""

__version__ = "0.1.0"
