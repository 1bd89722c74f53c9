"""Locale folder-name table.

Objective:
    Map a locale tag (``en-US``, ``nl-NL``, ...) to the display names Outlook
    gives each well-known folder in that locale, plus the date/time formats
    the mailbox uses with it.

Responsibilities:
    - Load the bundled ``locales.json`` resource (or an override file).
    - Validate every locale at load time: all roles must be present along with
      ``DateFormat`` and ``TimeFormat``.
    - Fail fast with :class:`LocaleNotFoundError` when a run asks for a locale
      that is unknown or incomplete.

Operational notes:
    - Incomplete locales do not prevent the table from loading; they are
      remembered with the validation reason and rejected only when requested.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .directory import LocaleNotFoundError
from .models import LocaleFolderNames, WellKnownRole

logger = logging.getLogger(__name__)

DEFAULT_LOCALE_TABLE = Path(__file__).with_name("locales.json")


def parse_locale_entry(locale: str, entry: dict[str, Any]) -> LocaleFolderNames:
    """Validate one raw table entry.

    Args:
        locale: Locale tag the entry belongs to.
        entry: Raw mapping with role names, ``DateFormat`` and ``TimeFormat``.

    Returns:
        LocaleFolderNames: Validated names.

    Raises:
        ValueError: If a role or format is missing or blank.
    """
    missing = [
        key
        for key in [role.value for role in WellKnownRole] + ["DateFormat", "TimeFormat"]
        if not str(entry.get(key) or "").strip()
    ]
    if missing:
        raise ValueError(f"missing entries: {', '.join(missing)}")

    return LocaleFolderNames(
        locale=locale,
        folders={role: str(entry[role.value]) for role in WellKnownRole},
        DateFormat=str(entry["DateFormat"]),
        TimeFormat=str(entry["TimeFormat"]),
    )


class LocaleTable:
    """
    Immutable lookup of :class:`LocaleFolderNames` by locale tag.

    Attributes:
        _entries: Valid locales keyed by lowercased tag.
        _invalid: Validation failures keyed by lowercased tag.
    """

    def __init__(
        self,
        entries: dict[str, LocaleFolderNames],
        invalid: Optional[dict[str, str]] = None,
    ) -> None:
        self._entries = {tag.lower(): names for tag, names in entries.items()}
        self._invalid = {tag.lower(): reason for tag, reason in (invalid or {}).items()}

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> "LocaleTable":
        """Build a table from a decoded JSON mapping.

        Args:
            raw: Mapping of locale tag to raw entry.

        Returns:
            LocaleTable: Table with every entry validated.
        """
        entries: dict[str, LocaleFolderNames] = {}
        invalid: dict[str, str] = {}
        for locale, entry in raw.items():
            if not isinstance(entry, dict):
                invalid[locale] = "entry is not a mapping"
                continue
            try:
                entries[locale] = parse_locale_entry(locale, entry)
            except ValueError as e:
                invalid[locale] = str(e)
                logger.warning("Locale %s is incomplete and will be rejected: %s", locale, e)
        return cls(entries, invalid)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "LocaleTable":
        """Load the table from disk.

        Args:
            path: JSON file to read (bundled table if None).

        Returns:
            LocaleTable: Loaded table.
        """
        source = Path(path) if path else DEFAULT_LOCALE_TABLE
        raw = json.loads(source.read_text(encoding="utf-8"))
        table = cls.from_mapping(raw)
        logger.debug(f"Loaded {len(table.locales)} locales from {source}")
        return table

    @property
    def locales(self) -> list[str]:
        """Tags of all valid locales, in their original spelling."""
        return sorted(names.locale for names in self._entries.values())

    def get(self, locale: Optional[str]) -> LocaleFolderNames:
        """Return the folder names for a locale (case-insensitive tag match).

        Args:
            locale: Locale tag.

        Returns:
            LocaleFolderNames: Names for the locale.

        Raises:
            LocaleNotFoundError: If the locale is unknown or incomplete.
        """
        key = (locale or "").strip().lower()
        if key in self._invalid:
            raise LocaleNotFoundError(locale, self._invalid[key])
        try:
            return self._entries[key]
        except KeyError:
            raise LocaleNotFoundError(locale, "not present in locale table") from None
