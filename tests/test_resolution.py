"""
Tests for the resolution module.
"""

from unittest.mock import MagicMock

import pytest

from outlook_locale_merge.directory import MailboxOperationError
from outlook_locale_merge.item_mover import ItemBatchMover
from outlook_locale_merge.merge_engine import FolderMergeEngine
from outlook_locale_merge.models import CandidateStatus, WellKnownRole
from outlook_locale_merge.resolution import FolderResolutionSweep, candidate_names


class TestCandidateNames:
    """Tests for candidate name generation."""

    def test_without_numerical_scan(self, en_us) -> None:
        assert candidate_names(en_us[WellKnownRole.INBOX], scan_numericals=False) == ["Inbox"]

    def test_with_numerical_scan_default_max(self, en_us) -> None:
        assert candidate_names(en_us[WellKnownRole.INBOX], scan_numericals=True, numerical_max=1) == [
            "Inbox",
            "Inbox1",
        ]

    def test_with_higher_max(self) -> None:
        assert candidate_names("Postvak IN", True, 3) == [
            "Postvak IN",
            "Postvak IN1",
            "Postvak IN2",
            "Postvak IN3",
        ]


@pytest.fixture
def sweep(mailbox):
    """Create a resolution sweep over the in-memory mailbox."""
    engine = FolderMergeEngine(mailbox, item_mover=ItemBatchMover(mailbox, batch_size=1000))
    return FolderResolutionSweep(mailbox, engine, numerical_max=1)


def test_dutch_inbox_merges_into_canonical_inbox(mailbox, sweep, nl_nl) -> None:
    """Postvak IN (3 items, Werk with 2) ends up as Inbox with 3 items and Werk."""
    inbox = mailbox.add_folder("Inbox", role=WellKnownRole.INBOX)
    postvak = mailbox.add_folder("Postvak IN", items=3)
    work = mailbox.add_folder("Werk", parent=postvak, items=2)

    outcomes = sweep.resolve_and_merge(
        WellKnownRole.INBOX,
        nl_nl,
        mailbox.folder(inbox),
        mailbox.get_root(),
    )

    assert len(outcomes) == 1
    assert outcomes[0].status == CandidateStatus.MERGED
    assert outcomes[0].folder_path == "\\Postvak IN"
    assert len(mailbox.calls_to("move_folder")) == 1
    assert len(mailbox.calls_to("move_items")) == 1
    assert mailbox.calls_to("soft_delete") == [("soft_delete", postvak)]

    assert len(mailbox.items[inbox]) == 3
    assert mailbox.children_of(inbox) == [work]
    assert len(mailbox.items[work]) == 2
    assert not mailbox.exists(postvak)
    assert mailbox.child_named("root", "Postvak IN") is None


def test_second_run_is_a_no_op(mailbox, sweep, nl_nl) -> None:
    inbox = mailbox.add_folder("Inbox", role=WellKnownRole.INBOX)
    postvak = mailbox.add_folder("Postvak IN", items=3)
    mailbox.add_folder("Werk", parent=postvak, items=2)

    sweep.resolve_and_merge(WellKnownRole.INBOX, nl_nl, mailbox.folder(inbox), mailbox.get_root(), True)
    mailbox.calls.clear()

    outcomes = sweep.resolve_and_merge(
        WellKnownRole.INBOX, nl_nl, mailbox.folder(inbox), mailbox.get_root(), True
    )

    assert [o.status for o in outcomes] == [CandidateStatus.NOT_FOUND, CandidateStatus.NOT_FOUND]
    assert mailbox.mutations() == []


def test_numerically_suffixed_folder_is_merged_when_scanning(mailbox, sweep, nl_nl) -> None:
    inbox = mailbox.add_folder("Inbox", role=WellKnownRole.INBOX)
    suffixed = mailbox.add_folder("Postvak IN1", items=4)

    outcomes = sweep.resolve_and_merge(
        WellKnownRole.INBOX, nl_nl, mailbox.folder(inbox), mailbox.get_root(), scan_numericals=True
    )

    assert [(o.candidate, o.status) for o in outcomes] == [
        ("Postvak IN", CandidateStatus.NOT_FOUND),
        ("Postvak IN1", CandidateStatus.MERGED),
    ]
    assert outcomes[1].stats.items_moved == 4
    assert not mailbox.exists(suffixed)
    assert len(mailbox.items[inbox]) == 4


def test_suffixed_folder_is_ignored_without_scanning(mailbox, sweep, nl_nl) -> None:
    inbox = mailbox.add_folder("Inbox", role=WellKnownRole.INBOX)
    suffixed = mailbox.add_folder("Postvak IN1", items=4)

    outcomes = sweep.resolve_and_merge(WellKnownRole.INBOX, nl_nl, mailbox.folder(inbox), mailbox.get_root())

    assert [o.candidate for o in outcomes] == ["Postvak IN"]
    assert mailbox.exists(suffixed)


def test_candidate_that_already_is_the_target_is_untouched(mailbox, sweep, locale_table) -> None:
    """en-GB -> en-US: 'Inbox' resolves to the canonical Inbox itself."""
    inbox = mailbox.add_folder("Inbox", items=2, role=WellKnownRole.INBOX)

    outcomes = sweep.resolve_and_merge(
        WellKnownRole.INBOX,
        locale_table.get("en-GB"),
        mailbox.folder(inbox),
        mailbox.get_root(),
    )

    assert outcomes[0].status == CandidateStatus.MERGED
    assert mailbox.mutations() == []
    assert mailbox.exists(inbox)


def test_incomplete_merge_is_reported_as_failed(mailbox, sweep, nl_nl) -> None:
    inbox = mailbox.add_folder("Inbox", role=WellKnownRole.INBOX)
    postvak = mailbox.add_folder("Postvak IN")
    work = mailbox.add_folder("Werk", parent=postvak)
    mailbox.fail_move_folder.add(work)

    outcomes = sweep.resolve_and_merge(WellKnownRole.INBOX, nl_nl, mailbox.folder(inbox), mailbox.get_root())

    assert outcomes[0].status == CandidateStatus.FAILED
    assert outcomes[0].error
    assert mailbox.exists(postvak)


def test_lookup_failure_is_reported_per_candidate(nl_nl) -> None:
    directory = MagicMock()
    directory.find_child_by_name.side_effect = [
        MailboxOperationError("throttled", 429),
        None,
    ]
    engine = MagicMock()
    sweep = FolderResolutionSweep(directory, engine)

    outcomes = sweep.resolve_and_merge(
        WellKnownRole.DRAFTS, nl_nl, MagicMock(), MagicMock(), scan_numericals=True
    )

    assert [(o.candidate, o.status) for o in outcomes] == [
        ("Concepten", CandidateStatus.FAILED),
        ("Concepten1", CandidateStatus.NOT_FOUND),
    ]
    engine.merge_folder.assert_not_called()


def test_found_candidate_without_target_is_kept(mailbox, sweep, nl_nl) -> None:
    agenda = mailbox.add_folder("Agenda", items=2)

    outcomes = sweep.resolve_and_merge(WellKnownRole.CALENDAR, nl_nl, None, mailbox.get_root())

    assert outcomes[0].status == CandidateStatus.FAILED
    assert outcomes[0].folder_path == "\\Agenda"
    assert "could not be bound" in outcomes[0].error
    assert mailbox.mutations() == []
    assert len(mailbox.items[agenda]) == 2
