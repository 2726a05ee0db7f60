"""Tests for the member store: date adapter, reminder claims and batches."""
import datetime as dt
from zoneinfo import ZoneInfo

import pytest

from remindertribu.core.exceptions import MemberNotFoundError
from remindertribu.services.member_store import MemberPatch, NormalizationLogEntry, to_instant

UTC = dt.timezone.utc
ROME = ZoneInfo("Europe/Rome")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2026-10-21T10:00:00Z", dt.datetime(2026, 10, 21, 10, 0, tzinfo=UTC)),
        ("2026-10-21T12:00:00+02:00", dt.datetime(2026, 10, 21, 10, 0, tzinfo=UTC)),
        (dt.datetime(2026, 10, 21, 10, 0, tzinfo=UTC), dt.datetime(2026, 10, 21, 10, 0, tzinfo=UTC)),
        (1792576800, dt.datetime(2026, 10, 21, 10, 0, tzinfo=UTC)),
        (1792576800000, dt.datetime(2026, 10, 21, 10, 0, tzinfo=UTC)),
        ({"_seconds": 1792576800, "_nanoseconds": 0}, dt.datetime(2026, 10, 21, 10, 0, tzinfo=UTC)),
    ],
)
def test_to_instant_accepts_stored_representations(value, expected):
    assert to_instant(value) == expected


def test_to_instant_reads_naive_values_in_local_zone():
    # Midnight in Rome (CEST) is 22:00 UTC the day before.
    assert to_instant("2026-10-21", ROME) == dt.datetime(2026, 10, 20, 22, 0, tzinfo=UTC)
    assert to_instant(dt.date(2026, 10, 21), ROME) == dt.datetime(2026, 10, 20, 22, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    "value",
    [
        None,
        "",
        "not a date",
        "31/12/2026",
        True,
        ["2026-10-21"],
        {},
        10**20,
        float("inf"),
        float("nan"),
        {"_seconds": "n/a"},
        {"_seconds": 10**20},
        {"seconds": 1792576800, "nanoseconds": "soon"},
    ],
)
def test_to_instant_rejects_unusable_values(value):
    assert to_instant(value) is None


def test_add_and_get_member(store):
    store.add_member({"nome": "Anna", "dataScadenza": "2026-10-21"}, member_id="m1")
    member = store.get_member("m1")
    assert member.data["nome"] == "Anna"
    assert member.expiry == dt.datetime(2026, 10, 20, 22, 0, tzinfo=UTC)
    assert member.last_reminder_at is None


def test_native_expiry_column_wins(store):
    store.add_member(
        {"dataScadenza": "2030-01-01"},
        member_id="m1",
        expiry_at=dt.datetime(2026, 11, 1, 9, 0, tzinfo=UTC),
    )
    assert store.get_member("m1").expiry == dt.datetime(2026, 11, 1, 9, 0, tzinfo=UTC)


def test_get_missing_member_raises(store):
    with pytest.raises(MemberNotFoundError):
        store.get_member("missing")


def test_reads_are_counted_and_leave_writes_alone(store, add_member):
    add_member("m1", days=3)
    writes = store.writes
    store.list_members()
    store.sample_id()
    assert store.writes == writes
    assert store.reads >= 2


def test_claim_is_granted_once_within_cooldown(store, add_member, now):
    add_member("m1", days=3)
    assert store.claim_reminder("m1", now, cooldown_days=7) is True
    assert store.claim_reminder("m1", now + dt.timedelta(minutes=5), cooldown_days=7) is False
    assert store.get_member("m1").last_reminder_at == now


def test_claim_allowed_after_cooldown(store, add_member, now):
    add_member("m1", days=3, last_reminder_days_ago=8)
    assert store.claim_reminder("m1", now, cooldown_days=7) is True


def test_release_restores_previous_stamp(store, add_member, now):
    previous = now - dt.timedelta(days=9)
    add_member("m1", days=3, last_reminder_days_ago=9)
    assert store.claim_reminder("m1", now, cooldown_days=7)
    store.release_reminder("m1", claimed_at=now, previous=previous)
    assert store.get_member("m1").last_reminder_at == previous


def test_release_skips_foreign_claim(store, add_member, now):
    add_member("m1", days=3)
    later = now + dt.timedelta(days=10)
    store.claim_reminder("m1", now, cooldown_days=7)
    store.claim_reminder("m1", later, cooldown_days=7)
    store.release_reminder("m1", claimed_at=now, previous=None)
    assert store.get_member("m1").last_reminder_at == later


def test_confirm_writes_reminder_log(store, add_member, now):
    add_member("m1", days=3)
    store.claim_reminder("m1", now, cooldown_days=7)
    store.confirm_reminder("m1", phone="+393471234567", days_left=3, message="x" * 300, template=None, sent_at=now)
    logs = store.reminder_logs("m1")
    assert len(logs) == 1
    assert logs[0].phone == "+393471234567"
    assert logs[0].days_left == 3
    assert len(logs[0].message_preview) == 120
    assert logs[0].as_row()["channel"] == "whatsapp"


def test_commit_phone_batch_applies_patches_and_logs(store, add_member):
    add_member("m1", phone="3471234567")
    writes = store.writes
    store.commit_phone_batch(
        [MemberPatch("m1", {"phone": "+393471234567", "phoneRaw": "3471234567"})],
        [NormalizationLogEntry("m1", updates=[{"field": "phone"}])],
    )
    assert store.writes == writes + 1
    data = store.get_member("m1").data
    assert data["phone"] == "+393471234567"
    assert data["phoneRaw"] == "3471234567"
    assert len(store.normalization_logs()) == 1


def test_commit_phone_batch_is_all_or_nothing(store, add_member):
    add_member("m1", phone="3471234567")
    with pytest.raises(MemberNotFoundError):
        store.commit_phone_batch(
            [MemberPatch("m1", {"phone": "+393471234567"}), MemberPatch("ghost", {"phone": "+39"})],
            [NormalizationLogEntry("m1")],
        )
    assert store.get_member("m1").data["phone"] == "3471234567"
    assert store.normalization_logs() == []


def test_commit_phone_batch_rejects_oversized_batch(store):
    patches = [MemberPatch(f"m{i}") for i in range(store.max_batch_docs + 1)]
    with pytest.raises(ValueError):
        store.commit_phone_batch(patches, [])


def test_empty_batch_does_not_write(store):
    store.commit_phone_batch([], [])
    assert store.writes == 0


def test_corrupt_expiry_does_not_break_listing(store, add_member):
    add_member("good", days=2, whatsapp="3470001111")
    add_member("huge", whatsapp="3470002222", dataScadenza=10**20)
    add_member("garbled", whatsapp="3470003333", dataScadenza={"_seconds": "n/a"})

    members = {member.id: member for member in store.list_members()}

    assert members["good"].expiry is not None
    assert members["huge"].expiry is None
    assert members["garbled"].expiry is None


def test_to_instant_out_of_range_local_date():
    # Midnight of year 1 in Rome falls before datetime.min once shifted to UTC.
    assert to_instant("0001-01-01", ROME) is None
