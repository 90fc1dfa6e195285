"""Tests for the job processor due-ness policy and delivery orchestration."""

import uuid
from datetime import UTC, date, datetime, time, timedelta

import pytest
from conftest import FakeGateway

from hadith_admin.cron.processor import JobProcessor
from hadith_admin.cron_logs.schemas import CronLogStatus, CronLogType
from hadith_admin.errors import PersistenceError
from hadith_admin.hadiths.schemas import HadithRecord
from hadith_admin.notifications.models import NotificationType
from hadith_admin.notifications.schemas import NotificationRecord

HADITH_TITLE = "Hadith of the day"


class InMemoryStore:
    """Full-collection store handing out copies, like a real load/overwrite round trip."""

    def __init__(self, records=()):
        self.records = list(records)
        self.saves = 0
        self.fail_load = False
        self.fail_save = False

    def load_all(self):
        if self.fail_load:
            raise PersistenceError("disk unavailable")
        return [r.model_copy(deep=True) for r in self.records]

    def overwrite_all(self, records):
        if self.fail_save:
            raise PersistenceError("read-only filesystem")
        self.saves += 1
        self.records = [r.model_copy(deep=True) for r in records]


class ListAudit:
    def __init__(self):
        self.entries = []
        self.fail = False

    def append(self, entry):
        if self.fail:
            raise PersistenceError("audit table locked")
        self.entries.append(entry)


def _scheduled(title="Eid greeting", on=date(2025, 6, 1), at=time(9, 0), **kwargs):
    return NotificationRecord(
        id=uuid.uuid4(), title=title, body=f"{title} body", type=NotificationType.SCHEDULED,
        scheduled_date=on, scheduled_time=at, **kwargs,
    )


def _recurring(title="Friday reminder", days=(5,), at=time(18, 0), **kwargs):
    return NotificationRecord(
        id=uuid.uuid4(), title=title, body=f"{title} body", type=NotificationType.RECURRING,
        recurring_days=list(days), recurring_time=at, **kwargs,
    )


def _hadith(text="Actions are by intentions", on=date(2025, 6, 1), **kwargs):
    return HadithRecord(id=uuid.uuid4(), text=text, narrator="Umar", source="Bukhari", date=on, **kwargs)


@pytest.fixture
def notifications():
    return InMemoryStore()


@pytest.fixture
def hadiths():
    return InMemoryStore()


@pytest.fixture
def audit():
    return ListAudit()


@pytest.fixture
def make_processor(notifications, hadiths, audit, gateway, clock):
    def _make(gateway=gateway, **overrides):
        kwargs = {
            "timezone": "UTC",
            "hadith_send_time": time(9, 0),
            "hadith_title": HADITH_TITLE,
            "clock": clock,
        }
        kwargs.update(overrides)
        return JobProcessor(notifications, hadiths, audit, gateway, **kwargs)

    return _make


class TestScheduled:
    def test_sends_once_and_deactivates(self, make_processor, notifications, audit, gateway):
        notifications.records = [_scheduled()]
        result = make_processor().run_once()

        assert result.processed == 1
        assert result.errors == 0
        assert result.details == ['✅ Scheduled "Eid greeting" sent']
        assert gateway.sent == [("Eid greeting", "Eid greeting body")]
        saved = notifications.records[0]
        assert saved.active is False
        assert saved.sent_at == datetime(2025, 6, 1, 9, 0, 20, tzinfo=UTC)
        assert notifications.saves == 1
        assert len(audit.entries) == 1
        assert audit.entries[0].type == CronLogType.SCHEDULED
        assert audit.entries[0].status == CronLogStatus.SUCCESS
        assert audit.entries[0].notification_id == saved.id

    def test_never_resent_same_or_later_minute(self, make_processor, notifications, audit, gateway, clock):
        notifications.records = [_scheduled()]
        processor = make_processor()
        processor.run_once()

        clock.advance(seconds=30)
        again = processor.run_once()
        clock.set(2025, 6, 1, 9, 1, 5)
        later = processor.run_once()

        assert again.processed == later.processed == 0
        assert len(gateway.sent) == 1
        assert len(audit.entries) == 1
        assert notifications.saves == 1

    def test_not_due_at_other_minute_or_date(self, make_processor, notifications, gateway):
        notifications.records = [
            _scheduled("Later", at=time(9, 1)),
            _scheduled("Tomorrow", on=date(2025, 6, 2)),
            _scheduled("Earlier", at=time(8, 59)),
        ]
        result = make_processor().run_once()

        assert result.processed == 0
        assert gateway.sent == []
        assert notifications.saves == 0

    def test_inactive_and_already_sent_are_skipped(self, make_processor, notifications, gateway):
        notifications.records = [
            _scheduled("Paused", active=False),
            _scheduled("Done", sent_at=datetime(2025, 5, 31, tzinfo=UTC)),
        ]
        result = make_processor().run_once()

        assert result.processed == 0
        assert gateway.sent == []

    def test_failure_leaves_state_and_retries_within_minute(self, make_processor, notifications, audit, clock):
        notifications.records = [_scheduled()]
        failing = FakeGateway(fail_titles={"Eid greeting"})
        processor = make_processor(gateway=failing)

        result = processor.run_once()

        assert result.processed == 0
        assert result.errors == 1
        assert result.details[0].startswith('❌ Scheduled "Eid greeting" failed:')
        assert notifications.records[0].active is True
        assert notifications.records[0].sent_at is None
        assert notifications.saves == 0
        assert audit.entries[0].status == CronLogStatus.ERROR
        assert "FCM rejected" in audit.entries[0].message

        failing.fail_titles.clear()
        clock.advance(seconds=30)
        assert processor.run_once().processed == 1
        assert notifications.records[0].active is False

    def test_missed_minute_is_not_retried_without_grace(self, make_processor, notifications, clock):
        notifications.records = [_scheduled()]
        failing = FakeGateway(fail_titles={"Eid greeting"})
        processor = make_processor(gateway=failing)
        processor.run_once()

        failing.fail_titles.clear()
        clock.set(2025, 6, 1, 9, 1, 20)
        assert processor.run_once().processed == 0

    def test_grace_window_retries_after_failure(self, make_processor, notifications, clock):
        notifications.records = [_scheduled()]
        failing = FakeGateway(fail_titles={"Eid greeting"})
        processor = make_processor(gateway=failing, scheduled_grace=timedelta(minutes=5))
        processor.run_once()

        failing.fail_titles.clear()
        clock.set(2025, 6, 1, 9, 3, 20)
        assert processor.run_once().processed == 1

        clock.set(2025, 6, 1, 9, 4, 20)
        assert processor.run_once().processed == 0

    def test_grace_window_closes(self, make_processor, notifications, clock):
        notifications.records = [_scheduled()]
        clock.set(2025, 6, 1, 9, 6, 0)
        result = make_processor(scheduled_grace=timedelta(minutes=5)).run_once()
        assert result.processed == 0

    def test_missing_schedule_fields_are_skipped(self, make_processor, notifications, gateway):
        notifications.records = [_scheduled(at=None), _scheduled("Fine")]
        result = make_processor().run_once()

        assert result.processed == 1
        assert result.errors == 0
        assert gateway.sent == [("Fine", "Fine body")]


class TestRecurring:
    def test_ticks_30s_apart_send_once(self, make_processor, notifications, audit, gateway, clock):
        notifications.records = [_recurring()]
        clock.set(2025, 6, 6, 18, 0, 5)  # Friday
        processor = make_processor()

        first = processor.run_once()
        clock.advance(seconds=30)
        second = processor.run_once()

        assert first.processed == 1
        assert second.processed == 0
        assert len(gateway.sent) == 1
        successes = [e for e in audit.entries if e.status == CronLogStatus.SUCCESS]
        assert len(successes) == 1
        assert successes[0].type == CronLogType.RECURRING
        saved = notifications.records[0]
        assert saved.active is True
        assert saved.last_sent_at == datetime(2025, 6, 6, 18, 0, 5, tzinfo=UTC)

    def test_next_week_sends_again(self, make_processor, notifications, gateway, clock):
        notifications.records = [_recurring()]
        processor = make_processor()

        clock.set(2025, 6, 6, 18, 0, 5)
        processor.run_once()
        clock.set(2025, 6, 13, 18, 0, 5)
        result = processor.run_once()

        assert result.processed == 1
        assert len(gateway.sent) == 2
        assert notifications.records[0].last_sent_at == datetime(2025, 6, 13, 18, 0, 5, tzinfo=UTC)

    def test_cooldown_boundary(self, make_processor, notifications, gateway, clock):
        sent_at = datetime(2025, 6, 6, 17, 58, 35, tzinfo=UTC)
        notifications.records = [_recurring(at=time(18, 0), last_sent_at=sent_at)]
        clock.set(2025, 6, 6, 18, 0, 5)  # exactly 90s later

        assert make_processor().run_once().processed == 1

    def test_wrong_day_or_time(self, make_processor, notifications, gateway, clock):
        notifications.records = [_recurring(days=(4,)), _recurring(at=time(18, 1))]
        clock.set(2025, 6, 6, 18, 0, 5)

        assert make_processor().run_once().processed == 0
        assert gateway.sent == []

    def test_multiple_days(self, make_processor, notifications, clock):
        notifications.records = [_recurring(days=(0, 3, 5))]
        clock.set(2025, 6, 1, 18, 0, 0)  # Sunday
        assert make_processor().run_once().processed == 1

    def test_failure_does_not_touch_state(self, make_processor, notifications, audit, clock):
        notifications.records = [_recurring()]
        clock.set(2025, 6, 6, 18, 0, 5)
        result = make_processor(gateway=FakeGateway(fail_titles={"Friday reminder"})).run_once()

        assert result.errors == 1
        assert notifications.records[0].last_sent_at is None
        assert notifications.saves == 0
        assert audit.entries[0].type == CronLogType.RECURRING
        assert audit.entries[0].status == CronLogStatus.ERROR

    def test_naive_last_sent_at_is_treated_as_utc(self, make_processor, notifications, clock):
        notifications.records = [_recurring(last_sent_at=datetime(2025, 6, 6, 18, 0, 0))]
        clock.set(2025, 6, 6, 18, 0, 30)
        assert make_processor().run_once().processed == 0

    def test_empty_days_are_skipped(self, make_processor, notifications, clock):
        notifications.records = [_recurring(days=())]
        clock.set(2025, 6, 6, 18, 0, 5)
        result = make_processor().run_once()
        assert result.processed == 0
        assert result.errors == 0


class TestImmediate:
    def test_never_sent_by_processor(self, make_processor, notifications, gateway):
        notifications.records = [
            NotificationRecord(id=uuid.uuid4(), title="Now", body="b", type=NotificationType.IMMEDIATE),
        ]
        assert make_processor().run_once().processed == 0
        assert gateway.sent == []


class TestHadith:
    def test_sends_todays_unsent_hadith_once(self, make_processor, hadiths, audit, gateway):
        already = _hadith("Old one", sent_at=datetime(2025, 6, 1, 6, 0, tzinfo=UTC))
        today = _hadith("Today's text")
        other_day = _hadith("Tomorrow", on=date(2025, 6, 2))
        hadiths.records = [already, today, other_day]

        result = make_processor().run_once()

        assert result.processed == 1
        assert result.details == ["✅ Hadith of the day sent"]
        assert gateway.sent == [(HADITH_TITLE, "Today's text")]
        assert hadiths.saves == 1
        saved = {h.id: h for h in hadiths.records}
        assert saved[today.id].sent_at is not None
        assert saved[other_day.id].sent_at is None
        assert audit.entries[0].type == CronLogType.HADITH
        assert audit.entries[0].notification_id == today.id

    def test_at_most_one_per_tick(self, make_processor, hadiths, gateway, clock):
        hadiths.records = [_hadith("First"), _hadith("Second")]
        processor = make_processor()

        processor.run_once()
        assert len(gateway.sent) == 1

        clock.advance(seconds=30)
        processor.run_once()
        # a second entry for the same date is still eligible on the next tick in the same minute
        assert len(gateway.sent) == 2

        clock.advance(seconds=20)
        processor.run_once()
        assert len(gateway.sent) == 2

    def test_only_at_send_minute(self, make_processor, hadiths, gateway, clock):
        hadiths.records = [_hadith()]
        clock.set(2025, 6, 1, 9, 1, 0)
        assert make_processor().run_once().processed == 0
        assert gateway.sent == []
        assert hadiths.saves == 0

    def test_configured_send_time(self, make_processor, hadiths, gateway, clock):
        hadiths.records = [_hadith()]
        clock.set(2025, 6, 1, 20, 15, 0)
        assert make_processor(hadith_send_time=time(20, 15)).run_once().processed == 1

    def test_failure_does_not_mark_sent(self, make_processor, hadiths, audit):
        hadiths.records = [_hadith()]
        result = make_processor(gateway=FakeGateway(fail_titles={HADITH_TITLE})).run_once()

        assert result.errors == 1
        assert result.details[0].startswith("❌ Hadith of the day failed:")
        assert hadiths.records[0].sent_at is None
        assert hadiths.saves == 0
        assert audit.entries[0].type == CronLogType.HADITH
        assert audit.entries[0].status == CronLogStatus.ERROR


class TestFailureIsolation:
    def test_failure_for_one_item_does_not_block_others(self, make_processor, notifications, hadiths, gateway):
        notifications.records = [_scheduled("Broken"), _scheduled("Works")]
        hadiths.records = [_hadith()]
        failing = FakeGateway(fail_titles={"Broken"})

        result = make_processor(gateway=failing).run_once()

        assert result.processed == 2
        assert result.errors == 1
        assert [title for title, _ in failing.sent] == ["Works", HADITH_TITLE]
        by_title = {n.title: n for n in notifications.records}
        assert by_title["Broken"].active is True
        assert by_title["Works"].active is False

    def test_unexpected_item_error_is_contained(self, make_processor, notifications, gateway):
        class ExplodingGateway(FakeGateway):
            def send(self, title, body):
                if title == "Bad":
                    raise RuntimeError("boom")
                return super().send(title, body)

        exploding = ExplodingGateway()
        notifications.records = [_scheduled("Bad"), _scheduled("Good")]
        result = make_processor(gateway=exploding).run_once()

        assert result.processed == 1
        assert result.errors == 1
        assert exploding.sent == [("Good", "Good body")]

    def test_save_failure_after_delivery_is_recorded(self, make_processor, notifications, audit):
        notifications.records = [_scheduled()]
        notifications.fail_save = True

        result = make_processor().run_once()

        assert result.processed == 1
        assert any(d.startswith("❌ Saving notifications failed") for d in result.details)
        system = [e for e in audit.entries if e.type == CronLogType.SYSTEM]
        assert len(system) == 1
        assert system[0].status == CronLogStatus.ERROR
        # not recorded, so the item is still eligible
        assert notifications.records[0].active is True

    def test_load_failure_still_processes_hadiths(self, make_processor, notifications, hadiths, audit, gateway):
        notifications.fail_load = True
        hadiths.records = [_hadith()]

        result = make_processor().run_once()

        assert result.processed == 1
        assert gateway.sent == [(HADITH_TITLE, "Actions are by intentions")]
        assert audit.entries[0].type == CronLogType.SYSTEM

    def test_audit_failure_does_not_change_outcome(self, make_processor, notifications, audit):
        notifications.records = [_scheduled()]
        audit.fail = True

        result = make_processor().run_once()

        assert result.processed == 1
        assert notifications.records[0].active is False


class BrokenSocketGateway(FakeGateway):
    """Gateway whose transport dies outside the DeliveryError contract."""

    def __init__(self, broken_titles):
        super().__init__()
        self.broken_titles = set(broken_titles)

    def send(self, title, body):
        if title in self.broken_titles:
            raise RuntimeError("socket closed")
        return super().send(title, body)


class TestUnexpectedGatewayErrors:
    def test_hadith_error_is_contained_and_audited(self, make_processor, hadiths, audit):
        hadiths.records = [_hadith()]

        result = make_processor(gateway=BrokenSocketGateway({HADITH_TITLE})).run_once()

        assert result.processed == 0
        assert result.errors == 1
        assert result.details == ["❌ Hadith of the day failed: socket closed"]
        assert len(audit.entries) == 1
        assert audit.entries[0].type == CronLogType.HADITH
        assert audit.entries[0].status == CronLogStatus.ERROR
        assert audit.entries[0].notification_id == hadiths.records[0].id
        assert hadiths.records[0].sent_at is None
        assert hadiths.saves == 0

    def test_scheduled_error_is_audited(self, make_processor, notifications, audit):
        notifications.records = [_scheduled("Bad"), _scheduled("Good")]
        broken = BrokenSocketGateway({"Bad"})

        result = make_processor(gateway=broken).run_once()

        assert result.processed == 1
        assert result.errors == 1
        errors = [e for e in audit.entries if e.status == CronLogStatus.ERROR]
        assert len(errors) == 1
        assert errors[0].type == CronLogType.SCHEDULED
        assert errors[0].notification_title == "Bad"
        assert "socket closed" in errors[0].message

    def test_recurring_error_is_audited(self, make_processor, notifications, audit, clock):
        notifications.records = [_recurring()]
        clock.set(2025, 6, 6, 18, 0, 5)

        result = make_processor(gateway=BrokenSocketGateway({"Friday reminder"})).run_once()

        assert result.errors == 1
        assert audit.entries[0].type == CronLogType.RECURRING
        assert audit.entries[0].status == CronLogStatus.ERROR
        assert notifications.records[0].last_sent_at is None


class TestNoOpTick:
    def test_nothing_due_mutates_nothing(self, make_processor, notifications, hadiths, audit, gateway, clock):
        notifications.records = [_scheduled(at=time(12, 0)), _recurring()]
        hadiths.records = [_hadith(on=date(2025, 6, 2))]

        result = make_processor().run_once()

        assert result.to_dict() == {"processed": 0, "errors": 0, "details": []}
        assert notifications.saves == 0
        assert hadiths.saves == 0
        assert audit.entries == []
        assert gateway.sent == []


class TestTimeZone:
    def test_due_ness_uses_configured_zone(self, make_processor, notifications, clock):
        # 07:00 UTC is 09:00 in Africa/Johannesburg (UTC+2, no DST)
        notifications.records = [_scheduled()]
        clock.set(2025, 6, 1, 7, 0, 10)
        assert make_processor(timezone="Africa/Johannesburg").run_once().processed == 1

    def test_unknown_zone_falls_back(self, make_processor, notifications, clock):
        # Africa/Cairo is UTC+3 in June 2025 (summer time)
        notifications.records = [_scheduled()]
        clock.set(2025, 6, 1, 6, 0, 10)
        assert make_processor(timezone="Mars/Olympus").run_once().processed == 1
