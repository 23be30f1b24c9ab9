"""Tests for the operation registry and its persistence."""

from datetime import timedelta

import pytest

from core.enums import OperationState, ResponseStatus
from core.operations.errors import InvalidLeadTime, OperationNotFound
from core.operations.registry import OperationRegistry, validate_lead_hours
from core.operations.types import Position, Response, utcnow


class TestValidateLeadHours:
    def test_sorts_descending_and_dedupes(self):
        assert validate_lead_hours([1, 24, "1", 0.5]) == [24.0, 1.0, 0.5]

    def test_empty_is_allowed(self):
        assert validate_lead_hours(None) == []

    @pytest.mark.parametrize("value", [-1, 0, "soon", float("nan"), float("inf")])
    def test_rejects_invalid(self, value):
        with pytest.raises(InvalidLeadTime):
            validate_lead_hours([value])


class TestCreate:
    def test_create_active(self, registry):
        operation = registry.create("guild-1", "Thunder-01", reminder_hours=[24, 1])

        assert operation.operation_id.startswith("op_")
        assert operation.state == OperationState.active
        assert operation.reminder_hours == [24.0, 1.0]
        assert registry.list_active("guild-1") == [operation]
        assert registry.list_scheduled() == []

    def test_ids_are_unique(self, registry):
        ids = {registry.create("guild-1", f"Op {i}").operation_id for i in range(50)}
        assert len(ids) == 50

    def test_create_scheduled_then_promote(self, registry):
        operation = registry.create("guild-1", "Later", scheduled=True)
        assert registry.list_scheduled("guild-1") == [operation]

        promoted = registry.promote(operation.operation_id)

        assert promoted.state == OperationState.active
        assert registry.list_scheduled() == []
        assert registry.get(operation.operation_id) is promoted

    def test_require_unknown_raises(self, registry):
        with pytest.raises(OperationNotFound):
            registry.require("op_missing")

    def test_get_active_returns_most_recent(self, registry):
        older = registry.create("guild-1", "Older")
        older.created_at = utcnow() - timedelta(hours=1)
        newer = registry.create("guild-1", "Newer")
        registry.create("guild-2", "Elsewhere")

        assert registry.get_active("guild-1") is newer


class TestPersistence:
    def test_reload_restores_everything(self, registry, store):
        start = utcnow() + timedelta(hours=48)
        operation = registry.create(
            "guild-1",
            "Thunder-01",
            positions=[Position("Pilot", 1), Position("Observer")],
            start_at=start,
            reminder_hours=[24, 1],
        )
        operation.responses["u1"] = Response(ResponseStatus.attending, "Ace")
        operation.assignments["u1"] = "Pilot"
        operation.attending_count = 1
        operation.fired_reminders = [24.0]
        registry.create("guild-1", "Maybe", scheduled=True)
        assert registry.save() is True

        reloaded = OperationRegistry(store)
        reloaded.load()

        restored = reloaded.require(operation.operation_id)
        assert restored.start_at == start
        assert restored.positions[0].max_slots == 1
        assert restored.positions[1].max_slots is None
        assert restored.responses["u1"].status == ResponseStatus.attending
        assert restored.responses["u1"].display_name == "Ace"
        assert restored.assignments == {"u1": "Pilot"}
        assert restored.attending_count == 1
        assert restored.fired_reminders == [24.0]
        assert len(reloaded.list_scheduled()) == 1

    def test_unreadable_record_is_skipped(self, registry, store):
        good = registry.create("guild-1", "Good")
        registry.save()
        snapshot = store.load("active_operations")
        snapshot["op_bad"] = {"name": "missing fields"}
        store.save("active_operations", snapshot)

        reloaded = OperationRegistry(store)
        reloaded.load()

        assert [op.operation_id for op in reloaded.list_active()] == [good.operation_id]


class TestPurge:
    def test_purges_only_stale_scheduled(self, registry):
        stale = registry.create("guild-1", "Stale", scheduled=True)
        stale.created_at = utcnow() - timedelta(hours=25)
        fresh = registry.create("guild-1", "Fresh", scheduled=True)
        active = registry.create("guild-1", "Active")
        active.created_at = utcnow() - timedelta(days=3)

        expired = registry.purge_expired_scheduled()

        assert expired == [stale]
        assert registry.get(stale.operation_id) is None
        assert registry.get(fresh.operation_id) is fresh
        assert registry.get(active.operation_id) is active


class TestNextReminder:
    def test_skips_fired_and_past(self, registry):
        now = utcnow()
        operation = registry.create(
            "guild-1", "Op", start_at=now + timedelta(hours=10), reminder_hours=[24, 6, 1]
        )
        operation.fired_reminders = [6.0]

        # 24h instant is in the past, 6h already fired
        assert operation.next_reminder_at(now) == operation.start_at - timedelta(hours=1)
