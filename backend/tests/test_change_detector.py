"""Tests for change detection."""

from datetime import datetime

import pytest

from leadsync.schemas.lead import CanonicalLead
from leadsync.services import change_detector
from leadsync.services.batch_writer import BatchWriter
from leadsync.services.change_detector import (
    SIGNIFICANT_FIELDS,
    ChangeKind,
    LeadSnapshot,
    detect_change,
    fetch_snapshots,
)

UPDATED = datetime(2024, 3, 1, 12, 0, 0)


def lead(**overrides) -> CanonicalLead:
    data = {
        "lead_ref": "1001",
        "owner_id": 5,
        "circle": "North",
        "status": "Follow-up 1",
        "patient_name": "Sita Devi",
        "phone_number": "9810000001",
        "created_date": datetime(2024, 3, 1),
        "updated_date": UPDATED,
        "created_by_id": 1,
        "updated_by_id": 1,
    }
    data.update(overrides)
    return CanonicalLead(**data)


def snapshot(**overrides) -> LeadSnapshot:
    data = {
        "patient_name": "Sita Devi",
        "status": "Follow-up 1",
        "owner_id": 5,
        "updated_date": UPDATED,
    }
    data.update(overrides)
    return LeadSnapshot(lead_ref="1001", values=data)


class TestDetectChange:
    """Tests for detect_change."""

    def test_significant_fields(self):
        assert SIGNIFICANT_FIELDS == ("patient_name", "status", "owner_id", "updated_date")

    def test_new_lead(self):
        assert detect_change(None, lead()) is ChangeKind.CREATE

    def test_unchanged(self):
        assert detect_change(snapshot(), lead()) is ChangeKind.UNCHANGED

    def test_other_fields_are_ignored(self):
        assert detect_change(snapshot(), lead(circle="South", age=52)) is ChangeKind.UNCHANGED

    @pytest.mark.parametrize(
        "field,value",
        [("patient_name", "Sita D."), ("status", "DNP-1"), ("owner_id", 6)],
    )
    def test_significant_field_change(self, field, value):
        assert detect_change(snapshot(), lead(**{field: value})) is ChangeKind.UPDATE

    def test_subsecond_difference_is_unchanged(self):
        record = lead(updated_date=UPDATED.replace(microsecond=400000))
        assert detect_change(snapshot(), record) is ChangeKind.UNCHANGED

    def test_newer_timestamp_is_update(self):
        record = lead(updated_date=datetime(2024, 3, 1, 12, 0, 1))
        assert detect_change(snapshot(), record) is ChangeKind.UPDATE

    def test_timestamp_where_none_stored_is_update(self):
        assert detect_change(snapshot(updated_date=None), lead()) is ChangeKind.UPDATE

    def test_missing_new_timestamp_is_not_a_change(self):
        assert detect_change(snapshot(), lead(updated_date=None)) is ChangeKind.UNCHANGED

    def test_field_list_drives_comparison(self, monkeypatch):
        monkeypatch.setattr(change_detector, "SIGNIFICANT_FIELDS", ("patient_name", "circle"))
        stored = snapshot(circle="North")

        assert detect_change(stored, lead(circle="South")) is ChangeKind.UPDATE
        # status is no longer significant
        assert detect_change(stored, lead(status="DNP-1")) is ChangeKind.UNCHANGED


class TestFetchSnapshots:
    """Tests for loading stored snapshots."""

    @pytest.mark.asyncio
    async def test_fetch_in_chunks(self, db_session, accounts):
        owner_id = accounts["ravi"].id
        records = [
            lead(lead_ref=str(ref), owner_id=owner_id, created_by_id=owner_id, updated_by_id=owner_id)
            for ref in range(1, 6)
        ]
        await BatchWriter(db_session).write_creates(records)

        snapshots = await fetch_snapshots(db_session, ["1", "3", "5", "404"], chunk_size=2)

        assert set(snapshots) == {"1", "3", "5"}
        assert snapshots["3"].values["owner_id"] == owner_id
        assert snapshots["3"].values["updated_date"] == UPDATED

    @pytest.mark.asyncio
    async def test_fetch_loads_configured_fields(self, db_session, accounts, monkeypatch):
        owner_id = accounts["ravi"].id
        await BatchWriter(db_session).write_creates(
            [lead(owner_id=owner_id, created_by_id=owner_id, updated_by_id=owner_id)]
        )
        monkeypatch.setattr(change_detector, "SIGNIFICANT_FIELDS", ("status", "circle"))

        snapshots = await fetch_snapshots(db_session, ["1001"])

        assert snapshots["1001"].values == {"status": "Follow-up 1", "circle": "North"}
