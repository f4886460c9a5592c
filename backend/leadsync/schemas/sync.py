"""Pydantic schemas for sync trigger responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorDetail(_CamelModel):
    """A failed source row."""

    lead_id: int | None
    error: str


class SyncSummary(_CamelModel):
    """Result of one sync run, as returned to the trigger caller."""

    mode: str
    message: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    processed: int = 0
    synced: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: int = 0
    remarks_synced: int = 0
    batches: int = 0
    last_synced_date: datetime | None = None
    last_synced_id: int | None = None
    execution_time_ms: int = 0
    error_details: list[ErrorDetail] = []


class CheckpointOut(_CamelModel):
    """Stored sync checkpoint for a source."""

    source_type: str
    last_synced_at: datetime
    last_synced_id: int | None = None
    records_count: int
    last_run_at: datetime | None = None


class SyncRunOut(_CamelModel):
    """One recorded sync run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    source_type: str
    mode: str
    status: str
    duration_ms: int
    processed: int
    created: int
    updated: int
    error_count: int
    remarks_synced: int
    last_synced_at: datetime | None = None
    last_synced_id: int | None = None
    message: str | None = None
    error: str | None = None
    finished_at: datetime
