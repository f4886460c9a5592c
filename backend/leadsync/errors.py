"""Exceptions raised by the lead sync engine."""


class SyncError(Exception):
    """Base exception for lead sync errors."""

    pass


class SyncFatalError(SyncError):
    """Condition that aborts the whole run before any writes."""

    pass


class SourceUnavailableError(SyncFatalError):
    """The source database cannot be reached."""

    pass


class NoSystemActorError(SyncFatalError):
    """No account exists to stamp created_by/updated_by on synced leads."""

    pass


class NoSupervisorError(SyncFatalError):
    """A default team is needed but there is no sales head to own it."""

    pass


class SyncAlreadyRunningError(SyncFatalError):
    """Another process holds the sync lease for this source."""

    pass


class RecordError(SyncError):
    """Failure confined to a single source row."""

    def __init__(self, source_id: int | None, message: str):
        super().__init__(message)
        self.source_id = source_id


class MappingError(RecordError):
    """A source row cannot be mapped into a lead."""

    pass


class MissingFieldError(MappingError):
    """A hard-required source field is empty."""

    def __init__(self, source_id: int | None, field: str):
        super().__init__(source_id, f"Lead {source_id} has no {field} specified")
        self.field = field


class OwnerNotFoundError(MappingError):
    """The owner name did not resolve and auto-create is disabled."""

    def __init__(self, source_id: int | None, owner_name: str):
        super().__init__(
            source_id,
            f"Owner not found: {owner_name} for lead {source_id}. "
            "Enable auto-create to create missing owner accounts.",
        )
        self.owner_name = owner_name
