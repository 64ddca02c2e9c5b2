"""Errors raised by the permission sync pipeline."""


class SyncError(Exception):
    """A sync stage failed.  Work committed by earlier stages is kept."""

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Permission sync failed while {stage}: {cause}")


class SyncInProgressError(Exception):
    """Another sync is already running in this process."""

    def __init__(self) -> None:
        super().__init__("A permission sync is already in progress")
