"""
Error taxonomy for the analysis pipeline.

Faults in a single turn never corrupt earlier turns:
- IngestionError blocks the upload stage (no schema, no chat)
- GenerationError fails one assistant turn (no code is executed)
- Execution faults are values (see code_executor.ExecutionFault), never raised
- SessionBusyError rejects a second question while one is in flight
"""


class AnalystError(Exception):
    """Base class for all pipeline errors."""

    pass


class IngestionError(AnalystError):
    """Uploaded file is empty, malformed, too large or not a CSV."""

    pass


class GenerationError(AnalystError):
    """Reasoning service call failed or returned an unusable response."""

    def __init__(self, message: str, reason: str = "unknown") -> None:
        super().__init__(message)
        self.reason = reason


class SessionBusyError(AnalystError):
    """A question is already being processed for this session."""

    pass
