"""Exception types shared across the pipeline."""


class ChatRecallError(Exception):
    """Base class for all pipeline errors."""


class IndexEngineError(ChatRecallError):
    """The text index engine rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class IndexTaskFailedError(IndexEngineError):
    """An asynchronous engine task finished with a status other than ``succeeded``."""

    def __init__(self, task_uid: int, status: str, code: str | None = None, message: str = ""):
        super().__init__(
            f"Engine task {task_uid} ended with status '{status}': {message or code or 'no details'}",
            code=code,
        )
        self.task_uid = task_uid
        self.status = status


class StrategyParseError(ChatRecallError):
    """The completion model output could not be turned into a search strategy."""

    def __init__(self, message: str, raw_output: str = ""):
        super().__init__(message)
        self.raw_output = raw_output


class CompletionError(ChatRecallError):
    """The completion model failed to produce a response."""
