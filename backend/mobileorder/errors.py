import enum
from typing import Optional


class ErrCode(str, enum.Enum):
    UNKNOWN = "U000"

    INSERT_DATA_FAILED = "S001"
    GET_DATA_FAILED = "S002"
    NO_DATA = "S003"
    UPDATE_DATA_FAILED = "S004"
    DELETE_DATA_FAILED = "S005"

    REQ_BODY_DECODE_FAILED = "R001"
    BAD_PARAM = "R002"
    VALIDATION_FAILED = "R003"

    UNAUTHORIZED = "A001"
    FORBIDDEN = "A002"

    CONFLICT = "C001"

    def wrap(self, err: Optional[BaseException], message: str) -> "AppError":
        return AppError(self, message, err)


class AppError(Exception):
    """
    Failure with a stable machine-readable code.

    `message` is safe to show to the caller; `err` keeps the underlying cause
    (also chained as __cause__) for server-side logs only.
    """

    def __init__(self, code: ErrCode, message: str, err: Optional[BaseException] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.err = err
        if err is not None:
            self.__cause__ = err

    def __str__(self) -> str:
        if self.err is not None:
            return f"{self.message}: {self.err}"
        return self.message


class RateLimitedError(AppError):
    """Forbidden-class failure raised while a login block is active."""

    def __init__(self, message: str, retry_after_seconds: int):
        super().__init__(ErrCode.FORBIDDEN, message)
        self.retry_after_seconds = retry_after_seconds
