import enum
from typing import Optional


class ErrorCode(enum.Enum):
    """Provider-neutral classification of bucket failures."""

    OK = "ok"
    UNKNOWN = "unknown"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INVALID_ARGUMENT = "invalid_argument"
    FAILED_PRECONDITION = "failed_precondition"
    PERMISSION_DENIED = "permission_denied"
    CANCELED = "canceled"


class BucketError(Exception):
    """Raised by bucket drivers for failures they can classify."""

    def __init__(self, code: ErrorCode, message: str, name: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.name = name

    def __str__(self) -> str:
        return f"bucket: {self.code.value}: {super().__str__()}"


def not_found(name: str) -> BucketError:
    return BucketError(ErrorCode.NOT_FOUND, f"object not found: {name}", name=name)


def error_code(err: Optional[BaseException]) -> ErrorCode:
    """Returns the ErrorCode for err. Errors drivers did not classify are UNKNOWN."""
    if err is None:
        return ErrorCode.OK
    if isinstance(err, BucketError):
        return err.code
    return ErrorCode.UNKNOWN
