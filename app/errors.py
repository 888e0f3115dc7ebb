from enum import Enum

class ErrorCode(str, Enum):
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_ACTION_TYPE = "INVALID_ACTION_TYPE"
    ALREADY_REWARDED = "ALREADY_REWARDED"
    INVALID_EVENT = "INVALID_EVENT"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    RULES_NOT_FOUND = "RULES_NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"
    SERVER_ERROR = "SERVER_ERROR"

_STATUS = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.INVALID_EVENT: 404,
    ErrorCode.SERVER_ERROR: 500,
}

def status_for(code: ErrorCode) -> int:
    return _STATUS.get(code, 400)

class AwardError(Exception):
    """Terminal failure of an award request; carries the public error code."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def status_code(self) -> int:
        return status_for(self.code)

    def to_body(self) -> dict:
        return {"success": False, "error": self.message, "code": self.code.value}
