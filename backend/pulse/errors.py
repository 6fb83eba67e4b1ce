"""
errors.py — AppError base class and error code registry.

Every error returned by the Pulse API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are short reason strings. Clients translate them for
    display; they may be improved at any time.
  - 401 means "no credential was presented". 403 means "a credential was
    presented but it is invalid, expired, or lacks the required role".
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Validation Errors (400) ────────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_SPORT              = "INVALID_SPORT"
    INVALID_RATING             = "INVALID_RATING"
    SELF_RATING                = "SELF_RATING"
    SELF_FLAG                  = "SELF_FLAG"

    # ── Conflict Errors (400) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    DUPLICATE_USERNAME         = "DUPLICATE_USERNAME"
    DUPLICATE_SPORT            = "DUPLICATE_SPORT"
    ALREADY_MEMBER             = "ALREADY_MEMBER"
    GROUP_FULL                 = "GROUP_FULL"
    ORGANIZER_CANNOT_LEAVE     = "ORGANIZER_CANNOT_LEAVE"

    # ── State-machine Errors (409) ─────────────────────────────────────────
    FLAG_ALREADY_RESOLVED      = "FLAG_ALREADY_RESOLVED"
    INVALID_STATUS_TRANSITION  = "INVALID_STATUS_TRANSITION"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    NOT_FOUND                  = "NOT_FOUND"
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    SPORT_NOT_FOUND            = "SPORT_NOT_FOUND"
    FLAG_NOT_FOUND             = "FLAG_NOT_FOUND"
    NOT_A_MEMBER               = "NOT_A_MEMBER"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = no token was presented
    # 403 = token presented but unusable, account not active, or role too low
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 403
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 403
    ACCOUNT_SUSPENDED          = "ACCOUNT_SUSPENDED"      # 403
    ACCOUNT_PENDING            = "ACCOUNT_PENDING"        # 403
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── Protocol Errors ────────────────────────────────────────────────────
    BAD_REQUEST                = "BAD_REQUEST"            # 400
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"     # 405

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# Default reason strings for codes that schemas raise as bare ValidationError
# messages. The global handler swaps the code for one of these.
CODE_MESSAGES: dict[str, str] = {
    ErrorCode.MISSING_FIELD:  "Missing required fields",
    ErrorCode.INVALID_RATING: "Rating must be between 1 and 5",
    ErrorCode.INVALID_SPORT:  "Invalid sport",
}
