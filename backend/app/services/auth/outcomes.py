"""Registration outcomes and their HTTP status/message pairs.

Every registration request ends in exactly one ``RegistrationOutcome``; the
route turns it into a response with ``to_response``. The message strings are
what API clients match on, so they must not change.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Tuple

SUCCESS_MESSAGE = 'Successful registration'

MSG_BAD_REQUEST = 'bad request'
MSG_INVALID_EMAIL = 'bad request: invalid email address'
MSG_INVALID_DOB = 'bad request: invalid date of birth'
MSG_INTERNAL_ERROR = 'internal server error'
MSG_BOTH_TAKEN = 'conflict: email and username already exist'
MSG_EMAIL_TAKEN = 'conflict: email already taken'
MSG_USERNAME_TAKEN = 'conflict: username already taken'
MSG_REGISTER_FAILED = 'internal server error: failed to register user'


class RegistrationOutcome(Enum):
    SUCCESS = ('success', 200, SUCCESS_MESSAGE)
    BAD_REQUEST = ('bad_request', 400, MSG_BAD_REQUEST)
    INVALID_EMAIL = ('invalid_email', 400, MSG_INVALID_EMAIL)
    INVALID_DATE_OF_BIRTH = ('invalid_date_of_birth', 400, MSG_INVALID_DOB)
    # Store failure while checking for existing accounts
    EXISTENCE_CHECK_FAILURE = ('existence_check_failure', 500, MSG_INTERNAL_ERROR)
    BOTH_TAKEN = ('both_taken', 409, MSG_BOTH_TAKEN)
    EMAIL_TAKEN = ('email_taken', 409, MSG_EMAIL_TAKEN)
    USERNAME_TAKEN = ('username_taken', 409, MSG_USERNAME_TAKEN)
    HASHING_FAILURE = ('hashing_failure', 500, MSG_INTERNAL_ERROR)
    # Store failure while inserting the new account
    PERSISTENCE_FAILURE = ('persistence_failure', 500, MSG_REGISTER_FAILED)

    def __init__(self, code: str, status: int, message: str):
        self.code = code
        self.status = status
        self.message = message

    @property
    def kind(self) -> str:
        """Coarse failure class: ok, client, conflict, persistence or internal."""
        if self is RegistrationOutcome.SUCCESS:
            return 'ok'
        if self in (RegistrationOutcome.EXISTENCE_CHECK_FAILURE, RegistrationOutcome.PERSISTENCE_FAILURE):
            return 'persistence'
        if self.status == 409:
            return 'conflict'
        if self.status == 400:
            return 'client'
        return 'internal'

    @property
    def ok(self) -> bool:
        return self is RegistrationOutcome.SUCCESS


def conflict_outcome(email_taken: bool, username_taken: bool) -> RegistrationOutcome | None:
    """Map the two existence flags to a conflict outcome, or None if both are free."""
    if email_taken and username_taken:
        return RegistrationOutcome.BOTH_TAKEN
    if email_taken:
        return RegistrationOutcome.EMAIL_TAKEN
    if username_taken:
        return RegistrationOutcome.USERNAME_TAKEN
    return None


def to_response(outcome: RegistrationOutcome) -> Tuple[Dict[str, Any], int]:
    """Return the JSON body and HTTP status for ``outcome``."""
    if outcome.ok:
        return {"status": "OK", "message": outcome.message}, outcome.status
    return {"status": "error", "error": outcome.message}, outcome.status
