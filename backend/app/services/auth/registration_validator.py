"""Registration payload parsing and validation.

``parse_registration_payload`` turns decoded JSON into a
``RegistrationRequest``; ``validate`` checks the email and date-of-birth
formats and returns a ``ValidatedRegistration``. Neither touches storage.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from .outcomes import RegistrationOutcome

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
# Optional sign then ASCII digits only; int() alone would also take
# whitespace, underscores and non-ASCII digits.
AGE_RE = re.compile(r"^[+-]?[0-9]+$")
MAX_AGE_VALUE = 2 ** 63 - 1

REQUIRED_FIELDS = ('username', 'email', 'password', 'dob')


class RegistrationValidationError(Exception):
    def __init__(self, outcome: RegistrationOutcome, detail: Optional[str] = None):
        super().__init__(detail or outcome.message)
        self.outcome = outcome
        self.code = outcome.code
        self.message = outcome.message
        self.status = outcome.status
        self.detail = detail


@dataclass
class RegistrationRequest:
    username: str
    email: str
    password: str
    dob: str
    profile: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidatedRegistration:
    """A request whose email and dob passed the format checks.

    The password is still plaintext here.
    """
    username: str
    email: str
    password: str
    dob: str
    age: int
    profile: Dict[str, str] = field(default_factory=dict)


def parse_registration_payload(data: Any, profile_fields: Iterable[str] = ()) -> RegistrationRequest:
    """Build a RegistrationRequest from a decoded JSON body.

    Field values are kept exactly as submitted; only the blank-username
    check looks past surrounding whitespace.

    Raises:
        RegistrationValidationError: with BAD_REQUEST when the body is not an
            object, a known field is not a string, or username/password is
            missing or blank.
    """
    if not isinstance(data, dict):
        raise RegistrationValidationError(RegistrationOutcome.BAD_REQUEST, 'payload is not a JSON object')

    values: Dict[str, str] = {}
    for name in REQUIRED_FIELDS:
        value = data.get(name)
        if value is None:
            value = ''
        if not isinstance(value, str):
            raise RegistrationValidationError(RegistrationOutcome.BAD_REQUEST, f'{name} must be a string')
        values[name] = value

    if not values['username'].strip() or not values['password']:
        raise RegistrationValidationError(RegistrationOutcome.BAD_REQUEST, 'username and password are required')

    profile: Dict[str, str] = {}
    for name in profile_fields:
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise RegistrationValidationError(RegistrationOutcome.BAD_REQUEST, f'{name} must be a string')
        profile[name] = value

    return RegistrationRequest(
        username=values['username'],
        email=values['email'],
        password=values['password'],
        dob=values['dob'],
        profile=profile,
    )


def is_valid_email(email: str) -> bool:
    if not isinstance(email, str):
        return False
    return EMAIL_RE.fullmatch(email) is not None


def parse_age(dob: str) -> Optional[int]:
    """Return the age encoded in ``dob``, or None if it is not a valid age."""
    if not isinstance(dob, str) or not AGE_RE.fullmatch(dob):
        return None
    age = int(dob)
    if age < 0 or age > MAX_AGE_VALUE:
        return None
    return age


def validate(request: RegistrationRequest) -> ValidatedRegistration:
    """Check email then date-of-birth format.

    Raises:
        RegistrationValidationError: INVALID_EMAIL or INVALID_DATE_OF_BIRTH
    """
    if not is_valid_email(request.email):
        logger.debug("Rejected registration: invalid email format")
        raise RegistrationValidationError(RegistrationOutcome.INVALID_EMAIL)

    age = parse_age(request.dob)
    if age is None:
        logger.debug("Rejected registration: invalid date of birth %r", request.dob)
        raise RegistrationValidationError(RegistrationOutcome.INVALID_DATE_OF_BIRTH)

    return ValidatedRegistration(
        username=request.username,
        email=request.email,
        password=request.password,
        dob=request.dob,
        age=age,
        profile=dict(request.profile),
    )
