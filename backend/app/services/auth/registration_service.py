"""Registration service layer.

``Registrar.register`` takes a validated registration through the
uniqueness checks, password hashing and the final insert, and returns the
single ``RegistrationOutcome`` for the request. Store and hashing failures
are logged here and reported as outcomes, never raised to the route.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import pymongo
from pymongo.errors import PyMongoError

from backend.app.db import DatabaseError
from backend.app.repositories import UserAlreadyExistsError, users_repo
from .outcomes import RegistrationOutcome, conflict_outcome
from .password_hashing import DEFAULT_BCRYPT_ROUNDS, PasswordHashingError, hash_password
from .registration_validator import ValidatedRegistration

logger = logging.getLogger(__name__)

STORE_ERRORS = (PyMongoError, DatabaseError)


@dataclass(frozen=True)
class RegistrarConfig:
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    store_timeout_seconds: Optional[float] = 5.0

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "RegistrarConfig":
        """Build from a Flask ``app.config``-style mapping."""
        return cls(
            bcrypt_rounds=int(config.get('BCRYPT_ROUNDS', DEFAULT_BCRYPT_ROUNDS)),
            store_timeout_seconds=config.get('STORE_TIMEOUT_SECONDS', 5.0),
        )


class Registrar:
    def __init__(self, config: RegistrarConfig, users=None):
        self.config = config
        self.users = users if users is not None else users_repo

    def _store_timeout(self):
        return pymongo.timeout(self.config.store_timeout_seconds)

    def _exists(self, identifier: str) -> bool:
        with self._store_timeout():
            return self.users.exists(identifier)

    def build_user_document(self, validated: ValidatedRegistration, password_hash: str) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        document: Dict[str, Any] = dict(validated.profile)
        document.update({
            "username": validated.username.lower(),
            "email": validated.email.lower(),
            "passwordHash": password_hash,
            "dob": validated.dob,
            "createdAt": now,
            "updatedAt": now,
        })
        return document

    def register(self, validated: ValidatedRegistration) -> RegistrationOutcome:
        try:
            email_taken = self._exists(validated.email)
            username_taken = self._exists(validated.username)
        except STORE_ERRORS as e:
            logger.error(f"Registration existence check failed: {e}")
            return RegistrationOutcome.EXISTENCE_CHECK_FAILURE

        conflict = conflict_outcome(email_taken, username_taken)
        if conflict is not None:
            logger.info("Registration conflict for username=%s: %s", validated.username, conflict.code)
            return conflict

        # Hashing runs outside any store call
        try:
            password_hash = hash_password(validated.password, self.config.bcrypt_rounds)
        except PasswordHashingError as e:
            logger.error(f"Password hashing failed during registration: {e.message}")
            return RegistrationOutcome.HASHING_FAILURE

        document = self.build_user_document(validated, password_hash)
        try:
            with self._store_timeout():
                inserted_id = self.users.insert(document)
        except UserAlreadyExistsError as e:
            # Lost a race with a concurrent registration after the pre-check
            outcome = conflict_outcome('email' in e.fields, 'username' in e.fields)
            if outcome is None:
                logger.error("Unique index rejected registration on an unknown key")
                return RegistrationOutcome.PERSISTENCE_FAILURE
            logger.info("Registration conflict at insert for username=%s: %s", validated.username, outcome.code)
            return outcome
        except STORE_ERRORS as e:
            logger.error(f"Failed to insert registered user: {e}")
            return RegistrationOutcome.PERSISTENCE_FAILURE

        logger.info("Registered user username=%s id=%s", document["username"], inserted_id)
        return RegistrationOutcome.SUCCESS
