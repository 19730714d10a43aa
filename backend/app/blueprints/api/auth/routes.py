"""Authentication blueprint: forum account registration."""
from flask import Blueprint, request, jsonify, current_app
import logging

from backend.app.services.auth.outcomes import RegistrationOutcome, to_response
from backend.app.services.auth.registration_service import Registrar, RegistrarConfig
from backend.app.services.auth.registration_validator import (
    RegistrationValidationError,
    parse_registration_payload,
    validate,
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def _respond(outcome: RegistrationOutcome):
    body, status = to_response(outcome)
    return jsonify(body), status


@auth_bp.route('/register', methods=['POST'])
def register():
    """Register a new forum account.

    Body: JSON object with ``username``, ``email``, ``password``, ``dob``
    (age in years as a digit string) and optional profile fields.
    """
    try:
        # Decode regardless of Content-Type; undecodable bodies become None
        data = request.get_json(force=True, silent=True)
        try:
            registration = parse_registration_payload(
                data, current_app.config.get('REGISTRATION_PROFILE_FIELDS', ())
            )
            validated = validate(registration)
        except RegistrationValidationError as e:
            logger.debug(f"Registration rejected: {e.detail or e.message}")
            return _respond(e.outcome)

        registrar = Registrar(RegistrarConfig.from_mapping(current_app.config))
        return _respond(registrar.register(validated))

    except Exception:
        logger.exception("Registration error")
        return jsonify({"status": "error", "error": "internal server error"}), 500
