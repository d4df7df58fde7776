"""
Account route handlers.

Provides routes for:
- Account registration (/register)
- Account login (/login)

Login only checks the username/PIN pair; no session or token is issued, so
clients re-authenticate before each sensitive action.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from postdesk.auth_service.utils import (
    hash_pin,
    normalize_pin,
    read_payload,
    require_fields,
    verify_pin,
)
from postdesk.errors import DuplicateKey, ValidationError

auth_bp = Blueprint("auth", __name__)


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """Log method and path only; the body carries the PIN."""
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Auth] Response {response.status}")
    return response


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Create a new account.

    Expects JSON or form body with:
    - username (str): Unique account name.
    - pin (str): 4-8 digit PIN.

    Returns:
        201: {"success": true, "id": <account id>}
        400: Missing or malformed input.
        409: Username already exists.
    """
    data = read_payload()
    try:
        require_fields(data, "username", "pin")
        username = str(data["username"]).strip()
        pin = normalize_pin(data["pin"])
    except ValidationError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    store = current_app.extensions["store"]
    try:
        account_id = store.insert("users", {"username": username, "pin_hash": hash_pin(pin)})
    except DuplicateKey:
        return jsonify({"success": False, "message": "Username already exists"}), 409

    logging.info(f"[Auth] Registered account id={account_id}")
    return jsonify({"success": True, "id": account_id}), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Verify a username/PIN pair.

    Returns:
        200: {"success": true}
        400: Missing input.
        401: {"success": false} for an unknown username or wrong PIN.
    """
    data = read_payload()
    try:
        require_fields(data, "username", "pin")
    except ValidationError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    username = str(data["username"]).strip()
    pin = str(data["pin"]).strip()

    account = current_app.extensions["store"].get("users", username=username)
    if not account or not verify_pin(account["pin_hash"], pin):
        return jsonify({"success": False}), 401

    return jsonify({"success": True}), 200
