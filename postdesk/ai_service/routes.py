"""
Caption suggestion route.

Generation failures are logged and answered with an empty caption so the
client can fall back to manual entry.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from postdesk.auth_service.utils import read_payload
from postdesk.errors import UpstreamGenerationError

ai_blueprint = Blueprint("ai", __name__)


@ai_blueprint.before_request
def before_request() -> None:
    logging.info(f"[AI] Incoming {request.method} {request.path}")


@ai_blueprint.route("/generate-caption", methods=["POST"])
def generate_caption() -> Tuple[Response, int]:
    """
    Suggest a caption for a post.

    Expects:
    - promptText (str): Context describing the post.

    Returns:
        200: {"caption": "<text>"}, empty when the AI service failed.
        400: promptText missing.
    """
    data = read_payload()
    prompt_text = data.get("promptText")
    if not isinstance(prompt_text, str) or not prompt_text.strip():
        return jsonify({"success": False, "message": "promptText is required"}), 400

    try:
        caption = current_app.extensions["captioner"].suggest(prompt_text)
    except UpstreamGenerationError as e:
        logging.error(f"[AI] Caption generation failed: {e}")
        caption = ""

    return jsonify({"caption": caption}), 200
