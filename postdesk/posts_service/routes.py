"""
Posts service routes: upload media, list posts, approve and comment.

Every mutation is persisted first; the notification email that follows is
dispatched in the background and can never fail the request.
"""

import logging
from typing import Optional, Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from postdesk.auth_service.utils import parse_post_id, read_payload, require_fields
from postdesk.errors import NotFound, UploadFailed, ValidationError
from postdesk.notify_service.mailer import approval_message, comment_message

posts_bp = Blueprint("posts", __name__)

CAPTION_MAX_LENGTH = 2200  # Instagram's caption limit


# --- REQUEST LOGGING ---
@posts_bp.before_request
def before_request() -> None:
    logging.info(f"[Posts] Incoming {request.method} {request.path}")


@posts_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Posts] Response {response.status}")
    return response


def _store():
    return current_app.extensions["store"]


# --- UPLOAD ---
@posts_bp.route("/upload", methods=["POST"])
def upload() -> Tuple[Response, int]:
    """
    Relay a media file to the media host and create a post for it.

    Expects multipart/form-data with:
    - media (file): Image or video.
    - caption (str): Post caption, may be empty.

    Returns:
        201: {"success": true, "id": <post id>, "media_url": "<url>"}
        400: caption field or media file missing.
        502: Media host rejected the upload. No post is created.
    """
    caption = request.form.get("caption")
    media = request.files.get("media")

    if caption is None:
        return jsonify({"success": False, "message": "caption is required"}), 400
    if len(caption) > CAPTION_MAX_LENGTH:
        return jsonify({"success": False, "message": "caption is too long"}), 400
    if media is None or not media.filename:
        return jsonify({"success": False, "message": "media file is required"}), 400

    try:
        media_url = current_app.extensions["relay"].relay(media.read(), filename=media.filename)
    except UploadFailed as e:
        logging.error(f"[Posts] Upload of '{media.filename}' failed: {e}")
        return jsonify({"success": False, "message": "Upload failed"}), 502

    post_id = _store().insert("posts", {"media_url": media_url, "caption": caption})
    logging.info(f"[Posts] Created post id={post_id}")

    return jsonify({"success": True, "id": post_id, "media_url": media_url}), 201


# --- LIST / DETAIL ---
@posts_bp.route("/posts", methods=["GET"])
def list_posts() -> Tuple[Response, int]:
    """
    Return every post in creation order, approved or not.
    """
    return jsonify(_store().list("posts")), 200


@posts_bp.route("/posts/<int:post_id>", methods=["GET"])
def get_post(post_id: int) -> Tuple[Response, int]:
    post = _store().get("posts", id=post_id)
    if not post:
        return jsonify({"success": False, "message": "Post not found"}), 404
    return jsonify(post), 200


# --- APPROVE ---
@posts_bp.route("/approve", methods=["POST"])
@posts_bp.route("/approve/<int:post_id>", methods=["POST"])
def approve(post_id: Optional[int] = None) -> Tuple[Response, int]:
    """
    Mark a post approved.

    Expects (JSON or form):
    - id (int): Post id, unless given in the URL.
    - approvedBy (str, optional): Name of the approver.
    - comments (str, optional): Replaces the post's comments.

    Returns:
        200: {"success": true} once the approval is stored.
        400: Missing or malformed id.
        404: No such post.
    """
    data = read_payload()
    try:
        if post_id is None:
            require_fields(data, "id")
            post_id = parse_post_id(data["id"])
    except ValidationError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    approved_by = data.get("approvedBy") or data.get("approved_by")
    comments = data.get("comments")

    fields = {"approved": True}
    if approved_by:
        fields["approved_by"] = str(approved_by).strip()
    if comments is not None:
        fields["comments"] = str(comments)

    try:
        _store().update("posts", post_id, fields)
    except NotFound:
        return jsonify({"success": False, "message": "Post not found"}), 404

    subject, body = approval_message(post_id, fields.get("approved_by"), fields.get("comments"))
    current_app.extensions["notifier"].dispatch(subject, body)

    return jsonify({"success": True}), 200


# --- COMMENT ---
@posts_bp.route("/comment", methods=["POST"])
def comment() -> Tuple[Response, int]:
    """
    Replace a post's comment text. Earlier comments are overwritten.

    Expects (JSON or form):
    - id (int)
    - comment (str)

    Returns:
        200: {"success": true}
        400: Missing id or comment.
        404: No such post.
    """
    data = read_payload()
    try:
        require_fields(data, "id", "comment")
        post_id = parse_post_id(data["id"])
    except ValidationError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    text = str(data["comment"])

    try:
        _store().update("posts", post_id, {"comments": text})
    except NotFound:
        return jsonify({"success": False, "message": "Post not found"}), 404

    subject, body = comment_message(post_id, text)
    current_app.extensions["notifier"].dispatch(subject, body)

    return jsonify({"success": True}), 200
