import aiosmtplib
import pytest

from postdesk.errors import DeliveryFailed
from postdesk.notify_service.mailer import Notifier, approval_message, comment_message


@pytest.fixture
def mailer():
    return Notifier(
        host="smtp.office365.com",
        port=587,
        username="bot@example.com",
        password="secret",
        recipient="admin@example.com",
        background=False,
    )


def test_notify_sends_message(mailer, mock_smtp):
    mailer.notify("Post Approved", "Post ID 1 has been approved.")

    mock_smtp.assert_awaited_once()
    msg = mock_smtp.call_args.args[0]
    assert msg["From"] == "bot@example.com"
    assert msg["To"] == "admin@example.com"
    assert msg["Subject"] == "Post Approved"

    kwargs = mock_smtp.call_args.kwargs
    assert kwargs["hostname"] == "smtp.office365.com"
    assert kwargs["port"] == 587
    assert kwargs["username"] == "bot@example.com"
    assert kwargs["password"] == "secret"
    assert kwargs["use_tls"] is False
    assert kwargs["start_tls"] is None


def test_notify_explicit_recipient(mailer, mock_smtp):
    mailer.notify("New Comment", "hi", recipient="owner@example.com")
    assert mock_smtp.call_args.args[0]["To"] == "owner@example.com"


def test_notify_secure_uses_implicit_tls(mock_smtp):
    Notifier("smtp.example.com", 465, "u", "p", "admin@example.com", secure=True).notify("s", "b")

    kwargs = mock_smtp.call_args.kwargs
    assert (kwargs["hostname"], kwargs["port"]) == ("smtp.example.com", 465)
    assert kwargs["use_tls"] is True
    assert kwargs["start_tls"] is False


def test_notify_failure_raises(mailer, mock_smtp):
    mock_smtp.side_effect = aiosmtplib.SMTPAuthenticationError(535, "bad credentials")
    with pytest.raises(DeliveryFailed):
        mailer.notify("Post Approved", "body")


def test_notify_connection_error_raises(mailer, mock_smtp):
    mock_smtp.side_effect = aiosmtplib.SMTPConnectError("Error connecting to smtp.office365.com")
    with pytest.raises(DeliveryFailed, match="Could not deliver"):
        mailer.notify("New Comment", "body")


def test_dispatch_swallows_failure(mailer, mock_smtp, caplog):
    mock_smtp.side_effect = ConnectionRefusedError("refused")

    assert mailer.dispatch("New Comment", "body") is None
    assert "Could not deliver 'New Comment'" in caplog.text


def test_dispatch_in_background(mock_smtp):
    notifier = Notifier("smtp.example.com", 587, "u", "p", "admin@example.com")

    worker = notifier.dispatch("Post Approved", "body")
    worker.join(timeout=5)

    assert worker.daemon
    mock_smtp.assert_awaited_once()


def test_message_templates():
    assert approval_message(5) == ("Post Approved", "Post ID 5 has been approved.")
    subject, body = approval_message(5, "dana", "nice")
    assert body.splitlines() == ["Post ID 5 has been approved.", "Approved by: dana", "Comments: nice"]
    assert comment_message(2, "Crop it") == ("New Comment", "Comment on post 2: Crop it")
