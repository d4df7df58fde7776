"""
Notification Dispatcher.

Sends plain-text notification emails over SMTP. Routes call `dispatch()`,
which never raises: a failed delivery is logged and the state change that
triggered it stays committed.
"""

import asyncio
import logging
import threading
from email.message import EmailMessage
from email.utils import formatdate
from typing import Optional

import aiosmtplib

from postdesk.errors import DeliveryFailed


class Notifier:
    """
    SMTP sender for approval workflow emails.

    Args:
        host (str): SMTP server host.
        port (int): SMTP server port.
        username, password (str): SMTP login.
        recipient (str): Default address notified of approvals and comments.
        sender (str, optional): From address; defaults to `username`.
        secure (bool): Connect with implicit TLS instead of plain SMTP with
            opportunistic STARTTLS.
        background (bool): Deliver dispatched messages on a worker thread.
        timeout (float): Socket timeout for the SMTP connection.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        recipient: str,
        sender: Optional[str] = None,
        secure: bool = False,
        background: bool = True,
        timeout: float = 30,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.recipient = recipient
        self.sender = sender or username
        self.secure = secure
        self.background = background
        self.timeout = timeout

    def build_message(self, subject: str, body: str, recipient: Optional[str] = None) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = recipient or self.recipient
        msg["Subject"] = subject
        msg["Date"] = formatdate(localtime=True)
        msg.set_content(body)
        return msg

    async def _send(self, msg: EmailMessage) -> None:
        # start_tls=None upgrades only when the server advertises STARTTLS
        await aiosmtplib.send(
            msg,
            hostname=self.host,
            port=self.port,
            username=self.username or None,
            password=self.password or None,
            use_tls=self.secure,
            start_tls=False if self.secure else None,
            timeout=self.timeout,
        )

    def notify(self, subject: str, body: str, recipient: Optional[str] = None) -> None:
        """
        Send one email and wait for the server to accept it.

        Raises:
            DeliveryFailed: Connection, authentication or send error.
        """
        msg = self.build_message(subject, body, recipient)
        try:
            asyncio.run(self._send(msg))
        except (aiosmtplib.SMTPException, OSError) as e:
            raise DeliveryFailed(f"Could not deliver '{subject}' to {msg['To']}: {e}") from e

        logging.info(f"[Notify] Sent '{subject}' to {msg['To']}")

    def _deliver(self, subject: str, body: str, recipient: Optional[str]) -> None:
        try:
            self.notify(subject, body, recipient)
        except DeliveryFailed as e:
            logging.error(f"[Notify] {e}")
        except Exception:
            logging.exception(f"[Notify] Unexpected error sending '{subject}'")

    def dispatch(self, subject: str, body: str, recipient: Optional[str] = None) -> Optional[threading.Thread]:
        """
        Fire-and-forget delivery.

        Returns:
            threading.Thread: The worker thread in background mode, so callers
            (tests) can join it. None when delivered inline.
        """
        if not self.background:
            self._deliver(subject, body, recipient)
            return None

        worker = threading.Thread(
            target=self._deliver,
            args=(subject, body, recipient),
            name="notify",
            daemon=True,
        )
        worker.start()
        return worker


# --- MESSAGE TEMPLATES ---
def approval_message(post_id: int, approved_by: Optional[str] = None, comments: Optional[str] = None):
    """Return (subject, body) for an approval notification."""
    body = f"Post ID {post_id} has been approved."
    if approved_by:
        body += f"\nApproved by: {approved_by}"
    if comments:
        body += f"\nComments: {comments}"
    return "Post Approved", body


def comment_message(post_id: int, comment: str):
    """Return (subject, body) for a new-comment notification."""
    return "New Comment", f"Comment on post {post_id}: {comment}"
