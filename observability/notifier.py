"""
Email Notifier

Best-effort one-line notification when an error is recorded while nothing
is shown to the visitor.

DESIGN RULES (NON-NEGOTIABLE):
- Fire-and-forget
- Short timeout
- Never raise exceptions
- Log failures as warnings only
"""

import logging
import smtplib
import socket
from datetime import datetime
from email.message import EmailMessage
from typing import Optional


logger = logging.getLogger(__name__)


class EmailNotifier:
    """Sends plain-text notifications through an SMTP relay."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 25,
        sender: Optional[str] = None,
        timeout: float = 2.0,
    ):
        self._host = host
        self._port = port
        self._sender = sender
        self._timeout = timeout

    def notify(self, address: str, message: str, host_name: Optional[str] = None) -> bool:
        """
        Send `[<timestamp>] <message>` to `address`.

        Returns:
            True if the relay accepted the message, False otherwise.
        """
        host = (host_name or socket.gethostname()).strip(" .")
        try:
            mail = EmailMessage()
            mail["Subject"] = f"Python error call from {host}"
            mail["From"] = self._sender or f"noreply@{host}"
            mail["To"] = address
            mail.set_content(f"[{datetime.now():%Y-%m-%d %H:%M:%S}] {message.strip()}", charset="utf-8")

            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                smtp.send_message(mail)
            return True
        except Exception as e:
            logger.warning(f"Failed to send error notification to {address}: {e}")
            return False
