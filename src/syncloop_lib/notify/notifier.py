# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import subprocess
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from syncloop_lib.core.config import CFG
from syncloop_lib.core.logger import get_logger
from syncloop_lib.run.context import RuntimeContext

logger = get_logger(__name__)


class Notifier:
    """
    Delivers notifications to the invoking user.

    Inside a batch job nobody watches the terminal, so notifications are mailed
    to the user. Otherwise they are printed to the console.
    """

    def __init__(self, runtime: RuntimeContext, console: Console | None = None):
        self._runtime = runtime
        self._console = console or Console()

    def send(self, subject: str, body: str, attachment: Path | None = None) -> bool:
        """
        Send a notification.

        Args:
            subject (str): Subject line.
            body (str): Text of the notification.
            attachment (Path | None): Optional file to attach.

        Returns:
            bool: True if the notification was delivered.
        """
        if self._runtime.isScheduled():
            return self._mail(subject, body, attachment)

        self._print(subject, body, attachment)
        return True

    def _mail(self, subject: str, body: str, attachment: Path | None) -> bool:
        command = [CFG.notifier.mail_binary, "-s", subject]
        if attachment is not None:
            command.extend(["-a", str(attachment)])
        command.append(self._runtime.user)
        logger.debug(f"Sending mail: {command}.")

        try:
            result = subprocess.run(
                command,
                input=body,
                text=True,
                check=False,
                capture_output=True,
                errors="replace",
                timeout=CFG.notifier.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Could not send mail '{subject}': {e}.")
            return False

        if result.returncode != 0:
            logger.warning(
                f"Could not send mail '{subject}': {result.stderr.strip()}."
            )
            return False

        return True

    def _print(self, subject: str, body: str, attachment: Path | None) -> None:
        content = Text(body)
        if attachment is not None:
            content.append(f"\n\nAttachment: {attachment}", style="grey50")

        self._console.print(
            Panel(
                content,
                title=Text(subject, style="bold"),
                title_align="left",
                border_style="white",
            )
        )
