"""Desktop notifications. Fire-and-forget: nothing here raises to the caller."""

from __future__ import annotations

import logging
import platform
import shutil
import subprocess
from typing import Optional

logger = logging.getLogger("focusdesk.notify")


class Notifier:
    """Notification collaborator. Subclasses implement `_send`."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.permission_granted: Optional[bool] = None

    def request_permission(self) -> bool:
        """Ask once; later calls return the remembered answer."""
        if self.permission_granted is None:
            try:
                self.permission_granted = bool(self.enabled and self._available())
            except Exception as e:
                logger.debug(f"Notification permission check failed: {e}")
                self.permission_granted = False
        return self.permission_granted

    def notify(self, title: str, body: str) -> None:
        if not self.permission_granted:
            return
        try:
            self._send(title, body)
        except Exception as e:
            logger.debug(f"Notification failed: {e}")

    def _available(self) -> bool:
        return True

    def _send(self, title: str, body: str) -> None:
        raise NotImplementedError


class NullNotifier(Notifier):
    """Records notifications instead of showing them."""

    def __init__(self, enabled: bool = True):
        super().__init__(enabled)
        self.sent: list[tuple[str, str]] = []

    def _send(self, title: str, body: str) -> None:
        self.sent.append((title, body))


class DesktopNotifier(Notifier):
    """`notify-send` on Linux, `osascript` on macOS."""

    def _command(self, title: str, body: str) -> Optional[list[str]]:
        system = platform.system()
        if system == "Darwin" and shutil.which("osascript"):
            script = f'display notification "{_escape(body)}" with title "{_escape(title)}"'
            return ["osascript", "-e", script]
        if shutil.which("notify-send"):
            return ["notify-send", "--app-name=focusdesk", title, body]
        return None

    def _available(self) -> bool:
        return self._command("", "") is not None

    def _send(self, title: str, body: str) -> None:
        command = self._command(title, body)
        if command is None:
            logger.debug("No notification command available")
            return
        # Popen so a slow notification daemon never blocks the tick
        subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
