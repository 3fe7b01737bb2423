"""
Notification adapter.

Workflows return typed results; this adapter is the only place where those
results become user-facing notices (the toasts of the manager console).
Notices are queued per console session and drained by the HTTP surface.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from ..errors import WorkflowResult

logger = logging.getLogger(__name__)

SUCCESS_AUTO_CLOSE_MS = 2000
ERROR_AUTO_CLOSE_MS = 3000


class Severity(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notice(BaseModel):
    severity: Severity
    message: str
    dismissable: bool = True
    autoCloseMs: Optional[int] = None


class NotificationService:
    """Queues notices for one console session"""

    def __init__(self):
        self._pending: list[Notice] = []

    def push(self, notice: Notice) -> Notice:
        self._pending.append(notice)
        log = logger.error if notice.severity == Severity.ERROR else logger.info
        log(f"🔔 [{notice.severity.value}] {notice.message}")
        return notice

    def success(self, message: str) -> Notice:
        return self.push(
            Notice(severity=Severity.SUCCESS, message=message, autoCloseMs=SUCCESS_AUTO_CLOSE_MS)
        )

    def warning(self, message: str) -> Notice:
        # Warnings stay until the manager dismisses them
        return self.push(Notice(severity=Severity.WARNING, message=message))

    def error(self, message: str) -> Notice:
        return self.push(
            Notice(severity=Severity.ERROR, message=message, autoCloseMs=ERROR_AUTO_CLOSE_MS)
        )

    def report(self, result: WorkflowResult, success_message: Optional[str] = None) -> Optional[Notice]:
        """Turn a workflow result into at most one notice"""
        if result.ok:
            return self.success(success_message) if success_message else None
        if result.error_code == "DialogDismissed":
            # The dialog is gone; nobody is looking at this outcome
            return None
        return self.error(result.error.message)

    def drain(self) -> list[Notice]:
        pending, self._pending = self._pending, []
        return pending
