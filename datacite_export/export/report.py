"""Per-entity deposit responses, the aggregate report and the persistent error log."""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

ACTION_DEPOSIT = "deposit"
ACTION_REDEPOSIT = "redeposit"

RESPONSE_STATUS_SUCCESS = "success"
RESPONSE_STATUS_ERROR = "error"


@dataclass
class DepositResponse:
    """Outcome of exporting and depositing a single entity."""

    status: str
    message: str
    title: str
    action: str
    type: str
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == RESPONSE_STATUS_SUCCESS

    def render(self, key: str) -> str:
        """Render the report line for this response."""
        if self.ok:
            # "deposit" -> "deposited", "redeposit" -> "redeposited"
            return f"Successfully {self.action}ed! {self.type} '{self.title}' ({key})"
        status = self.status_code if self.status_code is not None else self.status
        return (
            f"Error! Action: {self.action} {self.type} '{self.title}' ({key}) "
            f"Status: {status} Message: {self.message}"
        )


def render_report(responses: "Mapping[str, DepositResponse]") -> str:
    """Join the report lines of all responses, in insertion order."""
    return "\n".join(response.render(key) for key, response in responses.items())


def report_is_successful(responses: "Mapping[str, DepositResponse]") -> bool:
    return all(response.ok for response in responses.values())


class ErrorLog:
    """
    Append-only log file of failed deposits.

    Each line reads ``YYYY-MM-DD HH:MM:SS [ERROR] {key} status=... message=...``.
    """

    def __init__(self, path: str):
        self.path = path

    def append(self, key: str, response: DepositResponse) -> None:
        """Write one failure line; the file and its directory are created on demand."""
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        status = response.status_code if response.status_code is not None else response.status
        message = " ".join(str(response.message).split())
        line = f"{timestamp} [ERROR] {key} status={status} message={message}\n"

        directory = os.path.dirname(self.path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(line)
        except OSError as e:
            logger.error(f"Could not write to error log {self.path}: {e}")
