from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

ACCEPTED = "Accepted"
REJECTED = "Rejected"
IN_PROCESS = "In-Process"
STATUSES = (ACCEPTED, REJECTED, IN_PROCESS)

UNKNOWN = "Unknown"


@dataclass
class ApplicationRecord:
    date: Optional[date]                # when the application was made
    company: str
    role: str
    status: str                         # Accepted | Rejected | In-Process
    next_steps: str
    email_date: Optional[date]          # when the source email was received
    email_id: Optional[str] = None

    @property
    def is_unknown(self) -> bool:
        return self.company == UNKNOWN and self.role == UNKNOWN


@dataclass
class EmailMessage:
    id: str
    subject: str
    body: str
    sender: str
    date: date


@dataclass
class PollResult:
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0

    @property
    def message(self) -> str:
        if self.total == 0:
            return "No new emails to process"
        return "Email processing completed"

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total,
        }


@dataclass
class Digest:
    total_today: int
    actionable: List[ApplicationRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "message": "Daily summary sent successfully",
            "totalApplicationsToday": self.total_today,
            "applicationsWithNextSteps": len(self.actionable),
        }
