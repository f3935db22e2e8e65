from datetime import date
from typing import Iterable, List, Optional

from loguru import logger

from .models import ApplicationRecord, Digest
from .settings import ACTIONABLE_KEYWORDS

MAX_LENGTH = 2000


def has_actionable_next_steps(record: ApplicationRecord, keywords: Iterable[str] = ACTIONABLE_KEYWORDS) -> bool:
    steps = (record.next_steps or "").strip().lower()
    if not steps:
        return False
    return any(kw.lower() in steps for kw in keywords)


def build_digest(records: Iterable[ApplicationRecord], today: date, keywords: Optional[Iterable[str]] = None) -> Digest:
    records = list(records)
    keywords = list(keywords or ACTIONABLE_KEYWORDS)
    total_today = sum(1 for r in records if r.email_date == today)
    # actionable items come from the whole history, not just today
    actionable = [r for r in records if has_actionable_next_steps(r, keywords)]
    return Digest(total_today=total_today, actionable=actionable)


def _line(record: ApplicationRecord) -> str:
    return " ".join(f"{record.company} / {record.role}".split()) + "\n"


def _header(total_today: int) -> str:
    return f"**Total Applications today:** {total_today}\n\n"


def render_digest(digest: Digest, max_length: int = MAX_LENGTH) -> str:
    """Render the digest as webhook text no longer than ``max_length``.

    When the full list does not fit, the longest prefix of entries that does is
    kept and followed by a count of the omitted ones. A cap too small to hold
    both headings and the omitted count falls back to ``MAX_LENGTH``.
    """
    header = _header(digest.total_today)
    list_heading = "**Applications with next steps:**\n"
    floor = len(header) + len(list_heading) + len(f"... and {len(digest.actionable)} more")
    if max_length < floor:
        logger.warning("Digest max_length {} is below the minimum {}; using {}", max_length, floor, MAX_LENGTH)
        max_length = MAX_LENGTH

    if not digest.actionable:
        return header + "**Applications with next steps:** None"

    header += list_heading
    lines: List[str] = [_line(r) for r in digest.actionable]
    full = header + "".join(lines)
    if len(full) <= max_length:
        return full.rstrip("\n")

    text = header
    kept = 0
    for line in lines:
        remaining = len(lines) - kept - 1
        tail = f"... and {remaining} more" if remaining else ""
        if len(text) + len(line) + len(tail) > max_length:
            break
        text += line
        kept += 1
    return text + f"... and {len(lines) - kept} more"
