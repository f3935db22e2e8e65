import html
import re
from datetime import date, datetime
from typing import Iterable, List, Optional
import dateparser

from .models import ACCEPTED, REJECTED, IN_PROCESS, UNKNOWN

# checked in order: acceptance language wins over rejection language
STATUS_RULES = [
    (ACCEPTED, ("accept", "offer", "congrat")),
    (REJECTED, ("reject", "decline", "unfortunately")),
]

PERSONAL_DOMAINS = {"gmail", "googlemail", "yahoo", "outlook", "hotmail", "icloud", "live", "aol", "proton", "protonmail"}

EMAIL_DOMAIN = r"[A-Za-z0-9._%+\-]+@([A-Za-z0-9\-]+(?:\.[A-Za-z0-9\-]+)+)"

ROLE_PATTERNS = [
    r"\b(?i:for(?: the)?|position:|role:|opportunity:)\s+([A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)*)",
    r"\b([A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)*)\s+(?i:position|role|job)\b",
]

SIGNATURE_MARKERS = [
    r"^--\s*$",
    r"^sent from\b",
    r"^on .+wrote:\s*$",
]


def matched_keywords(subject: str, body: str, keywords: Iterable[str]) -> List[str]:
    text = f"{subject} {body}".lower()
    seen = []
    for kw in keywords:
        kw = kw.lower()
        if kw and kw in text and kw not in seen:
            seen.append(kw)
    return seen


def is_job_related(subject: str, body: str, keywords: Iterable[str], minimum: int = 2) -> bool:
    return len(matched_keywords(subject, body, keywords)) >= minimum


def classify_status(status: Optional[str]) -> str:
    text = (status or "").strip().lower()
    for label, needles in STATUS_RULES:
        if any(n in text for n in needles):
            return label
    return IN_PROCESS


def parse_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    # placeholders like "N/A" must not fuzzy-match into a date
    parsed = dateparser.parse(text, settings={"PREFER_DATES_FROM": "past", "REQUIRE_PARTS": ["day", "month"]})
    if parsed:
        return parsed.date()
    return None


def extract_company(candidate: Optional[str], body: str) -> str:
    candidate = (candidate or "").strip()
    if candidate and candidate != UNKNOWN:
        return candidate
    for m in re.finditer(EMAIL_DOMAIN, body or ""):
        labels = m.group(1).lower().split(".")
        if any(label in PERSONAL_DOMAINS for label in labels):
            continue
        first = m.group(1).split(".")[0]
        return first[:1].upper() + first[1:]
    return UNKNOWN


def extract_role(candidate: Optional[str], subject: str) -> str:
    candidate = (candidate or "").strip()
    if candidate:
        return candidate
    for pattern in ROLE_PATTERNS:
        m = re.search(pattern, subject or "")
        if m:
            return m.group(1).strip(" -—|:")
    return UNKNOWN


def clean_html(text: str) -> str:
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", " ", text, flags=re.I | re.S)
    text = re.sub(r"<[^>]*>", " ", text)
    text = html.unescape(text).replace("\xa0", " ")
    return re.sub(r"\s+", " ", text).strip()


def strip_quoted(body: str) -> str:
    """Drop quoted replies and anything after a signature marker."""
    lines = []
    for line in (body or "").split("\n"):
        stripped = line.strip()
        if stripped.startswith(">"):
            continue
        if any(re.search(p, stripped, flags=re.I) for p in SIGNATURE_MARKERS):
            break
        lines.append(line)
    return "\n".join(lines).strip()
