from __future__ import annotations
import json
from datetime import date
from typing import Any, Dict, Optional

from loguru import logger
from openai import OpenAI

from .errors import ConfigurationError
from .models import ApplicationRecord
from .nlp_rules import classify_status, extract_company, extract_role, parse_date

SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts structured data from job-related emails. "
    "Extract information about job applications, interviews, rejections, and acceptances. "
    "Always return valid JSON in the exact format specified."
)


def build_prompt(subject: str, body: str, body_limit: int = 4000) -> str:
    snippet = (body or "")[:body_limit]
    return f"""Extract job application information from this email. Return a JSON object with the following structure:
{{
  "date": "YYYY-MM-DD format date of when the application was made (if mentioned, otherwise use today's date)",
  "company": "Company name",
  "role": "Job title/position name",
  "status": "One of: Accepted, Rejected, In-Process",
  "nextSteps": "Any time-sensitive next steps, interview dates, deadlines, or action items mentioned. Leave empty if none."
}}

Email Subject: {subject}

Email Body:
{snippet}

Rules:
- If the email is a rejection, status should be "Rejected"
- If the email is an acceptance/offer, status should be "Accepted"
- If the email mentions an interview or next steps, status should be "In-Process"
- Extract any interview dates, deadlines, or action items in the "nextSteps" field
- If company or role cannot be determined, use "Unknown\""""


def create_client(cfg_block: Dict[str, Any], api_key: str) -> OpenAI:
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY is not set; add it to your .env file to enable extraction.")
    return OpenAI(
        api_key=api_key,
        timeout=float(cfg_block.get("timeout_seconds", 60)),
        max_retries=int(cfg_block.get("max_retries", 2)),
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class Extractor:
    """Turns one email into a normalized ApplicationRecord via a single JSON-mode chat call."""

    def __init__(self, client, model: str = "gpt-4o-mini", temperature: float = 0.3, body_limit: int = 4000):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.body_limit = body_limit

    @classmethod
    def from_settings(cls, cfg) -> "Extractor":
        block = cfg.llm
        return cls(
            client=create_client(block, cfg.openai_api_key),
            model=block.get("model", "gpt-4o-mini"),
            temperature=float(block.get("temperature", 0.3)),
            body_limit=int(block.get("body_limit", 4000)),
        )

    def request_fields(self, subject: str, body: str) -> Dict[str, Any]:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(subject, body, self.body_limit)},
            ],
            response_format={"type": "json_object"},
            temperature=self.temperature,
        )
        content = (response.choices[0].message.content or "").strip()
        if not content:
            raise ValueError("empty completion")
        parsed = json.loads(content)
        if not isinstance(parsed, dict):
            raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
        return parsed

    def normalize(self, fields: Dict[str, Any], subject: str, body: str, email_date: Optional[date], today: date) -> ApplicationRecord:
        return ApplicationRecord(
            date=parse_date(fields.get("date")) or today,
            company=extract_company(_text(fields.get("company")), body),
            role=extract_role(_text(fields.get("role")), subject),
            status=classify_status(_text(fields.get("status"))),
            next_steps=str(fields.get("nextSteps") or fields.get("next_steps") or ""),
            email_date=email_date,
        )

    def extract(self, subject: str, body: str, email_date: Optional[date], today: Optional[date] = None) -> Optional[ApplicationRecord]:
        today = today or date.today()
        try:
            fields = self.request_fields(subject, body)
        except Exception as exc:
            logger.warning("Extraction failed for {!r}: {}", subject, exc)
            return None

        record = self.normalize(fields, subject, body, email_date, today)
        if record.is_unknown:
            logger.info("Neither company nor role found in {!r}; discarding", subject)
            return None
        return record
