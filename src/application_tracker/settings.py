import os
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv

CONFIG_PATH = os.environ.get(
    "APP_TRACKER_CONFIG",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "..", "config.yaml")
)

load_dotenv()

REQUIRED_ENV = [
    "GMAIL_CLIENT_ID",
    "GMAIL_CLIENT_SECRET",
    "GMAIL_REFRESH_TOKEN",
    "GOOGLE_SHEETS_SPREADSHEET_ID",
    "GOOGLE_SHEETS_CLIENT_EMAIL",
    "GOOGLE_SHEETS_PRIVATE_KEY",
    "OPENAI_API_KEY",
    "DISCORD_WEBHOOK_URL",
]

JOB_KEYWORDS = [
    "interview",
    "application",
    "position",
    "role",
    "rejected",
    "accepted",
    "next steps",
    "hiring",
    "candidate",
    "scheduled",
    "interview scheduled",
]

ACTIONABLE_KEYWORDS = [
    "next steps",
    "interview",
    "invitation",
    "scheduled",
    "deadline",
    "follow up",
    "follow-up",
    "action required",
    "response needed",
    "meeting",
    "call",
    "assessment",
    "test",
    "assignment",
]


def _env(name: str) -> str:
    return (os.getenv(name) or "").strip()


def normalize_private_key(key: str) -> str:
    """Turn a single-line .env private key back into PEM text."""
    if not key:
        return ""
    key = key.strip().strip('"')
    key = key.replace("\\r\\n", "\n").replace("\\n", "\n").replace("\\r", "\n")
    return key.replace("\r\n", "\n").strip()


@dataclass
class Settings:
    app: Dict[str, Any] = field(default_factory=dict)
    gmail: Dict[str, Any] = field(default_factory=dict)
    llm: Dict[str, Any] = field(default_factory=dict)
    sheets: Dict[str, Any] = field(default_factory=dict)
    digest: Dict[str, Any] = field(default_factory=dict)

    gmail_client_id: str = field(default_factory=lambda: _env("GMAIL_CLIENT_ID"))
    gmail_client_secret: str = field(default_factory=lambda: _env("GMAIL_CLIENT_SECRET"))
    gmail_refresh_token: str = field(default_factory=lambda: _env("GMAIL_REFRESH_TOKEN"))
    spreadsheet_id: Optional[str] = field(default_factory=lambda: _env("GOOGLE_SHEETS_SPREADSHEET_ID") or None)
    sheets_client_email: str = field(default_factory=lambda: _env("GOOGLE_SHEETS_CLIENT_EMAIL"))
    sheets_private_key: str = field(default_factory=lambda: normalize_private_key(os.getenv("GOOGLE_SHEETS_PRIVATE_KEY", "")))
    service_account_file: str = field(default_factory=lambda: _env("GSPREAD_SERVICE_ACCOUNT_JSON"))
    openai_api_key: str = field(default_factory=lambda: _env("OPENAI_API_KEY"))
    discord_webhook_url: str = field(default_factory=lambda: _env("DISCORD_WEBHOOK_URL"))

    @property
    def timezone(self) -> str:
        return self.app.get("timezone", "America/Chicago")

    @property
    def job_keywords(self) -> List[str]:
        return list(self.gmail.get("keywords") or JOB_KEYWORDS)

    @property
    def actionable_keywords(self) -> List[str]:
        return list(self.digest.get("keywords") or ACTIONABLE_KEYWORDS)

    def missing_secrets(self) -> List[str]:
        # a service-account file stands in for the inline sheets credentials
        skip = set()
        if self.service_account_file:
            skip = {"GOOGLE_SHEETS_CLIENT_EMAIL", "GOOGLE_SHEETS_PRIVATE_KEY"}
        return [name for name in REQUIRED_ENV if name not in skip and not _env(name)]


def load_settings(path: Optional[str] = None) -> Settings:
    path = path or CONFIG_PATH
    cfg: Dict[str, Any] = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    # we have to ensure every section exists
    for section in ("app", "gmail", "llm", "sheets", "digest"):
        cfg[section] = cfg.get(section) or {}
    return Settings(**{k: v for k, v in cfg.items() if k in ("app", "gmail", "llm", "sheets", "digest")})
