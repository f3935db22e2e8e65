import os, base64, re
from datetime import date, datetime, timezone
from typing import List, Dict, Any, Iterable, Optional, Tuple

import pytz
from google.oauth2.credentials import Credentials
from google.auth.transport.requests import Request
from googleapiclient.discovery import build
from loguru import logger

from .errors import ConfigurationError
from .models import EmailMessage
from .nlp_rules import clean_html, strip_quoted

CREDENTIALS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "..", "credentials")
TOKEN_FILE = os.path.join(CREDENTIALS_DIR, "token.json")
TOKEN_URI = "https://oauth2.googleapis.com/token"

SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]


def _load_creds(client_id: str, client_secret: str, refresh_token: str) -> Credentials:
    creds: Optional[Credentials] = None
    if os.path.exists(TOKEN_FILE):
        creds = Credentials.from_authorized_user_file(TOKEN_FILE, SCOPES)
    elif client_id and client_secret and refresh_token:
        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            client_id=client_id,
            client_secret=client_secret,
            token_uri=TOKEN_URI,
            scopes=SCOPES,
        )
    if creds is None:
        raise ConfigurationError(
            "Gmail credentials are missing: set GMAIL_CLIENT_ID, GMAIL_CLIENT_SECRET and "
            f"GMAIL_REFRESH_TOKEN, or place an authorized token at {TOKEN_FILE}"
        )
    if not creds.valid and creds.refresh_token:
        creds.refresh(Request())
    return creds


def build_query(keywords: Iterable[str]) -> str:
    terms = " OR ".join(f'"{k}"' for k in keywords)
    # inbox only, never our own sent mail
    return f"in:inbox -in:sent ({terms})"


def _get_header(headers: List[Dict[str, str]], name: str) -> str:
    for h in headers:
        if h.get("name", "").lower() == name.lower():
            return h.get("value", "")
    return ""


def _decode_payload(data: str) -> str:
    # Gmail returns base64url-encoded data
    missing_padding = len(data) % 4
    if missing_padding:
        data += "=" * (4 - missing_padding)
    return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")


def _clean_text(s: str) -> str:
    s = re.sub(r"[\u200B-\u200D\uFEFF]", "", s or "")
    s = re.sub(r"[ \t]+", " ", s)
    s = re.sub(r"\s+\n", "\n", s)
    return s.strip()


def extract_plain_text(message: Dict[str, Any]) -> Tuple[str, str, str]:
    """Returns: (subject, from_email, text)"""
    payload = message.get("payload", {})
    headers = payload.get("headers", [])
    subject = _get_header(headers, "Subject")
    from_email = _get_header(headers, "From")

    plain: List[str] = []
    html_parts: List[str] = []

    def traverse(part):
        mime = part.get("mimeType", "")
        data = part.get("body", {}).get("data")
        if "parts" in part:
            for p in part["parts"]:
                traverse(p)
        elif data and mime == "text/html":
            html_parts.append(clean_html(_decode_payload(data)))
        elif data and (mime == "text/plain" or not mime):
            plain.append(_decode_payload(data))

    traverse(payload)
    # html only when the message carries no plain-text alternative
    body_text = "\n".join(plain) if plain else "\n".join(html_parts)

    subject = _clean_text(subject)
    from_email = _clean_text(from_email)
    body_text = strip_quoted(_clean_text(body_text))
    return subject, from_email, body_text


def received_date(message: Dict[str, Any], tz_name: str = "UTC") -> date:
    tz = pytz.timezone(tz_name)
    internal_date_ms = int(message.get("internalDate", "0") or 0)
    if not internal_date_ms:
        return datetime.now(tz).date()
    return datetime.fromtimestamp(internal_date_ms / 1000, tz=timezone.utc).astimezone(tz).date()


def to_email_message(message: Dict[str, Any], tz_name: str = "UTC") -> EmailMessage:
    subject, from_email, body = extract_plain_text(message)
    return EmailMessage(
        id=message["id"],
        subject=subject,
        body=body,
        sender=from_email,
        date=received_date(message, tz_name),
    )


class GmailSource:
    """Message source backed by the Gmail API."""

    def __init__(self, service, tz_name: str = "UTC"):
        self.service = service
        self.tz_name = tz_name

    @classmethod
    def from_settings(cls, cfg) -> "GmailSource":
        creds = _load_creds(cfg.gmail_client_id, cfg.gmail_client_secret, cfg.gmail_refresh_token)
        service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        return cls(service, tz_name=cfg.timezone)

    def search(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        resp = self.service.users().messages().list(userId="me", q=query, maxResults=limit).execute()
        refs = resp.get("messages", []) or []
        logger.debug("Gmail search returned {} message(s)", len(refs))
        return refs

    def fetch(self, msg_id: str) -> EmailMessage:
        raw = self.service.users().messages().get(userId="me", id=msg_id, format="full").execute()
        return to_email_message(raw, self.tz_name)
