"""Poll and digest pipelines.

Both pipelines take their collaborators as arguments and return plain result
objects, so the scheduler, the CLI and the HTTP surface all share them.
"""
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

import pytz
from loguru import logger

from .digest import build_digest, render_digest, MAX_LENGTH
from .email_client import GmailSource, build_query
from .models import Digest, EmailMessage, PollResult
from .nlp_llm import Extractor
from .nlp_rules import is_job_related
from .notifier import DiscordNotifier
from .settings import Settings
from .sheets_writer import SheetsStore


def today_in(tz_name: str) -> date:
    return datetime.now(pytz.timezone(tz_name)).date()


def reconcile(messages: Iterable[EmailMessage], store, extractor, keywords: Sequence[str], today: Optional[date] = None) -> PollResult:
    """Extract and persist every job-related message not already in the store."""
    today = today or date.today()
    job_messages = [m for m in messages if is_job_related(m.subject, m.body, keywords)]
    result = PollResult(total=len(job_messages))
    if not job_messages:
        return result

    # one read per batch; ids appended during the batch are added as we go
    seen_ids = store.seen_ids()

    for msg in job_messages:
        if msg.id in seen_ids:
            logger.debug("Email {} already processed, skipping", msg.id)
            result.skipped += 1
            continue
        try:
            record = extractor.extract(msg.subject, msg.body, msg.date, today=today)
            if record is None:
                logger.info("Could not extract application data from email {}", msg.id)
                result.skipped += 1
                continue
            record.email_id = msg.id
            store.append(record)
        except Exception:
            logger.exception("Error processing email {}", msg.id)
            result.failed += 1
            continue
        seen_ids.add(msg.id)
        result.processed += 1
        logger.info("Processed application: {} - {} ({})", record.company, record.role, record.status)
    return result


def fetch_messages(source, keywords: Sequence[str], limit: int) -> tuple:
    refs = source.search(build_query(keywords), limit)
    messages: List[EmailMessage] = []
    failed = 0
    for ref in refs:
        try:
            messages.append(source.fetch(ref["id"]))
        except Exception:
            logger.exception("Error getting message details for {}", ref.get("id"))
            failed += 1
    return messages, failed


def run_poll(source, store, extractor, keywords: Sequence[str], limit: int = 20, today: Optional[date] = None) -> PollResult:
    messages, fetch_failed = fetch_messages(source, keywords, limit)
    result = reconcile(messages, store, extractor, keywords, today=today)
    result.failed += fetch_failed
    logger.info("Email processing completed: {}", result.to_dict())
    return result


def run_digest(store, notifier, today: date, keywords: Optional[Iterable[str]] = None, max_length: int = MAX_LENGTH) -> Digest:
    digest = build_digest(store.read_all(), today, keywords)
    logger.info(
        "Total applications today: {}; applications with next steps: {}",
        digest.total_today, len(digest.actionable),
    )
    notifier.send(render_digest(digest, max_length))
    return digest


def poll_once(cfg: Settings) -> PollResult:
    return run_poll(
        source=GmailSource.from_settings(cfg),
        store=SheetsStore.from_settings(cfg),
        extractor=Extractor.from_settings(cfg),
        keywords=cfg.job_keywords,
        limit=int(cfg.gmail.get("max_results", 20)),
        today=today_in(cfg.timezone),
    )


def digest_once(cfg: Settings) -> Digest:
    return run_digest(
        store=SheetsStore.from_settings(cfg),
        notifier=DiscordNotifier.from_settings(cfg),
        today=today_in(cfg.timezone),
        keywords=cfg.actionable_keywords,
        max_length=int(cfg.digest.get("max_length", MAX_LENGTH)),
    )
