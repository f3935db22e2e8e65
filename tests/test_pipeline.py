from datetime import date
from unittest.mock import MagicMock

from application_tracker import pipeline
from application_tracker.models import ApplicationRecord, EmailMessage
from application_tracker.settings import JOB_KEYWORDS

from conftest import FakeExtractor, FakeStore

DAY = date(2024, 3, 1)

JOB_SUBJECT = "Interview scheduled for Software Engineer role"
JOB_BODY = "Thanks for your application. We'd like to interview you."


def _msg(msg_id, subject=JOB_SUBJECT, body=JOB_BODY):
    return EmailMessage(id=msg_id, subject=subject, body=body, sender="jobs@acme.com", date=DAY)


def test_keyword_gate_blocks_extraction():
    store, ext = FakeStore(), FakeExtractor()
    newsletter = _msg("n1", subject="Weekly newsletter", body="Our interview with a chef")
    result = pipeline.reconcile([newsletter], store, ext, JOB_KEYWORDS, today=DAY)
    assert ext.calls == []
    assert store.records == []
    assert result.total == 0
    assert result.to_dict()["message"] == "No new emails to process"


def test_new_message_is_persisted_with_email_id():
    store, ext = FakeStore(), FakeExtractor()
    result = pipeline.reconcile([_msg("m1")], store, ext, JOB_KEYWORDS, today=DAY)
    assert (result.processed, result.skipped, result.total) == (1, 0, 1)
    assert store.records[0].email_id == "m1"


def test_running_same_batch_twice_is_idempotent():
    store, ext = FakeStore(), FakeExtractor()
    first = pipeline.reconcile([_msg("m1")], store, ext, JOB_KEYWORDS, today=DAY)
    second = pipeline.reconcile([_msg("m1")], store, ext, JOB_KEYWORDS, today=DAY)
    assert first.processed == 1
    assert (second.processed, second.skipped, second.total) == (0, 1, 1)
    assert [r.email_id for r in store.records] == ["m1"]
    assert len(ext.calls) == 1


def test_duplicate_ids_within_one_batch_are_appended_once():
    store = FakeStore()
    result = pipeline.reconcile([_msg("m1"), _msg("m1")], store, FakeExtractor(), JOB_KEYWORDS, today=DAY)
    assert (result.processed, result.skipped) == (1, 1)
    assert len(store.records) == 1


def test_seen_ids_read_once_per_batch():
    store = FakeStore()
    pipeline.reconcile([_msg("a"), _msg("b"), _msg("c")], store, FakeExtractor(), JOB_KEYWORDS, today=DAY)
    assert store.reads == 1


def test_unusable_extraction_counts_as_skipped():
    store = FakeStore()
    ext = FakeExtractor(results={JOB_SUBJECT: None})
    result = pipeline.reconcile([_msg("m1")], store, ext, JOB_KEYWORDS, today=DAY)
    assert (result.processed, result.skipped, result.total) == (0, 1, 1)
    assert store.records == []


def test_failure_on_one_message_does_not_stop_batch():
    store = FakeStore(fail_on={"bad"})
    result = pipeline.reconcile([_msg("bad"), _msg("good")], store, FakeExtractor(), JOB_KEYWORDS, today=DAY)
    assert (result.processed, result.failed, result.total) == (1, 1, 2)
    assert [r.email_id for r in store.records] == ["good"]


def test_extractor_exception_is_contained():
    store = FakeStore()
    ext = MagicMock()
    ext.extract.side_effect = [RuntimeError("model down"), ApplicationRecord(DAY, "Acme", "SRE", "In-Process", "", DAY)]
    result = pipeline.reconcile([_msg("x"), _msg("y")], store, ext, JOB_KEYWORDS, today=DAY)
    assert (result.processed, result.failed) == (1, 1)


def test_run_poll_searches_then_fetches():
    source = MagicMock()
    source.search.return_value = [{"id": "m1"}, {"id": "broken"}]

    def fetch(msg_id):
        if msg_id == "broken":
            raise IOError("gmail hiccup")
        return _msg(msg_id)

    source.fetch.side_effect = fetch
    store = FakeStore()
    result = pipeline.run_poll(source, store, FakeExtractor(), JOB_KEYWORDS, limit=5, today=DAY)

    query, limit = source.search.call_args.args
    assert query.startswith("in:inbox -in:sent (")
    assert '"interview" OR "application"' in query
    assert limit == 5
    assert (result.processed, result.failed, result.total) == (1, 1, 1)


def test_run_digest_sends_rendered_text():
    records = [
        ApplicationRecord(DAY, "Acme", "SWE", "In-Process", "Interview Monday", DAY, "m1"),
        ApplicationRecord(DAY, "Globex", "PM", "Rejected", "", date(2024, 2, 1), "m2"),
    ]
    notifier = MagicMock()
    digest = pipeline.run_digest(FakeStore(records), notifier, today=DAY)
    assert digest.to_dict() == {
        "message": "Daily summary sent successfully",
        "totalApplicationsToday": 1,
        "applicationsWithNextSteps": 1,
    }
    text = notifier.send.call_args.args[0]
    assert "Acme / SWE" in text
    assert "Globex" not in text
