from application_tracker.errors import StoreAccessError
from application_tracker.models import Digest, PollResult
from application_tracker.server import create_app


def _client(poll=None, digest=None):
    app = create_app(poll or (lambda: PollResult()), digest or (lambda: Digest(total_today=0)))
    app.config["TESTING"] = True
    return app.test_client()


def test_health():
    resp = _client().get("/")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_process_email_returns_counts():
    client = _client(poll=lambda: PollResult(processed=2, skipped=1, total=3))
    resp = client.post("/process-email")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["message"] == "Email processing completed"
    assert (body["processed"], body["skipped"], body["total"]) == (2, 1, 3)


def test_daily_summary_returns_counts():
    resp = _client(digest=lambda: Digest(total_today=4)).get("/daily-summary")
    assert resp.status_code == 200
    assert resp.get_json() == {
        "message": "Daily summary sent successfully",
        "totalApplicationsToday": 4,
        "applicationsWithNextSteps": 0,
    }


def test_errors_become_json_500():
    def boom():
        raise StoreAccessError("Permission denied accessing Google Sheet.")

    resp = _client(poll=boom).get("/process-email")
    assert resp.status_code == 500
    assert resp.get_json() == {
        "error": "Internal server error",
        "message": "Permission denied accessing Google Sheet.",
    }


def test_unknown_route_is_still_404():
    assert _client().get("/nope").status_code == 404
