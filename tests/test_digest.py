from datetime import date

from application_tracker.digest import build_digest, render_digest, has_actionable_next_steps
from application_tracker.models import ApplicationRecord, Digest

TODAY = date(2024, 3, 1)


def _rec(company="Acme", role="SWE", steps="", email_date=TODAY):
    return ApplicationRecord(TODAY, company, role, "In-Process", steps, email_date, None)


def test_total_today_counts_calendar_day():
    digest = build_digest([_rec(email_date=TODAY), _rec(email_date=date(2024, 2, 29)), _rec(email_date=None)], TODAY)
    assert digest.total_today == 1


def test_actionable_uses_whole_history():
    old = _rec(company="Old", steps="Complete the online assessment", email_date=date(2023, 1, 1))
    vague = _rec(company="Vague", steps="We will be in touch")
    empty = _rec(company="Empty", steps="   ")
    digest = build_digest([old, vague, empty], TODAY)
    assert [r.company for r in digest.actionable] == ["Old"]


def test_actionable_match_is_case_insensitive():
    assert has_actionable_next_steps(_rec(steps="FOLLOW UP by Friday"))
    assert not has_actionable_next_steps(_rec(steps=""))


def test_render_without_actionable():
    text = render_digest(Digest(total_today=2))
    assert text == "**Total Applications today:** 2\n\n**Applications with next steps:** None"


def test_render_lists_company_and_role():
    text = render_digest(Digest(total_today=1, actionable=[_rec("Acme", "SWE"), _rec("Globex", "PM")]))
    assert text.endswith("Acme / SWE\nGlobex / PM")


def test_render_truncates_and_counts_omitted():
    records = [_rec(f"Company{i:03d}", "Senior Software Engineer") for i in range(200)]
    text = render_digest(Digest(total_today=200, actionable=records))
    assert len(text) <= 2000
    assert text.startswith("**Total Applications today:** 200")
    shown = text.count("Senior Software Engineer")
    assert 0 < shown < 200
    assert text.endswith(f"... and {200 - shown} more")


def test_render_respects_cap_with_huge_entries():
    records = [_rec("X" * 5000, "Y" * 5000), _rec("Acme", "SWE")]
    text = render_digest(Digest(total_today=0, actionable=records))
    assert len(text) <= 2000
    assert text.startswith("**Total Applications today:** 0")
    assert text.endswith("... and 2 more")


def test_render_custom_cap():
    records = [_rec(f"C{i}", "R") for i in range(50)]
    text = render_digest(Digest(total_today=0, actionable=records), max_length=150)
    assert len(text) <= 150
    assert "more" in text


def test_render_cap_below_headings_falls_back_to_default():
    records = [_rec("Acme", "SWE"), _rec("Globex", "PM"), _rec("Initech", "QA")]
    text = render_digest(Digest(total_today=3, actionable=records), max_length=60)
    assert text.startswith("**Total Applications today:** 3")
    assert "**Applications with next steps:**\n" in text
    assert text.endswith("Initech / QA")
    assert len(text) <= 2000

    empty = render_digest(Digest(total_today=3), max_length=10)
    assert empty == "**Total Applications today:** 3\n\n**Applications with next steps:** None"
