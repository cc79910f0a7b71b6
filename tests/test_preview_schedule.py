from datetime import date, datetime

from template_scheduler.core.expand.expand_schedule import expand_schedule
from template_scheduler.core.preview.preview_schedule import preview_rows, preview_schedule
from template_scheduler.core.template.template_graph import TemplateGraph


def _graph() -> TemplateGraph:
    g = TemplateGraph(name="t")
    g.add_milestone("A", start_offset="1 week", due_offset="3 weeks", milestone_id="A")
    g.add_task("A", "task", due_offset="1 week", task_id="T")
    return g


def test_preview_matches_expand():
    g = _graph()
    p, err = preview_schedule(g, date(2025, 9, 1))
    e, _ = expand_schedule(g, date(2025, 9, 1))
    assert err is None
    assert p == e


def test_preview_accepts_iso_strings_and_datetimes():
    g = _graph()
    s1, _ = preview_schedule(g, "2025-09-01")
    s2, _ = preview_schedule(g, "2025-09-01T00:00:00.000Z")
    s3, _ = preview_schedule(g, datetime(2025, 9, 1, 12))
    assert s1 == s2 == s3


def test_preview_invalid_anchor_is_a_value_not_an_exception():
    g = _graph()
    for bad in (None, "", "not-a-date", "2025-13-01", "2025-09-01garbage", "2025-09-01T99:00"):
        s, err = preview_schedule(g, bad)
        assert s is None
        assert err.code == "E_PREVIEW_INVALID_ANCHOR"


def test_preview_mid_edit_returns_error():
    g = _graph()
    g.update_task("A", "T", due_offset="2 we")
    s, err = preview_schedule(g, "2025-09-01")
    assert s is None
    assert err.node_id == "T"

    g.update_task("A", "T", due_offset="2 weeks")
    s, err = preview_schedule(g, "2025-09-01")
    assert err is None
    assert s.tasks["T"].due_date == date(2025, 9, 22)


def test_preview_rows():
    g = _graph()
    s, _ = preview_schedule(g, "2025-09-01")
    assert preview_rows(g, s) == [
        {
            "id": "A",
            "name": "A",
            "start_date": "2025-09-08",
            "due_date": "2025-09-29",
            "tasks": [{"id": "T", "title": "task", "due_date": "2025-09-15"}],
        }
    ]


def test_preview_rows_skip_nodes_added_after_expansion():
    g = _graph()
    s, _ = preview_schedule(g, "2025-09-01")
    g.add_milestone("B", milestone_id="B")
    g.add_task("A", "new", task_id="T2")
    rows = preview_rows(g, s)
    assert [r["id"] for r in rows] == ["A"]
    assert [t["id"] for t in rows[0]["tasks"]] == ["T"]


def test_preview_huge_offset_is_a_value_not_an_exception():
    g = TemplateGraph(name="t")
    g.add_milestone("A", start_offset="9" * 5000, milestone_id="A")
    s, err = preview_schedule(g, date(2025, 9, 1))
    assert s is None
    assert err.code == "E_EXPANSION_FAILED"
    assert err.cause.code == "E_DURATION_UNREALISTIC"


def test_preview_near_max_date_does_not_raise():
    s, err = preview_schedule(_graph(), "9999-12-30")
    assert s is None
    assert err.code == "E_EXPANSION_FAILED"
