import json
from pathlib import Path

from typer.testing import CliRunner

from template_scheduler.cli import app

runner = CliRunner()
EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def test_cli_preview_text():
    r = runner.invoke(app, ["preview", str(EXAMPLES / "website-template.yaml"), "--start", "2025-09-01"])
    assert r.exit_code == 0, r.output
    assert "Website Launch from 2025-09-01" in r.output
    assert "- Build: 2025-09-08 -> 2025-09-29" in r.output
    assert "    - Go live: 2025-10-01" in r.output


def test_cli_preview_json():
    r = runner.invoke(
        app, ["preview", str(EXAMPLES / "website-template.yaml"), "--start", "2025-09-01", "--format", "json"]
    )
    assert r.exit_code == 0, r.output
    payload = json.loads(r.stdout)
    assert payload["ok"] is True
    assert payload["start_date"] == "2025-09-01"
    assert [m["id"] for m in payload["milestones"]] == ["MS-DISC", "MS-BUILD", "MS-LAUNCH"]
    assert payload["milestones"][0]["tasks"][0] == {"id": "T-KICKOFF", "title": "Kickoff call", "due_date": "2025-09-02"}


def test_cli_preview_invalid_anchor():
    r = runner.invoke(app, ["preview", str(EXAMPLES / "website-template.yaml"), "--start", "someday"])
    assert r.exit_code == 2
    assert "E_PREVIEW_INVALID_ANCHOR" in r.output


def test_cli_preview_library_template_file():
    r = runner.invoke(
        app,
        ["preview", "--template", "custom", "--template-file", str(EXAMPLES / "templates.yaml"), "--start", "2025-09-01"],
    )
    assert r.exit_code == 0, r.output
    assert "- Audit: 2025-09-03 -> 2025-09-17" in r.output
    assert "    - Collect access: 2025-09-04" in r.output
