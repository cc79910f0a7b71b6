from pathlib import Path

import yaml
from typer.testing import CliRunner

from template_scheduler.cli import app

runner = CliRunner()
EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def test_derive_then_expand_reproduces_service(tmp_path: Path):
    template_path = tmp_path / "derived.yaml"
    r = runner.invoke(app, ["derive", str(EXAMPLES / "service.yaml"), "--out", str(template_path)])
    assert r.exit_code == 0, r.output

    derived = yaml.safe_load(template_path.read_text(encoding="utf-8"))
    assert derived["name"] == "Acme Rebrand"
    assert [m["start_offset"] for m in derived["milestones"]] == ["same day", "1 week", "same day"]

    service_path = tmp_path / "service.yaml"
    r = runner.invoke(app, ["expand", str(template_path), "--start", "2025-09-01", "--out", str(service_path)])
    assert r.exit_code == 0, r.output
    service = yaml.safe_load(service_path.read_text(encoding="utf-8"))
    assert [(m["start_date"], m["due_date"]) for m in service["milestones"]] == [
        ("2025-09-01", "2025-09-08"),
        ("2025-09-08", "2025-09-29"),
        ("2025-09-01", "2025-10-01"),
    ]


def test_derive_missing_file(tmp_path: Path):
    r = runner.invoke(app, ["derive", str(EXAMPLES / "nope.yaml"), "--out", str(tmp_path / "x.yaml")])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in r.output
