from pathlib import Path

import yaml
from typer.testing import CliRunner

from template_scheduler.cli import app

runner = CliRunner()
EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _load_yaml(p: Path) -> dict:
    return yaml.safe_load(p.read_text(encoding="utf-8"))


def _expand(tmp_path: Path, name: str = "service.yaml", *extra: str):
    out_path = tmp_path / name
    r = runner.invoke(
        app,
        ["expand", str(EXAMPLES / "website-template.yaml"), "--start", "2025-09-01", "--out", str(out_path), *extra],
    )
    return r, out_path


def test_expand_writes_service_dates(tmp_path: Path):
    r, out_path = _expand(tmp_path)
    assert r.exit_code == 0, r.output

    got = _load_yaml(out_path)
    assert got["name"] == "Website Launch"
    assert got["start_date"] == "2025-09-01"
    dates = [(m["name"], m["start_date"], m["due_date"]) for m in got["milestones"]]
    assert dates == [
        ("Discovery", "2025-09-01", "2025-09-08"),
        ("Build", "2025-09-08", "2025-09-29"),
        ("Launch", "2025-10-01", "2025-10-01"),
    ]
    build_tasks = [(t["title"], t["due_date"]) for t in got["milestones"][1]["tasks"]]
    assert build_tasks == [("Build pages", "2025-09-15"), ("QA pass", "2025-09-29")]


def test_expand_is_deterministic(tmp_path: Path):
    r1, out1 = _expand(tmp_path, "one.yaml")
    r2, out2 = _expand(tmp_path, "two.yaml")
    assert r1.exit_code == 0
    assert r2.exit_code == 0
    assert out1.read_text(encoding="utf-8") == out2.read_text(encoding="utf-8")


def test_expand_service_name_option(tmp_path: Path):
    r, out_path = _expand(tmp_path, "named.yaml", "--name", "Acme Site")
    assert r.exit_code == 0, r.output
    assert _load_yaml(out_path)["name"] == "Acme Site"


def test_expand_builtin_template(tmp_path: Path):
    out_path = tmp_path / "standard.yaml"
    r = runner.invoke(app, ["expand", "--template", "standard", "--start", "2025-09-01", "--out", str(out_path)])
    assert r.exit_code == 0, r.output
    got = _load_yaml(out_path)
    assert [m["start_date"] for m in got["milestones"]] == ["2025-09-01", "2025-09-08", "2025-09-29", "2025-10-06"]


def test_expand_invalid_offset_fails_without_output(tmp_path: Path):
    out_path = tmp_path / "broken.yaml"
    r = runner.invoke(
        app,
        ["expand", str(EXAMPLES / "invalid-offset-template.yaml"), "--start", "2025-09-01", "--out", str(out_path)],
    )
    assert r.exit_code == 2
    assert "E_EXPANSION_FAILED" in r.output
    assert "milestones[0].due_offset" in r.output
    assert not out_path.exists()


def test_expand_invalid_start(tmp_path: Path):
    r = runner.invoke(
        app,
        ["expand", str(EXAMPLES / "website-template.yaml"), "--start", "next tuesday", "--out", str(tmp_path / "x.yaml")],
    )
    assert r.exit_code == 2
    assert "E_INVALID_START_DATE" in r.output


def test_expand_rejects_trailing_text_after_start_date(tmp_path: Path):
    out_path = tmp_path / "x.yaml"
    r = runner.invoke(
        app,
        ["expand", str(EXAMPLES / "website-template.yaml"), "--start", "2025-09-01xyz", "--out", str(out_path)],
    )
    assert r.exit_code == 2
    assert "E_INVALID_START_DATE" in r.output
    assert not out_path.exists()


def test_expand_requires_exactly_one_source(tmp_path: Path):
    r = runner.invoke(app, ["expand", "--start", "2025-09-01", "--out", str(tmp_path / "x.yaml")])
    assert r.exit_code == 2
    assert "E_TEMPLATE_SOURCE" in r.output


def test_expand_unknown_template_errors(tmp_path: Path):
    r = runner.invoke(
        app, ["expand", "--template", "nope", "--start", "2025-09-01", "--out", str(tmp_path / "x.yaml")]
    )
    assert r.exit_code == 2
    assert "E_UNKNOWN_TEMPLATE" in r.output
