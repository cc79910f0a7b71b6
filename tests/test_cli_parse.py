from typer.testing import CliRunner

from template_scheduler.cli import app

runner = CliRunner()


def test_cli_parse_ok():
    r = runner.invoke(app, ["parse", "2 weeks"])
    assert r.exit_code == 0, r.output
    assert "OK: 14 days (2 weeks)" in r.output


def test_cli_parse_negative():
    r = runner.invoke(app, ["parse", "--", "-1 week"])
    assert r.exit_code == 2
    assert "E_DURATION_NEGATIVE" in r.output


def test_cli_parse_unrecognized():
    r = runner.invoke(app, ["parse", "1 wek"])
    assert r.exit_code == 2
    assert "E_DURATION_UNRECOGNIZED" in r.output
