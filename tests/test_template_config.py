from pathlib import Path

import pytest

from template_scheduler.core.expand.template_config import (
    DEFAULT_TEMPLATES,
    TemplateConfigError,
    load_and_merge,
    load_template_file,
)
from template_scheduler.core.lint.lint_template import lint_template
from template_scheduler.core.validate.validate_template import validate_template

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


@pytest.mark.parametrize("name", sorted(DEFAULT_TEMPLATES))
def test_builtin_templates_are_valid(name):
    g, errors = validate_template(DEFAULT_TEMPLATES[name])
    assert errors == []
    assert lint_template(g) == []


def test_template_file_overrides_and_adds():
    merged = load_and_merge(str(EXAMPLES / "templates.yaml"))
    assert "custom" in merged
    assert merged["custom"]["name"] == "Custom Audit"
    assert merged["quick"]["name"] == "Quick (overridden)"
    assert "standard" in merged


def test_merged_templates_are_copies():
    merged = load_and_merge(None)
    merged["standard"]["milestones"].clear()
    assert DEFAULT_TEMPLATES["standard"]["milestones"]


def test_invalid_template_file(tmp_path):
    p = tmp_path / "templates.yaml"
    p.write_text("bad:\n  name: x\n", encoding="utf-8")
    with pytest.raises(TemplateConfigError):
        load_template_file(p)


def test_empty_template_file(tmp_path):
    p = tmp_path / "templates.yaml"
    p.write_text("", encoding="utf-8")
    assert load_template_file(p) == {}
