"""Built-in service templates and user template libraries.

A library file maps template names to template documents (the same shape as a
template file, minus schema_version). Library entries override built-ins of
the same name and may add new ones.
"""
from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml


DEFAULT_TEMPLATES: dict[str, dict[str, Any]] = {
    # Keep "standard" stable for golden tests.
    "standard": {
        "name": "Standard Service",
        "milestones": [
            {
                "id": "MS-01",
                "name": "Discovery & Planning",
                "start_offset": "same day",
                "due_offset": "1 week",
                "tasks": [
                    {"id": "MS-01-T01", "title": "Kickoff call", "priority": "high", "estimated_hours": 1, "due_offset": "next day"},
                    {"id": "MS-01-T02", "title": "Requirements document", "priority": "medium", "estimated_hours": 4, "due_offset": "5 days"},
                ],
            },
            {
                "id": "MS-02",
                "name": "Development",
                "start_offset": "1 week",
                "due_offset": "3 weeks",
                "tasks": [
                    {"id": "MS-02-T01", "title": "Build", "priority": "high", "estimated_hours": 40, "due_offset": "2 weeks"},
                    {"id": "MS-02-T02", "title": "Internal review", "priority": "medium", "estimated_hours": 4, "due_offset": "3 weeks"},
                ],
            },
            {
                "id": "MS-03",
                "name": "Review & Testing",
                "start_offset": "4 weeks",
                "due_offset": "1 week",
                "tasks": [
                    {"id": "MS-03-T01", "title": "Client review", "priority": "medium", "estimated_hours": 2, "due_offset": "3 days"},
                ],
            },
            {
                "id": "MS-04",
                "name": "Delivery",
                "start_offset": "5 weeks",
                "due_offset": "same day",
                "tasks": [
                    {"id": "MS-04-T01", "title": "Handover", "priority": "urgent", "estimated_hours": 2, "due_offset": "same day"},
                ],
            },
        ],
    },
    "quick": {
        "name": "Quick Turnaround",
        "milestones": [
            {
                "id": "MS-01",
                "name": "Delivery",
                "start_offset": "same day",
                "due_offset": "3 days",
                "tasks": [
                    {"id": "MS-01-T01", "title": "Do the work", "priority": "high", "due_offset": "2 days"},
                    {"id": "MS-01-T02", "title": "Send to client", "priority": "medium", "due_offset": "3 days"},
                ],
            },
        ],
    },
    "retainer": {
        "name": "Monthly Retainer",
        "milestones": [
            {"id": "MS-01", "name": "Month 1", "start_offset": "same day", "due_offset": "1 month", "tasks": []},
            {"id": "MS-02", "name": "Month 2", "start_offset": "1 month", "due_offset": "1 month", "tasks": []},
            {"id": "MS-03", "name": "Month 3", "start_offset": "2 months", "due_offset": "1 month", "tasks": []},
        ],
    },
}


class TemplateConfigError(ValueError):
    pass


def load_template_file(path: str | Path) -> dict[str, dict[str, Any]]:
    """Load a template library from a YAML file.

    Format:
      <name>:
        name: "Display name"   # optional, defaults to <name>
        milestones: [...]

    Returns a mapping of template name -> template document. Milestone and
    task shape is left to validate_template.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise TemplateConfigError("template file must be a mapping of name -> template")

    out: dict[str, dict[str, Any]] = {}
    for k, v in raw.items():
        if not isinstance(k, str) or not k.strip():
            raise TemplateConfigError("template names must be non-empty strings")
        if not isinstance(v, dict):
            raise TemplateConfigError(f"template '{k}' must be a mapping")
        if not isinstance(v.get("milestones"), list):
            raise TemplateConfigError(f"template '{k}' must define a list of milestones")
        doc = dict(v)
        doc.setdefault("name", k.strip())
        out[k.strip()] = doc
    return out


def merged_templates(overrides: dict[str, dict[str, Any]] | None = None) -> dict[str, dict[str, Any]]:
    """Return DEFAULT_TEMPLATES merged with optional overrides.

    Callers get deep copies, so editing a returned document never leaks into
    the built-ins.
    """
    merged = copy.deepcopy(DEFAULT_TEMPLATES)
    if overrides:
        for k, v in overrides.items():
            merged[k] = copy.deepcopy(v)
    return merged


def load_and_merge(template_file: str | None) -> dict[str, dict[str, Any]]:
    if not template_file:
        return merged_templates()
    overrides = load_template_file(template_file)
    return merged_templates(overrides)
