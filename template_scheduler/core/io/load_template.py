from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from template_scheduler.core.errors import TemplateLoadError


def load_document(path: str) -> dict[str, Any]:
    """Load a YAML/JSON document and require a top-level mapping."""

    p = Path(path)
    if not p.exists():
        raise TemplateLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except Exception as e:  # pragma: no cover
        raise TemplateLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise TemplateLoadError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except TemplateLoadError:
        raise
    except Exception as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise TemplateLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise TemplateLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )

    data["__file__"] = str(p)
    return data


def load_template(path: str) -> dict[str, Any]:
    """Load a template file.

    Returns a dict with keys: schema_version, name, description, milestones.
    Does not coerce types; validator owns shape checking.
    """

    data = load_document(path)
    return {
        "schema_version": data.get("schema_version"),
        "name": data.get("name"),
        "description": data.get("description"),
        "milestones": data.get("milestones"),
        "__file__": data["__file__"],
    }
