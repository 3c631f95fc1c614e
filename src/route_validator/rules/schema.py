"""
rules/schema.py: JSON Schema validation for route rules YAML files.

A rules file names route configurations::

    routes:
      create-item:
        description: Create a new item in a category
        params:
          category:
            isRequired: true
            isIn: [lawn, garden, tools]
        body:
          name:
            isRequired: true
            trim: true
        callNext: false

Usage:
    from route_validator.rules.schema import validate_rules_file

    for issue in validate_rules_file(Path("rules.yaml")):
        print(issue)
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

logger = logging.getLogger(__name__)

_SCHEMAS_DIR = Path(__file__).parent / "schemas"
RULES_SCHEMA = "rules.schema.json"


# ---------------------------------------------------------------------------
# Public data types
# ---------------------------------------------------------------------------


@dataclass
class RuleIssue:
    """A single finding for a rules file."""

    file: Path
    message: str
    path: str = ""          # location within the document, e.g. "routes/create-item/body"
    severity: str = "error" # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def load_schema() -> dict[str, Any]:
    """Load the packaged rules schema."""
    with (_SCHEMAS_DIR / RULES_SCHEMA).open() as fh:
        return json.load(fh)


def _json_path(error: ValidationError) -> str:
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def read_rules_document(path: Path) -> tuple[Any, list[RuleIssue]]:
    """Parse a rules file, returning the document and any parse issues."""
    try:
        with path.open() as fh:
            raw = yaml.safe_load(fh)
    except OSError as exc:
        return None, [RuleIssue(file=path, message=f"Cannot read rules file: {exc}")]
    except yaml.YAMLError as exc:
        return None, [RuleIssue(file=path, message=f"YAML parse error: {exc}")]

    if raw is None:
        return None, [RuleIssue(file=path, message="File is empty or contains only whitespace")]
    return raw, []


def check_document(path: Path, document: Any) -> list[RuleIssue]:
    """Validate an already parsed rules document against the schema."""
    validator = Draft202012Validator(load_schema())
    return [
        RuleIssue(file=path, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(document), key=_json_path)
    ]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_rules_file(path: Path) -> list[RuleIssue]:
    """
    Validate a rules YAML file against the rules schema.

    Args:
        path: Path to the YAML file to validate.

    Returns:
        A list of :class:`RuleIssue` objects (empty on success).
    """
    path = Path(path)
    document, issues = read_rules_document(path)
    if issues:
        return issues

    issues = check_document(path, document)
    if issues:
        logger.debug("Rules file %s has %d schema issue(s)", path, len(issues))
    return issues
