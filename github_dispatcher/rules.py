"""Filter rule file loading."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from github_dispatcher.errors import RuleLoadError
from github_dispatcher.models import FilterRule
from github_dispatcher.utils.logging import get_logger

log = get_logger(__name__)

_RULES_ADAPTER = TypeAdapter(list[FilterRule])


def _parse(path: Path, text: str) -> Any:
    if path.suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text)
    return json.loads(text)


def load_filter_rules(path: str | Path) -> list[FilterRule]:
    """Load the ordered rule list from a JSON (or YAML) file.

    Duplicate repo/branch pairs are kept; the first one wins at match time.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuleLoadError(f"failed to read config file {path}: {exc}") from exc

    try:
        data = _parse(path, text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise RuleLoadError(f"failed to parse config file {path}: {exc}") from exc

    try:
        rules = _RULES_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise RuleLoadError(f"invalid filter rules in {path}: {exc}") from exc

    if not rules:
        log.warning("no_filter_rules", path=str(path))

    seen: dict[tuple[str, str], int] = {}
    for index, rule in enumerate(rules):
        key = (rule.repo, rule.branch)
        if key in seen:
            log.warning(
                "duplicate_filter_rule",
                repo=rule.repo,
                branch=rule.branch,
                index=index,
                shadowed_by=seen[key],
            )
        else:
            seen[key] = index

    return rules
