"""Filter rule lookup."""

from __future__ import annotations

from collections.abc import Sequence

from github_dispatcher.models import FilterRule


def find_match(
    rules: Sequence[FilterRule], repo_full_name: str, ref: str
) -> FilterRule | None:
    """Return the first rule whose repo and branch equal the event's, else None.

    Comparison is exact and case-sensitive; refs are not normalized.
    """
    for rule in rules:
        if rule.repo == repo_full_name and rule.branch == ref:
            return rule
    return None
