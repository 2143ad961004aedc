"""Typed records for rules, decoded events and dispatch results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class FilterRule:
    repo: str
    branch: str
    type: str = ""
    dir: str = ""
    commands: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Queue item shape, keys in wire order."""
        return {
            "repo": self.repo,
            "branch": self.branch,
            "type": self.type,
            "dir": self.dir,
            "commands": list(self.commands),
        }


@dataclass(frozen=True)
class PushEvent:
    ref: str = ""
    repository_full_name: str = ""


class DispatchStatus(str, Enum):
    NO_MATCH = "no_match"
    ENQUEUED = "enqueued"


@dataclass
class DispatchOutcome:
    status: DispatchStatus
    event: PushEvent
    queue_name: str
    rule: FilterRule | None = None
    item: str | None = None

    @property
    def enqueued(self) -> bool:
        return self.status is DispatchStatus.ENQUEUED
