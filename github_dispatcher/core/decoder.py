"""Push webhook payload decoding."""

from __future__ import annotations

import json
from typing import Any

from github_dispatcher.errors import DecodeError
from github_dispatcher.models import PushEvent


def _optional_str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"field '{name}' must be a string, got {type(value).__name__}")
    return value


def decode_push_event(payload: str | bytes) -> PushEvent:
    """Parse a raw push webhook payload.

    Unknown fields are ignored and absent or null fields become empty strings.
    Invalid JSON, a non-object document, or a field of the wrong type raises
    DecodeError.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"payload is not valid UTF-8: {exc}") from exc

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"failed to parse webhook payload: {exc}") from exc

    if not isinstance(data, dict):
        raise DecodeError(f"webhook payload must be a JSON object, got {type(data).__name__}")

    repository = data.get("repository")
    if repository is None:
        repository = {}
    elif not isinstance(repository, dict):
        raise DecodeError(
            f"field 'repository' must be an object, got {type(repository).__name__}"
        )

    return PushEvent(
        ref=_optional_str(data.get("ref"), "ref"),
        repository_full_name=_optional_str(
            repository.get("full_name"), "repository.full_name"
        ),
    )
