"""Tests for per-payload dispatch."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from github_dispatcher.core.dispatcher import Dispatcher, serialize_rule
from github_dispatcher.errors import DecodeError, EnqueueError, SerializeError
from github_dispatcher.models import DispatchStatus, FilterRule
from github_dispatcher.queue.memory import MemoryQueue

MAIN_PUSH = '{"ref":"refs/heads/main","repository":{"full_name":"o/r"}}'


@pytest.fixture
def rules():
    return [
        FilterRule(
            repo="o/r",
            branch="refs/heads/main",
            type="git-webhook",
            commands=["make build", "make test"],
        ),
    ]


@pytest.fixture
def queue():
    return MemoryQueue(log=MagicMock())


@pytest.fixture
def mock_queue():
    q = MagicMock()
    q.append = AsyncMock()
    return q


class TestSerializeRule:
    def test_wire_shape(self):
        rule = FilterRule(repo="o/r", branch="refs/heads/main", type="git-webhook", dir="/srv", commands=["a", "b"])
        data = json.loads(serialize_rule(rule))
        assert list(data) == ["repo", "branch", "type", "dir", "commands"]
        assert data == {
            "repo": "o/r",
            "branch": "refs/heads/main",
            "type": "git-webhook",
            "dir": "/srv",
            "commands": ["a", "b"],
        }

    def test_defaults_serialized(self):
        data = json.loads(serialize_rule(FilterRule(repo="o/r", branch="refs/heads/main")))
        assert data["dir"] == ""
        assert data["type"] == ""
        assert data["commands"] == []

    def test_unserializable_rule(self):
        rule = FilterRule(repo="o/r", branch="refs/heads/main", commands=[object()])
        with pytest.raises(SerializeError) as exc_info:
            serialize_rule(rule)
        assert isinstance(exc_info.value.__cause__, TypeError)


class TestDispatcher:
    async def test_match_enqueues_rule(self, rules, queue):
        dispatcher = Dispatcher(rules, queue, "pipeline", log=MagicMock())
        outcome = await dispatcher.dispatch(MAIN_PUSH)

        assert outcome.status is DispatchStatus.ENQUEUED
        assert outcome.enqueued
        assert outcome.rule is rules[0]
        items = queue.items("pipeline")
        assert len(items) == 1
        assert items[0] == outcome.item

        pushed = json.loads(items[0])
        assert pushed["repo"] == "o/r"
        assert pushed["branch"] == "refs/heads/main"
        assert pushed["commands"] == ["make build", "make test"]

    async def test_forwarded_item_round_trips(self, rules, queue):
        dispatcher = Dispatcher(rules, queue, "pipeline", log=MagicMock())
        await dispatcher.dispatch(MAIN_PUSH)
        assert FilterRule(**json.loads(queue.pop("pipeline"))) == rules[0]

    async def test_exactly_one_append(self, rules, mock_queue):
        dispatcher = Dispatcher(rules, mock_queue, "pipeline", log=MagicMock())
        await dispatcher.dispatch(MAIN_PUSH)
        mock_queue.append.assert_awaited_once()
        queue_name, item = mock_queue.append.await_args.args
        assert queue_name == "pipeline"
        assert json.loads(item)["repo"] == "o/r"

    async def test_no_match_makes_no_append(self, rules, mock_queue):
        log = MagicMock()
        dispatcher = Dispatcher(rules, mock_queue, "pipeline", log=log)
        payload = '{"ref":"refs/heads/develop","repository":{"full_name":"o/r"}}'
        outcome = await dispatcher.dispatch(payload)

        assert outcome.status is DispatchStatus.NO_MATCH
        assert not outcome.enqueued
        assert outcome.rule is None
        assert outcome.item is None
        assert outcome.event.ref == "refs/heads/develop"
        mock_queue.append.assert_not_awaited()
        log.debug.assert_any_call("no_matching_rule", repo="o/r", ref="refs/heads/develop")

    async def test_missing_repository_is_no_match(self, rules, mock_queue):
        dispatcher = Dispatcher(rules, mock_queue, "pipeline", log=MagicMock())
        outcome = await dispatcher.dispatch('{"ref":"refs/heads/main"}')
        assert outcome.status is DispatchStatus.NO_MATCH
        mock_queue.append.assert_not_awaited()

    async def test_decode_error(self, rules, mock_queue):
        dispatcher = Dispatcher(rules, mock_queue, "pipeline", log=MagicMock())
        with pytest.raises(DecodeError):
            await dispatcher.dispatch("not json")
        mock_queue.append.assert_not_awaited()

    async def test_serialize_error(self, mock_queue):
        rules = [FilterRule(repo="o/r", branch="refs/heads/main", commands=[object()])]
        dispatcher = Dispatcher(rules, mock_queue, "pipeline", log=MagicMock())
        with pytest.raises(SerializeError):
            await dispatcher.dispatch(MAIN_PUSH)
        mock_queue.append.assert_not_awaited()

    async def test_enqueue_error_wraps_cause(self, rules, mock_queue):
        cause = ConnectionError("connection refused")
        mock_queue.append.side_effect = cause
        dispatcher = Dispatcher(rules, mock_queue, "pipeline", log=MagicMock())

        with pytest.raises(EnqueueError) as exc_info:
            await dispatcher.dispatch(MAIN_PUSH)

        err = exc_info.value
        assert err.__cause__ is cause
        assert err.queue_name == "pipeline"
        assert err.repo == "o/r"
        assert err.ref == "refs/heads/main"
        mock_queue.append.assert_awaited_once()

    async def test_first_matching_rule_forwarded(self, queue):
        rules = [
            FilterRule(repo="o/r", branch="refs/heads/main", commands=["first"]),
            FilterRule(repo="o/r", branch="refs/heads/main", commands=["second"]),
        ]
        dispatcher = Dispatcher(rules, queue, "pipeline", log=MagicMock())
        await dispatcher.dispatch(MAIN_PUSH)
        assert json.loads(queue.pop("pipeline"))["commands"] == ["first"]

    async def test_appends_preserve_arrival_order(self, queue):
        rules = [
            FilterRule(repo="o/a", branch="refs/heads/main", commands=["a"]),
            FilterRule(repo="o/b", branch="refs/heads/main", commands=["b"]),
        ]
        dispatcher = Dispatcher(rules, queue, "pipeline", log=MagicMock())
        await dispatcher.dispatch('{"ref":"refs/heads/main","repository":{"full_name":"o/b"}}')
        await dispatcher.dispatch('{"ref":"refs/heads/main","repository":{"full_name":"o/a"}}')

        assert json.loads(queue.pop("pipeline"))["repo"] == "o/b"
        assert json.loads(queue.pop("pipeline"))["repo"] == "o/a"
        assert queue.pop("pipeline") is None

    async def test_rules_not_mutated(self, rules, queue):
        dispatcher = Dispatcher(rules, queue, "pipeline", log=MagicMock())
        await dispatcher.dispatch(MAIN_PUSH)
        await dispatcher.dispatch(MAIN_PUSH)
        assert rules[0].commands == ["make build", "make test"]
        assert len(queue.items("pipeline")) == 2
