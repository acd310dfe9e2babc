"""Unit tests for inbound MQTT command parsing and routing."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from chorehub.exceptions import InvalidCommandTopicError
from chorehub.mqtt.command_routing import ChoreCommand, CommandRouter, parse_command_topic


@pytest.fixture
def store() -> MagicMock:
    store = MagicMock()
    store.mark_done = AsyncMock()
    return store


@pytest.fixture
def publisher() -> MagicMock:
    publisher = MagicMock()
    publisher.publish_status_and_attributes = AsyncMock(return_value=True)
    return publisher


class TestParseCommandTopic:
    def test_done_command(self):
        assert parse_command_topic("chorehub/chores/42/done/set") == ChoreCommand(chore_id=42, action="done")

    def test_custom_root(self):
        assert parse_command_topic("house/chores/1/done/set", root="house").chore_id == 1

    @pytest.mark.parametrize(
        "topic",
        [
            "chorehub/chores/abc/done/set",
            "chorehub/chores/4_2/done/set",
            "chorehub/chores/ 42/done/set",
            "chorehub/chores/+42/done/set",
            "chorehub/chores/\u0664\u0662/done/set",
            "chorehub/chores/-1/done/set",
            "chorehub/chores//done/set",
            "chorehub/rooms/42/done/set",
            "other/chores/42/done/set",
            "chorehub/chores/42",
            "chorehub",
        ],
    )
    def test_invalid_topics(self, topic):
        with pytest.raises(InvalidCommandTopicError):
            _ = parse_command_topic(topic)

    def test_error_names_bad_id(self):
        with pytest.raises(InvalidCommandTopicError, match="'abc' is not an integer"):
            _ = parse_command_topic("chorehub/chores/abc/done/set")


class TestCommandRouter:
    @pytest.mark.asyncio
    async def test_done_marks_chore_and_publishes(self, store, publisher, make_chore):
        chore = make_chore(42)
        store.mark_done.return_value = chore
        router = CommandRouter(store, publisher)

        await router.handle_message("chorehub/chores/42/done/set", b"1")

        store.mark_done.assert_awaited_once_with(42)
        publisher.publish_status_and_attributes.assert_awaited_once_with(chore)

    @pytest.mark.asyncio
    async def test_payload_is_ignored(self, store, publisher, make_chore):
        store.mark_done.return_value = make_chore(42)
        router = CommandRouter(store, publisher)

        await router.handle_message("chorehub/chores/42/done/set", b"")

        store.mark_done.assert_awaited_once_with(42)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("topic", ["chorehub/chores/abc/done/set", "chorehub/rooms/42/done/set", "chorehub/chores/4_2/done/set"])
    async def test_malformed_topic_is_dropped(self, store, publisher, caplog, topic):
        router = CommandRouter(store, publisher)

        with caplog.at_level(logging.WARNING):
            await router.handle_message(topic, b"1")

        store.mark_done.assert_not_awaited()
        publisher.publish_status_and_attributes.assert_not_awaited()
        assert any(r.levelno == logging.WARNING and "Dropping message" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_unknown_action_is_dropped(self, store, publisher, caplog):
        router = CommandRouter(store, publisher)

        with caplog.at_level(logging.WARNING):
            await router.handle_message("chorehub/chores/42/snooze/set", b"1")

        store.mark_done.assert_not_awaited()
        assert any("Unknown command 'snooze'" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_missing_chore_is_logged(self, store, publisher, caplog):
        store.mark_done.return_value = None
        router = CommandRouter(store, publisher)

        with caplog.at_level(logging.WARNING):
            await router.handle_message("chorehub/chores/99/done/set", b"1")

        publisher.publish_status_and_attributes.assert_not_awaited()
        assert any("Chore 99 not found" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_store_failure_does_not_escape(self, store, publisher, caplog):
        store.mark_done.side_effect = OSError("disk full")
        router = CommandRouter(store, publisher)

        with caplog.at_level(logging.ERROR):
            await router.handle_message("chorehub/chores/42/done/set", b"1")

        assert any(r.levelno == logging.ERROR for r in caplog.records)

    @pytest.mark.asyncio
    async def test_mark_chore_done_return_value(self, store, publisher, make_chore):
        router = CommandRouter(store, publisher)

        store.mark_done.return_value = make_chore(1)
        assert await router.mark_chore_done(1) is True
        store.mark_done.return_value = None
        assert await router.mark_chore_done(2) is False
