"""Unit tests for MQTT topic construction."""

from __future__ import annotations

from chorehub.mqtt import topics


class TestOperationalTopics:
    def test_status_topic(self):
        assert topics.status_topic(7) == "chorehub/chores/7/status"

    def test_attributes_topic(self):
        assert topics.attributes_topic(7) == "chorehub/chores/7/attributes"

    def test_done_command_topic(self):
        assert topics.done_command_topic(7) == "chorehub/chores/7/done/set"

    def test_done_command_subscription_uses_single_level_wildcard(self):
        assert topics.done_command_subscription() == "chorehub/chores/+/done/set"

    def test_availability_topic(self):
        assert topics.availability_topic() == "chorehub/status"

    def test_custom_root(self):
        assert topics.status_topic(7, root="house") == "house/chores/7/status"
        assert topics.availability_topic("house") == "house/status"


class TestDiscoveryTopics:
    def test_status_sensor(self):
        assert topics.discovery_status_topic(7) == "homeassistant/sensor/chorehub_chore_7_status/config"

    def test_done_button(self):
        assert topics.discovery_done_button_topic(7) == "homeassistant/button/chorehub_chore_7_done/config"

    def test_availability(self):
        assert topics.discovery_availability_topic() == "homeassistant/binary_sensor/chorehub_availability/config"

    def test_discovery_and_operational_roots_are_distinct(self):
        disc = topics.discovery_status_topic(7, root="chorehub", ha_root="ha")
        assert disc.startswith("ha/")
        assert not topics.status_topic(7).startswith("ha/")

    def test_deterministic(self):
        assert topics.discovery_status_topic(12) == topics.discovery_status_topic(12)
