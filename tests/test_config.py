"""
Tests for YAML configuration loading.
"""

import pytest
import yaml

from busyblocks.config import AppConfig

BASE_CONFIG = {
    "server_url": "https://cloud.example.com/remote.php/dav/",
    "username": "alice",
    "password": "secret",
    "organizer": {"email": "alice@example.com", "name": "Alice"},
    "participants": [
        {"name": "max", "email": "max@example.com"},
        {"name": "lab", "email": "lab@example.com", "cutype": "resource"},
    ],
    "resources": [
        {"id": "room-101", "name": "Room 101", "email": "room-101@example.com"},
        {"id": "beamer"},
    ],
}


def _write(tmp_path, data) -> AppConfig:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return AppConfig.load_from_yaml(path)


class TestAppConfig:
    """Tests for AppConfig loading and lookups."""

    def test_load_from_yaml(self, tmp_path):
        """Test loading a complete config file."""
        config = _write(tmp_path, BASE_CONFIG)

        assert config.timezone == "Europe/Berlin"
        assert config.request_timeout == 30
        assert config.get_auth() == ("alice", "secret")
        assert config.organizer.to_identity().role == "CHAIR"
        assert config.participants[1].cutype == "RESOURCE"

    def test_missing_file(self, tmp_path):
        """A missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_no_username_means_no_auth(self, tmp_path):
        """Without a username no credentials are sent."""
        data = {**BASE_CONFIG, "username": ""}

        assert _write(tmp_path, data).get_auth() is None

    def test_resolve_participant(self, tmp_path):
        """Aliases resolve case-insensitively, emails pass through lowercased."""
        config = _write(tmp_path, BASE_CONFIG)

        assert config.resolve_participant("MAX").address == "max@example.com"
        assert config.resolve_participant("Someone@Example.com").address == "someone@example.com"
        with pytest.raises(ValueError, match="Unknown participant"):
            config.resolve_participant("nobody")

    def test_resolve_resource(self, tmp_path):
        """Configured resources keep their address, unknown ids become tags."""
        config = _write(tmp_path, BASE_CONFIG)

        room = config.resolve_resource("room-101")
        assert room.address == "room-101@example.com"
        assert room.as_attendee().cutype == "ROOM"
        assert config.resolve_resource("unknown").id == "unknown"

    def test_duplicate_participants_rejected(self, tmp_path):
        """Participant aliases must be unique."""
        data = {
            **BASE_CONFIG,
            "participants": [
                {"name": "max", "email": "max@example.com"},
                {"name": "Max", "email": "other@example.com"},
            ],
        }

        with pytest.raises(ValueError, match="Duplicate participant name"):
            _write(tmp_path, data)

    def test_duplicate_resources_rejected(self, tmp_path):
        """Resource ids must be unique."""
        data = {**BASE_CONFIG, "resources": [{"id": "r1"}, {"id": "r1"}]}

        with pytest.raises(ValueError, match="Duplicate resource ids"):
            _write(tmp_path, data)

    def test_invalid_values_rejected(self, tmp_path):
        """Non-positive timeouts and unknown cutypes are rejected."""
        with pytest.raises(ValueError):
            _write(tmp_path, {**BASE_CONFIG, "request_timeout": 0})
        with pytest.raises(ValueError):
            _write(tmp_path, {**BASE_CONFIG, "participants": [{"name": "x", "email": "x@example.com", "cutype": "ALIEN"}]})
