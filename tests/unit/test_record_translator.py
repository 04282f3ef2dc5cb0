"""Unit tests for dump.record -> add translation."""

from __future__ import annotations

from drndump.translate.record import add_command


def _record() -> dict:
    return {
        "type": "dump.record",
        "dataset": "Default",
        "inReplyTo": "1a2b3c",
        "body": {"table": "Users", "key": "alice", "values": {"age": 30, "tags": ["a"]}},
    }


class TestAddCommand:
    def test_rewrites_envelope(self):
        command = add_command(_record())
        assert command["type"] == "add"
        assert "inReplyTo" not in command
        assert command["dataset"] == "Default"

    def test_body_passes_through(self):
        message = _record()
        command = add_command(message)
        assert command["body"] is message["body"]

    def test_does_not_mutate_input(self):
        message = _record()
        add_command(message)
        assert message["type"] == "dump.record"
        assert message["inReplyTo"] == "1a2b3c"

    def test_idempotent(self):
        once = add_command(_record())
        assert add_command(once) == once

    def test_unknown_envelope_fields_kept(self):
        message = {**_record(), "date": "2014-01-01T00:00:00Z", "id": "x"}
        command = add_command(message)
        assert command["date"] == "2014-01-01T00:00:00Z"
        assert command["id"] == "x"
