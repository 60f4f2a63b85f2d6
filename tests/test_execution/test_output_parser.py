"""Tests for container output parser."""

import json

from gemclaw.execution.output_parser import OUTPUT_END_MARKER, OUTPUT_START_MARKER, ContainerOutputParser


class TestContainerOutputParser:
    def test_parses_valid_output(self):
        parser = ContainerOutputParser()
        assert parser.feed(OUTPUT_START_MARKER) is None
        assert parser.feed(json.dumps({"status": "success", "result": "Hello"})) is None
        output = parser.feed(OUTPUT_END_MARKER)
        assert output is not None
        assert output.status == "ok"
        assert output.result == "Hello"

    def test_parses_error_output(self):
        parser = ContainerOutputParser()
        parser.feed(OUTPUT_START_MARKER)
        parser.feed(json.dumps({"status": "error", "error": "Something failed"}))
        output = parser.feed(OUTPUT_END_MARKER)
        assert output.status == "error"
        assert output.error == "Something failed"

    def test_error_without_message(self):
        parser = ContainerOutputParser()
        parser.feed(OUTPUT_START_MARKER)
        parser.feed(json.dumps({"status": "error"}))
        assert parser.feed(OUTPUT_END_MARKER).error == "Unknown error"

    def test_extracts_session_id(self):
        parser = ContainerOutputParser()
        parser.feed(OUTPUT_START_MARKER)
        parser.feed(json.dumps({"status": "success", "result": "Done", "newSessionId": "sess-123"}))
        output = parser.feed(OUTPUT_END_MARKER)
        assert output.new_session_id == "sess-123"

    def test_ignores_lines_outside_markers(self):
        parser = ContainerOutputParser()
        assert parser.feed("random log line") is None
        assert parser.feed("another log line") is None

    def test_handles_invalid_json(self):
        parser = ContainerOutputParser()
        parser.feed(OUTPUT_START_MARKER)
        parser.feed("not valid json {{{")
        output = parser.feed(OUTPUT_END_MARKER)
        assert output.status == "error"
        assert "Failed to parse" in output.error

    def test_non_object_payload(self):
        parser = ContainerOutputParser()
        parser.feed(OUTPUT_START_MARKER)
        parser.feed("[1, 2]")
        assert parser.feed(OUTPUT_END_MARKER).status == "error"

    def test_multiline_json(self):
        parser = ContainerOutputParser()
        parser.feed(OUTPUT_START_MARKER)
        for line in json.dumps({"status": "success", "result": "x"}, indent=2).splitlines():
            parser.feed(line + "\n")
        assert parser.feed(OUTPUT_END_MARKER + "\r\n").result == "x"

    def test_multiple_blocks(self):
        parser = ContainerOutputParser()

        parser.feed(OUTPUT_START_MARKER)
        parser.feed(json.dumps({"result": "First"}))
        first = parser.feed(OUTPUT_END_MARKER)

        parser.feed(OUTPUT_START_MARKER)
        parser.feed(json.dumps({"result": "Second"}))
        second = parser.feed(OUTPUT_END_MARKER)

        assert first.result == "First"
        assert second.result == "Second"
