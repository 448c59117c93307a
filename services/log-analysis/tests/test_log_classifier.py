"""
BugSage - Log Classifier Tests
==============================

Unit tests for log parsing and prompt rendering.
"""

import dataclasses

import pytest

import sys
import os

# Add the service and repository roots to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', '..'))

from src.core.log_classifier import (
    ParsedLogRecord,
    classify_log,
    parse_log,
    render_log_prompt,
)


JS_TYPE_ERROR_LOG = (
    "TypeError: Cannot read property 'map' of undefined\n"
    "    at UserList (/app/src/components/UserList.js:15:23)\n"
    "    at App (/app/src/App.js:42:7)"
)


class TestErrorDetection:
    """Tests for error type and message extraction."""

    def test_empty_log(self):
        """Test that an empty log yields an empty record."""
        record = parse_log("")

        assert record == ParsedLogRecord()
        assert record.error_type is None
        assert record.error_message is None
        assert record.stack_trace == ()
        assert record.file_paths == ()
        assert record.line_numbers == ()
        assert record.framework is None
        assert record.language is None
        assert record.environment is None
        assert record.timestamp is None

    def test_javascript_type_error(self):
        """Test the canonical JavaScript TypeError with two frames."""
        record = parse_log(JS_TYPE_ERROR_LOG)

        assert record.error_type == "TypeError"
        assert record.error_message == "Cannot read property 'map' of undefined"
        assert record.language == "JavaScript/TypeScript"
        assert record.file_paths == ("/app/src/components/UserList.js", "/app/src/App.js")
        assert record.line_numbers == (15, 42)

    def test_only_first_error_line_is_used(self):
        """Test that later error lines are ignored."""
        record = parse_log("Error: first failure\nReferenceError: x is not defined")

        assert record.error_type == "Error"
        assert record.error_message == "first failure"

    def test_error_keyword_is_case_insensitive(self):
        """Test that the keyword match ignores case and keeps the log's spelling."""
        record = parse_log("worker crashed with error: disk full  ")

        assert record.error_type == "error"
        assert record.error_message == "disk full"

    def test_unhandled_promise_rejection(self):
        """Test the longest keyword in the set."""
        record = parse_log("UnhandledPromiseRejection: fetch failed")

        assert record.error_type == "UnhandledPromiseRejection"
        assert record.error_message == "fetch failed"

    def test_no_error_line(self):
        """Test a log without any error keyword followed by a colon."""
        record = parse_log("INFO server started on port 8080")

        assert record.error_type is None
        assert record.error_message is None


class TestStackTraceExtraction:
    """Tests for stack frames, file paths and line numbers."""

    def test_frames_are_trimmed_and_ordered(self):
        """Test that frames keep document order without leading whitespace."""
        record = parse_log(JS_TYPE_ERROR_LOG)

        assert record.stack_trace == (
            "at UserList (/app/src/components/UserList.js:15:23)",
            "at App (/app/src/App.js:42:7)",
        )

    def test_frame_without_location(self):
        """Test that frames with no path:line:col add no file path."""
        log = (
            "Error: boom\n"
            "    at Array.map (<anonymous>)\n"
            "    at load (/srv/app/loader.js:8:3)"
        )

        record = parse_log(log)

        assert len(record.stack_trace) == 2
        assert record.file_paths == ("/srv/app/loader.js",)
        assert record.line_numbers == (8,)

    def test_unparenthesized_location(self):
        """Test the 'at <path>:<line>:<col>' location shape."""
        record = parse_log("    at /srv/app/server.js:10:5 (internal)")

        assert record.file_paths == ("/srv/app/server.js",)
        assert record.line_numbers == (10,)

    def test_duplicate_paths_are_kept(self):
        """Test that repeated files appear once per frame."""
        log = (
            "    at a (/srv/app/util.js:1:1)\n"
            "    at b (/srv/app/util.js:9:2)"
        )

        record = parse_log(log)

        assert record.file_paths == ("/srv/app/util.js", "/srv/app/util.js")
        assert record.line_numbers == (1, 9)
        assert record.locations == [("/srv/app/util.js", 1), ("/srv/app/util.js", 9)]

    def test_path_containing_parentheses(self):
        """Test a Next.js App Router frame with a route group in its path."""
        record = parse_log(
            "Error: boom\n"
            "    at Home (webpack-internal:///(app-pages-browser)/./app/page.tsx:12:5)"
        )

        assert record.stack_trace == (
            "at Home (webpack-internal:///(app-pages-browser)/./app/page.tsx:12:5)",
        )
        assert record.file_paths == ("webpack-internal:///(app-pages-browser)/./app/page.tsx",)
        assert record.line_numbers == (12,)

    def test_eval_frame_uses_outer_location(self):
        """Test that the last line:col before the closing paren wins."""
        record = parse_log("    at eval (eval at <anonymous> (/app/x.js:1:2), <anonymous>:3:4)")

        assert record.file_paths == ("eval at <anonymous> (/app/x.js:1:2), <anonymous>",)
        assert record.line_numbers == (3,)

    def test_description_in_parentheses(self):
        """Test a frame whose description is itself parenthesized."""
        record = parse_log("    at (anonymous) (/app/x.js:1:2)")

        assert record.stack_trace == ("at (anonymous) (/app/x.js:1:2)",)
        assert record.line_numbers == (1,)
        assert record.file_paths == ("anonymous) (/app/x.js",)

    def test_unparenthesized_path_with_colons(self):
        """Test that the bare shape also takes the last line:col pair."""
        record = parse_log("    at file:///srv/app.mjs:7:9 (entry)")

        assert record.file_paths == ("file:///srv/app.mjs",)
        assert record.line_numbers == (7,)

    def test_line_without_parenthesized_part_is_not_a_frame(self):
        """Test that 'at' lines need a '(...)' after the description."""
        record = parse_log("    at (x)\n    at /srv/app.js:1:2")

        assert record.stack_trace == ()

    def test_paths_and_lines_stay_parallel(self):
        """Test the length invariant on a mixed log."""
        log = (
            "    at first (<anonymous>)\n"
            "    at second (/a.js:3:4)\n"
            "    at third (native)\n"
            "    at fourth (C:\\app\\b.js:12:1)"
        )

        record = parse_log(log)

        assert len(record.stack_trace) == 4
        assert len(record.file_paths) == len(record.line_numbers) == 2
        assert record.line_numbers == (3, 12)


class TestTechnologyDetection:
    """Tests for framework, language and environment rules."""

    def test_nextjs_without_react(self):
        """Test that getStaticProps alone identifies Next.js."""
        record = parse_log("Error: failed in getStaticProps for /blog")

        assert record.framework == "NextJS"

    def test_react_takes_priority(self):
        """Test that the first framework rule wins."""
        record = parse_log("ReactDOM render failed inside Vue bridge")

        assert record.framework == "React"

    @pytest.mark.parametrize("log,framework", [
        ("[Vue warn]: Error in render", "Vue"),
        ("NgModule import failed", "Angular"),
        ("plain server log", None),
    ])
    def test_framework_rules(self, log, framework):
        """Test each framework rule."""
        assert parse_log(log).framework == framework

    @pytest.mark.parametrize("log,language", [
        ("ImportError: No module named requests", "Python"),
        ("java.lang.NullPointerException at com.acme.Main", "Java"),
        ("System.NullReferenceException: Object reference not set", "C#/.NET"),
        ("undefined is not a function", "JavaScript/TypeScript"),
        ("segfault", None),
    ])
    def test_language_rules(self, log, language):
        """Test each language rule."""
        assert parse_log(log).language == language

    def test_cs_substring_is_a_loose_dotnet_match(self):
        """Any text containing 'CS' is reported as C#/.NET (known loose rule)."""
        assert parse_log("failed to load styles.CSS").language == "C#/.NET"
        assert parse_log("export to CSV failed").language == "C#/.NET"

    def test_local_takes_priority_over_production(self):
        """Test that the local rule is checked before production."""
        record = parse_log("production build served from localhost:3000")

        assert record.environment == "local"

    @pytest.mark.parametrize("log,environment", [
        ("connecting to 127.0.0.1:5432", "local"),
        ("host prod-db-1 unreachable", "production"),
        ("deploying to staging", "staging"),
        ("stage-api returned 500", "staging"),
        ("NODE_ENV=development", "development"),
        ("dev-worker restarted", "development"),
        ("no hints here", None),
    ])
    def test_environment_rules(self, log, environment):
        """Test each environment rule."""
        assert parse_log(log).environment == environment


class TestTimestampExtraction:
    """Tests for timestamp grammars."""

    def test_iso_wins_over_earlier_sql_timestamp(self):
        """Test that grammar order, not position, decides."""
        log = (
            "2024-01-15 10:30:00 starting worker\n"
            "2024-01-15T10:31:00.123Z worker failed"
        )

        assert parse_log(log).timestamp == "2024-01-15T10:31:00.123Z"

    def test_iso_with_offset(self):
        """Test an ISO timestamp with a numeric offset."""
        assert parse_log("at 2024-03-01T08:00:00+02:00 boom").timestamp == "2024-03-01T08:00:00+02:00"

    def test_iso_without_zone_falls_back_to_nothing(self):
        """Test that a zoneless ISO timestamp matches no grammar."""
        assert parse_log("2024-03-01T08:00:00 boom").timestamp is None

    def test_sql_timestamp(self):
        """Test the SQL-style grammar with fractional seconds."""
        assert parse_log("[2024-01-15 10:30:00.250] ERROR").timestamp == "2024-01-15 10:30:00.250"

    def test_ctime_timestamp(self):
        """Test the ctime-style grammar."""
        assert parse_log("Mon Jan 15 10:30:00 2024 kernel panic").timestamp == "Mon Jan 15 10:30:00 2024"


class TestParseProperties:
    """Tests for purity and robustness of parse_log."""

    def test_parse_is_idempotent(self):
        """Test that parsing twice gives identical records."""
        assert parse_log(JS_TYPE_ERROR_LOG) == parse_log(JS_TYPE_ERROR_LOG)

    def test_record_is_immutable(self):
        """Test that records cannot be modified."""
        record = parse_log(JS_TYPE_ERROR_LOG)

        with pytest.raises(dataclasses.FrozenInstanceError):
            record.error_type = "Other"

    @pytest.mark.parametrize("log", [
        "at " * 5000,
        "    at x " + "(" * 20000,
        "Error:" * 5000,
        "(a:1:" * 5000,
        "\n" * 10000,
        "\x00\ufffd binary-ish \r\n at y (z)",
    ])
    def test_adversarial_input_does_not_raise(self, log):
        """Test that unusual input returns a well-formed record."""
        record = parse_log(log)

        assert len(record.file_paths) == len(record.line_numbers)


class TestRenderLogPrompt:
    """Tests for the Markdown prompt document."""

    def test_full_document(self):
        """Test the exact rendering of the canonical log."""
        record = parse_log(JS_TYPE_ERROR_LOG)

        document = render_log_prompt(record, JS_TYPE_ERROR_LOG)

        assert document == (
            "## Error Details\n"
            "- Type: TypeError\n"
            "- Message: Cannot read property 'map' of undefined\n"
            "\n"
            "## Detected Technology\n"
            "- Language: JavaScript/TypeScript\n"
            "\n"
            "## Stack Trace Analysis\n"
            "- Relevant Files: /app/src/components/UserList.js, /app/src/App.js\n"
            "\n"
            "## Raw Logs\n"
            "```\n"
            f"{JS_TYPE_ERROR_LOG}\n"
            "```\n"
        )

    def test_empty_record_renders_raw_logs_only(self):
        """Test that the raw logs section is always present."""
        assert render_log_prompt(ParsedLogRecord(), "hello") == "## Raw Logs\n```\nhello\n```\n"

    def test_raw_log_is_verbatim(self):
        """Test that whitespace and markup in the log are untouched."""
        raw = "  indented\t\nline with ``` fence\n\ntrailing  "

        document = render_log_prompt(parse_log(raw), raw)

        assert f"## Raw Logs\n```\n{raw}\n```\n" in document
        assert document.endswith(f"```\n{raw}\n```\n")

    def test_context_section_omitted_without_environment_or_timestamp(self):
        """Test that the context section needs one of its fields."""
        record = ParsedLogRecord(error_type="Error", framework="Vue")

        document = render_log_prompt(record, "x")

        assert "## Context" not in document

    def test_context_section_with_timestamp_only(self):
        """Test a context section holding only a timestamp."""
        record = ParsedLogRecord(timestamp="2024-01-15 10:30:00")

        document = render_log_prompt(record, "x")

        assert "## Context\n- Timestamp: 2024-01-15 10:30:00\n\n## Raw Logs" in document
        assert "- Environment:" not in document

    def test_stack_trace_without_files(self):
        """Test the placeholder when frames have no locations."""
        record = parse_log("    at Array.map (<anonymous>)")

        document = render_log_prompt(record, "raw")

        assert "## Stack Trace Analysis\n- Relevant Files: None detected\n" in document

    def test_sections_separated_by_one_blank_line(self):
        """Test section spacing on a fully populated record."""
        log = JS_TYPE_ERROR_LOG + "\nReact tree on staging at 2024-01-15T10:31:00Z"

        document = render_log_prompt(parse_log(log), log)

        headers = [line for line in document.splitlines() if line.startswith("## ")]
        assert headers == [
            "## Error Details",
            "## Detected Technology",
            "## Stack Trace Analysis",
            "## Context",
            "## Raw Logs",
        ]
        prompt_part = document.split("## Raw Logs")[0]
        assert "\n\n\n" not in prompt_part
        assert prompt_part.count("\n\n## ") == 3

    def test_classify_log_combines_parse_and_render(self):
        """Test the convenience wrapper."""
        record, document = classify_log(JS_TYPE_ERROR_LOG)

        assert record == parse_log(JS_TYPE_ERROR_LOG)
        assert document == render_log_prompt(record, JS_TYPE_ERROR_LOG)
