"""
BugSage - Log Classifier
========================

Extracts structured facts from free-form error logs and renders them
into the Markdown document sent to the language model.

Detected fields:
- Error type and message (first ``<Keyword>: <message>`` line)
- Stack frames, with the file path and line number of each frame
- Framework, language and runtime environment (ordered keyword rules)
- Timestamp (ISO 8601, SQL-style or ctime-style)

Every detection runs independently over the whole text. The functions
here are pure: no I/O, no shared state, and no exceptions for any
string input.
"""

from dataclasses import dataclass
from typing import Optional
import re

from shared.constants import Environment, Framework, Language
from shared.utils.logging import get_logger

logger = get_logger(__name__)


ERROR_KEYWORDS = (
    "Error",
    "Exception",
    "TypeError",
    "SyntaxError",
    "ReferenceError",
    "RangeError",
    "URIError",
    "EvalError",
    "UnhandledPromiseRejection",
)

# Leftmost match wins; at a given position the keywords are tried in order
ERROR_LINE_PATTERN = re.compile(
    r"(" + "|".join(ERROR_KEYWORDS) + r"):\s*([^\n]*)",
    re.IGNORECASE,
)

# Start of a stack frame: "at" opening a line or following whitespace
FRAME_START_PATTERN = re.compile(r"(?:^|(?<=\s))at[ \t]")

# Location tails; zero-width so overlapping candidates are all visited
PAREN_LOCATION_TAIL = re.compile(r"(?=:(\d+):(\d+)\))", re.ASCII)
BARE_LOCATION_TAIL = re.compile(r"(?=:(\d+):(\d+))", re.ASCII)

BARE_LOCATION_START = re.compile(r"at\s+")

TIMESTAMP_PATTERNS = (
    # ISO 8601 with zone designator
    re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})", re.ASCII),
    # SQL-style
    re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?:\.\d+)?", re.ASCII),
    # ctime-style, e.g. "Mon Jan 15 10:30:00 2024"
    re.compile(r"\w{3} \w{3} \d{2} \d{2}:\d{2}:\d{2} \d{4}", re.ASCII),
)

# (substrings, value) pairs per field, evaluated top to bottom
FRAMEWORK_RULES = (
    (("React", "ReactDOM", "useState"), Framework.REACT.value),
    (("Vue", "VueRouter", "Vuex"), Framework.VUE.value),
    (("Angular", "NgModule", "Component({"), Framework.ANGULAR.value),
    (("Next", "getServerSideProps", "getStaticProps"), Framework.NEXTJS.value),
)

# "CS" matches any text containing that bigram (CSS, CSV, ...); kept as is
LANGUAGE_RULES = (
    (("TypeError", "undefined is not a function", "Cannot read property"), Language.JAVASCRIPT.value),
    (("ImportError", "IndentationError", "SyntaxError: invalid syntax"), Language.PYTHON.value),
    (("NullPointerException", "ClassNotFoundException"), Language.JAVA.value),
    (("System.NullReferenceException", "CS"), Language.DOTNET.value),
)

ENVIRONMENT_RULES = (
    (("localhost", "127.0.0.1"), Environment.LOCAL.value),
    (("production", "prod-"), Environment.PRODUCTION.value),
    (("staging", "stage-"), Environment.STAGING.value),
    (("development", "dev-"), Environment.DEVELOPMENT.value),
)


@dataclass(frozen=True)
class ParsedLogRecord:
    """
    Facts extracted from one log.

    ``file_paths`` and ``line_numbers`` are parallel: entry ``i`` of both
    comes from the same stack frame. Frames without a resolvable location
    contribute to ``stack_trace`` only.
    """
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    stack_trace: tuple[str, ...] = ()
    file_paths: tuple[str, ...] = ()
    line_numbers: tuple[int, ...] = ()
    framework: Optional[str] = None
    language: Optional[str] = None
    environment: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def locations(self) -> list[tuple[str, int]]:
        """(path, line) pairs in stack trace order."""
        return list(zip(self.file_paths, self.line_numbers))


def _first_rule_match(text: str, rules: tuple) -> Optional[str]:
    for needles, value in rules:
        if any(needle in text for needle in needles):
            return value
    return None


def _detect_error(text: str) -> tuple[Optional[str], Optional[str]]:
    match = ERROR_LINE_PATTERN.search(text)
    if not match:
        return None, None
    message = match.group(2).strip()
    return match.group(1), message or None


def _find_frame(line: str) -> Optional[str]:
    """
    Return the "at <description> (<location>)" frame on a line, if any.

    The frame runs from the first "at" to the last ")" of the line. It
    needs some "(" with at least one character of description before it
    and one character of location after it. Later "at" starts leave a
    narrower window, so only the first one is checked.
    """
    close = line.rfind(")")
    if close == -1:
        return None

    start = FRAME_START_PATTERN.search(line)
    if start is None:
        return None

    # "at", one whitespace, one description character, then "("
    if line.rfind("(", start.start() + 4, close - 1) == -1:
        return None

    return line[start.start():close + 1].strip()


def _last_match(pattern: re.Pattern, text: str, pos: int) -> Optional[re.Match]:
    last = None
    for last in pattern.finditer(text, pos):
        pass
    return last


def _extract_location(frame: str) -> Optional[tuple[str, int]]:
    """
    Resolve the source location of a frame.

    "(<path>:<line>:<col>)" is read from the first "(" to the last
    ":<line>:<col>)", so paths may contain parentheses and colons.
    Otherwise "at <path>:<line>:<col>" is tried, again taking the last
    ":<line>:<col>".
    """
    open_paren = frame.find("(")
    if open_paren != -1:
        tail = _last_match(PAREN_LOCATION_TAIL, frame, open_paren + 2)
        if tail:
            return frame[open_paren + 1:tail.start()], int(tail.group(1))

    lead = BARE_LOCATION_START.match(frame)
    if lead:
        tail = _last_match(BARE_LOCATION_TAIL, frame, lead.end() + 1)
        if tail:
            return frame[lead.end():tail.start()], int(tail.group(1))

    return None


def _detect_timestamp(text: str) -> Optional[str]:
    for pattern in TIMESTAMP_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def parse_log(log_content: str) -> ParsedLogRecord:
    """
    Classify a raw log.

    Args:
        log_content: Log text of any length, possibly empty

    Returns:
        ParsedLogRecord; fields with nothing detected are None or empty
    """
    error_type, error_message = _detect_error(log_content)

    stack_trace = tuple(
        frame
        for frame in (_find_frame(line) for line in log_content.split("\n"))
        if frame is not None
    )

    locations = [
        location
        for location in (_extract_location(frame) for frame in stack_trace)
        if location is not None
    ]

    return ParsedLogRecord(
        error_type=error_type,
        error_message=error_message,
        stack_trace=stack_trace,
        file_paths=tuple(path for path, _ in locations),
        line_numbers=tuple(line for _, line in locations),
        framework=_first_rule_match(log_content, FRAMEWORK_RULES),
        language=_first_rule_match(log_content, LANGUAGE_RULES),
        environment=_first_rule_match(log_content, ENVIRONMENT_RULES),
        timestamp=_detect_timestamp(log_content),
    )


def _section(title: str, bullets: list[tuple[str, Optional[str]]]) -> str:
    lines = [f"## {title}"]
    lines.extend(f"- {label}: {value}" for label, value in bullets if value)
    return "\n".join(lines) + "\n\n"


def render_log_prompt(record: ParsedLogRecord, raw_log: str) -> str:
    """
    Render a parsed record and its source log as sectioned Markdown.

    Sections without any populated field are left out; ``## Raw Logs``
    is always present and holds ``raw_log`` unchanged in a fenced block.
    """
    document = ""

    if record.error_type or record.error_message:
        document += _section("Error Details", [
            ("Type", record.error_type),
            ("Message", record.error_message),
        ])

    if record.framework or record.language:
        document += _section("Detected Technology", [
            ("Framework", record.framework),
            ("Language", record.language),
        ])

    if record.stack_trace:
        document += _section("Stack Trace Analysis", [
            ("Relevant Files", ", ".join(record.file_paths) or "None detected"),
        ])

    if record.environment or record.timestamp:
        document += _section("Context", [
            ("Environment", record.environment),
            ("Timestamp", record.timestamp),
        ])

    document += f"## Raw Logs\n```\n{raw_log}\n```\n"

    return document


def classify_log(log_content: str) -> tuple[ParsedLogRecord, str]:
    """Parse a log and render its prompt document in one step."""
    record = parse_log(log_content)

    logger.debug(
        "Classified log",
        extra={
            "log_chars": len(log_content),
            "error_type": record.error_type,
            "frame_count": len(record.stack_trace),
            "framework": record.framework,
            "language": record.language,
            "environment": record.environment,
        }
    )

    return record, render_log_prompt(record, log_content)
