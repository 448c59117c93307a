"""
BugSage - Prompt Builder
========================

Turns a classified log and the caller's technology hints into the
messages sent to the text-generation provider.
"""

from dataclasses import dataclass, replace

from shared.constants import BACKEND_HINTS, FRONTEND_HINTS, NOT_SPECIFIED
from src.api.schemas import AnalysisContext
from src.core.log_classifier import ParsedLogRecord, parse_log, render_log_prompt

SYSTEM_INSTRUCTION = (
    "You are an expert debugging assistant. Analyze the provided logs and error "
    "messages to identify the root cause and suggest solutions. Format your "
    "response in markdown with clear sections for the problem, analysis, and solution."
)

REQUEST_LINE = (
    "Please analyze these logs and provide a detailed explanation of the issue, "
    "its root cause, and potential solutions:"
)


@dataclass(frozen=True)
class AnalysisPrompt:
    """Everything a provider needs for one completion."""
    system: str
    user: str
    record: ParsedLogRecord
    structured_log: str


def apply_context_hints(record: ParsedLogRecord, context: AnalysisContext) -> ParsedLogRecord:
    """
    Override detected framework/language with the caller's hints.

    Only hints naming a known framework or backend take effect; free-text
    hints reach the model through the context block instead.
    """
    framework = FRONTEND_HINTS.get(context.frontend.strip().lower())
    language = BACKEND_HINTS.get(context.backend.strip().lower())

    return replace(
        record,
        framework=framework.value if framework else record.framework,
        language=language.value if language else record.language,
    )


def render_context_block(context: AnalysisContext) -> str:
    if not context.has_hints():
        return ""
    return (
        "\nContext:\n"
        f"- Frontend: {context.frontend or NOT_SPECIFIED}\n"
        f"- Backend: {context.backend or NOT_SPECIFIED}\n"
        f"- Platform: {context.platform or NOT_SPECIFIED}"
    )


def build_analysis_prompt(logs: str, context: AnalysisContext) -> AnalysisPrompt:
    """
    Classify ``logs`` and assemble the provider messages.

    Args:
        logs: Raw log text (already validated as non-blank by the caller)
        context: Technology hints from the request

    Returns:
        AnalysisPrompt with the hint-adjusted record and rendered document
    """
    record = apply_context_hints(parse_log(logs), context)
    structured_log = render_log_prompt(record, logs)

    user = f"{REQUEST_LINE}{render_context_block(context)}\n\n{structured_log}"

    return AnalysisPrompt(
        system=SYSTEM_INSTRUCTION,
        user=user,
        record=record,
        structured_log=structured_log,
    )
