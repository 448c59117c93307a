"""
BugSage - Log Analysis Core Package
"""

from src.core.log_classifier import ParsedLogRecord, parse_log, render_log_prompt, classify_log
from src.core.prompt_builder import AnalysisPrompt, build_analysis_prompt
from src.core.llm_analyzer import get_llm_analyzer, BaseLLMAnalyzer
from src.core.history_store import get_history_store, BaseHistoryStore

__all__ = [
    "ParsedLogRecord",
    "parse_log",
    "render_log_prompt",
    "classify_log",
    "AnalysisPrompt",
    "build_analysis_prompt",
    "get_llm_analyzer",
    "BaseLLMAnalyzer",
    "get_history_store",
    "BaseHistoryStore",
]
