"""
BugSage - LLM Analyzer
======================

Language model integration for root-cause analysis of error logs.
Supports multiple providers: Mock (for testing), Ollama, OpenAI.

Each provider takes an AnalysisPrompt (system instruction plus the
structured log document) and returns the model's Markdown analysis.
Provider failures surface as UpstreamServiceError.
"""

from abc import ABC, abstractmethod
from typing import Optional
import re

import httpx
import openai
from openai import AsyncOpenAI

from src.config import get_settings, LLMProvider, Settings
from src.core.errors import UpstreamServiceError
from src.core.prompt_builder import AnalysisPrompt
from shared.utils.logging import get_logger
from shared.utils.retry import RetryConfig, retry_async

logger = get_logger(__name__)

# Singleton instance
_analyzer_instance: Optional["BaseLLMAnalyzer"] = None


class BaseLLMAnalyzer(ABC):
    """Base class for text-generation providers."""

    provider: LLMProvider

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the analyzer."""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Clean up resources."""
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        """Check if analyzer is ready."""
        pass

    @abstractmethod
    async def analyze(self, prompt: AnalysisPrompt) -> str:
        """Return the Markdown analysis for a prompt."""
        pass


class MockLLMAnalyzer(BaseLLMAnalyzer):
    """
    Mock analyzer for development and testing.

    Builds a deterministic problem/analysis/solution report from the
    classified log using pattern matching, without any network access.
    """

    provider = LLMProvider.MOCK

    # (pattern, root cause, suggested fixes), first match wins
    ERROR_PATTERNS = [
        (
            r"(?i)cannot read propert|undefined is not|null\s*reference|NullPointerException|NoneType",
            "A value was null or undefined where the code expected an object.",
            ["Add a guard before dereferencing the value",
             "Trace where the value is initialised and make sure it is set before use",
             "Use optional chaining or null-safe accessors where absence is expected"]
        ),
        (
            r"(?i)ImportError|ModuleNotFoundError|module\s*not\s*found|ClassNotFoundException|cannot find module",
            "A module or class could not be resolved at runtime.",
            ["Check that the dependency is installed in the running environment",
             "Verify the import path and its casing",
             "Rebuild or reinstall dependencies after lockfile changes"]
        ),
        (
            r"(?i)SyntaxError|IndentationError|unexpected token",
            "The source could not be parsed.",
            ["Open the reported file and line and fix the syntax",
             "Check for a language feature unsupported by the runtime version"]
        ),
        (
            r"(?i)ECONNREFUSED|connection\s*refused|ETIMEDOUT|timed?\s*out|getaddrinfo",
            "A network call to a dependency failed or timed out.",
            ["Verify the target service is running and reachable",
             "Check host, port and network policy configuration",
             "Add retries with backoff around the call"]
        ),
        (
            r"(?i)unauthori[sz]ed|forbidden|\b401\b|\b403\b|invalid\s*token",
            "A request was rejected for missing or insufficient credentials.",
            ["Check that credentials are present and not expired",
             "Review the permissions granted to the calling identity"]
        ),
        (
            r"(?i)out\s*of\s*memory|heap\s*out|OOM|maximum call stack",
            "The process exhausted memory or stack space.",
            ["Look for unbounded recursion or growing collections",
             "Process large inputs in chunks",
             "Raise memory limits only after ruling out a leak"]
        ),
    ]

    def __init__(self):
        self._ready = False

    async def initialize(self) -> None:
        logger.info("Initializing Mock LLM Analyzer")
        self._ready = True

    async def shutdown(self) -> None:
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    def _diagnose(self, text: str) -> tuple[str, list[str]]:
        for pattern, root_cause, fixes in self.ERROR_PATTERNS:
            if re.search(pattern, text):
                return root_cause, fixes
        return (
            "The log does not match a known failure pattern.",
            ["Reproduce the failure with verbose logging enabled",
             "Check recent deployments and configuration changes"]
        )

    async def analyze(self, prompt: AnalysisPrompt) -> str:
        record = prompt.record
        root_cause, fixes = self._diagnose(prompt.structured_log)

        problem = record.error_type or "Unclassified error"
        if record.error_message:
            problem = f"{problem}: {record.error_message}"

        lines = ["## Problem", problem, "", "## Analysis", root_cause]
        if record.locations:
            path, line = record.locations[0]
            lines.append(f"The failure surfaces at `{path}` line {line}.")
        if record.framework or record.language:
            technology = " / ".join(t for t in (record.framework, record.language) if t)
            lines.append(f"Detected technology: {technology}.")
        lines.extend(["", "## Solution"])
        lines.extend(f"{i}. {fix}" for i, fix in enumerate(fixes, start=1))

        logger.info(
            "Mock LLM produced analysis",
            extra={"error_type": record.error_type, "frame_count": len(record.stack_trace)}
        )

        return "\n".join(lines) + "\n"


class OllamaLLMAnalyzer(BaseLLMAnalyzer):
    """
    Ollama-based analyzer for local LLM inference.

    Requires Ollama to be running with the configured model pulled.
    """

    provider = LLMProvider.OLLAMA

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.ollama_url = settings.ollama_url.rstrip("/")
        self.model_name = settings.llm_model
        self.settings = settings
        self._transport = transport
        self._ready = False
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        logger.info(f"Initializing Ollama LLM Analyzer with model: {self.model_name}")

        self._client = httpx.AsyncClient(
            timeout=self.settings.llm_timeout_seconds,
            transport=self._transport,
        )

        try:
            response = await self._client.get(f"{self.ollama_url}/api/tags")
            if response.status_code == 200:
                logger.info("Ollama connection established")
            else:
                logger.warning(f"Ollama responded with status {response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Could not connect to Ollama: {e}")

        # Requests are attempted even when the probe fails; Ollama may start later
        self._ready = True

    async def shutdown(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    async def _generate(self, prompt: AnalysisPrompt) -> httpx.Response:
        return await self._client.post(
            f"{self.ollama_url}/api/generate",
            json={
                "model": self.model_name,
                "system": prompt.system,
                "prompt": prompt.user,
                "stream": False,
                "options": {
                    "temperature": self.settings.llm_temperature,
                    "num_predict": self.settings.llm_max_tokens
                }
            }
        )

    async def analyze(self, prompt: AnalysisPrompt) -> str:
        if not self._client:
            raise UpstreamServiceError("Ollama analyzer is not initialized", self.provider.value)

        try:
            response = await retry_async(
                self._generate,
                prompt,
                config=RetryConfig(
                    max_attempts=self.settings.llm_max_retries,
                    retryable_exceptions=(httpx.TransportError,),
                ),
            )
        except httpx.HTTPError as e:
            logger.error(f"Ollama generation failed: {e}")
            raise UpstreamServiceError(f"Ollama request failed: {e}", self.provider.value) from e

        if response.status_code != 200:
            logger.error(
                f"Ollama returned status {response.status_code}",
                extra={"status": response.status_code}
            )
            raise UpstreamServiceError(
                f"Ollama returned status {response.status_code}",
                self.provider.value
            )

        analysis = response.json().get("response", "").strip()
        if not analysis:
            raise UpstreamServiceError("Ollama returned an empty response", self.provider.value)

        return analysis


class OpenAILLMAnalyzer(BaseLLMAnalyzer):
    """
    OpenAI chat-completions analyzer.

    Works with any OpenAI-compatible endpoint via ``openai_base_url``.
    """

    provider = LLMProvider.OPENAI

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self.model_name = settings.llm_model
        self._client = client
        self._ready = False

    async def initialize(self) -> None:
        logger.info(f"Initializing OpenAI LLM Analyzer with model: {self.model_name}")

        if self._client is None:
            if not self.settings.openai_api_key:
                logger.warning("OPENAI_API_KEY is not set; analysis requests will fail")
                return
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url,
                timeout=self.settings.llm_timeout_seconds,
                max_retries=0,
            )

        self._ready = True

    async def shutdown(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    async def analyze(self, prompt: AnalysisPrompt) -> str:
        if not self._client:
            raise UpstreamServiceError("OpenAI analyzer is not configured", self.provider.value)

        try:
            completion = await retry_async(
                self._client.chat.completions.create,
                model=self.model_name,
                messages=[
                    {"role": "system", "content": prompt.system},
                    {"role": "user", "content": prompt.user},
                ],
                temperature=self.settings.llm_temperature,
                max_tokens=self.settings.llm_max_tokens,
                config=RetryConfig(
                    max_attempts=self.settings.llm_max_retries,
                    retryable_exceptions=(openai.APIConnectionError, openai.RateLimitError),
                ),
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI completion failed: {e}")
            raise UpstreamServiceError(f"OpenAI request failed: {e}", self.provider.value) from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise UpstreamServiceError("OpenAI returned an empty completion", self.provider.value)

        return content


def get_llm_analyzer() -> BaseLLMAnalyzer:
    """
    Get the singleton LLM analyzer instance.

    Returns the appropriate analyzer based on configuration.
    """
    global _analyzer_instance

    if _analyzer_instance is None:
        settings = get_settings()
        if settings.llm_provider == LLMProvider.OLLAMA:
            _analyzer_instance = OllamaLLMAnalyzer(settings)
        elif settings.llm_provider == LLMProvider.OPENAI:
            _analyzer_instance = OpenAILLMAnalyzer(settings)
        else:
            _analyzer_instance = MockLLMAnalyzer()

    return _analyzer_instance


def reset_llm_analyzer() -> None:
    """Drop the singleton so the next call rebuilds it from settings."""
    global _analyzer_instance
    _analyzer_instance = None
