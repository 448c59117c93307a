"""
BugSage - Shared Utilities Package
==================================

Logging, REST client and retry helpers used by the BugSage services.
"""

from shared.utils.logging import get_logger, setup_logging
from shared.utils.http_client import RestClient, RestClientConfig
from shared.utils.retry import with_retry, retry_async, RetryConfig

__all__ = [
    "get_logger",
    "setup_logging",
    "RestClient",
    "RestClientConfig",
    "with_retry",
    "retry_async",
    "RetryConfig",
]
