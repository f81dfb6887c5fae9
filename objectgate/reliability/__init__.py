"""
Reliability module: retry with backoff for conditional writes.
"""

from objectgate.reliability.retry import RetryPolicy, RetryStats, calculate_backoff, retry_with_backoff

__all__ = [
    "RetryPolicy",
    "RetryStats",
    "calculate_backoff",
    "retry_with_backoff",
]
