from .classifier import ClassifiedError, classify
from .retry import RetryPolicy, RetryScheduler, execute_with_retry

__all__ = ["ClassifiedError", "classify", "RetryPolicy", "RetryScheduler", "execute_with_retry"]
