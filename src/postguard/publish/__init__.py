"""Platform publishing: adapters, retry policy and publish results."""

from postguard.publish.adapter import PlatformAdapter, ThreadState
from postguard.publish.linkedin import LinkedInAdapter
from postguard.publish.result import (
    ErrorKind,
    PublishedRecord,
    PublishFailure,
    PublishResult,
    PublishSuccess,
    to_record,
)
from postguard.publish.retry import RetryPolicy
from postguard.publish.twitter import TwitterAdapter

__all__ = [
    "ErrorKind",
    "LinkedInAdapter",
    "PlatformAdapter",
    "PublishFailure",
    "PublishResult",
    "PublishSuccess",
    "PublishedRecord",
    "RetryPolicy",
    "ThreadState",
    "TwitterAdapter",
    "to_record",
]
