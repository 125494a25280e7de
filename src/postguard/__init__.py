"""postguard -- outbound content defense and delivery.

Top-level convenience re-exports::

    from postguard import PublishPipeline, PublishRequest, build_pipeline
    from postguard.content import sanitize, validate  # content stages
"""

__version__ = "0.1.0"

from postguard.config import Settings
from postguard.pipeline import PublishPipeline, PublishRequest, build_pipeline
from postguard.publish.result import ErrorKind, PublishFailure, PublishSuccess

__all__ = [
    "__version__",
    "ErrorKind",
    "PublishFailure",
    "PublishPipeline",
    "PublishRequest",
    "PublishSuccess",
    "Settings",
    "build_pipeline",
]
