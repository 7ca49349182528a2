# Observability module
from .logging_config import (
    NarrativeLogger,
    StructuredLogger,
    configure_logging,
    get_logger,
    get_narrative_logger,
)

__all__ = [
    "NarrativeLogger",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "get_narrative_logger",
]
