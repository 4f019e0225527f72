"""Record-store readers for principal activity."""

from principal_activity.sources.base import BaseSourceReader
from principal_activity.sources.registry import SourceRegistry

__all__ = ["BaseSourceReader", "SourceRegistry"]
