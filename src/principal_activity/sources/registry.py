"""Registry for discovering and instantiating record-store readers."""

from typing import Type

from principal_activity.models.settings import EngineSettings
from principal_activity.sources.base import BaseSourceReader
from principal_activity.sources.rest_source import RestSourceReader
from principal_activity.sources.sqlite_source import SqliteSourceReader


class SourceRegistry:
    """Discovers and provides record-store readers."""

    _readers: dict[str, Type[BaseSourceReader]] = {
        "sqlite": SqliteSourceReader,
        "rest": RestSourceReader,
    }

    @classmethod
    def get(cls, source_id: str, **kwargs) -> BaseSourceReader:
        """Get a reader instance for the given source. kwargs passed to reader __init__."""
        reader_cls = cls._readers.get(source_id.lower())
        if not reader_cls:
            raise ValueError(f"Unknown source: {source_id}. Available: {list(cls._readers.keys())}")
        return reader_cls(**kwargs)

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> BaseSourceReader:
        """Build the reader named by settings.source with its configured options."""
        if settings.source.lower() == "rest":
            if not settings.rest_url:
                raise ValueError("rest source requires rest_url (or PRINCIPAL_ACTIVITY_REST_URL)")
            return cls.get("rest", base_url=settings.rest_url, api_key=settings.rest_api_key)
        return cls.get(settings.source, db_path=settings.db_path)

    @classmethod
    def available_sources(cls) -> list[str]:
        """Return list of available source identifiers."""
        return list(cls._readers.keys())
