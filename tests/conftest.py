"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- Repository fixtures: in-memory content tree with a few seeded items
- Resolver fixtures: registry, caches and a ready-to-use resolver context
- Data fixtures: deterministic GUID factory and record builders
"""

from collections.abc import Callable, Iterator
from uuid import UUID

import pytest

from src.content_importer.caching.caches import RunCaches
from src.content_importer.config import ImporterConfig
from src.content_importer.models.records import ContentRef
from src.content_importer.observability.logger import clear_all_context
from src.content_importer.repository.memory import InMemoryRepository
from src.content_importer.resolvers.base import ResolverContext
from src.content_importer.resolvers.registry import ResolverRegistry, default_registry

# =============================================================================
# Repository Fixtures
# =============================================================================


@pytest.fixture
def repository() -> InMemoryRepository:
    """Create an empty in-memory repository."""
    return InMemoryRepository()


@pytest.fixture
def home(repository: InMemoryRepository) -> ContentRef:
    """Seed a /Home root item."""
    return repository.add_content("Home", "homePage")


@pytest.fixture
def news(repository: InMemoryRepository, home: ContentRef) -> ContentRef:
    """Seed /Home/News."""
    return repository.add_content("News", "newsList", parent=home)


# =============================================================================
# Resolver Fixtures
# =============================================================================


@pytest.fixture
def config() -> ImporterConfig:
    """Default importer configuration."""
    return ImporterConfig()


@pytest.fixture
def registry() -> ResolverRegistry:
    """Registry with every built-in resolver."""
    return default_registry()


@pytest.fixture
def caches() -> RunCaches:
    """Fresh run caches."""
    return RunCaches.create()


@pytest.fixture
def guid_factory() -> Callable[[], UUID]:
    """Deterministic GUID factory: 00000000-0000-0000-0000-000000000001, ...2, ..."""
    counter = iter(range(1, 1_000_000))

    def new_guid() -> UUID:
        return UUID(int=next(counter))

    return new_guid


@pytest.fixture
def context(
    registry: ResolverRegistry,
    caches: RunCaches,
    config: ImporterConfig,
    repository: InMemoryRepository,
    guid_factory: Callable[[], UUID],
) -> ResolverContext:
    """Resolver context bound to the in-memory repository."""
    return ResolverContext(
        registry=registry,
        caches=caches,
        config=config,
        repository=repository,
        new_guid=guid_factory,
        column="test",
    )


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def make_record() -> Callable[..., dict[str, str]]:
    """Build a raw record with name and docTypeAlias filled in.

    Example:
        record = make_record("About", parent="/Home", **{"tags|stringArray": "a,b"})
    """

    def _make(name: str, doc_type: str = "contentPage", **columns: str) -> dict[str, str]:
        return {"name": name, "docTypeAlias": doc_type, **columns}

    return _make


# =============================================================================
# Infrastructure Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_log_context() -> Iterator[None]:
    """Drop LogContext fields between tests."""
    yield
    clear_all_context()
