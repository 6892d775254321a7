import os

import pytest
import pytest_asyncio

from drift.config import DriftConfig, ServiceConfig
from drift.patterns.models import PatternStatus
from drift.service.pattern_service import (
    PatternService,
    compute_health_score,
    create_pattern_service,
)
from drift.storage.base import PatternFilter
from drift.storage.memory import InMemoryPatternRepository
from drift.storage.unified_store import UnifiedFilePatternRepository

from conftest import make_pattern


@pytest_asyncio.fixture
async def service(tmp_path):
    repository = InMemoryPatternRepository()
    await repository.initialize()
    yield PatternService(repository, str(tmp_path))
    await repository.close()


async def seed(service):
    await service.repository.add_many([
        make_pattern("p1", category="api", subcategory="routes", status="approved", confidence=0.95,
                     name="Route handlers", description="Express route handler structure"),
        make_pattern("p2", category="api", subcategory="routes", confidence=0.75,
                     name="Route params", description="Params are validated"),
        make_pattern("p3", category="api", subcategory="responses", confidence=0.6,
                     name="Response envelope"),
        make_pattern("p4", category="security", status="ignored", confidence=0.9,
                     name="Input sanitizing", description="Inputs go through sanitize()"),
    ])


# ==================== Status ====================

@pytest.mark.asyncio
async def test_status_of_empty_repository(service):
    status = await service.get_status()

    assert status.total_patterns == 0
    assert status.health_score == 100
    assert status.by_status == {"discovered": 0, "approved": 0, "ignored": 0}


@pytest.mark.asyncio
async def test_status_counts(service):
    await seed(service)

    status = await service.get_status()

    assert status.total_patterns == 4
    assert status.by_status == {"discovered": 2, "approved": 1, "ignored": 1}
    assert status.by_category == {"api": 3, "security": 1}
    assert status.by_confidence_level == {"high": 2, "medium": 1, "low": 1}
    # 60 * 1/4 + 40 * 0.8
    assert status.health_score == 47


@pytest.mark.asyncio
async def test_status_is_cached_until_a_service_write(service):
    await service.get_status()

    await service.repository.add(make_pattern("direct"))
    assert (await service.get_status()).total_patterns == 0

    await service.add_pattern(make_pattern("through-service"))
    assert (await service.get_status()).total_patterns == 2


@pytest.mark.asyncio
async def test_status_cache_respects_ttl(tmp_path):
    repository = InMemoryPatternRepository()
    service = PatternService(repository, str(tmp_path), ServiceConfig(status_cache_ttl_ms=0))
    await service.get_status()

    await repository.add(make_pattern("direct"))

    assert (await service.get_status()).total_patterns == 1


def test_health_score_rises_with_approval():
    discovered = [make_pattern(f"p{i}", confidence=0.8) for i in range(4)]
    approved = [make_pattern(f"p{i}", confidence=0.8, status="approved") for i in range(4)]

    assert compute_health_score([]) == 100
    assert compute_health_score(discovered) == 32
    assert compute_health_score(approved) == 92
    assert compute_health_score(approved[:2] + discovered[2:]) == 62


# ==================== Categories ====================

@pytest.mark.asyncio
async def test_categories(service):
    await seed(service)

    categories = await service.get_categories()

    assert [c.category for c in categories] == ["api", "security"]
    api = categories[0]
    assert api.count == 3
    assert api.approved_count == 1
    assert api.discovered_count == 2
    assert api.ignored_count == 0
    assert api.high_confidence_count == 1
    assert categories[1].ignored_count == 1


@pytest.mark.asyncio
async def test_categories_omit_empty(service):
    assert await service.get_categories() == []


# ==================== Listing ====================

@pytest.mark.asyncio
async def test_list_patterns_paginates(service):
    await seed(service)

    page = await service.list_patterns({"offset": 0, "limit": 2})

    assert len(page.items) == 2
    assert page.total == 4
    assert page.has_more is True
    assert page.limit == 2
    assert [item.name for item in page.items] == ["Input sanitizing", "Response envelope"]


@pytest.mark.asyncio
async def test_list_patterns_sorted(service):
    await seed(service)

    page = await service.list_patterns({"sort_by": "confidence", "sort_direction": "desc"})

    assert [item.id for item in page.items] == ["p1", "p4", "p2", "p3"]
    assert page.has_more is False


@pytest.mark.asyncio
async def test_list_patterns_with_filter(service):
    await seed(service)

    page = await service.list_patterns(None, PatternFilter(min_confidence=0.9))

    assert {item.id for item in page.items} == {"p1", "p4"}


@pytest.mark.asyncio
async def test_list_by_category_and_status(service):
    await seed(service)

    by_category = await service.list_by_category("security")
    by_status = await service.list_by_status("discovered")

    assert [item.id for item in by_category.items] == ["p4"]
    assert {item.id for item in by_status.items} == {"p2", "p3"}


# ==================== Lookup ====================

@pytest.mark.asyncio
async def test_get_pattern(service):
    await seed(service)

    assert (await service.get_pattern("p1")).name == "Route handlers"
    assert await service.get_pattern("missing") is None


@pytest.mark.asyncio
async def test_pattern_with_examples(service, tmp_path):
    source = "\n".join(
        ["// header", "import x from 'x';", "", "// helpers", ""]
        + ["function test() {", "  return 1;", "}"]
        + ["", "export default test;"]
    )
    os.makedirs(tmp_path / "src")
    (tmp_path / "src" / "test.ts").write_text(source, encoding="utf-8")
    await seed(service)
    await service.update_pattern("p1", {
        "locations": [
            {"file": "src/test.ts", "line": 6, "endLine": 8},
            {"file": "src/missing.ts", "line": 1},
        ],
    })

    details = await service.get_pattern_with_examples("p1")

    assert details.pattern.id == "p1"
    assert len(details.code_examples) == 1
    example = details.code_examples[0]
    assert example.file == "src/test.ts"
    assert example.line == 6
    assert example.end_line == 8
    assert example.language == "typescript"
    assert "function test()" in example.code
    assert example.context_start == 4
    assert example.context_end == 10
    assert [p.id for p in details.related_patterns] == ["p2"]


@pytest.mark.asyncio
async def test_pattern_with_examples_missing(service):
    assert await service.get_pattern_with_examples("missing") is None


@pytest.mark.asyncio
async def test_examples_respect_maximum(service, tmp_path):
    (tmp_path / "a.py").write_text("x = 1\ny = 2\n", encoding="utf-8")
    await service.add_pattern(make_pattern("p1", locations=[
        {"file": "a.py", "line": 1},
        {"file": "a.py", "line": 2},
    ]))

    details = await service.get_pattern_with_examples("p1", max_examples=1, context_lines=0)

    assert len(details.code_examples) == 1
    assert details.code_examples[0].code == "x = 1"
    assert details.code_examples[0].language == "python"


# ==================== Search ====================

@pytest.mark.asyncio
async def test_search_matches_name_and_description(service):
    await seed(service)

    by_name = await service.search("route")
    by_description = await service.search("SANITIZE")

    assert {p.id for p in by_name} == {"p1", "p2"}
    assert [p.id for p in by_description] == ["p4"]


@pytest.mark.asyncio
async def test_search_limit_and_categories(service):
    await seed(service)

    limited = await service.search("", {"limit": 2})
    restricted = await service.search("", {"categories": ["security"]})

    assert len(limited) == 2
    assert [p.id for p in restricted] == ["p4"]


# ==================== Transitions ====================

@pytest.mark.asyncio
async def test_approve_and_ignore(service):
    await seed(service)

    approved = await service.approve_pattern("p2", "alice")
    ignored = await service.ignore_pattern("p3")

    assert approved.status == PatternStatus.APPROVED
    assert approved.approved_by == "alice"
    assert ignored.status == PatternStatus.IGNORED
    assert (await service.get_status()).by_status["approved"] == 2


@pytest.mark.asyncio
async def test_approve_many(service):
    await seed(service)

    result = await service.approve_many(["p2", "p3"])

    assert result.all_succeeded
    assert [p.id for p in result.succeeded] == ["p2", "p3"]


@pytest.mark.asyncio
async def test_batch_collects_failures(service):
    await seed(service)
    await service.get_status()

    result = await service.approve_many(["p2", "missing", "p1", "p4"])

    assert [p.id for p in result.succeeded] == ["p2", "p4"]
    assert [(f.id, f.code) for f in result.failed] == [
        ("missing", "PATTERN_NOT_FOUND"),
        ("p1", "INVALID_STATUS_TRANSITION"),
    ]
    assert not result.all_succeeded
    assert (await service.get_status()).by_status["approved"] == 3


@pytest.mark.asyncio
async def test_ignore_many(service):
    await seed(service)

    result = await service.ignore_many(["p2", "p1"])

    assert [p.id for p in result.succeeded] == ["p2"]
    assert [f.id for f in result.failed] == ["p1"]


# ==================== Writes ====================

@pytest.mark.asyncio
async def test_update_and_delete_refresh_status(service):
    await seed(service)
    assert (await service.get_status()).total_patterns == 4

    await service.update_pattern("p3", {"confidence": 0.99})
    assert (await service.get_status()).by_confidence_level["high"] == 3

    assert await service.delete_pattern("p3") is True
    assert (await service.get_status()).total_patterns == 3

    await service.clear()
    assert (await service.get_status()).total_patterns == 0


@pytest.mark.asyncio
async def test_create_pattern_service_persists(tmp_path):
    config = DriftConfig(cache={"enabled": False})
    service = await create_pattern_service(str(tmp_path), config=config)
    assert isinstance(service.repository, UnifiedFilePatternRepository)

    await service.add_patterns([make_pattern("p1", category="api")])
    await service.save()
    await service.close()

    reopened = await create_pattern_service(str(tmp_path), config=config)
    assert (await reopened.get_pattern("p1")).category == "api"
    await reopened.close()
