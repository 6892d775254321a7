"""
Pattern service for Drift.

The consumer-facing API over a pattern repository: aggregate status with a
health score, category summaries, paginated listings, search, code examples
and status transitions. Tools such as the CLI talk to this service rather
than to repositories or files.
"""
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from drift.cache.memory import MemoryCache
from drift.config import DriftConfig, ServiceConfig
from drift.constants import HEALTH_APPROVAL_WEIGHT, HEALTH_CONFIDENCE_WEIGHT, PATTERN_CATEGORIES
from drift.patterns.models import (
    ConfidenceLevel,
    Pattern,
    PatternStatus,
    PatternSummary,
    PatchLike,
    to_pattern_summary,
    utc_now_iso,
)
from drift.service.examples import CodeExample, extract_code_examples
from drift.storage.base import (
    PatternFilter,
    PatternPagination,
    PatternQueryOptions,
    PatternQueryResult,
    PatternRepository,
    PatternSort,
    QueryLike,
    SortField,
)
from drift.storage.factory import create_pattern_repository
from drift.utils.errors import DriftError
from drift.utils.logging import logger

_STATUS_CACHE_KEY = "status"


# ==================== Result Models ====================

class PatternSystemStatus(BaseModel):
    """Aggregate view of every pattern in the repository."""

    total_patterns: int
    by_status: Dict[str, int]
    by_category: Dict[str, int]
    by_confidence_level: Dict[str, int]
    health_score: int = Field(..., ge=0, le=100)
    last_updated: str


class CategorySummary(BaseModel):
    """Counts for one category."""

    category: str
    count: int
    approved_count: int
    discovered_count: int
    ignored_count: int
    high_confidence_count: int


class ListOptions(BaseModel):
    """Pagination and sort options for listings."""

    offset: int = Field(0, ge=0)
    limit: Optional[int] = Field(None, ge=0)
    sort_by: SortField = "name"
    sort_direction: Literal["asc", "desc"] = "asc"


class PaginatedResult(BaseModel):
    """A page of pattern summaries."""

    items: List[PatternSummary]
    total: int
    has_more: bool
    offset: int
    limit: int


class SearchOptions(BaseModel):
    """Search restrictions."""

    categories: Optional[List[str]] = None
    statuses: Optional[List[PatternStatus]] = None
    limit: Optional[int] = Field(None, ge=0)


class PatternWithExamples(BaseModel):
    """A pattern with source excerpts and related patterns."""

    pattern: Pattern
    code_examples: List[CodeExample] = Field(default_factory=list)
    related_patterns: List[PatternSummary] = Field(default_factory=list)


class BatchFailure(BaseModel):
    """One id a batch operation could not process."""

    id: str
    error: str
    code: Optional[str] = None


class BatchResult(BaseModel):
    """Outcome of a best-effort batch transition."""

    succeeded: List[Pattern] = Field(default_factory=list)
    failed: List[BatchFailure] = Field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


ListOptionsLike = Union[ListOptions, Dict, None]
SearchOptionsLike = Union[SearchOptions, Dict, None]


def compute_health_score(patterns: List[Pattern]) -> int:
    """Score 0-100 from the approval ratio and mean confidence.

    An empty repository scores 100.
    """
    if not patterns:
        return 100
    approved = sum(1 for p in patterns if p.status == PatternStatus.APPROVED)
    mean_confidence = sum(p.confidence for p in patterns) / len(patterns)
    score = HEALTH_APPROVAL_WEIGHT * approved / len(patterns) + HEALTH_CONFIDENCE_WEIGHT * mean_confidence
    return max(0, min(100, round(score)))


# ==================== Service ====================

class PatternService:
    """High-level pattern API built on a repository."""

    def __init__(
        self,
        repository: PatternRepository,
        root_dir: str = ".",
        config: Optional[ServiceConfig] = None,
    ):
        """
        Initialize the service.

        Args:
            repository: Repository to read and write patterns through
            root_dir: Project root used to resolve pattern locations
            config: Service settings
        """
        self.repository = repository
        self.root_dir = root_dir
        self.config = config or ServiceConfig()
        self._status_cache = MemoryCache(max_size=1, default_ttl=self.config.status_cache_ttl_ms / 1000)

    def invalidate_status_cache(self) -> None:
        self._status_cache.clear()

    # Discovery

    async def get_status(self) -> PatternSystemStatus:
        """Aggregate counts and health score, cached for a short time."""
        cached = self._status_cache.get(_STATUS_CACHE_KEY)
        if cached is not None:
            return cached.model_copy(deep=True)

        patterns = await self.repository.get_all()
        by_status = {status.value: 0 for status in PatternStatus}
        by_level = {level.value: 0 for level in ConfidenceLevel}
        by_category: Dict[str, int] = {}
        for pattern in patterns:
            by_status[pattern.status.value] += 1
            by_level[pattern.confidence_level.value] += 1
            by_category[pattern.category] = by_category.get(pattern.category, 0) + 1

        status = PatternSystemStatus(
            total_patterns=len(patterns),
            by_status=by_status,
            by_category=by_category,
            by_confidence_level=by_level,
            health_score=compute_health_score(patterns),
            last_updated=utc_now_iso(),
        )
        self._status_cache.set(_STATUS_CACHE_KEY, status.model_copy(deep=True))
        return status

    async def get_categories(self) -> List[CategorySummary]:
        """Summaries of every category holding at least one pattern."""
        summaries: Dict[str, CategorySummary] = {}
        for pattern in await self.repository.get_all():
            summary = summaries.get(pattern.category)
            if summary is None:
                summary = summaries[pattern.category] = CategorySummary(
                    category=pattern.category,
                    count=0,
                    approved_count=0,
                    discovered_count=0,
                    ignored_count=0,
                    high_confidence_count=0,
                )
            summary.count += 1
            if pattern.status == PatternStatus.APPROVED:
                summary.approved_count += 1
            elif pattern.status == PatternStatus.DISCOVERED:
                summary.discovered_count += 1
            else:
                summary.ignored_count += 1
            if pattern.confidence_level == ConfidenceLevel.HIGH:
                summary.high_confidence_count += 1

        order = {category: i for i, category in enumerate(PATTERN_CATEGORIES)}
        return sorted(summaries.values(), key=lambda s: (-s.count, order.get(s.category, len(order))))

    # Listings

    async def list_patterns(
        self,
        options: ListOptionsLike = None,
        filter: Optional[PatternFilter] = None,
    ) -> PaginatedResult:
        """List pattern summaries one page at a time."""
        options = _coerce(ListOptions, options)
        limit = options.limit if options.limit is not None else self.config.default_page_size
        result = await self.repository.query(PatternQueryOptions(
            filter=filter,
            sort=PatternSort(field=options.sort_by, direction=options.sort_direction),
            pagination=PatternPagination(offset=options.offset, limit=limit),
        ))
        return PaginatedResult(
            items=[to_pattern_summary(p) for p in result.patterns],
            total=result.total,
            has_more=result.has_more,
            offset=options.offset,
            limit=limit,
        )

    async def list_by_category(self, category: str, options: ListOptionsLike = None) -> PaginatedResult:
        return await self.list_patterns(options, PatternFilter(categories=[category]))

    async def list_by_status(
        self,
        status: Union[PatternStatus, str],
        options: ListOptionsLike = None,
    ) -> PaginatedResult:
        return await self.list_patterns(options, PatternFilter(statuses=[PatternStatus(status)]))

    # Lookup

    async def get_pattern(self, pattern_id: str) -> Optional[Pattern]:
        return await self.repository.get(pattern_id)

    async def get_pattern_with_examples(
        self,
        pattern_id: str,
        max_examples: Optional[int] = None,
        context_lines: Optional[int] = None,
    ) -> Optional[PatternWithExamples]:
        """Fetch a pattern with code excerpts and related patterns.

        Missing source files simply produce no excerpt.

        Returns:
            PatternWithExamples, or None if the pattern does not exist
        """
        pattern = await self.repository.get(pattern_id)
        if pattern is None:
            return None

        examples = await extract_code_examples(
            self.root_dir,
            pattern,
            max_examples=self.config.max_examples if max_examples is None else max_examples,
            context_lines=self.config.example_context_lines if context_lines is None else context_lines,
        )

        same_category = await self.repository.get_by_category(pattern.category)
        related = [
            to_pattern_summary(p)
            for p in same_category
            if p.id != pattern.id and p.subcategory == pattern.subcategory
        ][: self.config.max_related_patterns]

        return PatternWithExamples(pattern=pattern, code_examples=examples, related_patterns=related)

    async def search(self, term: str, options: SearchOptionsLike = None) -> List[PatternSummary]:
        """Case-insensitive search over pattern names and descriptions."""
        options = _coerce(SearchOptions, options)
        limit = options.limit if options.limit is not None else self.config.default_page_size
        result = await self.repository.query(PatternQueryOptions(
            filter=PatternFilter(search=term, categories=options.categories, statuses=options.statuses),
            pagination=PatternPagination(offset=0, limit=limit),
        ))
        return [to_pattern_summary(p) for p in result.patterns]

    async def query(self, options: QueryLike = None) -> PatternQueryResult:
        return await self.repository.query(options)

    # Status transitions

    async def approve_pattern(self, pattern_id: str, approved_by: Optional[str] = None) -> Pattern:
        try:
            return await self.repository.approve(pattern_id, approved_by)
        finally:
            self.invalidate_status_cache()

    async def ignore_pattern(self, pattern_id: str) -> Pattern:
        try:
            return await self.repository.ignore(pattern_id)
        finally:
            self.invalidate_status_cache()

    async def approve_many(self, pattern_ids: List[str], approved_by: Optional[str] = None) -> BatchResult:
        """Approve each id independently; failures are collected, not raised."""
        return await self._batch(pattern_ids, lambda pid: self.repository.approve(pid, approved_by), "approve")

    async def ignore_many(self, pattern_ids: List[str]) -> BatchResult:
        """Ignore each id independently; failures are collected, not raised."""
        return await self._batch(pattern_ids, self.repository.ignore, "ignore")

    async def _batch(self, pattern_ids, operation, name: str) -> BatchResult:
        result = BatchResult()
        try:
            for pattern_id in pattern_ids:
                try:
                    result.succeeded.append(await operation(pattern_id))
                except DriftError as e:
                    result.failed.append(BatchFailure(id=pattern_id, error=e.message, code=e.code))
        finally:
            self.invalidate_status_cache()

        if result.failed:
            logger.warning(
                f"{name} failed for {len(result.failed)} of {len(pattern_ids)} patterns",
                component="service",
                operation=f"{name}_many",
                context={"failed": [f.id for f in result.failed]},
            )
        return result

    # Writes

    async def add_pattern(self, pattern: Pattern) -> None:
        try:
            await self.repository.add(pattern)
        finally:
            self.invalidate_status_cache()

    async def add_patterns(self, patterns: List[Pattern]) -> None:
        try:
            await self.repository.add_many(patterns)
        finally:
            self.invalidate_status_cache()

    async def update_pattern(self, pattern_id: str, updates: PatchLike) -> Pattern:
        try:
            return await self.repository.update(pattern_id, updates)
        finally:
            self.invalidate_status_cache()

    async def delete_pattern(self, pattern_id: str) -> bool:
        try:
            return await self.repository.delete(pattern_id)
        finally:
            self.invalidate_status_cache()

    async def save(self) -> None:
        await self.repository.save_all()

    async def clear(self) -> None:
        try:
            await self.repository.clear()
        finally:
            self.invalidate_status_cache()

    async def close(self) -> None:
        await self.repository.close()


def _coerce(model, value):
    if value is None:
        return model()
    if isinstance(value, model):
        return value
    return model.model_validate(value)


async def create_pattern_service(
    root_dir: Optional[str] = None,
    config: Optional[DriftConfig] = None,
    **repository_options,
) -> PatternService:
    """Create a service over a repository built by the factory.

    Args:
        root_dir: Project root (defaults to the configured root)
        config: Settings for the repository, cache and service
        **repository_options: Passed on to ``create_pattern_repository``

    Returns:
        PatternService over an initialized repository
    """
    config = config or DriftConfig()
    root_dir = root_dir if root_dir is not None else config.storage.root_dir
    repository = await create_pattern_repository(root_dir, config=config, **repository_options)
    return PatternService(repository, root_dir, config.service)
