from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from django.db.models import Prefetch, QuerySet

from apps.stories.models import Story, Tag

SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_TITLE = "title"
SORT_CHOICES = (SORT_NEWEST, SORT_OLDEST, SORT_TITLE)

_ALL = {"", "all"}


@dataclass(frozen=True)
class TagRef:
    id: str
    name: str
    color: str


@dataclass(frozen=True)
class StoryRow:
    """Ligne dénormalisée : story + auteur + secteur + tags, issue d'une seule requête."""

    id: str
    title: str
    content: str
    author_id: int
    author_name: str
    author_email: str
    author_department: str
    business_vertical_id: Optional[str]
    business_vertical_name: Optional[str]
    region: str
    diagram_url: str
    created_at: datetime
    updated_at: datetime
    tags: Tuple[TagRef, ...] = ()

    @property
    def tag_ids(self) -> Tuple[str, ...]:
        return tuple(tag.id for tag in self.tags)


@dataclass
class StoryFilters:
    search: str = ""
    tag: str = ""
    vertical: str = ""
    region: str = ""
    sort: str = SORT_NEWEST
    include_email: bool = False

    @classmethod
    def from_params(cls, params, *, include_email: bool = False) -> "StoryFilters":
        sort = (params.get("sort") or SORT_NEWEST).strip().lower()
        if sort not in SORT_CHOICES:
            sort = SORT_NEWEST
        return cls(
            search=(params.get("search") or "").strip(),
            tag=(params.get("tag") or "").strip(),
            vertical=(params.get("vertical") or "").strip(),
            region=(params.get("region") or "").strip(),
            sort=sort,
            include_email=include_email,
        )

    def is_empty(self) -> bool:
        return (
            not self.search
            and self.tag in _ALL
            and self.vertical in _ALL
            and self.region in _ALL
        )


def story_queryset(*, author=None) -> QuerySet[Story]:
    """Une requête jointe (auteur, profil, secteur) + un prefetch des tags."""
    queryset = Story.objects.select_related(
        "author", "author__profile", "business_vertical"
    ).prefetch_related(
        Prefetch("tags", queryset=Tag.objects.order_by("name"))
    )
    if author is not None:
        queryset = queryset.filter(author=author)
    return queryset.order_by("-created_at")


def to_row(story: Story) -> StoryRow:
    author = story.author
    profile = getattr(author, "profile", None)
    vertical = story.business_vertical
    return StoryRow(
        id=str(story.pk),
        title=story.title,
        content=story.content,
        author_id=author.pk,
        author_name=(profile.display_name if profile else "") or "",
        author_email=(profile.email if profile else author.email) or "",
        author_department=(profile.department if profile else "") or "",
        business_vertical_id=str(vertical.pk) if vertical else None,
        business_vertical_name=vertical.name if vertical else None,
        region=story.region or "",
        diagram_url=story.diagram_url or "",
        created_at=story.created_at,
        updated_at=story.updated_at,
        tags=tuple(
            TagRef(id=str(tag.pk), name=tag.name, color=tag.color)
            for tag in story.tags.all()
        ),
    )


def fetch_rows(*, author=None) -> List[StoryRow]:
    return [to_row(story) for story in story_queryset(author=author)]


def _matches_search(row: StoryRow, needle: str, include_email: bool) -> bool:
    haystacks = [row.title, row.content, row.author_name]
    if include_email:
        haystacks.append(row.author_email)
    return any(needle in (value or "").lower() for value in haystacks)


def filter_rows(rows: Iterable[StoryRow], filters: StoryFilters) -> List[StoryRow]:
    filtered = list(rows)
    if filters.search:
        needle = filters.search.lower()
        filtered = [
            row for row in filtered if _matches_search(row, needle, filters.include_email)
        ]
    if filters.tag not in _ALL:
        filtered = [row for row in filtered if filters.tag in row.tag_ids]
    if filters.vertical not in _ALL:
        filtered = [row for row in filtered if row.business_vertical_id == filters.vertical]
    if filters.region not in _ALL:
        filtered = [row for row in filtered if row.region == filters.region]
    return filtered


def sort_rows(rows: Iterable[StoryRow], sort: str = SORT_NEWEST) -> List[StoryRow]:
    """Tri stable ; le tri par titre ignore la casse."""
    if sort == SORT_OLDEST:
        return sorted(rows, key=lambda row: row.created_at)
    if sort == SORT_TITLE:
        return sorted(rows, key=lambda row: row.title.casefold())
    return sorted(rows, key=lambda row: row.created_at, reverse=True)


def visible_rows(rows: Iterable[StoryRow], filters: StoryFilters) -> List[StoryRow]:
    return sort_rows(filter_rows(rows, filters), filters.sort)


def tag_counts(rows: Iterable[StoryRow]) -> Dict[str, int]:
    counter: Counter = Counter()
    for row in rows:
        counter.update(set(row.tag_ids))
    return dict(counter)


def vertical_counts(rows: Iterable[StoryRow]) -> Dict[str, int]:
    return dict(
        Counter(row.business_vertical_id for row in rows if row.business_vertical_id)
    )


@dataclass
class DirectoryPage:
    rows: List[StoryRow]
    total: int
    facets: Dict[str, Dict[str, int]] = field(default_factory=dict)


def browse(filters: StoryFilters, *, author=None) -> DirectoryPage:
    rows = fetch_rows(author=author)
    return DirectoryPage(
        rows=visible_rows(rows, filters),
        total=len(rows),
        facets={"tags": tag_counts(rows), "verticals": vertical_counts(rows)},
    )
