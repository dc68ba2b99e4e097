"""
Listing queries for the "my entries", community and search views.

Parameters arrive already validated (see ``entries.serializers``);
``list_entries`` still refuses sort fields it does not know.
"""
import enum
import math
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS
from django.db.models import Q

from core.errors import ValidationFailed

from .models import Entry

SORT_FIELDS = {
    'createdAt': 'created_at',
    'title': 'title',
    'director': 'director',
    'yearTime': 'year_time',
    'likes': 'likes',
}
SORT_ORDERS = ('asc', 'desc')


class Scope(enum.Enum):
    MINE = 'mine'
    COMMUNITY = 'community'
    ALL = 'all'


DEFAULT_SORT = {
    Scope.MINE: ('createdAt', 'desc'),
    Scope.COMMUNITY: ('likes', 'desc'),
    Scope.ALL: ('createdAt', 'desc'),
}


@dataclass
class ListingQuery:
    scope: Scope
    user_id: Optional[int] = None
    # title / director / location
    search: str = ''
    # title / director only (search endpoint)
    query: str = ''
    type: Optional[str] = None
    year: str = ''
    director: str = ''
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    page: int = 1
    limit: int = field(default_factory=lambda: settings.ENTRIES_PAGE_SIZE)

    @property
    def offset(self):
        return (self.page - 1) * self.limit


@dataclass
class Page:
    items: list
    page: int
    limit: int
    total: int

    @property
    def total_pages(self):
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def pagination(self):
        return {
            'page': self.page,
            'limit': self.limit,
            'total': self.total,
            'totalPages': self.total_pages,
            'hasNext': self.page < self.total_pages,
            'hasPrev': self.page > 1,
        }


def _scoped(q: ListingQuery, using):
    entries = Entry.objects.using(using).select_related('user')
    if q.scope is Scope.MINE:
        if q.user_id is None:
            raise ValueError('MINE scope needs a user_id')
        return entries.filter(user_id=q.user_id)
    if q.scope is Scope.COMMUNITY:
        return entries.filter(is_released=True)
    return entries


def _filters(q: ListingQuery):
    predicate = Q()
    if q.search:
        predicate &= (
            Q(title__icontains=q.search)
            | Q(director__icontains=q.search)
            | Q(location__icontains=q.search)
        )
    if q.query:
        predicate &= Q(title__icontains=q.query) | Q(director__icontains=q.query)
    if q.type:
        predicate &= Q(type=q.type)
    if q.year:
        predicate &= Q(year_time__icontains=q.year)
    if q.director:
        predicate &= Q(director__icontains=q.director)
    return predicate


def _ordering(q: ListingQuery):
    default_field, default_order = DEFAULT_SORT[q.scope]
    sort_by = q.sort_by or default_field
    sort_order = q.sort_order or default_order
    if sort_by not in SORT_FIELDS:
        raise ValidationFailed(details={'sortBy': [f'"{sort_by}" is not a valid choice.']})
    if sort_order not in SORT_ORDERS:
        raise ValidationFailed(details={'sortOrder': [f'"{sort_order}" is not a valid choice.']})

    column = SORT_FIELDS[sort_by]
    prefix = '-' if sort_order == 'desc' else ''
    # id breaks ties so pages never overlap
    return [f'{prefix}{column}', f'{prefix}id']


def list_entries(q: ListingQuery, using=DEFAULT_DB_ALIAS) -> Page:
    ordering = _ordering(q)
    queryset = _scoped(q, using).filter(_filters(q))
    total = queryset.count()
    items = list(queryset.order_by(*ordering)[q.offset:q.offset + q.limit])
    return Page(items=items, page=q.page, limit=q.limit, total=total)
