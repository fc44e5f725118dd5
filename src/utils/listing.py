"""Shared list-view pipeline: search -> sort -> paginate, plus per-viewer view state."""

import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field


PAGE_SIZE = 10


class ListViewState(BaseModel):
    page: int = Field(1, ge=1)
    page_size: int = Field(PAGE_SIZE, ge=1, le=100)
    search: str = ""
    filters: Dict[str, str] = Field(default_factory=dict)
    sort: str = "newest"


class Page(BaseModel):
    items: List[Dict[str, Any]]
    page: int
    page_size: int
    total: int
    pages: int
    window: List[Optional[int]] = Field(
        default_factory=list, description="Pager buttons; null marks an ellipsis"
    )


def page_window(current: int, pages: int) -> List[Optional[int]]:
    """First, last and current +/- 1, with None where pages are skipped."""
    window: List[Optional[int]] = []
    for i in range(1, pages + 1):
        if i == 1 or i == pages or abs(i - current) <= 1:
            window.append(i)
        elif i == current - 2 or i == current + 2:
            window.append(None)
    return window


def field_value(row: Dict[str, Any], path: str) -> Any:
    """Read `a.b` style paths through joined rows."""
    value: Any = row
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def search_rows(
    rows: Iterable[Dict[str, Any]], text: str, fields: Sequence[str]
) -> List[Dict[str, Any]]:
    needle = (text or "").strip().lower()
    rows = list(rows)
    if not needle:
        return rows
    return [
        row
        for row in rows
        if any(needle in str(field_value(row, f) or "").lower() for f in fields)
    ]


def paginate(rows: List[Dict[str, Any]], page: int, page_size: int = PAGE_SIZE) -> Page:
    total = len(rows)
    pages = math.ceil(total / page_size) if total else 0
    page = min(max(page, 1), max(pages, 1))
    start = (page - 1) * page_size
    return Page(
        items=rows[start : start + page_size],
        page=page,
        page_size=page_size,
        total=total,
        pages=pages,
        window=page_window(page, pages),
    )


def run_list_view(
    rows: Iterable[Dict[str, Any]],
    state: ListViewState,
    search_fields: Sequence[str],
    sort: Optional[Callable[[List[Dict[str, Any]], str], List[Dict[str, Any]]]] = None,
) -> Tuple[Page, List[Dict[str, Any]]]:
    """
    Returns the visible page and the full filtered dataset.

    The second value is what CSV export writes out.
    """
    filtered = search_rows(rows, state.search, search_fields)
    if sort is not None:
        filtered = sort(filtered, state.sort)
    return paginate(filtered, state.page, state.page_size), filtered


def sort_by_created(rows: List[Dict[str, Any]], order: str) -> List[Dict[str, Any]]:
    """newest (default) / oldest on created_at."""
    return sorted(
        rows,
        key=lambda row: str(row.get("created_at") or ""),
        reverse=order != "oldest",
    )


# ===============================================================
# View state store
# ===============================================================
class ViewStateStore:
    """
    List view state per (viewer, table).

    Search, filter and sort changes reset the page to 1. Filters survive
    page switches and are cleared only by `clear_filters`.
    """

    def __init__(self):
        self._states: Dict[Tuple[str, str], ListViewState] = {}

    def get(self, viewer_id: str, table: str) -> ListViewState:
        return self._states.get((viewer_id, table), ListViewState()).model_copy(deep=True)

    def update(
        self,
        viewer_id: str,
        table: str,
        page: Optional[int] = None,
        search: Optional[str] = None,
        filters: Optional[Dict[str, str]] = None,
        sort: Optional[str] = None,
    ) -> ListViewState:
        state = self.get(viewer_id, table)
        changed = False
        if search is not None and search != state.search:
            state.search = search
            changed = True
        if filters is not None:
            merged = {**state.filters, **filters}
            if merged != state.filters:
                state.filters = merged
                changed = True
        if sort is not None and sort != state.sort:
            state.sort = sort
            changed = True
        if changed:
            state.page = 1
        if page is not None:
            state.page = max(page, 1)
        self._states[(viewer_id, table)] = state
        return state.model_copy(deep=True)

    def reset_page(self, viewer_id: str, table: str) -> ListViewState:
        state = self.get(viewer_id, table)
        state.page = 1
        self._states[(viewer_id, table)] = state
        return state.model_copy(deep=True)

    def clear_filters(self, viewer_id: str, table: str) -> ListViewState:
        self._states[(viewer_id, table)] = ListViewState()
        return ListViewState()

    def clear(self) -> None:
        self._states.clear()
