from datetime import date

import pytest
from fastapi import HTTPException

from src.utils.csv_export import build_csv, csv_response, export_filename
from src.utils.listing import (
    ListViewState,
    ViewStateStore,
    page_window,
    paginate,
    run_list_view,
    sort_by_created,
)


def _rows(n):
    return [
        {"id": str(i), "tracking_number": f"AMX{i:04d}", "created_at": f"2026-01-{i:02d}"}
        for i in range(1, n + 1)
    ]


@pytest.mark.parametrize(
    "current,pages,expected",
    [
        (1, 1, [1]),
        (1, 3, [1, 2, 3]),
        (1, 10, [1, 2, None, 10]),
        (5, 10, [1, None, 4, 5, 6, None, 10]),
        (10, 10, [1, None, 9, 10]),
        (1, 0, []),
    ],
)
def test_page_window(current, pages, expected):
    assert page_window(current, pages) == expected


def test_paginate_clamps_out_of_range_page():
    page = paginate(_rows(25), 9)
    assert page.page == 3
    assert page.pages == 3
    assert len(page.items) == 5


def test_search_then_sort_then_page():
    state = ListViewState(search="amx001", sort="oldest")
    page, filtered = run_list_view(_rows(20), state, ["tracking_number"], sort_by_created)
    # AMX0010 .. AMX0019
    assert page.total == 10
    assert [r["id"] for r in filtered][:2] == ["10", "11"]


def test_view_state_changes_reset_page():
    store = ViewStateStore()
    assert store.update("admin-1", "shipments", page=3).page == 3
    assert store.update("admin-1", "shipments", search="lagos").page == 1
    store.update("admin-1", "shipments", page=2)
    state = store.update("admin-1", "shipments", filters={"status": "pending"})
    assert state.page == 1
    assert state.search == "lagos"


def test_filters_survive_page_switches_until_cleared():
    store = ViewStateStore()
    store.update("admin-1", "payments", filters={"status": "paid"})
    state = store.update("admin-1", "payments", page=2)
    assert state.filters == {"status": "paid"}
    assert store.reset_page("admin-1", "payments").filters == {"status": "paid"}
    store.clear_filters("admin-1", "payments")
    assert store.get("admin-1", "payments").filters == {}


def test_view_state_is_per_viewer():
    store = ViewStateStore()
    store.update("admin-1", "tickets", search="refund")
    assert store.get("admin-2", "tickets").search == ""


def test_csv_quotes_every_field():
    assert build_csv(["A", "B"], [[1, None], ['say "hi"', "x"]]) == (
        '"A","B"\n"1",""\n"say ""hi""","x"\n'
    )


def test_export_filename_is_dated():
    assert export_filename("payments", date(2026, 2, 3)) == "payments-2026-02-03.csv"


def test_empty_export_is_rejected():
    with pytest.raises(HTTPException) as exc:
        csv_response("shipments", ["Tracking"], [])
    assert exc.value.status_code == 400
    assert exc.value.detail == "No shipments to export"
