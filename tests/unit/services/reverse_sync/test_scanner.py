import pytest

from inventory_sync.core.enums import REVERSE_SYNC_HEADERS
from inventory_sync.models.inventory_row import SheetLayout
from inventory_sync.services.reverse_sync.scanner import scan_candidates
from tests.mocks.rows import HEADERS, item_gid, make_row


@pytest.fixture
def layout():
    return SheetLayout.from_header_row(HEADERS, required=REVERSE_SYNC_HEADERS)


def _sheet(*rows):
    return [HEADERS] + [list(r) for r in rows]


def test_selects_rows_where_desired_differs(layout):
    rows = _sheet(
        make_row(item_gid(1), desired=7, available=10),
        make_row(item_gid(2), desired=5, available=5),
        make_row(item_gid(3), desired="", available=5),
        make_row(item_gid(4), desired=3, available=""),
        make_row("", desired=1, available=2),
        make_row(item_gid(6), desired="12", available="9"),
    )

    result = scan_candidates(rows, layout, max_candidates=50)

    assert [(c.row_number, c.inventory_item_id, c.desired, c.available) for c in result.candidates] == [
        (2, item_gid(1), 7, 10),
        (7, item_gid(6), 12, 9),
    ]
    assert result.data_rows == 6
    assert result.eligible == 2
    assert result.truncated == 0


def test_malformed_rows_are_counted_not_selected(layout):
    rows = _sheet(
        make_row(item_gid(1), desired="N/A", available=10),
        make_row(item_gid(2), desired=4, available="ten"),
        make_row(item_gid(3), desired=4, available=10),
        # No item id: ignored entirely, not even counted
        make_row("", desired="N/A", available=10),
    )

    result = scan_candidates(rows, layout, max_candidates=50)

    assert [c.row_number for c in result.candidates] == [4]
    assert result.malformed == 2


def test_truncates_to_first_n_in_row_order(layout):
    rows = _sheet(*[make_row(item_gid(i), desired=i, available=i + 1) for i in range(1, 8)])

    result = scan_candidates(rows, layout, max_candidates=3)

    assert [c.row_number for c in result.candidates] == [2, 3, 4]
    assert result.eligible == 7
    assert result.truncated == 4


def test_truncation_is_deterministic(layout):
    rows = _sheet(*[make_row(item_gid(i), desired=0, available=1) for i in range(1, 20)])

    first = scan_candidates(rows, layout, max_candidates=5)
    second = scan_candidates(rows, layout, max_candidates=5)

    assert first.candidates == second.candidates


def test_tracks_stale_pending_rows(layout):
    rows = _sheet(
        make_row(item_gid(1), desired=7, available=10, status="PENDING"),
        make_row(item_gid(2), desired=5, available=5, status="PENDING"),
        make_row(item_gid(3), desired=1, available=2),
    )

    result = scan_candidates(rows, layout, max_candidates=50)

    assert result.stale_pending_rows == [2, 3]
    # Row 2 is still a candidate and will be re-pushed; row 3 only needs its mark cleared
    assert [c.row_number for c in result.candidates] == [2, 4]
    assert result.orphaned_pending_rows == [3]


def test_stale_pending_beyond_cap_is_orphaned(layout):
    rows = _sheet(
        make_row(item_gid(1), desired=7, available=10),
        make_row(item_gid(2), desired=7, available=10, status="PENDING"),
    )

    result = scan_candidates(rows, layout, max_candidates=1)

    assert [c.row_number for c in result.candidates] == [2]
    assert result.orphaned_pending_rows == [3]


def test_skipped_rows_with_stale_pending_are_tracked(layout):
    rows = _sheet(
        make_row(item_gid(1), desired="N/A", available=10, status="PENDING"),
        make_row("", desired=3, available=4, status="PENDING"),
    )

    result = scan_candidates(rows, layout, max_candidates=50)

    assert result.candidates == []
    assert result.malformed == 1
    assert result.orphaned_pending_rows == [2, 3]


def test_header_only_sheet(layout):
    result = scan_candidates([HEADERS], layout, max_candidates=10)
    assert result.candidates == []
    assert result.data_rows == 0
