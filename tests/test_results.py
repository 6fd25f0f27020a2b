"""
Tests for the result post-processor.
"""

import pytest

from authstore.predicates import SortBy
from authstore.results import apply_window, scan_cap


def rows(*ages):
    return [{"id": f"r{i}", "age": age} for i, age in enumerate(ages)]


class TestApplyWindow:
    """Sort, offset and limit applied in that order."""

    def test_sort_desc_offset_limit(self):
        result = apply_window(
            rows(10, 30, 20, 50, 40),
            sort_by=SortBy(field="age", direction="desc"),
            offset=1,
            limit=2,
        )
        assert [r["age"] for r in result] == [40, 30]

    def test_sort_asc(self):
        result = apply_window(rows(3, 1, 2), sort_by=SortBy(field="age"))
        assert [r["age"] for r in result] == [1, 2, 3]

    def test_ties_keep_input_order_ascending(self):
        result = apply_window(rows(1, 2, 1, 2), sort_by=SortBy(field="age", direction="asc"))
        assert [r["id"] for r in result] == ["r0", "r2", "r1", "r3"]

    def test_ties_keep_input_order_descending(self):
        result = apply_window(rows(1, 2, 1, 2), sort_by=SortBy(field="age", direction="desc"))
        assert [r["id"] for r in result] == ["r1", "r3", "r0", "r2"]

    def test_missing_sort_field_goes_last(self):
        data = rows(5, 1) + [{"id": "blank"}]
        for direction in ("asc", "desc"):
            result = apply_window(data, sort_by=SortBy(field="age", direction=direction))
            assert result[-1]["id"] == "blank"

    def test_offset_only(self):
        assert [r["age"] for r in apply_window(rows(1, 2, 3), offset=2)] == [3]

    def test_limit_only(self):
        assert [r["age"] for r in apply_window(rows(1, 2, 3), limit=2)] == [1, 2]

    def test_offset_past_end_is_empty(self):
        assert apply_window(rows(1, 2), offset=5) == []

    def test_zero_limit_means_no_limit(self):
        assert len(apply_window(rows(1, 2, 3), limit=0)) == 3

    def test_input_not_mutated(self):
        data = rows(3, 1, 2)
        apply_window(data, sort_by=SortBy(field="age"))
        assert [r["age"] for r in data] == [3, 1, 2]


class TestScanCap:
    def test_over_fetches_offset(self):
        assert scan_cap(10, 5) == 15

    def test_no_limit_means_no_cap(self):
        assert scan_cap(None, 5) is None

    def test_limit_without_offset(self):
        assert scan_cap(3, None) == 3


class TestNegativePaging:
    def test_negative_offset_rejected(self):
        with pytest.raises(ValueError, match="offset"):
            apply_window(rows(1, 2, 3), offset=-1)

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError, match="limit"):
            apply_window(rows(1, 2, 3), limit=-1)

    def test_scan_cap_rejects_negative_values(self):
        with pytest.raises(ValueError):
            scan_cap(5, -1)
        with pytest.raises(ValueError):
            scan_cap(-5, None)
