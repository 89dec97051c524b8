"""Tests for shared document filters and pagination."""

from datetime import UTC, datetime

import pytest

from vaultkit.filters import MATCH_ALL, compile_filter, filter_documents, paginate, parse_date
from vaultkit.models import FilterSpec


def _names(docs):
    return [d.name for d in docs]


class TestFilterDocuments:
    """Each predicate on its own, then combined."""

    def test_no_filter_keeps_all_in_order(self, scenario_docs):
        assert _names(filter_documents(scenario_docs, None)) == ["A", "B", "C", "D", "Orphan"]
        assert compile_filter(FilterSpec()) is MATCH_ALL

    @pytest.mark.parametrize("folder", ["projects", "projects/", "/projects/"])
    def test_folder(self, scenario_docs, folder):
        assert _names(filter_documents(scenario_docs, FilterSpec(folder=folder))) == ["A", "B"]

    def test_folder_is_prefix_of_whole_segment(self, scenario_docs):
        assert filter_documents(scenario_docs, FilterSpec(folder="proj")) == []

    def test_exclude_folders(self, scenario_docs):
        spec = FilterSpec(exclude_folders=["projects", "misc"])
        assert _names(filter_documents(scenario_docs, spec)) == ["C", "D"]

    def test_exclude_pattern_case_insensitive(self, scenario_docs):
        spec = FilterSpec(exclude_pattern="^(a|orph)")
        assert _names(filter_documents(scenario_docs, spec)) == ["B", "C", "D"]

    def test_tags_match_any(self, scenario_docs):
        spec = FilterSpec(tags=["#ALPHA", "draft"])
        assert _names(filter_documents(scenario_docs, spec)) == ["A", "D"]

    def test_exclude_tags(self, scenario_docs):
        spec = FilterSpec(exclude_tags=["project"])
        assert _names(filter_documents(scenario_docs, spec)) == ["B", "C", "D", "Orphan"]

    def test_modified_after_inclusive(self, scenario_docs):
        spec = FilterSpec(modified_after="2024-03-01")
        assert _names(filter_documents(scenario_docs, spec)) == ["B", "D", "Orphan"]

    def test_modified_before_exclusive(self, scenario_docs):
        spec = FilterSpec(modified_before="2024-03-01")
        assert _names(filter_documents(scenario_docs, spec)) == ["A", "C"]

    def test_combined(self, scenario_docs):
        spec = FilterSpec(folder="projects", modified_after="2024-02-01")
        assert _names(filter_documents(scenario_docs, spec)) == ["B"]


class TestFailClosed:
    """Malformed filter input matches nothing instead of raising."""

    def test_invalid_regex(self, scenario_docs, caplog):
        spec = FilterSpec(exclude_pattern="([unclosed")
        assert filter_documents(scenario_docs, spec) == []
        assert compile_filter(spec).rejects_all
        assert "exclude_pattern" in caplog.text

    def test_invalid_date(self, scenario_docs):
        assert filter_documents(scenario_docs, FilterSpec(modified_after="last tuesday")) == []
        assert filter_documents(scenario_docs, FilterSpec(modified_before="2024-13-45")) == []


class TestParseDate:
    def test_naive_is_utc(self):
        assert parse_date("2024-01-02") == datetime(2024, 1, 2, tzinfo=UTC)

    def test_offset_kept(self):
        assert parse_date("2024-01-02T03:00:00+02:00") == datetime(2024, 1, 2, 1, tzinfo=UTC)


class TestPaginate:
    """The {total, offset, limit, results} envelope."""

    def test_slice(self):
        assert paginate(list(range(10)), limit=3, offset=4) == {
            "total": 10,
            "offset": 4,
            "limit": 3,
            "results": [4, 5, 6],
        }

    def test_offset_past_end(self):
        page = paginate([1, 2], limit=5, offset=10)
        assert page["total"] == 2
        assert page["results"] == []

    def test_zero_limit(self):
        assert paginate([1, 2], limit=0)["results"] == []

    def test_negative_values_clamped(self):
        page = paginate([1, 2, 3], limit=-1, offset=-5)
        assert page["offset"] == 0
        assert page["limit"] == 0
        assert page["results"] == []
