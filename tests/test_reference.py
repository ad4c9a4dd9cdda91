"""
Tests for the independent reference recomputation
"""
from decimal import Decimal

from listmerge import models
from listmerge.headers import HeaderCatalog
from listmerge.merge_service import merge_files
from listmerge.models import AggregationResult, HeaderDefinition, ValidationContext
from listmerge.reference import (
    KEY_SEPARATOR,
    build_merged_view,
    build_reference_aggregation,
    canonical_key,
    compare_with_reference,
)
from listmerge.validators import validate_merge

REFERENCE_ON = ValidationContext(enable_reference_aggregation=True)


class TestCanonicalKey:

    def test_normalizes_case_whitespace_and_trailing_blanks(self):
        assert canonical_key([" Alice ", "BERLIN", "", " "]) == canonical_key(["alice", "berlin"])

    def test_joined_with_unit_separator(self):
        assert canonical_key(["a", "b"]) == "a" + KEY_SEPARATOR + "b"

    def test_separator_inside_cell_does_not_collide(self):
        assert canonical_key(["a" + KEY_SEPARATOR + "b"]) != canonical_key(["a", "b"])

    def test_backslashes_do_not_collide(self):
        assert canonical_key(["a\\", "b"]) != canonical_key(["a", "\\b"])
        assert canonical_key(["a" + KEY_SEPARATOR]) != canonical_key(["a\\u001f"])

    def test_inner_blank_cells_kept(self):
        assert canonical_key(["a", "", "b"]) != canonical_key(["a", "b"])

    def test_empty(self):
        assert canonical_key(None) == ""
        assert canonical_key([]) == ""


class TestReferenceAggregation:

    def test_recomputes_counts_and_sums(self, write_csv, main_catalog):
        path = write_csv("a.csv", [["Name", "Amount"], ["Alice", "10"], ["alice ", "2,5"], ["Bob", "5"]])

        reference, issues = build_reference_aggregation([path], list(main_catalog))

        assert issues == []
        assert reference == {"Main": {
            "alice": AggregationResult(2, Decimal("12.5")),
            "bob": AggregationResult(1, Decimal("5")),
        }}

    def test_merged_view_uses_canonical_keys(self, main_header):
        view = build_merged_view({main_header: {("Alice", "X"): AggregationResult(1, Decimal("1"))}})
        assert view == {"Main": {canonical_key(["alice", "x"]): AggregationResult(1, Decimal("1"))}}

    def test_unreadable_file_is_reported_and_others_continue(self, write_csv, tmp_path, main_catalog):
        good = write_csv("good.csv", [["Name", "Amount"], ["Alice", "1"]])
        missing = tmp_path / "gone.csv"

        reference, issues = build_reference_aggregation([missing, good], list(main_catalog))

        assert [i.code for i in issues] == [models.REFERENCE_PATH_ERROR]
        assert "gone.csv" in issues[0].details
        assert reference["Main"]["alice"] == AggregationResult(1, Decimal("1"))


class TestCompareWithReference:

    def test_clean_merge_agrees(self, write_csv, write_xlsx, main_catalog):
        paths = [
            write_csv("a.csv", [["Name", "Amount"], ["Alice", "10"], ["Bob", "5"]]),
            write_xlsx("b.xlsx", [["Name", "Amount"], ["ALICE", 1.5], ["Carol", "n/a"]]),
        ]
        merged = merge_files(paths, main_catalog)

        report = validate_merge(merged, REFERENCE_ON, paths, main_catalog)

        assert report.valid

    def test_tampered_result_is_detected(self, scenario_file, main_catalog, main_header):
        tampered = {main_header: {("Alice",): AggregationResult(2, Decimal("10"))}}

        report = validate_merge(tampered, REFERENCE_ON, [scenario_file], main_catalog)

        assert not report.valid
        assert report.codes == [models.REFERENCE_COUNT_MISMATCH, models.REFERENCE_MISSING_KEY]
        count_issue, missing_issue = report.issues
        assert "alice" in count_issue.details
        assert "referenceCount=1, mergedCount=2" in count_issue.details
        assert "bob" in missing_issue.details

    def test_sum_difference_beyond_tolerance(self, scenario_file, main_catalog, main_header):
        merged = {main_header: {
            ("Alice",): AggregationResult(1, Decimal("10.01")),
            ("Bob",): AggregationResult(1, Decimal("6")),
        }}

        issues = compare_with_reference(merged, [scenario_file], main_catalog, REFERENCE_ON)

        assert [i.code for i in issues] == [models.REFERENCE_SUM_MISMATCH]
        assert issues[0].details == "key='bob', referenceSum=5.00, mergedSum=6.00, delta=1.00"

    def test_file_removed_after_merge(self, write_csv, main_catalog):
        a = write_csv("a.csv", [["Name", "Amount"], ["Alice", "1"]])
        b = write_csv("b.csv", [["Name", "Amount"], ["Bob", "2"]])
        merged = merge_files([a, b], main_catalog)
        b.unlink()

        report = validate_merge(merged, REFERENCE_ON, [a, b], main_catalog)

        assert report.codes == [models.REFERENCE_PATH_ERROR]
        assert "b.csv" in report.issues[0].details

    def test_skipped_without_paths_or_headers(self, main_catalog, main_header):
        merged = {main_header: {("Alice",): AggregationResult(1, Decimal("1"))}}
        assert compare_with_reference(merged, [], main_catalog, REFERENCE_ON) == []
        assert compare_with_reference(merged, ["a.csv"], None, REFERENCE_ON) == []

    def test_disabled_by_default(self, tmp_path, main_catalog, main_header):
        merged = {main_header: {("Alice",): AggregationResult(1, Decimal("1"))}}
        report = validate_merge(merged, ValidationContext(), [tmp_path / "gone.csv"], main_catalog)
        assert report.valid

    def test_unknown_layouts_compared_by_name(self, write_csv, main_catalog):
        path = write_csv("x.csv", [["p", "q", "r"], ["1", "2", "3"], ["1", "2", "3"]])
        merged = merge_files([path], main_catalog)
        assert list(merged) == [HeaderDefinition("Unknown_3")]
        assert compare_with_reference(merged, [path], main_catalog, REFERENCE_ON) == []

    def test_sum_column_located_the_same_way_as_the_merge(self, scenario_file):
        padded = HeaderDefinition("Main", ["Name", "Amount "], sum_column="Amount")
        catalog = HeaderCatalog([padded])
        merged = merge_files([scenario_file], catalog)
        assert ("Alice", "10") in merged[padded]

        report = validate_merge(merged, REFERENCE_ON, [scenario_file], catalog)

        assert report.valid
