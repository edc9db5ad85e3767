"""Unit tests for the tree normalizer."""

import copy
import json
from datetime import datetime, timedelta, timezone

import pytest

from conftest import (
    CHILD_A_ID,
    CHILD_B_ID,
    GRANDCHILD_ID,
    OWNER_ID,
    ROOT_ID,
    SHORT_ID,
    WORK_GROUP_ID,
    build_chain,
)
from case_hierarchy.catalog import PLACEHOLDER
from case_hierarchy.models import DisplayNode
from case_hierarchy.normalizer import (
    TreeNormalizer,
    format_iso_datetime,
    is_record_id,
    normalize,
    parse_datetime,
)


def _kinds(result):
    return [warning.kind for warning in result.warnings]


class TestRecordIds:
    """Test the record id shape check."""

    def test_accepts_15_and_18_characters(self):
        assert is_record_id(ROOT_ID)
        assert is_record_id(SHORT_ID)

    @pytest.mark.parametrize("value", ["", "abc", "500Hs00000AbCdEAA", None, 500000000000000, "no-cases"])
    def test_rejects_other_values(self, value):
        assert not is_record_id(value)


class TestLinks:
    """Test link synthesis."""

    def test_valid_ids_get_links(self, sample_tree):
        """Every node with a record id gets a caseUrl."""
        root = normalize(sample_tree)[0]
        assert root.url == f"/{ROOT_ID}"
        assert root.children[0].url == f"/{CHILD_A_ID}"
        assert root.children[0].children[0].url == f"/{GRANDCHILD_ID}"

    def test_short_id_gets_link(self):
        node = normalize({"id": SHORT_ID})[0]
        assert node.url == f"/{SHORT_ID}"

    def test_invalid_id_gets_no_link(self):
        node = normalize({"id": "not-a-record"})[0]
        assert node.url == ""
        assert node.links["caseUrl"] == ""

    def test_related_record_links(self, sample_tree):
        root = normalize(sample_tree)[0]
        assert root.links["aeAmUrl"] == f"/{OWNER_ID}"
        assert root.links["workGroupUrl"] == f"/{WORK_GROUP_ID}"

    def test_missing_related_id_gives_empty_link(self, sample_tree):
        child = normalize(sample_tree)[0].children[1]
        assert child.links["aeAmUrl"] == ""
        assert child.links["workGroupUrl"] == ""

    def test_custom_id_predicate(self):
        """A caller-supplied predicate replaces the length rule."""
        nodes = normalize(
            [{"id": "CASE-1"}, {"id": ROOT_ID}],
            id_predicate=lambda value: isinstance(value, str) and value.startswith("CASE-"),
        )
        assert nodes[0].url == "/CASE-1"
        assert nodes[1].url == ""

    def test_link_prefix(self):
        normalizer = TreeNormalizer(link_prefix="/lightning/r/Case/")
        node = normalizer.normalize({"id": ROOT_ID})[0]
        assert node.url == f"/lightning/r/Case/{ROOT_ID}"


class TestNoDataSentinel:
    """Test the no-cases root."""

    def test_sentinel_root(self):
        result = TreeNormalizer().run({"id": "no-cases"})
        assert result.no_data is True
        assert result.nodes == []

    def test_sentinel_in_list(self):
        result = TreeNormalizer().run([{"id": "no-cases"}])
        assert result.no_data is True

    def test_leaf_root_is_not_no_data(self):
        """A root without children is still data."""
        result = TreeNormalizer().run({"id": ROOT_ID, "children": []})
        assert result.no_data is False
        assert len(result.nodes) == 1
        assert result.nodes[0].children == []

    def test_configured_sentinel(self):
        result = TreeNormalizer(no_data_sentinel="empty").run({"id": "empty"})
        assert result.no_data is True


class TestDefaults:
    """Test default substitution for missing values."""

    def test_null_field_gets_placeholder(self, sample_tree):
        child_b = normalize(sample_tree)[0].children[1]
        assert child_b.id == CHILD_B_ID
        assert child_b.fields["subject"] == PLACEHOLDER

    def test_missing_fields_get_defaults(self):
        node = normalize({"id": ROOT_ID})[0]
        assert node.fields["status"] == PLACEHOLDER
        assert node.fields["aeAm"] == PLACEHOLDER
        assert node.fields["isEscalated"] is False
        assert node.fields["isClosed"] is False

    def test_present_values_are_kept(self, sample_tree):
        root = normalize(sample_tree)[0]
        assert root.fields["subject"] == "Parent case"
        assert root.fields["caseNumber"] == "00001001"
        assert root.children[0].children[0].fields["isClosed"] is True

    def test_label_used_as_case_number_for_synthetic_rows(self):
        """Grouping rows without a record id show their label."""
        node = normalize({"id": "group-open", "label": "Open cases", "children": []})[0]
        assert node.fields["caseNumber"] == "Open cases"
        assert node.url == ""


class TestChildren:
    """Test child handling and descendant counts."""

    def test_children_always_a_list(self, sample_tree):
        nodes = normalize(sample_tree)
        stack = list(nodes)
        while stack:
            node = stack.pop()
            assert isinstance(node.children, list)
            stack.extend(node.children)

    def test_child_count_from_length(self, sample_tree):
        root = normalize(sample_tree)[0]
        assert root.child_count == 2
        assert root.fields["childCount"] == 2
        assert root.children[1].child_count == 0

    def test_explicit_child_count_kept(self):
        """A count supplied by the backend (e.g. all descendants) wins."""
        node = normalize({"id": ROOT_ID, "childCount": 7, "children": [{"id": CHILD_A_ID}]})[0]
        assert node.child_count == 7

    def test_invalid_child_count(self):
        result = TreeNormalizer().run({"id": ROOT_ID, "childCount": "many", "children": [{"id": CHILD_A_ID}]})
        assert result.nodes[0].child_count == 1
        assert "invalid_count" in _kinds(result)

    def test_infinite_child_count(self):
        """JSON ``Infinity`` is a float that cannot become a count."""
        raw = json.loads(f'{{"id": "{ROOT_ID}", "childCount": Infinity, "children": [{{"id": "{CHILD_A_ID}"}}]}}')
        result = TreeNormalizer().run(raw)
        assert result.nodes[0].child_count == 1
        assert "invalid_count" in _kinds(result)

    def test_children_not_a_sequence(self):
        result = TreeNormalizer().run({"id": ROOT_ID, "children": "oops"})
        assert result.nodes[0].children == []
        assert "invalid_children" in _kinds(result)

    def test_non_mapping_child_becomes_empty_node(self):
        result = TreeNormalizer().run({"id": ROOT_ID, "children": [42, {"id": CHILD_A_ID}]})
        root = result.nodes[0]
        assert len(root.children) == 2
        assert root.children[0].id == ""
        assert root.children[0].url == ""
        assert root.children[1].id == CHILD_A_ID
        assert "invalid_child" in _kinds(result)

    def test_repeated_record_is_skipped(self):
        shared = {"id": CHILD_A_ID}
        result = TreeNormalizer().run({"id": ROOT_ID, "children": [shared, shared]})
        assert len(result.nodes[0].children) == 1
        assert "repeated_node" in _kinds(result)

    def test_order_preserved(self, sample_tree):
        root = normalize(sample_tree)[0]
        assert [child.id for child in root.children] == [CHILD_A_ID, CHILD_B_ID]


class TestDates:
    """Test date reserialization."""

    def test_parse_and_format_utc(self):
        parsed = parse_datetime("2024-03-05T14:30:00Z")
        assert format_iso_datetime(parsed) == "2024-03-05T14:30:00.000Z"

    def test_offset_converted_to_utc(self):
        assert format_iso_datetime(parse_datetime("2024-03-05T16:30:00+02:00")) == "2024-03-05T14:30:00.000Z"

    def test_naive_taken_as_utc(self):
        assert format_iso_datetime(parse_datetime("2024-03-05T14:30:00")) == "2024-03-05T14:30:00.000Z"

    def test_milliseconds_truncated(self):
        assert format_iso_datetime(parse_datetime("2024-03-05T14:30:00.123456Z")) == "2024-03-05T14:30:00.123Z"

    def test_unix_timestamp(self):
        assert format_iso_datetime(parse_datetime(1709649000)) == "2024-03-05T14:30:00.000Z"

    @pytest.mark.parametrize("value", [None, "", "not a date", True, {"a": 1}])
    def test_unparsable(self, value):
        assert parse_datetime(value) is None

    def test_node_dates_reserialized(self, sample_tree):
        root = normalize(sample_tree)[0]
        assert root.fields["createdDate"] == "2024-03-05T14:30:00.000Z"
        assert root.children[0].fields["createdDate"] == "2024-03-06T09:00:00.250Z"

    def test_unparsable_date_left_as_is(self):
        result = TreeNormalizer().run({"id": ROOT_ID, "createdDate": "yesterday"})
        assert result.nodes[0].fields["createdDate"] == "yesterday"
        assert "unparsable_date" in _kinds(result)

    def test_missing_date_not_invented(self):
        node = normalize({"id": ROOT_ID})[0]
        assert "createdDate" not in node.fields


class TestTotality:
    """Test that malformed input never raises."""

    @pytest.mark.parametrize("raw", [None, [], {}, "text", 42])
    def test_degenerate_input(self, raw):
        result = TreeNormalizer().run(raw)
        assert result.no_data is False
        assert all(isinstance(node, DisplayNode) for node in result.nodes)

    def test_invalid_roots_dropped_with_warning(self):
        result = TreeNormalizer().run([1, {"id": ROOT_ID}])
        assert [node.id for node in result.nodes] == [ROOT_ID]
        assert "invalid_input" in _kinds(result)

    def test_non_scalar_field_flattened(self):
        result = TreeNormalizer().run({"id": ROOT_ID, "subject": {"text": "hi"}})
        assert result.nodes[0].fields["subject"] == '{"text": "hi"}'
        assert "non_scalar_field" in _kinds(result)

    def test_out_of_range_datetime_value(self):
        """An aware datetime that overflows when moved to UTC is kept as text."""
        value = datetime(1, 1, 1, tzinfo=timezone(timedelta(hours=5)))
        result = TreeNormalizer().run({"id": ROOT_ID, "closedDate": value})
        assert result.nodes[0].fields["closedDate"] == value.isoformat()
        assert "unparsable_date" in _kinds(result)

    def test_unrecognized_field_kept_and_reported(self):
        result = TreeNormalizer().run({"id": ROOT_ID, "legacyCode": "X1"})
        assert result.nodes[0].fields["legacyCode"] == "X1"
        assert "unrecognized_field" in _kinds(result)

    def test_unrecognized_field_reporting_disabled(self):
        result = TreeNormalizer(report_unrecognized_fields=False).run({"id": ROOT_ID, "legacyCode": "X1"})
        assert result.warnings == []

    def test_input_not_mutated(self, sample_tree):
        before = copy.deepcopy(sample_tree)
        normalize(sample_tree)
        assert sample_tree == before

    def test_warnings_are_logged(self, log_output):
        TreeNormalizer().run({"id": ROOT_ID, "createdDate": "yesterday"})
        assert "WARNING: Normalization warning [unparsable_date]" in log_output.getvalue()


class TestIdempotence:
    """Test that normalizing a normalized tree changes nothing."""

    def test_display_nodes_round_trip(self, sample_tree):
        normalizer = TreeNormalizer()
        first = normalizer.normalize(sample_tree)
        second = normalizer.run(first)
        assert [node.to_dict() for node in second.nodes] == [node.to_dict() for node in first]
        assert second.warnings == []

    def test_rows_round_trip(self, sample_tree):
        normalizer = TreeNormalizer()
        rows = [node.to_dict() for node in normalizer.normalize(sample_tree)]
        again = [node.to_dict() for node in normalizer.normalize(rows)]
        assert again == rows

    def test_numeric_id_round_trip(self):
        """An id given as a number links the same way before and after."""
        normalizer = TreeNormalizer()
        first = normalizer.normalize({"id": 500000000000001})
        second = normalizer.normalize(first)
        assert first[0].id == "500000000000001"
        assert first[0].url == "/500000000000001"
        assert [node.to_dict() for node in second] == [node.to_dict() for node in first]


class TestDeepTrees:
    """Test that depth is not bounded by the interpreter stack."""

    def test_deep_chain(self):
        depth = 5000
        result = TreeNormalizer().run(build_chain(depth))
        assert result.node_count == depth

        node = result.nodes[0]
        levels = 1
        while node.children:
            node = node.children[0]
            levels += 1
        assert levels == depth
        assert node.fields["caseNumber"] == str(depth - 1)

    def test_deep_chain_to_dict(self):
        depth = 5000
        row = normalize(build_chain(depth))[0].to_dict()
        levels = 1
        while row["_children"]:
            row = row["_children"][0]
            levels += 1
        assert levels == depth
