"""
Tests for odata_expand.odata.expand and odata_expand.odata.urls.
"""

import pytest

from odata_expand.odata.errors import ExpandRewriteError, ODataRequestError
from odata_expand.odata.expand import (
    expand_targets,
    rewrite_expand_value,
    rewrite_query_string,
    rewrite_target,
    split_top_level,
)
from odata_expand.odata.urls import parse_query_pairs, replace_params, with_query


class TestRewriteTarget:
    """Tests for the implicit Attributes expansion of request targets."""

    def test_no_query_string_appends_with_question_mark(self):
        assert rewrite_target("/Persons") == "/Persons?$expand=Attributes"

    def test_existing_query_appends_with_ampersand(self):
        assert (
            rewrite_target("/Persons?$filter=Age gt 10")
            == "/Persons?$filter=Age gt 10&$expand=Attributes"
        )

    def test_encoded_query_is_kept_verbatim(self):
        assert (
            rewrite_target("/Persons?$filter=Age%20gt%2010&$top=5")
            == "/Persons?$filter=Age%20gt%2010&$top=5&$expand=Attributes"
        )

    def test_single_expand_is_rewritten(self):
        assert (
            rewrite_target("/Persons?$expand=Orders,Pets")
            == "/Persons?$expand=Attributes,Orders($expand=Attributes),Pets($expand=Attributes)"
        )

    def test_expand_position_is_preserved(self):
        assert (
            rewrite_target("/Persons?$expand=Orders&$top=1")
            == "/Persons?$expand=Attributes,Orders($expand=Attributes)&$top=1"
        )

    def test_absolute_url(self):
        assert (
            rewrite_target("http://host:5050/odata/Persons?$top=5")
            == "http://host:5050/odata/Persons?$top=5&$expand=Attributes"
        )

    def test_two_expands_rejected(self):
        with pytest.raises(ExpandRewriteError, match="found 2"):
            rewrite_target("/Persons?$expand=Orders&$expand=Pets")

    def test_three_expands_rejected(self):
        with pytest.raises(ExpandRewriteError, match="found 3"):
            rewrite_target("/Persons?$expand=A&$expand=B&$expand=C")

    def test_rewrite_error_is_a_request_error(self):
        with pytest.raises(ODataRequestError):
            rewrite_target("/Persons?$expand=Orders&$expand=Orders")


class TestRewriteQueryString:
    """Tests for segment-level query string rewriting."""

    def test_empty(self):
        assert rewrite_query_string("") == "$expand=Attributes"

    def test_percent_encoded_key_is_recognised(self):
        assert (
            rewrite_query_string("%24expand=Orders")
            == "$expand=Attributes,Orders($expand=Attributes)"
        )

    def test_percent_encoded_keys_count_towards_duplicates(self):
        with pytest.raises(ExpandRewriteError):
            rewrite_query_string("%24expand=Orders&$expand=Pets")

    def test_expand_text_inside_other_values_is_untouched(self):
        query = "$filter=Name%20eq%20'$expand=Orders'"
        assert rewrite_query_string(query) == query + "&$expand=Attributes"

    def test_blank_expand_becomes_attributes(self):
        assert rewrite_query_string("$expand=") == "$expand=Attributes"

    def test_explicit_attributes(self):
        assert rewrite_query_string("$expand=Attributes") == "$expand=Attributes"

    def test_custom_options_are_kept(self):
        assert (
            rewrite_query_string("trace=1&$expand=Pets")
            == "trace=1&$expand=Attributes,Pets($expand=Attributes)"
        )


class TestRewriteExpandValue:
    """Tests for rewriting a single $expand value."""

    def test_targets_keep_their_order(self):
        assert (
            rewrite_expand_value("Pets,Orders")
            == "Attributes,Pets($expand=Attributes),Orders($expand=Attributes)"
        )

    def test_whitespace_and_blank_entries(self):
        assert (
            rewrite_expand_value(" Orders , ,Pets ")
            == "Attributes,Orders($expand=Attributes),Pets($expand=Attributes)"
        )

    def test_nested_options_rejected(self):
        with pytest.raises(ExpandRewriteError, match="Nested"):
            rewrite_expand_value("Orders($expand=Lines)")

    def test_unbalanced_parentheses_rejected(self):
        with pytest.raises(ExpandRewriteError, match="Unbalanced"):
            rewrite_expand_value("Orders(")

    def test_explicit_attributes_is_not_repeated(self):
        assert rewrite_expand_value("Attributes") == "Attributes"
        assert (
            rewrite_expand_value("Orders,Attributes")
            == "Attributes,Orders($expand=Attributes)"
        )


class TestSplitting:
    """Tests for paren-aware splitting."""

    def test_split_top_level(self):
        assert split_top_level("A,B($expand=C,D),E") == ["A", "B($expand=C,D)", "E"]

    def test_split_respects_quotes(self):
        assert split_top_level("a='x,y';b", ";") == ["a='x,y'", "b"]

    def test_expand_targets(self):
        assert expand_targets("") == []
        assert expand_targets("Orders, Pets") == ["Orders", "Pets"]

    def test_unbalanced_closing_paren(self):
        with pytest.raises(ExpandRewriteError):
            split_top_level("A),B")


class TestUrlHelpers:
    """Tests for query string helpers."""

    def test_parse_query_pairs(self):
        assert parse_query_pairs("$filter=Age+gt+10&$expand=Orders&$expand=Pets") == [
            ("$filter", "Age gt 10"),
            ("$expand", "Orders"),
            ("$expand", "Pets"),
        ]

    def test_replace_params_sets_and_removes(self):
        query = "$filter=Age%20gt%2010&$skip=2&$top=10"
        assert replace_params(query, skip="4", top=None) == "$filter=Age%20gt%2010&$skip=4"

    def test_replace_params_appends_missing(self):
        assert replace_params("$top=3", skip="3") == "$top=3&$skip=3"

    def test_with_query(self):
        assert with_query("http://h/odata/Persons?x=1", "y=2") == "http://h/odata/Persons?y=2"
        assert with_query("/Persons", "") == "/Persons"
