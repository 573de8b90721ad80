"""Tests for OData filter predicates and query serialization."""

import pytest

from shared.filters import And, Eq, Or, escape_odata_string
from shared.list_store import ItemQuery


class TestEscaping:
    """Every interpolated string must have its quotes doubled."""

    @pytest.mark.parametrize("raw,expected", [
        ("ABC-123", "ABC-123"),
        ("O'HARA", "O''HARA"),
        ("''", "''''"),
        ("a' or Title ne '", "a'' or Title ne ''"),
        ("", ""),
    ])
    def test_escape_odata_string(self, raw, expected):
        assert escape_odata_string(raw) == expected

    def test_none_is_empty(self):
        assert escape_odata_string(None) == ""

    def test_injection_attempt_stays_inside_literal(self):
        clause = Eq("Title", "x' or 1 eq 1 or Title eq 'y").to_odata()
        assert clause == "Title eq 'x'' or 1 eq 1 or Title eq ''y'"


class TestPredicates:
    def test_eq_string(self):
        assert Eq("Certificado", "SANIPES").to_odata() == "Certificado eq 'SANIPES'"

    def test_eq_int_and_bool(self):
        assert Eq("Id", 9).to_odata() == "Id eq 9"
        assert Eq("Activo", True).to_odata() == "Activo eq 1"
        assert Eq("Activo", False).to_odata() == "Activo eq 0"

    def test_and_of_two(self):
        predicate = And(Eq("Title", "ABC-123"), Eq("Certificado", "TERMOKING"))
        assert predicate.to_odata() == "(Title eq 'ABC-123') and (Certificado eq 'TERMOKING')"

    def test_nested_or(self):
        predicate = And(
            Eq("Title", "ABC-123"),
            Or(Eq("Certificado", "sanipes"), Eq("Certificado", "SANIPES")),
        )
        assert predicate.to_odata() == (
            "(Title eq 'ABC-123') and "
            "((Certificado eq 'sanipes') or (Certificado eq 'SANIPES'))"
        )

    def test_single_clause_has_no_parentheses(self):
        assert And(Eq("Title", "A")).to_odata() == "Title eq 'A'"

    def test_empty_combinators_rejected(self):
        with pytest.raises(ValueError):
            And()
        with pytest.raises(ValueError):
            Or()

    def test_predicates_are_immutable(self):
        clause = Eq("Title", "A")
        with pytest.raises(AttributeError):
            clause.value = "B"


class TestItemQuery:
    def test_full_query_params(self):
        query = ItemQuery(
            select=["Id", "Title"],
            filter=Eq("Title", "ABC-123"),
            order_by="Id",
            descending=True,
            top=1,
            expand=["AttachmentFiles"],
        )
        assert query.to_params() == {
            "$select": "Id,Title",
            "$filter": "Title eq 'ABC-123'",
            "$orderby": "Id desc",
            "$top": "1",
            "$expand": "AttachmentFiles",
        }

    def test_empty_query_has_no_params(self):
        assert ItemQuery().to_params() == {}

    def test_ascending_order(self):
        assert ItemQuery(order_by="Title").to_params() == {"$orderby": "Title"}
