"""
Modifier Set Tests

Covers construction from raw input, chaining setters, cloning and application
to a query through allow-lists.
"""

import copy

import pytest
from sqlalchemy.orm import Session

from builder_services import InvalidModifierValue, Modifiers, UnknownModifierKey, equals, order_by
from builder_services.modifiers import Filter, Sort, parse_sort
from tests.support import NotificationTemplate


# ============================================================================
# Construction and setters
# ============================================================================


class TestModifierConstruction:
    """Test building modifiers from raw mappings and setters"""

    def test_empty_modifiers_have_no_pagination(self):
        modifiers = Modifiers()
        assert modifiers.get_filters() == []
        assert modifiers.get_sort() is None
        assert modifiers.get_limit() is None
        assert modifiers.get_offset() is None

    def test_reserved_keys_set_pagination_and_sort(self):
        modifiers = Modifiers({"type": "email", "limit": "10", "offset": 5, "sort": "-name"})

        assert modifiers.get_filters() == [Filter("type", "email")]
        assert modifiers.get_limit() == 10
        assert modifiers.get_offset() == 5
        assert modifiers.get_sort() == Sort("name", "desc")

    def test_setters_are_chainable(self):
        modifiers = Modifiers().add_filter("type", "sms").sort("name").limit(3).offset(6)

        assert modifiers.get_filters() == [Filter("type", "sms")]
        assert modifiers.get_sort() == Sort("name", "asc")
        assert modifiers.get_limit() == 3
        assert modifiers.get_offset() == 6

    def test_duplicate_filter_keys_are_kept(self):
        modifiers = Modifiers().filters([("type", "email"), ("type", "sms")]).filters({"priority": "high"})

        assert modifiers.get_filters() == [
            Filter("type", "email"),
            Filter("type", "sms"),
            Filter("priority", "high"),
        ]

    def test_remove_filter_drops_every_directive_with_key(self):
        modifiers = Modifiers().add_filter("type", "email").add_filter("priority", "low").add_filter("type", "sms")
        modifiers.remove_filter("type")
        assert modifiers.get_filters() == [Filter("priority", "low")]

    @pytest.mark.parametrize("value", [-1, "-3", "ten", True, [1]])
    def test_invalid_limit_is_rejected(self, value):
        with pytest.raises(InvalidModifierValue):
            Modifiers().limit(value)

    def test_limit_none_clears_value(self):
        modifiers = Modifiers().limit(5).limit(None)
        assert modifiers.get_limit() is None

    def test_invalid_sort_direction_is_rejected(self):
        with pytest.raises(InvalidModifierValue):
            Modifiers().sort("name", "sideways")

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("name", Sort("name", "asc")),
            ("-name", Sort("name", "desc")),
            ("name:desc", Sort("name", "desc")),
            ("name:ASC", Sort("name", "asc")),
        ],
    )
    def test_parse_sort(self, raw, expected):
        assert parse_sort(raw) == expected


# ============================================================================
# Cloning
# ============================================================================


class TestModifierCloning:
    """Test that clones never share filter state with the original"""

    def test_mutating_clone_leaves_original_untouched(self):
        original = Modifiers({"type": "email", "limit": 10})
        clone = original.copy()

        clone.add_filter("priority", "high").limit(2).sort("name")

        assert original.get_filters() == [Filter("type", "email")]
        assert original.get_limit() == 10
        assert original.get_sort() is None
        assert len(clone.get_filters()) == 2

    def test_list_values_are_not_shared(self):
        original = Modifiers().add_filter("type", ["email"])
        clone = copy.copy(original)

        clone.get_filters()[0].value.append("sms")

        assert original.get_filters()[0].value == ["email"]


# ============================================================================
# Application to queries
# ============================================================================


class TestApplyToQuery:
    """Test applying modifiers to an ORM query through allow-lists"""

    FILTERS = {"type": equals(NotificationTemplate.template_type)}
    SORT = {"name": order_by(NotificationTemplate.template_name)}

    def test_filters_sort_and_pagination_are_applied(self, db_session: Session):
        query = db_session.query(NotificationTemplate)
        modifiers = Modifiers({"type": "email", "sort": "-name", "limit": 5, "offset": 10})

        sql = str(modifiers.apply_to_query(query, self.FILTERS, self.SORT))

        assert "notification_templates.template_type = " in sql
        assert "ORDER BY notification_templates.template_name DESC" in sql
        assert "LIMIT" in sql
        assert "OFFSET" in sql

    def test_list_value_becomes_in_clause(self, db_session: Session):
        query = db_session.query(NotificationTemplate)
        sql = str(Modifiers().add_filter("type", ["email", "sms"]).apply_to_query(query, self.FILTERS))
        assert "template_type IN" in sql

    def test_unknown_filter_is_ignored_without_changing_query(self, db_session: Session):
        query = db_session.query(NotificationTemplate)
        modifiers = Modifiers().add_filter("password", "x").sort("secret")

        result = modifiers.apply_to_query(query, self.FILTERS, self.SORT, on_unknown="ignore")

        assert str(result) == str(query)

    def test_unknown_filter_is_rejected(self, db_session: Session):
        query = db_session.query(NotificationTemplate)
        with pytest.raises(UnknownModifierKey) as exc_info:
            Modifiers().add_filter("password", "x").apply_to_query(query, self.FILTERS, self.SORT, on_unknown="reject")
        assert exc_info.value.kind == "filter"
        assert exc_info.value.key == "password"

    def test_unknown_sort_is_rejected(self, db_session: Session):
        query = db_session.query(NotificationTemplate)
        with pytest.raises(UnknownModifierKey) as exc_info:
            Modifiers().sort("secret").apply_to_query(query, self.FILTERS, self.SORT, on_unknown="reject")
        assert exc_info.value.kind == "sort"

    def test_apply_does_not_mutate_modifiers(self, db_session: Session):
        modifiers = Modifiers({"type": "email"})
        modifiers.apply_to_query(db_session.query(NotificationTemplate), self.FILTERS)
        assert modifiers.get_filters() == [Filter("type", "email")]
