# tests/test_translation_components.py
"""Unit tests for alias derivation, field resolution, join analysis and value policy."""
from unittest import mock

import pytest

from shadow_translate.behaviors.aliases import derive_aliases
from shadow_translate.behaviors.analyzer import needs_join, primary_references, references_field
from shadow_translate.behaviors.fields import FieldResolver, resolve_fields, shadow_value_columns
from shadow_translate.behaviors.policy import apply_translation, resolve_value
from shadow_translate.core.exceptions import ConfigurationException, UnknownTranslationFieldException
from shadow_translate.db.schema import ColumnInfo
from shadow_translate.query.conditions import Condition, or_
from shadow_translate.query.plan import QueryPlan


# --- derive_aliases ------------------------------------------------------------


def test_derive_aliases_defaults():
    aliases = derive_aliases("Articles")

    assert aliases["has_one_alias"] == "ArticlesTranslationsOne"
    assert aliases["has_many_alias"] == "ArticlesTranslations"
    assert aliases["translation_table"] == "ArticlesTranslations"
    assert aliases["translation_table_alias"] == "ArticlesTranslations"
    assert aliases["reference_name"] == "Articles"


def test_derive_aliases_uses_current_alias_and_canonical_table():
    aliases = derive_aliases("FavoritePost", "Posts", "articles")

    assert aliases["translation_table"] == "ArticlesTranslations"
    assert aliases["main_table_alias"] == "FavoritePost"
    assert aliases["has_one_alias"] == "FavoritePostTranslationsOne"
    assert aliases["has_many_alias"] == "FavoritePostTranslations"
    assert aliases["reference_name"] == "Posts"


def test_derive_aliases_is_deterministic():
    assert derive_aliases("Articles", None, "articles") == derive_aliases("Articles", None, "articles")


def test_derive_aliases_overrides_field_by_field():
    aliases = derive_aliases(
        "Articles",
        table_name="articles",
        overrides={"translation_table": "articles_more_translations", "has_one_alias": None},
    )

    assert aliases["translation_table"] == "articles_more_translations"
    assert aliases["translation_table_alias"] == "ArticlesMoreTranslations"
    assert aliases["has_one_alias"] == "ArticlesTranslationsOne"


@pytest.mark.parametrize(
    "overrides",
    [
        {"has_one_alias": "Same", "has_many_alias": "Same"},
        {"has_one_alias": "Articles"},
    ],
)
def test_derive_aliases_rejects_colliding_overrides(overrides):
    with pytest.raises(ConfigurationException):
        derive_aliases("Articles", overrides=overrides)


def test_derive_aliases_rejects_unknown_override():
    with pytest.raises(ConfigurationException):
        derive_aliases("Articles", overrides={"main_table_alias": "Other"})


# --- field resolution ----------------------------------------------------------


def test_resolve_fields_from_schema_intersection():
    fields = resolve_fields(
        ["id", "author_id", "title", "body", "published"],
        ["id", "locale", "body", "title"],
    )
    assert fields == ["title", "body"]


def test_resolve_fields_explicit_wins():
    fields = resolve_fields(["id", "title", "body"], ["id", "locale", "title", "body"], ["body"])
    assert fields == ["body"]


def test_resolve_fields_explicit_must_exist_in_shadow_schema():
    with pytest.raises(UnknownTranslationFieldException):
        resolve_fields(["id", "title", "published"], ["id", "locale", "title"], ["title", "published"])


def test_shadow_value_columns_keep_virtual_fields():
    assert shadow_value_columns(["id", "locale", "title", "subtitle"], ["id", "locale"]) == [
        "title",
        "subtitle",
    ]


def test_field_resolver_memoises():
    inspector = mock.Mock()
    inspector.columns.side_effect = lambda name: {
        "articles_translations": [ColumnInfo("id"), ColumnInfo("locale"), ColumnInfo("title")],
        "articles": [ColumnInfo("id"), ColumnInfo("title"), ColumnInfo("body")],
    }[name]
    resolver = FieldResolver(inspector, "articles", lambda: "articles_translations")

    assert not resolver.resolved
    assert resolver.fields() == ["title"]
    assert resolver.fields() == ["title"]
    assert resolver.shadow_fields() == ["title"]
    assert resolver.resolved
    assert inspector.columns.call_count == 2


# --- join necessity ------------------------------------------------------------


def _plan():
    return QueryPlan(mock.Mock(alias="Articles"))


def test_references_field():
    assert references_field("title", "Articles", "title")
    assert references_field("Articles.title", "Articles", "title")
    assert not references_field("Other.title", "Articles", "title")
    assert not references_field("Articles.body", "Articles", "title")


def test_primary_references():
    assert primary_references(["id", "Articles.title", "Authors.name"], "Articles") == ["id", "title"]


def test_select_all_needs_join_without_resolving_fields():
    fields = mock.Mock(return_value=["title"])
    assert needs_join(_plan(), "Articles", fields)
    fields.assert_not_called()


def test_untranslated_projection_needs_no_join():
    assert not needs_join(_plan().select("id"), "Articles", ["title", "body"])


def test_other_alias_needs_no_join_and_no_resolution():
    fields = mock.Mock(return_value=["title"])
    assert not needs_join(_plan().select("Other.title"), "Articles", fields)
    fields.assert_not_called()


@pytest.mark.parametrize(
    "build",
    [
        lambda p: p.select("title"),
        lambda p: p.select("Articles.title"),
        lambda p: p.select("id").where({"title": "x"}),
        lambda p: p.select("id").where(or_(Condition("id", "=", 1), Condition("body", "like", "%x%"))),
        lambda p: p.select("id").order_by("-title"),
    ],
)
def test_translated_reference_needs_join(build):
    assert needs_join(build(_plan()), "Articles", ["title", "body"])


# --- empty-value policy --------------------------------------------------------


@pytest.mark.parametrize(
    "primary, translated, present, allow_empty, in_shadow, expected",
    [
        ("First", "Erster", True, True, True, "Erster"),
        ("First", "", True, True, True, ""),
        ("First", "", True, False, True, "First"),
        ("First", None, True, True, True, "First"),
        ("First", None, False, True, True, "First"),
        ("First", None, False, False, True, "First"),
        ("First", "Erster", True, True, False, None),
        ("First", "", True, False, False, None),
        (None, "SubTitle", True, False, True, "SubTitle"),
    ],
)
def test_resolve_value(primary, translated, present, allow_empty, in_shadow, expected):
    assert resolve_value(primary, translated, present, allow_empty, in_shadow) == expected


def test_apply_translation_overlays_in_place():
    row = {"id": 1, "title": "First", "description": "Main only"}
    result = apply_translation(
        row,
        {"title": "Erster", "description": None},
        True,
        ["title", "description"],
        ["title"],
    )

    assert result is row
    assert row == {"id": 1, "title": "Erster", "description": None}
