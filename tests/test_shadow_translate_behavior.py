# tests/test_shadow_translate_behavior.py
from unittest import mock

import pytest
from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError

from shadow_translate.behaviors.base import Behavior, register_behavior
from shadow_translate.core.exceptions import (
    BehaviorConflictException,
    ConfigurationException,
    DatabaseException,
    EntityNotFoundException,
    UnknownTranslationFieldException,
)
from shadow_translate.db.entity import Entity
from shadow_translate.db.schema import SchemaInspector

TRANSLATION_TABLE = "articles_translations"
HAS_ONE = "ArticlesTranslationsOne"


@register_behavior
class EavTranslateBehavior(Behavior):
    """Stand-in for another translation strategy."""

    name = "EavTranslate"
    role = "translate"


# --- Setup -------------------------------------------------------------------


def test_translate_resolves_to_shadow_translate(articles):
    articles.add_behavior("Translate")

    assert not articles.has_behavior("Translate")
    assert articles.has_behavior("ShadowTranslate")
    assert articles.translation_strategy() == "ShadowTranslate"


def test_attaching_twice_returns_same_behavior(articles):
    first = articles.add_behavior("Translate")
    assert articles.add_behavior("ShadowTranslate") is first


def test_second_translation_strategy_is_refused(articles):
    articles.add_behavior("Translate")

    with pytest.raises(BehaviorConflictException) as exc_info:
        articles.add_behavior(EavTranslateBehavior)

    assert exc_info.value.code == "CONFIG_003"
    assert exc_info.value.details["existing"] == "ShadowTranslate"
    assert articles.translation_strategy() == "ShadowTranslate"


def test_shadow_translate_refused_after_other_strategy(articles):
    articles.add_behavior("EavTranslate")

    with pytest.raises(BehaviorConflictException):
        articles.add_behavior("Translate")


def test_removed_strategy_can_be_replaced(articles):
    articles.add_behavior("Translate")
    articles.remove_behavior("ShadowTranslate")

    assert articles.translation_strategy() is None
    articles.add_behavior("EavTranslate")
    assert articles.translation_strategy() == "EavTranslate"


def test_attach_registers_associations(articles):
    articles.add_behavior("Translate")

    has_one = articles.associations().get("ArticlesTranslationsOne")
    has_many = articles.associations().get("ArticlesTranslations")
    assert has_one.is_collection is False
    assert has_many.is_collection is True
    assert has_many.property_name == "_translations"
    assert has_many.index_by == "locale"


def test_invalid_option_is_rejected(articles):
    with pytest.raises(ConfigurationException):
        articles.add_behavior("Translate", bogus=True)


def test_camel_case_options_are_accepted(articles):
    behavior = articles.add_behavior("Translate", allowEmptyTranslations=False, referenceName="Posts")

    assert behavior.config("allow_empty_translations") is False
    assert behavior.config("reference_name") == "Posts"


def test_conflicting_alias_overrides_are_rejected(articles):
    with pytest.raises(ConfigurationException):
        articles.add_behavior("Translate", hasOneAlias="Same", hasManyAlias="Same")


def test_missing_translation_table_fails_on_first_use(articles):
    articles.add_behavior("Translate", translationTable="NoSuchTranslations")
    articles.set_locale("eng")

    with pytest.raises(ConfigurationException):
        articles.find().all()


# --- Field resolution ----------------------------------------------------------


def test_auto_field_detection(articles):
    articles.add_behavior("Translate")
    articles.set_locale("eng")
    articles.find().select("title").first()

    behavior = articles.behaviors().get("ShadowTranslate")
    assert behavior.config("fields") == ["title", "body"]
    assert articles.get_config().fields == ["title", "body"]


def test_unknown_explicit_field_fails_on_first_use(articles):
    articles.add_behavior("Translate", fields=["title", "published"])
    articles.set_locale("eng")

    with pytest.raises(UnknownTranslationFieldException) as exc_info:
        articles.find().all()
    assert exc_info.value.details["missing_fields"] == ["published"]


def test_explicit_fields_limit_join_and_overlay(factory):
    repo = factory.create_repository("articles", translate={"fields": ["title"]})
    repo.set_locale("eng")

    plan = repo.find().select("id", "body").where({"Articles.id": 1})
    assert plan.joined_tables() == []
    assert plan.hydrate(False).all() == [{"id": 1, "body": "First Article Body"}]

    article = repo.get(1)
    assert article.title == "Title #1"
    assert article.body == "First Article Body"
    assert repo.find().where({"body": "First Article Body"}).count() == 1


def test_fields_are_resolved_lazily_and_once(articles):
    with mock.patch.object(
        SchemaInspector, "columns", autospec=True, side_effect=SchemaInspector.columns
    ) as columns:
        articles.add_behavior("Translate")
        articles.find().all()
        assert columns.call_count == 0

        articles.set_locale("eng")
        articles.find().select("title").all()
        articles.find().select("body").all()
        assert columns.call_count == 2


def test_other_alias_reference_never_introspects(articles):
    with mock.patch.object(
        SchemaInspector, "columns", autospec=True, side_effect=SchemaInspector.columns
    ) as columns:
        articles.add_behavior("Translate")
        articles.set_locale("eng")

        assert not articles.find().select("Other.title").has_join(HAS_ONE)
        assert columns.call_count == 0


# --- Join necessity ------------------------------------------------------------


def test_no_unnecessary_joins(translated_articles):
    assert TRANSLATION_TABLE not in translated_articles.find().joined_tables()
    assert TRANSLATION_TABLE not in translated_articles.find().sql()

    translated_articles.set_locale("eng")

    assert TRANSLATION_TABLE not in translated_articles.find().select("id").joined_tables()
    assert TRANSLATION_TABLE not in translated_articles.find().select("Other.title").joined_tables()
    assert TRANSLATION_TABLE not in translated_articles.find().select("id").where(
        {"Other.title": "x"}
    ).joined_tables()


def test_necessary_joins_select(translated_articles):
    translated_articles.set_locale("eng")

    for plan in (
        translated_articles.find(),
        translated_articles.find().select("title"),
        translated_articles.find().select("Articles.title"),
    ):
        assert plan.joined_tables().count(TRANSLATION_TABLE) == 1
        assert plan.get_join(HAS_ONE).join_type == "LEFT"


def test_necessary_joins_where(translated_articles):
    translated_articles.set_locale("eng")
    plan = translated_articles.find().select("id").where({"title": "Title #1"})

    assert plan.has_join(HAS_ONE)
    assert [row["id"] for row in plan.hydrate(False).all()] == [1]


def test_necessary_joins_order(translated_articles):
    translated_articles.set_locale("eng")
    plan = translated_articles.find().select("id").order_by("-title")

    assert plan.joined_tables().count(TRANSLATION_TABLE) == 1
    assert [row["id"] for row in plan.hydrate(False).all()] == [3, 2, 1]


def test_join_attached_once_when_referenced_everywhere(translated_articles):
    translated_articles.set_locale("deu")
    plan = (
        translated_articles.find()
        .select("title", "Articles.body")
        .where({"title like": "Titel%"})
        .order_by("title")
    )

    assert plan.joined_tables() == [TRANSLATION_TABLE]
    rows = plan.hydrate(False).all()
    assert [row["title"] for row in rows] == ["Titel #1", "Titel #2", "Titel #3"]
    assert rows[0]["body"] == "Inhalt #1"


def test_translation_field_reference_joins(translated_articles):
    translated_articles.set_locale("eng")
    field = translated_articles.translation_field("title")

    assert field == "Articles.title"
    plan = translated_articles.find().select("id").where({field: "Title #2"})
    assert plan.has_join(HAS_ONE)
    assert [row["id"] for row in plan.hydrate(False).all()] == [2]


def test_translation_field_in_default_locale(translated_articles):
    assert translated_articles.translation_field("title") == "Articles.title"


# --- Results -------------------------------------------------------------------


def test_translated_values_replace_main_values(translated_articles):
    translated_articles.set_locale("deu")
    article = translated_articles.get(2)

    assert article.title == "Titel #2"
    assert article.body == "Inhalt #2"
    assert article.published == "Y"
    assert article._locale == "deu"


def test_missing_translation_row_keeps_main_values(translated_articles):
    translated_articles.set_locale("fra")
    article = translated_articles.get(1)

    assert article.title == "First Article"
    assert article.body == "First Article Body"
    assert "_locale" not in article


def test_default_locale_returns_main_values(translated_articles):
    article = translated_articles.get(1)
    assert article.title == "First Article"


def test_virtual_translation_field(articles):
    articles.add_behavior(
        "Translate",
        translationTableAlias="ArticlesMoreTranslations",
        translationTable="articles_more_translations",
    )
    articles.set_locale("eng")

    results = articles.find().combine("title", "subtitle", "id")

    assert results == {
        1: {"Title #1": "SubTitle #1"},
        2: {"Title #2": "SubTitle #2"},
        3: {"Title #3": "SubTitle #3"},
    }


def test_virtual_field_can_be_selected_and_filtered(articles):
    articles.add_behavior("Translate", translationTable="articles_more_translations")
    articles.set_locale("eng")

    rows = articles.find().select("id", "subtitle").where({"subtitle": "SubTitle #3"}).hydrate(False).all()
    assert [(row["id"], row["subtitle"]) for row in rows] == [(3, "SubTitle #3")]
    assert rows[0]["_locale"] == "eng"


def test_no_ambiguous_fields(translated_articles):
    translated_articles.set_locale("eng")

    assert translated_articles.find().select("id").all() is not None
    rows = translated_articles.find().select("title").hydrate(False).all()
    assert sorted(row["title"] for row in rows) == ["Title #1", "Title #2", "Title #3"]


def test_no_ambiguous_conditions(translated_articles):
    translated_articles.set_locale("eng")

    assert len(translated_articles.find().where({"id": 1}).all()) == 1
    assert translated_articles.find().where({"title": 1}).all() == []


def test_no_ambiguous_order(translated_articles):
    translated_articles.set_locale("eng")

    assert [a.id for a in translated_articles.find().order_by({"id": "asc"}).all()] == [1, 2, 3]
    assert [a.title for a in translated_articles.find().order_by({"title": "desc"}).all()] == [
        "Title #3",
        "Title #2",
        "Title #1",
    ]


def test_count_with_translated_filter(translated_articles):
    translated_articles.set_locale("cze")
    assert translated_articles.find().where({"title like": "Titulek%"}).count() == 3
    assert translated_articles.count(title="Titulek #1") == 1


def test_unhydrated_results(articles):
    articles.add_behavior("ShadowTranslate")
    result = articles.find("translations").hydrate(False).first()

    assert "title" in result
    assert isinstance(result["_translations"], dict)
    assert set(result["_translations"]) == {"eng", "deu", "cze", "zzz"}


def test_find_translations_restricted_to_locales(translated_articles):
    result = translated_articles.find_translations(locales=["deu"]).where({"Articles.id": 2}).first()

    assert list(result._translations) == ["deu"]
    assert result._translations["deu"].title == "Titel #2"


def test_find_with_associations(factory, metadata):
    repo = factory.create_repository("articles")
    repo.belongs_to("Authors", metadata.tables["authors"])
    repo.add_behavior("Translate")
    repo.set_locale("eng")

    plan = repo.find("translations").where({"Articles.id": 1}).contain("Authors")
    assert TRANSLATION_TABLE in plan.joined_tables()
    assert plan.joined_tables().index("authors") < plan.joined_tables().index(TRANSLATION_TABLE)

    result = plan.first_or_fail()
    assert result.author is not None
    assert result.author.name == "mariano"
    assert result.title == "Title #1"
    assert result._translations
    assert isinstance(result._translations["eng"], Entity)


def test_find_with_associations_unhydrated(factory, metadata):
    repo = factory.create_repository("articles")
    repo.belongs_to("Authors", metadata.tables["authors"])
    repo.add_behavior("Translate")
    repo.set_locale("deu")

    rows = repo.find().contain("Authors").order_by("Articles.id").hydrate(False).all()

    assert [row["title"] for row in rows] == ["Titel #1", "Titel #2", "Titel #3"]
    assert [row["author"]["name"] for row in rows] == ["mariano", "larry", "mariano"]


def test_attaching_translations_keeps_other_associations(factory, metadata):
    repo = factory.create_repository("articles")
    repo.belongs_to("Authors", metadata.tables["authors"])
    repo.has_many("Comments", metadata.tables["comments"])
    repo.add_behavior("Translate")

    assert repo.associations().keys() == [
        "Authors",
        "Comments",
        "ArticlesTranslationsOne",
        "ArticlesTranslations",
    ]

    repo.set_locale("eng")
    article = repo.find().contain("Authors", "Comments").where({"Articles.id": 1}).first()
    assert article.author.name == "mariano"
    assert len(article.comments) == 2
    assert article.title == "Title #1"


def test_first_or_fail_raises(translated_articles):
    with pytest.raises(EntityNotFoundException):
        translated_articles.find().where({"Articles.id": 99}).first_or_fail()


def test_get_missing_raises(translated_articles):
    with pytest.raises(EntityNotFoundException) as exc_info:
        translated_articles.get(99)
    assert exc_info.value.code == "DOMAIN_001"


# --- Aliases -------------------------------------------------------------------


def test_default_aliases(articles):
    articles.add_behavior("Translate", fields=["body"], referenceName="Posts")

    config = articles.behaviors().get("ShadowTranslate").config()
    assert config.translation_table == "ArticlesTranslations"
    assert config.main_table_alias == "Articles"
    assert config.has_one_alias == "ArticlesTranslationsOne"
    assert config.has_many_alias == "ArticlesTranslations"


def test_changing_reference_name(factory):
    repo = factory.create_repository("articles", alias="FavoritePost")
    repo.add_behavior("Translate", fields=["body"], referenceName="Posts")

    config = repo.behaviors().get("ShadowTranslate").config()
    assert config.translation_table == "ArticlesTranslations"
    assert config.main_table_alias == "FavoritePost"
    assert config.has_one_alias == "FavoritePostTranslationsOne"
    assert config.has_many_alias == "FavoritePostTranslations"
    assert config.reference_name == "Posts"


def test_aliased_repository_translates(factory):
    repo = factory.create_repository("articles", alias="FavoritePost", translate={})
    repo.set_locale("eng")

    article = repo.find().where({"FavoritePost.id": 3}).first()
    assert article.title == "Title #3"
    assert repo.find().has_join("FavoritePostTranslationsOne")


def test_set_alias_after_attach_is_refused(translated_articles):
    with pytest.raises(ConfigurationException):
        translated_articles.set_alias("Posts")


# --- Empty translations --------------------------------------------------------


def test_empty_translations_default_behavior(articles):
    articles.add_behavior("Translate")
    articles.set_locale("zzz")
    result = articles.get(1)

    assert result.title == ""
    assert result.body == ""
    assert result.get("description") is None


def test_empty_translations_ignored(articles):
    articles.add_behavior("Translate", allowEmptyTranslations=False)
    articles.set_locale("zzz")
    result = articles.get(1)

    assert result.title == "First Article"
    assert result.body == "First Article Body"
    assert result.get("description") is None


def test_filtering_agrees_with_empty_translation_policy(articles):
    articles.add_behavior("Translate", allowEmptyTranslations=False)
    articles.set_locale("zzz")

    ids = [a.id for a in articles.find().where({"title": "First Article"}).all()]
    assert ids == [1]


def test_translation_field_agrees_with_empty_translation_policy(articles):
    articles.add_behavior("Translate", allowEmptyTranslations=False)
    articles.set_locale("zzz")
    field = articles.translation_field("title")

    assert articles.get(1).title == "First Article"
    ids = [a.id for a in articles.find().where({field: "First Article"}).all()]
    assert ids == [1]


# --- Delete --------------------------------------------------------------------


def test_delete_removes_translations(translated_articles, article_translations):
    article = translated_articles.find().first()

    assert translated_articles.delete(article) is True
    assert article_translations.count(id=article.id) == 0
    assert article_translations.count(id=2) == 3


def test_delete_without_translations(translated_articles, article_translations):
    article = translated_articles.save(
        translated_articles.new_entity({"author_id": 2, "title": "Fresh", "body": "New"})
    )
    assert article_translations.count(id=article.id) == 0

    assert translated_articles.delete(article.id) is True
    assert article_translations.count(id=article.id) == 0
    assert translated_articles.count() == 3


def test_delete_in_translated_locale(translated_articles, article_translations):
    translated_articles.set_locale("deu")
    article = translated_articles.get(1)

    assert translated_articles.delete(article)
    assert article_translations.count(id=1) == 0


def test_failed_delete_rolls_back_translations(translated_articles, article_translations):
    behavior = translated_articles.translation_behavior()
    article = translated_articles.get(1)

    with mock.patch.object(behavior, "after_delete", side_effect=SQLAlchemyError("boom")):
        with pytest.raises(DatabaseException):
            translated_articles.delete(article)

    assert article_translations.count(id=1) == 4
    assert translated_articles.get(1).title == "First Article"


# --- Save ----------------------------------------------------------------------


def test_save_in_locale_writes_translation_only(translated_articles, article_translations):
    translated_articles.set_locale("deu")
    article = translated_articles.get(1)
    article.title = "Neuer Titel"
    translated_articles.save(article)

    assert article_translations.find_translation(1, "deu")["title"] == "Neuer Titel"
    assert article_translations.find_translation(1, "deu")["body"] == "Inhalt #1"

    translated_articles.set_locale(None)
    assert translated_articles.get(1).title == "First Article"


def test_save_in_new_locale_creates_translation(translated_articles, article_translations):
    translated_articles.set_locale("fra")
    article = translated_articles.get(2)
    article.body = "Corps"
    translated_articles.save(article)

    translation = article_translations.find_translation(2, "fra")
    assert translation["body"] == "Corps"
    assert translation["title"] is None
    assert translated_articles.get(2).body == "Corps"
    assert translated_articles.get(2).title == "Second Article"


def test_save_new_record_in_locale(translated_articles, article_translations):
    translated_articles.set_locale("deu")
    article = translated_articles.save(
        translated_articles.new_entity({"author_id": 1, "title": "Hallo", "body": "Welt"})
    )

    assert article.id is not None
    assert not article.is_new()
    assert article_translations.get_locales_for_entity(article.id) == ["deu"]

    translated_articles.set_locale(None)
    assert translated_articles.get(article.id).title == "Hallo"


def test_save_translation_bundle(translated_articles, article_translations):
    article = translated_articles.get(3)
    article.set(
        "_translations",
        {
            "fra": {"title": "Troisième", "body": "Corps #3"},
            "en_US": {"title": "ignored"},
        },
    )
    translated_articles.save(article)

    assert article_translations.find_translation(3, "fra")["title"] == "Troisième"
    assert article_translations.find_translation(3, "en_US") is None
    assert translated_articles.get(3).title == "Third Article"


def test_save_in_default_locale_updates_main_row(translated_articles, article_translations, session):
    article = translated_articles.get(1)
    article.title = "Renamed"
    translated_articles.save(article)

    table = translated_articles.table
    stored = session.execute(select(table.c.title).where(table.c.id == 1)).scalar_one()
    assert stored == "Renamed"
    assert article_translations.find_translation(1, "eng")["title"] == "Title #1"


def test_save_failure_raises_database_exception(translated_articles, session):
    table = translated_articles.table
    duplicate = translated_articles.new_entity({"id": 1, "title": "Duplicate"})

    with pytest.raises(DatabaseException):
        translated_articles.save(duplicate)

    assert session.execute(select(table.c.title).where(table.c.id == 1)).scalar_one() == "First Article"


def test_failed_save_keeps_translated_changes_pending(translated_articles, article_translations, session):
    translated_articles.set_locale("deu")
    article = translated_articles.get(2)
    article.title = "Neuer Titel"
    article.published = "N"

    with mock.patch.object(session, "execute", side_effect=SQLAlchemyError("boom")):
        with pytest.raises(DatabaseException):
            translated_articles.save(article)

    assert article.is_dirty("title")
    assert article_translations.find_translation(2, "deu")["title"] == "Titel #2"

    translated_articles.set_locale(None)
    article.published = "Y"
    translated_articles.save(article)

    assert article_translations.get_locales_for_entity(2) == ["cze", "deu", "eng"]
    assert article_translations.find_translation(2, "deu")["title"] == "Titel #2"


def test_failed_translation_write_rolls_back_save(translated_articles, article_translations, session):
    translated_articles.set_locale("deu")
    article = translated_articles.get(3)
    article.title = "Dritter"
    article.published = "N"
    repository = translated_articles.translation_behavior().translations()

    with mock.patch.object(repository, "upsert_translation", side_effect=SQLAlchemyError("boom")):
        with pytest.raises(DatabaseException):
            translated_articles.save(article)

    assert article.is_dirty("title")
    table = translated_articles.table
    assert session.execute(select(table.c.published).where(table.c.id == 3)).scalar_one() == "Y"

    translated_articles.save(article)
    assert article_translations.find_translation(3, "deu")["title"] == "Dritter"
    assert not article.is_dirty()
