# tests/test_query_plan.py
import pytest

from shadow_translate.core.exceptions import QueryException, UnknownFieldException
from shadow_translate.query.conditions import Condition, Not, and_, describe, not_, or_, parse_conditions


def test_parse_conditions_operators():
    clauses = parse_conditions({"title": "First", "Articles.id >": 2, "id": [1, 2], "body not like": "%x%"})

    assert [describe(c) for c in clauses] == [
        {"field": "title", "op": "=", "value": "First"},
        {"field": "Articles.id", "op": ">", "value": 2},
        {"field": "id", "op": "in", "value": [1, 2]},
        {"field": "body", "op": "not like", "value": "%x%"},
    ]


def test_unsupported_operator_is_rejected():
    with pytest.raises(QueryException):
        Condition("title", "~=", "x")


def test_not_clause_fields():
    clause = not_(Condition("title", "=", "x"))
    assert isinstance(clause, Not)
    assert list(clause.fields()) == ["title"]


def test_nested_clauses(articles):
    clause = or_(
        and_(Condition("author_id", "=", 1), Condition("id", ">", 1)),
        Condition("id", "=", 2),
    )

    assert [a.id for a in articles.find().where(clause).order_by("id").all()] == [2, 3]
    assert describe(clause)["or"][0] == {
        "and": [
            {"field": "author_id", "op": "=", "value": 1},
            {"field": "id", "op": ">", "value": 1},
        ]
    }


def test_compiled_sql_is_alias_qualified(translated_articles):
    translated_articles.set_locale("eng")
    sql = translated_articles.find().where({"id": 1}).order_by("title").sql()

    assert 'articles AS "Articles"' in sql
    assert 'LEFT OUTER JOIN articles_translations AS "ArticlesTranslationsOne"' in sql
    assert '"Articles".id = ' in sql
    assert "coalesce" in sql.lower()


def test_plan_is_prepared_once(translated_articles):
    translated_articles.set_locale("eng")
    plan = translated_articles.find()

    plan.prepare()
    plan.prepare()
    assert plan.is_prepared()
    assert len(plan.joins) == 1
    assert len(plan.formatters()) == 1


def test_list_paginates(articles):
    assert [a.id for a in articles.list(skip=1, limit=1)] == [2]
    assert [a.id for a in articles.list(published="Y")] == [1, 2, 3]


def test_unknown_field_of_main_table(articles):
    with pytest.raises(UnknownFieldException):
        articles.find().select("nope").all()


def test_unknown_finder(articles):
    with pytest.raises(QueryException):
        articles.find("translations")


def test_unknown_association(articles):
    with pytest.raises(QueryException):
        articles.find().contain("Authors").all()


def test_contain_filters_only_on_collections(articles, metadata):
    articles.belongs_to("Authors", metadata.tables["authors"])

    with pytest.raises(QueryException):
        articles.find().contain(Authors=[Condition("name", "=", "nate")]).all()


def test_contain_filters_on_collection(articles, metadata):
    articles.has_many("Comments", metadata.tables["comments"])

    article = articles.find().contain(Comments=[Condition("user_id", "=", 4)]).where({"Articles.id": 1}).first()
    assert [c.comment for c in article.comments] == ["Second Comment for First Article"]


def test_empty_collection(articles, metadata):
    articles.has_many("Comments", metadata.tables["comments"])

    article = articles.find().contain("Comments").where({"Articles.id": 3}).first()
    assert article.comments == []


def test_explicit_select_with_collection_adds_key(articles, metadata):
    articles.has_many("Comments", metadata.tables["comments"])

    rows = articles.find().select("title").contain("Comments").where({"Articles.id": 2}).hydrate(False).all()
    assert rows[0]["title"] == "Second Article"
    assert rows[0]["id"] == 2
    assert len(rows[0]["comments"]) == 1


def test_entity_to_dict_converts_nested(translated_articles):
    article = translated_articles.find_translations(locales=["eng"]).where({"Articles.id": 1}).first()

    data = article.to_dict()
    assert data["_translations"]["eng"]["title"] == "Title #1"
    assert not article.is_dirty()
