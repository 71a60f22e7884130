# tests/conftest.py
import pytest
from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, insert
from sqlalchemy.orm import Session

from shadow_translate.db.models import make_translation_table
from shadow_translate.db.session import create_db_engine
from shadow_translate.repositories.repository_factory import RepositoryFactory

ARTICLES = [
    {"id": 1, "author_id": 1, "title": "First Article", "body": "First Article Body", "published": "Y"},
    {"id": 2, "author_id": 3, "title": "Second Article", "body": "Second Article Body", "published": "Y"},
    {"id": 3, "author_id": 1, "title": "Third Article", "body": "Third Article Body", "published": "Y"},
]

AUTHORS = [
    {"id": 1, "name": "mariano"},
    {"id": 2, "name": "nate"},
    {"id": 3, "name": "larry"},
    {"id": 4, "name": "garrett"},
]

COMMENTS = [
    {"id": 1, "article_id": 1, "user_id": 2, "comment": "First Comment for First Article", "published": "Y"},
    {"id": 2, "article_id": 1, "user_id": 4, "comment": "Second Comment for First Article", "published": "Y"},
    {"id": 3, "article_id": 2, "user_id": 1, "comment": "First Comment for Second Article", "published": "Y"},
]

ARTICLES_TRANSLATIONS = [
    {"id": article_id, "locale": locale, "title": f"{title} #{article_id}", "body": f"{body} #{article_id}"}
    for article_id in (1, 2, 3)
    for locale, title, body in (
        ("eng", "Title", "Content"),
        ("deu", "Titel", "Inhalt"),
        ("cze", "Titulek", "Obsah"),
    )
] + [{"id": 1, "locale": "zzz", "title": "", "body": ""}]

ARTICLES_MORE_TRANSLATIONS = [
    {"id": i, "locale": "eng", "title": f"Title #{i}", "subtitle": f"SubTitle #{i}"} for i in (1, 2, 3)
]

AUTHORS_TRANSLATIONS = [
    {"id": 1, "locale": "eng", "name": "May-rianoh"},
]

COMMENTS_TRANSLATIONS = [
    {"id": 1, "locale": "eng", "comment": "Comment #1"},
    {"id": 2, "locale": "eng", "comment": "Comment #2"},
]


@pytest.fixture()
def metadata():
    metadata = MetaData()

    articles = Table(
        "articles",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("author_id", Integer, ForeignKey("authors.id")),
        Column("title", String(255)),
        Column("body", Text),
        Column("published", String(1), server_default="N"),
    )
    authors = Table(
        "authors",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("name", String(255)),
    )
    comments = Table(
        "comments",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("article_id", Integer, ForeignKey("articles.id")),
        Column("user_id", Integer),
        Column("comment", Text),
        Column("published", String(1), server_default="N"),
    )

    make_translation_table(articles, Column("title", String(255)), Column("body", Text))
    make_translation_table(
        articles,
        Column("title", String(255)),
        Column("subtitle", String(255)),
        name="articles_more_translations",
    )
    make_translation_table(authors, Column("name", String(255)))
    make_translation_table(comments, Column("comment", Text))
    return metadata


@pytest.fixture()
def engine(metadata):
    engine = create_db_engine("sqlite://", echo=False)
    metadata.create_all(engine)

    seed = [
        ("authors", AUTHORS),
        ("articles", ARTICLES),
        ("comments", COMMENTS),
        ("articles_translations", ARTICLES_TRANSLATIONS),
        ("articles_more_translations", ARTICLES_MORE_TRANSLATIONS),
        ("authors_translations", AUTHORS_TRANSLATIONS),
        ("comments_translations", COMMENTS_TRANSLATIONS),
    ]
    with engine.begin() as conn:
        for table_name, rows in seed:
            conn.execute(insert(metadata.tables[table_name]), rows)

    yield engine
    metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session(engine):
    db = Session(bind=engine, autoflush=False)
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def factory(session, metadata):
    return RepositoryFactory(session, metadata)


@pytest.fixture()
def articles(factory):
    """Articles repository without any behavior attached."""
    return factory.create_repository("articles")


@pytest.fixture()
def translated_articles(factory):
    """Articles repository translating title and body."""
    return factory.create_repository("articles", translate={"fields": ["title", "body"]})


@pytest.fixture()
def article_translations(factory):
    return factory.create_translation_repository("articles_translations")
