# tests/test_localization_service.py
import pytest

from shadow_translate.core.exceptions import EntityNotFoundException, ValidationException
from shadow_translate.services.localization_service import LocalizationService


@pytest.fixture()
def service(factory):
    return LocalizationService(
        {
            "articles": factory.create_repository("articles", translate={}),
            "authors": factory.create_repository("authors", translate={}),
        },
        default_locale="en_US",
        supported_locales=["eng", "deu"],
    )


def test_supported_locales_start_with_default(service):
    assert service.get_supported_locales() == ["en_US", "eng", "deu"]
    assert service.get_supported_entity_types() == ["articles", "authors"]
    assert service.get_translatable_fields("articles") == ["title", "body"]


def test_untranslatable_repository_is_refused(factory):
    with pytest.raises(ValidationException):
        LocalizationService({"comments": factory.create_repository("comments")})


def test_set_locale_applies_to_every_repository(service):
    service.set_locale("eng")

    assert service.current_locale() == "eng"
    assert service.translate_entity("articles", 1).title == "Title #1"
    assert service.translate_entity("authors", 1).name == "May-rianoh"


def test_unsupported_locale_is_rejected(service):
    with pytest.raises(ValidationException) as exc_info:
        service.set_locale("zzz")
    assert "locale" in exc_info.value.details["validation_errors"]
    assert service.current_locale() == "en_US"


def test_use_locale_restores_previous(service):
    with service.use_locale("deu"):
        assert service.translate_entity("articles", 2).title == "Titel #2"
    assert service.current_locale() == "en_US"
    assert service.translate_entity("articles", 2).title == "Second Article"


def test_translate_entity_in_explicit_locale(service):
    assert service.translate_entity("articles", 3, "deu").body == "Inhalt #3"
    assert service.current_locale() == "en_US"


def test_unknown_entity_type(service):
    with pytest.raises(ValidationException):
        service.translate_entity("widgets", 1)


def test_get_translations(service):
    translations = service.get_translations("articles", 1)

    assert set(translations) == {"eng", "deu", "cze", "zzz"}
    assert translations["cze"] == {"title": "Titulek #1", "body": "Obsah #1"}
    assert list(service.get_translations("articles", 1, ["deu"])) == ["deu"]


def test_set_translation(service):
    stored = service.set_translation("articles", 2, "eng", {"title": "Updated #2"})

    assert stored["title"] == "Updated #2"
    assert stored["body"] == "Content #2"
    assert service.translate_entity("articles", 2, "eng").title == "Updated #2"


def test_set_translation_validation(service):
    with pytest.raises(ValidationException):
        service.set_translation("articles", 1, "en_US", {"title": "x"})
    with pytest.raises(ValidationException):
        service.set_translation("articles", 1, "deu", {"published": "N"})
    with pytest.raises(EntityNotFoundException):
        service.set_translation("articles", 99, "deu", {"title": "x"})


def test_validate_entity_translation_setup(service):
    report = service.validate_entity_translation_setup("authors", 1)

    assert report["strategy"] == "ShadowTranslate"
    assert report["translation_table"] == "authors_translations"
    assert report["available_locales"] == ["eng"]
    assert report["completeness_percentage"] == 50.0
    assert report["recommendations"]
