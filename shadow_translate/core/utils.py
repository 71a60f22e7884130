# File: shadow_translate/core/utils.py
import re
from typing import Optional, Tuple

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def camelize(name: str) -> str:
    """
    Convert a table name to its CamelCase alias.

    Example: "articles_translations" -> "ArticlesTranslations"
    """
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[_\-\s]+", name) if part)


def underscore(name: str) -> str:
    """
    Convert a CamelCase alias to its table name.

    Example: "ArticlesTranslations" -> "articles_translations"
    """
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def singularize(word: str) -> str:
    """Naive English singular, good enough for association property names."""
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("sses", "xes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def split_reference(reference: str) -> Tuple[Optional[str], str]:
    """
    Split a field reference into (alias, field).

    "title" -> (None, "title"); "Articles.title" -> ("Articles", "title")
    """
    if "." in reference:
        alias, field = reference.rsplit(".", 1)
        return alias, field
    return None, reference
