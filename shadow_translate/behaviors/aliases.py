# File: shadow_translate/behaviors/aliases.py
from typing import Dict, Mapping, Optional

from shadow_translate.core.config import settings
from shadow_translate.core.exceptions import ConfigurationException
from shadow_translate.core.utils import camelize

OVERRIDABLE = ("translation_table", "translation_table_alias", "has_one_alias", "has_many_alias")


def derive_aliases(
    main_table_alias: str,
    reference_name: Optional[str] = None,
    table_name: Optional[str] = None,
    overrides: Optional[Mapping[str, Optional[str]]] = None,
) -> Dict[str, str]:
    """
    Derive the names used for the translation table and its associations.

    The associations are named after the alias the main table has now; the
    translation table is named after the main table's canonical name, so
    aliasing the main table never points it at a different table.

    Args:
        main_table_alias: Current alias of the main table ("FavoritePost")
        reference_name: Name the main table is known by; defaults to its
            canonical name
        table_name: SQL name of the main table ("articles"); defaults to
            the alias
        overrides: Explicit values for any of OVERRIDABLE

    Returns:
        Dict with translation_table, translation_table_alias,
        main_table_alias, has_one_alias, has_many_alias, reference_name

    Raises:
        ConfigurationException: If overrides make the aliases collide

    Example:
        derive_aliases("FavoritePost", "Posts", "articles")["has_one_alias"]
        -> "FavoritePostTranslationsOne"
    """
    suffix = settings.TRANSLATION_TABLE_SUFFIX
    canonical = camelize(table_name) if table_name else main_table_alias

    aliases = {
        "translation_table": f"{canonical}{suffix}",
        "main_table_alias": main_table_alias,
        "has_one_alias": f"{main_table_alias}{suffix}{settings.HAS_ONE_SUFFIX}",
        "has_many_alias": f"{main_table_alias}{suffix}",
        "reference_name": reference_name or canonical,
    }
    for key, value in (overrides or {}).items():
        if key not in OVERRIDABLE:
            raise ConfigurationException(f"'{key}' cannot be overridden", option=key)
        if value:
            aliases[key] = value

    if not (overrides or {}).get("translation_table_alias"):
        aliases["translation_table_alias"] = camelize(aliases["translation_table"])

    names = [aliases["main_table_alias"], aliases["has_one_alias"], aliases["has_many_alias"]]
    if len(set(names)) != len(names):
        raise ConfigurationException(
            "Translation association aliases must differ from each other and "
            "from the main table alias",
            option="has_one_alias",
            details={"aliases": names},
        )
    return aliases
