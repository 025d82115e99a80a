"""
Patron menu filters.

Drinks are non-alcoholic when one of their tags is a non-alcoholic marker;
everything else counts as alcoholic. Tag and ingredient filters are
case-insensitive substring matches.
"""

from typing import Iterable, List, Optional

ALCOHOL_ALL = "all"
ALCOHOL_ONLY = "alcohol"
ALCOHOL_NONE = "non"
ALCOHOL_MODES = (ALCOHOL_ALL, ALCOHOL_ONLY, ALCOHOL_NONE)

NON_ALCOHOLIC_TAGS = {"non-alcoholic", "nonalcoholic", "na", "mocktail"}


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def is_non_alcoholic(tags: Iterable[str]) -> bool:
    return any(_norm(t) in NON_ALCOHOLIC_TAGS for t in tags)


def matches_alcohol(mode: Optional[str], tags: Iterable[str]) -> bool:
    mode = _norm(mode) or ALCOHOL_ALL
    if mode == ALCOHOL_NONE:
        return is_non_alcoholic(tags)
    if mode == ALCOHOL_ONLY:
        return not is_non_alcoholic(tags)
    return True


def has_tag(tags: Iterable[str], query: str) -> bool:
    query = _norm(query)
    return any(query in _norm(t) for t in tags)


def uses_ingredient(names: Iterable[str], query: str) -> bool:
    query = _norm(query)
    if not query:
        return False
    return any(query in _norm(name) for name in names)


def filter_menu(
    cocktails,
    alc: Optional[str] = None,
    tag: Optional[str] = None,
    include: Optional[str] = None,
    exclude: Optional[str] = None,
) -> List:
    """Keep the cocktails matching every given filter; blank filters match all.

    Works on anything with `tag_list` and `ingredient_names`, which for the
    Cocktail model means its ingredients and their products must be loaded.
    """
    out = []
    for cocktail in cocktails:
        tags = cocktail.tag_list
        if not matches_alcohol(alc, tags):
            continue
        if _norm(tag) and not has_tag(tags, tag):
            continue
        if _norm(include) and not uses_ingredient(cocktail.ingredient_names, include):
            continue
        if _norm(exclude) and uses_ingredient(cocktail.ingredient_names, exclude):
            continue
        out.append(cocktail)
    return out
