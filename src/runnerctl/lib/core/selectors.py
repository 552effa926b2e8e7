"""Expand user-supplied image selectors into an ordered work list.

A selector is one of:

- ``all`` – the whole catalog,
- an exact image name (``dotnet-8``),
- a group prefix (``dotnet`` → every image whose name starts with it).

Each token is classified once into a small tagged variant; filtering then
works on the variants only.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from .errors import UnknownSelector
from .images import ImageDefinition

ALL_TOKEN = "all"


@dataclass(frozen=True)
class AllSelector:
    pass


@dataclass(frozen=True)
class ExactSelector:
    name: str


@dataclass(frozen=True)
class PrefixSelector:
    prefix: str


Selector = AllSelector | ExactSelector | PrefixSelector


def parse_selector(token: str, catalog: Sequence[ImageDefinition]) -> Selector:
    """Classify *token* against *catalog*.

    An exact name wins over a prefix match, so ``node`` selects the image
    named ``node`` when one exists rather than the ``node-*`` group.
    Raises UnknownSelector when the token matches nothing.
    """
    if token == ALL_TOKEN:
        return AllSelector()
    names = [definition.name for definition in catalog]
    if token in names:
        return ExactSelector(token)
    if token and any(name.startswith(token) for name in names):
        return PrefixSelector(token)
    raise UnknownSelector(token)


def _matches(selector: Selector, definition: ImageDefinition) -> bool:
    if isinstance(selector, AllSelector):
        return True
    if isinstance(selector, ExactSelector):
        return definition.name == selector.name
    return definition.name.startswith(selector.prefix)


def filter_catalog(
    catalog: Sequence[ImageDefinition], selectors: Sequence[str]
) -> list[ImageDefinition]:
    """Return the subset of *catalog* named by *selectors*.

    ``[]`` and any list containing ``all`` return the whole catalog. Otherwise
    images come back in first-seen selector order, a group expanding in
    catalog order at its position, and duplicates keep their first position.
    Build order is the caller's concern; ``RunCoordinator`` re-sorts with
    ``catalog_order``. Every token is validated before anything is selected.
    """
    parsed = [parse_selector(token, catalog) for token in selectors]
    if not parsed or any(isinstance(selector, AllSelector) for selector in parsed):
        return list(catalog)

    selected: list[ImageDefinition] = []
    for selector in parsed:
        for definition in catalog:
            if _matches(selector, definition) and definition not in selected:
                selected.append(definition)
    return selected
