# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Image definitions discovered from ``images/<name>/Dockerfile`` and local tag conventions."""

from dataclasses import dataclass
from pathlib import Path

from .errors import CatalogEmpty, CatalogError

# Reserved folder name of the foundational image every other image builds on.
FOUNDATIONAL_NAME = "base"

DOCKERFILE_NAME = "Dockerfile"
LOCAL_IMAGE_PREFIX = "local-test-"


@dataclass(frozen=True)
class ImageDefinition:
    """One buildable image folder."""

    name: str
    is_foundational: bool
    build_context_path: Path


def local_test_image(name: str) -> str:
    """Return the local tag an image is built under, e.g. ``local-test-node-20:latest``."""
    return f"{LOCAL_IMAGE_PREFIX}{name}:latest"


def local_foundational_image() -> str:
    return local_test_image(FOUNDATIONAL_NAME)


def catalog_order(definition: ImageDefinition) -> tuple[int, str]:
    """Sort key placing the foundational image first, then by name."""
    return (0 if definition.is_foundational else 1, definition.name)


def discover(root: Path) -> list[ImageDefinition]:
    """Find every folder below *root* that contains a Dockerfile.

    The foundational image (folder ``base``) comes first, the rest are sorted
    by name so repeated runs build in the same order.

    Raises CatalogEmpty when nothing is found and CatalogError when two
    folders share a name.
    """
    if not root.is_dir():
        raise CatalogEmpty(root)

    seen: dict[str, Path] = {}
    definitions: list[ImageDefinition] = []
    for marker in sorted(root.rglob(DOCKERFILE_NAME)):
        if not marker.is_file():
            continue
        context = marker.parent
        name = context.name
        if name in seen:
            raise CatalogError(
                f"Duplicate image name '{name}': {seen[name]} and {context}"
            )
        seen[name] = context
        definitions.append(
            ImageDefinition(
                name=name,
                is_foundational=name == FOUNDATIONAL_NAME,
                build_context_path=context,
            )
        )

    if not definitions:
        raise CatalogEmpty(root)
    return sorted(definitions, key=catalog_order)


def foundational(catalog: list[ImageDefinition]) -> ImageDefinition | None:
    """Return the foundational definition of *catalog*, if any."""
    for definition in catalog:
        if definition.is_foundational:
            return definition
    return None


def image_groups(catalog: list[ImageDefinition]) -> list[str]:
    """Return group selectors shared by sibling images (``dotnet`` for ``dotnet-8``).

    A group is the text before the first ``-`` of a name; names without a
    ``-`` do not form a group. Order follows the catalog.
    """
    groups: list[str] = []
    for definition in catalog:
        prefix = definition.name.split("-", 1)[0]
        if prefix != definition.name and prefix not in groups:
            groups.append(prefix)
    return groups
