"""Repository configuration: the ``config.yml`` document and derived names.

The document is read once per process and validated into a typed
:class:`Settings` value. :class:`ConfigResolver` answers dotted key lookups
and composes registry paths and image tags from it.

Layout of ``config.yml``::

    registry:
      url: ghcr.io
      owner: hutch79
      repository: ci-runner-images
    base_images:
      ubuntu: ubuntu:24.04
      runner: ghcr.io/hutch79/ci-runner-images:base
    naming:
      platform: ubuntu
    actions:
      checkout: v4
    timeouts:          # seconds, optional
      build: 3600
      check: 300
      integration: 1800
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml  # pip install pyyaml

from .errors import ConfigDocumentMissing, ConfigError, ConfigKeyNotFound
from .images import FOUNDATIONAL_NAME
from .paths import config_file_path

LATEST_TAG = "latest"

# Built-in fallbacks for optional leaf keys. base_images.runner is derived
# from the registry path instead (see ConfigResolver.base_runner).
DEFAULTS: dict[str, str] = {
    "registry.url": "ghcr.io",
    "registry.owner": "hutch79",
    "registry.repository": "ci-runner-images",
    "base_images.ubuntu": "ubuntu:24.04",
    "naming.platform": "ubuntu",
    "timeouts.build": "3600",
    "timeouts.check": "300",
    "timeouts.integration": "1800",
}

_SECTIONS = ("registry", "base_images", "naming", "actions", "timeouts")


# ---------- Typed settings ----------


@dataclass(frozen=True)
class RegistrySettings:
    url: str
    owner: str
    repository: str

    @property
    def path(self) -> str:
        return f"{self.url}/{self.owner}/{self.repository}"


@dataclass(frozen=True)
class BaseImageSettings:
    ubuntu: str
    runner: str | None  # None → derived from the registry path


@dataclass(frozen=True)
class NamingSettings:
    platform: str


@dataclass(frozen=True)
class TimeoutSettings:
    """Upper bounds (seconds) for external container engine calls."""

    build: int
    check: int
    integration: int


@dataclass(frozen=True)
class Settings:
    registry: RegistrySettings
    base_images: BaseImageSettings
    naming: NamingSettings
    timeouts: TimeoutSettings
    actions: Mapping[str, str] = field(default_factory=dict)
    document: Mapping[str, Any] = field(default_factory=dict)
    source: Path | None = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any], source: Path | None = None) -> "Settings":
        """Validate a parsed YAML document and build the typed settings.

        Sections must be mappings and leaves must be scalars; missing leaves
        fall back to :data:`DEFAULTS`.
        """
        if not isinstance(document, Mapping):
            raise ConfigError(f"Configuration root must be a mapping ({source or '<memory>'})")

        sections = {name: _section(document, name) for name in _SECTIONS}

        registry = RegistrySettings(
            url=_leaf(sections, "registry", "url"),
            owner=_leaf(sections, "registry", "owner"),
            repository=_leaf(sections, "registry", "repository"),
        )
        base_images = BaseImageSettings(
            ubuntu=_leaf(sections, "base_images", "ubuntu"),
            runner=_optional_leaf(sections, "base_images", "runner"),
        )
        naming = NamingSettings(platform=_leaf(sections, "naming", "platform"))
        timeouts = TimeoutSettings(
            build=_seconds(sections, "build"),
            check=_seconds(sections, "check"),
            integration=_seconds(sections, "integration"),
        )
        actions = {
            str(tool): _scalar(value, f"actions.{tool}")
            for tool, value in sections["actions"].items()
            if value is not None
        }
        return cls(
            registry=registry,
            base_images=base_images,
            naming=naming,
            timeouts=timeouts,
            actions=actions,
            document=dict(document),
            source=source,
        )


def _section(document: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = document.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Configuration section '{name}' must be a mapping")
    return value


def _scalar(value: Any, key_path: str) -> str:
    if isinstance(value, (Mapping, list)):
        raise ConfigError(f"Configuration key '{key_path}' must be a scalar value")
    return str(value).strip()


def _optional_leaf(sections: Mapping[str, Mapping[str, Any]], section: str, key: str) -> str | None:
    value = sections[section].get(key)
    if value is None:
        return None
    text = _scalar(value, f"{section}.{key}")
    return text or None


def _leaf(sections: Mapping[str, Mapping[str, Any]], section: str, key: str) -> str:
    value = _optional_leaf(sections, section, key)
    return value if value is not None else DEFAULTS[f"{section}.{key}"]


def _seconds(sections: Mapping[str, Mapping[str, Any]], key: str) -> int:
    raw = _leaf(sections, "timeouts", key)
    try:
        seconds = int(raw)
    except ValueError:
        raise ConfigError(f"Configuration key 'timeouts.{key}' must be an integer, got {raw!r}")
    if seconds <= 0:
        raise ConfigError(f"Configuration key 'timeouts.{key}' must be positive, got {seconds}")
    return seconds


# ---------- Resolver ----------


class ConfigResolver:
    """Read-only view over :class:`Settings` with the naming conventions."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def timeouts(self) -> TimeoutSettings:
        return self._settings.timeouts

    def get(self, key_path: str, default: str | None = None) -> str:
        """Return the value at dotted *key_path*.

        Order: document value → *default* → built-in default. Empty strings
        count as missing. Raises ConfigKeyNotFound when nothing applies.
        """
        if not key_path:
            raise ConfigKeyNotFound(key_path)

        node: Any = self._settings.document
        for part in key_path.split("."):
            if isinstance(node, Mapping) and part in node:
                node = node[part]
            else:
                node = None
                break

        if node is not None and not isinstance(node, (Mapping, list)):
            value = str(node).strip()
            if value:
                return value

        if default is not None:
            return default
        if key_path in DEFAULTS:
            return DEFAULTS[key_path]
        raise ConfigKeyNotFound(key_path)

    def registry_path(self) -> str:
        """Return ``{url}/{owner}/{repository}``, e.g. ``ghcr.io/hutch79/ci-runner-images``."""
        return self._settings.registry.path

    def image_name(self, folder: str) -> str:
        """Apply the naming convention: ``base`` → ``base``, ``dotnet-8`` → ``ubuntu-dotnet-8``."""
        if folder == FOUNDATIONAL_NAME:
            return folder
        return f"{self._settings.naming.platform}-{folder}"

    def full_tag(self, folder: str, tag_suffix: str = LATEST_TAG) -> str:
        """Return the registry reference for *folder*.

        ``full_tag("base")``                 → ``<registry>:base``
        ``full_tag("dotnet-8", "20251208")`` → ``<registry>:ubuntu-dotnet-8-20251208``
        """
        name = self.image_name(folder)
        if tag_suffix == LATEST_TAG:
            return f"{self.registry_path()}:{name}"
        return f"{self.registry_path()}:{name}-{tag_suffix}"

    def base_ubuntu(self) -> str:
        """Upstream OS image the foundational image builds from."""
        return self._settings.base_images.ubuntu

    def base_runner(self) -> str:
        """Remote foundational image reference used by dependent images."""
        return self._settings.base_images.runner or self.full_tag(FOUNDATIONAL_NAME)

    def action_version(self, tool: str) -> str:
        """Return the pinned version of a GitHub Action (``actions.<tool>``)."""
        return self.get(f"actions.{tool}")


# ---------- Loading (cached) ----------


def load_settings(path: Path) -> Settings:
    if not path.is_file():
        raise ConfigDocumentMissing(path)
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse configuration ({path}): {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration ({path}): {exc}") from exc
    return Settings.from_document(document, source=path)


@lru_cache(maxsize=None)
def _cached_resolver(path: Path) -> ConfigResolver:
    return ConfigResolver(load_settings(path))


def get_resolver(root: Path) -> ConfigResolver:
    """Return the process-wide resolver for the repository at *root*.

    The document is loaded on first access and cached; later calls for the
    same file return the same resolver.
    """
    return _cached_resolver(config_file_path(root).resolve())


def clear_cache() -> None:
    """Forget cached resolvers (used by tests that rewrite config files)."""
    _cached_resolver.cache_clear()
