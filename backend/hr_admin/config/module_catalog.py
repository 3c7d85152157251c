"""
Module catalog configuration loader.

Loads hr_admin/config/module_catalog.yml, the display data (names,
descriptions, icons, core flags, order) for every org and platform module.
Every code in the file must be a member of OrgModuleCode or
PlatformModuleCode; unknown codes fail the load.

Consumers:
  - seed.seed_module_catalog: populates org_modules / platform_modules
  - Tests: build catalog fixtures from the same file

Usage:
    from hr_admin.config.module_catalog import get_module_catalog

    catalog = get_module_catalog()
    for entry in catalog.org_modules:
        print(entry.code, entry.is_core)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

import yaml

from hr_admin.constants.modules import OrgModuleCode, PlatformModuleCode, is_core_module

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "module_catalog.yml"


class ModuleCatalogError(ValueError):
    """Raised when the catalog file is malformed."""


@dataclass(frozen=True)
class CatalogEntry:
    code: str
    name: str
    description: Optional[str]
    icon: Optional[str]
    display_order: int
    is_core: bool = False


class ModuleCatalog:
    """
    Parsed, validated module catalog.

    Core flags are taken from the code registry; a YAML file that marks a
    registry core module as optional (or the reverse) is rejected.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = Path(config_path) if config_path else DEFAULT_CATALOG_PATH
        self._org_modules: List[CatalogEntry] = []
        self._platform_modules: List[CatalogEntry] = []
        self._load_lock = Lock()
        self._load()

    def _parse_entries(self, raw_entries: List[Dict[str, Any]], registry, section: str) -> List[CatalogEntry]:
        entries = []
        seen = set()
        for order, raw in enumerate(raw_entries or [], start=1):
            code = raw.get("code")
            try:
                member = registry(code)
            except ValueError:
                raise ModuleCatalogError(f"{section}: unknown module code {code!r}")
            if member.value in seen:
                raise ModuleCatalogError(f"{section}: duplicate module code {code!r}")
            seen.add(member.value)

            is_core = False
            if registry is OrgModuleCode:
                is_core = is_core_module(member)
                declared = raw.get("is_core")
                if declared is not None and bool(declared) != is_core:
                    raise ModuleCatalogError(
                        f"{section}: is_core for {code!r} disagrees with the module registry"
                    )

            entries.append(
                CatalogEntry(
                    code=member.value,
                    name=raw.get("name") or member.value.replace("_", " ").title(),
                    description=raw.get("description"),
                    icon=raw.get("icon"),
                    display_order=int(raw.get("display_order", order)),
                    is_core=is_core,
                )
            )

        missing = {m.value for m in registry} - seen
        if missing:
            raise ModuleCatalogError(f"{section}: missing module codes {sorted(missing)}")
        return entries

    def _load(self) -> None:
        with self._load_lock:
            logger.info("Loading module catalog from %s", self._config_path)
            with open(self._config_path, "r") as f:
                raw = yaml.safe_load(f) or {}

            self._org_modules = self._parse_entries(raw.get("org_modules"), OrgModuleCode, "org_modules")
            self._platform_modules = self._parse_entries(
                raw.get("platform_modules"), PlatformModuleCode, "platform_modules"
            )
            logger.info(
                "Loaded module catalog: %d org modules, %d platform modules",
                len(self._org_modules),
                len(self._platform_modules),
            )

    def reload(self) -> None:
        """Re-read the YAML from disk."""
        self._load()

    @property
    def org_modules(self) -> List[CatalogEntry]:
        return list(self._org_modules)

    @property
    def platform_modules(self) -> List[CatalogEntry]:
        return list(self._platform_modules)

    def core_org_modules(self) -> List[CatalogEntry]:
        return [e for e in self._org_modules if e.is_core]


_catalog: Optional[ModuleCatalog] = None
_catalog_lock = Lock()


def get_module_catalog() -> ModuleCatalog:
    """Get or create the module catalog singleton."""
    global _catalog
    if _catalog is None:
        with _catalog_lock:
            if _catalog is None:
                _catalog = ModuleCatalog()
    return _catalog
