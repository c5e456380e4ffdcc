# ==============================
# API Dependencies / Singletons
# ==============================
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from toolkit.config.loader import load_settings
from toolkit.config.schema import Settings
from toolkit.governance.security import SecurityRedactor
from toolkit.knowledge.discovery import DiscoveryIndex
from toolkit.orchestrator.chain import ChainOrchestrator
from toolkit.tools.collection import Tools
from toolkit.toolsets.catalog import CatalogToolSet


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings, _ = load_settings()
    return settings


@lru_cache(maxsize=1)
def get_redactor() -> SecurityRedactor:
    return SecurityRedactor.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_tools() -> Tools:
    settings = get_settings()
    toolset = CatalogToolSet.from_settings(settings)
    return toolset.get_tools("*")


@lru_cache(maxsize=4)
def _index_for(tools: Tools) -> DiscoveryIndex:
    return DiscoveryIndex.from_config(tools, get_settings().discovery)


def get_discovery(tools: Tools = Depends(get_tools)) -> DiscoveryIndex:
    # Tools hash by identity, so one index per collection instance.
    return _index_for(tools)


def get_orchestrator(tools: Tools = Depends(get_tools)) -> ChainOrchestrator:
    return ChainOrchestrator(tools)
