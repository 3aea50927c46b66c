"""
External collaborators for the routes: places fetcher and research chain.

Routes receive these through FastAPI Depends so tests can override them.
The model exhaustion registry lives for the whole process and is shared by
every research chain handed out.
"""

import logging
import threading
from typing import Callable, Optional

from leadgen.errors import LeadGenError
from leadgen.fetch import PlacesFetcher, get_fetcher
from leadgen.research import ModelExhaustionRegistry, PersonnelResearchChain, build_default_chain

logger = logging.getLogger(__name__)

_registry = ModelExhaustionRegistry()
_chain: Optional[PersonnelResearchChain] = None
_chain_lock = threading.Lock()


def get_places_fetcher() -> PlacesFetcher:
    """Fetcher for PLACES_PROVIDER."""
    try:
        return get_fetcher()
    except ValueError as e:
        logger.error(f"Places provider not configured: {e}")
        raise LeadGenError(str(e)) from e


def get_places_fetcher_factory() -> Callable[[], PlacesFetcher]:
    """Deferred fetcher construction; the route validates its body first."""
    return get_places_fetcher


def get_registry() -> ModelExhaustionRegistry:
    return _registry


def get_research_chain() -> PersonnelResearchChain:
    global _chain
    with _chain_lock:
        if _chain is None:
            _chain = build_default_chain(registry=_registry)
            logger.info(f"Research chain ready: models={_chain.models}, fallback={_chain.fallback_key}")
        return _chain
