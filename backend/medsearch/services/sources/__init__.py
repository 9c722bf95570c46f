"""
Data sources for bibliographic record retrieval.

Each provider is implemented in its own module as an adapter class.
All adapters share the BaseSource.fetch contract and are async for
parallel execution.

To add a new source:
1. Create a new file (e.g., new_source.py) with a BaseSource subclass
2. Add it to SOURCE_REGISTRY below
3. Give it a SourceConfig entry in SearchConfig.sources
"""
from typing import Dict, List, Optional, Type

from medsearch.core.exceptions import ConfigurationError
from medsearch.schemas.search import SearchConfig

from .base import BaseSource, HTTPSource
from .pubmed import PubMedSource
from .europe_pmc import EuropePMCSource
from .openalex import OpenAlexSource
from .semantic_scholar import SemanticScholarSource
from .crossref import CrossRefSource
from .clinicaltrials import ClinicalTrialsSource

SOURCE_REGISTRY: Dict[str, Type[BaseSource]] = {
    PubMedSource.key: PubMedSource,
    EuropePMCSource.key: EuropePMCSource,
    OpenAlexSource.key: OpenAlexSource,
    SemanticScholarSource.key: SemanticScholarSource,
    CrossRefSource.key: CrossRefSource,
    ClinicalTrialsSource.key: ClinicalTrialsSource,
}


def build_sources(config: SearchConfig, only: Optional[List[str]] = None) -> List[BaseSource]:
    """
    Instantiate the enabled adapters for a configuration.

    Args:
        config: Search configuration with per-source settings
        only: Restrict to these source keys (still subject to `enabled`)

    Raises:
        ConfigurationError: if a configured or requested key has no adapter
    """
    keys = only if only is not None else list(config.sources)
    unknown = [key for key in keys if key not in SOURCE_REGISTRY]
    if unknown:
        raise ConfigurationError(f"Unknown source(s): {', '.join(unknown)}")

    sources = []
    for key in keys:
        source_config = config.sources.get(key)
        if source_config is None or not source_config.enabled:
            continue
        sources.append(SOURCE_REGISTRY[key](source_config))
    return sources


__all__ = [
    "BaseSource",
    "HTTPSource",
    "PubMedSource",
    "EuropePMCSource",
    "OpenAlexSource",
    "SemanticScholarSource",
    "CrossRefSource",
    "ClinicalTrialsSource",
    "SOURCE_REGISTRY",
    "build_sources",
]
