"""
Semantic Scholar data source.

Semantic Scholar Graph API covers 200M+ papers across all fields.
- Works without a key (shared pool, roughly 1 request/second)
- An API key (x-api-key header) gives a dedicated rate limit
- Natural-language relevance search

Uses httpx.AsyncClient for non-blocking HTTP requests.
"""
import re
from typing import Dict, List

from medsearch.core.config import settings
from medsearch.core.exceptions import SourceParseError
from medsearch.schemas.records import Record
from medsearch.schemas.search import QueryStyle
from medsearch.tools.study_types import infer_study_type
from medsearch.tools.text_processing import strip_markup
from .base import HTTPSource

SEARCH_URL = "https://api.semanticscholar.org/graph/v1/paper/search"

FIELDS = ",".join([
    "paperId", "externalIds", "title", "abstract", "authors", "venue", "journal",
    "year", "citationCount", "publicationTypes", "url",
])

_PREPRINT_VENUES = ("arxiv", "biorxiv", "medrxiv", "ssrn", "research square", "preprints")
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _split_label(label: str) -> str:
    """'MetaAnalysis' -> 'Meta Analysis'"""
    return _CAMEL_RE.sub(" ", label)


def parse_semantic_scholar_paper(paper: Dict, source_name: str = "SemanticScholar") -> Dict:
    """Map one Semantic Scholar paper to Record fields."""
    external = paper.get("externalIds") or {}
    native_ids = []
    if paper.get("paperId"):
        native_ids.append(f"s2:{paper['paperId']}")
    if external.get("PubMedCentral"):
        native_ids.append(f"pmcid:PMC{str(external['PubMedCentral']).replace('PMC', '')}")
    if external.get("ArXiv"):
        native_ids.append(f"arxiv:{external['ArXiv']}")

    journal = paper.get("journal") or {}
    venue = journal.get("name") or paper.get("venue") or ""
    publication_types = [_split_label(t) for t in paper.get("publicationTypes") or []]
    is_preprint = any(p in venue.lower() for p in _PREPRINT_VENUES) or (
        bool(external.get("ArXiv")) and not external.get("DOI")
    )

    title = strip_markup(paper.get("title") or "")
    abstract = strip_markup(paper.get("abstract")) or None
    return {
        "identity": {
            "doi": external.get("DOI") or "",
            "pmid": str(external.get("PubMed") or ""),
            "native_ids": native_ids,
        },
        "title": title,
        "abstract": abstract,
        "authors": [a.get("name", "") for a in paper.get("authors") or [] if a.get("name")],
        "venue": venue,
        "year": paper.get("year"),
        "url": paper.get("url") or "",
        "source_name": source_name,
        "publication_types": publication_types,
        "study_type": infer_study_type(publication_types, title, abstract, is_preprint=is_preprint),
        "citation_count": paper.get("citationCount", 0) or 0,
    }


class SemanticScholarSource(HTTPSource):
    key = "semantic_scholar"
    name = "SemanticScholar"
    query_style = QueryStyle.NATURAL

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if settings.SEMANTIC_SCHOLAR_API_KEY:
            headers["x-api-key"] = settings.SEMANTIC_SCHOLAR_API_KEY
        return headers

    async def _search(self, query: str, limit: int, timeout: float) -> List[Record]:
        params = {
            "query": query,
            "limit": min(limit, 100),
            "fields": FIELDS,
        }
        data = await self._get_json(SEARCH_URL, params, timeout)
        if "data" not in data and data.get("total", 0):
            raise SourceParseError(self.name, "missing data")

        records = []
        for paper in data.get("data") or []:
            record = self._build_record(**parse_semantic_scholar_paper(paper, self.name))
            if record:
                records.append(record)
        return records
