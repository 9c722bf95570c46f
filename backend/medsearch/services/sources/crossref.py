"""
CrossRef data source.

CrossRef provides DOI metadata for 140M+ works.
- No API key required (use polite pool with email)
- Great for citation data
- Abstracts, when present, are JATS XML and need their tags stripped

Uses httpx.AsyncClient for non-blocking HTTP requests.
"""
from typing import Dict, List

from medsearch.core.config import settings
from medsearch.core.exceptions import SourceParseError
from medsearch.schemas.records import Record
from medsearch.schemas.search import QueryStyle
from medsearch.tools.study_types import infer_study_type
from medsearch.tools.text_processing import strip_markup
from .base import HTTPSource

WORKS_URL = "https://api.crossref.org/works"


def _first(values) -> str:
    return values[0] if values else ""


def _year(item: Dict):
    for field in ("published", "published-print", "published-online", "issued", "created"):
        parts = (item.get(field) or {}).get("date-parts") or [[None]]
        if parts and parts[0] and parts[0][0]:
            return parts[0][0]
    return None


def _authors(item: Dict) -> List[str]:
    authors = []
    for author in item.get("author") or []:
        name = " ".join(p for p in (author.get("family", ""), author.get("given", "")) if p).strip()
        name = name or author.get("name", "")
        if name:
            authors.append(name)
    return authors


def parse_crossref_item(item: Dict, source_name: str = "CrossRef") -> Dict:
    """Map one Crossref work item to Record fields."""
    doi = item.get("DOI", "") or ""
    item_type = item.get("type", "") or ""
    title = strip_markup(_first(item.get("title")))
    abstract = strip_markup(item.get("abstract")) or None

    return {
        "identity": {"doi": doi},  # CrossRef doesn't have PMIDs
        "title": title,
        "abstract": abstract,
        "authors": _authors(item),
        "venue": _first(item.get("container-title")),
        "year": _year(item),
        "url": item.get("URL") or (f"https://doi.org/{doi}" if doi else ""),
        "source_name": source_name,
        "publication_types": [item_type] if item_type else [],
        "study_type": infer_study_type([], title, abstract, is_preprint=item_type == "posted-content"),
        "citation_count": item.get("is-referenced-by-count", 0) or 0,
    }


class CrossRefSource(HTTPSource):
    key = "crossref"
    name = "CrossRef"
    query_style = QueryStyle.NATURAL

    async def _search(self, query: str, limit: int, timeout: float) -> List[Record]:
        params = {
            "query": query,
            "rows": min(limit, 100),
            "filter": "type:journal-article,type:posted-content",
            "mailto": settings.API_CONTACT_EMAIL,
        }
        data = await self._get_json(WORKS_URL, params, timeout)
        message = data.get("message")
        if not isinstance(message, dict):
            raise SourceParseError(self.name, "missing message")

        records = []
        for item in message.get("items") or []:
            record = self._build_record(**parse_crossref_item(item, self.name))
            if record:
                records.append(record)
        return records
