"""
OpenAlex data source.

OpenAlex provides access to 250M+ scholarly works.
- 100,000 calls per day
- 10 requests per second
- No API key required (polite pool via mailto)

Uses httpx.AsyncClient for non-blocking HTTP requests,
enabling parallel fetching with other data sources.
"""
from typing import Dict, List, Optional

from medsearch.core.config import settings
from medsearch.core.exceptions import SourceParseError
from medsearch.schemas.records import Record, StudyType
from medsearch.schemas.search import QueryStyle
from medsearch.tools.study_types import infer_study_type
from medsearch.tools.text_processing import strip_markup
from .base import HTTPSource

WORKS_URL = "https://api.openalex.org/works"

SELECT_FIELDS = ",".join([
    "id", "doi", "title", "display_name", "abstract_inverted_index", "publication_year",
    "cited_by_count", "primary_location", "authorships", "ids", "type",
])


def reconstruct_abstract(inverted_index: Optional[Dict[str, List[int]]]) -> str:
    """Reconstruct abstract text from OpenAlex inverted index format."""
    if not inverted_index:
        return ""

    words_with_positions = []
    for word, positions in inverted_index.items():
        for pos in positions or []:
            words_with_positions.append((pos, word))

    words_with_positions.sort(key=lambda x: x[0])
    return " ".join(word for _, word in words_with_positions)


def parse_openalex_work(work: Dict, source_name: str = "OpenAlex") -> Dict:
    """Map one OpenAlex work to Record fields."""
    ids = work.get("ids") or {}
    openalex_id = (work.get("id") or ids.get("openalex") or "").rsplit("/", 1)[-1]
    native_ids = [f"openalex:{openalex_id}"] if openalex_id else []
    if ids.get("pmcid"):
        native_ids.append(f"pmcid:{ids['pmcid'].rstrip('/').rsplit('/', 1)[-1]}")

    primary_location = work.get("primary_location") or {}
    source = primary_location.get("source") or {}
    title = strip_markup(work.get("title") or work.get("display_name") or "")
    abstract = reconstruct_abstract(work.get("abstract_inverted_index")) or None

    work_type = work.get("type") or ""
    is_preprint = work_type in ("preprint", "posted-content")
    # OpenAlex types meta-analyses as plain "review", so title and abstract are checked first
    study_type = infer_study_type([], title, abstract, is_preprint=is_preprint)
    if study_type == StudyType.UNKNOWN and work_type == "review":
        study_type = StudyType.REVIEW

    pmid = ids.get("pmid") or ""
    return {
        "identity": {"doi": work.get("doi") or ids.get("doi") or "", "pmid": pmid, "native_ids": native_ids},
        "title": title,
        "abstract": abstract,
        "authors": [
            (a.get("author") or {}).get("display_name", "")
            for a in work.get("authorships") or []
            if (a.get("author") or {}).get("display_name")
        ],
        "venue": source.get("display_name", "") or "",
        "year": work.get("publication_year"),
        "url": primary_location.get("landing_page_url") or work.get("doi") or work.get("id") or "",
        "source_name": source_name,
        "publication_types": [work_type] if work_type else [],
        "study_type": study_type,
        "citation_count": work.get("cited_by_count", 0) or 0,
    }


class OpenAlexSource(HTTPSource):
    key = "openalex"
    name = "OpenAlex"
    query_style = QueryStyle.NATURAL

    async def _search(self, query: str, limit: int, timeout: float) -> List[Record]:
        params = {
            "search": query,
            "per_page": min(limit, 100),
            "select": SELECT_FIELDS,
            "mailto": settings.API_CONTACT_EMAIL,
        }
        data = await self._get_json(WORKS_URL, params, timeout)
        results = data.get("results")
        if results is None:
            raise SourceParseError(self.name, "missing results")

        records = []
        for work in results:
            record = self._build_record(**parse_openalex_work(work, self.name))
            if record:
                records.append(record)
        return records
