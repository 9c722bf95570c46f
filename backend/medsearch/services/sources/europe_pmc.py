"""
Europe PMC data source.

Europe PMC provides access to 43M+ life science articles.
- No API key required
- Includes preprints from bioRxiv/medRxiv
- Focus on biomedical and health research
- Boolean query syntax with quoted phrases

Uses httpx.AsyncClient for non-blocking HTTP requests.
"""
from typing import Dict, List, Optional

from medsearch.core.exceptions import SourceParseError
from medsearch.schemas.records import Record
from medsearch.schemas.search import QueryStyle
from medsearch.tools.study_types import infer_study_type
from medsearch.tools.text_processing import strip_markup
from .base import HTTPSource

SEARCH_URL = "https://www.ebi.ac.uk/europepmc/webservices/rest/search"


def _authors(result: Dict) -> List[str]:
    author_list = (result.get("authorList") or {}).get("author") or []
    names = [a.get("fullName", "").strip() for a in author_list if a.get("fullName")]
    if names:
        return names
    author_string = result.get("authorString", "") or ""
    return [name.strip().rstrip(".") for name in author_string.split(",") if name.strip()]


def _url(result: Dict, pmid: str, doi: str) -> str:
    if pmid:
        return f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/"
    urls = (result.get("fullTextUrlList") or {}).get("fullTextUrl") or []
    if urls:
        return urls[0].get("url", "")
    if doi:
        return f"https://doi.org/{doi}"
    return f"https://europepmc.org/article/{result.get('source', 'MED')}/{result.get('id', '')}"


def parse_europe_pmc_result(result: Dict, source_name: str = "EuropePMC") -> Dict:
    """Map one Europe PMC core result to Record fields."""
    pmid = result.get("pmid", "") or ""
    doi = result.get("doi", "") or ""
    native_ids = []
    if result.get("pmcid"):
        native_ids.append(f"pmcid:{result['pmcid']}")
    if result.get("id") and result.get("source"):
        native_ids.append(f"europepmc:{result['source']}/{result['id']}")

    pub_types = (result.get("pubTypeList") or {}).get("pubType") or []
    if isinstance(pub_types, str):
        pub_types = [pub_types]

    title = strip_markup(result.get("title", ""))
    abstract = strip_markup(result.get("abstractText", "")) or None
    journal = ((result.get("journalInfo") or {}).get("journal") or {}).get("title", "")

    return {
        "identity": {"doi": doi, "pmid": pmid, "native_ids": native_ids},
        "title": title,
        "abstract": abstract,
        "authors": _authors(result),
        "venue": journal or result.get("journalTitle", "") or "",
        "year": result.get("pubYear"),
        "url": _url(result, pmid, doi),
        "source_name": source_name,
        "publication_types": list(pub_types),
        "study_type": infer_study_type(pub_types, title, abstract, is_preprint=result.get("source") == "PPR"),
        "citation_count": int(result.get("citedByCount", 0) or 0),
    }


class EuropePMCSource(HTTPSource):
    key = "europe_pmc"
    name = "EuropePMC"
    query_style = QueryStyle.BOOLEAN

    async def _search(self, query: str, limit: int, timeout: float) -> List[Record]:
        params = {
            "query": query,
            "format": "json",
            "pageSize": min(limit, 100),
            "resultType": "core",
        }
        data = await self._get_json(SEARCH_URL, params, timeout)
        results = (data.get("resultList") or {}).get("result")
        if results is None:
            raise SourceParseError(self.name, "missing resultList")

        records = []
        for result in results:
            record: Optional[Record] = self._build_record(**parse_europe_pmc_result(result, self.name))
            if record:
                records.append(record)
        return records
