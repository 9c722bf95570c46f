"""
PubMed data source.

PubMed provides access to 36M+ biomedical literature citations.
- No API key required (an NCBI key raises the limit from 3 to 10 req/s)
- Uses Entrez/NCBI E-utilities via Biopython
- Two-step protocol: esearch for PMIDs, then efetch details in batches

Note: Biopython's Entrez library is synchronous. We run it in a
ThreadPoolExecutor to avoid blocking the event loop while still
enabling parallel fetching with other sources.
"""
import asyncio
import socket
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional
from urllib.error import HTTPError, URLError

from Bio import Entrez

from medsearch.core.config import settings
from medsearch.core.exceptions import (
    SourceAuthError,
    SourceError,
    SourceHTTPError,
    SourceParseError,
    SourceRateLimitError,
    SourceTimeoutError,
)
from medsearch.core.logging import get_logger
from medsearch.schemas.records import Record
from medsearch.schemas.search import QueryStyle
from medsearch.tools.study_types import infer_study_type
from medsearch.tools.text_processing import extract_year, strip_markup
from .base import BaseSource, run_blocking

logger = get_logger(__name__)

Entrez.email = settings.API_CONTACT_EMAIL
Entrez.tool = "medsearch"
if settings.NCBI_API_KEY:
    Entrez.api_key = settings.NCBI_API_KEY
# Retries are owned by the shared retry helper, not by Biopython
Entrez.max_tries = 1

EFETCH_BATCH_SIZE = 100

# Shared executor for running sync Entrez calls
_executor = ThreadPoolExecutor(max_workers=2)


def _attr(value, name: str) -> str:
    return getattr(value, "attributes", {}).get(name, "")


def _authors(article: Dict) -> List[str]:
    authors = []
    for author in article.get("AuthorList", []) or []:
        if "CollectiveName" in author:
            authors.append(str(author["CollectiveName"]))
            continue
        last = str(author.get("LastName", "")).strip()
        initials = str(author.get("Initials", "") or author.get("ForeName", "")).strip()
        name = f"{last} {initials}".strip()
        if name:
            authors.append(name)
    return authors


def _year(article: Dict) -> Optional[int]:
    pub_date = article.get("Journal", {}).get("JournalIssue", {}).get("PubDate", {})
    year = extract_year(str(pub_date.get("Year", "")) or str(pub_date.get("MedlineDate", "")))
    if year:
        return year
    for article_date in article.get("ArticleDate", []) or []:
        year = extract_year(str(article_date.get("Year", "")))
        if year:
            return year
    return None


def parse_pubmed_article(paper: Dict) -> Dict:
    """
    Map one PubmedArticle (as returned by Entrez.read) to Record fields.

    Raises KeyError/TypeError for articles missing their core structure.
    """
    citation = paper["MedlineCitation"]
    article = citation["Article"]
    pmid = str(citation["PMID"])

    abstract_parts = article.get("Abstract", {}).get("AbstractText", [])
    abstract = strip_markup(" ".join(str(part) for part in abstract_parts)) or None

    doi = ""
    for eid in article.get("ELocationID", []) or []:
        if _attr(eid, "EIdType") == "doi":
            doi = str(eid)
            break

    native_ids = []
    for aid in paper.get("PubmedData", {}).get("ArticleIdList", []) or []:
        id_type = _attr(aid, "IdType")
        if id_type == "doi" and not doi:
            doi = str(aid)
        elif id_type == "pmc":
            native_ids.append(f"pmcid:{aid}")

    publication_types = [str(pt) for pt in article.get("PublicationTypeList", []) or []]
    title = strip_markup(str(article.get("ArticleTitle", "")))

    return {
        "identity": {"doi": doi, "pmid": pmid, "native_ids": native_ids},
        "title": title,
        "abstract": abstract,
        "authors": _authors(article),
        "venue": str(article.get("Journal", {}).get("Title", "")),
        "year": _year(article),
        "url": f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
        "publication_types": publication_types,
        "study_type": infer_study_type(publication_types, title, abstract),
        "citation_count": 0,  # PubMed doesn't provide citation counts
    }


def _esearch_sync(query: str, limit: int) -> List[str]:
    handle = Entrez.esearch(db="pubmed", term=query, retmax=limit, sort="relevance")
    try:
        result = Entrez.read(handle)
    finally:
        handle.close()
    return list(result.get("IdList", []))


def _efetch_sync(ids: List[str]) -> List[Dict]:
    articles: List[Dict] = []
    for start in range(0, len(ids), EFETCH_BATCH_SIZE):
        batch = ids[start:start + EFETCH_BATCH_SIZE]
        handle = Entrez.efetch(db="pubmed", id=",".join(batch), retmode="xml")
        try:
            result = Entrez.read(handle)
        finally:
            handle.close()
        articles.extend(result.get("PubmedArticle", []))
    return articles


class PubMedSource(BaseSource):
    key = "pubmed"
    name = "PubMed"
    query_style = QueryStyle.PUBMED_BOOLEAN

    def _translate(self, error: Exception) -> SourceError:
        if isinstance(error, HTTPError):
            if error.code == 429:
                return SourceRateLimitError(self.name)
            if error.code in (401, 403):
                return SourceAuthError(self.name, error.code)
            return SourceHTTPError(self.name, error.code)
        if isinstance(error, socket.timeout):
            return SourceTimeoutError(self.name, self.config.timeout_seconds)
        if isinstance(error, URLError):
            return SourceError(self.name, f"network error: {error.reason}")
        return SourceParseError(self.name, str(error))

    async def _call(self, func, *args, timeout: float):
        try:
            return await asyncio.wait_for(run_blocking(_executor, func, *args), timeout=timeout)
        except asyncio.TimeoutError:
            raise SourceTimeoutError(self.name, round(timeout, 2))
        except SourceError:
            raise
        except Exception as e:
            raise self._translate(e) from e

    async def _search(self, query: str, limit: int, timeout: float) -> List[Record]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        ids = await self._call(_esearch_sync, query, limit, timeout=timeout)
        if not ids:
            logger.info("PubMed: no results found")
            return []
        logger.debug(f"PubMed: found {len(ids)} ids, fetching details")

        articles = await self._call(_efetch_sync, ids, timeout=max(deadline - loop.time(), 0.01))

        records = []
        for paper in articles:
            try:
                fields = parse_pubmed_article(paper)
            except (KeyError, TypeError) as e:
                logger.debug(f"PubMed: skipping malformed article ({e})")
                continue
            record = self._build_record(**fields)
            if record:
                records.append(record)
        return records
