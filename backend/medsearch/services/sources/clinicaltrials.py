"""
ClinicalTrials.gov API v2.0 data source.

Provides access to 400k+ clinical trials with:
- Modern REST API with JSON responses
- Structured fields (enums, ISO dates)
- No authentication required
- Rate limit: ~50 requests/minute

Registered trials have no DOI and no authors; records carry the NCT
identifier as their native id and leave those fields empty.

API Documentation: https://clinicaltrials.gov/data-api/api
"""
import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

import requests

from medsearch.core.exceptions import (
    SourceAuthError,
    SourceError,
    SourceHTTPError,
    SourceParseError,
    SourceRateLimitError,
    SourceTimeoutError,
)
from medsearch.core.logging import get_logger
from medsearch.schemas.records import Record, StudyType
from medsearch.schemas.search import QueryStyle
from medsearch.tools.text_processing import extract_year
from .base import USER_AGENT, BaseSource, run_blocking

logger = get_logger(__name__)

BASE_URL = "https://clinicaltrials.gov/api/v2"

_executor = ThreadPoolExecutor(max_workers=2)

_OBSERVATIONAL_MODELS = {
    "COHORT": StudyType.COHORT,
    "CASE_CONTROL": StudyType.CASE_CONTROL,
    "CASE_ONLY": StudyType.CASE_REPORT,
}


def trial_study_type(design_module: Dict) -> StudyType:
    """Study type from the trial's registered design."""
    study_type = (design_module.get("studyType") or "").upper()
    design_info = design_module.get("designInfo") or {}

    if study_type == "INTERVENTIONAL":
        if (design_info.get("allocation") or "").upper() == "RANDOMIZED":
            return StudyType.RANDOMIZED_TRIAL
        return StudyType.CLINICAL_TRIAL
    if study_type == "OBSERVATIONAL":
        model = (design_info.get("observationalModel") or "").upper()
        if model in _OBSERVATIONAL_MODELS:
            return _OBSERVATIONAL_MODELS[model]
        if (design_info.get("timePerspective") or "").upper() == "CROSS_SECTIONAL":
            return StudyType.CROSS_SECTIONAL
        return StudyType.COHORT
    return StudyType.UNKNOWN


def normalize_trial(study: Dict, source_name: str = "ClinicalTrials.gov") -> Optional[Dict]:
    """Convert one API v2 study to Record fields, or None without an NCT id."""
    protocol = study.get("protocolSection", {})

    id_module = protocol.get("identificationModule", {})
    nct_id = id_module.get("nctId", "")
    if not nct_id:
        return None

    status_module = protocol.get("statusModule", {})
    design_module = protocol.get("designModule", {})
    desc_module = protocol.get("descriptionModule", {})

    start_date = (status_module.get("startDateStruct") or {}).get("date", "")
    first_posted = (status_module.get("studyFirstPostDateStruct") or {}).get("date", "")

    phases = design_module.get("phases") or []
    publication_types = [design_module.get("studyType", "")] + phases

    return {
        "identity": {"native_ids": [f"nct:{nct_id}"]},
        "title": id_module.get("officialTitle") or id_module.get("briefTitle", ""),
        "abstract": desc_module.get("briefSummary") or None,
        "authors": [],
        "venue": "ClinicalTrials.gov",
        "year": extract_year(start_date) or extract_year(first_posted),
        "url": f"https://clinicaltrials.gov/study/{nct_id}",
        "source_name": source_name,
        "publication_types": [p for p in publication_types if p],
        "study_type": trial_study_type(design_module),
        "citation_count": 0,
    }


def _search_trials_sync(query: str, limit: int, timeout: float) -> requests.Response:
    """Synchronous search request, run in the shared executor."""
    return requests.get(
        f"{BASE_URL}/studies",
        params={
            "query.term": query,
            "pageSize": min(limit, 100),  # API max is 100 per page
            "format": "json",
        },
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
    )


class ClinicalTrialsSource(BaseSource):
    key = "clinical_trials"
    name = "ClinicalTrials.gov"
    query_style = QueryStyle.CONCEPT

    async def _search(self, query: str, limit: int, timeout: float) -> List[Record]:
        try:
            response = await asyncio.wait_for(
                run_blocking(_executor, _search_trials_sync, query, limit, timeout),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, requests.exceptions.Timeout):
            raise SourceTimeoutError(self.name, round(timeout, 2))
        except requests.exceptions.RequestException as e:
            raise SourceError(self.name, f"network error: {e}")

        status_code = response.status_code
        if status_code == 429:
            raise SourceRateLimitError(self.name)
        if status_code in (401, 403):
            raise SourceAuthError(self.name, status_code)
        if status_code != 200:
            raise SourceHTTPError(self.name, status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise SourceParseError(self.name, str(e))

        records = []
        for study in data.get("studies", []):
            fields = normalize_trial(study, self.name)
            if not fields:
                continue
            record = self._build_record(**fields)
            if record:
                records.append(record)
        logger.debug(f"ClinicalTrials.gov: {len(records)} trials parsed")
        return records
