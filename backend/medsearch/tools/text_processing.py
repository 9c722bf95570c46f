"""
Text normalization shared by adapters, the deduplicator and the scorer.
"""
import hashlib
import html
import re
import unicodedata
from typing import List, Optional

_TAG_RE = re.compile(r"<[^>]+>")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_TOKEN_RE = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")
_YEAR_RE = re.compile(r"\b(1[89]\d{2}|20\d{2})\b")
_DOI_PREFIXES = ("https://doi.org/", "http://doi.org/", "https://dx.doi.org/", "http://dx.doi.org/", "doi:")


def strip_markup(text: Optional[str]) -> str:
    """Remove HTML/JATS tags and entities and collapse whitespace."""
    if not text:
        return ""
    text = html.unescape(_TAG_RE.sub(" ", text))
    return " ".join(text.split())


def normalize_title(title: Optional[str]) -> str:
    """
    Case-, punctuation-, accent- and whitespace-insensitive form of a title.

    "The Effect of Metformin: A Review." -> "the effect of metformin a review"
    """
    if not title:
        return ""
    text = unicodedata.normalize("NFKD", strip_markup(title))
    text = "".join(ch for ch in text if not unicodedata.combining(ch)).lower()
    return " ".join(_NON_ALNUM_RE.sub(" ", text).split())


def title_hash(title: Optional[str]) -> str:
    normalized = normalize_title(title)
    if not normalized:
        return ""
    return hashlib.sha1(normalized.encode("utf-8")).hexdigest()[:16]


def normalize_doi(doi: Optional[str]) -> str:
    if not doi:
        return ""
    doi = doi.strip()
    lowered = doi.lower()
    for prefix in _DOI_PREFIXES:
        if lowered.startswith(prefix):
            doi = doi[len(prefix):]
            break
    return doi.strip().lower()


def normalize_pmid(pmid: Optional[str]) -> str:
    if not pmid:
        return ""
    pmid = str(pmid).strip().rstrip("/").rsplit("/", 1)[-1]
    return pmid if pmid.isdigit() else ""


def tokenize(text: Optional[str]) -> List[str]:
    """Lower-case word tokens, keeping hyphenated compounds together."""
    if not text:
        return []
    return _TOKEN_RE.findall(text.lower())


def stem(token: str) -> str:
    """Very light plural folding so 'trials' matches 'trial'."""
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 4 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def extract_year(value: Optional[str]) -> Optional[int]:
    """First plausible publication year in a free-form date string."""
    if not value:
        return None
    match = _YEAR_RE.search(str(value))
    return int(match.group(1)) if match else None
