"""
Query refinement for search.

Converts a free-text question into one optimized query string per
source, following the syntax family each provider expects:
- PubMed: field-qualified boolean with MeSH headings
- Europe PMC: quoted boolean without controlled-vocabulary tags
- OpenAlex, Semantic Scholar, Crossref: natural-language keywords
- ClinicalTrials.gov: a short phrase of the key concepts

Everything is table-driven (see vocabulary.TermTables). Refinement never
fails: when no term can be extracted, every source gets the raw query.
"""
from datetime import date
from typing import Dict, List, Optional

from medsearch.core.logging import get_logger
from medsearch.schemas.events import ProgressStep
from medsearch.schemas.search import Query, QueryStyle, SearchConfig
from medsearch.tools.text_processing import normalize_title, tokenize
from .types import ProgressCallback, _noop_callback
from .vocabulary import DEFAULT_TERMS, TermTables, detect_domains, detect_intent

logger = get_logger(__name__)

MAX_PHRASE_TOKENS = 4
MAX_CONCEPT_QUERY_TERMS = 3


def _phrase_table(tables: TermTables) -> Dict[tuple, str]:
    """Tokenized known phrases (synonym and MeSH keys) -> phrase text."""
    phrases = {}
    for phrase in list(tables.synonyms) + list(tables.mesh_headings):
        tokens = tuple(tokenize(phrase))
        if tokens:
            phrases[tokens] = phrase
    return phrases


def extract_concepts(raw_query: str, tables: TermTables = DEFAULT_TERMS) -> List[str]:
    """
    Split a query into concepts: known multi-word phrases first
    (longest match wins), then remaining non-stopword tokens.

    "metformin for type 2 diabetes" -> ["metformin", "type 2 diabetes"]
    """
    tokens = tokenize(raw_query)
    phrases = _phrase_table(tables)
    stopwords = set(tables.stopwords)

    concepts: List[str] = []
    i = 0
    while i < len(tokens):
        for size in range(min(MAX_PHRASE_TOKENS, len(tokens) - i), 0, -1):
            candidate = tuple(tokens[i:i + size])
            if candidate in phrases and (size > 1 or candidate[0] not in stopwords):
                concepts.append(phrases[candidate])
                i += size
                break
        else:
            token = tokens[i]
            if token not in stopwords and (len(token) > 1 or token.isdigit()):
                concepts.append(token)
            i += 1

    # Keep first occurrence order
    seen = set()
    return [c for c in concepts if not (c in seen or seen.add(c))]


def extract_terms(raw_query: str, tables: TermTables = DEFAULT_TERMS) -> List[str]:
    """Content words used for topical scoring (no stopwords, no bare numbers)."""
    stopwords = set(tables.stopwords)
    seen = set()
    terms = []
    for token in tokenize(raw_query):
        if token in stopwords or token.isdigit() or len(token) < 2 or token in seen:
            continue
        seen.add(token)
        terms.append(token)
    return terms


def _alternatives(concept: str, tables: TermTables) -> List[str]:
    """The concept plus its known synonyms in either direction."""
    alternatives = [concept]
    clinical = tables.synonyms.get(concept)
    if clinical:
        alternatives.append(clinical)
    for lay, target in tables.synonyms.items():
        if target == concept:
            alternatives.append(lay)
    seen = set()
    return [a for a in alternatives if not (a in seen or seen.add(a))]


def _quote(term: str) -> str:
    return f'"{term}"' if " " in term or "-" in term else term


def build_pubmed_query(concepts: List[str], intent: Optional[str], tables: TermTables) -> str:
    """
    Field-qualified boolean query.

    ("metformin"[tiab] OR "Metformin"[MeSH Terms]) AND ("type 2 diabetes"[tiab] OR ...)
    """
    groups = []
    for concept in concepts:
        parts = [f"{_quote(alt)}[tiab]" for alt in _alternatives(concept, tables)]
        heading = tables.mesh_headings.get(concept) or tables.mesh_headings.get(tables.synonyms.get(concept, ""))
        if heading:
            parts.append(f'"{heading}"[MeSH Terms]')
        groups.append(parts[0] if len(parts) == 1 else "(" + " OR ".join(parts) + ")")
    query = " AND ".join(groups)

    qualifiers = tables.intents[intent].qualifiers if intent in tables.intents else []
    if query and qualifiers:
        query = f"({query}) AND (" + " OR ".join(f"{_quote(q)}[tiab]" for q in qualifiers) + ")"
    return query


def build_boolean_query(concepts: List[str], tables: TermTables) -> str:
    """Quoted boolean query without MeSH tags (Europe PMC syntax)."""
    groups = []
    for concept in concepts:
        alternatives = [f'"{alt}"' for alt in _alternatives(concept, tables)]
        groups.append(alternatives[0] if len(alternatives) == 1 else "(" + " OR ".join(alternatives) + ")")
    return " AND ".join(groups)


def build_natural_query(concepts: List[str]) -> str:
    return " ".join(concepts)


def build_concept_query(concepts: List[str]) -> str:
    return " ".join(concepts[:MAX_CONCEPT_QUERY_TERMS])


def refine_query(
    raw_query: str,
    query_styles: Optional[Dict[str, QueryStyle]] = None,
    config: Optional[SearchConfig] = None,
    target_result_count: Optional[int] = None,
    tables: TermTables = DEFAULT_TERMS,
    reference_year: Optional[int] = None,
    on_progress: ProgressCallback = _noop_callback,
) -> Query:
    """
    Turn a free-text query into a Query with one string per source.

    Args:
        raw_query: The user's question
        query_styles: Source key -> query syntax family. Defaults to the
            registered sources.
        config: Supplies per-source fetch limits and the default target count
        target_result_count: Overrides config.target_result_count
        tables: Vocabulary tables
        reference_year: Year recency is measured against (defaults to this year)
        on_progress: Callback for progress updates

    Returns:
        A frozen Query. Never raises for odd input; an empty analysis
        sends the raw text to every source.
    """
    on_progress(ProgressStep.REFINING, "Refining query...", None)

    config = config or SearchConfig.default()
    if query_styles is None:
        from medsearch.services.sources import SOURCE_REGISTRY
        query_styles = {key: cls.query_style for key, cls in SOURCE_REGISTRY.items()}

    raw_text = " ".join((raw_query or "").split())
    normalized = normalize_title(raw_text)

    concepts = extract_concepts(raw_text, tables)
    terms = extract_terms(raw_text, tables)
    intent = detect_intent(raw_text, tables)
    domains = detect_domains(normalized, tables)

    per_source: Dict[str, str] = {}
    for key, style in query_styles.items():
        if not concepts:
            per_source[key] = raw_text
        elif style == QueryStyle.PUBMED_BOOLEAN:
            per_source[key] = build_pubmed_query(concepts, intent, tables)
        elif style == QueryStyle.BOOLEAN:
            per_source[key] = build_boolean_query(concepts, tables)
        elif style == QueryStyle.CONCEPT:
            per_source[key] = build_concept_query(concepts)
        else:
            per_source[key] = build_natural_query(concepts)

    query = Query(
        raw_text=raw_text,
        per_source_queries=per_source,
        target_result_count=target_result_count or config.target_result_count,
        max_per_source_fetch={key: source.max_results for key, source in config.sources.items()},
        terms=terms,
        key_concepts=concepts,
        intent=intent,
        domains=domains,
        reference_year=reference_year or date.today().year,
    )

    logger.info(f"Refined query: intent={intent}, domains={domains}, concepts={concepts}")
    for key, text in per_source.items():
        logger.debug(f"  {key}: {text}")
    return query
