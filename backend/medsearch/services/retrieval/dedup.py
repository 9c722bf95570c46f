"""
Cross-source deduplication.

The same paper shows up in PubMed, Europe PMC, OpenAlex and CrossRef
under different identifiers. Records are grouped into clusters by:
(a) exact DOI match,
(b) exact PMID or provider-native id match,
(c) normalized-title similarity >= threshold with years within tolerance,
    unless the two clusters would then hold different DOIs.

Links are evaluated over the records sorted by canonical id, so cluster
membership does not depend on input order. Each cluster is merged into
one record, field by field, with the most complete value winning.
Members are visited in canonical-id order, which makes the merge
reproducible.
"""
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Set

from medsearch.core.logging import get_logger
from medsearch.schemas.events import ProgressStep
from medsearch.schemas.records import Record, RecordIdentity, StudyType
from medsearch.schemas.search import DedupConfig
from medsearch.tools.text_processing import normalize_title
from .types import ProgressCallback, _noop_callback

logger = get_logger(__name__)


class _DisjointSet:
    """Union-find over record indices that also tracks each cluster's DOIs."""

    def __init__(self, dois: List[str]):
        self.parent = list(range(len(dois)))
        self.dois: List[Set[str]] = [{doi} if doi else set() for doi in dois]

    def find(self, i: int) -> int:
        while self.parent[i] != i:
            self.parent[i] = self.parent[self.parent[i]]
            i = self.parent[i]
        return i

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            # Smaller index becomes the root so roots are stable
            keep, drop = min(root_a, root_b), max(root_a, root_b)
            self.parent[drop] = keep
            self.dois[keep] |= self.dois[drop]

    def dois_conflict(self, a: int, b: int) -> bool:
        """True when both clusters carry a DOI and the DOIs differ."""
        dois_a, dois_b = self.dois[self.find(a)], self.dois[self.find(b)]
        return bool(dois_a and dois_b and dois_a != dois_b)


def title_similarity(a: str, b: str) -> float:
    """Similarity ratio of two normalized titles (order-independent)."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    first, second = sorted((a, b))
    return SequenceMatcher(None, first, second, autojunk=False).ratio()


def _years_compatible(a: Optional[int], b: Optional[int], tolerance: int) -> bool:
    if a is None or b is None:
        return True
    return abs(a - b) <= tolerance


def _sort_key(record: Record):
    return (record.record_id, record.source_name, record.title)


def _merge(members: List[Record]) -> Record:
    """Merge one cluster (already in canonical order) into a single record."""
    if len(members) == 1:
        return members[0]

    primary = next((m for m in members if m.title), members[0])

    abstracts = [m.abstract for m in members if m.abstract]
    longest_abstract = max(abstracts, key=len) if abstracts else None
    longest_authors = max((m.authors for m in members), key=len)

    publication_types: List[str] = []
    for member in members:
        for label in member.publication_types:
            if label not in publication_types:
                publication_types.append(label)

    # A published version outranks a preprint or an unclassified copy
    study_type = primary.study_type
    for member in [primary] + members:
        if member.study_type not in (StudyType.UNKNOWN, StudyType.PREPRINT):
            study_type = member.study_type
            break

    identity = RecordIdentity(
        doi=primary.identity.doi or next((m.identity.doi for m in members if m.identity.doi), ""),
        pmid=primary.identity.pmid or next((m.identity.pmid for m in members if m.identity.pmid), ""),
        native_ids=sorted({nid for m in members for nid in m.identity.native_ids}),
        title_hash=primary.identity.title_hash or next((m.identity.title_hash for m in members if m.identity.title_hash), ""),
    )

    return Record(
        identity=identity,
        title=primary.title,
        abstract=longest_abstract,
        authors=list(longest_authors),
        venue=primary.venue or next((m.venue for m in members if m.venue), ""),
        year=primary.year if primary.year is not None else next((m.year for m in members if m.year is not None), None),
        url=primary.url or next((m.url for m in members if m.url), ""),
        source_name=primary.source_name,
        sources=sorted({s for m in members for s in m.sources}),
        study_type=study_type,
        publication_types=publication_types,
        citation_count=max(m.citation_count for m in members),
    )


def cluster_records(records: List[Record], config: Optional[DedupConfig] = None) -> List[List[Record]]:
    """Group records into identity clusters, each sorted in canonical order."""
    config = config or DedupConfig()
    ordered = sorted(records, key=_sort_key)
    clusters = _DisjointSet([r.identity.doi for r in ordered])

    # (a) and (b): exact identifier matches
    first_seen: Dict[str, int] = {}
    for i, record in enumerate(ordered):
        keys = []
        if record.identity.doi:
            keys.append(f"doi:{record.identity.doi}")
        if record.identity.pmid:
            keys.append(f"pmid:{record.identity.pmid}")
        keys.extend(record.identity.native_ids)
        for key in keys:
            if key in first_seen:
                clusters.union(first_seen[key], i)
            else:
                first_seen[key] = i

    # (c): near-identical titles with compatible years
    titles = [normalize_title(r.title) for r in ordered]
    for i in range(len(ordered)):
        if not titles[i]:
            continue
        for j in range(i + 1, len(ordered)):
            if not titles[j] or clusters.find(i) == clusters.find(j):
                continue
            # Checked per cluster: a DOI-less record must not bridge two DOIs
            if clusters.dois_conflict(i, j):
                continue
            if not _years_compatible(ordered[i].year, ordered[j].year, config.year_tolerance):
                continue
            similarity = title_similarity(titles[i], titles[j])
            if similarity >= config.title_similarity_threshold:
                logger.debug(f"Duplicate found (title {similarity:.2f}): {ordered[i].title[:40]}...")
                clusters.union(i, j)

    groups: Dict[int, List[Record]] = {}
    for i, record in enumerate(ordered):
        groups.setdefault(clusters.find(i), []).append(record)
    return [groups[root] for root in sorted(groups)]


def deduplicate_records(
    records: List[Record],
    config: Optional[DedupConfig] = None,
    on_progress: ProgressCallback = _noop_callback,
) -> List[Record]:
    """
    Collapse cross-source duplicates.

    Args:
        records: Raw pool from all adapters
        config: Similarity threshold and year tolerance
        on_progress: Progress callback

    Returns:
        One merged record per cluster, sorted by canonical id
    """
    on_progress(ProgressStep.DEDUPLICATING, "Removing duplicates...", None)
    if not records:
        return []

    merged = [_merge(members) for members in cluster_records(records, config)]
    merged.sort(key=_sort_key)

    logger.info(
        f"Deduplication complete: {len(records)} -> {len(merged)} "
        f"({len(records) - len(merged)} duplicates removed)"
    )
    return merged
