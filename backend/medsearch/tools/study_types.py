"""
Study-type inference.

Provider publication-type labels are checked first (PubMed's
PublicationTypeList, Europe PMC's pubTypeList, Semantic Scholar's
publicationTypes, Crossref's type), then title/abstract keywords.
The result is a heuristic, not an authoritative classification.
"""
from typing import Iterable, List, Optional, Tuple

from medsearch.schemas.records import StudyType
from medsearch.tools.text_processing import normalize_title

# Ordered strongest design first; the first hit wins.
_LABEL_RULES: List[Tuple[StudyType, Tuple[str, ...]]] = [
    (StudyType.META_ANALYSIS, ("meta analysis", "metaanalysis", "network meta analysis")),
    (StudyType.SYSTEMATIC_REVIEW, ("systematic review", "cochrane review")),
    (StudyType.GUIDELINE, ("practice guideline", "guideline", "consensus development conference")),
    (StudyType.RANDOMIZED_TRIAL, ("randomized controlled trial", "randomised controlled trial", "randomized clinical trial")),
    (StudyType.CLINICAL_TRIAL, ("clinical trial", "controlled clinical trial", "clinical study", "interventional")),
    (StudyType.COHORT, ("cohort study", "cohort studies", "observational study", "prospective study", "longitudinal study")),
    (StudyType.CASE_CONTROL, ("case control",)),
    (StudyType.CROSS_SECTIONAL, ("cross sectional",)),
    (StudyType.CASE_REPORT, ("case report", "case reports")),
    (StudyType.EXPERT_OPINION, ("editorial", "comment", "letter", "letters and comments", "expert opinion")),
    (StudyType.REVIEW, ("review", "narrative review", "scoping review")),
    (StudyType.PREPRINT, ("preprint", "posted content")),
]

_TEXT_RULES: List[Tuple[StudyType, Tuple[str, ...]]] = [
    (StudyType.META_ANALYSIS, ("meta analysis", "meta analyses", "pooled analysis")),
    (StudyType.SYSTEMATIC_REVIEW, ("systematic review", "systematic literature review")),
    (StudyType.GUIDELINE, ("clinical practice guideline", "guideline", "consensus statement", "recommendations from")),
    (StudyType.RANDOMIZED_TRIAL, (
        "randomized controlled trial", "randomised controlled trial", "randomized trial",
        "randomised trial", "randomized clinical trial", "double blind", "placebo controlled",
    )),
    (StudyType.CLINICAL_TRIAL, ("clinical trial", "phase ii", "phase iii", "open label", "single arm")),
    (StudyType.COHORT, ("cohort study", "prospective cohort", "retrospective cohort", "cohort of", "longitudinal study")),
    (StudyType.CASE_CONTROL, ("case control", "matched controls")),
    (StudyType.CROSS_SECTIONAL, ("cross sectional", "survey of")),
    (StudyType.CASE_REPORT, ("case report", "we report a case", "case of a", "case series")),
    (StudyType.EXPERT_OPINION, ("editorial", "commentary", "expert opinion", "perspective")),
    (StudyType.REVIEW, ("review", "overview of")),
]


def _match(text: str, rules: List[Tuple[StudyType, Tuple[str, ...]]]) -> Optional[StudyType]:
    padded = f" {text} "
    for study_type, phrases in rules:
        if any(f" {phrase} " in padded for phrase in phrases):
            return study_type
    return None


def infer_study_type(
    publication_types: Iterable[str] = (),
    title: str = "",
    abstract: Optional[str] = None,
    is_preprint: bool = False,
) -> StudyType:
    """
    Infer a record's study type.

    Args:
        publication_types: Provider labels, e.g. ["Journal Article", "Meta-Analysis"]
        title: Record title
        abstract: Record abstract, if any
        is_preprint: Provider says this is an unreviewed preprint

    Returns:
        The strongest matching StudyType; PREPRINT when the provider flags
        a preprint, UNKNOWN when nothing matches.
    """
    if is_preprint:
        return StudyType.PREPRINT

    labels = " ".join(normalize_title(label) for label in publication_types if label)
    if labels:
        from_labels = _match(labels, _LABEL_RULES)
        if from_labels is not None:
            return from_labels

    # The title is the most reliable free-text signal; fall back to the abstract.
    from_title = _match(normalize_title(title), _TEXT_RULES)
    if from_title is not None:
        return from_title
    from_abstract = _match(normalize_title(abstract), _TEXT_RULES[:-1])
    if from_abstract is not None:
        return from_abstract
    return StudyType.UNKNOWN
