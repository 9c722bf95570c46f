"""
Static term tables for query refinement and scoring.

The refiner and the scorer read all of their vocabulary from a TermTables
value instead of inline keyword lists, so the tables can be swapped or
extended per deployment and tested on their own.

Matching is done on normalized text (see normalize_title): lower-case,
accents and punctuation removed, so "Meta-Analysis" matches "meta analysis".
"""
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from medsearch.tools.text_processing import normalize_title


class DomainTerms(BaseModel):
    """A coarse medical domain: words that detect it in a query, words that confirm it in a record."""
    triggers: List[str]
    vocabulary: List[str]


class IntentPattern(BaseModel):
    """A coarse query intent and the study-design qualifiers that suit it."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    pattern: re.Pattern
    qualifiers: List[str] = Field(default_factory=list)


class TermTables(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    stopwords: List[str]
    synonyms: Dict[str, str]
    mesh_headings: Dict[str, str]
    domains: Dict[str, DomainTerms]
    intents: Dict[str, IntentPattern]
    general_medical_terms: List[str]
    non_medical_terms: List[str]

    def domain_vocabulary(self, domain: str) -> List[str]:
        entry = self.domains.get(domain)
        if not entry:
            return []
        return entry.triggers + entry.vocabulary


def contains_term(normalized_text: str, term: str) -> bool:
    """Whole-word match of a term inside already-normalized text."""
    needle = normalize_title(term)
    if not needle or not normalized_text:
        return False
    return f" {needle} " in f" {normalized_text} "


def count_terms(normalized_text: str, terms: List[str]) -> int:
    return sum(1 for term in terms if contains_term(normalized_text, term))


def detect_intent(text: str, tables: "TermTables") -> Optional[str]:
    """First matching intent in table order, or None."""
    for name, intent in tables.intents.items():
        if intent.pattern.search(text):
            return name
    return None


def detect_domains(normalized_text: str, tables: "TermTables") -> List[str]:
    return [
        name for name, domain in tables.domains.items()
        if count_terms(normalized_text, domain.triggers)
    ]


STOPWORDS = [
    "a", "an", "and", "are", "as", "at", "be", "between", "by", "can", "do", "does",
    "effect", "effects", "for", "from", "how", "in", "is", "it", "of", "on", "or",
    "should", "the", "to", "vs", "versus", "what", "when", "which", "who", "why",
    "with", "without", "best", "latest", "new", "about", "there", "any", "evidence",
    "research", "study", "studies",
]

# Lay or abbreviated term -> clinical term
SYNONYMS = {
    "heart attack": "myocardial infarction",
    "high blood pressure": "hypertension",
    "high cholesterol": "hypercholesterolemia",
    "t2d": "type 2 diabetes",
    "t2dm": "type 2 diabetes",
    "t1d": "type 1 diabetes",
    "stroke": "cerebrovascular accident",
    "kidney disease": "renal insufficiency",
    "fish oil": "omega-3 fatty acids",
    "blood thinner": "anticoagulant",
    "covid": "covid-19",
    "long covid": "post-acute covid-19 syndrome",
    "cancer": "neoplasm",
    "tumour": "tumor",
    "paediatric": "pediatric",
    "copd": "chronic obstructive pulmonary disease",
    "afib": "atrial fibrillation",
    "adhd": "attention deficit hyperactivity disorder",
}

# Query phrase -> MeSH heading
MESH_HEADINGS = {
    "type 2 diabetes": "Diabetes Mellitus, Type 2",
    "type 1 diabetes": "Diabetes Mellitus, Type 1",
    "diabetes": "Diabetes Mellitus",
    "metformin": "Metformin",
    "hypertension": "Hypertension",
    "high blood pressure": "Hypertension",
    "myocardial infarction": "Myocardial Infarction",
    "heart attack": "Myocardial Infarction",
    "heart failure": "Heart Failure",
    "atrial fibrillation": "Atrial Fibrillation",
    "stroke": "Stroke",
    "cancer": "Neoplasms",
    "breast cancer": "Breast Neoplasms",
    "lung cancer": "Lung Neoplasms",
    "tuberculosis": "Tuberculosis",
    "infection": "Infections",
    "covid-19": "COVID-19",
    "depression": "Depression",
    "anxiety": "Anxiety",
    "asthma": "Asthma",
    "obesity": "Obesity",
    "statin": "Hydroxymethylglutaryl-CoA Reductase Inhibitors",
    "statins": "Hydroxymethylglutaryl-CoA Reductase Inhibitors",
    "cholesterol": "Cholesterol",
    "omega-3": "Fatty Acids, Omega-3",
    "fish oil": "Fish Oils",
    "migraine": "Migraine Disorders",
    "alzheimer": "Alzheimer Disease",
    "parkinson": "Parkinson Disease",
    "children": "Child",
    "pediatric": "Child",
    "pregnancy": "Pregnancy",
    "breastfeeding": "Breast Feeding",
    "exercise": "Exercise",
    "smoking cessation": "Smoking Cessation",
}

DOMAINS = {
    "endocrinology": DomainTerms(
        triggers=["diabetes", "insulin", "thyroid", "obesity", "metformin", "glycemic", "hba1c"],
        vocabulary=[
            "glucose", "glycemic control", "hyperglycemia", "hypoglycemia", "insulin resistance",
            "hba1c", "glycated hemoglobin", "metabolic syndrome", "sglt2", "glp-1", "endocrine",
            "diabetic", "beta cell", "insulin sensitivity",
        ],
    ),
    "cardiology": DomainTerms(
        triggers=["heart", "cardiac", "cardiovascular", "hypertension", "myocardial", "atrial", "coronary", "statin"],
        vocabulary=[
            "cardiovascular", "myocardial infarction", "heart failure", "blood pressure",
            "coronary artery disease", "atherosclerosis", "arrhythmia", "cardiology",
            "ldl", "cholesterol", "lipid", "antihypertensive",
        ],
    ),
    "oncology": DomainTerms(
        triggers=["cancer", "tumor", "tumour", "oncology", "carcinoma", "neoplasm", "lymphoma", "leukemia"],
        vocabulary=[
            "chemotherapy", "radiotherapy", "malignant", "metastasis", "carcinoma",
            "survival", "remission", "immunotherapy", "oncology", "tumor",
        ],
    ),
    "neurology": DomainTerms(
        triggers=["brain", "neurology", "neurological", "stroke", "migraine", "epilepsy", "alzheimer", "parkinson", "dementia"],
        vocabulary=[
            "cognitive", "neurological", "seizure", "neurodegeneration", "cerebral",
            "headache", "dementia", "neurology", "cerebrovascular",
        ],
    ),
    "psychiatry": DomainTerms(
        triggers=["depression", "anxiety", "mental health", "schizophrenia", "bipolar", "adhd", "psychiatric"],
        vocabulary=[
            "antidepressant", "mood", "psychotherapy", "cognitive behavioral therapy",
            "psychiatric", "mental disorder", "ssri",
        ],
    ),
    "infectious_disease": DomainTerms(
        triggers=["covid", "covid-19", "infection", "virus", "viral", "bacterial", "tuberculosis", "vaccine", "hiv"],
        vocabulary=[
            "antiviral", "antibiotic", "pathogen", "sars-cov-2", "immunization",
            "infectious", "pandemic", "antimicrobial",
        ],
    ),
    "pulmonology": DomainTerms(
        triggers=["asthma", "copd", "lung", "respiratory", "pneumonia"],
        vocabulary=["bronchodilator", "inhaled corticosteroid", "pulmonary", "airway", "spirometry"],
    ),
    "pediatrics": DomainTerms(
        triggers=["child", "children", "pediatric", "infant", "newborn", "adolescent", "breastfeeding"],
        vocabulary=["childhood", "neonatal", "pediatric", "infant", "growth", "development"],
    ),
    "nutrition": DomainTerms(
        triggers=["diet", "dietary", "supplement", "vitamin", "omega-3", "nutrition", "fasting"],
        vocabulary=["supplementation", "nutritional", "intake", "micronutrient", "fatty acid", "caloric"],
    ),
}

INTENTS = {
    "safety": IntentPattern(
        pattern=re.compile(r"side effects?|adverse|toxicity|safety|risks?\b|harm", re.I),
        qualifiers=["adverse effects", "safety"],
    ),
    "diagnosis": IntentPattern(
        pattern=re.compile(r"diagnos\w*|screening|\btest(ing)?\b|detect\w*|sensitivity and specificity", re.I),
        qualifiers=["diagnosis", "sensitivity and specificity"],
    ),
    "prognosis": IntentPattern(
        pattern=re.compile(r"prognos\w*|survival|outcomes?\b|mortality|life expectancy|recurrence", re.I),
        qualifiers=["prognosis", "cohort studies"],
    ),
    "mechanism": IntentPattern(
        pattern=re.compile(r"mechanism|how does|pathophysiolog\w*|pathway|mode of action", re.I),
        qualifiers=["physiology", "pharmacology"],
    ),
    "prevention": IntentPattern(
        pattern=re.compile(r"prevent\w*|prophyla\w*|reduce the risk|risk reduction", re.I),
        qualifiers=["prevention and control"],
    ),
    "treatment": IntentPattern(
        pattern=re.compile(r"treat\w*|therap\w*|management|efficacy|effective\w*|drug|medication|dose|dosing|vs\b|versus", re.I),
        qualifiers=["randomized controlled trial", "systematic review"],
    ),
}

GENERAL_MEDICAL_TERMS = [
    "patient", "patients", "treatment", "therapy", "clinical", "medical", "disease", "diagnosis",
    "symptom", "health", "healthcare", "medicine", "drug", "medication", "intervention",
    "outcome", "outcomes", "efficacy", "safety", "adverse", "randomized", "controlled trial",
    "meta-analysis", "systematic review", "cohort", "case-control", "prevalence", "incidence",
    "mortality", "morbidity", "prognosis", "biomarker", "screening", "prevention", "placebo",
    "double-blind", "hospital", "infection", "inflammation", "chronic", "acute", "dose",
    "risk", "trial", "participants", "cancer", "diabetes", "hypertension", "cardiovascular",
    "blood", "pregnancy", "vaccine", "syndrome", "disorder",
]

NON_MEDICAL_TERMS = [
    "business management", "strategic management", "competitive advantage", "corporate strategy",
    "marketing research", "accounting", "organizational behavior", "supply chain",
    "stock market", "computer science", "software engineering", "machine translation",
    "political science", "literary criticism", "archaeology", "linguistics",
]

DEFAULT_TERMS = TermTables(
    stopwords=STOPWORDS,
    synonyms=SYNONYMS,
    mesh_headings=MESH_HEADINGS,
    domains=DOMAINS,
    intents=INTENTS,
    general_medical_terms=GENERAL_MEDICAL_TERMS,
    non_medical_terms=NON_MEDICAL_TERMS,
)
