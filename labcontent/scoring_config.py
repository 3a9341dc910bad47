"""
Fixed heuristics for record reconciliation, enrichment and labeling
"""

# Completeness score weights (duplicate tie-break only)
COMPLETENESS_WEIGHTS = {
    "per_author": 10,
    "awards": 50,
    "doi": 30,
    "conference": 20,
    "journal": 15,
    "pages": 10,
    "specific_type": 10,   # type present and not the generic "award" bucket
    "year": 5,
}

GENERIC_AWARD_TYPE = "award"

# Identity resolution
TITLE_MATCH_CONFIG = {
    "compare_prefix": 20,   # prefix of one key searched inside the other
    "min_key_length": 5,    # shorter keys never match anything
}

# DOI lookup by title
DOI_MATCH_CONFIG = {
    "similarity_threshold": 0.7,
    "min_word_length": 3,       # words shorter than this are ignored
    "search_rows": 3,
    "year_window": 1,
    "max_query_length": 200,
}

# Japanese venue markers; such records rarely have CrossRef DOIs
JAPANESE_VENUE_PATTERNS = [
    "学会", "大会", "研究会", "シンポジウム", "講演", "発表",
    "日本", "電子情報通信", "計測自動制御", "機械学会",
]

JAPANESE_RATIO_THRESHOLD = 0.3

# DOI lookup by first-author surname + journal, for Japanese-venue journal papers
JOURNAL_MATCH_CONFIG = {
    "author_share_threshold": 0.5,   # matched surnames / max(local, candidate) author count
    "search_rows": 10,
    "default_terms": "IEEJ",
}

# Japanese journal name fragment -> English container-title query
JAPANESE_JOURNAL_NAMES = {
    "電気学会論文誌": "IEEJ Transactions",
    "電子情報システム部門": "Electronics Information Systems",
    "生体医工学": "Biomedical Engineering",
    "バイオメディカル": "Biomedical",
}

# Legacy site sections: batch categories -> expected record type and language tag
VERIFY_SECTIONS = {
    "jp-papers": {"header": "原著論文（和文）", "categories": ["original_ja"], "type": "journal", "tag": "japanese"},
    "en-papers": {"header": "原著論文（英文）", "categories": ["original_en"], "type": "journal", "tag": "english"},
    "jp-reviews": {"header": "総説（和文）", "categories": ["review"], "type": "review", "tag": "japanese"},
    "en-reviews": {"header": "総説（英文）", "categories": ["review"], "type": "review", "tag": "english"},
    "jp-books": {"header": "著書（和文）", "categories": ["book"], "type": "book", "tag": "japanese"},
    "en-books": {"header": "著書（英文）", "categories": ["book"], "type": "book", "tag": "english"},
    "conference": {"header": "査読付き会議論文", "categories": ["conference"], "type": "conference"},
    "presentations": {"header": "学会発表等", "categories": ["oral", "seminars"], "type": "presentation"},
    "awards": {"header": "受賞", "categories": ["award"], "type": "award"},
    "grants": {"header": "外部資金", "categories": ["grant"], "type": "grant"},
    "theses": {"header": "学位論文", "categories": ["thesis"], "type": "thesis"},
}

# Abstract providers, tried in this order
ABSTRACT_PROVIDER_ORDER = ["openalex", "semantic_scholar", "crossref", "pubmed"]

# Embedding labels
LABEL_CONFIG = {
    "min_threshold": 0.50,
    "second_place_gap": 0.05,
}

SEARCH_CONFIG = {
    "semantic_threshold": 0.3,
    "keyword_weight": 0.8,
}

CLUSTER_CONFIG = {
    "num_clusters": 12,
    "max_iterations": 100,
}

# Valid year window for converted records
YEAR_RANGE = (1990, 2030)
VALIDATION_YEAR_RANGE = (1950, 2030)

# Author cleanup
AUTHOR_TYPO_FIXES = {
    "Hirokzau Takahashi": "Hirokazu Takahashi",
    "Hirokazu Takahashia": "Hirokazu Takahashi",
    "Hirokazu Takahshi": "Hirokazu Takahashi",
    "A. Hierlemman": "A. Hierlemann",
    "Andreas Hierlemman": "Andreas Hierlemann",
    "Douglas Ballum": "Douglas Bakkum",
    "高橋　宏知": "高橋宏知",
    "高橋 宏知": "高橋宏知",
    "神崎 亮平": "神崎亮平",
    "李 婷玉": "李婷玉",
    "森 叶人": "森叶人",
    "畑村洋太郎 (編著)": "畑村洋太郎",
}

# Grant roles and editor marks appended to names
AUTHOR_ROLE_SUFFIXES = [
    "代表者", "分担者", "研究分担者", "分担研究者", "課題推進者", "実際の設計研究会", "編著",
]

# Entries scraped into author lists that are not people (case-sensitive unless listed below)
NOT_AUTHOR_PATTERNS = [
    r"^「", r"^>-?$", r"受賞$", r"^BBC ", r"^週刊", r"^本よみうり", r"^東大　", r"^東大他$",
    r"^東大最前線", r"^東京大学医学部", r"^計算機に", r"^RIKEN$",
    r"^Neuroscience Research Collaboration", r"^Excellence in ", r"^IEEE ",
    r"^The \d+(st|nd|rd|th) Prize", r"Award$", r"Award\)", r"^平成\d+年", r"優秀論文", r"奨励賞",
]

NOT_AUTHOR_PATTERNS_IGNORECASE = [
    r"^News\d+", r"^Keynote", r"^Brain keynote", r"keynote lecture", r"^Invited",
    r"special invited", r"Competition", r"^Young Investigator",
]

# Short topic descriptions embedded once and compared against each record
LABEL_TOPICS = {
    "model": {
        "rat": "rat rodent auditory cortex",
        "human": "human patient EEG",
        "culture": "neuronal culture dissociated neurons",
        "insect": "insect silkmoth",
        "computational": "computational model simulation",
    },
    "technique": {
        "probe-invivo": "utah array neuropixels silicon probe",
        "mea-culture": "CMOS MEA microelectrode array",
        "ecog": "ECoG electrocorticography",
        "scalp-eeg": "scalp EEG",
        "lfp": "local field potential",
        "spike": "spike sorting action potential",
        "imaging": "calcium imaging two-photon",
        "optogenetics": "optogenetics channelrhodopsin",
        "electrical-stim": "vagus nerve stimulation electrical",
        "behavior": "behavioral task operant",
    },
    "domain": {
        "auditory": "auditory cortex hearing",
        "mismatch-negativity": "mismatch negativity MMN",
        "predictive-coding": "deviance detection prediction error",
        "speech": "speech larynx voice",
        "seizure": "seizure epilepsy",
        "music": "music rhythm beat",
        "plasticity": "synaptic plasticity learning",
        "reservoir-computing": "reservoir computing",
        "bmi": "brain machine interface",
    },
}

CLUSTER_STOPWORDS = {
    "the", "a", "an", "of", "in", "on", "for", "and", "to", "with", "by", "at", "from", "as",
    "is", "are", "was", "were", "be", "been", "being", "that", "this", "it", "its", "or", "but",
    "not", "no", "can", "will", "do", "did", "has", "have", "had", "may", "might", "must",
    "shall", "should", "would", "could", "using", "based", "study", "analysis", "effect",
    "effects", "new", "novel", "method", "approach", "system", "model", "data", "results",
    "during", "between", "through", "into", "about", "over", "under", "after", "before",
}
