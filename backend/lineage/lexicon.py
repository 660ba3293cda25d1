"""
Fixed Vocabularies
==================

Closed word lists used by the preprocessor and the similarity axes.
Pure data, no algorithms.
"""

from typing import Dict, FrozenSet, List, Tuple


STOP_WORDS: FrozenSet[str] = frozenset({
    'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with',
    'by', 'from', 'up', 'about', 'into', 'through', 'during', 'before',
    'after', 'above', 'below', 'between', 'among', 'this', 'that', 'these',
    'those', 'is', 'are', 'was', 'were', 'be', 'been', 'being', 'have',
    'has', 'had', 'do', 'does', 'did', 'will', 'would', 'could', 'should',
    'may', 'might', 'must', 'can', 'shall', 'a', 'an', 'as', 'if', 'when',
    'where', 'why', 'how', 'what', 'who', 'which', 'whom', 'whose',
})


GENERAL_DOMAIN = "general"

# Declaration order is the tie-break order for domain detection.
DOMAIN_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "medical": (
        'cure', 'treatment', 'vaccine', 'medicine', 'doctor', 'hospital', 'health',
        'disease', 'symptom', 'therapy', 'drug', 'clinical', 'patient', 'diagnosis',
    ),
    "disaster": (
        'flood', 'earthquake', 'emergency', 'evacuation', 'disaster', 'crisis', 'rescue',
        'damage', 'victim', 'relief', 'warning', 'alert', 'safety',
    ),
    "financial": (
        'scam', 'money', 'investment', 'fraud', 'bank', 'payment', 'crypto', 'bitcoin',
        'profit', 'scheme', 'return', 'interest',
    ),
    "political": (
        'government', 'election', 'vote', 'policy', 'politician', 'party', 'democracy',
        'candidate', 'campaign', 'ballot',
    ),
}

DOMAIN_SYNONYMS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "medical": {
        'cure': ('treatment', 'remedy', 'healing', 'medicine'),
        'doctor': ('physician', 'medic', 'practitioner', 'specialist'),
        'medicine': ('drug', 'medication', 'pharmaceutical', 'remedy'),
        'disease': ('illness', 'condition', 'disorder', 'ailment'),
    },
    "disaster": {
        'flood': ('flooding', 'deluge', 'inundation', 'overflow'),
        'emergency': ('crisis', 'urgent', 'critical', 'alarm'),
        'disaster': ('catastrophe', 'calamity', 'tragedy', 'crisis'),
        'evacuation': ('relocation', 'removal', 'exodus', 'withdrawal'),
    },
    "financial": {
        'scam': ('fraud', 'scheme', 'con', 'swindle'),
        'money': ('cash', 'funds', 'currency', 'capital'),
        'investment': ('funding', 'capital', 'stake', 'venture'),
        'profit': ('return', 'gain', 'earnings', 'income'),
    },
    "political": {
        'government': ('administration', 'authority', 'state', 'regime'),
        'politician': ('leader', 'official', 'representative', 'candidate'),
        'election': ('vote', 'ballot', 'poll', 'campaign'),
        'policy': ('law', 'regulation', 'rule', 'guideline'),
    },
}

# Symmetric relation: agreement between related domains counts half.
RELATED_DOMAINS: FrozenSet[FrozenSet[str]] = frozenset({
    frozenset({"medical", "disaster"}),
    frozenset({"financial", "political"}),
})


# =============================================================================
# ENTITY GAZETTEERS
# =============================================================================

LOCATIONS: Tuple[str, ...] = (
    # Cities
    'Mumbai', 'Delhi', 'Bangalore', 'Chennai', 'Kolkata', 'Hyderabad', 'Pune',
    'Ahmedabad', 'Jaipur', 'Lucknow',
    # Countries
    'India', 'Pakistan', 'Bangladesh', 'China', 'USA', 'UK', 'Canada', 'Australia',
    # Continents
    'Asia', 'Europe', 'America', 'Africa', 'Antarctica',
)

# Matched case-sensitively so "who" never reads as WHO.
ORGANIZATION_ACRONYMS: Tuple[str, ...] = (
    'WHO', 'CDC', 'FDA', 'NASA', 'FBI', 'CIA', 'UN', 'EU', 'NATO',
)

ORGANIZATION_NAMES: Tuple[str, ...] = (
    'Google', 'Facebook', 'Twitter', 'Microsoft', 'Apple', 'Amazon',
    'Government', 'Ministry', 'Department', 'Agency', 'Bureau',
)


# =============================================================================
# TONE AND INTENT
# =============================================================================

EMOTIONAL_WORDS: Dict[str, Tuple[str, ...]] = {
    "positive": ('good', 'great', 'excellent', 'amazing', 'wonderful', 'fantastic'),
    "negative": ('bad', 'terrible', 'awful', 'horrible', 'dangerous', 'scary'),
    "urgent": ('urgent', 'emergency', 'critical', 'immediate', 'now', 'quickly'),
    "fear": ('fear', 'afraid', 'scared', 'terrified', 'panic', 'worried'),
}

URGENCY_INDICATORS: Tuple[str, ...] = (
    'urgent', 'emergency', 'critical', 'immediate', 'breaking', 'alert',
    'warning', 'now', 'quickly', 'asap',
)

# Single words match whole tokens; entries with spaces or punctuation match
# as substrings of the lowercased text.
INTENT_PATTERNS: Dict[str, Tuple[str, ...]] = {
    "warning": ('warning', 'beware', 'caution', 'danger', 'avoid', "don't"),
    "information": ('according', 'report', 'study', 'research', 'data', 'statistics'),
    "instruction": ('should', 'must', 'need to', 'have to', 'follow', 'do this'),
    "question": ('?', 'what', 'how', 'why', 'when', 'where', 'who'),
}

# Words whose addition marks emotional amplification between two versions.
INTENSIFIERS: Tuple[str, ...] = (
    'urgent', 'critical', 'dangerous', 'shocking', 'breaking',
)


def synonyms_for(domains: List[str]) -> Dict[str, FrozenSet[str]]:
    """Merge the synonym tables of the given domains into word -> synonyms."""
    merged: Dict[str, set] = {}
    for domain in domains:
        for word, syns in DOMAIN_SYNONYMS.get(domain, {}).items():
            merged.setdefault(word, set()).update(syns)
    return {word: frozenset(syns) for word, syns in merged.items()}
