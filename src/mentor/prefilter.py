"""
Deterministic safety pre-filters.

- prefilter_question: harmful/illegal-intent scan of a learner question,
  run before any embedding or model call.
- is_allowed_learning_domain: wider scan of a syllabus goal, run before
  syllabus generation.

Both are case-insensitive substring matches and intentionally coarse: a
false positive costs one refused question, a false negative costs a model
call on harmful content. Callers never surface which term matched.
"""

from __future__ import annotations

HARMFUL_KEYWORDS: tuple[str, ...] = (
    # Hacking and unauthorized access
    "hack", "hacking", "crack", "cracking", "breach", "unauthorized access",
    "bypass security", "exploit", "vulnerability", "sql injection", "xss",
    "ddos", "malware", "virus", "trojan", "ransomware",
    # Spying and surveillance
    "spy", "spying", "surveillance", "eavesdrop", "wiretap", "monitor without",
    "track someone", "stalk", "stalking",
    # Illegal access and data theft
    "steal data", "data theft", "identity theft", "phishing", "social engineering",
    "unauthorized entry", "break into", "illegal access", "unauthorized login",
    "password crack", "credential theft",
    # Violence
    "kill", "murder", "assassinate", "harm", "violence", "weapon", "bomb",
    "threaten", "threat", "attack", "assault",
    # Explicit wrongdoing
    "illegal", "unlawful", "criminal", "fraud", "scam", "cheat", "deceive",
    "manipulate", "blackmail", "extort",
)

UNSAFE_DOMAIN_KEYWORDS: tuple[str, ...] = HARMFUL_KEYWORDS + (
    # Security tradecraft
    "penetration testing", "ethical hacking", "white hat", "black hat", "gray hat",
    # Crime
    "crime", "felony", "misdemeanor", "theft", "robbery", "burglary",
    "embezzlement", "money laundering", "counterfeit", "forgery",
    # Espionage
    "espionage", "intelligence gathering", "covert", "undercover",
    # Weapons
    "weapons", "gun", "firearm", "explosive", "ammunition", "knife fighting",
    "combat training", "martial arts for violence",
    # Drugs
    "drug", "cocaine", "heroin", "methamphetamine", "marijuana",
    "cannabis cultivation", "illegal substance", "controlled substance",
    # Privacy violations
    "spyware", "keylogger", "tracking without consent", "unauthorized monitoring",
    "privacy violation",
)


def _first_match(text: str, keywords: tuple[str, ...]) -> str | None:
    lowered = text.lower()
    for keyword in keywords:
        if keyword in lowered:
            return keyword
    return None


def prefilter_question(question: str) -> bool:
    """True if the question contains a harmful-intent term."""
    if not question:
        return False
    return _first_match(question, HARMFUL_KEYWORDS) is not None


def is_allowed_learning_domain(goal: str) -> bool:
    """False if the learning goal is blank or contains an unsafe-domain term."""
    if not goal or not goal.strip():
        return False
    return _first_match(goal, UNSAFE_DOMAIN_KEYWORDS) is None
