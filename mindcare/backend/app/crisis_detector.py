from __future__ import annotations

import re
from typing import List

EXPLICIT_PATTERNS = [
    r"\b(kill|killing) myself\b",
    r"\bsuicid(e|al)\b",
    r"\bend (my|this) life\b",
    r"\btake my (own )?life\b",
    r"\bwant(ed)? to die\b",
    r"\bdon'?t want to (live|be alive)\b",
    r"\bbetter off dead\b",
    r"\b(hurt|harm|cut) myself\b",
    r"\bself[- ]?harm\b",
    r"\boverdose\b",
    r"\bno reason to live\b",
]

DISTRESS_TERMS = [
    "hopeless",
    "worthless",
    "can't go on",
    "no way out",
    "give up on everything",
    "nobody would care",
]


def normalize_message(message: str) -> str:
    text = (message or "").lower()
    text = text.replace("’", "'").replace("‘", "'")
    return re.sub(r"\s+", " ", text).strip()


def _matches(text: str, patterns: List[str]) -> List[str]:
    found: List[str] = []
    for pattern in patterns:
        match = re.search(pattern, text)
        if match:
            found.append(match.group(0))
    return found


def scan_message(message: str) -> dict:
    """Screen a chat message for self-harm language before it is relayed.

    Explicit self-harm language is a crisis and the client should move to the
    crisis screen. Distress terms on their own only flag the message.
    """
    text = normalize_message(message)
    explicit = _matches(text, EXPLICIT_PATTERNS)
    if explicit:
        return {
            "is_crisis": True,
            "level": "high",
            "matched_terms": list(dict.fromkeys(explicit)),
        }
    distress = [term for term in DISTRESS_TERMS if term in text]
    return {
        "is_crisis": False,
        "level": "elevated" if distress else "none",
        "matched_terms": distress,
    }
