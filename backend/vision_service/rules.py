"""
Post-processing rules for Gemini image descriptions.

Descriptions must not mention facial or ethnic attributes, and the subject
must be tagged with the "(gambar referensi)" marker so the generator treats
the uploaded photo as the reference.
"""

import re

REFERENCE_MARKER = "(gambar referensi)"

# Appearance attributes that must never reach the client.
BANNED_TERMS = [
    "etnis",
    "ras",
    "rambut",
    "kumis",
    "jenggot",
    "janggut",
    "brewok",
    "alis",
    "bulu mata",
    "warna kulit",
    "kulit hitam",
    "kulit putih",
]

# Longest terms first so multi-word phrases win over their parts.
BANNED_PATTERN = re.compile(
    r"\b(?:"
    + "|".join(re.escape(term) for term in sorted(BANNED_TERMS, key=len, reverse=True))
    + r")\b",
    re.IGNORECASE,
)

SUBJECT_PATTERN = re.compile(r"^(seorang|seekor|seseorang|sekelompok)\s+(\w+)", re.IGNORECASE)


def redact_banned_terms(text: str) -> str:
    """Remove whole-word, case-insensitive occurrences of every banned term."""
    return BANNED_PATTERN.sub("", text)


def annotate_reference(text: str) -> str:
    """
    Make sure the reference marker is present.

    When the text opens with a subject phrase ("Seorang pria", "Sekelompok
    anak", ...) the marker goes right after it; otherwise it is prepended.
    """
    if REFERENCE_MARKER in text:
        return text

    match = SUBJECT_PATTERN.match(text)
    if match:
        end = match.end()
        return f'{text[:end]} "{REFERENCE_MARKER}"{text[end:]}'
    return f"{REFERENCE_MARKER} {text}"


def enforce_rules(text: str) -> str:
    """
    Apply redaction, then annotation, to a raw description.

    Args:
        text (str): Description returned by the vision model.

    Returns:
        str: The sanitized description. Never raises.
    """
    return annotate_reference(redact_banned_terms(text))
