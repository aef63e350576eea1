"""
Masks likely secrets in rendered YAML text.

This is a line-oriented heuristic: keys that merely contain one of the words
are masked too, and values spanning several lines are not.
"""
import re

REDACTED = "***REDACTED***"

_VALUE = r"\s*[:=]\s*[\"']?([^\"'\n]+)[\"']?"

SENSITIVE_PATTERNS = [
    re.compile(word + _VALUE, re.IGNORECASE)
    for word in (
        r"password",
        r"secret",
        r"(?:api|auth)[_-]?key",
        r"token",
        r"access[_-]?key",
        r"private[_-]?key",
    )
]


def _mask(match: re.Match) -> str:
    text = match.group(0)
    start = match.start(1) - match.start(0)
    end = match.end(1) - match.start(0)
    return text[:start] + REDACTED + text[end:]


def redact_sensitive_data(yaml_text: str) -> str:
    """
    Replaces the value after each sensitive key with a fixed mask.

    :param yaml_text: Rendered compose YAML.
    :return: The text with captured values masked; everything else unchanged.
    """
    redacted = yaml_text
    for pattern in SENSITIVE_PATTERNS:
        redacted = pattern.sub(_mask, redacted)
    return redacted
