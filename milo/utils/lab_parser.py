"""
Regex extraction of hormone readings from free lab-report text

Lab report layouts vary wildly between providers, so this is purely
lexical: no units, no range checks, no layout analysis.
"""
import logging
import re
from typing import Dict

logger = logging.getLogger(__name__)

# Grouped thousands (1,200) or a plain reading (6.8)
_NUMBER = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"

# Newlines always split; periods and commas split unless they sit
# between two digits (decimal points, thousands separators)
_FIELD_SEPARATOR = re.compile(r"\n|(?<!\d)[.,]|[.,](?!\d)")

LAB_PATTERNS = {
    "estradiol": re.compile(r"estradiol(?:[\s-]*\(?e2\)?)?\D*" + _NUMBER),
    "progesterone": re.compile(r"progesterone\D*" + _NUMBER),
    "dhea": re.compile(r"\bdhea\D*" + _NUMBER),
    "free_t3": re.compile(r"(?:free[\s-]?(?:t3|triiodothyronine)|\bt3[\s-]+free)\D*" + _NUMBER),
    "tsh": re.compile(r"\btsh\b\D*" + _NUMBER),
    "free_t4": re.compile(r"(?:free[\s-]?(?:t4|thyroxine)|\bt4[\s-]+free)\D*" + _NUMBER),
    "total_testosterone": re.compile(
        r"(?:total[\s-]+testosterone|testosterone[\s(-]*total)\D*" + _NUMBER
    ),
    "free_testosterone": re.compile(
        r"(?:free[\s-]+testosterone|testosterone[\s(-]*free)\D*" + _NUMBER
    ),
    "psa": re.compile(r"\bpsa\b\D*" + _NUMBER),
    "vitamin_d": re.compile(
        r"vitamin[\s-]?d3?\b(?:[\s(-]*25[\s-]*(?:oh|hydroxy)\)?)?\D*" + _NUMBER
    ),
    "igf_1": re.compile(r"\bigf[\s-]?(?:1|i)\b\D*" + _NUMBER),
}


def split_fields(text: str):
    """Lower-case the text and cut it into candidate lines/fields"""
    return _FIELD_SEPARATOR.split(text.lower())


def extract_lab_values(text: str) -> Dict[str, float]:
    """
    Find hormone readings in free text.

    Every field is tested against every pattern. The first reading seen
    for a key is kept; later mentions of the same marker are ignored.
    Markers that never appear are simply absent from the result.

    Args:
        text: Extracted report text or a chat message

    Returns:
        Dict of hormone key -> reading, e.g. {"estradiol": 41.0}
    """
    labs: Dict[str, float] = {}
    if not text:
        return labs

    for line in split_fields(text):
        for key, pattern in LAB_PATTERNS.items():
            if key in labs:
                continue
            match = pattern.search(line)
            if match:
                labs[key] = float(match.group(1).replace(",", ""))

    if labs:
        logger.info(f"Extracted lab values: {labs}")
    return labs
