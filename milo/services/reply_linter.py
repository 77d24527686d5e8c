"""
Post-reply checks for known failure patterns in generated lab guidance.
Findings are logged only; the reply is never changed or blocked.
"""
import logging
import re
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

FREE_T_LIMIT = 200.0

_HEADING = re.compile(r"^\s*\*\*(.+?)\*\*\s*:?\s*$", re.MULTILINE)
_FREE_T_VALUE = re.compile(r"free testosterone\D{0,40}?(\d+(?:\.\d+)?)\s*pg/ml")
_REDUCTION_WORDS = re.compile(r"\b(reduc\w*|decreas\w*|lower\w*|reassess\w*)\b")
_ESCALATE_WORDS = re.compile(r"\b(start|begin|initiate|increase)\b")
_DEESCALATE_WORDS = re.compile(r"\b(reduce|decrease|lower|hold|discontinue|stop)\b")
_SUBHEADINGS = {"clinical plan", "plan summary"}


@dataclass
class LintFinding:
    """One suspicious pattern in a reply"""
    rule: str
    message: str


def _hormone_sections(text: str):
    """Yield (heading, body) for each bold section, skipping plan sub-headings"""
    matches = [m for m in _HEADING.finditer(text) if m.group(1).strip().lower() not in _SUBHEADINGS]
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        yield match.group(1).strip(), text[match.end():end]


def lint_reply(reply: str) -> List[LintFinding]:
    """
    Check a generated reply against the guardrail rules

    Args:
        reply: Assistant reply text

    Returns:
        List of findings (empty when nothing looks wrong)
    """
    findings = []
    lowered = reply.lower()

    for match in _FREE_T_VALUE.finditer(lowered):
        value = float(match.group(1))
        if value > FREE_T_LIMIT and not _REDUCTION_WORDS.search(lowered):
            findings.append(LintFinding(
                "free_testosterone_without_reduction",
                f"Free testosterone {value:g} pg/mL is above {FREE_T_LIMIT:g} but no reduction was recommended"
            ))
            break

    if "normal range" in lowered:
        findings.append(LintFinding("banned_phrase", 'Reply uses the phrase "normal range"'))

    seen = set()
    for heading, body in _hormone_sections(reply):
        key = heading.lower()
        if key in seen:
            findings.append(LintFinding("duplicate_section", f"Section '{heading}' appears more than once"))
        seen.add(key)

        body_lower = body.lower()
        if _ESCALATE_WORDS.search(body_lower) and _DEESCALATE_WORDS.search(body_lower):
            findings.append(LintFinding(
                "conflicting_recommendation",
                f"Section '{heading}' recommends both escalating and de-escalating therapy"
            ))

    for finding in findings:
        logger.warning(f"Reply lint [{finding.rule}]: {finding.message}")

    return findings
