"""
Prompt Loader for MILO
System prompts live as versioned template files under prompts/<version>/
and are rendered through one function instead of being pasted per call site.
"""
import logging
import os
from datetime import date
from typing import Dict, List, Optional

from milo.config import settings

logger = logging.getLogger(__name__)

PROMPTS_DIR = os.path.join(os.path.dirname(__file__), 'prompts')

PATIENT_PROMPT = 'system_patient'
GENERAL_PROMPT = 'system_general'
LAB_PROTOCOL_PROMPT = 'lab_protocol'


class PromptNotFoundError(LookupError):
    """Raised when a template file is missing for the configured version"""


def load_prompt_file(name: str, version: Optional[str] = None) -> str:
    """Load a single prompt template"""
    version = version or settings.PROMPT_VERSION
    filepath = os.path.join(PROMPTS_DIR, version, f'{name}.md')
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            return f.read().strip()
    except OSError as e:
        logger.error(f"Error loading prompt {version}/{name}: {e}")
        raise PromptNotFoundError(f"{version}/{name}") from e


def render_prompt(name: str, version: Optional[str] = None, **context) -> str:
    """Interpolate a template with str.format placeholders"""
    return load_prompt_file(name, version).format(**context)


def format_today(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{today:%B} {today.day}, {today.year}"


def build_system_prompt(
    patient_name: Optional[str] = None,
    patient_gender: Optional[str] = None,
    today: Optional[date] = None
) -> str:
    """
    Build the system instruction for a chat turn

    Args:
        patient_name: Selected patient, None when no patient is selected
        patient_gender: Recorded sex of the patient, may be absent
        today: Date stamped into the prompt (defaults to today)

    Returns:
        System prompt text
    """
    if patient_name:
        return render_prompt(
            PATIENT_PROMPT,
            patient_name=patient_name,
            patient_gender=patient_gender or "not recorded",
            today=format_today(today)
        )
    return render_prompt(GENERAL_PROMPT, today=format_today(today))


def build_chat_messages(
    system_prompt: str,
    history: List[Dict[str, str]],
    new_text: str
) -> List[Dict[str, str]]:
    """System prompt + full rolling history + the newest user message, untouched"""
    return (
        [{"role": "system", "content": system_prompt}]
        + [{"role": msg["role"], "content": msg["content"]} for msg in history]
        + [{"role": "user", "content": new_text}]
    )
