"""
Chat API Routes - thin proxy to the generation service
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from milo.api.dependencies import get_generation_service
from milo.config import settings
from milo.prompt_loader import LAB_PROTOCOL_PROMPT, render_prompt
from milo.schemas.chat import ChatCompletionRequest, LabAnalysisRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/milo")
def milo_chat(
    data: ChatCompletionRequest,
    service=Depends(get_generation_service)
):
    """
    Forward a full conversation (system prompt included) and return the reply
    """
    if not data.model or not data.messages:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing model or messages."
        )

    reply = service.generate(
        [message.model_dump() for message in data.messages],
        model=data.model,
        temperature=data.temperature
    )
    return {"message": reply}


@router.post("/lab-analysis")
def analyze_lab_text(
    data: LabAnalysisRequest,
    service=Depends(get_generation_service)
):
    """
    Analyze raw lab text with the fixed protocol instruction
    """
    if not data.labText or not data.labText.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing labText in request."
        )

    reply = service.generate(
        [
            {"role": "system", "content": render_prompt(LAB_PROTOCOL_PROMPT)},
            {"role": "user", "content": data.labText}
        ],
        model=settings.LAB_ANALYSIS_MODEL,
        temperature=settings.DEFAULT_TEMPERATURE
    )
    return {"result": reply}
