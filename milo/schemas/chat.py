"""
Chat Schemas
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class ChatMessageIn(BaseModel):
    """One chat-completion style message"""
    role: Literal["system", "user", "assistant"]
    content: str


class ChatCompletionRequest(BaseModel):
    """Proxy request: the caller supplies the whole conversation"""
    model: Optional[str] = None
    messages: Optional[List[ChatMessageIn]] = None
    temperature: Optional[float] = Field(None, ge=0, le=1)


class LabAnalysisRequest(BaseModel):
    """Raw lab text to analyze with the fixed protocol prompt"""
    labText: Optional[str] = None


class SessionMessageCreate(BaseModel):
    """Message submitted on a session tab"""
    text: str = Field(..., max_length=20000)
    tab: Literal["ask", "lab"] = "ask"


class SessionPatientSelect(BaseModel):
    """Select (or clear, with null) the session's patient"""
    patientId: Optional[str] = None
