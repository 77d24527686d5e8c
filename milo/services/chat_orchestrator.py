"""
Chat Orchestrator - one controller owning the conversation state

Sequence per turn: user text -> system prompt -> generation service ->
reply -> lint -> lab values extracted from the user text are appended to
the selected patient's history.
"""
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from milo.config import FALLBACK_REPLY, PERSISTENCE_ALERT, settings
from milo.prompt_loader import build_chat_messages, build_system_prompt
from milo.services.generation_service import generation_service
from milo.services.patient_service import PatientNotFoundError, append_lab_entry
from milo.services.reply_linter import LintFinding, lint_reply
from milo.utils.lab_parser import extract_lab_values

logger = logging.getLogger(__name__)

TABS = ("ask", "lab")


class ChatState(str, Enum):
    IDLE = "idle"
    COMPOSING = "composing"
    AWAITING_REPLY = "awaiting_reply"
    DELIVERED = "delivered"
    FAILED = "failed"


class SessionNotFoundError(LookupError):
    """No chat session with the given id"""


@dataclass
class ChatMessage:
    sender: str  # 'user' or 'assistant'
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"sender": self.sender, "text": self.text}


@dataclass
class ChatSession:
    """
    Application state for one clinician session: the selected patient
    and an in-memory transcript per tab. Nothing here is persisted.
    """
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    patient_gender: Optional[str] = None
    transcripts: Dict[str, List[ChatMessage]] = field(
        default_factory=lambda: {tab: [] for tab in TABS}
    )
    states: Dict[str, ChatState] = field(
        default_factory=lambda: {tab: ChatState.IDLE for tab in TABS}
    )

    def select_patient(self, patient=None) -> None:
        """Switch patient (or clear it); both transcripts start over"""
        self.patient_id = patient.id if patient else None
        self.patient_name = patient.name if patient else None
        self.patient_gender = patient.gender if patient else None
        for tab in TABS:
            self.transcripts[tab] = []
            self.states[tab] = ChatState.IDLE

    def history(self, tab: str) -> List[Dict[str, str]]:
        """Transcript as generation-service messages"""
        return [
            {"role": "user" if msg.sender == "user" else "assistant", "content": msg.text}
            for msg in self.transcripts[tab]
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "patientName": self.patient_name,
            "states": {tab: state.value for tab, state in self.states.items()},
            "transcripts": {
                tab: [msg.to_dict() for msg in messages]
                for tab, messages in self.transcripts.items()
            }
        }


@dataclass
class ChatTurn:
    """Outcome of one submitted message"""
    tab: str
    state: ChatState
    reply: str
    lab_values: Dict[str, float] = field(default_factory=dict)
    lab_entry: Optional[Dict[str, Any]] = None
    findings: List[LintFinding] = field(default_factory=list)
    alert: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tab": self.tab,
            "state": self.state.value,
            "reply": self.reply,
            "labValues": self.lab_values,
            "labEntry": self.lab_entry,
            "findings": [{"rule": f.rule, "message": f.message} for f in self.findings],
            "alert": self.alert
        }


class SessionRegistry:
    """In-memory sessions, gone when the process exits"""

    def __init__(self):
        self._sessions: Dict[str, ChatSession] = {}

    def create(self) -> ChatSession:
        session = ChatSession()
        self._sessions[session.id] = session
        logger.info(f"Chat session {session.id} started")
        return session

    def get(self, session_id: str) -> ChatSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None

    def clear(self) -> None:
        self._sessions.clear()


class ChatOrchestrator:
    """Drives a tab through idle -> composing -> awaiting_reply -> delivered|failed"""

    def __init__(self, generator=None):
        self.generator = generator or generation_service

    def send_message(
        self,
        session: ChatSession,
        text: str,
        tab: str = "ask",
        db: Optional[Session] = None,
        file_ref: Optional[str] = None,
        is_primary: bool = True,
        idempotency_key: Optional[str] = None
    ) -> Optional[ChatTurn]:
        """
        Submit one message on a tab

        Args:
            session: Session holding the transcript and selected patient
            text: User message (or cleaned document text)
            tab: 'ask' or 'lab'
            db: Session for persisting lab entries (skipped when None)
            file_ref: Uploaded file name, stored with the lab entry
            is_primary: Primary bloodwork vs. context-only upload
            idempotency_key: Replays with the same key append nothing new

        Returns:
            ChatTurn, or None for blank input
        """
        if tab not in TABS:
            raise ValueError(f"Unknown tab '{tab}'")

        text = (text or "").strip()
        if not text:
            return None

        # Template errors surface before the tab leaves idle
        system_prompt = build_system_prompt(session.patient_name, session.patient_gender)

        session.states[tab] = ChatState.COMPOSING
        messages = build_chat_messages(system_prompt, session.history(tab), text)

        # Optimistic update: the user sees their message before the reply
        session.transcripts[tab].append(ChatMessage("user", text))
        session.states[tab] = ChatState.AWAITING_REPLY

        try:
            reply = self.generator.generate(
                messages,
                model=settings.LLM_MODEL,
                temperature=settings.DEFAULT_TEMPERATURE
            )
        except Exception as e:
            logger.error(f"Generation failed on session {session.id}/{tab}: {e}")
            session.transcripts[tab].append(ChatMessage("assistant", FALLBACK_REPLY))
            session.states[tab] = ChatState.FAILED
            return ChatTurn(tab=tab, state=ChatState.FAILED, reply=FALLBACK_REPLY)

        session.transcripts[tab].append(ChatMessage("assistant", reply))
        session.states[tab] = ChatState.DELIVERED

        turn = ChatTurn(tab=tab, state=ChatState.DELIVERED, reply=reply)
        turn.findings = lint_reply(reply)
        # Context-only uploads (old labs, meds) are kept as text, never as readings
        turn.lab_values = extract_lab_values(text) if is_primary else {}
        context_upload = bool(file_ref) and not is_primary

        if (turn.lab_values or context_upload) and session.patient_id and db is not None:
            try:
                entry = append_lab_entry(
                    db,
                    session.patient_id,
                    turn.lab_values,
                    recommendation=reply,
                    file_ref=file_ref,
                    raw_text=text if file_ref else None,
                    is_primary=is_primary,
                    idempotency_key=idempotency_key or uuid.uuid4().hex
                )
                turn.lab_entry = entry.to_dict()
            except (SQLAlchemyError, PatientNotFoundError) as e:
                logger.error(f"Failed to save lab entry for patient {session.patient_id}: {e}")
                turn.alert = PERSISTENCE_ALERT

        return turn


# Singleton instances
session_registry = SessionRegistry()
chat_orchestrator = ChatOrchestrator()
