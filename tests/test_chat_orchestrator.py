"""
Tests for the chat session state machine
"""
import pytest

from milo.config import FALLBACK_REPLY, PERSISTENCE_ALERT, settings
from milo.models import LabEntry
from milo.prompt_loader import PromptNotFoundError
from milo.services import patient_service
from milo.services.chat_orchestrator import (
    ChatOrchestrator,
    ChatSession,
    ChatState,
    SessionNotFoundError,
    SessionRegistry,
)


class RecordingGenerator:
    """Generation stub that can look at the session mid-flight"""

    def __init__(self, reply="**Estradiol**\nIncrease estradiol patch to 0.1 mg.", error=None, on_call=None):
        self.reply = reply
        self.error = error
        self.on_call = on_call
        self.calls = []

    def generate(self, messages, model=None, temperature=None, max_tokens=None):
        self.calls.append(messages)
        if self.on_call:
            self.on_call()
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def patient(db_session):
    return patient_service.create_patient(db_session, "Jane Doe", gender="female")


@pytest.fixture
def session(patient):
    chat = ChatSession()
    chat.select_patient(patient)
    return chat


def test_delivered_turn(session, db_session):
    generator = RecordingGenerator()
    turn = ChatOrchestrator(generator).send_message(session, "Estradiol 41 pg/mL", tab="lab", db=db_session)

    assert turn.state == ChatState.DELIVERED
    assert turn.reply == generator.reply
    assert turn.lab_values == {"estradiol": 41.0}
    assert turn.lab_entry["values"] == {"estradiol": 41.0}
    assert turn.lab_entry["recommendation"] == generator.reply
    assert turn.alert is None
    assert session.states["lab"] == ChatState.DELIVERED
    assert [m.sender for m in session.transcripts["lab"]] == ["user", "assistant"]
    assert session.transcripts["ask"] == []


def test_system_prompt_names_selected_patient(session):
    generator = RecordingGenerator()
    ChatOrchestrator(generator).send_message(session, "How is her thyroid?")

    system = generator.calls[0][0]
    assert system["role"] == "system"
    assert "Jane Doe" in system["content"]


def test_history_is_sent_on_next_turn(session):
    generator = RecordingGenerator(reply="Continue.")
    orchestrator = ChatOrchestrator(generator)

    orchestrator.send_message(session, "first")
    orchestrator.send_message(session, "second")

    assert [m["content"] for m in generator.calls[1][1:]] == ["first", "Continue.", "second"]


def test_user_message_is_appended_before_reply(session):
    seen = {}

    def inspect():
        seen["state"] = session.states["ask"]
        seen["last"] = session.transcripts["ask"][-1]

    ChatOrchestrator(RecordingGenerator(on_call=inspect)).send_message(session, "TSH 2.1")

    assert seen["state"] == ChatState.AWAITING_REPLY
    assert seen["last"].sender == "user"
    assert seen["last"].text == "TSH 2.1"


def test_generation_failure_uses_fallback(session, db_session):
    generator = RecordingGenerator(error=RuntimeError("boom"))
    turn = ChatOrchestrator(generator).send_message(session, "Estradiol 41 pg/mL", db=db_session)

    assert turn.state == ChatState.FAILED
    assert turn.reply == FALLBACK_REPLY
    assert session.transcripts["ask"][-1].text == FALLBACK_REPLY
    assert db_session.query(LabEntry).count() == 0


def test_blank_input_is_a_no_op(session):
    generator = RecordingGenerator()
    assert ChatOrchestrator(generator).send_message(session, "   ") is None
    assert generator.calls == []
    assert session.states["ask"] == ChatState.IDLE


def test_unknown_tab(session):
    with pytest.raises(ValueError):
        ChatOrchestrator(RecordingGenerator()).send_message(session, "hi", tab="notes")


def test_no_patient_no_persistence(db_session):
    turn = ChatOrchestrator(RecordingGenerator()).send_message(ChatSession(), "Estradiol 41 pg/mL", db=db_session)

    assert turn.lab_values == {"estradiol": 41.0}
    assert turn.lab_entry is None
    assert db_session.query(LabEntry).count() == 0


def test_idempotent_replay(session, db_session):
    orchestrator = ChatOrchestrator(RecordingGenerator())

    first = orchestrator.send_message(session, "TSH 2.1", db=db_session, idempotency_key="upload-1")
    second = orchestrator.send_message(session, "TSH 2.1", db=db_session, idempotency_key="upload-1")

    assert first.lab_entry["id"] == second.lab_entry["id"]
    assert db_session.query(LabEntry).count() == 1


def test_persistence_failure_sets_alert(db_session):
    chat = ChatSession(patient_id="missing", patient_name="Ghost")

    turn = ChatOrchestrator(RecordingGenerator()).send_message(chat, "TSH 2.1", db=db_session)

    assert turn.state == ChatState.DELIVERED
    assert turn.alert == PERSISTENCE_ALERT
    assert turn.lab_entry is None


def test_lint_findings_are_reported(session):
    generator = RecordingGenerator(reply="TSH is within the normal range.")
    turn = ChatOrchestrator(generator).send_message(session, "TSH 2.1")

    assert [f.rule for f in turn.findings] == ["banned_phrase"]
    assert turn.reply == "TSH is within the normal range."


def test_switching_patient_clears_transcripts(session):
    ChatOrchestrator(RecordingGenerator()).send_message(session, "TSH 2.1")

    session.select_patient(None)

    assert session.patient_id is None
    assert session.transcripts == {"ask": [], "lab": []}


def test_registry():
    registry = SessionRegistry()
    created = registry.create()

    assert registry.get(created.id) is created
    with pytest.raises(SessionNotFoundError):
        registry.get("nope")


def test_context_only_upload_keeps_no_readings(session, db_session):
    turn = ChatOrchestrator(RecordingGenerator()).send_message(
        session,
        "Progesterone: 6.8 ng/mL (2019)",
        tab="lab",
        db=db_session,
        file_ref="old.txt",
        is_primary=False
    )

    assert turn.lab_values == {}
    assert turn.lab_entry["values"] == {}
    assert turn.lab_entry["isPrimaryLabs"] is False
    entry = db_session.query(LabEntry).one()
    assert entry.raw_text == "Progesterone: 6.8 ng/mL (2019)"


def test_missing_prompt_template_leaves_tab_idle(session, monkeypatch):
    monkeypatch.setattr(settings, "PROMPT_VERSION", "v0")
    generator = RecordingGenerator()

    with pytest.raises(PromptNotFoundError):
        ChatOrchestrator(generator).send_message(session, "TSH 2.1")

    assert session.states["ask"] == ChatState.IDLE
    assert session.transcripts["ask"] == []
    assert generator.calls == []
