"""
Chat Session API Routes
A session holds the selected patient and one transcript per tab ('ask', 'lab').
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from milo.api.dependencies import get_db, get_orchestrator, get_session_registry
from milo.config import settings
from milo.schemas.chat import SessionMessageCreate, SessionPatientSelect
from milo.services.patient_service import get_patient
from milo.utils.documents import Document, UnsupportedDocumentError
from milo.utils.hybrid_reader import extract_document_text
from milo.utils.text_cleaning import clean_document_text

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_session(registry=Depends(get_session_registry)):
    """
    Start a new chat session with no patient selected
    """
    return registry.create().to_dict()


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, registry=Depends(get_session_registry)):
    """
    Get the session's selected patient and transcripts
    """
    return registry.get(session_id).to_dict()


@router.put("/sessions/{session_id}/patient")
def select_patient(
    session_id: str,
    data: SessionPatientSelect,
    registry=Depends(get_session_registry),
    db: Session = Depends(get_db)
):
    """
    Select a patient for the session (null clears it). Transcripts are reset.
    """
    session = registry.get(session_id)
    patient = get_patient(db, data.patientId) if data.patientId else None
    session.select_patient(patient)
    return session.to_dict()


@router.post("/sessions/{session_id}/messages")
def send_message(
    session_id: str,
    data: SessionMessageCreate,
    registry=Depends(get_session_registry),
    orchestrator=Depends(get_orchestrator),
    db: Session = Depends(get_db)
):
    """
    Send a message on a tab and get the assistant's reply
    """
    session = registry.get(session_id)
    turn = orchestrator.send_message(session, data.text, tab=data.tab, db=db)
    if turn is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message text is required.")
    return turn.to_dict()


@router.post("/sessions/{session_id}/uploads")
async def upload_lab_reports(
    session_id: str,
    files: List[UploadFile] = File(...),
    isPrimaryLabs: bool = Form(True),
    registry=Depends(get_session_registry),
    orchestrator=Depends(get_orchestrator),
    db: Session = Depends(get_db)
):
    """
    Upload one or more lab reports (.txt or .pdf) for the selected patient.
    Files are processed one after another; each becomes a message on the 'lab' tab.
    """
    session = registry.get(session_id)
    if not session.patient_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please select a patient before uploading lab reports."
        )

    documents = []
    for upload in files:
        data = await upload.read()
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File '{upload.filename}' is too large. Maximum size is 10MB."
            )
        document = Document(
            data=data,
            media_type=upload.content_type or "application/octet-stream",
            filename=upload.filename
        )
        if not (document.is_pdf or document.is_plain_text):
            raise UnsupportedDocumentError(
                f"Unsupported file type '{document.media_type}'. Please upload .txt or .pdf only."
            )
        documents.append(document)

    turns = []
    for document in documents:
        # OCR and generation are blocking; keep them off the event loop
        extracted = await run_in_threadpool(extract_document_text, document)
        text = clean_document_text(extracted.text)

        result = {
            "file": document.filename,
            "extraction": extracted.status.value,
            "method": extracted.method,
            "ocrReasons": extracted.ocr_reasons,
            "turn": None
        }
        if text:
            turn = await run_in_threadpool(
                orchestrator.send_message,
                session,
                text,
                tab="lab",
                db=db,
                file_ref=document.filename,
                is_primary=isPrimaryLabs
            )
            result["turn"] = turn.to_dict() if turn else None
        else:
            logger.warning(f"No text extracted from {document.filename} ({extracted.status.value})")
        turns.append(result)

    return {"turns": turns}
