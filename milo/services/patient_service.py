"""
Patient Service - persistence commands for patients and their lab history
"""
import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from milo.models import LabEntry, Patient

logger = logging.getLogger(__name__)


class PatientNotFoundError(LookupError):
    """No patient with the given id"""


def create_patient(
    db: Session,
    name: str,
    date_of_birth: Optional[date] = None,
    gender: Optional[str] = None,
    team_id: Optional[str] = None
) -> Patient:
    """Create new patient"""
    patient = Patient(
        name=name.strip(),
        date_of_birth=date_of_birth,
        gender=gender,
        team_id=team_id
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    logger.info(f"Created patient {patient.id}")
    return patient


def get_patient(db: Session, patient_id: str) -> Patient:
    """Get patient by ID"""
    patient = db.query(Patient).filter(Patient.id == patient_id).first()
    if not patient:
        raise PatientNotFoundError(patient_id)
    return patient


def list_patients(db: Session, team_id: Optional[str] = None, search: Optional[str] = None) -> List[Patient]:
    """Patients for a team, optionally filtered by a name fragment"""
    query = db.query(Patient)
    if team_id:
        query = query.filter(Patient.team_id == team_id)
    if search:
        query = query.filter(Patient.name.ilike(f"%{search.strip()}%"))
    return query.order_by(Patient.name.asc()).all()


def delete_patient(db: Session, patient_id: str) -> None:
    """Delete a patient and their lab history"""
    patient = get_patient(db, patient_id)
    db.delete(patient)
    db.commit()
    logger.info(f"Deleted patient {patient_id}")


def append_lab_entry(
    db: Session,
    patient_id: str,
    values: Dict[str, float],
    recommendation: Optional[str] = None,
    file_ref: Optional[str] = None,
    raw_text: Optional[str] = None,
    is_primary: bool = True,
    idempotency_key: Optional[str] = None,
    entry_date: Optional[date] = None
) -> LabEntry:
    """
    Append one lab entry to a patient's history.

    Replaying a command with the same idempotency key returns the entry
    that was already stored instead of appending a second one.

    Raises:
        PatientNotFoundError: unknown patient
        SQLAlchemyError: write failed (session is rolled back)
    """
    get_patient(db, patient_id)

    if idempotency_key:
        existing = db.query(LabEntry).filter(
            LabEntry.patient_id == patient_id,
            LabEntry.idempotency_key == idempotency_key
        ).first()
        if existing:
            logger.info(f"Lab entry {idempotency_key} already stored for patient {patient_id}")
            return existing

    entry = LabEntry(
        patient_id=patient_id,
        date=entry_date or date.today(),
        values=dict(values),
        recommendation=recommendation,
        file_ref=file_ref,
        raw_text=raw_text,
        is_primary=is_primary,
        idempotency_key=idempotency_key
    )
    try:
        db.add(entry)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)

    logger.info(f"Appended lab entry {entry.id} to patient {patient_id}: {entry.values}")
    return entry


def list_lab_entries(db: Session, patient_id: str) -> List[LabEntry]:
    """Lab history, newest first"""
    get_patient(db, patient_id)
    return db.query(LabEntry).filter(
        LabEntry.patient_id == patient_id
    ).order_by(LabEntry.date.desc(), LabEntry.id.desc()).all()
