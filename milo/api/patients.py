"""
Patient API Routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from milo.api.dependencies import get_db
from milo.schemas.patient import LabTextUpload, PatientCreate
from milo.services import patient_service
from milo.utils.lab_parser import extract_lab_values

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/patients", status_code=status.HTTP_201_CREATED)
def create_patient(
    data: PatientCreate,
    db: Session = Depends(get_db)
):
    """
    Create a new patient with an empty lab history
    """
    if not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Patient name is required.")

    patient = patient_service.create_patient(
        db,
        name=data.name,
        date_of_birth=data.dob,
        gender=data.gender,
        team_id=data.teamId
    )
    return patient.to_dict()


@router.get("/patients")
def get_patients(
    teamId: Optional[str] = None,
    q: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db)
):
    """
    List patients for a team, optionally searching by name
    """
    patients = patient_service.list_patients(db, team_id=teamId, search=q)
    return [patient.to_dict(include_labs=False) for patient in patients]


@router.get("/patients/{patient_id}")
def get_patient(patient_id: str, db: Session = Depends(get_db)):
    """
    Get a patient with their full lab history
    """
    return patient_service.get_patient(db, patient_id).to_dict()


@router.get("/patients/{patient_id}/labs")
def get_patient_labs(patient_id: str, db: Session = Depends(get_db)):
    """
    Lab history, newest first
    """
    return [entry.to_dict() for entry in patient_service.list_lab_entries(db, patient_id)]


@router.delete("/patients/{patient_id}")
def delete_patient(patient_id: str, db: Session = Depends(get_db)):
    """
    Delete a patient and all of their lab entries
    """
    patient_service.delete_patient(db, patient_id)
    return {"success": True, "message": "Patient deleted"}


@router.post("/upload")
def upload_lab_text(data: LabTextUpload, db: Session = Depends(get_db)):
    """
    Attach already-extracted report text to a patient.
    Values are only parsed for primary bloodwork; context uploads keep the raw text.
    """
    if not data.fileContent or not data.patientId:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing fields")

    values = extract_lab_values(data.fileContent) if data.isPrimaryLabs else {}

    try:
        entry = patient_service.append_lab_entry(
            db,
            data.patientId,
            values,
            file_ref=data.fileName,
            raw_text=data.fileContent,
            is_primary=data.isPrimaryLabs
        )
    except SQLAlchemyError as e:
        logger.error(f"Upload handler error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload and save lab data"
        )

    return {"success": True, "entry": entry.to_dict()}
