"""
Patient Schemas
"""
from datetime import date
from typing import Literal, Optional
from pydantic import BaseModel, Field


class PatientCreate(BaseModel):
    """Create new patient request"""
    name: str = Field(..., min_length=1, max_length=255)
    dob: Optional[date] = Field(None, description="Format: YYYY-MM-DD")
    gender: Optional[Literal["male", "female", "other"]] = None
    teamId: Optional[str] = Field(None, max_length=100)


class LabTextUpload(BaseModel):
    """Already-extracted report text attached to a patient"""
    fileContent: Optional[str] = None
    patientId: Optional[str] = None
    isPrimaryLabs: bool = False
    fileName: Optional[str] = None
