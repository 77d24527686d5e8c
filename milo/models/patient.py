"""
Patient Model
Created by clinical staff, grows only by appending lab entries
"""
from sqlalchemy import Column, String, Date, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from milo.database import Base


class Patient(Base):
    __tablename__ = "patients"

    # Opaque generated identifier
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Personal info (everything but the name is optional)
    name = Column(String(255), nullable=False, index=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)

    # Tenant
    team_id = Column(String(100), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    labs = relationship(
        "LabEntry",
        back_populates="patient",
        cascade="all, delete-orphan",
        order_by="LabEntry.id"
    )

    def to_dict(self, include_labs: bool = True):
        """Convert to dictionary"""
        data = {
            "id": self.id,
            "name": self.name,
            "dob": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "gender": self.gender,
            "teamId": self.team_id,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }
        if include_labs:
            data["labs"] = [entry.to_dict() for entry in self.labs]
        return data
