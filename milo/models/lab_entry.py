"""
Lab Entry Model
One analyzed upload: extracted hormone values plus the generated recommendation.
Rows are append-only.
"""
from sqlalchemy import Column, Integer, String, Date, Boolean, DateTime, Text, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, date

from milo.database import Base


class LabEntry(Base):
    __tablename__ = "lab_entries"
    __table_args__ = (
        UniqueConstraint("patient_id", "idempotency_key", name="uq_lab_entry_idempotency"),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)

    # Calendar day of the analysis
    date = Column(Date, nullable=False, default=date.today)

    # Hormone key -> reading, e.g. {"estradiol": 41.0}
    values = Column("lab_values", JSON, nullable=False, default=dict)
    recommendation = Column(Text, nullable=True)

    # Source document
    file_ref = Column(String(500), nullable=True)
    raw_text = Column(Text, nullable=True)
    is_primary = Column(Boolean, default=True)

    # Replaying the same command must not append twice
    idempotency_key = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    patient = relationship("Patient", back_populates="labs")

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "date": self.date.isoformat() if self.date else None,
            "values": dict(self.values or {}),
            "recommendation": self.recommendation,
            "file_ref": self.file_ref,
            "isPrimaryLabs": bool(self.is_primary),
            "created_at": self.created_at.isoformat() if self.created_at else None
        }
