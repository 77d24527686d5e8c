"""
Database Models Package
"""
from milo.models.patient import Patient
from milo.models.lab_entry import LabEntry

__all__ = [
    "Patient",
    "LabEntry"
]
