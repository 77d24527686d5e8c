"""
Shared FastAPI dependencies
"""
from milo.database import get_db
from milo.services.chat_orchestrator import chat_orchestrator, session_registry
from milo.services.generation_service import generation_service

__all__ = [
    "get_db",
    "get_generation_service",
    "get_orchestrator",
    "get_session_registry",
]


def get_generation_service():
    return generation_service


def get_orchestrator():
    return chat_orchestrator


def get_session_registry():
    return session_registry
