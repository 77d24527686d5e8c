"""
Pytest configuration and shared fixtures for testing.
"""
import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ANTHROPIC_API_KEY"] = "test-key"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from milo.database import Base, get_db, init_db
from milo.main import app
from milo.services.chat_orchestrator import session_registry
from milo.services.generation_service import generation_service


class FakeMessages:
    """Stands in for anthropic.Anthropic().messages"""

    def __init__(self, reply="Continue current protocol."):
        self.reply = reply
        self.error = None
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.reply)])


@pytest.fixture
def fake_anthropic():
    """Route every generation call to an in-memory fake"""
    messages = FakeMessages()
    generation_service.client = SimpleNamespace(messages=messages)
    yield messages
    generation_service.client = None


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSession()
    yield db
    db.close()


@pytest.fixture
def client(db_engine, fake_anthropic):
    """API client backed by a throwaway SQLite database"""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    session_registry.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    session_registry.clear()


@pytest.fixture
def sample_lab_text():
    """Sample hormone panel as it comes out of a text-layer PDF"""
    return """
    Quest Diagnostics Laboratory Report
    Patient: Jane Doe
    Collected: 2026-10-01

    Estradiol (E2)          41      pg/mL
    Progesterone            0.8     ng/mL
    DHEA-S                  210     ug/dL
    Free T3                 3.2     pg/mL
    TSH                     2.1     uIU/mL
    Free T4                 1.1     ng/dL
    Total Testosterone      38      ng/dL
    Free Testosterone       1.9     pg/mL
    Vitamin D 25-OH         45      ng/mL
    IGF-1                   180     ng/mL
    """


def make_pdf(lines=None):
    """
    Build a one-page PDF with a Helvetica text layer.
    No lines gives a page without any content stream.
    """
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
    ]
    if lines:
        ops = ["BT", "/F1 12 Tf", "72 720 Td"]
        for index, line in enumerate(lines):
            if index:
                ops.append("0 -16 Td")
            ops.append(f"({line}) Tj")
        ops.append("ET")
        stream = "\n".join(ops).encode("latin-1")
        objects.append(
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>"
        )
        objects.append(
            b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream"
        )
        objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")
    else:
        objects.append(b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>")

    out = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += str(number).encode() + b" 0 obj\n" + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 " + str(len(objects) + 1).encode() + b"\n"
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += b"trailer\n<< /Size " + str(len(objects) + 1).encode() + b" /Root 1 0 R >>\n"
    out += b"startxref\n" + str(xref_offset).encode() + b"\n%%EOF\n"
    return out


@pytest.fixture
def pdf_bytes():
    """Factory for small in-memory PDFs"""
    return make_pdf
