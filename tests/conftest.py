import os

# settings are read at import time, so the environment is prepared first
os.environ["DB_DIALECT"] = "sqlite"
os.environ["DB_NAME"] = ":memory:"
os.environ["INTERNAL_API_TOKEN"] = "test-token"
os.environ["SMS_BULK_DELAY_MS"] = "0"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.db import Base, get_db
from main import app
from models.classes import Class
from models.schools import School
from models.students import Student
from schemas.common import Principal
from services import result_service, template_service
from services.pdf_service import RenderedPdf, get_pdf_service
from services.sms_service import SendOutcome, get_sms_service

TERM = "First Term"
SESSION = "2024/2025"


class FakeRenderer:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.rendered = []

    def render(self, result, school, student, class_name, components):
        if result.id in self.fail_for:
            return RenderedPdf(success=False, error="layout overflow")
        self.rendered.append(result.id)
        payload = b"%PDF-1.7 result sheet"
        return RenderedPdf(success=True, payload=payload, size=len(payload))


class FakeSender:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    def send(self, to, message):
        if to in self.fail_for:
            return SendOutcome(to=to, success=False, error="gateway rejected message")
        self.sent.append((to, message))
        return SendOutcome(to=to, success=True)


@pytest.fixture()
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def seed(db):
    school = School(name="Bright Future Academy", address="12 Allen Avenue, Ikeja", phone="08030000000",
                    motto="Knowledge and Service")
    other_school = School(name="Hilltop College")
    db.add_all([school, other_school])
    db.flush()

    jss1 = Class(school_id=school.id, name="JSS 1A", teacher_id=2)
    jss1b = Class(school_id=school.id, name="JSS 1B", teacher_id=3)
    other_class = Class(school_id=other_school.id, name="SS 2B", teacher_id=10)
    db.add_all([jss1, jss1b, other_class])
    db.flush()

    ada = Student(school_id=school.id, class_id=jss1.id, name="Ada Obi", reg_no="BFA/001",
                  parent_name="Mrs Obi", parent_phone="08031234567", parent_id=20)
    bayo = Student(school_id=school.id, class_id=jss1.id, name="Bayo Ade", reg_no="BFA/002",
                   parent_name="Mr Ade", parent_phone="08037654321", parent_id=21)
    chidi = Student(school_id=school.id, class_id=jss1.id, name="Chidi Eze", reg_no="BFA/003")
    dami = Student(school_id=school.id, class_id=jss1b.id, name="Dami Obi", reg_no="BFA/004",
                   parent_name="Mrs Obi", parent_phone="08031234567", parent_id=20)
    outsider = Student(school_id=other_school.id, class_id=other_class.id, name="Tunde Bello",
                       parent_phone="08039999999")
    db.add_all([ada, bayo, chidi, dami, outsider])
    db.commit()

    return SimpleNamespace(
        school=school, other_school=other_school, jss1=jss1, jss1b=jss1b,
        ada=ada, bayo=bayo, chidi=chidi, dami=dami, outsider=outsider,
        admin=Principal(user_id=1, school_id=school.id, role="admin"),
        teacher=Principal(user_id=2, school_id=school.id, role="teacher"),
        other_teacher=Principal(user_id=3, school_id=school.id, role="teacher"),
        foreign_admin=Principal(user_id=9, school_id=other_school.id, role="admin"),
        foreign_teacher=Principal(user_id=10, school_id=other_school.id, role="teacher"),
        parent=Principal(user_id=20, school_id=school.id, role="parent"),
        other_parent=Principal(user_id=21, school_id=school.id, role="parent"),
    )


@pytest.fixture()
def template(db, seed):
    return template_service.create(db, seed.admin, TERM, SESSION)


def subjects(*rows):
    """subjects(("Mathematics", 15, 18, 50), ...) → request payload with CA1/CA2/Exam scores"""
    return [{"name": name, "scores": {"ca1": ca1, "ca2": ca2, "exam": exam}} for name, ca1, ca2, exam in rows]


@pytest.fixture()
def make_result(db, seed, template):
    def _make(student=None, rows=(("Mathematics", 15, 18, 50), ("English", 10, 12, 40)), teacher=None, **content):
        data = {
            "student_id": (student or seed.ada).id,
            "term": TERM,
            "session": SESSION,
            "subjects": subjects(*rows),
            **content,
        }
        result, _ = result_service.create(db, teacher or seed.teacher, data)
        return result
    return _make


@pytest.fixture()
def renderer():
    return FakeRenderer()


@pytest.fixture()
def sender():
    return FakeSender()


@pytest.fixture()
def client(session_factory, seed, renderer, sender):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_pdf_service] = lambda: renderer
    app.dependency_overrides[get_sms_service] = lambda: sender
    yield TestClient(app)
    app.dependency_overrides.clear()


def headers(principal: Principal, token: str = "test-token") -> dict:
    return {
        "Authorization": f"Bearer {token}",
        "X-User-Id": str(principal.user_id),
        "X-School-Id": str(principal.school_id),
        "X-User-Role": principal.role,
    }
