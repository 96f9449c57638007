import os
import sys
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


# Ensure `import backend.app...` works regardless of where pytest is run from.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Must be set before backend.app.config is imported by any test module.
os.environ["DISABLE_DOTENV"] = "1"


@pytest.fixture()
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.sqlite3"


@pytest.fixture()
def app(test_db_path: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FastAPI:
    """
    Create a FastAPI app with the candidate router wired to a fresh temporary SQLite DB.
    """
    from backend.app import database as db

    engine = create_engine(
        f"sqlite+pysqlite:///{test_db_path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Patch the shared database module so router dependencies use the test DB.
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(db, "SessionLocal", TestingSessionLocal)

    # Import models so Base metadata is populated, then create tables.
    from backend.app.models import candidate, education, resume, work_experience  # noqa: F401

    db.Base.metadata.drop_all(bind=engine)
    db.Base.metadata.create_all(bind=engine)

    from backend.app.api import candidate as candidate_api

    monkeypatch.setattr(candidate_api, "UPLOAD_DIR", str(tmp_path / "uploads"))

    fastapi_app = FastAPI()
    fastapi_app.include_router(candidate_api.router)

    yield fastapi_app

    engine.dispose()


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db_session(app: FastAPI):
    """
    Direct SQLAlchemy session bound to the same temporary SQLite DB used by the test app.
    """
    from backend.app import database

    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def candidate_payload() -> dict:
    return {
        "firstName": "John",
        "lastName": "Doe",
        "email": "john.doe@example.com",
        "phone": "1234567890",
        "address": "123 Main St",
        "educations": [],
        "workExperiences": [],
    }


@pytest.fixture()
def full_candidate_payload(candidate_payload: dict) -> dict:
    return {
        **candidate_payload,
        "educations": [
            {
                "institution": "University of Test",
                "title": "Computer Science",
                "startDate": "2020-01-01",
                "endDate": "2024-01-01",
            },
        ],
        "workExperiences": [
            {
                "company": "Tech Company",
                "position": "Software Engineer",
                "startDate": "2021-01-01",
                "endDate": "2023-01-01",
                "description": "Developed various applications.",
            },
        ],
        "cv": {"filePath": "resumes/resume.pdf", "fileType": "application/pdf"},
    }
