"""Pytest configuration helpers."""

import atexit
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Point data and log directories at a scratch location before config is imported
_scratch = Path(tempfile.mkdtemp(prefix="research-search-tests-"))
atexit.register(shutil.rmtree, _scratch, True)
os.environ["DATA_DIR"] = str(_scratch / "data")
os.environ["LOG_DIR"] = str(_scratch / "logs")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from src.search.search_engine import SearchEngine
from src.storage.database import init_database
from src.storage.document_store import DocumentStore


# ids are assigned in this order, starting at 1
SEED_DOCUMENTS = [
    {
        "title": "Pain Management in Elderly Patients",
        "abstract": "Strategies for chronic pain relief in nursing homes.",
        "authors": ["John Smith", "Ana Cruz"],
        "keywords": ["pain", "nursing", "geriatrics"],
        "subject_area": "Nursing",
        "category": "Published",
        "year_completed": 2021,
        "view_count": 120,
        "status": "approved",
        "created_at": "2024-01-05T09:00:00+00:00",
    },
    {
        "title": "Wound Care Protocols",
        "abstract": "Evaluating dressing techniques and pain during pressure ulcer care.",
        "authors": ["Maria Lopez"],
        "keywords": ["wound care", "nursing"],
        "subject_area": "Nursing",
        "category": "Completed",
        "year_completed": 2022,
        "view_count": 80,
        "status": "approved",
        "created_at": "2024-02-10T09:00:00+00:00",
    },
    {
        "title": "Diabetes Education Outcomes",
        "abstract": "Community programs improve glycemic control.",
        "authors": ["Kate Smithson"],
        "keywords": ["diabetes", "education"],
        "subject_area": "Public Health",
        "category": "Published",
        "year_completed": 2020,
        "view_count": 200,
        "status": "approved",
        "created_at": "2024-03-15T09:00:00+00:00",
    },
    {
        "title": "Pediatric Pain Assessment",
        "abstract": "Validated scales for measuring pain in children.",
        "authors": ["Lee Park"],
        "keywords": ["pain", "pediatrics"],
        "subject_area": "Pediatrics",
        "category": "Completed",
        "year_completed": 2023,
        "view_count": 45,
        "status": "approved",
        "created_at": "2024-04-20T09:00:00+00:00",
    },
    {
        "title": "Heart Failure Readmissions",
        "abstract": "Predictors of thirty day readmission.",
        "authors": ["Ravi Patel", "John Smith"],
        "keywords": ["cardiology", "readmission"],
        "subject_area": "Cardiology",
        "category": "Published",
        "year_completed": 2019,
        "view_count": 150,
        "status": "approved",
        "created_at": "2024-05-25T09:00:00+00:00",
    },
    {
        "title": "Unreviewed Pain Study",
        "abstract": "Draft analysis of pain scores.",
        "authors": ["John Smith"],
        "keywords": ["pain"],
        "subject_area": "Nursing",
        "category": "Published",
        "year_completed": 2024,
        "view_count": 500,
        "status": "pending",
        "created_at": "2024-06-30T09:00:00+00:00",
    },
]


@pytest.fixture
def seed_documents() -> list:
    return [dict(doc) for doc in SEED_DOCUMENTS]


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "research.db")


@pytest.fixture
def store(db_path: str) -> Generator[DocumentStore, None, None]:
    db = init_database(db_path)
    document_store = DocumentStore(db.connect())
    stats = document_store.save_documents_batch(SEED_DOCUMENTS)
    assert stats == {"saved": len(SEED_DOCUMENTS), "failed": 0}
    yield document_store
    db.close()


@pytest.fixture
def engine(db_path: str) -> Generator[SearchEngine, None, None]:
    search_engine = SearchEngine(db_path=db_path, operator_mode="legacy")
    search_engine.connect_db()
    search_engine.store.save_documents_batch(SEED_DOCUMENTS)
    yield search_engine
    search_engine.close()
