import os
from pathlib import Path
from dotenv import load_dotenv

# Override=True so changes in backend/.env take effect on process reload.
#
# Tests point DATABASE_URL at a temporary SQLite file; set DISABLE_DOTENV=1 so
# backend/.env cannot override it.
if os.getenv("DISABLE_DOTENV") != "1":
    load_dotenv(override=True)


def _env_flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or default).strip() in {"1", "true", "True", "yes", "YES"}


_raw_database_url = (os.getenv("DATABASE_URL") or "").strip()
# Default to a local SQLite DB so the backend can start out-of-the-box.
# Absolute path so it works regardless of current working directory.
_default_sqlite_path = (Path(__file__).resolve().parent.parent / "dev.db").as_posix()
DATABASE_URL = _raw_database_url or f"sqlite:///{_default_sqlite_path}"

# Busy/connect timeout for the storage client. A write that waits longer than this
# fails with a PersistenceError instead of hanging.
DB_TIMEOUT_S = float(os.getenv("DB_TIMEOUT_S", "30") or "30")

# -------------------- Candidates --------------------
# transaction: parent + children in one DB transaction (rollback on child failure)
# sequential: parent committed first, children afterwards, compensating delete on failure
CANDIDATE_WRITE_STRATEGY = (os.getenv("CANDIDATE_WRITE_STRATEGY", "transaction") or "transaction").strip().lower()

# Reject candidates submitted without any resume/CV.
REQUIRE_RESUME = _env_flag("REQUIRE_RESUME", "0")

# File uploads
# Absolute path; override with UPLOAD_DIR in env (useful for tests).
UPLOAD_DIR = os.getenv("UPLOAD_DIR") or (Path(__file__).resolve().parent.parent / "uploads").as_posix()
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)) or str(10 * 1024 * 1024))

# Extra CORS origins for the candidate form (comma separated).
FRONTEND_ORIGINS = [
    origin.strip()
    for origin in os.getenv("FRONTEND_ORIGINS", "").split(",")
    if origin.strip()
]

LOG_LEVEL = (os.getenv("LOG_LEVEL", "INFO") or "INFO").strip().upper()
