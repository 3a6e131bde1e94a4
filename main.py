# Application entry point for running from the repository root
# uvicorn main:app --host 0.0.0.0 --port 8000

from leave_approval.main import app  # noqa: F401
