import os
import tempfile

# must be set before qtally.config is imported
_DB_DIR = tempfile.mkdtemp(prefix="qtally-test-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_DB_DIR, 'qtally.db')}")
os.environ.setdefault("POLL_INTERVAL_S", "0.01")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
