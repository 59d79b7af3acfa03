from pathlib import Path
import os

# URL of the Research Hub API
BASE_URL = os.environ.get("RESEARCHHUB_URL", "http://localhost:8000").rstrip("/")

# Seconds before an API call is abandoned
REQUEST_TIMEOUT = float(os.environ.get("RESEARCHHUB_TIMEOUT", "10"))

# Where the CLI keeps local data (tokens)
APP_DIR = Path(os.environ.get("RESEARCHHUB_HOME", Path.home() / ".researchhub"))

SESSION_FILE = APP_DIR / "session.json"
