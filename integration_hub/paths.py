import os
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent

# workers and scripts write here unless HUB_LOGS_DIR points elsewhere
logs_root = Path(os.environ.get("HUB_LOGS_DIR", project_root / "logs"))
