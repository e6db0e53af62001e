import os

from integration_hub.paths import project_root

DEFAULT_SERVICE_NAME = "integration_hub"


def repo_root() -> str:
    return os.environ.get("REPO_ROOT", str(project_root))


def repo_name() -> str:
    """Logger and log-file name; REPO_NAME wins, otherwise the service name."""
    return os.environ.get("REPO_NAME", DEFAULT_SERVICE_NAME)
