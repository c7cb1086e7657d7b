from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "BLOCKPLAN_HOME"
APP_ENV_TEMPLATE = "BLOCKPLAN_TEMPLATE"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains blockplan/, config/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for blockplan.
    Override with BLOCKPLAN_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".blockplan").resolve()


def config_dir() -> Path:
    return app_home() / "config"


def default_template_path() -> Path:
    """
    Template used when none is given explicitly.

    Resolution order:
    1. BLOCKPLAN_TEMPLATE env var (explicit override)
    2. ~/.blockplan/config/template.yaml, if present
    3. config/default_template.yaml bundled with the repository
    """
    if os.environ.get(APP_ENV_TEMPLATE):
        return Path(os.environ[APP_ENV_TEMPLATE]).expanduser().resolve()
    user_template = config_dir() / "template.yaml"
    if user_template.exists():
        return user_template
    return project_root() / "config" / "default_template.yaml"
