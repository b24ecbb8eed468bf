# forest/store.py
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import ProjectConfig
from .frontier import FrontierStore
from .models import DailySchedule, LearningHistory

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "FOREST_DATA_DIR"
GENERAL_PATH = "general"


def default_data_dir() -> Path:
    return Path(os.environ.get(DATA_DIR_ENV) or Path.home() / ".forest-data")


class JsonStore:
    """
    JSON-on-disk persistence keyed by project, learning path and date.

    Loads return None when a file is missing or unreadable; saves return
    False instead of raising so the caller decides how hard to fail.
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        self.base_dir = Path(base_dir) if base_dir else default_data_dir()

    # -- layout --------------------------------------------------------

    def project_dir(self, project_id: str) -> Path:
        return self.base_dir / "projects" / project_id

    def path_dir(self, project_id: str, path_name: Optional[str]) -> Path:
        return self.project_dir(project_id) / "paths" / (path_name or GENERAL_PATH)

    # -- raw io --------------------------------------------------------

    def _load(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.error("Could not read %s: %s", path, exc)
            return None

    def _save(self, path: Path, payload: Dict[str, Any]) -> bool:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            tmp.replace(path)
            return True
        except OSError as exc:
            logger.error("Could not write %s: %s", path, exc)
            return False

    # -- project config / index ----------------------------------------

    def load_config(self, project_id: str) -> Optional[ProjectConfig]:
        data = self._load(self.project_dir(project_id) / "config.json")
        return ProjectConfig.from_dict(data) if data else None

    def save_config(self, config: ProjectConfig) -> bool:
        return self._save(self.project_dir(config.project_id) / "config.json", config.to_dict())

    def list_projects(self) -> List[str]:
        data = self._load(self.base_dir / "config.json") or {}
        return list(data.get("projects", []))

    def register_project(self, project_id: str) -> bool:
        projects = self.list_projects()
        if project_id not in projects:
            projects.append(project_id)
        return self._save(self.base_dir / "config.json", {"projects": projects})

    # -- per learning path ---------------------------------------------

    def load_hta(self, project_id: str, path_name: Optional[str] = None) -> Optional[FrontierStore]:
        data = self._load(self.path_dir(project_id, path_name) / "hta.json")
        return FrontierStore.from_dict(data) if data else None

    def save_hta(self, store: FrontierStore) -> bool:
        return self._save(self.path_dir(store.project_id, store.path_name) / "hta.json", store.to_dict())

    def load_history(self, project_id: str, path_name: Optional[str] = None) -> LearningHistory:
        return LearningHistory.from_dict(self._load(self.path_dir(project_id, path_name) / "learning_history.json"))

    def save_history(self, project_id: str, path_name: Optional[str], history: LearningHistory) -> bool:
        return self._save(self.path_dir(project_id, path_name) / "learning_history.json", history.to_dict())

    # -- day schedules -------------------------------------------------

    def load_schedule(self, project_id: str, date: str) -> Optional[DailySchedule]:
        data = self._load(self.project_dir(project_id) / f"day_{date}.json")
        return DailySchedule.from_dict(data) if data else None

    def save_schedule(self, schedule: DailySchedule) -> bool:
        return self._save(self.project_dir(schedule.project_id) / f"day_{schedule.date}.json", schedule.to_dict())
