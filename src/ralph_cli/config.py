"""Ralph project context and configuration management."""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

RALPH_DIR = ".ralph"
CONFIG_FILE = "config.json"
PROMPT_FILE = "prompt.md"
PRD_FILE = "prd.json"
PROGRESS_FILE = "progress.txt"


class RalphError(Exception):
    """Base class for errors reported to the user as ``Error: <message>``."""

    pass


class ConfigurationError(RalphError):
    """Raised when project configuration is missing or malformed."""

    pass


class ProjectNotInitializedError(ConfigurationError):
    """Raised when a required .ralph/ file does not exist."""

    pass


def write_json(path: Path, data: Any, mode: str = "w") -> None:
    """Write JSON with 2-space indentation and a trailing newline."""
    with open(path, mode, encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


class RalphProject:
    """Resolved paths for one Ralph project.

    Ralph keeps all of its state in a .ralph/ directory:
        project/
        └── .ralph/
            ├── config.json      # Project configuration
            ├── prompt.md        # Prompt template
            ├── prd.json         # Requirement store
            └── progress.txt     # Progress log

    Every command receives one of these instead of looking at the current
    directory itself.
    """

    def __init__(self, project_dir: Path) -> None:
        self.project_dir = Path(project_dir).resolve()
        self.ralph_dir = self.project_dir / RALPH_DIR

    @classmethod
    def discover(cls, directory: Optional[Path] = None) -> "RalphProject":
        """Create a project rooted at ``directory`` or the current directory."""
        return cls(directory if directory is not None else Path.cwd())

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.ralph_dir / CONFIG_FILE

    @property
    def prompt_path(self) -> Path:
        """Path to prompt template."""
        return self.ralph_dir / PROMPT_FILE

    @property
    def prd_path(self) -> Path:
        """Path to PRD file."""
        return self.ralph_dir / PRD_FILE

    @property
    def progress_path(self) -> Path:
        """Path to progress file."""
        return self.ralph_dir / PROGRESS_FILE

    def required_files(self) -> List[Path]:
        return [self.config_path, self.prompt_path, self.prd_path, self.progress_path]

    def check_files_exist(self) -> None:
        """Raise ProjectNotInitializedError for the first missing required file."""
        for path in self.required_files():
            if not path.exists():
                raise ProjectNotInitializedError(
                    f"{RALPH_DIR}/{path.name} not found. Run 'ralph init' first."
                )

    def load_prompt(self) -> str:
        """Load the prompt template verbatim."""
        if not self.prompt_path.exists():
            raise ProjectNotInitializedError(
                f"{RALPH_DIR}/{PROMPT_FILE} not found. Run 'ralph init' first."
            )
        return self.prompt_path.read_text(encoding="utf-8")

    def load_config(self) -> "ProjectConfig":
        return ProjectConfig.load(self.config_path)

    def default_image_name(self) -> str:
        """Docker image name derived from the project directory name."""
        slug = re.sub(r"[^a-z0-9._-]+", "-", self.project_dir.name.lower()).strip("-.")
        return f"ralph-{slug or 'project'}"


@dataclass
class ProjectConfig:
    """Contents of .ralph/config.json."""

    language: str
    check_command: str
    test_command: str
    image_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfig":
        try:
            return cls(
                language=str(data["language"]),
                check_command=str(data["checkCommand"]),
                test_command=str(data["testCommand"]),
                image_name=str(data.get("imageName", "")),
            )
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Invalid {CONFIG_FILE}: missing key {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "checkCommand": self.check_command,
            "testCommand": self.test_command,
            "imageName": self.image_name,
        }

    @classmethod
    def load(cls, path: Path) -> "ProjectConfig":
        """Load configuration from file.

        Raises:
            ProjectNotInitializedError: If the file does not exist
            ConfigurationError: If the file is not valid JSON
        """
        if not path.exists():
            raise ProjectNotInitializedError(
                f"{RALPH_DIR}/{CONFIG_FILE} not found. Run 'ralph init' first."
            )
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid {CONFIG_FILE}: expected a JSON object")
        logger.debug("Loaded config from %s", path)
        return cls.from_dict(data)

    def save(self, path: Path) -> None:
        """Save configuration to file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        write_json(path, self.to_dict())
