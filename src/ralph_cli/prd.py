"""Requirement store (.ralph/prd.json) management."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ralph_cli.config import ConfigurationError, RalphError, write_json

logger = logging.getLogger(__name__)

CATEGORIES = ["ui", "feature", "bugfix", "setup", "development", "testing", "docs"]
DEFAULT_STEP = "Verify the feature works as expected"


class PrdNotFoundError(ConfigurationError):
    """Raised when prd.json does not exist."""

    pass


class PrdFormatError(RalphError):
    """Raised when prd.json cannot be parsed into entries."""

    pass


class InvalidEntryIndexError(RalphError):
    """Raised when an entry number is outside the store."""

    pass


@dataclass
class PrdEntry:
    """One requirement. Entries are identified by their 1-based position."""

    category: str
    description: str
    steps: List[str] = field(default_factory=lambda: [DEFAULT_STEP])
    passes: bool = False

    def __post_init__(self) -> None:
        if not self.steps:
            self.steps = [DEFAULT_STEP]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrdEntry":
        if not isinstance(data, dict):
            raise PrdFormatError(f"PRD entry must be an object, got {type(data).__name__}")
        try:
            steps = data.get("steps") or []
            if not isinstance(steps, list):
                raise PrdFormatError("PRD entry 'steps' must be a list")
            return cls(
                category=str(data["category"]),
                description=str(data["description"]),
                steps=[str(s) for s in steps],
                passes=bool(data.get("passes", False)),
            )
        except KeyError as e:
            raise PrdFormatError(f"PRD entry missing key {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "description": self.description,
            "steps": list(self.steps),
            "passes": self.passes,
        }


@dataclass
class CategoryStats:
    passing: int = 0
    total: int = 0


@dataclass
class PrdSummary:
    """Completion statistics for a list of entries."""

    passing: int
    total: int
    by_category: Dict[str, CategoryStats]
    remaining: List[PrdEntry]

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return int(self.passing * 100 / self.total + 0.5)

    @property
    def complete(self) -> bool:
        return self.total > 0 and self.passing == self.total

    def bar_cells(self, width: int = 30) -> int:
        """Number of filled cells in a progress bar of ``width`` cells."""
        if self.total == 0:
            return 0
        return int(self.passing * width / self.total + 0.5)


def filter_incomplete(entries: Sequence[PrdEntry], category: Optional[str] = None) -> List[PrdEntry]:
    """Entries that do not pass yet, optionally limited to one category.

    Store order is preserved.
    """
    return [
        e for e in entries
        if not e.passes and (category is None or e.category == category)
    ]


def summarize(entries: Sequence[PrdEntry]) -> PrdSummary:
    by_category: Dict[str, CategoryStats] = {}
    for entry in entries:
        stats = by_category.setdefault(entry.category, CategoryStats())
        stats.total += 1
        if entry.passes:
            stats.passing += 1

    return PrdSummary(
        passing=sum(1 for e in entries if e.passes),
        total=len(entries),
        by_category=by_category,
        remaining=[e for e in entries if not e.passes],
    )


def parse_entries(data: Any) -> List[PrdEntry]:
    if not isinstance(data, list):
        raise PrdFormatError("prd.json must contain a JSON array of entries")
    return [PrdEntry.from_dict(item) for item in data]


def dump_entries(path: Path, entries: Sequence[PrdEntry], mode: str = "w") -> None:
    write_json(path, [e.to_dict() for e in entries], mode)


class PrdStore:
    """Reads and rewrites the whole prd.json on every operation."""

    def __init__(self, prd_path: Path) -> None:
        self.prd_path = prd_path

    def load(self) -> List[PrdEntry]:
        """Load all entries in file order.

        Raises:
            PrdNotFoundError: If prd.json does not exist
            PrdFormatError: If the file is not a valid entry list
        """
        if not self.prd_path.exists():
            raise PrdNotFoundError("prd.json not found. Run 'ralph init' first.")
        try:
            with open(self.prd_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise PrdFormatError(f"Invalid JSON in {self.prd_path}: {e}") from e
        return parse_entries(data)

    def save(self, entries: Sequence[PrdEntry]) -> None:
        dump_entries(self.prd_path, entries)
        logger.debug("Saved %d entries to %s", len(entries), self.prd_path)

    def add(self, entry: PrdEntry) -> int:
        """Append an entry and return its 1-based number."""
        entries = self.load()
        entries.append(entry)
        self.save(entries)
        return len(entries)

    def toggle(self, indices: Sequence[int]) -> List[Tuple[int, PrdEntry]]:
        """Flip ``passes`` on each 1-based index.

        All indices are checked before anything is written.

        Raises:
            InvalidEntryIndexError: If any index is outside [1, len]
        """
        entries = self.load()
        for index in indices:
            if index < 1 or index > len(entries):
                raise InvalidEntryIndexError(
                    f"Invalid entry number {index}. Must be 1-{len(entries)}"
                )

        toggled = []
        for index in indices:
            entry = entries[index - 1]
            entry.passes = not entry.passes
            toggled.append((index, entry))

        self.save(entries)
        return toggled

    def toggle_all(self) -> List[PrdEntry]:
        entries = self.load()
        for entry in entries:
            entry.passes = not entry.passes
        self.save(entries)
        return entries

    def clean(self) -> Tuple[int, int]:
        """Drop passing entries.

        Returns:
            Tuple of (removed count, remaining count)
        """
        entries = self.load()
        kept = [e for e in entries if not e.passes]
        removed = len(entries) - len(kept)
        if removed:
            self.save(kept)
        return removed, len(kept)
