"""
Game Database.

Handles loading and validation of static game data (floors, stage
rosters, difficulty grades).
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable

import jsonschema

from tower_engine.errors import DataError

CATEGORIES: dict[str, str] = {
    "floors": "floor.schema.json",
    "stages": "stage.schema.json",
    "grades": "grade.schema.json",
}


class Database:
    """
    Central storage for static game data.

    Layout on disk:
        <data_path>/schemas/*.schema.json
        <data_path>/database/floors/*.json
        <data_path>/database/stages/*.json
        <data_path>/database/grades/*.json

    Each record carries an "id". Floors and stage rosters also carry an
    "index" (0-based floor number); grades carry an "order".
    """

    def __init__(self, data_path: Path | str | None = None):
        self._data_path = Path(data_path) if data_path is not None else None
        self._schemas: dict[str, Any] = {}

        # Data stores
        self.floors: dict[str, Any] = {}
        self.stages: dict[str, Any] = {}
        self.grades: dict[str, Any] = {}

        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_records(
        cls,
        floors: Iterable[dict[str, Any]] = (),
        stages: Iterable[dict[str, Any]] = (),
        grades: Iterable[dict[str, Any]] = (),
        data_path: Path | str | None = None,
    ) -> "Database":
        """
        Build a database from in-memory records.

        Records are validated when data_path points at a directory
        holding schemas/.
        """
        db = cls(data_path)
        if data_path is not None:
            db._load_schemas()
        db.add_records("floors", floors)
        db.add_records("stages", stages)
        db.add_records("grades", grades)
        return db

    def load_all(self) -> None:
        """Load all data from disk."""
        self._load_schemas()

        self.floors = self._load_category("floors")
        self.stages = self._load_category("stages")
        self.grades = self._load_category("grades")

        self.logger.info(
            f"Loaded {len(self.floors)} floors, "
            f"{len(self.stages)} stage rosters, "
            f"{len(self.grades)} grades."
        )

    def _load_schemas(self) -> None:
        """Load JSON schemas."""
        if self._data_path is None:
            return
        schema_dir = self._data_path / "schemas"
        if not schema_dir.exists():
            self.logger.warning(f"Schema directory not found: {schema_dir}")
            return

        for schema_file in schema_dir.glob("*.schema.json"):
            try:
                with open(schema_file, 'r', encoding='utf-8') as f:
                    schema = json.load(f)
                    self._schemas[schema_file.name] = schema
            except Exception as e:
                self.logger.error(f"Failed to load schema {schema_file}: {e}")

    def _load_category(self, folder: str) -> dict[str, Any]:
        """Load all JSON files in a category folder."""
        data_store: dict[str, Any] = {}
        if self._data_path is None:
            return data_store

        category_dir = self._data_path / "database" / folder
        if not category_dir.exists():
            self.logger.warning(f"Data directory not found: {category_dir}")
            return data_store

        schema = self._schemas.get(CATEGORIES[folder])
        if not schema:
            self.logger.warning(f"No schema found for {folder} ({CATEGORIES[folder]})")
            return data_store

        for file_path in sorted(category_dir.glob("*.json")):
            try:
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except Exception as e:
                self.logger.error(f"Failed to load {file_path}: {e}")
                continue

            records = data if isinstance(data, list) else [data]
            for record in records:
                try:
                    jsonschema.validate(instance=record, schema=schema)
                except jsonschema.ValidationError as e:
                    self.logger.error(f"Validation error in {file_path}: {e.message}")
                    continue
                data_store[str(record['id'])] = record

        return data_store

    def add_records(self, category: str, records: Iterable[dict[str, Any]]) -> int:
        """
        Add records to a category, validating against its schema if loaded.

        Returns:
            Number of records accepted
        """
        if category not in CATEGORIES:
            raise DataError(f"Unknown data category: {category}")

        store: dict[str, Any] = getattr(self, category)
        schema = self._schemas.get(CATEGORIES[category])
        accepted = 0
        for record in records:
            if schema:
                try:
                    jsonschema.validate(instance=record, schema=schema)
                except jsonschema.ValidationError as e:
                    self.logger.error(f"Validation error in {category} record: {e.message}")
                    continue
            if 'id' not in record:
                self.logger.error(f"Record without id in {category}: {record!r}")
                continue
            store[str(record['id'])] = record
            accepted += 1
        return accepted

    # Floors

    def floor_list(self) -> list[dict[str, Any]]:
        """Floors ordered by index."""
        return sorted(self.floors.values(), key=lambda f: f.get('index', 0))

    @property
    def floor_count(self) -> int:
        return len(self.floors)

    def get_floor(self, index: int) -> dict[str, Any]:
        """
        Get floor layout data by 0-based index.

        Unknown indices fall back to the first floor.
        """
        floors = self.floor_list()
        if not floors:
            raise DataError("No floors loaded")
        for floor in floors:
            if floor.get('index', 0) == index:
                return floor
        return floors[0]

    # Stage rosters

    def stage_floor_list(self) -> list[dict[str, Any]]:
        """Stage rosters ordered by floor index."""
        return sorted(self.stages.values(), key=lambda s: s.get('index', 0))

    def get_stage_floor(self, index: int) -> dict[str, Any]:
        """Get the stage roster for a floor; unknown floors fall back to the first."""
        rosters = self.stage_floor_list()
        if not rosters:
            raise DataError("No stage rosters loaded")
        for roster in rosters:
            if roster.get('index', 0) == index:
                return roster
        return rosters[0]

    def find_stage(self, floor_index: int, stage_id: Any) -> dict[str, Any] | None:
        """Get a stage by id on a floor, or None when absent."""
        roster = self.get_stage_floor(floor_index)
        for stage in roster.get('stages', []):
            if str(stage.get('id')) == str(stage_id):
                return stage
        return None

    def get_stage(self, floor_index: int, stage_id: Any) -> dict[str, Any]:
        """Get a stage by id; unknown ids fall back to the floor's first stage."""
        stage = self.find_stage(floor_index, stage_id)
        if stage is not None:
            return stage
        stages = self.get_stage_floor(floor_index).get('stages', [])
        if not stages:
            raise DataError(f"Floor {floor_index} has no stages")
        return stages[0]

    # Grades

    def grade_list(self) -> list[dict[str, Any]]:
        """Grades ordered by their "order" key."""
        return sorted(self.grades.values(), key=lambda g: g.get('order', 0))

    def get_grade(self, grade_id: str) -> dict[str, Any]:
        grade = self.grades.get(grade_id)
        if grade is None:
            raise DataError(f"Unknown grade: {grade_id}")
        return grade
