"""
Save/Load system - run persistence.

Provides:
- A newest-first list of save slots (3 by default)
- Auto-save on run start, each move and each new floor
- Save integrity validation (checksum)
- JSON export/import of a single run
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Any, Optional

from tower.run.context import RunContext
from tower_engine.core.clock import RunClock
from tower_engine.core.events import EventBus
from tower_engine.errors import SaveError

logger = logging.getLogger(__name__)


class SaveEvent(Enum):
    """Save system events."""
    SAVE_STARTED = auto()
    SAVE_COMPLETED = auto()
    SAVE_FAILED = auto()
    LOAD_STARTED = auto()
    LOAD_COMPLETED = auto()
    LOAD_FAILED = auto()
    AUTO_SAVE_TRIGGERED = auto()
    EXPORTED = auto()
    IMPORTED = auto()


@dataclass
class SaveMetadata:
    """Summary of a save slot for listing."""
    index: int
    ts: int
    mode: str
    difficulty: str
    floor_index: int
    elapsed_seconds: int
    reason: str = ""

    @classmethod
    def from_save(cls, index: int, data: dict[str, Any]) -> SaveMetadata:
        return cls(
            index=index,
            ts=int(data.get('ts', 0)),
            mode=str(data.get('mode', '')),
            difficulty=str(data.get('difficulty', '')),
            floor_index=int(data.get('floor_index', 0)),
            elapsed_seconds=int(data.get('elapsed_seconds', 0)),
            reason=str((data.get('meta') or {}).get('reason', '')),
        )


class SaveManager:
    """
    Manages saving and loading runs.

    Saves form a newest-first list capped at max_slots; appending a
    save pushes the oldest one out.

    Usage:
        save_mgr = SaveManager(save_path="game/saves", event_bus=events)
        save_mgr.append(run, meta={'reason': 'manual'})
        run = save_mgr.load_run(0)
    """

    VERSION = "1.0"
    SLOTS_FILE = "saves.json"

    def __init__(
        self,
        save_path: Path | str = "game/saves",
        event_bus: Optional[EventBus] = None,
        max_slots: int = 3,
        autosave: bool = True,
    ):
        self.save_path = Path(save_path)
        self.save_path.mkdir(parents=True, exist_ok=True)
        self.event_bus = event_bus
        self.max_slots = max(1, max_slots)
        self.autosave_enabled = autosave

    @property
    def slots_file(self) -> Path:
        return self.save_path / self.SLOTS_FILE

    def _publish(self, event_type: SaveEvent, **data: Any) -> None:
        if self.event_bus:
            self.event_bus.publish(event_type, **data)

    # Slot storage

    def list_saves(self) -> list[dict[str, Any]]:
        """All stored saves, newest first. Unreadable storage reads as empty."""
        if not self.slots_file.exists():
            return []
        try:
            with open(self.slots_file, 'r', encoding='utf-8') as f:
                saves = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read save slots: {e}")
            return []
        if not isinstance(saves, list):
            logger.warning("Save slot file is not a list; ignoring it")
            return []
        return [s for s in saves if isinstance(s, dict)][:self.max_slots]

    def get_save_slots(self) -> list[SaveMetadata]:
        """Metadata for every stored save."""
        return [SaveMetadata.from_save(i, data) for i, data in enumerate(self.list_saves())]

    def _write_saves(self, saves: list[dict[str, Any]]) -> None:
        try:
            with open(self.slots_file, 'w', encoding='utf-8') as f:
                json.dump(saves[:self.max_slots], f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise SaveError(f"Could not write {self.slots_file}: {e}") from e

    # Save

    def build_save(self, run: RunContext, meta: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Serialize a run with version and checksum."""
        # Hash the JSON form (integer keys become strings)
        data = json.loads(json.dumps(run.to_save_data(meta)))
        data['version'] = self.VERSION
        data['checksum'] = self._calculate_checksum(data)
        return data

    def append(self, run: RunContext, meta: Optional[dict[str, Any]] = None) -> bool:
        """
        Save a run into the newest slot.

        Returns:
            True if save was successful
        """
        self._publish(SaveEvent.SAVE_STARTED)
        try:
            data = self.build_save(run, meta)
            saves = self.list_saves()
            saves.insert(0, data)
            self._write_saves(saves)
        except (SaveError, TypeError, ValueError) as e:
            logger.error(f"Save failed: {e}")
            self._publish(SaveEvent.SAVE_FAILED, error=str(e))
            return False

        self._publish(SaveEvent.SAVE_COMPLETED, slot=0)
        return True

    def auto_save(self, run: RunContext, reason: str) -> bool:
        """Save if auto-save is enabled."""
        if not self.autosave_enabled:
            return False
        self._publish(SaveEvent.AUTO_SAVE_TRIGGERED, reason=reason)
        return self.append(run, meta={'reason': reason})

    def delete_save(self, index: int) -> bool:
        saves = self.list_saves()
        if not 0 <= index < len(saves):
            return False
        del saves[index]
        try:
            self._write_saves(saves)
        except SaveError as e:
            logger.error(f"Delete failed: {e}")
            return False
        return True

    # Load

    def load(self, index: int, validate: bool = True) -> Optional[dict[str, Any]]:
        """
        Read one save's data.

        Args:
            index: Slot index (0 = newest)
            validate: Whether to validate checksum

        Returns:
            The save data, or None if missing or corrupted
        """
        saves = self.list_saves()
        if not 0 <= index < len(saves):
            return None

        self._publish(SaveEvent.LOAD_STARTED, slot=index)
        data = saves[index]
        if validate and not self._check(data):
            logger.error(f"Save {index} corrupted: checksum mismatch")
            self._publish(
                SaveEvent.LOAD_FAILED,
                slot=index,
                error="Checksum validation failed",
            )
            return None

        self._publish(SaveEvent.LOAD_COMPLETED, slot=index)
        return data

    def load_run(
        self,
        index: int,
        clock: Optional[RunClock] = None,
        validate: bool = True,
    ) -> Optional[RunContext]:
        data = self.load(index, validate=validate)
        if data is None:
            return None
        return RunContext.continue_run(data, clock=clock)

    def validate_save(self, index: int) -> bool:
        """
        Validate a save's integrity.

        Returns:
            True if save is valid, False if corrupted or missing
        """
        saves = self.list_saves()
        if not 0 <= index < len(saves):
            return False
        return self._check(saves[index])

    def _check(self, data: dict[str, Any]) -> bool:
        checksum = data.get('checksum')
        if not checksum:
            # No checksum = hand-written or older save, assume valid
            return True
        return self._verify_checksum(data, checksum)

    # Export / import

    def export_json(self, run: RunContext, path: Path | str) -> bool:
        """Write one run to a standalone JSON file."""
        try:
            data = self.build_save(run, meta={'reason': 'export'})
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Export failed: {e}")
            self._publish(SaveEvent.SAVE_FAILED, error=str(e))
            return False
        self._publish(SaveEvent.EXPORTED, path=str(path))
        return True

    def import_json(
        self,
        path: Path | str,
        clock: Optional[RunClock] = None,
    ) -> Optional[RunContext]:
        """
        Load a run from an exported JSON file.

        Missing or invalid fields fall back to defaults; unreadable or
        corrupted files return None.
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Import failed: {e}")
            self._publish(SaveEvent.LOAD_FAILED, error=str(e))
            return None

        if isinstance(data, dict) and not self._check(data):
            self._publish(SaveEvent.LOAD_FAILED, error="Checksum validation failed")
            return None

        run = RunContext.continue_run(data, clock=clock)
        self._publish(SaveEvent.IMPORTED, path=str(path))
        return run

    # Checksum validation

    def _calculate_checksum(self, data: dict[str, Any]) -> str:
        """Calculate checksum for save data."""
        data_copy = {k: v for k, v in data.items() if k != 'checksum'}
        json_str = json.dumps(data_copy, sort_keys=True, separators=(',', ':'))
        hash_bytes = hashlib.sha256(json_str.encode('utf-8')).digest()
        return base64.b64encode(hash_bytes).decode('ascii')

    def _verify_checksum(self, data: dict[str, Any], expected_checksum: str) -> bool:
        return self._calculate_checksum(data) == expected_checksum
