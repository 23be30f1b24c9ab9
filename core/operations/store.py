"""
Durable JSON storage for the operation collections.

Each collection lives in ``<data_dir>/<name>.json`` with two siblings:
``<name>.json.bak`` (previous good copy) and ``<name>.json.tmp`` (only exists
while a write is in flight).

Writes are atomic: the new content goes to the temp file, is read back and
verified, then renamed over the canonical file. Loads fall back to the backup
when the canonical file is corrupt, and degrade to an empty collection when
both are unusable.
"""

import json
import logging
import os
import shutil
from pathlib import Path

import sentry_sdk

from .errors import StoreWriteError

logger = logging.getLogger(__name__)


ACTIVE_COLLECTION = "active_operations"
SCHEDULED_COLLECTION = "scheduled_operations"


class DurableStore:
    """Sole reader and writer of the persisted operation files."""

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def backup_path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json.bak"

    def temp_path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json.tmp"

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, name: str, snapshot: dict) -> bool:
        """
        Persist a collection snapshot.

        Failures are logged and reported but never raised: the in-memory
        registry stays authoritative for the running process.

        Returns:
            True if the canonical file now holds ``snapshot``.
        """
        try:
            self.write(name, snapshot)
            return True
        except (StoreWriteError, OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save {name}: {e}")
            sentry_sdk.capture_exception(e)
            return False

    def write(self, name: str, snapshot: dict) -> None:
        """
        Atomically replace a collection on disk.

        Raises:
            StoreWriteError: If the temp file could not be written or verified.
                The canonical file is untouched in that case.
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        temp_path = self.temp_path_for(name)

        if path.exists():
            try:
                shutil.copy2(path, self.backup_path_for(name))
            except OSError as e:
                logger.warning(f"Could not back up {path}: {e}")

        try:
            with open(temp_path, "w") as f:
                json.dump(snapshot, f, indent=2)

            with open(temp_path, "r") as f:
                written = json.load(f)
            if not isinstance(written, dict) or len(written) != len(snapshot):
                raise StoreWriteError(
                    f"Verification failed for {temp_path}: "
                    f"expected {len(snapshot)} keys"
                )

            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            self._discard_temp(temp_path)
            raise StoreWriteError(f"Could not write {path}: {e}") from e
        except StoreWriteError:
            self._discard_temp(temp_path)
            raise

    def _discard_temp(self, temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove temp file {temp_path}: {e}")

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self, name: str) -> dict:
        """
        Load a collection, recovering from the backup if needed.

        Never raises. A missing file is an empty collection; a corrupt file
        with a good backup is restored from that backup and re-saved.
        """
        path = self.path_for(name)
        if not path.exists():
            return {}

        data = self._read(path)
        if data is not None:
            return data

        logger.warning(f"{path} is corrupt, trying backup")
        backup_path = self.backup_path_for(name)
        backup = self._read(backup_path) if backup_path.exists() else None
        if backup is None:
            logger.error(
                f"Data loss: {path} and its backup are unreadable, "
                f"starting {name} empty"
            )
            sentry_sdk.capture_message(
                f"Operation store {name} unrecoverable, started empty",
                level="error",
            )
            return {}

        try:
            shutil.copy2(backup_path, path)
        except OSError as e:
            logger.warning(f"Could not restore {path} from backup: {e}")
        logger.warning(f"Recovered {name} from backup ({len(backup)} entries)")

        # Re-sync both copies from the recovered state
        self.save(name, backup)
        return backup

    def _read(self, path: Path) -> dict | None:
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

        if not _is_valid_collection(data):
            logger.warning(f"{path} is not a valid operation collection")
            return None
        return data


def _is_valid_collection(data) -> bool:
    """A collection is a mapping of id -> record mapping."""
    if not isinstance(data, dict):
        return False
    return all(
        isinstance(key, str) and isinstance(value, dict)
        for key, value in data.items()
    )
