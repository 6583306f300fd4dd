"""
Config Store — The shared configuration handle.

One instance per process, created at startup and injected into the
supervisor, the reconcilers, the Discord commands and the status API.

Writes are copy-on-write: the writer builds a new frozen Configuration under
the lock and swaps the reference. Readers take the current reference and
never see a half-applied mapping.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from timebot.config.configuration import Configuration, save_configuration
from timebot.errors import PersistenceFailure
from timebot.services.timezones import parse_timezone

logger = logging.getLogger("timebot.config_store")


class ConfigStore:
    """Lock-protected holder of the current Configuration."""

    def __init__(self, configuration: Configuration):
        self._current = configuration
        self._write_lock = threading.Lock()

    def snapshot(self) -> Configuration:
        """Current configuration. Immutable, safe to hold across awaits."""
        return self._current

    def set_timezone(self, user_id: int, tz_name: str) -> Configuration:
        """Map ``user_id`` to ``tz_name`` and return the new configuration.

        Raises InvalidTimezone and leaves the store unchanged when the name
        does not parse.
        """
        parse_timezone(tz_name)
        with self._write_lock:
            self._current = self._current.with_timezone(user_id, tz_name)
            return self._current


class ConfigPersister:
    """Saves store snapshots to the configuration file."""

    def __init__(self, path: Path, save: Callable[[Path, Configuration], None] = save_configuration):
        self.path = Path(path)
        self._save = save
        self._lock = threading.Lock()

    def __call__(self, configuration: Configuration) -> None:
        with self._lock:
            self._save(self.path, configuration)


def set_user_timezone(
    store: ConfigStore,
    user_id: int,
    tz_name: str,
    persist: Optional[Callable[[Configuration], None]] = None,
) -> bool:
    """Command surface for "set timezone for user X".

    Validates and writes to the store, then makes a best-effort save. A failed
    save is logged and does not roll back the in-memory change. Returns
    whether the change reached disk; raises InvalidTimezone for unknown names.
    """
    store.set_timezone(user_id, tz_name)
    logger.info("Timezone of %s set to %s", user_id, tz_name)

    if persist is None:
        return False
    try:
        # save the live state, a newer write may already have landed
        persist(store.snapshot())
    except PersistenceFailure as e:
        logger.warning(
            "Failed to save the configuration file! %s changing their timezone to %s "
            "will not persist after a restart: %s",
            user_id,
            tz_name,
            e,
        )
        return False
    return True
