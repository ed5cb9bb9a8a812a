"""Progress store with dotted-path access, change notification and snapshots.

The store is created once by the application root and passed to every drill
that needs it. State lives in typed sections (see progress_state); the
dotted-path facade exists for generic subscription:

    store.subscribe("user", on_user_change)   # fires for user.xp, user.level, ...
    store.set("user.xp", 40)
    store.batch_update({"user.level": 2, "user.xp": 5})
"""
import logging
from dataclasses import fields, is_dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from abacus_academy.services.interfaces import SnapshotRepository
from abacus_academy.services.progress_state import (
    DURABLE_SECTIONS,
    AppState,
    ErrorTracking,
    Leaderboard,
    Statistics,
    TrainingSettings,
    UiPrefs,
    UserProfile,
    WorksheetSettings,
    merge_into,
    section_to_dict,
)

logger = logging.getLogger(__name__)

WILDCARD = "*"


class ProgressStore:
    """Shared, single-writer state for profile, statistics, errors and records."""

    def __init__(
        self,
        repository: Optional[SnapshotRepository] = None,
        on_reset: Optional[Callable[[], None]] = None
    ) -> None:
        """
        Create the store and merge any persisted snapshot into defaults.

        Args:
            repository: Snapshot persistence; None keeps state in memory only
            on_reset: Host hook invoked after reset() so it can rebuild views
        """
        self._repository = repository
        self._on_reset = on_reset
        self._subscribers: Dict[str, List[Callable]] = {}
        self._state = AppState()
        self._load()

    # Section accessors

    @property
    def user(self) -> UserProfile:
        return self._state.user

    @property
    def ui(self) -> UiPrefs:
        return self._state.ui

    @property
    def training(self) -> TrainingSettings:
        return self._state.training

    @property
    def worksheet(self) -> WorksheetSettings:
        return self._state.worksheet

    @property
    def statistics(self) -> Statistics:
        return self._state.statistics

    @property
    def error_tracking(self) -> ErrorTracking:
        return self._state.error_tracking

    @property
    def leaderboard(self) -> Leaderboard:
        return self._state.leaderboard

    # Path facade

    def get(self, path: str = "") -> Any:
        """
        Read a value by dotted path.

        Args:
            path: e.g. 'user.xp' or 'leaderboard.personal.flash'; empty for the root

        Returns:
            The stored value

        Raises:
            KeyError: If any segment does not name a field
        """
        current: Any = self._state
        if not path:
            return current
        for key in path.split("."):
            if is_dataclass(current) and key in _field_names(current):
                current = getattr(current, key)
            else:
                raise KeyError(f"Unknown state path: {path}")
        return current

    def set(self, path: str, value: Any) -> bool:
        """
        Write a value by dotted path, notify subscribers and persist.

        Writing a value equal to the current one does nothing.

        Returns:
            True if the value changed
        """
        parent, key = self._resolve_parent(path)
        old_value = getattr(parent, key)
        if old_value == value:
            return False

        setattr(parent, key, value)
        self._notify(path, value, old_value)
        self._persist()
        return True

    def batch_update(self, updates: Mapping[str, Any]) -> List[str]:
        """
        Apply several writes with a single persistence write.

        Every path is resolved before anything is written, so an unknown
        path leaves the state untouched.

        Returns:
            Paths whose value changed
        """
        targets: List[Tuple[str, Any, str, Any]] = []
        for path, value in updates.items():
            parent, key = self._resolve_parent(path)
            targets.append((path, parent, key, value))

        changed = []
        for path, parent, key, value in targets:
            old_value = getattr(parent, key)
            if old_value == value:
                continue
            setattr(parent, key, value)
            self._notify(path, value, old_value)
            changed.append(path)

        if changed:
            self._persist()
        return changed

    def subscribe(self, path: str, callback: Callable) -> Callable[[], None]:
        """
        Register a change callback.

        Exact-path callbacks receive (new_value, old_value, path). Callbacks
        on an ancestor path receive (ancestor_value, None, changed_path).
        Wildcard ('*') callbacks receive (store, changed_path).

        Returns:
            Function that removes the callback
        """
        self._subscribers.setdefault(path, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(path, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def reset(self) -> None:
        """Clear the persisted snapshot and return to defaults."""
        if self._repository is not None:
            try:
                self._repository.clear()
            except Exception as e:
                logger.error(f"Could not clear progress snapshot: {e}")

        self._state = AppState()
        logger.info("Progress store reset to defaults")

        for callback in list(self._subscribers.get(WILDCARD, [])):
            callback(self, WILDCARD)
        if self._on_reset is not None:
            self._on_reset()

    def to_snapshot(self) -> Dict[str, Any]:
        """Return the durable subset as plain data."""
        return {name: section_to_dict(getattr(self._state, name)) for name in DURABLE_SECTIONS}

    # Internals

    def _resolve_parent(self, path: str) -> Tuple[Any, str]:
        if not path or path == WILDCARD:
            raise KeyError(f"Unknown state path: {path!r}")
        parent_path, _, key = path.rpartition(".")
        parent = self.get(parent_path)
        if not is_dataclass(parent) or key not in _field_names(parent):
            raise KeyError(f"Unknown state path: {path}")
        return parent, key

    def _notify(self, path: str, new_value: Any, old_value: Any) -> None:
        for callback in list(self._subscribers.get(path, [])):
            callback(new_value, old_value, path)

        parts = path.split(".")
        while len(parts) > 1:
            parts.pop()
            parent_path = ".".join(parts)
            for callback in list(self._subscribers.get(parent_path, [])):
                callback(self.get(parent_path), None, path)

        for callback in list(self._subscribers.get(WILDCARD, [])):
            callback(self, path)

    def _persist(self) -> None:
        if self._repository is None:
            return
        try:
            self._repository.save(self.to_snapshot())
        except Exception as e:
            logger.warning(f"Could not save progress snapshot: {e}")

    def _load(self) -> None:
        if self._repository is None:
            return
        try:
            data = self._repository.load()
        except Exception as e:
            logger.warning(f"Could not load progress snapshot, using defaults: {e}")
            return
        if not data:
            return

        for name in DURABLE_SECTIONS:
            section_data = data.get(name)
            if isinstance(section_data, dict):
                setattr(self._state, name, merge_into(getattr(self._state, name), section_data))
        logger.info("Progress snapshot restored")


def _field_names(instance: Any) -> set:
    return {f.name for f in fields(instance)}
