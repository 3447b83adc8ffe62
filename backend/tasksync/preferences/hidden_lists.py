"""Device-local preference: list ids the owner has hidden from view.

Stored as a plain JSON string array on local disk, independent of the owner's
server-side data, so it survives across sessions on the same machine only.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


class HiddenListPreferences:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._hidden: set[str] = self._load()

    def _load(self) -> set[str]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return set()
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable hidden-list file %s: %s", self._path, e)
            return set()
        if not isinstance(data, list):
            logger.warning("Ignoring hidden-list file %s: expected a JSON array", self._path)
            return set()
        return {str(item) for item in data}

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(sorted(self._hidden)), encoding="utf-8")

    @property
    def hidden_ids(self) -> set[str]:
        return set(self._hidden)

    def is_hidden(self, list_id: str) -> bool:
        return list_id in self._hidden

    def toggle(self, list_id: str) -> bool:
        """Flip visibility of a list. Returns True if it is now hidden."""
        if list_id in self._hidden:
            self._hidden.discard(list_id)
        else:
            self._hidden.add(list_id)
        self._save()
        return list_id in self._hidden

    def cleanup(self, existing_list_ids: Iterable[str]) -> None:
        """Forget hidden ids whose lists no longer exist."""
        cleaned = self._hidden & set(existing_list_ids)
        if cleaned != self._hidden:
            self._hidden = cleaned
            self._save()
