"""
Tape Calc - Persistence

A tiny string key-value store backed by one JSON file, plus the two things
kept in it:

  memory_slots     JSON array of numbers-or-null, one per memory button
  saved_equations  JSON array of equation snapshots, newest first

Storage is best-effort.  An unreadable or malformed file is treated as
empty and a failed write is logged; neither reaches the UI loop.
"""

from __future__ import annotations

import json
import logging
import math
import time
import uuid
from pathlib import Path

import config
from unit_format import FOOT_MARK, INCH_MARK, format_label, parse_mixed_inch

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Key-value store
# ---------------------------------------------------------------------------

class KeyValueStore:
    """``get``/``set`` of string values, persisted as a single JSON object.

    Args:
        path: JSON file location.  ``None`` keeps everything in memory
              (used by tests and by the preview runner).
    """

    def __init__(self, path: str | Path | None = config.STORAGE_PATH) -> None:
        self.path = Path(path) if path is not None else None
        self._data: dict[str, str] = self._read()

    def _read(self) -> dict[str, str]:
        if self.path is None:
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            log.warning("Ignoring unreadable store %s (%s)", self.path, exc)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring store %s: top level is not an object", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        except OSError as exc:
            log.warning("Could not write %s (%s)", self.path, exc)

    def get_json(self, key: str):
        """Decoded JSON value under *key*, or ``None`` if unset or malformed."""
        raw = self.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Malformed JSON under %r; treating as unset", key)
            return None

    def set_json(self, key: str, value) -> None:
        self.set(key, json.dumps(value))


def _finite(value) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


# ---------------------------------------------------------------------------
# Memory slots
# ---------------------------------------------------------------------------

def parse_stored_memory_value(raw) -> float | None:
    """Recover one persisted slot: numbers, numeric strings or mixed-inch text."""
    if raw is None:
        return None
    if _finite(raw):
        return float(raw)
    if isinstance(raw, str):
        try:
            value = float(raw)
        except ValueError:
            value = parse_mixed_inch(raw)
        if value is not None and math.isfinite(value):
            return value
    return None


class MemorySlots:
    """Fixed number of inch values, each ``float`` or ``None``."""

    def __init__(self, store: KeyValueStore,
                 count: int = config.MEMORY_SLOT_COUNT,
                 key: str = config.MEMORY_KEY) -> None:
        self._store = store
        self._key = key
        self.values: list[float | None] = [None] * count
        self.load()

    def __len__(self) -> int:
        return len(self.values)

    def _check(self, index: int) -> None:
        if not 0 <= index < len(self.values):
            raise IndexError(f"memory slot {index} out of range")

    def load(self) -> None:
        stored = self._store.get_json(self._key)
        if not isinstance(stored, list):
            stored = []
        self.values = [
            parse_stored_memory_value(stored[i] if i < len(stored) else None)
            for i in range(len(self.values))
        ]
        # Write back the numbers-or-null form
        self.save()

    def save(self) -> None:
        self._store.set_json(self._key, [v if _finite(v) else None for v in self.values])

    def get(self, index: int) -> float | None:
        self._check(index)
        return self.values[index]

    def put(self, index: int, value: float | None) -> None:
        self._check(index)
        self.values[index] = value if _finite(value) else None
        self.save()

    def label(self, index: int) -> str:
        value = self.get(index)
        return f"M{index + 1}" if value is None else format_label(value)


# ---------------------------------------------------------------------------
# Saved equations
# ---------------------------------------------------------------------------

def canonical_display(expr: str = "", frac: str = "") -> str:
    """``'expr = frac'``, used to spot duplicate saves."""
    expr = (expr or "").strip()
    frac = (frac or "").strip()
    if expr and frac:
        return f"{expr} = {frac}"
    return expr or frac


def parse_saved_value(item: dict | None) -> float | None:
    """The saved result in inches; old entries without ``value`` use ``dec``."""
    if not item:
        return None
    value = item.get("value")
    if _finite(value):
        return float(value)
    dec = str(item.get("dec") or "").strip()
    if not dec:
        return None
    try:
        number = float(dec.rstrip(FOOT_MARK + INCH_MARK + "\"' "))
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number * 12 if FOOT_MARK in dec else number


class SavedEquations:
    """Newest-first list of equation snapshots (plain dicts)."""

    def __init__(self, store: KeyValueStore,
                 limit: int = config.SAVED_EQ_LIMIT,
                 key: str = config.SAVED_EQ_KEY) -> None:
        self._store = store
        self._key = key
        self._limit = limit
        self.items: list[dict] = []
        self.load()

    def __len__(self) -> int:
        return len(self.items)

    def load(self) -> None:
        stored = self._store.get_json(self._key)
        if not isinstance(stored, list):
            stored = []
        self.items = [item for item in stored if isinstance(item, dict)]

    def save(self) -> None:
        self._store.set_json(self._key, self.items)

    def find(self, item_id: str) -> dict | None:
        for item in self.items:
            if item.get("id") == item_id:
                return item
        return None

    def contains(self, expr: str, frac: str) -> bool:
        key = canonical_display(expr, frac)
        return any(canonical_display(i.get("expr", ""), i.get("frac", "")) == key
                   for i in self.items)

    def add(self, expr: str, frac: str, dec: str, tokens: list, displays: list,
            value: float | None) -> dict | None:
        """Prepend a snapshot.  Returns ``None`` for an empty or duplicate save."""
        expr = (expr or "").strip()
        if not canonical_display(expr, frac) or not expr:
            return None
        if self.contains(expr, frac):
            return None
        item = {
            "id": uuid.uuid4().hex,
            "expr": expr,
            "frac": (frac or "").strip(),
            "dec": (dec or "").strip(),
            "ts": int(time.time() * 1000),
            "tokens": [None if t is None else str(t) for t in tokens],
            "displays": list(displays),
            "value": value if _finite(value) else None,
        }
        self.items.insert(0, item)
        del self.items[self._limit:]
        self.save()
        log.info("Saved equation %s", canonical_display(expr, frac))
        return item

    def delete(self, item_id: str) -> bool:
        item = self.find(item_id)
        if item is None:
            return False
        self.items.remove(item)
        self.save()
        return True

    def rename(self, item_id: str, label: str | None) -> bool:
        """Set the label; a blank label falls back to the timestamp."""
        item = self.find(item_id)
        if item is None:
            return False
        label = (label or "").strip()
        if label:
            item["label"] = label
        else:
            item.pop("label", None)
        self.save()
        return True

    def clear(self) -> None:
        self.items = []
        self.save()
