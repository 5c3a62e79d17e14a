"""Patch language for incremental edits to skill and solution documents.

An update is a flat mapping of keys to values, applied in order:

    {"problem.statement": "...",            # dotted set, creates mappings
     "tools[0].mock_status": "tested",      # indexed set
     "tools_push": {"name": "get_order"},   # merge by match key or append
     "tools_update": {"name": "get_order", "description": "..."},
     "tools_delete": "get_order",           # by id/key/name or scalar value
     "tools_rename": {"from": "a", "to": "b"}}

Pushed and updated items that carry a `name` are matched by name; nameless
items fall back to the first of `id`, `key` they carry. Protected
arrays refuse whole-array replacement that would drop existing items; they
must be edited through the array operations.
"""

import copy
import re
import uuid
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger


PROTECTED_ARRAYS = [
    "tools",
    "meta_tools",
    "intents.supported",
    "policy.guardrails.always",
    "policy.guardrails.never",
]

MATCH_FIELDS = ("id", "key", "name")

INDEXED_KEY = re.compile(r"(.+)\[([0-9]+)\]\.(.+)")

PUSH_SUFFIX = "_push"
DELETE_SUFFIX = "_delete"
UPDATE_SUFFIX = "_update"
RENAME_SUFFIX = "_rename"


def get_nested(document: Any, path: str) -> Any:
    """Value at a dotted path, or None when any segment is missing."""
    current = document
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def set_nested(document: Dict[str, Any], path: str, value: Any) -> bool:
    """Set a dotted path, creating intermediate mappings.

    Returns:
        False when an intermediate segment exists but is not a mapping
    """
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        if current.get(part) is None:
            current[part] = {}
        current = current[part]
        if not isinstance(current, dict):
            return False
    current[parts[-1]] = value
    return True


def match_key(item: Any) -> Optional[Any]:
    """First identifying field an item carries (id, key, name)."""
    if not isinstance(item, dict):
        return None
    for field in MATCH_FIELDS:
        if item.get(field):
            return item[field]
    return None


def find_index(items: List[Any], ref: Any) -> int:
    """Index of the first item whose id, key or name equals ref, or which equals ref itself."""
    for index, existing in enumerate(items):
        if isinstance(existing, dict):
            if any(existing.get(field) == ref for field in MATCH_FIELDS if field in existing):
                return index
        elif existing == ref:
            return index
    return -1


def find_item(items: List[Any], item: Any) -> int:
    """Index of the existing item an incoming pushed or updated item refers to.

    A named item matches on name only; a nameless one on its id or key.
    """
    if not isinstance(item, dict):
        return -1
    name = item.get("name")
    if name:
        for index, existing in enumerate(items):
            if isinstance(existing, dict) and existing.get("name") == name:
                return index
        return -1
    ref = match_key(item)
    return find_index(items, ref) if ref is not None else -1


def _as_items(value: Any) -> List[Any]:
    return value if isinstance(value, list) else [value]


def _singular(path: str) -> str:
    last = path.split(".")[-1]
    return last[:-1] if last.endswith("s") else last


class StateUpdateEngine:
    """Applies update mappings to a deep copy of a document.

    Example:
        engine = StateUpdateEngine()
        updated = engine.apply(skill, {"tools_push": {"name": "get_order"}})
    """

    def __init__(
        self,
        protected_arrays: Sequence[str] = PROTECTED_ARRAYS,
        generate_ids: bool = True,
        label: str = "skill",
    ):
        self.protected_arrays = list(protected_arrays)
        self.generate_ids = generate_ids
        self.label = label

    def apply(self, document: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
        """Apply updates in key order.

        Args:
            document: Document to update; left untouched
            updates: Update mapping

        Returns:
            The updated copy

        Raises:
            TypeError: If document or updates is not a mapping
        """
        if not isinstance(document, dict):
            raise TypeError(f"{self.label} must be a mapping, got {type(document).__name__}")
        if not isinstance(updates, dict):
            raise TypeError(f"updates must be a mapping, got {type(updates).__name__}")

        result = copy.deepcopy(document)
        for key, value in updates.items():
            value = copy.deepcopy(value)
            if key.endswith(DELETE_SUFFIX):
                self._delete(result, key[:-len(DELETE_SUFFIX)], value)
            elif key.endswith(UPDATE_SUFFIX):
                self._update(result, key[:-len(UPDATE_SUFFIX)], value)
            elif key.endswith(RENAME_SUFFIX):
                self._rename(result, key[:-len(RENAME_SUFFIX)], value)
            elif key.endswith(PUSH_SUFFIX):
                self._push(result, key[:-len(PUSH_SUFFIX)], value)
            elif INDEXED_KEY.fullmatch(key):
                self._set_indexed(result, key, value)
            else:
                self._set(result, key, value)
        return result

    def _delete(self, document: Dict[str, Any], path: str, value: Any) -> None:
        items = get_nested(document, path)
        if not isinstance(items, list):
            return
        for ref in _as_items(value):
            index = find_index(items, ref)
            if index == -1:
                logger.info("Delete: {ref} not found in {path}", ref=ref, path=path)
                continue
            del items[index]
            logger.info("Deleted {ref} from {path}", ref=ref, path=path)

    def _update(self, document: Dict[str, Any], path: str, value: Any) -> None:
        items = get_nested(document, path)
        if not isinstance(items, list):
            return
        for item in _as_items(value):
            ref = match_key(item)
            index = find_item(items, item)
            if index == -1 or not isinstance(items[index], dict):
                logger.info("Update: {ref} not found in {path}, skipping", ref=ref, path=path)
                continue
            items[index] = {**items[index], **item}
            logger.info("Updated {ref} in {path}", ref=ref, path=path)

    def _rename(self, document: Dict[str, Any], path: str, value: Any) -> None:
        items = get_nested(document, path)
        if not isinstance(items, list) or not isinstance(value, dict):
            return
        old, new = value.get("from"), value.get("to")
        if not old or not new:
            return
        for item in items:
            if isinstance(item, dict) and item.get("name") == old:
                item["name"] = new
                logger.info("Renamed {old} to {new} in {path}", old=old, new=new, path=path)
                return
        logger.info("Rename: {old} not found in {path}", old=old, path=path)

    def _push(self, document: Dict[str, Any], path: str, value: Any) -> None:
        items = get_nested(document, path)
        if not isinstance(items, list):
            items = []
            if not set_nested(document, path, items):
                logger.warning("Cannot create array {path}: parent is not a mapping", path=path)
                return
            logger.info("Initialized empty array for {path}", path=path)

        for item in _as_items(value):
            ref = match_key(item)
            index = find_item(items, item)
            if index != -1 and isinstance(items[index], dict):
                items[index] = {**items[index], **item}
                logger.info("Updated existing {ref} in {path}", ref=ref, path=path)
                continue
            if self.generate_ids and isinstance(item, dict) and not item.get("id"):
                item["id"] = f"{_singular(path)}_{uuid.uuid4().hex[:8]}"
            items.append(item)
            logger.info("Added {ref} to {path}", ref=match_key(item) or item, path=path)

    def _set_indexed(self, document: Dict[str, Any], key: str, value: Any) -> None:
        path, index, prop = INDEXED_KEY.fullmatch(key).groups()
        items = get_nested(document, path)
        index = int(index)
        if isinstance(items, list) and index < len(items) and isinstance(items[index], dict):
            set_nested(items[index], prop, value)
        else:
            logger.info("Indexed set: {key} does not address an item", key=key)

    def _set(self, document: Dict[str, Any], key: str, value: Any) -> None:
        if key in self.protected_arrays and self._drops_items(get_nested(document, key), value):
            logger.warning(
                "Blocked direct replacement of {key}; use {key}_push, {key}_update or {key}_delete",
                key=key,
            )
            return
        if not set_nested(document, key, value):
            logger.warning("Cannot set {key}: parent is not a mapping", key=key)

    @staticmethod
    def _drops_items(current: Any, new: Any) -> bool:
        if not isinstance(current, list) or not current:
            return False
        if not isinstance(new, list):
            return True
        return any(item not in new for item in current)


_skill_engine = StateUpdateEngine()
_solution_engine = StateUpdateEngine(protected_arrays=(), generate_ids=False, label="solution")


def apply_state_update(skill: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a skill update mapping and return the new document."""
    return _skill_engine.apply(skill, updates)


def apply_solution_update(solution: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a solution update mapping and return the new document.

    Solutions have no protected arrays and pushed items keep whatever
    identifying field they carry.
    """
    return _solution_engine.apply(solution, updates)
