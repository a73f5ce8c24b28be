"""
Update descriptors for atomic partial updates of a stored document.

A descriptor is built once and can be rendered as a DynamoDB ``UpdateItem``
request or applied directly to a plain ``dict`` by local stores. Each nesting
level gets its own placeholder prefix, so the same attribute name (``status``,
``updatedAt``) can be written at the top level and inside a section in one
update without the identifiers colliding.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from briefing.core.errors import InvalidDocumentPath, StoreConditionFailed

_PLACEHOLDER_UNSAFE = re.compile(r"[^0-9A-Za-z_]")


@dataclass(frozen=True, slots=True)
class AttributeSlot:
    """A document path together with the placeholders that address it."""

    path: Tuple[str, ...]
    placeholders: Tuple[str, ...]

    @property
    def expression(self) -> str:
        return ".".join(self.placeholders)


@dataclass(frozen=True, slots=True)
class SetAction:
    slot: AttributeSlot
    value_placeholder: str
    value: Any
    if_absent: bool = False


@dataclass(frozen=True, slots=True)
class UpdateDescriptor:
    sets: Tuple[SetAction, ...]
    removes: Tuple[AttributeSlot, ...]
    names: Dict[str, str]
    require_exists: bool = False
    key_attribute: str = "pk"

    def to_dynamodb(self) -> Dict[str, Any]:
        """Render keyword arguments for ``Table.update_item``."""
        set_parts: List[str] = []
        values: Dict[str, Any] = {}
        for action in self.sets:
            target = action.slot.expression
            if action.if_absent:
                set_parts.append(
                    f"{target} = if_not_exists({target}, {action.value_placeholder})"
                )
            else:
                set_parts.append(f"{target} = {action.value_placeholder}")
            values[action.value_placeholder] = action.value

        clauses: List[str] = []
        if set_parts:
            clauses.append("SET " + ", ".join(set_parts))
        if self.removes:
            clauses.append("REMOVE " + ", ".join(slot.expression for slot in self.removes))

        names = dict(self.names)
        request: Dict[str, Any] = {
            "UpdateExpression": " ".join(clauses),
            "ExpressionAttributeNames": names,
        }
        if values:
            request["ExpressionAttributeValues"] = values
        if self.require_exists:
            names["#key_pk"] = self.key_attribute
            request["ConditionExpression"] = "attribute_exists(#key_pk)"
        return request

    def apply(self, document: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Return a copy of ``document`` with the update applied.

        Mirrors DynamoDB semantics: a missing parent map is an invalid path and a
        failed existence condition raises ``StoreConditionFailed``.
        """
        if document is None:
            if self.require_exists:
                raise StoreConditionFailed("The conditional request failed")
            document = {}
        updated = copy.deepcopy(document)

        for action in self.sets:
            parent, leaf = _resolve_parent(updated, action.slot.path)
            if action.if_absent and leaf in parent:
                continue
            parent[leaf] = copy.deepcopy(action.value)

        for slot in self.removes:
            try:
                parent, leaf = _resolve_parent(updated, slot.path)
            except InvalidDocumentPath:
                continue
            parent.pop(leaf, None)
        return updated


def _resolve_parent(document: Dict[str, Any], path: Tuple[str, ...]) -> Tuple[Dict[str, Any], str]:
    node: Any = document
    for segment in path[:-1]:
        if not isinstance(node, dict) or not isinstance(node.get(segment), dict):
            raise InvalidDocumentPath(
                "The document path provided in the update expression is invalid: "
                + ".".join(path)
            )
        node = node[segment]
    return node, path[-1]


@dataclass
class UpdateLevel:
    """Attributes written under one parent path with a shared placeholder prefix."""

    builder: "UpdateBuilder"
    prefix: str
    parent_path: Tuple[str, ...]
    parent_placeholders: Tuple[str, ...]
    _attributes: Dict[str, str] = field(default_factory=dict)

    def set(self, attribute: str, value: Any, *, if_absent: bool = False) -> "UpdateLevel":
        slot, token = self._slot(attribute)
        self.builder._add_set(
            SetAction(
                slot=slot,
                value_placeholder=f":{self.prefix}_{token}",
                value=value,
                if_absent=if_absent,
            )
        )
        return self

    def remove(self, attribute: str) -> "UpdateLevel":
        slot, _ = self._slot(attribute)
        self.builder._add_remove(slot)
        return self

    def _slot(self, attribute: str) -> Tuple[AttributeSlot, str]:
        token = _PLACEHOLDER_UNSAFE.sub("_", attribute)
        known = self._attributes.get(token)
        if known is not None and known != attribute:
            raise ValueError(
                f"Attributes '{known}' and '{attribute}' map to the same placeholder"
            )
        self._attributes[token] = attribute
        placeholder = f"#{self.prefix}_{token}"
        self.builder._register_name(placeholder, attribute)
        return (
            AttributeSlot(
                path=self.parent_path + (attribute,),
                placeholders=self.parent_placeholders + (placeholder,),
            ),
            token,
        )


class UpdateBuilder:
    """Collect SET/REMOVE actions across nesting levels into one descriptor."""

    def __init__(self, *, key_attribute: str = "pk") -> None:
        self._key_attribute = key_attribute
        self._names: Dict[str, str] = {}
        self._sets: List[SetAction] = []
        self._removes: List[AttributeSlot] = []
        self._prefixes: set[str] = set()
        self._require_exists = False

    def level(self, prefix: str, *parent_path: str) -> UpdateLevel:
        """Open a nesting level; ``prefix`` must be unique within the update."""
        if not prefix or _PLACEHOLDER_UNSAFE.search(prefix):
            raise ValueError(f"Invalid placeholder prefix: {prefix!r}")
        if prefix in self._prefixes or prefix == "key":
            raise ValueError(f"Placeholder prefix already in use: {prefix}")
        self._prefixes.add(prefix)
        parent_placeholders = []
        for index, segment in enumerate(parent_path):
            placeholder = f"#{prefix}_p{index}"
            self._register_name(placeholder, segment)
            parent_placeholders.append(placeholder)
        return UpdateLevel(
            builder=self,
            prefix=prefix,
            parent_path=tuple(parent_path),
            parent_placeholders=tuple(parent_placeholders),
        )

    def require_exists(self) -> "UpdateBuilder":
        self._require_exists = True
        return self

    def build(self) -> UpdateDescriptor:
        if not self._sets and not self._removes:
            raise ValueError("An update needs at least one action")
        return UpdateDescriptor(
            sets=tuple(self._sets),
            removes=tuple(self._removes),
            names=dict(self._names),
            require_exists=self._require_exists,
            key_attribute=self._key_attribute,
        )

    def _register_name(self, placeholder: str, attribute: str) -> None:
        existing = self._names.get(placeholder)
        if existing is not None and existing != attribute:
            raise ValueError(f"Placeholder {placeholder} already bound to '{existing}'")
        self._names[placeholder] = attribute

    def _add_set(self, action: SetAction) -> None:
        if any(existing.slot.path == action.slot.path for existing in self._sets):
            raise ValueError(f"Attribute set twice: {'.'.join(action.slot.path)}")
        self._sets.append(action)

    def _add_remove(self, slot: AttributeSlot) -> None:
        self._removes.append(slot)


__all__ = ["AttributeSlot", "SetAction", "UpdateBuilder", "UpdateDescriptor", "UpdateLevel"]
