# -*- coding: utf-8 -*-
"""In-memory prescription editor.

Holds the full meals document and mutates it locally; nothing is persisted
until the caller sends `to_update_request()` to the update endpoint (or
`storage.update_prescription`). Meals and items are addressed by id, list
positions only matter for the move operations.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import NotFoundError, ValidationError
from .models import Meal, MealItem, PrescriptionUpdateRequest
from .transfer import export_document, import_document, meals_from_csv

_MEAL_FIELDS = {"name", "notes"}
_ITEM_FIELDS = {"description", "amount"}


def _split_bulk(text: str) -> List[str]:
    values: List[str] = []
    for line in (text or "").replace(";", "\n").splitlines():
        value = line.strip()
        if value:
            values.append(value)
    return values


class PrescriptionEditor:
    def __init__(self, title: str = "", general_notes: Optional[str] = None, meals: Optional[Iterable[Any]] = None):
        self.title = title
        self.general_notes = general_notes
        self.meals: List[Meal] = [
            m.model_copy(deep=True) if isinstance(m, Meal) else Meal.model_validate(m) for m in (meals or [])
        ]

    @classmethod
    def from_prescription(cls, prescription: Dict[str, Any]) -> "PrescriptionEditor":
        return cls(
            title=prescription.get("title") or "",
            general_notes=prescription.get("general_notes"),
            meals=prescription.get("meals") or [],
        )

    # ---------- lookup ----------

    def meal(self, meal_id: str) -> Meal:
        for meal in self.meals:
            if meal.id == meal_id:
                return meal
        raise NotFoundError(f"Meal {meal_id} not found")

    def item(self, meal_id: str, item_id: str) -> MealItem:
        for item in self.meal(meal_id).items:
            if item.id == item_id:
                return item
        raise NotFoundError(f"Item {item_id} not found")

    @staticmethod
    def _move(values: list, from_index: int, to_index: int) -> None:
        size = len(values)
        if not (0 <= from_index < size and 0 <= to_index < size):
            raise ValidationError(f"Invalid move {from_index} -> {to_index} for {size} entries")
        values.insert(to_index, values.pop(from_index))

    @staticmethod
    def _patch(target, patch: Dict[str, Any], allowed: set) -> None:
        unknown = set(patch) - allowed
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        # Validate the patched copy first so a bad value leaves the target untouched.
        try:
            checked = type(target).model_validate({**target.model_dump(), **patch})
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(p) for p in first.get("loc", ()))
            raise ValidationError(f"Invalid value for {where}: {first.get('msg', '')}") from exc
        for key in patch:
            setattr(target, key, getattr(checked, key))

    # ---------- meals ----------

    def add_meal(self, name: str = "Nova refeição", notes: Optional[str] = None) -> Meal:
        meal = Meal(name=name, notes=notes)
        self.meals.append(meal)
        return meal

    def update_meal(self, meal_id: str, **patch: Any) -> Meal:
        meal = self.meal(meal_id)
        self._patch(meal, patch, _MEAL_FIELDS)
        return meal

    def delete_meal(self, meal_id: str) -> None:
        meal = self.meal(meal_id)
        self.meals.remove(meal)

    def move_meal(self, from_index: int, to_index: int) -> None:
        self._move(self.meals, from_index, to_index)

    # ---------- items ----------

    def add_item(self, meal_id: str, description: str = "", amount: str = "") -> MealItem:
        item = MealItem(description=description, amount=amount)
        self.meal(meal_id).items.append(item)
        return item

    def update_item(self, meal_id: str, item_id: str, **patch: Any) -> MealItem:
        item = self.item(meal_id, item_id)
        self._patch(item, patch, _ITEM_FIELDS)
        return item

    def delete_item(self, meal_id: str, item_id: str) -> None:
        meal = self.meal(meal_id)
        item = self.item(meal_id, item_id)
        meal.items.remove(item)

    def move_item(self, meal_id: str, from_index: int, to_index: int) -> None:
        self._move(self.meal(meal_id).items, from_index, to_index)

    # ---------- substitutes ----------
    # Single add/edit and bulk add leave the list sorted and free of
    # case-insensitive duplicates.

    def add_substitute(self, meal_id: str, item_id: str, value: str) -> List[str]:
        item = self.item(meal_id, item_id)
        value = (value or "").strip()
        if not value:
            raise ValidationError("Substitute cannot be empty")
        if value.casefold() in {s.casefold() for s in item.substitutes}:
            raise ValidationError(f"Substitute already listed: {value}")
        item.substitutes = sorted([*item.substitutes, value])
        return item.substitutes

    def bulk_add_substitutes(self, meal_id: str, item_id: str, text: str) -> List[str]:
        """Add every `;`/newline separated value not already present; first casing wins."""
        item = self.item(meal_id, item_id)
        seen = {s.casefold() for s in item.substitutes}
        added: List[str] = []
        for value in _split_bulk(text):
            key = value.casefold()
            if key in seen:
                continue
            seen.add(key)
            added.append(value)
        item.substitutes = sorted([*item.substitutes, *added])
        return item.substitutes

    def _substitute_index(self, item: MealItem, index: int) -> int:
        if not 0 <= index < len(item.substitutes):
            raise ValidationError(f"Invalid substitute index {index}")
        return index

    def edit_substitute(self, meal_id: str, item_id: str, index: int, value: str) -> List[str]:
        item = self.item(meal_id, item_id)
        index = self._substitute_index(item, index)
        value = (value or "").strip()
        if not value:
            raise ValidationError("Substitute cannot be empty")
        others = [s for i, s in enumerate(item.substitutes) if i != index]
        if value.casefold() in {s.casefold() for s in others}:
            raise ValidationError(f"Substitute already listed: {value}")
        item.substitutes = sorted([*others, value])
        return item.substitutes

    def delete_substitute(self, meal_id: str, item_id: str, index: int) -> List[str]:
        item = self.item(meal_id, item_id)
        index = self._substitute_index(item, index)
        item.substitutes = [s for i, s in enumerate(item.substitutes) if i != index]
        return item.substitutes

    def delete_substitutes(self, meal_id: str, item_id: str, indexes: Iterable[int]) -> List[str]:
        item = self.item(meal_id, item_id)
        drop = {self._substitute_index(item, i) for i in indexes}
        item.substitutes = [s for i, s in enumerate(item.substitutes) if i not in drop]
        return item.substitutes

    # ---------- transfer ----------

    def import_csv(self, text: str) -> List[Meal]:
        """Replace the document with the CSV contents; a malformed file leaves it untouched."""
        self.meals = meals_from_csv(text)
        return self.meals

    def export_json(self) -> str:
        return export_document(self.title, self.general_notes, self.meals)

    def import_json(self, text: str) -> None:
        doc = import_document(text)
        self.title = doc.title
        self.general_notes = doc.general_notes
        self.meals = doc.meals

    def to_update_request(self) -> PrescriptionUpdateRequest:
        return PrescriptionUpdateRequest(
            title=self.title or None,
            general_notes=self.general_notes,
            meals=[m.model_copy(deep=True) for m in self.meals],
        )
