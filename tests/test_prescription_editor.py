# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import unittest

from dinutri.errors import NotFoundError, ValidationError
from dinutri.prescriptions import PrescriptionEditor
from dinutri.prescriptions.models import Meal, MealItem


def _editor_with_item(substitutes=None) -> tuple[PrescriptionEditor, str, str]:
    item = MealItem(description="Pão", amount="1 fatia", substitutes=list(substitutes or []))
    meal = Meal(name="Café", items=[item])
    editor = PrescriptionEditor(title="Plano", meals=[meal])
    return editor, meal.id, item.id


class TestSubstitutes(unittest.TestCase):
    def test_bulk_add_dedups_case_insensitively_and_sorts(self) -> None:
        editor, meal_id, item_id = _editor_with_item(["Aveia"])

        result = editor.bulk_add_substitutes(meal_id, item_id, "Pão integral;Tapioca\npão integral")

        self.assertEqual(result, ["Aveia", "Pão integral", "Tapioca"])
        self.assertEqual(editor.item(meal_id, item_id).substitutes, result)

    def test_bulk_add_skips_existing_and_blank_values(self) -> None:
        editor, meal_id, item_id = _editor_with_item(["Tapioca"])

        result = editor.bulk_add_substitutes(meal_id, item_id, " tapioca ;\n\n ; Cuscuz ")

        self.assertEqual(result, ["Cuscuz", "Tapioca"])

    def test_single_add_keeps_sorted_order(self) -> None:
        editor, meal_id, item_id = _editor_with_item(["Tapioca"])

        editor.add_substitute(meal_id, item_id, "Aveia")
        result = editor.add_substitute(meal_id, item_id, "  Cuscuz  ")

        self.assertEqual(result, ["Aveia", "Cuscuz", "Tapioca"])

    def test_single_add_rejects_duplicate_and_empty(self) -> None:
        editor, meal_id, item_id = _editor_with_item(["Aveia"])

        with self.assertRaises(ValidationError):
            editor.add_substitute(meal_id, item_id, "AVEIA")
        with self.assertRaises(ValidationError):
            editor.add_substitute(meal_id, item_id, "   ")
        self.assertEqual(editor.item(meal_id, item_id).substitutes, ["Aveia"])

    def test_edit_resorts_and_rejects_collision(self) -> None:
        editor, meal_id, item_id = _editor_with_item(["Aveia", "Cuscuz", "Tapioca"])

        result = editor.edit_substitute(meal_id, item_id, 0, "Pão de queijo")
        self.assertEqual(result, ["Cuscuz", "Pão de queijo", "Tapioca"])

        # Renaming an entry to its own value in another casing is allowed.
        result = editor.edit_substitute(meal_id, item_id, 0, "cuscuz")
        self.assertEqual(result, ["Pão de queijo", "Tapioca", "cuscuz"])

        with self.assertRaises(ValidationError):
            editor.edit_substitute(meal_id, item_id, 0, "tapioca")
        with self.assertRaises(ValidationError):
            editor.edit_substitute(meal_id, item_id, 9, "Arroz")

    def test_delete_single_and_multiple(self) -> None:
        editor, meal_id, item_id = _editor_with_item(["Aveia", "Cuscuz", "Pão", "Tapioca"])

        self.assertEqual(editor.delete_substitute(meal_id, item_id, 1), ["Aveia", "Pão", "Tapioca"])
        self.assertEqual(editor.delete_substitutes(meal_id, item_id, [0, 2]), ["Pão"])

        with self.assertRaises(ValidationError):
            editor.delete_substitutes(meal_id, item_id, [0, 5])
        self.assertEqual(editor.item(meal_id, item_id).substitutes, ["Pão"])


class TestMealsAndItems(unittest.TestCase):
    def test_add_update_and_move(self) -> None:
        editor = PrescriptionEditor(title="Plano")
        breakfast = editor.add_meal("Café da manhã")
        lunch = editor.add_meal("Almoço", notes="Sem fritura")
        dinner = editor.add_meal()

        self.assertEqual(dinner.name, "Nova refeição")
        editor.move_meal(2, 0)
        self.assertEqual([m.id for m in editor.meals], [dinner.id, breakfast.id, lunch.id])

        editor.update_meal(dinner.id, name="Jantar")
        self.assertEqual(editor.meal(dinner.id).name, "Jantar")

        rice = editor.add_item(lunch.id, "Arroz", "4 colheres")
        beans = editor.add_item(lunch.id, "Feijão", "1 concha")
        editor.move_item(lunch.id, 1, 0)
        self.assertEqual([i.id for i in editor.meal(lunch.id).items], [beans.id, rice.id])

        editor.update_item(lunch.id, rice.id, amount="3 colheres")
        self.assertEqual(editor.item(lunch.id, rice.id).amount, "3 colheres")

    def test_invalid_operations(self) -> None:
        editor = PrescriptionEditor()
        meal = editor.add_meal("Lanche")

        with self.assertRaises(ValidationError):
            editor.move_meal(0, 1)
        with self.assertRaises(ValidationError):
            editor.update_meal(meal.id, items=[])
        with self.assertRaises(NotFoundError):
            editor.add_item("missing-meal", "Banana", "1 unidade")
        with self.assertRaises(NotFoundError):
            editor.delete_item(meal.id, "missing-item")

    def test_patch_values_are_validated(self) -> None:
        editor, meal_id, item_id = _editor_with_item(["Aveia"])

        with self.assertRaises(ValidationError):
            editor.update_meal(meal_id, name=None)
        with self.assertRaises(ValidationError):
            editor.update_item(meal_id, item_id, description="Pão francês", amount=12)

        # A rejected patch changes nothing, not even its valid fields.
        self.assertEqual(editor.meal(meal_id).name, "Café")
        self.assertEqual(editor.item(meal_id, item_id).description, "Pão")
        self.assertEqual(editor.item(meal_id, item_id).amount, "1 fatia")

        editor.update_meal(meal_id, notes=None)
        other = PrescriptionEditor()
        other.import_json(editor.export_json())
        self.assertEqual(other.meal(meal_id).name, "Café")

    def test_delete_meal_and_item(self) -> None:
        editor, meal_id, item_id = _editor_with_item()
        editor.delete_item(meal_id, item_id)
        self.assertEqual(editor.meal(meal_id).items, [])

        editor.delete_meal(meal_id)
        self.assertEqual(editor.meals, [])

    def test_editor_copies_incoming_meals(self) -> None:
        meal = Meal(name="Café", items=[MealItem(description="Pão", substitutes=["Aveia"])])
        editor = PrescriptionEditor(meals=[meal])

        editor.add_substitute(meal.id, meal.items[0].id, "Tapioca")

        self.assertEqual(meal.items[0].substitutes, ["Aveia"])


class TestEditorTransfer(unittest.TestCase):
    def test_import_csv_replaces_document(self) -> None:
        editor, _, _ = _editor_with_item(["Aveia"])
        csv_text = (
            "Refeicao,ItemPrincipal,Quantidade,Substitutos,ObservacoesRefeicao\n"
            "Almoço,Arroz,4 colheres,Quinoa,\n"
        )

        meals = editor.import_csv(csv_text)

        self.assertEqual(len(meals), 1)
        self.assertEqual(editor.meals[0].name, "Almoço")

    def test_malformed_csv_leaves_document_untouched(self) -> None:
        editor, meal_id, _ = _editor_with_item(["Aveia"])
        csv_text = (
            "Refeicao,ItemPrincipal,Quantidade,Substitutos,ObservacoesRefeicao\n"
            "Almoço,Arroz\n"
        )

        with self.assertRaises(ValidationError):
            editor.import_csv(csv_text)

        self.assertEqual([m.id for m in editor.meals], [meal_id])

    def test_export_and_import_json(self) -> None:
        editor, meal_id, item_id = _editor_with_item(["Aveia"])
        editor.general_notes = "Beber água"

        payload = json.loads(editor.export_json())
        self.assertEqual(payload["title"], "Plano")
        self.assertEqual(payload["generalNotes"], "Beber água")
        self.assertEqual(payload["meals"][0]["items"][0]["id"], item_id)

        other = PrescriptionEditor()
        other.import_json(editor.export_json())
        self.assertEqual(other.title, "Plano")
        self.assertEqual(other.general_notes, "Beber água")
        self.assertEqual(other.meals[0].id, meal_id)

    def test_from_stored_prescription(self) -> None:
        stored = {
            "id": "p1",
            "title": "Plano Verão",
            "general_notes": None,
            "status": "draft",
            "meals": [{"id": "m1", "name": "Café", "items": [{"id": "i1", "description": "Pão"}]}],
        }

        editor = PrescriptionEditor.from_prescription(stored)
        editor.add_substitute("m1", "i1", "Tapioca")

        self.assertEqual(editor.title, "Plano Verão")
        self.assertEqual(editor.item("m1", "i1").substitutes, ["Tapioca"])
        self.assertNotIn("substitutes", stored["meals"][0]["items"][0])

    def test_to_update_request(self) -> None:
        editor, meal_id, _ = _editor_with_item()

        request = editor.to_update_request()

        self.assertEqual(request.title, "Plano")
        self.assertEqual(request.meals[0].id, meal_id)
        request.meals[0].name = "Outro"
        self.assertEqual(editor.meal(meal_id).name, "Café")


if __name__ == "__main__":
    unittest.main()
