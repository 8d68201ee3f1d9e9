# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import unittest

from dinutri.errors import ValidationError
from dinutri.prescriptions.models import Meal, MealItem
from dinutri.prescriptions.transfer import (
    export_document,
    export_filename,
    import_document,
    meals_from_csv,
    slugify,
)

HEADER = "Refeicao,ItemPrincipal,Quantidade,Substitutos,ObservacoesRefeicao"


class TestCsvImport(unittest.TestCase):
    def test_single_row(self) -> None:
        meals = meals_from_csv(f"{HEADER}\nCafé,Pão,1 fatia,Tapioca|Aveia,Leve")

        self.assertEqual(len(meals), 1)
        meal = meals[0]
        self.assertEqual(meal.name, "Café")
        self.assertEqual(meal.notes, "Leve")
        self.assertEqual(len(meal.items), 1)
        item = meal.items[0]
        self.assertEqual(item.description, "Pão")
        self.assertEqual(item.amount, "1 fatia")
        self.assertEqual(item.substitutes, ["Tapioca", "Aveia"])
        self.assertTrue(meal.id)
        self.assertTrue(item.id)

    def test_groups_rows_by_meal_in_first_seen_order(self) -> None:
        text = "\n".join([
            HEADER,
            "Almoço,Arroz,4 colheres,,",
            "Café,Pão,1 fatia,,",
            "",
            "Almoço,Feijão,1 concha,Lentilha,Sem sal",
        ])

        meals = meals_from_csv(text)

        self.assertEqual([m.name for m in meals], ["Almoço", "Café"])
        self.assertEqual([i.description for i in meals[0].items], ["Arroz", "Feijão"])
        self.assertEqual(meals[0].notes, "Sem sal")
        self.assertEqual(meals[0].items[0].substitutes, [])

    def test_quoted_cells_and_bom(self) -> None:
        text = "\ufeff" + HEADER + '\n"Lanche","Iogurte, natural","170 g","Kefir | Coalhada",""\n'

        meals = meals_from_csv(text)

        self.assertEqual(meals[0].items[0].description, "Iogurte, natural")
        self.assertEqual(meals[0].items[0].substitutes, ["Kefir", "Coalhada"])

    def test_same_file_twice_gives_equal_trees_with_new_ids(self) -> None:
        text = f"{HEADER}\nCafé,Pão,1 fatia,Tapioca|Aveia,Leve"

        first = meals_from_csv(text)
        second = meals_from_csv(text)

        self.assertNotEqual(first[0].id, second[0].id)
        self.assertEqual(
            first[0].model_dump(exclude={"id": True, "items": {"__all__": {"id"}}}),
            second[0].model_dump(exclude={"id": True, "items": {"__all__": {"id"}}}),
        )

    def test_short_row_aborts_import(self) -> None:
        text = f"{HEADER}\nCafé,Pão,1 fatia,Tapioca,Leve\nAlmoço,Arroz"

        with self.assertRaises(ValidationError) as ctx:
            meals_from_csv(text)
        self.assertIn("Linha 3", ctx.exception.detail)

    def test_short_row_after_blank_lines_reports_file_line(self) -> None:
        text = f"\n{HEADER}\n\nCafé,Pão,1 fatia,,\nAlmoço"

        with self.assertRaises(ValidationError) as ctx:
            meals_from_csv(text)
        self.assertIn("Linha 5", ctx.exception.detail)

    def test_extra_columns_are_ignored(self) -> None:
        meals = meals_from_csv(f"{HEADER}\nCafé,Pão,1 fatia,Aveia,Leve,sobra")

        self.assertEqual(meals[0].notes, "Leve")
        self.assertEqual(meals[0].items[0].substitutes, ["Aveia"])

    def test_bad_header(self) -> None:
        with self.assertRaises(ValidationError):
            meals_from_csv("Meal,Item,Amount,Subs,Notes\nCafé,Pão,1,,")

    def test_empty_file(self) -> None:
        with self.assertRaises(ValidationError):
            meals_from_csv("\n\n")


class TestJsonDocument(unittest.TestCase):
    def test_export_shape_and_roundtrip(self) -> None:
        meal = Meal(name="Café", notes="Leve", items=[MealItem(description="Pão", amount="1 fatia", substitutes=["Aveia"])])

        text = export_document("Plano A", None, [meal])
        payload = json.loads(text)

        self.assertEqual(set(payload), {"title", "generalNotes", "meals"})
        self.assertEqual(payload["generalNotes"], "")
        doc = import_document(text)
        self.assertEqual(doc.title, "Plano A")
        self.assertEqual(doc.meals[0].id, meal.id)
        self.assertEqual(doc.meals[0].items[0].substitutes, ["Aveia"])

    def test_import_rejects_invalid_documents(self) -> None:
        with self.assertRaises(ValidationError):
            import_document("not json")
        with self.assertRaises(ValidationError):
            import_document(json.dumps({"title": "x"}))
        with self.assertRaises(ValidationError):
            import_document(json.dumps({"meals": [{"id": "a", "items": []}, {"id": "a", "items": []}]}))


class TestFilenames(unittest.TestCase):
    def test_slugify(self) -> None:
        self.assertEqual(slugify("Plano Alimentar – Março!"), "plano-alimentar-marco")
        self.assertEqual(slugify("   "), "prescricao")

    def test_export_filename(self) -> None:
        self.assertEqual(export_filename("Dieta Verão", "json"), "prescricao-dieta-verao.json")


if __name__ == "__main__":
    unittest.main()
