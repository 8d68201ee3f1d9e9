# -*- coding: utf-8 -*-
"""Prescription transfer formats: CSV import, JSON export/import, file names."""

from __future__ import annotations

import io
import json
import re
import unicodedata
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .models import Meal, MealItem, PrescriptionDocument

CSV_HEADER = ["Refeicao", "ItemPrincipal", "Quantidade", "Substitutos", "ObservacoesRefeicao"]
SUBSTITUTE_SEPARATOR = "|"


def parse_substitutes(value: str) -> List[str]:
    return [s.strip() for s in (value or "").split(SUBSTITUTE_SEPARATOR) if s.strip()]


def _is_blank(value: Any) -> bool:
    return pd.isna(value) or not str(value).strip()


def read_csv_rows(text: str) -> List[tuple[int, list]]:
    """Non-blank rows of the CSV text as `(line_number, cells)`.

    Blank lines are kept while reading so row positions map back to file
    lines. Cells missing from a short row come back as NaN, which is how a
    truncated line is told apart from an empty trailing cell.
    """
    text = (text or "").lstrip("\ufeff")
    body = text.lstrip("\r\n\t ")
    if not body:
        return []
    leading = text[: len(text) - len(body)].count("\n")
    try:
        frame = pd.read_csv(
            io.StringIO(body),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            engine="python",
            on_bad_lines=lambda fields: fields[: len(CSV_HEADER)],
        )
    except pd.errors.ParserError as exc:
        raise ValidationError(f"CSV inválido: {exc}") from exc
    except pd.errors.EmptyDataError:
        return []
    rows = []
    for position, cells in enumerate(frame.itertuples(index=False, name=None)):
        if all(_is_blank(c) for c in cells):
            continue
        rows.append((leading + position + 1, list(cells)))
    return rows


def meals_from_csv(text: str) -> List[Meal]:
    """Parse the CSV layout into a fresh meals list, grouped by meal name in first-seen order.

    The whole import fails on the first malformed line; nothing partial is returned.
    """
    rows = read_csv_rows(text)
    if not rows:
        raise ValidationError("Arquivo CSV vazio")

    line, header = rows[0]
    if [str(c).strip() for c in header[: len(CSV_HEADER)] if not pd.isna(c)] != CSV_HEADER:
        raise ValidationError(f"Linha {line}: cabeçalho inválido, esperado {','.join(CSV_HEADER)}")

    meals: Dict[str, Meal] = {}
    for line, cells in rows[1:]:
        present = [c for c in cells if not pd.isna(c)]
        if len(present) < len(CSV_HEADER):
            raise ValidationError(
                f"Linha {line}: esperadas {len(CSV_HEADER)} colunas, encontradas {len(present)}"
            )

        meal_name, description, amount, substitutes, notes = (str(c).strip() for c in cells[: len(CSV_HEADER)])
        meal = meals.get(meal_name)
        if meal is None:
            meal = meals[meal_name] = Meal(name=meal_name)
        if notes and not meal.notes:
            meal.notes = notes
        meal.items.append(
            MealItem(description=description, amount=amount, substitutes=parse_substitutes(substitutes))
        )

    return list(meals.values())


def export_document(title: str, general_notes: Optional[str], meals: List[Meal]) -> str:
    doc = PrescriptionDocument(title=title, general_notes=general_notes or "", meals=meals)
    return json.dumps(doc.model_dump(by_alias=True, mode="json"), ensure_ascii=False, indent=2)


def import_document(text: str) -> PrescriptionDocument:
    try:
        payload: Any = json.loads(text)
    except ValueError as exc:
        raise ValidationError(f"JSON inválido: {exc}") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("meals"), list):
        raise ValidationError("JSON inválido: esperado um objeto com a lista 'meals'")
    try:
        return PrescriptionDocument.model_validate(payload)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(f"JSON inválido em {where}: {first.get('msg', '')}") from exc


def slugify(value: str, fallback: str = "prescricao") -> str:
    normalized = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or fallback


def export_filename(title: str, extension: str) -> str:
    return f"prescricao-{slugify(title)}.{extension}"
