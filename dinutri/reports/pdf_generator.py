# -*- coding: utf-8 -*-
"""
PDF generator for meal-plan prescriptions.

Lays the prescription out with reportlab platypus flowables: each meal is a
KeepTogether block, so page breaks fall between meals whenever a meal fits on
one page. A meal taller than a page flows on at table-row boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

try:
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.lib.units import cm
    from reportlab.pdfbase import pdfmetrics
    from reportlab.pdfbase.ttfonts import TTFont
    from reportlab.platypus import (
        HRFlowable,
        KeepTogether,
        Paragraph,
        SimpleDocTemplate,
        Spacer,
        Table,
        TableStyle,
    )
    HAS_REPORTLAB = True
except ImportError:
    HAS_REPORTLAB = False

SEX_LABELS = {"F": "Feminino", "M": "Masculino", "Outro": "Outro"}
TEAM_NAME = "Equipe DiNutri"

_FALLBACK_FONTS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "C:/Windows/Fonts/arial.ttf",
]


@dataclass
class PatientInfo:
    """Patient block of the document."""
    name: str
    email: Optional[str] = None
    birth_date: Optional[str] = None
    sex: Optional[str] = None
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PatientInfo":
        return cls(
            name=row.get("name") or "",
            email=row.get("email"),
            birth_date=row.get("birth_date"),
            sex=row.get("sex"),
            height_cm=row.get("height_cm"),
            weight_kg=row.get("weight_kg"),
        )


@dataclass
class PrescriptionDocumentData:
    title: str
    meals: List[Dict[str, Any]] = field(default_factory=list)
    general_notes: Optional[str] = None
    published_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PrescriptionDocumentData":
        return cls(
            title=row.get("title") or "",
            meals=list(row.get("meals") or []),
            general_notes=row.get("general_notes"),
            published_at=row.get("published_at"),
        )


def age_from_birth_date(birth_date: Optional[str], today: Optional[date] = None) -> Optional[int]:
    if not birth_date:
        return None
    try:
        born = date.fromisoformat(birth_date[:10])
    except ValueError:
        return None
    today = today or date.today()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def format_date_br(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%d/%m/%Y")
    except ValueError:
        return value


def _text(value: Any) -> str:
    return escape(str(value if value is not None else ""))


class PrescriptionPDFGenerator:
    """Builds the patient-facing prescription PDF."""

    def __init__(self, font_path: Optional[str] = None):
        if not HAS_REPORTLAB:
            raise RuntimeError("reportlab not installed. Run: pip install reportlab")

        self.font_path = font_path
        self._register_fonts()
        self._setup_styles()

    def _register_fonts(self) -> None:
        for path in [self.font_path, *_FALLBACK_FONTS]:
            if path and Path(path).exists():
                try:
                    pdfmetrics.registerFont(TTFont("DiNutriSans", path))
                    self.font = "DiNutriSans"
                    return
                except Exception:
                    continue
        # Helvetica covers the Latin-1 accents used in Portuguese.
        self.font = "Helvetica"

    def _setup_styles(self) -> None:
        self.styles = getSampleStyleSheet()
        self.styles.add(ParagraphStyle(
            name="DocTitle",
            fontName=self.font,
            fontSize=20,
            leading=26,
            alignment=1,
            spaceAfter=6,
            textColor=colors.HexColor("#374151"),
        ))
        self.styles.add(ParagraphStyle(
            name="Heading",
            fontName=self.font,
            fontSize=14,
            leading=18,
            spaceBefore=12,
            spaceAfter=6,
            textColor=colors.HexColor("#374151"),
        ))
        self.styles.add(ParagraphStyle(
            name="MealHeading",
            fontName=self.font,
            fontSize=13,
            leading=16,
            textColor=colors.HexColor("#1f2937"),
        ))
        self.styles.add(ParagraphStyle(
            name="Body",
            fontName=self.font,
            fontSize=10,
            leading=14,
        ))
        self.styles.add(ParagraphStyle(
            name="Substitute",
            fontName=self.font,
            fontSize=9,
            leading=12,
            leftIndent=12,
            textColor=colors.HexColor("#6b7280"),
        ))
        self.styles.add(ParagraphStyle(
            name="Small",
            fontName=self.font,
            fontSize=9,
            leading=12,
            alignment=1,
            textColor=colors.grey,
        ))

    def generate(
        self,
        patient: PatientInfo,
        prescription: PrescriptionDocumentData,
        output_path: Optional[str] = None,
    ) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=2*cm,
            leftMargin=2*cm,
            topMargin=2*cm,
            bottomMargin=2*cm,
            title=prescription.title,
        )

        story: List = []
        story.append(Paragraph("PRESCRIÇÃO NUTRICIONAL", self.styles["DocTitle"]))
        story.append(Spacer(1, 8))
        story.extend(self._build_patient_section(patient))
        story.extend(self._build_title_section(prescription))
        for meal in prescription.meals:
            story.append(self._build_meal_block(meal, doc.width))
            story.append(Spacer(1, 12))
        if prescription.general_notes:
            story.extend(self._build_general_notes(prescription.general_notes))
        story.extend(self._build_footer(patient))

        doc.build(story)
        pdf_content = buffer.getvalue()
        buffer.close()

        if output_path:
            with open(output_path, "wb") as f:
                f.write(pdf_content)

        return pdf_content

    def _build_patient_section(self, patient: PatientInfo) -> List:
        elements = []
        elements.append(Paragraph("Dados do Paciente", self.styles["Heading"]))
        elements.append(HRFlowable(width="100%", thickness=1, color=colors.lightgrey))

        rows = [["Nome", patient.name], ["Email", patient.email or "-"]]
        age = age_from_birth_date(patient.birth_date)
        if age is not None:
            rows.append(["Idade", f"{age} anos"])
        if patient.sex:
            rows.append(["Sexo", SEX_LABELS.get(patient.sex, patient.sex)])
        if patient.height_cm:
            rows.append(["Altura", f"{patient.height_cm} cm"])
        if patient.weight_kg:
            rows.append(["Peso", f"{patient.weight_kg} kg"])

        table = Table(
            [[Paragraph(_text(k), self.styles["Body"]), Paragraph(_text(v), self.styles["Body"])] for k, v in rows],
            colWidths=[3*cm, 14*cm],
        )
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, -1), self.font),
            ("TEXTCOLOR", (0, 0), (0, -1), colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
        ]))
        elements.append(table)
        elements.append(Spacer(1, 12))
        return elements

    def _build_title_section(self, prescription: PrescriptionDocumentData) -> List:
        elements = [Paragraph(_text(prescription.title), self.styles["DocTitle"])]
        if prescription.published_at:
            elements.append(Paragraph(
                f"Publicado em {format_date_br(prescription.published_at)}", self.styles["Small"]
            ))
        elements.append(Spacer(1, 16))
        return [KeepTogether(elements)]

    def _build_meal_block(self, meal: Dict[str, Any], width: float) -> KeepTogether:
        header = Table([[Paragraph(_text(meal.get("name")), self.styles["MealHeading"])]], colWidths=[width])
        header.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#dbeafe")),
            ("LINEBEFORE", (0, 0), (0, -1), 3, colors.HexColor("#3b82f6")),
            ("TOPPADDING", (0, 0), (-1, -1), 8),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
        ]))
        elements: List = [header]

        # One table row per substitute, so a long list can break across pages.
        rows = []
        item_ends = []
        for item in meal.get("items") or []:
            rows.append([
                Paragraph(f"<b>{_text(item.get('description'))}</b>", self.styles["Body"]),
                Paragraph(_text(item.get("amount")), self.styles["Body"]),
            ])
            substitutes = item.get("substitutes") or []
            if substitutes:
                rows.append([Paragraph("Opções de substituição:", self.styles["Substitute"]), ""])
                rows.extend([Paragraph(f"• {_text(s)}", self.styles["Substitute"]), ""] for s in substitutes)
            item_ends.append(len(rows) - 1)
        if rows:
            items = Table(rows, colWidths=[width - 4*cm, 4*cm], splitByRow=1)
            style = [
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("BOX", (0, 0), (-1, -1), 0.5, colors.HexColor("#e5e7eb")),
                ("TOPPADDING", (0, 0), (-1, -1), 2),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
            ]
            start = 0
            for end in item_ends:
                style.append(("TOPPADDING", (0, start), (-1, start), 6))
                style.append(("BOTTOMPADDING", (0, end), (-1, end), 6))
                if end != len(rows) - 1:
                    style.append(("LINEBELOW", (0, end), (-1, end), 0.5, colors.HexColor("#f3f4f6")))
                start = end + 1
            items.setStyle(TableStyle(style))
            elements.append(items)

        if meal.get("notes"):
            notes = Table(
                [[Paragraph(f"<b>Observação:</b> {_text(meal['notes'])}", self.styles["Body"])]],
                colWidths=[width],
            )
            notes.setStyle(TableStyle([
                ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#fefce8")),
                ("LINEBEFORE", (0, 0), (0, -1), 3, colors.HexColor("#facc15")),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]))
            elements.append(Spacer(1, 6))
            elements.append(notes)

        return KeepTogether(elements)

    def _build_general_notes(self, notes: str) -> List:
        return [KeepTogether([
            Paragraph("Observações Gerais", self.styles["Heading"]),
            HRFlowable(width="100%", thickness=1, color=colors.lightgrey),
            Paragraph(_text(notes).replace("\n", "<br/>"), self.styles["Body"]),
        ])]

    def _build_footer(self, patient: PatientInfo) -> List:
        return [KeepTogether([
            Spacer(1, 24),
            HRFlowable(width="100%", thickness=1, color=colors.lightgrey),
            Spacer(1, 8),
            Paragraph(f"Esta prescrição foi elaborada especificamente para {_text(patient.name)}.", self.styles["Small"]),
            Paragraph("Em caso de dúvidas, entre em contato com a equipe DiNutri.", self.styles["Small"]),
            Paragraph(f"<b>{TEAM_NAME}</b>", self.styles["Small"]),
        ])]


def render_prescription_pdf(patient: Dict[str, Any], prescription: Dict[str, Any], font_path: Optional[str] = None) -> bytes:
    generator = PrescriptionPDFGenerator(font_path=font_path)
    return generator.generate(PatientInfo.from_row(patient), PrescriptionDocumentData.from_row(prescription))
