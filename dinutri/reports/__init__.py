# -*- coding: utf-8 -*-
"""
Report generation: prescription PDF and access-log spreadsheet.
"""

from .excel import access_log_workbook, build_report_frame
from .pdf_generator import PrescriptionPDFGenerator, render_prescription_pdf

__all__ = [
    'PrescriptionPDFGenerator',
    'render_prescription_pdf',
    'access_log_workbook',
    'build_report_frame',
]
