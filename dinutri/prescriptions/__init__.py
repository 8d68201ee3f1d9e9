# -*- coding: utf-8 -*-
"""
Meal-plan prescriptions: repository, editor and transfer formats.
"""

from .editor import PrescriptionEditor
from .transfer import meals_from_csv

__all__ = [
    'PrescriptionEditor',
    'meals_from_csv',
]
