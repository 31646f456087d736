"""
Determinism Tests

- Same form + same reference + same timestamp = identical PDF bytes
- Validation is pure: repeated runs give the same result
"""

import unittest
from datetime import datetime

from intake.conftest import VALID_PAYLOAD
from intake.form_data import build_form_data
from intake.pdf_generator import render_briefing
from intake.utils import calculate_sha256
from intake.validation import validate_form


class TestBriefingDeterminism(unittest.TestCase):
    """Test deterministic PDF generation."""

    def setUp(self):
        self.form = build_form_data(VALID_PAYLOAD)
        self.generated_at = datetime(2025, 1, 15, 10, 30, 0)

    def test_identical_bytes(self):
        first = render_briefing(self.form, 'TEST-20250115-0001', self.generated_at)
        second = render_briefing(self.form, 'TEST-20250115-0001', self.generated_at)
        self.assertEqual(calculate_sha256(first), calculate_sha256(second))

    def test_dict_and_form_data_render_the_same(self):
        from_form = render_briefing(self.form, 'DRAFT', self.generated_at)
        from_dict = render_briefing(VALID_PAYLOAD, 'DRAFT', self.generated_at)
        self.assertEqual(from_form, from_dict)

    def test_reference_changes_output(self):
        first = render_briefing(self.form, 'TEST-20250115-0001', self.generated_at)
        second = render_briefing(self.form, 'TEST-20250115-0002', self.generated_at)
        self.assertNotEqual(first, second)


class TestValidationDeterminism(unittest.TestCase):

    def test_repeated_validation(self):
        form = build_form_data({'submitter_info': {'name': 'Alex'}})
        self.assertEqual(validate_form(form).to_dict(), validate_form(form).to_dict())

    def test_validation_does_not_modify_input(self):
        form = build_form_data(VALID_PAYLOAD)
        before = form.to_dict()
        validate_form(form)
        self.assertEqual(form.to_dict(), before)


if __name__ == '__main__':
    unittest.main()
