"""
Unit tests for PDF generation module.
"""

from datetime import datetime

import pytest

from intake.conftest import VALID_PAYLOAD
from intake.form_data import FormData, build_form_data
from intake.pdf_generator import (
    build_briefing_plan, render_briefing, create_styles, briefing_filename
)


def block_contents(section, block_type):
    return [b.content for b in section.blocks if b.type == block_type]


class TestPDFStyles:
    def test_styles_created(self):
        styles = create_styles()
        for name in ('title', 'meta', 'section_heading', 'label', 'normal', 'bullet_item'):
            assert name in styles


class TestBriefingPlan:
    @pytest.fixture
    def plan(self):
        return build_briefing_plan(build_form_data(VALID_PAYLOAD))

    def test_section_order(self, plan):
        assert [s.heading for s in plan] == [
            '1. Submitter Information',
            '2. Project Overview',
            '3. Business Impact',
            '4. Cross-Organizational Context',
            '5. Customer Impact',
            '6. Business Unit Impact',
            '7. Funding Status',
        ]

    def test_submitter_values(self, plan):
        assert ('Email', 'alex.morgan@telus.com') in block_contents(plan[0], 'key_value')

    def test_stakeholders_and_user_groups(self, plan):
        assert 'Billing: New self-service payment flows to support' in block_contents(plan[3], 'bullet')
        assert 'Consumer customers: 250000 users' in block_contents(plan[4], 'bullet')

    def test_funding_labels(self, plan):
        values = dict(block_contents(plan[6], 'key_value'))
        assert values['Funding Status'] == 'Funded'
        assert values['IG Code'] == 'IG-2024-001'
        assert 'Through TCT' not in values

    def test_convergence_answer(self, plan):
        assert ('Requires Convergence', 'No') in block_contents(plan[5], 'key_value')

    def test_empty_form_has_empty_sections(self):
        plan = build_briefing_plan(FormData())
        assert len(plan) == 7
        assert all(not s.blocks for s in plan)

    def test_blank_list_entries_skipped(self):
        form = build_form_data({'business_impact': {'expected_outcomes': ['', '  ', 'Fewer calls']}})
        plan = build_briefing_plan(form)
        assert block_contents(plan[2], 'bullet') == ['Fewer calls']


class TestRenderBriefing:
    def test_generates_pdf(self):
        pdf = render_briefing(VALID_PAYLOAD, 'TEST-20250101-0001', datetime(2025, 1, 1))
        assert pdf.startswith(b'%PDF')
        assert len(pdf) > 1000

    def test_incomplete_form_still_renders(self):
        pdf = render_briefing(FormData(), 'DRAFT')
        assert pdf.startswith(b'%PDF')

    def test_markup_in_answers_is_escaped(self):
        payload = {'objective': {'description': 'Use <b>bold</b> & <unclosed tags'}}
        assert render_briefing(payload, 'DRAFT').startswith(b'%PDF')

    def test_filename(self):
        assert briefing_filename('TEST-20250101-0001') == 'TELUS-Project-Briefing-TEST-20250101-0001.pdf'
