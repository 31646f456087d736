"""
Tests for the review summary.
"""

from intake.conftest import VALID_PAYLOAD
from intake.form_data import FormData, build_form_data
from intake.review import build_review
from intake.validation import validate_form


class TestBuildReview:
    def test_valid_form_can_submit(self):
        review = build_review(build_form_data(VALID_PAYLOAD))
        assert review.can_submit is True
        assert review.total_error_count == 0
        assert review.sections_needing_attention == []
        assert review.overall_completion_percentage == 100

    def test_sections_point_at_their_steps(self):
        review = build_review(FormData())
        assert [s.step_index for s in review.sections] == [0, 1, 2, 3, 4, 5, 6]
        assert review.sections[0].title == 'Submitter Information'

    def test_empty_form_lists_every_section(self):
        review = build_review(FormData())
        assert review.can_submit is False
        assert len(review.sections_needing_attention) == 7
        assert review.total_error_count == len(validate_form(FormData()).total_errors)

    def test_one_broken_section(self):
        payload = build_form_data(VALID_PAYLOAD).to_dict(include_ai_feedback=False)
        payload['funding_status']['initiative_name'] = ''
        review = build_review(build_form_data(payload))
        attention = review.sections_needing_attention
        assert [s.section_key for s in attention] == ['funding_status']
        assert attention[0].step_index == 1
        assert attention[0].completion_percentage == 50

    def test_reuses_given_validation(self):
        form = FormData()
        validation = validate_form(form)
        assert build_review(form, validation).overall_completion_percentage == \
            validation.overall_completion_percentage

    def test_to_dict(self):
        data = build_review(FormData()).to_dict()
        assert data['can_submit'] is False
        assert data['sections'][0]['error_count'] == 5
