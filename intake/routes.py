"""
Flask routes for the Project Intake application.

- main:  the wizard page
- api:   JSON endpoints driving the wizard held in the server-side session
- admin: review dashboard (list, detail, status updates, CSV export, PDFs)
"""

import io
from datetime import datetime

from flask import (
    Blueprint, render_template, request, jsonify,
    session, redirect, url_for, flash, send_file,
    current_app, Response, g
)

from intake.models import SubmissionStatus, AuditLog
from intake.wizard import IntakeWizard, WizardError, STEPS, REVIEW_STEP
from intake.review import build_review
from intake.validation import validate_form
from intake.form_data import build_form_data, SECTION_TYPES
from intake.reference_data import (
    reference_data_to_dict, get_acceptance_criteria, get_ig_code, search_ig_codes
)
from intake.persistence import SubmissionStore
from intake.pdf_generator import render_briefing, briefing_filename
from intake.export import export_submissions_csv, export_filename
from intake.audit_logger import (
    log_submission_created, log_submission_failed, log_status_updated,
    log_ai_feedback_requested, log_briefing_generated, log_admin_login,
    log_admin_logout, log_admin_submission_viewed, log_submissions_exported
)
from intake.security import (
    rate_limit, sanitize_payload, admin_required, admin_configured,
    verify_admin_password, sign_in_reviewer, sign_out_reviewer,
    get_client_ip
)
from intake.utils import calculate_sha256


# Create blueprints
main_bp = Blueprint('main', __name__)
api_bp = Blueprint('api', __name__, url_prefix='/api')
admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

WIZARD_SESSION_KEY = 'intake_wizard'
ADMIN_PAGE_SIZE = 20


# Wizard session helpers

def load_wizard() -> IntakeWizard:
    return IntakeWizard.from_dict(session.get(WIZARD_SESSION_KEY))


def save_wizard(wizard: IntakeWizard):
    session[WIZARD_SESSION_KEY] = wizard.to_dict()


def wizard_state(wizard: IntakeWizard) -> dict:
    """Everything the wizard page needs to render the current step."""
    validation = wizard.validate()
    current = wizard.current
    return {
        'current_step': wizard.current_step,
        'step_count': wizard.step_count,
        'current': {
            'id': current.id,
            'title': current.title,
            'section_key': current.section_key,
        },
        'submission_id': wizard.submission_id,
        'overall_completion_percentage': validation.overall_completion_percentage,
        'can_submit': validation.is_form_valid,
        'steps': wizard.steps_overview(validation),
        'form_data': wizard.form_data.to_dict(),
    }


def wizard_response(wizard: IntakeWizard, status: int = 200, **extra):
    body = {'ok': True, 'wizard': wizard_state(wizard)}
    body.update(extra)
    return jsonify(body), status


@api_bp.errorhandler(WizardError)
def wizard_error(error):
    """Contract violations from the client are 400s, not crashes."""
    return jsonify({'ok': False, 'error': str(error)}), 400


# Main routes
@main_bp.route('/')
def index():
    """Render the wizard at its current step."""
    wizard = load_wizard()
    validation = wizard.validate()
    review = build_review(wizard.form_data, validation) if wizard.current_step == REVIEW_STEP else None
    return render_template(
        'index.html',
        wizard=wizard,
        steps=wizard.steps_overview(validation),
        validation=validation,
        review=review,
        current_section=validation.sections.get(wizard.current.section_key),
        reference_data=reference_data_to_dict()
    )


# API Routes
@api_bp.route('/reference-data')
def api_reference_data():
    return jsonify({'ok': True, **reference_data_to_dict()}), 200


@api_bp.route('/ig-codes')
def api_search_ig_codes():
    """Search the IG code catalog by code or initiative name."""
    query = request.args.get('q', '')
    return jsonify({'ok': True, 'results': search_ig_codes(query)}), 200


@api_bp.route('/ig-codes/<code>')
def api_ig_code(code: str):
    entry = get_ig_code(code)
    if entry is None:
        return jsonify({'ok': False, 'error': f'Unknown IG code: {code}'}), 404
    return jsonify({'ok': True, 'ig_code': entry}), 200


@api_bp.route('/validate', methods=['POST'])
@rate_limit('validate')
def api_validate():
    """
    Validate a complete form payload without touching the session.

    Validation failures are data: this returns 200 either way.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({'ok': False, 'error': 'No JSON payload provided'}), 400

    result = validate_form(build_form_data(sanitize_payload(payload)))
    return jsonify({'ok': True, 'validation': result.to_dict()}), 200


@api_bp.route('/wizard')
@rate_limit('wizard')
def api_wizard():
    return wizard_response(load_wizard())


@api_bp.route('/wizard/reset', methods=['POST'])
def api_wizard_reset():
    """Discard the current wizard and start again at step 0."""
    session.pop(WIZARD_SESSION_KEY, None)
    wizard = IntakeWizard()
    save_wizard(wizard)
    return wizard_response(wizard)


@api_bp.route('/wizard/sections/<section_key>', methods=['POST'])
@rate_limit('wizard')
def api_update_section(section_key: str):
    """Shallow-merge a partial update into one section."""
    wizard = load_wizard()
    partial = request.get_json(silent=True)
    if isinstance(partial, dict):
        partial = sanitize_payload(partial)
    wizard.update_section(section_key, partial)
    save_wizard(wizard)

    section = wizard.validate().sections[section_key]
    return wizard_response(wizard, section_validation=section.to_dict())


@api_bp.route('/wizard/next', methods=['POST'])
@rate_limit('wizard')
def api_next():
    wizard = load_wizard()
    wizard.go_next()
    save_wizard(wizard)
    return wizard_response(wizard)


@api_bp.route('/wizard/previous', methods=['POST'])
@rate_limit('wizard')
def api_previous():
    wizard = load_wizard()
    wizard.go_previous()
    save_wizard(wizard)
    return wizard_response(wizard)


@api_bp.route('/wizard/jump/<int:step>', methods=['POST'])
@rate_limit('wizard')
def api_jump(step: int):
    wizard = load_wizard()
    wizard.jump_to(step)
    save_wizard(wizard)
    return wizard_response(wizard)


@api_bp.route('/wizard/review')
@rate_limit('wizard')
def api_review():
    wizard = load_wizard()
    return jsonify({'ok': True, 'review': build_review(wizard.form_data).to_dict()}), 200


@api_bp.route('/wizard/submit', methods=['POST'])
@rate_limit('submit')
def api_submit():
    """
    Submit the wizard's form.

    Returns 422 with the review when the form is incomplete, 502 when the
    store rejects the submission, 200 with the submission ID otherwise.
    Form data and step are kept in every case.
    """
    wizard = load_wizard()
    review = build_review(wizard.form_data)
    if not review.can_submit:
        return jsonify({
            'ok': False,
            'error': 'Please complete all required fields before submitting.',
            'review': review.to_dict()
        }), 422

    store = SubmissionStore(user_agent=request.headers.get('User-Agent'))
    result = wizard.submit(store)
    save_wizard(wizard)

    if not result.success:
        log_submission_failed(result.message)
        return jsonify({'ok': False, 'error': result.message, 'result': result.to_dict()}), 502

    submission = store.get(result.submission_id)
    if submission is not None:
        log_submission_created(submission)

    return jsonify({'ok': True, 'result': result.to_dict()}), 200


@api_bp.route('/wizard/ai-feedback/<section_key>', methods=['POST'])
@rate_limit('ai_feedback')
def api_ai_feedback(section_key: str):
    """Ask the AI reviewer about one section and store its answer."""
    if section_key not in SECTION_TYPES:
        raise WizardError(f'Unknown section: {section_key}')

    wizard = load_wizard()
    title = next(step.title for step in STEPS if step.section_key == section_key)
    client = current_app.extensions['intake_ai_client']

    response = client.validate(
        title,
        wizard.form_data.section(section_key).to_dict(),
        get_acceptance_criteria(section_key)
    )
    entry = wizard.add_ai_feedback(section_key, response.to_dict())
    save_wizard(wizard)

    log_ai_feedback_requested(section_key, entry.completeness_score, response.is_fallback)

    return jsonify({
        'ok': True,
        'section_key': section_key,
        'feedback': entry.to_dict(),
        'is_fallback': response.is_fallback
    }), 200


@api_bp.route('/ai/test-connection')
@rate_limit('ai_feedback')
def api_ai_test_connection():
    result = current_app.extensions['intake_ai_client'].test_connection()
    return jsonify({'ok': result.success, **result.to_dict()}), 200


@api_bp.route('/wizard/briefing.pdf')
@rate_limit('wizard')
def api_briefing():
    """
    Download a briefing of the wizard's current data.

    Incomplete forms are rendered as-is; before submission the reference
    reads DRAFT.
    """
    wizard = load_wizard()
    reference = wizard.submission_id or 'DRAFT'
    pdf_bytes = render_briefing(wizard.form_data, reference)

    log_briefing_generated(reference, calculate_sha256(pdf_bytes))

    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=briefing_filename(reference)
    )


# Admin routes

def _parse_date(value: str):
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        flash(f'Ignoring invalid date: {value}', 'error')
        return None


def _list_filters() -> dict:
    status = request.args.get('status', '')
    if status and status not in SubmissionStatus.values():
        flash(f'Ignoring unknown status: {status}', 'error')
        status = ''
    return {
        'status': status or None,
        'submitter': request.args.get('submitter', '').strip() or None,
        'date_from': _parse_date(request.args.get('date_from', '')),
        'date_to': _parse_date(request.args.get('date_to', '')),
    }


def _find_submission_or_404(store: SubmissionStore, submission_id: str):
    submission = store.get(submission_id)
    if submission is None:
        return None, (render_template('base.html', error='Submission not found'), 404)
    return submission, None


@admin_bp.route('/login', methods=['GET', 'POST'])
@rate_limit('admin_login')
def login():
    """Admin login page."""
    if not admin_configured():
        return render_template('admin_login.html',
                               error='Admin access is not configured'), 503

    if request.method == 'POST':
        username = request.form.get('username', '')
        password = request.form.get('password', '')

        if username == current_app.config['ADMIN_USERNAME'] and \
                verify_admin_password(password, current_app.config['ADMIN_PASSWORD_HASH']):
            sign_in_reviewer(username)
            log_admin_login(username=username, success=True)
            return redirect(url_for('admin.list_submissions'))

        log_admin_login(username=username, success=False, error='Invalid credentials')
        current_app.logger.warning(f'Failed admin login for {username!r} from {get_client_ip()}')
        flash('Invalid username or password', 'error')
        return render_template('admin_login.html'), 401

    return render_template('admin_login.html')


@admin_bp.route('/logout')
def logout():
    username = sign_out_reviewer('logout')
    if username:
        log_admin_logout(username)
    return redirect(url_for('admin.login'))


@admin_bp.route('/')
@admin_required
def dashboard():
    return redirect(url_for('admin.list_submissions'))


@admin_bp.route('/submissions')
@admin_required
@rate_limit('admin_actions')
def list_submissions():
    """Filtered, paginated submission list with status counts."""
    page = request.args.get('page', 1, type=int)
    filters = _list_filters()

    store = SubmissionStore()
    pagination = store.query(**filters).paginate(
        page=page, per_page=ADMIN_PAGE_SIZE, error_out=False
    )

    return render_template('admin_list.html',
                           submissions=pagination.items,
                           pagination=pagination,
                           counts=store.status_counts(),
                           statuses=SubmissionStatus.values(),
                           filters=request.args)


@admin_bp.route('/submissions/export.csv')
@admin_required
@rate_limit('admin_actions')
def export_submissions():
    """Download the filtered submissions as CSV."""
    filters = _list_filters()
    result = SubmissionStore().list(**filters)
    if not result.success:
        flash('Could not load submissions for export', 'error')
        return redirect(url_for('admin.list_submissions'))

    log_submissions_exported(
        g.admin_username,
        len(result.records),
        {k: str(v) for k, v in filters.items() if v}
    )

    return Response(
        export_submissions_csv(result.records),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={export_filename(datetime.utcnow().date())}'}
    )


@admin_bp.route('/submissions/<submission_id>')
@admin_required
@rate_limit('admin_actions')
def view_submission(submission_id: str):
    """View a single submission with its audit trail."""
    submission, not_found = _find_submission_or_404(SubmissionStore(), submission_id)
    if not_found:
        return not_found

    log_admin_submission_viewed(submission, g.admin_username)

    audit_logs = AuditLog.query.filter_by(submission_id=submission.id) \
        .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).all()

    return render_template('admin_detail.html',
                           submission=submission,
                           form_data=build_form_data(submission.get_payload()),
                           statuses=SubmissionStatus.values(),
                           audit_logs=audit_logs)


@admin_bp.route('/submissions/<submission_id>/status', methods=['POST'])
@admin_required
@rate_limit('admin_actions')
def update_submission_status(submission_id: str):
    """Change review status, and optionally reviewer and notes."""
    store = SubmissionStore()
    submission, not_found = _find_submission_or_404(store, submission_id)
    if not_found:
        return not_found

    old_status = submission.status
    # Absent form fields leave reviewer and notes untouched
    reviewer = request.form.get('assigned_reviewer')
    notes = request.form.get('review_notes')
    result = store.update_status(
        submission_id,
        request.form.get('status', ''),
        reviewer=reviewer.strip() if reviewer is not None else None,
        notes=notes.strip() if notes is not None else None
    )

    log_status_updated(submission, g.admin_username, old_status,
                       success=result.success, error=result.error or None)

    if result.success:
        flash(f'{submission_id} updated to {submission.status}', 'success')
    else:
        flash(f'Could not update {submission_id}: {result.error}', 'error')
    return redirect(url_for('admin.view_submission', submission_id=submission_id))


@admin_bp.route('/submissions/<submission_id>/briefing.pdf')
@admin_required
@rate_limit('admin_actions')
def download_submission_briefing(submission_id: str):
    """Briefing PDF of a stored submission, dated at submission time."""
    submission, not_found = _find_submission_or_404(SubmissionStore(), submission_id)
    if not_found:
        return not_found

    pdf_bytes = render_briefing(submission.get_payload(), submission.submission_id,
                                generated_at=submission.created_at)
    log_briefing_generated(submission.submission_id, calculate_sha256(pdf_bytes),
                           submission_id=submission.id, actor_type='admin',
                           actor_id=g.admin_username)

    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=briefing_filename(submission.submission_id)
    )
