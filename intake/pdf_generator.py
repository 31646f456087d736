"""
PDF Generator Module

Renders a "Project Briefing" for a submission using ReportLab.

Design Decisions:
=================

1. Plan, then render:
   - build_briefing_plan() turns the form into numbered sections of simple
     content blocks (key/value, label, paragraph, bullet)
   - render_briefing() lays the plan out with platypus
   - The plan is plain data, so tests can check content without parsing PDF

2. Determinism Enforcement:
   - rl_config.invariant is enabled
   - The printed date comes from the `generated_at` argument
   - Same form data + submission id + timestamp = identical bytes

3. Incomplete data:
   - The briefing never validates; empty values and lists are skipped
"""

import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.enums import TA_LEFT
from reportlab import rl_config

from intake.form_data import FormData, build_form_data
from intake.utils import escape_text, format_date

# Enable invariant mode for deterministic PDF generation
rl_config.invariant = 1


# Page dimensions
PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN_LEFT = 20 * mm
MARGIN_RIGHT = 20 * mm
MARGIN_TOP = 20 * mm
MARGIN_BOTTOM = 25 * mm

BRAND_PURPLE = colors.HexColor('#4B0082')
BRAND_GREEN = colors.HexColor('#00A651')
TEXT_GRAY = colors.HexColor('#333333')

DOCUMENT_TITLE = 'Project Briefing'
FOOTER_LABEL = 'TELUS CIO Project Intake'


@dataclass
class BriefingBlock:
    """One piece of briefing content."""
    type: str  # 'key_value', 'label', 'paragraph', 'bullet'
    content: Any


@dataclass
class BriefingSection:
    number: int
    title: str
    blocks: List[BriefingBlock] = field(default_factory=list)

    @property
    def heading(self) -> str:
        return f'{self.number}. {self.title}'

    def key_value(self, key: str, value: Optional[str]):
        if value:
            self.blocks.append(BriefingBlock('key_value', (key, value)))

    def text(self, label: str, value: str):
        if value and value.strip():
            self.blocks.append(BriefingBlock('label', label))
            self.blocks.append(BriefingBlock('paragraph', value))

    def bullets(self, label: str, items: List[str]):
        items = [i for i in items if i and i.strip()]
        if items:
            self.blocks.append(BriefingBlock('label', label))
            self.blocks.extend(BriefingBlock('bullet', i) for i in items)


def _yes_no(value: Optional[bool]) -> str:
    if value is None:
        return ''
    return 'Yes' if value else 'No'


def build_briefing_plan(form_data: FormData) -> List[BriefingSection]:
    """Lay the form out as numbered briefing sections."""
    submitter = form_data.submitter_info
    funding = form_data.funding_status
    objective = form_data.objective
    impact = form_data.business_impact
    cross_org = form_data.cross_org_context
    customer = form_data.customer_impact
    units = form_data.business_unit_impact

    s1 = BriefingSection(1, 'Submitter Information')
    s1.key_value('Name', submitter.name)
    s1.key_value('Email', submitter.email)
    s1.key_value('Organization', submitter.organization)
    s1.key_value('Role', submitter.role)
    s1.key_value('Department', submitter.department)

    s2 = BriefingSection(2, 'Project Overview')
    s2.key_value('Initiative Name', funding.initiative_name)
    s2.text('Project Description:', objective.description)
    s2.bullets('Organizational Alignment:', objective.organizational_alignment)

    s3 = BriefingSection(3, 'Business Impact')
    s3.key_value('Budget Range', impact.budget_range)
    s3.bullets('Expected Outcomes:', impact.expected_outcomes)
    s3.bullets('Success Metrics:', impact.success_metrics)
    s3.bullets('Timeline Milestones:', impact.timeline.milestones)
    s3.bullets('Critical Dates:', impact.timeline.critical_dates)

    s4 = BriefingSection(4, 'Cross-Organizational Context')
    s4.bullets('Stakeholder Groups:', [
        f'{g.group}: {g.impact}' for g in cross_org.stakeholder_groups if g.group or g.impact
    ])
    s4.bullets('Dependencies:', cross_org.dependencies)
    s4.text('Strategic Alignment:', cross_org.strategic_alignment)
    s4.text('Compliance Considerations:', cross_org.compliance_considerations)

    s5 = BriefingSection(5, 'Customer Impact')
    s5.bullets('User Groups:', [
        f'{g.group}: {g.estimated_users} users' for g in customer.user_groups if g.group
    ])
    s5.bullets('Service Changes:', customer.service_changes)
    s5.bullets('Experience Improvements:', customer.experience_improvements)

    s6 = BriefingSection(6, 'Business Unit Impact')
    s6.bullets('Impacted Units:', units.impacted_units)
    s6.key_value('Primary Unit', units.primary_unit)
    s6.key_value('Requires Convergence', _yes_no(units.requires_convergence))
    s6.text('Convergence Description:', units.convergence_description)
    s6.bullets('Impact Descriptions:', [
        f'{d.unit}: {d.description}' for d in units.impact_descriptions if d.description
    ])

    s7 = BriefingSection(7, 'Funding Status')
    if funding.is_funded is not None:
        s7.key_value('Funding Status', 'Funded' if funding.is_funded else 'Not Funded')
    s7.key_value('Initiative Name', funding.initiative_name)
    s7.key_value('IG Code', funding.ig_code)
    s7.key_value('Through TCT', _yes_no(funding.has_been_through_tct))

    return [s1, s2, s3, s4, s5, s6, s7]


def create_styles() -> Dict[str, ParagraphStyle]:
    """Create paragraph styles for the briefing."""
    styles = getSampleStyleSheet()

    return {
        'title': ParagraphStyle(
            'BriefingTitle',
            parent=styles['Heading1'],
            fontSize=20,
            leading=26,
            alignment=TA_LEFT,
            spaceAfter=4,
            fontName='Helvetica-Bold',
            textColor=BRAND_PURPLE,
        ),
        'meta': ParagraphStyle(
            'BriefingMeta',
            parent=styles['Normal'],
            fontSize=9,
            leading=13,
            fontName='Helvetica',
            textColor=TEXT_GRAY,
        ),
        'section_heading': ParagraphStyle(
            'SectionHeading',
            parent=styles['Heading2'],
            fontSize=13,
            leading=18,
            spaceBefore=16,
            spaceAfter=8,
            fontName='Helvetica-Bold',
            textColor=colors.white,
            backColor=BRAND_GREEN,
            borderPadding=(4, 6, 4, 6),
        ),
        'label': ParagraphStyle(
            'BlockLabel',
            parent=styles['Normal'],
            fontSize=10,
            leading=14,
            spaceBefore=4,
            fontName='Helvetica-Bold',
            textColor=TEXT_GRAY,
        ),
        'normal': ParagraphStyle(
            'BriefingNormal',
            parent=styles['Normal'],
            fontSize=10,
            leading=14,
            spaceAfter=4,
            fontName='Helvetica',
            textColor=TEXT_GRAY,
        ),
        'bullet_item': ParagraphStyle(
            'BulletItem',
            parent=styles['Normal'],
            fontSize=10,
            leading=14,
            leftIndent=18,
            firstLineIndent=-10,
            spaceAfter=2,
            fontName='Helvetica',
            textColor=TEXT_GRAY,
        ),
    }


def _render_section(section: BriefingSection, styles: Dict[str, ParagraphStyle]) -> List:
    elements = [Paragraph(escape_text(section.heading), styles['section_heading'])]

    rows = []
    for block in section.blocks:
        if block.type == 'key_value':
            key, value = block.content
            rows.append([
                Paragraph(escape_text(f'{key}:'), styles['label']),
                Paragraph(escape_text(value), styles['normal']),
            ])
            continue

        # Flush pending key/value rows so block order is preserved
        if rows:
            elements.append(_key_value_table(rows))
            rows = []

        if block.type == 'label':
            elements.append(Paragraph(escape_text(block.content), styles['label']))
        elif block.type == 'paragraph':
            elements.append(Paragraph(escape_text(block.content), styles['normal']))
        elif block.type == 'bullet':
            elements.append(Paragraph(f'&bull; {escape_text(block.content)}', styles['bullet_item']))

    if rows:
        elements.append(_key_value_table(rows))

    if not section.blocks:
        elements.append(Paragraph('Not provided', styles['normal']))

    elements.append(Spacer(1, 6))
    return elements


def _key_value_table(rows: List[List]) -> Table:
    table = Table(rows, colWidths=[45 * mm, None], hAlign='LEFT')
    table.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('LEFTPADDING', (0, 0), (-1, -1), 0),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 1),
        ('TOPPADDING', (0, 0), (-1, -1), 1),
    ]))
    return table


def _create_footer_callback(submission_id: str):
    def footer(canvas, doc):
        canvas.saveState()
        canvas.setFont('Helvetica', 8)
        canvas.setFillColor(TEXT_GRAY)
        canvas.drawString(MARGIN_LEFT, 12 * mm, f'{FOOTER_LABEL} | {submission_id}')
        canvas.drawRightString(PAGE_WIDTH - MARGIN_RIGHT, 12 * mm, f'Page {doc.page}')
        canvas.restoreState()
    return footer


def render_briefing(form_data, submission_id: str, generated_at: Optional[datetime] = None) -> bytes:
    """
    Render the project briefing PDF.

    Args:
        form_data: FormData or a raw form payload
        submission_id: Reference printed in the header and footer
        generated_at: Timestamp printed in the header

    Returns:
        PDF bytes
    """
    if not isinstance(form_data, FormData):
        form_data = build_form_data(form_data)
    if generated_at is None:
        generated_at = datetime.utcnow()

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN_LEFT,
        rightMargin=MARGIN_RIGHT,
        topMargin=MARGIN_TOP,
        bottomMargin=MARGIN_BOTTOM,
        title=f'{DOCUMENT_TITLE} {submission_id}',
        author=FOOTER_LABEL,
        creator=FOOTER_LABEL,
    )

    styles = create_styles()
    story = [
        Paragraph(DOCUMENT_TITLE, styles['title']),
        Paragraph(escape_text(f'Submission ID: {submission_id}'), styles['meta']),
        Paragraph(escape_text(f'Generated: {format_date(generated_at)}'), styles['meta']),
        Spacer(1, 8),
    ]
    for section in build_briefing_plan(form_data):
        story.extend(_render_section(section, styles))

    footer = _create_footer_callback(submission_id)
    doc.build(story, onFirstPage=footer, onLaterPages=footer)

    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes


def briefing_filename(submission_id: str) -> str:
    return f'TELUS-Project-Briefing-{submission_id}.pdf'
