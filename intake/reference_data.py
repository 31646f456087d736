"""
Reference data for the intake form.

Organizations, business units, capabilities and the investment-governance
(IG) code catalog offered by the section editors, plus the acceptance
criteria sent to the AI reviewer for each section.
"""

from typing import Dict, List, Any, Optional


ORGANIZATIONS = ['CIO', 'TCS', 'TBS']

BUSINESS_UNITS = [
    'TELUS',
    'TELUS Health',
    'TELUS Agriculture & Consumer Goods',
    'TELUS International',
    'TELUS Digital',
    'TELUS Business Solutions',
    'TELUS Consumer Solutions',
]

CAPABILITIES = [
    'Customer Experience Management',
    'Digital Identity & Access Management',
    'Data Analytics & Business Intelligence',
    'Cloud Infrastructure',
    'Network Operations',
    'Cybersecurity',
    'Enterprise Applications',
    'Mobile Applications',
    'E-commerce Platform',
    'Customer Support Systems',
    'Billing & Revenue Management',
    'Supply Chain Management',
    'Human Resources Systems',
    'Financial Management',
    'Marketing Automation',
    'IoT Platform',
    'AI/ML Services',
    'API Management',
    'Content Management',
    'Collaboration Tools',
]

IG_CODES = [
    {
        'code': 'IG-2024-001',
        'name': 'Digital Transformation Initiative',
        'initiatives': [
            'Customer Portal Modernization',
            'Mobile App Enhancement',
            'Self-Service Capabilities',
        ],
    },
    {
        'code': 'IG-2024-002',
        'name': 'Infrastructure Modernization',
        'initiatives': [
            'Cloud Migration Phase 2',
            'Network Optimization',
            'Data Center Consolidation',
        ],
    },
    {
        'code': 'IG-2024-003',
        'name': 'Customer Experience Enhancement',
        'initiatives': [
            'Omnichannel Support',
            'Personalization Engine',
            'Real-time Analytics',
        ],
    },
    {
        'code': 'IG-2024-004',
        'name': 'Security & Compliance',
        'initiatives': [
            'Zero Trust Architecture',
            'Privacy Enhancement',
            'Compliance Automation',
        ],
    },
    {
        'code': 'IG-2024-005',
        'name': 'Operational Excellence',
        'initiatives': [
            'Process Automation',
            'Performance Optimization',
            'Cost Reduction',
        ],
    },
]

# Milestones say "at least three" here while validation only enforces one.
ACCEPTANCE_CRITERIA: Dict[str, List[str]] = {
    'submitter_info': [
        'Valid enterprise credentials verified',
        'User role permissions confirmed',
        'Department/division association validated',
        'Contact information complete',
    ],
    'funding_status': [
        'If funded - provide IG code',
        'If funded - provide initiative name',
        'If not funded - confirm TCT process status',
        'Initiative name provided',
        'Unique identifier present',
    ],
    'objective': [
        'Clear description of business problem or opportunity',
        'Description is between 50-200 characters',
        'Does not contain technical jargon or unexplained acronyms',
        'Alignment with organizational goals articulated',
    ],
    'business_impact': [
        'At least one specific, measurable outcome listed',
        'List at least one organizational goal, pillar, area of focus, or north star',
        'Minimum of one quantifiable metric provided',
        'Metric is relevant to stated outcomes',
        'Budget range provided',
        'Timeline expectations with milestones',
        'Initiative broken down into at least three major milestones',
    ],
    'cross_org_context': [
        'Identifies potential impacts or dependencies on other business units',
        'Specifies shared services or enterprise capabilities affected',
        'Identifies dependencies on work by other teams or vendors',
        'Identifies shared technologies utilized',
        'Identify stakeholder groups impacted (min 2)',
        'Describe impact for each group (25-100 words per group)',
        'Brief explanation of cross-organizational considerations (50-100 words)',
    ],
    'business_unit_impact': [
        'Business unit(s) impacted selected from predefined list',
        'Primary business unit specified if multiple selected',
        'Convergence assessment completed',
        'Impact description provided for each selected unit',
    ],
    'customer_impact': [
        'Minimum of one user group identified',
        'Estimated number of users per group provided',
        'At least one specific service change described (50-100 words)',
        'Minimum of two improvements listed',
        'Each improvement quantified if possible',
    ],
}


def get_ig_code(code: str) -> Optional[Dict[str, Any]]:
    """Look up an IG code entry by its exact code."""
    for entry in IG_CODES:
        if entry['code'] == code:
            return entry
    return None


def search_ig_codes(query: str) -> List[Dict[str, Any]]:
    """Case-insensitive search over IG codes and names."""
    needle = (query or '').lower()
    return [
        entry for entry in IG_CODES
        if needle in entry['code'].lower() or needle in entry['name'].lower()
    ]


def get_acceptance_criteria(section_key: str) -> List[str]:
    return list(ACCEPTANCE_CRITERIA.get(section_key, []))


def reference_data_to_dict() -> Dict[str, Any]:
    return {
        'organizations': list(ORGANIZATIONS),
        'business_units': list(BUSINESS_UNITS),
        'capabilities': list(CAPABILITIES),
        'ig_codes': [dict(entry) for entry in IG_CODES],
        'acceptance_criteria': {k: list(v) for k, v in ACCEPTANCE_CRITERIA.items()},
    }
