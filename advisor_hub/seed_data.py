"""Sample advisor profiles for local development and demos."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from .ingestion.errors import DuplicateAdvisorError

logger = logging.getLogger(__name__)

SAMPLE_ADVISORS: List[Dict[str, Any]] = [
    {
        'name': 'Michael Harrison',
        'firm_name': 'Harrison Wealth Partners',
        'designation': 'CPA & Wealth Manager',
        'city': 'Dallas',
        'state': 'TX',
        'zip_code': '75201',
        'website_url': 'https://harrisonwealth.com',
        'linkedin_url': 'https://linkedin.com/in/michaelharrison',
        'bio': (
            'With over 25 years of experience, Michael Harrison specializes in proactive tax strategies '
            'for high-net-worth individuals and business owners. His expertise in captive insurance and '
            'reinsurance domiciles has saved clients millions in tax liabilities.'
        ),
        'specialties': ['Reinsurance Domiciles', 'Captive Insurance', 'Tax Planning', 'Estate Planning'],
        'is_verified_strategist': True,
        'slug': 'michael-harrison-dallas-reinsurance',
    },
    {
        'name': 'Sarah Chen',
        'firm_name': 'Chen Financial Advisory',
        'designation': 'Wealth Manager',
        'city': 'San Francisco',
        'state': 'CA',
        'zip_code': '94105',
        'website_url': 'https://chenfinancial.com',
        'linkedin_url': 'https://linkedin.com/in/sarahchen',
        'bio': (
            'Sarah Chen is a fiduciary wealth advisor helping tech executives and entrepreneurs optimize '
            'their equity compensation and build multi-generational wealth through strategic tax planning.'
        ),
        'specialties': ['Equity Compensation', 'Tech Executive Planning', 'RSU Optimization', 'Wealth Transfer'],
        'is_verified_strategist': True,
        'slug': 'sarah-chen-san-francisco-equity',
    },
    {
        'name': 'Robert Williams',
        'firm_name': 'Williams & Associates CPAs',
        'designation': 'CPA',
        'city': 'New York',
        'state': 'NY',
        'zip_code': '10017',
        'website_url': 'https://williamscpa.com',
        'linkedin_url': 'https://linkedin.com/in/robertwilliamscpa',
        'bio': (
            'Robert Williams leads a boutique CPA firm focused on real estate investors and private equity '
            'professionals. His approach to cost segregation and 1031 exchanges has delivered exceptional results.'
        ),
        'specialties': ['Real Estate Tax', 'Cost Segregation', '1031 Exchanges', 'Private Equity'],
        'is_verified_strategist': True,
        'slug': 'robert-williams-new-york-real-estate',
    },
    {
        'name': 'Jennifer Martinez',
        'firm_name': 'Pinnacle Wealth Strategies',
        'designation': 'Wealth Manager',
        'city': 'Miami',
        'state': 'FL',
        'zip_code': '33131',
        'website_url': 'https://pinnaclewealthstrategies.com',
        'linkedin_url': 'https://linkedin.com/in/jennifermartinez',
        'bio': (
            'Jennifer Martinez specializes in cross-border wealth planning for international families and '
            'business owners, spanning domestic and offshore structures for asset protection.'
        ),
        'specialties': ['International Tax', 'Cross-Border Planning', 'Asset Protection', 'Family Office'],
        'is_verified_strategist': True,
        'slug': 'jennifer-martinez-miami-international',
    },
    {
        'name': 'David Thompson',
        'firm_name': 'Thompson Tax Advisors',
        'designation': 'CPA',
        'city': 'Chicago',
        'state': 'IL',
        'zip_code': '60601',
        'website_url': 'https://thompsontax.com',
        'linkedin_url': 'https://linkedin.com/in/davidthompsoncpa',
        'bio': (
            'David Thompson builds compliant tax strategies for medical professionals and practice owners, '
            'with a focus on retirement plan optimization and practice succession planning.'
        ),
        'specialties': ['Medical Practice Tax', 'Retirement Planning', 'Practice Succession', 'Defined Benefit Plans'],
        'is_verified_strategist': False,
        'slug': 'david-thompson-chicago-medical',
    },
    {
        'name': 'Amanda Foster',
        'firm_name': 'Foster Wealth Management',
        'designation': 'CPA & Wealth Manager',
        'city': 'Austin',
        'state': 'TX',
        'zip_code': '78701',
        'website_url': 'https://fosterwealth.com',
        'linkedin_url': 'https://linkedin.com/in/amandafoster',
        'bio': (
            'Amanda Foster combines CPA expertise with wealth management for startup founders and executives. '
            'She has guided over 200 clients through liquidity events and IPOs.'
        ),
        'specialties': ['Startup Tax', 'IPO Planning', 'Qualified Small Business Stock', 'Founder Planning'],
        'is_verified_strategist': True,
        'slug': 'amanda-foster-austin-startup',
    },
    {
        'name': 'James Richardson',
        'firm_name': 'Richardson Capital Partners',
        'designation': 'Wealth Manager',
        'city': 'Boston',
        'state': 'MA',
        'zip_code': '02110',
        'website_url': 'https://richardsoncapital.com',
        'linkedin_url': 'https://linkedin.com/in/jamesrichardson',
        'bio': (
            'James Richardson manages over $500M in assets for ultra-high-net-worth families, including '
            'alternative investments, tax-loss harvesting and philanthropic planning.'
        ),
        'specialties': ['Ultra-HNW Planning', 'Alternative Investments', 'Philanthropic Planning', 'Family Governance'],
        'is_verified_strategist': True,
        'slug': 'james-richardson-boston-uhnw',
    },
    {
        'name': 'Lisa Patel',
        'firm_name': 'Patel & Associates',
        'designation': 'CPA',
        'city': 'Houston',
        'state': 'TX',
        'zip_code': '77002',
        'website_url': 'https://patelcpa.com',
        'linkedin_url': 'https://linkedin.com/in/lisapatelcpa',
        'bio': (
            'Lisa Patel is an energy sector tax specialist with deep expertise in oil and gas taxation, '
            'depletion allowances and working interest structures.'
        ),
        'specialties': ['Oil & Gas Tax', 'Energy Investments', 'Depletion Strategies', 'Working Interests'],
        'is_verified_strategist': False,
        'slug': 'lisa-patel-houston-energy',
    },
    {
        'name': 'Christopher Blake',
        'firm_name': 'Blake Financial Group',
        'designation': 'Wealth Manager',
        'city': 'Scottsdale',
        'state': 'AZ',
        'zip_code': '85251',
        'website_url': 'https://blakefinancial.com',
        'linkedin_url': 'https://linkedin.com/in/christopherblake',
        'bio': (
            'Christopher Blake focuses on retirement income optimization and tax-efficient withdrawal '
            'strategies for retirees.'
        ),
        'specialties': ['Retirement Income', 'Social Security Optimization', 'Roth Conversions', 'Tax-Efficient Withdrawals'],
        'is_verified_strategist': False,
        'slug': 'christopher-blake-scottsdale-retirement',
    },
    {
        'name': 'Elizabeth Morgan',
        'firm_name': 'Morgan Strategic Advisors',
        'designation': 'CPA & Wealth Manager',
        'city': 'Atlanta',
        'state': 'GA',
        'zip_code': '30309',
        'website_url': 'https://morganstrategic.com',
        'linkedin_url': 'https://linkedin.com/in/elizabethmorgan',
        'bio': (
            'Elizabeth Morgan leads a financial planning practice for business owners, with expertise in '
            'entity structuring, exit planning and captive insurance.'
        ),
        'specialties': ['Business Exit Planning', 'Entity Structuring', 'Captive Insurance', 'Succession Planning'],
        'is_verified_strategist': True,
        'slug': 'elizabeth-morgan-atlanta-business',
    },
]


def seed_advisors(storage: Any) -> int:
    """Insert sample advisors whose slugs are not taken yet; return how many were added."""

    added = 0
    for record in SAMPLE_ADVISORS:
        if storage.advisor_exists(slug=record['slug']):
            logger.info('Skipped (already exists): %s', record['name'])
            continue
        try:
            storage.create_advisor(dict(record))
        except DuplicateAdvisorError:
            logger.info('Skipped (already exists): %s', record['name'])
            continue
        added += 1
    logger.info('Seeded %d of %d sample advisors', added, len(SAMPLE_ADVISORS))
    return added
