from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from flask import Blueprint, Response, current_app, request, session

from .ingestion.errors import DuplicateAdvisorError
from .schemas import AdminLogin, AdvisorCreate, AdvisorSearch, AdvisorUpdate, BlogPostCreate, LeadCreate
from .services.storage_service import DuplicateBlogPostError
from .slugs import city_slug, slugify
from .utils.auth import AuthError, admin_required, verify_admin_credentials

main_bp = Blueprint('main', __name__)

logger = logging.getLogger(__name__)

SITE_NAME = 'Wealth Advisor Hub'
SEO_DESCRIPTION_LENGTH = 155
RELATED_CITY_LIMIT = 6
TOP_CITY_LIMIT = 10


def _storage():
    return current_app.storage_service


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _base_url() -> str:
    protocol = request.headers.get('X-Forwarded-Proto', request.scheme).split(',')[0].strip()
    return f'{protocol}://{request.host}'


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _serialize(items: List[Any]) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in items]


@main_bp.route('/api/health')
def health() -> Dict[str, Any]:
    return {'status': 'OK', 'timestamp': _now_iso(), 'service': 'Strategic Advisor Hub'}


# ---------------------------------------------------------------------------
# Advisors
# ---------------------------------------------------------------------------


@main_bp.route('/api/advisors')
def list_advisors():
    search = AdvisorSearch.model_validate(request.args.to_dict())
    return _serialize(_storage().search_advisors(search))


@main_bp.route('/api/advisors/slug/<slug>')
def get_advisor_by_slug(slug: str):
    advisor = _storage().get_advisor_by_slug(slug)
    if advisor is None:
        return {'error': 'Advisor not found'}, 404
    return advisor.to_dict()


@main_bp.route('/api/advisors/<advisor_id>')
def get_advisor(advisor_id: str):
    advisor = _storage().get_advisor_by_id(advisor_id)
    if advisor is None:
        return {'error': 'Advisor not found'}, 404
    return advisor.to_dict()


@main_bp.route('/api/advisors', methods=['POST'])
@admin_required
def create_advisor():
    payload = AdvisorCreate.model_validate(_json_body())
    data = payload.model_dump(exclude={'slug'})
    data['slug'] = payload.resolved_slug()
    try:
        advisor = _storage().create_advisor(data)
    except DuplicateAdvisorError:
        return {'error': 'An advisor with this slug already exists'}, 409
    return advisor.to_dict(), 201


@main_bp.route('/api/advisors/<advisor_id>', methods=['PATCH'])
@admin_required
def update_advisor(advisor_id: str):
    changes = AdvisorUpdate.model_validate(_json_body()).model_dump(exclude_unset=True)
    if changes.get('state'):
        changes['state'] = changes['state'].upper()
    try:
        advisor = _storage().update_advisor(advisor_id, changes)
    except DuplicateAdvisorError:
        return {'error': 'An advisor with this slug already exists'}, 409
    if advisor is None:
        return {'error': 'Advisor not found'}, 404
    return advisor.to_dict()


@main_bp.route('/api/advisors/<advisor_id>/leads')
@admin_required
def advisor_leads(advisor_id: str):
    return _serialize(_storage().get_leads_by_advisor(advisor_id))


@main_bp.route('/api/strategists/featured')
def featured_strategists():
    return _serialize(_storage().get_random_strategists(3))


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------


@main_bp.route('/api/leads', methods=['POST'])
def create_lead():
    payload = LeadCreate.model_validate(_json_body())
    storage = _storage()
    advisor = storage.get_advisor_by_id(payload.advisor_id)
    if advisor is None:
        return {'error': 'Advisor not found'}, 404

    lead = storage.create_lead(payload.model_dump())

    sent, reason = current_app.email_service.send_lead_notification(lead, advisor)
    if not sent:
        logger.info('Lead %s stored without notification: %s', lead.id, reason)

    return {
        'success': True,
        'message': "Thank you! We'll be in touch shortly.",
        'leadId': lead.id,
    }, 201


@main_bp.route('/api/leads')
@admin_required
def list_leads():
    source_page = request.args.get('sourcePage')
    storage = _storage()
    leads = storage.get_leads_by_source_page(source_page) if source_page else storage.get_all_leads()
    return _serialize(leads)


# ---------------------------------------------------------------------------
# Blog
# ---------------------------------------------------------------------------


@main_bp.route('/api/blog')
def list_blog_posts():
    return _serialize(_storage().get_blog_posts())


@main_bp.route('/api/blog/<slug>')
def get_blog_post(slug: str):
    post = _storage().get_blog_post_by_slug(slug)
    if post is None or not post.is_published:
        return {'error': 'Blog post not found'}, 404
    return post.to_dict()


@main_bp.route('/api/blog', methods=['POST'])
@admin_required
def create_blog_post():
    payload = BlogPostCreate.model_validate(_json_body())
    data = payload.model_dump(exclude={'slug'})
    data['slug'] = payload.resolved_slug()
    try:
        post = _storage().create_blog_post(data)
    except DuplicateBlogPostError:
        return {'error': 'A blog post with this slug already exists'}, 409
    return post.to_dict(), 201


# ---------------------------------------------------------------------------
# Directory hubs
# ---------------------------------------------------------------------------


@main_bp.route('/api/directory/specialties')
def directory_specialties():
    return _storage().get_unique_specialties()


@main_bp.route('/api/directory/cities')
def directory_cities():
    return _storage().get_unique_cities()


@main_bp.route('/api/directory/specialty/<slug>')
def specialty_hub(slug: str):
    storage = _storage()
    specialty = storage.get_specialty_from_slug(slug)
    if specialty is None:
        return {'error': 'Specialty not found'}, 404

    advisors = storage.get_advisors_by_specialty(slug)
    advisor_cities = {city_slug(a.city, a.state) for a in advisors}
    cities = [city for city in storage.get_unique_cities() if city['slug'] in advisor_cities]
    return {
        'specialty': specialty['specialty'],
        'slug': slug,
        'advisorCount': len(advisors),
        'advisors': _serialize(advisors),
        'cities': cities,
    }


@main_bp.route('/api/directory/location/<slug>')
def city_hub(slug: str):
    storage = _storage()
    location = storage.get_city_from_slug(slug)
    if location is None:
        return {'error': 'City not found'}, 404

    advisors = storage.get_advisors_by_city(slug)
    advisor_specialties = {slugify(s) for a in advisors for s in a.specialties or [] if s}
    specialties = [s for s in storage.get_unique_specialties() if s['slug'] in advisor_specialties]
    return {
        'city': location['city'],
        'state': location['state'],
        'slug': slug,
        'advisorCount': len(advisors),
        'advisors': _serialize(advisors),
        'specialties': specialties,
    }


@main_bp.route('/api/directory/sitemap-data')
def directory_sitemap_data():
    storage = _storage()
    return {
        'specialties': storage.get_unique_specialties(),
        'cities': storage.get_unique_cities(),
        'goldenPages': storage.get_all_specialty_city_combinations(),
    }


@main_bp.route('/api/directory/top-cities')
def top_cities():
    return _storage().get_unique_cities()[:TOP_CITY_LIMIT]


@main_bp.route('/api/directory/related/<state>')
def related_cities(state: str):
    cities = [c for c in _storage().get_unique_cities() if c['state'] == state.upper()]
    return cities[:RELATED_CITY_LIMIT]


@main_bp.route('/api/directory/<specialty_slug>/<location_slug>')
def golden_page(specialty_slug: str, location_slug: str):
    """One specialty in one city."""

    storage = _storage()
    specialty = storage.get_specialty_from_slug(specialty_slug)
    location = storage.get_city_from_slug(location_slug)
    if specialty is None or location is None:
        return {'error': 'Page not found'}, 404

    advisors = storage.get_advisors_by_specialty_and_city(specialty_slug, location_slug)
    return {
        'specialty': specialty['specialty'],
        'specialtySlug': specialty_slug,
        'city': location['city'],
        'state': location['state'],
        'citySlug': location_slug,
        'advisorCount': len(advisors),
        'advisors': _serialize(advisors),
    }


# ---------------------------------------------------------------------------
# SEO
# ---------------------------------------------------------------------------


def _sitemap_entry(loc: str, changefreq: str, priority: str, lastmod: Optional[str] = None) -> str:
    lines = ['  <url>', f'    <loc>{escape(loc)}</loc>']
    if lastmod:
        lines.append(f'    <lastmod>{lastmod}</lastmod>')
    lines.append(f'    <changefreq>{changefreq}</changefreq>')
    lines.append(f'    <priority>{priority}</priority>')
    lines.append('  </url>')
    return '\n'.join(lines)


def _day(value: Optional[datetime], default: str) -> str:
    return value.date().isoformat() if value else default


@main_bp.route('/sitemap.xml')
def sitemap() -> Response:
    storage = _storage()
    base_url = _base_url()
    today = datetime.now(timezone.utc).date().isoformat()

    entries = [
        _sitemap_entry(f'{base_url}/', 'weekly', '1.0'),
        _sitemap_entry(f'{base_url}/search', 'daily', '0.9'),
        _sitemap_entry(f'{base_url}/blog', 'daily', '0.9'),
    ]
    entries += [
        _sitemap_entry(f'{base_url}/blog/{slug}', 'weekly', '0.85', _day(updated, today))
        for slug, updated in storage.get_all_blog_slugs()
    ]
    entries += [
        _sitemap_entry(f'{base_url}/advisor/{slug}', 'weekly', '0.8', _day(updated, today))
        for slug, updated in storage.get_all_advisor_slugs()
    ]
    entries += [
        _sitemap_entry(f"{base_url}/directory/{item['slug']}", 'weekly', '0.85', today)
        for item in storage.get_unique_specialties()
    ]
    entries += [
        _sitemap_entry(f"{base_url}/directory/location/{item['slug']}", 'weekly', '0.85', today)
        for item in storage.get_unique_cities()
    ]
    entries += [
        _sitemap_entry(f"{base_url}/directory/{item['specialtySlug']}/{item['citySlug']}", 'weekly', '0.9', today)
        for item in storage.get_all_specialty_city_combinations()
    ]

    xml = '\n'.join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
            *entries,
            '</urlset>',
        ]
    )
    return Response(xml, status=200, content_type='application/xml; charset=utf-8')


@main_bp.route('/api/seo/advisor/<slug>')
def advisor_seo(slug: str):
    advisor = _storage().get_advisor_by_slug(slug)
    if advisor is None:
        return {'error': 'Advisor not found'}, 404

    title = f'{advisor.name} - Strategic {advisor.designation} in {advisor.city} | {SITE_NAME}'
    if advisor.bio:
        description = advisor.bio[:SEO_DESCRIPTION_LENGTH] + '...'
    else:
        focus = ', '.join((advisor.specialties or [])[:3]) or 'tax planning and wealth management'
        description = (
            f'Connect with {advisor.name}, a strategic {advisor.designation} in '
            f'{advisor.city}, {advisor.state}. Specializing in {focus}.'
        )

    return {
        'title': title,
        'description': description,
        'canonical': f'{_base_url()}/advisor/{advisor.slug}',
        'ogType': 'profile',
        'structuredData': {
            '@context': 'https://schema.org',
            '@type': 'FinancialService',
            'name': advisor.name,
            'description': description,
            'address': {
                '@type': 'PostalAddress',
                'addressLocality': advisor.city,
                'addressRegion': advisor.state,
                'postalCode': advisor.zip_code,
                'addressCountry': 'US',
            },
        },
    }


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@main_bp.route('/api/admin/login', methods=['POST'])
def admin_login():
    credentials = AdminLogin.model_validate(_json_body())
    try:
        admin = verify_admin_credentials(
            credentials.email,
            credentials.password,
            _storage(),
            current_app.settings.admin_password,
        )
    except AuthError as exc:
        logger.warning('Admin login failed for %s: %s', credentials.email, exc.message)
        return {'error': exc.message}, exc.status_code

    session.clear()
    session['admin'] = admin
    session.permanent = True
    logger.info('Admin %s logged in', admin['email'])
    return {'success': True, 'admin': admin}


@main_bp.route('/api/admin/logout', methods=['POST'])
def admin_logout():
    session.pop('admin', None)
    return {'success': True}


@main_bp.route('/api/admin/stats')
@admin_required
def admin_stats():
    return {'status': 'OK', 'timestamp': _now_iso(), 'stats': _storage().get_stats()}
