from __future__ import annotations

import logging
import random
from datetime import datetime, time, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..ingestion.errors import DuplicateAdvisorError
from ..models import Advisor, AdminUser, BlogPost, Lead
from ..schemas import AdvisorSearch
from ..slugs import city_slug, slugify

logger = logging.getLogger(__name__)

STRATEGIST_KEYWORDS = ('tax strategy', 'reinsurance', 'captive')


class DuplicateBlogPostError(Exception):
    """A blog post with the same slug already exists."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f'A blog post with this slug already exists: {slug}')


class StorageService:
    """Persistence layer for advisors, leads, blog posts and admin users.

    All methods use the Flask-SQLAlchemy session and must run inside an
    application context. Each write commits on its own; a failed write is
    rolled back before the error propagates.
    """

    # ------------------------------------------------------------------
    # Advisors
    # ------------------------------------------------------------------

    def search_advisors(self, search: Optional[AdvisorSearch] = None) -> List[Advisor]:
        search = search or AdvisorSearch()
        query = Advisor.query

        if search.city:
            query = query.filter(Advisor.city.ilike(f'%{search.city}%'))
        if search.state:
            query = query.filter(Advisor.state == search.state.upper())
        if search.zip_code:
            query = query.filter(Advisor.zip_code == search.zip_code)
        if search.designation:
            query = query.filter(Advisor.designation == search.designation)
        if search.is_verified_strategist is not None:
            query = query.filter(Advisor.is_verified_strategist.is_(search.is_verified_strategist))
        if search.query:
            pattern = f'%{search.query}%'
            query = query.filter(
                or_(
                    Advisor.name.ilike(pattern),
                    Advisor.city.ilike(pattern),
                    Advisor.firm_name.ilike(pattern),
                )
            )

        query = query.order_by(Advisor.created_at, Advisor.id)

        if search.specialty:
            # Specialties live in a JSON column; filter in Python before paging.
            needle = search.specialty.lower()
            matches = [
                advisor
                for advisor in query.all()
                if any(needle in (s or '').lower() for s in advisor.specialties or [])
            ]
            return matches[search.offset : search.offset + search.limit]

        return query.offset(search.offset).limit(search.limit).all()

    def get_advisor_by_slug(self, slug: str) -> Optional[Advisor]:
        return Advisor.query.filter_by(slug=slug).first()

    def get_advisor_by_id(self, advisor_id: str) -> Optional[Advisor]:
        return db.session.get(Advisor, advisor_id)

    def advisor_exists(self, slug: Optional[str] = None, website_url: Optional[str] = None) -> bool:
        """Exact-match existence check on slug or website. False when both are empty."""

        conditions = []
        if slug:
            conditions.append(Advisor.slug == slug)
        if website_url:
            conditions.append(Advisor.website_url == website_url)
        if not conditions:
            return False
        return db.session.query(Advisor.id).filter(or_(*conditions)).first() is not None

    def create_advisor(self, data: Dict[str, Any]) -> Advisor:
        advisor = Advisor(**data)
        db.session.add(advisor)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            logger.info('Advisor insert collided on slug %s', data.get('slug'))
            raise DuplicateAdvisorError(data.get('slug', ''), data.get('website_url')) from exc
        except SQLAlchemyError:
            db.session.rollback()
            raise
        logger.info('Created advisor %s (%s)', advisor.name, advisor.slug)
        return advisor

    def update_advisor(self, advisor_id: str, changes: Dict[str, Any]) -> Optional[Advisor]:
        advisor = self.get_advisor_by_id(advisor_id)
        if advisor is None:
            return None
        for key, value in changes.items():
            setattr(advisor, key, value)
        advisor.touch()
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise DuplicateAdvisorError(changes.get('slug', advisor.slug)) from exc
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return advisor

    def get_all_advisor_slugs(self) -> List[Tuple[str, datetime]]:
        return [(row.slug, row.updated_at) for row in db.session.query(Advisor.slug, Advisor.updated_at)]

    def get_random_strategists(self, limit: int = 3) -> List[Advisor]:
        """Random advisors whose specialties mention tax strategy, reinsurance or captives."""

        strategists = [
            advisor
            for advisor in Advisor.query.all()
            if any(
                keyword in (specialty or '').lower()
                for specialty in advisor.specialties or []
                for keyword in STRATEGIST_KEYWORDS
            )
        ]
        return random.sample(strategists, min(limit, len(strategists)))

    # ------------------------------------------------------------------
    # Directory hubs
    # ------------------------------------------------------------------

    def get_unique_specialties(self) -> List[Dict[str, Any]]:
        """Specialties with advisor counts, most common first."""

        counts: Dict[str, Dict[str, Any]] = {}
        for specialties, in db.session.query(Advisor.specialties):
            for specialty in {s for s in specialties or [] if s}:
                slug = slugify(specialty)
                entry = counts.setdefault(slug, {'specialty': specialty, 'slug': slug, 'count': 0})
                entry['count'] += 1
        return sorted(counts.values(), key=lambda item: (-item['count'], item['specialty']))

    def get_unique_cities(self) -> List[Dict[str, Any]]:
        """Cities with advisor counts, most populated first."""

        rows = (
            db.session.query(Advisor.city, Advisor.state, func.count(Advisor.id))
            .group_by(Advisor.city, Advisor.state)
            .all()
        )
        cities = [
            {'city': city, 'state': state, 'slug': city_slug(city, state), 'count': count}
            for city, state, count in rows
        ]
        return sorted(cities, key=lambda item: (-item['count'], item['city'], item['state']))

    def get_specialty_from_slug(self, slug: str) -> Optional[Dict[str, str]]:
        for entry in self.get_unique_specialties():
            if entry['slug'] == slug:
                return {'specialty': entry['specialty']}
        return None

    def get_city_from_slug(self, slug: str) -> Optional[Dict[str, str]]:
        for entry in self.get_unique_cities():
            if entry['slug'] == slug:
                return {'city': entry['city'], 'state': entry['state']}
        return None

    def get_advisors_by_specialty(self, specialty_slug: str) -> List[Advisor]:
        return [
            advisor
            for advisor in Advisor.query.order_by(Advisor.name).all()
            if any(slugify(s or '') == specialty_slug for s in advisor.specialties or [])
        ]

    def get_advisors_by_city(self, slug: str) -> List[Advisor]:
        location = self.get_city_from_slug(slug)
        if location is None:
            return []
        return (
            Advisor.query.filter_by(city=location['city'], state=location['state'])
            .order_by(Advisor.name)
            .all()
        )

    def get_advisors_by_specialty_and_city(self, specialty_slug: str, city_slug_value: str) -> List[Advisor]:
        return [
            advisor
            for advisor in self.get_advisors_by_city(city_slug_value)
            if any(slugify(s or '') == specialty_slug for s in advisor.specialties or [])
        ]

    def get_all_specialty_city_combinations(self) -> List[Dict[str, Any]]:
        """Every (specialty, city) pair with at least one advisor: the golden pages."""

        combos: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for advisor in Advisor.query.all():
            location_slug = city_slug(advisor.city, advisor.state)
            for specialty in {s for s in advisor.specialties or [] if s}:
                specialty_slug = slugify(specialty)
                entry = combos.setdefault(
                    (specialty_slug, location_slug),
                    {
                        'specialty': specialty,
                        'specialtySlug': specialty_slug,
                        'city': advisor.city,
                        'state': advisor.state,
                        'citySlug': location_slug,
                        'count': 0,
                    },
                )
                entry['count'] += 1
        return sorted(combos.values(), key=lambda item: (-item['count'], item['specialtySlug'], item['citySlug']))

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    def create_lead(self, data: Dict[str, Any]) -> Lead:
        lead = Lead(**data)
        db.session.add(lead)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info('New lead: %s from %s (%s)', lead.user_name, lead.source_page, lead.source_type)
        return lead

    def get_leads_by_advisor(self, advisor_id: str) -> List[Lead]:
        return Lead.query.filter_by(advisor_id=advisor_id).order_by(Lead.created_at.desc()).all()

    def get_leads_by_source_page(self, source_page: str) -> List[Lead]:
        return Lead.query.filter_by(source_page=source_page).order_by(Lead.created_at.desc()).all()

    def get_all_leads(self) -> List[Lead]:
        return Lead.query.order_by(Lead.created_at.desc()).all()

    def get_stats(self) -> Dict[str, int]:
        start_of_day = datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)
        return {
            'totalAdvisors': db.session.query(func.count(Advisor.id)).scalar() or 0,
            'leadsToday': db.session.query(func.count(Lead.id))
            .filter(Lead.created_at >= start_of_day)
            .scalar()
            or 0,
            'totalLeads': db.session.query(func.count(Lead.id)).scalar() or 0,
        }

    # ------------------------------------------------------------------
    # Blog
    # ------------------------------------------------------------------

    def get_blog_posts(self) -> List[BlogPost]:
        return (
            BlogPost.query.filter_by(is_published=True)
            .order_by(BlogPost.created_at.desc())
            .all()
        )

    def get_blog_post_by_slug(self, slug: str) -> Optional[BlogPost]:
        return BlogPost.query.filter_by(slug=slug).first()

    def blog_slug_exists(self, slug: str) -> bool:
        return db.session.query(BlogPost.id).filter_by(slug=slug).first() is not None

    def create_blog_post(self, data: Dict[str, Any]) -> BlogPost:
        post = BlogPost(**data)
        db.session.add(post)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise DuplicateBlogPostError(data.get('slug', '')) from exc
        except SQLAlchemyError:
            db.session.rollback()
            raise
        logger.info('Created blog post %s', post.slug)
        return post

    def get_all_blog_slugs(self) -> List[Tuple[str, datetime]]:
        rows = db.session.query(BlogPost.slug, BlogPost.updated_at).filter(BlogPost.is_published.is_(True))
        return [(row.slug, row.updated_at) for row in rows]

    # ------------------------------------------------------------------
    # Admin users
    # ------------------------------------------------------------------

    def get_admin_by_email(self, email: str) -> Optional[AdminUser]:
        return AdminUser.query.filter(func.lower(AdminUser.email) == email.lower()).first()

    def create_admin_user(self, email: str) -> AdminUser:
        """Return the admin with ``email``, creating it when absent."""

        existing = self.get_admin_by_email(email)
        if existing is not None:
            return existing
        admin = AdminUser(email=email.lower())
        db.session.add(admin)
        db.session.commit()
        logger.info('Created admin user %s', admin.email)
        return admin
