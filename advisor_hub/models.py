"""Database models for the advisor directory and the vehicle marketplace."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy.sql import func

from .extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid4())


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _money(value: Any) -> Optional[str]:
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Advisor directory
# ---------------------------------------------------------------------------


class Advisor(db.Model):
    """A directory listing for one CPA or wealth manager.

    The slug is the public key of the profile page; once a row exists it is
    looked up by slug or id and never re-derived from the other columns.
    """

    __tablename__ = "advisors"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.Text, nullable=False)
    firm_name = db.Column(db.Text, nullable=True)
    designation = db.Column(db.Text, nullable=False, index=True)
    city = db.Column(db.Text, nullable=False, index=True)
    state = db.Column(db.String(2), nullable=False, index=True)
    zip_code = db.Column(db.String(10), nullable=False, index=True)
    website_url = db.Column(db.Text, nullable=True)
    linkedin_url = db.Column(db.Text, nullable=True)
    bio = db.Column(db.Text, nullable=True)
    specialties = db.Column(db.JSON, nullable=True)
    is_verified_strategist = db.Column(db.Boolean, nullable=False, default=False)
    slug = db.Column(db.String(100), nullable=False, unique=True, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    def touch(self) -> None:
        """Bump updated_at on the instance so callers see it without a refresh."""

        self.updated_at = _utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "firmName": self.firm_name,
            "designation": self.designation,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "websiteUrl": self.website_url,
            "linkedinUrl": self.linkedin_url,
            "bio": self.bio,
            "specialties": list(self.specialties or []),
            "isVerifiedStrategist": bool(self.is_verified_strategist),
            "slug": self.slug,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Lead(db.Model):
    """Contact intent captured from a profile page. Rows are append-only."""

    __tablename__ = "leads"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    advisor_id = db.Column(
        db.String(36), db.ForeignKey("advisors.id"), nullable=False, index=True
    )
    user_name = db.Column(db.Text, nullable=False)
    user_email = db.Column(db.Text, nullable=False)
    message = db.Column(db.Text, nullable=True)
    estimated_revenue = db.Column(db.String(16), nullable=True)
    interested_in_captives = db.Column(db.Boolean, nullable=False, default=False)
    has_strategic_cpa = db.Column(db.String(32), nullable=True)
    source_page = db.Column(db.Text, nullable=False, index=True)
    source_type = db.Column(db.String(32), nullable=False, default="reinsurance_cta")
    created_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "advisorId": self.advisor_id,
            "userName": self.user_name,
            "userEmail": self.user_email,
            "message": self.message,
            "estimatedRevenue": self.estimated_revenue,
            "interestedInCaptives": bool(self.interested_in_captives),
            "hasStrategicCpa": self.has_strategic_cpa,
            "sourcePage": self.source_page,
            "sourceType": self.source_type,
            "createdAt": _iso(self.created_at),
        }


class BlogPost(db.Model):
    __tablename__ = "blog_posts"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    title = db.Column(db.Text, nullable=False)
    slug = db.Column(db.String(100), nullable=False, unique=True, index=True)
    excerpt = db.Column(db.Text, nullable=False)
    content = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(16), nullable=False, default="strategy")
    read_time = db.Column(db.String(32), nullable=False)
    is_published = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "excerpt": self.excerpt,
            "content": self.content,
            "category": self.category,
            "readTime": self.read_time,
            "isPublished": bool(self.is_published),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class AdminUser(db.Model):
    __tablename__ = "admin_users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Vehicle marketplace
# ---------------------------------------------------------------------------


class Dealer(db.Model):
    __tablename__ = "dealers"

    id = db.Column(db.Integer, primary_key=True)
    dealer_name = db.Column(db.Text, nullable=False)
    address = db.Column(db.Text, nullable=False)
    contact_name = db.Column(db.Text, nullable=False)
    email = db.Column(db.Text, nullable=False)
    phone = db.Column(db.Text, nullable=False)
    billing_contact_name = db.Column(db.Text, nullable=False)
    billing_contact_email = db.Column(db.Text, nullable=False)
    billing_contact_phone = db.Column(db.Text, nullable=False)
    title_contact_name = db.Column(db.Text, nullable=False)
    title_contact_email = db.Column(db.Text, nullable=False)
    title_contact_phone = db.Column(db.Text, nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dealerName": self.dealer_name,
            "address": self.address,
            "contactName": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "billingContactName": self.billing_contact_name,
            "billingContactEmail": self.billing_contact_email,
            "billingContactPhone": self.billing_contact_phone,
            "titleContactName": self.title_contact_name,
            "titleContactEmail": self.title_contact_email,
            "titleContactPhone": self.title_contact_phone,
            "active": bool(self.active),
            "createdAt": _iso(self.created_at),
        }


class Vehicle(db.Model):
    """A listed vehicle. Status moves pending -> active -> sold, and sold -> active on relist."""

    __tablename__ = "vehicles"

    id = db.Column(db.Integer, primary_key=True)
    vin = db.Column(db.String(17), nullable=False)
    make = db.Column(db.Text, nullable=True)
    model = db.Column(db.Text, nullable=True)
    trim = db.Column(db.Text, nullable=True)
    year = db.Column(db.Integer, nullable=True)
    mileage = db.Column(db.Integer, nullable=True)
    price = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)
    condition = db.Column(db.Text, nullable=True)
    videos = db.Column(db.JSON, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending")
    in_queue = db.Column(db.Boolean, nullable=False, default=True)
    bill_of_sale = db.Column(db.Text, nullable=True)
    is_paid = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vin": self.vin,
            "make": self.make,
            "model": self.model,
            "trim": self.trim,
            "year": self.year,
            "mileage": self.mileage,
            "price": self.price,
            "description": self.description,
            "condition": self.condition,
            "videos": list(self.videos or []),
            "status": self.status,
            "inQueue": bool(self.in_queue),
            "billOfSale": self.bill_of_sale,
            "isPaid": bool(self.is_paid),
        }


class BuyCode(db.Model):
    __tablename__ = "buy_codes"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    dealer_id = db.Column(db.Integer, db.ForeignKey("dealers.id"), nullable=False)
    max_uses = db.Column(db.Integer, nullable=True)
    usage_count = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "dealerId": self.dealer_id,
            "maxUses": self.max_uses,
            "usageCount": self.usage_count,
            "active": bool(self.active),
            "createdAt": _iso(self.created_at),
            "expiresAt": _iso(self.expires_at),
        }


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=False, index=True)
    dealer_id = db.Column(db.Integer, db.ForeignKey("dealers.id"), nullable=False)
    buy_code_id = db.Column(db.Integer, db.ForeignKey("buy_codes.id"), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")
    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    bill_of_sale = db.Column(db.Text, nullable=True)
    cancelled = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vehicleId": self.vehicle_id,
            "dealerId": self.dealer_id,
            "buyCodeId": self.buy_code_id,
            "amount": _money(self.amount),
            "status": self.status,
            "isPaid": bool(self.is_paid),
            "billOfSale": self.bill_of_sale,
            "cancelled": bool(self.cancelled),
            "createdAt": _iso(self.created_at),
        }


class Offer(db.Model):
    __tablename__ = "offers"

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=False, index=True)
    dealer_id = db.Column(db.Integer, db.ForeignKey("dealers.id"), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")
    counter_amount = db.Column(db.Numeric(10, 2), nullable=True)
    counter_message = db.Column(db.Text, nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vehicleId": self.vehicle_id,
            "dealerId": self.dealer_id,
            "amount": _money(self.amount),
            "status": self.status,
            "counterAmount": _money(self.counter_amount),
            "counterMessage": self.counter_message,
            "expiresAt": _iso(self.expires_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class OfferActivity(db.Model):
    __tablename__ = "offer_activities"

    id = db.Column(db.Integer, primary_key=True)
    offer_id = db.Column(db.Integer, db.ForeignKey("offers.id"), nullable=False, index=True)
    actor_type = db.Column(db.String(16), nullable=False)
    actor_id = db.Column(db.Integer, nullable=True)
    action_type = db.Column(db.String(32), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=True)
    message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "offerId": self.offer_id,
            "actorType": self.actor_type,
            "actorId": self.actor_id,
            "actionType": self.action_type,
            "amount": _money(self.amount),
            "message": self.message,
            "createdAt": _iso(self.created_at),
        }
