"""Vehicle marketplace: dealers, buy codes, listings, purchases and offers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import BuyCode, Dealer, Offer, OfferActivity, Transaction, Vehicle

logger = logging.getLogger(__name__)


@dataclass
class MarketplaceError(Exception):
    """Raised when a marketplace rule is violated."""

    message: str
    status_code: int = 400

    def __str__(self) -> str:  # pragma: no cover - dataclass convenience
        return self.message


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def price_amount(price: Optional[str]) -> Decimal:
    """Listing prices are free text such as $12,500."""
    return Decimal((price or '0').replace(',', '').replace('$', '').strip() or '0')


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class MarketplaceService:
    def __init__(self, offer_ttl_hours: int = 48, clock: Callable[[], datetime] = _utcnow) -> None:
        self._offer_ttl = timedelta(hours=offer_ttl_hours)
        self._clock = clock

    # ------------------------------------------------------------------
    # Dealers
    # ------------------------------------------------------------------

    def create_dealer(self, data: Dict[str, Any]) -> Dealer:
        dealer = Dealer(**data)
        db.session.add(dealer)
        db.session.commit()
        logger.info('Created dealer %s (%s)', dealer.id, dealer.dealer_name)
        return dealer

    def list_dealers(self) -> List[Dealer]:
        return Dealer.query.order_by(Dealer.dealer_name).all()

    def get_dealer(self, dealer_id: int) -> Dealer:
        dealer = db.session.get(Dealer, dealer_id)
        if dealer is None:
            raise MarketplaceError('Dealer not found', 404)
        return dealer

    def update_dealer(self, dealer_id: int, changes: Dict[str, Any]) -> Dealer:
        dealer = self.get_dealer(dealer_id)
        for key, value in changes.items():
            setattr(dealer, key, value)
        db.session.commit()
        return dealer

    # ------------------------------------------------------------------
    # Buy codes
    # ------------------------------------------------------------------

    def create_buy_code(self, data: Dict[str, Any]) -> BuyCode:
        self.get_dealer(data['dealer_id'])
        buy_code = BuyCode(**data)
        db.session.add(buy_code)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise MarketplaceError('Buy code already exists', 409) from exc
        return buy_code

    def list_buy_codes(self, dealer_id: Optional[int] = None) -> List[BuyCode]:
        query = BuyCode.query
        if dealer_id is not None:
            query = query.filter_by(dealer_id=dealer_id)
        return query.order_by(BuyCode.created_at.desc()).all()

    def is_usable(self, buy_code: BuyCode) -> bool:
        if not buy_code.active:
            return False
        expires_at = _as_utc(buy_code.expires_at)
        if expires_at is not None and expires_at <= self._clock():
            return False
        if buy_code.max_uses is not None and buy_code.usage_count >= buy_code.max_uses:
            return False
        return True

    def resolve_buy_code(self, code: str) -> BuyCode:
        """Return the usable buy code for ``code`` and check its dealer is active."""

        buy_code = BuyCode.query.filter_by(code=code).first()
        if buy_code is None:
            raise MarketplaceError('Buy code not found', 404)
        if not self.is_usable(buy_code):
            raise MarketplaceError('Buy code is inactive, expired or used up', 400)
        if not self.get_dealer(buy_code.dealer_id).active:
            raise MarketplaceError('Dealer account is inactive', 403)
        return buy_code

    # ------------------------------------------------------------------
    # Vehicles
    # ------------------------------------------------------------------

    def create_vehicle(self, vin: str, videos: List[str]) -> Vehicle:
        vehicle = Vehicle(vin=vin, videos=list(videos), status='pending', in_queue=True)
        db.session.add(vehicle)
        db.session.commit()
        logger.info('Queued vehicle %s (%s)', vehicle.id, vehicle.vin)
        return vehicle

    def get_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = db.session.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise MarketplaceError('Vehicle not found', 404)
        return vehicle

    def complete_vehicle(self, vehicle_id: int, details: Dict[str, Any]) -> Vehicle:
        """Fill in the listing details and publish it: pending -> active."""

        vehicle = self.get_vehicle(vehicle_id)
        if vehicle.status == 'sold':
            raise MarketplaceError('Sold vehicles cannot be edited', 409)
        for key, value in details.items():
            setattr(vehicle, key, value)
        vehicle.status = 'active'
        vehicle.in_queue = False
        db.session.commit()
        return vehicle

    def list_active_vehicles(self) -> List[Vehicle]:
        return Vehicle.query.filter_by(status='active').order_by(Vehicle.id.desc()).all()

    def list_queue(self) -> List[Vehicle]:
        return Vehicle.query.filter_by(in_queue=True).order_by(Vehicle.id).all()

    def list_vehicles(self, status: Optional[str] = None) -> List[Vehicle]:
        query = Vehicle.query
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Vehicle.id.desc()).all()

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    def purchase(self, vehicle_id: int, code: str) -> Transaction:
        vehicle = self.get_vehicle(vehicle_id)
        if vehicle.status != 'active':
            raise MarketplaceError('Vehicle is not available for purchase', 409)
        buy_code = self.resolve_buy_code(code)

        transaction = Transaction(
            vehicle_id=vehicle.id,
            dealer_id=buy_code.dealer_id,
            buy_code_id=buy_code.id,
            amount=price_amount(vehicle.price),
            status='pending',
        )
        buy_code.usage_count += 1
        vehicle.status = 'sold'
        db.session.add(transaction)
        db.session.commit()
        logger.info('Vehicle %s sold to dealer %s', vehicle.id, buy_code.dealer_id)
        return transaction

    def relist(self, vehicle_id: int) -> Vehicle:
        """sold -> active; every live transaction for the vehicle is cancelled."""

        vehicle = self.get_vehicle(vehicle_id)
        if vehicle.status != 'sold':
            raise MarketplaceError('Only sold vehicles can be relisted', 409)

        cancelled = 0
        for transaction in Transaction.query.filter_by(vehicle_id=vehicle.id, cancelled=False):
            transaction.cancelled = True
            cancelled += 1
        vehicle.status = 'active'
        vehicle.is_paid = False
        vehicle.bill_of_sale = None
        db.session.commit()
        logger.info('Relisted vehicle %s (%d transaction(s) cancelled)', vehicle.id, cancelled)
        return vehicle

    def get_transaction(self, transaction_id: int) -> Transaction:
        transaction = db.session.get(Transaction, transaction_id)
        if transaction is None:
            raise MarketplaceError('Transaction not found', 404)
        return transaction

    def live_transaction(self, vehicle_id: int) -> Optional[Transaction]:
        return (
            Transaction.query.filter_by(vehicle_id=vehicle_id, cancelled=False)
            .order_by(Transaction.id.desc())
            .first()
        )

    def list_transactions(self, vehicle_id: Optional[int] = None) -> List[Transaction]:
        query = Transaction.query
        if vehicle_id is not None:
            query = query.filter_by(vehicle_id=vehicle_id)
        return query.order_by(Transaction.id.desc()).all()

    def mark_paid(self, transaction_id: int) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        if transaction.cancelled:
            raise MarketplaceError('Transaction was cancelled', 409)
        transaction.is_paid = True
        transaction.status = 'completed'
        self.get_vehicle(transaction.vehicle_id).is_paid = True
        db.session.commit()
        return transaction

    def attach_bill_of_sale(self, vehicle_id: int, url: str) -> Vehicle:
        vehicle = self.get_vehicle(vehicle_id)
        vehicle.bill_of_sale = url
        transaction = self.live_transaction(vehicle_id)
        if transaction is not None:
            transaction.bill_of_sale = url
        db.session.commit()
        return vehicle

    # ------------------------------------------------------------------
    # Offers
    # ------------------------------------------------------------------

    def _record(
        self,
        offer: Offer,
        actor_type: str,
        action_type: str,
        actor_id: Optional[int] = None,
        amount: Optional[Decimal] = None,
        message: Optional[str] = None,
    ) -> None:
        db.session.add(
            OfferActivity(
                offer_id=offer.id,
                actor_type=actor_type,
                actor_id=actor_id,
                action_type=action_type,
                amount=amount,
                message=message,
            )
        )

    def get_offer(self, offer_id: int) -> Offer:
        offer = db.session.get(Offer, offer_id)
        if offer is None:
            raise MarketplaceError('Offer not found', 404)
        return offer

    def _ensure_open(self, offer: Offer, allowed: tuple) -> None:
        if offer.status in allowed and _as_utc(offer.expires_at) <= self._clock():
            offer.status = 'expired'
            self._record(offer, 'admin', 'offer_expired')
            db.session.commit()
            raise MarketplaceError('Offer has expired', 409)
        if offer.status not in allowed:
            raise MarketplaceError(f'Offer is {offer.status}', 409)

    def submit_offer(self, vehicle_id: int, code: str, amount: Decimal) -> Offer:
        if amount <= 0:
            raise MarketplaceError('Offer amount must be positive', 400)
        vehicle = self.get_vehicle(vehicle_id)
        if vehicle.status != 'active':
            raise MarketplaceError('Vehicle is not accepting offers', 409)
        buy_code = self.resolve_buy_code(code)

        now = self._clock()
        offer = Offer(
            vehicle_id=vehicle.id,
            dealer_id=buy_code.dealer_id,
            amount=amount,
            status='pending',
            expires_at=now + self._offer_ttl,
            created_at=now,
            updated_at=now,
        )
        db.session.add(offer)
        db.session.flush()
        self._record(offer, 'dealer', 'offer_submitted', buy_code.dealer_id, amount)
        db.session.commit()
        logger.info('Offer %s on vehicle %s from dealer %s', offer.id, vehicle.id, buy_code.dealer_id)
        return offer

    def counter_offer(
        self, offer_id: int, amount: Decimal, message: Optional[str] = None, admin_id: Optional[int] = None
    ) -> Offer:
        offer = self.get_offer(offer_id)
        self._ensure_open(offer, ('pending',))
        offer.status = 'countered'
        offer.counter_amount = amount
        offer.counter_message = message
        offer.updated_at = self._clock()
        self._record(offer, 'admin', 'offer_countered', admin_id, amount, message)
        db.session.commit()
        return offer

    def admin_respond(self, offer_id: int, accept: bool, admin_id: Optional[int] = None) -> Offer:
        offer = self.get_offer(offer_id)
        self._ensure_open(offer, ('pending',))
        return self._close(offer, accept, 'admin', admin_id, offer.amount)

    def dealer_respond(self, offer_id: int, code: str, accept: bool) -> Offer:
        """The dealer answers an admin counter with the buy code that placed the offer."""

        offer = self.get_offer(offer_id)
        buy_code = self.resolve_buy_code(code)
        if buy_code.dealer_id != offer.dealer_id:
            raise MarketplaceError('Offer belongs to another dealer', 403)
        self._ensure_open(offer, ('countered',))
        return self._close(offer, accept, 'dealer', buy_code.dealer_id, offer.counter_amount)

    def _close(
        self, offer: Offer, accept: bool, actor_type: str, actor_id: Optional[int], amount: Optional[Decimal]
    ) -> Offer:
        offer.status = 'accepted' if accept else 'declined'
        offer.updated_at = self._clock()
        action = 'offer_accepted' if accept else 'offer_declined'
        self._record(offer, actor_type, action, actor_id, amount)
        db.session.commit()
        logger.info('Offer %s %s by %s', offer.id, offer.status, actor_type)
        return offer

    def expire_stale_offers(self) -> int:
        now = self._clock()
        expired = 0
        for offer in Offer.query.filter(Offer.status.in_(('pending', 'countered'))):
            if _as_utc(offer.expires_at) <= now:
                offer.status = 'expired'
                self._record(offer, 'admin', 'offer_expired')
                expired += 1
        db.session.commit()
        return expired

    def list_offers(self, vehicle_id: Optional[int] = None, status: Optional[str] = None) -> List[Offer]:
        query = Offer.query
        if vehicle_id is not None:
            query = query.filter_by(vehicle_id=vehicle_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Offer.created_at.desc()).all()

    def list_activities(self, offer_id: int) -> List[OfferActivity]:
        self.get_offer(offer_id)
        return (
            OfferActivity.query.filter_by(offer_id=offer_id)
            .order_by(OfferActivity.created_at, OfferActivity.id)
            .all()
        )
