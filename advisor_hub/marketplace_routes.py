"""Vehicle marketplace endpoints.

Admins manage dealers, buy codes and listings; dealers act through their buy
code, so purchase and offer endpoints need no session.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, request, send_from_directory
from werkzeug.utils import secure_filename

from .schemas import (
    BuyCodeCreate,
    CounterOffer,
    DealerCreate,
    DealerOfferResponse,
    DealerUpdate,
    OfferCreate,
    OfferDecision,
    PurchaseRequest,
    VehicleDetails,
    VehicleInitial,
)
from .utils.auth import admin_required, current_admin

marketplace_bp = Blueprint('marketplace', __name__, url_prefix='/api/marketplace')

logger = logging.getLogger(__name__)

ALLOWED_BILL_OF_SALE_EXTENSIONS = {'pdf', 'png', 'jpg', 'jpeg'}


def _service():
    return current_app.marketplace_service


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _admin_id() -> Optional[int]:
    admin = current_admin() or {}
    return admin.get('id')


def _upload_dir() -> Path:
    return Path(current_app.config['UPLOAD_DIR'])


def _allowed_file(filename: str) -> bool:
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_BILL_OF_SALE_EXTENSIONS


# ---------------------------------------------------------------------------
# Dealers and buy codes
# ---------------------------------------------------------------------------


@marketplace_bp.route('/dealers', methods=['POST'])
@admin_required
def create_dealer():
    payload = DealerCreate.model_validate(_json_body())
    return _service().create_dealer(payload.model_dump()).to_dict(), 201


@marketplace_bp.route('/dealers')
@admin_required
def list_dealers():
    return [dealer.to_dict() for dealer in _service().list_dealers()]


@marketplace_bp.route('/dealers/<int:dealer_id>', methods=['PATCH'])
@admin_required
def update_dealer(dealer_id: int):
    changes = DealerUpdate.model_validate(_json_body()).model_dump(exclude_unset=True)
    return _service().update_dealer(dealer_id, changes).to_dict()


@marketplace_bp.route('/buy-codes', methods=['POST'])
@admin_required
def create_buy_code():
    payload = BuyCodeCreate.model_validate(_json_body())
    return _service().create_buy_code(payload.model_dump()).to_dict(), 201


@marketplace_bp.route('/buy-codes')
@admin_required
def list_buy_codes():
    dealer_id = request.args.get('dealerId', type=int)
    return [code.to_dict() for code in _service().list_buy_codes(dealer_id)]


# ---------------------------------------------------------------------------
# Vehicles
# ---------------------------------------------------------------------------


@marketplace_bp.route('/vehicles', methods=['POST'])
@admin_required
def create_vehicle():
    payload = VehicleInitial.model_validate(_json_body())
    return _service().create_vehicle(payload.vin, payload.videos).to_dict(), 201


@marketplace_bp.route('/vehicles/<int:vehicle_id>/complete', methods=['PUT'])
@admin_required
def complete_vehicle(vehicle_id: int):
    details = VehicleDetails.model_validate(_json_body())
    return _service().complete_vehicle(vehicle_id, details.model_dump()).to_dict()


@marketplace_bp.route('/vehicles')
def list_vehicles():
    return [vehicle.to_dict() for vehicle in _service().list_active_vehicles()]


@marketplace_bp.route('/vehicles/all')
@admin_required
def list_all_vehicles():
    status = request.args.get('status')
    return [vehicle.to_dict() for vehicle in _service().list_vehicles(status)]


@marketplace_bp.route('/vehicles/queue')
@admin_required
def vehicle_queue():
    return [vehicle.to_dict() for vehicle in _service().list_queue()]


@marketplace_bp.route('/vehicles/<int:vehicle_id>')
def get_vehicle(vehicle_id: int):
    vehicle = _service().get_vehicle(vehicle_id)
    if vehicle.status == 'pending' and current_admin() is None:
        return {'error': 'Vehicle not found'}, 404
    return vehicle.to_dict()


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------


@marketplace_bp.route('/vehicles/<int:vehicle_id>/purchase', methods=['POST'])
def purchase_vehicle(vehicle_id: int):
    payload = PurchaseRequest.model_validate(_json_body())
    transaction = _service().purchase(vehicle_id, payload.code)
    return {'success': True, 'transaction': transaction.to_dict()}, 201


@marketplace_bp.route('/vehicles/<int:vehicle_id>/relist', methods=['POST'])
@admin_required
def relist_vehicle(vehicle_id: int):
    return _service().relist(vehicle_id).to_dict()


@marketplace_bp.route('/transactions')
@admin_required
def list_transactions():
    vehicle_id = request.args.get('vehicleId', type=int)
    return [t.to_dict() for t in _service().list_transactions(vehicle_id)]


@marketplace_bp.route('/transactions/<int:transaction_id>/paid', methods=['POST'])
@admin_required
def mark_transaction_paid(transaction_id: int):
    return _service().mark_paid(transaction_id).to_dict()


@marketplace_bp.route('/vehicles/<int:vehicle_id>/bill-of-sale', methods=['POST'])
@admin_required
def upload_bill_of_sale(vehicle_id: int):
    service = _service()
    service.get_vehicle(vehicle_id)

    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return {'error': 'No file uploaded'}, 400
    if not _allowed_file(upload.filename):
        return {'error': 'Only PDF, PNG and JPEG files are accepted'}, 400

    filename = secure_filename(f'vehicle-{vehicle_id}-{upload.filename}')
    upload_dir = _upload_dir()
    upload_dir.mkdir(parents=True, exist_ok=True)
    upload.save(upload_dir / filename)
    logger.info('Stored bill of sale for vehicle %s as %s', vehicle_id, filename)

    url = f'/api/marketplace/uploads/{filename}'
    return service.attach_bill_of_sale(vehicle_id, url).to_dict()


@marketplace_bp.route('/uploads/<path:filename>')
@admin_required
def download_upload(filename: str):
    return send_from_directory(_upload_dir().resolve(), filename)


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------


@marketplace_bp.route('/vehicles/<int:vehicle_id>/offers', methods=['POST'])
def submit_offer(vehicle_id: int):
    payload = OfferCreate.model_validate(_json_body())
    offer = _service().submit_offer(vehicle_id, payload.code, payload.amount)
    return offer.to_dict(), 201


@marketplace_bp.route('/offers')
@admin_required
def list_offers():
    vehicle_id = request.args.get('vehicleId', type=int)
    status = request.args.get('status')
    return [offer.to_dict() for offer in _service().list_offers(vehicle_id, status)]


@marketplace_bp.route('/offers/<int:offer_id>/counter', methods=['POST'])
@admin_required
def counter_offer(offer_id: int):
    payload = CounterOffer.model_validate(_json_body())
    offer = _service().counter_offer(offer_id, payload.amount, payload.message, _admin_id())
    return offer.to_dict()


@marketplace_bp.route('/offers/<int:offer_id>/respond', methods=['POST'])
@admin_required
def admin_respond_to_offer(offer_id: int):
    payload = OfferDecision.model_validate(_json_body())
    return _service().admin_respond(offer_id, payload.accept, _admin_id()).to_dict()


@marketplace_bp.route('/offers/<int:offer_id>/dealer-response', methods=['POST'])
def dealer_respond_to_offer(offer_id: int):
    payload = DealerOfferResponse.model_validate(_json_body())
    return _service().dealer_respond(offer_id, payload.code, payload.accept).to_dict()


@marketplace_bp.route('/offers/<int:offer_id>/activities')
@admin_required
def offer_activities(offer_id: int):
    return [activity.to_dict() for activity in _service().list_activities(offer_id)]


@marketplace_bp.route('/offers/expire', methods=['POST'])
@admin_required
def expire_offers():
    return {'expired': _service().expire_stale_offers()}
