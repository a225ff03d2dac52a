"""FastAPI application exposing the booking engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cabinstay.auth import Identity, TokenVerifier
from cabinstay.config import load_auth_config
from cabinstay.database import init_db
from cabinstay.errors import AuthorizationError, CabinStayError, ValidationError
from cabinstay.events import event_bus, log_event
from cabinstay.modules.availability import AvailabilityCalculator
from cabinstay.modules.bookings import BookingLifecycleManager
from cabinstay.modules.cabins import CabinCatalog
from cabinstay.modules.date_changes import DateChangeRequestWorkflow
from cabinstay.modules.messages import GuestInbox
from cabinstay.modules.pricing import PricingEngine
from cabinstay.modules.promotions import PromoCodeAdmin, PromoCodeValidator
from cabinstay.modules.visitors import VisitorDedupeTracker, client_ip
from cabinstay.repositories import (
    BookingRepository,
    CabinRepository,
    DateChangeRequestRepository,
    PromoCodeRepository,
    SqlBookingRepository,
    SqlCabinRepository,
    SqlDateChangeRequestRepository,
    SqlPromoCodeRepository,
    SqlUserMessageRepository,
    SqlVisitorRepository,
    UserMessageRepository,
    VisitorRepository,
)
from cabinstay.schemas import (
    AdminReplyBody,
    BookingCreateBody,
    BookingReferenceBody,
    CabinResponse,
    CabinUpdateBody,
    DateChangeBody,
    DateChangeRequestResponse,
    GuestMessageBody,
    PromoCodeResponse,
    PromoCreateBody,
    PromoValidateBody,
    PublicPromoResponse,
    QuoteBody,
    QuoteResponse,
    UserContactBody,
    UserMessageResponse,
    booking_detail,
    booking_list_item,
    dump,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    logger.info("Starting CabinStay...")
    init_db()
    seeded = CabinCatalog(SqlCabinRepository()).seed_from_config()
    logger.info("Seeded %d cabins from config.", seeded)

    app.state.verifier = TokenVerifier(load_auth_config())
    event_bus.subscribe_all(log_event)

    yield

    event_bus.unsubscribe_all(log_event)
    logger.info("CabinStay shut down.")


app = FastAPI(title="CabinStay", lifespan=lifespan)


# --- Error mapping ---


@app.exception_handler(CabinStayError)
async def handle_cabinstay_error(request: Request, exc: CabinStayError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    error = ValidationError("Invalid request body", details={"errors": jsonable_encoder(exc.errors())})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# --- Dependencies ---


def get_booking_repository() -> BookingRepository:
    return SqlBookingRepository()


def get_cabin_repository() -> CabinRepository:
    return SqlCabinRepository()


def get_promo_code_repository() -> PromoCodeRepository:
    return SqlPromoCodeRepository()


def get_date_change_repository() -> DateChangeRequestRepository:
    return SqlDateChangeRequestRepository()


def get_visitor_repository() -> VisitorRepository:
    return SqlVisitorRepository()


def get_message_repository() -> UserMessageRepository:
    return SqlUserMessageRepository()


def get_promo_validator(
    promo_codes: PromoCodeRepository = Depends(get_promo_code_repository),
) -> PromoCodeValidator:
    return PromoCodeValidator(promo_codes)


def get_booking_manager(
    bookings: BookingRepository = Depends(get_booking_repository),
    cabins: CabinRepository = Depends(get_cabin_repository),
    promotions: PromoCodeValidator = Depends(get_promo_validator),
) -> BookingLifecycleManager:
    return BookingLifecycleManager(bookings, cabins=cabins, promotions=promotions)


bearer_scheme = HTTPBearer(auto_error=False)


def get_verifier(request: Request) -> TokenVerifier:
    verifier = getattr(request.app.state, "verifier", None)
    if verifier is None:
        verifier = TokenVerifier(load_auth_config())
        request.app.state.verifier = verifier
    return verifier


def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    verifier: TokenVerifier = Depends(get_verifier),
) -> Identity | None:
    """Identity from a Bearer token, or None when no token was sent."""
    if credentials is None:
        return None
    return verifier.verify(credentials.credentials)


def require_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    if identity is None:
        raise AuthorizationError()
    return identity


# --- Guest booking routes ---


@app.get("/api/booking/lookup")
def lookup_booking(
    booking_id: str | None = Query(default=None, alias="bookingId"),
    manager: BookingLifecycleManager = Depends(get_booking_manager),
):
    booking = manager.lookup(booking_id)
    return {"success": True, "booking": booking_detail(booking)}


@app.post("/api/booking/cancel")
def cancel_booking(
    body: BookingReferenceBody,
    manager: BookingLifecycleManager = Depends(get_booking_manager),
):
    manager.cancel(body.booking_reference)
    return {"success": True, "message": "Booking cancelled successfully"}


@app.post("/api/booking/contact-admin")
def contact_admin_about_booking(
    body: GuestMessageBody,
    manager: BookingLifecycleManager = Depends(get_booking_manager),
):
    manager.attach_guest_message(body.booking_reference, body.message)
    return {"success": True, "message": "Message sent to admin successfully"}


@app.post("/api/booking/request-change")
def request_date_change(
    body: DateChangeBody,
    bookings: BookingRepository = Depends(get_booking_repository),
    requests: DateChangeRequestRepository = Depends(get_date_change_repository),
):
    workflow = DateChangeRequestWorkflow(bookings, requests)
    workflow.submit(body.booking_reference, body.new_check_in, body.new_check_out, body.message)
    return {"success": True, "message": "Date change request submitted successfully"}


@app.get("/api/bookings/cabin-dates")
def cabin_booked_dates(
    cabin_name: str | None = Query(default=None, alias="cabinName"),
    bookings: BookingRepository = Depends(get_booking_repository),
):
    if not cabin_name or not cabin_name.strip():
        raise ValidationError("Cabin name is required")
    occupied = AvailabilityCalculator(bookings).occupied_dates(cabin_name.strip())
    return {"bookedDates": [day.isoformat() for day in sorted(occupied)]}


@app.post("/api/bookings", status_code=201)
def create_booking(
    body: BookingCreateBody,
    manager: BookingLifecycleManager = Depends(get_booking_manager),
):
    booking = manager.create(body.to_request())
    return {
        "success": True,
        "bookingReference": booking.booking_reference,
        "booking": booking_detail(booking),
    }


@app.post("/api/bookings/quote")
def quote_booking(
    body: QuoteBody,
    cabins: CabinRepository = Depends(get_cabin_repository),
    promotions: PromoCodeValidator = Depends(get_promo_validator),
):
    if body.check_in >= body.check_out:
        raise ValidationError("Check-out must be after check-in")
    cabin = CabinCatalog(cabins).get(body.cabin_id)

    promo = None
    if body.promo_code:
        validation = promotions.validate(body.promo_code)
        if not validation.valid:
            return {"success": False, "error": validation.message}
        promo = validation.promo

    quote = PricingEngine().quote(cabin, body.check_in, body.check_out, promo)
    return {"success": True, "quote": dump(QuoteResponse.model_validate(quote))}


# --- Promo codes ---


@app.post("/api/promo-codes/validate")
def validate_promo_code(
    body: PromoValidateBody,
    promotions: PromoCodeValidator = Depends(get_promo_validator),
):
    try:
        validation = promotions.validate(body.code)
    except ValidationError as exc:
        return JSONResponse(status_code=exc.status_code, content={"valid": False, "error": exc.message})

    if not validation.valid:
        return {"valid": False, "error": validation.message}
    return {"valid": True, "promo": dump(PublicPromoResponse.model_validate(validation.promo))}


@app.get("/api/admin/promo-codes")
def list_promo_codes(
    identity: Identity | None = Depends(get_identity),
    promo_codes: PromoCodeRepository = Depends(get_promo_code_repository),
):
    codes = PromoCodeAdmin(promo_codes).list_codes(identity)
    return {"success": True, "promoCodes": [dump(PromoCodeResponse.model_validate(c)) for c in codes]}


@app.post("/api/admin/promo-codes", status_code=201)
def create_promo_code(
    body: PromoCreateBody,
    identity: Identity | None = Depends(get_identity),
    promo_codes: PromoCodeRepository = Depends(get_promo_code_repository),
):
    promo = PromoCodeAdmin(promo_codes).create(
        identity,
        code=body.code,
        discount_type=body.discount_type,
        discount_value=body.discount_value,
        max_uses=body.max_uses,
        valid_until=body.valid_until,
        description=body.description,
    )
    return {"success": True, "promoCode": dump(PromoCodeResponse.model_validate(promo))}


# --- Visitors ---


async def _lenient_json(request: Request) -> dict:
    """Request body as a dict, or empty when it is missing or not a JSON object."""
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _text(value) -> str | None:
    return value if isinstance(value, str) else None


@app.post("/api/track-visitor")
async def track_visitor(
    request: Request,
    visitors: VisitorRepository = Depends(get_visitor_repository),
):
    # Body is read by hand so a malformed payload still counts as a visit.
    payload = await _lenient_json(request)
    peer = request.client.host if request.client else None
    await run_in_threadpool(
        VisitorDedupeTracker(visitors).record_visit,
        client_ip(request.headers, peer),
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer") or _text(payload.get("referrer")),
        page_url=_text(payload.get("pageUrl")),
    )
    return {"success": True}


# --- Signed-in users ---


@app.get("/api/user/bookings")
def list_user_bookings(
    identity: Identity = Depends(require_identity),
    manager: BookingLifecycleManager = Depends(get_booking_manager),
):
    bookings = manager.list_for_user(identity.email)
    return {"success": True, "bookings": [booking_list_item(b) for b in bookings]}


@app.post("/api/user/contact-admin")
def user_contact_admin(
    body: UserContactBody,
    identity: Identity | None = Depends(get_identity),
    messages: UserMessageRepository = Depends(get_message_repository),
):
    inbox = GuestInbox(messages)
    stored = inbox.contact_admin(
        message=body.message,
        user_email=identity.email if identity else body.user_email,
        user_name=body.user_name,
        user_id=identity.user_id if identity else None,
        booking_reference=body.booking_reference,
    )
    return {"success": True, "messageId": stored.id}


# --- Admin ---


@app.get("/api/admin/messages")
def list_user_messages(
    identity: Identity | None = Depends(get_identity),
    messages: UserMessageRepository = Depends(get_message_repository),
):
    stored = GuestInbox(messages).list_messages(identity)
    return {"success": True, "messages": [dump(UserMessageResponse.model_validate(m)) for m in stored]}


@app.post("/api/admin/messages/reply")
def reply_to_message(
    body: AdminReplyBody,
    identity: Identity | None = Depends(get_identity),
    messages: UserMessageRepository = Depends(get_message_repository),
):
    message = GuestInbox(messages).reply(identity, body.message_id, body.reply_text)
    return {"success": True, "message": dump(UserMessageResponse.model_validate(message))}


@app.get("/api/admin/date-change-requests")
def list_date_change_requests(
    identity: Identity | None = Depends(get_identity),
    bookings: BookingRepository = Depends(get_booking_repository),
    requests: DateChangeRequestRepository = Depends(get_date_change_repository),
):
    stored = DateChangeRequestWorkflow(bookings, requests).list_requests(identity)
    return {"success": True, "requests": [dump(DateChangeRequestResponse.model_validate(r)) for r in stored]}


# --- Cabins ---


@app.get("/api/cabins/{slug}")
def get_cabin(slug: str, cabins: CabinRepository = Depends(get_cabin_repository)):
    cabin = CabinCatalog(cabins).get(slug)
    return {"success": True, "cabin": dump(CabinResponse.model_validate(cabin))}


@app.patch("/api/admin/cabins")
def update_cabin(
    body: CabinUpdateBody,
    identity: Identity | None = Depends(get_identity),
    cabins: CabinRepository = Depends(get_cabin_repository),
):
    cabin = CabinCatalog(cabins).update(identity, body.cabin_id, body.updates)
    return {"success": True, "cabin": dump(CabinResponse.model_validate(cabin))}


def main() -> None:
    """Entry point for running the app."""
    import uvicorn

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    init_db()
    logger.info("Database initialized.")

    uvicorn.run(
        "cabinstay.app:app",
        host="127.0.0.1",
        port=8000,
        reload=False,
    )


if __name__ == "__main__":
    main()
