"""Shared builders for the test suites: a fresh in-memory schema per test"""

from datetime import datetime

from hoh.database import Base, SessionLocal, engine
from hoh.models import Account, Booking, BookingStatusEvent, Provider, Service
from hoh.models import ProviderService as ProviderOffering
from hoh.security_utils import create_access_token, hash_password
from hoh.sequences import next_code

PASSWORD = "s3cret-pass"
# bcrypt is slow on purpose; hash once for every fixture account
PASSWORD_HASH = hash_password(PASSWORD)


def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    return SessionLocal()


def make_service(db, title="Deep Cleaning", vertical="on_demand", base_price=700, category="Cleaning"):
    service = Service(
        service_code=next_code(db, "service"),
        title=title,
        category=category,
        vertical=vertical,
        base_price=base_price,
        active=True,
    )
    db.add(service)
    db.commit()
    return service


def make_provider(
    db,
    services=(),
    email=None,
    city="Bengaluru",
    pincodes=("560001",),
    working_days=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday"),
    rating=4.0,
    experience=3,
    status="active",
    availability="available",
):
    code = next_code(db, "provider")
    provider = Provider(
        provider_code=code,
        full_name=f"Provider {code}",
        email=email or f"{code.lower()}@example.com",
        phone="9876543210",
        password_hash=PASSWORD_HASH,
        city=city,
        state="Karnataka",
        pincode=pincodes[0] if pincodes else "560001",
        service_areas=[{"city": city, "pincodes": list(pincodes)}],
        working_days=list(working_days),
        experience_years=experience,
        rating_average=rating,
        status=status,
        availability_status=availability,
        documents={},
    )
    provider.services = [ProviderOffering(service_id=s.id) for s in services]
    db.add(provider)
    db.commit()
    return provider


def make_account(db, role="super_admin", email=None, service_type=None, verticals=None, status="active"):
    account = Account(
        full_name=f"{role} user",
        email=email or f"{role}-{service_type or 'all'}@example.com",
        password_hash=PASSWORD_HASH,
        role=role,
        service_type=service_type,
        verticals=verticals or [],
        status=status,
        customer_id=next_code(db, "customer") if role == "customer" else None,
    )
    db.add(account)
    db.commit()
    return account


def make_booking(db, service, status="pending", total=770, advance_paid=0, customer=None, provider=None):
    booking = Booking(
        booking_code=next_code(db, f"booking:{service.vertical}"),
        vertical=service.vertical,
        service=service,
        service_provider=provider,
        customer_account_id=customer.id if customer else None,
        customer_name="Asha Rao",
        customer_email="asha@example.com",
        customer_phone="9123456780",
        address_line1="12 MG Road",
        city="Bengaluru",
        state="Karnataka",
        pincode="560001",
        scheduled_date=datetime(2026, 3, 2, 10, 0),
        time_slot_start="10:00",
        time_slot_end="12:00",
        service_charge=700,
        tax=70,
        total=total,
        advance_paid=advance_paid,
        status=status,
        otp_code="123456",
    )
    booking.status_history.append(
        BookingStatusEvent(status=status, timestamp=datetime.utcnow(), notes="Booking created")
    )
    db.add(booking)
    db.commit()
    return booking


def bearer(principal) -> dict:
    kind = "provider" if isinstance(principal, Provider) else "account"
    return {"Authorization": f"Bearer {create_access_token(principal.id, kind)}"}


class RecordingNotifier:
    """Stands in for BookingNotifier; keeps every dispatched event"""

    def __init__(self):
        self.events = []

    async def dispatch(self, event):
        self.events.append(event)
        return True

    async def dispatch_all(self, events):
        for event in events:
            await self.dispatch(event)

    def kinds(self):
        return [event.kind for event in self.events]
