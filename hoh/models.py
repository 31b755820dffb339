import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class Counter(Base):
    """Named sequence used for human-readable codes (OD-BK-000001, PRO-000001, ...)"""

    __tablename__ = "counters"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=True)
    password_hash = Column(String(255), nullable=False)

    # customer, super_admin, <vertical>_admin, admin, manager, designer, crm
    role = Column(String(50), nullable=False, default="customer", index=True)
    service_type = Column(String(50), nullable=True)  # Single vertical tag
    verticals = Column(JSON, default=list, nullable=True)  # Multiple verticals for staff
    status = Column(String(20), nullable=False, default="active")  # active, inactive, suspended

    customer_id = Column(String(20), unique=True, nullable=True)  # CUST000001 for customers
    last_login = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Service(Base):
    """On-demand service catalogue entry (plumbing, electrical, cleaning, ...)"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    service_code = Column(String(20), unique=True, index=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False)
    vertical = Column(String(50), nullable=False, default="on_demand")
    base_price = Column(Float, nullable=False, default=0)
    currency = Column(String(10), default="INR")
    estimated_duration = Column(Integer, nullable=True)  # minutes
    active = Column(Boolean, default=True, nullable=False)

    total_bookings = Column(Integer, default=0, nullable=False)
    completed_bookings = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Provider(Base):
    """Field technician who fulfils bookings"""

    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, index=True)
    provider_code = Column(String(20), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default="service_provider")

    # Address
    street = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False, index=True)
    state = Column(String(100), nullable=False)
    pincode = Column(String(10), nullable=False)
    country = Column(String(100), default="India")
    service_areas = Column(JSON, default=list, nullable=True)  # [{"city": str, "pincodes": [str]}]

    experience_years = Column(Integer, default=0, nullable=False)
    skills = Column(JSON, default=list, nullable=True)

    # Availability: available, busy, unavailable, on_leave
    availability_status = Column(String(20), default="available", nullable=False, index=True)
    working_days = Column(JSON, default=list, nullable=True)  # ["Monday", "Tuesday", ...]
    working_hours_start = Column(String(10), nullable=True)  # HH:MM
    working_hours_end = Column(String(10), nullable=True)

    # Performance
    total_bookings = Column(Integer, default=0, nullable=False)
    completed_bookings = Column(Integer, default=0, nullable=False)
    cancelled_bookings = Column(Integer, default=0, nullable=False)
    completion_rate = Column(Float, default=0, nullable=False)  # percentage

    # Earnings
    total_earned = Column(Float, default=0, nullable=False)
    current_month_earnings = Column(Float, default=0, nullable=False)
    pending_payment = Column(Float, default=0, nullable=False)

    rating_average = Column(Float, default=0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)

    # Verification
    email_verified = Column(Boolean, default=False, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)
    documents = Column(JSON, default=dict, nullable=True)  # {"aadharCard": {"verified": bool}, ...}
    documents_verified = Column(Boolean, default=False, nullable=False)
    background_verified = Column(Boolean, default=False, nullable=False)

    # pending_verification, active, inactive, suspended, blacklisted
    status = Column(String(30), default="pending_verification", nullable=False, index=True)
    notes = Column(Text, nullable=True)
    last_active = Column(DateTime, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    services = relationship(
        "ProviderService", back_populates="provider", cascade="all, delete-orphan"
    )
    unavailable_dates = relationship(
        "ProviderUnavailableDate", back_populates="provider", cascade="all, delete-orphan"
    )
    reviews = relationship(
        "ProviderReview",
        back_populates="provider",
        cascade="all, delete-orphan",
        order_by="ProviderReview.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def offers_service(self, service_id: int) -> bool:
        return any(offering.service_id == service_id for offering in self.services)


class ProviderService(Base):
    __tablename__ = "provider_services"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    specialization = Column(String(255), nullable=True)
    experience_years = Column(Integer, nullable=True)

    provider = relationship("Provider", back_populates="services")
    service = relationship("Service")


class ProviderUnavailableDate(Base):
    __tablename__ = "provider_unavailable_dates"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    date_from = Column(DateTime, nullable=False)
    date_to = Column(DateTime, nullable=False)
    reason = Column(String(255), nullable=True)

    provider = relationship("Provider", back_populates="unavailable_dates")


class ProviderReview(Base):
    __tablename__ = "provider_reviews"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    rating = Column(Integer, nullable=False)
    review = Column(Text, nullable=True)
    response = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    provider = relationship("Provider", back_populates="reviews")


class Booking(Base):
    """Scheduled service engagement between a customer and a provider"""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_code = Column(String(20), unique=True, index=True, nullable=False)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    vertical = Column(String(50), nullable=False, default="on_demand", index=True)

    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    service_provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True, index=True)

    # Customer snapshot at booking time
    customer_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False, index=True)
    customer_alternate_phone = Column(String(20), nullable=True)

    # Service address
    address_line1 = Column(String(255), nullable=False)
    address_line2 = Column(String(255), nullable=True)
    landmark = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    pincode = Column(String(10), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Scheduling
    scheduled_date = Column(DateTime, nullable=False, index=True)
    time_slot_start = Column(String(10), nullable=False)  # HH:MM
    time_slot_end = Column(String(10), nullable=False)
    service_details = Column(JSON, default=dict, nullable=True)

    # Pricing
    service_charge = Column(Float, nullable=False, default=0)
    materials = Column(Float, nullable=False, default=0)
    tax = Column(Float, nullable=False, default=0)
    discount = Column(Float, nullable=False, default=0)
    coupon_code = Column(String(50), nullable=True)
    coupon_discount = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False, default=0)
    advance_paid = Column(Float, nullable=False, default=0)
    remaining_amount = Column(Float, nullable=False, default=0)

    # Payment: method cash/card/upi/netbanking/wallet, status pending/partial/completed/refunded/failed
    payment_method = Column(String(20), default="cash", nullable=False)
    payment_status = Column(String(20), default="pending", nullable=False)
    transaction_id = Column(String(255), nullable=True)
    paid_at = Column(DateTime, nullable=True)

    status = Column(String(30), default="pending", nullable=False, index=True)

    # Booking confirmation OTP
    otp_code = Column(String(10), nullable=True)
    otp_verified = Column(Boolean, default=False, nullable=False)
    otp_verified_at = Column(DateTime, nullable=True)

    # Completion OTP (handed to the provider by the customer once the work is done)
    completion_otp_code = Column(String(10), nullable=True)
    completion_otp_generated_at = Column(DateTime, nullable=True)
    completion_otp_expires_at = Column(DateTime, nullable=True)
    completion_otp_verified = Column(Boolean, default=False, nullable=False)
    completion_otp_verified_at = Column(DateTime, nullable=True)

    # Execution
    estimated_arrival = Column(DateTime, nullable=True)
    actual_arrival = Column(DateTime, nullable=True)
    work_start_time = Column(DateTime, nullable=True)
    work_end_time = Column(DateTime, nullable=True)
    actual_duration = Column(Integer, nullable=True)  # minutes

    # Cancellation
    cancelled_by = Column(String(20), nullable=True)  # customer, provider, admin
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    refund_eligible = Column(Boolean, default=False, nullable=False)

    # Ratings
    customer_rating = Column(Integer, nullable=True)  # customer -> provider
    customer_review = Column(Text, nullable=True)
    customer_rated_at = Column(DateTime, nullable=True)
    provider_rating = Column(Integer, nullable=True)  # provider -> customer
    provider_review = Column(Text, nullable=True)
    provider_rated_at = Column(DateTime, nullable=True)

    priority = Column(String(10), default="Medium", nullable=False)
    source = Column(String(20), default="Website", nullable=False)
    notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    created_by = Column(String(64), nullable=True)
    last_modified_by = Column(String(64), nullable=True)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    service = relationship("Service")
    service_provider = relationship("Provider")
    status_history = relationship(
        "BookingStatusEvent",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingStatusEvent.id",
    )
    reschedule_history = relationship(
        "BookingReschedule",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingReschedule.id",
    )

    __mapper_args__ = {"version_id_col": version}


class BookingStatusEvent(Base):
    """Append-only status history entry"""

    __tablename__ = "booking_status_events"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    status = Column(String(30), nullable=False)
    timestamp = Column(DateTime, nullable=False)
    updated_by = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)

    booking = relationship("Booking", back_populates="status_history")


class BookingReschedule(Base):
    __tablename__ = "booking_reschedules"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    previous_date = Column(DateTime, nullable=True)
    previous_slot_start = Column(String(10), nullable=True)
    previous_slot_end = Column(String(10), nullable=True)
    new_date = Column(DateTime, nullable=False)
    new_slot_start = Column(String(10), nullable=False)
    new_slot_end = Column(String(10), nullable=False)
    reason = Column(Text, nullable=True)
    rescheduled_by = Column(String(20), nullable=True)  # customer, provider, admin
    rescheduled_at = Column(DateTime, server_default=func.now())

    booking = relationship("Booking", back_populates="reschedule_history")


# Vertical-scoped records; service_type is the tenancy discriminator


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)
    service_type = Column(String(50), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    city = Column(String(100), nullable=True)
    carpet_area = Column(Float, nullable=True)
    bhk = Column(String(20), nullable=True)
    package = Column(String(100), nullable=True)
    estimated_cost = Column(Float, nullable=True)
    lead_type = Column(String(30), default="general", nullable=False)  # general, cost_estimate
    status = Column(String(30), default="new", nullable=False)
    notes = Column(Text, nullable=True)
    last_modified_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    project_code = Column(String(20), unique=True, index=True, nullable=False)
    service_type = Column(String(50), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    customer_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    project_type = Column(String(50), nullable=True)
    carpet_area = Column(Float, nullable=True)
    budget_estimated = Column(Float, nullable=True)
    budget_actual = Column(Float, nullable=True)
    city = Column(String(100), nullable=True)
    start_date = Column(DateTime, nullable=True)
    expected_end_date = Column(DateTime, nullable=True)
    status = Column(String(50), default="inquiry", nullable=False)
    notes = Column(Text, nullable=True)
    last_modified_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    payment_code = Column(String(20), unique=True, index=True, nullable=False)
    service_type = Column(String(50), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    customer_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    amount = Column(Float, nullable=False)
    due_date = Column(DateTime, nullable=True)
    paid_date = Column(DateTime, nullable=True)
    status = Column(String(30), default="pending", nullable=False)  # pending, partially_paid, paid, overdue
    payment_method = Column(String(30), nullable=True)
    milestone = Column(String(30), nullable=True)
    description = Column(Text, nullable=True)
    transaction_id = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    last_modified_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


# Derived fields are recomputed on every flush, independent of any status change


@event.listens_for(Booking, "before_insert")
@event.listens_for(Booking, "before_update")
def recompute_remaining_amount(_mapper, _connection, booking):
    booking.remaining_amount = (booking.total or 0) - (booking.advance_paid or 0)


@event.listens_for(Provider, "before_insert")
@event.listens_for(Provider, "before_update")
def recompute_completion_rate(_mapper, _connection, provider):
    if provider.total_bookings and provider.total_bookings > 0:
        provider.completion_rate = (provider.completed_bookings / provider.total_bookings) * 100
