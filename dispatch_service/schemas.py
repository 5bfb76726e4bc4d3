import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictInt, field_validator, model_validator

from .models import AssignmentStatus, BookingStatus, DriverStatus, AirportServiceType

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
TIME_PATTERN = r"^\d{2}:\d{2}$"


# --- Driver assignments ---

class AssignmentCreate(BaseModel):
    driver_id: StrictInt
    booking_id: StrictInt
    assignment_status: AssignmentStatus = AssignmentStatus.ASSIGNED


class AssignmentUpdate(BaseModel):
    # Full-row replace: every field is required
    id: StrictInt
    driver_id: StrictInt
    booking_id: StrictInt
    assignment_status: AssignmentStatus


class AssignmentRead(BaseModel):
    id: int
    driver_id: int
    booking_id: int
    assignment_status: AssignmentStatus
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


# --- Drivers ---

class DriverBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=50)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    vehicle: str = Field(min_length=1, max_length=200)
    status: DriverStatus


class DriverCreate(DriverBase):
    pass


class DriverPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    vehicle: Optional[str] = Field(default=None, min_length=1, max_length=200)
    status: Optional[DriverStatus] = None

    @field_validator("name", "phone", "vehicle", "status")
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; null would clear a required column
        if value is None:
            raise ValueError("may not be null")
        return value


class DriverRead(DriverBase):
    id: int
    created_at: datetime.datetime

    class Config:
        from_attributes = True


# --- Bookings ---

class CustomerFields(BaseModel):
    customer_name: str = Field(min_length=1, max_length=200)
    customer_email: str = Field(pattern=EMAIL_PATTERN)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None


class TourDetails(CustomerFields):
    kind: Literal["tour"]
    tour_id: Optional[int] = None
    tour_name: str = Field(min_length=1, max_length=200)
    booking_date: datetime.date
    number_of_people: int = Field(ge=1)
    total_amount: float = Field(ge=0)


class AirportDetails(CustomerFields):
    kind: Literal["airport"]
    service_type: AirportServiceType
    flight_number: Optional[str] = Field(default=None, max_length=30)
    arrival_date: Optional[datetime.date] = None
    arrival_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    dropoff_location: Optional[str] = Field(default=None, max_length=255)
    departure_flight_number: Optional[str] = Field(default=None, max_length=30)
    departure_date: Optional[datetime.date] = None
    departure_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    pickup_location: Optional[str] = Field(default=None, max_length=255)
    passengers: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def check_legs(self):
        if self.service_type in (AirportServiceType.PICKUP, AirportServiceType.BOTH):
            if self.arrival_date is None or not self.flight_number:
                raise ValueError("pickup requires flight_number and arrival_date")
        if self.service_type in (AirportServiceType.DROPOFF, AirportServiceType.BOTH):
            if self.departure_date is None or not self.departure_flight_number:
                raise ValueError("dropoff requires departure_flight_number and departure_date")
        return self


BookingCreate = Annotated[Union[TourDetails, AirportDetails], Field(discriminator="kind")]


class BookingPatch(BaseModel):
    status: Optional[BookingStatus] = None
    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    customer_email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None

    @field_validator("status", "customer_name", "customer_email")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class BookingRead(BaseModel):
    id: int
    kind: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    service_date: Optional[datetime.date] = None
    total_amount: float
    status: str
    notes: Optional[str] = None

    tour_id: Optional[int] = None
    tour_name: Optional[str] = None
    booking_date: Optional[datetime.date] = None
    number_of_people: Optional[int] = None

    service_type: Optional[str] = None
    flight_number: Optional[str] = None
    arrival_date: Optional[datetime.date] = None
    arrival_time: Optional[str] = None
    dropoff_location: Optional[str] = None
    departure_flight_number: Optional[str] = None
    departure_date: Optional[datetime.date] = None
    departure_time: Optional[str] = None
    pickup_location: Optional[str] = None
    passengers: Optional[int] = None

    created_at: datetime.datetime

    class Config:
        from_attributes = True


# --- Dispatch views ---

class Job(BaseModel):
    id: int
    type: str
    customer_name: str
    date: Optional[datetime.date] = None
    status: str
    amount: float
    assignment_id: int
    assignment_status: str


class CalendarEvent(BaseModel):
    id: int
    driver_id: int
    driver_name: str
    booking_id: int
    booking_type: str
    customer_name: str
    date: Optional[datetime.date] = None
    assignment_status: str


# --- Auth ---

class LoginRequest(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
