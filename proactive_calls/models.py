"""Data models exchanged with external services and trigger callers."""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class OutboundCallResult(BaseModel):
    """Outcome of asking the voice platform to place a call."""
    success: bool
    call_id: Optional[str] = None
    error: Optional[str] = None


class PMSGuest(BaseModel):
    """Guest record as returned by the PMS."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    email: Optional[str] = None
    phone: Optional[str] = None
    preferred_language: Optional[str] = Field(default=None, alias="preferredLanguage")
    vip_status: Optional[bool] = Field(default=None, alias="vipStatus")


class PMSReservation(BaseModel):
    """Reservation record as returned by the PMS."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    guest_id: str = Field(alias="guestId")
    room_number: Optional[str] = Field(default=None, alias="roomNumber")
    room_type: Optional[str] = Field(default=None, alias="roomType")
    check_in_date: date = Field(alias="checkInDate")
    check_out_date: date = Field(alias="checkOutDate")
    status: str  # dash tokens: confirmed | checked-in | checked-out | cancelled
    number_of_guests: int = Field(default=1, alias="numberOfGuests")
    special_requests: Optional[str] = Field(default=None, alias="specialRequests")

    @field_validator("check_in_date", "check_out_date", mode="before")
    @classmethod
    def _date_part(cls, value):
        # The PMS sends either plain dates or full ISO timestamps.
        if isinstance(value, str) and len(value) > 10:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return value

    @model_validator(mode="after")
    def _check_dates(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("checkOutDate must be after checkInDate")
        return self


class SyncResult(BaseModel):
    """PMS reconciliation counters."""
    synced: int = 0
    errors: int = 0
