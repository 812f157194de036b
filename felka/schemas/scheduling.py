from pydantic import BaseModel, Field
from typing import List, Optional
from felka.schemas.common import ContactEmail

class SlotIn(BaseModel):
    date: str  # YYYY-MM-DD
    timeSlot: str  # HH:MM
    serviceType: str = ""
    maxCapacity: int = Field(default=0, ge=0)  # 0 -> configured default
    isAvailable: bool = True

class SlotOut(BaseModel):
    id: str
    date: str
    timeSlot: str
    serviceType: str
    isAvailable: bool
    maxCapacity: int
    currentBookings: int
    bookable: bool

class CreateWeekIn(BaseModel):
    startDate: str
    serviceType: str = ""

class CreateWeekOut(BaseModel):
    slotsCreated: int
    slots: List[SlotOut]

class SlotIdsIn(BaseModel):
    slotIds: List[str]

class BlockSlotsOut(BaseModel):
    slotsBlocked: int
    blockedSlots: List[SlotOut]

class UnblockSlotsOut(BaseModel):
    slotsUnblocked: int
    unblockedSlots: List[SlotOut]

class BookingCreate(BaseModel):
    # either slotId, or date + timeSlot
    slotId: Optional[str] = None
    date: Optional[str] = None
    timeSlot: Optional[str] = None
    companyName: str = ""
    contactPerson: str = ""
    contactEmail: ContactEmail = ""
    contactPhone: str = ""
    manager: str = ""
    notes: Optional[str] = None
    clientId: Optional[str] = None
    externalPersonId: Optional[str] = None

class BookingOut(BaseModel):
    id: str
    slotId: str
    date: str
    timeSlot: str
    clientId: str
    externalPersonId: Optional[str] = None
    companyName: str
    contactPerson: str
    contactEmail: str
    contactPhone: str = ""
    manager: str = ""
    status: str
    notes: Optional[str] = None
    managerNotes: Optional[str] = None
    cancellationReason: Optional[str] = None
    cancelledBy: Optional[str] = None
    createdAt: str
    cancelledAt: Optional[str] = None
    completedAt: Optional[str] = None
    cancellable: bool = False

class AuditEntryOut(BaseModel):
    at: str
    action: str
    actor: str
    details: str

class BookingDetailOut(BookingOut):
    audit: List[AuditEntryOut] = []

class CancelIn(BaseModel):
    reason: str = ""

class CancelOut(BaseModel):
    message: str
    booking: BookingOut

class ManagerActionIn(BaseModel):
    action: str  # complete | cancel
    notes: str = ""
