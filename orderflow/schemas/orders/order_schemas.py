import enum
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime

from orderflow.constants.department import Department
from orderflow.constants.dispatch import CourierPartner, DeliveryType
from orderflow.constants.order_status import OrderStatus
from orderflow.constants.payment import PaymentMethod, PaymentStatus
from orderflow.constants.production import ProductionStage, ProgressStatus
from orderflow.constants.user_role import UserRole
from orderflow.utils.dates import LenientDatetime


# =====================================================
# BASE
# =====================================================
class Record(BaseModel):
    """Immutable snapshot stored as one JSON document."""

    model_config = ConfigDict(frozen=True, extra="ignore")


# =====================================================
# USER
# =====================================================
class User(Record):
    id: str
    name: str
    email: EmailStr
    department: Department
    role: UserRole = UserRole.MEMBER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# =====================================================
# HISTORY ENTRIES
# =====================================================
class StatusUpdate(Record):
    id: str
    order_id: str
    timestamp: LenientDatetime = None
    department: Department
    status: str
    remarks: str = ""
    updated_by: str
    estimated_time: Optional[str] = None
    selected_product: Optional[str] = None
    editable_until: LenientDatetime = None


class ProductStatus(Record):
    id: str
    name: str
    status: ProgressStatus = ProgressStatus.PROCESSING
    remarks: Optional[str] = None
    estimated_completion: Optional[str] = None
    assigned_department: Optional[Department] = None


class ProductionStageStatus(Record):
    stage: ProductionStage
    status: ProgressStatus = ProgressStatus.PROCESSING
    remarks: Optional[str] = None
    timeline: LenientDatetime = None


class PaymentRecord(Record):
    id: str
    amount: Decimal
    date: LenientDatetime = None
    method: PaymentMethod = PaymentMethod.CASH
    remarks: Optional[str] = None


class DispatchDetails(Record):
    address: str
    contact_number: str
    courier_partner: CourierPartner = CourierPartner.SHREE_MARUTI
    delivery_type: DeliveryType = DeliveryType.NORMAL
    tracking_number: Optional[str] = None
    dispatch_date: LenientDatetime = None
    verified_by: Optional[str] = None


# =====================================================
# ORDER
# =====================================================
class Order(Record):
    id: str
    order_number: str
    client_name: str
    items: List[str] = Field(default_factory=list)

    amount: Decimal
    paid_amount: Decimal = Decimal("0.00")
    pending_amount: Decimal
    payment_status: PaymentStatus = PaymentStatus.NOT_PAID
    last_payment_date: LenientDatetime = None

    current_department: Department = Department.SALES
    status: OrderStatus = OrderStatus.NEW

    created_at: LenientDatetime = None
    updated_at: LenientDatetime = None

    delivery_address: Optional[str] = None
    contact_number: Optional[str] = None
    dispatch_details: Optional[DispatchDetails] = None

    pending_approval_from: Optional[Department] = None
    approval_reason: Optional[str] = None

    sheet_sync_id: Optional[str] = None

    product_status: List[ProductStatus] = Field(default_factory=list)
    production_stages: List[ProductionStageStatus] = Field(default_factory=list)
    expected_completion_date: LenientDatetime = None

    verified_by: Optional[str] = None
    verified_at: LenientDatetime = None

    status_history: List[StatusUpdate] = Field(default_factory=list)
    payment_history: List[PaymentRecord] = Field(default_factory=list)

    # optimistic locking
    version: int = 1


# =====================================================
# REQUEST PAYLOADS
# =====================================================
class OrderCreate(BaseModel):
    client_name: str = Field(min_length=1)
    items: List[str] = Field(min_length=1)
    amount: Decimal = Field(ge=0)
    paid_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    delivery_address: Optional[str] = None
    contact_number: Optional[str] = None


class VersionedCommand(BaseModel):
    # optional optimistic-locking token
    version: Optional[int] = None


class StatusChangeCreate(VersionedCommand):
    status: OrderStatus
    remarks: str = ""
    estimated_time: Optional[str] = None


class ForwardCreate(VersionedCommand):
    remarks: str = ""


class LifecycleCreate(VersionedCommand):
    remarks: str = ""


class PaymentCreate(VersionedCommand):
    # positivity is a domain rule (400), not a schema rule (422)
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH
    remarks: str = ""
    paid_on: Optional[datetime] = None


class PaymentVerifyCreate(VersionedCommand):
    amount: Decimal
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    remarks: str = ""
    # False records a partial payment unless the amount clears the balance
    full: bool = True


class ProductStatusCreate(VersionedCommand):
    status: ProgressStatus
    remarks: str = ""
    estimated_completion: Optional[str] = None


class ProductionStageCreate(VersionedCommand):
    stage: ProductionStage
    status: ProgressStatus
    remarks: str = ""
    timeline: Optional[datetime] = None


class DispatchCreate(VersionedCommand):
    address: str = ""
    contact_number: str = ""
    courier_partner: CourierPartner = CourierPartner.SHREE_MARUTI
    delivery_type: DeliveryType = DeliveryType.NORMAL
    tracking_number: Optional[str] = None
    dispatch_date: Optional[datetime] = None
    remarks: str = ""


class ApprovalRequestCreate(VersionedCommand):
    reason: str = ""


class ApprovalResponseCreate(VersionedCommand):
    approve: bool
    remarks: str = ""


class OrderAction(str, enum.Enum):
    ARCHIVE = "archive"
    CANCEL = "cancel"
    COMPLETE = "complete"
    HOLD = "hold"
    REJECT = "reject"
    REOPEN = "reopen"
    RESTORE = "restore"
    RESUME = "resume"
    RETURN = "return"


# =====================================================
# LIST FILTERS / OUTPUT
# =====================================================
class OrderFilters(BaseModel):
    department: Optional[Department] = None
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    page: int = 1
    page_size: int = 20


class OrderListData(BaseModel):
    total: int
    items: List[Order]


class BulkDeleteData(BaseModel):
    deleted: int


class PaymentListData(BaseModel):
    total: int
    total_paid: Decimal
    items: List[PaymentRecord]


class ProductionProgressData(BaseModel):
    completion: int
    stages: List[ProductionStageStatus]
    products: List[ProductStatus]
