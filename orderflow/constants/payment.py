# orderflow/constants/payment.py
import enum


class PaymentStatus(str, enum.Enum):
    NOT_PAID = "Not Paid"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"


class PaymentMethod(str, enum.Enum):
    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    UPI = "UPI"
    CHEQUE = "Cheque"
    CARD = "Card"
    OTHER = "Other"
