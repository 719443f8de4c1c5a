# orderflow/constants/dispatch.py
import enum


class CourierPartner(str, enum.Enum):
    SHREE_MARUTI = "Shree Maruti"
    BLUE_DART = "Blue Dart"
    DELHIVERY = "Delhivery"
    DTDC = "DTDC"
    EKART = "Ekart"
    XPRESSBEES = "Xpressbees"
    FEDEX = "FedEx"
    DHL = "DHL"
    OTHER = "Other"


class DeliveryType(str, enum.Enum):
    NORMAL = "Normal"
    EXPRESS = "Express"
