"""Enums for survey answers, steps and upload slots."""

from enum import Enum


class YesNo(str, Enum):
    YES = "yes"
    NO = "no"


class ConstructionPossibility(str, Enum):
    """Whether construction work is allowed during business hours."""
    POSSIBLE = "possible"
    IMPOSSIBLE = "impossible"
    PARTIALLY = "partially"
    OTHER = "other"


class SubmissionMethod(str, Enum):
    """How the facility expects construction applications to be filed."""
    FAX = "fax"
    EMAIL = "email"
    OTHER = "other"


class ParkingOption(str, Enum):
    """Where workers can park their vehicles."""
    DEDICATED = "dedicated"
    CUSTOMER_FREE = "customer_free"
    CUSTOMER_PAID = "customer_paid"
    NEARBY = "nearby"
    STREET = "street"
    OTHER = "other"


class RequiredDocument(str, Enum):
    """Application documents the facility requires before construction."""
    CONSTRUCTION = "construction"
    FIRE = "fire"
    FACILITY = "facility"
    OTHER = "other"


class FileSlotGroup(str, Enum):
    PHOTO = "photo"
    CONSTRUCTION_DOCUMENT = "construction_document"
    ENTRY_GUIDE = "entry_guide"


class FileSlot(str, Enum):
    """
    Logical file slots.

    Closed set: any identifier outside this enum is rejected at the
    request boundary before a storage key is built.
    """
    FRONT = "front"
    LEFT = "left"
    RIGHT = "right"
    CEILING = "ceiling"
    BACKYARD = "backyard"
    SERVER = "server"
    CONSTRUCTION_DOCUMENT = "construction-document"
    FIRE_DOCUMENT = "fire-document"
    FACILITY_DOCUMENT = "facility-document"
    OTHER_DOCUMENT = "other-document"
    ENTRY_GUIDE = "entry-guide"


class SurveyStep(str, Enum):
    """
    Input steps in wizard order.

    store_info → facility_manager (only when direct communication with
    facility staff is needed) → photos → construction → facility_access
    → work_details → confirmation
    """
    STORE_INFO = "store_info"
    FACILITY_MANAGER = "facility_manager"
    PHOTOS = "photos"
    CONSTRUCTION = "construction"
    FACILITY_ACCESS = "facility_access"
    WORK_DETAILS = "work_details"
    CONFIRMATION = "confirmation"


class WizardPhase(str, Enum):
    """Lifecycle of one wizard session."""
    COLLECTING = "collecting"
    SUBMITTING = "submitting"
    SUCCESS = "success"
