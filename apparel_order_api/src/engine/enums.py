from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle stages of an apparel order, in pipeline order."""
    DRAFT = "draft"
    QUOTED = "quoted"
    AWAITING_PAYMENT = "awaiting_payment"
    PARTIAL_PAID = "partial_paid"
    DESIGNING = "designing"
    AWAITING_MOCKUP_APPROVAL = "awaiting_mockup_approval"
    AWAITING_MATERIAL = "awaiting_material"
    QUEUED = "queued"
    IN_PRODUCTION = "in_production"
    QC_PENDING = "qc_pending"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ON_HOLD = "on_hold"


class PriorityCode(str, Enum):
    NORMAL = "normal"
    RUSH = "rush"
    URGENT = "urgent"


class ProductionMode(str, Enum):
    IN_HOUSE = "in_house"
    OUTSOURCE = "outsource"
    HYBRID = "hybrid"


class TransitionDirection(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


class GateType(str, Enum):
    """Approval gates, declared in canonical display order."""
    DESIGN = "design"
    MOCKUP = "mockup"
    MATERIAL = "material"
    PAYMENT = "payment"
    PRODUCTION_START = "production_start"


class GateStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"


class ChangeType(str, Enum):
    DESIGN_REVISION = "design_revision"
    QUANTITY_CHANGE = "quantity_change"
    SIZE_CHANGE = "size_change"
    COLOR_CHANGE = "color_change"
    ADD_WORK = "add_work"
    REMOVE_WORK = "remove_work"
    MATERIAL_CHANGE = "material_change"
    SHIPPING_CHANGE = "shipping_change"
    DUE_DATE_CHANGE = "due_date_change"
    CANCEL = "cancel"
    OTHER = "other"


class ChangeRequestStatus(str, Enum):
    PENDING_QUOTE = "pending_quote"
    AWAITING_CUSTOMER = "awaiting_customer"
    AWAITING_PAYMENT = "awaiting_payment"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class ChangeCategory(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class OrderPhase(str, Enum):
    """Production phases, ordered from cheapest to most disruptive to change."""
    DRAFT = "draft"
    DESIGN = "design"
    MOCKUP_APPROVED = "mockup_approved"
    PRE_PRODUCTION = "pre_production"
    IN_PRODUCTION = "in_production"
    QC_COMPLETE = "qc_complete"


class ImpactLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class QCResult(str, Enum):
    PASS = "pass"
    PASS_WITH_REWORK = "pass_with_rework"
    FAIL = "fail"


class DefectSeverity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class SLAPriority(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"
    EXPRESS = "express"


class StepState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    WARNING = "warning"
    OVERDUE = "overdue"
    PENDING = "pending"


class QCStage(str, Enum):
    MATERIAL = "material"
    PRE_PRODUCTION = "pre_production"
    IN_PROCESS = "in_process"
    POST_PRODUCTION = "post_production"
    FINAL = "final"
