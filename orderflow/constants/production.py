# orderflow/constants/production.py
import enum


class ProductionStage(str, enum.Enum):
    PRINTING = "Printing"
    CUTTING = "Cutting"
    PASTING = "Pasting"
    FOILING = "Foiling"
    ELECTROPLATING = "Electroplating"
    LETTERPRESS = "Letterpress"
    EMBOSSED = "Embossed"
    DIECUT = "Diecut"
    QUALITY_CHECK = "Quality Check"
    READY_TO_DISPATCH = "Ready to Dispatch"


class ProgressStatus(str, enum.Enum):
    """Progress of one product line or one production stage."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    ISSUE = "issue"
