# orderflow/constants/department.py
import enum


class Department(str, enum.Enum):
    SALES = "Sales"
    DESIGN = "Design"
    PREPRESS = "Prepress"
    PRODUCTION = "Production"
    ADMIN = "Admin"          # cross-cutting, not a workflow stage
