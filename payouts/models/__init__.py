from .user import User
from .month import Month
from .team import TeamMember
from .basis import BasisTypeOption, MonthlyBasis
from .payroll import PayoutRun, PayoutLine
from .audit import AuditLog

__all__ = [
    "User",
    "Month",
    "TeamMember",
    "BasisTypeOption",
    "MonthlyBasis",
    "PayoutRun",
    "PayoutLine",
    "AuditLog",
]
