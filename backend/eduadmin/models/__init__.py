from eduadmin.models.agent import Agent, Student
from eduadmin.models.fees import FeeCollection, FeePayment
from eduadmin.models.hostel import Hostel, MessExpense
from eduadmin.models.permission import AuditLog, RolePermission
from eduadmin.models.user import User, UserSession

__all__ = [
    # Agents & students
    "Agent",
    "Student",
    # Fee ledgers
    "FeeCollection",
    "FeePayment",
    # Hostels & mess
    "Hostel",
    "MessExpense",
    # RBAC & audit
    "RolePermission",
    "AuditLog",
    # Users
    "User",
    "UserSession",
]
