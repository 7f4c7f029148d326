"""
RBAC Registry — EduAdmin

Defines the closed set of roles, the menus and features that fine-grained
permissions are keyed on, the application's navigation, and the mapping
from a page path to the ``(menu, feature)`` pair that gates it.

Permission rows live in the ``role_permissions`` table; this module only
describes what may appear in them.
"""
from __future__ import annotations

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

ROLE_ADMIN = "admin"
ROLE_AGENT = "agent"
ROLE_HOSTEL_TEAM = "hostel_team"
ROLE_FINANCE = "finance"
ROLE_STAFF = "staff"
ROLE_OFFICE = "office"
# Allow-list sentinel covering every office_<city> role
ROLE_OFFICE_USER = "office_user"

OFFICE_PREFIX = "office_"

OFFICE_CITY_ROLES: tuple[str, ...] = (
    "office_guwahati",
    "office_delhi",
    "office_mumbai",
    "office_bangalore",
    "office_kolkata",
)

VALID_ROLES: list[str] = sorted([
    ROLE_ADMIN,
    ROLE_AGENT,
    ROLE_HOSTEL_TEAM,
    ROLE_FINANCE,
    ROLE_STAFF,
    ROLE_OFFICE,
    ROLE_OFFICE_USER,
    *OFFICE_CITY_ROLES,
])


def is_admin(role: str | None) -> bool:
    return role == ROLE_ADMIN


def is_office_variant(role: str | None) -> bool:
    """True for the ``office_<city>`` family (and ``office_user`` itself).

    This is the only place the ``office_`` prefix is interpreted.  Any role
    name with the prefix qualifies, including cities added later.
    """
    return bool(role) and role.startswith(OFFICE_PREFIX) and len(role) > len(OFFICE_PREFIX)


# ---------------------------------------------------------------------------
# Menus and features
# ---------------------------------------------------------------------------

MENU_DASHBOARD = "Dashboard"
MENU_LEADS = "Leads"
MENU_STUDENTS = "Students"
MENU_AGENTS = "Agents"
MENU_INVOICE = "Invoice"
MENU_OFFICE_EXPENSES = "Office Expenses"
MENU_HOSTEL_MESS = "Hostel & Mess"
MENU_SETTINGS = "Settings"
MENU_SALARY = "Salary Management"
MENU_PERSONAL_EXPENSES = "Personal Expenses"
MENU_REPORTS = "Reports"
MENU_UNIVERSITIES = "Universities"
MENU_PROFILE = "Profile"

ALL_MENUS: list[str] = [
    MENU_DASHBOARD,
    MENU_LEADS,
    MENU_STUDENTS,
    MENU_AGENTS,
    MENU_INVOICE,
    MENU_OFFICE_EXPENSES,
    MENU_HOSTEL_MESS,
    MENU_SETTINGS,
    MENU_SALARY,
    MENU_PERSONAL_EXPENSES,
    MENU_REPORTS,
    MENU_UNIVERSITIES,
    MENU_PROFILE,
]

FEATURE_VIEW = "view"
FEATURE_CREATE = "create"
FEATURE_EDIT = "edit"
FEATURE_MANAGE = "manage"

ALL_FEATURES: list[str] = [FEATURE_VIEW, FEATURE_CREATE, FEATURE_EDIT, FEATURE_MANAGE]


# ---------------------------------------------------------------------------
# Path → (menu, feature) inference
# ---------------------------------------------------------------------------

# First match wins: more specific prefixes go before generic ones.
# "/" is matched exactly, every other entry with startswith.
MENU_PREFIXES: list[tuple[tuple[str, ...], str]] = [
    (("/", "/dashboard"), MENU_DASHBOARD),
    (("/lead",), MENU_LEADS),
    (("/students",), MENU_STUDENTS),
    (("/agents",), MENU_AGENTS),
    (("/invoices", "/fees"), MENU_INVOICE),
    (("/office-expenses",), MENU_OFFICE_EXPENSES),
    (("/hostels", "/mess"), MENU_HOSTEL_MESS),
    (("/settings",), MENU_SETTINGS),
    (("/salary",), MENU_SALARY),
    (("/personal-expenses",), MENU_PERSONAL_EXPENSES),
    (("/reports",), MENU_REPORTS),
    (("/universities",), MENU_UNIVERSITIES),
    (("/profile",), MENU_PROFILE),
]

# Substring search, evaluated in this order
FEATURE_MARKERS: list[tuple[tuple[str, ...], str]] = [
    (("/add", "/create"), FEATURE_CREATE),
    (("/management", "/master", "/requests", "/payroll"), FEATURE_MANAGE),
    (("/edit", "/update"), FEATURE_EDIT),
    (("/collect", "/payout"), FEATURE_CREATE),
]


def _normalize_path(path: str) -> str:
    path = (path or "").strip().lower()
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def infer_menu(path: str) -> str | None:
    path = _normalize_path(path)
    for prefixes, menu in MENU_PREFIXES:
        for prefix in prefixes:
            if prefix == "/":
                if path == "/":
                    return menu
            elif path.startswith(prefix):
                return menu
    return None


def infer_feature(path: str) -> str:
    path = _normalize_path(path)
    for markers, feature in FEATURE_MARKERS:
        if any(marker in path for marker in markers):
            return feature
    return FEATURE_VIEW


def infer_menu_feature(path: str) -> tuple[str | None, str]:
    """Purely syntactic guess of the menu and feature a page path belongs to.

    The heuristic knows nothing about the real route list: a renamed page
    must be added to ``DECLARED_ROUTES`` (and checked by the navigation
    test) to stay gated as intended.
    """
    return infer_menu(path), infer_feature(path)


# ---------------------------------------------------------------------------
# Navigation (sidebar): every page a user can reach
# ---------------------------------------------------------------------------

_OFFICE_EXPENSE_ROLES = [ROLE_ADMIN, ROLE_FINANCE, ROLE_OFFICE, *OFFICE_CITY_ROLES]

NAVIGATION: list[dict] = [
    {"title": "Dashboard", "href": "/"},
    {
        "title": "Leads",
        "href": "/lead",
        "sub_items": [
            {"title": "Lead Enquiry", "href": "/lead/enquiry"},
            {"title": "Add Lead", "href": "/lead/add"},
        ],
    },
    {"title": "Applicants", "href": "/students/application"},
    {
        "title": "Students",
        "href": "/students",
        "sub_items": [
            {"title": "All Students", "href": "/students/direct",
             "allowed_roles": [ROLE_ADMIN, ROLE_FINANCE, ROLE_STAFF, ROLE_HOSTEL_TEAM]},
            {"title": "Add Students", "href": "/students/add",
             "allowed_roles": [ROLE_ADMIN, ROLE_FINANCE]},
            {"title": "Agent Students", "href": "/students/agent"},
            {"title": "Admission Letter Upload", "href": "/students/admission-letters"},
            {"title": "Character", "href": "/students/character"},
        ],
    },
    {
        "title": "Agents",
        "href": "/agents",
        "sub_items": [
            {"title": "All Agents", "href": "/agents"},
            {"title": "Add Agent", "href": "/agents/add"},
            {"title": "Edit Agent", "href": "/agents/edit"},
            {"title": "Payout", "href": "/agents/payout"},
        ],
    },
    {
        "title": "Invoice",
        "href": "/invoices",
        "sub_items": [
            {"title": "All Invoices", "href": "/invoices"},
            {"title": "Make Invoice", "href": "/invoices/create"},
            {"title": "Fees Master", "href": "/fees/master", "allowed_roles": [ROLE_ADMIN, ROLE_FINANCE]},
            {"title": "Collect Fees", "href": "/fees/collect", "allowed_roles": [ROLE_ADMIN, ROLE_FINANCE]},
        ],
    },
    {
        "title": "Office Expenses",
        "href": "/office-expenses",
        "allowed_roles": _OFFICE_EXPENSE_ROLES,
        "sub_items": [
            {"title": "Office Management", "href": "/office-expenses/management",
             "allowed_roles": [ROLE_ADMIN, ROLE_FINANCE]},
            {"title": "Expenses", "href": "/office-expenses", "allowed_roles": _OFFICE_EXPENSE_ROLES},
        ],
    },
    {
        "title": "Hostel & Mess",
        "href": "/hostels",
        "allowed_roles": [ROLE_ADMIN, ROLE_HOSTEL_TEAM],
        "sub_items": [
            {"title": "Hostel Management", "href": "/hostels/management"},
            {"title": "Hostel Expenses", "href": "/hostels/expenses"},
            {"title": "Mess Management", "href": "/mess/management"},
            {"title": "Mess Expenses", "href": "/mess/expenses"},
            {"title": "Mess Budget", "href": "/mess/budget"},
            {"title": "Add Students", "href": "/hostels/add-students"},
            {"title": "Student Requests", "href": "/hostels/requests"},
        ],
    },
    {"title": "Universities", "href": "/universities", "allowed_roles": [ROLE_ADMIN]},
    {"title": "Salary Management", "href": "/salary", "allowed_roles": [ROLE_ADMIN, ROLE_FINANCE]},
    {"title": "Personal Expenses", "href": "/personal-expenses", "allowed_roles": [ROLE_ADMIN, ROLE_FINANCE]},
    {"title": "Reports", "href": "/reports", "allowed_roles": [ROLE_ADMIN, ROLE_FINANCE]},
    {"title": "Profile", "href": "/profile", "allowed_roles": [ROLE_AGENT]},
    {
        "title": "Settings",
        "href": "/settings",
        "allowed_roles": [ROLE_ADMIN, ROLE_FINANCE, ROLE_HOSTEL_TEAM],
        "sub_items": [
            {"title": "General Settings", "href": "/settings"},
            {"title": "Country Management", "href": "/settings/countries"},
            {"title": "Role Management", "href": "/settings/rbac", "allowed_roles": [ROLE_ADMIN]},
            {"title": "User Management", "href": "/settings/users", "allowed_roles": [ROLE_ADMIN]},
        ],
    },
]


def navigation_hrefs() -> list[str]:
    """Every href reachable from the navigation, in sidebar order, deduplicated."""
    seen: list[str] = []
    for item in NAVIGATION:
        for href in [item["href"], *(s["href"] for s in item.get("sub_items", []))]:
            if href not in seen:
                seen.append(href)
    return seen


# ---------------------------------------------------------------------------
# Declared routes: the checked (menu, feature) of every known page
# ---------------------------------------------------------------------------

DECLARED_ROUTES: dict[str, tuple[str | None, str]] = {
    "/": (MENU_DASHBOARD, FEATURE_VIEW),
    "/lead": (MENU_LEADS, FEATURE_VIEW),
    "/lead/enquiry": (MENU_LEADS, FEATURE_VIEW),
    "/lead/add": (MENU_LEADS, FEATURE_CREATE),
    "/students": (MENU_STUDENTS, FEATURE_VIEW),
    "/students/application": (MENU_STUDENTS, FEATURE_VIEW),
    "/students/direct": (MENU_STUDENTS, FEATURE_VIEW),
    "/students/add": (MENU_STUDENTS, FEATURE_CREATE),
    "/students/agent": (MENU_STUDENTS, FEATURE_VIEW),
    "/students/admission-letters": (MENU_STUDENTS, FEATURE_VIEW),
    "/students/character": (MENU_STUDENTS, FEATURE_VIEW),
    "/agents": (MENU_AGENTS, FEATURE_VIEW),
    "/agents/add": (MENU_AGENTS, FEATURE_CREATE),
    "/agents/edit": (MENU_AGENTS, FEATURE_EDIT),
    "/agents/payout": (MENU_AGENTS, FEATURE_CREATE),
    "/invoices": (MENU_INVOICE, FEATURE_VIEW),
    "/invoices/create": (MENU_INVOICE, FEATURE_CREATE),
    "/fees/master": (MENU_INVOICE, FEATURE_MANAGE),
    "/fees/collect": (MENU_INVOICE, FEATURE_CREATE),
    "/office-expenses": (MENU_OFFICE_EXPENSES, FEATURE_VIEW),
    "/office-expenses/management": (MENU_OFFICE_EXPENSES, FEATURE_MANAGE),
    "/hostels": (MENU_HOSTEL_MESS, FEATURE_VIEW),
    "/hostels/management": (MENU_HOSTEL_MESS, FEATURE_MANAGE),
    "/hostels/expenses": (MENU_HOSTEL_MESS, FEATURE_VIEW),
    "/hostels/add-students": (MENU_HOSTEL_MESS, FEATURE_CREATE),
    "/hostels/requests": (MENU_HOSTEL_MESS, FEATURE_MANAGE),
    "/mess/management": (MENU_HOSTEL_MESS, FEATURE_MANAGE),
    "/mess/expenses": (MENU_HOSTEL_MESS, FEATURE_VIEW),
    "/mess/budget": (MENU_HOSTEL_MESS, FEATURE_VIEW),
    "/universities": (MENU_UNIVERSITIES, FEATURE_VIEW),
    "/salary": (MENU_SALARY, FEATURE_VIEW),
    "/personal-expenses": (MENU_PERSONAL_EXPENSES, FEATURE_VIEW),
    "/reports": (MENU_REPORTS, FEATURE_VIEW),
    "/profile": (MENU_PROFILE, FEATURE_VIEW),
    "/settings": (MENU_SETTINGS, FEATURE_VIEW),
    "/settings/countries": (MENU_SETTINGS, FEATURE_VIEW),
    "/settings/rbac": (MENU_SETTINGS, FEATURE_VIEW),
    "/settings/users": (MENU_SETTINGS, FEATURE_VIEW),
}


def route_permission(path: str) -> tuple[str | None, str]:
    """Return the ``(menu, feature)`` gating *path*.

    Declared pages use their table entry; anything else falls back to
    ``infer_menu_feature``.
    """
    declared = DECLARED_ROUTES.get(_normalize_path(path))
    if declared is not None:
        return declared
    return infer_menu_feature(path)


def route_allowed_roles(path: str) -> list[str] | None:
    """The navigation's ``allowed_roles`` for *path*, if the sidebar restricts it.

    A sub-item's own list wins over its parent's.
    """
    path = _normalize_path(path)
    for item in NAVIGATION:
        for sub in item.get("sub_items", []):
            if sub["href"] == path:
                return sub.get("allowed_roles", item.get("allowed_roles"))
        if item["href"] == path:
            return item.get("allowed_roles")
    return None
