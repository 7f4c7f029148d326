"""
Tests 101-120: RBAC registry

Path → (menu, feature) inference, the declared route table, navigation
allow-lists and the office role predicate.  Pure functions, no database.
"""
import pytest

from eduadmin import rbac
from eduadmin.rbac import (
    DECLARED_ROUTES,
    FEATURE_CREATE,
    FEATURE_EDIT,
    FEATURE_MANAGE,
    FEATURE_VIEW,
    MENU_AGENTS,
    MENU_DASHBOARD,
    MENU_HOSTEL_MESS,
    MENU_INVOICE,
    MENU_SETTINGS,
    MENU_STUDENTS,
    infer_feature,
    infer_menu,
    infer_menu_feature,
    is_office_variant,
    navigation_hrefs,
    route_allowed_roles,
    route_permission,
)


class TestMenuInference:

    def test_101_root_is_dashboard(self):
        """'/' maps to Dashboard only as an exact match."""
        assert infer_menu("/") == MENU_DASHBOARD
        assert infer_menu("/dashboard") == MENU_DASHBOARD

    def test_102_unknown_path_has_no_menu(self):
        """A path matching no prefix has no menu."""
        assert infer_menu("/unknown-xyz") is None

    def test_103_prefix_is_literal(self):
        """Prefixes match literally, so '/agentsx' still counts as Agents."""
        assert infer_menu("/agentsx") == MENU_AGENTS

    def test_104_trailing_slash_ignored(self):
        """'/agents/' and '/agents' map the same."""
        assert infer_menu_feature("/agents/") == infer_menu_feature("/agents")

    @pytest.mark.parametrize("path,menu", [
        ("/lead/enquiry", "Leads"),
        ("/students/direct", MENU_STUDENTS),
        ("/fees/collect", MENU_INVOICE),
        ("/mess/budget", MENU_HOSTEL_MESS),
        ("/hostels/requests", MENU_HOSTEL_MESS),
        ("/settings/rbac", MENU_SETTINGS),
    ])
    def test_105_known_sections(self, path, menu):
        """Every section prefix maps to its menu."""
        assert infer_menu(path) == menu


class TestFeatureInference:

    @pytest.mark.parametrize("path,feature", [
        ("/students", FEATURE_VIEW),
        ("/lead/add", FEATURE_CREATE),
        ("/invoices/create", FEATURE_CREATE),
        ("/fees/master", FEATURE_MANAGE),
        ("/mess/management", FEATURE_MANAGE),
        ("/hostels/requests", FEATURE_MANAGE),
        ("/agents/edit", FEATURE_EDIT),
        ("/fees/collect", FEATURE_CREATE),
        ("/agents/payout", FEATURE_CREATE),
    ])
    def test_106_feature_markers(self, path, feature):
        """Substring markers pick the feature; anything else is view."""
        assert infer_feature(path) == feature

    def test_107_create_marker_checked_first(self):
        """'/add' wins over '/management' when both appear."""
        assert infer_feature("/hostels/management/add") == FEATURE_CREATE


class TestDeclaredRoutes:

    def test_108_navigation_fully_declared(self):
        """Every page reachable from the navigation has a declared entry."""
        missing = [href for href in navigation_hrefs() if href not in DECLARED_ROUTES]
        assert missing == []

    def test_109_declared_entries_agree_with_inference(self):
        """Declared entries match what the heuristic infers for the same path."""
        mismatched = {
            path: (declared, infer_menu_feature(path))
            for path, declared in DECLARED_ROUTES.items()
            if declared != infer_menu_feature(path)
        }
        assert mismatched == {}

    def test_110_undeclared_path_falls_back(self):
        """A path missing from the table is inferred."""
        assert "/mess/expenses/add" not in DECLARED_ROUTES
        assert route_permission("/mess/expenses/add") == (MENU_HOSTEL_MESS, FEATURE_CREATE)

    def test_111_declared_lookup_normalizes_path(self):
        """Declared lookups ignore trailing slashes and case."""
        assert route_permission("/Agents/Edit/") == (MENU_AGENTS, FEATURE_EDIT)


class TestNavigationRoles:

    def test_112_sub_item_list_wins(self):
        """A sub-item's own allow-list overrides its parent's."""
        assert route_allowed_roles("/settings/rbac") == ["admin"]

    def test_113_sub_item_inherits_parent(self):
        """A sub-item without a list inherits the parent's."""
        assert route_allowed_roles("/mess/budget") == ["admin", "hostel_team"]

    def test_114_unrestricted_page(self):
        """Pages open to every role have no allow-list."""
        assert route_allowed_roles("/agents") is None
        assert route_allowed_roles("/not-a-page") is None

    def test_115_hrefs_deduplicated(self):
        """'/agents' appears as section and sub-item but is listed once."""
        hrefs = navigation_hrefs()
        assert len(hrefs) == len(set(hrefs))
        assert hrefs[0] == "/"


class TestRoles:

    @pytest.mark.parametrize("role", ["office_bangalore", "office_delhi", "office_user", "office_pune"])
    def test_116_office_variants(self, role):
        """Any office_<name> role is an office variant."""
        assert is_office_variant(role)

    @pytest.mark.parametrize("role", ["office", "office_", "admin", "", None])
    def test_117_not_office_variants(self, role):
        """Bare 'office', the empty suffix and other roles are not."""
        assert not is_office_variant(role)

    def test_118_valid_roles_cover_office_cities(self):
        """Every office city role is a valid role."""
        for role in rbac.OFFICE_CITY_ROLES:
            assert role in rbac.VALID_ROLES
        assert rbac.VALID_ROLES == sorted(rbac.VALID_ROLES)
