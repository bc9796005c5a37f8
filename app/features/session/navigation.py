"""
Navigation filtering for the application sidebar.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional

from app.features.session.context import SessionContext


@dataclass(frozen=True)
class NavItem:
    id: str
    name: str
    path: str
    module: Optional[str] = None


DEFAULT_NAVIGATION = (
    NavItem("home", "Home", "/home", "home"),
    NavItem("clients", "Clients", "/clients", "clients"),
    NavItem("inventory", "Inventory Management", "/inventory", "inventory"),
    NavItem("dashboard", "Dashboard & Analytics", "/dashboard", "dashboard"),
    NavItem("reports", "Reports", "/reports", "dashboard"),
    NavItem("quotation", "Quotation", "/quotation-ads", "quotation"),
    NavItem("quote-history", "Quote History", "/quote-history", "quoteHistory"),
    NavItem("settings", "Settings", "/settings", "settings"),
)

ADMIN_NAVIGATION = (
    NavItem("users", "User Management", "/settings/users"),
    NavItem("roles", "Role Management", "/settings/roles"),
)


def visible_navigation(
    session: SessionContext,
    items: Iterable[NavItem] = DEFAULT_NAVIGATION,
    admin_items: Iterable[NavItem] = ADMIN_NAVIGATION,
) -> List[NavItem]:
    """Items whose module the session can open, followed by admin-only items for admins."""
    visible = [item for item in items if item.module is None or session.has_module_access(item.module)]
    if session.is_admin():
        visible.extend(admin_items)
    return visible
