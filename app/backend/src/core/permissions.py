"""Stable permission and role identifiers plus the default role mapping.

Permission names are the unit of authorization: routes and workflow
transitions check them, never role names. ``DEFAULT_ROLE_PERMISSIONS`` is only
used to seed the ``roles``/``role_permissions`` tables.
"""

from __future__ import annotations


class Permissions:
    """Permission name constants."""

    MANAGE_ACCESS_CONTROL = "MANAGE:ACCESS_CONTROL"

    READ_CASHBOOKS = "READ:CASHBOOKS"
    EDIT_CASHBOOKS = "EDIT:CASHBOOKS"
    APPROVE_CASHBOOKS_L1 = "APPROVE:CASHBOOKS:L1"
    APPROVE_CASHBOOKS_L2 = "APPROVE:CASHBOOKS:L2"

    READ_CASHBOOK_BUDGETS = "READ:CASHBOOK_BUDGETS"
    EDIT_CASHBOOK_BUDGETS = "EDIT:CASHBOOK_BUDGETS"
    APPROVE_CASHBOOK_BUDGETS_L1 = "APPROVE:CASHBOOK_BUDGETS:L1"
    APPROVE_CASHBOOK_BUDGETS_L2 = "APPROVE:CASHBOOK_BUDGETS:L2"
    ACCEPT_CASHBOOK_BUDGETS = "ACCEPT:CASHBOOK_BUDGETS"

    READ_INDENTS = "READ:INDENTS"
    EDIT_INDENTS = "EDIT:INDENTS"
    APPROVE_INDENTS_L1 = "APPROVE:INDENTS:L1"
    APPROVE_INDENTS_L2 = "APPROVE:INDENTS:L2"
    COMPLETE_INDENTS = "COMPLETE:INDENTS"
    SUSPEND_INDENTS = "SUSPEND:INDENTS"

    READ_PURCHASE_ORDERS = "READ:PURCHASE_ORDERS"
    EDIT_PURCHASE_ORDERS = "EDIT:PURCHASE_ORDERS"
    APPROVE_PURCHASE_ORDERS_L1 = "APPROVE:PURCHASE_ORDERS:L1"
    APPROVE_PURCHASE_ORDERS_L2 = "APPROVE:PURCHASE_ORDERS:L2"
    COMPLETE_PURCHASE_ORDERS = "COMPLETE:PURCHASE_ORDERS"
    SUSPEND_PURCHASE_ORDERS = "SUSPEND:PURCHASE_ORDERS"

    READ_ASSET_TRANSFERS = "READ:ASSET_TRANSFERS"
    EDIT_ASSET_TRANSFERS = "EDIT:ASSET_TRANSFERS"
    APPROVE_ASSET_TRANSFERS = "APPROVE:ASSET_TRANSFERS"

    # Capability: approving level 1 also grants level 2.
    AUTO_APPROVE_LEVEL_2 = "AUTO_APPROVE:LEVEL_2"


ALL_PERMISSIONS: frozenset[str] = frozenset(
    value
    for name, value in vars(Permissions).items()
    if not name.startswith("_") and isinstance(value, str)
)

# Auto level-2 approval is an explicit capability, never implied by the admin role.
ADMIN_PERMISSIONS: frozenset[str] = ALL_PERMISSIONS - {Permissions.AUTO_APPROVE_LEVEL_2}


class Roles:
    ADMIN = "admin"
    PROJECT_DIRECTOR = "project_director"
    SITE_ENGINEER = "site_engineer"
    ACCOUNTANT = "accountant"
    USER = "user"


_READ_ALL = {
    Permissions.READ_CASHBOOKS,
    Permissions.READ_CASHBOOK_BUDGETS,
    Permissions.READ_INDENTS,
    Permissions.READ_PURCHASE_ORDERS,
    Permissions.READ_ASSET_TRANSFERS,
}

DEFAULT_ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    Roles.ADMIN: ADMIN_PERMISSIONS,
    Roles.PROJECT_DIRECTOR: frozenset(
        _READ_ALL
        | {
            Permissions.APPROVE_CASHBOOKS_L1,
            Permissions.APPROVE_CASHBOOKS_L2,
            Permissions.APPROVE_CASHBOOK_BUDGETS_L1,
            Permissions.APPROVE_CASHBOOK_BUDGETS_L2,
            Permissions.ACCEPT_CASHBOOK_BUDGETS,
            Permissions.APPROVE_INDENTS_L1,
            Permissions.APPROVE_INDENTS_L2,
            Permissions.COMPLETE_INDENTS,
            Permissions.SUSPEND_INDENTS,
            Permissions.APPROVE_PURCHASE_ORDERS_L1,
            Permissions.APPROVE_PURCHASE_ORDERS_L2,
            Permissions.COMPLETE_PURCHASE_ORDERS,
            Permissions.SUSPEND_PURCHASE_ORDERS,
            Permissions.APPROVE_ASSET_TRANSFERS,
            Permissions.AUTO_APPROVE_LEVEL_2,
        }
    ),
    Roles.SITE_ENGINEER: frozenset(
        _READ_ALL
        | {
            Permissions.EDIT_CASHBOOKS,
            Permissions.EDIT_CASHBOOK_BUDGETS,
            Permissions.EDIT_INDENTS,
            Permissions.EDIT_PURCHASE_ORDERS,
            Permissions.EDIT_ASSET_TRANSFERS,
            Permissions.APPROVE_INDENTS_L1,
        }
    ),
    Roles.ACCOUNTANT: frozenset(
        _READ_ALL
        | {
            Permissions.EDIT_CASHBOOKS,
            Permissions.APPROVE_CASHBOOKS_L1,
            Permissions.APPROVE_CASHBOOKS_L2,
            Permissions.APPROVE_CASHBOOK_BUDGETS_L1,
            Permissions.APPROVE_PURCHASE_ORDERS_L1,
        }
    ),
    Roles.USER: frozenset(_READ_ALL),
}


__all__ = ["ALL_PERMISSIONS", "DEFAULT_ROLE_PERMISSIONS", "Permissions", "Roles"]
