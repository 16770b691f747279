"""ORM models exposed for easy imports."""

from .access_control import Role, RolePermission, UserPermission
from .approval import ApprovalLog
from .asset import Asset, AssetTransfer, AssetTransferItem
from .cashbook import Cashbook, CashbookDetail
from .cashbook_budget import CashbookBudget, CashbookBudgetItem
from .indent import Indent, IndentItem
from .purchase_order import PurchaseOrder, PurchaseOrderDetail
from .site import Site, SiteAssignment
from .status import TERMINAL_STATUSES, ApprovalStatus
from .user import User

__all__ = [
    "ApprovalLog",
    "ApprovalStatus",
    "Asset",
    "AssetTransfer",
    "AssetTransferItem",
    "Cashbook",
    "CashbookBudget",
    "CashbookBudgetItem",
    "CashbookDetail",
    "Indent",
    "IndentItem",
    "PurchaseOrder",
    "PurchaseOrderDetail",
    "Role",
    "RolePermission",
    "Site",
    "SiteAssignment",
    "TERMINAL_STATUSES",
    "User",
    "UserPermission",
]
