from .auth import User, LoginHistory
from .catalog import Product, Customer
from .inventory import Inventory, InventoryTransaction, signed_quantity
from .sales import Sale, SaleItem
from .settings import StoreSettings, SETTINGS_ID
from .communications import Notification
from .append_only import AppendOnlyViolation
from .policies import (
    FOREIGN_KEY_POLICIES,
    SchemaPolicyError,
    association_policy_problems,
    verify_association_policies,
    verify_database_policies,
)

__all__ = [
    'User', 'LoginHistory',
    'Product', 'Customer',
    'Inventory', 'InventoryTransaction', 'signed_quantity',
    'Sale', 'SaleItem',
    'StoreSettings', 'SETTINGS_ID',
    'Notification',
    'AppendOnlyViolation',
    'FOREIGN_KEY_POLICIES', 'SchemaPolicyError',
    'association_policy_problems', 'verify_association_policies', 'verify_database_policies',
]
