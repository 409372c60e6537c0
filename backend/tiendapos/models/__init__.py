from .tenancy import Profile, TeamMember, TeamInvitation
from .inventory import Product
from .registers import CashRegister
from .sales import Sale, SaleItem
from .purchases import Purchase, PurchaseItem
from .auth import SessionToken

__all__ = [
    'Profile', 'TeamMember', 'TeamInvitation',
    'Product',
    'CashRegister',
    'Sale', 'SaleItem',
    'Purchase', 'PurchaseItem',
    'SessionToken',
]
