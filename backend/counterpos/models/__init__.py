from .auth import User
from .inventory import Product
from .sales import Sale
from .settings import StoreSettings, SETTINGS_ID

__all__ = [
    'User',
    'Product',
    'Sale',
    'StoreSettings', 'SETTINGS_ID',
]
