from .catalog import Item
from .stock import LedgerEntry, StockAdjustment, LOCATIONS, MAIN_STORE, PHARMACY, POINT_OF_SALE
from .intake import IntakeRecord
from .transfers import StockTransfer
from .sales import Sale, SaleLine

__all__ = [
    'Item',
    'LedgerEntry', 'StockAdjustment',
    'LOCATIONS', 'MAIN_STORE', 'PHARMACY', 'POINT_OF_SALE',
    'IntakeRecord',
    'StockTransfer',
    'Sale', 'SaleLine',
]
