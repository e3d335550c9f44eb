from .csv_loader import parse_transactions_csv, REQUIRED_COLUMNS

__all__ = ['parse_transactions_csv', 'REQUIRED_COLUMNS']
