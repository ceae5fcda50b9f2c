"""movement-summary — Monthly per-customer totals from a movements workbook."""

__version__ = "0.1.0"

CUSTOMER_COLUMN = "A"
DATE_COLUMN = "B"
AMOUNT_COLUMN = "C"
HEADER_ROW = 1
