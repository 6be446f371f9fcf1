"""Ingestion: vision extraction and normalization of receipts.

- ``ingestion.extraction``: VisionExtractor and JSON payload parsing
- ``ingestion.normalize``: recompute totals, split lunch/dinner
- ``ingestion.api``: the full pipeline with processing-log rows

Example:
    >>> from pos_analytics.ingestion import normalize_receipt
    >>> receipt = normalize_receipt(raw, business_date="2025-12-02")
    >>> receipt.total_amount, receipt.has_discrepancies
"""

from pos_analytics.ingestion.extraction import VisionExtractor, parse_extraction_payload
from pos_analytics.ingestion.normalize import normalize_receipt, normalize_transaction_history
from pos_analytics.ingestion.types import (
    Discrepancy,
    NormalizedLineItem,
    NormalizedReceipt,
    Transaction,
    TransactionHistorySplit,
)

__all__ = [
    "Discrepancy",
    "NormalizedLineItem",
    "NormalizedReceipt",
    "Transaction",
    "TransactionHistorySplit",
    "VisionExtractor",
    "normalize_receipt",
    "normalize_transaction_history",
    "parse_extraction_payload",
]
