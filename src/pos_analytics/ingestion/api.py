"""Ingestion pipeline: extract, normalize, store, log.

``ingest_*`` run the whole pipeline from an image. ``save_*`` start from an
already-extracted payload, which is how a reviewed or hand-corrected
extraction is stored.

Every attempt leaves one row in the processing log: ``success`` with the
business date, or ``failed`` with the error message. Errors are re-raised
after logging.

Example:
    >>> from pos_analytics.ingestion.api import ingest_receipt
    >>> result = ingest_receipt(gateway, extractor, "receipts/2025-12-02.jpg", "2025-12-02")
    >>> result.record_id, result.discrepancies
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from pos_analytics.config import AppConfig
from pos_analytics.exceptions import ExtractionFormatError, PosAnalyticsError, ValidationError
from pos_analytics.ingestion.extraction import VisionExtractor, encode_image
from pos_analytics.ingestion.normalize import normalize_receipt, normalize_transaction_history
from pos_analytics.ingestion.types import Discrepancy, NormalizedReceipt, TransactionHistorySplit
from pos_analytics.store.gateway import StoreGateway
from pos_analytics.store.models import ProcessingStatus
from pos_analytics.utils import parse_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of a successful ingestion.

    Attributes:
        record_id: Id of the stored order or transaction-history split.
        record: The normalized record that was stored.
    """

    record_id: int
    record: NormalizedReceipt | TransactionHistorySplit

    @property
    def discrepancies(self) -> tuple[Discrepancy, ...]:
        return self.record.discrepancies


def _image_url(image: str | Path) -> str:
    if isinstance(image, str) and image.startswith("data:"):
        return image
    try:
        return encode_image(image)
    except OSError as e:
        raise ValidationError(f"Could not read image {image}: {e}") from e


def _default_source_ref(image: str | Path, fallback: str) -> str:
    if isinstance(image, str) and image.startswith("data:"):
        return fallback
    return Path(image).name


def _failure_message(error: Exception) -> str:
    if isinstance(error, ExtractionFormatError):
        return f"{error}\nRaw response:\n{error.raw_text}"
    return str(error)


def _run_logged(
    gateway: StoreGateway,
    source_ref: str,
    business_date: date | None,
    step: Callable[[], IngestionResult],
) -> IngestionResult:
    try:
        result = step()
    except (PosAnalyticsError, SQLAlchemyError) as e:
        logger.error("Ingestion of %s failed: %s", source_ref, e)
        try:
            gateway.log_processing(source_ref, business_date, ProcessingStatus.FAILED, _failure_message(e))
        except SQLAlchemyError as log_error:
            logger.error("Could not record failed ingestion of %s: %s", source_ref, log_error)
        raise
    gateway.log_processing(source_ref, result.record.business_date, ProcessingStatus.SUCCESS)
    return result


def save_receipt(
    gateway: StoreGateway,
    raw: Mapping[str, Any],
    business_date: date | str | None = None,
    source_ref: str | None = None,
    config: AppConfig | None = None,
) -> IngestionResult:
    """Normalize and store an extracted receipt.

    Raises:
        ValidationError: If the payload cannot be normalized.
        ConflictError: If an order already exists for the date.
        PartialWriteFailure: If the line items could not be stored.
    """
    day = parse_date(business_date, "business_date") if business_date else None
    ref = source_ref or f"{(day or 'receipt')}.jpg"

    def step() -> IngestionResult:
        receipt = normalize_receipt(raw, business_date=day, source_ref=ref, config=config)
        return IngestionResult(gateway.insert_order(receipt), receipt)

    return _run_logged(gateway, ref, day, step)


def save_transaction_history(
    gateway: StoreGateway,
    raw: Mapping[str, Any],
    business_date: date | str | None = None,
    source_ref: str | None = None,
    config: AppConfig | None = None,
) -> IngestionResult:
    """Normalize and store an extracted transaction history.

    Raises:
        ValidationError: If the payload cannot be normalized.
        ConflictError: If a split already exists for the date.
    """
    day = parse_date(business_date, "business_date") if business_date else None
    ref = source_ref or f"{(day or 'transactions')}-transactions.jpg"

    def step() -> IngestionResult:
        split = normalize_transaction_history(raw, business_date=day, source_ref=ref, config=config)
        return IngestionResult(gateway.insert_revenue_split(split), split)

    return _run_logged(gateway, ref, day, step)


def ingest_receipt(
    gateway: StoreGateway,
    extractor: VisionExtractor,
    image: str | Path,
    business_date: date | str,
    source_ref: str | None = None,
) -> IngestionResult:
    """Extract a receipt image and store it.

    Args:
        gateway: Store gateway.
        extractor: Vision extractor.
        image: Image path or data URL.
        business_date: Business date of the receipt.
        source_ref: Reference stored with the order; defaults to the file name.

    Raises:
        ExternalServiceError: If the extraction call fails.
        ExtractionFormatError: If the model's reply is not parseable JSON.
        ValidationError, ConflictError, PartialWriteFailure: As in
            :func:`save_receipt`.
    """
    day = parse_date(business_date, "business_date")
    ref = source_ref or _default_source_ref(image, f"{day.isoformat()}.jpg")

    def step() -> IngestionResult:
        raw = extractor.extract_receipt(_image_url(image))
        receipt = normalize_receipt(raw, business_date=day, source_ref=ref, config=extractor.config)
        return IngestionResult(gateway.insert_order(receipt), receipt)

    return _run_logged(gateway, ref, day, step)


def ingest_transaction_history(
    gateway: StoreGateway,
    extractor: VisionExtractor,
    image: str | Path,
    business_date: date | str,
    source_ref: str | None = None,
) -> IngestionResult:
    """Extract a transaction-history image and store its lunch/dinner split."""
    day = parse_date(business_date, "business_date")
    ref = source_ref or _default_source_ref(image, f"{day.isoformat()}-transactions.jpg")

    def step() -> IngestionResult:
        raw = extractor.extract_transaction_history(_image_url(image))
        split = normalize_transaction_history(
            raw, business_date=day, source_ref=ref, config=extractor.config
        )
        return IngestionResult(gateway.insert_revenue_split(split), split)

    return _run_logged(gateway, ref, day, step)
