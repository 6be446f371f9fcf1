"""Store gateway: dedupe-on-insert, upsert and range reads per data stream.

Write semantics differ per stream:

- **Orders / transaction-history splits** are audited, human-reviewed uploads.
  ``insert_*`` refuses a second record for the same ``(location, date)`` with
  :class:`ConflictError`; correcting one means an explicit ``delete_*`` first.
- **Delivery / channel sales** are manually corrigible entries. ``upsert_*``
  updates the record for the date if present and inserts it otherwise; the
  last write wins.

Order insertion is two-phase (header, then line items). If the line items
fail, the header is deleted again as compensation; if that delete fails too,
:class:`OrphanedRecordError` is raised and logged at CRITICAL level.

Range reads return DataFrames with fixed columns (empty frames keep their
columns) for the aggregation layer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date

import pandas as pd
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from pos_analytics.config import DELIVERY_CHANNELS
from pos_analytics.exceptions import (
    ConflictError,
    OrphanedRecordError,
    PartialWriteFailure,
    ValidationError,
)
from pos_analytics.ingestion.types import (
    NormalizedLineItem,
    NormalizedReceipt,
    TransactionHistorySplit,
)
from pos_analytics.store.models import (
    ChannelDailySales,
    DailyRevenueSplit,
    DeliverySales,
    Order,
    OrderItem,
    ProcessingLog,
    ProcessingStatus,
)
from pos_analytics.utils import parse_amount

logger = logging.getLogger(__name__)

ORDER_COLUMNS = ["order_id", "business_date", "total_amount", "item_count", "receipt_filename"]
ITEM_COLUMNS = [
    "line_id",
    "order_id",
    "business_date",
    "item_name",
    "category",
    "quantity",
    "unit_price",
    "line_total",
]
SPLIT_COLUMNS = [
    "business_date",
    "lunch_revenue",
    "lunch_count",
    "dinner_revenue",
    "dinner_count",
    "total_revenue",
    "total_count",
]
DELIVERY_COLUMNS = ["business_date", "total_amount", "notes"]
CHANNEL_COLUMNS = [
    "business_date",
    "instore_revenue",
    "instore_order_count",
    *[f"{channel}_revenue" for channel in DELIVERY_CHANNELS],
]
LOG_COLUMNS = ["receipt_filename", "business_date", "status", "error_message", "processed_at"]


class StoreGateway:
    """Reads and writes all data streams for one location.

    Args:
        session_factory: SQLAlchemy sessionmaker bound to the engine owned by
            the caller.
        location: Location scope for orders, splits and delivery sales.
        channel_location: Location scope for multi-channel daily sales.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        location: str = "main",
        channel_location: str = "ewha",
    ) -> None:
        self._session_factory = session_factory
        self.location = location
        self.channel_location = channel_location

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def insert_order(self, receipt: NormalizedReceipt) -> int:
        """Insert a normalized receipt as an order with line items.

        Returns:
            The new order id.

        Raises:
            ConflictError: If an order already exists for the date.
            PartialWriteFailure: If the line items failed (header was removed).
            OrphanedRecordError: If the line items failed and the header could
                not be removed.
        """
        day = receipt.business_date
        if self.order_exists(day):
            logger.warning("Order for %s already exists at %s", day, self.location)
            raise ConflictError(day, "Receipt")

        order_id = self._insert_order_header(receipt)
        try:
            self._insert_line_items(order_id, receipt.items)
        except SQLAlchemyError as e:
            logger.error("Line items for order %s (%s) failed: %s; removing header", order_id, day, e)
            try:
                self._delete_order_by_id(order_id)
            except SQLAlchemyError as cleanup_error:
                logger.critical(
                    "Compensating delete of order %s (%s) failed: %s. Orphaned header left in store.",
                    order_id,
                    day,
                    cleanup_error,
                )
                raise OrphanedRecordError(
                    f"Line items for {day.isoformat()} failed and order header {order_id} "
                    f"could not be removed: {cleanup_error}",
                    business_date=day,
                    order_id=order_id,
                ) from e
            raise PartialWriteFailure(
                f"Line items for {day.isoformat()} failed; the order was rolled back: {e}",
                business_date=day,
            ) from e

        logger.info(
            "Saved order %s for %s: %d line(s), total %d",
            order_id,
            day,
            len(receipt.items),
            receipt.total_amount,
        )
        return order_id

    def order_exists(self, business_date: date) -> bool:
        with self._session_factory() as session:
            stmt = select(Order.id).where(
                Order.location == self.location, Order.order_date == business_date
            )
            return session.execute(stmt).first() is not None

    def get_order(self, business_date: date) -> Order | None:
        """Load the order for a date with its line items, or None."""
        with self._session_factory() as session:
            stmt = (
                select(Order)
                .options(selectinload(Order.items))
                .where(Order.location == self.location, Order.order_date == business_date)
            )
            return session.execute(stmt).scalar_one_or_none()

    def delete_order(self, business_date: date) -> bool:
        """Delete the order (and its line items) for a date.

        Returns:
            True if an order was deleted, False if none existed.
        """
        with self._session_factory() as session:
            order = session.execute(
                select(Order).where(
                    Order.location == self.location, Order.order_date == business_date
                )
            ).scalar_one_or_none()
            if order is None:
                return False
            session.delete(order)
            session.commit()
        logger.info("Deleted order for %s at %s", business_date, self.location)
        return True

    def _insert_order_header(self, receipt: NormalizedReceipt) -> int:
        with self._session_factory() as session:
            order = Order(
                location=self.location,
                order_date=receipt.business_date,
                total_amount=receipt.total_amount,
                item_count=receipt.item_count,
                receipt_filename=receipt.source_ref,
            )
            session.add(order)
            try:
                session.commit()
            except IntegrityError as e:
                # Another upload for the same date won the race
                session.rollback()
                logger.warning("Unique constraint rejected order for %s: %s", receipt.business_date, e)
                raise ConflictError(receipt.business_date, "Receipt") from e
            return order.id

    def _insert_line_items(self, order_id: int, items: Iterable[NormalizedLineItem]) -> None:
        with self._session_factory() as session:
            session.add_all(
                OrderItem(
                    order_id=order_id,
                    item_name=item.name,
                    category=item.category,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.line_total,
                )
                for item in items
            )
            try:
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise

    def _delete_order_by_id(self, order_id: int) -> None:
        with self._session_factory() as session:
            session.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
            session.execute(delete(Order).where(Order.id == order_id))
            session.commit()

    # ------------------------------------------------------------------
    # Transaction-history splits
    # ------------------------------------------------------------------

    def insert_revenue_split(self, split: TransactionHistorySplit) -> int:
        """Insert a lunch/dinner split for a date.

        Raises:
            ConflictError: If a split already exists for the date.
        """
        day = split.business_date
        with self._session_factory() as session:
            existing = session.execute(
                select(DailyRevenueSplit.id).where(
                    DailyRevenueSplit.location == self.location,
                    DailyRevenueSplit.business_date == day,
                )
            ).first()
            if existing is not None:
                logger.warning("Transaction history for %s already exists at %s", day, self.location)
                raise ConflictError(day, "Transaction history")

            record = DailyRevenueSplit(
                location=self.location,
                business_date=day,
                lunch_revenue=split.lunch_revenue,
                lunch_transaction_count=split.lunch_count,
                dinner_revenue=split.dinner_revenue,
                dinner_transaction_count=split.dinner_count,
                total_revenue=split.total_revenue,
                total_transaction_count=split.total_count,
                receipt_filename=split.source_ref,
            )
            session.add(record)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ConflictError(day, "Transaction history") from e

            logger.info(
                "Saved transaction history %s for %s: lunch %d, dinner %d",
                record.id,
                day,
                split.lunch_revenue,
                split.dinner_revenue,
            )
            return record.id

    def delete_revenue_split(self, business_date: date) -> bool:
        with self._session_factory() as session:
            result = session.execute(
                delete(DailyRevenueSplit).where(
                    DailyRevenueSplit.location == self.location,
                    DailyRevenueSplit.business_date == business_date,
                )
            )
            session.commit()
        deleted = bool(result.rowcount)
        if deleted:
            logger.info("Deleted transaction history for %s at %s", business_date, self.location)
        return deleted

    # ------------------------------------------------------------------
    # Delivery and channel sales (upsert, last write wins)
    # ------------------------------------------------------------------

    def upsert_delivery_sales(self, sale_date: date, total_amount: object, notes: str | None = None) -> int:
        """Insert or update the single-channel delivery total for a date.

        Raises:
            ValidationError: If the amount is missing or negative.
        """
        amount = parse_amount(total_amount, "total_amount")
        if amount < 0:
            raise ValidationError("Valid total amount is required (must not be negative)")

        with self._session_factory() as session:
            record = session.execute(
                select(DeliverySales).where(
                    DeliverySales.location == self.location, DeliverySales.sale_date == sale_date
                )
            ).scalar_one_or_none()
            action = "Updated" if record is not None else "Inserted"
            if record is None:
                record = DeliverySales(location=self.location, sale_date=sale_date, total_amount=amount)
                session.add(record)
            record.total_amount = amount
            record.notes = notes or None
            session.commit()
            logger.info("%s delivery sales for %s: %d", action, sale_date, amount)
            return record.id

    def upsert_channel_sales(
        self,
        sale_date: date,
        instore_revenue: object = 0,
        instore_order_count: object = 0,
        channel_revenue: Mapping[str, object] | None = None,
        notes: str | None = None,
    ) -> int:
        """Insert or update the multi-channel daily sales for a date.

        Args:
            sale_date: Date of the sales.
            instore_revenue: In-store revenue.
            instore_order_count: In-store order count.
            channel_revenue: Revenue per delivery channel; missing channels are 0.
            notes: Free-text notes.

        Raises:
            ValidationError: If a channel is unknown or an amount is negative.
        """
        channel_revenue = dict(channel_revenue or {})
        unknown = set(channel_revenue) - set(DELIVERY_CHANNELS)
        if unknown:
            raise ValidationError(
                f"Unknown delivery channel(s) {sorted(unknown)}; expected {list(DELIVERY_CHANNELS)}"
            )

        values = {
            "instore_revenue": parse_amount(instore_revenue or 0, "instore_revenue"),
            "instore_order_count": parse_amount(instore_order_count or 0, "instore_order_count"),
        }
        for channel in DELIVERY_CHANNELS:
            values[f"{channel}_revenue"] = parse_amount(
                channel_revenue.get(channel) or 0, f"{channel}_revenue"
            )
        negative = [name for name, value in values.items() if value < 0]
        if negative:
            raise ValidationError(f"Negative values are not allowed: {negative}")

        with self._session_factory() as session:
            record = session.execute(
                select(ChannelDailySales).where(
                    ChannelDailySales.location == self.channel_location,
                    ChannelDailySales.sale_date == sale_date,
                )
            ).scalar_one_or_none()
            action = "Updated" if record is not None else "Inserted"
            if record is None:
                record = ChannelDailySales(location=self.channel_location, sale_date=sale_date)
                session.add(record)
            for name, value in values.items():
                setattr(record, name, value)
            record.notes = notes or None
            session.commit()
            logger.info("%s channel sales for %s at %s", action, sale_date, self.channel_location)
            return record.id

    # ------------------------------------------------------------------
    # Processing log (append-only)
    # ------------------------------------------------------------------

    def log_processing(
        self,
        source_ref: str,
        business_date: date | None,
        status: str = ProcessingStatus.SUCCESS,
        error_message: str | None = None,
    ) -> None:
        with self._session_factory() as session:
            session.add(
                ProcessingLog(
                    receipt_filename=source_ref,
                    order_date=business_date,
                    status=status,
                    error_message=error_message,
                )
            )
            session.commit()

    # ------------------------------------------------------------------
    # Range reads
    # ------------------------------------------------------------------

    def read_orders(self, start: date, end: date) -> pd.DataFrame:
        stmt = (
            select(
                Order.id,
                Order.order_date,
                Order.total_amount,
                Order.item_count,
                Order.receipt_filename,
            )
            .where(Order.location == self.location, Order.order_date.between(start, end))
            .order_by(Order.order_date, Order.id)
        )
        return self._frame(stmt, ORDER_COLUMNS)

    def read_order_items(self, start: date, end: date) -> pd.DataFrame:
        """Line items of orders dated in [start, end], in insertion order per day."""
        stmt = (
            select(
                OrderItem.id,
                OrderItem.order_id,
                Order.order_date,
                OrderItem.item_name,
                OrderItem.category,
                OrderItem.quantity,
                OrderItem.unit_price,
                OrderItem.total_price,
            )
            .join(Order, OrderItem.order_id == Order.id)
            .where(Order.location == self.location, Order.order_date.between(start, end))
            .order_by(Order.order_date, OrderItem.id)
        )
        return self._frame(stmt, ITEM_COLUMNS)

    def read_revenue_splits(self, start: date, end: date) -> pd.DataFrame:
        stmt = (
            select(
                DailyRevenueSplit.business_date,
                DailyRevenueSplit.lunch_revenue,
                DailyRevenueSplit.lunch_transaction_count,
                DailyRevenueSplit.dinner_revenue,
                DailyRevenueSplit.dinner_transaction_count,
                DailyRevenueSplit.total_revenue,
                DailyRevenueSplit.total_transaction_count,
            )
            .where(
                DailyRevenueSplit.location == self.location,
                DailyRevenueSplit.business_date.between(start, end),
            )
            .order_by(DailyRevenueSplit.business_date)
        )
        return self._frame(stmt, SPLIT_COLUMNS)

    def read_delivery_sales(self, start: date, end: date) -> pd.DataFrame:
        stmt = (
            select(DeliverySales.sale_date, DeliverySales.total_amount, DeliverySales.notes)
            .where(
                DeliverySales.location == self.location,
                DeliverySales.sale_date.between(start, end),
            )
            .order_by(DeliverySales.sale_date)
        )
        return self._frame(stmt, DELIVERY_COLUMNS)

    def read_channel_sales(self, start: date, end: date) -> pd.DataFrame:
        stmt = (
            select(
                ChannelDailySales.sale_date,
                ChannelDailySales.instore_revenue,
                ChannelDailySales.instore_order_count,
                *[getattr(ChannelDailySales, f"{channel}_revenue") for channel in DELIVERY_CHANNELS],
            )
            .where(
                ChannelDailySales.location == self.channel_location,
                ChannelDailySales.sale_date.between(start, end),
            )
            .order_by(ChannelDailySales.sale_date)
        )
        return self._frame(stmt, CHANNEL_COLUMNS)

    def read_recent_orders(self, limit: int, offset: int = 0) -> pd.DataFrame:
        """Most recent orders first, for paging through order history."""
        stmt = (
            select(
                Order.id,
                Order.order_date,
                Order.total_amount,
                Order.item_count,
                Order.receipt_filename,
            )
            .where(Order.location == self.location)
            .order_by(Order.order_date.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return self._frame(stmt, ORDER_COLUMNS)

    def read_processing_log(self, limit: int | None = None) -> pd.DataFrame:
        stmt = select(
            ProcessingLog.receipt_filename,
            ProcessingLog.order_date,
            ProcessingLog.status,
            ProcessingLog.error_message,
            ProcessingLog.processed_at,
        ).order_by(ProcessingLog.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._frame(stmt, LOG_COLUMNS)

    def _frame(self, stmt, columns: list[str]) -> pd.DataFrame:
        with self._session_factory() as session:
            rows = [tuple(row) for row in session.execute(stmt).all()]
        return pd.DataFrame(rows, columns=columns)
