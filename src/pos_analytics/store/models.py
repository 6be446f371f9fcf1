from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass


class ProcessingStatus:
    SUCCESS = "success"
    FAILED = "failed"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("location", "order_date", name="uq_orders_location_date"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    location: Mapped[str] = mapped_column(String(64), nullable=False, default="main")
    order_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    item_count: Mapped[int] = mapped_column(Integer, nullable=False)
    receipt_filename: Mapped[str] = mapped_column(Text, nullable=False)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    items: Mapped[list[OrderItem]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_price: Mapped[int] = mapped_column(BigInteger, nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")


class DailyRevenueSplit(Base):
    __tablename__ = "daily_revenue_splits"
    __table_args__ = (
        UniqueConstraint("location", "business_date", name="uq_daily_revenue_splits_location_date"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    location: Mapped[str] = mapped_column(String(64), nullable=False, default="main")
    business_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    lunch_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    lunch_transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dinner_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    dinner_transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    receipt_filename: Mapped[str | None] = mapped_column(Text)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class DeliverySales(Base):
    __tablename__ = "delivery_sales"
    __table_args__ = (
        UniqueConstraint("location", "sale_date", name="uq_delivery_sales_location_date"),
        CheckConstraint("total_amount >= 0", name="ck_delivery_sales_amount_non_negative"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    location: Mapped[str] = mapped_column(String(64), nullable=False, default="main")
    sale_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class ChannelDailySales(Base):
    __tablename__ = "channel_daily_sales"
    __table_args__ = (
        UniqueConstraint("location", "sale_date", name="uq_channel_daily_sales_location_date"),
    )

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    location: Mapped[str] = mapped_column(String(64), nullable=False)
    sale_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    instore_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    instore_order_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    coupang_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    baemin_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    panda_revenue: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class ProcessingLog(Base):
    __tablename__ = "processing_log"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    receipt_filename: Mapped[str] = mapped_column(Text, nullable=False)
    order_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
