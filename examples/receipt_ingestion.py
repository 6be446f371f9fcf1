"""Example: Receipt ingestion and weekly summary

This example stores one day of reviewed extractions and reads them back:
1. Save a receipt payload as the day's order (line items + recomputed totals)
2. Save the transaction history as the day's lunch/dinner split
3. Record the day's delivery total
4. Print the last-7-days summary and a coverage check

Prerequisites:
- Optionally set POS_DATABASE_URL (defaults to a local SQLite file)
"""

from datetime import date

from pos_analytics import AnalyticsService, AppConfig
from pos_analytics.ingestion.api import save_receipt, save_transaction_history
from pos_analytics.qa import run_coverage_qa
from pos_analytics.store import StoreGateway, create_engine_from_config, create_session_factory, init_schema

config = AppConfig.from_env()
engine = create_engine_from_config(config)
init_schema(engine)
gateway = StoreGateway(create_session_factory(engine), config.location, config.channel_location)
service = AnalyticsService(gateway, config=config)

business_date = date.today()  # MODIFY AS NEEDED

receipt = {
    "items": [
        {"name": "팟타이꿍", "quantity": 12, "unit_price": 13000, "category": "식사류"},
        {"name": "쏨땀", "quantity": 5, "unit_price": 9000, "category": "사이드메뉴"},
        {"name": "땡모반", "quantity": 8, "unit_price": 6000, "category": "음료수류"},
    ],
    "total_amount": 249000,
    "item_count": 25,
}
transactions = {
    "transactions": [
        {"time": "11:42:10", "amount": 91000},
        {"time": "13:05:00", "amount": 64000},
        {"time": "18:20:45", "amount": 94000},
    ],
    "total_amount": 249000,
}

print(f"Saving uploads for {business_date}...")
result = save_receipt(gateway, receipt, business_date)
for d in result.discrepancies:
    print(f"  WARNING: reported {d.field}={d.reported}, computed {d.computed}")
save_transaction_history(gateway, transactions, business_date)
gateway.upsert_delivery_sales(business_date, 85000)

summary = service.sales_summary("7d")
current = summary.current
print("\nLast 7 days:")
print(f"  - Revenue: {current.total_revenue:,} ({summary.revenue_change:+.1f}%)")
print(f"  - Items sold: {current.total_items}")
print(f"  - Top item: {current.top_item.name if current.top_item else '-'}")
print(f"  - Lunch share: {current.dayparts.lunch_share:.1f}%")
print(f"  - POS + delivery: {current.combined_revenue:,}")

qa_result = run_coverage_qa(service.load_frames("7d", counted_only=False), service.calendar)
print("\nCoverage:")
print(f"  - Days without orders: {qa_result.summary['missing_order_days_count']}")
print(f"  - Closed-day records: {qa_result.summary['closed_day_records_count']}")

engine.dispose()
