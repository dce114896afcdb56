"""
Operational reports.

Every report is a function ``(start, end, args) -> dict``; ``REPORTS`` maps
the URL name of a report to its function.
"""
from hotel_pms.reports.common import parse_report_range
from hotel_pms.reports.front_office import (
    arrival_report, police_report, food_plan_report, foreigner_report,
    expected_checkout_report, checkin_checkout_report, early_checkin_late_checkout_report,
    complimentary_checkin_report, cancelled_checkin_report, fetch_checkin_rows, fetch_checkout_rows
)
from hotel_pms.reports.rooms import (
    occupancy_analysis_report, occupancy_vacant_report, blocked_rooms_report,
    rooms_transfers_report, roomwise_report
)
from hotel_pms.reports.finance import (
    collection_report, sales_day_book_report, high_balance_report, sales_report, day_settlement_report
)

REPORTS = {
    'arrival': arrival_report,
    'police': police_report,
    'food-plan': food_plan_report,
    'foreigner': foreigner_report,
    'rooms-transfers': rooms_transfers_report,
    'occupancy-analysis': occupancy_analysis_report,
    'expected-checkout': expected_checkout_report,
    'occupancy-vacant': occupancy_vacant_report,
    'blocked-rooms': blocked_rooms_report,
    'cancelled-checkin': cancelled_checkin_report,
    'complimentary-checkin': complimentary_checkin_report,
    'early-checkin-late-checkout': early_checkin_late_checkout_report,
    'day-settlement': day_settlement_report,
    'checkin-checkout': checkin_checkout_report,
    'collection': collection_report,
    'sales-day-book': sales_day_book_report,
    'high-balance': high_balance_report,
    'sales-report': sales_report,
    'roomwise': roomwise_report,
}

# reports that also run without a date range
OPTIONAL_RANGE = {'high-balance'}

__all__ = [
    'REPORTS',
    'OPTIONAL_RANGE',
    'parse_report_range',
    'fetch_checkin_rows',
    'fetch_checkout_rows',
]
