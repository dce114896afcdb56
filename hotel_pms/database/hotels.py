"""
Hotel registry and per-hotel table provisioning
"""
import logging
from typing import Dict, List
from hotel_pms.config import Config
from hotel_pms.database.db import get_hotel_database
from hotel_pms.errors import PMSError

logger = logging.getLogger(__name__)

# {prefix} is replaced with the hotel's table prefix
HOTEL_TABLES_DDL = [
    """CREATE TABLE IF NOT EXISTS {prefix}staff (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        auth_user_id UUID UNIQUE,
        name TEXT NOT NULL,
        email TEXT UNIQUE NOT NULL,
        phone TEXT,
        role TEXT NOT NULL,
        department TEXT,
        status TEXT DEFAULT 'active',
        join_date DATE DEFAULT CURRENT_DATE,
        permissions JSONB DEFAULT '[]',
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ
    )""",
    """CREATE TABLE IF NOT EXISTS {prefix}guests (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        email TEXT,
        phone TEXT,
        address JSONB,
        nationality TEXT,
        id_type TEXT,
        id_number TEXT,
        passport_number TEXT,
        arrival_from TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ
    )""",
    """CREATE TABLE IF NOT EXISTS {prefix}room_types (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        code TEXT NOT NULL,
        base_price NUMERIC NOT NULL,
        max_pax INTEGER DEFAULT 2,
        description TEXT,
        amenities JSONB DEFAULT '[]',
        is_active BOOLEAN DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ
    )""",
    """CREATE TABLE IF NOT EXISTS {prefix}rooms (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        number TEXT UNIQUE NOT NULL,
        room_type_id UUID REFERENCES {prefix}room_types(id),
        floor INTEGER,
        status TEXT DEFAULT 'available',
        price NUMERIC,
        amenities JSONB DEFAULT '[]',
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ
    )""",
    """CREATE TABLE IF NOT EXISTS {prefix}bookings (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        booking_number TEXT UNIQUE NOT NULL,
        guest_id UUID REFERENCES {prefix}guests(id),
        staff_id UUID REFERENCES {prefix}staff(id),
        status TEXT DEFAULT 'confirmed',
        number_of_guests INTEGER DEFAULT 1,
        extra_guests INTEGER DEFAULT 0,
        child_guests INTEGER DEFAULT 0,
        arrival_type TEXT,
        ota_company TEXT,
        meal_plan TEXT,
        plan_name TEXT,
        purpose TEXT,
        special_requests TEXT,
        planned_nights INTEGER,
        actual_check_in TIMESTAMPTZ,
        actual_check_out TIMESTAMPTZ,
        checkout_notes TEXT,
        booked_on TIMESTAMPTZ DEFAULT NOW(),
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ
    )""",
    """CREATE TABLE IF NOT EXISTS {prefix}booking_rooms (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        booking_id UUID REFERENCES {prefix}bookings(id) ON DELETE CASCADE,
        room_id UUID REFERENCES {prefix}rooms(id),
        room_type_id UUID REFERENCES {prefix}room_types(id),
        check_in_date DATE NOT NULL,
        check_out_date DATE NOT NULL,
        actual_check_in TIMESTAMPTZ,
        actual_check_out TIMESTAMPTZ,
        room_status TEXT DEFAULT 'reserved',
        room_rate NUMERIC,
        expected_nights INTEGER,
        room_total NUMERIC,
        meal_plan_id UUID,
        created_at TIMESTAMPTZ DEFAULT NOW()
    )""",
    """CREATE TABLE IF NOT EXISTS {prefix}booking_payment_breakdown (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        booking_id UUID UNIQUE REFERENCES {prefix}bookings(id) ON DELETE CASCADE,
        total_amount NUMERIC DEFAULT 0,
        total_tax_amount NUMERIC DEFAULT 0,
        taxed_total_amount NUMERIC DEFAULT 0,
        advance_cash NUMERIC DEFAULT 0,
        advance_card NUMERIC DEFAULT 0,
        advance_upi NUMERIC DEFAULT 0,
        advance_bank NUMERIC DEFAULT 0,
        receipt_cash NUMERIC DEFAULT 0,
        receipt_card NUMERIC DEFAULT 0,
        receipt_upi NUMERIC DEFAULT 0,
        receipt_bank NUMERIC DEFAULT 0,
        price_adjustment NUMERIC DEFAULT 0,
        outstanding_amount NUMERIC DEFAULT 0,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ
    )"""
]


def get_available_hotels() -> List[Dict]:
    return [
        {'id': hotel_id, 'name': hotel['name'], 'table_prefix': hotel['table_prefix']}
        for hotel_id, hotel in Config.HOTEL_DATABASES.items()
    ]


def build_hotel_ddl(table_prefix: str) -> List[str]:
    return [statement.format(prefix=table_prefix) for statement in HOTEL_TABLES_DDL]


def create_hotel_tables(hotel_id: str) -> Dict:
    """
    Create the prefixed tables for a hotel through the exec_sql rpc.
    Requires the service-role client.
    """
    hotel_db = get_hotel_database(hotel_id)
    admin = hotel_db.raw_admin_client
    if admin is None:
        raise PMSError("Admin client not available")

    statements = build_hotel_ddl(hotel_db.table_prefix)
    for statement in statements:
        try:
            admin.rpc('exec_sql', {'sql': statement}).execute()
        except Exception as e:
            logger.error(f"Error creating tables for {hotel_id}: {e}")
            raise

    logger.info(f"Created {len(statements)} tables for {hotel_id}")
    return {'hotel_id': hotel_id, 'table_prefix': hotel_db.table_prefix, 'tables_created': len(statements)}
