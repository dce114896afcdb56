"""
Database package for Hotel PMS
"""
from hotel_pms.database.db import get_supabase, get_hotel_database, HotelDatabase
from hotel_pms.database.models import (
RoomTypeModel,
RoomModel,
GuestModel,
StaffModel,
MealPlanModel,
HousekeepingModel
)
from hotel_pms.database.bookings import (
BookingModel,
PaymentModel,
BlockedRoomModel
)
__all__ = [
'get_supabase',
'get_hotel_database',
'HotelDatabase',
'RoomTypeModel',
'RoomModel',
'GuestModel',
'StaffModel',
'MealPlanModel',
'HousekeepingModel',
'BookingModel',
'PaymentModel',
'BlockedRoomModel'
]
