"""
Room transfer notifications.

Every notification is stored in ``transfer_notifications``; when a webhook
is configured it is also POSTed there and the row is marked sent/failed.
"""
import logging
from datetime import datetime
from typing import Dict, List
import requests
from hotel_pms.config import Config
from hotel_pms.database.db import get_supabase
from hotel_pms.database.models import first

logger = logging.getLogger(__name__)

TEMPLATES = {
    'guest_notification': {
        'subject': 'Room Transfer Notification',
        'message': (
            "Dear {guest_name},\n\n"
            "Your room has been transferred.\n\n"
            "From Room: {from_room}\n"
            "To Room: {to_room}\n"
            "Transfer Date: {transfer_date}\n"
            "Reason: {reason}\n"
            "New Room Type: {room_type}\n\n"
            "Please collect your new room key from the front desk.\n"
        )
    },
    'housekeeping_notification': {
        'subject': 'Room Transfer - Housekeeping Update Required',
        'message': (
            "Guest: {guest_name}\n"
            "From Room: {from_room}\n"
            "To Room: {to_room}\n"
            "Transfer Date: {transfer_date}\n"
            "Reason: {reason}\n\n"
            "Clean and prepare room {from_room}, service room {to_room} and update room status.\n"
        )
    },
    'management_notification': {
        'subject': 'Room Transfer Report',
        'message': (
            "Guest: {guest_name}\n"
            "Booking Number: {booking_number}\n"
            "From Room: {from_room}\n"
            "To Room: {to_room}\n"
            "Transfer Date: {transfer_date}\n"
            "Reason: {reason}\n"
            "Transferred By: {staff_name}\n"
        )
    }
}


def build_transfer_notifications(transfer: Dict) -> List[Dict]:
    """Notification rows for a completed transfer; the guest copy needs an email"""
    values = {key: transfer.get(key) or 'N/A' for key in (
        'guest_name', 'booking_number', 'from_room', 'to_room', 'transfer_date',
        'reason', 'staff_name', 'room_type'
    )}
    recipients = {
        'guest_notification': transfer.get('guest_email'),
        'housekeeping_notification': Config.HOUSEKEEPING_EMAIL,
        'management_notification': Config.MANAGEMENT_EMAIL
    }

    notifications = []
    for kind, template in TEMPLATES.items():
        recipient = recipients[kind]
        if not recipient:
            continue
        notifications.append({
            'type': kind,
            'recipient': recipient,
            'subject': template['subject'],
            'message': template['message'].format(**values),
            'status': 'pending',
            'transfer_id': transfer.get('transfer_id'),
            'booking_id': transfer.get('booking_id'),
            'created_at': datetime.now().isoformat()
        })
    return notifications


def deliver(notification: Dict) -> bool:
    """POST one notification to the webhook; True when it was accepted"""
    url = Config.NOTIFICATION_WEBHOOK_URL
    if not url:
        return False
    try:
        response = requests.post(url, json=notification, timeout=Config.NOTIFICATION_TIMEOUT)
        if response.status_code >= 400:
            logger.warning(f"Webhook rejected {notification['type']}: HTTP {response.status_code}")
            return False
        return True
    except requests.exceptions.ConnectionError:
        logger.warning(f"Cannot connect to notification webhook {url}")
    except requests.exceptions.Timeout:
        logger.warning(f"Notification webhook timed out after {Config.NOTIFICATION_TIMEOUT}s")
    return False


def send_transfer_notifications(transfer: Dict) -> List[Dict]:
    supabase = get_supabase()
    stored = []
    for notification in build_transfer_notifications(transfer):
        row = first(supabase.table('transfer_notifications').insert(notification).execute()) or notification
        if Config.NOTIFICATION_WEBHOOK_URL:
            sent = deliver(notification)
            update = {'status': 'sent' if sent else 'failed'}
            if sent:
                update['sent_at'] = datetime.now().isoformat()
            if row.get('id') is not None:
                supabase.table('transfer_notifications').update(update).eq('id', row['id']).execute()
            row.update(update)
        stored.append(row)
    logger.info(f"Queued {len(stored)} transfer notifications for booking {transfer.get('booking_id')}")
    return stored
