import os
import logging
from datetime import timedelta
from dotenv import load_dotenv
load_dotenv()

logger = logging.getLogger(__name__)


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', 5000))

    SUPABASE_URL = os.getenv('SUPABASE_URL')
    SUPABASE_KEY = os.getenv('SUPABASE_KEY')
    SUPABASE_SERVICE_KEY = os.getenv('SUPABASE_SERVICE_KEY')
    # Empty means unprefixed tables on the default project
    HOTEL_ID = os.getenv('HOTEL_ID') or None

    SESSION_TYPE = 'filesystem'
    SESSION_FILE_DIR = os.getenv('SESSION_FILE_DIR', os.path.join(os.getcwd(), 'flask_session'))
    SESSION_PERMANENT = True
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    SESSION_WARNING_MINUTES = 15
    ALLOW_SIGNUP = os.getenv('ALLOW_SIGNUP', 'False').lower() == 'true'

    NOTIFICATION_WEBHOOK_URL = os.getenv('NOTIFICATION_WEBHOOK_URL')
    NOTIFICATION_TIMEOUT = int(os.getenv('NOTIFICATION_TIMEOUT', 5))
    HOUSEKEEPING_EMAIL = os.getenv('HOUSEKEEPING_EMAIL', 'housekeeping@hotel.com')
    MANAGEMENT_EMAIL = os.getenv('MANAGEMENT_EMAIL', 'management@hotel.com')

    CHECKOUT_GRACE_PERIOD = {
        'enabled': True,
        'grace_minutes': int(os.getenv('CHECKOUT_GRACE_MINUTES', 60)),
        'hourly_rate': float(os.getenv('LATE_CHECKOUT_HOURLY_RATE', 100)),
        'max_fee': float(os.getenv('LATE_CHECKOUT_MAX_FEE', 500))
    }

    HOTEL_INFO = {
        'name': os.getenv('HOTEL_NAME', 'Grand Residency'),
        'location': os.getenv('HOTEL_LOCATION', 'Chennai, Tamil Nadu, India'),
        'contact': os.getenv('HOTEL_CONTACT', '+91-XXXXXXXXXX'),
        'email': os.getenv('HOTEL_EMAIL', 'frontdesk@grandresidency.in'),
        'check_in_time': '12:00',
        'check_out_time': '11:00'
    }

    HOTEL_DATABASES = {
        'hotel_001': {
            'name': os.getenv('HOTEL_001_NAME', 'Hotel 001'),
            'url': os.getenv('HOTEL_001_SUPABASE_URL', SUPABASE_URL),
            'key': os.getenv('HOTEL_001_SUPABASE_KEY', SUPABASE_KEY),
            'service_key': os.getenv('HOTEL_001_SUPABASE_SERVICE_KEY', SUPABASE_SERVICE_KEY),
            'table_prefix': 'hotel001_'
        },
        'hotel_002': {
            'name': os.getenv('HOTEL_002_NAME', 'Hotel 002'),
            'url': os.getenv('HOTEL_002_SUPABASE_URL', SUPABASE_URL),
            'key': os.getenv('HOTEL_002_SUPABASE_KEY', SUPABASE_KEY),
            'service_key': os.getenv('HOTEL_002_SUPABASE_SERVICE_KEY', SUPABASE_SERVICE_KEY),
            'table_prefix': 'hotel002_'
        }
    }

    @staticmethod
    def validate():
        if not Config.SUPABASE_URL or not Config.SUPABASE_KEY:
            logger.warning("SUPABASE_URL and SUPABASE_KEY not set; database calls will fail")
            return False
        return True
