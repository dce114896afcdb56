"""
Environment setup script for Hotel PMS
Run this to create your .env file with proper configuration
"""
import os

ENV_TEMPLATE = """# Flask Configuration
SECRET_KEY=dev-secret-key-change-in-production
DEBUG=True
HOST=0.0.0.0
PORT=5000
SESSION_FILE_DIR=./flask_session
ALLOW_SIGNUP=False

# Supabase Configuration
SUPABASE_URL=your-supabase-url-here
SUPABASE_KEY=your-supabase-anon-key-here
SUPABASE_SERVICE_KEY=your-supabase-service-role-key-here

# Multi-hotel: hotel_001 / hotel_002 select a table prefix, empty uses plain tables
HOTEL_ID=

# Checkout grace period
CHECKOUT_GRACE_MINUTES=60
LATE_CHECKOUT_HOURLY_RATE=100
LATE_CHECKOUT_MAX_FEE=500

# Transfer notifications
NOTIFICATION_WEBHOOK_URL=
NOTIFICATION_TIMEOUT=5
HOUSEKEEPING_EMAIL=housekeeping@hotel.com
MANAGEMENT_EMAIL=management@hotel.com
"""


def create_env_file(path='.env'):
    if os.path.exists(path):
        print(f"⚠️  {path} already exists, leaving it unchanged")
        return False

    with open(path, 'w') as f:
        f.write(ENV_TEMPLATE)

    print(f"✅ Created {path}")
    print("📝 Please update the SUPABASE_* values with your actual Supabase credentials")
    return True


if __name__ == "__main__":
    create_env_file()
