"""
Database connection, Supabase client initialization and per-hotel table prefixing
"""
import logging
from supabase import create_client, Client
from hotel_pms.config import Config
from hotel_pms.errors import NotFoundError, PMSError

logger = logging.getLogger(__name__)


class Database:
    """Supabase database client singleton"""
    _client: Client = None
    _admin_client: Client = None
    _hotel_clients = {}

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create Supabase client instance
        Returns:
            Client: Supabase client instance
        """
        if cls._client is None:
            Config.validate()
            cls._client = create_client(
                Config.SUPABASE_URL,
                Config.SUPABASE_KEY
            )
        return cls._client

    @classmethod
    def get_admin_client(cls):
        """Service-role client, or None when no service key is configured"""
        if cls._admin_client is None and Config.SUPABASE_SERVICE_KEY:
            cls._admin_client = create_client(
                Config.SUPABASE_URL,
                Config.SUPABASE_SERVICE_KEY
            )
        return cls._admin_client

    @classmethod
    def reset_client(cls):
        """Reset the client instances (useful for testing)"""
        cls._client = None
        cls._admin_client = None
        cls._hotel_clients = {}


class HotelDatabase:
    """
    Supabase access scoped to one hotel.

    Hotels share a project and keep their rows in tables named with a
    per-hotel prefix, e.g. ``hotel001_bookings``. ``table()`` applies the
    prefix so callers keep using the bare table names.
    """

    def __init__(self, client, admin_client=None, table_prefix='', hotel_id=None):
        self.raw_client = client
        self.raw_admin_client = admin_client
        self.table_prefix = table_prefix
        self.hotel_id = hotel_id

    @property
    def client(self):
        return self

    @property
    def admin_client(self):
        if self.raw_admin_client is None:
            return None
        return HotelDatabase(self.raw_admin_client, None, self.table_prefix, self.hotel_id)

    def table_name(self, name: str) -> str:
        return f"{self.table_prefix}{name}"

    def table(self, name: str):
        return self.raw_client.table(self.table_name(name))

    def admin_table(self, name: str):
        if self.raw_admin_client is None:
            raise PMSError("Admin client not available")
        return self.raw_admin_client.table(self.table_name(name))

    def rpc(self, fn: str, params=None):
        return self.raw_client.rpc(fn, params or {})

    @property
    def auth(self):
        return self.raw_client.auth


def get_hotel_database(hotel_id: str) -> HotelDatabase:
    """
    Get the prefixed database for a hotel
    Raises:
        NotFoundError: hotel_id is not configured
    """
    hotel = Config.HOTEL_DATABASES.get(hotel_id)
    if not hotel:
        raise NotFoundError(f"Hotel database not found: {hotel_id}")

    if hotel_id not in Database._hotel_clients:
        # Hotels on the default project reuse the shared clients
        if hotel['url'] == Config.SUPABASE_URL and hotel['key'] == Config.SUPABASE_KEY:
            client = Database.get_client()
            admin_client = Database.get_admin_client()
        else:
            client = create_client(hotel['url'], hotel['key'])
            admin_client = create_client(hotel['url'], hotel['service_key']) if hotel.get('service_key') else None
        Database._hotel_clients[hotel_id] = (client, admin_client)
        logger.info(f"Opened database for {hotel_id} with prefix {hotel['table_prefix']}")

    client, admin_client = Database._hotel_clients[hotel_id]
    return HotelDatabase(client, admin_client, hotel['table_prefix'], hotel_id)


# Convenience function to get the client
def get_supabase():
    """
    Get the client every model queries through.
    Returns the prefixed HotelDatabase when HOTEL_ID is configured,
    otherwise the plain Supabase client.
    """
    if Config.HOTEL_ID:
        return get_hotel_database(Config.HOTEL_ID)
    return Database.get_client()


def get_admin_supabase():
    """Service-role counterpart of get_supabase(); None without a service key"""
    if Config.HOTEL_ID:
        return get_hotel_database(Config.HOTEL_ID).admin_client
    return Database.get_admin_client()
