"""
Shared fixtures: an in-memory stand-in for the Supabase client and a
Flask test client wired to it.
"""
import copy
import itertools
import re
from datetime import datetime
from types import SimpleNamespace

import pytest

from hotel_pms.config import Config
from hotel_pms.database.db import Database


class FakeResponse:
    def __init__(self, data):
        self.data = data


def _comparable(left, right):
    if isinstance(left, (int, float)) and isinstance(right, (int, float)) \
            and not isinstance(left, bool) and not isinstance(right, bool):
        return left, right
    return str(left), str(right)


def _sort_key(value):
    if value is None:
        return (True, '')
    if isinstance(value, (int, float)):
        return (False, value)
    return (False, str(value))


class FakeQuery:
    """Chainable query builder over one in-memory table"""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = 'select'
        self.payload = None
        self.filters = []
        self.orders = []
        self.limit_count = None

    # actions
    def select(self, columns='*'):
        self.action = 'select'
        return self

    def insert(self, data):
        self.action = 'insert'
        self.payload = data
        return self

    def update(self, data):
        self.action = 'update'
        self.payload = data
        return self

    def delete(self):
        self.action = 'delete'
        return self

    # filters
    def _filter(self, column, predicate):
        self.filters.append(lambda row: predicate(row.get(column)))
        return self

    def eq(self, column, value):
        return self._filter(column, lambda v: v is not None and str(v) == str(value))

    def neq(self, column, value):
        return self._filter(column, lambda v: v is None or str(v) != str(value))

    def in_(self, column, values):
        wanted = {str(v) for v in values}
        return self._filter(column, lambda v: v is not None and str(v) in wanted)

    def gt(self, column, value):
        return self._filter(column, lambda v: v is not None and _comparable(v, value)[0] > _comparable(v, value)[1])

    def gte(self, column, value):
        return self._filter(column, lambda v: v is not None and _comparable(v, value)[0] >= _comparable(v, value)[1])

    def lt(self, column, value):
        return self._filter(column, lambda v: v is not None and _comparable(v, value)[0] < _comparable(v, value)[1])

    def lte(self, column, value):
        return self._filter(column, lambda v: v is not None and _comparable(v, value)[0] <= _comparable(v, value)[1])

    def is_(self, column, value):
        if value in ('null', None):
            return self._filter(column, lambda v: v is None)
        return self._filter(column, lambda v: v is not None)

    def ilike(self, column, pattern):
        regex = re.compile('^' + '.*'.join(re.escape(p) for p in pattern.split('%')) + '$', re.IGNORECASE)
        return self._filter(column, lambda v: v is not None and bool(regex.match(str(v))))

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.action))
        rows = self.db.tables.setdefault(self.table, [])

        if self.action == 'insert':
            records = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for record in records:
                row = copy.deepcopy(record)
                row.setdefault('id', str(next(self.db.ids)))
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(inserted)

        matched = [row for row in rows if self._matches(row)]
        if self.action == 'update':
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse(copy.deepcopy(matched))
        if self.action == 'delete':
            self.db.tables[self.table] = [row for row in rows if row not in matched]
            return FakeResponse(copy.deepcopy(matched))

        result = list(matched)
        for column, desc in reversed(self.orders):
            result.sort(key=lambda r: _sort_key(r.get(column)), reverse=desc)
        if self.limit_count is not None:
            result = result[:self.limit_count]
        return FakeResponse(copy.deepcopy(result))


class FakeRpc:
    def __init__(self, db, name, params):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        handler = self.db.rpc_handlers.get(self.name)
        if handler is None:
            raise Exception(f"function {self.name} does not exist")
        return FakeResponse(handler(self.db, self.params))


class FakeAuth:
    def __init__(self, db):
        self.db = db
        self.users = {}
        self.admin = SimpleNamespace(create_user=self._create_user)

    def add_user(self, email, password):
        user = SimpleNamespace(id=f"auth-{len(self.users) + 1}", email=email)
        self.users[email] = (password, user)
        return user

    def sign_in_with_password(self, credentials):
        stored = self.users.get(credentials['email'])
        if not stored or stored[0] != credentials['password']:
            raise Exception('Invalid login credentials')
        return SimpleNamespace(user=stored[1])

    def sign_up(self, credentials):
        return SimpleNamespace(user=self.add_user(credentials['email'], credentials['password']))

    def _create_user(self, attributes):
        return SimpleNamespace(user=self.add_user(attributes['email'], attributes['password']))


class FakeSupabase:
    """In-memory replacement for supabase.Client"""

    def __init__(self):
        self.tables = {}
        self.ids = itertools.count(1)
        self.calls = []
        self.rpc_calls = []
        self.rpc_handlers = {}
        self.auth = FakeAuth(self)

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        return FakeRpc(self, name, params or {})

    def seed(self, table, record):
        return self.table(table).insert(record).execute().data[0]

    def rows(self, table):
        return self.tables.get(table, [])

    def get(self, table, row_id):
        for row in self.rows(table):
            if str(row['id']) == str(row_id):
                return row
        return None


@pytest.fixture
def fake_db(monkeypatch):
    fake = FakeSupabase()
    Database.reset_client()
    Database._client = fake
    monkeypatch.setattr(Config, 'HOTEL_ID', None)
    monkeypatch.setattr(Config, 'SUPABASE_SERVICE_KEY', None)
    monkeypatch.setattr(Config, 'NOTIFICATION_WEBHOOK_URL', None)
    yield fake
    Database.reset_client()


@pytest.fixture
def app(fake_db, tmp_path):
    from hotel_pms.pms_app import create_app

    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = 'test-secret'
        SESSION_FILE_DIR = str(tmp_path / 'sessions')
        ALLOW_SIGNUP = False

    return create_app(TestConfig)


@pytest.fixture
def client(app):
    return app.test_client()


def login_as(client, role='Admin', staff_id='staff-1', email='admin@hotel.com'):
    with client.session_transaction() as sess:
        sess['user'] = {'id': 'auth-1', 'email': email, 'name': 'Test User', 'role': role, 'staff_id': staff_id}
        sess['login_at'] = datetime.now().timestamp()


@pytest.fixture
def hotel(fake_db):
    """A small hotel: two room types, four rooms, a guest and a front office user"""
    deluxe = fake_db.seed('room_types', {
        'name': 'Deluxe', 'code': 'deluxe', 'base_price': 3000, 'is_active': True
    })
    suite = fake_db.seed('room_types', {
        'name': 'King Suite', 'code': 'king_suite', 'base_price': 6000, 'is_active': True
    })
    rooms = {
        number: fake_db.seed('rooms', {
            'number': number, 'room_type_id': type_['id'], 'status': 'available', 'floor': number[0]
        })
        for number, type_ in (('101', deluxe), ('102', deluxe), ('201', suite), ('202', suite))
    }
    staff = fake_db.seed('staff', {
        'name': 'Front Desk', 'email': 'desk@hotel.com', 'role': 'Front Office Staff', 'auth_user_id': 'auth-1'
    })
    guest = fake_db.seed('guests', {
        'name': 'Asha Rao', 'phone': '9000000001', 'email': 'asha@example.com', 'nationality': 'Indian'
    })
    return SimpleNamespace(deluxe=deluxe, suite=suite, rooms=rooms, staff=staff, guest=guest)
