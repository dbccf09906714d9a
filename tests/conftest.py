import pytest
from collections import defaultdict
from unittest.mock import MagicMock
import sys
from pathlib import Path

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
sys.path.append(project_root)

from api.routes import create_app
from api.services.ai import StubAIServices
from api.services.directory import DirectoryService
from api.services.lifecycle import ReportLifecycle
from api.services.reports import ReportService
from api.services.share import ShareService
from lib.config import Settings
from lib.database import Database

class FakeResult:
    def __init__(self, data):
        self.data = data
        self.error = None

class FakeQuery:
    """Just enough of the PostgREST builder for the calls Database makes."""

    def __init__(self, rows, fail=None):
        self.rows = rows
        self.fail = fail
        self.action = 'select'
        self.payload = None
        self.filters = []
        self.order_by = None
        self.row_limit = None

    def select(self, *columns):
        self.action = 'select'
        return self

    def insert(self, payload):
        self.action = 'insert'
        self.payload = payload
        return self

    def update(self, payload):
        self.action = 'update'
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def execute(self):
        if self.fail:
            raise self.fail
        matching = [row for row in self.rows if all(row.get(c) == v for c, v in self.filters)]
        if self.action == 'insert':
            self.rows.append(dict(self.payload))
            return FakeResult([dict(self.payload)])
        if self.action == 'update':
            for row in matching:
                row.update(self.payload)
            return FakeResult([dict(row) for row in matching])
        if self.order_by:
            column, desc = self.order_by
            matching = sorted(matching, key=lambda row: row.get(column), reverse=desc)
        if self.row_limit is not None:
            matching = matching[:self.row_limit]
        return FakeResult([dict(row) for row in matching])

class FakeBucket:
    def __init__(self, name):
        self.name = name
        self.files = {}

    def upload(self, path, data, file_options=None):
        self.files[path] = (data, file_options)
        return {'path': path}

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"

class FakeStorage:
    def __init__(self):
        self.buckets = {}

    def from_(self, name):
        return self.buckets.setdefault(name, FakeBucket(name))

class FakeFunctions:
    def __init__(self):
        self.responses = {}
        self.calls = []

    def invoke(self, function_name, invoke_options=None):
        self.calls.append((function_name, invoke_options))
        response = self.responses[function_name]
        if isinstance(response, Exception):
            raise response
        return response

class FakeSupabase:
    def __init__(self):
        self.tables = defaultdict(list)
        self.failing_tables = {}
        self.storage = FakeStorage()
        self.functions = FakeFunctions()

    def table(self, name):
        return FakeQuery(self.tables[name], fail=self.failing_tables.get(name))

@pytest.fixture
def settings():
    return Settings(
        supabase_url='https://project.supabase.test',
        supabase_key='test-key',
        public_base_url='https://reports.test',
        ai_backend='stub',
        ai_stub_delay_scale=0,
        directory_sample_fallback=False,
        twilio_account_sid='',
        twilio_auth_token='',
        twilio_phone_number='+15550000000'
    )

@pytest.fixture
def fake_supabase():
    return FakeSupabase()

@pytest.fixture
def database(fake_supabase, settings):
    return Database(supabase_client=fake_supabase, settings=settings)

@pytest.fixture
def report_service(database):
    return ReportService(database, ttl_hours=72)

@pytest.fixture
def directory_service(database):
    return DirectoryService(database, sample_fallback=False)

@pytest.fixture
def mock_twilio():
    client = MagicMock()
    client.messages.create.return_value = MagicMock(sid='SM123')
    return client

@pytest.fixture
def share_service(report_service, directory_service, mock_twilio):
    return ShareService(
        report_service,
        public_base_url='https://reports.test/',
        directory_service=directory_service,
        twilio_client=mock_twilio,
        phone_number='+15550000000'
    )

@pytest.fixture
def stub_ai():
    return StubAIServices(delay_scale=0)

@pytest.fixture
def lifecycle(report_service, stub_ai, share_service):
    return ReportLifecycle(report_service, stub_ai, share_service)

@pytest.fixture
def test_client(settings, database, stub_ai, mock_twilio):
    app = create_app(settings=settings, database=database, ai_services=stub_ai, twilio_client=mock_twilio)
    app.config['TESTING'] = True
    return app.test_client()
