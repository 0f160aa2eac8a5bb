import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from order_service.app import create_app
from order_service.database import InMemoryOrderStore, MongoOrderStore


class FakeAdmin:
    def __init__(self, client):
        self.client = client
        self.commands = []

    def command(self, name):
        self.commands.append(name)
        if not self.client.reachable:
            raise ServerSelectionTimeoutError("no servers available")
        return {"ok": 1.0}


class FakeMongoClient:
    """
    Stand-in for pymongo.MongoClient backed by mongomock.
    Flip `reachable` to make ping fail the way a lost server does.
    """

    def __init__(self, uri='mongodb://localhost:27017/benjerrys', reachable=True, **kwargs):
        self.uri = uri
        self.reachable = reachable
        self.kwargs = kwargs
        self.closed = False
        self.admin = FakeAdmin(self)
        self._backend = mongomock.MongoClient()

    def __getitem__(self, name):
        return self._backend[name]

    def get_default_database(self, default=None):
        path = self.uri.split('://', 1)[-1].partition('/')[2]
        name = path.split('?', 1)[0]
        return self._backend[name or default]

    def close(self):
        self.closed = True


@pytest.fixture
def memory_store():
    return InMemoryOrderStore()


@pytest.fixture
def mongo_client():
    return FakeMongoClient()


@pytest.fixture
def mongo_store(mongo_client):
    return MongoOrderStore(mongo_client['benjerrys']['orders'], client=mongo_client)


@pytest.fixture(params=['memory', 'mongo'])
def store(request):
    """Run a test against both storage backends"""
    return request.getfixturevalue(f'{request.param}_store')


@pytest.fixture
def client(store):
    app = create_app(store)
    app.config['TESTING'] = True
    return app.test_client()


@pytest.fixture
def order_payload():
    return {
        "scoop": {"flavor": "vanilla", "color": "white"},
        "cone": {"style": "waffle", "color": "brown"},
        "sprinkles": {"level": "light"},
        "customer": {"name": "A", "address": {"street": "Main 1", "city": "X"}},
        "price": "4.50",
    }
