import os

# Sin archivos de profiling durante las pruebas
os.environ.setdefault('INVENTARIO_PROFILING', '0')

import pytest

from inventario.app_container import AppContainer, get_container
from inventario.models import Actor, UserRole
from inventario.repositories import (
    JsonFileStorage,
    MemoryStorage,
    MovementRepository,
    ProductRepository,
)
from inventario.services import MovementService, ProductService, StatsService


ADMIN = Actor(id='1', username='admin', full_name='Administrador del Sistema', role=UserRole.ADMIN)
EMPLEADO = Actor(id='2', username='empleado', full_name='Usuario Empleado', role=UserRole.EMPLEADO)


class FailingStorage(MemoryStorage):
    """Falla al escribir la clave indicada en failing_key."""

    def __init__(self, failing_key=None):
        super().__init__()
        self.failing_key = failing_key

    def _write(self, name, value):
        if self.failing_key and name == self.storage_name(self.failing_key):
            raise OSError('disco lleno')
        super()._write(name, value)


def product_data(**overrides):
    data = {
        'code': 'P-001',
        'name': 'Tornillo',
        'description': 'Tornillo de acero',
        'category': 'Ferretería',
        'price': 500,
        'stock': 10,
        'minStock': 5,
    }
    data.update(overrides)
    return data


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def json_storage(tmp_path):
    return JsonFileStorage(str(tmp_path / 'data'))


@pytest.fixture
def product_repo(storage):
    return ProductRepository(storage)


@pytest.fixture
def movement_repo(storage):
    return MovementRepository(storage)


@pytest.fixture
def ledger(movement_repo, product_repo):
    return MovementService(movement_repo, product_repo)


@pytest.fixture
def registry(product_repo, movement_repo, ledger):
    return ProductService(product_repo, movement_repo, ledger=ledger)


@pytest.fixture
def stats(product_repo, movement_repo, ledger):
    return StatsService(product_repo, movement_repo, ledger)


@pytest.fixture
def make_product(registry):
    """Crea un producto válido y devuelve la entidad."""
    def _make(**overrides):
        result = registry.create(product_data(**overrides), actor=ADMIN)
        assert result['success'], result['message']
        return result['product']
    return _make


@pytest.fixture
def container():
    AppContainer.reset_instance()
    c = get_container(storage=MemoryStorage())
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def client(container):
    from inventario.main import app
    app.config['TESTING'] = True
    with app.test_client() as c:
        yield c


def login_user(client, username, password):
    r = client.post('/api/login', json={'username': username, 'password': password})
    assert r.status_code == 200, r.get_json()
    return r.get_json()['user']
