import pytest

from inventario.app_container import AppContainer, get_container
from inventario.models import SYSTEM_ACTOR, User, UserRole
from inventario.services.seed_service import DEFAULT_CATEGORIES, EXAMPLE_PRODUCTS
from inventario.services.user_service import UserService, verify_password
from inventario.tests.conftest import ADMIN, EMPLEADO, FailingStorage


# =============================================================================
# AUTENTICACIÓN
# =============================================================================

def test_seeded_passwords_are_hashed(container):
    container.initialize_data(seed_examples=False)

    admin = container.user_repo.get_user('admin')
    assert admin.password_hash != 'admin123'
    assert verify_password(admin.password_hash, 'admin123')


def test_login_saves_session_without_password(container):
    container.initialize_data(seed_examples=False)
    users = container.user_service

    actor = users.login('admin', 'admin123')

    assert actor.role == UserRole.ADMIN
    assert actor.login_time
    current = users.get_current_actor()
    assert current.id == '1'
    assert 'password' not in container.storage.get('current_user')

    users.logout()
    assert users.get_current_actor() is None


def test_login_rejects_wrong_password(container):
    container.initialize_data(seed_examples=False)
    assert container.user_service.login('admin', 'otra') is None
    assert container.user_service.login('nadie', 'admin123') is None


def test_legacy_plaintext_password(container):
    container.user_repo.save([User(id='9', username='viejo', password_hash='clave', full_name='Viejo')])

    assert container.user_service.authenticate('viejo', 'clave').id == '9'
    assert container.user_service.authenticate('viejo', 'CLAVE') is None


def test_inactive_user_cannot_log_in(container):
    container.user_repo.save([User(id='9', username='baja', password_hash='clave', active=False)])
    assert container.user_service.login('baja', 'clave') is None


def test_public_profile_includes_email(container):
    container.initialize_data(seed_examples=False)
    actor = container.user_service.login('empleado', 'emp123')

    profile = container.user_service.public_profile(actor)

    assert profile['email'] == 'empleado@inventario.com'
    assert profile['fullName'] == 'Usuario Empleado'


# =============================================================================
# PERMISOS
# =============================================================================

@pytest.mark.parametrize('action,admin,empleado', [
    ('products.manage', True, False),
    ('categories.manage', True, False),
    ('statistics.view', True, False),
    ('settings.manage', True, False),
    ('movements.register', True, True),
    ('movements.view', True, True),
    ('products.view', True, True),
    ('desconocida', False, False),
])
def test_permissions_by_role(action, admin, empleado):
    assert UserService.can(ADMIN, action) is admin
    assert UserService.can(EMPLEADO, action) is empleado
    assert UserService.can(None, action) is False


def test_is_admin():
    assert UserService.is_admin(ADMIN)
    assert not UserService.is_admin(EMPLEADO)
    assert not UserService.is_admin(None)


# =============================================================================
# DATOS POR DEFECTO
# =============================================================================

def test_initialize_seeds_everything_once(container):
    first = container.seed_service.initialize()

    assert first == {'users': True, 'categories': True, 'movements': True, 'products': True}
    products = container.product_repo.get_all()
    assert len(products) == len(EXAMPLE_PRODUCTS)
    assert len(container.category_repo.get_all()) == len(DEFAULT_CATEGORIES)

    # cada producto de ejemplo tiene su entrada inicial a nombre del sistema
    movements = container.movement_repo.get_all()
    assert len(movements) == len(EXAMPLE_PRODUCTS)
    assert {m.user_id for m in movements} == {SYSTEM_ACTOR.id}
    assert sum(m.quantity for m in movements) == sum(p.stock for p in products)

    second = container.seed_service.initialize()
    assert not any(second.values())
    assert len(container.product_repo.get_all()) == len(EXAMPLE_PRODUCTS)


def test_initialize_keeps_existing_data(container):
    container.user_repo.save([User(id='7', username='propio', password_hash='x')])

    container.seed_service.initialize(seed_examples=False)

    assert [u.username for u in container.user_repo.load()] == ['propio']
    assert container.product_repo.get_all() == []


def test_initialize_continues_after_a_failed_step():
    AppContainer.reset_instance()
    try:
        container = get_container(storage=FailingStorage('categories'))

        done = container.seed_service.initialize()

        assert done == {'users': True, 'categories': False, 'movements': True, 'products': True}
        assert container.category_repo.get_all() == []
        assert len(container.product_repo.get_all()) == len(EXAMPLE_PRODUCTS)
        assert container.user_repo.get_user('admin') is not None
    finally:
        AppContainer.reset_instance()


def test_category_service(container):
    categories = container.category_service

    result = categories.add('Juguetes', 'Para niños')
    assert result['success'] is True
    assert result['message'] == 'Categoría creada exitosamente'

    duplicate = categories.add('juguetes')
    assert duplicate['message'] == 'Ya existe una categoría con ese nombre'
    assert categories.add('  ')['message'] == 'El nombre de la categoría es requerido'
    assert categories.names() == ['Juguetes']
