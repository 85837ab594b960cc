import pytest

from inventario.tests.conftest import login_user, product_data


@pytest.fixture
def admin_client(client):
    login_user(client, 'admin', 'admin123')
    return client


@pytest.fixture
def employee_client(client):
    login_user(client, 'empleado', 'emp123')
    return client


def find_product(client, code):
    r = client.get(f'/api/products?search={code}')
    return next(p for p in r.get_json()['products'] if p['code'] == code)


# =============================================================================
# SESIÓN
# =============================================================================

def test_login_with_wrong_password(client):
    r = client.post('/api/login', json={'username': 'admin', 'password': 'mala'})
    assert r.status_code == 401
    assert r.get_json()['message'] == 'Usuario o contraseña incorrectos'


def test_login_with_non_object_body(client):
    r = client.post('/api/login', json=['admin', 'admin123'])
    assert r.status_code == 401


def test_login_and_me(client):
    user = login_user(client, 'admin', 'admin123')
    assert user['role'] == 'admin'
    assert 'password' not in user

    r = client.get('/api/me')
    assert r.status_code == 200
    assert r.get_json()['user']['username'] == 'admin'

    client.post('/api/logout')
    assert client.get('/api/me').status_code == 401


def test_routes_require_login(client):
    assert client.get('/api/products').status_code == 401
    assert client.post('/api/movements', json={}).status_code == 401


# =============================================================================
# PRODUCTOS
# =============================================================================

def test_employee_cannot_manage_products(employee_client):
    r = employee_client.post('/api/products', json=product_data(code='NEW-1'))
    assert r.status_code == 403
    assert employee_client.get('/api/statistics').status_code == 403
    # pero sí puede consultar
    assert employee_client.get('/api/products').status_code == 200


def test_admin_creates_edits_and_deletes_product(admin_client):
    r = admin_client.post('/api/products', json=product_data(code='NEW-1', stock=4))
    assert r.status_code == 201
    body = r.get_json()
    assert body['product']['code'] == 'NEW-1'
    product_id = body['product']['id']

    r = admin_client.post('/api/products', json=product_data(code='NEW-1'))
    assert r.status_code == 409
    assert r.get_json()['error'] == 'DuplicateCodeError'

    r = admin_client.post('/api/products', json=product_data(code='NEW-2', name=''))
    assert r.status_code == 400
    assert r.get_json()['errors'] == ['El nombre es requerido']

    r = admin_client.put(f'/api/products/{product_id}', json=product_data(code='NEW-1', name='Renombrado', stock=99))
    assert r.status_code == 200
    view = admin_client.get(f'/api/products/{product_id}').get_json()['product']
    assert view['name'] == 'Renombrado'
    assert view['stock'] == 4
    assert view['status']['text'] == 'Stock Bajo'

    assert admin_client.delete(f'/api/products/{product_id}').status_code == 200
    assert admin_client.get(f'/api/products/{product_id}').status_code == 404
    assert admin_client.delete(f'/api/products/{product_id}').status_code == 404


def test_product_list_filters_and_sort(admin_client):
    r = admin_client.get('/api/products?category=Electrónicos&sort=price&direction=desc')
    codes = [p['code'] for p in r.get_json()['products']]
    assert codes == ['PROD-001', 'PROD-003', 'PROD-002']

    r = admin_client.get('/api/products?stockLevel=bajo')
    assert [p['code'] for p in r.get_json()['products']] == ['PROD-005']

    r = admin_client.get('/api/products?sort=status')
    assert r.status_code == 200
    assert len(r.get_json()['products']) == 5


def test_product_statistics_route(admin_client):
    product = find_product(admin_client, 'PROD-005')

    r = admin_client.get(f"/api/products/{product['id']}/statistics")
    assert r.status_code == 200
    assert r.get_json()['totalEntradas'] == 3
    assert admin_client.get('/api/products/no-existe/statistics').status_code == 404


# =============================================================================
# MOVIMIENTOS
# =============================================================================

def test_exit_with_insufficient_stock(employee_client):
    product = find_product(employee_client, 'PROD-005')

    r = employee_client.post('/api/movements/exit', json={
        'productId': product['id'], 'quantity': 5, 'reason': 'Venta',
    })

    assert r.status_code == 409
    body = r.get_json()
    assert body['error'] == 'NegativeStockError'
    assert body['message'] == 'Stock insuficiente. Disponible: 3 unidades'
    assert find_product(employee_client, 'PROD-005')['stock'] == 3


def test_employee_registers_movements(employee_client):
    product = find_product(employee_client, 'PROD-003')

    r = employee_client.post('/api/movements/exit', json={
        'productId': product['id'], 'quantity': 4, 'reason': 'Venta',
    })
    assert r.status_code == 201
    body = r.get_json()
    assert body['movement']['quantity'] == -4
    assert body['movement']['userName'] == 'Usuario Empleado'
    assert body['warning'] == 'Alerta: Teclado Mecánico ahora tiene stock bajo (4 unidades)'

    r = employee_client.post('/api/movements', json={
        'productId': product['id'], 'type': 'entrada', 'quantity': 10, 'reason': 'Compra',
    })
    assert r.status_code == 201
    assert find_product(employee_client, 'PROD-003')['stock'] == 14

    r = employee_client.get(f"/api/movements?productId={product['id']}&type=salida")
    body = r.get_json()
    assert len(body['movements']) == 1
    assert body['statistics']['totalSalidasQuantity'] == 4


def test_invalid_movement_returns_all_errors(employee_client):
    r = employee_client.post('/api/movements', json={'type': 'otro', 'quantity': -1})
    assert r.status_code == 400
    assert len(r.get_json()['errors']) == 4


def test_non_object_movement_body_is_a_validation_error(employee_client):
    r = employee_client.post('/api/movements', json=[1, 2])
    assert r.status_code == 400
    assert r.get_json()['error'] == 'ValidationError'
    assert len(r.get_json()['errors']) == 4


def test_check_and_reasons(employee_client):
    product = find_product(employee_client, 'PROD-002')

    r = employee_client.get(f"/api/movements/check?productId={product['id']}&type=salida&quantity=10")
    assert r.get_json() == {'canMove': True, 'message': 'OK', 'currentStock': 50, 'newStock': 40}

    r = employee_client.get('/api/movements/reasons?type=entrada')
    assert 'Compra' in r.get_json()['reasons']


# =============================================================================
# EXPORTACIÓN, DASHBOARD Y CONFIGURACIÓN
# =============================================================================

def test_products_csv_export(admin_client):
    r = admin_client.get('/api/products/export')

    assert r.status_code == 200
    assert r.mimetype == 'text/csv'
    assert 'productos_' in r.headers['Content-Disposition']
    lines = r.get_data(as_text=True).splitlines()
    assert lines[0].startswith('"Código","Nombre"')
    assert len(lines) == 6


def test_export_without_data(client, monkeypatch):
    monkeypatch.setattr('inventario.main.SEED_EXAMPLES', False)
    login_user(client, 'empleado', 'emp123')

    r = client.get('/api/movements/export')

    assert r.status_code == 404
    assert r.get_json()['message'] == 'No hay datos para exportar'


def test_dashboard(employee_client):
    body = employee_client.get('/api/dashboard').get_json()

    assert body['refreshSeconds'] == 30
    assert body['stats']['totalProducts'] == 5
    assert [p['code'] for p in body['lowStockProducts']] == ['PROD-005']


def test_statistics_export(admin_client):
    r = admin_client.get('/api/statistics/export')
    assert r.status_code == 200
    assert r.get_data(as_text=True).startswith('"Indicador","Valor"')


def test_settings(admin_client):
    r = admin_client.put('/api/settings', json={'companyName': 'Ferretería Central', 'hack': 1})
    assert r.status_code == 200

    settings = admin_client.get('/api/settings').get_json()['settings']
    assert settings['companyName'] == 'Ferretería Central'
    assert settings['currency'] == 'COP'
    assert 'hack' not in settings


def test_employee_cannot_change_settings(employee_client):
    assert employee_client.put('/api/settings', json={'currency': 'USD'}).status_code == 403


def test_categories(admin_client):
    r = admin_client.post('/api/categories', json={'name': 'Juguetes'})
    assert r.status_code == 201

    names = [c['name'] for c in admin_client.get('/api/categories').get_json()['categories']]
    assert 'Juguetes' in names
    assert admin_client.post('/api/categories', json={'name': 'juguetes'}).status_code == 400
