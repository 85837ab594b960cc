from datetime import datetime, timedelta

import pytest

from inventario.models import SYSTEM_ACTOR, Movement, MovementType
from inventario.repositories import MovementRepository, ProductRepository
from inventario.services import ENTRY_REASONS, EXIT_REASONS, MovementFilters, MovementService, ProductService
from inventario.tests.conftest import ADMIN, EMPLEADO, FailingStorage, product_data


def movement(product, type_, quantity, reason='Compra', **extra):
    return {'productId': product.id, 'type': type_, 'quantity': quantity, 'reason': reason, **extra}


# =============================================================================
# REGISTRO
# =============================================================================

def test_entry_increases_stock(ledger, make_product, product_repo):
    product = make_product(stock=10, minStock=5)

    result = ledger.register(movement(product, 'entrada', 5), actor=EMPLEADO)

    assert result['success'] is True
    assert result['message'] == 'Entrada registrada exitosamente'
    m = result['movement']
    assert (m.previous_stock, m.quantity, m.new_stock) == (10, 5, 15)
    assert m.user_id == '2'
    assert m.user_name == 'Usuario Empleado'
    assert m.product_code == product.code
    assert product_repo.get_by_id(product.id).stock == 15


def test_exit_to_low_stock_emits_warning(ledger, make_product, product_repo):
    product = make_product(name='Tornillo', stock=10, minStock=5)
    alerts = []
    ledger.on_low_stock = lambda p, new_stock: alerts.append((p.id, new_stock))

    result = ledger.register(movement(product, 'salida', 6, 'Venta'), actor=EMPLEADO)

    assert result['success'] is True
    assert result['message'] == 'Salida registrada exitosamente'
    assert result['movement'].quantity == -6
    assert result['warning'] == 'Alerta: Tornillo ahora tiene stock bajo (4 unidades)'
    assert alerts == [(product.id, 4)]
    assert product_repo.get_by_id(product.id).stock == 4


def test_entry_never_emits_low_stock_warning(ledger, make_product):
    product = make_product(stock=0, minStock=5)
    result = ledger.register(movement(product, 'entrada', 1))
    assert 'warning' not in result


def test_failing_low_stock_callback_keeps_movement(ledger, make_product, product_repo):
    product = make_product(stock=10, minStock=5)

    def broken_alert(p, new_stock):
        raise RuntimeError('sin conexión')

    ledger.on_low_stock = broken_alert

    result = ledger.register(movement(product, 'salida', 6, 'Venta'), actor=EMPLEADO)

    assert result['success'] is True
    assert result['warning'] == 'Alerta: Tornillo ahora tiene stock bajo (4 unidades)'
    assert product_repo.get_by_id(product.id).stock == 4


def test_notes_are_stored_as_text(ledger, make_product):
    product = make_product(stock=10)

    result = ledger.register(movement(product, 'entrada', 1, notes=123))

    assert result['success'] is True
    assert result['movement'].notes == '123'


def test_insufficient_stock_is_rejected_without_writes(ledger, make_product, product_repo, movement_repo):
    product = make_product(stock=3)
    before = movement_repo.get_all()

    result = ledger.register(movement(product, 'salida', 5, 'Venta'))

    assert result['success'] is False
    assert result['error'] == 'NegativeStockError'
    assert result['message'] == 'Stock insuficiente. Disponible: 3 unidades'
    assert product_repo.get_by_id(product.id).stock == 3
    assert movement_repo.get_all() == before


def test_storage_failure_is_reported_without_partial_writes():
    storage = FailingStorage()
    products = ProductRepository(storage)
    movements = MovementRepository(storage)
    ledger = MovementService(movements, products)
    product = ProductService(products, movements, ledger=ledger).create(product_data(), actor=ADMIN)['product']
    storage.failing_key = 'products'

    result = ledger.register(movement(product, 'entrada', 5), actor=EMPLEADO)

    assert result['success'] is False
    assert result['error'] == 'PersistenceError'
    assert result['message'] == 'Error al guardar los datos'
    assert 'warning' not in result
    assert products.get_by_id(product.id).stock == 10
    assert len(movements.get_all()) == 1


def test_validation_errors_are_aggregated(ledger, make_product):
    product = make_product(stock=3)

    result = ledger.register({'productId': product.id, 'type': 'salida', 'quantity': 5, 'reason': ''})

    assert result['error'] == 'ValidationError'
    assert result['errors'] == [
        'Debe especificar una razón',
        'Stock insuficiente. Disponible: 3 unidades',
    ]


def test_validate_reports_each_field(ledger):
    result = ledger.validate({'productId': '', 'type': 'traslado', 'quantity': 0, 'reason': ''})

    assert result['errors'] == [
        'Debe seleccionar un producto',
        'Tipo de movimiento inválido',
        'La cantidad debe ser un número positivo',
        'Debe especificar una razón',
    ]
    missing = ledger.validate({'productId': 'x', 'type': 'entrada', 'quantity': 1, 'reason': 'Compra'})
    assert missing['errors'] == ['El producto seleccionado no existe']


def test_fractional_quantity_is_rejected(ledger, make_product):
    product = make_product()
    result = ledger.register(movement(product, 'entrada', 1.5))
    assert result['errors'] == ['La cantidad debe ser un número positivo']


def test_actor_resolution(movement_repo, product_repo, make_product):
    product = make_product(stock=10)

    anonymous = MovementService(movement_repo, product_repo)
    m = anonymous.register(movement(product, 'entrada', 1))['movement']
    assert (m.user_id, m.user_name) == (SYSTEM_ACTOR.id, 'Sistema')

    with_session = MovementService(movement_repo, product_repo, get_current_actor=lambda: ADMIN)
    m = with_session.register(movement(product, 'entrada', 1))['movement']
    assert m.user_id == ADMIN.id

    m = with_session.register(movement(product, 'entrada', 1), actor=EMPLEADO)['movement']
    assert m.user_id == EMPLEADO.id


def test_register_entry_and_exit_force_type(ledger, make_product):
    product = make_product(stock=10)

    assert ledger.register_entry(movement(product, 'salida', 2))['movement'].type == MovementType.ENTRADA
    assert ledger.register_exit(movement(product, 'entrada', 2, 'Venta'))['movement'].type == MovementType.SALIDA


# =============================================================================
# INVARIANTES
# =============================================================================

def test_conservation_over_a_sequence(ledger, make_product, product_repo, movement_repo):
    product = make_product(stock=10)
    requests = [
        ('entrada', 5), ('salida', 3), ('salida', 20), ('entrada', 1), ('salida', 13),
    ]

    for type_, quantity in requests:
        ledger.register(movement(product, type_, quantity, 'Ajuste de inventario'))

    history = movement_repo.get_by_product(product.id)
    # El rechazado (salida de 20) no deja rastro
    assert [m.quantity for m in history] == [10, 5, -3, 1, -13]
    assert product_repo.get_by_id(product.id).stock == 0
    assert sum(m.quantity for m in history) == 0
    for m in history:
        assert m.new_stock == m.previous_stock + m.quantity
        assert m.new_stock >= 0


def test_movements_by_type(ledger, make_product, movement_repo):
    product = make_product(stock=10)
    ledger.register(movement(product, 'salida', 2, 'Venta'))

    assert [m.quantity for m in movement_repo.get_by_type(MovementType.ENTRADA)] == [10]
    assert [m.quantity for m in movement_repo.get_by_type(MovementType.SALIDA)] == [-2]


def test_registering_never_changes_existing_movements(ledger, make_product, movement_repo):
    product = make_product(stock=10)
    ledger.register(movement(product, 'salida', 2, 'Venta'))
    snapshot = [m.to_dict() for m in movement_repo.get_all()]

    ledger.register(movement(product, 'entrada', 4))

    after = [m.to_dict() for m in movement_repo.get_all()]
    assert after[:len(snapshot)] == snapshot
    assert len(after) == len(snapshot) + 1


def test_movement_rejects_inconsistent_stock():
    with pytest.raises(ValueError):
        Movement(
            id='m', product_id='p', product_code='P', product_name='P',
            type=MovementType.SALIDA, quantity=-5, reason='Venta',
            previous_stock=3, new_stock=-2, user_id='1', user_name='x', created_at='',
        )


@pytest.mark.parametrize('type_,quantity', [
    ('salida', 3), ('salida', 4), ('entrada', 100), ('salida', 0), ('salida', 'x'),
])
def test_can_perform_agrees_with_register(ledger, make_product, type_, quantity):
    product = make_product(stock=3)

    check = ledger.can_perform(product.id, type_, quantity)
    result = ledger.register(movement(product, type_, quantity, 'Otro'))

    assert check['canMove'] is result['success']


def test_can_perform_messages(ledger, make_product):
    product = make_product(stock=3)

    assert ledger.can_perform('no-existe', 'salida', 1) == {'canMove': False, 'message': 'Producto no encontrado'}
    assert ledger.can_perform(product.id, 'salida', 4)['message'] == 'Stock insuficiente. Disponible: 3 unidades'
    ok = ledger.can_perform(product.id, 'salida', 2)
    assert ok == {'canMove': True, 'message': 'OK', 'currentStock': 3, 'newStock': 1}


# =============================================================================
# CONSULTAS
# =============================================================================

def stamp(storage, created_at_by_index):
    """Reescribe fechas de movimientos ya guardados."""
    records = storage.get('movements')
    for index, created_at in created_at_by_index.items():
        records[index]['createdAt'] = created_at
    storage.set('movements', records)


def test_query_filters_and_orders_newest_first(ledger, make_product, storage):
    laptop = make_product(code='L-1', name='Laptop', stock=0)
    mouse = make_product(code='M-1', name='Ratón', stock=0)
    ledger.register(movement(laptop, 'entrada', 5, 'Compra', notes='Pedido inicial'), actor=ADMIN)
    ledger.register(movement(mouse, 'entrada', 5, 'Compra'), actor=EMPLEADO)
    ledger.register(movement(laptop, 'salida', 1, 'Venta'), actor=EMPLEADO)
    stamp(storage, {0: '2024-01-01T10:00:00', 1: '2024-01-02T10:00:00', 2: '2024-01-03T10:00:00'})

    all_movements = ledger.query()
    assert [m.created_at[:10] for m in all_movements] == ['2024-01-03', '2024-01-02', '2024-01-01']

    assert len(ledger.query(MovementFilters(type='salida'))) == 1
    assert len(ledger.query(MovementFilters(product_id=laptop.id))) == 2
    assert len(ledger.query(MovementFilters(user_id=EMPLEADO.id))) == 2
    assert [m.product_code for m in ledger.query(MovementFilters(search='raton'))] == ['M-1']
    assert len(ledger.query(MovementFilters(search='pedido'))) == 1

    # dateTo incluye todo el día
    ranged = ledger.query(MovementFilters.from_dict({'dateFrom': '2024-01-02', 'dateTo': '2024-01-02'}))
    assert [m.product_code for m in ranged] == ['M-1']


def test_by_day_returns_one_bucket_per_day(ledger, make_product, storage):
    product = make_product(stock=0)
    ledger.register(movement(product, 'entrada', 5))
    ledger.register(movement(product, 'salida', 1, 'Venta'))
    ledger.register(movement(product, 'salida', 1, 'Venta'))
    two_days_ago = (datetime.now() - timedelta(days=2)).replace(hour=12).isoformat()
    stamp(storage, {1: two_days_ago})

    buckets = ledger.by_day(7)

    assert len(buckets) == 7
    assert buckets[-1]['date'] == datetime.now().strftime('%d/%m/%Y')
    assert buckets[-1] == {'date': buckets[-1]['date'], 'entradas': 1, 'salidas': 1, 'total': 2}
    assert buckets[-3]['salidas'] == 1
    assert sum(b['total'] for b in buckets) == 3
    assert buckets[0]['total'] == 0


def test_today_recent_and_month(ledger, make_product, storage):
    product = make_product(stock=0)
    for _ in range(3):
        ledger.register(movement(product, 'entrada', 1))
    stamp(storage, {0: '2020-05-01T08:00:00'})

    assert len(ledger.today()) == 2
    assert len(ledger.month_to_date()) == 2
    recent = ledger.recent(2)
    assert len(recent) == 2
    assert all(m.created_at != '2020-05-01T08:00:00' for m in recent)


def test_statistics_totals(ledger, make_product):
    product = make_product(stock=0)
    ledger.register(movement(product, 'entrada', 10))
    ledger.register(movement(product, 'salida', 4, 'Venta'))

    assert ledger.statistics() == {
        'total': 2,
        'entradas': 1,
        'salidas': 1,
        'totalEntradasQuantity': 10,
        'totalSalidasQuantity': 4,
        'balance': 6,
    }


def test_reasons_for_type():
    assert MovementService.reasons_for('entrada') == ENTRY_REASONS
    assert MovementService.reasons_for('salida') == EXIT_REASONS
    assert 'Venta' in MovementService.reasons_for('salida')


# =============================================================================
# ESCENARIOS
# =============================================================================

def test_widget_at_minimum_is_low_stock(registry):
    product = registry.create({
        'code': 'PROD-010', 'name': 'Widget', 'category': 'Otros',
        'price': 1000, 'stock': 5, 'minStock': 5,
    })['product']
    assert product.status.text == 'Stock Bajo'


def test_oversized_exit_mentions_available_stock(ledger, make_product, product_repo, movement_repo):
    product = make_product(stock=5)
    count = len(movement_repo.get_all())

    result = ledger.register(movement(product, 'salida', 10, 'Venta'))

    assert result['success'] is False
    assert '5' in result['message']
    assert product_repo.get_by_id(product.id).stock == 5
    assert len(movement_repo.get_all()) == count


def test_entry_moves_product_to_high_stock(ledger, make_product, product_repo):
    product = make_product(stock=5, minStock=10)

    assert ledger.register(movement(product, 'entrada', 20))['success'] is True

    stored = product_repo.get_by_id(product.id)
    assert stored.stock == 25
    assert stored.status.text == 'Stock Alto'


def test_by_day_with_only_old_movements(ledger, make_product, storage):
    make_product(stock=5)
    five_days_ago = (datetime.now() - timedelta(days=5)).isoformat()
    stamp(storage, {0: five_days_ago})

    buckets = ledger.by_day(3)

    assert len(buckets) == 3
    assert all(b['total'] == 0 for b in buckets)
    dates = [datetime.strptime(b['date'], '%d/%m/%Y') for b in buckets]
    assert dates == sorted(dates)


def test_aggregations_are_repeatable(stats, make_product, ledger):
    product = make_product(stock=8)
    ledger.register(movement(product, 'salida', 3, 'Venta'))

    assert stats.inventory_stats() == stats.inventory_stats()
    assert stats.top_moved_products() == stats.top_moved_products()
    assert ledger.by_day(7) == ledger.by_day(7)
