# ==============================================================================
# API DE INVENTARIO - Aplicación Flask
# ==============================================================================
# Las rutas solo orquestan: request → servicio → respuesta JSON.
# Toda la lógica de negocio vive en inventario/services/.
# ==============================================================================

import atexit
import logging
import os
from functools import wraps

from flask import Flask, Response, jsonify, request, session

from inventario.app_container import get_container
from inventario.models import Actor
from inventario.performance_logger import init_profiling, write_function_stats_report
from inventario.repositories import DEFAULT_SETTINGS
from inventario.services import (
    MovementFilters,
    ProductFilters,
    export_filename,
    to_csv,
)
from inventario.services.export_service import NO_DATA_MESSAGE


logger = logging.getLogger(__name__)

app = Flask(__name__)
app.json.ensure_ascii = False

# ═══════════════════════════════════════════════════════════════════════════
# INICIALIZAR SISTEMA DE PROFILING
# ═══════════════════════════════════════════════════════════════════════════
# Mide rendimiento de rutas. Logs en logs/ (resumen de funciones al salir)
# Para desactivar: INVENTARIO_PROFILING=0
init_profiling(app)
atexit.register(write_function_stats_report)

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════
# INVENTARIO_SECRET_KEY: En producción DEBE definirse via variable de entorno
_DEFAULT_SECRET = "inventario_dev_secret_key_change_in_production"
_SECRET_KEY = os.environ.get("INVENTARIO_SECRET_KEY")

if not _SECRET_KEY:
    logger.warning("INVENTARIO_SECRET_KEY no definida, se usa la clave de desarrollo")

app.secret_key = _SECRET_KEY or _DEFAULT_SECRET

# Sembrar productos de ejemplo en el primer arranque
SEED_EXAMPLES = os.environ.get("INVENTARIO_SEED_EXAMPLES", "1") == "1"

# Tipo de error del servicio → código HTTP
STATUS_BY_ERROR = {
    'ValidationError': 400,
    'DuplicateCodeError': 409,
    'NotFoundError': 404,
    'NegativeStockError': 409,
    'PersistenceError': 500,
}


def services():
    return get_container()


@app.before_request
def _ensure_data():
    services().initialize_data(seed_examples=SEED_EXAMPLES)


# ═══════════════════════════════════════════════════════════════════════════
# SERIALIZACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def serialize(value):
    """Convierte entidades (to_dict) dentro de listas/dicts a JSON plano."""
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


def product_view(product):
    return {
        **product.to_dict(),
        'status': product.status.to_dict(),
        'stockValue': product.stock_value,
    }


def result_response(result, success_status=200):
    """Respuesta HTTP para un resultado {'success', 'message', 'error', ...}."""
    status = success_status if result['success'] else STATUS_BY_ERROR.get(result.get('error'), 400)
    return jsonify(serialize(result)), status


def csv_response(rows, base_name):
    if not rows:
        return jsonify({'success': False, 'message': NO_DATA_MESSAGE}), 404
    filename = export_filename(base_name)
    return Response(
        to_csv(rows),
        mimetype='text/csv; charset=utf-8',
        headers={'Content-Disposition': f'attachment;filename={filename}'}
    )


# ═══════════════════════════════════════════════════════════════════════════
# AUTENTICACIÓN Y PERMISOS
# ═══════════════════════════════════════════════════════════════════════════

def current_actor():
    data = session.get('user')
    return Actor.from_dict(data) if data else None


def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if current_actor() is None:
            return jsonify({'success': False, 'message': 'Debes iniciar sesión.'}), 401
        return f(*args, **kwargs)
    return wrapper


def permission_required(action):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            actor = current_actor()
            if actor is None:
                return jsonify({'success': False, 'message': 'Debes iniciar sesión.'}), 401
            if not services().user_service.can(actor, action):
                return jsonify({
                    'success': False,
                    'message': 'No tienes permisos para realizar esta acción'
                }), 403
            return f(*args, **kwargs)
        return wrapper
    return deco


def request_data():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.post('/api/login')
def login():
    data = request_data()
    actor = services().user_service.login(data.get('username', ''), data.get('password', ''))
    if actor is None:
        return jsonify({'success': False, 'message': 'Usuario o contraseña incorrectos'}), 401

    session['user'] = actor.to_dict()
    return jsonify({
        'success': True,
        'message': f'Bienvenido, {actor.display_name}',
        'user': services().user_service.public_profile(actor),
    })


@app.post('/api/logout')
def logout():
    services().user_service.logout()
    session.pop('user', None)
    return jsonify({'success': True, 'message': 'Sesión cerrada'})


@app.get('/api/me')
@login_required
def me():
    return jsonify({'user': services().user_service.public_profile(current_actor())})


# ═══════════════════════════════════════════════════════════════════════════
# PRODUCTOS
# ═══════════════════════════════════════════════════════════════════════════

@app.get('/api/products')
@login_required
def list_products():
    product_service = services().product_service
    products = product_service.apply_filters(ProductFilters.from_dict(request.args))

    sort_field = request.args.get('sort')
    if sort_field:
        products = product_service.sort(products, sort_field, request.args.get('direction', 'asc'))

    return jsonify({'products': [product_view(p) for p in products]})


@app.post('/api/products')
@permission_required('products.manage')
def create_product():
    result = services().product_service.create(request_data(), actor=current_actor())
    return result_response(result, success_status=201)


@app.get('/api/products/export')
@permission_required('products.manage')
def export_products():
    return csv_response(services().export_service.prepare_products_for_export(), 'productos')


@app.get('/api/products/<product_id>')
@login_required
def get_product(product_id):
    product = services().product_service.get(product_id)
    if product is None:
        return jsonify({'success': False, 'message': 'Producto no encontrado'}), 404
    return jsonify({'product': product_view(product)})


@app.put('/api/products/<product_id>')
@permission_required('products.manage')
def edit_product(product_id):
    return result_response(services().product_service.edit(product_id, request_data()))


@app.delete('/api/products/<product_id>')
@permission_required('products.manage')
def delete_product(product_id):
    return result_response(services().product_service.remove(product_id))


@app.get('/api/products/<product_id>/statistics')
@permission_required('statistics.view')
def product_statistics(product_id):
    stats = services().stats_service.product_statistics(product_id)
    if stats is None:
        return jsonify({'success': False, 'message': 'Producto no encontrado'}), 404
    return jsonify(stats)


# ═══════════════════════════════════════════════════════════════════════════
# MOVIMIENTOS
# ═══════════════════════════════════════════════════════════════════════════

@app.get('/api/movements')
@login_required
def list_movements():
    ledger = services().movement_service
    filters = MovementFilters.from_dict(request.args)
    return jsonify({
        'movements': serialize(ledger.query(filters)),
        'statistics': ledger.statistics(filters),
    })


@app.post('/api/movements')
@permission_required('movements.register')
def register_movement():
    result = services().movement_service.register(request_data(), actor=current_actor())
    return result_response(result, success_status=201)


@app.post('/api/movements/entry')
@permission_required('movements.register')
def register_entry():
    result = services().movement_service.register_entry(request_data(), actor=current_actor())
    return result_response(result, success_status=201)


@app.post('/api/movements/exit')
@permission_required('movements.register')
def register_exit():
    result = services().movement_service.register_exit(request_data(), actor=current_actor())
    return result_response(result, success_status=201)


@app.get('/api/movements/check')
@login_required
def check_movement():
    args = request.args
    return jsonify(services().movement_service.can_perform(
        args.get('productId'), args.get('type'), args.get('quantity')
    ))


@app.get('/api/movements/reasons')
@login_required
def movement_reasons():
    return jsonify({'reasons': services().movement_service.reasons_for(request.args.get('type'))})


@app.get('/api/movements/export')
@login_required
def export_movements():
    container = services()
    movements = container.movement_service.query(MovementFilters.from_dict(request.args))
    rows = container.export_service.prepare_movements_for_export(movements)
    return csv_response(rows, 'movimientos')


# ═══════════════════════════════════════════════════════════════════════════
# CATEGORÍAS Y CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

@app.get('/api/categories')
@login_required
def list_categories():
    return jsonify({'categories': serialize(services().category_service.list())})


@app.post('/api/categories')
@permission_required('categories.manage')
def create_category():
    data = request_data()
    result = services().category_service.add(data.get('name', ''), data.get('description', ''))
    return result_response(result, success_status=201)


@app.get('/api/settings')
@login_required
def get_settings():
    return jsonify({'settings': services().settings_repo.load()})


@app.put('/api/settings')
@permission_required('settings.manage')
def save_settings():
    settings_repo = services().settings_repo
    settings = settings_repo.load()
    settings.update({k: v for k, v in request_data().items() if k in DEFAULT_SETTINGS})

    if not settings_repo.save(settings):
        return jsonify({'success': False, 'message': 'Error al guardar los datos'}), 500
    return jsonify({'success': True, 'message': 'Configuración guardada', 'settings': settings})


# ═══════════════════════════════════════════════════════════════════════════
# DASHBOARD Y ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

@app.get('/api/dashboard')
@login_required
def dashboard():
    return jsonify(services().stats_service.dashboard())


@app.get('/api/statistics')
@permission_required('statistics.view')
def statistics():
    return jsonify(services().stats_service.statistics())


@app.get('/api/statistics/export')
@permission_required('statistics.view')
def export_statistics():
    return csv_response(services().stats_service.statistics_report_rows(), 'reporte_estadisticas')


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))

    logger.info("Servidor iniciado en http://%s:%s", HOST, PORT)
    app.run(host=HOST, port=PORT, debug=DEBUG)
