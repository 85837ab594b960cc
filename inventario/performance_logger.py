# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide rendimiento de rutas de la API y de funciones clave del inventario.
# Escribe logs legibles en logs/ mediante el módulo logging:
#   performance.log     → una entrada por petición
#   slow_routes.log     → peticiones que superan los umbrales
#   slow_functions.log  → llamadas lentas y reporte de funciones
#
# ACTIVAR/DESACTIVAR: variable de entorno INVENTARIO_PROFILING (1/0)
# ==============================================================================

import logging
import os
import threading
import time
from collections import defaultdict
from datetime import datetime
from functools import wraps
from typing import Any, Dict, Optional

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = os.environ.get('INVENTARIO_PROFILING', '1') not in ('0', 'false', 'False')

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

LOGS_DIR = os.environ.get(
    'INVENTARIO_LOGS_DIR',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
)

PERFORMANCE_LOG = 'performance.log'
SLOW_ROUTES_LOG = 'slow_routes.log'
SLOW_FUNCTIONS_LOG = 'slow_functions.log'

# Nombres legibles de las rutas (clave: "MÉTODO regla")
ROUTE_NAMES = {
    # Autenticación
    'POST /api/login': 'Iniciar sesión',
    'POST /api/logout': 'Cerrar sesión',
    'GET /api/me': 'Ver sesión actual',

    # Dashboard y estadísticas
    'GET /api/dashboard': 'Ver panel principal',
    'GET /api/statistics': 'Ver estadísticas',
    'GET /api/statistics/export': 'Exportar reporte de estadísticas',

    # Productos
    'GET /api/products': 'Listar productos',
    'POST /api/products': 'Crear producto',
    'GET /api/products/<product_id>': 'Obtener producto',
    'PUT /api/products/<product_id>': 'Editar producto',
    'DELETE /api/products/<product_id>': 'Eliminar producto',
    'GET /api/products/<product_id>/statistics': 'Estadísticas de producto',
    'GET /api/products/export': 'Exportar productos CSV',

    # Movimientos
    'GET /api/movements': 'Listar movimientos',
    'POST /api/movements': 'Registrar movimiento',
    'POST /api/movements/entry': 'Registrar entrada',
    'POST /api/movements/exit': 'Registrar salida',
    'GET /api/movements/check': 'Verificar movimiento',
    'GET /api/movements/reasons': 'Ver razones de movimiento',
    'GET /api/movements/export': 'Exportar movimientos CSV',

    # Categorías y configuración
    'GET /api/categories': 'Listar categorías',
    'POST /api/categories': 'Crear categoría',
    'GET /api/settings': 'Ver configuración',
    'PUT /api/settings': 'Guardar configuración',
}


# ═══════════════════════════════════════════════════════════════════════════
# LOGGERS DE ARCHIVO
# ═══════════════════════════════════════════════════════════════════════════

_loggers: Dict[str, logging.Logger] = {}
_loggers_lock = threading.Lock()


def _file_logger(filename: str) -> logging.Logger:
    """Logger que escribe mensajes tal cual en LOGS_DIR/filename."""
    with _loggers_lock:
        if filename not in _loggers:
            os.makedirs(LOGS_DIR, exist_ok=True)
            logger = logging.getLogger(f'inventario.performance.{filename.split(".")[0]}')
            logger.setLevel(logging.INFO)
            logger.propagate = False
            handler = logging.FileHandler(os.path.join(LOGS_DIR, filename), encoding='utf-8')
            handler.setFormatter(logging.Formatter('%(message)s'))
            logger.addHandler(handler)
            _loggers[filename] = logger
        return _loggers[filename]


def _get_timestamp() -> str:
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _get_route_name(method: str, path: str, rule: Optional[str] = None) -> str:
    """
    Nombre legible para una ruta.
    Busca primero por ruta exacta y luego por la regla de Flask.
    """
    for candidate in (path, rule):
        if candidate and f"{method} {candidate}" in ROUTE_NAMES:
            return ROUTE_NAMES[f"{method} {candidate}"]
    return f"{method} {path}"


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ PROFILING DE RUTAS
# ═══════════════════════════════════════════════════════════════════════════

def log_route_performance(method, path, rule, time_ms, user=None, status=None):
    """
    Registra el rendimiento de una petición en performance.log

    Args:
        method: GET, POST, etc.
        path: Ruta solicitada (/api/products/3f2a...)
        rule: Regla de Flask (/api/products/<product_id>)
        time_ms: Tiempo en milisegundos
        user: Usuario que hizo la petición (opcional)
        status: Código HTTP de la respuesta
    """
    if not ENABLE_PROFILING:
        return

    _file_logger(PERFORMANCE_LOG).info(
        "[PERFORMANCE] %s | %s | usuario=%s | %s %s | %s | %.0f ms",
        _get_timestamp(), _get_route_name(method, path, rule), user or 'anónimo',
        method, path, status or '-', time_ms
    )


def log_slow_route(method, path, rule, time_ms, user=None, level='WARNING'):
    """
    Registra una petición lenta en slow_routes.log

    Args:
        level: 'WARNING' (>300ms) o 'CRITICAL' (>700ms)
    """
    if not ENABLE_PROFILING:
        return

    threshold = THRESHOLD_WARNING if level == 'WARNING' else THRESHOLD_CRITICAL
    severity = 'LENTA' if level == 'WARNING' else 'MUY LENTA'
    _file_logger(SLOW_ROUTES_LOG).warning(
        "[%s] %s | Ruta %s: %s | usuario=%s | %s %s | %.0f ms (umbral: %d ms)",
        level, _get_timestamp(), severity, _get_route_name(method, path, rule),
        user or 'anónimo', method, path, time_ms, threshold
    )


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ HOOKS PARA FLASK (before/after request)
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app):
    """
    Registra hooks before_request / after_request en la app Flask.

    Uso:
        from inventario.performance_logger import init_profiling
        init_profiling(app)
    """
    if not ENABLE_PROFILING:
        return

    from flask import g, request, session

    @app.before_request
    def _start_timer():
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        if not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000
        method = request.method
        path = request.path
        rule = str(request.url_rule) if request.url_rule else path
        user = (session.get('user') or {}).get('username')

        log_route_performance(method, path, rule, elapsed, user, response.status_code)

        if elapsed >= THRESHOLD_CRITICAL:
            log_slow_route(method, path, rule, elapsed, user, 'CRITICAL')
        elif elapsed >= THRESHOLD_WARNING:
            log_slow_route(method, path, rule, elapsed, user, 'WARNING')

        return response


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

# {nombre_funcion: {calls, total_time, max_time}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()


def profile_function(func=None, name=None):
    """
    Decorador para medir funciones clave (registro de movimientos,
    agregaciones, exportaciones).

    Uso:
        @profile_function
        def mi_funcion(): ...

        @profile_function(name="Registrar movimiento")
        def register(...): ...
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn

        func_name = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                with _stats_lock:
                    stats = _function_stats[func_name]
                    stats['calls'] += 1
                    stats['total_time'] += elapsed_ms
                    stats['max_time'] = max(stats['max_time'], elapsed_ms)

                if elapsed_ms >= THRESHOLD_WARNING:
                    severity = 'CRÍTICO' if elapsed_ms >= THRESHOLD_CRITICAL else 'LENTO'
                    _file_logger(SLOW_FUNCTIONS_LOG).warning(
                        "[%s] %s | Función: %s | %.0f ms",
                        severity, _get_timestamp(), func_name, elapsed_ms
                    )

        return wrapper

    # Permitir uso sin paréntesis: @profile_function
    if func is not None:
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# 4️⃣ REPORTE DE ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats() -> Dict[str, Dict[str, Any]]:
    """
    Estadísticas de todas las funciones perfiladas.

    Returns:
        {nombre: {calls, avg_time, max_time}}
    """
    with _stats_lock:
        result = {}
        for func_name, stats in _function_stats.items():
            calls = stats['calls']
            avg = stats['total_time'] / calls if calls > 0 else 0
            result[func_name] = {
                'calls': calls,
                'avg_time': round(avg, 2),
                'max_time': round(stats['max_time'], 2),
            }
        return result


def write_function_stats_report() -> None:
    """Agrega a slow_functions.log un resumen ordenado por tiempo promedio."""
    if not ENABLE_PROFILING:
        return

    stats = get_function_stats()
    if not stats:
        return

    logger = _file_logger(SLOW_FUNCTIONS_LOG)
    logger.info("=== REPORTE DE RENDIMIENTO DE FUNCIONES (%s) ===", _get_timestamp())
    for func_name, data in sorted(stats.items(), key=lambda x: x[1]['avg_time'], reverse=True):
        logger.info(
            "%s | llamadas=%d | promedio=%.0f ms | máximo=%.0f ms",
            func_name, data['calls'], data['avg_time'], data['max_time']
        )


def reset_stats() -> None:
    """Reinicia las estadísticas en memoria (útil para testing)."""
    with _stats_lock:
        _function_stats.clear()


__all__ = [
    'ENABLE_PROFILING',
    'init_profiling',
    'profile_function',
    'get_function_stats',
    'write_function_stats_report',
    'reset_stats',
]
