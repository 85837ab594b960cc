# ==============================================================================
# ERRORES DE NEGOCIO
# ==============================================================================
# Los servicios lanzan estas excepciones internamente y las convierten en
# un resultado uniforme {'success': False, 'message': ..., 'error': kind}
# antes de devolver el control. Ninguna escapa a las rutas.
# ==============================================================================

import logging
from functools import wraps
from typing import Any, Dict, List, Optional

from inventario.repositories.base import PersistenceError


logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Error de negocio con un mensaje apto para mostrar al usuario."""

    kind = 'InventoryError'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InventoryError):
    """Una o más violaciones de campos; se unen en un solo mensaje."""

    kind = 'ValidationError'

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(', '.join(self.errors))


class DuplicateCodeError(InventoryError):
    kind = 'DuplicateCodeError'


class NotFoundError(InventoryError):
    kind = 'NotFoundError'


class NegativeStockError(InventoryError):
    """Una salida dejaría el stock por debajo de cero."""

    kind = 'NegativeStockError'


# ==============================================================================
# RESULTADO UNIFORME
# ==============================================================================

def success_result(message: str, **entities: Any) -> Dict[str, Any]:
    """Resultado exitoso: {'success': True, 'message': ..., 'error': None, **entities}."""
    return {'success': True, 'message': message, 'error': None, **entities}


def failure_result(error: Exception) -> Dict[str, Any]:
    """Convierte una excepción de negocio o persistencia en resultado fallido."""
    kind: Optional[str] = getattr(error, 'kind', None)
    message = getattr(error, 'message', None) or str(error)
    result = {'success': False, 'message': message, 'error': kind}
    if isinstance(error, ValidationError):
        result['errors'] = error.errors
    return result


def as_result(func):
    """
    Decorador para operaciones mutantes de los servicios.

    Captura InventoryError y PersistenceError y los devuelve como
    resultado fallido; cualquier otra excepción se propaga.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InventoryError as exc:
            return failure_result(exc)
        except PersistenceError as exc:
            logger.error("Error de persistencia en %s: %s", func.__name__, exc.message)
            return failure_result(exc)
    return wrapper


__all__ = [
    'InventoryError',
    'ValidationError',
    'DuplicateCodeError',
    'NotFoundError',
    'NegativeStockError',
    'PersistenceError',
    'success_result',
    'failure_result',
    'as_result',
]
