# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
# Beneficios:
#   - Type hints para mejor documentación y autocompletado
#   - Campos obligatorios verificados al construir
#   - Fácil serialización/deserialización para JSON
#   - Independiente del mecanismo de persistencia
# ==============================================================================

from .entities import (
    # Productos e Inventario
    Product,
    Category,
    StockLevel,
    StockStatus,
    get_stock_status,
    HIGH_STOCK_PERCENTAGE,

    # Movimientos
    Movement,
    MovementType,

    # Usuarios
    User,
    UserRole,
    Actor,
    SYSTEM_ACTOR,
)

__all__ = [
    # Productos
    'Product',
    'Category',
    'StockLevel',
    'StockStatus',
    'get_stock_status',
    'HIGH_STOCK_PERCENTAGE',

    # Movimientos
    'Movement',
    'MovementType',

    # Usuarios
    'User',
    'UserRole',
    'Actor',
    'SYSTEM_ACTOR',
]
