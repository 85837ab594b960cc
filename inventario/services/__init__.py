# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la aplicación.
#
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones
# 3. Las rutas solo llaman a servicios y traducen el resultado a HTTP
# 4. Las operaciones que modifican datos devuelven {'success', 'message', ...}
#
# ESTRUCTURA:
# ├── errors.py            → Excepciones de negocio y resultado uniforme
# ├── product_service.py   → Registro de productos (sin tocar stock)
# ├── movement_service.py  → Libro de movimientos (único que cambia stock)
# ├── stats_service.py     → Agregaciones de solo lectura
# ├── export_service.py    → Exportación CSV
# ├── category_service.py  → Categorías
# ├── user_service.py      → Autenticación y permisos
# └── seed_service.py      → Datos por defecto
# ==============================================================================

from inventario.services.errors import (
    InventoryError,
    ValidationError,
    DuplicateCodeError,
    NotFoundError,
    NegativeStockError,
    PersistenceError,
    success_result,
    failure_result,
    as_result,
)
from inventario.services.product_service import ProductService, ProductFilters
from inventario.services.movement_service import (
    MovementService,
    MovementFilters,
    ENTRY_REASONS,
    EXIT_REASONS,
)
from inventario.services.stats_service import StatsService, DASHBOARD_REFRESH_SECONDS
from inventario.services.export_service import ExportService, to_csv, export_filename
from inventario.services.category_service import CategoryService
from inventario.services.user_service import UserService
from inventario.services.seed_service import SeedService

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
    'ProductService',
    'ProductFilters',
    'MovementService',
    'MovementFilters',
    'ENTRY_REASONS',
    'EXIT_REASONS',
    'StatsService',
    'DASHBOARD_REFRESH_SECONDS',
    'ExportService',
    'to_csv',
    'export_filename',
    'CategoryService',
    'UserService',
    'SeedService',
]
