# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia.
# La pasarela (BaseStorage) guarda cada colección bajo una clave lógica;
# los repositorios traducen entre registros JSON y entidades.
#
# ESTRUCTURA:
# ├── interfaces.py           → Protocolos (contratos)
# ├── base.py                 → Pasarela clave/valor, transacciones, errores
# ├── product_repository.py   → Clave "products"
# ├── movement_repository.py  → Clave "movements" (solo-agregar)
# ├── category_repository.py  → Clave "categories"
# ├── user_repository.py      → Clave "users"
# └── settings_repository.py  → Claves "settings" y "current_user"
# ==============================================================================

# Interfaces
from .interfaces import (
    IStorage,
    IProductRepository,
    IMovementRepository,
    ICategoryRepository,
    IUserRepository,
    ISettingsRepository,
)

# Pasarela y clases base
from .base import (
    STORAGE_KEYS,
    BaseStorage,
    JsonFileStorage,
    MemoryStorage,
    Transaction,
    CollectionRepository,
    PersistenceError,
)

# Implementaciones
from .product_repository import ProductRepository
from .movement_repository import MovementRepository
from .category_repository import CategoryRepository
from .user_repository import UserRepository
from .settings_repository import SettingsRepository, DEFAULT_SETTINGS

__all__ = [
    # Interfaces
    'IStorage',
    'IProductRepository',
    'IMovementRepository',
    'ICategoryRepository',
    'IUserRepository',
    'ISettingsRepository',

    # Pasarela
    'STORAGE_KEYS',
    'BaseStorage',
    'JsonFileStorage',
    'MemoryStorage',
    'Transaction',
    'CollectionRepository',
    'PersistenceError',

    # Implementaciones
    'ProductRepository',
    'MovementRepository',
    'CategoryRepository',
    'UserRepository',
    'SettingsRepository',
    'DEFAULT_SETTINGS',
]
