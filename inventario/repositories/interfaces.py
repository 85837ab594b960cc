# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos que deben cumplir la pasarela de persistencia y los
# repositorios. Los servicios dependen de estos contratos, no del
# almacenamiento concreto (JSON en disco, memoria o una base de datos).
#
# MIGRACIÓN A UN ALMACENAMIENTO TRANSACCIONAL:
# 1. Crear una subclase de BaseStorage que implemente get/set/remove
#    y transaction() sobre la nueva base
# 2. Cambiar la instanciación en app_container.py
# 3. Los servicios NO requieren cambios
#
# ==============================================================================

from typing import Any, ContextManager, Dict, List, Optional, Protocol, runtime_checkable

from inventario.models import Actor, Category, Movement, Product, User


# ==============================================================================
# PASARELA DE PERSISTENCIA
# ==============================================================================

@runtime_checkable
class IStorage(Protocol):
    """
    Almacenamiento clave/valor de valores JSON.
    Claves lógicas: products, movements, categories, users,
    current_user, settings.
    """

    def get(self, key: str) -> Any:
        """Valor almacenado o None."""
        ...

    def set(self, key: str, value: Any) -> bool:
        """Guarda el valor; True si tuvo éxito."""
        ...

    def remove(self, key: str) -> bool:
        """Elimina la clave; True si tuvo éxito."""
        ...

    def transaction(self) -> ContextManager[Any]:
        """Unidad de trabajo leer-validar-escribir."""
        ...


# ==============================================================================
# INTERFACES ESPECÍFICAS POR DOMINIO
# ==============================================================================

@runtime_checkable
class IProductRepository(Protocol):

    def get_all(self, tx=None) -> List[Product]:
        ...

    def get_by_id(self, product_id: str, tx=None) -> Optional[Product]:
        ...

    def get_by_code(self, code: str, tx=None) -> Optional[Product]:
        ...

    def code_exists(self, code: str, exclude_id: Optional[str] = None, tx=None) -> bool:
        ...

    def add(self, data: Dict[str, Any], tx=None) -> Product:
        ...

    def update(self, product_id: str, updates: Dict[str, Any], tx=None) -> Optional[Product]:
        ...

    def update_stock(self, product_id: str, delta: int, tx=None) -> Optional[Product]:
        ...

    def delete(self, product_id: str, tx=None) -> bool:
        ...


@runtime_checkable
class IMovementRepository(Protocol):
    """Historial de solo-agregar."""

    def get_all(self, tx=None) -> List[Movement]:
        ...

    def append(self, data: Dict[str, Any], tx=None) -> Movement:
        ...

    def get_by_product(self, product_id: str) -> List[Movement]:
        ...


@runtime_checkable
class ICategoryRepository(Protocol):

    def get_all(self, tx=None) -> List[Category]:
        ...

    def get_by_name(self, name: str, tx=None) -> Optional[Category]:
        ...

    def add(self, name: str, description: str = '', tx=None) -> Category:
        ...


@runtime_checkable
class IUserRepository(Protocol):

    def load(self, tx=None) -> List[User]:
        ...

    def get_user(self, username: str) -> Optional[User]:
        ...


@runtime_checkable
class ISettingsRepository(Protocol):

    def load(self) -> Dict[str, Any]:
        ...

    def save(self, settings: Dict[str, Any]) -> bool:
        ...

    def get_current_user(self) -> Optional[Actor]:
        ...

    def save_current_user(self, actor: Actor) -> bool:
        ...

    def clear_current_user(self) -> bool:
        ...
