# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# de la pasarela, repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (se puede inyectar un MemoryStorage)
#   - Migración (cambiar la pasarela sin tocar servicios)
#
# Para usar otro almacenamiento basta con crear una subclase de
# BaseStorage y pasarla como `storage`: repositorios y servicios no
# cambian.
# ==============================================================================

import os
from typing import Optional

from inventario.repositories import (
    BaseStorage,
    JsonFileStorage,
    ProductRepository,
    MovementRepository,
    CategoryRepository,
    UserRepository,
    SettingsRepository,
)
from inventario.services import (
    ProductService,
    MovementService,
    StatsService,
    ExportService,
    CategoryService,
    UserService,
    SeedService,
)


# Directorio de datos por defecto: <paquete>/data
DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    de cada repositorio y servicio.

    Uso:
        container = AppContainer(data_dir='/ruta/a/datos')
        products = container.product_service
        ledger = container.movement_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, data_dir: str = None, storage: BaseStorage = None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, data_dir: str = None, storage: BaseStorage = None):
        """
        Inicializa el contenedor.

        Args:
            data_dir: Directorio de los JSON (por defecto INVENTARIO_DATA_DIR)
            storage: Pasarela ya construida (tiene prioridad sobre data_dir)
        """
        if self._initialized:
            return

        self._data_dir = data_dir or os.environ.get('INVENTARIO_DATA_DIR') or DEFAULT_DATA_DIR
        self._storage: Optional[BaseStorage] = storage

        self._init_instances()
        self._initialized = True

    def _init_instances(self) -> None:
        # Repositorios (lazy loading)
        self._product_repo: Optional[ProductRepository] = None
        self._movement_repo: Optional[MovementRepository] = None
        self._category_repo: Optional[CategoryRepository] = None
        self._user_repo: Optional[UserRepository] = None
        self._settings_repo: Optional[SettingsRepository] = None

        # Servicios (lazy loading)
        self._product_service: Optional[ProductService] = None
        self._movement_service: Optional[MovementService] = None
        self._stats_service: Optional[StatsService] = None
        self._export_service: Optional[ExportService] = None
        self._category_service: Optional[CategoryService] = None
        self._user_service: Optional[UserService] = None
        self._seed_service: Optional[SeedService] = None

        # Datos por defecto ya verificados
        self._data_ready = False

    # =========================================================================
    # PASARELA Y REPOSITORIOS
    # =========================================================================

    @property
    def storage(self) -> BaseStorage:
        """Pasarela de persistencia (singleton)."""
        if self._storage is None:
            self._storage = JsonFileStorage(self._data_dir)
        return self._storage

    @property
    def product_repo(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(self.storage)
        return self._product_repo

    @property
    def movement_repo(self) -> MovementRepository:
        if self._movement_repo is None:
            self._movement_repo = MovementRepository(self.storage)
        return self._movement_repo

    @property
    def category_repo(self) -> CategoryRepository:
        if self._category_repo is None:
            self._category_repo = CategoryRepository(self.storage)
        return self._category_repo

    @property
    def user_repo(self) -> UserRepository:
        if self._user_repo is None:
            self._user_repo = UserRepository(self.storage)
        return self._user_repo

    @property
    def settings_repo(self) -> SettingsRepository:
        if self._settings_repo is None:
            self._settings_repo = SettingsRepository(self.storage)
        return self._settings_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def user_service(self) -> UserService:
        """Servicio de usuarios (singleton)."""
        if self._user_service is None:
            self._user_service = UserService(self.user_repo, self.settings_repo)
        return self._user_service

    @property
    def movement_service(self) -> MovementService:
        """Libro de movimientos (singleton)."""
        if self._movement_service is None:
            self._movement_service = MovementService(
                self.movement_repo,
                self.product_repo,
                get_current_actor=self.user_service.get_current_actor
            )
        return self._movement_service

    @property
    def product_service(self) -> ProductService:
        """Registro de productos (singleton)."""
        if self._product_service is None:
            self._product_service = ProductService(
                self.product_repo,
                self.movement_repo,
                ledger=self.movement_service
            )
        return self._product_service

    @property
    def stats_service(self) -> StatsService:
        if self._stats_service is None:
            self._stats_service = StatsService(
                self.product_repo,
                self.movement_repo,
                self.movement_service
            )
        return self._stats_service

    @property
    def export_service(self) -> ExportService:
        if self._export_service is None:
            self._export_service = ExportService(self.product_repo, self.movement_repo)
        return self._export_service

    @property
    def category_service(self) -> CategoryService:
        if self._category_service is None:
            self._category_service = CategoryService(self.category_repo)
        return self._category_service

    @property
    def seed_service(self) -> SeedService:
        if self._seed_service is None:
            self._seed_service = SeedService(
                self.storage,
                self.user_repo,
                self.category_repo,
                self.product_repo,
                self.movement_repo,
                self.product_service
            )
        return self._seed_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def initialize_data(self, seed_examples: bool = True) -> None:
        """Siembra los datos por defecto una sola vez por contenedor."""
        if not self._data_ready:
            self.seed_service.initialize(seed_examples=seed_examples)
            self._data_ready = True

    def reset(self) -> None:
        """
        Reinicia todas las instancias (la pasarela inyectada se conserva).
        Útil para testing o para recargar datos.
        """
        self._init_instances()

    @classmethod
    def get_instance(cls, data_dir: str = None, storage: BaseStorage = None) -> 'AppContainer':
        """
        Obtiene la instancia singleton del contenedor.

        Args:
            data_dir: Directorio de datos (solo se usa en la primera llamada)
            storage: Pasarela (solo se usa en la primera llamada)
        """
        if cls._instance is None:
            return cls(data_dir, storage)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(data_dir: str = None, storage: BaseStorage = None) -> AppContainer:
    """
    Obtiene el contenedor de dependencias global.

    Args:
        data_dir: Directorio de datos
        storage: Pasarela ya construida

    Returns:
        Instancia del contenedor
    """
    return AppContainer.get_instance(data_dir, storage)
