# ==============================================================================
# SERVICIO DE INICIALIZACIÓN
# ==============================================================================
# Crea los datos por defecto la primera vez que arranca el sistema.
# Es idempotente: solo escribe claves ausentes (o colecciones vacías),
# nunca sobrescribe datos existentes.
# ==============================================================================

import logging
from typing import Any, Dict, List

from inventario.models import SYSTEM_ACTOR, Category, User, UserRole
from inventario.repositories.base import BaseStorage, PersistenceError
from inventario.repositories.category_repository import CategoryRepository
from inventario.repositories.movement_repository import MovementRepository
from inventario.repositories.product_repository import ProductRepository
from inventario.repositories.user_repository import UserRepository
from inventario.services.product_service import ProductService
from inventario.services.user_service import hash_password
from inventario.utils import now_iso


logger = logging.getLogger(__name__)


DEFAULT_USERS = [
    {
        'id': '1',
        'username': 'admin',
        'password': 'admin123',
        'role': UserRole.ADMIN,
        'full_name': 'Administrador del Sistema',
        'email': 'admin@inventario.com',
    },
    {
        'id': '2',
        'username': 'empleado',
        'password': 'emp123',
        'role': UserRole.EMPLEADO,
        'full_name': 'Usuario Empleado',
        'email': 'empleado@inventario.com',
    },
]

DEFAULT_CATEGORIES = [
    ('1', 'Electrónicos', 'Productos electrónicos y tecnología'),
    ('2', 'Alimentos', 'Productos alimenticios'),
    ('3', 'Bebidas', 'Bebidas y líquidos'),
    ('4', 'Oficina', 'Material de oficina'),
    ('5', 'Limpieza', 'Productos de limpieza'),
    ('6', 'Ferretería', 'Herramientas y materiales'),
    ('7', 'Textil', 'Ropa y telas'),
    ('8', 'Otros', 'Productos varios'),
]

EXAMPLE_PRODUCTS: List[Dict[str, Any]] = [
    {
        'code': 'PROD-001',
        'name': 'Laptop HP 15"',
        'description': 'Laptop HP con procesador Intel Core i5, 8GB RAM, 256GB SSD',
        'category': 'Electrónicos',
        'price': 2500000,
        'stock': 15,
        'minStock': 5,
    },
    {
        'code': 'PROD-002',
        'name': 'Mouse Inalámbrico',
        'description': 'Mouse inalámbrico ergonómico',
        'category': 'Electrónicos',
        'price': 45000,
        'stock': 50,
        'minStock': 10,
    },
    {
        'code': 'PROD-003',
        'name': 'Teclado Mecánico',
        'description': 'Teclado mecánico RGB para gaming',
        'category': 'Electrónicos',
        'price': 180000,
        'stock': 8,
        'minStock': 5,
    },
    {
        'code': 'PROD-004',
        'name': 'Resma Papel A4',
        'description': 'Resma de 500 hojas papel bond A4',
        'category': 'Oficina',
        'price': 12000,
        'stock': 100,
        'minStock': 20,
    },
    {
        'code': 'PROD-005',
        'name': 'Café Colombiano 500g',
        'description': 'Café colombiano premium en grano',
        'category': 'Alimentos',
        'price': 25000,
        'stock': 3,
        'minStock': 10,
    },
]


class SeedService:
    """Inicializa usuarios, categorías, productos de ejemplo y movimientos."""

    def __init__(
        self,
        storage: BaseStorage,
        user_repo: UserRepository,
        category_repo: CategoryRepository,
        product_repo: ProductRepository,
        movement_repo: MovementRepository,
        product_service: ProductService
    ):
        self.storage = storage
        self.user_repo = user_repo
        self.category_repo = category_repo
        self.product_repo = product_repo
        self.movement_repo = movement_repo
        self.product_service = product_service

    def initialize(self, seed_examples: bool = True) -> Dict[str, bool]:
        """
        Crea los datos por defecto que falten.

        Args:
            seed_examples: Crear los productos de ejemplo si no hay productos

        Returns:
            Paso → True si se sembró en esta llamada
        """
        logger.info("Inicializando almacenamiento...")
        steps = [
            ('users', self._seed_users),
            ('categories', self._seed_categories),
            ('movements', self._seed_movements),
        ]
        if seed_examples:
            steps.append(('products', self._seed_products))

        done = {}
        for name, step in steps:
            try:
                done[name] = step()
            except PersistenceError as exc:
                logger.error("No se pudo inicializar '%s': %s", name, exc.message)
                done[name] = False

        logger.info("Almacenamiento inicializado correctamente")
        return done

    def _seed_users(self) -> bool:
        if self.user_repo.get_raw() is not None:
            return False

        timestamp = now_iso()
        users = [
            User(
                id=data['id'],
                username=data['username'],
                password_hash=hash_password(data['password']),
                role=data['role'],
                full_name=data['full_name'],
                email=data['email'],
                active=True,
                created_at=timestamp,
            )
            for data in DEFAULT_USERS
        ]
        with self.storage.transaction() as tx:
            self.user_repo.save(users, tx)
        logger.info("Usuarios por defecto creados")
        return True

    def _seed_categories(self) -> bool:
        if self.category_repo.get_all_raw():
            return False

        with self.storage.transaction() as tx:
            self.category_repo.save_all(
                [Category(id=cid, name=name, description=desc) for cid, name, desc in DEFAULT_CATEGORIES],
                tx
            )
        logger.info("Categorías por defecto creadas")
        return True

    def _seed_movements(self) -> bool:
        if self.movement_repo.get_raw() is not None:
            return False

        with self.storage.transaction() as tx:
            self.movement_repo.save_all_raw([], tx)
        logger.info("Sistema de movimientos inicializado")
        return True

    def _seed_products(self) -> bool:
        if self.product_repo.get_all_raw():
            return False

        for data in EXAMPLE_PRODUCTS:
            result = self.product_service.create(data, actor=SYSTEM_ACTOR)
            if not result['success']:
                if result['error'] == 'PersistenceError':
                    raise PersistenceError(result['message'])
                logger.warning("Producto de ejemplo omitido (%s): %s", data['code'], result['message'])
        logger.info("Productos de ejemplo creados")
        return True
