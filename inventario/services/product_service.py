# ==============================================================================
# SERVICIO DE PRODUCTOS (Registro de productos)
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con productos:
#   - Validación de datos de formulario
#   - Alta, edición y baja con código único
#   - Búsqueda, filtros y ordenamiento
#
# El stock NUNCA se modifica desde aquí: solo el libro de movimientos
# (MovementService) puede cambiarlo.
# ==============================================================================

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from inventario.models import Product, StockLevel, StockStatus, get_stock_status
from inventario.repositories.movement_repository import MovementRepository
from inventario.repositories.product_repository import ProductRepository
from inventario.services.errors import (
    DuplicateCodeError,
    NotFoundError,
    ValidationError,
    as_result,
    success_result,
)
from inventario.utils import (
    clean_text,
    filter_by_text,
    generate_product_code,
    is_empty,
    is_positive_number,
    to_int,
    to_number,
)

if TYPE_CHECKING:
    from inventario.services.movement_service import MovementService


logger = logging.getLogger(__name__)


# Campos donde busca el texto libre
SEARCH_FIELDS = ('code', 'name', 'description', 'category')

# Alias de campos para ordenar (formato JSON → atributo)
SORT_FIELDS = {
    'code': 'code',
    'name': 'name',
    'category': 'category',
    'description': 'description',
    'price': 'price',
    'stock': 'stock',
    'minStock': 'min_stock',
    'min_stock': 'min_stock',
    'createdAt': 'created_at',
    'created_at': 'created_at',
    'updatedAt': 'updated_at',
    'updated_at': 'updated_at',
}


@dataclass(frozen=True)
class ProductFilters:
    """
    Estado de filtros de la página de productos.

    Lo construye la capa que muestra los datos y se pasa explícitamente
    a apply_filters(); el servicio no guarda filtros propios.
    """
    search: str = ''
    category: str = ''
    stock_level: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ProductFilters':
        data = data or {}
        return cls(
            search=clean_text(data.get('search')),
            category=clean_text(data.get('category')),
            stock_level=data.get('stockLevel') or data.get('stock_level') or '',
        )


def _field(data: Dict[str, Any], *names: str) -> Any:
    """Primer valor presente entre varios nombres de campo."""
    for name in names:
        if name in data:
            return data[name]
    return None


class ProductService:
    """
    Servicio para gestión de productos.

    Responsabilidades:
    - CRUD de productos
    - Unicidad de código
    - Consultas de solo lectura (búsqueda, filtros, orden)
    - Clasificación de stock
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        movement_repo: MovementRepository,
        ledger: 'MovementService' = None
    ):
        """
        Inicializa el servicio de productos.

        Args:
            product_repo: Repositorio de productos
            movement_repo: Repositorio de movimientos (solo lectura)
            ledger: Libro de movimientos, registra el stock inicial
        """
        self.product_repo = product_repo
        self.movement_repo = movement_repo
        self.ledger = ledger

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    def validate(self, product_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Valida los datos de un producto recogiendo TODOS los errores.

        Args:
            product_data: Datos del formulario

        Returns:
            {'valid': bool, 'errors': [str]}
        """
        errors = []

        if is_empty(product_data.get('code')):
            errors.append('El código es requerido')

        if is_empty(product_data.get('name')):
            errors.append('El nombre es requerido')

        if is_empty(product_data.get('category')):
            errors.append('La categoría es requerida')

        if not is_positive_number(product_data.get('price')):
            errors.append('El precio debe ser un número positivo')

        stock = to_int(product_data.get('stock'))
        if stock is None or stock < 0:
            errors.append('El stock debe ser un número mayor o igual a cero')

        min_stock = _field(product_data, 'minStock', 'min_stock')
        if not is_positive_number(min_stock) or to_int(min_stock) is None:
            errors.append('El stock mínimo debe ser un número positivo')

        return {
            'valid': len(errors) == 0,
            'errors': errors
        }

    def _check(self, product_data: Dict[str, Any]) -> None:
        validation = self.validate(product_data)
        if not validation['valid']:
            raise ValidationError(validation['errors'])

    # =========================================================================
    # OPERACIONES CRUD
    # =========================================================================

    def code_exists(self, code: str, exclude_id: Optional[str] = None) -> bool:
        return self.product_repo.code_exists(code, exclude_id)

    @as_result
    def create(self, product_data: Dict[str, Any], actor=None) -> Dict[str, Any]:
        """
        Crea un nuevo producto.

        Si el stock inicial es mayor que cero se registra además una
        entrada "Stock inicial" (anterior 0 → nuevo stock) en la misma
        transacción, sin volver a sumar el stock.

        Args:
            product_data: Datos del producto
            actor: Usuario que crea (para el movimiento inicial)

        Returns:
            {'success', 'message', 'error', 'product'?}
        """
        self._check(product_data)
        code = str(product_data['code']).strip()

        with self.product_repo.storage.transaction() as tx:
            if self.product_repo.code_exists(code, tx=tx):
                raise DuplicateCodeError('Ya existe un producto con ese código')

            product = self.product_repo.add({
                'code': code,
                'name': str(product_data['name']).strip(),
                'description': clean_text(product_data.get('description')),
                'category': clean_text(product_data['category']),
                'price': to_number(product_data['price']),
                'stock': to_int(product_data['stock']),
                'min_stock': to_int(_field(product_data, 'minStock', 'min_stock')),
            }, tx=tx)

            if product.stock > 0 and self.ledger is not None:
                self.ledger.register_initial_stock(product, actor=actor, tx=tx)

        logger.info("Producto creado: %s (%s)", product.name, product.code)
        return success_result('Producto creado exitosamente', product=product)

    @as_result
    def edit(self, product_id: str, product_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Actualiza un producto existente.

        El campo stock se ignora: se mantiene el valor actual porque
        solo cambia mediante movimientos.

        Args:
            product_id: ID del producto
            product_data: Nuevos datos

        Returns:
            {'success', 'message', 'error', 'product'?}
        """
        with self.product_repo.storage.transaction() as tx:
            existing = self.product_repo.get_by_id(product_id, tx=tx)
            if existing is None:
                raise NotFoundError('Producto no encontrado')

            # Validar con el stock vigente; el enviado no se usa
            self._check({**product_data, 'stock': existing.stock})

            code = str(product_data['code']).strip()
            if self.product_repo.code_exists(code, exclude_id=product_id, tx=tx):
                raise DuplicateCodeError('Ya existe otro producto con ese código')

            product = self.product_repo.update(product_id, {
                'code': code,
                'name': str(product_data['name']).strip(),
                'description': clean_text(product_data.get('description')),
                'category': clean_text(product_data['category']),
                'price': to_number(product_data['price']),
                'minStock': to_int(_field(product_data, 'minStock', 'min_stock')),
            }, tx=tx)

        logger.info("Producto actualizado: %s (%s)", product.name, product.code)
        return success_result('Producto actualizado exitosamente', product=product)

    @as_result
    def remove(self, product_id: str) -> Dict[str, Any]:
        """
        Elimina un producto.

        Se permite aunque tenga historial: sus movimientos se conservan
        y las agregaciones ignoran los que apuntan a productos eliminados.

        Args:
            product_id: ID del producto

        Returns:
            {'success', 'message', 'error'}
        """
        with self.product_repo.storage.transaction() as tx:
            product = self.product_repo.get_by_id(product_id, tx=tx)
            if product is None:
                raise NotFoundError('Producto no encontrado')

            history = [m for m in self.movement_repo.get_all(tx) if m.product_id == product_id]
            if history:
                logger.info(
                    "Producto %s tiene %d movimientos, se eliminará de todas formas",
                    product.code, len(history)
                )

            self.product_repo.delete(product_id, tx=tx)

        logger.info("Producto eliminado: %s", product.name)
        return success_result('Producto eliminado exitosamente')

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_all(self) -> List[Product]:
        return self.product_repo.get_all()

    def get(self, product_id: str) -> Optional[Product]:
        return self.product_repo.get_by_id(product_id)

    def get_by_code(self, code: str) -> Optional[Product]:
        return self.product_repo.get_by_code(code)

    def search(self, text: str) -> List[Product]:
        """
        Busca productos por texto (sin distinguir mayúsculas ni acentos)
        en código, nombre, descripción y categoría.
        """
        return filter_by_text(self.get_all(), text, SEARCH_FIELDS)

    def filter_by_category(self, category: str) -> List[Product]:
        products = self.get_all()
        if not category:
            return products
        return [p for p in products if p.category == category]

    def filter_by_stock_level(self, level: str) -> List[Product]:
        """
        Filtra por nivel de stock: bajo, normal o alto.
        Un nivel desconocido devuelve todos los productos.
        """
        return self._filter_level(self.get_all(), level)

    def _filter_level(self, products: List[Product], level: str) -> List[Product]:
        try:
            wanted = StockLevel(level)
        except ValueError:
            return products
        return [p for p in products if p.status.level == wanted]

    def apply_filters(self, filters: ProductFilters) -> List[Product]:
        """
        Aplica búsqueda, categoría y nivel de stock en conjunto.

        Args:
            filters: Estado de filtros de quien consulta

        Returns:
            Productos que cumplen todos los filtros
        """
        products = self.get_all()

        if filters.search:
            products = filter_by_text(products, filters.search, SEARCH_FIELDS)

        if filters.category:
            products = [p for p in products if p.category == filters.category]

        if filters.stock_level:
            products = self._filter_level(products, filters.stock_level)

        return products

    @staticmethod
    def sort(products: List[Product], field: str, direction: str = 'asc') -> List[Product]:
        """
        Ordena productos por un campo (orden estable).

        Args:
            products: Productos a ordenar
            field: Campo (code, name, price, stock, minStock, ...)
            direction: 'asc' o 'desc'

        Returns:
            Nueva lista ordenada (orden original si el campo no es ordenable)
        """
        attr = SORT_FIELDS.get(field)
        if attr is None:
            return list(products)

        def sort_key(product):
            value = getattr(product, attr, None)
            if value is None:
                return ''
            if isinstance(value, str):
                return value.lower()
            return value

        return sorted(products, key=sort_key, reverse=(direction == 'desc'))

    @staticmethod
    def get_stock_status(product: Product) -> StockStatus:
        return get_stock_status(product.stock, product.min_stock)

    def summary(self) -> Dict[str, Any]:
        """Resumen general del catálogo."""
        products = self.get_all()
        return {
            'total': len(products),
            'totalStock': sum(p.stock for p in products),
            'totalValue': sum(p.stock_value for p in products),
            'lowStock': sum(1 for p in products if p.is_low_stock),
            'outOfStock': sum(1 for p in products if p.stock == 0),
            'categories': len({p.category for p in products}),
        }

    def generate_code(self, prefix: str = 'PROD') -> str:
        """Genera un código que no esté en uso."""
        code = generate_product_code(prefix)
        while self.code_exists(code):
            code = generate_product_code(prefix)
        return code
