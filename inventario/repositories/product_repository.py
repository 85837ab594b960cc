# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Encapsula todo el acceso a la clave "products".
# Los productos se almacenan como lista: [{id, code, name, ...}, ...]
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from inventario.models import Product
from inventario.repositories.base import CollectionRepository, Transaction
from inventario.utils import generate_id, now_iso


logger = logging.getLogger(__name__)


class ProductRepository(CollectionRepository):
    """
    Repositorio para la colección de productos.

    Formato de datos:
    [
        {
            "id": "3f2a...",
            "code": "PROD-001",
            "name": "Laptop HP 15\"",
            "category": "Electrónicos",
            "price": 2500000,
            "stock": 15,
            "minStock": 5,
            ...
        }
    ]
    """

    key = 'products'

    def _decode(self, records: List[Dict[str, Any]]) -> List[Product]:
        products = []
        for record in records:
            try:
                products.append(Product.from_dict(record))
            except (ValueError, TypeError) as exc:
                logger.warning("Producto inválido ignorado (%s): %s", exc, record.get('id'))
        return products

    def get_all(self, tx: Optional[Transaction] = None) -> List[Product]:
        """
        Obtiene todos los productos.

        Args:
            tx: Transacción opcional

        Returns:
            Lista de productos (vacía si no hay datos)
        """
        return self._decode(self.get_all_raw(tx))

    def save_all(self, products: List[Product], tx: Optional[Transaction] = None) -> bool:
        return self.save_all_raw([p.to_dict() for p in products], tx)

    def get_by_id(self, product_id: str, tx: Optional[Transaction] = None) -> Optional[Product]:
        for product in self.get_all(tx):
            if product.id == product_id:
                return product
        return None

    def get_by_code(self, code: str, tx: Optional[Transaction] = None) -> Optional[Product]:
        for product in self.get_all(tx):
            if product.code == code:
                return product
        return None

    def code_exists(
        self,
        code: str,
        exclude_id: Optional[str] = None,
        tx: Optional[Transaction] = None
    ) -> bool:
        """
        Verifica si un código ya está en uso.

        Args:
            code: Código a verificar
            exclude_id: ID a ignorar (el propio producto al editar)
            tx: Transacción opcional

        Returns:
            True si otro producto usa el código
        """
        return any(
            p.code == code and p.id != exclude_id
            for p in self.get_all(tx)
        )

    def add(self, data: Dict[str, Any], tx: Optional[Transaction] = None) -> Product:
        """
        Agrega un producto nuevo con id y fechas generados.

        Args:
            data: Campos del producto (sin id ni fechas)
            tx: Transacción opcional

        Returns:
            Producto creado
        """
        timestamp = now_iso()
        product = Product(
            id=generate_id(),
            code=data['code'],
            name=data['name'],
            description=data.get('description', ''),
            category=data['category'],
            price=data['price'],
            stock=data['stock'],
            min_stock=data['min_stock'],
            created_at=timestamp,
            updated_at=timestamp,
        )
        records = self.get_all_raw(tx)
        records.append(product.to_dict())
        self.save_all_raw(records, tx)
        return product

    def update(
        self,
        product_id: str,
        updates: Dict[str, Any],
        tx: Optional[Transaction] = None
    ) -> Optional[Product]:
        """
        Actualiza campos de un producto y refresca updatedAt.

        Args:
            product_id: ID del producto
            updates: Campos en formato de persistencia (camelCase)
            tx: Transacción opcional

        Returns:
            Producto actualizado o None si no existe
        """
        records = self.get_all_raw(tx)
        for index, record in enumerate(records):
            if str(record.get('id')) == product_id:
                merged = {**record, **updates, 'updatedAt': now_iso()}
                product = Product.from_dict(merged)
                records[index] = product.to_dict()
                self.save_all_raw(records, tx)
                return product
        return None

    def update_stock(
        self,
        product_id: str,
        delta: int,
        tx: Optional[Transaction] = None
    ) -> Optional[Product]:
        """
        Aplica un delta de stock (solo lo usa el libro de movimientos).

        Raises:
            ValueError: Si el resultado sería negativo
        """
        product = self.get_by_id(product_id, tx)
        if product is None:
            return None
        return self.update(product_id, {'stock': product.stock + delta}, tx)

    def delete(self, product_id: str, tx: Optional[Transaction] = None) -> bool:
        """
        Elimina un producto.

        Returns:
            True si existía y se eliminó
        """
        records = self.get_all_raw(tx)
        filtered = [r for r in records if str(r.get('id')) != product_id]
        if len(filtered) == len(records):
            return False
        return self.save_all_raw(filtered, tx)
