# ==============================================================================
# REPOSITORIO DE CATEGORÍAS
# ==============================================================================

from typing import List, Optional

from inventario.models import Category
from inventario.repositories.base import CollectionRepository, Transaction
from inventario.utils import generate_id, normalize_text


class CategoryRepository(CollectionRepository):
    """
    Repositorio de categorías.

    Formato: [{"id": "1", "name": "Electrónicos", "description": "..."}]
    """

    key = 'categories'

    def get_all(self, tx: Optional[Transaction] = None) -> List[Category]:
        return [Category.from_dict(r) for r in self.get_all_raw(tx) if r.get('name')]

    def save_all(self, categories: List[Category], tx: Optional[Transaction] = None) -> bool:
        return self.save_all_raw([c.to_dict() for c in categories], tx)

    def get_by_name(self, name: str, tx: Optional[Transaction] = None) -> Optional[Category]:
        """Busca una categoría por nombre, sin distinguir mayúsculas ni acentos."""
        target = normalize_text(name.strip())
        for category in self.get_all(tx):
            if normalize_text(category.name) == target:
                return category
        return None

    def add(self, name: str, description: str = '', tx: Optional[Transaction] = None) -> Category:
        category = Category(id=generate_id(), name=name.strip(), description=description or '')
        records = self.get_all_raw(tx)
        records.append(category.to_dict())
        self.save_all_raw(records, tx)
        return category
