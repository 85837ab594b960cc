# ==============================================================================
# SERVICIO DE CATEGORÍAS
# ==============================================================================
# Los productos referencian la categoría por nombre, por eso aquí no hay
# renombrar ni eliminar: solo listar y agregar.
# ==============================================================================

import logging
from typing import Any, Dict, List

from inventario.models import Category
from inventario.repositories.category_repository import CategoryRepository
from inventario.services.errors import ValidationError, as_result, success_result
from inventario.utils import is_empty


logger = logging.getLogger(__name__)


class CategoryService:
    """Servicio para consulta y alta de categorías."""

    def __init__(self, category_repo: CategoryRepository):
        self.category_repo = category_repo

    def list(self) -> List[Category]:
        return self.category_repo.get_all()

    def names(self) -> List[str]:
        return [c.name for c in self.category_repo.get_all()]

    @as_result
    def add(self, name: str, description: str = '') -> Dict[str, Any]:
        """
        Agrega una categoría nueva.

        Args:
            name: Nombre (único, sin distinguir mayúsculas ni acentos)
            description: Descripción opcional

        Returns:
            {'success', 'message', 'error', 'category'?}
        """
        if is_empty(name):
            raise ValidationError(['El nombre de la categoría es requerido'])

        with self.category_repo.storage.transaction() as tx:
            if self.category_repo.get_by_name(name, tx) is not None:
                raise ValidationError(['Ya existe una categoría con ese nombre'])
            category = self.category_repo.add(name, (description or '').strip(), tx)

        logger.info("Categoría creada: %s", category.name)
        return success_result('Categoría creada exitosamente', category=category)
