# ==============================================================================
# REPOSITORIO DE MOVIMIENTOS
# ==============================================================================
# Encapsula todo el acceso a la clave "movements".
# Los movimientos son de solo-agregar: este repositorio no expone
# operaciones para editar o borrar un movimiento existente.
# ==============================================================================

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from inventario.models import Movement, MovementType
from inventario.repositories.base import CollectionRepository, Transaction
from inventario.utils import generate_id, now_iso, parse_datetime


logger = logging.getLogger(__name__)


class MovementRepository(CollectionRepository):
    """
    Repositorio para el historial de movimientos.

    Formato de datos:
    [
        {
            "id": "...",
            "productId": "...",
            "type": "salida",
            "quantity": -3,
            "previousStock": 10,
            "newStock": 7,
            ...
        }
    ]
    """

    key = 'movements'

    def get_all(self, tx: Optional[Transaction] = None) -> List[Movement]:
        """Obtiene todos los movimientos en orden de registro."""
        movements = []
        for record in self.get_all_raw(tx):
            try:
                movements.append(Movement.from_dict(record))
            except (ValueError, TypeError) as exc:
                logger.warning("Movimiento inválido ignorado (%s): %s", exc, record.get('id'))
        return movements

    def append(self, data: Dict[str, Any], tx: Optional[Transaction] = None) -> Movement:
        """
        Agrega un movimiento al final del historial.

        Args:
            data: Campos del movimiento en formato de persistencia, sin id
                ni createdAt
            tx: Transacción opcional

        Returns:
            Movimiento creado

        Raises:
            ValueError: Si el registro viola los invariantes del movimiento
        """
        record = {**data, 'id': generate_id(), 'createdAt': now_iso()}
        movement = Movement.from_dict(record)
        records = self.get_all_raw(tx)
        records.append(movement.to_dict())
        self.save_all_raw(records, tx)
        return movement

    def get_by_product(self, product_id: str) -> List[Movement]:
        return [m for m in self.get_all() if m.product_id == product_id]

    def get_by_type(self, movement_type: MovementType) -> List[Movement]:
        return [m for m in self.get_all() if m.type == movement_type]

    def get_by_date_range(self, start: datetime, end: datetime) -> List[Movement]:
        """
        Movimientos con fecha dentro de [start, end] (ambos inclusive).

        Args:
            start: Inicio (hora local)
            end: Fin (hora local)
        """
        result = []
        for movement in self.get_all():
            created = parse_datetime(movement.created_at)
            if created is not None and start <= created <= end:
                result.append(movement)
        return result
