# ==============================================================================
# SERVICIO DE EXPORTACIÓN CSV
# ==============================================================================
# Prepara filas {columna: valor} con los encabezados en español y las
# convierte a CSV con todos los valores entre comillas.
# ==============================================================================

import csv
import io
from datetime import datetime
from typing import Any, Dict, List, Optional

from inventario.models import Movement
from inventario.performance_logger import profile_function
from inventario.repositories.movement_repository import MovementRepository
from inventario.repositories.product_repository import ProductRepository
from inventario.utils import format_currency, format_date


PRODUCT_COLUMNS = [
    'Código', 'Nombre', 'Categoría', 'Precio', 'Stock', 'Stock Mínimo',
    'Estado', 'Valor en Stock', 'Creado',
]

MOVEMENT_COLUMNS = [
    'Fecha/Hora', 'Producto', 'Código', 'Tipo', 'Cantidad', 'Razón',
    'Notas', 'Usuario', 'Stock Anterior', 'Stock Nuevo',
]

NO_DATA_MESSAGE = 'No hay datos para exportar'


def to_csv(rows: List[Dict[str, Any]]) -> str:
    """
    Convierte filas a texto CSV.

    El encabezado sale de las claves de la primera fila.

    Returns:
        Texto CSV, o cadena vacía si no hay filas
    """
    if not rows:
        return ''

    headers = list(rows[0].keys())
    si = io.StringIO()
    writer = csv.writer(si, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(headers)
    for row in rows:
        writer.writerow(['' if row.get(h) is None else row.get(h) for h in headers])
    return si.getvalue()


def export_filename(base: str, when: Optional[datetime] = None) -> str:
    """Nombre de archivo <base>_DD-MM-YYYY.csv"""
    stamp = format_date(when or datetime.now()).replace('/', '-')
    return f"{base}_{stamp}.csv"


class ExportService:
    """Arma los datos de productos y movimientos para descarga."""

    def __init__(self, product_repo: ProductRepository, movement_repo: MovementRepository):
        self.product_repo = product_repo
        self.movement_repo = movement_repo

    @profile_function(name="Exportar productos")
    def prepare_products_for_export(self) -> List[Dict[str, Any]]:
        return [
            dict(zip(PRODUCT_COLUMNS, [
                p.code,
                p.name,
                p.category,
                format_currency(p.price),
                p.stock,
                p.min_stock,
                p.status.text,
                format_currency(p.stock_value),
                format_date(p.created_at),
            ]))
            for p in self.product_repo.get_all()
        ]

    @profile_function(name="Exportar movimientos")
    def prepare_movements_for_export(
        self,
        movements: Optional[List[Movement]] = None
    ) -> List[Dict[str, Any]]:
        """
        Args:
            movements: Movimientos ya filtrados (por defecto, todos)
        """
        if movements is None:
            movements = self.movement_repo.get_all()

        return [
            dict(zip(MOVEMENT_COLUMNS, [
                format_date(m.created_at, include_time=True),
                m.product_name,
                m.product_code,
                m.type.label,
                m.units,
                m.reason,
                m.notes,
                m.user_name,
                m.previous_stock,
                m.new_stock,
            ]))
            for m in movements
        ]
