# ==============================================================================
# SERVICIO DE MOVIMIENTOS (Libro de movimientos)
# ==============================================================================
# Único punto autorizado para cambiar el stock de un producto.
#
# Cada registro es una transacción leer-validar-escribir:
#   1. Validar datos (con el producto leído dentro de la transacción)
#   2. Calcular delta con signo y nuevo stock
#   3. Agregar el movimiento y aplicar el delta al producto
# Si algo falla antes del commit no se escribe nada.
# ==============================================================================

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from inventario.models import SYSTEM_ACTOR, Actor, Movement, MovementType, Product
from inventario.performance_logger import profile_function
from inventario.repositories.base import Transaction
from inventario.repositories.movement_repository import MovementRepository
from inventario.repositories.product_repository import ProductRepository
from inventario.services.errors import (
    NegativeStockError,
    NotFoundError,
    ValidationError,
    as_result,
    success_result,
)
from inventario.utils import clean_text, filter_by_text, format_date, is_empty, parse_datetime, to_int


logger = logging.getLogger(__name__)


# Razones sugeridas por tipo de movimiento (se acepta texto libre)
ENTRY_REASONS = [
    'Compra',
    'Devolución de cliente',
    'Ajuste de inventario',
    'Donación',
    'Producción interna',
    'Otro',
]

EXIT_REASONS = [
    'Venta',
    'Devolución a proveedor',
    'Pérdida',
    'Daño',
    'Robo',
    'Uso interno',
    'Donación',
    'Ajuste de inventario',
    'Otro',
]

INITIAL_STOCK_REASON = 'Stock inicial'
INITIAL_STOCK_NOTES = 'Creación de producto'

SEARCH_FIELDS = ('product_code', 'product_name', 'reason', 'notes', 'user_name')


def _as_datetime(value: Any, end_of_day: bool = False) -> Optional[datetime]:
    """Convierte el valor de un filtro de fecha; las fechas sin hora cubren el día."""
    if value in (None, ''):
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.max if end_of_day else time.min)
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    if end_of_day and isinstance(value, str) and 'T' not in value:
        parsed = datetime.combine(parsed.date(), time.max)
    return parsed


@dataclass(frozen=True)
class MovementFilters:
    """Filtros de la página de movimientos, propiedad de quien consulta."""
    type: str = ''
    product_id: str = ''
    user_id: str = ''
    date_from: Any = None
    date_to: Any = None
    search: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'MovementFilters':
        data = data or {}
        return cls(
            type=data.get('type') or '',
            product_id=data.get('productId') or '',
            user_id=data.get('userId') or '',
            date_from=data.get('dateFrom') or None,
            date_to=data.get('dateTo') or None,
            search=clean_text(data.get('search')),
        )


class MovementService:
    """
    Servicio del libro de movimientos.

    Responsabilidades:
    - Validar y registrar entradas/salidas
    - Mantener stock = stock inicial + Σ cantidades
    - Consultas por filtros y por períodos
    - Aviso de stock bajo después de una salida
    """

    def __init__(
        self,
        movement_repo: MovementRepository,
        product_repo: ProductRepository,
        get_current_actor: Optional[Callable[[], Optional[Actor]]] = None,
        on_low_stock: Optional[Callable[[Product, int], None]] = None
    ):
        """
        Args:
            movement_repo: Repositorio de movimientos
            product_repo: Repositorio de productos
            get_current_actor: Devuelve el usuario de la sesión activa
            on_low_stock: Callback opcional (producto, nuevo_stock)
        """
        self.movement_repo = movement_repo
        self.product_repo = product_repo
        self.get_current_actor = get_current_actor
        self.on_low_stock = on_low_stock

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    @staticmethod
    def signed_quantity(movement_type: MovementType, quantity: int) -> int:
        return quantity if movement_type == MovementType.ENTRADA else -quantity

    @classmethod
    def _stock_error(
        cls,
        product: Product,
        movement_type: Optional[MovementType],
        quantity: Optional[int]
    ) -> Optional[str]:
        """
        Verificación de stock compartida por validate, register y can_perform.

        Returns:
            Mensaje de stock insuficiente o None si el stock alcanza
        """
        if movement_type != MovementType.SALIDA or quantity is None:
            return None
        if product.stock + cls.signed_quantity(movement_type, quantity) < 0:
            return f'Stock insuficiente. Disponible: {product.stock} unidades'
        return None

    def _collect_errors(
        self,
        movement_data: Dict[str, Any],
        tx: Optional[Transaction] = None
    ) -> Tuple[List[str], Optional[str]]:
        errors = []
        product = None

        product_id = movement_data.get('productId')
        if is_empty(product_id):
            errors.append('Debe seleccionar un producto')
        else:
            product = self.product_repo.get_by_id(str(product_id), tx)
            if product is None:
                errors.append('El producto seleccionado no existe')

        movement_type = MovementType.parse(movement_data.get('type'))
        if movement_type is None:
            errors.append('Tipo de movimiento inválido')

        quantity = to_int(movement_data.get('quantity'))
        if quantity is None or quantity <= 0:
            errors.append('La cantidad debe ser un número positivo')
            quantity = None

        if is_empty(movement_data.get('reason')):
            errors.append('Debe especificar una razón')

        stock_error = None
        if product is not None:
            stock_error = self._stock_error(product, movement_type, quantity)
            if stock_error:
                errors.append(stock_error)

        return errors, stock_error

    def validate(self, movement_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Valida los datos de un movimiento recogiendo todos los errores.

        Args:
            movement_data: {productId, type, quantity, reason, notes?}

        Returns:
            {'valid': bool, 'errors': [str]}
        """
        errors, _ = self._collect_errors(movement_data)
        return {'valid': len(errors) == 0, 'errors': errors}

    def can_perform(self, product_id: str, movement_type: Any, quantity: Any) -> Dict[str, Any]:
        """
        Simulación previa al registro (no escribe nada).

        Returns:
            {'canMove': bool, 'message': str} y, si procede,
            'currentStock' / 'newStock' para la vista previa
        """
        product = self.product_repo.get_by_id(str(product_id)) if product_id else None
        if product is None:
            return {'canMove': False, 'message': 'Producto no encontrado'}

        parsed_type = MovementType.parse(movement_type)
        if parsed_type is None:
            return {'canMove': False, 'message': 'Tipo de movimiento inválido'}

        amount = to_int(quantity)
        if amount is None or amount <= 0:
            return {'canMove': False, 'message': 'La cantidad debe ser un número positivo'}

        stock_error = self._stock_error(product, parsed_type, amount)
        if stock_error:
            return {'canMove': False, 'message': stock_error}

        return {
            'canMove': True,
            'message': 'OK',
            'currentStock': product.stock,
            'newStock': product.stock + self.signed_quantity(parsed_type, amount),
        }

    # =========================================================================
    # REGISTRO
    # =========================================================================

    def _resolve_actor(self, actor: Optional[Actor]) -> Actor:
        if actor is not None:
            return actor
        if self.get_current_actor is not None:
            current = self.get_current_actor()
            if current is not None:
                return current
        return SYSTEM_ACTOR

    @profile_function(name="Registrar movimiento")
    @as_result
    def register(self, movement_data: Dict[str, Any], actor: Optional[Actor] = None) -> Dict[str, Any]:
        """
        Registra un movimiento y actualiza el stock del producto.

        Args:
            movement_data: {productId, type, quantity, reason, notes?}
            actor: Usuario que registra (por defecto el de la sesión)

        Returns:
            {'success', 'message', 'error', 'movement'?, 'warning'?}
        """
        actor = self._resolve_actor(actor)

        with self.product_repo.storage.transaction() as tx:
            errors, stock_error = self._collect_errors(movement_data, tx)
            if errors:
                if errors == [stock_error]:
                    raise NegativeStockError(stock_error)
                raise ValidationError(errors)

            product = self.product_repo.get_by_id(str(movement_data['productId']), tx)
            if product is None:
                raise NotFoundError('Producto no encontrado')

            movement_type = MovementType.parse(movement_data['type'])
            delta = self.signed_quantity(movement_type, to_int(movement_data['quantity']))
            previous_stock = product.stock
            new_stock = previous_stock + delta
            if new_stock < 0:
                raise NegativeStockError('La operación resultaría en stock negativo')

            movement = self.movement_repo.append({
                'productId': product.id,
                'productCode': product.code,
                'productName': product.name,
                'type': movement_type.value,
                'quantity': delta,
                'reason': str(movement_data['reason']).strip(),
                'notes': clean_text(movement_data.get('notes')),
                'previousStock': previous_stock,
                'newStock': new_stock,
                'userId': actor.id,
                'userName': actor.display_name,
            }, tx)
            self.product_repo.update_stock(product.id, delta, tx)

        logger.info(
            "Movimiento registrado: %s %+d %s (%d → %d) por %s",
            movement_type.value, delta, product.code, previous_stock, new_stock, actor.username
        )

        result = success_result(f'{movement_type.label} registrada exitosamente', movement=movement)

        if movement_type == MovementType.SALIDA and new_stock <= product.min_stock:
            warning = f'Alerta: {product.name} ahora tiene stock bajo ({new_stock} unidades)'
            logger.warning(warning)
            result['warning'] = warning
            if self.on_low_stock is not None:
                # el movimiento ya está guardado
                try:
                    self.on_low_stock(product, new_stock)
                except Exception:
                    logger.exception("Error en el aviso de stock bajo de %s", product.code)

        return result

    def register_entry(self, movement_data: Dict[str, Any], actor: Optional[Actor] = None) -> Dict[str, Any]:
        return self.register({**movement_data, 'type': MovementType.ENTRADA.value}, actor=actor)

    def register_exit(self, movement_data: Dict[str, Any], actor: Optional[Actor] = None) -> Dict[str, Any]:
        return self.register({**movement_data, 'type': MovementType.SALIDA.value}, actor=actor)

    def register_initial_stock(
        self,
        product: Product,
        actor: Optional[Actor] = None,
        tx: Optional[Transaction] = None
    ) -> Movement:
        """
        Deja constancia del stock con el que se creó un producto.

        El producto ya fue guardado con ese stock: aquí solo se agrega la
        entrada 0 → stock, sin volver a sumarlo.

        Args:
            product: Producto recién creado
            actor: Usuario que lo creó
            tx: Transacción de la creación del producto
        """
        actor = self._resolve_actor(actor)
        return self.movement_repo.append({
            'productId': product.id,
            'productCode': product.code,
            'productName': product.name,
            'type': MovementType.ENTRADA.value,
            'quantity': product.stock,
            'reason': INITIAL_STOCK_REASON,
            'notes': INITIAL_STOCK_NOTES,
            'previousStock': 0,
            'newStock': product.stock,
            'userId': actor.id,
            'userName': actor.display_name,
        }, tx)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    @staticmethod
    def _newest_first(movements: List[Movement]) -> List[Movement]:
        return sorted(
            movements,
            key=lambda m: parse_datetime(m.created_at) or datetime.min,
            reverse=True
        )

    def get_all(self) -> List[Movement]:
        return self.movement_repo.get_all()

    def query(self, filters: Optional[MovementFilters] = None) -> List[Movement]:
        """
        Obtiene movimientos filtrados, del más reciente al más antiguo.

        Args:
            filters: Tipo, producto, usuario, rango de fechas y texto

        Returns:
            Lista de movimientos
        """
        filters = filters or MovementFilters()
        movements = self.movement_repo.get_all()

        if filters.type:
            movements = [m for m in movements if m.type.value == filters.type]

        if filters.product_id:
            movements = [m for m in movements if m.product_id == filters.product_id]

        if filters.date_from or filters.date_to:
            start = _as_datetime(filters.date_from) or datetime.min
            end = _as_datetime(filters.date_to, end_of_day=True) or datetime.max

            def in_range(movement):
                created = parse_datetime(movement.created_at)
                return created is not None and start <= created <= end

            movements = [m for m in movements if in_range(m)]

        if filters.search:
            movements = filter_by_text(movements, filters.search, SEARCH_FIELDS)

        if filters.user_id:
            movements = [m for m in movements if m.user_id == filters.user_id]

        return self._newest_first(movements)

    def recent(self, limit: int = 10) -> List[Movement]:
        return self._newest_first(self.movement_repo.get_all())[:limit]

    def today(self) -> List[Movement]:
        """Movimientos del día calendario actual (hora local)."""
        today = date.today()
        return [
            m for m in self.movement_repo.get_all()
            if (parse_datetime(m.created_at) or datetime.min).date() == today
        ]

    def month_to_date(self) -> List[Movement]:
        """Movimientos desde el día 1 del mes actual hasta ahora."""
        now = datetime.now()
        first_day = datetime(now.year, now.month, 1)
        return self.movement_repo.get_by_date_range(first_day, now)

    def by_day(self, days: int = 7) -> List[Dict[str, Any]]:
        """
        Conteos por día de los últimos N días (el más antiguo primero).

        Incluye los días sin movimientos con conteos en cero.

        Returns:
            [{'date': 'DD/MM/YYYY', 'entradas', 'salidas', 'total'}, ...]
        """
        movements = self.movement_repo.get_all()
        today = date.today()
        buckets = []

        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            day_movements = [
                m for m in movements
                if (parse_datetime(m.created_at) or datetime.min).date() == day
            ]
            entradas = sum(1 for m in day_movements if m.type == MovementType.ENTRADA)
            buckets.append({
                'date': format_date(datetime.combine(day, time.min)),
                'entradas': entradas,
                'salidas': len(day_movements) - entradas,
                'total': len(day_movements),
            })

        return buckets

    def statistics(self, filters: Optional[MovementFilters] = None) -> Dict[str, Any]:
        """Totales de movimientos (cantidad y unidades) para un filtro."""
        movements = self.query(filters)
        entradas = [m for m in movements if m.type == MovementType.ENTRADA]
        salidas = [m for m in movements if m.type == MovementType.SALIDA]
        entradas_quantity = sum(m.units for m in entradas)
        salidas_quantity = sum(m.units for m in salidas)

        return {
            'total': len(movements),
            'entradas': len(entradas),
            'salidas': len(salidas),
            'totalEntradasQuantity': entradas_quantity,
            'totalSalidasQuantity': salidas_quantity,
            'balance': entradas_quantity - salidas_quantity,
        }

    @staticmethod
    def reasons_for(movement_type: Any) -> List[str]:
        if MovementType.parse(movement_type) == MovementType.ENTRADA:
            return list(ENTRY_REASONS)
        return list(EXIT_REASONS)
