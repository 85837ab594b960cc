# ==============================================================================
# SERVICIO DE ESTADÍSTICAS (Motor de agregación)
# ==============================================================================
# Solo lectura. Todo se recalcula en cada llamada a partir de las
# colecciones vigentes: no hay caché que invalidar.
#
# Los movimientos cuyo producto fue eliminado se ignoran en todo cruce
# movimiento → producto.
# ==============================================================================

from collections import defaultdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from inventario.models import MovementType, Product
from inventario.performance_logger import profile_function
from inventario.repositories.movement_repository import MovementRepository
from inventario.repositories.product_repository import ProductRepository
from inventario.services.movement_service import MovementService
from inventario.utils import format_currency, format_date, parse_datetime, percentage_change


# Intervalo de refresco del dashboard (segundos)
DASHBOARD_REFRESH_SECONDS = 30

# Elementos mostrados en cada panel del dashboard
DASHBOARD_ITEMS = 5


class StatsService:
    """
    Servicio para cálculo de estadísticas de inventario.

    Responsabilidades:
    - Indicadores generales (stock, valor, alertas)
    - Rankings de productos y usuarios
    - Estadísticas por producto y por categoría
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        movement_repo: MovementRepository,
        ledger: MovementService
    ):
        self.product_repo = product_repo
        self.movement_repo = movement_repo
        self.ledger = ledger

    def _is_today(self, iso_date: str, today: Optional[date] = None) -> bool:
        parsed = parse_datetime(iso_date)
        return parsed is not None and parsed.date() == (today or date.today())

    # =========================================================================
    # INDICADORES GENERALES
    # =========================================================================

    def inventory_stats(self) -> Dict[str, Any]:
        """
        Indicadores generales del inventario.

        Returns:
            {
                'totalProducts': int,
                'totalStock': int,
                'totalValue': float,       # Σ stock × precio
                'lowStockProducts': int,   # stock <= stock mínimo
                'outOfStockProducts': int,
                'movementsToday': int,     # día calendario local
                'totalMovements': int
            }
        """
        products = self.product_repo.get_all()
        movements = self.movement_repo.get_all()
        today = date.today()

        return {
            'totalProducts': len(products),
            'totalStock': sum(p.stock for p in products),
            'totalValue': sum(p.stock_value for p in products),
            'lowStockProducts': sum(1 for p in products if p.is_low_stock),
            'outOfStockProducts': sum(1 for p in products if p.stock == 0),
            'movementsToday': sum(1 for m in movements if self._is_today(m.created_at, today)),
            'totalMovements': len(movements),
        }

    def low_stock_products(self) -> List[Product]:
        """Productos con stock <= stock mínimo, los más críticos primero."""
        low = [p for p in self.product_repo.get_all() if p.is_low_stock]
        return sorted(low, key=lambda p: p.stock)

    @staticmethod
    def stock_percentage(product: Product) -> float:
        """Stock actual como porcentaje del stock mínimo."""
        if product.min_stock <= 0:
            return 100.0
        return product.stock / product.min_stock * 100

    # =========================================================================
    # RANKINGS
    # =========================================================================

    def top_moved_products(self, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Productos con más unidades movidas (entradas + salidas).

        Args:
            limit: Máximo de productos

        Returns:
            Datos del producto + 'totalMovements', de mayor a menor
        """
        totals = defaultdict(int)
        for movement in self.movement_repo.get_all():
            totals[movement.product_id] += movement.units

        products = {p.id: p for p in self.product_repo.get_all()}
        ranking = [
            {**products[product_id].to_dict(), 'totalMovements': total}
            for product_id, total in totals.items()
            if product_id in products
        ]
        ranking.sort(key=lambda item: item['totalMovements'], reverse=True)
        return ranking[:limit]

    def user_activity(self) -> List[Dict[str, Any]]:
        """Movimientos por usuario (total, entradas, salidas), de mayor a menor."""
        users: Dict[str, Dict[str, Any]] = {}

        for movement in self.movement_repo.get_all():
            entry = users.setdefault(movement.user_id, {
                'userId': movement.user_id,
                'userName': movement.user_name,
                'totalMovements': 0,
                'entradas': 0,
                'salidas': 0,
            })
            entry['totalMovements'] += 1
            if movement.type == MovementType.ENTRADA:
                entry['entradas'] += 1
            else:
                entry['salidas'] += 1

        return sorted(users.values(), key=lambda u: u['totalMovements'], reverse=True)

    # =========================================================================
    # POR PRODUCTO / CATEGORÍA / PERÍODO
    # =========================================================================

    def product_statistics(self, product_id: str) -> Optional[Dict[str, Any]]:
        """
        Estadísticas de un producto.

        Returns:
            None si el producto no existe
        """
        product = self.product_repo.get_by_id(product_id)
        if product is None:
            return None

        movements = self.movement_repo.get_by_product(product_id)
        total_entradas = sum(m.units for m in movements if m.type == MovementType.ENTRADA)
        total_salidas = sum(m.units for m in movements if m.type == MovementType.SALIDA)

        return {
            'product': product.to_dict(),
            'totalEntradas': total_entradas,
            'totalSalidas': total_salidas,
            'totalMovements': len(movements),
            'stockValue': product.stock_value,
            'status': product.status.to_dict(),
            'needsRestock': product.is_low_stock,
        }

    def category_distribution(self) -> List[Dict[str, Any]]:
        """Cantidad y porcentaje de productos por categoría, de mayor a menor."""
        products = self.product_repo.get_all()
        counts = defaultdict(int)
        for product in products:
            counts[product.category] += 1

        total = len(products)
        distribution = [
            {
                'category': category,
                'count': count,
                'percentage': round(count / total * 100, 1),
            }
            for category, count in counts.items()
        ]
        distribution.sort(key=lambda item: item['count'], reverse=True)
        return distribution

    def month_summary(self) -> Dict[str, Any]:
        """Entradas y salidas del mes en curso junto al valor del inventario."""
        movements = self.ledger.month_to_date()
        entradas = sum(1 for m in movements if m.type == MovementType.ENTRADA)
        return {
            'totalValue': self.inventory_stats()['totalValue'],
            'entradas': entradas,
            'salidas': len(movements) - entradas,
            'criticalProducts': len(self.low_stock_products()),
        }

    def movements_trend(self, days: int = 7) -> Dict[str, Any]:
        """
        Serie diaria de los últimos días y variación contra el día anterior.
        """
        buckets = self.ledger.by_day(days)
        change = 0.0
        if len(buckets) >= 2:
            change = percentage_change(buckets[-1]['total'], buckets[-2]['total'])
        return {'days': buckets, 'change': round(change, 1)}

    # =========================================================================
    # DASHBOARD Y REPORTES
    # =========================================================================

    def recent_movements(self, limit: int = DASHBOARD_ITEMS) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self.ledger.recent(limit)]

    @profile_function(name="Calcular dashboard")
    def dashboard(self) -> Dict[str, Any]:
        """Datos del panel principal."""
        return {
            'stats': self.inventory_stats(),
            'recentMovements': self.recent_movements(DASHBOARD_ITEMS),
            'lowStockProducts': [
                {**p.to_dict(), 'percentage': round(self.stock_percentage(p))}
                for p in self.low_stock_products()[:DASHBOARD_ITEMS]
            ],
            'refreshSeconds': DASHBOARD_REFRESH_SECONDS,
        }

    @profile_function(name="Calcular estadísticas")
    def statistics(self) -> Dict[str, Any]:
        """Datos de la página de estadísticas."""
        return {
            'summary': self.month_summary(),
            'topProducts': self.top_moved_products(5),
            'categories': self.category_distribution(),
            'movementsByDay': self.ledger.by_day(7),
            'lowStockProducts': [
                {**p.to_dict(), 'status': p.status.to_dict(), 'percentage': round(self.stock_percentage(p))}
                for p in self.low_stock_products()
            ],
            'userActivity': self.user_activity(),
        }

    def statistics_report_rows(self) -> List[Dict[str, Any]]:
        """Filas Indicador/Valor para exportar el reporte de estadísticas."""
        stats = self.inventory_stats()
        report = [
            ('Fecha del Reporte', format_date(datetime.now(), include_time=True)),
            ('Total de Productos', stats['totalProducts']),
            ('Stock Total', stats['totalStock']),
            ('Valor Total del Inventario', format_currency(stats['totalValue'])),
            ('Productos con Stock Bajo', stats['lowStockProducts']),
            ('Productos sin Stock', stats['outOfStockProducts']),
            ('Total de Movimientos', stats['totalMovements']),
            ('Movimientos Hoy', stats['movementsToday']),
        ]
        return [{'Indicador': name, 'Valor': value} for name, value in report]
