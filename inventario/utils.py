# ==============================================================================
# UTILIDADES GENERALES
# ==============================================================================
# Funciones puras compartidas por servicios y rutas:
#   - Normalización de texto y búsqueda sin acentos
#   - Validación numérica de formularios
#   - Formato de moneda y fechas
#   - Generación de IDs y códigos
# ==============================================================================

import random
import time
import unicodedata
import uuid
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence


# ==============================================================================
# BÚSQUEDA Y FILTRADO
# ==============================================================================

def normalize_text(text: str) -> str:
    """
    Normaliza texto para búsqueda: minúsculas y sin acentos.

    Args:
        text: Texto a normalizar

    Returns:
        Texto normalizado ("Café" -> "cafe")
    """
    decomposed = unicodedata.normalize('NFD', str(text).lower())
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def filter_by_text(
    items: Iterable[Any],
    search_text: Optional[str],
    fields: Sequence[str]
) -> List[Any]:
    """
    Filtra una colección por coincidencia parcial de texto en varios campos.

    Acepta tanto diccionarios como objetos con atributos.

    Args:
        items: Registros a filtrar
        search_text: Texto buscado (vacío = sin filtro)
        fields: Campos donde buscar

    Returns:
        Lista de registros que coinciden en al menos un campo
    """
    items = list(items)
    if not search_text:
        return items

    needle = normalize_text(search_text)

    def _value(item, field):
        if isinstance(item, dict):
            return item.get(field)
        return getattr(item, field, None)

    result = []
    for item in items:
        for field in fields:
            value = _value(item, field)
            if value in (None, ''):
                continue
            if needle in normalize_text(value):
                result.append(item)
                break
    return result


# ==============================================================================
# VALIDACIÓN
# ==============================================================================

def is_empty(value: Any) -> bool:
    """True si el valor es None o una cadena vacía/espacios."""
    return value is None or str(value).strip() == ''


def clean_text(value: Any) -> str:
    """Texto de formulario sin espacios extremos; None se vuelve ''."""
    return '' if value is None else str(value).strip()


def to_number(value: Any) -> Optional[float]:
    """
    Convierte un valor de formulario a número.

    Returns:
        float o None si no es numérico (None, '', 'abc', NaN, bool)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == '':
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def is_positive_number(value: Any) -> bool:
    number = to_number(value)
    return number is not None and number > 0


def to_int(value: Any) -> Optional[int]:
    """Convierte a entero solo si el valor numérico no tiene decimales."""
    number = to_number(value)
    if number is None or number != int(number):
        return None
    return int(number)


# ==============================================================================
# FORMATO
# ==============================================================================

def format_currency(amount: Any) -> str:
    """
    Formatea un monto como pesos colombianos sin decimales.

    Ejemplo: 2500000 -> "$ 2.500.000"
    """
    number = to_number(amount) or 0
    sign = '-' if number < 0 else ''
    return f"{sign}$ {abs(round(number)):,.0f}".replace(',', '.')


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parsea una fecha ISO y la lleva a hora local sin zona.

    Las fechas con zona (incluida 'Z') se convierten a la hora local,
    las fechas sin zona se asumen locales.
    """
    if isinstance(value, datetime):
        parsed = value
    elif not value:
        return None
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except (ValueError, TypeError):
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def format_date(value: Any, include_time: bool = False) -> str:
    """Formatea una fecha como DD/MM/YYYY (y HH:MM si se pide)."""
    parsed = parse_datetime(value)
    if parsed is None:
        return ''
    if include_time:
        return parsed.strftime('%d/%m/%Y %H:%M')
    return parsed.strftime('%d/%m/%Y')


def now_iso() -> str:
    """Marca de tiempo actual en ISO 8601 con zona local."""
    return datetime.now().astimezone().isoformat()


# ==============================================================================
# GENERADORES
# ==============================================================================

def generate_id() -> str:
    return uuid.uuid4().hex


def generate_product_code(prefix: str = 'PROD') -> str:
    """
    Genera un código de producto del tipo PROD-123456-042.

    Args:
        prefix: Prefijo del código

    Returns:
        Código con los últimos 6 dígitos del timestamp y 3 aleatorios
    """
    timestamp = str(int(time.time() * 1000))[-6:]
    suffix = f"{random.randint(0, 999):03d}"
    return f"{prefix}-{timestamp}-{suffix}"


# ==============================================================================
# ESTADÍSTICAS
# ==============================================================================

def percentage_change(current: float, previous: float) -> float:
    """Cambio porcentual; si el valor anterior es 0 se reporta 100."""
    if previous == 0:
        return 100.0
    return ((current - previous) / previous) * 100

