# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Diseñadas para ser independientes del mecanismo de persistencia:
# se guardan como diccionarios JSON con claves camelCase.
# ==============================================================================

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class MovementType(str, Enum):
    """Tipos de movimiento de inventario."""
    ENTRADA = "entrada"  # Aumenta el stock
    SALIDA = "salida"    # Disminuye el stock

    @property
    def label(self) -> str:
        return 'Entrada' if self is MovementType.ENTRADA else 'Salida'

    @classmethod
    def parse(cls, value: Any) -> Optional['MovementType']:
        """Convierte un valor de formulario en tipo, None si no es válido."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class UserRole(str, Enum):
    """Roles de usuario disponibles en el sistema."""
    ADMIN = "admin"
    EMPLEADO = "empleado"


class StockLevel(str, Enum):
    """Niveles usados por el filtro de productos."""
    BAJO = "bajo"
    NORMAL = "normal"
    ALTO = "alto"


# Umbral (en % del stock mínimo) a partir del cual el stock se considera alto
HIGH_STOCK_PERCENTAGE = 150


# ==============================================================================
# ESTADO DEL STOCK - Única fuente de verdad
# ==============================================================================

@dataclass(frozen=True)
class StockStatus:
    """
    Clasificación de salud del stock de un producto.

    Attributes:
        text: Texto visible ("Sin Stock", "Stock Bajo", ...)
        css_class: Clase de color (danger, warning, success, info)
        badge: Clase de badge usada por la interfaz
        level: Nivel para filtros (bajo, normal, alto)
    """
    text: str
    css_class: str
    badge: str
    level: StockLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'class': self.css_class,
            'badge': self.badge,
            'level': self.level.value,
        }


def get_stock_status(stock: int, min_stock: int) -> StockStatus:
    """
    Clasifica el stock de un producto.

    Reglas (en orden):
        stock == 0                  → Sin Stock (danger)
        stock <= min_stock          → Stock Bajo (warning)
        stock/min_stock <= 150%     → Stock Normal (success)
        en otro caso                → Stock Alto (info)

    Args:
        stock: Stock actual
        min_stock: Stock mínimo configurado

    Returns:
        StockStatus correspondiente
    """
    if stock == 0:
        return StockStatus('Sin Stock', 'danger', 'badge-stock-bajo', StockLevel.BAJO)
    if stock <= min_stock:
        return StockStatus('Stock Bajo', 'warning', 'badge-stock-bajo', StockLevel.BAJO)
    # min_stock <= 0 con stock positivo: cualquier stock supera el umbral
    if min_stock > 0 and (stock / min_stock) * 100 <= HIGH_STOCK_PERCENTAGE:
        return StockStatus('Stock Normal', 'success', 'badge-stock-normal', StockLevel.NORMAL)
    return StockStatus('Stock Alto', 'info', 'badge-stock-alto', StockLevel.ALTO)


# ==============================================================================
# ENTIDADES DE INVENTARIO
# ==============================================================================

@dataclass
class Category:
    """
    Categoría de productos.
    Los productos la referencian por nombre, no por id.
    """
    id: str
    name: str
    description: str = ''

    def __post_init__(self):
        if not self.id or not str(self.name).strip():
            raise ValueError("Category requiere id y name")

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'description': self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Category':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            description=data.get('description') or ''
        )


@dataclass
class Product:
    """
    Producto del inventario.

    Attributes:
        id: Identificador único (opaco)
        code: Código legible, único entre productos vivos
        name: Nombre del producto
        category: Nombre de la categoría
        price: Precio unitario
        stock: Unidades disponibles (nunca negativo)
        min_stock: Umbral para alerta de stock bajo
        description: Descripción libre
        created_at: Fecha de creación (ISO)
        updated_at: Fecha de última modificación (ISO)
    """
    id: str
    code: str
    name: str
    category: str
    price: float
    stock: int
    min_stock: int
    description: str = ''
    created_at: str = ''
    updated_at: str = ''

    def __post_init__(self):
        if not self.id:
            raise ValueError("Product requiere id")
        if not str(self.code).strip() or not str(self.name).strip():
            raise ValueError("Product requiere code y name")
        if self.stock < 0:
            raise ValueError("El stock de un producto no puede ser negativo")

    @property
    def stock_value(self) -> float:
        """Valor del stock (stock × precio)."""
        return self.stock * self.price

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    @property
    def status(self) -> StockStatus:
        return get_stock_status(self.stock, self.min_stock)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'price': self.price,
            'stock': self.stock,
            'minStock': self.min_stock,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id', '')),
            code=data.get('code', ''),
            name=data.get('name', ''),
            description=data.get('description') or '',
            category=data.get('category', ''),
            price=float(data.get('price', 0) or 0),
            stock=int(data.get('stock', 0) or 0),
            min_stock=int(data.get('minStock', 0) or 0),
            created_at=data.get('createdAt', ''),
            updated_at=data.get('updatedAt', ''),
        )


@dataclass(frozen=True)
class Movement:
    """
    Movimiento de inventario (inmutable una vez creado).

    La cantidad lleva signo: positiva en entradas, negativa en salidas.
    Los datos de producto y usuario son una copia tomada al registrar,
    para que el historial siga siendo legible si el origen cambia.
    """
    id: str
    product_id: str
    product_code: str
    product_name: str
    type: MovementType
    quantity: int
    reason: str
    previous_stock: int
    new_stock: int
    user_id: str
    user_name: str
    created_at: str
    notes: str = ''

    def __post_init__(self):
        if not self.id or not self.product_id:
            raise ValueError("Movement requiere id y product_id")
        if self.new_stock != self.previous_stock + self.quantity:
            raise ValueError("newStock debe ser previousStock + quantity")
        if self.new_stock < 0:
            raise ValueError("Un movimiento no puede dejar stock negativo")

    @property
    def units(self) -> int:
        """Cantidad de unidades movidas (sin signo)."""
        return abs(self.quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'productId': self.product_id,
            'productCode': self.product_code,
            'productName': self.product_name,
            'type': self.type.value,
            'quantity': self.quantity,
            'reason': self.reason,
            'notes': self.notes,
            'previousStock': self.previous_stock,
            'newStock': self.new_stock,
            'userId': self.user_id,
            'userName': self.user_name,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Movement':
        return cls(
            id=str(data.get('id', '')),
            product_id=str(data.get('productId', '')),
            product_code=data.get('productCode', ''),
            product_name=data.get('productName', ''),
            type=MovementType(data.get('type')),
            quantity=int(data.get('quantity', 0)),
            reason=data.get('reason', ''),
            notes=data.get('notes') or '',
            previous_stock=int(data.get('previousStock', 0)),
            new_stock=int(data.get('newStock', 0)),
            user_id=str(data.get('userId', '')),
            user_name=data.get('userName', ''),
            created_at=data.get('createdAt', ''),
        )


# ==============================================================================
# ENTIDADES DE USUARIO
# ==============================================================================

@dataclass
class User:
    """
    Usuario del sistema.

    Attributes:
        id: Identificador
        username: Nombre de inicio de sesión
        password_hash: Hash Werkzeug (o texto plano legacy)
        role: admin o empleado
        full_name: Nombre completo para mostrar
        email: Correo
        active: Solo usuarios activos pueden iniciar sesión
    """
    id: str
    username: str
    password_hash: str
    role: UserRole = UserRole.EMPLEADO
    full_name: str = ''
    email: str = ''
    active: bool = True
    created_at: str = ''

    def to_actor(self, login_time: str = '') -> 'Actor':
        """Identidad de sesión del usuario, sin credenciales."""
        return Actor(
            id=self.id,
            username=self.username,
            full_name=self.full_name,
            role=self.role,
            login_time=login_time
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'password': self.password_hash,
            'role': self.role.value,
            'fullName': self.full_name,
            'email': self.email,
            'active': self.active,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        try:
            role = UserRole(data.get('role', 'empleado'))
        except ValueError:
            role = UserRole.EMPLEADO
        return cls(
            id=str(data.get('id', '')),
            username=data.get('username', ''),
            password_hash=data.get('password', ''),
            role=role,
            full_name=data.get('fullName') or '',
            email=data.get('email') or '',
            active=bool(data.get('active', True)),
            created_at=data.get('createdAt', ''),
        )


@dataclass(frozen=True)
class Actor:
    """Identidad del usuario que ejecuta una operación (sin credenciales)."""
    id: str
    username: str
    full_name: str = ''
    role: UserRole = UserRole.EMPLEADO
    login_time: str = ''

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'fullName': self.full_name,
            'role': self.role.value,
            'loginTime': self.login_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Actor':
        try:
            role = UserRole(data.get('role', 'empleado'))
        except ValueError:
            role = UserRole.EMPLEADO
        return cls(
            id=str(data.get('id', '')),
            username=data.get('username', ''),
            full_name=data.get('fullName') or '',
            role=role,
            login_time=data.get('loginTime', ''),
        )


# Actor usado cuando ninguna sesión está activa
SYSTEM_ACTOR = Actor(id='sistema', username='sistema', full_name='Sistema', role=UserRole.ADMIN)
