# ==============================================================================
# SERVICIO DE USUARIOS
# ==============================================================================
# Autenticación, sesión actual y reglas de permisos.
#
# Permisos:
#   admin    → todo (productos, categorías, estadísticas, movimientos)
#   empleado → registrar y consultar movimientos
# ==============================================================================

import logging
from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from inventario.models import Actor, User, UserRole
from inventario.repositories.settings_repository import SettingsRepository
from inventario.repositories.user_repository import UserRepository
from inventario.utils import now_iso


logger = logging.getLogger(__name__)


# Acción → roles autorizados (None = cualquier usuario autenticado)
PERMISSIONS = {
    'products.manage': {UserRole.ADMIN},
    'categories.manage': {UserRole.ADMIN},
    'statistics.view': {UserRole.ADMIN},
    'settings.manage': {UserRole.ADMIN},
    'movements.register': None,
    'movements.view': None,
    'products.view': None,
}


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(stored: str, password: str) -> bool:
    """
    Compara una contraseña contra el valor guardado.

    Soporta hashes de Werkzeug y texto plano (legacy).
    """
    if not stored:
        return False
    if stored.startswith('pbkdf2:') or stored.startswith('scrypt:'):
        return check_password_hash(stored, password)
    return stored == password


class UserService:
    """
    Servicio para autenticación y permisos.

    Responsabilidades:
    - Validar credenciales (solo usuarios activos)
    - Guardar/limpiar la sesión actual
    - Decidir qué acciones puede hacer cada rol
    """

    def __init__(self, user_repo: UserRepository, settings_repo: SettingsRepository):
        """
        Args:
            user_repo: Repositorio de usuarios
            settings_repo: Repositorio donde vive la sesión actual
        """
        self.user_repo = user_repo
        self.settings_repo = settings_repo

    # =========================================================================
    # AUTENTICACIÓN
    # =========================================================================

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """
        Valida credenciales.

        Args:
            username: Nombre de usuario
            password: Contraseña en texto plano

        Returns:
            Usuario si es válido y está activo, None si no
        """
        user = self.user_repo.get_user((username or '').strip())
        if user is None:
            logger.info("Usuario no encontrado: %s", username)
            return None

        if not verify_password(user.password_hash, password or ''):
            logger.info("Contraseña incorrecta para usuario: %s", username)
            return None

        if not user.active:
            logger.info("Usuario inactivo: %s", username)
            return None

        return user

    def login(self, username: str, password: str) -> Optional[Actor]:
        """
        Inicia sesión y guarda el registro de sesión (sin contraseña).

        Returns:
            Actor de la sesión o None si las credenciales no son válidas
        """
        user = self.authenticate(username, password)
        if user is None:
            return None

        actor = user.to_actor(login_time=now_iso())
        self.settings_repo.save_current_user(actor)
        logger.info("Sesión iniciada: %s (%s)", actor.username, actor.role.value)
        return actor

    def logout(self) -> None:
        actor = self.settings_repo.get_current_user()
        if actor is not None:
            logger.info("Cerrando sesión: %s", actor.username)
        self.settings_repo.clear_current_user()

    def get_current_actor(self) -> Optional[Actor]:
        return self.settings_repo.get_current_user()

    # =========================================================================
    # PERMISOS
    # =========================================================================

    @staticmethod
    def is_admin(actor: Optional[Actor]) -> bool:
        return actor is not None and actor.role == UserRole.ADMIN

    @staticmethod
    def can(actor: Optional[Actor], action: str) -> bool:
        """
        Verifica si un actor puede ejecutar una acción.

        Args:
            actor: Usuario autenticado (None = sin sesión)
            action: Clave de PERMISSIONS

        Returns:
            True si está permitido; acciones desconocidas se niegan
        """
        if actor is None or action not in PERMISSIONS:
            return False
        roles = PERMISSIONS[action]
        return roles is None or actor.role in roles

    def public_profile(self, actor: Actor) -> Dict[str, Any]:
        """Datos de sesión para la interfaz, con el correo del usuario."""
        profile = actor.to_dict()
        user = self.user_repo.get_by_id(actor.id)
        profile['email'] = user.email if user else ''
        return profile
