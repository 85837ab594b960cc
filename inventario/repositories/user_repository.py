# ==============================================================================
# REPOSITORIO DE USUARIOS
# ==============================================================================
# Encapsula todo el acceso a la clave "users".
# Los usuarios se almacenan como lista: [{id, username, password, role, ...}]
# ==============================================================================

from typing import List, Optional

from inventario.models import User
from inventario.repositories.base import CollectionRepository, Transaction


class UserRepository(CollectionRepository):
    """
    Repositorio para gestión de usuarios.

    Formato de datos:
    [
        {"id": "1", "username": "admin", "password": "scrypt:...", "role": "admin", ...}
    ]
    """

    key = 'users'

    def load(self, tx: Optional[Transaction] = None) -> List[User]:
        """
        Carga todos los usuarios.

        Returns:
            Lista de usuarios
        """
        return [User.from_dict(r) for r in self.get_all_raw(tx)]

    def save(self, users: List[User], tx: Optional[Transaction] = None) -> bool:
        """
        Guarda todos los usuarios.

        Args:
            users: Lista completa de usuarios
        """
        return self.save_all_raw([u.to_dict() for u in users], tx)

    def get_user(self, username: str) -> Optional[User]:
        """
        Obtiene un usuario por su nombre.

        Args:
            username: Nombre de usuario

        Returns:
            Usuario o None
        """
        for user in self.load():
            if user.username == username:
                return user
        return None

    def get_by_id(self, user_id: str) -> Optional[User]:
        for user in self.load():
            if user.id == user_id:
                return user
        return None
