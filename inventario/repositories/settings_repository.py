# ==============================================================================
# REPOSITORIO DE CONFIGURACIÓN Y SESIÓN
# ==============================================================================
# Encapsula el acceso a las claves "settings" y "current_user".
# ==============================================================================

from typing import Any, Dict, Optional

from inventario.models import Actor
from inventario.repositories.base import BaseStorage


# Valores usados cuando la configuración no se ha guardado nunca
DEFAULT_SETTINGS = {
    'companyName': 'Mi Empresa',
    'lowStockThreshold': 10,
    'currency': 'COP',
    'dateFormat': 'DD/MM/YYYY',
}


class SettingsRepository:
    """
    Repositorio de configuración general y del usuario con sesión activa.

    Formato de datos:
        settings     → {"companyName": "...", "currency": "COP", ...}
        current_user → {"id": "1", "username": "admin", "role": "admin", ...}
    """

    SETTINGS_KEY = 'settings'
    CURRENT_USER_KEY = 'current_user'

    def __init__(self, storage: BaseStorage):
        self.storage = storage

    # =========================================================================
    # CONFIGURACIÓN
    # =========================================================================

    def load(self) -> Dict[str, Any]:
        """
        Carga la configuración, completando con valores por defecto.

        Returns:
            Diccionario de configuración
        """
        stored = self.storage.get(self.SETTINGS_KEY)
        settings = dict(DEFAULT_SETTINGS)
        if isinstance(stored, dict):
            settings.update(stored)
        return settings

    def save(self, settings: Dict[str, Any]) -> bool:
        return self.storage.set(self.SETTINGS_KEY, settings)

    # =========================================================================
    # SESIÓN ACTUAL
    # =========================================================================

    def get_current_user(self) -> Optional[Actor]:
        data = self.storage.get(self.CURRENT_USER_KEY)
        if not isinstance(data, dict) or not data.get('id'):
            return None
        return Actor.from_dict(data)

    def save_current_user(self, actor: Actor) -> bool:
        return self.storage.set(self.CURRENT_USER_KEY, actor.to_dict())

    def clear_current_user(self) -> bool:
        return self.storage.remove(self.CURRENT_USER_KEY)
