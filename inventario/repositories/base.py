# ==============================================================================
# REPOSITORIO BASE - Pasarela de persistencia clave/valor
# ==============================================================================
# Almacena cada colección bajo una clave lógica (products, movements, ...)
# como un valor JSON completo. Toda escritura es un ciclo
# "leer colección → modificar en memoria → escribir colección".
#
# Implementaciones:
#   JsonFileStorage → un archivo .json por clave (escritura atómica)
#   MemoryStorage   → diccionario en memoria (tests, sesiones efímeras)
#
# Para migrar a una base de datos transaccional basta con otra subclase
# de BaseStorage: los repositorios y servicios no cambian.
# ==============================================================================

import copy
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional


logger = logging.getLogger(__name__)


# Claves lógicas → nombre físico en el almacenamiento
STORAGE_KEYS = {
    'products': 'inventory_products',
    'movements': 'inventory_movements',
    'categories': 'inventory_categories',
    'users': 'inventory_users',
    'current_user': 'inventory_current_user',
    'settings': 'inventory_settings',
}


class PersistenceError(Exception):
    """Error al leer o escribir en el almacenamiento subyacente."""

    kind = 'PersistenceError'

    def __init__(self, message: str = 'Error al guardar los datos'):
        super().__init__(message)
        self.message = message


class Transaction:
    """
    Unidad de trabajo sobre una o varias claves.

    Lee cada clave una sola vez, acumula las escrituras en memoria y
    solo las persiste en commit(). Si el bloque falla nada se escribe.
    """

    def __init__(self, storage: 'BaseStorage'):
        self._storage = storage
        self._snapshot: Dict[str, Any] = {}
        self._staged: Dict[str, Any] = {}

    def read(self, key: str, default: Any = None) -> Any:
        """
        Obtiene el valor vigente de una clave dentro de la transacción.

        Args:
            key: Clave lógica
            default: Valor si la clave no existe

        Returns:
            Copia del valor (lo ya escrito en la transacción tiene prioridad)
        """
        if key in self._staged:
            return copy.deepcopy(self._staged[key])
        if key not in self._snapshot:
            self._snapshot[key] = self._storage.get(key)
        value = self._snapshot[key]
        return copy.deepcopy(value) if value is not None else default

    def write(self, key: str, value: Any) -> None:
        """Marca una clave para escribir al confirmar."""
        if key not in self._snapshot:
            self._snapshot[key] = self._storage.get(key)
        self._staged[key] = copy.deepcopy(value)

    def commit(self) -> None:
        """
        Persiste las claves modificadas en el orden en que se escribieron.

        Raises:
            PersistenceError: Si alguna escritura falla. Las claves ya
                escritas se restauran a su valor anterior.
        """
        written: List[str] = []
        for key, value in self._staged.items():
            if self._storage.set(key, value):
                written.append(key)
                continue
            for done in written:
                previous = self._snapshot.get(done)
                if previous is None:
                    self._storage.remove(done)
                else:
                    self._storage.set(done, previous)
            raise PersistenceError()
        self._staged.clear()


class BaseStorage(ABC):
    """
    Contrato de la pasarela de persistencia.

    get(key) → valor o None; set/remove → bool. Los errores de bajo nivel
    se registran en el log y se reportan como None/False.
    """

    # Lock re-entrante para serializar ciclos leer-modificar-escribir
    _lock = threading.RLock()

    @abstractmethod
    def _read(self, name: str) -> Any:
        """Lee el valor crudo; None si no existe."""

    @abstractmethod
    def _write(self, name: str, value: Any) -> None:
        """Escribe el valor; lanza excepción si falla."""

    @abstractmethod
    def _delete(self, name: str) -> None:
        """Elimina la clave si existe."""

    @staticmethod
    def storage_name(key: str) -> str:
        return STORAGE_KEYS.get(key, key)

    def get(self, key: str) -> Any:
        with self._lock:
            try:
                return self._read(self.storage_name(key))
            except (OSError, ValueError) as exc:
                # JSON corrupto o archivo ilegible: se trata como ausente
                logger.error("Error al leer '%s' del almacenamiento: %s", key, exc)
                return None

    def set(self, key: str, value: Any) -> bool:
        with self._lock:
            try:
                self._write(self.storage_name(key), value)
                return True
            except (OSError, TypeError, ValueError):
                logger.exception("Error al guardar '%s' en el almacenamiento", key)
                return False

    def remove(self, key: str) -> bool:
        with self._lock:
            try:
                self._delete(self.storage_name(key))
                return True
            except OSError:
                logger.exception("Error al eliminar '%s' del almacenamiento", key)
                return False

    def clear_all(self) -> bool:
        """Elimina todas las claves del sistema."""
        results = [self.remove(key) for key in STORAGE_KEYS]
        if all(results):
            logger.info("Almacenamiento limpiado completamente")
        return all(results)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Abre una transacción leer-validar-escribir.

        Uso:
            with storage.transaction() as tx:
                products = tx.read('products', [])
                ...
                tx.write('products', products)

        Si el bloque lanza una excepción no se escribe nada.
        """
        with self._lock:
            tx = Transaction(self)
            yield tx
            tx.commit()


class JsonFileStorage(BaseStorage):
    """
    Almacenamiento en archivos JSON, uno por clave.

    Ejemplo: <base_path>/inventory_products.json -> [{...}, {...}]
    """

    def __init__(self, base_path: str):
        """
        Args:
            base_path: Directorio donde viven los archivos de datos
        """
        self.base_path = base_path
        self._lock = threading.RLock()
        os.makedirs(base_path, exist_ok=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.base_path, f'{name}.json')

    def _read(self, name: str) -> Any:
        path = self._path(name)
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _write(self, name: str, value: Any) -> None:
        path = self._path(name)
        # Escribir a archivo temporal primero para atomicidad
        temp_path = path + '.tmp'
        try:
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, path)
        except Exception:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    def _delete(self, name: str) -> None:
        path = self._path(name)
        if os.path.exists(path):
            os.remove(path)


class MemoryStorage(BaseStorage):
    """Almacenamiento en memoria; guarda copias serializadas como JSON."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        self._lock = threading.RLock()
        for key, value in (initial or {}).items():
            self.set(key, value)

    def _read(self, name: str) -> Any:
        raw = self._data.get(name)
        return json.loads(raw) if raw is not None else None

    def _write(self, name: str, value: Any) -> None:
        self._data[name] = json.dumps(value, ensure_ascii=False)

    def _delete(self, name: str) -> None:
        self._data.pop(name, None)


class CollectionRepository:
    """
    Repositorio base para colecciones almacenadas como lista bajo una clave.

    Los métodos aceptan una transacción opcional: con ella las lecturas y
    escrituras forman parte de la misma unidad de trabajo.
    """

    key: str = ''

    def __init__(self, storage: BaseStorage):
        self.storage = storage

    def get_raw(self, tx: Optional[Transaction] = None) -> Optional[List[Dict[str, Any]]]:
        """Lista cruda o None si la clave no existe."""
        data = tx.read(self.key) if tx else self.storage.get(self.key)
        if data is None:
            return None
        return data if isinstance(data, list) else []

    def get_all_raw(self, tx: Optional[Transaction] = None) -> List[Dict[str, Any]]:
        return self.get_raw(tx) or []

    def save_all_raw(self, records: List[Dict[str, Any]], tx: Optional[Transaction] = None) -> bool:
        """
        Guarda la colección completa.

        Returns:
            True si se guardó (en transacción, siempre True hasta el commit)
        """
        if tx is not None:
            tx.write(self.key, records)
            return True
        return self.storage.set(self.key, records)

    def exists(self) -> bool:
        return self.storage.get(self.key) is not None
