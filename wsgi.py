# ==============================================================================
# WSGI Entry Point - Para Gunicorn en producción
# ==============================================================================
# USO:
#   gunicorn wsgi:app --bind 0.0.0.0:$PORT
#
# ESTRUCTURA DEL PROYECTO:
#   repo_root/           <- Directorio de trabajo (en sys.path automáticamente)
#   ├── wsgi.py          <- Este archivo
#   ├── pyproject.toml
#   └── inventario/      <- Paquete Python
#       ├── main.py
#       ├── services/
#       └── repositories/
#
# Variables de entorno: INVENTARIO_DATA_DIR, INVENTARIO_SECRET_KEY,
# INVENTARIO_SEED_EXAMPLES, INVENTARIO_PROFILING
# ==============================================================================

import logging

from inventario.main import app

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
