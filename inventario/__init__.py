# ==============================================================================
# SISTEMA DE GESTIÓN DE INVENTARIOS
# ==============================================================================
# Paquete principal. Estructura:
#   models/        → Entidades del dominio (dataclasses)
#   repositories/  → Acceso a datos (JSON en disco o memoria)
#   services/      → Lógica de negocio (productos, movimientos, estadísticas)
#   main.py        → API Flask
# ==============================================================================

__version__ = '1.0.0'
