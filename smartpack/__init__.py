# ==============================================================================
# SMARTPACK - Panel de administración de bodegas, áreas y cajas
# ==============================================================================
# Capa de presentación (BFF en Flask) sobre la API REST de SmartPack.
# La persistencia y las reglas de negocio autoritativas viven en el backend;
# este paquete resuelve roles, visibilidad, asignaciones y caché de lecturas.
# ==============================================================================

__version__ = "1.0.0"
