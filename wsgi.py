# ==============================================================================
# Entrada WSGI del panel SmartPack
# ==============================================================================
# Producción:  gunicorn wsgi:app --bind 0.0.0.0:$PORT
# Desarrollo:  python wsgi.py
#
# Variables relevantes: SMARTPACK_API_URL (backend REST), SMARTPACK_SECRET_KEY,
# ENABLE_PROFILING. El resto se documenta en smartpack/config.py
# ==============================================================================

from smartpack.main import app


if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
