# Gunicorn entrypoint:
#   gunicorn wsgi:app -b 0.0.0.0:$PORT -w 2
from app import create_app

app = create_app()
