# backend/wsgi.py
from lynn_ops import create_app

app = create_app()
