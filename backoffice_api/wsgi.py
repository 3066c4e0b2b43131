# backoffice_api/wsgi.py
from backoffice_api import create_app

app = create_app()
