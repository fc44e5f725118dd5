# wsgi.py

from a2wsgi import ASGIMiddleware

from main import app

# WSGI entry point for hosts that cannot serve ASGI directly
application = ASGIMiddleware(app)
