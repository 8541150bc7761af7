import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'marketplace.settings')

# Live chat streams are async views, so serve with an ASGI server (uvicorn/daphne).
application = get_asgi_application()
