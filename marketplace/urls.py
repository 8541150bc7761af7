from django.contrib import admin
from django.urls import path, include
from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

schema_view = get_schema_view(
    openapi.Info(
        title="Rural Marketplace API",
        default_version='v1',
        description="Contact requests, chat channels and listings for the livestock marketplace",
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path('admin/', admin.site.urls),

    # Apps
    path('api/', include('apps.users.urls')),
    path('api/', include('apps.animals.urls')),
    path('api/', include('apps.contact_requests.urls')),
    path('api/', include('apps.chats.urls')),
    # Swagger
    path('swagger.json', schema_view.without_ui(cache_timeout=0), name='schema-json'),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
