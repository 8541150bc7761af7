from rest_framework.routers import DefaultRouter
from .views import ContactRequestViewSet

router = DefaultRouter()
router.register('requests', ContactRequestViewSet, basename='requests')

urlpatterns = router.urls
