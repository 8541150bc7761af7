from django.apps import AppConfig


class ContactRequestsConfig(AppConfig):
    name = 'apps.contact_requests'
    verbose_name = 'Contact requests'
