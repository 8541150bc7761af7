from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from apps.animals.models import Animal
from apps.common.session import Session

User = get_user_model()

IMAGES = [f'https://media.example.com/cow-{n}.jpg' for n in range(4)]


@pytest.fixture
def seller(db):
    return User.objects.create(uid='seller-1', phone='+254700000001', name='Sam Seller', district='Nakuru')


@pytest.fixture
def buyer(db):
    return User.objects.create(uid='buyer-1', phone='+254700000002', name='Bea Buyer', district='Kisumu')


@pytest.fixture
def stranger(db):
    return User.objects.create(uid='stranger-1', phone='+254700000003', name='Stan')


@pytest.fixture
def animal(seller):
    return Animal.objects.create(
        seller=seller,
        animal_name='Cow',
        sub_type='Friesian',
        price=Decimal('85000.00'),
        age=3,
        images=IMAGES,
    )


@pytest.fixture
def seller_session(seller):
    return Session(uid=seller.uid)


@pytest.fixture
def buyer_session(buyer):
    return Session(uid=buyer.uid)


@pytest.fixture
def stranger_session(stranger):
    return Session(uid=stranger.uid)


@pytest.fixture
def client_for():
    def make(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return make
