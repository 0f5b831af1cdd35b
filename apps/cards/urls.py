from django.urls import path
from . import views

app_name = 'cards'

urlpatterns = [
    # Owner routes, cards addressed by index
    path('', views.card_list, name='card-list'),
    path('<int:index>/', views.card_detail, name='card-detail'),
    path('<int:index>/color/', views.card_color, name='card-color'),
    path('<int:index>/wallet/', views.wallet_pass, name='wallet-pass'),
    path('<int:index>/wallet/preview/', views.wallet_preview, name='wallet-preview'),

    # Contacts left on the save-contact page
    path('contacts/', views.contact_list, name='contact-list'),
    path('contacts/<uuid:contact_id>/', views.contact_detail, name='contact-detail'),

    # Public sharing routes
    path('<uuid:user_id>/<int:index>/qr/', views.card_qr, name='card-qr'),
    path('<uuid:user_id>/<int:index>/contact/', views.card_contact, name='card-contact'),
]
