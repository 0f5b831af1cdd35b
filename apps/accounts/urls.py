from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    # Authentication
    path('register/', views.register, name='register'),
    path('login/', views.login, name='login'),
    path('logout/', views.logout, name='logout'),

    # Email verification
    path('verify-email/', views.verify_email, name='verify-email'),
    path('verify-email/resend/', views.resend_verification, name='verify-email-resend'),

    # Password reset
    path('forgot-password/', views.forgot_password, name='forgot-password'),
    path('reset-password/', views.reset_password, name='reset-password'),

    # User profile
    path('user/', views.current_user, name='current-user'),
    path('user/delete/', views.delete_account, name='delete-account'),

    # OAuth sign-in (google, linkedin)
    path('oauth/<str:provider>/start/', views.oauth_start, name='oauth-start'),
    path('oauth/<str:provider>/callback/', views.oauth_callback, name='oauth-callback'),
]
