from django.urls import include, path

from entries import views as entry_views
from uploads import views as upload_views

from . import views

urlpatterns = [
    path('health', views.health, name='health'),
    path('auth/', include('accounts.urls')),
    path('entries', entry_views.create_entry, name='create_entry'),
    path('entries/', include('entries.urls')),
    path('upload', upload_views.upload_image, name='upload_image'),
    path('upload/', include('uploads.urls')),
]

handler404 = 'config.views.route_not_found'
handler500 = 'config.views.server_error'
