from django.urls import path
from . import views

urlpatterns = [
    path('<path:public_id>', views.delete_image, name='delete_image'),
]
