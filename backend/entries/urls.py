from django.urls import path
from . import views

urlpatterns = [
    path('my', views.my_entries, name='my_entries'),
    path('community', views.community_entries, name='community_entries'),
    path('search', views.search_entries, name='search_entries'),
    path('<int:entry_id>', views.entry_detail, name='entry_detail'),
    path('<int:entry_id>/release', views.release_entry, name='release_entry'),
    path('<int:entry_id>/like', views.like_entry, name='like_entry'),
    path('<int:entry_id>/dislike', views.dislike_entry, name='dislike_entry'),
    path('<int:entry_id>/interaction', views.entry_interaction, name='entry_interaction'),
]
