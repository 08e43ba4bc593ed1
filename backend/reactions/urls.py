from django.urls import path
from . import views

urlpatterns = [
    path("chemicals/", views.chemicals_view, name="chemicals"),
    path("defaults/",  views.defaults_view,  name="lab_defaults"),
    path("resolve/",   views.resolve_view,   name="resolve"),
]
