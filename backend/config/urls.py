from django.urls import include, path

urlpatterns = [
    path("api/reactions/", include("reactions.urls")),
]
