from django.urls import include, path

urlpatterns = [
    path("api/", include("books_core.urls")),
]
