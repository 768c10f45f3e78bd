from django.urls import include, path

urlpatterns = [
    # JSON API, every route is scoped by an explicit company id
    path("api/", include("books_core.urls")),
]
