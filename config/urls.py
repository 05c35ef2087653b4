"""URL configuration for the chalet reservation project.

The engine has no HTTP surface of its own; only the Django admin is
routed, which staff use to manage chalets, rate rules and add-ons.
"""
from django.contrib import admin  # type: ignore
from django.urls import path  # type: ignore

urlpatterns = [
    path('admin/', admin.site.urls),
]
