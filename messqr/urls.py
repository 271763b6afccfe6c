# URL configuration for messqr project.
from django.urls import path, include

urlpatterns = [
	path('api/v1/', include('apps.api.urls')),
]
