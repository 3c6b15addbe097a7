"""
URL configuration for the labops project.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "LabOps Administration"
admin.site.site_title = "LabOps Admin Portal"
admin.site.index_title = "Projects, tasks and technicians"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('labops.core.urls')),
    path('api/v1/', include('labops.projects.urls')),
    path('api/v1/', include('labops.tasks.urls')),
    path('api/v1/', include('labops.notifications.urls')),
]
