from django.contrib import admin
from django.urls import path

from downloads import views

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/info', views.info_view, name='info'),
    path('api/download', views.download_view, name='download'),
    path('api/job/<str:job_id>', views.job_status_view, name='job_status'),
    path('api/downloads/<str:filename>', views.file_download_view, name='file_download'),
    path('api/videos', views.videos_view, name='videos'),
]
