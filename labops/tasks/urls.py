from django.urls import path
from . import views

urlpatterns = [
    path('tasks/', views.task_list_create, name='task-list-create'),
    path('tasks/<int:pk>/', views.task_detail, name='task-detail'),
    path('tasks/<int:pk>/assign/', views.task_assign, name='task-assign'),
    path('tasks/<int:pk>/start/', views.task_start, name='task-start'),
    path('tasks/<int:pk>/submit/', views.task_submit, name='task-submit'),
    path('tasks/<int:pk>/approve/', views.task_approve, name='task-approve'),
    path('tasks/<int:pk>/reject/', views.task_reject, name='task-reject'),
    path('tasks/<int:pk>/mark-field-complete/', views.task_mark_field_complete, name='task-mark-field-complete'),
    path('tasks/<int:pk>/history/', views.task_history, name='task-history'),
    path('projects/<int:pk>/tasks/', views.project_task_list_create, name='project-task-list-create'),

    # Admin dashboards
    path('tasks/dashboard/today/', views.dashboard_today, name='dashboard-today'),
    path('tasks/dashboard/upcoming/', views.dashboard_upcoming, name='dashboard-upcoming'),
    path('tasks/dashboard/overdue/', views.dashboard_overdue, name='dashboard-overdue'),
    path('tasks/dashboard/activity/', views.dashboard_activity, name='dashboard-activity'),

    # Technician dashboards
    path('tasks/dashboard/technician/today/', views.technician_dashboard_today, name='technician-dashboard-today'),
    path('tasks/dashboard/technician/tomorrow/', views.technician_dashboard_tomorrow, name='technician-dashboard-tomorrow'),
    path('tasks/dashboard/technician/upcoming/', views.technician_dashboard_upcoming, name='technician-dashboard-upcoming'),
    path('tasks/dashboard/technician/open-reports/', views.technician_dashboard_open_reports, name='technician-dashboard-open-reports'),
    path('tasks/dashboard/technician/activity/', views.technician_dashboard_activity, name='technician-dashboard-activity'),
]
