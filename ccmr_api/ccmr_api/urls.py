from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path

from records import views
from records.offices import RECORD_SLUGS

urlpatterns = [
    path('admin/', admin.site.urls),

    # Auth
    path('api/auth/login', views.LoginView.as_view(), name='login'),
    path('api/auth/set-password', views.SetPasswordView.as_view(), name='set-password'),
    path('api/auth/token/refresh', views.OfficeTokenRefreshView.as_view(), name='token-refresh'),
    path('api/auth/logout', views.LogoutView.as_view(), name='logout'),

    # Session
    path('api/session', views.SessionView.as_view(), name='session'),
    path('api/session/view-as', views.ViewAsView.as_view(), name='view-as'),

    # Referrals
    path('api/pending-referrals', views.PendingReferralsView.as_view(), name='pending-referrals'),
    path(
        'api/pending-referrals/<str:queue_type>/<int:record_id>/confirm',
        views.ConfirmReferralView.as_view(),
        name='confirm-referral',
    ),

    # Notifications
    path('api/notifications', views.NotificationListView.as_view(), name='notifications'),
    path('api/notifications/mark-all-read', views.NotificationMarkAllReadView.as_view(), name='notifications-read-all'),
    path('api/notifications/<int:notification_id>/read', views.NotificationReadView.as_view(), name='notification-read'),
]

# Records, one set of routes per record type
for record_type, slug in RECORD_SLUGS.items():
    kwargs = {'record_type': record_type}
    urlpatterns += [
        path(f'api/{slug}-records', views.RecordListView.as_view(), kwargs, name=f'{slug}-records'),
        path(f'api/{slug}-records/search', views.RecordSearchView.as_view(), kwargs, name=f'{slug}-records-search'),
        path(f'api/{slug}-records/export', views.RecordExportView.as_view(), kwargs, name=f'{slug}-records-export'),
        path(f'api/{slug}-records/<int:record_id>', views.RecordDetailView.as_view(), kwargs, name=f'{slug}-record'),
        path(f'api/student-{slug}-records', views.StudentRecordsView.as_view(), kwargs, name=f'student-{slug}-records'),
        path(f'api/student-{slug}-records/search', views.StudentRecordsView.as_view(), kwargs, name=f'student-{slug}-records-search'),
    ]

urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
