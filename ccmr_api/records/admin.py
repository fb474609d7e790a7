from django.conf import settings
from django.contrib import admin
from django.utils.crypto import get_random_string
from django.contrib.auth.hashers import make_password
from django.core.mail import send_mail
from .models import OfficeAccount, Student, Notification


@admin.register(OfficeAccount)
class OfficeAccountAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'office', 'department', 'must_change_password')
    list_filter = ('office',)
    fields = ('email', 'name', 'department', 'office', 'password', 'must_change_password')

    def save_model(self, request, obj, form, change):
        if not change or 'password' in form.changed_data:
            if not obj.password:
                temp_password = get_random_string(length=8)
            else:
                temp_password = form.cleaned_data['password']
            obj.password = make_password(temp_password)
            if not change:
                obj.must_change_password = True

            super().save_model(request, obj, form, change)

            if not change:
                send_mail(
                    subject="Your student records account",
                    message=(
                        f"Hi {obj.name},\n"
                        f"Your {obj.office} account is ready.\n"
                        f"Email: {obj.email}\n"
                        f"Temporary Password: {temp_password}\n"
                        f"Please log in at {settings.PUBLIC_BASE_URL} and set a new password as soon as possible.\n"
                    ),
                    from_email=settings.DEFAULT_FROM_EMAIL,
                    recipient_list=[obj.email],
                    fail_silently=False
                )
        else:
            super().save_model(request, obj, form, change)


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('student_id', 'name', 'strand', 'grade_level', 'section', 'school_year_semester')
    search_fields = ('student_id', 'name', 'strand')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('receiver', 'sender', 'message', 'is_read', 'created_at')
    list_filter = ('receiver', 'is_read')
