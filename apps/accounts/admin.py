from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    list_display = ['username', 'name', 'phone', 'role', 'is_active', 'is_staff', 'date_joined']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['username', 'name', 'phone', 'email']
    readonly_fields = ['id', 'last_login', 'date_joined']
    fieldsets = DjangoUserAdmin.fieldsets + (
        ('Marketplace', {'fields': ('id', 'name', 'phone', 'role')}),
    )
