from django.contrib import admin
from .models import ProviderProfile


@admin.register(ProviderProfile)
class ProviderProfileAdmin(admin.ModelAdmin):
    list_display = [
        'user', 'rating', 'total_reviews', 'total_bookings',
        'is_verified', 'is_available', 'featured',
    ]
    list_filter = ['is_verified', 'is_available', 'featured']
    search_fields = ['user__name', 'user__phone', 'user__username']
    list_editable = ['is_verified', 'is_available', 'featured']
    # Aggregate fields are written only by apps.reviews.aggregator
    readonly_fields = ['id', 'rating', 'total_reviews', 'total_bookings', 'created_at', 'updated_at']
    fieldsets = (
        ('Provider', {'fields': ('id', 'user', 'bio', 'experience_years', 'languages', 'specializations')}),
        ('Pricing', {'fields': ('pricing_per_hour', 'pricing_per_service')}),
        ('Status', {'fields': ('is_verified', 'is_available', 'featured')}),
        ('Stats', {'fields': ('rating', 'total_reviews', 'total_bookings')}),
        ('Audit', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )
