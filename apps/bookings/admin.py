from django.contrib import admin
from .models import Booking, BookingStatusLog


class BookingStatusLogInline(admin.TabularInline):
    model = BookingStatusLog
    extra = 0
    readonly_fields = ['from_status', 'to_status', 'changed_by', 'reason', 'changed_at']
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        'short_id', 'requester', 'provider', 'service_type',
        'scheduled_date', 'scheduled_time', 'status', 'payment_status', 'amount',
    ]
    list_filter = ['status', 'payment_status', 'city', 'scheduled_date']
    search_fields = ['requester__name', 'requester__phone', 'provider__name', 'service_type', 'city']
    readonly_fields = [
        'id', 'amount', 'status', 'payment_status', 'confirmed_at', 'completed_at',
        'cancelled_at', 'cancelled_by', 'created_at', 'updated_at',
    ]
    raw_id_fields = ['requester', 'provider']
    date_hierarchy = 'scheduled_date'
    inlines = [BookingStatusLogInline]
    fieldsets = (
        ('Booking', {'fields': ('id', 'requester', 'provider', 'service_type', 'service_description')}),
        ('Schedule', {'fields': ('scheduled_date', 'scheduled_time', 'duration_hours')}),
        ('Status', {'fields': ('status', 'payment_status', 'amount', 'confirmed_at', 'completed_at')}),
        ('Location', {'fields': ('address', 'city', 'state', 'pincode', 'latitude', 'longitude')}),
        ('Materials', {'fields': ('special_requirements', 'materials_required', 'materials_provided_by')}),
        ('Contact & Notes', {'fields': ('contact_phone', 'alternate_phone', 'booking_notes', 'provider_notes')}),
        ('Cancellation', {'fields': ('cancellation_reason', 'cancelled_by', 'cancelled_at')}),
        ('Audit', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    def short_id(self, obj):
        return obj.id_short
    short_id.short_description = 'ID'


@admin.register(BookingStatusLog)
class BookingStatusLogAdmin(admin.ModelAdmin):
    list_display = ['booking', 'from_status', 'to_status', 'changed_by', 'changed_at']
    readonly_fields = ['id', 'booking', 'from_status', 'to_status', 'changed_by', 'reason', 'changed_at']
    search_fields = ['booking__requester__name', 'changed_by']
