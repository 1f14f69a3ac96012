from django.contrib import admin
from .models import Transaction, WebhookEvent


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = [
        'short_id', 'booking', 'transaction_type', 'amount', 'currency',
        'status', 'net_amount', 'processed_at', 'created_at',
    ]
    list_filter = ['status', 'transaction_type', 'payment_provider']
    search_fields = [
        'gateway_order_id', 'gateway_payment_id', 'gateway_transaction_id',
        'booking__requester__name',
    ]
    readonly_fields = [
        'id', 'booking', 'amount', 'gateway_order_id', 'gateway_payment_id',
        'gateway_transaction_id', 'gateway_response', 'processed_at', 'refunded_at',
        'platform_fee', 'gateway_fee', 'net_amount', 'created_at', 'updated_at',
    ]
    fieldsets = (
        ('Transaction', {'fields': ('id', 'booking', 'transaction_type', 'amount', 'currency', 'status')}),
        ('Gateway IDs', {'fields': ('payment_provider', 'gateway_order_id', 'gateway_payment_id', 'gateway_transaction_id')}),
        ('Fees', {'fields': ('platform_fee', 'gateway_fee', 'net_amount')}),
        ('Refund', {'fields': ('refund_amount', 'refund_reason', 'refunded_at')}),
        ('Gateway Response', {'fields': ('gateway_response', 'failure_reason'), 'classes': ('collapse',)}),
        ('Audit', {'fields': ('processed_at', 'created_at', 'updated_at'), 'classes': ('collapse',)}),
    )

    def short_id(self, obj):
        return str(obj.id)[:8]
    short_id.short_description = 'ID'


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ['event', 'event_id', 'status', 'attempts', 'transaction', 'created_at']
    list_filter = ['status', 'event']
    search_fields = ['event_id', 'last_error']
    readonly_fields = [
        'id', 'event_id', 'event', 'payload', 'transaction', 'attempts',
        'last_error', 'processed_at', 'created_at', 'updated_at',
    ]
