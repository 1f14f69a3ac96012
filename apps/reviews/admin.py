from django.contrib import admin
from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('booking', 'requester', 'provider', 'rating', 'is_verified', 'created_at')
    list_filter = ('rating', 'is_verified', 'would_recommend')
    search_fields = ('requester__name', 'provider__name', 'comment')
    ordering = ('-created_at',)
    # Edits here bypass the rating aggregate; run recompute_provider_ratings afterwards
    readonly_fields = ('id', 'booking', 'requester', 'provider', 'rating', 'created_at', 'updated_at')
